#!/usr/bin/env python3
"""Tests for environment settings."""

from fleetpro.config import DEFAULT_ADVICE_MODEL, Settings


class TestSettingsFromEnv:
    """Tests for Settings.from_env."""

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.fleet_file == "fleet.yaml"
        assert settings.gemini_api_key is None
        assert settings.advice_model == DEFAULT_ADVICE_MODEL
        assert settings.advisor_timeout == 60
        assert settings.log_format == "json"

    def test_overrides(self):
        settings = Settings.from_env(
            {
                "FLEET_FILE": "/data/fleet.yaml",
                "GEMINI_API_KEY": "key",
                "ADVISOR_TIMEOUT": "15",
                "ADVISOR_MAX_RETRIES": "0",
                "LOG_LEVEL": "debug",
                "LOG_FORMAT": "TEXT",
            }
        )
        assert settings.fleet_file == "/data/fleet.yaml"
        assert settings.gemini_api_key == "key"
        assert settings.advisor_timeout == 15.0
        assert settings.advisor_max_retries == 0
        assert settings.log_level == "DEBUG"
        assert settings.log_format == "text"

    def test_blank_api_key_is_unset(self):
        assert Settings.from_env({"GEMINI_API_KEY": ""}).gemini_api_key is None
