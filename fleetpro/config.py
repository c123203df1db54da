"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_ADVICE_MODEL = "gemini-2.5-pro"
DEFAULT_VISION_MODEL = "gemini-2.5-flash"


@dataclass
class Settings:
    """Settings shared by the CLI, the web app and the advisory service."""

    fleet_file: str = "fleet.yaml"
    gemini_api_key: Optional[str] = None
    advice_model: str = DEFAULT_ADVICE_MODEL
    vision_model: str = DEFAULT_VISION_MODEL
    advisor_timeout: float = 60
    advisor_max_retries: int = 2
    log_level: str = "INFO"
    log_format: str = "json"
    secret_key: str = "dev-secret-key-change-in-prod"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            fleet_file=env.get("FLEET_FILE", defaults.fleet_file),
            gemini_api_key=env.get("GEMINI_API_KEY") or None,
            advice_model=env.get("GEMINI_ADVICE_MODEL", defaults.advice_model),
            vision_model=env.get("GEMINI_VISION_MODEL", defaults.vision_model),
            advisor_timeout=float(env.get("ADVISOR_TIMEOUT", defaults.advisor_timeout)),
            advisor_max_retries=int(
                env.get("ADVISOR_MAX_RETRIES", defaults.advisor_max_retries)
            ),
            log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
            log_format=env.get("LOG_FORMAT", defaults.log_format).lower(),
            secret_key=env.get("SECRET_KEY", defaults.secret_key),
        )
