#!/usr/bin/env python3
"""Tests for logging setup."""

import json
import logging
import warnings

import pytest

from fleetpro.log import setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_json_lines_on_stderr(self, capsys):
        setup_logging("INFO")
        logging.getLogger("fleetpro.fleet").info("Added vehicle %s", "M01")

        captured = capsys.readouterr()
        assert captured.out == ""
        record = json.loads(captured.err.strip().splitlines()[-1])
        assert record["message"] == "Added vehicle M01"
        assert record["levelname"] == "INFO"
        assert record["name"] == "fleetpro.fleet"

    def test_no_deprecation_warning(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            setup_logging("INFO")
            logging.getLogger("fleetpro").info("started")

    def test_text_format(self, capsys):
        setup_logging("WARNING", fmt="text")
        logging.getLogger("maint").warning("Rejected")
        logging.getLogger("maint").info("hidden")

        err = capsys.readouterr().err
        assert "WARNING maint: Rejected" in err
        assert "hidden" not in err

    def test_single_handler_when_called_twice(self):
        setup_logging("INFO")
        setup_logging("DEBUG")
        root_logger = logging.getLogger()
        assert len(root_logger.handlers) == 1
        assert root_logger.level == logging.DEBUG

    def test_transport_loggers_quieted(self):
        setup_logging("DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
