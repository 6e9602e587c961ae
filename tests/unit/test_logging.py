"""Unit tests for the logging configuration module."""

import json
import logging
from unittest.mock import MagicMock, patch

import pytest
import structlog

from caddyhook.logging import get_logger, setup_logging


@pytest.fixture(autouse=True)
def _reset_logging_state():
    """Reset root logger and structlog state before and after each test."""
    original_handlers = logging.root.handlers[:]
    original_level = logging.root.level
    logging.root.handlers.clear()
    logging.root.setLevel(logging.WARNING)
    yield
    structlog.reset_defaults()
    logging.root.handlers.clear()
    logging.root.handlers.extend(original_handlers)
    logging.root.setLevel(original_level)


def _mock_settings(log_level: str = "INFO", is_development: bool = False) -> MagicMock:
    settings = MagicMock()
    settings.log_level = log_level
    settings.is_development = is_development
    return settings


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_basic_config_uses_configured_level(self):
        """Test that setup_logging passes the DEBUG level to basicConfig."""
        with patch("caddyhook.logging.logging.basicConfig") as mock_basic:
            setup_logging(_mock_settings("DEBUG"))

        assert mock_basic.call_args.kwargs["level"] == logging.DEBUG

    def test_invalid_level_defaults_to_info(self):
        """Test setup_logging falls back to INFO for invalid log level."""
        with patch("caddyhook.logging.logging.basicConfig") as mock_basic:
            setup_logging(_mock_settings("NONEXISTENT"))

        assert mock_basic.call_args.kwargs["level"] == logging.INFO

    def test_falls_back_to_cached_settings(self):
        """Test setup_logging reads get_settings() when none are passed."""
        with patch(
            "caddyhook.logging.get_settings", return_value=_mock_settings("WARNING")
        ) as mock_get:
            with patch("caddyhook.logging.logging.basicConfig") as mock_basic:
                setup_logging()

        mock_get.assert_called_once()
        assert mock_basic.call_args.kwargs["level"] == logging.WARNING

    def test_reduces_third_party_noise(self):
        """Test that setup_logging sets HTTP library loggers to WARNING."""
        setup_logging(_mock_settings("DEBUG"))

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING
        assert logging.getLogger("aiohttp.access").level == logging.WARNING

    def test_configures_structlog(self):
        """Test that setup_logging calls structlog.configure with correct params."""
        with patch("caddyhook.logging.structlog.configure") as mock_configure:
            setup_logging(_mock_settings())

        mock_configure.assert_called_once()
        call_kwargs = mock_configure.call_args[1]
        assert call_kwargs["context_class"] is dict
        assert call_kwargs["cache_logger_on_first_use"] is True

    def test_development_uses_console_renderer(self):
        """Test that development mode uses ConsoleRenderer."""
        with patch("caddyhook.logging.structlog.dev.ConsoleRenderer") as mock_renderer:
            setup_logging(_mock_settings(is_development=True))

        mock_renderer.assert_called_once_with(colors=True)

    def test_production_uses_json_renderer(self):
        """Test that production mode uses JSONRenderer."""
        with patch("caddyhook.logging.structlog.processors.JSONRenderer") as mock_renderer:
            setup_logging(_mock_settings(is_development=False))

        mock_renderer.assert_called_once_with()


class TestGetLogger:
    """Tests for get_logger function."""

    def test_returns_usable_logger(self):
        log = get_logger("caddyhook.test")
        assert hasattr(log, "info")
        assert hasattr(log, "error")


class TestRenderedOutput:
    """Tests for what a configured logger actually prints."""

    def test_json_line_carries_bound_delivery_context(self, capsys):
        setup_logging(_mock_settings("INFO"))
        log = structlog.get_logger("caddyhook.test")

        with structlog.contextvars.bound_contextvars(
            delivery_id="d-42", github_event="push"
        ):
            log.info("reload_requested", container="caddy")

        line = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert line["event"] == "reload_requested"
        assert line["delivery_id"] == "d-42"
        assert line["github_event"] == "push"
        assert line["container"] == "caddy"
        assert line["level"] == "info"
