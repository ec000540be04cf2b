"""
Unit tests for exercise_pdf_service/config.py and logging_config.py
"""

import logging

import pytest
from pydantic import ValidationError

from exercise_pdf_service.config import (
    PDFServiceSettings,
    get_settings,
    validate_config_on_startup,
)
from exercise_pdf_service.logging_config import setup_logging


class TestPDFServiceSettings:
    """Tests for settings defaults, parsing and bounds."""

    def test_defaults(self):
        settings = PDFServiceSettings(_env_file=None)

        assert settings.port == 3001
        assert settings.max_browser_pool_size == 3
        assert settings.max_page_lifetime == 100
        assert settings.request_concurrency == 2
        assert settings.render_timeout_seconds == 60.0
        assert settings.queue_wait_timeout_seconds is None
        assert settings.rate_limit_requests == 60
        assert settings.rate_limit_window_seconds == 60.0

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("MAX_BROWSER_POOL_SIZE", "5")
        monkeypatch.setenv("MAX_PAGE_LIFETIME", "20")
        monkeypatch.setenv("QUEUE_WAIT_TIMEOUT_SECONDS", "15")

        settings = get_settings()

        assert settings.port == 8080
        assert settings.max_browser_pool_size == 5
        assert settings.max_page_lifetime == 20
        assert settings.queue_wait_timeout_seconds == 15.0

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    @pytest.mark.parametrize("field,value", [
        ("max_browser_pool_size", 0),
        ("max_page_lifetime", 0),
        ("request_concurrency", 0),
        ("port", 70000),
        ("render_timeout_seconds", 0),
    ])
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            PDFServiceSettings(_env_file=None, **{field: value})

    def test_rejects_unknown_environment(self):
        with pytest.raises(ValidationError, match="environment"):
            PDFServiceSettings(_env_file=None, environment="qa")

    def test_log_level_normalized(self):
        assert PDFServiceSettings(_env_file=None, log_level="WARN").log_level == "warning"
        assert PDFServiceSettings(_env_file=None, log_level="Debug").log_level == "debug"

    def test_cors_origins_list(self):
        settings = PDFServiceSettings(
            _env_file=None,
            cors_origins="https://a.example, https://b.example,",
        )

        assert settings.cors_origins_list == ["https://a.example", "https://b.example"]

    def test_empty_cors_origins(self):
        assert PDFServiceSettings(_env_file=None, cors_origins="").cors_origins_list == []


class TestStartupValidation:
    """Tests for production checks run at startup."""

    def test_development_has_no_issues(self):
        settings = PDFServiceSettings(_env_file=None)

        assert settings.validate_production_config() == []
        assert validate_config_on_startup(settings) is settings

    def test_production_wildcard_cors_warns(self, caplog):
        settings = PDFServiceSettings(_env_file=None, environment="production")

        with caplog.at_level(logging.WARNING):
            validate_config_on_startup(settings)

        assert "CORS_ORIGINS allows any origin" in caplog.text

    def test_production_headed_browser_is_critical(self):
        settings = PDFServiceSettings(
            _env_file=None,
            environment="production",
            cors_origins="https://clinic.example",
            browser_headless=False,
        )

        with pytest.raises(ValueError, match="BROWSER_HEADLESS"):
            validate_config_on_startup(settings)


class TestSetupLogging:
    """Tests for logging configuration."""

    def _own_handlers(self):
        return [
            h for h in logging.getLogger().handlers
            if getattr(h, "_pdf_service_handler", False)
        ]

    def teardown_method(self):
        root = logging.getLogger()
        for handler in self._own_handlers():
            root.removeHandler(handler)
            handler.close()
        root.setLevel(logging.WARNING)

    def test_repeated_setup_does_not_duplicate_handlers(self):
        settings = PDFServiceSettings(_env_file=None, log_level="debug")

        setup_logging(settings)
        setup_logging(settings)

        assert len(self._own_handlers()) == 1
        assert logging.getLogger().level == logging.DEBUG

    def test_file_logging(self, tmp_path):
        settings = PDFServiceSettings(
            _env_file=None,
            log_to_file=True,
            log_dir=str(tmp_path / "logs"),
        )

        setup_logging(settings)
        logging.getLogger("exercise_pdf_service.test").info("hello file")
        for handler in self._own_handlers():
            handler.flush()

        assert len(self._own_handlers()) == 2
        assert "hello file" in (tmp_path / "logs" / "app.log").read_text()
