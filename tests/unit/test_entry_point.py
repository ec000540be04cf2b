"""
Unit tests for exercise_pdf_service/__main__.py
"""

import asyncio
import logging
import signal
from unittest.mock import patch

import pytest

from exercise_pdf_service.__main__ import PDFServiceServer, build_server, main
from exercise_pdf_service.app import create_app
from exercise_pdf_service.config import PDFServiceSettings
from helpers.fake_engines import FakeLauncher


class TestMain:
    """Tests for the uvicorn entry point."""

    def teardown_method(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            if getattr(handler, "_pdf_service_handler", False):
                root.removeHandler(handler)
        root.setLevel(logging.WARNING)

    def test_runs_server_with_settings(self, monkeypatch):
        monkeypatch.setenv("PORT", "4000")
        monkeypatch.setenv("SHUTDOWN_GRACE_SECONDS", "12")

        with patch("exercise_pdf_service.__main__.build_server") as mock_build:
            assert main([]) == 0

        app, settings = mock_build.call_args.args
        assert settings.port == 4000
        assert settings.host == "0.0.0.0"
        assert app.state.settings is settings
        mock_build.return_value.run.assert_called_once()

    def test_cli_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "4000")

        with patch("exercise_pdf_service.__main__.build_server") as mock_build:
            main(["--port", "5000", "--host", "127.0.0.1", "--log-level", "warning"])

        _, settings = mock_build.call_args.args
        assert settings.port == 5000
        assert settings.host == "127.0.0.1"
        assert settings.log_level == "warning"


class TestPDFServiceServer:
    """Tests for the server that closes the pipeline on termination."""

    def _settings(self, **overrides) -> PDFServiceSettings:
        values = {"cors_origins": "", "shutdown_grace_seconds": 12, "port": 4000}
        values.update(overrides)
        return PDFServiceSettings(_env_file=None, **values)

    def test_build_server_config(self):
        settings = self._settings()
        app = create_app(settings, resource_factory=FakeLauncher())

        server = build_server(app, settings)

        assert isinstance(server, PDFServiceServer)
        assert server.config.app is app
        assert server.config.port == 4000
        assert server.config.timeout_graceful_shutdown == 12

    @pytest.mark.asyncio
    async def test_exit_signal_closes_queue_and_pool(self):
        settings = self._settings()
        app = create_app(settings, resource_factory=FakeLauncher())
        server = build_server(app, settings)

        async with app.router.lifespan_context(app):
            server.handle_exit(signal.SIGTERM, None)
            for _ in range(5):
                await asyncio.sleep(0)
            await server.pipeline_shutdown

            assert server.should_exit is True
            assert app.state.queue.closed is True
            assert app.state.pool.closed is True

    @pytest.mark.asyncio
    async def test_second_signal_does_not_restart_shutdown(self):
        settings = self._settings()
        app = create_app(settings, resource_factory=FakeLauncher())
        server = build_server(app, settings)

        async with app.router.lifespan_context(app):
            server.handle_exit(signal.SIGTERM, None)
            for _ in range(5):
                await asyncio.sleep(0)
            first = server.pipeline_shutdown
            deadline = app.state.shutdown_deadline

            server.handle_exit(signal.SIGINT, None)
            for _ in range(5):
                await asyncio.sleep(0)

            assert server.pipeline_shutdown is first
            assert app.state.shutdown_deadline == deadline
            assert server.force_exit is True
