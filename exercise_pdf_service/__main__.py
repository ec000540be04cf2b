"""
Run the PDF service with uvicorn.

Usage:
    python -m exercise_pdf_service [--host HOST] [--port PORT] [--log-level LEVEL]

On SIGINT/SIGTERM the render queue stops accepting jobs and idle browsers
are closed right away; uvicorn then drains open connections and runs the
application's shutdown. Both share one SHUTDOWN_GRACE_SECONDS window.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import uvicorn
from fastapi import FastAPI

from .config import PDFServiceSettings, get_settings
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


class PDFServiceServer(uvicorn.Server):
    """uvicorn server that closes the render pipeline before draining connections."""

    def __init__(self, config: uvicorn.Config):
        super().__init__(config)
        self.pipeline_shutdown: Optional[asyncio.Task] = None

    def handle_exit(self, sig, frame) -> None:
        if not self.should_exit:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
            if loop is not None:
                loop.call_soon_threadsafe(self._begin_pipeline_shutdown)
        super().handle_exit(sig, frame)

    def _begin_pipeline_shutdown(self) -> None:
        from .app import begin_shutdown

        if self.pipeline_shutdown is None:
            self.pipeline_shutdown = asyncio.ensure_future(begin_shutdown(self.config.app))


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Exercise plan PDF service")
    parser.add_argument("--host", help="Bind address (default: HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, help="Listen port (default: PORT or 3001)")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: LOG_LEVEL or info)",
    )
    return parser.parse_args(argv)


def build_server(app: FastAPI, settings: PDFServiceSettings) -> PDFServiceServer:
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        timeout_graceful_shutdown=int(settings.shutdown_grace_seconds) or None,
    )
    return PDFServiceServer(config)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    overrides = {
        key: value
        for key, value in (("host", args.host), ("port", args.port), ("log_level", args.log_level))
        if value is not None
    }
    settings = get_settings().model_copy(update=overrides)
    setup_logging(settings)

    from .app import create_app

    app = create_app(settings)
    logger.info(f"PDF Generator service running at http://{settings.host}:{settings.port}")
    build_server(app, settings).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
