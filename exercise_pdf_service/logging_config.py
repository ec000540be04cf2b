"""
Logging setup for the PDF service.

Console logging always; a size-rotated app.log when LOG_TO_FILE is enabled.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import PDFServiceSettings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "app.log"
MAX_LOG_FILE_BYTES = 10 * 1024 * 1024
MAX_LOG_FILES = 5


def setup_logging(settings: "PDFServiceSettings") -> None:
    """
    Configure the root logger from settings.

    Args:
        settings: Loaded service settings (log_level, log_to_file, log_dir)
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Replace our own handlers on repeated calls, leave uvicorn's alone
    for handler in root_logger.handlers[:]:
        if getattr(handler, "_pdf_service_handler", False):
            root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)
    console_handler._pdf_service_handler = True
    root_logger.addHandler(console_handler)

    if settings.log_to_file:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=MAX_LOG_FILE_BYTES,
            backupCount=MAX_LOG_FILES,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        file_handler._pdf_service_handler = True
        root_logger.addHandler(file_handler)
