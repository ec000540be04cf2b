"""
Shared pytest configuration for the PDF service tests.

Environment variables are set before anything imports exercise_pdf_service
so the module-level app and cached settings see test values.
"""

import os

os.environ["ENVIRONMENT"] = "development"
os.environ["LOG_TO_FILE"] = "false"
os.environ["LOG_LEVEL"] = "info"

import pytest

from exercise_pdf_service.config import get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make every test load settings fresh."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
