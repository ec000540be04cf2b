"""
PDF Service Configuration Module

Centralized configuration management with Pydantic validation.
All environment variables are validated at startup to catch misconfigurations early.
"""

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_BROWSER_ARGS = "--disable-dev-shm-usage,--no-sandbox,--js-flags=--max-old-space-size=1024"


class PDFServiceSettings(BaseSettings):
    """
    PDF service configuration with validation.

    All settings can be overridden via environment variables (or a .env file).
    Validation happens at startup to fail fast on misconfiguration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # MAX_BROWSER_POOL_SIZE = max_browser_pool_size
        extra="ignore",
    )

    # === Server ===
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3001, ge=1, le=65535, description="Listen port")
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # === Browser Pool ===
    max_browser_pool_size: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Maximum idle browsers kept warm (1-20)"
    )
    max_page_lifetime: int = Field(
        default=100,
        ge=1,
        description="Renders per browser before it is retired"
    )
    browser_headless: bool = Field(default=True, description="Run Chromium headless")
    browser_args: str = Field(
        default=DEFAULT_BROWSER_ARGS,
        description="Comma-separated Chromium launch arguments"
    )

    # === Queue ===
    request_concurrency: int = Field(
        default=2,
        ge=1,
        le=20,
        description="Maximum renders running at once (1-20)"
    )
    queue_wait_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Fail jobs that wait longer than this in the queue (unset = wait forever)"
    )
    render_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Time bound for a single render"
    )
    shutdown_grace_seconds: float = Field(
        default=30.0,
        ge=0,
        description="How long active renders may finish during shutdown"
    )

    # === Rate limiting ===
    rate_limit_requests: int = Field(default=60, ge=1, description="Requests per window")
    rate_limit_window_seconds: float = Field(default=60.0, gt=0, description="Window length")

    # === HTTP ===
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )
    max_request_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Largest accepted request body"
    )

    # === Logging ===
    log_level: str = Field(default="info", description="debug, info, warning, error")
    log_to_file: bool = Field(default=False, description="Also write logs to LOG_DIR/app.log")
    log_dir: str = Field(default="logs", description="Directory for rotated log files")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of: {', '.join(sorted(allowed))}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept the usual level names, case-insensitively."""
        allowed = {"debug", "info", "warning", "warn", "error"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(allowed))}")
        return "warning" if v_lower == "warn" else v_lower

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def browser_args_list(self) -> List[str]:
        """Parse Chromium launch arguments into a list."""
        return [arg.strip() for arg in self.browser_args.split(",") if arg.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration is suitable for production.

        Returns list of warning/error messages.
        """
        issues = []

        if self.is_production:
            if "*" in self.cors_origins_list:
                issues.append("WARNING: CORS_ORIGINS allows any origin in production")
            if not self.browser_headless:
                issues.append("CRITICAL: BROWSER_HEADLESS must be enabled in production")
            if self.max_page_lifetime > 1000:
                issues.append("WARNING: MAX_PAGE_LIFETIME is high, browsers may leak memory")

        return issues


@lru_cache()
def get_settings() -> PDFServiceSettings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for performance.
    """
    return PDFServiceSettings()


def validate_config_on_startup(settings: Optional[PDFServiceSettings] = None) -> PDFServiceSettings:
    """
    Validate configuration at application startup.

    Raises ValueError with details if config is invalid.
    Logs warnings for non-critical issues.
    """
    if settings is None:
        try:
            settings = get_settings()
        except Exception as e:
            raise ValueError(f"Configuration validation failed: {e}")

    issues = settings.validate_production_config()

    for issue in issues:
        if issue.startswith("CRITICAL"):
            raise ValueError(issue)
        else:
            logger.warning(issue)

    logger.info(f"Configuration loaded: environment={settings.environment}")
    logger.info(f"  max_browser_pool_size={settings.max_browser_pool_size}")
    logger.info(f"  max_page_lifetime={settings.max_page_lifetime}")
    logger.info(f"  request_concurrency={settings.request_concurrency}")
    logger.info(f"  render_timeout={settings.render_timeout_seconds}s")
    logger.info(f"  queue_wait_timeout={settings.queue_wait_timeout_seconds or 'none'}")
    return settings
