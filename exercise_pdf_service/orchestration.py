"""
Render Orchestration

The processing routine installed in the RenderQueue. For one job it builds
the HTML, checks a browser out of the pool, renders under a time bound and
hands the browser back on every exit path. Whatever it returns or raises is
what the job's submitter receives.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .errors import RenderError
from .models import RenderRequest
from .pdf_helpers import build_document_html, build_pdf_filename, format_plan_date
from .pool import BrowserPool

logger = logging.getLogger(__name__)


@dataclass
class RenderJob:
    """Queue payload: a validated request plus its tracing id."""

    request: RenderRequest
    request_id: str = "unknown"


@dataclass
class RenderResult:
    """Rendered document and the filename to offer it under."""

    pdf: bytes
    filename: str
    duration_ms: int = 0


class RenderOrchestrator:
    """Callable processing routine: RenderJob -> RenderResult."""

    def __init__(
        self,
        pool: BrowserPool,
        render_timeout: float = 60.0,
        markup_builder: Callable[[RenderRequest], str] = build_document_html,
    ):
        """
        Args:
            pool: Browser pool to check renderers out of
            render_timeout: Seconds a single render may take
            markup_builder: Request -> HTML document
        """
        self._pool = pool
        self.render_timeout = render_timeout
        self._build_markup = markup_builder

    async def __call__(self, job: RenderJob) -> RenderResult:
        """
        Render one job.

        Raises:
            RenderError: Engine failure or timeout
            CreationError: No browser could be started
        """
        request = job.request
        started = time.monotonic()

        try:
            markup = self._build_markup(request)
            async with self._pool.checkout() as resource:
                logger.debug(f"[{job.request_id}] Rendering with browser {resource.resource_id}")
                pdf = await self._render(resource.handle, markup)
        except Exception as e:
            self._log_failure(job, e)
            raise

        duration_ms = int((time.monotonic() - started) * 1000)
        filename = build_pdf_filename(request.patientName, format_plan_date(request.date))
        logger.info(f"[{job.request_id}] Rendered {len(pdf)} bytes in {duration_ms}ms")
        return RenderResult(pdf=pdf, filename=filename, duration_ms=duration_ms)

    async def _render(self, engine, markup: str) -> bytes:
        try:
            return await asyncio.wait_for(engine.render(markup), timeout=self.render_timeout)
        except asyncio.TimeoutError:
            raise RenderError(f"Rendering timed out after {self.render_timeout:g}s")
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f"Rendering failed: {e}") from e

    @staticmethod
    def _log_failure(job: RenderJob, error: Exception) -> None:
        # Structured line for log-based alerting
        logger.error(json.dumps({
            "event": "pdf_generation_error",
            "timestamp": datetime.utcnow().isoformat(),
            "error": str(error),
            "error_type": type(error).__name__,
            "patient": job.request.subject_name,
            "reqId": job.request_id,
        }))
