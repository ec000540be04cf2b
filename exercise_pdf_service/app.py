"""
PDF Service - FastAPI application for exercise-plan PDF generation.

Endpoints:
    POST /generate-pdf   render request JSON -> application/pdf
    GET  /health         queue and pool status

The browser pool, render queue and rate limiter are created by the
application lifespan and live on app.state; handlers reach them through
the request.
"""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from io import BytesIO
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from . import __version__
from .config import PDFServiceSettings, get_settings, validate_config_on_startup
from .errors import PDFServiceError, RateLimitExceededError
from .models import ErrorResponse, HealthResponse, RenderRequest
from .orchestration import RenderJob, RenderOrchestrator, RenderResult
from .pool import BrowserPool
from .pool.browser_pool import ResourceFactory
from .queue import RenderQueue
from .rate_limiter import FixedWindowRateLimiter
from .renderer import BrowserLauncher

logger = logging.getLogger(__name__)


async def shutdown_services(
    pool: BrowserPool,
    queue: RenderQueue,
    launcher: Optional[BrowserLauncher],
    grace_seconds: float,
) -> None:
    """
    Stop the render pipeline.

    Order: refuse new jobs, close idle browsers (no more pool growth), give
    running jobs `grace_seconds` to finish, then cancel whatever is left.
    """
    logger.info("Shutting down gracefully...")
    queue.close()
    await pool.close_all()

    drained = await queue.wait_idle(timeout=grace_seconds)
    if not drained:
        logger.error("Forced shutdown after timeout")
        await queue.cancel_all("Forced shutdown after timeout")

    # Browsers released during the grace period were closed on release;
    # sweep once more in case of stragglers
    await pool.close_all()

    if launcher is not None:
        await launcher.stop()
    logger.info("PDF service stopped")


async def begin_shutdown(app: FastAPI) -> None:
    """
    Stop intake and pool growth as soon as termination is requested.

    Runs before the server drains open connections, so queued jobs fail fast
    with 503 and idle browsers are closed while running renders finish. Also
    starts the grace window that the lifespan shutdown completes; calling it
    again does not restart the window.
    """
    if getattr(app.state, "shutdown_deadline", None) is None:
        grace = app.state.settings.shutdown_grace_seconds
        app.state.shutdown_deadline = asyncio.get_running_loop().time() + grace
        logger.info(f"Termination requested, running renders have {grace:g}s to finish")

    queue: Optional[RenderQueue] = getattr(app.state, "queue", None)
    pool: Optional[BrowserPool] = getattr(app.state, "pool", None)
    if queue is not None:
        queue.close()
    if pool is not None:
        await pool.close_all()


def _remaining_grace(app: FastAPI, settings: PDFServiceSettings) -> float:
    deadline = getattr(app.state, "shutdown_deadline", None)
    if deadline is None:
        return settings.shutdown_grace_seconds
    return max(0.0, deadline - asyncio.get_running_loop().time())


def _error_response(
    status_code: int,
    error: str,
    details: Optional[str],
    request: Request,
    headers: Optional[dict] = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        details=details,
        timestamp=datetime.utcnow(),
        requestId=getattr(request.state, "request_id", None),
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json"),
        headers=headers,
    )


async def enforce_rate_limit(request: Request) -> None:
    """Dependency: count the request against the fixed window."""
    limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
    limiter.check()


def create_app(
    settings: Optional[PDFServiceSettings] = None,
    resource_factory: Optional[ResourceFactory] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Service settings (default: loaded from the environment)
        resource_factory: Async callable creating one rendering engine
            (default: a Playwright BrowserLauncher)
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        validate_config_on_startup(settings)

        launcher: Optional[BrowserLauncher] = None
        factory = resource_factory
        if factory is None:
            launcher = BrowserLauncher.from_settings(settings)
            factory = launcher

        pool = BrowserPool(
            factory,
            max_idle=settings.max_browser_pool_size,
            max_usage=settings.max_page_lifetime,
        )
        queue = RenderQueue(
            RenderOrchestrator(pool, render_timeout=settings.render_timeout_seconds),
            concurrency=settings.request_concurrency,
            wait_timeout=settings.queue_wait_timeout_seconds,
        )
        app.state.pool = pool
        app.state.queue = queue
        app.state.shutdown_deadline = None

        logger.info(
            f"PDF service ready (concurrency={queue.concurrency}, "
            f"pool max_idle={pool.max_idle}, max_usage={pool.max_usage})"
        )
        try:
            yield
        finally:
            await shutdown_services(pool, queue, launcher, _remaining_grace(app, settings))

    app = FastAPI(
        title="Exercise PDF Service",
        version=__version__,
        description="Renders exercise plans to PDF using pooled Playwright/Chromium browsers",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_limiter = FixedWindowRateLimiter(
        limit=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )

    if settings.cors_origins_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins_list,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["Content-Disposition", "X-Request-ID"],
        )

    @app.middleware("http")
    async def track_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:10]
        request.state.request_id = request_id
        logger.info(f"[{request_id}] {request.method} {request.url.path}")

        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > settings.max_request_bytes:
            logger.warning(f"[{request_id}] Request body too large ({content_length} bytes)")
            return _error_response(
                413,
                "Request too large",
                f"Body exceeds {settings.max_request_bytes} bytes",
                request,
            )

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = int((time.monotonic() - start) * 1000)
        response.headers["X-Request-ID"] = request_id
        logger.info(f"[{request_id}] {response.status_code} {duration_ms}ms")
        return response

    @app.exception_handler(PDFServiceError)
    async def handle_service_error(request: Request, exc: PDFServiceError) -> JSONResponse:
        headers = None
        if isinstance(exc, RateLimitExceededError):
            logger.warning(f"Rate limit hit: {exc}")
            headers = {"Retry-After": str(int(exc.retry_after or 0) + 1)}
        return _error_response(exc.status_code, exc.error_label, str(exc), request, headers)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error: {exc}")
        return _error_response(500, "Failed to generate PDF", str(exc), request)

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request) -> HealthResponse:
        """
        Health check endpoint for container orchestration.

        Reports queue depth, running renders and idle browsers.
        Returns HTTP 503 once shutdown has started.
        """
        queue: RenderQueue = request.app.state.queue
        pool: BrowserPool = request.app.state.pool

        health = HealthResponse(
            status="ok",
            version=__version__,
            timestamp=datetime.utcnow(),
            queueLength=queue.pending_count,
            activeRequests=queue.active_count,
            poolSize=pool.idle_count,
            pool=pool.stats(),
            queue=queue.stats(),
        )
        if pool.closed or queue.closed:
            health.status = "shutting_down"
            raise HTTPException(status_code=503, detail=health.model_dump(mode="json"))
        return health

    @app.post("/generate-pdf", dependencies=[Depends(enforce_rate_limit)])
    async def generate_pdf(render_request: RenderRequest, request: Request):
        """
        Render an exercise plan to PDF.

        The request is validated, queued, and answered once a browser has
        rendered it.

        Raises:
            RenderValidationError: 400 when there are no exercises
            RenderError: 500 for rendering failures and timeouts
            CreationError / QueueClosedError / QueueTimeoutError: 503
        """
        request_id = request.state.request_id
        render_request.validate_for_render()

        queue: RenderQueue = request.app.state.queue
        logger.info(
            f"[{request_id}] Queueing render for {render_request.subject_name} "
            f"({len(render_request.exercises)} exercises, queue={queue.pending_count})"
        )
        result: RenderResult = await queue.submit(
            RenderJob(request=render_request, request_id=request_id)
        )

        return StreamingResponse(
            BytesIO(result.pdf),
            media_type="application/pdf",
            headers={
                "Content-Disposition": f'attachment; filename="{result.filename}"',
                "Cache-Control": "no-store, max-age=0",
            },
        )

    return app


app = create_app()
