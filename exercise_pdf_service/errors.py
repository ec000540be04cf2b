"""
Service error taxonomy.

Every failure the render pipeline can surface maps to one of these types.
The HTTP layer translates them into status codes; the pool and queue raise
them to the caller that owns the failed operation and nobody else.
"""

from typing import Optional


class PDFServiceError(Exception):
    """Base class for all service errors."""

    status_code: int = 500
    error_label: str = "Failed to generate PDF"


class CreationError(PDFServiceError):
    """A new browser could not be started.

    Raised in every caller that was waiting on the same in-flight creation.
    The pool stays usable for later attempts.
    """

    status_code = 503
    error_label = "Renderer unavailable"


class PoolClosedError(CreationError):
    """The pool has been shut down and will not hand out resources."""

    def __init__(self, message: str = "Browser pool is closed"):
        super().__init__(message)


class RenderValidationError(PDFServiceError):
    """The render request is malformed (e.g. no exercises)."""

    status_code = 400
    error_label = "Invalid render request"


class RenderError(PDFServiceError):
    """The rendering engine failed or ran past its time bound."""

    status_code = 500
    error_label = "Failed to generate PDF"


class ResourceDisconnectedError(PDFServiceError):
    """A browser was found disconnected when it came back to the pool."""

    def __init__(self, resource_id: int):
        self.resource_id = resource_id
        super().__init__(f"Browser {resource_id} is disconnected")


class QueueClosedError(PDFServiceError):
    """The queue no longer accepts or runs jobs (shutdown)."""

    status_code = 503
    error_label = "Service shutting down"


class QueueTimeoutError(PDFServiceError):
    """A job waited in the queue longer than the configured limit."""

    status_code = 503
    error_label = "Service overloaded"

    def __init__(self, job_id: str, waited_seconds: float):
        self.job_id = job_id
        self.waited_seconds = waited_seconds
        super().__init__(
            f"Job {job_id} waited {waited_seconds:.1f}s in queue without starting"
        )


class RateLimitExceededError(PDFServiceError):
    """Raised when the fixed-window request budget is used up."""

    status_code = 429
    error_label = "Too many requests"

    def __init__(self, current: int, limit: int, retry_after: Optional[float] = None):
        self.current = current
        self.limit = limit
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded: {current}/{limit} requests in window")
