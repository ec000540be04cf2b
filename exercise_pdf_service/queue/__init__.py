"""
Queue Package

Provides the in-process, concurrency-limited render job queue.
"""

from .models import Job, JobStatus
from .manager import RenderQueue

__all__ = [
    "Job",
    "JobStatus",
    "RenderQueue",
]
