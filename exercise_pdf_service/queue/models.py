"""
Queue Data Models

Defines the data structures for render jobs and their statuses.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class JobStatus(str, Enum):
    """Status values for render jobs."""

    PENDING = "pending"      # Waiting in queue
    RUNNING = "running"      # Currently executing
    COMPLETED = "completed"  # Settled with a result
    FAILED = "failed"        # Settled with an error
    CANCELLED = "cancelled"  # Submitter stopped waiting before it started

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


@dataclass
class Job:
    """
    One unit of queued render work.

    The future is the submitter's handle on the outcome; it is settled
    exactly once, by the queue.
    """

    job_id: str                  # Unique job ID (e.g., "job_abc123def456")
    payload: Any                 # Passed untouched to the processing routine
    future: asyncio.Future
    enqueued_at: datetime
    status: JobStatus = JobStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    timeout_handle: Optional[asyncio.TimerHandle] = field(default=None, repr=False)

    @property
    def is_settled(self) -> bool:
        return self.status.is_terminal

    @property
    def wait_seconds(self) -> Optional[float]:
        """Time spent queued before starting (None if not started yet)."""
        if not self.started_at:
            return None
        return (self.started_at - self.enqueued_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "job_id": self.job_id,
            "status": self.status.value,
            "enqueued_at": self.enqueued_at.isoformat() if self.enqueued_at else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
        }
