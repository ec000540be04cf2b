"""
Render Queue Manager

In-process FIFO queue with a hard concurrency ceiling.
Handles job lifecycle: submit, dispatch, settle, expire, cancel.

Jobs start strictly in submission order, at most `concurrency` at a time.
Every freed slot is refilled immediately from the head of the queue.
Completion order is whatever the processing routine produces.
"""

import asyncio
import logging
import uuid
from collections import deque
from datetime import datetime
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

from ..errors import QueueClosedError, QueueTimeoutError
from .models import Job, JobStatus

logger = logging.getLogger(__name__)

Processor = Callable[[Any], Awaitable[Any]]


class RenderQueue:
    """
    Concurrency-limited job queue.

    The processing routine is required at construction, so a queue can
    never hold jobs it has no way to run. A processing failure settles
    only the job that produced it; the queue itself never raises from it.
    """

    def __init__(
        self,
        processor: Processor,
        concurrency: int = 2,
        wait_timeout: Optional[float] = None,
    ):
        """
        Initialize render queue.

        Args:
            processor: Async callable invoked with each job's payload
            concurrency: Maximum jobs running at once
            wait_timeout: Seconds a job may stay queued before it fails
                (None = no limit)
        """
        if processor is None:
            raise ValueError("processor is required")
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if wait_timeout is not None and wait_timeout <= 0:
            raise ValueError("wait_timeout must be positive")

        self.concurrency = concurrency
        self.wait_timeout = wait_timeout
        self._processor = processor

        self._pending: Deque[Job] = deque()
        self._running: Dict[str, asyncio.Task] = {}
        self._active = 0
        self._closed = False
        self._idle = asyncio.Event()
        self._idle.set()

        self._stats = {
            "submitted": 0,
            "completed": 0,
            "failed": 0,
            "expired": 0,
            "cancelled": 0,
        }

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> Dict[str, Any]:
        """Get queue counters for health reporting."""
        return {
            "pending": self.pending_count,
            "active": self.active_count,
            "concurrency": self.concurrency,
            **self._stats,
        }

    def submit(self, payload: Any) -> asyncio.Future:
        """
        Add a job to the tail of the queue.

        Args:
            payload: Work description handed to the processing routine

        Returns:
            Future settled with the routine's result or error

        Raises:
            QueueClosedError: If the queue has been closed
        """
        if self._closed:
            raise QueueClosedError("Queue is not accepting new jobs")

        loop = asyncio.get_running_loop()
        job = Job(
            job_id=f"job_{uuid.uuid4().hex[:12]}",
            payload=payload,
            future=loop.create_future(),
            enqueued_at=datetime.utcnow(),
        )
        if self.wait_timeout is not None:
            job.timeout_handle = loop.call_later(self.wait_timeout, self._expire, job)
        job.future.add_done_callback(lambda fut: self._on_future_done(job, fut))

        self._pending.append(job)
        self._stats["submitted"] += 1
        self._idle.clear()

        logger.debug(
            f"Queued {job.job_id} (position {len(self._pending)}, active {self._active})"
        )
        self._dispatch()
        return job.future

    def close(self) -> None:
        """Stop accepting new jobs. Queued and running jobs carry on."""
        if not self._closed:
            self._closed = True
            logger.info(
                f"Queue closed ({self.pending_count} pending, {self.active_count} active)"
            )

    async def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until nothing is queued or running.

        Args:
            timeout: Maximum seconds to wait (None = no limit)

        Returns:
            True if the queue drained, False on timeout
        """
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def cancel_all(self, reason: str = "Service shutting down") -> int:
        """
        Fail every queued job and cancel every running one.

        Returns:
            Number of jobs affected
        """
        self._closed = True
        affected = 0

        while self._pending:
            job = self._pending.popleft()
            self._cancel_timer(job)
            if self._settle(job, error=QueueClosedError(reason)):
                affected += 1

        tasks = list(self._running.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        affected += len(tasks)

        self._update_idle()
        if affected:
            logger.warning(f"Cancelled {affected} jobs: {reason}")
        return affected

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _dispatch(self) -> None:
        """Start queued jobs until the ceiling is reached or the queue is empty."""
        while self._active < self.concurrency and self._pending:
            job = self._pending.popleft()
            self._cancel_timer(job)
            if job.future.done():
                # Submitter gave up or the job expired while queued
                if job.status == JobStatus.PENDING:
                    job.status = JobStatus.CANCELLED
                    self._stats["cancelled"] += 1
                continue

            job.status = JobStatus.RUNNING
            job.started_at = datetime.utcnow()
            self._active += 1
            task = asyncio.get_running_loop().create_task(self._run(job))
            self._running[job.job_id] = task
            task.add_done_callback(lambda t, job=job: self._on_task_done(job, t))
            logger.debug(f"Started {job.job_id} after {job.wait_seconds:.3f}s in queue")

        self._update_idle()

    async def _run(self, job: Job) -> None:
        try:
            result = await self._processor(job.payload)
        except asyncio.CancelledError:
            self._settle(job, error=QueueClosedError("Job cancelled during shutdown"))
            raise
        except Exception as e:
            logger.warning(f"Job {job.job_id} failed: {type(e).__name__}: {e}")
            self._settle(job, error=e)
        else:
            self._settle(job, result=result)
        finally:
            self._release_slot(job)

    def _release_slot(self, job: Job) -> None:
        self._active -= 1
        self._running.pop(job.job_id, None)
        self._dispatch()

    def _on_task_done(self, job: Job, task: asyncio.Task) -> None:
        """Settle a job whose task was cancelled before its first step."""
        if self._running.get(job.job_id) is not task:
            return
        # _run never started, so neither its handlers nor its finally ran
        self._settle(job, error=QueueClosedError("Job cancelled during shutdown"))
        self._release_slot(job)

    def _settle(self, job: Job, result: Any = None, error: Optional[BaseException] = None) -> bool:
        """
        Record a job's outcome and resolve its future.

        Returns:
            False if the job had already been settled (the call is ignored)
        """
        if job.is_settled:
            logger.debug(f"Ignoring second settlement of {job.job_id}")
            return False

        job.completed_at = datetime.utcnow()
        if error is None:
            job.status = JobStatus.COMPLETED
            self._stats["completed"] += 1
            if not job.future.done():
                job.future.set_result(result)
        else:
            job.status = JobStatus.FAILED
            job.error = str(error)
            self._stats["failed"] += 1
            if not job.future.done():
                job.future.set_exception(error)
        return True

    def _expire(self, job: Job) -> None:
        """Timer callback: fail a job that is still waiting for a slot."""
        job.timeout_handle = None
        if job.status != JobStatus.PENDING:
            return
        try:
            self._pending.remove(job)
        except ValueError:
            return

        waited = (datetime.utcnow() - job.enqueued_at).total_seconds()
        logger.warning(f"{job.job_id} expired after {waited:.1f}s in queue")
        self._stats["expired"] += 1
        self._settle(job, error=QueueTimeoutError(job.job_id, waited))
        self._update_idle()

    def _on_future_done(self, job: Job, future: asyncio.Future) -> None:
        """Drop a queued job whose submitter cancelled the future."""
        if not future.cancelled() or job.status != JobStatus.PENDING:
            return
        try:
            self._pending.remove(job)
        except ValueError:
            return
        self._cancel_timer(job)
        job.status = JobStatus.CANCELLED
        job.completed_at = datetime.utcnow()
        self._stats["cancelled"] += 1
        logger.debug(f"{job.job_id} cancelled by submitter while queued")
        self._update_idle()

    @staticmethod
    def _cancel_timer(job: Job) -> None:
        if job.timeout_handle is not None:
            job.timeout_handle.cancel()
            job.timeout_handle = None

    def _update_idle(self) -> None:
        if self._active == 0 and not self._pending:
            self._idle.set()
        else:
            self._idle.clear()
