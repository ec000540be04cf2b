"""
Browser Pool

Keeps a bounded set of warm browsers so that requests do not pay the
Chromium start-up cost. Handles the browser lifecycle: create, check out,
check in, retire, shut down.

Rules:
- Idle browsers are reused last-in-first-out, which keeps a few browsers
  hot and lets the rest age out.
- At most one browser is being created at any time. Callers that find the
  pool empty while a creation is running share it instead of starting their
  own; the new browser goes to the oldest waiter and the others get the next
  browser that comes back.
- A browser is retired when it disconnects, when it has served
  max_usage renders, or when the idle list is already full.
- A browser is either idle in the pool or checked out to exactly one caller.

Usage:
    pool = BrowserPool(launcher, max_idle=3, max_usage=100)

    async with pool.checkout() as resource:
        pdf = await resource.handle.render(html)

    await pool.close_all()
"""

import asyncio
import logging
from collections import deque
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Awaitable, Callable, Deque, Dict, List, Optional, Set

from ..errors import CreationError, PoolClosedError, ResourceDisconnectedError
from ..renderer import RenderEngine
from .models import PooledResource, ResourceState

logger = logging.getLogger(__name__)

ResourceFactory = Callable[[], Awaitable[RenderEngine]]


class BrowserPool:
    """
    Pool of reusable rendering engines.

    All bookkeeping (idle list, waiter list, in-flight creation marker) is
    touched only from acquire/release/close_all and the creation task, all
    running on one event loop, so no lock is needed.
    """

    def __init__(self, factory: ResourceFactory, max_idle: int = 3, max_usage: int = 100):
        """
        Initialize browser pool.

        Args:
            factory: Async callable that starts one new rendering engine
            max_idle: Maximum number of idle browsers kept in the pool
            max_usage: Checkouts after which a browser is retired
        """
        if max_idle < 1:
            raise ValueError("max_idle must be at least 1")
        if max_usage < 1:
            raise ValueError("max_usage must be at least 1")

        self.max_idle = max_idle
        self.max_usage = max_usage
        self._factory = factory

        self._idle: List[PooledResource] = []
        self._checked_out: Dict[int, PooledResource] = {}
        self._waiters: Deque[asyncio.Future] = deque()
        self._creating: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()
        self._closed = False

        self._next_id = 0
        self._created_count = 0
        self._retired_count = 0
        self._creation_failures = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def idle_count(self) -> int:
        return len(self._idle)

    @property
    def checked_out_count(self) -> int:
        return len(self._checked_out)

    @property
    def waiting_count(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    @property
    def created_count(self) -> int:
        """Browsers successfully created over the pool's lifetime."""
        return self._created_count

    @property
    def retired_count(self) -> int:
        return self._retired_count

    @property
    def is_creating(self) -> bool:
        return self._creating is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> Dict[str, Any]:
        """Get pool statistics for health reporting."""
        return {
            "idle": self.idle_count,
            "checked_out": self.checked_out_count,
            "waiting": self.waiting_count,
            "creating": self.is_creating,
            "created_total": self._created_count,
            "retired_total": self._retired_count,
            "creation_failures": self._creation_failures,
            "max_idle": self.max_idle,
            "max_usage": self.max_usage,
            "closed": self._closed,
        }

    # ------------------------------------------------------------------
    # Checkout / checkin
    # ------------------------------------------------------------------

    async def acquire(self) -> PooledResource:
        """
        Check out a browser for exclusive use.

        Returns:
            PooledResource in CHECKED_OUT state

        Raises:
            PoolClosedError: If the pool has been shut down
            CreationError: If the creation this caller waited on failed
        """
        if self._closed:
            raise PoolClosedError()

        if self._idle:
            resource = self._idle.pop()
            self._check_out(resource)
            logger.debug(
                f"Reusing browser {resource.resource_id} "
                f"(uses={resource.usage_count}, idle left={len(self._idle)})"
            )
            return resource

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)

        if self._creating is None:
            self._start_creation()
        else:
            logger.debug("Pool empty, sharing in-flight browser creation")

        try:
            return await waiter
        except asyncio.CancelledError:
            self._abandon(waiter)
            raise

    async def release(self, resource: Optional[PooledResource]) -> None:
        """
        Return a browser to the pool, or retire it.

        Never raises; close failures are logged and swallowed.

        Args:
            resource: Resource previously returned by acquire()
        """
        if resource is None:
            return

        if self._checked_out.get(resource.resource_id) is not resource:
            logger.warning(
                f"Ignoring release of browser {resource.resource_id} "
                f"that is not checked out (state={resource.state.value})"
            )
            return
        del self._checked_out[resource.resource_id]
        resource.last_used_at = datetime.utcnow()

        if not resource.is_connected:
            logger.warning(f"{ResourceDisconnectedError(resource.resource_id)}, discarding")
            self._retire(resource)
            self._replenish()
            return

        resource.usage_count += 1

        if resource.usage_count >= self.max_usage:
            logger.info(
                f"Browser {resource.resource_id} reached {resource.usage_count} uses, retiring"
            )
            self._retire(resource)
            self._replenish()
            await self._dispose(resource)
            return

        surplus = self._place(resource)
        if surplus is not None:
            logger.debug(f"Idle list full, closing browser {surplus.resource_id}")
            await self._dispose(surplus)

    @asynccontextmanager
    async def checkout(self) -> AsyncIterator[PooledResource]:
        """Acquire a browser for the duration of the block; release on every exit path."""
        resource = await self.acquire()
        try:
            yield resource
        finally:
            await self.release(resource)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def close_all(self) -> None:
        """
        Close every idle browser and stop the pool from growing.

        Safe to call more than once. Browsers still checked out are closed
        when they are released.
        """
        first_close = not self._closed
        self._closed = True
        self._fail_waiters(PoolClosedError())

        creating = self._creating
        if creating is not None:
            creating.cancel()
            await asyncio.wait({creating})

        idle, self._idle = self._idle, []
        for resource in idle:
            self._retire(resource)

        if first_close or idle:
            logger.info(
                f"Closing {len(idle)} idle browsers "
                f"({len(self._checked_out)} still checked out)"
            )

        await asyncio.gather(*(self._dispose(resource) for resource in idle))

        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_out(self, resource: PooledResource) -> None:
        resource.state = ResourceState.CHECKED_OUT
        self._checked_out[resource.resource_id] = resource

    def _retire(self, resource: PooledResource) -> None:
        if resource.state != ResourceState.RETIRED:
            resource.state = ResourceState.RETIRED
            self._retired_count += 1

    def _place(self, resource: PooledResource) -> Optional[PooledResource]:
        """
        Hand a free browser to the oldest waiter, or park it in the idle list.

        Returns:
            The resource if it has nowhere to go and must be closed, else None
        """
        while self._waiters:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            self._check_out(resource)
            waiter.set_result(resource)
            return None

        if self._closed or len(self._idle) >= self.max_idle:
            self._retire(resource)
            return resource

        resource.state = ResourceState.IDLE
        self._idle.append(resource)
        return None

    def _start_creation(self) -> None:
        self._creating = asyncio.get_running_loop().create_task(self._create())

    def _replenish(self) -> None:
        """Start a replacement creation if callers are waiting and nothing is on the way."""
        if self._closed or self._creating is not None:
            return
        while self._waiters and self._waiters[0].done():
            self._waiters.popleft()
        if self._waiters:
            logger.debug("Starting replacement browser for waiting callers")
            self._start_creation()

    async def _create(self) -> None:
        try:
            handle = await self._factory()
        except asyncio.CancelledError:
            self._creating = None
            raise
        except Exception as e:
            self._creating = None
            self._creation_failures += 1
            logger.error(f"Failed to launch browser: {e}")
            error = CreationError(f"Failed to launch browser: {e}")
            error.__cause__ = e
            self._fail_waiters(error)
            return

        self._creating = None
        self._next_id += 1
        self._created_count += 1
        resource = PooledResource(resource_id=self._next_id, handle=handle)
        logger.info(f"Launched browser {resource.resource_id} (total created={self._created_count})")

        surplus = self._place(resource)
        if surplus is not None:
            await self._dispose(surplus)

    def _fail_waiters(self, error: Exception) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_exception(error)

    def _abandon(self, waiter: asyncio.Future) -> None:
        """Clean up after an acquire() that was cancelled while waiting."""
        try:
            self._waiters.remove(waiter)
        except ValueError:
            pass

        if waiter.done() and not waiter.cancelled() and waiter.exception() is None:
            # Handed a browser just before the cancellation landed
            resource = waiter.result()
            self._checked_out.pop(resource.resource_id, None)
            surplus = self._place(resource)
            if surplus is not None:
                task = asyncio.get_running_loop().create_task(self._dispose(surplus))
                self._background.add(task)
                task.add_done_callback(self._background.discard)

    async def _dispose(self, resource: PooledResource) -> None:
        self._retire(resource)
        try:
            await resource.handle.dispose()
        except Exception as e:
            logger.warning(f"Failed to close browser {resource.resource_id}: {e}")
