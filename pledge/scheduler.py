"""Schedulers that run delayed work for pledge promises."""
import asyncio
import heapq
import itertools
import math
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

import anyio
from anyio.from_thread import start_blocking_portal

from .log import get_logger

logger = get_logger(__name__)

Thunk = Callable[[], None]


def run_thunk(thunk: Thunk) -> None:
    """Run one item of scheduled work, logging its failure."""
    try:
        thunk()
    except Exception:
        logger.exception("Scheduled work %r raised", thunk)


class Scheduler(ABC):
    """Runs a thunk once, after at least `delay` seconds."""

    @abstractmethod
    def schedule(self, delay: float, thunk: Thunk) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        """Discard pending work and release resources."""


class ThreadScheduler(Scheduler):
    """
    Runs work on a single background thread, ordered by deadline.
    The thread is launched lazily the first time work is scheduled.
    """

    def __init__(self, name: str = "pledge"):
        self.name = name
        self._alive = True
        self._queue: List[Tuple[float, int, Thunk]] = []
        self._counter = itertools.count()
        self._condition = threading.Condition()
        self._thread: Optional[threading.Thread] = None

    def schedule(self, delay: float, thunk: Thunk) -> None:
        deadline = time.monotonic() + max(0.0, delay)
        with self._condition:
            if not self._alive:
                raise RuntimeError(f"Scheduler {self.name} is stopped")
            heapq.heappush(self._queue, (deadline, next(self._counter), thunk))

            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._run,
                    name=f"{self.name}-Scheduler",
                    daemon=True
                )
                self._thread.start()

            # earliest deadline changed, wake the thread
            if self._queue[0][2] is thunk:
                self._condition.notify_all()

    def pending(self) -> int:
        with self._condition:
            return len(self._queue)

    def stop(self) -> None:
        with self._condition:
            self._alive = False
            dropped = len(self._queue)
            self._queue.clear()
            self._condition.notify_all()
        if dropped:
            logger.debug("Scheduler %s stopped with %d pending items", self.name, dropped)

    def _run(self) -> None:
        while True:
            with self._condition:
                while self._alive:
                    if not self._queue:
                        self._condition.wait()
                        continue
                    wait = self._queue[0][0] - time.monotonic()
                    if wait <= 0:
                        break
                    self._condition.wait(timeout=wait)
                if not self._alive:
                    return
                _, _, thunk = heapq.heappop(self._queue)

            # outside of the lock
            run_thunk(thunk)


class AsyncioScheduler(Scheduler):
    """Runs work on an asyncio event loop; may be called from any thread."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop or asyncio.get_running_loop()

    def schedule(self, delay: float, thunk: Thunk) -> None:
        self.loop.call_soon_threadsafe(self.loop.call_later, max(0.0, delay), run_thunk, thunk)


class PortalScheduler(Scheduler):
    """Runs work on an anyio event loop living in a background thread.

    Work items are sent through a memory object stream to a pump task,
    which sleeps each of them in its own task. Use as a context manager,
    or call `start()` and `stop()`.
    """

    def __init__(self, backend: str = "asyncio"):
        self.backend = backend
        self._lock = threading.Lock()
        self._portal_cm = None
        self._portal = None
        self._send = None
        self._loop_thread: Optional[int] = None

    def __enter__(self) -> 'PortalScheduler':
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.stop()

    @property
    def running(self) -> bool:
        return self._portal is not None

    def start(self) -> 'PortalScheduler':
        with self._lock:
            if self._portal is not None:
                return self
            send, receive = anyio.create_memory_object_stream(math.inf)
            portal_cm = start_blocking_portal(self.backend)
            portal = portal_cm.__enter__()
            try:
                _, loop_thread = portal.start_task(self._pump, receive)
            except BaseException:
                portal_cm.__exit__(None, None, None)
                raise
            self._portal_cm = portal_cm
            self._portal = portal
            self._send = send
            self._loop_thread = loop_thread
        return self

    def stop(self) -> None:
        with self._lock:
            portal_cm, portal = self._portal_cm, self._portal
            self._portal_cm = self._portal = self._send = None
            self._loop_thread = None
        if portal is None:
            return
        # cancel sleeping work instead of waiting for it
        portal.call(portal.stop, True)
        portal_cm.__exit__(None, None, None)

    def schedule(self, delay: float, thunk: Thunk) -> None:
        self.start()
        item = (max(0.0, delay), thunk)
        with self._lock:
            portal, send, loop_thread = self._portal, self._send, self._loop_thread
        if portal is None:
            raise RuntimeError("PortalScheduler is stopped")
        if threading.get_ident() == loop_thread:
            send.send_nowait(item)
        else:
            portal.call(send.send_nowait, item)

    async def _pump(self, receive, *, task_status=anyio.TASK_STATUS_IGNORED) -> None:
        async with anyio.create_task_group() as tg:
            task_status.started(threading.get_ident())
            async with receive:
                async for delay, thunk in receive:
                    tg.start_soon(self._run_later, delay, thunk)

    @staticmethod
    async def _run_later(delay: float, thunk: Thunk) -> None:
        await anyio.sleep(delay)
        run_thunk(thunk)


class ManualScheduler(Scheduler):
    """A virtual clock: work runs only when `advance()` moves time past its deadline."""

    def __init__(self):
        self.now = 0.0
        self._lock = threading.Lock()
        self._queue: List[Tuple[float, int, Thunk]] = []
        self._counter = itertools.count()

    def schedule(self, delay: float, thunk: Thunk) -> None:
        with self._lock:
            heapq.heappush(self._queue, (self.now + max(0.0, delay), next(self._counter), thunk))

    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def advance(self, seconds: float = 0.0) -> int:
        """Move the clock forward, running due work in deadline order. Returns the number run."""
        target = self.now + seconds
        ran = 0
        while True:
            with self._lock:
                if not self._queue or self._queue[0][0] > target:
                    break
                deadline, _, thunk = heapq.heappop(self._queue)
                self.now = max(self.now, deadline)
            run_thunk(thunk)
            ran += 1
        self.now = max(self.now, target)
        return ran

    def stop(self) -> None:
        with self._lock:
            self._queue.clear()
