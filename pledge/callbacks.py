"""Ordered handler lists attached to a promise."""
from typing import Any, Callable, List, Tuple

from .log import get_logger

logger = get_logger(__name__)

Handler = Callable[[Any], Any]


def call_handler(handler: Handler, arg: Any) -> None:
    """Call an observer handler, logging instead of propagating its failure."""
    try:
        handler(arg)
    except Exception:
        logger.exception("Promise handler %r raised", handler)


class CallbackRegistry:
    """Fulfilled, failed and progress handlers of one promise.

    The registry is not locked by itself; the owning promise guards it
    with its own lock.
    """

    __slots__ = ('fulfilled', 'failed', 'progressed')

    def __init__(self):
        self.fulfilled: List[Handler] = []
        self.failed: List[Handler] = []
        self.progressed: List[Handler] = []

    def __len__(self):
        return len(self.fulfilled) + len(self.failed) + len(self.progressed)

    def progress_snapshot(self) -> Tuple[Handler, ...]:
        return tuple(self.progressed)

    def drain(self) -> Tuple[Tuple[Handler, ...], Tuple[Handler, ...], Tuple[Handler, ...]]:
        """Take every handler out of the registry, leaving it empty."""
        drained = (tuple(self.fulfilled), tuple(self.failed), tuple(self.progressed))
        self.fulfilled.clear()
        self.failed.clear()
        self.progressed.clear()
        return drained
