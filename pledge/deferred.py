"""Write side of a promise."""
import weakref
from typing import Any, Generic, TypeVar

from . import config
from .log import get_logger
from .promise import Promise

T = TypeVar('T')

logger = get_logger(__name__)


class Deferred(Generic[T]):
    """The unique producer of one promise.

    Whoever runs the workload keeps the deferred and hands out
    `deferred.promise`. The promise is settled at most once; later
    attempts are ignored (or raise AssertionError in strict mode).

    Promises passed as `sources` are kept alive as long as the promise
    stays pending.
    """

    __slots__ = ('promise',)

    def __init__(self, *sources: Promise):
        self.promise: Promise[T] = Promise()
        for source in sources:
            self.promise._retain(source)

    def fulfil(self, value: T) -> bool:
        """Fulfil the promise with `value`."""
        if self.promise._fulfil(value):
            return True
        _illegal('fulfil', self.promise)
        return False

    def fail(self, error: Any) -> bool:
        """Fail the promise with `error`."""
        if self.promise._fail(error):
            return True
        _illegal('fail', self.promise)
        return False

    def progress(self, progress: float) -> bool:
        """Publish a progress increase; lower values and late updates are ignored."""
        return self.promise._notify(progress)

    def try_fulfil(self, value: T) -> bool:
        """Fulfil the promise unless it already settled, without complaint."""
        return self.promise._fulfil(value)

    def try_fail(self, error: Any) -> bool:
        """Fail the promise unless it already settled, without complaint."""
        return self.promise._fail(error)

    def __repr__(self):
        return f'<Deferred {self.promise!r}>'


def _illegal(action: str, promise: Promise) -> None:
    if config.is_strict():
        raise AssertionError(f"cannot {action} {promise!r}: already settled")
    logger.debug("Ignoring %s on settled %r", action, promise)


def settle_later(fulfil: bool, payload: Any, delay: float, scheduler=None) -> Promise:
    """Create a pending promise a scheduler settles after `delay` seconds.

    The scheduled work only holds a weak reference to the promise, so it
    does nothing once every client has dropped it.
    """
    if scheduler is None:
        scheduler = config.get_default_scheduler()
    promise = Promise()
    ref = weakref.ref(promise)

    def work():
        target = ref()
        if target is None:
            logger.debug("Delayed promise was collected before its deadline")
            return
        if fulfil:
            target._fulfil(payload)
        else:
            target._fail(payload)

    scheduler.schedule(max(0.0, delay), work)
    return promise
