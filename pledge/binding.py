"""`then` and `rescue`: promises derived from the outcome of another."""
from typing import Any, Callable, Optional, Tuple

from .deferred import Deferred
from .errors import handler_failure
from .log import get_logger
from .promise import Promise

logger = get_logger(__name__)

# Share of a derived promise's progress owned by its upstream; the rest
# belongs to the promise the handler returns.
UPSTREAM_WEIGHT = 0.5


def run_handler(
    handler: Callable[[Any], Any],
    arg: Any,
    deferred: Deferred,
    offset: float,
    scale: float,
    on_value: Callable[[Any], Any],
) -> Tuple[bool, Any]:
    """Run a bind handler, returning `(True, value)` for an immediate value.

    An already fulfilled promise counts as an immediate value. A pending
    promise is followed: its progress is mapped onto
    `offset + scale * progress` and its value later goes to `on_value`.
    A returned exception fails the deferred as is, a raised one fails it
    wrapped as a handler failure. In those cases `(False, None)` is
    returned.
    """
    try:
        result = handler(arg)
    except Exception as exc:
        logger.debug("Handler %r raised %r", handler, exc)
        deferred.try_fail(handler_failure(exc))
        return False, None

    if isinstance(result, Promise):
        if result.is_fulfilled:
            return True, result.value
        deferred.promise._retain(result)
        result.on_progress(lambda progress: deferred.progress(offset + scale * progress))
        deferred.progress(offset + scale * result.progress)
        result.on_fulfilled(on_value)
        result.on_failed(deferred.try_fail)
        return False, None
    if isinstance(result, Exception):
        deferred.try_fail(result)
        return False, None
    return True, result


def apply_handler(
    handler: Callable[[Any], Any],
    arg: Any,
    deferred: Deferred,
    offset: float,
    scale: float,
    on_value: Optional[Callable[[Any], Any]] = None,
) -> None:
    """Run a bind handler and route its outcome into `deferred`.

    A value, immediate or from a followed promise, goes to `on_value`,
    by default fulfilling the deferred.
    """
    if on_value is None:
        on_value = deferred.try_fulfil
    immediate, value = run_handler(handler, arg, deferred, offset, scale, on_value)
    if immediate:
        on_value(value)


def _follow_upstream(promise: Promise, deferred: Deferred) -> None:
    promise.on_progress(lambda progress: deferred.progress(UPSTREAM_WEIGHT * progress))
    deferred.progress(UPSTREAM_WEIGHT * promise.progress)


def bind_then(promise: Promise, handler: Callable[[Any], Any]) -> Promise:
    deferred = Deferred(promise)
    _follow_upstream(promise, deferred)
    promise.on_fulfilled(
        lambda value: apply_handler(handler, value, deferred, UPSTREAM_WEIGHT, 1.0 - UPSTREAM_WEIGHT))
    promise.on_failed(deferred.try_fail)
    return deferred.promise


def bind_rescue(promise: Promise, handler: Callable[[Any], Any]) -> Promise:
    deferred = Deferred(promise)
    _follow_upstream(promise, deferred)
    promise.on_fulfilled(deferred.try_fulfil)
    promise.on_failed(
        lambda error: apply_handler(handler, error, deferred, UPSTREAM_WEIGHT, 1.0 - UPSTREAM_WEIGHT))
    return deferred.promise
