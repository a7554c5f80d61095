"""Bridges between pledge promises, asyncio futures and blocking code."""
import asyncio
import threading
from typing import Any, Optional

from .deferred import Deferred
from .errors import ErrorCode, PromiseError
from .promise import Promise


def _as_exception(error: Any) -> BaseException:
    if isinstance(error, BaseException):
        return error
    return PromiseError(ErrorCode.FAILED, f"promise failed with {error!r}")


def to_future(promise: Promise, loop: Optional[asyncio.AbstractEventLoop] = None) -> asyncio.Future:
    """Get an asyncio future settled with the outcome of `promise`.

    The promise may settle on any thread; the future is completed on
    `loop` (the running loop by default).
    """
    if loop is None:
        loop = asyncio.get_running_loop()
    future = loop.create_future()

    def set_result(value):
        if not future.done():
            future.set_result(value)

    def set_exception(error):
        if not future.done():
            future.set_exception(_as_exception(error))

    promise.on_fulfilled(lambda value: loop.call_soon_threadsafe(set_result, value))
    promise.on_failed(lambda error: loop.call_soon_threadsafe(set_exception, error))
    return future


def from_future(future) -> Promise:
    """Get a promise settled when an asyncio or concurrent.futures future completes."""
    deferred = Deferred()

    def done(f):
        if f.cancelled():
            deferred.fail(asyncio.CancelledError())
        elif f.exception() is not None:
            deferred.fail(f.exception())
        else:
            deferred.fulfil(f.result())

    future.add_done_callback(done)
    return deferred.promise


def wait(promise: Promise, timeout: Optional[float] = None) -> Any:
    """Block until `promise` settles; return its value or raise its error.

    Raises TimeoutError if it is still pending after `timeout` seconds.
    """
    settled = threading.Event()
    promise.on_fulfilled(lambda _: settled.set())
    promise.on_failed(lambda _: settled.set())
    if not settled.wait(timeout):
        raise TimeoutError(f"{promise!r} still pending after {timeout}s")
    if promise.is_failed:
        raise _as_exception(promise.error)
    return promise.value
