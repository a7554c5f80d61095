"""N-ary promise combinators with aggregated progress."""
import threading
from functools import partial
from typing import Any, Callable, Iterable, List, Sequence

from .binding import run_handler
from .deferred import Deferred
from .errors import ErrorCode, PromiseError
from .promise import Promise


def chain(handlers: Sequence[Callable[[Any], Any]], initial: Any = None) -> Promise:
    """Fold `then` over `handlers`, starting from `initial`.

    Each of the n steps owns 1/n of the progress: after step k fulfils
    the chain reports k/n, and a promise returned by step k moves the
    chain between (k-1)/n and k/n. The first failure ends the chain.
    """
    handlers = list(handlers)
    count = len(handlers)
    if not count:
        return Promise.fulfilled(initial)

    deferred = Deferred()
    share = 1.0 / count

    def step(index, value):
        # loop over immediate values; only a pending promise re-enters
        while index < count:
            if index:
                deferred.progress(index * share)
            immediate, value = run_handler(handlers[index], value, deferred, index * share, share,
                                           on_value=partial(step, index + 1))
            if not immediate:
                return
            index += 1
        deferred.try_fulfil(value)

    step(0, initial)
    return deferred.promise


def any_of(promises: Iterable[Promise]) -> Promise:
    """Race `promises` for the first fulfilment.

    Fails with the error of the last input to fail once every input has
    failed. Progress follows the most advanced input.
    """
    promises = list(promises)
    if not promises:
        return Promise.failed(PromiseError(ErrorCode.NO_INPUTS, "any() of no promises"))

    deferred = Deferred(*promises)
    lock = threading.Lock()
    remaining = len(promises)

    def failed(error):
        nonlocal remaining
        with lock:
            remaining -= 1
            exhausted = remaining == 0
        if exhausted:
            deferred.try_fail(error)

    for promise in promises:
        promise.on_progress(deferred.progress)
        deferred.progress(promise.progress)
        promise.on_fulfilled(deferred.try_fulfil)
        promise.on_failed(failed)
    return deferred.promise


def all_of(promises: Iterable[Promise]) -> Promise:
    """Wait for every promise and fulfil with their values in input order.

    The first failing input fails the result. Progress is the mean of the
    inputs' progresses.
    """
    promises = list(promises)
    if not promises:
        return Promise.fulfilled([])

    deferred = Deferred(*promises)
    lock = threading.Lock()
    count = len(promises)
    values: List[Any] = [None] * count
    progresses = [0.0] * count
    remaining = count

    def progressed(index, progress):
        with lock:
            progresses[index] = max(progresses[index], progress)
            mean = sum(progresses) / count
        deferred.progress(mean)

    def fulfilled(index, value):
        nonlocal remaining
        with lock:
            values[index] = value
            progresses[index] = 1.0
            remaining -= 1
            done = remaining == 0
            mean = sum(progresses) / count
        if done:
            deferred.try_fulfil(list(values))
        else:
            deferred.progress(mean)

    for index, promise in enumerate(promises):
        promise.on_progress(partial(progressed, index))
        progressed(index, promise.progress)
        promise.on_fulfilled(partial(fulfilled, index))
        promise.on_failed(deferred.try_fail)
    return deferred.promise
