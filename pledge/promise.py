"""Promise handle: state, outcome, progress and callback registration."""
import math
import threading
from enum import Enum
from typing import Any, Callable, Generic, Iterable, Optional, Sequence, TypeVar

from .callbacks import CallbackRegistry, call_handler

T = TypeVar('T')


class State(Enum):
    """Observable states of a promise. Only PENDING is non-terminal."""
    PENDING = 0
    FAILED = 1
    FULFILLED = 2


def _clamp(progress: float) -> float:
    return min(1.0, max(0.0, float(progress)))


class Promise(Generic[T]):
    """Read side of an asynchronous outcome.

    A promise is pending, fulfilled with a value, or failed with an
    error, and carries a progress estimate in [0, 1] that only grows.
    It is settled through its `Deferred`; clients only register handlers
    and derive new promises from it.

    Handlers registered on a settled promise run synchronously, before
    the registering call returns. Handlers registered on a pending
    promise run on whichever thread settles it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state = State.PENDING
        self._value: Optional[T] = None
        self._error: Any = None
        self._progress = 0.0
        self._callbacks = CallbackRegistry()
        # upstream promises this one is derived from; released at settle
        self._sources = []

    # -- current state -----------------------------------------------------

    @property
    def state(self) -> State:
        return self._state

    @property
    def value(self) -> Optional[T]:
        """The result, if the promise has been fulfilled."""
        return self._value

    @property
    def error(self) -> Any:
        """The failure reason, if the promise has failed."""
        return self._error

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def is_pending(self) -> bool:
        return self._state is State.PENDING

    @property
    def is_fulfilled(self) -> bool:
        return self._state is State.FULFILLED

    @property
    def is_failed(self) -> bool:
        return self._state is State.FAILED

    # -- terminal constructors ---------------------------------------------

    @classmethod
    def fulfilled(cls, value: T) -> 'Promise[T]':
        """Create a promise already fulfilled with `value`."""
        promise = cls()
        promise._state = State.FULFILLED
        promise._value = value
        promise._progress = 1.0
        return promise

    @classmethod
    def failed(cls, error: Any) -> 'Promise[T]':
        """Create a promise already failed with `error`."""
        promise = cls()
        promise._state = State.FAILED
        promise._error = error
        return promise

    @staticmethod
    def fulfilled_after(value: T, delay: float, scheduler=None) -> 'Promise[T]':
        """Create a promise fulfilled with `value` once `delay` seconds pass."""
        from .deferred import settle_later
        return settle_later(True, value, delay, scheduler)

    @staticmethod
    def failed_after(error: Any, delay: float, scheduler=None) -> 'Promise[T]':
        """Create a promise failing with `error` once `delay` seconds pass."""
        from .deferred import settle_later
        return settle_later(False, error, delay, scheduler)

    # -- callbacks ---------------------------------------------------------

    def on_fulfilled(self, handler: Callable[[T], Any]) -> 'Promise[T]':
        """Call `handler` with the value once the promise is fulfilled."""
        with self._lock:
            if self._state is State.PENDING:
                self._callbacks.fulfilled.append(handler)
                return self
            fire = self._state is State.FULFILLED
        if fire:
            call_handler(handler, self._value)
        return self

    def on_failed(self, handler: Callable[[Any], Any]) -> 'Promise[T]':
        """Call `handler` with the error once the promise fails."""
        with self._lock:
            if self._state is State.PENDING:
                self._callbacks.failed.append(handler)
                return self
            fire = self._state is State.FAILED
        if fire:
            call_handler(handler, self._error)
        return self

    def on_progress(self, handler: Callable[[float], Any]) -> 'Promise[T]':
        """Call `handler` with every progress increase.

        On an already fulfilled promise the handler is called once with 1.0.
        """
        with self._lock:
            if self._state is State.PENDING:
                self._callbacks.progressed.append(handler)
                return self
            fire = self._state is State.FULFILLED
        if fire:
            call_handler(handler, self._progress)
        return self

    # -- bind --------------------------------------------------------------

    def then(self, handler: Callable[[T], Any]) -> 'Promise':
        """Derive a promise from the value of this one.

        `handler` may return a plain value or another promise; the result
        follows it. Failures skip the handler and pass through unchanged.
        """
        from .binding import bind_then
        return bind_then(self, handler)

    def rescue(self, handler: Callable[[Any], Any]) -> 'Promise':
        """Derive a promise recovering from the error of this one."""
        from .binding import bind_rescue
        return bind_rescue(self, handler)

    # -- combinators -------------------------------------------------------

    @staticmethod
    def chain(handlers: Sequence[Callable[[Any], Any]], initial: Any = None) -> 'Promise':
        """Run `then` handlers in sequence, each weighing equally in progress."""
        from .combinators import chain
        return chain(handlers, initial)

    @staticmethod
    def any(promises: Iterable['Promise']) -> 'Promise':
        """Fulfil with the first input to fulfil; fail once all inputs failed."""
        from .combinators import any_of
        return any_of(promises)

    @staticmethod
    def all(promises: Iterable['Promise']) -> 'Promise':
        """Fulfil with every input's value, in input order; fail on the first failure."""
        from .combinators import all_of
        return all_of(promises)

    # -- transitions, driven by Deferred -----------------------------------

    def _retain(self, source: 'Promise') -> None:
        with self._lock:
            if self._state is State.PENDING:
                self._sources.append(source)

    def _fulfil(self, value: T) -> bool:
        with self._lock:
            if self._state is not State.PENDING:
                return False
            self._state = State.FULFILLED
            self._value = value
            publish = self._progress < 1.0
            self._progress = 1.0
            fulfilled, _, progressed = self._callbacks.drain()
            self._sources = []
        if publish:
            for handler in progressed:
                call_handler(handler, 1.0)
        for handler in fulfilled:
            call_handler(handler, value)
        return True

    def _fail(self, error: Any) -> bool:
        with self._lock:
            if self._state is not State.PENDING:
                return False
            self._state = State.FAILED
            self._error = error
            _, failed, _ = self._callbacks.drain()
            self._sources = []
        for handler in failed:
            call_handler(handler, error)
        return True

    def _notify(self, progress: float) -> bool:
        if math.isnan(progress):
            return False
        progress = _clamp(progress)
        with self._lock:
            if self._state is not State.PENDING or progress <= self._progress:
                return False
            self._progress = progress
            handlers = self._callbacks.progress_snapshot()
        for handler in handlers:
            # superseded by a later update or by settling; read without the
            # lock, a stale read only delays the cut by one handler
            if self._progress != progress or self._state is not State.PENDING:
                break
            call_handler(handler, progress)
        return True

    # -- python protocols --------------------------------------------------

    def __await__(self):
        from .futures import to_future
        return to_future(self).__await__()

    def __repr__(self):
        if self._state is State.PENDING:
            v = f'(pending {self._progress:.0%})'
        elif self._state is State.FAILED:
            v = repr(self._error) + ' (failed)'
        else:
            v = repr(self._value)
        return f'<{self.__class__.__name__} {v}>'
