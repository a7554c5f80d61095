import pytest

from pledge import Deferred, ErrorCode, Promise, PromiseError, State


class WorkloadError(Exception):
    pass


def outcome(promise):
    return promise.state, promise.value, promise.error


def test_then_on_fulfilled_values():
    p = Promise.fulfilled(42).then(lambda v: v + 1).then(lambda v: v * 2)
    assert p.state is State.FULFILLED
    assert p.value == 86
    assert p.progress == 1.0


def test_then_skips_handler_on_failure():
    calls = []
    error = WorkloadError()
    p = Promise.failed(error).then(calls.append)
    assert calls == []
    assert p.state is State.FAILED
    assert p.error is error


def test_then_follows_returned_promise():
    inner = Deferred()
    d = Deferred()
    p = d.promise.then(lambda v: inner.promise)
    d.fulfil(1)
    assert p.is_pending
    inner.fulfil("inner")
    assert p.value == "inner"


def test_then_follows_returned_failed_promise():
    error = WorkloadError()
    p = Promise.fulfilled(1).then(lambda v: Promise.failed(error))
    assert p.error is error


def test_then_wraps_raised_errors():
    def handler(value):
        raise KeyError(value)

    p = Promise.fulfilled("k").then(handler)
    assert p.state is State.FAILED
    assert isinstance(p.error, PromiseError)
    assert p.error.code == ErrorCode.HANDLER_FAILED
    assert p.error.domain == "pledge"
    assert isinstance(p.error.__cause__, KeyError)


def test_then_returned_exception_fails_verbatim():
    error = WorkloadError("returned")
    p = Promise.fulfilled(1).then(lambda v: error)
    assert p.error is error


def test_then_progress_stages():
    upstream = Deferred()
    inner = Deferred()
    seen = []
    p = upstream.promise.then(lambda v: inner.promise)
    p.on_progress(seen.append)

    upstream.progress(0.5)
    assert p.progress == pytest.approx(0.25)
    upstream.fulfil(None)
    assert p.progress == pytest.approx(0.5)
    inner.progress(0.5)
    assert p.progress == pytest.approx(0.75)
    inner.fulfil(None)
    assert p.progress == 1.0
    assert seen == pytest.approx([0.25, 0.5, 0.75, 1.0])


def test_then_plain_value_jumps_to_full_progress():
    upstream = Deferred()
    p = upstream.promise.then(lambda v: v)
    upstream.progress(0.2)
    assert p.progress == pytest.approx(0.1)
    upstream.fulfil(5)
    assert p.progress == 1.0


def test_rescue_recovers():
    p = Promise.failed(WorkloadError()).rescue(lambda e: 7)
    assert p.state is State.FULFILLED
    assert p.value == 7
    assert p.progress == 1.0


def test_rescue_skipped_on_fulfilment():
    calls = []
    p = Promise.fulfilled(3).rescue(calls.append)
    assert calls == []
    assert p.value == 3


def test_rescue_receives_error():
    error = WorkloadError()
    seen = []
    Promise.failed(error).rescue(seen.append)
    assert seen == [error]


def test_rescue_handler_failure():
    def handler(error):
        raise RuntimeError("still broken")

    p = Promise.failed(WorkloadError()).rescue(handler)
    assert p.error.code == ErrorCode.HANDLER_FAILED
    assert isinstance(p.error.__cause__, RuntimeError)


def test_rescue_progress_stages():
    upstream = Deferred()
    inner = Deferred()
    p = upstream.promise.rescue(lambda e: inner.promise)
    upstream.progress(0.4)
    assert p.progress == pytest.approx(0.2)
    upstream.fail(WorkloadError())
    assert p.progress == pytest.approx(0.2)
    inner.progress(0.6)
    assert p.progress == pytest.approx(0.8)
    inner.fulfil("ok")
    assert p.value == "ok"
    assert p.progress == 1.0


def test_rescue_progress_on_fulfilment():
    upstream = Deferred()
    p = upstream.promise.rescue(lambda e: None)
    upstream.progress(0.4)
    upstream.fulfil(1)
    assert p.progress == 1.0


def test_error_passes_through_chain_until_rescued():
    error = WorkloadError()
    calls = []
    p = (Promise.failed(error)
         .then(calls.append)
         .then(calls.append)
         .rescue(lambda e: e))
    assert calls == []
    # a handler returning an exception fails with it
    assert p.error is error


def test_derived_promise_keeps_upstream_alive():
    d = Deferred()
    p = d.promise.then(lambda v: v * 10)
    assert p._sources == [d.promise]
    d.fulfil(2)
    assert p.value == 20
    assert p._sources == []


def test_left_identity():
    def h(v):
        return Promise.fulfilled(v * 3)

    assert outcome(Promise.fulfilled(2).then(h)) == outcome(h(2))


def test_right_identity():
    d = Deferred()
    p = d.promise.then(Promise.fulfilled)
    d.fulfil("x")
    assert outcome(p) == outcome(d.promise)

    error = WorkloadError()
    assert outcome(Promise.failed(error).then(Promise.fulfilled)) == outcome(Promise.failed(error))


def test_associativity():
    def f(v):
        return Promise.fulfilled(v + 1)

    def g(v):
        return v * 5

    d1, d2 = Deferred(), Deferred()
    left = d1.promise.then(f).then(g)
    right = d2.promise.then(lambda v: f(v).then(g))
    d1.fulfil(4)
    d2.fulfil(4)
    assert outcome(left) == outcome(right) == (State.FULFILLED, 25, None)


def test_then_starts_from_upstream_progress():
    upstream = Deferred()
    upstream.progress(0.6)
    p = upstream.promise.then(lambda v: v)
    assert p.progress == pytest.approx(0.3)


def test_rescue_starts_from_upstream_progress():
    upstream = Deferred()
    upstream.progress(0.4)
    p = upstream.promise.rescue(lambda e: None)
    assert p.progress == pytest.approx(0.2)


def test_then_starts_from_returned_promise_progress():
    inner = Deferred()
    inner.progress(0.4)
    p = Promise.fulfilled(1).then(lambda v: inner.promise)
    assert p.progress == pytest.approx(0.7)
    inner.fulfil("done")
    assert p.value == "done"


def test_rescue_starts_from_returned_promise_progress():
    inner = Deferred()
    inner.progress(0.2)
    p = Promise.failed(WorkloadError()).rescue(lambda e: inner.promise)
    assert p.progress == pytest.approx(0.6)


def test_long_then_pipeline():
    p = Promise.fulfilled(0)
    for _ in range(1000):
        p = p.then(lambda v: v + 1)
    assert p.value == 1000
