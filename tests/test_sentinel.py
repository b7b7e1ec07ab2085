import threading
import time
from concurrent.futures import CancelledError

from dbsqlkit.sentinel import CancellationToken, Sentinel, WatchResult, WatchStatus


def _counter():
    return {"status": 0, "cancel": 0}


def _never_done(calls):
    def status_fn():
        calls["status"] += 1
        return (lambda: False), None

    return status_fn


def _counting_cancel(calls):
    def on_cancel():
        calls["cancel"] += 1

    return on_cancel


def _cancel_later(token, seconds):
    timer = threading.Timer(seconds, token.cancel)
    timer.daemon = True
    timer.start()
    return timer


def test_watch_status_names():
    success = Sentinel(status_fn=lambda: ((lambda: True), None)).watch(CancellationToken(), 0.01, 0)
    assert str(success.status) == "SUCCESS"

    def failing():
        raise RuntimeError("failed")

    error = Sentinel(status_fn=failing).watch(CancellationToken(), 0.01, 0)
    assert str(error.status) == "ERROR"

    timeout = Sentinel(status_fn=_never_done(_counter())).watch(CancellationToken(), 0.01, 0.05)
    assert str(timeout.status) == "TIMEOUT"

    token = CancellationToken()
    token.cancel()
    canceled = Sentinel(status_fn=_never_done(_counter())).watch(token, 0.01, 1)
    assert str(canceled.status) == "CANCELED"


def test_token_cancel():
    token = CancellationToken()
    assert not token.cancelled
    token.cancel()
    assert token.cancelled
    assert isinstance(token.error, CancelledError)


def test_token_deadline():
    token = CancellationToken.with_timeout(0.02)
    time.sleep(0.05)
    assert token.cancelled
    assert isinstance(token.error, TimeoutError)
    assert token.remaining() == 0.0


def test_returns_immediately():
    calls = _counter()

    def status_fn():
        calls["status"] += 1
        return (lambda: True), "completed"

    result = Sentinel(status_fn=status_fn).watch(CancellationToken(), 0, 0)
    assert result == WatchResult(WatchStatus.SUCCESS, "completed", None)
    assert calls["status"] == 1


def test_long_done_check():
    calls = _counter()

    def status_fn():
        calls["status"] += 1

        def done():
            time.sleep(0.3)
            return True

        return done, None

    result = Sentinel(status_fn=status_fn).watch(CancellationToken(), 0.05, 0)
    assert result.status == WatchStatus.SUCCESS
    assert result.value is None
    assert result.error is None
    assert calls["status"] == 1


def test_timeout():
    calls = _counter()
    result = Sentinel(status_fn=_never_done(calls)).watch(CancellationToken(), 0.1, 0.5)
    assert result.status == WatchStatus.TIMEOUT
    assert result.value is None
    assert calls["status"] > 1
    assert isinstance(result.error, TimeoutError)


def test_cancel_with_token_deadline():
    calls = _counter()
    token = CancellationToken.with_timeout(0.1)
    result = Sentinel(status_fn=_never_done(calls)).watch(token, 0, 1)
    assert result.status == WatchStatus.CANCELED
    assert result.value is None
    assert isinstance(result.error, TimeoutError)


def test_timeout_calls_cancel_fn():
    calls = _counter()
    sentinel = Sentinel(status_fn=_never_done(calls), on_cancel_fn=_counting_cancel(calls))
    result = sentinel.watch(CancellationToken(), 0, 0.1)
    assert result.status == WatchStatus.TIMEOUT
    assert calls["cancel"] == 1
    assert result.value is None
    assert result.error is not None


def test_cancel_while_polling():
    calls = _counter()
    token = CancellationToken()
    _cancel_later(token, 0.1)
    result = Sentinel(status_fn=_never_done(calls)).watch(token, 0.01, 15)
    assert result.status == WatchStatus.CANCELED
    assert result.value is None
    assert calls["status"] > 1
    assert isinstance(result.error, CancelledError)


def test_already_cancelled_token():
    calls = _counter()
    token = CancellationToken()
    token.cancel()
    result = Sentinel(status_fn=_never_done(calls)).watch(token, 0, 15)
    assert result.status == WatchStatus.CANCELED
    assert result.value is None
    assert isinstance(result.error, CancelledError)


def test_cancel_fn_called_on_cancellation_while_polling():
    calls = _counter()
    token = CancellationToken()
    _cancel_later(token, 0.1)
    sentinel = Sentinel(status_fn=_never_done(calls), on_cancel_fn=_counting_cancel(calls))
    result = sentinel.watch(token, 0, 15)
    assert result.status == WatchStatus.CANCELED
    assert calls["cancel"] == 1
    assert result.value is None
    assert isinstance(result.error, CancelledError)


def test_deadline_with_slow_cancel_fn():
    calls = _counter()

    def status_fn():
        calls["status"] += 1
        time.sleep(0.3)
        return (lambda: False), None

    def on_cancel():
        calls["cancel"] += 1
        time.sleep(0.1)

    token = CancellationToken.with_timeout(0.05)
    result = Sentinel(status_fn=status_fn, on_cancel_fn=on_cancel).watch(token, 0, 0.2)
    assert result.status == WatchStatus.CANCELED
    assert calls["cancel"] == 1
    assert result.value is None
    assert isinstance(result.error, TimeoutError)


def test_on_done_fn_called_when_done():
    calls = _counter()

    def status_fn():
        calls["status"] += 1
        return (lambda: True), "completed"

    sentinel = Sentinel(
        status_fn=status_fn,
        on_cancel_fn=_counting_cancel(calls),
        on_done_fn=lambda response: response,
    )
    result = sentinel.watch(CancellationToken(), 0, 0)
    assert result.status == WatchStatus.SUCCESS
    assert calls["cancel"] == 0
    assert calls["status"] == 1
    assert result.value == "completed"
    assert result.error is None


def test_on_done_fn_without_status_fn():
    def on_done(response):
        time.sleep(0.05)
        return "done"

    result = Sentinel(on_done_fn=on_done).watch(CancellationToken(), 0.1, 0)
    assert result.status == WatchStatus.SUCCESS
    assert result.value == "done"
    assert result.error is None


def test_on_done_fn_error():
    def on_done(response):
        raise RuntimeError("failed")

    result = Sentinel(on_done_fn=on_done).watch(CancellationToken(), 0.1, 0)
    assert result.status == WatchStatus.ERROR
    assert result.value is None
    assert "failed" in str(result.error)


def test_status_fn_error():
    calls = _counter()

    def status_fn():
        calls["status"] += 1
        raise RuntimeError("failed")

    sentinel = Sentinel(
        status_fn=status_fn,
        on_cancel_fn=_counting_cancel(calls),
        on_done_fn=lambda response: response,
    )
    result = sentinel.watch(CancellationToken(), 0, 0)
    assert result.status == WatchStatus.ERROR
    assert calls["status"] == 1
    assert result.value is None
    assert "failed" in str(result.error)


def test_watch_without_token():
    result = Sentinel(status_fn=lambda: ((lambda: True), "ok")).watch(interval=0.01)
    assert result == WatchResult(WatchStatus.SUCCESS, "ok", None)