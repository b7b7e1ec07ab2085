"""Poll the status of a long-running operation until it is done, times out or is cancelled."""

from __future__ import annotations

import threading
import time
from concurrent.futures import CancelledError
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .logger import get_logger

DEFAULT_TIMEOUT = 0.0  # no timeout
DEFAULT_INTERVAL = 0.1

Done = Callable[[], bool]
StatusFn = Callable[[], "tuple[Done, Any]"]


class WatchStatus(Enum):
    """How a watch ended."""

    SUCCESS = 0
    ERROR = 1
    EXECUTING = 2
    TIMEOUT = 3
    CANCELED = 4

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class WatchResult:
    """Status of a finished watch, with its value or the error that ended it."""

    status: WatchStatus
    value: Any = None
    error: Optional[BaseException] = None


class CancellationToken:
    """A cancellation signal that may also carry a deadline."""

    def __init__(self, deadline: Optional[float] = None) -> None:
        self._deadline = deadline
        self._lock = threading.Lock()
        self._error: Optional[BaseException] = None
        self._listeners: set[threading.Event] = set()

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancellationToken":
        """Create a token that cancels itself after the given number of seconds."""
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        """Cancel the token and wake everyone waiting on it."""
        with self._lock:
            if self._error is None:
                self._error = CancelledError("context canceled")
            listeners = list(self._listeners)
        for event in listeners:
            event.set()

    @property
    def error(self) -> Optional[BaseException]:
        """Why the token is cancelled, or None while it is live."""
        with self._lock:
            if (
                self._error is None
                and self._deadline is not None
                and time.monotonic() >= self._deadline
            ):
                self._error = TimeoutError("context deadline exceeded")
            return self._error

    @property
    def cancelled(self) -> bool:
        return self.error is not None

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def _subscribe(self, event: threading.Event) -> None:
        with self._lock:
            self._listeners.add(event)

    def _unsubscribe(self, event: threading.Event) -> None:
        with self._lock:
            self._listeners.discard(event)


def _finished() -> "tuple[Done, Any]":
    return (lambda: True), None


@dataclass
class Sentinel:
    """Watches an operation through a status function.

    status_fn returns a done-check and a status response, and raises on failure.
    on_cancel_fn is called once if the watch is cancelled or times out.
    on_done_fn turns the final status response into the watch's value; it runs
    in the background so that cancellation and timeout still apply to it.
    """

    status_fn: Optional[StatusFn] = None
    on_cancel_fn: Optional[Callable[[], Any]] = None
    on_done_fn: Optional[Callable[[Any], Any]] = None

    def watch(
        self,
        token: Optional[CancellationToken] = None,
        interval: float = 0.0,
        timeout: float = 0.0,
    ) -> WatchResult:
        """Poll every interval seconds until done, timed out (0 = never) or cancelled."""
        token = token if token is not None else CancellationToken()
        status_fn = self.status_fn or _finished
        interval = interval or DEFAULT_INTERVAL
        timeout = timeout or DEFAULT_TIMEOUT
        log = get_logger()

        start = time.monotonic()
        deadline = start + timeout if timeout else None
        next_poll: Optional[float] = start + interval
        outcome: list[tuple[bool, Any]] = []
        wake = threading.Event()
        token._subscribe(wake)
        try:
            while True:
                wake.clear()
                if outcome:
                    succeeded, payload = outcome[0]
                    if succeeded:
                        return WatchResult(WatchStatus.SUCCESS, payload)
                    return WatchResult(WatchStatus.ERROR, None, payload)

                if token.cancelled:
                    log.debug("sentinel cancelled: %s", token.error)
                    self._call_cancel(log)
                    return WatchResult(WatchStatus.CANCELED, None, token.error)

                now = time.monotonic()
                if deadline is not None and now >= deadline:
                    msg = f"wait timed out after {timeout:g}s"
                    log.info(msg)
                    self._call_cancel(log)
                    return WatchResult(WatchStatus.TIMEOUT, None, TimeoutError(msg))

                if next_poll is not None and now >= next_poll:
                    try:
                        done, response = status_fn()
                    except Exception as exc:
                        return WatchResult(WatchStatus.ERROR, None, exc)
                    next_poll = time.monotonic() + interval
                    if done():
                        next_poll = None
                        if self.on_done_fn is None:
                            return WatchResult(WatchStatus.SUCCESS, response)
                        threading.Thread(
                            target=self._process,
                            args=(self.on_done_fn, response, outcome, wake),
                            daemon=True,
                        ).start()
                    continue

                waits = [t - now for t in (next_poll, deadline) if t is not None]
                remaining = token.remaining()
                if remaining is not None:
                    waits.append(remaining)
                wake.wait(max(0.0, min(waits)) if waits else None)
        finally:
            token._unsubscribe(wake)

    @staticmethod
    def _process(
        on_done: Callable[[Any], Any],
        response: Any,
        outcome: list,
        wake: threading.Event,
    ) -> None:
        try:
            outcome.append((True, on_done(response)))
        except Exception as exc:
            outcome.append((False, exc))
        wake.set()

    def _call_cancel(self, log) -> None:
        if self.on_cancel_fn is None:
            return
        try:
            self.on_cancel_fn()
        except Exception as exc:
            log.error("databricks: cancel failed: %s", exc)
        else:
            log.debug("databricks: cancel success")