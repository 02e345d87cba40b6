"""Pinging a database pool with exponential backoff."""

from __future__ import annotations

import random
import threading
import time
from typing import Protocol

MAX_RETRIES = 3

_TIMEOUT = 5.0
_INITIAL_INTERVAL = 0.5
_MULTIPLIER = 1.5
_RANDOMIZATION = 0.5
_MAX_INTERVAL = 60.0


class _Pool(Protocol):
    def ping(self) -> None: ...

    def close(self) -> None: ...


class RetryError(Exception):
    """Raised when the pool could not be pinged."""


def _randomized(interval: float) -> float:
    delta = _RANDOMIZATION * interval
    return random.uniform(interval - delta, interval + delta)


def ping(pool: _Pool, retries: int = MAX_RETRIES, cancel: threading.Event | None = None) -> None:
    """Ping pool, retrying up to retries times (0 means the default) within five seconds.

    The pool is closed after each failed ping. Setting cancel stops further attempts.
    """
    if not retries:
        retries = MAX_RETRIES
    deadline = time.monotonic() + _TIMEOUT

    def stopped() -> Exception | None:
        if cancel is not None and cancel.is_set():
            return InterruptedError("context canceled")
        if time.monotonic() >= deadline:
            return TimeoutError("context deadline exceeded")
        return None

    interval = _INITIAL_INTERVAL
    attempt = 0
    while True:
        reason = stopped()
        if reason is not None:
            raise RetryError(f"failed to retry operation: {reason}") from reason
        try:
            pool.ping()
            return
        except Exception as exc:
            pool.close()
            reason = stopped()
            if reason is not None:
                raise RetryError(f"failed to retry operation: {reason}") from reason
            last_error = exc

        if attempt >= retries:
            raise RetryError(
                f"failed to retry operation: pinging db: {last_error}"
            ) from last_error
        attempt += 1

        delay = min(_randomized(interval), max(0.0, deadline - time.monotonic()))
        interval = min(interval * _MULTIPLIER, _MAX_INTERVAL)
        if cancel is not None:
            cancel.wait(delay)
        else:
            time.sleep(delay)