"""Wrappers that add logging, counting and rate limiting to request handlers.

A handler is any callable taking a request and returning a response.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

REQUEST_ID_KEY = "piccrack.request_id"

Handler = Callable[[Any], Any]


class _RequestsCounter(Protocol):
    def inc_counter(self, request: Any) -> None: ...


def _request_url(request: Any) -> str:
    return str(getattr(request, "url", ""))


def log_time(handler: Handler, logger: logging.Logger) -> Handler:
    """Log each request's URL and how long the handler took."""

    def wrapped(request: Any) -> Any:
        logger.info("Received request url=%s", _request_url(request))
        start = time.perf_counter()
        response = handler(request)
        elapsed = time.perf_counter() - start
        logger.info("Finished duration=%.6fs", elapsed)
        return response

    return wrapped


def count_requests(handler: Handler, counter: _RequestsCounter) -> Handler:
    """Count each request with counter before handling it."""

    def wrapped(request: Any) -> Any:
        counter.inc_counter(request)
        return handler(request)

    return wrapped


def _request_id(request: Any) -> str:
    environ = getattr(request, "environ", None) or {}
    value = environ.get(REQUEST_ID_KEY)
    if not isinstance(value, str):
        raise RuntimeError("Failed to retrieve request id value from context")
    return value


def limit_rate(handler: Handler, interval: float) -> Handler:
    """Let a request id through at once the first time, then once per tick of interval seconds.

    The request id is read from the request environ under REQUEST_ID_KEY.
    """
    if interval <= 0:
        raise ValueError("interval must be positive")

    origin = time.monotonic()
    lock = threading.Lock()
    consumed = 0
    calls: dict[str, float] = {}

    def next_tick() -> float:
        nonlocal consumed
        with lock:
            passed = math.floor((time.monotonic() - origin) / interval)
            if passed > consumed:
                consumed = passed
                return 0.0
            consumed += 1
            return origin + consumed * interval - time.monotonic()

    def wrapped(request: Any) -> Any:
        request_id = _request_id(request)
        with lock:
            first = request_id not in calls
            if first:
                calls[request_id] = time.monotonic()
        if first:
            return handler(request)

        delay = next_tick()
        if delay > 0:
            time.sleep(delay)
        response = handler(request)
        with lock:
            calls[request_id] = time.monotonic()
        return response

    return wrapped