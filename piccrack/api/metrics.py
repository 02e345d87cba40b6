"""Request counting for the HTTP API, exposed in the Prometheus text format."""

from __future__ import annotations

import threading
from collections import Counter
from collections.abc import Callable
from typing import Any

REQUESTS_TOTAL = "requests_total"
REQUESTS_TOTAL_HELP = "Counter for total requests made with a method and a url."
CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

Handler = Callable[[Any], Any]


def _request_url(request: Any) -> str:
    path = getattr(request, "path", "")
    query = getattr(request, "query_string", b"")
    if isinstance(query, bytes):
        query = query.decode("latin-1")
    return f"{path}?{query}" if query else str(path)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


class Metrics:
    """Counts requests by method and URL."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requests: Counter[tuple[str, str]] = Counter()

    def inc_counter(self, request: Any) -> None:
        """Count one request with its method and URL."""
        if request is None:
            raise ValueError("request cannot be None")
        key = (str(request.method), _request_url(request))
        with self._lock:
            self._requests[key] += 1

    def wrap(self, handler: Handler) -> Handler:
        """Return a handler that counts each request before passing it on."""

        def wrapped(request: Any) -> Any:
            self.inc_counter(request)
            return handler(request)

        return wrapped

    def render(self) -> str:
        """Return the counters in the Prometheus text exposition format."""
        with self._lock:
            samples = sorted(self._requests.items())
        lines = [
            f"# HELP {REQUESTS_TOTAL} {REQUESTS_TOTAL_HELP}",
            f"# TYPE {REQUESTS_TOTAL} counter",
        ]
        lines.extend(
            f'{REQUESTS_TOTAL}{{method="{_escape(method)}",url="{_escape(url)}"}} {count}'
            for (method, url), count in samples
        )
        return "\n".join(lines) + "\n"