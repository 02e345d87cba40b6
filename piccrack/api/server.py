"""The HTTP API server: routing of requests to handlers and serving them."""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Callable, Iterable
from socketserver import ThreadingMixIn
from typing import Any
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from werkzeug.exceptions import HTTPException, MethodNotAllowed, NotFound
from werkzeug.routing import Map, Rule
from werkzeug.wrappers import Request, Response

from piccrack import ocr
from piccrack.api import handlers
from piccrack.api.metrics import CONTENT_TYPE as METRICS_CONTENT_TYPE
from piccrack.api.metrics import Metrics
from piccrack.api.phrases import upload_image_phrases_handler
from piccrack.api.service import Service
from piccrack.config import APIConfig
from piccrack.middleware import log_time

VERSION = "v1"
PREFIX = "/api/" + VERSION
READ_TIMEOUT = 20.0
_POLL_INTERVAL = 0.1


def _no_engine(content: bytes) -> str:
    raise RuntimeError("no text recognition engine is configured")


def _join_host_port(host: str, port: str) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def _plain(message: str, code: int, headers: dict[str, str] | None = None) -> Response:
    response = Response(message + "\n", status=code, content_type="text/plain; charset=utf-8")
    response.headers["X-Content-Type-Options"] = "nosniff"
    for key, value in (headers or {}).items():
        response.headers[key] = value
    return response


class _QuietRequestHandler(WSGIRequestHandler):
    timeout = READ_TIMEOUT

    def log_message(self, format: str, *args: Any) -> None:
        pass


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


class Server:
    """WSGI application of the API, able to serve itself."""

    def __init__(
        self,
        cfg: APIConfig,
        svc: Service,
        logger: logging.Logger,
        client: ocr.Client | None = None,
    ) -> None:
        if logger is None:
            raise ValueError("logger cannot be None")
        self.cfg = cfg
        self.logger = logger
        self.addr = _join_host_port(cfg.host, cfg.port)
        self.metrics = Metrics()
        client = client if client is not None else ocr.Client(_no_engine)

        self._handlers: dict[str, Callable[[Request], Response]] = {
            "metrics": self._render_metrics,
            "healthz": self.metrics.wrap(handlers.healthz_handler(logger)),
            "phrases": log_time(
                self.metrics.wrap(upload_image_phrases_handler(svc, logger, client)),
                logger,
            ),
            "list_words": handlers.list_words_handler(svc, logger),
            "create_word": handlers.create_word_handler(svc, logger),
            "upload_words": handlers.upload_words_handler(svc, logger),
            "upload_image_words": handlers.upload_image_words_handler(svc, logger, client),
            "words_by_batch_name": log_time(
                handlers.list_words_by_batch_name_handler(svc, logger), logger
            ),
        }
        self._map = Map(
            [
                Rule("/metrics", endpoint="metrics"),
                Rule(f"{PREFIX}/healthz", methods=["GET"], endpoint="healthz"),
                Rule(f"{PREFIX}/phrases", methods=["POST"], endpoint="phrases"),
                Rule(f"{PREFIX}/words", methods=["GET"], endpoint="list_words"),
                Rule(f"{PREFIX}/words", methods=["POST"], endpoint="create_word"),
                Rule(f"{PREFIX}/words/file", methods=["POST"], endpoint="upload_words"),
                Rule(f"{PREFIX}/words/image", methods=["POST"], endpoint="upload_image_words"),
                Rule(f"{PREFIX}/words/batches", methods=["GET"], endpoint="words_by_batch_name"),
            ],
            strict_slashes=False,
        )

    def _render_metrics(self, request: Request) -> Response:
        return Response(self.metrics.render(), content_type=METRICS_CONTENT_TYPE)

    def _dispatch(self, request: Request) -> Response:
        adapter = self._map.bind_to_environ(request.environ)
        try:
            endpoint, _ = adapter.match()
        except NotFound:
            return _plain("404 page not found", 404)
        except MethodNotAllowed as exc:
            allow = ", ".join(sorted(exc.valid_methods or []))
            return _plain("Method Not Allowed", 405, {"Allow": allow})
        except HTTPException as exc:
            return _plain(exc.description or "Bad Request", exc.code or 400)
        return self._handlers[endpoint](request)

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        response = self._dispatch(Request(environ))
        return response(environ, start_response)

    def _watch_signals(self, stop: threading.Event) -> Callable[[], None]:
        if threading.current_thread() is not threading.main_thread():
            return lambda: None
        previous = {
            sig: signal.signal(sig, lambda *_: stop.set())
            for sig in (signal.SIGINT, signal.SIGTERM)
        }

        def restore() -> None:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        return restore

    def start(self, stop_event: threading.Event | None = None) -> None:
        """Serve until stop_event is set or an interrupt or termination signal arrives."""
        stop = stop_event if stop_event is not None else threading.Event()
        self.logger.info(
            "Starting to listen and serve addr=%s https_enabled=%s",
            self.addr,
            self.cfg.tls_enabled,
        )
        httpd = make_server(
            self.cfg.host,
            int(self.cfg.port),
            self,
            server_class=_ThreadingWSGIServer,
            handler_class=_QuietRequestHandler,
        )
        serving = threading.Thread(
            target=httpd.serve_forever,
            kwargs={"poll_interval": _POLL_INTERVAL},
            daemon=True,
        )
        restore = self._watch_signals(stop)
        serving.start()
        try:
            while not stop.wait(_POLL_INTERVAL):
                if not serving.is_alive():
                    self.logger.error("Failed to listen and serve")
                    raise RuntimeError("listen and serve err: server stopped")
        finally:
            if serving.is_alive():
                httpd.shutdown()
            serving.join()
            httpd.server_close()
            restore()