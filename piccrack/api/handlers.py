"""HTTP request handlers of the words API.

Each handler is a callable that takes a werkzeug Request and returns a Response.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from werkzeug.exceptions import HTTPException
from werkzeug.wrappers import Request, Response

from piccrack import ocr
from piccrack.api.service import Service

Handler = Callable[[Request], Response]

DEFAULT_LIMIT = 1000
DEFAULT_OFFSET = 0
MAX_INT32 = 2**31 - 1
_MAX_UINT32 = 2**32 - 1

WORDS_FILE_MAX_SIZE = 20 * 1024 * 1024
IMAGE_FILE_MAX_SIZE = 50 * 1024 * 1024
_SNIFF_LEN = 512

_JSON_TYPE = "application/json"
_TEXT_TYPE = "text/plain; charset=utf-8"

_ALLOWED_TEXT_TYPES = frozenset(
    {"text/plain", "text/plain; charset=utf-8", "application/txt", "text/x-plain"}
)
_ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png"})


def _parse_uint32(text: str) -> int:
    if not text or not text.isascii() or not text.isdigit():
        raise ValueError(f"parse uint: invalid syntax: {text!r}")
    number = int(text)
    if number > _MAX_UINT32:
        raise ValueError(f"parse uint: value out of range: {text!r}")
    return number


def limit_value(values: Mapping[str, str]) -> int:
    """Return the "limit" query value, 1000 when absent or above the int32 range."""
    number = _parse_uint32(values.get("limit") or str(DEFAULT_LIMIT))
    return DEFAULT_LIMIT if number > MAX_INT32 else number


def offset_value(values: Mapping[str, str]) -> int:
    """Return the "offset" query value, 0 when absent or above the int32 range."""
    number = _parse_uint32(values.get("offset") or str(DEFAULT_OFFSET))
    return DEFAULT_OFFSET if number > MAX_INT32 else number


def _format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = moment.isoformat()
    if moment.utcoffset() == timedelta(0):
        text = text[: -len("+00:00")] + "Z"
    return text


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            item.name: getattr(value, item.name)
            for item in dataclasses.fields(value)
            if not item.name.startswith("_")
        }
    if isinstance(value, datetime):
        return _format_time(value)
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"encode json: unsupported type {type(value).__name__}")


def _dumps(value: Any) -> str:
    text = json.dumps(value, default=_json_default, ensure_ascii=False, separators=(",", ":"))
    for char, escape in (("<", "\\u003c"), (">", "\\u003e"), ("&", "\\u0026")):
        text = text.replace(char, escape)
    return text + "\n"


def encode(status: int, value: Any) -> Response:
    """Return a JSON response holding value with the given status."""
    return Response(_dumps(value), status=status, content_type=_JSON_TYPE)


def decode(request: Request) -> Any:
    """Decode the first JSON value of the request body; raise ValueError if there is none."""
    text = request.get_data().decode("utf-8", errors="replace").lstrip()
    value, _ = json.JSONDecoder().raw_decode(text)
    return value


def respond_json(message: str, error: BaseException | str | None, code: int) -> Response:
    """Return a JSON response with a message and, when present, an error text."""
    body: dict[str, str] = {"message": message}
    error_text = str(error) if error is not None else ""
    if error_text:
        body["error"] = error_text
    return encode(code, body)


def _http_error(message: str, code: int) -> Response:
    response = Response(message + "\n", status=code, content_type=_TEXT_TYPE)
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


_HTML_TAGS = (
    b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1", b"<DIV",
    b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B", b"<BODY", b"<BR", b"<P",
    b"<!--",
)

_EXACT_SIGNATURES = (
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", "text/plain; charset=utf-8"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"BM", "image/bmp"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\x0d\x0a\x1a\x0a", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"OggS\x00", "application/ogg"),
    (b"ID3", "audio/mpeg"),
    (b"\x1a\x45\xdf\xa3", "video/webm"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    (b"\x00\x61\x73\x6d", "application/wasm"),
)

_SNIFF_WHITESPACE = frozenset(b"\t\n\x0c\r ")
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


def _skip_whitespace(data: bytes) -> bytes:
    for index, byte in enumerate(data):
        if byte not in _SNIFF_WHITESPACE:
            return data[index:]
    return b""


def detect_content_type(data: bytes) -> str:
    """Guess the MIME type of data from at most its first 512 bytes."""
    data = bytes(data[:_SNIFF_LEN])
    stripped = _skip_whitespace(data)
    upper = stripped.upper()
    for tag in _HTML_TAGS:
        if upper.startswith(tag) and len(stripped) > len(tag) and stripped[len(tag)] in b" >":
            return "text/html; charset=utf-8"
    if stripped.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"
    for signature, content_type in _EXACT_SIGNATURES:
        if data.startswith(signature):
            return content_type
    if data[:4] == b"RIFF" and data[8:14] == b"WEBPVP":
        return "image/webp"
    if data[:4] == b"RIFF" and data[8:12] == b"WAVE":
        return "audio/wave"
    if any(byte in _BINARY_BYTES for byte in stripped):
        return "application/octet-stream"
    return _TEXT_TYPE


def _url(request: Request) -> str:
    query = request.query_string.decode("latin-1")
    return request.path + ("?" + query if query else "")


def _form_file(request: Request, field: str, max_size: int):
    """Return (file, None) or (None, error response) for a multipart upload field."""
    if request.content_length is not None and request.content_length > max_size:
        return None, respond_json(
            "File too big", "http: request body too large", 400
        )
    if request.mimetype != "multipart/form-data":
        return None, respond_json(
            "File too big", "request Content-Type isn't multipart/form-data", 400
        )
    try:
        storage = request.files.get(field)
    except (HTTPException, ValueError) as exc:
        return None, respond_json("File too big", exc, 400)
    return storage, None


def healthz_handler(logger: logging.Logger) -> Handler:
    """Answer health checks with status 200."""

    def handler(request: Request) -> Response:
        logger.info("Received health check request url=%s", _url(request))
        try:
            return encode(200, {"status": 200})
        except (TypeError, ValueError) as exc:
            return respond_json("Failed to check health", exc, 500)

    return handler


def list_words_handler(svc: Service, logger: logging.Logger) -> Handler:
    """List words, paged by the limit and offset query values."""

    def handler(request: Request) -> Response:
        logger.info("Received request url=%s", _url(request))
        try:
            limit = limit_value(request.args)
            offset = offset_value(request.args)
        except ValueError:
            return _http_error("Failed get limit param from query", 400)
        try:
            rows = svc.list_words(limit, offset)
        except Exception:
            return _http_error("Failed to fetch all words from a database", 500)
        try:
            return encode(200, rows)
        except (TypeError, ValueError):
            return _http_error("Failed to encode rows", 500)

    return handler


def create_word_handler(svc: Service, logger: logging.Logger) -> Handler:
    """Store the word given as {"value": ...} in the request body."""

    def handler(request: Request) -> Response:
        logger.info("Received request url=%s", _url(request))
        try:
            payload = decode(request)
        except ValueError:
            return _http_error("Failed to decode request", 400)
        if not isinstance(payload, dict):
            return _http_error("Failed to decode request", 400)
        value = payload.get("value")
        if value is None:
            value = ""
        if not isinstance(value, str):
            return _http_error("Failed to decode request", 400)
        try:
            row = svc.create_word(value)
        except Exception:
            return _http_error("Failed to insert word", 500)
        logger.info("Inserted word id=%s value=%s", row.id, row.value)
        try:
            return encode(200, row)
        except (TypeError, ValueError):
            return _http_error("Failed to encode insert word row", 500)

    return handler


def upload_words_handler(svc: Service, logger: logging.Logger) -> Handler:
    """Store every whitespace-separated word of an uploaded text file."""

    def handler(request: Request) -> Response:
        logger.info("Received request url=%s", _url(request))
        storage, failure = _form_file(request, "file", WORDS_FILE_MAX_SIZE)
        if failure is not None:
            return failure
        if storage is None:
            return respond_json("Failed to get file", "http: no such file", 400)

        stream = storage.stream
        head = stream.read(_SNIFF_LEN)
        if not head:
            return respond_json("Failed to read file into buffer", "EOF", 500)
        content_type = detect_content_type(head)
        if content_type not in _ALLOWED_TEXT_TYPES:
            return respond_json(
                f"Content type {content_type} not allowed. Upload text file", None, 400
            )
        try:
            stream.seek(0)
        except OSError as exc:
            return respond_json("Failed to seek to start of the file", exc, 500)
        logger.info("Received form filename=%s", storage.filename)

        words = stream.read().decode("utf-8", errors="replace").split()
        count = 0
        for word in words:
            try:
                svc.create_word(word)
            except Exception as exc:
                return respond_json("Failed to insert row", exc, 500)
            count += 1
        logger.info("Inserted words count=%d", count)
        return encode(200, {"count": count})

    return handler


def upload_image_words_handler(
    svc: Service, logger: logging.Logger, client: ocr.Client
) -> Handler:
    """Recognise the words of an uploaded image and store them as a batch named after it."""

    def handler(request: Request) -> Response:
        storage, failure = _form_file(request, "image", IMAGE_FILE_MAX_SIZE)
        if failure is not None:
            return failure
        if storage is None:
            return respond_json("Failed to get image file", "http: no such file", 400)

        stream = storage.stream
        head = stream.read(_SNIFF_LEN)
        if not head:
            return respond_json("Failed to read image file into buffer", "EOF", 500)
        content_type = detect_content_type(head)
        try:
            stream.seek(0)
        except OSError as exc:
            return respond_json("Failed to seek to start of the file", exc, 500)
        if content_type not in _ALLOWED_IMAGE_TYPES:
            return respond_json(
                f"Content type {content_type} not allowed. Upload text file", None, 400
            )
        filename = os.path.basename(storage.filename or "")
        logger.info("Received form header_filename=%s", filename)

        content = stream.read(ocr.MAX_IMAGE_SIZE)
        try:
            if not ocr.is_image(content):
                raise ocr.NotAnImageError()
            result = ocr.Result(path=filename, content=content, text=client.text(content))
        except Exception as exc:
            return respond_json("Failed to recognize words from an image", exc, 500)

        try:
            row = svc.create_words_batch(filename, list(result.words()))
        except Exception as exc:
            return respond_json("Failed to insert words batch", exc, 500)
        try:
            return encode(200, {"row": row})
        except (TypeError, ValueError) as exc:
            return respond_json("Failed to encode response", exc, 500)

    return handler


def list_word_batches_handler(svc: Service, logger: logging.Logger) -> Handler:
    """List word batches, paged by the limit and offset query values."""

    def handler(request: Request) -> Response:
        try:
            limit = limit_value(request.args)
        except ValueError as exc:
            return respond_json("Failed to get limit query value", exc, 400)
        try:
            offset = offset_value(request.args)
        except ValueError as exc:
            return respond_json("Failed to get offset query value", exc, 400)
        try:
            rows = svc.list_word_batches(limit, offset)
        except Exception as exc:
            return respond_json(
                "Failed to list word batches via word service", exc, 500
            )
        logger.info("Got word batches total=%d", len(rows))
        try:
            return encode(200, {"word_batches": rows})
        except (TypeError, ValueError) as exc:
            return respond_json("Failed to serve response", exc, 500)

    return handler


def list_words_by_batch_name_handler(svc: Service, logger: logging.Logger) -> Handler:
    """List the words of the batch named by the "name" query value."""

    def handler(request: Request) -> Response:
        name = request.args.get("name") or ""
        logger.info("Searching words batch name=%s", name)
        try:
            rows = svc.list_words_by_batch_name(name)
        except Exception as exc:
            return respond_json(
                "Failed to list words by batch name with word service", exc, 500
            )
        try:
            return encode(200, {"rows": rows})
        except (TypeError, ValueError) as exc:
            return respond_json("Failed to serve response", exc, 500)

    return handler