"""Handler that stores the phrases recognised in an uploaded image."""

from __future__ import annotations

import logging
import os
from datetime import datetime

from werkzeug.exceptions import HTTPException
from werkzeug.wrappers import Request, Response

from piccrack import ocr, picphrase
from piccrack.api.handlers import Handler, encode, respond_json
from piccrack.api.service import Service

MAX_SIZE = 50 * 1024 * 1024
_NAME_TIME_LAYOUT = "%Y%m%d_%H%M%S"


def upload_image_phrases_handler(
    svc: Service, logger: logging.Logger, client: ocr.Client
) -> Handler:
    """Recognise the lines of an uploaded image and store them as a named phrases batch."""

    def handler(request: Request) -> Response:
        if request.content_length is not None and request.content_length > MAX_SIZE:
            return respond_json("File too big", "http: request body too large", 400)
        if request.mimetype != "multipart/form-data":
            return respond_json(
                "File too big", "request Content-Type isn't multipart/form-data", 400
            )
        try:
            storage = request.files.get("image")
        except (HTTPException, ValueError) as exc:
            return respond_json("File too big", exc, 400)
        if storage is None:
            return respond_json("Failed to get image file", "http: no such file", 400)

        filename = os.path.basename(storage.filename or "")
        logger.info("Received form header_filename=%s", filename)

        try:
            values = [str(phrase) for phrase in picphrase.scan_reader(client, storage.stream)]
        except Exception as exc:
            return respond_json("Failed to ocr", exc, 500)

        name = filename.split(".")[0] + "_" + datetime.now().strftime(_NAME_TIME_LAYOUT)
        try:
            row = svc.create_phrases_batch(name, values)
        except Exception as exc:
            return respond_json("Failed to create phrases batch", exc, 500)

        message = f"Created phrases batch with a name: {name} and id: {row.id}\n"
        try:
            return encode(200, {"message": message})
        except (TypeError, ValueError) as exc:
            return respond_json("Failed to encode response", exc, 500)

    return handler