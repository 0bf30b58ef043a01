"""
MileTrack HTTP server.

Accepts cropped odometer images, runs OCR on them and stores the readings:
- POST /upload-mileage  {image: data URL} -> {message, mileage, timestamp}
- GET  /records         -> [{mileage, timestamp}, ...] newest first

Run with: python -m miletrack --serve
"""

import logging
import sqlite3
from typing import Callable, Optional

from flask import Flask, jsonify, request
from PIL import Image

from miletrack.utils.config import MileTrackConfig
from miletrack.utils.errors import InvalidImageDataError
from miletrack.utils.extract import decode_data_url, load_image
from miletrack.utils.ocr import parse_mileage, recognize_text
from miletrack.utils.storage import MileageStore

logger = logging.getLogger(__name__)

MSG_MISSING_IMAGE = "Missing image data."
MSG_UNRECOGNIZED = "Could not recognize a valid mileage in the image. Please make sure the image is clear."
MSG_RECORDED = "Mileage recorded successfully!"
MSG_SERVER_ERROR = "Server processing error"
MSG_QUERY_FAILED = "Database query failed."


def create_app(
    store: MileageStore,
    recognizer: Optional[Callable[[Image.Image], str]] = None,
    records_limit: Optional[int] = None,
) -> Flask:
    """
    Build the Flask application.

    Args:
        store: Initialized mileage store
        recognizer: Image -> raw OCR text; defaults to Tesseract
        records_limit: Number of records returned by /records
    """
    if recognizer is None:
        lang = MileTrackConfig.ocr_language()

        def recognizer(image: Image.Image) -> str:
            return recognize_text(image, lang=lang)

    limit = records_limit if records_limit is not None else MileTrackConfig.records_limit()

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MileTrackConfig.MAX_CONTENT_LENGTH

    @app.post("/upload-mileage")
    def upload_mileage():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            body = {}
        data_url = body.get("image")
        if not data_url:
            return jsonify({"message": MSG_MISSING_IMAGE}), 400

        try:
            image = load_image(decode_data_url(data_url))
        except InvalidImageDataError as e:
            logger.warning(f"Rejected upload: {e}")
            return jsonify({"message": str(e)}), 400

        try:
            text = recognizer(image)
            logger.info(f"OCR result: {text!r}")

            mileage = parse_mileage(text)
            if mileage is None:
                return jsonify({"message": MSG_UNRECOGNIZED, "rawOcrText": text}), 400

            record = store.add(float(mileage))
        except Exception as e:
            # Tesseract and SQLite failures both surface as a 500 with the reason
            logger.error(f"OCR or database error: {e}")
            return jsonify({"message": MSG_SERVER_ERROR, "error": str(e)}), 500

        return jsonify(
            {
                "message": MSG_RECORDED,
                "mileage": mileage,
                "timestamp": record.timestamp,
            }
        )

    @app.get("/records")
    def records():
        try:
            rows = store.recent(limit)
        except sqlite3.Error as e:
            logger.error(f"Records query failed: {e}")
            return jsonify({"message": MSG_QUERY_FAILED}), 500
        return jsonify([row.to_dict() for row in rows])

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, db_path: Optional[str] = None) -> int:
    """Initialize the database and serve until interrupted."""
    logging.basicConfig(
        level=getattr(logging, MileTrackConfig.log_level(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    store = MileageStore(db_path or MileTrackConfig.database_path())
    try:
        store.initialize()
    except (sqlite3.Error, OSError) as e:
        logger.error(f"Failed to initialize database {store.path}: {e}")
        return 1

    app = create_app(store)
    host = host or MileTrackConfig.host()
    port = port or MileTrackConfig.port()
    logger.info(f"Server running on http://{host}:{port}")
    app.run(host=host, port=port, debug=MileTrackConfig.debug())
    return 0
