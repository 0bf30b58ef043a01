"""Runtime configuration for MileTrack (environment driven)."""

import os

from .paths import MileTrackPaths


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() == "true"


class MileTrackConfig:
    """Settings read from the environment.

    Values are resolved on access so tests and the CLI can adjust the
    environment before use.
    """

    @staticmethod
    def server_url() -> str:
        return os.getenv("MILETRACK_SERVER_URL", "http://localhost:3000").rstrip("/")

    @staticmethod
    def host() -> str:
        return os.getenv("MILETRACK_HOST", "0.0.0.0")

    @staticmethod
    def port() -> int:
        return int(os.getenv("MILETRACK_PORT", os.getenv("PORT", "3000")))

    @staticmethod
    def debug() -> bool:
        return _env_bool("MILETRACK_DEBUG", "false")

    @staticmethod
    def database_path() -> str:
        return MileTrackPaths.get_database_path()

    @staticmethod
    def camera_index() -> int:
        return int(os.getenv("MILETRACK_CAMERA_INDEX", "0"))

    @staticmethod
    def jpeg_quality() -> float:
        return float(os.getenv("MILETRACK_JPEG_QUALITY", "0.9"))

    @staticmethod
    def records_limit() -> int:
        return int(os.getenv("MILETRACK_RECORDS_LIMIT", "10"))

    @staticmethod
    def upload_timeout() -> float:
        return float(os.getenv("MILETRACK_UPLOAD_TIMEOUT", "60"))

    @staticmethod
    def ocr_language() -> str:
        return os.getenv("MILETRACK_OCR_LANG", "eng")

    @staticmethod
    def log_level() -> str:
        return os.getenv("LOG_LEVEL", "INFO").upper()

    # Request bodies carry base64 images
    MAX_CONTENT_LENGTH = 50 * 1024 * 1024
