"""
Client for the MileTrack server.

Sends one upload request per extracted region and fetches recent records.
Failures are returned as results carrying the server's message; nothing is
retried.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from .extract import build_upload_payload

logger = logging.getLogger(__name__)

UPLOAD_PATH = "/upload-mileage"
RECORDS_PATH = "/records"


@dataclass
class UploadResult:
    """Outcome of an upload as seen by the client."""

    ok: bool
    message: str
    status_code: Optional[int] = None
    mileage: Optional[str] = None
    timestamp: Optional[str] = None


@dataclass
class MileageReading:
    """A stored reading returned by the records endpoint."""

    mileage: float
    timestamp: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MileageReading":
        return cls(mileage=float(data["mileage"]), timestamp=str(data["timestamp"]))


class MileageClient:
    """HTTP client for the upload and records endpoints."""

    def __init__(self, base_url: str, timeout: float = 60.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def upload(self, data_url: str) -> UploadResult:
        """
        Post an encoded region for OCR and storage.

        Args:
            data_url: JPEG data URL of the extracted region

        Returns:
            UploadResult with the server's message (verbatim on failure)
        """
        url = self.base_url + UPLOAD_PATH
        try:
            response = self.session.post(
                url, json=build_upload_payload(data_url), timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Upload to {url} failed: {e}")
            return UploadResult(ok=False, message=f"Upload failed: {e}")

        body = self._json_body(response)
        message = body.get("message") or f"Server returned HTTP {response.status_code}"

        if response.status_code != 200:
            logger.warning(f"Upload rejected ({response.status_code}): {message}")
            return UploadResult(ok=False, message=message, status_code=response.status_code)

        mileage = body.get("mileage")
        logger.info(f"Upload accepted: mileage={mileage}")
        return UploadResult(
            ok=True,
            message=message,
            status_code=response.status_code,
            mileage=None if mileage is None else str(mileage),
            timestamp=body.get("timestamp"),
        )

    def fetch_records(self) -> List[MileageReading]:
        """
        Fetch the most recent readings, newest first.

        Raises:
            requests.RequestException: network failure or non-2xx status
            ValueError: the body is not a list of {mileage, timestamp} objects
        """
        url = self.base_url + RECORDS_PATH
        response = self.session.get(url, timeout=self.timeout)
        response.raise_for_status()

        items = response.json()
        if not isinstance(items, list):
            raise ValueError(f"Expected a list of records, got {type(items).__name__}")
        try:
            return [MileageReading.from_dict(item) for item in items]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed record in response: {e!r}") from e

    @staticmethod
    def _json_body(response: requests.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}
