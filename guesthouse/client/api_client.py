from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator

import requests
import structlog

from guesthouse.client.errors import ApiError

# The client runs outside the API process, so it does not pull in server settings.
logger = structlog.get_logger(__name__)

DEFAULT_REFRESH_SECONDS = 30


@dataclass
class DocumentFile:
    filename: str
    content_type: str
    data: bytes


class GuestHouseClient:
    """Thin JSON client for the public booking API."""

    def __init__(self, base_url: str, token: str | None = None, session: requests.Session | None = None,
                 timeout: int = 20):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.base_url}/api/v1{path}"
        r = self.session.request(method=method.upper(), url=url, headers=self._headers(),
                                 timeout=self.timeout, **kwargs)
        try:
            data = r.json() if r.text else {}
        except ValueError:
            data = {"raw": r.text}
        if r.status_code >= 400:
            detail = data.get("detail") if isinstance(data, dict) else None
            raise ApiError(r.status_code, str(detail or data or r.reason))
        return data

    def list_rooms(self, check_in: datetime | None = None, check_out: datetime | None = None) -> dict:
        params = {}
        if check_in and check_out:
            params = {"check_in": check_in.isoformat(), "check_out": check_out.isoformat()}
        return self.request("GET", "/rooms", params=params)

    def check_availability(self, check_in: datetime, check_out: datetime, room_type: str | None = None) -> dict:
        payload = {"check_in": check_in.isoformat(), "check_out": check_out.isoformat()}
        if room_type:
            payload["room_type"] = room_type
        return self.request("POST", "/rooms/check-availability", json=payload)

    def upload_document(self, document: DocumentFile, document_type: str) -> str:
        data = self.request(
            "POST",
            "/bookings/upload-document",
            files={"file": (document.filename, document.data, document.content_type)},
            data={"documentType": document_type},
        )
        path = data.get("path")
        if not path:
            raise ApiError(500, "Upload did not return a document path")
        return path

    def create_booking(self, payload: dict) -> dict:
        return self.request("POST", "/bookings", json=payload)


def iter_availability(client: GuestHouseClient, check_in: datetime, check_out: datetime,
                      stop: threading.Event, interval: float = DEFAULT_REFRESH_SECONDS) -> Iterator[dict]:
    """Yield fresh availability for an open search until ``stop`` is set.

    A failed refresh keeps the previous result on screen, so errors are skipped
    and the next tick tries again.
    """
    while not stop.is_set():
        try:
            yield client.check_availability(check_in, check_out)
        except (requests.RequestException, ApiError) as e:
            logger.warning("availability_refresh_failed", error=str(e))
        if stop.wait(interval):
            break
