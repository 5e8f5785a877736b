"""Tests for the HTTP client used by checkout, with a fake requests session."""

import threading

import pytest
import requests

from conftest import stay

from guesthouse.client.api_client import DocumentFile, GuestHouseClient, iter_availability
from guesthouse.client.errors import ApiError


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None, reason="OK"):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("{}" if payload is not None else "")
        self.reason = reason

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def request(self, **kwargs):
        self.requests.append(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class TestGuestHouseClient:
    """Tests for GuestHouseClient."""

    def test_bearer_token_and_base_path(self):
        session = FakeSession(FakeResponse(payload={"success": True}))
        client = GuestHouseClient("https://api.example.com/", token="abc", session=session)
        check_in, check_out = stay()

        client.check_availability(check_in, check_out, room_type="Deluxe")

        sent = session.requests[0]
        assert sent["method"] == "POST"
        assert sent["url"] == "https://api.example.com/api/v1/rooms/check-availability"
        assert sent["headers"]["Authorization"] == "Bearer abc"
        assert sent["json"]["room_type"] == "Deluxe"

    def test_error_status_raises_api_error(self):
        session = FakeSession(FakeResponse(409, {"detail": "These rooms are no longer available."}))
        client = GuestHouseClient("https://api.example.com", token="abc", session=session)
        with pytest.raises(ApiError) as exc:
            client.create_booking({})
        assert exc.value.status_code == 409
        assert exc.value.detail == "These rooms are no longer available."

    def test_upload_returns_path(self):
        session = FakeSession(FakeResponse(payload={"success": True, "path": "u/govt_id_1.png"}))
        client = GuestHouseClient("https://api.example.com", token="abc", session=session)
        path = client.upload_document(DocumentFile("id.png", "image/png", b"png"), "govt_id")
        assert path == "u/govt_id_1.png"
        assert session.requests[0]["data"] == {"documentType": "govt_id"}

    def test_upload_without_path_is_an_error(self):
        session = FakeSession(FakeResponse(payload={"success": True}))
        client = GuestHouseClient("https://api.example.com", token="abc", session=session)
        with pytest.raises(ApiError):
            client.upload_document(DocumentFile("id.png", "image/png", b"png"), "govt_id")


class TestIterAvailability:
    def test_failed_refresh_is_skipped(self):
        stop = threading.Event()
        session = FakeSession(
            FakeResponse(payload={"totalAvailable": 3}),
            requests.ConnectionError("down"),
            FakeResponse(payload={"totalAvailable": 2}),
        )
        client = GuestHouseClient("https://api.example.com", session=session)
        check_in, check_out = stay()

        seen = []
        for result in iter_availability(client, check_in, check_out, stop, interval=0):
            seen.append(result["totalAvailable"])
            if len(seen) == 2:
                stop.set()
        assert seen == [3, 2]
        assert len(session.requests) == 3
