import json

import pytest
import requests

from fieldsync import utility_api
from fieldsync.utility_api import UtilityApiClient, UtilityApiError


class StubResponse:
    def __init__(self, status_code: int = 200, text: str = "") -> None:
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        return json.loads(self.text)


class StubSession:
    def __init__(self, response: StubResponse = None, error: Exception = None) -> None:
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def _client(session: StubSession) -> UtilityApiClient:
    return UtilityApiClient("https://utility.example/api/", timeout=5, session=session)


def test_fetch_sends_token_header_and_body() -> None:
    session = StubSession(StubResponse(text='{"service_areas": []}'))

    data = _client(session).fetch(utility_api.SERVICE_AREAS, "tg-token", {"user_id": "42"})

    assert data == {"service_areas": []}
    [call] = session.calls
    assert call["url"] == "https://utility.example/api/api_get/get_service_areas"
    assert call["headers"]["trongateToken"] == "tg-token"
    assert call["json"] == {"user_id": "42"}
    assert call["timeout"] == 5


def test_fetch_treats_non_2xx_as_no_data() -> None:
    session = StubSession(StubResponse(status_code=503, text="unavailable"))
    assert _client(session).fetch(utility_api.METER_SIZES, "tg-token") is None


def test_fetch_treats_connection_error_as_no_data() -> None:
    session = StubSession(error=requests.exceptions.ConnectionError("refused"))
    assert _client(session).fetch(utility_api.METER_SIZES, "tg-token") is None


def test_fetch_treats_empty_body_as_no_data() -> None:
    session = StubSession(StubResponse(text="  \n"))
    assert _client(session).fetch(utility_api.METER_BOOKS, "tg-token", {"zone_ids": [1]}) is None


def test_fetch_rejects_body_that_is_not_json() -> None:
    session = StubSession(StubResponse(text="<html>oops</html>"))
    with pytest.raises(UtilityApiError):
        _client(session).fetch(utility_api.METER_SIZES, "tg-token")


def test_fetch_rejects_body_that_is_not_an_object() -> None:
    session = StubSession(StubResponse(text="[1, 2]"))
    with pytest.raises(UtilityApiError):
        _client(session).fetch(utility_api.METER_SIZES, "tg-token")


def test_strict_fetch_raises_on_transport_failures() -> None:
    with pytest.raises(UtilityApiError):
        _client(StubSession(StubResponse(status_code=500))).fetch(
            utility_api.ASSIGNED_SHEETS, "tg-token", strict=True
        )
    with pytest.raises(UtilityApiError):
        _client(StubSession(error=requests.exceptions.Timeout("slow"))).fetch(
            utility_api.ASSIGNED_SHEETS, "tg-token", strict=True
        )


def test_login_sends_no_token_header() -> None:
    session = StubSession(StubResponse(text='{"trongate_token": "abc"}'))

    data = _client(session).login("jdoe", "secret")

    assert data == {"trongate_token": "abc"}
    [call] = session.calls
    assert call["url"].endswith("/gateman/login")
    assert "trongateToken" not in call["headers"]
    assert call["json"] == {"username": "jdoe", "password": "secret"}


def test_login_rejected() -> None:
    session = StubSession(StubResponse(status_code=401, text='{"error": "denied"}'))
    assert _client(session).login("jdoe", "wrong") is None
