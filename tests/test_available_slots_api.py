import asyncio
import json

import pytest
from fastapi.testclient import TestClient
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from app.core.config import get_settings
from app.main import _handle_http_exception, app

_SUCCESS_PAYLOAD = {
    "status": "success",
    "data": {"slots": {"2025-04-21": [{"time": "2025-04-21T10:00:00Z"}]}},
}


class _MockResponse:
    def __init__(self, payload: dict[str, object]) -> None:
        self._payload = json.dumps(payload).encode("utf-8")

    def __enter__(self) -> "_MockResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:  # type: ignore[no-untyped-def]
        return False

    def read(self) -> bytes:
        return self._payload


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CALCOM_API_KEY", "cal_live_token")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def provider_calls(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    calls: list[str] = []

    def fake_urlopen(req, timeout=10):  # type: ignore[no-untyped-def]
        calls.append(req.full_url)
        return _MockResponse(_SUCCESS_PAYLOAD)

    monkeypatch.setattr("app.services.calcom_api_client.request.urlopen", fake_urlopen)
    return calls


def test_post_available_slots_returns_formatted_slots(
    client: TestClient,
    provider_calls: list[str],
) -> None:
    response = client.post("/api/available-slots", json={"days": 3, "duration": 45})

    assert response.status_code == 200
    assert response.json() == {
        "status": "success",
        "slots": [
            {
                "date": "2025-04-21",
                "time": "2025-04-21T10:00:00Z",
                "formattedTime": "Monday, 3:30 PM",
            },
        ],
        "parameters": {"days": 3, "duration": 45},
    }
    assert len(provider_calls) == 1
    assert "duration=45" in provider_calls[0]


def test_post_without_body_uses_defaults(client: TestClient, provider_calls: list[str]) -> None:
    response = client.post("/api/available-slots")

    assert response.status_code == 200
    assert response.json()["parameters"] == {"days": 7, "duration": 30}


def test_post_with_non_numeric_days_falls_back_to_default(
    client: TestClient,
    provider_calls: list[str],
) -> None:
    response = client.post("/api/available-slots", json={"days": "abc"})

    assert response.status_code == 200
    assert response.json()["parameters"] == {"days": 7, "duration": 30}


def test_post_with_malformed_json_uses_defaults(
    client: TestClient,
    provider_calls: list[str],
) -> None:
    response = client.post(
        "/api/available-slots",
        content=b"{days: 3",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 200
    assert response.json()["parameters"] == {"days": 7, "duration": 30}


def test_get_available_slots_reads_query_parameters(
    client: TestClient,
    provider_calls: list[str],
) -> None:
    response = client.get("/api/v1/available-slots", params={"days": "2", "duration": "nope"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["parameters"] == {"days": 2, "duration": 30}
    assert payload["slots"][0]["formattedTime"] == "Monday, 3:30 PM"


def test_provider_failure_status_returns_500(
    monkeypatch: pytest.MonkeyPatch,
    client: TestClient,
) -> None:
    def fake_urlopen(req, timeout=10):  # type: ignore[no-untyped-def]
        return _MockResponse({"status": "failure", "data": {}})

    monkeypatch.setattr("app.services.calcom_api_client.request.urlopen", fake_urlopen)

    response = client.post("/api/available-slots", json={})

    assert response.status_code == 500
    payload = response.json()
    assert payload["status"] == "error"
    assert payload["message"] == "Failed to fetch slots"
    assert payload["error"] == "Failed to retrieve slots."


def test_transport_failure_returns_500(
    monkeypatch: pytest.MonkeyPatch,
    client: TestClient,
) -> None:
    def fake_urlopen(req, timeout=10):  # type: ignore[no-untyped-def]
        raise TimeoutError("timed out")

    monkeypatch.setattr("app.services.calcom_api_client.request.urlopen", fake_urlopen)

    response = client.get("/api/available-slots")

    assert response.status_code == 500
    assert response.json()["status"] == "error"


def test_missing_api_key_returns_500_without_calling_provider(
    monkeypatch: pytest.MonkeyPatch,
    client: TestClient,
    provider_calls: list[str],
) -> None:
    monkeypatch.setenv("CALCOM_API_KEY", "")
    get_settings.cache_clear()

    response = client.post("/api/available-slots")

    assert response.status_code == 500
    assert "CALCOM_API_KEY" in response.json()["error"]
    assert provider_calls == []


def test_unsupported_method_returns_405_without_calling_provider(
    client: TestClient,
    provider_calls: list[str],
) -> None:
    response = client.delete("/api/available-slots")

    assert response.status_code == 405
    assert response.json() == {"status": "error", "message": "Method not allowed"}
    assert provider_calls == []


def test_bare_options_request_returns_no_content(client: TestClient) -> None:
    response = client.options("/api/available-slots")

    assert response.status_code == 204
    assert response.content == b""


def test_cors_preflight_allows_any_origin(client: TestClient) -> None:
    response = client.options(
        "/api/available-slots",
        headers={
            "Origin": "https://agent.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 204
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"
    assert "POST" in response.headers["access-control-allow-methods"]
    assert response.headers["access-control-max-age"] == "86400"


def test_cors_headers_are_sent_on_success(client: TestClient, provider_calls: list[str]) -> None:
    response = client.post(
        "/api/available-slots",
        json={},
        headers={"Origin": "https://agent.example.com"},
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"


def test_unknown_path_keeps_default_not_found(client: TestClient) -> None:
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}


def test_bodiless_http_exceptions_keep_empty_response() -> None:
    request = Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/api/available-slots",
            "headers": [],
            "query_string": b"",
        },
    )

    response = asyncio.run(_handle_http_exception(request, StarletteHTTPException(status_code=304)))

    assert response.status_code == 304
    assert response.body == b""
