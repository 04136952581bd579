import http.client
import json
from typing import Any
from urllib import error, parse, request


class CalComApiError(Exception):
    pass


class CalComTransportError(CalComApiError):
    pass


class CalComProviderError(CalComApiError):
    pass


class CalComApiClient:
    def __init__(
        self,
        api_url: str,
        api_key: str,
        timeout_seconds: float = 10.0,
        user_agent: str = "CalSlotsProxy/1.0",
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent

    def fetch_available_slots(
        self,
        *,
        start_time: str,
        end_time: str,
        event_type_id: int,
        event_type_slug: str,
        duration_minutes: int,
    ) -> dict[str, Any]:
        """
        Queries Cal.com for open slots and returns the decoded response once its
        status and ``data.slots`` shape have been checked.
        """
        query = parse.urlencode(
            [
                ("startTime", start_time),
                ("endTime", end_time),
                ("eventTypeId", str(event_type_id)),
                ("eventTypeSlug", event_type_slug),
                ("duration", str(duration_minutes)),
            ],
        )
        payload = self._request_json("GET", f"/slots/available?{query}")

        if payload.get("status") != "success":
            raise CalComProviderError("Failed to retrieve slots.")

        data = payload.get("data")
        if not isinstance(data, dict) or not isinstance(data.get("slots"), dict):
            raise CalComProviderError("Cal.com slots response missing data.slots.")
        return payload

    def _request_json(self, method: str, path: str) -> dict[str, Any]:
        req = request.Request(
            f"{self.api_url}{path}",
            method=method,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": self.user_agent,
            },
        )

        try:
            with request.urlopen(req, timeout=self.timeout_seconds) as response:
                response_body = response.read()
        except TimeoutError as exc:
            raise CalComTransportError("Cal.com API request timed out.") from exc
        except error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="ignore")
            raise CalComProviderError(
                f"Cal.com API HTTP {exc.code}: {body or 'empty response body'}",
            ) from exc
        except error.URLError as exc:
            raise CalComTransportError(f"Cal.com API connection error: {exc.reason}") from exc
        except (OSError, http.client.HTTPException) as exc:
            raise CalComTransportError(f"Cal.com API response could not be read: {exc!r}") from exc

        try:
            parsed_body = json.loads(response_body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CalComTransportError("Cal.com API returned invalid JSON.") from exc

        if not isinstance(parsed_body, dict):
            raise CalComTransportError("Cal.com API response is not a JSON object.")
        return parsed_body
