from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from app.core.config import Settings
from app.schemas.availability import (
    AvailabilityParameters,
    AvailableSlotsResponse,
    FlatSlot,
    FormattedSlot,
)
from app.services.calcom_api_client import CalComApiClient, CalComApiError
from app.services.conversational_formatter import (
    DEFAULT_DISPLAY_TIMEZONE,
    format_to_conversational_date,
    resolve_timezone,
)


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    @property
    def start_time(self) -> str:
        return _to_iso_utc(self.start)

    @property
    def end_time(self) -> str:
        return _to_iso_utc(self.end)


def build_time_window(
    days_ahead: int,
    now: datetime | None = None,
    timezone_name: str = DEFAULT_DISPLAY_TIMEZONE,
) -> TimeWindow:
    """
    Window from ``now`` to the same wall-clock time ``days_ahead`` days later.

    Days are added on the calendar of ``timezone_name`` so a DST change inside
    the window keeps the local clock time instead of the elapsed hours.
    """
    if days_ahead < 0:
        raise ValueError("days_ahead must be zero or greater.")

    start = (now or datetime.now(UTC)).astimezone(UTC)
    local_zone = resolve_timezone(timezone_name)
    local_start = start.astimezone(local_zone)
    local_end = (local_start.replace(tzinfo=None) + timedelta(days=days_ahead)).replace(
        tzinfo=local_zone,
    )
    return TimeWindow(start=start, end=local_end.astimezone(UTC))


def flatten_slots(slots_by_date: Mapping[str, Any]) -> list[FlatSlot]:
    flattened: list[FlatSlot] = []
    for slot_date, raw_slots in slots_by_date.items():
        if not isinstance(raw_slots, list):
            continue
        for raw_slot in raw_slots:
            if not isinstance(raw_slot, Mapping):
                continue
            slot_time = raw_slot.get("time")
            if not isinstance(slot_time, str):
                continue
            flattened.append(FlatSlot(date=str(slot_date), time=slot_time))
    return flattened


class AvailabilityService:
    def __init__(self, settings: Settings, client: CalComApiClient | None = None) -> None:
        self.settings = settings
        self.client = client or CalComApiClient(
            api_url=settings.calcom_api_url,
            api_key=settings.calcom_api_key,
            timeout_seconds=settings.calcom_api_timeout_seconds,
            user_agent=settings.calcom_api_user_agent,
        )

    def fetch_available_slots(self, days_ahead: int = 7, duration: int = 30) -> list[FlatSlot]:
        if duration <= 0:
            raise ValueError("duration must be greater than zero.")
        if not self.settings.calcom_api_key:
            raise CalComApiError("CALCOM_API_KEY is not configured.")

        window = build_time_window(
            days_ahead,
            timezone_name=self.settings.slots_display_timezone,
        )
        payload = self.client.fetch_available_slots(
            start_time=window.start_time,
            end_time=window.end_time,
            event_type_id=self.settings.calcom_event_type_id,
            event_type_slug=self.settings.calcom_event_type_slug,
            duration_minutes=duration,
        )
        return flatten_slots(payload["data"]["slots"])

    def list_available_slots(self, parameters: AvailabilityParameters) -> AvailableSlotsResponse:
        slots = self.fetch_available_slots(
            days_ahead=parameters.days,
            duration=parameters.duration,
        )
        return AvailableSlotsResponse(
            slots=[
                FormattedSlot(
                    date=slot.date,
                    time=slot.time,
                    formatted_time=format_to_conversational_date(
                        slot.time,
                        self.settings.slots_display_timezone,
                    ),
                )
                for slot in slots
            ],
            parameters=parameters,
        )

    def build_parameters(self, *, days: Any = None, duration: Any = None) -> AvailabilityParameters:
        return AvailabilityParameters.from_raw(
            days=days,
            duration=duration,
            default_days=self.settings.slots_default_days,
            default_duration=self.settings.slots_default_duration_minutes,
        )


def _to_iso_utc(value: datetime) -> str:
    return value.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
