import logging
from datetime import UTC, datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

INVALID_DATE = "Invalid Date"
DEFAULT_DISPLAY_TIMEZONE = "Asia/Kolkata"
INDIA_STANDARD_TIME = timezone(timedelta(hours=5, minutes=30), "IST")

_WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def format_to_conversational_date(
    timestamp: str,
    timezone_name: str = DEFAULT_DISPLAY_TIMEZONE,
) -> str:
    """
    Renders an ISO timestamp as "Monday, 3:30 PM" in the display timezone.

    Never raises: anything that cannot be parsed or rendered becomes "Invalid Date".
    """
    parsed = parse_timestamp(timestamp)
    if parsed is None:
        logger.warning("Invalid date string format: %r", timestamp)
        return INVALID_DATE

    try:
        local_value = parsed.astimezone(resolve_timezone(timezone_name))
        hour_12 = local_value.hour % 12 or 12
        meridiem = "AM" if local_value.hour < 12 else "PM"
        weekday = _WEEKDAY_NAMES[local_value.weekday()]
        return f"{weekday}, {hour_12}:{local_value.minute:02d} {meridiem}"
    except Exception:
        logger.exception("Error formatting date: %r", timestamp)
        return INVALID_DATE


def parse_timestamp(raw_value: object) -> datetime | None:
    if not isinstance(raw_value, str):
        return None
    cleaned = raw_value.strip()
    if not cleaned:
        return None
    normalized = cleaned[:-1] + "+00:00" if cleaned[-1] in {"Z", "z"} else cleaned
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        # Values without an offset are read as UTC.
        return parsed.replace(tzinfo=UTC)
    return parsed


def resolve_timezone(timezone_name: str) -> tzinfo:
    cleaned = (timezone_name or "").strip()
    if cleaned.upper() in {"UTC", "GMT"}:
        return UTC
    if not cleaned:
        return INDIA_STANDARD_TIME
    try:
        return ZoneInfo(cleaned)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown display timezone %r, using IST", cleaned)
        return INDIA_STANDARD_TIME
