import math
import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

_LEADING_INTEGER = re.compile(r"^\s*([+-]?\d+)")


class FlatSlot(BaseModel):
    date: str
    time: str


class FormattedSlot(FlatSlot):
    model_config = ConfigDict(populate_by_name=True)

    formatted_time: str = Field(alias="formattedTime")


class AvailabilityParameters(BaseModel):
    days: int = Field(default=7, ge=0)
    duration: int = Field(default=30, gt=0)

    @classmethod
    def from_raw(
        cls,
        *,
        days: Any = None,
        duration: Any = None,
        default_days: int = 7,
        default_duration: int = 30,
    ) -> "AvailabilityParameters":
        parsed_days = _parse_int(days)
        parsed_duration = _parse_int(duration)
        return cls(
            days=parsed_days if parsed_days is not None and parsed_days >= 0 else default_days,
            duration=(
                parsed_duration
                if parsed_duration is not None and parsed_duration > 0
                else default_duration
            ),
        )


class AvailableSlotsResponse(BaseModel):
    status: Literal["success"] = "success"
    slots: list[FormattedSlot]
    parameters: AvailabilityParameters


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    message: str
    error: str | None = None


def _parse_int(raw_value: Any) -> int | None:
    if raw_value is None or isinstance(raw_value, bool):
        return None
    if isinstance(raw_value, int):
        return raw_value
    if isinstance(raw_value, float):
        if not math.isfinite(raw_value):
            return None
        return int(raw_value)
    if isinstance(raw_value, str):
        # "12 days" reads as 12.
        match = _LEADING_INTEGER.match(raw_value)
        if not match:
            return None
        return int(match.group(1))
    return None
