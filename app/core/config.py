from functools import lru_cache
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Cal Slots Proxy"
    app_env: str = "development"
    app_version: str = "0.1.0"
    api_prefix: str = "/api"
    allowed_origins: Annotated[list[str], NoDecode] = ["*"]
    calcom_api_url: str = "https://api.cal.com/v2"
    calcom_api_key: str = ""
    calcom_api_timeout_seconds: float = 10.0
    calcom_api_user_agent: str = "CalSlotsProxy/1.0"
    calcom_event_type_id: int = 2317091
    calcom_event_type_slug: str = "ai-voice-agent-demo-meeting"
    slots_display_timezone: str = "Asia/Kolkata"
    slots_default_days: int = 7
    slots_default_duration_minutes: int = 30

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("calcom_api_key", "calcom_event_type_slug", mode="before")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip() if isinstance(value, str) else value

    @field_validator("calcom_api_timeout_seconds", mode="before")
    @classmethod
    def normalize_calcom_timeout(cls, value: float | str) -> float:
        parsed_value = float(value)
        if parsed_value <= 0:
            return 10.0
        return parsed_value

    @field_validator("slots_default_days", mode="before")
    @classmethod
    def normalize_default_days(cls, value: int | str) -> int:
        parsed_value = int(value)
        if parsed_value < 0:
            return 7
        return parsed_value

    @field_validator("slots_default_duration_minutes", mode="before")
    @classmethod
    def normalize_default_duration(cls, value: int | str) -> int:
        parsed_value = int(value)
        if parsed_value <= 0:
            return 30
        return parsed_value


@lru_cache
def get_settings() -> Settings:
    return Settings()
