"""
Application settings, read from ``ROOMBOOKER_*`` environment variables
(or a ``.env`` file) and validated by pydantic-settings.
"""

from datetime import datetime
from functools import lru_cache
from typing import Literal

from pydantic import PositiveFloat, PositiveInt, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ROOMBOOKER_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    app_name: str = "Room booker"
    app_version: str = "1.0.0"
    database_url: str = "sqlite:///./data/rooms_booking.db"

    secret_key: str = "dev-secret-key-change-in-production"
    token_algorithm: str = "HS256"
    access_token_expire_minutes: PositiveInt = 30

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    history_retention_limit: PositiveInt = 1000

    working_day_start: str = "08:00"
    working_day_end: str = "22:00"
    slot_step_minutes: PositiveInt = 30
    lock_timeout_seconds: PositiveFloat = 10.0

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value

    @field_validator("working_day_start", "working_day_end")
    @classmethod
    def check_clock_time(cls, value: str) -> str:
        return datetime.strptime(value, "%H:%M").strftime("%H:%M")

    @model_validator(mode="after")
    def check_working_day(self):
        if self.working_day_start >= self.working_day_end:
            raise ValueError("working_day_start must be before working_day_end")
        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()
