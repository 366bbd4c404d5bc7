from __future__ import annotations
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    DATABASE_URL: str = "sqlite:///./classplan.db"
    # comma separated
    BACKEND_CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    # IANA zone used when a series is created without one
    DEFAULT_TIMEZONE: str = "Asia/Tokyo"

    # how far ahead of the watermark a generation run materializes occurrences
    GENERATION_LEAD_DAYS: int = 30
    PREVIEW_HORIZON_DAYS: int = 30
    MAX_PREVIEW_HORIZON_DAYS: int = 186

    @field_validator("GENERATION_LEAD_DAYS", "PREVIEW_HORIZON_DAYS", "MAX_PREVIEW_HORIZON_DAYS")
    @classmethod
    def at_least_one_day(cls, v: int) -> int:
        return max(1, v)

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.BACKEND_CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
