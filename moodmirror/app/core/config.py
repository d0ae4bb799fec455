from __future__ import annotations

import os
from datetime import tzinfo
from functools import lru_cache
from pathlib import Path

import pytz
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from moodmirror.db import normalize_database_url


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/moodmirror.db",
        alias="DATABASE_URL",
        validate_default=True,
    )
    log_file: Path = Field(default=Path("logs/moodmirror.log"), validate_default=True)
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    timezone: str | None = Field(default=None, alias="TIMEZONE")
    request_timeout_seconds: float = Field(default=30.0, alias="REQUEST_TIMEOUT_SECONDS")

    # Gemini classifier
    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-3-flash-preview", alias="GEMINI_MODEL")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_BASE_URL",
    )
    gemini_temperature: float = Field(default=0.7, alias="GEMINI_TEMPERATURE")
    gemini_max_output_tokens: int = Field(default=1024, alias="GEMINI_MAX_OUTPUT_TOKENS")
    classifier_mode: str = Field(default="gemini", alias="CLASSIFIER_MODE")

    # Photo preparation
    image_max_dimension: int = Field(default=512, alias="IMAGE_MAX_DIMENSION")
    image_max_kb: int = Field(default=500, alias="IMAGE_MAX_KB")

    # Insight engine configuration
    insights_window_days: int = Field(default=30, alias="INSIGHTS_WINDOW_DAYS")
    insights_max_entries: int = Field(default=30, alias="INSIGHTS_MAX_ENTRIES")

    version: str = Field(default_factory=lambda: Settings._load_version())

    @staticmethod
    def _load_version() -> str:
        version_env = os.getenv("VERSION")
        if version_env:
            return version_env
        version_file = Path("VERSION")
        if version_file.exists():
            return version_file.read_text(encoding="utf-8").strip()
        return "0.0.0"

    @field_validator("log_file", mode="before")
    @classmethod
    def _validate_log_file(cls, value: Path | str) -> Path:
        path = Path(value)
        if not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        return path

    @field_validator("log_level", mode="before")
    @classmethod
    def _validate_log_level(cls, value: str | None) -> str:
        level = str(value or "INFO").upper()
        return level if level in {"DEBUG", "INFO", "WARNING", "ERROR"} else "INFO"

    @field_validator("timezone", mode="before")
    @classmethod
    def _validate_timezone(cls, value: str | None) -> str | None:
        if not value:
            return None
        try:
            pytz.timezone(str(value))
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown time zone: {value}") from exc
        return str(value)

    @field_validator("classifier_mode", mode="before")
    @classmethod
    def _validate_classifier_mode(cls, value: str | None) -> str:
        allowed = {"gemini", "offline"}
        if not value:
            return "gemini"
        normalized = str(value).lower()
        if normalized not in allowed:
            return "gemini"
        return normalized

    @field_validator("gemini_base_url", mode="before")
    @classmethod
    def _validate_base_url(cls, value: str | None) -> str:
        if not value:
            return "https://generativelanguage.googleapis.com/v1beta"
        return str(value).rstrip("/")

    @field_validator("image_max_dimension", mode="before")
    @classmethod
    def _validate_image_dimension(cls, value: int | str | None) -> int:
        if value is None:
            return 512
        return max(int(value), 64)

    @field_validator("image_max_kb", mode="before")
    @classmethod
    def _validate_image_max_kb(cls, value: int | str | None) -> int:
        if value is None:
            return 500
        return max(int(value), 16)

    @field_validator("insights_window_days", "insights_max_entries", mode="before")
    @classmethod
    def _validate_positive(cls, value: int | str | None) -> int:
        if value is None:
            return 30
        return max(int(value), 1)

    @field_validator("request_timeout_seconds", mode="before")
    @classmethod
    def _validate_timeout(cls, value: float | str | None) -> float:
        if value is None:
            return 30.0
        return max(float(value), 1.0)

    @field_validator("database_url", mode="before")
    @classmethod
    def _validate_database_url(cls, value: str | None) -> str:
        return normalize_database_url(value)

    @property
    def local_zone(self) -> tzinfo | None:
        """Zone used for day and hour buckets; ``None`` means the system local zone."""

        return pytz.timezone(self.timezone) if self.timezone else None

    @property
    def gemini_configured(self) -> bool:
        return bool(self.gemini_api_key)


@lru_cache
def get_settings() -> Settings:
    """Cached settings accessor."""

    return Settings()
