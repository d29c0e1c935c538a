import math
from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RETENTION_DAYS = 7.0
DEFAULT_SERIAL_BAUD = 115200
MS_PER_DAY = 24 * 60 * 60 * 1000


class Settings(BaseSettings):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    log_level: str = Field(default="INFO")
    retention_days: float = Field(default=DEFAULT_RETENTION_DAYS)
    prune_interval_seconds: int = Field(default=86400, ge=1, le=7 * 86400)
    readings_log_path: str = Field(default="readings.jsonl")
    segments_log_path: str = Field(default="uptime_stats.jsonl")
    serial_enabled: bool = Field(default=True)
    serial_port: str = Field(default="COM3")
    serial_baud: int = Field(default=DEFAULT_SERIAL_BAUD)
    serial_read_size: int = Field(default=256, ge=1, le=65536)
    serial_max_frame_chars: int = Field(default=65536, ge=64, le=16 * 1024 * 1024)
    serial_reconnect_min_seconds: float = Field(default=1.0, gt=0.0, le=300.0)
    serial_reconnect_max_seconds: float = Field(default=30.0, gt=0.0, le=3600.0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("retention_days", mode="before")
    @classmethod
    def _fallback_retention_days(cls, value: Any) -> float:
        parsed = _as_positive_float(value)
        return parsed if parsed is not None else DEFAULT_RETENTION_DAYS

    @field_validator("serial_baud", mode="before")
    @classmethod
    def _fallback_serial_baud(cls, value: Any) -> int:
        parsed = _as_positive_float(value)
        if parsed is None or parsed != int(parsed):
            return DEFAULT_SERIAL_BAUD
        return int(parsed)

    @property
    def retention_ms(self) -> int:
        return int(self.retention_days * MS_PER_DAY)


def _as_positive_float(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        parsed = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed) or parsed <= 0:
        return None
    return parsed


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
