from datetime import datetime, timezone
from typing import Any

_ONLINE_TEXT_VALUES = {"on", "1"}


def compute_online(power: Any) -> bool:
    if isinstance(power, bool):
        return power
    if isinstance(power, (int, float)):
        return power != 0
    if isinstance(power, str):
        return power.strip().lower() in _ONLINE_TEXT_VALUES
    return False


def reading_is_online(reading: dict[str, Any]) -> bool:
    return compute_online(reading.get("power"))


def format_ms(ms: int) -> str:
    total_seconds = max(0, int(ms)) // 1000
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def to_iso(value: datetime) -> str:
    return _to_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return _to_utc(value)
    if not isinstance(value, str):
        return None

    raw = value.strip()
    if raw == "":
        return None
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    return _to_utc(parsed)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
