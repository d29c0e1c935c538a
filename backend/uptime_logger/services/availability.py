from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Literal

from uptime_logger.services.status import format_ms, to_iso

SegmentStatus = Literal["online", "offline"]

_ONE_MS = timedelta(milliseconds=1)


@dataclass
class CumulativeStats:
    total_online_ms: int = 0
    total_offline_ms: int = 0
    last_status: bool | None = None
    last_timestamp: datetime | None = None
    # exact text of the last timestamp, so reports echo it unchanged
    last_timestamp_text: str | None = None

    @property
    def is_unset(self) -> bool:
        return self.last_status is None or self.last_timestamp is None

    def copy(self) -> CumulativeStats:
        return CumulativeStats(
            total_online_ms=self.total_online_ms,
            total_offline_ms=self.total_offline_ms,
            last_status=self.last_status,
            last_timestamp=self.last_timestamp,
            last_timestamp_text=self.last_timestamp_text,
        )


@dataclass(frozen=True)
class StateSegment:
    status: SegmentStatus
    start_at: datetime
    end_at: datetime
    duration_ms: int

    def to_record(self, *, snapshot_at: datetime) -> dict[str, Any]:
        return {
            "snapshot_at": to_iso(snapshot_at),
            "status": self.status,
            "start_at": to_iso(self.start_at),
            "end_at": to_iso(self.end_at),
            "duration_ms": self.duration_ms,
            "duration_hms": format_ms(self.duration_ms),
        }


def elapsed_ms(start: datetime, end: datetime) -> int:
    """Whole milliseconds from start to end, clamped at zero for skewed clocks."""
    return max(0, (end - start) // _ONE_MS)


def advance(
    stats: CumulativeStats,
    online: bool,
    ts: datetime,
    ts_text: str | None = None,
) -> StateSegment | None:
    """Fold one status observation into stats.

    The elapsed time since the previous observation is credited to the
    previous status. A segment for the previous status is returned when the
    status flips after a non-zero interval; at most one per observation.
    """
    if stats.is_unset:
        stats.last_status = online
        stats.last_timestamp = ts
        stats.last_timestamp_text = ts_text if ts_text is not None else to_iso(ts)
        return None

    previous_status = bool(stats.last_status)
    previous_ts = stats.last_timestamp
    delta = elapsed_ms(previous_ts, ts)
    if previous_status:
        stats.total_online_ms += delta
    else:
        stats.total_offline_ms += delta

    segment: StateSegment | None = None
    if online != previous_status and delta > 0:
        segment = StateSegment(
            status="online" if previous_status else "offline",
            start_at=previous_ts,
            end_at=ts,
            duration_ms=delta,
        )

    stats.last_status = online
    stats.last_timestamp = ts
    stats.last_timestamp_text = ts_text if ts_text is not None else to_iso(ts)
    return segment
