from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime
from threading import RLock
from typing import Any

from uptime_logger.repositories.jsonl_log import JsonlLog
from uptime_logger.services.availability import CumulativeStats, advance
from uptime_logger.services.status import (
    format_ms,
    parse_timestamp,
    reading_is_online,
    to_iso,
    utc_now,
)


class AvailabilityAggregator:
    """Owns the process-wide availability totals.

    Every mutation (incremental reading, full recompute, reset) goes through
    the same re-entrant lock, so a recompute can never interleave with an
    in-flight reading.
    """

    def __init__(self, *, readings_log: JsonlLog, segments_log: JsonlLog):
        self._readings_log = readings_log
        self._segments_log = segments_log
        self._logger = logging.getLogger("uptime_logger.aggregator")
        self._lock = RLock()
        self._stats = CumulativeStats()

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            yield

    def apply_reading(
        self,
        reading: dict[str, Any],
        *,
        received_at: datetime | None = None,
    ) -> dict[str, Any]:
        with self._lock:
            stamped_at = to_iso(received_at or utc_now())
            stamped = {**reading, "timestamp": stamped_at}
            ts = parse_timestamp(stamped_at)

            next_stats = self._stats.copy()
            segment = advance(next_stats, reading_is_online(stamped), ts, stamped_at)

            # the reading must be durable before the totals move
            self._readings_log.append(stamped)
            self._stats = next_stats

            if segment is not None:
                self._segments_log.append(segment.to_record(snapshot_at=utc_now()))
                self._logger.info(
                    "status changed previous=%s duration_ms=%s start_at=%s end_at=%s",
                    segment.status,
                    segment.duration_ms,
                    to_iso(segment.start_at),
                    to_iso(segment.end_at),
                )
            return stamped

    def recompute(self, readings: Iterable[dict[str, Any]]) -> CumulativeStats:
        timeline: list[tuple[datetime, bool, str]] = []
        skipped = 0
        for reading in readings:
            raw = reading.get("timestamp")
            ts = parse_timestamp(raw)
            if ts is None:
                skipped += 1
                continue
            timeline.append((ts, reading_is_online(reading), raw if isinstance(raw, str) else to_iso(ts)))
        # stable: equal timestamps keep log order
        timeline.sort(key=lambda item: item[0])

        rebuilt = CumulativeStats()
        for ts, online, ts_text in timeline:
            advance(rebuilt, online, ts, ts_text)

        with self._lock:
            self._stats = rebuilt
        self._logger.info(
            "recomputed stats readings=%s skipped=%s online_ms=%s offline_ms=%s",
            len(timeline),
            skipped,
            rebuilt.total_online_ms,
            rebuilt.total_offline_ms,
        )
        return rebuilt.copy()

    def reset(self) -> None:
        with self._lock:
            self._stats = CumulativeStats()

    def load_from_log(self) -> CumulativeStats:
        with self._lock:
            return self.recompute(self._readings_log.read_records())

    def snapshot(self) -> CumulativeStats:
        with self._lock:
            return self._stats.copy()

    def stats_payload(self) -> dict[str, Any]:
        stats = self.snapshot()
        return {
            "total_online_ms": stats.total_online_ms,
            "total_online_hms": format_ms(stats.total_online_ms),
            "total_offline_ms": stats.total_offline_ms,
            "total_offline_hms": format_ms(stats.total_offline_ms),
            "last_status": stats.last_status,
            "last_timestamp": stats.last_timestamp_text,
        }
