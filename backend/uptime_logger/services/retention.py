from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from threading import Event, Lock, Thread
from typing import Any

from uptime_logger.core.config import Settings
from uptime_logger.repositories.jsonl_log import JsonlLog, Record
from uptime_logger.services.aggregator import AvailabilityAggregator
from uptime_logger.services.status import parse_timestamp, to_iso


def keep_since(field: str, cutoff: datetime):
    def _keep(record: Record) -> bool:
        ts = parse_timestamp(record.get(field))
        return ts is not None and ts >= cutoff

    return _keep


class RetentionService:
    def __init__(
        self,
        *,
        settings: Settings,
        aggregator: AvailabilityAggregator,
        readings_log: JsonlLog,
        segments_log: JsonlLog,
    ):
        self._settings = settings
        self._aggregator = aggregator
        self._readings_log = readings_log
        self._segments_log = segments_log
        self._logger = logging.getLogger("uptime_logger.retention")
        self._stop_event = Event()
        self._thread: Thread | None = None
        self._lock = Lock()
        self._running = False
        self._last_attempt_ts: datetime | None = None
        self._last_run: dict[str, Any] | None = None
        self._last_error: str | None = None

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name="retention", daemon=True)
        self._thread.start()
        self._logger.info(
            "started retention retention_days=%s interval_seconds=%s",
            self._settings.retention_days,
            self._settings.prune_interval_seconds,
        )

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        with self._lock:
            self._running = False

    def prune_once(self, now: datetime | None = None) -> dict[str, Any]:
        reference = now or datetime.now(timezone.utc)
        cutoff = reference - timedelta(milliseconds=self._settings.retention_ms)
        with self._lock:
            self._last_attempt_ts = datetime.now(timezone.utc)

        with self._aggregator.locked():
            kept_readings = self._readings_log.prune(keep_since("timestamp", cutoff))
            if kept_readings:
                self._aggregator.recompute(kept_readings)
            else:
                self._aggregator.reset()

        kept_segments = self._segments_log.prune(keep_since("snapshot_at", cutoff))

        result = {
            "cutoff": to_iso(cutoff),
            "readings_kept": len(kept_readings),
            "segments_kept": len(kept_segments),
        }
        with self._lock:
            self._last_run = result
        self._logger.info(
            "retention pass cutoff=%s readings_kept=%s segments_kept=%s",
            result["cutoff"],
            result["readings_kept"],
            result["segments_kept"],
        )
        return result

    def get_status_snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "running": self._running and not self._stop_event.is_set(),
                "retention_days": self._settings.retention_days,
                "interval_seconds": self._settings.prune_interval_seconds,
                "last_attempt_ts": _to_iso(self._last_attempt_ts),
                "last_run": dict(self._last_run) if self._last_run else None,
                "last_error": self._last_error,
            }

    def _loop(self) -> None:
        # the startup pass runs inline in the app lifespan
        interval = timedelta(seconds=self._settings.prune_interval_seconds)
        next_run = datetime.now(timezone.utc) + interval

        while not self._stop_event.is_set():
            now = datetime.now(timezone.utc)
            if now >= next_run:
                next_run = now + interval
                try:
                    self.prune_once(now)
                    with self._lock:
                        self._last_error = None
                except Exception as exc:
                    self._logger.exception("retention pass failed")
                    with self._lock:
                        self._last_error = str(exc)

            self._stop_event.wait(1.0)


def _to_iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
