from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import Event, Lock, Thread
from typing import Any

import serial

from uptime_logger.core.config import Settings
from uptime_logger.services.aggregator import AvailabilityAggregator
from uptime_logger.services.frame_extractor import FrameExtractor


class SerialIngestService:
    def __init__(self, *, settings: Settings, aggregator: AvailabilityAggregator):
        self._settings = settings
        self._aggregator = aggregator
        self._logger = logging.getLogger("uptime_logger.serial_ingest")
        self._extractor = FrameExtractor(
            logger=self._logger,
            max_buffer_chars=settings.serial_max_frame_chars,
        )
        self._stop_event = Event()
        self._thread: Thread | None = None
        self._lock = Lock()
        self._running = False
        self._connected = False
        self._port: serial.SerialBase | None = None
        self._readings_saved = 0
        self._last_reading_ts: datetime | None = None
        self._last_error: str | None = None

    def start(self) -> None:
        if not self._settings.serial_enabled:
            self._logger.info("serial ingest disabled")
            return
        with self._lock:
            if self._running:
                return
            self._running = True
        self._stop_event.clear()
        self._thread = Thread(target=self._loop, name="serial-ingest", daemon=True)
        self._thread.start()
        self._logger.info(
            "started serial ingest port=%s baud=%s",
            self._settings.serial_port,
            self._settings.serial_baud,
        )

    def stop(self) -> None:
        # the read timeout bounds how long the worker takes to notice
        self._stop_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        with self._lock:
            self._running = False

    def handle_chunk(self, chunk: bytes | str) -> int:
        saved = 0
        for record in self._extractor.feed(chunk):
            try:
                stamped = self._aggregator.apply_reading(record)
            except Exception as exc:
                # one bad record must not take the rest of the chunk with it
                self._logger.exception("failed to persist serial reading record=%r", record)
                with self._lock:
                    self._last_error = str(exc)
                continue
            saved += 1
            self._logger.info("saved serial reading timestamp=%s", stamped["timestamp"])
            with self._lock:
                self._readings_saved += 1
                self._last_reading_ts = datetime.now(timezone.utc)
        return saved

    def get_status_snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "enabled": self._settings.serial_enabled,
                "running": self._running and not self._stop_event.is_set(),
                "connected": self._connected,
                "port": self._settings.serial_port,
                "baud": self._settings.serial_baud,
                "readings_saved": self._readings_saved,
                "frames_accepted": self._extractor.frames_accepted,
                "frames_rejected": self._extractor.frames_rejected,
                "last_reading_ts": self._last_reading_ts.isoformat() if self._last_reading_ts else None,
                "last_error": self._last_error,
            }

    def _loop(self) -> None:
        delay = self._settings.serial_reconnect_min_seconds
        while not self._stop_event.is_set():
            try:
                self._open_port()
                delay = self._settings.serial_reconnect_min_seconds
                self._read_until_stopped()
            except (serial.SerialException, OSError) as exc:
                self._logger.error(
                    "serial port error port=%s error=%s retry_in=%ss",
                    self._settings.serial_port,
                    exc,
                    delay,
                )
                with self._lock:
                    self._last_error = str(exc)
            except Exception as exc:
                self._logger.exception("serial ingest loop iteration failed")
                with self._lock:
                    self._last_error = str(exc)
            finally:
                self._close_port()

            if self._stop_event.wait(delay):
                break
            delay = min(delay * 2, self._settings.serial_reconnect_max_seconds)

    def _open_port(self) -> None:
        port = serial.serial_for_url(
            self._settings.serial_port,
            baudrate=self._settings.serial_baud,
            timeout=1,
        )
        self._extractor.reset()
        with self._lock:
            self._port = port
            self._connected = True
            self._last_error = None
        self._logger.info(
            "serial listening on %s @ %s",
            self._settings.serial_port,
            self._settings.serial_baud,
        )

    def _read_until_stopped(self) -> None:
        while not self._stop_event.is_set():
            with self._lock:
                port = self._port
            if port is None:
                return
            chunk = port.read(self._settings.serial_read_size)
            if chunk:
                self.handle_chunk(chunk)

    def _close_port(self) -> None:
        with self._lock:
            port = self._port
            self._port = None
            self._connected = False
        if port is None:
            return
        try:
            port.close()
        except (serial.SerialException, OSError):
            self._logger.exception("serial port close failed port=%s", self._settings.serial_port)
