from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Callable, Iterable
from pathlib import Path
from threading import Lock
from typing import Any

Record = dict[str, Any]


def dumps_record(record: Record) -> str:
    return json.dumps(record, separators=(",", ":"), ensure_ascii=True)


def parse_lines(text: str) -> list[Record]:
    records: list[Record] = []
    for line in text.splitlines():
        stripped = line.strip()
        if stripped == "":
            continue
        try:
            decoded = json.loads(stripped)
        except json.JSONDecodeError:
            continue
        if isinstance(decoded, dict):
            records.append(decoded)
    return records


class JsonlLog:
    """Newline-delimited JSON file with one record per line.

    Appends and whole-file rewrites are serialized on a per-instance lock, so
    one instance should own each path for the lifetime of the process.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = Lock()
        self._logger = logging.getLogger("uptime_logger.jsonl_log")

    def append(self, record: Record) -> None:
        line = dumps_record(record) + "\n"
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line)

    def read_records(self) -> list[Record]:
        with self._lock:
            return self._read_unlocked()

    def rewrite(self, records: Iterable[Record]) -> None:
        with self._lock:
            self._rewrite_unlocked(list(records))

    def prune(self, keep: Callable[[Record], bool]) -> list[Record]:
        with self._lock:
            records = self._read_unlocked()
            kept = [record for record in records if keep(record)]
            self._rewrite_unlocked(kept)
        self._logger.info(
            "pruned log path=%s read=%s kept=%s",
            self.path,
            len(records),
            len(kept),
        )
        return kept

    def _read_unlocked(self) -> list[Record]:
        try:
            text = self.path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return []
        return parse_lines(text)

    def _rewrite_unlocked(self, records: list[Record]) -> None:
        payload = "".join(dumps_record(record) + "\n" for record in records)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            dir=str(self.path.parent),
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except Exception:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise
