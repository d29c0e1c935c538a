from __future__ import annotations

import tempfile
from pathlib import Path
from unittest import TestCase

from uptime_logger.repositories.jsonl_log import JsonlLog, parse_lines


class JsonlLogTests(TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "nested" / "readings.jsonl"
        self.log = JsonlLog(self.path)

    def test_missing_file_reads_as_empty(self) -> None:
        self.assertEqual(self.log.read_records(), [])

    def test_append_writes_one_compact_line_per_record(self) -> None:
        self.log.append({"power": 1, "timestamp": "2026-10-18T08:00:00.000Z"})
        self.log.append({"power": "off", "device": "press"})

        lines = self.path.read_text(encoding="utf-8").splitlines()
        self.assertEqual(
            lines,
            [
                '{"power":1,"timestamp":"2026-10-18T08:00:00.000Z"}',
                '{"power":"off","device":"press"}',
            ],
        )
        self.assertEqual(len(self.log.read_records()), 2)

    def test_corrupt_and_non_object_lines_are_dropped(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text('{"a":1}\nnot json\n\n[1,2]\n{"b":2}\n', encoding="utf-8")

        self.assertEqual(self.log.read_records(), [{"a": 1}, {"b": 2}])

    def test_rewrite_replaces_content(self) -> None:
        self.log.append({"a": 1})

        self.log.rewrite([{"b": 2}, {"c": 3}])

        self.assertEqual(self.log.read_records(), [{"b": 2}, {"c": 3}])
        self.assertEqual(list(self.path.parent.glob("*.tmp")), [])

    def test_rewrite_with_nothing_truncates(self) -> None:
        self.log.append({"a": 1})

        self.log.rewrite([])

        self.assertEqual(self.path.read_text(encoding="utf-8"), "")

    def test_prune_keeps_matching_records_and_is_idempotent(self) -> None:
        for value in range(6):
            self.log.append({"n": value})

        kept = self.log.prune(lambda record: record["n"] % 2 == 0)
        again = self.log.prune(lambda record: record["n"] % 2 == 0)

        self.assertEqual(kept, [{"n": 0}, {"n": 2}, {"n": 4}])
        self.assertEqual(again, kept)
        self.assertEqual(self.log.read_records(), kept)

    def test_parse_lines_handles_crlf(self) -> None:
        self.assertEqual(parse_lines('{"a":1}\r\n{"b":2}\r\n'), [{"a": 1}, {"b": 2}])
