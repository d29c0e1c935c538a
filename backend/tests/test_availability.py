from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest import TestCase

from uptime_logger.services.availability import CumulativeStats, StateSegment, advance, elapsed_ms

T0 = datetime(2026, 10, 18, 8, 0, tzinfo=timezone.utc)


def _at(ms: int) -> datetime:
    return T0 + timedelta(milliseconds=ms)


class AdvanceTests(TestCase):
    def test_first_observation_only_seeds_state(self) -> None:
        stats = CumulativeStats()

        segment = advance(stats, True, T0)

        self.assertIsNone(segment)
        self.assertEqual(stats.total_online_ms, 0)
        self.assertEqual(stats.total_offline_ms, 0)
        self.assertTrue(stats.last_status)
        self.assertEqual(stats.last_timestamp, T0)

    def test_last_timestamp_text_keeps_given_text(self) -> None:
        stats = CumulativeStats()

        advance(stats, True, T0)
        self.assertEqual(stats.last_timestamp_text, "2026-10-18T08:00:00.000Z")

        advance(stats, True, _at(5), "2026-10-18T08:00:00.005000+00:00")
        self.assertEqual(stats.last_timestamp_text, "2026-10-18T08:00:00.005000+00:00")
        self.assertEqual(stats.copy().last_timestamp_text, "2026-10-18T08:00:00.005000+00:00")

    def test_elapsed_time_is_credited_to_previous_status(self) -> None:
        stats = CumulativeStats()
        advance(stats, False, T0)

        advance(stats, False, _at(2000))
        advance(stats, True, _at(5000))
        advance(stats, True, _at(7500))

        self.assertEqual(stats.total_offline_ms, 5000)
        self.assertEqual(stats.total_online_ms, 2500)

    def test_transition_emits_segment_for_previous_status(self) -> None:
        stats = CumulativeStats()
        advance(stats, True, T0)

        segment = advance(stats, False, _at(4000))

        self.assertEqual(
            segment,
            StateSegment(status="online", start_at=T0, end_at=_at(4000), duration_ms=4000),
        )
        self.assertFalse(stats.last_status)

    def test_same_status_emits_nothing(self) -> None:
        stats = CumulativeStats()
        advance(stats, True, T0)

        self.assertIsNone(advance(stats, True, _at(1000)))

    def test_zero_length_transition_emits_nothing(self) -> None:
        stats = CumulativeStats()
        advance(stats, True, T0)

        segment = advance(stats, False, T0)

        self.assertIsNone(segment)
        self.assertFalse(stats.last_status)

    def test_backwards_timestamp_is_clamped(self) -> None:
        stats = CumulativeStats()
        advance(stats, True, _at(10_000))

        segment = advance(stats, False, _at(4000))

        self.assertIsNone(segment)
        self.assertEqual(stats.total_online_ms, 0)
        self.assertEqual(stats.last_timestamp, _at(4000))

    def test_elapsed_ms_truncates_to_whole_millis(self) -> None:
        self.assertEqual(elapsed_ms(T0, T0 + timedelta(microseconds=1999)), 1)
        self.assertEqual(elapsed_ms(T0 + timedelta(seconds=1), T0), 0)


class SegmentRecordTests(TestCase):
    def test_record_carries_snapshot_and_hms(self) -> None:
        segment = StateSegment(status="offline", start_at=T0, end_at=_at(3661000), duration_ms=3661000)

        record = segment.to_record(snapshot_at=_at(3662000))

        self.assertEqual(
            record,
            {
                "snapshot_at": "2026-10-18T09:01:02.000Z",
                "status": "offline",
                "start_at": "2026-10-18T08:00:00.000Z",
                "end_at": "2026-10-18T09:01:01.000Z",
                "duration_ms": 3661000,
                "duration_hms": "01:01:01",
            },
        )
