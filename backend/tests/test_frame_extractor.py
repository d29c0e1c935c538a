from __future__ import annotations

from unittest import TestCase

from uptime_logger.services.frame_extractor import FrameExtractor


class FrameExtractorTests(TestCase):
    def test_partial_frame_completes_on_next_chunk(self) -> None:
        extractor = FrameExtractor()

        first = extractor.feed(b'garbage{"power":1}{"pow')
        self.assertEqual(first, [{"power": 1}])
        self.assertEqual(extractor.pending, '{"pow')

        second = extractor.feed(b'er":0}')
        self.assertEqual(second, [{"power": 0}])
        self.assertEqual(extractor.pending, "")

    def test_malformed_frame_does_not_block_following_frames(self) -> None:
        extractor = FrameExtractor()

        with self.assertLogs("uptime_logger.frame_extractor", level="WARNING"):
            records = extractor.feed('{power:1}\r\n{"power":"on"}\r\n')

        self.assertEqual(records, [{"power": "on"}])
        self.assertEqual(extractor.frames_rejected, 1)
        self.assertEqual(extractor.frames_accepted, 1)

    def test_nested_objects_are_one_frame(self) -> None:
        extractor = FrameExtractor()

        records = extractor.feed('{"power":1,"meta":{"rssi":-60}}noise{"power":0}')

        self.assertEqual(records, [{"power": 1, "meta": {"rssi": -60}}, {"power": 0}])

    def test_noise_without_frame_clears_buffer(self) -> None:
        extractor = FrameExtractor()

        self.assertEqual(extractor.feed(b"boot ok\r\nready\r\n"), [])
        self.assertEqual(extractor.pending, "")

    def test_stray_closing_brace_before_frame_is_discarded(self) -> None:
        extractor = FrameExtractor()

        self.assertEqual(extractor.feed('}}{"power":true}'), [{"power": True}])

    def test_multibyte_character_split_across_chunks(self) -> None:
        extractor = FrameExtractor()
        encoded = '{"device":"Prässe","power":1}'.encode("utf-8")
        split_at = encoded.index(b"\xc3") + 1

        self.assertEqual(extractor.feed(encoded[:split_at]), [])
        self.assertEqual(extractor.feed(encoded[split_at:]), [{"device": "Prässe", "power": 1}])

    def test_reset_drops_partial_frame(self) -> None:
        extractor = FrameExtractor()
        extractor.feed('{"power":')

        extractor.reset()

        self.assertEqual(extractor.pending, "")
        self.assertEqual(extractor.feed("1}"), [])

    def test_unterminated_frame_over_limit_is_discarded(self) -> None:
        extractor = FrameExtractor(max_buffer_chars=64)

        self.assertEqual(extractor.feed('{"power":1,"note":"'), [])
        with self.assertLogs("uptime_logger.frame_extractor", level="WARNING"):
            self.assertEqual(extractor.feed("x" * 80), [])

        self.assertEqual(extractor.pending, "")
        self.assertEqual(extractor.frames_rejected, 1)
        self.assertEqual(extractor.feed('"}{"power":0}'), [{"power": 0}])
