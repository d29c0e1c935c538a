from __future__ import annotations

import codecs
import json
import logging
from typing import Any

DEFAULT_MAX_BUFFER_CHARS = 65536


class FrameExtractor:
    """Pulls brace-balanced JSON objects out of a continuous character stream.

    Anything outside a frame is noise and is dropped. A frame split across
    chunks stays buffered until its closing brace arrives. Braces inside
    string literals are counted like any other brace. An unterminated frame
    longer than max_buffer_chars is discarded.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger | None = None,
        max_buffer_chars: int = DEFAULT_MAX_BUFFER_CHARS,
    ):
        self._buffer = ""
        self._max_buffer_chars = max_buffer_chars
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._logger = logger or logging.getLogger("uptime_logger.frame_extractor")
        self.frames_accepted = 0
        self.frames_rejected = 0

    @property
    def pending(self) -> str:
        return self._buffer

    def reset(self) -> None:
        self._buffer = ""
        self._decoder.reset()

    def feed(self, chunk: bytes | str) -> list[dict[str, Any]]:
        if isinstance(chunk, str):
            self._buffer += chunk
        else:
            self._buffer += self._decoder.decode(chunk)

        records: list[dict[str, Any]] = []
        while True:
            start = self._buffer.find("{")
            if start == -1:
                self._buffer = ""
                break
            if start > 0:
                self._buffer = self._buffer[start:]

            end = _closing_index(self._buffer)
            if end == -1:
                if len(self._buffer) > self._max_buffer_chars:
                    self.frames_rejected += 1
                    self._logger.warning(
                        "stream frame exceeded %s chars without closing, buffer reset",
                        self._max_buffer_chars,
                    )
                    self._buffer = ""
                break

            candidate = self._buffer[: end + 1]
            self._buffer = self._buffer[end + 1 :]
            self._logger.debug("stream frame candidate=%s", candidate)

            try:
                decoded = json.loads(candidate)
            except json.JSONDecodeError as exc:
                self.frames_rejected += 1
                self._logger.warning("stream frame is not JSON, skipped candidate=%s error=%s", candidate, exc)
                continue
            if not isinstance(decoded, dict):
                self.frames_rejected += 1
                self._logger.warning("stream frame is not a JSON object, skipped candidate=%s", candidate)
                continue

            self.frames_accepted += 1
            records.append(decoded)
        return records


def _closing_index(buffer: str) -> int:
    depth = 0
    for index, char in enumerate(buffer):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return -1
