"""
Marker-framed JSON record protocol spoken on the worker's stdout.
"""

# nanohost - Per-group Agent Worker Host
# Copyright (C) 2026 nanohost Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from typing import Any

logger = logging.getLogger(__name__)

# ── Constants ──────────────────────────────────────────────────
OUTPUT_START_MARKER = "---NANOCLAW_OUTPUT_START---"
OUTPUT_END_MARKER = "---NANOCLAW_OUTPUT_END---"


def frame_record(record: Any) -> str:
    """Encode *record* as one framed protocol record (with trailing newline)."""
    return f"{OUTPUT_START_MARKER}\n{json.dumps(record)}\n{OUTPUT_END_MARKER}\n"


# ── Incremental codec ──────────────────────────────────────────

class OutputProtocolCodec:
    """
    Incremental extractor of framed JSON records.

    Text arrives in arbitrary chunks (a record, or even a marker, may be
    split across several reads).  :meth:`feed` appends the chunk to an
    internal buffer and yields every record that is now complete; an
    unterminated record stays buffered until its end marker arrives.

    Text outside marker pairs is ignored.  A framed payload that is not
    valid JSON is logged and skipped without stopping the scan.

    Args:
        max_buffer: Optional bound on pending (unterminated) text.  When
            exceeded, the pending text is dropped and :attr:`overflowed`
            is set.
    """

    def __init__(self, max_buffer: int | None = None) -> None:
        self._buffer = ""
        self._max_buffer = max_buffer
        self.overflowed = False
        self.records_parsed = 0
        self.records_rejected = 0

    @property
    def pending(self) -> str:
        """Buffered text not yet consumed by a complete record."""
        return self._buffer

    def feed(self, chunk: str) -> Iterator[Any]:
        """Append *chunk* and return an iterator over the now-complete records.

        The chunk is buffered immediately; records are decoded lazily, in
        stream order.  Records left unconsumed are yielded by the next call.
        """
        self._buffer += chunk
        return self._drain()

    def _drain(self) -> Iterator[Any]:
        while True:
            start_idx = self._buffer.find(OUTPUT_START_MARKER)
            if start_idx == -1:
                break
            end_idx = self._buffer.find(
                OUTPUT_END_MARKER, start_idx + len(OUTPUT_START_MARKER)
            )
            if end_idx == -1:
                break  # incomplete pair, wait for more data

            payload = self._buffer[start_idx + len(OUTPUT_START_MARKER):end_idx].strip()
            self._buffer = self._buffer[end_idx + len(OUTPUT_END_MARKER):]

            try:
                record = json.loads(payload)
            except json.JSONDecodeError as e:
                self.records_rejected += 1
                logger.warning(
                    "Failed to parse streamed output record (%d chars): %s",
                    len(payload), e,
                )
                continue

            self.records_parsed += 1
            yield record

        self._compact()

    def _compact(self) -> None:
        start_idx = self._buffer.find(OUTPUT_START_MARKER)
        if start_idx == -1:
            # No record in progress: only keep a tail long enough to hold
            # a start marker split across reads.
            self._buffer = self._buffer[-(len(OUTPUT_START_MARKER) - 1):]
            return
        if start_idx > 0:
            self._buffer = self._buffer[start_idx:]

        if self._max_buffer is not None and len(self._buffer) > self._max_buffer:
            logger.warning(
                "Unterminated output record exceeded %d chars; discarding",
                self._max_buffer,
            )
            self.overflowed = True
            self._buffer = ""


# ── Whole-output extraction (legacy mode) ──────────────────────

def extract_last_record(stdout: str) -> str:
    """Return the payload of the last complete framed record in *stdout*.

    Falls back to the last non-empty line when no complete pair exists,
    and to ``""`` for empty output.
    """
    end_idx = stdout.rfind(OUTPUT_END_MARKER)
    if end_idx != -1:
        start_idx = stdout.rfind(OUTPUT_START_MARKER, 0, end_idx)
        if start_idx != -1:
            return stdout[start_idx + len(OUTPUT_START_MARKER):end_idx].strip()

    lines = [line for line in stdout.strip().splitlines() if line.strip()]
    return lines[-1].strip() if lines else ""
