"""Quote-aware CSV record scanner fed with arbitrary byte chunks.

The scanner only tracks record boundaries. Records end on ``\\n``, ``\\r`` or
``\\r\\n`` unless the terminator sits inside a double-quoted field; fields are
split on commas with the same exception, and ``""`` inside a quoted field is
a literal quote. Field contents are kept only when ``collect_fields`` is set.
"""
from __future__ import annotations

import re
from typing import List

from rowcount.common.errors import BackendError, ErrorCode, MalformedInputError, StreamIOError
from rowcount.common.models import ScanState

UTF8_BOM = b"\xef\xbb\xbf"
QUOTE = 0x22
DELIMITER = 0x2C
CR = 0x0D
LF = 0x0A

# Bytes that end an unquoted run. A quote inside an unquoted field is literal.
_FIELD_BREAK = re.compile(rb"[,\r\n]")


class RecordScanner:
    """Push-based CSV state machine.

    ``feed`` and ``finish`` return how many records the call completed. A
    scanner covers exactly one stream and cannot be reused after ``finish``.
    """

    def __init__(self, *, collect_fields: bool = False, source: str | None = None) -> None:
        self.state = ScanState.START_OF_FIELD
        self.position = 0
        self.source = source
        self._collect = collect_fields
        self._record_open = False
        self._pending_cr = False
        self._bom_checked = False
        self._bom_prefix = b""
        self._quote_offset = -1
        self._finished = False
        self._field = bytearray()
        self._fields: List[bytes] = []
        self._completed: List[List[bytes]] = []

    @property
    def in_quoted_field(self) -> bool:
        return self.state is ScanState.IN_QUOTED_FIELD

    @property
    def finished(self) -> bool:
        return self._finished

    def feed(self, chunk: bytes) -> int:
        self._ensure_open()
        if isinstance(chunk, (bytearray, memoryview)):
            chunk = bytes(chunk)
        elif not isinstance(chunk, bytes):
            raise StreamIOError(
                f"chunk must be bytes-like, got {type(chunk).__name__}",
                source=self.source,
            )
        if not chunk:
            return 0
        if self._bom_checked:
            return self._scan(chunk)

        pending = self._bom_prefix + chunk
        if len(pending) < len(UTF8_BOM) and UTF8_BOM.startswith(pending):
            self._bom_prefix = pending
            return 0
        self._bom_checked = True
        self._bom_prefix = b""
        if pending.startswith(UTF8_BOM):
            self.position += len(UTF8_BOM)
            pending = pending[len(UTF8_BOM):]
        return self._scan(pending)

    def finish(self) -> int:
        """Close the stream and flush a trailing record without a terminator."""

        self._ensure_open()
        completed = 0
        if not self._bom_checked:
            self._bom_checked = True
            completed += self._scan(self._bom_prefix)
            self._bom_prefix = b""
        self._finished = True

        if self.state is ScanState.IN_QUOTED_FIELD:
            raise MalformedInputError(
                quote_offset=self._quote_offset,
                position=self.position,
                source=self.source,
            )
        if self._record_open:
            self._end_record()
            completed += 1
        return completed

    def drain(self) -> List[List[bytes]]:
        """Return and forget the records completed so far (``collect_fields`` only)."""

        completed, self._completed = self._completed, []
        return completed

    # ------------------------------------------------------------------
    # Internal helpers

    def _ensure_open(self) -> None:
        if self._finished:
            raise BackendError(
                ErrorCode.STATE_ERROR,
                "Scanner already finished; create a new one per stream",
                context={"source": self.source, "position": self.position},
            )

    def _scan(self, data: bytes) -> int:
        base = self.position
        size = len(data)
        completed = 0
        i = 0

        if self._pending_cr and size:
            self._pending_cr = False
            if data[0] == LF:
                i = 1

        while i < size:
            state = self.state

            if state is ScanState.IN_QUOTED_FIELD:
                close = data.find(b'"', i)
                if close < 0:
                    self._append(data, i, size)
                    break
                self._append(data, i, close)
                self.state = ScanState.IN_ESCAPED_QUOTE
                i = close + 1
                continue

            byte = data[i]
            if state is ScanState.IN_ESCAPED_QUOTE and byte == QUOTE:
                self._append(data, i, i + 1)
                self.state = ScanState.IN_QUOTED_FIELD
                i += 1
                continue
            if state is ScanState.START_OF_FIELD and byte == QUOTE:
                self.state = ScanState.IN_QUOTED_FIELD
                self._quote_offset = base + i
                self._record_open = True
                i += 1
                continue

            match = _FIELD_BREAK.search(data, i)
            end = match.start() if match else size
            if end > i:
                self._append(data, i, end)
                self.state = ScanState.IN_FIELD
                self._record_open = True
            if match is None:
                break

            if data[end] == DELIMITER:
                self._end_field()
                self.state = ScanState.START_OF_FIELD
                self._record_open = True
            else:
                self._end_record()
                completed += 1
                if data[end] == CR:
                    if end + 1 < size:
                        if data[end + 1] == LF:
                            end += 1
                    else:
                        self._pending_cr = True
            i = end + 1

        self.position = base + size
        return completed

    def _append(self, data: bytes, start: int, end: int) -> None:
        if self._collect and end > start:
            self._field += data[start:end]

    def _end_field(self) -> None:
        if self._collect:
            self._fields.append(bytes(self._field))
            self._field.clear()

    def _end_record(self) -> None:
        self._end_field()
        if self._collect:
            self._completed.append(self._fields)
            self._fields = []
        self.state = ScanState.START_OF_FIELD
        self._record_open = False
