"""Shared error codes and exceptions for the counter and CLI."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    CONFIG_ERROR = "CONFIG_ERROR"
    DECODE_ERROR = "DECODE_ERROR"
    IO_ERROR = "IO_ERROR"
    MALFORMED_INPUT = "MALFORMED_INPUT"
    STATE_ERROR = "STATE_ERROR"


class BackendError(RuntimeError):
    """Exception carrying a structured error code for the CLI."""

    def __init__(self, code: ErrorCode, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.context = context or {}

    def __str__(self) -> str:  # pragma: no cover - formatting sugar
        base = super().__str__()
        return f"[{self.code.value}] {base}" if base else self.code.value


class StreamIOError(BackendError):
    """Raised when the input cannot be opened or a read fails mid-stream."""

    def __init__(self, message: str, *, source: Optional[str] = None) -> None:
        super().__init__(
            ErrorCode.IO_ERROR,
            message,
            context={"source": source} if source else None,
        )
        self.source = source


class MalformedInputError(BackendError):
    """Raised when the stream ends inside an unterminated quoted field."""

    def __init__(self, *, quote_offset: int, position: int, source: Optional[str] = None) -> None:
        label = f"{source}: " if source else ""
        super().__init__(
            ErrorCode.MALFORMED_INPUT,
            f"{label}unterminated quoted field opened at byte {quote_offset} (stream ended at byte {position})",
            context={"source": source, "quote_offset": quote_offset, "position": position},
        )
        self.quote_offset = quote_offset
        self.position = position


class RecordDecodeError(BackendError):
    """Raised when record fields cannot be decoded with the configured encoding."""

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        record_index: Optional[int] = None,
        position: Optional[int] = None,
    ) -> None:
        context: Dict[str, Any] = {"source": source}
        if record_index is not None:
            context["record_index"] = record_index
        if position is not None:
            context["position"] = position
        super().__init__(ErrorCode.DECODE_ERROR, message, context=context)
        self.source = source
        self.record_index = record_index
        self.position = position
