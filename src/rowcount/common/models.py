"""Data models shared across the scanner, counter, and CLI layers."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional

OutputMode = Literal["count", "done"]

DEFAULT_CHUNK_SIZE = 65_536


class ScanState(str, Enum):
    """Field-level states of the CSV record scanner."""

    START_OF_FIELD = "start_of_field"
    IN_FIELD = "in_field"
    IN_QUOTED_FIELD = "in_quoted_field"
    IN_ESCAPED_QUOTE = "in_escaped_quote"


@dataclass(slots=True)
class GlobalSettings:
    """Global knobs that apply across profiles."""

    encoding: str = "utf-8"
    error_policy: str = "fail-fast"  # fail-fast | strict | replace
    output_mode: OutputMode = "count"


@dataclass(slots=True)
class CounterSettings:
    """Per-profile knobs for a single counting pass."""

    description: str = ""
    chunk_size: int = DEFAULT_CHUNK_SIZE
    has_header: bool = True
    progress_every_chunks: int = 16


@dataclass(slots=True)
class RuntimeConfig:
    """Resolved configuration for a single run."""

    global_settings: GlobalSettings
    profile: CounterSettings
    profile_name: str = "low_memory"


@dataclass(slots=True)
class CountResult:
    """Outcome of one complete pass over a stream."""

    rows: int
    records: int
    header_skipped: bool
    bytes_read: int
    seconds: float = 0.0
    source: Optional[str] = None

    @property
    def rows_per_second(self) -> float:
        return self.rows / self.seconds if self.seconds else 0.0


@dataclass(slots=True)
class CountProgress:
    source: str
    bytes_read: int
    records: int
    current_phase: str = "reading"
