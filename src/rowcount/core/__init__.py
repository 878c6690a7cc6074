"""Record scanning and streaming row counting."""

from .counting import (
    StreamingRowCounter,
    count_file,
    count_rows,
    iter_chunks,
    iter_file_records,
    iter_records,
)
from .scanning import RecordScanner

__all__ = [
    "RecordScanner",
    "StreamingRowCounter",
    "count_file",
    "count_rows",
    "iter_chunks",
    "iter_file_records",
    "iter_records",
]
