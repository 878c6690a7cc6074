"""Streaming CSV row counter."""

from rowcount.common.errors import (
    BackendError,
    ErrorCode,
    MalformedInputError,
    RecordDecodeError,
    StreamIOError,
)
from rowcount.core import (
    RecordScanner,
    StreamingRowCounter,
    count_file,
    count_rows,
    iter_file_records,
    iter_records,
)

__version__ = "1.0.0"

__all__ = [
    "BackendError",
    "ErrorCode",
    "MalformedInputError",
    "RecordDecodeError",
    "RecordScanner",
    "StreamIOError",
    "StreamingRowCounter",
    "count_file",
    "count_rows",
    "iter_file_records",
    "iter_records",
]
