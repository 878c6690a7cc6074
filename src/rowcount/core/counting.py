"""Streaming row counting with bounded memory usage."""
from __future__ import annotations

import codecs
import io
import time
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Iterator, List, Optional, Union

from rowcount.common.config import error_mode_from_policy
from rowcount.common.errors import RecordDecodeError, StreamIOError
from rowcount.common.models import DEFAULT_CHUNK_SIZE, CountProgress, CountResult, CounterSettings, RuntimeConfig
from rowcount.common.progress import ProgressLogger
from .scanning import RecordScanner

ByteStream = Union[BinaryIO, Iterable[bytes]]
ProgressCallback = Optional[Callable[[CountProgress], None]]
BYTES_LIKE = (bytes, bytearray, memoryview)


def open_binary(path: Path) -> BinaryIO:
    label = str(path)
    try:
        return Path(path).open("rb")
    except OSError as exc:
        reason = exc.strerror or str(exc)
        raise StreamIOError(f"cannot open '{label}': {reason}", source=label) from exc


def iter_chunks(stream: ByteStream, chunk_size: int, *, source: Optional[str] = None) -> Iterator[bytes]:
    """Yield non-empty byte chunks from a binary file object or an iterable of bytes.

    Read failures surface as ``StreamIOError``; nothing is retried.
    """

    if isinstance(stream, BYTES_LIKE):
        stream = io.BytesIO(bytes(stream))
    produced = _read_chunks(stream, chunk_size) if hasattr(stream, "read") else iter(stream)
    while True:
        try:
            chunk = next(produced, None)
        except OSError as exc:
            raise StreamIOError(f"read failed: {exc}", source=source) from exc
        if chunk is None:
            return
        if not isinstance(chunk, BYTES_LIKE):
            kind = "text" if isinstance(chunk, str) else type(chunk).__name__
            raise StreamIOError(f"stream must yield bytes, not {kind}", source=source)
        if chunk:
            yield chunk


def _read_chunks(handle: BinaryIO, chunk_size: int) -> Iterator[bytes]:
    while True:
        chunk = handle.read(chunk_size)
        if not chunk:
            return
        yield chunk


class StreamingRowCounter:
    """Counts CSV data records in a single forward pass over a byte stream."""

    def __init__(
        self,
        settings: Optional[CounterSettings] = None,
        *,
        progress_logger: Optional[ProgressLogger] = None,
        progress_callback: ProgressCallback = None,
    ) -> None:
        self.settings = settings or CounterSettings()
        self.progress_logger = progress_logger
        self.progress_callback = progress_callback

    def count(
        self,
        stream: ByteStream,
        *,
        has_header: Optional[bool] = None,
        source: Optional[str] = None,
    ) -> CountResult:
        skip_header = self.settings.has_header if has_header is None else has_header
        label = source or "<stream>"
        scanner = RecordScanner(source=source)
        every = max(1, self.settings.progress_every_chunks)
        records = 0
        chunks_read = 0
        start = time.perf_counter()

        for chunk in iter_chunks(stream, self.settings.chunk_size, source=source):
            records += scanner.feed(chunk)
            chunks_read += 1
            if chunks_read % every == 0:
                self._report(CountProgress(label, scanner.position, records))
        records += scanner.finish()

        header_skipped = skip_header and records > 0
        result = CountResult(
            rows=records - 1 if header_skipped else records,
            records=records,
            header_skipped=header_skipped,
            bytes_read=scanner.position,
            seconds=time.perf_counter() - start,
            source=source,
        )
        self._report(CountProgress(label, scanner.position, records, current_phase="complete"))
        return result

    def count_file(self, path: Path, *, has_header: Optional[bool] = None) -> CountResult:
        label = str(path)
        with open_binary(path) as handle:
            return self.count(handle, has_header=has_header, source=label)

    def _report(self, progress: CountProgress) -> None:
        if self.progress_callback:
            self.progress_callback(progress)
        if self.progress_logger:
            self.progress_logger.emit(progress)


def count_rows(stream: ByteStream, has_header: bool = True, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    """Return the number of data records in ``stream``."""

    counter = StreamingRowCounter(CounterSettings(chunk_size=chunk_size, has_header=has_header))
    return counter.count(stream).rows


def count_file(path: Path, has_header: bool = True, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> int:
    counter = StreamingRowCounter(CounterSettings(chunk_size=chunk_size, has_header=has_header))
    return counter.count_file(path).rows


def iter_records(
    stream: ByteStream,
    *,
    encoding: str = "utf-8",
    errors: str = "strict",
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    source: Optional[str] = None,
) -> Iterator[List[str]]:
    """Lazily yield each record as a list of decoded fields, header included.

    The generator is single-pass; a stream ending inside a quoted field raises
    ``MalformedInputError`` after the preceding records have been yielded.
    """

    try:
        codecs.lookup(encoding)
    except LookupError as exc:
        raise RecordDecodeError(f"unknown encoding '{encoding}'", source=source) from exc

    scanner = RecordScanner(collect_fields=True, source=source)
    index = 0
    for chunk in iter_chunks(stream, chunk_size, source=source):
        scanner.feed(chunk)
        for record in scanner.drain():
            yield _decode_record(record, encoding, errors, index=index, scanner=scanner)
            index += 1
    scanner.finish()
    for record in scanner.drain():
        yield _decode_record(record, encoding, errors, index=index, scanner=scanner)
        index += 1


def _decode_record(
    record: List[bytes],
    encoding: str,
    errors: str,
    *,
    index: int,
    scanner: RecordScanner,
) -> List[str]:
    try:
        return [field.decode(encoding, errors) for field in record]
    except (UnicodeDecodeError, LookupError) as exc:
        # LookupError covers an unknown error handler name
        raise RecordDecodeError(
            f"record {index} is not valid {encoding}: {exc}",
            source=scanner.source,
            record_index=index,
            position=scanner.position,
        ) from exc


def iter_file_records(path: Path, runtime: RuntimeConfig) -> Iterator[List[str]]:
    """Yield the records of ``path`` decoded with the configured encoding and error policy."""

    settings = runtime.global_settings
    with open_binary(path) as handle:
        yield from iter_records(
            handle,
            encoding=settings.encoding,
            errors=error_mode_from_policy(settings.error_policy),
            chunk_size=runtime.profile.chunk_size,
            source=str(path),
        )
