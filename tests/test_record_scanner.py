from __future__ import annotations

import pytest

from rowcount.common.errors import BackendError, ErrorCode, MalformedInputError, StreamIOError
from rowcount.common.models import ScanState
from rowcount.core.scanning import RecordScanner


def _collect(*chunks: bytes) -> list[list[bytes]]:
    scanner = RecordScanner(collect_fields=True)
    for chunk in chunks:
        scanner.feed(chunk)
    scanner.finish()
    return scanner.drain()


def test_feed_reports_completed_records() -> None:
    scanner = RecordScanner()
    assert scanner.feed(b"a,b\n1,") == 1
    assert scanner.feed(b"2\n3,4") == 1
    assert scanner.finish() == 1
    assert scanner.position == 11


def test_crlf_split_across_chunks_is_one_terminator() -> None:
    scanner = RecordScanner()
    assert scanner.feed(b"a\r") == 1
    assert scanner.feed(b"\nb\r\n") == 1
    assert scanner.finish() == 0


def test_lone_carriage_return_ends_record() -> None:
    assert _collect(b"a\rb\rc") == [[b"a"], [b"b"], [b"c"]]


def test_quoted_field_keeps_delimiters_and_newlines() -> None:
    assert _collect(b'id,note\n1,"a\nb,c"\n') == [[b"id", b"note"], [b"1", b"a\nb,c"]]


def test_doubled_quote_split_across_chunks() -> None:
    assert _collect(b'"ha "', b'"ha"" ha"\n') == [[b'ha "ha" ha']]


def test_quote_inside_unquoted_field_is_literal() -> None:
    assert _collect(b'a"b,c\n') == [[b'a"b', b"c"]]


def test_data_after_closing_quote_continues_field() -> None:
    assert _collect(b'"ab"c,d\n') == [[b"abc", b"d"]]


def test_blank_line_is_a_record_with_one_empty_field() -> None:
    assert _collect(b"a\n\nb\n") == [[b"a"], [b""], [b"b"]]


def test_trailing_delimiter_produces_empty_field() -> None:
    assert _collect(b"1,,") == [[b"1", b"", b""]]


def test_byte_order_mark_skipped_even_when_split() -> None:
    scanner = RecordScanner(collect_fields=True)
    scanner.feed(b"\xef")
    scanner.feed(b"\xbb\xbfa,b\n")
    scanner.finish()
    assert scanner.drain() == [[b"a", b"b"]]
    assert scanner.position == 7


def test_short_input_resembling_bom_is_data() -> None:
    assert _collect(b"\xef\xbb") == [[b"\xef\xbb"]]


def test_bom_only_input_has_no_records() -> None:
    scanner = RecordScanner()
    assert scanner.feed(b"\xef\xbb\xbf") == 0
    assert scanner.finish() == 0


def test_unterminated_quote_raises_malformed_input() -> None:
    scanner = RecordScanner(source="broken.csv")
    scanner.feed(b'a,"unterminated')
    assert scanner.in_quoted_field
    with pytest.raises(MalformedInputError) as exc:
        scanner.finish()
    assert exc.value.code == ErrorCode.MALFORMED_INPUT
    assert exc.value.quote_offset == 2
    assert exc.value.position == 15
    assert "broken.csv" in str(exc.value)


def test_closed_quote_at_end_of_stream_is_a_record() -> None:
    scanner = RecordScanner()
    scanner.feed(b'x,"done"')
    assert scanner.state is ScanState.IN_ESCAPED_QUOTE
    assert scanner.finish() == 1


def test_scanner_cannot_be_reused_after_finish() -> None:
    scanner = RecordScanner()
    scanner.finish()
    assert scanner.finished
    with pytest.raises(BackendError) as exc:
        scanner.feed(b"a\n")
    assert exc.value.code == ErrorCode.STATE_ERROR
    with pytest.raises(BackendError):
        scanner.finish()


def test_feed_rejects_non_bytes_chunks() -> None:
    scanner = RecordScanner()
    with pytest.raises(StreamIOError):
        scanner.feed(10)
    assert scanner.feed(bytearray(b"a\n")) == 1
    assert scanner.feed(memoryview(b"b\n")) == 1
