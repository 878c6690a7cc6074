"""Command line entry point: count the data rows of one CSV file."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict

from rowcount.common.config import DEFAULT_PROFILE, load_runtime_config
from rowcount.common.errors import BackendError
from rowcount.common.models import CountProgress, CountResult, RuntimeConfig
from rowcount.common.progress import BenchmarkRecorder, ProgressLogger
from rowcount.core import StreamingRowCounter

STDIN_PATH = "-"
DONE_MESSAGE = "done!"
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def positive_int(value: str) -> int:
    try:
        num = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected an integer, got '{value}'") from exc
    if num <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than zero, got {num}")
    return num


def render_progress(progress: CountProgress) -> None:
    print(
        f"[count] {progress.source} bytes={progress.bytes_read} records={progress.records} phase={progress.current_phase}",
        file=sys.stderr,
    )


def render_result(result: CountResult, output_mode: str) -> str:
    return DONE_MESSAGE if output_mode == "done" else str(result.rows)


def resolve_runtime(args: argparse.Namespace) -> RuntimeConfig:
    overrides: Dict[str, Dict[str, Any]] = {"global": {}, "profile": {}}
    if args.mode:
        overrides["global"]["output_mode"] = args.mode
    if args.no_header:
        overrides["profile"]["has_header"] = False
    if args.chunk_size:
        overrides["profile"]["chunk_size"] = args.chunk_size
    config_path = Path(args.config) if args.config else None
    return load_runtime_config(args.profile, config_path=config_path, overrides=overrides)


def command_count(args: argparse.Namespace) -> None:
    runtime = resolve_runtime(args)
    progress_logger = ProgressLogger(Path(args.progress_log)) if args.progress_log else None
    counter = StreamingRowCounter(
        runtime.profile,
        progress_logger=progress_logger,
        progress_callback=render_progress if args.verbose else None,
    )

    if args.path == STDIN_PATH:
        result = counter.count(sys.stdin.buffer, source="<stdin>")
    else:
        result = counter.count_file(Path(args.path))

    if args.benchmark_log:
        BenchmarkRecorder(Path(args.benchmark_log)).record_result(result)
    print(render_result(result, runtime.global_settings.output_mode))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rowcount", description="Count data rows in a CSV file without loading it into memory"
    )
    parser.add_argument("path", help="CSV file to read ('-' for standard input)")
    parser.add_argument(
        "--no-header",
        action="store_true",
        help="Count the first record as data instead of skipping it as a header",
    )
    parser.add_argument(
        "--mode",
        choices=["count", "done"],
        help="Print the row count (default) or a fixed 'done!' line",
    )
    parser.add_argument(
        "--profile",
        default=DEFAULT_PROFILE,
        help="Profile from config/defaults.json (e.g., low_memory, workstation)",
    )
    parser.add_argument(
        "--config",
        help="Path to a configuration JSON file (defaults to config/defaults.json)",
    )
    parser.add_argument(
        "--chunk-size",
        type=positive_int,
        help="Bytes per read; overrides the profile value",
    )
    parser.add_argument(
        "--progress-log",
        help="Path to JSONL file for structured progress events",
    )
    parser.add_argument(
        "--benchmark-log",
        help="Append rows, bytes and throughput of this run to a JSONL file",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print progress lines to stderr while reading",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        command_count(args)
    except BackendError as exc:
        print(f"rowcount: error: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except OSError as exc:
        # log files are written by the CLI itself, outside the counter
        print(f"rowcount: error: cannot write log: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print("[count] interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED
    return 0


if __name__ == "__main__":
    sys.exit(main())
