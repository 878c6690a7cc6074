"""JSONL event files for counting progress and benchmark runs."""
from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .models import CountProgress, CountResult


def _append_jsonl(path: Path, payload: Dict[str, Any]) -> None:
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(payload))
        handle.write("\n")


class ProgressLogger:
    """Appends one JSON line per progress tick of a counting pass."""

    def __init__(self, path: Optional[Path]) -> None:
        self.path = path
        if path:
            path.parent.mkdir(parents=True, exist_ok=True)

    def emit(self, progress: CountProgress) -> None:
        if not self.path:
            return
        _append_jsonl(
            self.path,
            {
                "source": progress.source,
                "phase": progress.current_phase,
                "bytes_read": progress.bytes_read,
                "records": progress.records,
                "timestamp": time.time(),
            },
        )


class BenchmarkRecorder:
    """Keeps a history of counting runs: rows, bytes and throughput."""

    def __init__(self, path: Path) -> None:
        self.path = path
        path.parent.mkdir(parents=True, exist_ok=True)

    def record_result(self, result: CountResult) -> None:
        _append_jsonl(
            self.path,
            {
                "dataset": result.source or "<stream>",
                "rows": result.rows,
                "records": result.records,
                "bytes": result.bytes_read,
                "seconds": result.seconds,
                "rows_per_second": result.rows_per_second,
                "timestamp": time.time(),
            },
        )
