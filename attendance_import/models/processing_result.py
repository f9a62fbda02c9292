from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from .error_record import ErrorRecord
from .records import SkipRecord

"""Processing result models for attendance import runs.

BatchResult is produced once per chunk by the dispatcher and merged into the
run-level ImportResult by the chunked processor.
"""


class RunState(Enum):
    """Lifecycle of an import run.

    READING -> HEADER_VALIDATING -> CHUNKING -> FINALIZING -> COMPLETED
    Any fatal file error moves the run to ABORTED.
    """
    READING = "reading"
    HEADER_VALIDATING = "header_validating"
    CHUNKING = "chunking"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class BatchResult:
    """Outcome of dispatching one chunk's eligible records."""
    success_count: int = 0
    error_count: int = 0
    errors: list[ErrorRecord] = field(default_factory=list)
    special_meal_counts: dict[str, int] = field(default_factory=dict)

    def add_error(self, error: ErrorRecord) -> None:
        self.errors.append(error)
        self.error_count += 1

    def add_special_meal(self, label: str, quantity: int) -> None:
        self.special_meal_counts[label] = self.special_meal_counts.get(label, 0) + quantity


@dataclass(frozen=True)
class ChunkProgress:
    """Yielded at every chunk boundary (the cooperative suspension point)."""
    range_start: int  # 1-based data row
    range_end: int
    total_rows: int
    percent: float
    success_count: int  # running totals
    error_count: int
    skipped_count: int
    filtered_count: int
    filter_description: str | None = None


@dataclass(frozen=True)
class ImportResult:
    """Aggregated result of one import run."""
    state: RunState
    source_name: str
    total_rows: int  # deduplicated data rows
    success_count: int
    error_count: int
    skipped_count: int  # validation rejects + unparseable dates
    invalid_date_count: int  # subset of skipped_count
    filtered_count: int
    special_meal_counts: dict[str, int]
    errors: list[ErrorRecord]  # capped ledger
    skipped: list[SkipRecord]  # capped skip ledger
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    message: str = ""
    error_report_name: str | None = None
    error_report_path: Path | None = None
    cancelled: bool = False
    total_chunks: int = 0
    avg_chunk_seconds: float = 0.0
    p95_chunk_seconds: float = 0.0
    error_preview: list[ErrorRecord] = field(default_factory=list)  # first max_inline_errors
    has_more_errors: bool = False

    @property
    def processed_rows(self) -> int:
        return self.success_count + self.error_count + self.skipped_count + self.filtered_count

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0


class ChunkStatsAccumulator:
    """Accumulates per-chunk timing and reports count / mean / p95."""

    def __init__(self) -> None:
        self.chunk_times: list[float] = []

    def add_chunk_time(self, elapsed_seconds: float) -> None:
        self.chunk_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return (total_chunks, avg_chunk_seconds, p95_chunk_seconds)."""
        if not self.chunk_times:
            return (0, 0.0, 0.0)

        total = len(self.chunk_times)
        avg = statistics.mean(self.chunk_times)
        if total == 1:
            p95 = self.chunk_times[0]
        else:
            p95 = statistics.quantiles(self.chunk_times, n=20, method="inclusive")[18]
        return (total, avg, p95)
