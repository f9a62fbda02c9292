from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path

from ..csvfile.dates import DateNormalizer, DateRange
from ..csvfile.header import HeaderMap, resolve_header
from ..csvfile.reader import FileFormatError, read_csv_text, read_text_file, split_csv_line
from ..db.batch_insert import PersistenceGateway
from ..logging.error_log import ErrorLedger, report_file_name
from ..models.catalogs import ProgramCatalog, SpecialIdentifierCatalog
from ..models.config_models import ImportConfig
from ..models.guest import GuestDirectory
from ..models.processing_result import (
    BatchResult,
    ChunkProgress,
    ChunkStatsAccumulator,
    ImportResult,
    RunState,
)
from ..models.records import ParsedRecord, RowFiltered, RowRejection, SkipRecord
from .dispatcher import CategoryDispatcher
from .progress import LoggingProgressSink, ProgressSink, ProgressTracker, is_tty_enabled
from .summary import render_summary_message
from .validator import RecordValidator

"""Chunked import processor.

One ImportRun per file:

    READING -> HEADER_VALIDATING -> CHUNKING -> FINALIZING -> COMPLETED

Header problems abort the run (FileFormatError propagates to the caller).
Everything after that is row-level: a row is persisted, skipped before
persistence, failed by the gateway, or filtered by the date range.

``iter_chunks`` is a generator; each yield is a chunk boundary. The caller may
stop iterating at any yield and still call ``finalize`` for partial totals.
"""

__all__ = [
    "ImportRun",
    "ProcessingError",
    "import_file",
    "run_import",
]

logger = logging.getLogger(__name__)

MIN_LINES = 2


class ProcessingError(Exception):
    """Raised when an ImportRun is driven out of order."""
    pass


class ImportRun:
    def __init__(
        self,
        text: str,
        *,
        directory: GuestDirectory,
        gateway: PersistenceGateway,
        config: ImportConfig | None = None,
        source_name: str = "",
        date_range: DateRange | None = None,
        progress: ProgressSink | None = None,
        should_cancel: Callable[[], bool] | None = None,
        programs: ProgramCatalog | None = None,
        specials: SpecialIdentifierCatalog | None = None,
    ) -> None:
        self.config = config or ImportConfig()
        self.source_name = source_name
        self.date_range = date_range
        self.progress = progress
        self.should_cancel = should_cancel

        self._text = text
        self._validator = RecordValidator(
            directory,
            DateNormalizer(self.config.timezone),
            programs=programs,
            specials=specials,
            date_range=date_range,
        )
        self._dispatcher = CategoryDispatcher(gateway, directory)
        self._ledger = ErrorLedger(self.config.max_logged_errors, self.config.max_inline_errors)
        self._stats = ChunkStatsAccumulator()

        self.state = RunState.READING
        self.header: HeaderMap | None = None
        self._rows: list[str] = []
        self._next_offset = 0

        self.success_count = 0
        self.error_count = 0
        self.skipped_count = 0
        self.invalid_date_count = 0
        self.filtered_count = 0
        self.special_meal_counts: dict[str, int] = {}
        self.skipped: list[SkipRecord] = []
        self.cancelled = False

        self.start_time = datetime.now(UTC)
        self._started = time.perf_counter()

    @property
    def total_rows(self) -> int:
        return len(self._rows)

    @property
    def errors(self) -> ErrorLedger:
        return self._ledger

    @property
    def filter_description(self) -> str | None:
        return self.date_range.describe() if self.date_range else None

    def prepare(self) -> None:
        """Read and validate the header; moves the run to CHUNKING."""
        if self.state is not RunState.READING:
            raise ProcessingError(f"prepare() called in state {self.state.value}")

        lines = read_csv_text(self._text)
        self.state = RunState.HEADER_VALIDATING
        if len(lines) < MIN_LINES:
            self.state = RunState.ABORTED
            raise FileFormatError("CSV needs header + at least one data row")
        try:
            self.header = resolve_header(lines[0])
        except FileFormatError:
            self.state = RunState.ABORTED
            raise

        self._rows = lines[1:]
        self.state = RunState.CHUNKING
        logger.info(f"Processing {self.source_name or 'input'}: {self.total_rows} data row(s)")

    def iter_chunks(self) -> Iterator[ChunkProgress]:
        if self.state is RunState.READING:
            self.prepare()
        if self.state is not RunState.CHUNKING:
            raise ProcessingError(f"iter_chunks() called in state {self.state.value}")

        chunk_size = self.config.chunk_size
        total = self.total_rows
        while self._next_offset < total:
            if self.should_cancel is not None and self.should_cancel():
                self.cancelled = True
                logger.warning(f"Import cancelled after {self._next_offset} of {total} row(s)")
                return

            start = self._next_offset
            chunk = self._rows[start : start + chunk_size]
            t0 = time.perf_counter()
            self._process_chunk(start, chunk)
            self._stats.add_chunk_time(time.perf_counter() - t0)
            self._next_offset = start + len(chunk)

            progress = ChunkProgress(
                range_start=start + 1,
                range_end=self._next_offset,
                total_rows=total,
                percent=round(self._next_offset / total * 100, 1),
                success_count=self.success_count,
                error_count=self.error_count,
                skipped_count=self.skipped_count,
                filtered_count=self.filtered_count,
                filter_description=self.filter_description,
            )
            self._notify(progress)
            yield progress

    def _process_chunk(self, start: int, lines: list[str]) -> None:
        eligible: list[ParsedRecord] = []
        for offset, line in enumerate(lines):
            outcome = self._validator.validate(split_csv_line(line), start + offset, self.header)
            if isinstance(outcome, RowFiltered):
                self.filtered_count += 1
            elif isinstance(outcome, RowRejection):
                self.skipped_count += 1
                self.invalid_date_count += 1
                self._record_skip(SkipRecord.from_rejection(outcome))
            else:
                reason = outcome.skip_reason()
                if reason is None:
                    eligible.append(outcome)
                else:
                    self.skipped_count += 1
                    self._record_skip(SkipRecord.from_record(outcome, reason))

        if eligible:
            self._merge(self._dispatcher.dispatch(eligible))

    def _record_skip(self, skip: SkipRecord) -> None:
        logger.debug(f"Row {skip.row_number} skipped: {skip.reason.value}")
        if len(self.skipped) < self.config.max_logged_errors:
            self.skipped.append(skip)

    def _merge(self, batch: BatchResult) -> None:
        self.success_count += batch.success_count
        self.error_count += batch.error_count
        self._ledger.extend(batch.errors)
        for label, quantity in batch.special_meal_counts.items():
            self.special_meal_counts[label] = self.special_meal_counts.get(label, 0) + quantity

    def _notify(self, progress: ChunkProgress) -> None:
        if self.progress is None:
            return
        try:
            self.progress.notify(
                progress.range_start,
                progress.range_end,
                progress.total_rows,
                progress.percent,
                progress.filter_description,
            )
        except Exception as e:
            # 進捗表示の失敗で取り込みは止めない
            logger.warning(f"progress notification failed: {e}")

    def finalize(self, *, write_report: bool = True, now: datetime | None = None) -> ImportResult:
        """Compose the summary and, when errors occurred, write the error report."""
        if self.state is not RunState.CHUNKING:
            raise ProcessingError(f"finalize() called in state {self.state.value}")
        self.state = RunState.FINALIZING

        if self._next_offset < self.total_rows:
            self.cancelled = True

        end_time = now or datetime.now(UTC)
        message = render_summary_message(
            self.success_count,
            self.error_count,
            self.skipped_count,
            self.special_meal_counts,
            self._ledger.snippets(),
        )

        report_name: str | None = None
        report_path: Path | None = None
        if self.error_count > 0:
            report_name = report_file_name(self.source_name, end_time)
            if write_report:
                try:
                    report_path = self._ledger.write_report(
                        Path(self.config.report_directory), report_name
                    )
                except OSError as e:
                    logger.warning(f"failed to write error report {report_name}: {e}")
            if self._ledger.dropped:
                logger.warning(
                    f"{self._ledger.dropped} error(s) beyond the first "
                    f"{self._ledger.max_logged} were not written to the report"
                )

        total_chunks, avg, p95 = self._stats.get_stats()
        self.state = RunState.COMPLETED
        return ImportResult(
            state=self.state,
            source_name=self.source_name,
            total_rows=self.total_rows,
            success_count=self.success_count,
            error_count=self.error_count,
            skipped_count=self.skipped_count,
            invalid_date_count=self.invalid_date_count,
            filtered_count=self.filtered_count,
            special_meal_counts=dict(self.special_meal_counts),
            errors=self._ledger.records,
            error_preview=self._ledger.preview(),
            has_more_errors=self._ledger.has_more or self._ledger.dropped > 0,
            skipped=list(self.skipped),
            start_time=self.start_time,
            end_time=end_time,
            elapsed_seconds=time.perf_counter() - self._started,
            message=message,
            error_report_name=report_name,
            error_report_path=report_path,
            cancelled=self.cancelled,
            total_chunks=total_chunks,
            avg_chunk_seconds=avg,
            p95_chunk_seconds=p95,
        )


def run_import(
    text: str,
    *,
    directory: GuestDirectory,
    gateway: PersistenceGateway,
    config: ImportConfig | None = None,
    source_name: str = "",
    date_range: DateRange | None = None,
    progress: ProgressSink | None = None,
    should_cancel: Callable[[], bool] | None = None,
    write_report: bool = True,
) -> ImportResult:
    """Drive one ImportRun to completion.

    Without an explicit ``progress`` sink a tqdm bar is shown on a TTY and one
    INFO line per chunk is logged otherwise.
    """
    run = ImportRun(
        text,
        directory=directory,
        gateway=gateway,
        config=config,
        source_name=source_name,
        date_range=date_range,
        progress=progress,
        should_cancel=should_cancel,
    )
    run.prepare()

    if progress is not None:
        for _ in run.iter_chunks():
            pass
        return run.finalize(write_report=write_report)

    if is_tty_enabled():
        with ProgressTracker(run.total_rows) as tracker:
            run.progress = tracker
            for chunk in run.iter_chunks():
                tracker.set_postfix(ok=chunk.success_count, err=chunk.error_count)
    else:
        run.progress = LoggingProgressSink()
        for _ in run.iter_chunks():
            pass
    return run.finalize(write_report=write_report)


def import_file(path: Path, **kwargs) -> ImportResult:
    """Read ``path`` (UTF-8, BOM tolerant) and run the import over it."""
    text = read_text_file(path)
    kwargs.setdefault("source_name", path.name)
    return run_import(text, **kwargs)
