from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from attendance_import.csvfile.dates import to_iso
from attendance_import.models.error_record import ErrorRecord, format_error_snippet

"""Error ledger and downloadable error report.

One run-scoped ledger backs two views:
- an inline preview (small cap) for on-screen review
- the full ledger (larger cap, bounds memory on pathological files) used for
  the CSV report written under the report directory

Entries beyond the cap are dropped from the ledger only; the numeric error
total is kept by the processor.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLedger",
    "REPORT_HEADER",
    "report_file_name",
]

REPORT_HEADER = ("Row", "Guest ID", "Program", "Message", "Notes")
REPORT_EXTENSION = ".csv"
DEFAULT_REPORT_STEM = "attendance_import"


def report_file_name(source_name: str | None, now: datetime | None = None) -> str:
    """``<source stem>_errors_<timestamp>.csv``; ':' and '.' in the timestamp become '-'."""
    now = now or datetime.now(UTC)
    stamp = to_iso(now).replace(":", "-").replace(".", "-")
    stem = Path(source_name).stem if source_name else ""
    return f"{stem or DEFAULT_REPORT_STEM}_errors_{stamp}{REPORT_EXTENSION}"


class ErrorLedger:
    """Capped in-memory list of ErrorRecord.

    シリアル実行前提のためスレッド安全性は不要。
    """

    def __init__(self, max_logged: int = 1000, max_inline: int = 25) -> None:
        self.max_logged = max_logged
        self.max_inline = max_inline
        self._records: list[ErrorRecord] = []
        self.dropped = 0

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    @property
    def is_full(self) -> bool:
        return len(self._records) >= self.max_logged

    def append(self, record: ErrorRecord) -> bool:
        """Add one record; returns False when the cap dropped it."""
        if self.is_full:
            self.dropped += 1
            return False
        self._records.append(record)
        return True

    def extend(self, records: Iterable[ErrorRecord]) -> None:
        for r in records:
            self.append(r)

    def preview(self) -> list[ErrorRecord]:
        return self._records[: self.max_inline]

    @property
    def has_more(self) -> bool:
        return len(self._records) > self.max_inline

    def snippets(self, limit: int = 3) -> list[str]:
        return [s for s in (format_error_snippet(e) for e in self._records[:limit]) if s]

    def render_report(self) -> str:
        lines = [",".join(REPORT_HEADER)]
        lines.extend(r.to_csv_row() for r in self._records)
        return "\n".join(lines)

    def write_report(self, directory: Path, file_name: str) -> Path | None:
        """Write the report; nothing is written for an empty ledger."""
        if not self._records:
            return None
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / file_name
        path.write_text(self.render_report(), encoding="utf-8")
        return path
