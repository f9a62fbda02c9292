from __future__ import annotations

from dataclasses import dataclass

"""ErrorRecord model for the import error ledger.

An ErrorRecord is created when a row passed validation but could not be
persisted. Rows skipped before persistence never produce one (see SkipRecord).
"""

__all__ = [
    "ErrorRecord",
    "escape_csv_value",
    "format_error_snippet",
]

NOTES_SEPARATOR = " | "


def escape_csv_value(value: object) -> str:
    """Quote a field containing a comma, quote or newline; double inner quotes."""
    if value is None:
        return ""
    text = str(value)
    escaped = text.replace('"', '""')
    if any(ch in text for ch in (",", '"', "\n")):
        return f'"{escaped}"'
    return escaped


@dataclass(frozen=True)
class ErrorRecord:
    """Structured persistence failure for one row.

    Attributes:
        row_number: 1-based row number in the deduplicated file, header included
        guest_id: Guest identifier as submitted
        program: Program name
        message: Human readable failure (gateway message included)
        details: Optional extra detail
        reference: Optional reference (e.g. attendance id)
        affected_rows: Set when one entry stands for a batched failure
    """
    row_number: int
    guest_id: str
    program: str
    message: str
    details: str | None = None
    reference: str | None = None
    affected_rows: int | None = None

    def notes(self) -> str:
        parts: list[str] = []
        if self.details:
            parts.append(self.details)
        if self.affected_rows:
            plural = "" if self.affected_rows == 1 else "s"
            parts.append(f"Affects {self.affected_rows} row{plural}")
        if self.reference:
            parts.append(self.reference)
        return NOTES_SEPARATOR.join(parts)

    def to_csv_row(self) -> str:
        return ",".join(
            escape_csv_value(v)
            for v in (self.row_number, self.guest_id, self.program, self.message, self.notes())
        )


def format_error_snippet(error: ErrorRecord) -> str:
    """One-line form used in the summary message: ``Row 5 | Shower | Guest 12: msg``."""
    parts: list[str] = []
    if error.row_number:
        parts.append(f"Row {error.row_number}")
    if error.program:
        parts.append(error.program)
    if error.guest_id:
        parts.append(f"Guest {error.guest_id}")
    context = f"{NOTES_SEPARATOR.join(parts)}: " if parts else ""
    return f"{context}{error.message}"
