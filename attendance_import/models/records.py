from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from .catalogs import ServiceCategory, SpecialMapping
from .guest import Guest

"""Row-level models produced by the record validator."""

__all__ = [
    "ParsedRecord",
    "RowFiltered",
    "RowRejection",
    "SkipReason",
    "SkipRecord",
]

# 1 行目はヘッダ。データ行 index 0 はファイル上の 2 行目
HEADER_ROWS = 1


def row_number_for(row_index: int) -> int:
    """1-based, header-inclusive row number of a deduplicated data row."""
    return row_index + HEADER_ROWS + 1


class SkipReason(Enum):
    INVALID_DATE = "invalid_date"
    MISSING_GUEST_ID = "missing_guest_id"
    INVALID_PROGRAM = "invalid_program"
    SPECIAL_ID_PROGRAM_MISMATCH = "special_id_program_mismatch"
    GUEST_NOT_FOUND = "guest_not_found"


@dataclass(frozen=True)
class ParsedRecord:
    """One accepted row with every validity flag computed.

    The validator never decides persistence; ``skip_reason`` does, so the two
    decisions stay separable.
    """
    attendance_id: str
    guest_id: str  # raw, possibly empty
    count: int  # always >= 1
    raw_count: str
    program: str  # canonical program name when matched, else original text
    program_type: str  # ServiceCategory value or ""
    date_submitted: datetime  # aware, UTC
    original_date: str
    served_on: date  # service-local calendar day
    is_special_id: bool
    special_mapping: SpecialMapping | None
    guest_id_provided: bool
    program_valid: bool
    special_id_valid: bool
    guest_exists: bool
    row_index: int
    # dispatch 時に dataclasses.replace で付与
    internal_guest_id: str | None = None
    guest: Guest | None = None

    @property
    def row_number(self) -> int:
        return row_number_for(self.row_index)

    @property
    def category(self) -> ServiceCategory | None:
        if self.is_special_id and self.special_mapping is not None:
            return ServiceCategory.SPECIAL_MEALS
        if not self.program_type:
            return None
        return ServiceCategory(self.program_type)

    def skip_reason(self) -> SkipReason | None:
        if not self.guest_id_provided:
            return SkipReason.MISSING_GUEST_ID
        if not self.program_valid:
            return SkipReason.INVALID_PROGRAM
        if not self.special_id_valid:
            return SkipReason.SPECIAL_ID_PROGRAM_MISMATCH
        if not self.is_special_id and not self.guest_exists:
            return SkipReason.GUEST_NOT_FOUND
        return None

    @property
    def is_eligible(self) -> bool:
        return self.skip_reason() is None


@dataclass(frozen=True)
class RowRejection:
    """Row dropped before a ParsedRecord could be built (unparseable date)."""
    row_index: int
    guest_id: str
    program: str
    reason: SkipReason
    detail: str = ""


@dataclass(frozen=True)
class RowFiltered:
    """Row outside the caller's date range; excluded from every total."""
    row_index: int


@dataclass(frozen=True)
class SkipRecord:
    """Lower-severity ledger entry for a row skipped before persistence."""
    row_number: int
    guest_id: str
    program: str
    reason: SkipReason
    detail: str = ""

    @classmethod
    def from_record(cls, record: ParsedRecord, reason: SkipReason) -> SkipRecord:
        return cls(
            row_number=record.row_number,
            guest_id=record.guest_id,
            program=record.program,
            reason=reason,
            detail=record.original_date,
        )

    @classmethod
    def from_rejection(cls, rejection: RowRejection) -> SkipRecord:
        return cls(
            row_number=row_number_for(rejection.row_index),
            guest_id=rejection.guest_id,
            program=rejection.program,
            reason=rejection.reason,
            detail=rejection.detail,
        )
