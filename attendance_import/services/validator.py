from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from ..csvfile.dates import DateNormalizer, DateRange
from ..csvfile.header import HeaderMap
from ..models.catalogs import Program, ProgramCatalog, SpecialIdentifierCatalog
from ..models.guest import GuestDirectory
from ..models.records import (
    ParsedRecord,
    RowFiltered,
    RowRejection,
    SkipReason,
    row_number_for,
)

"""Record validation and classification.

Turns one tokenized row into a fully flagged ParsedRecord, a RowRejection
(unparseable date) or a RowFiltered marker (outside the caller's date range).
Whether a ParsedRecord is persisted is decided by the chunked processor.
"""

__all__ = [
    "RecordValidator",
    "parse_count",
]

logger = logging.getLogger(__name__)

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def parse_count(raw: str) -> int:
    """Leading-integer parse; unparseable -> 1, anything below 1 -> 1."""
    m = _LEADING_INT_RE.match(raw or "")
    if not m:
        return 1
    return max(int(m[1]), 1)


class RecordValidator:
    def __init__(
        self,
        directory: GuestDirectory,
        dates: DateNormalizer,
        *,
        programs: ProgramCatalog | None = None,
        specials: SpecialIdentifierCatalog | None = None,
        date_range: DateRange | None = None,
    ) -> None:
        self.directory = directory
        self.dates = dates
        self.programs = programs or ProgramCatalog()
        self.specials = specials or SpecialIdentifierCatalog()
        self.date_range = date_range

    def validate(
        self, fields: Sequence[str], row_index: int, header: HeaderMap
    ) -> ParsedRecord | RowRejection | RowFiltered:
        attendance_id = header.get(fields, "attendance_id")
        guest_id = header.get(fields, "guest_id")
        raw_count = header.get(fields, "count")
        count = parse_count(raw_count)
        program_text = header.get(fields, "program")
        date_text = header.get(fields, "date_submitted")

        program = self.programs.normalize(program_text)
        program_valid = program is not None

        instant = self.dates.parse(date_text)
        if instant is None:
            logger.warning(
                f'Skipping row {row_number_for(row_index)}: Invalid date format "{date_text}".'
            )
            return RowRejection(
                row_index=row_index,
                guest_id=guest_id,
                program=program.value if program else program_text,
                reason=SkipReason.INVALID_DATE,
                detail=date_text,
            )

        if self.date_range is not None and not self.date_range.contains(instant, self.dates.tzinfo):
            return RowFiltered(row_index=row_index)

        guest_id_provided = bool(guest_id)
        special_mapping = self.specials.find(guest_id)
        is_special_id = special_mapping is not None
        # 特殊 ID は Meal プログラムでのみ有効
        special_id_valid = not is_special_id or program is Program.MEAL

        guest_exists = True
        if not is_special_id and guest_id_provided:
            guest_exists = self.directory.find(guest_id) is not None

        return ParsedRecord(
            attendance_id=attendance_id,
            guest_id=guest_id,
            count=count,
            raw_count=raw_count,
            program=program.value if program else program_text,
            program_type=program.category.value if program else "",
            date_submitted=instant,
            original_date=date_text,
            served_on=self.dates.service_day(instant),
            is_special_id=is_special_id,
            special_mapping=special_mapping,
            guest_id_provided=guest_id_provided,
            program_valid=program_valid,
            special_id_valid=special_id_valid,
            guest_exists=guest_exists,
            row_index=row_index,
        )
