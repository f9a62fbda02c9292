from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence

from ..db.batch_insert import BatchInsertError, PersistenceGateway
from ..models.catalogs import ServiceCategory
from ..models.error_record import ErrorRecord
from ..models.guest import GuestDirectory
from ..models.processing_result import BatchResult
from ..models.records import ParsedRecord

"""Category dispatch for one chunk of eligible records.

Special-identifier records are written one at a time (each carries its own
meal type and label). Every other category is written with exactly one bulk
call per chunk; a failed call fails the whole bucket.
"""

__all__ = [
    "CategoryDispatcher",
]

logger = logging.getLogger(__name__)

REGULAR_CATEGORIES: tuple[ServiceCategory, ...] = tuple(
    c for c in ServiceCategory if c is not ServiceCategory.SPECIAL_MEALS
)


class CategoryDispatcher:
    def __init__(self, gateway: PersistenceGateway, directory: GuestDirectory) -> None:
        self.gateway = gateway
        self.directory = directory

    def dispatch(self, records: Sequence[ParsedRecord]) -> BatchResult:
        result = BatchResult()
        buckets: dict[ServiceCategory, list[ParsedRecord]] = {c: [] for c in ServiceCategory}

        for record in records:
            category = record.category
            if category is ServiceCategory.SPECIAL_MEALS:
                buckets[category].append(record)
                continue
            guest = self.directory.find(record.guest_id)
            if guest is None:
                result.add_error(
                    ErrorRecord(
                        row_number=record.row_number,
                        guest_id=record.guest_id or "unknown",
                        program=record.program,
                        message=f'Guest with ID "{record.guest_id}" not found',
                    )
                )
                continue
            if category is None:
                # eligible レコードでは起こらない (program_valid 済み)
                result.add_error(
                    ErrorRecord(
                        row_number=record.row_number,
                        guest_id=record.guest_id,
                        program=record.program,
                        message=f'Unknown program "{record.program}"',
                    )
                )
                continue
            buckets[category].append(
                dataclasses.replace(record, internal_guest_id=guest.id, guest=guest)
            )

        self._insert_special_meals(buckets[ServiceCategory.SPECIAL_MEALS], result)
        for category in REGULAR_CATEGORIES:
            self._insert_bucket(category, buckets[category], result)
        return result

    def _insert_special_meals(self, records: list[ParsedRecord], result: BatchResult) -> None:
        for record in records:
            mapping = record.special_mapping
            if mapping is None:
                continue
            try:
                self.gateway.bulk_insert(ServiceCategory.SPECIAL_MEALS, [record])
            except BatchInsertError as e:
                result.add_error(
                    ErrorRecord(
                        row_number=record.row_number,
                        guest_id=record.guest_id,
                        program=record.program,
                        message=str(e),
                    )
                )
                continue
            result.add_special_meal(mapping.label, record.count)
            result.success_count += 1

    def _insert_bucket(
        self, category: ServiceCategory, records: list[ParsedRecord], result: BatchResult
    ) -> None:
        if not records:
            return
        try:
            inserted = self.gateway.bulk_insert(category, records)
        except BatchInsertError as e:
            logger.error(f"{category.failure_label}: {e} ({len(records)} row(s))")
            for r in records:
                result.add_error(
                    ErrorRecord(
                        row_number=r.row_number,
                        guest_id=r.guest_id,
                        program=r.program,
                        message=f"{category.failure_label}: {e}",
                    )
                )
            return
        result.success_count += inserted
