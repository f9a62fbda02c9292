from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from attendance_import.models.catalogs import ServiceCategory
from attendance_import.models.records import ParsedRecord

"""Row payload builders, one per service category.

Each builder turns a resolved ParsedRecord into the value tuple for its table,
in the column order of CATEGORY_COLUMNS. Regular categories require
``internal_guest_id`` to have been attached by the dispatcher.
"""

__all__ = [
    "CATEGORY_COLUMNS",
    "LEGACY_REPAIR_TYPE",
    "build_rows",
]

LEGACY_REPAIR_TYPE = "Legacy Import"
LEGACY_NOTE = "Imported from legacy system"
DONE = "done"

CATEGORY_COLUMNS: dict[ServiceCategory, tuple[str, ...]] = {
    ServiceCategory.SPECIAL_MEALS: ("meal_type", "guest_id", "quantity", "served_on", "recorded_at"),
    ServiceCategory.MEALS: ("meal_type", "guest_id", "quantity", "served_on", "recorded_at"),
    ServiceCategory.SHOWERS: ("guest_id", "scheduled_time", "scheduled_for", "status"),
    ServiceCategory.LAUNDRY: (
        "guest_id", "slot_label", "laundry_type", "bag_number", "scheduled_for", "status",
    ),
    ServiceCategory.BICYCLES: (
        "guest_id", "repair_type", "repair_types", "completed_repairs", "notes",
        "status", "priority", "requested_at", "completed_at",
    ),
    ServiceCategory.HAIRCUTS: ("guest_id", "served_at"),
    ServiceCategory.HOLIDAYS: ("guest_id", "served_at"),
}


def _special_meal_row(r: ParsedRecord) -> tuple[Any, ...]:
    if r.special_mapping is None:
        raise ValueError(f"row {r.row_number}: special meal without mapping")
    # 特殊 ID はゲストプロフィールに紐付かない
    return (r.special_mapping.type, None, r.count, r.served_on, r.date_submitted)


def _meal_row(r: ParsedRecord) -> tuple[Any, ...]:
    return ("guest", r.internal_guest_id, r.count, r.served_on, r.date_submitted)


def _shower_row(r: ParsedRecord) -> tuple[Any, ...]:
    return (r.internal_guest_id, None, r.served_on, DONE)


def _laundry_row(r: ParsedRecord) -> tuple[Any, ...]:
    return (r.internal_guest_id, None, "offsite", None, r.served_on, DONE)


def _bicycle_row(r: ParsedRecord) -> tuple[Any, ...]:
    return (
        r.internal_guest_id,
        LEGACY_REPAIR_TYPE,
        [LEGACY_REPAIR_TYPE],
        [],
        LEGACY_NOTE,
        DONE,
        0,
        r.date_submitted,
        r.date_submitted,
    )


def _visit_row(r: ParsedRecord) -> tuple[Any, ...]:
    return (r.internal_guest_id, r.date_submitted)


_BUILDERS: dict[ServiceCategory, Callable[[ParsedRecord], tuple[Any, ...]]] = {
    ServiceCategory.SPECIAL_MEALS: _special_meal_row,
    ServiceCategory.MEALS: _meal_row,
    ServiceCategory.SHOWERS: _shower_row,
    ServiceCategory.LAUNDRY: _laundry_row,
    ServiceCategory.BICYCLES: _bicycle_row,
    ServiceCategory.HAIRCUTS: _visit_row,
    ServiceCategory.HOLIDAYS: _visit_row,
}


def build_rows(category: ServiceCategory, records: Sequence[ParsedRecord]) -> list[tuple[Any, ...]]:
    builder = _BUILDERS[category]
    return [builder(r) for r in records]
