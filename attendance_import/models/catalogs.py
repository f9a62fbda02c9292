from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

"""Reference catalogs: programs, service categories and special identifiers.

Both catalogs are fixed tables. They are not editable at run time, so a run
can share a single instance across every chunk.
"""

__all__ = [
    "Program",
    "ServiceCategory",
    "SpecialMapping",
    "ProgramCatalog",
    "SpecialIdentifierCatalog",
    "SPECIAL_GUEST_IDS",
]


class ServiceCategory(Enum):
    """Persistence category for an attendance row.

    Member order is the dispatch order used within every chunk: special meals
    first, then the six regular buckets.
    """
    SPECIAL_MEALS = "specialMeals"
    MEALS = "meals"
    SHOWERS = "showers"
    LAUNDRY = "laundry"
    BICYCLES = "bicycles"
    HAIRCUTS = "haircuts"
    HOLIDAYS = "holidays"

    @property
    def table(self) -> str:
        return _CATEGORY_TABLES[self]

    @property
    def failure_label(self) -> str:
        """Prefix used in the error ledger when a bulk write fails."""
        return _CATEGORY_FAILURE_LABELS[self]


_CATEGORY_TABLES = {
    ServiceCategory.SPECIAL_MEALS: "meal_attendance",
    ServiceCategory.MEALS: "meal_attendance",
    ServiceCategory.SHOWERS: "shower_reservations",
    ServiceCategory.LAUNDRY: "laundry_bookings",
    ServiceCategory.BICYCLES: "bicycle_repairs",
    ServiceCategory.HAIRCUTS: "haircut_visits",
    ServiceCategory.HOLIDAYS: "holiday_visits",
}

_CATEGORY_FAILURE_LABELS = {
    ServiceCategory.SPECIAL_MEALS: "Special meal import failed",
    ServiceCategory.MEALS: "Meal import failed",
    ServiceCategory.SHOWERS: "Shower import failed",
    ServiceCategory.LAUNDRY: "Laundry import failed",
    ServiceCategory.BICYCLES: "Bicycle import failed",
    ServiceCategory.HAIRCUTS: "Haircut import failed",
    ServiceCategory.HOLIDAYS: "Holiday import failed",
}


class Program(Enum):
    """Declared service type of a row, as written in the import file."""
    MEAL = "Meal"
    SHOWER = "Shower"
    LAUNDRY = "Laundry"
    BICYCLE = "Bicycle"
    HAIR_CUT = "Hair Cut"
    HOLIDAY = "Holiday"

    @property
    def category(self) -> ServiceCategory:
        return _PROGRAM_CATEGORIES[self]


_PROGRAM_CATEGORIES = {
    Program.MEAL: ServiceCategory.MEALS,
    Program.SHOWER: ServiceCategory.SHOWERS,
    Program.LAUNDRY: ServiceCategory.LAUNDRY,
    Program.BICYCLE: ServiceCategory.BICYCLES,
    Program.HAIR_CUT: ServiceCategory.HAIRCUTS,
    Program.HOLIDAY: ServiceCategory.HOLIDAYS,
}


@dataclass(frozen=True)
class SpecialMapping:
    """Meal type and display label a special identifier stands for."""
    type: str  # meal_attendance.meal_type
    label: str  # key of the per-label quantity summary


# Non-personal identifiers that record meals without a guest profile.
SPECIAL_GUEST_IDS: Mapping[str, SpecialMapping] = {
    "M91834859": SpecialMapping(type="extra", label="Extra meals"),
    "M94816825": SpecialMapping(type="rv", label="RV meals"),
    "M47721243": SpecialMapping(type="lunch_bag", label="Lunch bags"),
    "M29017132": SpecialMapping(type="day_worker", label="Day Worker Center meals"),
    "M61706731": SpecialMapping(type="shelter", label="Shelter meals"),
    "M65842216": SpecialMapping(type="united_effort", label="United Effort meals"),
}


class ProgramCatalog:
    """Case-insensitive exact match of program text against Program."""

    def __init__(self, programs: tuple[Program, ...] = tuple(Program)) -> None:
        self._by_lower = {p.value.lower(): p for p in programs}

    def normalize(self, text: str) -> Program | None:
        return self._by_lower.get(text.strip().lower())


class SpecialIdentifierCatalog:
    """Lookup of special guest identifiers. Matching is exact."""

    def __init__(self, mappings: Mapping[str, SpecialMapping] = SPECIAL_GUEST_IDS) -> None:
        self._mappings = dict(mappings)

    def find(self, guest_id: str) -> SpecialMapping | None:
        return self._mappings.get(guest_id)

    def identifiers(self) -> list[str]:
        return list(self._mappings)
