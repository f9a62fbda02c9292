from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

from ..csvfile.header import HeaderMap
from ..csvfile.reader import FileFormatError, read_csv_file, split_csv_line

"""Guest directory snapshot.

The directory is built once at run start and is read-only afterwards: a guest
created while an import is running is not visible to that import.
"""

__all__ = [
    "Guest",
    "GuestDirectory",
]

GUESTS_QUERY = "SELECT id, external_id, full_name FROM guests"


@dataclass(frozen=True)
class Guest:
    id: str  # internal key (guests.id)
    external_id: str  # legacy / external identifier (guests.external_id)
    full_name: str = ""


class GuestDirectory:
    """Immutable lookup by internal id or external id."""

    def __init__(self, guests: Iterable[Guest] = ()) -> None:
        by_id: dict[str, Guest] = {}
        by_external: dict[str, Guest] = {}
        for g in guests:
            by_id.setdefault(str(g.id), g)
            if g.external_id:
                by_external.setdefault(g.external_id, g)
        self._by_id = MappingProxyType(by_id)
        self._by_external = MappingProxyType(by_external)

    def __len__(self) -> int:
        return len(self._by_id)

    def find(self, guest_id: str) -> Guest | None:
        """Match by internal key first, then by external identifier."""
        if not guest_id:
            return None
        return self._by_id.get(guest_id) or self._by_external.get(guest_id)

    @classmethod
    def from_cursor(cls, cursor: Any) -> GuestDirectory:
        """Load a snapshot from the ``guests`` table."""
        cursor.execute(GUESTS_QUERY)
        rows = cursor.fetchall()
        return cls(
            Guest(id=str(r[0]), external_id=str(r[1] or ""), full_name=str(r[2] or ""))
            for r in rows
        )

    @classmethod
    def from_roster_file(cls, path: Path) -> GuestDirectory:
        """Load a snapshot from a roster CSV with ``id`` and ``guest_id``/``external_id`` columns.

        Used by dry runs where no database is reachable.
        """
        lines = read_csv_file(path)
        if not lines:
            raise FileFormatError(f"guest roster is empty: {path}")
        header = HeaderMap.from_row(split_csv_line(lines[0]))
        if header.index("id") == -1:
            raise FileFormatError("guest roster missing column: id")
        external_key = "external_id" if header.index("external_id") != -1 else "guest_id"
        guests = []
        for line in lines[1:]:
            fields = split_csv_line(line)
            guest_id = header.get(fields, "id")
            if not guest_id:
                continue
            guests.append(
                Guest(
                    id=guest_id,
                    external_id=header.get(fields, external_key),
                    full_name=header.get(fields, "full_name"),
                )
            )
        return cls(guests)
