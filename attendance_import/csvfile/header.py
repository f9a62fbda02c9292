from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from .reader import FileFormatError, split_csv_line

"""Header resolution: arbitrary header text -> canonical column keys."""

__all__ = [
    "HeaderMap",
    "REQUIRED_COLUMNS",
    "normalize_header",
    "resolve_header",
]

BOM = "\ufeff"
REQUIRED_COLUMNS: tuple[str, ...] = ("attendance_id", "count", "program", "date_submitted")

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_header(token: str) -> str:
    return _WHITESPACE_RE.sub("_", token.lower())


@dataclass(frozen=True)
class HeaderMap:
    """Canonical column key -> field index, built once per file."""
    raw: tuple[str, ...]
    keys: tuple[str, ...]

    @classmethod
    def from_row(cls, fields: Sequence[str]) -> HeaderMap:
        raw = list(fields)
        if raw:
            # BOM は先頭トークンのみ
            raw[0] = raw[0].lstrip(BOM)
        return cls(raw=tuple(raw), keys=tuple(normalize_header(h) for h in raw))

    def index(self, key: str) -> int:
        """Index of the first column with this key, or -1 when absent."""
        try:
            return self.keys.index(key)
        except ValueError:
            return -1

    def get(self, fields: Sequence[str], key: str) -> str:
        """Field value for ``key``; empty string for unmapped keys or short rows."""
        i = self.index(key)
        if i == -1 or i >= len(fields):
            return ""
        return (fields[i] or "").strip()

    def missing(self, required: Sequence[str] = REQUIRED_COLUMNS) -> list[str]:
        return [k for k in required if self.index(k) == -1]


def resolve_header(line: str) -> HeaderMap:
    """Build the HeaderMap for the first line and validate required columns.

    Raises:
        FileFormatError: if any required column is missing. Column names in the
            message are human readable (underscore replaced with space).
    """
    header = HeaderMap.from_row(split_csv_line(line))
    missing = header.missing()
    if missing:
        names = ", ".join(m.replace("_", " ") for m in missing)
        raise FileFormatError(f"Missing required column(s): {names}")
    return header
