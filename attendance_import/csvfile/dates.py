from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pandas as pd

"""Date normalization for Date_Submitted values.

Three literal families are recognised, in this order:

1. ``YYYY-MM-DD``               -> local noon
2. ``M/D/YYYY``                 -> local noon
3. ``M/D/YYYY H:MM:SS AM|PM``   -> the stated local time

"Local" is the service timezone (the timezone whose calendar day the program
counts attendance by), not the machine timezone. Noon keeps a date-only value on
the same calendar day whatever offset is applied later. Anything else is handed
to pandas as a last resort. Results are aware datetimes in UTC.
"""

__all__ = [
    "DateNormalizer",
    "DateRange",
    "to_iso",
]

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_MDY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_MDY_TIME_RE = re.compile(
    r"^(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):(\d{2}):(\d{2})\s+(AM|PM)$",
    re.IGNORECASE,
)
# pandas はこれらを実行時刻として解釈する
_RELATIVE_KEYWORDS = frozenset({"now", "today", "yesterday", "tomorrow"})

NOON = time(12, 0, 0)


def _load_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"unknown timezone: {name}") from e


def to_iso(instant: datetime) -> str:
    """Render as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    utc = instant.astimezone(UTC)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


class DateNormalizer:
    """Parse Date_Submitted text into a canonical UTC instant."""

    def __init__(self, timezone: str = "America/Los_Angeles") -> None:
        self.timezone = timezone
        self._tz = _load_zone(timezone)

    @property
    def tzinfo(self) -> ZoneInfo:
        return self._tz

    def parse(self, text: str | None) -> datetime | None:
        raw = (text or "").strip()
        if not raw:
            return None

        m = _ISO_DATE_RE.match(raw)
        if m:
            return self._local(int(m[1]), int(m[2]), int(m[3]), NOON)

        m = _MDY_RE.match(raw)
        if m:
            return self._local(int(m[3]), int(m[1]), int(m[2]), NOON)

        m = _MDY_TIME_RE.match(raw)
        if m:
            hour12, minute, second = int(m[4]), int(m[5]), int(m[6])
            if not 1 <= hour12 <= 12:
                return None
            hour = hour12 % 12 + (12 if m[7].upper() == "PM" else 0)
            try:
                stated = time(hour, minute, second)
            except ValueError:
                return None
            return self._local(int(m[3]), int(m[1]), int(m[2]), stated)

        return self._parse_generic(raw)

    def service_day(self, instant: datetime) -> date:
        """Calendar day of ``instant`` in the service timezone."""
        return instant.astimezone(self._tz).date()

    def _local(self, year: int, month: int, day: int, at: time) -> datetime | None:
        try:
            local = datetime.combine(date(year, month, day), at, tzinfo=self._tz)
        except ValueError:
            # 2/30/2025 等、形式は合っているが暦上存在しない日付
            return None
        return local.astimezone(UTC)

    def _parse_generic(self, raw: str) -> datetime | None:
        if raw.lower() in _RELATIVE_KEYWORDS:
            return None
        try:
            ts = pd.to_datetime(raw)
        except (ValueError, TypeError, OverflowError):
            return None
        if pd.isna(ts):
            return None
        parsed = ts.to_pydatetime()
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=self._tz)
        logger.debug("date %r parsed by fallback parser", raw)
        return parsed.astimezone(UTC)


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-day filter evaluated in the service timezone."""
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"end date {self.end} is before start date {self.start}")

    def bounds(self, tz: ZoneInfo) -> tuple[datetime, datetime]:
        lower = datetime.combine(self.start, time.min, tzinfo=tz)
        upper = datetime.combine(self.end + timedelta(days=1), time.min, tzinfo=tz)
        return lower, upper - timedelta(microseconds=1)

    def contains(self, instant: datetime, tz: ZoneInfo) -> bool:
        lower, upper = self.bounds(tz)
        return lower <= instant <= upper

    def describe(self) -> str:
        return f"filtering {self.start.isoformat()} to {self.end.isoformat()}"
