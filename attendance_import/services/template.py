from __future__ import annotations

from dataclasses import dataclass

from ..models.catalogs import SPECIAL_GUEST_IDS

"""Import template generator.

The template shows every accepted date format, one row per program and one row
per special identifier. It depends only on the year.
"""

__all__ = [
    "TEMPLATE_FILE_NAME",
    "TEMPLATE_HEADER",
    "DateFormatExamples",
    "build_template_csv",
    "date_format_examples",
]

TEMPLATE_FILE_NAME = "attendance_template.csv"
TEMPLATE_HEADER = "Attendance_ID,Guest_ID,Count,Program,Date_Submitted"

# サンプル数量 (未指定の特殊 ID は 5)
SAMPLE_SPECIAL_COUNTS = {"M94816825": 10, "M61706731": 8, "M29017132": 15}


def _pad2(value: int) -> str:
    return f"{value:02d}"


def _format_mdy(month: int, day: int, year: int, leading_zero: bool = False) -> str:
    if leading_zero:
        return f"{_pad2(month)}/{_pad2(day)}/{year}"
    return f"{month}/{day}/{year}"


def _format_time_12h(hours24: int, minutes: int, seconds: int) -> str:
    period = "PM" if hours24 >= 12 else "AM"
    hour12 = (hours24 + 11) % 12 + 1
    return f"{hour12}:{_pad2(minutes)}:{_pad2(seconds)} {period}"


@dataclass(frozen=True)
class DateFormatExamples:
    iso: str
    numeric: str
    numeric_with_time: str


def date_format_examples(year: int) -> DateFormatExamples:
    numeric = _format_mdy(4, 29, year)
    return DateFormatExamples(
        iso=f"{year}-04-29",
        numeric=numeric,
        numeric_with_time=f"{numeric} {_format_time_12h(11, 53, 58)}",
    )


def build_template_csv(year: int) -> str:
    january_iso = f"{year}-01-15"
    january_padded = _format_mdy(1, 15, year, leading_zero=True)
    january_next_padded = _format_mdy(1, 16, year, leading_zero=True)
    with_time = date_format_examples(year).numeric_with_time

    rows = [
        TEMPLATE_HEADER,
        f"ATT001,123,1,Meal,{january_iso}",
        f"ATT002,456,1,Shower,{january_iso}",
        f"ATT003,789,1,Laundry,{january_padded}",
        f"ATT004,123,1,Bicycle,{with_time}",
        f"ATT005,456,1,Hair Cut,{january_iso}",
        f"ATT006,789,1,Holiday,{january_next_padded}",
    ]
    for i, special_id in enumerate(SPECIAL_GUEST_IDS, start=len(rows)):
        count = SAMPLE_SPECIAL_COUNTS.get(special_id, 5)
        rows.append(f"ATT{i:03d},{special_id},{count},Meal,{january_iso}")
    return "\n".join(rows)
