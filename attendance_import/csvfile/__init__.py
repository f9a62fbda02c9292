"""Attendance CSV parsing: tokenizer, header resolution and date normalization."""

from .dates import DateNormalizer, DateRange
from .header import REQUIRED_COLUMNS, HeaderMap, resolve_header
from .reader import (
    FileFormatError,
    dedupe_lines,
    read_csv_file,
    read_csv_text,
    read_text_file,
    split_csv_line,
)

__all__ = [
    "DateNormalizer",
    "DateRange",
    "FileFormatError",
    "HeaderMap",
    "REQUIRED_COLUMNS",
    "dedupe_lines",
    "read_csv_file",
    "read_csv_text",
    "read_text_file",
    "resolve_header",
    "split_csv_line",
]
