from __future__ import annotations

from pathlib import Path

"""Attendance CSV reader: line normalization, deduplication and tokenizing.

The tokenizer is deliberately tolerant. Exports from the legacy tracker are
often hand edited, so malformed quoting degrades (an unterminated quote runs to
the end of the line) instead of failing the whole import.
"""

__all__ = [
    "FileFormatError",
    "normalize_line_endings",
    "dedupe_lines",
    "split_csv_line",
    "read_csv_text",
    "read_csv_file",
    "read_text_file",
]

DELIMITER = ","
QUOTE = '"'


class FileFormatError(Exception):
    """Raised when the file cannot be imported at all (fatal, whole file)."""


def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def dedupe_lines(text: str) -> list[str]:
    """Split on line feeds, drop blank lines and collapse exact duplicates.

    First occurrence wins and order is preserved. Operators sometimes paste the
    same export twice into one file; identical lines are the same attendance.
    """
    seen: set[str] = set()
    lines: list[str] = []
    for line in text.split("\n"):
        if not line.strip() or line in seen:
            continue
        seen.add(line)
        lines.append(line)
    return lines


def split_csv_line(line: str, delimiter: str = DELIMITER) -> list[str]:
    """Tokenize one line into trimmed fields, honoring double-quote quoting."""
    out: list[str] = []
    cur: list[str] = []
    in_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == QUOTE:
            if in_quotes and i + 1 < n and line[i + 1] == QUOTE:
                cur.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            out.append("".join(cur).strip())
            cur = []
        else:
            cur.append(ch)
        i += 1
    out.append("".join(cur).strip())
    return out


def read_csv_text(text: str) -> list[str]:
    """Normalize line endings and return the unique non-blank lines."""
    return dedupe_lines(normalize_line_endings(text))


def read_text_file(path: Path) -> str:
    try:
        # utf-8-sig は先頭 BOM を除去。ヘッダ側でも念のため除去する
        # 不正バイトは U+FFFD に置換し、他の行は取り込む
        text = path.read_text(encoding="utf-8-sig", errors="replace")
    except FileNotFoundError as e:
        raise FileFormatError(f"file not found: {path}") from e
    except OSError as e:
        raise FileFormatError(f"unable to read {path.name}: {e}") from e
    return text


def read_csv_file(path: Path) -> list[str]:
    return read_csv_text(read_text_file(path))
