from __future__ import annotations

from pathlib import Path

import pytest

from attendance_import.csvfile.reader import (
    FileFormatError,
    dedupe_lines,
    normalize_line_endings,
    read_csv_file,
    read_csv_text,
    split_csv_line,
)


def test_normalize_line_endings_crlf_and_cr():
    assert normalize_line_endings("a\r\nb\rc\n") == "a\nb\nc\n"


def test_dedupe_drops_blank_and_duplicate_lines():
    text = "h\nx,1\n\n   \nx,1\ny,2\nx,1"
    assert dedupe_lines(text) == ["h", "x,1", "y,2"]


def test_dedupe_is_idempotent_and_never_grows():
    text = "h\na\nb\na\n\nc\nb"
    once = dedupe_lines(text)
    twice = dedupe_lines("\n".join(once))
    assert once == twice
    assert len(once) <= len(text.split("\n"))


def test_dedupe_keeps_near_duplicates():
    # 末尾空白の違いは別行として扱う
    assert dedupe_lines("a,1\na,1 ") == ["a,1", "a,1 "]


@pytest.mark.parametrize(
    "line,expected",
    [
        ("a,b,c", ["a", "b", "c"]),
        (" a , b ,c ", ["a", "b", "c"]),
        ('"Doe, Jane",2', ["Doe, Jane", "2"]),
        ('"say ""hi""",x', ['say "hi"', "x"]),
        ("a,,c", ["a", "", "c"]),
        ("", [""]),
        ('"unterminated,still one', ["unterminated,still one"]),
    ],
)
def test_split_csv_line(line, expected):
    assert split_csv_line(line) == expected


def test_split_csv_line_custom_delimiter():
    assert split_csv_line("a;b;'c'", delimiter=";") == ["a", "b", "'c'"]


def test_split_csv_line_keeps_embedded_newline_inside_quotes():
    assert split_csv_line('"line1\nline2",x') == ["line1\nline2", "x"]


def test_read_csv_text_crlf():
    assert read_csv_text("h1,h2\r\n1,2\r\n1,2\r\n") == ["h1,h2", "1,2"]


def test_read_csv_file_strips_bom(tmp_path: Path):
    p = tmp_path / "a.csv"
    p.write_bytes("\ufeffAttendance_ID,Count\r\nA,1\r\n".encode("utf-8"))
    assert read_csv_file(p) == ["Attendance_ID,Count", "A,1"]


def test_read_csv_file_missing(tmp_path: Path):
    with pytest.raises(FileFormatError) as e:
        read_csv_file(tmp_path / "nope.csv")
    assert "file not found" in str(e.value)


def test_read_csv_file_undecodable_bytes_are_replaced(tmp_path: Path):
    p = tmp_path / "latin.csv"
    p.write_bytes(b"h\n\xff\xfe\xfa\n")
    assert read_csv_file(p) == ["h", "\ufffd\ufffd\ufffd"]


def test_read_csv_file_latin1_row_keeps_other_rows(tmp_path: Path):
    p = tmp_path / "mixed.csv"
    p.write_bytes(b"Attendance_ID,Notes\nA,Jos\xe9\nB,ok\n")
    lines = read_csv_file(p)
    assert lines == ["Attendance_ID,Notes", "A,Jos\ufffd", "B,ok"]
