from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

from attendance_import.logging.error_log import ErrorLedger, REPORT_HEADER, report_file_name
from attendance_import.models.error_record import ErrorRecord


def _err(i: int) -> ErrorRecord:
    return ErrorRecord(row_number=i + 2, guest_id=f"G{i}", program="Meal", message=f"fail {i}")


def test_ledger_cap_drops_excess():
    ledger = ErrorLedger(max_logged=3, max_inline=2)
    ledger.extend(_err(i) for i in range(5))
    assert len(ledger) == 3
    assert ledger.dropped == 2
    assert ledger.is_full
    assert ledger.append(_err(9)) is False


def test_preview_and_has_more():
    ledger = ErrorLedger(max_logged=10, max_inline=2)
    ledger.extend(_err(i) for i in range(3))
    assert [e.row_number for e in ledger.preview()] == [2, 3]
    assert ledger.has_more


def test_snippets_first_three():
    ledger = ErrorLedger()
    ledger.extend(_err(i) for i in range(5))
    assert ledger.snippets() == [
        "Row 2 | Meal | Guest G0: fail 0",
        "Row 3 | Meal | Guest G1: fail 1",
        "Row 4 | Meal | Guest G2: fail 2",
    ]


def test_render_report_header_and_lf():
    ledger = ErrorLedger()
    ledger.append(ErrorRecord(7, "G1", "Hair Cut", 'bad "value", really'))
    text = ledger.render_report()
    lines = text.split("\n")
    assert lines[0] == ",".join(REPORT_HEADER) == "Row,Guest ID,Program,Message,Notes"
    assert lines[1] == '7,G1,Hair Cut,"bad ""value"", really",'
    assert "\r" not in text


def test_write_report(tmp_path: Path):
    ledger = ErrorLedger()
    assert ledger.write_report(tmp_path, "empty.csv") is None
    ledger.append(_err(1))
    path = ledger.write_report(tmp_path / "logs", "r.csv")
    assert path == tmp_path / "logs" / "r.csv"
    assert path.read_text(encoding="utf-8").startswith("Row,Guest ID")


def test_report_file_name():
    now = datetime(2025, 4, 29, 18, 53, 58, 123000, tzinfo=UTC)
    assert (
        report_file_name("attendance.csv", now)
        == "attendance_errors_2025-04-29T18-53-58-123Z.csv"
    )
    assert report_file_name(None, now).startswith("attendance_import_errors_")


def test_report_file_name_uses_utc_stamp():
    now = datetime(2025, 4, 29, 11, 0, 0, tzinfo=timezone(timedelta(hours=-7)))
    assert report_file_name("a.csv", now) == "a_errors_2025-04-29T18-00-00-000Z.csv"
