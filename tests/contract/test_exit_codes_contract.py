from __future__ import annotations

from pathlib import Path

from attendance_import.cli import main as cli_main

"""Exit code contract: 0 success, 2 row-level persistence errors, 1 fatal."""


def test_exit_code_fatal_bad_config(temp_workdir: Path, capsys):
    missing = temp_workdir / "config" / "nope.yml"
    code = cli_main(["import", "whatever.csv", "--config", str(missing), "--dry-run"])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_fatal_missing_columns(write_config, write_roster, write_attendance, capsys):
    path = write_attendance("G1,Meal", header="Guest_ID,Program")
    code = cli_main(["import", str(path), "--dry-run", "--guests", str(write_roster)])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR file: Missing required column(s): attendance id, count, date submitted" in out
    assert "SUMMARY" not in out


def test_exit_code_fatal_header_only(write_config, write_roster, temp_workdir: Path, capsys):
    path = temp_workdir / "data" / "empty.csv"
    path.write_text("Attendance_ID,Guest_ID,Count,Program,Date_Submitted\n", encoding="utf-8")
    code = cli_main(["import", str(path), "--dry-run", "--guests", str(write_roster)])
    assert code == 1
    assert "CSV needs header + at least one data row" in capsys.readouterr().out


def test_exit_code_fatal_unreadable_file(write_config, write_roster, temp_workdir: Path, capsys):
    code = cli_main(
        ["import", str(temp_workdir / "data" / "missing.csv"), "--dry-run", "--guests", str(write_roster)]
    )
    assert code == 1
    assert "ERROR file: file not found" in capsys.readouterr().out


def test_exit_code_fatal_half_date_range(write_config, write_roster, write_attendance):
    path = write_attendance("A1,G1,1,Meal,2025-04-29")
    code = cli_main(
        ["import", str(path), "--dry-run", "--guests", str(write_roster), "--start-date", "2025-04-01"]
    )
    assert code == 1


def test_exit_code_zero_when_only_skips(write_config, write_roster, write_attendance, capsys):
    path = write_attendance("A1,,1,Meal,2025-04-29", "A2,G1,1,Meal,not-a-date")
    code = cli_main(["import", str(path), "--dry-run", "--guests", str(write_roster)])
    out = capsys.readouterr().out
    assert code == 0
    assert "skipped=2" in out
