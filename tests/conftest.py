# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from attendance_import.db.batch_insert import DryRunGateway
from attendance_import.logging.init import reset_logging
from attendance_import.models.guest import Guest, GuestDirectory

HEADER = "Attendance_ID,Guest_ID,Count,Program,Date_Submitted"


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """chunk_size: 2
max_logged_errors: 50
max_inline_errors: 5
timezone: America/Los_Angeles
report_directory: ./logs
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def guests() -> GuestDirectory:
    return GuestDirectory(
        [
            Guest(id="uuid-1", external_id="G1", full_name="Alex Doe"),
            Guest(id="uuid-2", external_id="G2", full_name="Sam Roe"),
            Guest(id="uuid-3", external_id="G3", full_name="Kim Poe"),
        ]
    )


@pytest.fixture()
def gateway() -> DryRunGateway:
    return DryRunGateway()


@pytest.fixture()
def write_roster(temp_workdir: Path) -> Path:
    roster = temp_workdir / "data" / "guests.csv"
    roster.write_text(
        "id,external_id,full_name\nuuid-1,G1,Alex Doe\nuuid-2,G2,Sam Roe\nuuid-3,G3,Kim Poe\n",
        encoding="utf-8",
    )
    return roster


@pytest.fixture()
def write_attendance(temp_workdir: Path):
    def _write(*rows: str, name: str = "attendance.csv", header: str = HEADER) -> Path:
        path = temp_workdir / "data" / name
        path.write_text("\n".join((header, *rows)) + "\n", encoding="utf-8")
        return path
    return _write


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()
