from __future__ import annotations

from datetime import UTC, date, datetime

import psycopg2
import pytest

from attendance_import.db.batch_insert import (
    BatchInsertError,
    DryRunGateway,
    InsertResult,
    PostgresGateway,
    batch_insert,
)
from attendance_import.db.payloads import CATEGORY_COLUMNS, build_rows
from attendance_import.models.catalogs import SPECIAL_GUEST_IDS, ServiceCategory
from attendance_import.models.records import ParsedRecord

SUBMITTED = datetime(2025, 4, 29, 19, 0, tzinfo=UTC)


def make_record(guest_id="G1", program="Meal", program_type="meals", count=1, row_index=0, **kw):
    special = SPECIAL_GUEST_IDS.get(guest_id)
    fields = dict(
        attendance_id=f"A{row_index}",
        guest_id=guest_id,
        count=count,
        raw_count=str(count),
        program=program,
        program_type=program_type,
        date_submitted=SUBMITTED,
        original_date="2025-04-29",
        served_on=date(2025, 4, 29),
        is_special_id=special is not None,
        special_mapping=special,
        guest_id_provided=bool(guest_id),
        program_valid=True,
        special_id_valid=True,
        guest_exists=True,
        row_index=row_index,
        internal_guest_id=None if special else f"uuid-{guest_id}",
    )
    fields.update(kw)
    return ParsedRecord(**fields)


class DummyCursor:
    def __init__(self) -> None:
        self.queries: list[str] = []
        self.rows: list = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class DummyConnection:
    def __init__(self) -> None:
        self.cur = DummyCursor()
        self.commits = 0
        self.rollbacks = 0

    def cursor(self):
        return self.cur

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


# execute_values を差し替えて実 DB なしでロジックを検証する
@pytest.fixture(autouse=True)
def patch_execute_values(monkeypatch):
    import attendance_import.db.batch_insert as bi

    def fake_execute_values(cursor, sql, rows, page_size=1000, template=None):
        cursor.queries.append(sql)
        cursor.rows.extend(rows)

    monkeypatch.setattr(bi, "execute_values", fake_execute_values)
    return fake_execute_values


def test_batch_insert_basic():
    cur = DummyCursor()
    res = batch_insert(cur, table="haircut_visits", columns=["guest_id", "served_at"], rows=[["u1", SUBMITTED]])
    assert res == InsertResult(inserted_rows=1)
    assert cur.queries == ['INSERT INTO haircut_visits ("guest_id","served_at") VALUES %s']


def test_batch_insert_empty_rows_skips_driver():
    cur = DummyCursor()
    calls = []
    res = batch_insert(cur, "t", ["c"], [], metrics_callback=calls.append)
    assert res.inserted_rows == 0
    assert cur.queries == []
    assert calls == []


def test_batch_insert_wraps_driver_error(monkeypatch):
    import attendance_import.db.batch_insert as bi

    def boom(*a, **k):
        raise psycopg2.OperationalError("timeout\nDETAIL: more")

    monkeypatch.setattr(bi, "execute_values", boom)
    with pytest.raises(BatchInsertError) as e:
        batch_insert(DummyCursor(), "t", ["c"], [[1]])
    assert str(e.value) == "timeout"


def test_batch_insert_metrics_callback():
    captured = []
    batch_insert(DummyCursor(), "t", ["c"], [[1], [2]], metrics_callback=captured.append)
    assert len(captured) == 1
    assert captured[0].batch_size == 2
    assert captured[0].elapsed_seconds >= 0


def test_payload_rows_per_category():
    meal = make_record("G1", count=3)
    special = make_record("M94816825", count=10)
    shower = make_record("G2", "Shower", "showers")
    laundry = make_record("G2", "Laundry", "laundry")
    bike = make_record("G3", "Bicycle", "bicycles")
    haircut = make_record("G3", "Hair Cut", "haircuts")

    assert build_rows(ServiceCategory.MEALS, [meal]) == [
        ("guest", "uuid-G1", 3, date(2025, 4, 29), SUBMITTED)
    ]
    assert build_rows(ServiceCategory.SPECIAL_MEALS, [special]) == [
        ("rv", None, 10, date(2025, 4, 29), SUBMITTED)
    ]
    assert build_rows(ServiceCategory.SHOWERS, [shower]) == [
        ("uuid-G2", None, date(2025, 4, 29), "done")
    ]
    assert build_rows(ServiceCategory.LAUNDRY, [laundry])[0][2] == "offsite"
    bike_row = build_rows(ServiceCategory.BICYCLES, [bike])[0]
    assert len(bike_row) == len(CATEGORY_COLUMNS[ServiceCategory.BICYCLES])
    assert bike_row[1] == "Legacy Import"
    assert build_rows(ServiceCategory.HAIRCUTS, [haircut]) == [("uuid-G3", SUBMITTED)]


def test_postgres_gateway_commits_per_call():
    conn = DummyConnection()
    gw = PostgresGateway(conn)
    assert gw.bulk_insert(ServiceCategory.SHOWERS, [make_record("G1", "Shower", "showers")]) == 1
    assert conn.commits == 1
    assert conn.cur.queries[0].startswith("INSERT INTO shower_reservations")
    assert gw.bulk_insert(ServiceCategory.SHOWERS, []) == 0
    assert conn.commits == 1


def test_postgres_gateway_rolls_back_on_failure(monkeypatch):
    import attendance_import.db.batch_insert as bi

    def boom(*a, **k):
        raise psycopg2.IntegrityError("duplicate key value")

    monkeypatch.setattr(bi, "execute_values", boom)
    conn = DummyConnection()
    with pytest.raises(BatchInsertError) as e:
        PostgresGateway(conn).bulk_insert(ServiceCategory.MEALS, [make_record()])
    assert "duplicate key value" in str(e.value)
    assert conn.rollbacks == 1
    assert conn.commits == 0


def test_dry_run_gateway_records_and_fails_on_demand():
    gw = DryRunGateway(failures={ServiceCategory.SHOWERS: "timeout"})
    assert gw.bulk_insert(ServiceCategory.MEALS, [make_record(), make_record("G2")]) == 2
    with pytest.raises(BatchInsertError):
        gw.bulk_insert(ServiceCategory.SHOWERS, [make_record("G1", "Shower", "showers")])
    assert gw.calls == [(ServiceCategory.MEALS, 2), (ServiceCategory.SHOWERS, 1)]
    assert len(gw.rows[ServiceCategory.MEALS]) == 2
    assert ServiceCategory.SHOWERS not in gw.rows
