from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

import psycopg2
from psycopg2.extras import execute_values

from attendance_import.models.catalogs import ServiceCategory
from attendance_import.models.records import ParsedRecord

from .payloads import CATEGORY_COLUMNS, build_rows

"""Persistence gateway: bulk INSERT per service category.

Contract: ``bulk_insert(category, records)`` returns the inserted row count or
raises BatchInsertError. A call is all-or-nothing; callers never try to infer
partial success from a failed call.

PostgresGateway uses psycopg2.extras.execute_values and commits once per call
(rollback on failure). DryRunGateway keeps rows in memory for dry runs.
"""

__all__ = [
    "BatchInsertError",
    "BatchMetrics",
    "DryRunGateway",
    "InsertResult",
    "PersistenceGateway",
    "PostgresGateway",
    "batch_insert",
]

logger = logging.getLogger(__name__)


class BatchInsertError(Exception):
    pass


class PersistenceGateway(Protocol):
    def bulk_insert(self, category: ServiceCategory, records: Sequence[ParsedRecord]) -> int:
        ...


@dataclass(frozen=True)
class BatchMetrics:
    """Timing for a single execute_values call."""
    batch_size: int
    elapsed_seconds: float
    start_time: float
    end_time: float


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int


def _db_message(e: Exception) -> str:
    # psycopg2 のメッセージは DETAIL 等を改行で連結するため先頭行のみ
    text = str(e).strip()
    return text.splitlines()[0] if text else e.__class__.__name__


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    page_size: int = 1000,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> InsertResult:
    """Perform a batched INSERT using psycopg2.extras.execute_values.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table (fixed names from ServiceCategory, not user input)
    columns: insert columns
    rows: row value sequences in column order
    page_size: execute_values page size
    metrics_callback: receives BatchMetrics; not invoked for empty ``rows``
    """
    rows_list = list(rows)
    if not rows_list:
        return InsertResult(inserted_rows=0)

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"

    start_time = time.time()
    try:
        execute_values(cursor, sql, rows_list, page_size=page_size)
    except Exception as e:
        raise BatchInsertError(_db_message(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(rows_list),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )

    return InsertResult(inserted_rows=len(rows_list))


class PostgresGateway:
    """Gateway over a psycopg2 connection; one transaction per bulk call."""

    def __init__(
        self,
        connection: Any,
        *,
        page_size: int = 1000,
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> None:
        self._conn = connection
        self.page_size = page_size
        self.metrics_callback = metrics_callback

    def bulk_insert(self, category: ServiceCategory, records: Sequence[ParsedRecord]) -> int:
        if not records:
            return 0
        try:
            rows = build_rows(category, records)
        except ValueError as e:
            raise BatchInsertError(str(e)) from e
        try:
            with self._conn.cursor() as cur:
                result = batch_insert(
                    cur,
                    category.table,
                    CATEGORY_COLUMNS[category],
                    rows,
                    page_size=self.page_size,
                    metrics_callback=self.metrics_callback,
                )
            self._conn.commit()
        except BatchInsertError:
            self._rollback()
            raise
        except psycopg2.Error as e:
            self._rollback()
            raise BatchInsertError(_db_message(e)) from e
        logger.debug(f"inserted {result.inserted_rows} row(s) into {category.table}")
        return result.inserted_rows

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
        except psycopg2.Error as e:
            logger.warning(f"rollback failed: {_db_message(e)}")


@dataclass
class DryRunGateway:
    """In-memory gateway: validates payloads, stores rows, writes nothing.

    ``failures`` maps a category to a message; calls for that category raise
    BatchInsertError with it (used to rehearse partial failures).
    """
    failures: dict[ServiceCategory, str] = field(default_factory=dict)
    rows: dict[ServiceCategory, list[tuple[Any, ...]]] = field(default_factory=dict)
    calls: list[tuple[ServiceCategory, int]] = field(default_factory=list)

    def bulk_insert(self, category: ServiceCategory, records: Sequence[ParsedRecord]) -> int:
        self.calls.append((category, len(records)))
        if category in self.failures:
            raise BatchInsertError(self.failures[category])
        try:
            built = build_rows(category, records)
        except ValueError as e:
            raise BatchInsertError(str(e)) from e
        self.rows.setdefault(category, []).extend(built)
        return len(built)
