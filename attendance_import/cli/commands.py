from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from attendance_import.config.loader import ConfigError, load_config
from attendance_import.csvfile.dates import DateRange
from attendance_import.csvfile.reader import FileFormatError
from attendance_import.db.batch_insert import DryRunGateway, PostgresGateway
from attendance_import.logging.init import log_summary, setup_logging
from attendance_import.models.config_models import ImportConfig
from attendance_import.models.error_record import format_error_snippet
from attendance_import.models.guest import GuestDirectory
from attendance_import.models.processing_result import ImportResult
from attendance_import.services.orchestrator import ProcessingError, import_file
from attendance_import.services.summary import render_summary_line
from attendance_import.services.template import TEMPLATE_FILE_NAME, build_template_csv

"""CLI entrypoint.

    attendance-import import FILE [--start-date D --end-date D] [--guests CSV] [--dry-run]
    attendance-import template [--year N] [--output PATH]

Exit codes:
- 0: every row persisted, skipped or filtered without errors
- 2: at least one row failed to persist (error report written)
- 1: fatal (config, unreadable file, missing columns, no database)
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

logger = logging.getLogger(__name__)


def _resolve_dsn(cfg: ImportConfig) -> str:
    """Connection string; environment (.env included) wins over config/import.yml.

    1. DATABASE_URL / PGDSN / database.dsn
    2. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE, falling back per key
       to the database section
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[psycopg2.extensions.connection]:
    kwargs = {}
    if cfg.database.connect_timeout is not None:
        kwargs["connect_timeout"] = cfg.database.connect_timeout
    conn = psycopg2.connect(_resolve_dsn(cfg), **kwargs)
    # コミットは gateway が bulk 呼び出しごとに行う
    conn.autocommit = False
    try:
        yield conn
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values override the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from e


def _parse_args(argv: list[str]) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--debug", action="store_true", help="Enable debug logging")

    p = argparse.ArgumentParser(
        prog="attendance-import", description="Attendance CSV -> PostgreSQL batch importer"
    )
    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", parents=[common], help="Import an attendance CSV file")
    imp.add_argument("file", type=Path, help="Attendance CSV export")
    imp.add_argument("--start-date", type=_parse_date, help="Only import rows on or after this day")
    imp.add_argument("--end-date", type=_parse_date, help="Only import rows on or before this day")
    imp.add_argument("--guests", type=Path, help="Guest roster CSV (id, external_id, full_name)")
    imp.add_argument("--dry-run", action="store_true", help="Validate and build payloads without writing")
    imp.add_argument("--config", type=Path, help="Config YAML (default: config/import.yml)")

    tpl = sub.add_parser("template", parents=[common], help="Write a sample import CSV")
    tpl.add_argument("--year", type=int, default=None, help="Year used in sample dates (default: current)")
    tpl.add_argument("--output", type=Path, default=Path(TEMPLATE_FILE_NAME), help="Output path")
    return p.parse_args(argv)


def _date_range(args: argparse.Namespace) -> DateRange | None:
    if args.start_date is None and args.end_date is None:
        return None
    if args.start_date is None or args.end_date is None:
        raise ValueError("--start-date and --end-date must be given together")
    return DateRange(args.start_date, args.end_date)


def _report(result: ImportResult, cfg: ImportConfig) -> None:
    if result.cancelled:
        logger.warning("import cancelled before all rows were processed")
    for error in result.error_preview:
        logger.error(format_error_snippet(error))
    if result.has_more_errors:
        hidden = result.error_count - len(result.error_preview)
        logger.error(f"... {hidden} more error(s) in the error report")
    if result.error_report_path is not None:
        logger.info(f"Error report: {result.error_report_path}")
    if result.invalid_date_count:
        logger.info(f"{result.invalid_date_count} row(s) skipped for invalid dates")

    log = logger.warning if result.has_errors else logger.info
    log(result.message)
    # log_summary が "SUMMARY " ラベルを付与する
    log_summary(render_summary_line(result)[len("SUMMARY ") :])


def _run_import(args: argparse.Namespace) -> int:
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        date_range = _date_range(args)
    except ValueError as e:
        logger.error(str(e))
        return EXIT_FATAL

    # DB 接続を完全に無効化したい場合 DISABLE_DB_CONNECT=1
    dry_run = args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1"
    options = dict(config=cfg, date_range=date_range)

    try:
        if dry_run:
            if args.guests is None:
                logger.error("dry run needs a guest roster (--guests)")
                return EXIT_FATAL
            directory = GuestDirectory.from_roster_file(args.guests)
            logger.debug(f"dry run: {len(directory)} guest(s) from {args.guests}")
            gateway = DryRunGateway()
            result = import_file(args.file, directory=directory, gateway=gateway, **options)
            logger.info(f"dry run: {sum(n for _, n in gateway.calls)} row(s) would be written")
        else:
            try:
                with _db_connection(cfg) as conn:
                    if args.guests is not None:
                        directory = GuestDirectory.from_roster_file(args.guests)
                    else:
                        with conn.cursor() as cur:
                            directory = GuestDirectory.from_cursor(cur)
                    logger.debug(f"loaded {len(directory)} guest(s)")
                    gateway = PostgresGateway(conn)
                    result = import_file(args.file, directory=directory, gateway=gateway, **options)
            except psycopg2.Error as e:
                logger.error(f"database: {str(e).strip()}")
                return EXIT_FATAL
    except FileFormatError as e:
        logger.error(f"file: {e}")
        return EXIT_FATAL
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    _report(result, cfg)
    return EXIT_PARTIAL_FAILURE if result.has_errors else EXIT_SUCCESS_ALL


def _run_template(args: argparse.Namespace) -> int:
    year = args.year or datetime.now().year
    output: Path = args.output
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(build_template_csv(year) + "\n", encoding="utf-8")
    except OSError as e:
        logger.error(f"template: {e}")
        return EXIT_FATAL
    logger.info(f"Template written: {output}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    setup_logging()

    # NOTE: 空リスト [] のとき sys.argv[1:] を混入させない (pytest の引数誤解析回避)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    # .env を最優先で読み込む (DB 接続パラメータ優先順位保証)
    _load_env_file(Path(".env"), override=True)

    if args.command == "template":
        return _run_template(args)
    return _run_import(args)
