from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, load_config
from ..db.grade_store import InMemoryGradeStore, PostgresGradeStore, ensure_schema, load_subject_directory
from ..errors import ConfigError, GradeImportError, StructuralError, WorkbookReadError
from ..excel.reader import read_workbook
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, set_debug, setup_logging
from ..models.config_models import ImportConfig
from ..models.processing_result import ImportResult
from ..models.workbook import Workbook
from ..services.orchestrator import import_workbook
from ..services.report import preview_frame, write_outcome_report
from ..services.subjects import SubjectDirectory
from ..services.summary import render_summary_line

"""CLI entrypoint: import one grade workbook.

Flow:
- Load .env (overrides the process environment) and config/import.yml
- Read the workbook
- Connect to PostgreSQL (or run in mock mode) and import in one transaction
- Flush the error log, optionally write the outcome report
- Print the SUMMARY line and exit with 0 (clean), 2 (errors recorded) or 1 (fatal)
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _resolve_dsn(cfg: ImportConfig) -> str:
    """Connection string, resolved in priority order:

    1. DATABASE_URL / PGDSN (after .env has been loaded with override)
    2. individual PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. the config's database section (fallback for anything unset)
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
def _db_connection(conn: Any) -> Iterator[Any]:  # pragma: no cover (thin wrapper; tested via integration)
    """Yield a cursor for one transaction: COMMIT on success, ROLLBACK when the body raises.

    psycopg2 opens the transaction implicitly on the first statement.
    """
    conn.autocommit = False
    cur = conn.cursor()
    try:
        try:
            yield cur
        except BaseException:
            conn.rollback()
            raise
        conn.commit()
    finally:
        cur.close()
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values win over the existing environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="python -m grade_import.cli",
        description="Import a monthly grade workbook (.xlsx) into the grade store",
    )
    p.add_argument("workbook", type=Path, help="Path to the .xlsx grade workbook")
    p.add_argument("--config", type=Path, default=None, help=f"Config file (default: {DEFAULT_CONFIG_PATH})")
    p.add_argument("--user-id", type=int, default=None, help="Actor id recorded on every written grade")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print sheet titles & first data rows then exit")
    p.add_argument("--report", type=Path, default=None, help="Write per-row outcomes to this .csv/.xlsx file")
    p.add_argument("--create-table", action="store_true", help="Create the grades table if it does not exist")
    return p.parse_args(argv)


def _load_config(path: Path | None, logger) -> ImportConfig:
    if path is not None:
        return load_config(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    logger.debug("no %s, using built-in defaults", DEFAULT_CONFIG_PATH)
    return ImportConfig()


def _inspect_data(workbook: Workbook, cfg: ImportConfig) -> int:
    print(f"SHEETS: {workbook.sheet_titles}")
    for ws in workbook.worksheets[1:]:
        print(f"  SHEET: {ws.title} rows={ws.row_count}")
        frame = preview_frame(workbook, ws.title, cfg.layout.data_start_row)
        if frame.empty:
            print("    (no data rows)")
        else:
            print(frame.to_string())
    return EXIT_SUCCESS_ALL


def _run(workbook: Workbook, directory: SubjectDirectory, store: Any, cfg: ImportConfig,
         args: argparse.Namespace, error_log: ErrorLogBuffer) -> ImportResult:
    return import_workbook(
        workbook,
        directory,
        store,
        recorded_by=args.user_id,
        layout=cfg.layout,
        max_errors=cfg.max_error_messages,
        error_log=error_log,
        source_name=args.workbook.name,
    )


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # only read sys.argv when argv is None (tests pass explicit lists)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    try:
        cfg = _load_config(args.config, logger)
    except ConfigError as e:
        logger.error(f"config: {e.message}")
        return EXIT_FATAL

    try:
        workbook = read_workbook(args.workbook)
    except WorkbookReadError as e:
        logger.error(f"workbook: {e.message}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(workbook, cfg)

    error_log = ErrorLogBuffer()
    conn = None
    if os.getenv("DISABLE_DB_CONNECT") == "1":
        logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
    else:
        try:
            conn = psycopg2.connect(_resolve_dsn(cfg))
        except psycopg2.Error as e:
            logger.info(f"DB connection failed -> fallback to mock mode: {str(e).strip()}")

    try:
        if conn is not None:
            db_mode = "live"
            with _db_connection(conn) as cur:
                if args.create_table:
                    ensure_schema(cur, cfg.grade_table)
                directory = load_subject_directory(cur, cfg.subject_table)
                store = PostgresGradeStore(cur, cfg.grade_table)
                result = _run(workbook, directory, store, cfg, args, error_log)
        else:
            db_mode = "mock"
            if not cfg.subjects:
                logger.warning("mock mode without a `subjects` catalog in config: every sheet will be skipped")
            directory = SubjectDirectory.from_mapping(cfg.subjects or {})
            result = _run(workbook, directory, InMemoryGradeStore(), cfg, args, error_log)
    except StructuralError as e:
        logger.error(f"structure: {e.message}")
        return EXIT_FATAL
    except (GradeImportError, psycopg2.Error) as e:
        logger.error(f"import aborted: {e}")
        return EXIT_FATAL
    finally:
        log_path = error_log.flush()
        if log_path is not None:
            logger.info(f"error log written: {log_path}")

    logger.info(f"mode={db_mode} subjects={len(directory)} written={result.written}")
    for message in result.errors:
        logger.warning(message)

    if args.report is not None:
        try:
            write_outcome_report(result, args.report)
            logger.info(f"report written: {args.report}")
        except (OSError, ValueError) as e:
            logger.error(f"report: {e}")

    total_sheets = max(len(workbook) - 1, 0)
    summary_line = render_summary_line(total_sheets, result)
    # log_summary adds the "SUMMARY " label itself
    log_summary(summary_line.removeprefix("SUMMARY "))

    if result.has_errors:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
