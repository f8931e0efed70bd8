from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import psycopg2
from dotenv import load_dotenv

from lead_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from lead_import.db.memory_store import InMemoryStore
from lead_import.db.postgres_store import PostgresStore, resolve_dsn
from lead_import.db.store import CollectionScope, StoreError
from lead_import.logging.error_log import ErrorLogBuffer
from lead_import.logging.init import get_logger, log_summary, setup_logging
from lead_import.models.config_models import ImportConfig
from lead_import.models.error_record import ErrorRecord
from lead_import.models.record import ImportBatch
from lead_import.services.orchestrator import (
    ImportConfigError,
    ImportInputError,
    PartialImportError,
    default_scope,
    import_records,
    load_batch,
)
from lead_import.services.summary import render_summary_line
from lead_import.sheets.columns import sniff_columns
from lead_import.sheets.reader import (
    SheetFetchError,
    SheetUrlError,
    SpreadsheetReadError,
    read_rows,
    read_source,
)

"""CLI entrypoint.

Flow:
- load .env and config/import.yml
- read the spreadsheet (file or published Google Sheet URL)
- parse + dedup; --preview prints the mapping and first records then exits
- reconcile + commit against PostgreSQL (or the in-memory store for --dry-run)
- print the SUMMARY line
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

PREVIEW_ROWS = 5


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[PostgresStore]:
    """Open a psycopg2 connection and wrap it in a PostgresStore.

    接続情報の優先順位: .env / 環境変数 (DATABASE_URL, PG*) > config の database セクション
    """
    conn = psycopg2.connect(resolve_dsn(cfg.database))
    conn.autocommit = False  # commit group ごとに明示 COMMIT
    try:
        store = PostgresStore(conn)
        store.ensure_schema()
        yield store
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; values override the existing environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Bulk lead import from CSV / Excel / Google Sheets")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--file", type=Path, help="CSV / XLSX file to import")
    src.add_argument("--sheet-url", help="Google Sheet URL shared as 'Anyone with link'")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config path")
    p.add_argument("--tenant", help="Company id (overrides target.tenant_id)")
    p.add_argument("--dry-run", action="store_true", help="Reconcile against an empty in-memory store")
    p.add_argument("--preview", action="store_true", help="Print the parsed batch then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _print_preview(buffer: bytes, batch: ImportBatch) -> None:
    columns = sniff_columns(read_rows(buffer).columns)
    print("COLUMNS:")
    for field, header in columns.as_dict().items():
        print(f"  {field:<12} <- {header if header is not None else '-'}")
    print(
        f"RECORDS: {len(batch)} (duplicates dropped={batch.duplicates_dropped} "
        f"invalid dropped={batch.invalid_rows_dropped})"
    )
    for rec in batch.records[:PREVIEW_ROWS]:
        email = "(no email)" if rec.is_email_placeholder else rec.email
        print(f"  {rec.full_name} | {email} | {rec.phone or '-'} | {rec.driver_type}")


def main(argv: list[str] | None = None) -> int:
    # argv=[] (テストからの呼び出し) で sys.argv が混入しないよう None のときのみ読む
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    if args.debug:
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    scope = default_scope(cfg)
    if args.tenant:
        scope = CollectionScope(collection=scope.collection, tenant_id=args.tenant)

    source_name = args.sheet_url or str(args.file)
    error_log = ErrorLogBuffer()
    try:
        return _run(args, cfg, scope, source_name, error_log)
    finally:
        path = error_log.flush()
        if path is not None:
            logger.info(f"error log written: {path}")


def _run(
    args: argparse.Namespace,
    cfg: ImportConfig,
    scope: CollectionScope,
    source_name: str,
    error_log: ErrorLogBuffer,
) -> int:
    logger = get_logger()
    try:
        buffer, method = read_source(
            path=args.file, url=args.sheet_url, timeout=cfg.fetch_timeout
        )
        batch = load_batch(buffer)
    except (SheetUrlError, SheetFetchError, SpreadsheetReadError, ImportInputError) as e:
        logger.error(f"input: {e}")
        error_log.append(ErrorRecord.create(source_name, -1, "INPUT_ERROR", str(e)))
        return EXIT_FATAL

    if args.preview:
        _print_preview(buffer, batch)
        return EXIT_SUCCESS

    dry_run = args.dry_run or os.getenv("DISABLE_DB_CONNECT") == "1"
    try:
        if dry_run:
            logger.info("dry run: reconciling against an empty in-memory store")
            result = import_records(
                InMemoryStore(), scope, batch, cfg,
                method=method, error_log=error_log, source_name=source_name,
            )
        else:
            with _db_connection(cfg) as store:
                result = import_records(
                    store, scope, batch, cfg,
                    method=method, error_log=error_log, source_name=source_name,
                )
    except psycopg2.OperationalError as e:
        logger.error(f"database connection failed: {e}")
        return EXIT_FATAL
    except StoreError as e:
        logger.error(f"database: {e}")
        error_log.append(ErrorRecord.create(source_name, -1, "DB_ERROR", str(e)))
        return EXIT_FATAL
    except ImportConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL
    except PartialImportError as e:
        logger.error(
            f"import stopped: {e} (already saved: created={e.committed.created} "
            f"updated={e.committed.updated})"
        )
        return EXIT_PARTIAL_FAILURE

    # log_summary が "SUMMARY " を付けるので先頭ラベルを除去
    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return EXIT_SUCCESS
