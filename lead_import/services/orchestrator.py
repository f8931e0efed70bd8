from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from ..db.commit import BatchedCommitScheduler, CommitError, GroupMetrics
from ..db.store import CollectionScope, RecordStore, StoreError
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportConfig
from ..models.error_record import ErrorRecord
from ..models.processing_result import BatchStatsAccumulator, ImportResult, ImportStats
from ..models.record import ImportBatch, ImportMethod
from ..sheets.parser import parse_sheet
from ..sheets.reader import SpreadsheetReadError, read_rows
from .assignment import AssignmentConfigError, OwnerAssigner
from .dedup import dedupe_records
from .progress import ProgressTracker
from .reconcile import Reconciler, get_profile
from .summary import render_completion_message

"""Service orchestration for the bulk lead importer.

Pipeline:
    buffer -> read_rows -> parse (column sniffing + phone normalization)
           -> intra-batch dedup -> [caller confirms the preview]
           -> per record: identity lookup -> create / update plan
           -> batched commit groups -> ImportStats

load_batch() covers everything up to the preview, import_records() everything
after confirmation, and run_import() chains both for non-interactive callers.
Records are processed strictly in order, one store round-trip at a time.
"""

__all__ = [
    "ImportPipelineError",
    "ImportInputError",
    "ImportConfigError",
    "NoUsableRowsError",
    "PartialImportError",
    "default_scope",
    "load_batch",
    "import_records",
    "run_import",
]

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


class ImportPipelineError(Exception):
    """Base exception for import failures. The message is shown to the user as-is."""


class ImportInputError(ImportPipelineError):
    """Spreadsheet could not be read or holds no usable rows."""


class NoUsableRowsError(ImportInputError):
    """Every row was dropped (no email and no phone)."""


class ImportConfigError(ImportPipelineError):
    """Run configuration is invalid (e.g. assignment target missing)."""


class PartialImportError(ImportPipelineError):
    """A store call failed mid-run.

    Groups committed before the failure stay persisted; `committed` holds their
    counts. Nothing from the failed group onward was written.
    """

    def __init__(self, message: str, committed: ImportStats, group_index: int | None = None) -> None:
        super().__init__(message)
        self.committed = committed
        self.group_index = group_index


def default_scope(config: ImportConfig) -> CollectionScope:
    """Collection scope described by the config's target section."""
    return CollectionScope(collection=config.target.collection, tenant_id=config.target.tenant_id)


def _build_assigner(config: ImportConfig) -> OwnerAssigner:
    try:
        return OwnerAssigner(config.assignment)
    except AssignmentConfigError as e:
        raise ImportConfigError(str(e)) from e


def load_batch(buffer: bytes, *, stamp: int | None = None) -> ImportBatch:
    """Parse and deduplicate a spreadsheet buffer for preview.

    Raises:
        ImportInputError: unreadable / empty spreadsheet
        NoUsableRowsError: no row has an email or a phone number
    """
    try:
        sheet = read_rows(buffer)
    except SpreadsheetReadError as e:
        raise ImportInputError(str(e)) from e

    parsed = parse_sheet(sheet, stamp=stamp)
    records = dedupe_records(parsed)
    if not records:
        raise NoUsableRowsError("No valid rows found. Each row needs an email or a phone number.")

    batch = ImportBatch(records=records, parsed_rows=len(parsed), source_rows=len(sheet.rows))
    logger.info(
        "parsed rows=%d records=%d duplicates_dropped=%d invalid_dropped=%d",
        batch.source_rows,
        len(batch),
        batch.duplicates_dropped,
        batch.invalid_rows_dropped,
    )
    return batch


def import_records(
    store: RecordStore,
    scope: CollectionScope,
    batch: ImportBatch,
    config: ImportConfig,
    *,
    method: ImportMethod = ImportMethod.FILE,
    progress: ProgressCallback | None = None,
    error_log: ErrorLogBuffer | None = None,
    source_name: str = "",
) -> ImportResult:
    """Reconcile a confirmed batch against `scope` and commit it in groups.

    Args:
        store: remote store
        scope: target collection (tenant scoped or global)
        batch: deduplicated records from load_batch()
        config: run configuration (profile, batch size, assignment, actor)
        method: how the sheet was obtained (drives the source tag)
        progress: receives "Processing {i} / {total}..." and the final message
        error_log: buffer for structured error records (flushed by the owner)
        source_name: file name / URL recorded in error records

    Raises:
        ImportConfigError: assignment configuration invalid (before any store call)
        PartialImportError: a store read or commit failed mid-run
    """
    assigner = _build_assigner(config)
    profile = get_profile(config.target.profile)

    start_time = datetime.now(UTC)
    accumulator = BatchStatsAccumulator()

    def _on_group(metrics: GroupMetrics) -> None:
        if metrics.success:
            accumulator.add_batch_time(metrics.elapsed_seconds)

    scheduler = BatchedCommitScheduler(store, config.batch_size, metrics_callback=_on_group)
    reconciler = Reconciler(
        store,
        scope,
        profile,
        method=method,
        assigner=assigner,
        actor=config.actor,
        source_label=config.source_label,
    )

    logger.info(
        "importing records=%d into %s (profile=%s batch_size=%d assignment=%s)",
        len(batch),
        scope.path,
        profile.name,
        config.batch_size,
        config.assignment.mode.value,
    )

    with ProgressTracker(len(batch), callback=progress) as tracker:
        for position, record in enumerate(batch.records, start=1):
            try:
                scheduler.queue(reconciler.plan(record))
            except CommitError as e:
                _record_error(error_log, source_name, position, "COMMIT_ERROR", str(e))
                raise PartialImportError(str(e), committed=e.committed, group_index=e.group_index) from e
            except StoreError as e:
                message = f"Import failed while checking record {position}: {e}"
                _record_error(error_log, source_name, position, "LOOKUP_ERROR", message)
                raise PartialImportError(message, committed=scheduler.committed) from e
            tracker.advance()
            tracker.set_postfix(created=scheduler.committed.created, updated=scheduler.committed.updated)

        try:
            scheduler.flush()
        except CommitError as e:
            _record_error(error_log, source_name, -1, "COMMIT_ERROR", str(e))
            raise PartialImportError(str(e), committed=e.committed, group_index=e.group_index) from e

        stats = scheduler.committed
        tracker.report(render_completion_message(stats))

    end_time = datetime.now(UTC)
    groups, avg_group, p95_group = accumulator.get_stats()
    logger.info("import finished created=%d updated=%d groups=%d", stats.created, stats.updated, groups)
    return ImportResult(
        stats=stats,
        records=len(batch),
        groups=groups,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        avg_group_seconds=avg_group,
        p95_group_seconds=p95_group,
    )


def run_import(
    store: RecordStore,
    scope: CollectionScope,
    buffer: bytes,
    config: ImportConfig,
    *,
    method: ImportMethod = ImportMethod.FILE,
    progress: ProgressCallback | None = None,
) -> ImportStats:
    """Parse, deduplicate, reconcile and commit `buffer` in one call.

    The assignment configuration is validated before the sheet is parsed.
    Errors are written to a fresh ErrorLogBuffer which is flushed before
    returning or raising.
    """
    _build_assigner(config)
    error_log = ErrorLogBuffer()
    try:
        try:
            batch = load_batch(buffer)
        except ImportInputError as e:
            _record_error(error_log, "", -1, "INPUT_ERROR", str(e))
            raise
        return import_records(
            store, scope, batch, config, method=method, progress=progress, error_log=error_log
        ).stats
    finally:
        try:
            error_log.flush()
        except OSError as e:
            logger.warning("could not write error log: %s", e)


def _record_error(
    error_log: ErrorLogBuffer | None, source: str, position: int, error_type: str, message: str
) -> None:
    logger.error(message)
    if error_log is not None:
        error_log.append(ErrorRecord.create(source, position, error_type, message))
