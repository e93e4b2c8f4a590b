from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from ..db.grade_store import GradeStore
from ..errors import SubjectResolutionError
from ..excel.reader import read_workbook
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import DEFAULT_LAYOUT, SheetLayout
from ..models.processing_result import ImportResult
from ..models.row_candidate import RowFailure
from ..models.workbook import Workbook, Worksheet
from .executor import BatchExecutor
from .extract import extract_rows
from .progress import ProgressTracker
from .structure import validate_structure
from .subjects import SubjectDirectory, require_subject
from .summary import DEFAULT_MAX_ERRORS, ResultSummaryBuilder

"""Import orchestration for grade workbooks.

One job = one workbook, processed by a single worker:

1. validate_structure(): fewer than 2 worksheets aborts the job
   (StructuralError propagates, nothing is written)
2. for each subject worksheet, in workbook order:
   - poll should_continue (cooperative cancellation)
   - resolve the title against the subject directory; no match skips the
     whole sheet with one error
   - extract rows; a rejected row is recorded as SKIPPED
   - reconcile each candidate against the store right before writing it;
     a failed lookup is recorded as FAILED
   - apply the decision; a failed write is recorded as FAILED
3. build the ImportResult

The caller owns the store's transaction boundary.
"""

__all__ = [
    "import_file",
    "import_workbook",
]

logger = logging.getLogger(__name__)


def _import_sheet(
    worksheet: Worksheet,
    subject_id: int,
    executor: BatchExecutor,
    summary: ResultSummaryBuilder,
    recorded_by: int | None,
    layout: SheetLayout,
) -> None:
    for item in extract_rows(worksheet, subject_id, layout):
        if isinstance(item, RowFailure):
            logger.warning("sheet=%r row=%d %s", item.sheet_title, item.row_number, item.message)
            summary.skip(item.sheet_title, item.row_number, item.message, item.error_type)
            continue
        executor.process(item, recorded_by)


def import_workbook(
    workbook: Workbook,
    directory: SubjectDirectory,
    store: GradeStore,
    *,
    recorded_by: int | None = None,
    layout: SheetLayout = DEFAULT_LAYOUT,
    max_errors: int = DEFAULT_MAX_ERRORS,
    error_log: ErrorLogBuffer | None = None,
    source_name: str = "<memory>",
    should_continue: Callable[[], bool] | None = None,
) -> ImportResult:
    """Reconcile every subject worksheet of `workbook` into `store`.

    Args:
        workbook: parsed workbook (instructions sheet first)
        directory: subject catalog, loaded once for the job
        store: grade store (lookup + upsert)
        recorded_by: actor id stored on every written grade
        layout: data start row and column positions
        max_errors: how many error messages the result keeps
        error_log: optional JSON Lines buffer mirroring every error
        source_name: file name used in error log records
        should_continue: polled before each worksheet; False stops the job

    Returns:
        ImportResult with counters, capped error messages and matched subjects

    Raises:
        StructuralError: workbook has fewer than two worksheets
    """
    subject_sheets = validate_structure(workbook)
    summary = ResultSummaryBuilder(max_errors, error_log=error_log, source_name=source_name)
    executor = BatchExecutor(store, summary)

    logger.info("Importing %s: %d subject sheet(s)", source_name, len(subject_sheets))

    with ProgressTracker(len(subject_sheets)) as progress:
        for worksheet in subject_sheets:
            if should_continue is not None and not should_continue():
                logger.warning("import cancelled before sheet=%r", worksheet.title)
                summary.aborted = True
                break

            progress.start_sheet(worksheet.title)
            try:
                match = require_subject(worksheet.title, directory)
            except SubjectResolutionError as e:
                summary.skip_sheet(worksheet.title, e.message, e.error_type)
                progress.finish_sheet(errors=summary.error_count)
                continue

            summary.matched_subject(worksheet.title)
            logger.debug(
                "sheet=%r -> subject=%r id=%d (%s)",
                worksheet.title, match.subject_name, match.subject_id, match.strategy.value,
            )
            _import_sheet(worksheet, match.subject_id, executor, summary, recorded_by, layout)
            progress.finish_sheet(
                created=summary.counts_created,
                updated=summary.counts_updated,
                errors=summary.error_count,
            )

    result = summary.build()
    logger.info(
        "Imported %s: created=%d updated=%d skipped=%d failed=%d",
        source_name, result.created, result.updated, result.skipped, result.failed,
    )
    return result


def import_file(
    path: Path | str,
    directory: SubjectDirectory,
    store: GradeStore,
    **kwargs,
) -> ImportResult:
    """Read an .xlsx file and run import_workbook() on it.

    Keyword arguments are passed through to import_workbook(); `source_name`
    defaults to the file name.

    Raises:
        WorkbookReadError: the file cannot be read as a workbook
        StructuralError: workbook has fewer than two worksheets
    """
    path = Path(path)
    workbook = read_workbook(path)
    kwargs.setdefault("source_name", path.name)
    return import_workbook(workbook, directory, store, **kwargs)
