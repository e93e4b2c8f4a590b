from __future__ import annotations

from datetime import UTC, datetime

from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import ErrorRecord
from ..models.processing_result import ROW_UNKNOWN, ImportOutcome, ImportResult, OutcomeTag

"""Result summary builder and SUMMARY line rendering.

ResultSummaryBuilder is owned by the single worker of one import job. It
counts outcomes, keeps every error message (the result exposes only the
first `max_errors`), remembers which worksheet titles resolved to a subject,
and mirrors each error into the JSON Lines error log when one is attached.

SUMMARY line format:
SUMMARY sheets={matched}/{total} created={c} updated={u} skipped={s}
failed={f} errors={e} elapsed_sec={elapsed}
"""

__all__ = [
    "DEFAULT_MAX_ERRORS",
    "ResultSummaryBuilder",
    "render_summary_line",
]

DEFAULT_MAX_ERRORS = 10


class ResultSummaryBuilder:
    def __init__(
        self,
        max_errors: int = DEFAULT_MAX_ERRORS,
        *,
        error_log: ErrorLogBuffer | None = None,
        source_name: str = "<memory>",
    ) -> None:
        self.max_errors = max_errors
        self.error_log = error_log
        self.source_name = source_name
        self.start_time = datetime.now(UTC)
        self.counts: dict[OutcomeTag, int] = {tag: 0 for tag in OutcomeTag}
        self.outcomes: list[ImportOutcome] = []
        self.error_messages: list[str] = []
        self.processed_subjects: list[str] = []
        self.aborted = False

    def add(self, outcome: ImportOutcome, error_type: str | None = None) -> None:
        """Record one outcome; SKIPPED / FAILED outcomes also record their message."""
        self.counts[outcome.tag] += 1
        self.outcomes.append(outcome)
        if outcome.is_error:
            message = outcome.message or outcome.tag.value
            self.error_messages.append(message)
            if self.error_log is not None:
                self.error_log.append(
                    ErrorRecord.create(
                        file=self.source_name,
                        sheet=outcome.sheet,
                        row=outcome.row,
                        error_type=error_type or "IMPORT_ERROR",
                        message=message,
                    )
                )

    def skip(self, sheet: str, row: int, message: str, error_type: str) -> ImportOutcome:
        outcome = ImportOutcome(OutcomeTag.SKIPPED, sheet, row, message)
        self.add(outcome, error_type=error_type)
        return outcome

    def skip_sheet(self, sheet: str, message: str, error_type: str) -> ImportOutcome:
        return self.skip(sheet, ROW_UNKNOWN, message, error_type)

    def matched_subject(self, title: str) -> None:
        self.processed_subjects.append(title)

    @property
    def error_count(self) -> int:
        return len(self.error_messages)

    @property
    def counts_created(self) -> int:
        return self.counts[OutcomeTag.CREATED]

    @property
    def counts_updated(self) -> int:
        return self.counts[OutcomeTag.UPDATED]

    def build(self) -> ImportResult:
        end_time = datetime.now(UTC)
        return ImportResult(
            created=self.counts[OutcomeTag.CREATED],
            updated=self.counts[OutcomeTag.UPDATED],
            skipped=self.counts[OutcomeTag.SKIPPED],
            failed=self.counts[OutcomeTag.FAILED],
            error_count=self.error_count,
            errors=self.error_messages[: self.max_errors],
            processed_subjects=list(self.processed_subjects),
            start_time=self.start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - self.start_time).total_seconds(),
            outcomes=list(self.outcomes),
            aborted=self.aborted,
        )


def _format_seconds(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # avoid scientific notation for very small numbers
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.2f}".rstrip("0").rstrip(".")


def render_summary_line(total_sheets: int, result: ImportResult) -> str:
    """Render the SUMMARY line for an ImportResult.

    Args:
        total_sheets: number of subject worksheets in the workbook
        result: aggregated import result

    Examples:
        >>> from datetime import datetime, timezone
        >>> t = datetime(2026, 3, 1, tzinfo=timezone.utc)
        >>> r = ImportResult(created=9, updated=0, skipped=1, failed=0, error_count=1,
        ...     errors=["x"], processed_subjects=["Math"], start_time=t, end_time=t,
        ...     elapsed_seconds=2.0)
        >>> render_summary_line(1, r)
        'SUMMARY sheets=1/1 created=9 updated=0 skipped=1 failed=0 errors=1 elapsed_sec=2'
    """
    line = (
        f"SUMMARY sheets={len(result.processed_subjects)}/{total_sheets} "
        f"created={result.created} "
        f"updated={result.updated} "
        f"skipped={result.skipped} "
        f"failed={result.failed} "
        f"errors={result.error_count} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
    if result.aborted:
        line += " aborted=1"
    return line
