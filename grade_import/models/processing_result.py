from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

"""Processing result models for the grade import pipeline.

ImportOutcome is the per-row (or per-worksheet) result tag; ImportResult is
the aggregate report handed back to the caller. Partial success is a normal
result: the caller always gets an ImportResult unless the workbook itself
was rejected.
"""

__all__ = [
    "ImportOutcome",
    "ImportResult",
    "OutcomeTag",
]

ROW_UNKNOWN = -1  # worksheet-level outcome (no single row)


class OutcomeTag(Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ImportOutcome:
    tag: OutcomeTag
    sheet: str
    row: int  # Excel row number, -1 for a worksheet-level outcome
    message: str | None = None
    grade_id: int | None = None

    @property
    def is_error(self) -> bool:
        return self.tag in (OutcomeTag.SKIPPED, OutcomeTag.FAILED)


@dataclass(frozen=True)
class ImportResult:
    """Aggregated result of one import job.

    `errors` holds at most `max_errors` messages for display; `error_count`
    is the full tally (skipped + failed) even when the list is truncated.
    """
    created: int
    updated: int
    skipped: int  # rows / worksheets rejected before the write
    failed: int  # writes rejected by the store
    error_count: int
    errors: list[str]
    processed_subjects: list[str]  # worksheet titles whose subject resolved
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    outcomes: list[ImportOutcome] = field(default_factory=list)
    aborted: bool = False  # stopped between worksheets by the caller

    @property
    def written(self) -> int:
        return self.created + self.updated

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0
