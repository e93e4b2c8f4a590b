from __future__ import annotations

from dataclasses import dataclass

from ..errors import GradeImportError
from .cell_value import CellValue

"""Row-level models produced by the row extractor.

RowCandidate is one worksheet row that passed identifier validation and
score normalization. RowFailure records a row that was rejected before
reconciliation, keeping the error for the failure aggregator.
"""

__all__ = [
    "GradeIdentity",
    "RowCandidate",
    "RowFailure",
]


@dataclass(frozen=True)
class GradeIdentity:
    """Composite key of a grade record (at most one record per identity)."""
    student_id: int
    subject_id: int
    course_id: int
    semester_id: int
    period_key: str  # "MM/YY"


@dataclass(frozen=True)
class RowCandidate:
    sheet_title: str
    row_number: int  # Excel row number (1-based)
    student_name: str
    student_id: int
    subject_id: int  # resolved from the sheet title, not read from the row
    course_id: int
    semester_id: int
    school_year_id: int
    month: int
    year: int
    score_cell: CellValue  # raw cell kept for diagnostics
    score: float
    period_key: str
    comment: str | None = None

    @property
    def identity(self) -> GradeIdentity:
        return GradeIdentity(
            student_id=self.student_id,
            subject_id=self.subject_id,
            course_id=self.course_id,
            semester_id=self.semester_id,
            period_key=self.period_key,
        )


@dataclass(frozen=True)
class RowFailure:
    sheet_title: str
    row_number: int
    error: GradeImportError

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def error_type(self) -> str:
        return self.error.error_type
