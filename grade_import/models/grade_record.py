from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .row_candidate import GradeIdentity, RowCandidate

"""Persisted grade record and the create-or-update decision applied to it."""

__all__ = [
    "DecisionKind",
    "GradeRecord",
    "ReconcileDecision",
]


@dataclass(frozen=True)
class GradeRecord:
    """A grade row as stored. Identity fields never change after creation."""
    grade_id: int
    student_id: int
    subject_id: int
    course_id: int
    semester_id: int
    period_key: str
    value: float
    comment: str | None = None
    recorded_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def identity(self) -> GradeIdentity:
        return GradeIdentity(
            student_id=self.student_id,
            subject_id=self.subject_id,
            course_id=self.course_id,
            semester_id=self.semester_id,
            period_key=self.period_key,
        )


class DecisionKind(Enum):
    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True)
class ReconcileDecision:
    kind: DecisionKind
    identity: GradeIdentity
    value: float
    comment: str | None
    recorded_by: int | None
    existing_grade_id: int | None = None  # set for UPDATE
    candidate: RowCandidate | None = None
