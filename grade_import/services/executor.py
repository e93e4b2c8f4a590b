from __future__ import annotations

import logging

from ..db.grade_store import GradeStore
from ..errors import PersistenceError
from ..models.grade_record import DecisionKind, ReconcileDecision
from ..models.processing_result import ImportOutcome, OutcomeTag
from ..models.row_candidate import RowCandidate
from .reconcile import reconcile
from .summary import ResultSummaryBuilder

"""Batch executor / failure aggregator.

Reconciles and applies candidates one at a time. A failed lookup or write is
converted into a FAILED outcome with a PERSISTENCE_ERROR message and the job
moves on to the next row.
"""

__all__ = [
    "BatchExecutor",
]

logger = logging.getLogger(__name__)


def _as_persistence_error(e: Exception) -> PersistenceError:
    return e if isinstance(e, PersistenceError) else PersistenceError(str(e).strip())


class BatchExecutor:
    def __init__(self, store: GradeStore, summary: ResultSummaryBuilder) -> None:
        self.store = store
        self.summary = summary

    def _fail(self, sheet: str, row: int, message: str) -> ImportOutcome:
        logger.warning("sheet=%r row=%d %s", sheet, row, message)
        outcome = ImportOutcome(OutcomeTag.FAILED, sheet, row, message)
        self.summary.add(outcome, error_type=PersistenceError.error_type)
        return outcome

    def process(self, candidate: RowCandidate, recorded_by: int | None = None) -> ImportOutcome:
        """Reconcile one candidate against the store, then apply the decision."""
        try:
            decision = reconcile(candidate, self.store, recorded_by)
        except Exception as e:
            error = _as_persistence_error(e)
            message = f"Failed to look up grade for student {candidate.identity.student_id}: {error.message}"
            return self._fail(candidate.sheet_title, candidate.row_number, message)
        return self.apply(decision)

    def apply(self, decision: ReconcileDecision) -> ImportOutcome:
        candidate = decision.candidate
        sheet = candidate.sheet_title if candidate else ""
        row = candidate.row_number if candidate else -1
        verb = "create" if decision.kind is DecisionKind.CREATE else "update"

        try:
            record = self.store.upsert(decision)
        except Exception as e:
            error = _as_persistence_error(e)
            message = f"Failed to {verb} grade for student {decision.identity.student_id}: {error.message}"
            return self._fail(sheet, row, message)

        tag = OutcomeTag.CREATED if decision.kind is DecisionKind.CREATE else OutcomeTag.UPDATED
        logger.debug(
            "sheet=%r row=%d %s grade_id=%s value=%s", sheet, row, tag.value, record.grade_id, record.value
        )
        outcome = ImportOutcome(tag, sheet, row, grade_id=record.grade_id)
        self.summary.add(outcome)
        return outcome
