from __future__ import annotations

import logging

from ..db.grade_store import GradeStore
from ..models.grade_record import DecisionKind, ReconcileDecision
from ..models.row_candidate import RowCandidate

__all__ = [
    "reconcile",
]

logger = logging.getLogger(__name__)


def reconcile(
    candidate: RowCandidate,
    store: GradeStore,
    recorded_by: int | None = None,
) -> ReconcileDecision:
    """Decide create vs update for one candidate by its grade identity.

    Called right before the candidate's own write, so a second row with the
    same identity in the same job sees the first row's record and updates it
    (duplicates collapse, last write wins).
    """
    identity = candidate.identity
    existing = store.find_grade_by_identity(identity)
    if existing is None:
        logger.debug(
            "create grade student=%s subject=%s period=%s value=%s",
            identity.student_id, identity.subject_id, identity.period_key, candidate.score,
        )
        return ReconcileDecision(
            kind=DecisionKind.CREATE,
            identity=identity,
            value=candidate.score,
            comment=candidate.comment,
            recorded_by=recorded_by,
            candidate=candidate,
        )
    logger.debug(
        "update grade_id=%s student=%s period=%s value=%s -> %s",
        existing.grade_id, identity.student_id, identity.period_key, existing.value, candidate.score,
    )
    return ReconcileDecision(
        kind=DecisionKind.UPDATE,
        identity=existing.identity,
        value=candidate.score,
        comment=candidate.comment,
        recorded_by=recorded_by,
        existing_grade_id=existing.grade_id,
        candidate=candidate,
    )
