from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, Protocol

from ..errors import PersistenceError
from ..models.grade_record import DecisionKind, GradeRecord, ReconcileDecision
from ..models.row_candidate import GradeIdentity
from ..services.subjects import SubjectDirectory

"""Grade persistence stores.

The pipeline needs exactly two operations from a store:

- find_grade_by_identity(identity) -> GradeRecord | None
- upsert(decision) -> GradeRecord (raises PersistenceError)

PostgresGradeStore runs on a psycopg2 cursor inside the caller's
transaction and wraps every lookup and write in a SAVEPOINT, so one rejected statement
does not abort the rest of the job. The grades table must carry a UNIQUE
constraint on the grade identity (see GRADES_DDL); the pipeline only
serializes writes within one job.

InMemoryGradeStore backs mock mode and tests and enforces the same
uniqueness rule.
"""

__all__ = [
    "GRADES_DDL",
    "GradeStore",
    "InMemoryGradeStore",
    "PostgresGradeStore",
    "ensure_schema",
    "load_subject_directory",
]

logger = logging.getLogger(__name__)

_SAVEPOINT = "grade_write"
_LOOKUP_SAVEPOINT = "grade_lookup"

_GRADE_COLUMNS = (
    "grade_id",
    "student_id",
    "subject_id",
    "course_id",
    "semester_id",
    "grade_date",
    "grade",
    "grade_comment",
    "user_id",
    "created_at",
    "updated_at",
)

GRADES_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    grade_id      BIGSERIAL PRIMARY KEY,
    student_id    BIGINT NOT NULL,
    subject_id    BIGINT NOT NULL,
    course_id     BIGINT NOT NULL,
    semester_id   BIGINT NOT NULL,
    grade_date    VARCHAR(5) NOT NULL,
    grade         DOUBLE PRECISION NOT NULL,
    grade_comment TEXT,
    user_id       BIGINT,
    created_at    TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at    TIMESTAMPTZ NOT NULL DEFAULT now(),
    CONSTRAINT uq_{table}_identity
        UNIQUE (student_id, subject_id, course_id, semester_id, grade_date)
)
"""


class GradeStore(Protocol):
    def find_grade_by_identity(self, identity: GradeIdentity) -> GradeRecord | None: ...

    def upsert(self, decision: ReconcileDecision) -> GradeRecord: ...


def _now() -> datetime:
    return datetime.now(UTC)


class InMemoryGradeStore:
    """Dict-backed store keyed by GradeIdentity.

    `fail_when` lets callers (tests, dry runs) reject selected writes the
    way a database constraint would.
    """

    def __init__(
        self,
        records: list[GradeRecord] | None = None,
        fail_when: Callable[[ReconcileDecision], str | None] | None = None,
    ) -> None:
        self._records: dict[GradeIdentity, GradeRecord] = {}
        self._next_id = 1
        self._fail_when = fail_when
        for record in records or []:
            self._records[record.identity] = record
            self._next_id = max(self._next_id, record.grade_id + 1)

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> list[GradeRecord]:
        return list(self._records.values())

    def find_grade_by_identity(self, identity: GradeIdentity) -> GradeRecord | None:
        return self._records.get(identity)

    def upsert(self, decision: ReconcileDecision) -> GradeRecord:
        if self._fail_when is not None:
            reason = self._fail_when(decision)
            if reason:
                raise PersistenceError(reason)

        now = _now()
        existing = self._records.get(decision.identity)
        if decision.kind is DecisionKind.CREATE:
            if existing is not None:
                raise PersistenceError(
                    "duplicate key value violates unique constraint on grade identity",
                    details={"grade_id": existing.grade_id},
                )
            ident = decision.identity
            record = GradeRecord(
                grade_id=self._next_id,
                student_id=ident.student_id,
                subject_id=ident.subject_id,
                course_id=ident.course_id,
                semester_id=ident.semester_id,
                period_key=ident.period_key,
                value=decision.value,
                comment=decision.comment,
                recorded_by=decision.recorded_by,
                created_at=now,
                updated_at=now,
            )
            self._next_id += 1
        else:
            if existing is None or existing.grade_id != decision.existing_grade_id:
                raise PersistenceError(
                    f"grade {decision.existing_grade_id} not found for update",
                    details={"grade_id": decision.existing_grade_id},
                )
            record = replace(
                existing,
                value=decision.value,
                comment=decision.comment,
                recorded_by=decision.recorded_by,
                updated_at=now,
            )
        self._records[record.identity] = record
        return record


def _row_to_record(row: tuple[Any, ...]) -> GradeRecord:
    values = dict(zip(_GRADE_COLUMNS, row, strict=False))
    return GradeRecord(
        grade_id=values["grade_id"],
        student_id=values["student_id"],
        subject_id=values["subject_id"],
        course_id=values["course_id"],
        semester_id=values["semester_id"],
        period_key=values["grade_date"],
        value=float(values["grade"]),
        comment=values["grade_comment"],
        recorded_by=values["user_id"],
        created_at=values["created_at"],
        updated_at=values["updated_at"],
    )


class PostgresGradeStore:
    """psycopg2 cursor backed store.

    The caller owns the transaction (BEGIN/COMMIT); every lookup and write
    runs inside its own SAVEPOINT and is rolled back to it on failure, so the
    transaction stays usable for the rows that follow.
    """

    def __init__(self, cursor: Any, table: str = "grades") -> None:
        if not table.replace("_", "").isalnum():
            raise ValueError(f"invalid table name: {table!r}")
        self.cursor = cursor
        self.table = table
        self._cols_sql = ", ".join(_GRADE_COLUMNS)

    @contextmanager
    def _savepoint(self, name: str, prefix: str = "") -> Iterator[None]:
        """Run the block inside SAVEPOINT `name`; any error becomes a PersistenceError."""
        try:
            self.cursor.execute(f"SAVEPOINT {name}")
            yield
        except Exception as e:
            try:
                self.cursor.execute(f"ROLLBACK TO SAVEPOINT {name}")
            except Exception as rollback_e:  # pragma: no cover
                logger.error("rollback to savepoint failed: %s", rollback_e)
            if isinstance(e, PersistenceError):
                raise
            raise PersistenceError(f"{prefix}{str(e).strip()}") from e
        self.cursor.execute(f"RELEASE SAVEPOINT {name}")

    def find_grade_by_identity(self, identity: GradeIdentity) -> GradeRecord | None:
        with self._savepoint(_LOOKUP_SAVEPOINT, prefix="grade lookup failed: "):
            self.cursor.execute(
                f"SELECT {self._cols_sql} FROM {self.table} "
                "WHERE student_id = %s AND subject_id = %s AND course_id = %s "
                "AND semester_id = %s AND grade_date = %s LIMIT 1",
                (
                    identity.student_id,
                    identity.subject_id,
                    identity.course_id,
                    identity.semester_id,
                    identity.period_key,
                ),
            )
            row = self.cursor.fetchone()
        return _row_to_record(row) if row else None

    def upsert(self, decision: ReconcileDecision) -> GradeRecord:
        ident = decision.identity
        if decision.kind is DecisionKind.CREATE:
            sql = (
                f"INSERT INTO {self.table} "
                "(student_id, subject_id, course_id, semester_id, grade_date, grade, grade_comment, user_id) "
                f"VALUES (%s, %s, %s, %s, %s, %s, %s, %s) RETURNING {self._cols_sql}"
            )
            params: tuple[Any, ...] = (
                ident.student_id,
                ident.subject_id,
                ident.course_id,
                ident.semester_id,
                ident.period_key,
                decision.value,
                decision.comment,
                decision.recorded_by,
            )
        else:
            sql = (
                f"UPDATE {self.table} SET grade = %s, grade_comment = %s, user_id = %s, "
                f"updated_at = now() WHERE grade_id = %s RETURNING {self._cols_sql}"
            )
            params = (decision.value, decision.comment, decision.recorded_by, decision.existing_grade_id)

        with self._savepoint(_SAVEPOINT):
            self.cursor.execute(sql, params)
            row = self.cursor.fetchone()
            if row is None:
                raise PersistenceError(f"grade {decision.existing_grade_id} not found for update")
        return _row_to_record(row)


def load_subject_directory(cursor: Any, table: str = "subjects") -> SubjectDirectory:
    """Load the subject catalog once per job (ordered by name)."""
    if not table.replace("_", "").isalnum():
        raise ValueError(f"invalid table name: {table!r}")
    cursor.execute(f"SELECT subject_name, subject_id FROM {table} ORDER BY subject_name")
    return SubjectDirectory.from_rows(cursor.fetchall())


def ensure_schema(cursor: Any, table: str = "grades") -> None:
    """Create the grades table (with its identity UNIQUE constraint) if missing."""
    if not table.replace("_", "").isalnum():
        raise ValueError(f"invalid table name: {table!r}")
    cursor.execute(GRADES_DDL.format(table=table))
