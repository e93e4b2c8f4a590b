from __future__ import annotations

from datetime import UTC, datetime

from grade_import.db.grade_store import InMemoryGradeStore
from grade_import.logging.error_log import ErrorLogBuffer
from grade_import.models.cell_value import LiteralCell
from grade_import.models.grade_record import DecisionKind, ReconcileDecision
from grade_import.models.processing_result import ImportOutcome, ImportResult, OutcomeTag
from grade_import.models.row_candidate import GradeIdentity, RowCandidate
from grade_import.services.executor import BatchExecutor
from grade_import.services.summary import ResultSummaryBuilder, render_summary_line

IDENT = GradeIdentity(12, 1, 3, 4, "03/25")


def _decision(kind=DecisionKind.CREATE, grade_id=None):
    return ReconcileDecision(kind, IDENT, 55.0, None, None, existing_grade_id=grade_id)


def test_executor_create_then_failure_is_recorded():
    store = InMemoryGradeStore()
    summary = ResultSummaryBuilder()
    executor = BatchExecutor(store, summary)

    ok = executor.apply(_decision())
    assert ok.tag is OutcomeTag.CREATED
    assert ok.grade_id == 1

    failed = executor.apply(_decision())  # same identity again: constraint violation
    assert failed.tag is OutcomeTag.FAILED
    assert failed.message.startswith("Failed to create grade for student 12: duplicate key")

    result = summary.build()
    assert (result.created, result.failed, result.error_count) == (1, 1, 1)


def test_executor_update_failure_message():
    summary = ResultSummaryBuilder()
    outcome = BatchExecutor(InMemoryGradeStore(), summary).apply(_decision(DecisionKind.UPDATE, 3))
    assert outcome.message.startswith("Failed to update grade for student 12:")


def test_executor_wraps_unexpected_store_errors():
    class Broken:
        def upsert(self, decision):
            raise RuntimeError("connection reset")

    summary = ResultSummaryBuilder()
    outcome = BatchExecutor(Broken(), summary).apply(_decision())
    assert outcome.tag is OutcomeTag.FAILED
    assert outcome.message.endswith("connection reset")


def test_executor_process_records_failed_lookup():
    class BrokenLookup(InMemoryGradeStore):
        def find_grade_by_identity(self, identity):
            raise RuntimeError("connection reset")

    summary = ResultSummaryBuilder()
    candidate = RowCandidate(
        sheet_title="Mathematics", row_number=9, student_name="Dara", student_id=12, subject_id=1,
        course_id=3, semester_id=4, school_year_id=5, month=3, year=2025,
        score_cell=LiteralCell(55.0), score=55.0, period_key="03/25",
    )
    outcome = BatchExecutor(BrokenLookup(), summary).process(candidate)
    assert (outcome.tag, outcome.sheet, outcome.row) == (OutcomeTag.FAILED, "Mathematics", 9)
    assert outcome.message == "Failed to look up grade for student 12: connection reset"
    assert summary.build().failed == 1


def test_summary_caps_error_messages_but_counts_all():
    summary = ResultSummaryBuilder(max_errors=10)
    for i in range(15):
        summary.skip("Mathematics", 7 + i, f"error {i}", "ROW_VALIDATION_ERROR")
    result = summary.build()
    assert len(result.errors) == 10
    assert result.errors[0] == "error 0"
    assert result.error_count == 15
    assert result.skipped == 15


def test_summary_mirrors_errors_into_error_log(tmp_path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    summary = ResultSummaryBuilder(error_log=buf, source_name="march.xlsx")
    summary.skip_sheet("Chemistry", 'Subject "Chemistry" not found', "SUBJECT_NOT_FOUND")
    summary.add(ImportOutcome(OutcomeTag.CREATED, "Mathematics", 7, grade_id=1))
    records = buf.records
    assert len(records) == 1
    assert records[0].row == -1
    assert records[0].file == "march.xlsx"
    assert records[0].error_type == "SUBJECT_NOT_FOUND"


def test_summary_processed_subjects_in_order():
    summary = ResultSummaryBuilder()
    summary.matched_subject("Physics")
    summary.matched_subject("Mathematics")
    assert summary.build().processed_subjects == ["Physics", "Mathematics"]


def _result(**overrides):
    t = datetime(2026, 3, 1, tzinfo=UTC)
    values = dict(
        created=3, updated=2, skipped=1, failed=1, error_count=2, errors=["a", "b"],
        processed_subjects=["Mathematics"], start_time=t, end_time=t, elapsed_seconds=0.5,
    )
    values.update(overrides)
    return ImportResult(**values)


def test_render_summary_line():
    line = render_summary_line(2, _result())
    assert line == "SUMMARY sheets=1/2 created=3 updated=2 skipped=1 failed=1 errors=2 elapsed_sec=0.5"


def test_render_summary_line_aborted_and_small_elapsed():
    line = render_summary_line(1, _result(elapsed_seconds=0.0012, aborted=True))
    assert "elapsed_sec=0.0012" in line
    assert line.endswith(" aborted=1")


def test_result_properties():
    r = _result()
    assert r.written == 5
    assert r.has_errors is True
    assert _result(error_count=0).has_errors is False
