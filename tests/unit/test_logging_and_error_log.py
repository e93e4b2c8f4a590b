from __future__ import annotations

import json
import logging
from io import StringIO
from pathlib import Path

from grade_import.logging.error_log import ErrorLogBuffer
from grade_import.logging.init import (
    APP_LOGGER_NAME,
    SUMMARY_LEVEL,
    LabeledFormatter,
    get_logger,
    log_summary,
    set_debug,
    setup_logging,
)
from grade_import.models.error_record import ErrorRecord

RECORD_KEYS = {"timestamp", "file", "sheet", "row", "error_type", "message"}


def test_setup_logging_is_idempotent():
    logger = setup_logging()
    assert logger.name == APP_LOGGER_NAME
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1
    assert logger.propagate is False
    assert setup_logging() is logger
    assert get_logger() is logger


def test_labeled_prefixes():
    stream = StringIO()
    logger = logging.getLogger("test_grade_import_labels")
    logger.setLevel(logging.INFO)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    handler = logging.StreamHandler(stream)
    handler.setFormatter(LabeledFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    logger.info("Test info message")
    logger.warning("Test warning message")
    logger.error("Test error message")
    logger.log(SUMMARY_LEVEL, "sheets=1/1")

    assert stream.getvalue().splitlines() == [
        "INFO Test info message",
        "WARN Test warning message",
        "ERROR Test error message",
        "SUMMARY sheets=1/1",
    ]


def test_module_loggers_flow_into_app_handler(capsys):
    setup_logging()
    logging.getLogger("grade_import.services.orchestrator").warning("from a module")
    log_summary("created=1")
    out = capsys.readouterr().out
    assert "WARN from a module" in out
    assert "SUMMARY created=1" in out


def test_set_debug_toggles_levels():
    logger = setup_logging()
    set_debug(True)
    assert logger.level == logging.DEBUG
    assert all(h.level == logging.DEBUG for h in logger.handlers)
    set_debug(False)
    assert logger.level == logging.INFO


def test_error_record_json_line():
    rec = ErrorRecord.create(
        file="march.xlsx",
        sheet="Mathematics",
        row=9,
        error_type="ROW_VALIDATION_ERROR",
        message="Missing ID data for student: Dara",
    )
    data = json.loads(rec.to_json_line())
    assert set(data) == RECORD_KEYS
    assert data["timestamp"].endswith("Z")
    assert data["row"] == 9


def test_error_record_keeps_non_ascii():
    rec = ErrorRecord.create("f.xlsx", "គណិតវិទ្យា", -1, "SUBJECT_NOT_FOUND", "x")
    assert "គណិតវិទ្យា" in rec.to_json_line()


def test_error_log_buffer_flush(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.append(ErrorRecord.create("f.xlsx", "S", 7, "VALUE_PARSE_ERROR", "Invalid grade for A: x"))
    buf.append(ErrorRecord.create("f.xlsx", "S", -1, "SUBJECT_NOT_FOUND", 'Subject "S" not found'))
    path = buf.flush()
    assert path.parent == Path("logs")
    assert path.name.startswith("errors-") and path.suffix == ".log"
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    for raw in lines:
        assert set(json.loads(raw)) == RECORD_KEYS
    assert len(buf) == 0


def test_error_log_buffer_appends_on_second_flush(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    buf.append(ErrorRecord.create("f.xlsx", "S", 1, "PERSISTENCE_ERROR", "dup"))
    first = buf.flush()
    buf.append(ErrorRecord.create("f.xlsx", "S", 2, "PERSISTENCE_ERROR", "dup2"))
    second = buf.flush()
    assert first == second
    assert len(second.read_text(encoding="utf-8").splitlines()) == 2


def test_error_log_buffer_empty_flush_writes_nothing(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()
