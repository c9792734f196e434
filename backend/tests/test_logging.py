"""Tests for the gateway log formatter and logger setup."""

from __future__ import annotations

import logging

from ingestion_gate.core import logging as gate_logging


def make_record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        "ingestion_gate.services.ingestion",
        logging.INFO,
        __file__,
        1,
        "job created",
        None,
        None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_context_fields() -> None:
    formatter = gate_logging.ContextFormatter("%(levelname)s %(message)s")
    line = formatter.format(make_record(job_id="job-1", task_id="task-1"))
    assert line == "INFO job created [job_id=job-1 task_id=task-1]"


def test_formatter_without_context() -> None:
    formatter = gate_logging.ContextFormatter("%(message)s")
    assert formatter.format(make_record(unrelated="x")) == "job created"


def test_configure_logging_replaces_handler() -> None:
    gate_logging.configure_logging("debug")
    gate_logging.configure_logging("warning")
    logger = logging.getLogger("ingestion_gate")
    assert logger.level == logging.WARNING
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, gate_logging.ContextFormatter)
