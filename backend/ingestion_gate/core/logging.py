"""Logging setup for the gateway.

Every module logs through ``logging.getLogger(__name__)``; contextual values
(job id, file path, layer name) travel in ``extra`` and are rendered by the
formatter when present. configure_logging() is called once from the
application factory.
"""

from __future__ import annotations

import logging
import sys

_CONTEXT_FIELDS = ("job_id", "task_id", "file_path", "layer_name")
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ContextFormatter(logging.Formatter):
    """Append known ``extra`` fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = [
            f"{field}={getattr(record, field)}"
            for field in _CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        ]
        if context:
            return f"{message} [{' '.join(context)}]"
        return message


def configure_logging(level: str = "INFO") -> None:
    """Install a stream handler on the package logger.

    Repeated calls replace the handler instead of stacking them.

    Args:
        level: Log level name, e.g. "DEBUG" or "INFO".
    """
    logger = logging.getLogger("ingestion_gate")
    logger.setLevel(level.upper())
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
