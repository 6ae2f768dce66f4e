from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Sequence

from settings import get_settings

CONTEXT_KEYS = (
    "metric",
    "record_id",
    "reason",
    "status",
    "detail_level",
    "reading_count",
    "error_count",
    "elapsed_ms",
    "url",
)

_LINE_FORMAT = "%(asctime)sZ %(levelname)-7s %(name)s: %(message)s"

_configured = False


def _format_context_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.4g}"
    return str(value)


class ContextualFormatter(logging.Formatter):
    """Append known ``extra`` fields to the message as ``key=value`` pairs."""

    converter = time.gmtime

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, context_keys: Iterable[str] = CONTEXT_KEYS) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.context_keys: Sequence[str] = tuple(context_keys)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{key}={_format_context_value(value)}"
            for key in self.context_keys
            if (value := getattr(record, key, None)) is not None
        )
        return f"{message} [{context}]" if context else message


def build_logging_config(level: str | int) -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": ContextualFormatter,
                "fmt": _LINE_FORMAT,
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            }
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
                "formatter": "contextual",
            }
        },
        "loggers": {
            # httpx logs every request at INFO; the poller reports its own outcome.
            "httpx": {"level": "WARNING"},
        },
        "root": {"handlers": ["stderr"], "level": level},
    }


def configure_logging(level: str | int | None = None) -> None:
    """Install the service's log format once per process."""
    global _configured
    if _configured:
        return
    dictConfig(build_logging_config(level if level is not None else get_settings().log_level))
    _configured = True
