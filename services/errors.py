"""Error types raised by the chart engine."""

from __future__ import annotations

from typing import Optional


class ChartEngineError(Exception):
    """Base class for engine failures."""


class ParseError(ChartEngineError, ValueError):
    """A snapshot record could not be turned into readings."""

    def __init__(self, reason: str, record_id: Optional[str] = None) -> None:
        self.reason = reason
        self.record_id = record_id
        where = f" in record {record_id!r}" if record_id else ""
        super().__init__(f"{reason}{where}")


class FetchError(ChartEngineError):
    """The snapshot source could not be read."""


class EmptyDatasetError(ChartEngineError, KeyError):
    """No buckets exist for the requested metric."""

    def __init__(self, metric: str) -> None:
        self.metric = metric
        super().__init__(f"No data for metric {metric!r}.")

    def __str__(self) -> str:
        return self.args[0]


class DomainDegenerateError(ChartEngineError):
    """A value domain has zero height."""
