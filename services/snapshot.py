"""Flattening of raw JSON snapshots into timestamped readings."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator, List, Mapping, Tuple

from models.records import RawReading
from services.errors import ParseError

logger = logging.getLogger(__name__)

TIMESTAMP_FIELD = "createdAt"
IGNORED_FIELDS = frozenset({TIMESTAMP_FIELD, "id"})


@dataclass
class FlattenResult:
    """Readings extracted from a snapshot plus the records that were dropped."""

    readings: List[RawReading] = field(default_factory=list)
    errors: List[ParseError] = field(default_factory=list)
    record_count: int = 0


def parse_created_at(value: Any) -> datetime:
    """Parse ``createdAt`` in ISO-8601 or ``YYYY_M_D_H_Mi_S`` form.

    Offsets are kept as written so ``.date()`` is the day the sensor recorded.
    Timestamps without an offset are read as UTC.
    """
    if not isinstance(value, str):
        raise ValueError("Timestamp is not a string.")
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")

    if "_" in candidate:
        parsed = _parse_underscore_timestamp(candidate)
    else:
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_underscore_timestamp(candidate: str) -> datetime:
    parts = candidate.split("_")
    if len(parts) != 6:
        raise ValueError("Underscore timestamp needs six fields.")
    try:
        year, month, day, hour, minute, second = (int(part) for part in parts)
    except ValueError as exc:
        raise ValueError("Underscore timestamp has a non-integer field") from exc
    # datetime() rejects out-of-range fields such as month 13.
    return datetime(year, month, day, hour, minute, second)


def parse_metric_value(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        raise ValueError("Metric value is not numeric.")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError("Metric value is not numeric.") from exc
    if not math.isfinite(parsed):
        raise ValueError("Metric value is not finite.")
    return parsed


def _is_record_group(entry: Any) -> bool:
    if not isinstance(entry, Mapping) or not entry or TIMESTAMP_FIELD in entry:
        return False
    return any(isinstance(child, Mapping) for child in entry.values())


def _iter_records(snapshot: Mapping[str, Any]) -> Iterator[Tuple[str, Any]]:
    """Yield ``(record_id, record)`` pairs in document order.

    Snapshots are either ``{record_id: record}`` or grouped as
    ``{group: {record_id: record}}``.
    """
    for key, entry in snapshot.items():
        if _is_record_group(entry):
            for child_key, child in entry.items():
                yield f"{key}/{child_key}", child
        else:
            yield str(key), entry


def parse_record(record_id: str, record: Any) -> List[RawReading]:
    """Turn one record into readings, raising ``ParseError`` for the whole record."""
    if not isinstance(record, Mapping):
        raise ParseError("record is not an object", record_id)
    if TIMESTAMP_FIELD not in record:
        raise ParseError("missing createdAt", record_id)

    try:
        timestamp = parse_created_at(record[TIMESTAMP_FIELD])
    except ValueError as exc:
        raise ParseError("invalid timestamp", record_id) from exc

    readings: List[RawReading] = []
    for metric, raw_value in record.items():
        if metric in IGNORED_FIELDS:
            continue
        try:
            value = parse_metric_value(raw_value)
        except ValueError as exc:
            raise ParseError(f"invalid numeric value for {metric}", record_id) from exc
        readings.append(
            RawReading(timestamp=timestamp, metric=str(metric), value=value, record_id=record_id)
        )
    return readings


def flatten_snapshot(snapshot: Mapping[str, Any]) -> FlattenResult:
    """Flatten a snapshot; malformed records are skipped and reported."""
    result = FlattenResult()
    if not snapshot:
        return result

    for record_id, record in _iter_records(snapshot):
        result.record_count += 1
        try:
            readings = parse_record(record_id, record)
        except ParseError as exc:
            logger.warning(
                "Dropping snapshot record",
                extra={"record_id": exc.record_id, "reason": exc.reason},
            )
            result.errors.append(exc)
            continue
        result.readings.extend(readings)

    return result
