"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import List, Optional, Tuple

MIN_ZOOM = 1.0
MAX_ZOOM = 8.0

_CENT = Decimal("0.01")


def round_average(value: float) -> float:
    """Round to two decimals with ties away from zero.

    The exact binary value is rounded, so ``1.005`` (stored just below the
    tie) becomes ``1.0`` while ``37.125`` becomes ``37.13``.
    """
    return float(Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))


class PointKind(str, Enum):
    """How an interpolated point's value was produced."""

    average = "average"
    mixed = "mixed"
    reading = "reading"


@dataclass(slots=True, frozen=True)
class RawReading:
    """A single metric value flattened out of a snapshot record."""

    timestamp: datetime
    metric: str
    value: float
    record_id: Optional[str] = None

    @property
    def day(self) -> date:
        return self.timestamp.date()


@dataclass(slots=True)
class DailyBucket:
    """Append-only values for one metric on one calendar day.

    ``values`` and ``timestamps`` are kept in arrival order, never sorted.
    ``average`` is always ``round_average(total / count)``.
    """

    metric: str
    date: date
    anchor: datetime
    values: List[float] = field(default_factory=list)
    timestamps: List[datetime] = field(default_factory=list)
    total: float = 0.0
    count: int = 0
    average: float = 0.0

    def append(self, value: float, timestamp: datetime) -> None:
        self.values.append(value)
        self.timestamps.append(timestamp)
        self.total += value
        self.count += 1
        self.average = round_average(self.total / self.count)


@dataclass(slots=True, frozen=True)
class ZoomState:
    """Immutable zoom/pan gesture state."""

    zoom_factor: float = MIN_ZOOM
    pan_offset_pixels: float = 0.0


@dataclass(slots=True, frozen=True)
class InterpolatedPoint:
    timestamp: datetime
    value: float
    kind: PointKind
    bucket_date: date


@dataclass(slots=True, frozen=True)
class Domain:
    """Time and value extents shared by every render of a metric."""

    time_range: Tuple[datetime, datetime]
    value_range: Tuple[float, float]
    is_placeholder: bool = False
