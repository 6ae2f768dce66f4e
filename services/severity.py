"""Static severity bands used to label a metric's current value."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class SeverityThresholds:
    """Inclusive upper bounds for each band; anything above is very hazardous."""

    good: float
    moderate: float
    unhealthy: float
    very_unhealthy: float
    hazardous: float


@dataclass(frozen=True)
class SeverityCategory:
    name: str
    label: str
    color: str


_BANDS: Tuple[SeverityCategory, ...] = (
    SeverityCategory("good", "Good", "#22c55e"),
    SeverityCategory("moderate", "Moderate", "#f59e0b"),
    SeverityCategory("unhealthy", "Unhealthy for Sensitive Groups", "#f97316"),
    SeverityCategory("very_unhealthy", "Unhealthy", "#ef4444"),
    SeverityCategory("hazardous", "Very Unhealthy", "#8b5cf6"),
    SeverityCategory("very_hazardous", "Hazardous", "#7f1d1d"),
)

DEFAULT_THRESHOLDS: Dict[str, SeverityThresholds] = {
    "aqi": SeverityThresholds(50, 100, 150, 200, 300),
    "PM25": SeverityThresholds(12, 35.4, 55.4, 150.4, 250.4),
    "PM10": SeverityThresholds(54, 154, 254, 354, 424),
    "PM1": SeverityThresholds(10, 25, 50, 100, 200),
    "co2": SeverityThresholds(600, 1000, 1500, 2000, 5000),
    "voc": SeverityThresholds(220, 660, 1430, 2200, 3300),
}


def lookup_thresholds(metric: str) -> Optional[SeverityThresholds]:
    thresholds = DEFAULT_THRESHOLDS.get(metric)
    if thresholds is None:
        thresholds = DEFAULT_THRESHOLDS.get(metric.lower())
    return thresholds


def categorize(value: float, thresholds: SeverityThresholds) -> SeverityCategory:
    bounds = (
        thresholds.good,
        thresholds.moderate,
        thresholds.unhealthy,
        thresholds.very_unhealthy,
        thresholds.hazardous,
    )
    for bound, band in zip(bounds, _BANDS):
        if value <= bound:
            return band
    return _BANDS[-1]
