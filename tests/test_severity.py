from __future__ import annotations

import pytest

from services.severity import SeverityThresholds, categorize, lookup_thresholds

THRESHOLDS = SeverityThresholds(good=50, moderate=100, unhealthy=150, very_unhealthy=200, hazardous=300)


@pytest.mark.parametrize(
    ("value", "name"),
    [
        (0, "good"),
        (50, "good"),
        (50.1, "moderate"),
        (150, "unhealthy"),
        (199, "very_unhealthy"),
        (300, "hazardous"),
        (301, "very_hazardous"),
    ],
)
def test_categorize_uses_inclusive_upper_bounds(value: float, name: str) -> None:
    assert categorize(value, THRESHOLDS).name == name


def test_lookup_thresholds_by_field_name() -> None:
    assert lookup_thresholds("aqi") == THRESHOLDS
    assert lookup_thresholds("AQI") == THRESHOLDS
    assert lookup_thresholds("PM25") is not None
    assert lookup_thresholds("hum") is None
