"""Unit tests for the daily aggregation logic."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from models.records import RawReading, round_average
from services.aggregator import DailyAggregator
from services.errors import EmptyDatasetError


def _reading(
    metric: str,
    value: float,
    day: int = 1,
    hour: int = 0,
    record_id: str | None = None,
) -> RawReading:
    """Helper to build deterministic sensor readings."""

    return RawReading(
        timestamp=datetime(2024, 1, day, hour, tzinfo=timezone.utc),
        metric=metric,
        value=value,
        record_id=record_id,
    )


def test_unknown_metric_raises_empty_dataset() -> None:
    aggregator = DailyAggregator()

    assert aggregator.aggregate([]) == {}
    with pytest.raises(EmptyDatasetError) as excinfo:
        aggregator.buckets_for("PM10")
    assert excinfo.value.metric == "PM10"
    with pytest.raises(EmptyDatasetError):
        aggregator.latest("PM10")


def test_pm10_day_average_matches_hand_computed_value() -> None:
    aggregator = DailyAggregator()
    values = [58, 66, 8, 8, 8, 8, 69, 71]

    buckets = aggregator.aggregate(
        [_reading("PM10", value, hour=index) for index, value in enumerate(values)]
    )

    (bucket,) = buckets["PM10"]
    assert bucket.date == date(2024, 1, 1)
    assert bucket.values == values
    assert bucket.count == 8
    # 296 / 8
    assert bucket.average == 37.0


def test_average_is_rounded_to_two_decimals() -> None:
    aggregator = DailyAggregator()

    buckets = aggregator.aggregate([_reading("co2", 1.0), _reading("co2", 2.0), _reading("co2", 2.0)])

    assert buckets["co2"][0].average == 1.67


def test_average_ties_round_up() -> None:
    aggregator = DailyAggregator()
    values = [58, 66, 8, 8, 8, 9, 69, 71]

    aggregator.ingest([_reading("PM10", value, hour=index) for index, value in enumerate(values)])

    # 297 / 8 == 37.125
    assert aggregator.buckets_for("PM10")[0].average == 37.13


@pytest.mark.parametrize(
    ("value", "expected"),
    [(37.125, 37.13), (0.375, 0.38), (2.5, 2.5), (1.005, 1.0), (-0.125, -0.13), (1.6666, 1.67)],
)
def test_round_average(value: float, expected: float) -> None:
    assert round_average(value) == expected


@pytest.mark.parametrize(
    ("values", "averages"),
    [
        ([1.0], [1.0]),
        ([3.5, 3.5], [3.5, 3.5]),
        ([410, 415, 399, 420], [410.0, 412.5, 408.0, 411.0]),
        ([1, 2, 2, 5, 5, 5, 5, 2], [1.0, 1.5, 1.67, 2.5, 3.0, 3.33, 3.57, 3.38]),
    ],
)
def test_average_tracks_rounded_mean_after_every_append(values: list[float], averages: list[float]) -> None:
    aggregator = DailyAggregator()
    seen = []

    for index, value in enumerate(values):
        aggregator.ingest([_reading("temp", value, hour=index % 24)])
        (bucket,) = aggregator.buckets_for("temp")
        seen.append(bucket.average)

    assert seen == averages


def test_values_keep_arrival_order_not_time_order() -> None:
    aggregator = DailyAggregator()
    readings = [
        _reading("hum", 60.0, hour=18),
        _reading("hum", 55.0, hour=2),
        _reading("hum", 58.0, hour=10),
    ]

    aggregator.ingest(readings)

    (bucket,) = aggregator.buckets_for("hum")
    assert bucket.values == [60.0, 55.0, 58.0]
    assert bucket.anchor == readings[0].timestamp


def test_flattening_buckets_reproduces_per_day_sequences() -> None:
    aggregator = DailyAggregator()
    readings = [
        _reading("aqi", 10.0, day=2),
        _reading("aqi", 12.0, day=1),
        _reading("voc", 4.0, day=1),
        _reading("aqi", 11.0, day=2),
        _reading("aqi", 13.0, day=1),
    ]

    buckets = aggregator.aggregate(readings)

    flattened = {
        (bucket.metric, bucket.date): bucket.values
        for metric_buckets in buckets.values()
        for bucket in metric_buckets
    }
    expected: dict[tuple[str, date], list[float]] = {}
    for reading in readings:
        expected.setdefault((reading.metric, reading.day), []).append(reading.value)
    assert flattened == expected
    assert [bucket.date for bucket in buckets["aqi"]] == [date(2024, 1, 1), date(2024, 1, 2)]


def test_incremental_ingest_extends_existing_buckets() -> None:
    aggregator = DailyAggregator()
    aggregator.ingest([_reading("PM25", 10.0, record_id="a")])
    (first,) = aggregator.buckets_for("PM25")

    folded = aggregator.ingest([_reading("PM25", 20.0, hour=1, record_id="b")])

    (second,) = aggregator.buckets_for("PM25")
    assert folded == 1
    assert second is first
    assert second.values == [10.0, 20.0]
    assert second.average == 15.0


def test_repeated_records_are_not_folded_twice() -> None:
    aggregator = DailyAggregator()
    poll = [_reading("PM1", 5.0, record_id="r1"), _reading("PM1", 7.0, hour=3, record_id="r2")]

    assert aggregator.ingest(poll) == 2
    assert aggregator.ingest(poll + [_reading("PM1", 9.0, hour=4, record_id="r3")]) == 1

    (bucket,) = aggregator.buckets_for("PM1")
    assert bucket.values == [5.0, 7.0, 9.0]
    assert aggregator.reading_count("PM1") == 3


def test_same_record_feeds_each_metric_once() -> None:
    aggregator = DailyAggregator()

    aggregator.ingest([_reading("temp", 28.0, record_id="r1"), _reading("hum", 60.0, record_id="r1")])

    assert sorted(aggregator.metrics()) == ["hum", "temp"]


def test_latest_and_raw_readings() -> None:
    aggregator = DailyAggregator()
    start = datetime(2024, 3, 5, 23, 30, tzinfo=timezone.utc)
    readings = [
        RawReading(timestamp=start, metric="aqi", value=40.0),
        RawReading(timestamp=start + timedelta(hours=1), metric="aqi", value=44.0),
    ]

    aggregator.ingest(readings)

    assert aggregator.latest("aqi").value == 44.0
    assert len(aggregator.buckets_for("aqi")) == 2
    assert [(r.timestamp, r.value) for r in aggregator.raw_readings("aqi")] == [
        (r.timestamp, r.value) for r in readings
    ]
