"""Incremental per-day aggregation of sensor readings."""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, Iterator, List, Set, Tuple

from models.records import DailyBucket, RawReading
from services.errors import EmptyDatasetError

BucketKey = Tuple[str, date]


class DailyAggregator:
    """Folds readings into ``(metric, day)`` buckets that live for the session.

    Buckets are created on first touch and only ever appended to, so calling
    :meth:`aggregate` again with a fresh poll costs O(new readings). Readings
    with a ``record_id`` already folded for their metric are ignored, which
    keeps repeated full-snapshot polls from double counting.
    """

    def __init__(self) -> None:
        self._buckets: Dict[BucketKey, DailyBucket] = {}
        self._days_by_metric: Dict[str, List[date]] = {}
        self._seen: Set[Tuple[str, str]] = set()
        self._latest: Dict[str, RawReading] = {}

    def ingest(self, readings: Iterable[RawReading]) -> int:
        """Fold readings into their buckets and return how many were new."""
        folded = 0
        for reading in readings:
            if reading.record_id is not None:
                seen_key = (reading.metric, reading.record_id)
                if seen_key in self._seen:
                    continue
                self._seen.add(seen_key)

            key = (reading.metric, reading.day)
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = DailyBucket(metric=reading.metric, date=reading.day, anchor=reading.timestamp)
                self._buckets[key] = bucket
                self._days_by_metric.setdefault(reading.metric, []).append(reading.day)

            bucket.append(reading.value, reading.timestamp)
            self._latest[reading.metric] = reading
            folded += 1
        return folded

    def aggregate(self, readings: Iterable[RawReading]) -> Dict[str, List[DailyBucket]]:
        """Fold ``readings`` and return every metric's buckets ordered by day."""
        self.ingest(readings)
        return {metric: self.buckets_for(metric) for metric in self.metrics()}

    def metrics(self) -> List[str]:
        return list(self._days_by_metric)

    def buckets_for(self, metric: str) -> List[DailyBucket]:
        days = self._days_by_metric.get(metric)
        if not days:
            raise EmptyDatasetError(metric)
        return [self._buckets[(metric, day)] for day in sorted(days)]

    def latest(self, metric: str) -> RawReading:
        try:
            return self._latest[metric]
        except KeyError:
            raise EmptyDatasetError(metric) from None

    def raw_readings(self, metric: str) -> Iterator[RawReading]:
        """Rebuild every reading ever folded for ``metric`` from its buckets."""
        for bucket in self.buckets_for(metric):
            for timestamp, value in zip(bucket.timestamps, bucket.values):
                yield RawReading(timestamp=timestamp, metric=metric, value=value)

    def reading_count(self, metric: str) -> int:
        days = self._days_by_metric.get(metric, [])
        return sum(self._buckets[(metric, day)].count for day in days)
