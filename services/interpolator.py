"""Variable-density point synthesis for daily buckets."""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable, List

from models.records import DailyBucket, InterpolatedPoint, PointKind
from services.lod import points_to_show

# Total synthetic spread around the bucket anchor, centred on it.
SPREAD_MINUTES = 60


def interpolate(bucket: DailyBucket, detail_level: float) -> List[InterpolatedPoint]:
    """Blend a bucket's average with its raw values for one detail level.

    At 0 a single point carries the average, at 1 every raw value is emitted
    in arrival order, and in between each point is
    ``average * (1 - d) + raw * d``. Point timestamps are spread evenly over
    an hour around the bucket anchor; they are display positions, not
    measurement times, which is what ``kind`` records.
    """
    count = len(bucket.values)
    if count == 0:
        return []

    # TODO: replace the linear average/raw blend with a progressive
    # min/max envelope once the front end can draw bands.
    if detail_level <= 0:
        kind = PointKind.average
    elif detail_level >= 1:
        kind = PointKind.reading
    else:
        kind = PointKind.mixed

    shown = points_to_show(count, detail_level)
    last_step = max(shown - 1, 1)
    points: List[InterpolatedPoint] = []

    for i in range(shown):
        progress = i / last_step

        if shown > 1:
            timestamp = bucket.anchor + timedelta(minutes=(progress - 0.5) * SPREAD_MINUTES)
        else:
            timestamp = bucket.anchor

        # floor(progress * (count - 1)) without float drift
        raw = bucket.values[(i * (count - 1)) // last_step]
        if kind is PointKind.average:
            value = bucket.average
        elif kind is PointKind.reading:
            value = raw
        else:
            value = bucket.average * (1 - detail_level) + raw * detail_level

        points.append(
            InterpolatedPoint(timestamp=timestamp, value=value, kind=kind, bucket_date=bucket.date)
        )

    return points


def interpolate_series(buckets: Iterable[DailyBucket], detail_level: float) -> List[InterpolatedPoint]:
    points: List[InterpolatedPoint] = []
    for bucket in buckets:
        points.extend(interpolate(bucket, detail_level))
    return points
