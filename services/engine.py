"""Render pipeline boundary: ingest snapshots, produce chart frames."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from functools import lru_cache
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Tuple

from models.records import DailyBucket, Domain, InterpolatedPoint, PointKind, RawReading, ZoomState
from services.aggregator import DailyAggregator
from services.errors import EmptyDatasetError
from services.interpolator import interpolate_series
from services.lod import clamp_zoom, coarsen_detail_level, detail_level
from services.scales import (
    DEFAULT_DOMAIN,
    PanZoomTransform,
    TimeScale,
    ValueScale,
    apply_transform,
    build_scales,
    compute_domains,
)
from services.snapshot import flatten_snapshot
from services.throttle import RenderThrottle
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class IngestReport:
    """Outcome of folding one snapshot into the session buckets."""

    record_count: int = 0
    reading_count: int = 0
    folded_count: int = 0
    errors: List[Tuple[Optional[str], str]] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


@dataclass(frozen=True)
class RenderFrame:
    """Everything the drawing layer needs for one pass."""

    metric: str
    zoom: ZoomState
    detail_level: float
    points: Tuple[InterpolatedPoint, ...]
    domain: Domain
    time_scale: TimeScale
    value_scale: ValueScale
    is_empty: bool = False

    def time_to_x(self, point: InterpolatedPoint) -> float:
        return self.time_scale(point.timestamp)

    def value_to_y(self, point: InterpolatedPoint) -> float:
        return self.value_scale(point.value)


class ChartEngine:
    """Coordinates the aggregator, interpolation caches and scale building."""

    def __init__(
        self,
        aggregator: DailyAggregator,
        pixel_width: int = 710,
        pixel_height: int = 340,
        detail_step: float = 0.05,
    ) -> None:
        self.aggregator = aggregator
        self.pixel_width = pixel_width
        self.pixel_height = pixel_height
        self.detail_step = detail_step
        self._lock = RLock()
        self._points_cache: Dict[Tuple[str, float], Tuple[InterpolatedPoint, ...]] = {}
        self._domain_cache: Dict[str, Domain] = {}

    def ingest_snapshot(self, snapshot: Mapping[str, Any]) -> IngestReport:
        """Flatten a snapshot and fold any readings not seen before."""
        start_time = time.perf_counter()
        flattened = flatten_snapshot(snapshot)
        folded = self.ingest_readings(flattened.readings)
        report = IngestReport(
            record_count=flattened.record_count,
            reading_count=len(flattened.readings),
            folded_count=folded,
            errors=[(error.record_id, error.reason) for error in flattened.errors],
        )
        logger.info(
            "Ingested snapshot",
            extra={
                "reading_count": report.folded_count,
                "error_count": report.error_count,
                "elapsed_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return report

    def ingest_readings(self, readings: List[RawReading]) -> int:
        with self._lock:
            folded = self.aggregator.ingest(readings)
            if folded:
                self._points_cache.clear()
                self._domain_cache.clear()
        return folded

    def metrics(self) -> List[str]:
        with self._lock:
            return self.aggregator.metrics()

    def reading_count(self, metric: str) -> int:
        with self._lock:
            return self.aggregator.reading_count(metric)

    def buckets(self, metric: str) -> List[DailyBucket]:
        """Copies of the metric's buckets; empty when the metric is unknown."""
        with self._lock:
            try:
                buckets = self.aggregator.buckets_for(metric)
            except EmptyDatasetError:
                return []
            return [
                replace(bucket, values=list(bucket.values), timestamps=list(bucket.timestamps))
                for bucket in buckets
            ]

    def latest(self, metric: str) -> Optional[RawReading]:
        with self._lock:
            try:
                return self.aggregator.latest(metric)
            except EmptyDatasetError:
                return None

    def domain_for(self, metric: str) -> Domain:
        """Domain over every daily average and raw reading ever seen for ``metric``."""
        with self._lock:
            cached = self._domain_cache.get(metric)
            if cached is not None:
                return cached
            try:
                buckets = self.aggregator.buckets_for(metric)
            except EmptyDatasetError:
                return DEFAULT_DOMAIN
            averages = [
                InterpolatedPoint(
                    timestamp=bucket.anchor,
                    value=bucket.average,
                    kind=PointKind.average,
                    bucket_date=bucket.date,
                )
                for bucket in buckets
            ]
            domain = compute_domains([*averages, *self.aggregator.raw_readings(metric)])
            self._domain_cache[metric] = domain
            return domain

    def render(self, metric: str, zoom: ZoomState) -> RenderFrame:
        zoom = ZoomState(
            zoom_factor=clamp_zoom(zoom.zoom_factor),
            pan_offset_pixels=zoom.pan_offset_pixels,
        )
        level = coarsen_detail_level(detail_level(zoom.zoom_factor), self.detail_step)

        with self._lock:
            try:
                buckets = self.aggregator.buckets_for(metric)
            except EmptyDatasetError as exc:
                logger.info("No data to render", extra={"metric": exc.metric})
                return self._empty_frame(metric, zoom, level)

            points = self._points_cache.get((metric, level))
            if points is None:
                points = tuple(interpolate_series(buckets, level))
                self._points_cache[(metric, level)] = points
                logger.debug(
                    "Interpolated series",
                    extra={"metric": metric, "detail_level": level, "reading_count": len(points)},
                )
            domain = self.domain_for(metric)

        time_scale, value_scale = build_scales(domain, self.pixel_width, self.pixel_height)
        time_scale = apply_transform(
            time_scale,
            PanZoomTransform(k=zoom.zoom_factor, x=zoom.pan_offset_pixels),
            self.pixel_width,
        )
        return RenderFrame(
            metric=metric,
            zoom=zoom,
            detail_level=level,
            points=points,
            domain=domain,
            time_scale=time_scale,
            value_scale=value_scale,
        )

    def throttled(self, min_interval: float) -> RenderThrottle[RenderFrame]:
        return RenderThrottle(self.render, min_interval=min_interval)

    def _empty_frame(self, metric: str, zoom: ZoomState, level: float) -> RenderFrame:
        time_scale, value_scale = build_scales(DEFAULT_DOMAIN, self.pixel_width, self.pixel_height)
        return RenderFrame(
            metric=metric,
            zoom=zoom,
            detail_level=level,
            points=(),
            domain=DEFAULT_DOMAIN,
            time_scale=time_scale,
            value_scale=value_scale,
            is_empty=True,
        )


@lru_cache
def build_default_engine() -> ChartEngine:
    """Factory that wires the engine from environment settings."""
    settings = get_settings()
    return ChartEngine(
        aggregator=DailyAggregator(),
        pixel_width=settings.chart_pixel_width,
        pixel_height=settings.chart_pixel_height,
        detail_step=settings.lod_detail_step,
    )
