"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status

from app.schemas import (
    BucketResponse,
    CurrentReadingResponse,
    DomainResponse,
    HoverResponse,
    IngestError,
    IngestResponse,
    MetricSummary,
    PointResponse,
    PollerStatusResponse,
    RefreshResponse,
    SeriesResponse,
    SeverityResponse,
    SnapshotResponse,
)
from datastore.snapshot_cache import SnapshotCache
from models.records import InterpolatedPoint, ZoomState
from services.engine import ChartEngine, RenderFrame, build_default_engine
from services.poller import SnapshotPoller, build_default_cache, build_default_poller
from services.scales import resolve_hover
from services.severity import categorize, lookup_thresholds

router = APIRouter()


def get_engine() -> ChartEngine:
    return build_default_engine()


def get_poller() -> SnapshotPoller:
    return build_default_poller()


def get_cache() -> SnapshotCache:
    return build_default_cache()


def _zoom_state(zoom: float, pan: float) -> ZoomState:
    return ZoomState(zoom_factor=zoom, pan_offset_pixels=pan)


def _point_response(frame: RenderFrame, point: InterpolatedPoint) -> PointResponse:
    return PointResponse(
        timestamp=point.timestamp,
        value=point.value,
        kind=point.kind,
        bucket_date=point.bucket_date,
        x=frame.time_to_x(point),
        y=frame.value_to_y(point),
    )


def _status_response(poller: SnapshotPoller) -> PollerStatusResponse:
    current = poller.status()
    return PollerStatusResponse(
        running=current.running,
        snapshot_url=current.snapshot_url,
        last_success_at=current.last_success_at,
        last_error=current.last_error,
        consecutive_failures=current.consecutive_failures,
    )


@router.post(
    "/snapshots",
    status_code=status.HTTP_200_OK,
    response_model=IngestResponse,
    summary="Fold a raw JSON snapshot into the session buckets.",
)
def ingest_snapshot(
    snapshot: Dict[str, Any] = Body(..., description="Snapshot keyed by record or date group."),
    engine: ChartEngine = Depends(get_engine),
    cache: SnapshotCache = Depends(get_cache),
) -> IngestResponse:
    report = engine.ingest_snapshot(snapshot)
    cache.put(snapshot)
    return IngestResponse(
        record_count=report.record_count,
        reading_count=report.reading_count,
        folded_count=report.folded_count,
        errors=[IngestError(record_id=record_id, reason=reason) for record_id, reason in report.errors],
    )


@router.get(
    "/snapshots/latest",
    response_model=SnapshotResponse,
    summary="Return the last good snapshot and when it arrived.",
)
async def latest_snapshot(cache: SnapshotCache = Depends(get_cache)) -> SnapshotResponse:
    cached = cache.get()
    if cached is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No snapshot has been received yet.",
        )
    return SnapshotResponse(fetched_at=cached.fetched_at, payload=cached.payload)


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    summary="Poll the configured snapshot source once.",
)
def refresh(poller: SnapshotPoller = Depends(get_poller)) -> RefreshResponse:
    if not poller.url:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No snapshot URL configured.",
        )
    outcome = poller.poll_once()
    return RefreshResponse(outcome=outcome.value, status=_status_response(poller))


@router.get(
    "/status",
    response_model=PollerStatusResponse,
    summary="Snapshot polling status and last error banner.",
)
async def poller_status(poller: SnapshotPoller = Depends(get_poller)) -> PollerStatusResponse:
    return _status_response(poller)


@router.get(
    "/metrics",
    response_model=List[MetricSummary],
    summary="List metrics that have at least one reading.",
)
async def list_metrics(engine: ChartEngine = Depends(get_engine)) -> List[MetricSummary]:
    return [
        MetricSummary(
            metric=metric,
            bucket_count=len(engine.buckets(metric)),
            reading_count=engine.reading_count(metric),
        )
        for metric in engine.metrics()
    ]


@router.get(
    "/metrics/{metric}/buckets",
    response_model=List[BucketResponse],
    summary="Daily buckets for a metric; empty for unknown metrics.",
)
async def list_buckets(metric: str, engine: ChartEngine = Depends(get_engine)) -> List[BucketResponse]:
    return [
        BucketResponse(
            date=bucket.date,
            anchor=bucket.anchor,
            average=bucket.average,
            count=bucket.count,
            values=bucket.values,
        )
        for bucket in engine.buckets(metric)
    ]


@router.get(
    "/metrics/{metric}/series",
    response_model=SeriesResponse,
    summary="Interpolated points and scales for a zoom/pan state.",
)
async def get_series(
    metric: str,
    zoom: float = Query(1.0, gt=0, description="Zoom factor; clamped to [1, 8]."),
    pan: float = Query(0.0, description="Horizontal pan offset in pixels."),
    engine: ChartEngine = Depends(get_engine),
) -> SeriesResponse:
    frame = engine.render(metric, _zoom_state(zoom, pan))
    return SeriesResponse(
        metric=frame.metric,
        zoom_factor=frame.zoom.zoom_factor,
        pan_offset_pixels=frame.zoom.pan_offset_pixels,
        detail_level=frame.detail_level,
        is_empty=frame.is_empty,
        pixel_width=engine.pixel_width,
        pixel_height=engine.pixel_height,
        visible_time_range=frame.time_scale.domain,
        domain=DomainResponse(
            time_range=frame.domain.time_range,
            value_range=frame.domain.value_range,
            is_placeholder=frame.domain.is_placeholder,
        ),
        points=[_point_response(frame, point) for point in frame.points],
    )


@router.get(
    "/metrics/{metric}/hover",
    response_model=HoverResponse,
    summary="Point nearest to a pointer position.",
)
async def get_hover(
    metric: str,
    pointer_x: float = Query(..., description="Pointer x in chart pixels."),
    pointer_y: float = Query(0.0, description="Pointer y in chart pixels."),
    zoom: float = Query(1.0, gt=0),
    pan: float = Query(0.0),
    engine: ChartEngine = Depends(get_engine),
) -> HoverResponse:
    frame = engine.render(metric, _zoom_state(zoom, pan))
    target = resolve_hover(frame.points, pointer_x, pointer_y, frame.time_scale, frame.value_scale)
    if target is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No points to hover for metric {metric!r}.",
        )
    return HoverResponse(point=_point_response(frame, target.point), detail_level=frame.detail_level)


@router.get(
    "/metrics/{metric}/current",
    response_model=CurrentReadingResponse,
    summary="Most recent reading for a metric with its severity band.",
)
async def get_current(metric: str, engine: ChartEngine = Depends(get_engine)) -> CurrentReadingResponse:
    latest = engine.latest(metric)
    if latest is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No readings for metric {metric!r}.",
        )
    thresholds = lookup_thresholds(metric)
    severity = None
    if thresholds is not None:
        band = categorize(latest.value, thresholds)
        severity = SeverityResponse(name=band.name, label=band.label, color=band.color)
    return CurrentReadingResponse(
        metric=metric,
        timestamp=latest.timestamp,
        value=latest.value,
        severity=severity,
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
