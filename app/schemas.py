"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from models.records import PointKind


class IngestError(BaseModel):
    """A snapshot record that was dropped during ingest."""

    record_id: Optional[str] = None
    reason: str


class IngestResponse(BaseModel):
    record_count: int = Field(..., ge=0)
    reading_count: int = Field(..., ge=0)
    folded_count: int = Field(..., ge=0, description="Readings not seen in earlier snapshots.")
    errors: List[IngestError] = Field(default_factory=list)


class SnapshotResponse(BaseModel):
    """The last snapshot that was fetched or posted successfully."""

    fetched_at: datetime
    payload: Dict[str, Any]


class PollerStatusResponse(BaseModel):
    running: bool
    snapshot_url: Optional[str] = None
    last_success_at: Optional[datetime] = None
    last_error: Optional[str] = Field(
        default=None, description="Banner text for the last failed fetch, if any."
    )
    consecutive_failures: int = Field(..., ge=0)


class RefreshResponse(BaseModel):
    outcome: str
    status: PollerStatusResponse


class MetricSummary(BaseModel):
    metric: str
    bucket_count: int = Field(..., ge=0)
    reading_count: int = Field(..., ge=0)


class BucketResponse(BaseModel):
    """One metric's readings for one calendar day, in arrival order."""

    date: date
    anchor: datetime
    average: float
    count: int = Field(..., ge=0)
    values: List[float] = Field(default_factory=list)


class DomainResponse(BaseModel):
    time_range: Tuple[datetime, datetime]
    value_range: Tuple[float, float]
    is_placeholder: bool = False


class PointResponse(BaseModel):
    timestamp: datetime
    value: float
    kind: PointKind
    bucket_date: date
    x: float = Field(..., description="Horizontal pixel position under the current pan.")
    y: float = Field(..., description="Vertical pixel position.")


class SeriesResponse(BaseModel):
    metric: str
    zoom_factor: float
    pan_offset_pixels: float
    detail_level: float = Field(..., ge=0, le=1)
    is_empty: bool
    pixel_width: int
    pixel_height: int
    visible_time_range: Tuple[datetime, datetime]
    domain: DomainResponse
    points: List[PointResponse] = Field(default_factory=list)


class HoverResponse(BaseModel):
    point: PointResponse
    detail_level: float


class SeverityResponse(BaseModel):
    name: str
    label: str
    color: str


class CurrentReadingResponse(BaseModel):
    metric: str
    timestamp: datetime
    value: float
    severity: Optional[SeverityResponse] = None
