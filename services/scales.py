"""Domain computation and pixel mapping for the chart axes."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Protocol, Sequence, Tuple

from models.records import Domain, InterpolatedPoint
from services.errors import DomainDegenerateError

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
DEFAULT_DOMAIN = Domain(time_range=(EPOCH, EPOCH), value_range=(0.0, 0.0), is_placeholder=True)
DEGENERATE_PADDING = 1.0
NICE_TICK_COUNT = 10

_E10 = math.sqrt(50)
_E5 = math.sqrt(10)
_E2 = math.sqrt(2)


class TimedValue(Protocol):
    timestamp: datetime
    value: float


def _tick_increment(start: float, stop: float, count: int) -> float:
    """Tick step on a 1/2/5 grid; negative values encode ``1 / step``."""
    step = (stop - start) / max(0, count)
    power = math.floor(math.log10(step))
    error = step / math.pow(10, power)
    if error >= _E10:
        factor = 10
    elif error >= _E5:
        factor = 5
    elif error >= _E2:
        factor = 2
    else:
        factor = 1
    if power >= 0:
        return math.pow(10, power) * factor
    return -math.pow(10, -power) / factor


def nice_extent(low: float, high: float, count: int = NICE_TICK_COUNT) -> Tuple[float, float]:
    """Widen ``(low, high)`` outwards to round tick boundaries."""
    if high < low:
        low, high = high, low
    if high == low:
        raise DomainDegenerateError(f"Value range collapses to {low!r}.")

    previous: Optional[float] = None
    for _ in range(10):
        step = _tick_increment(low, high, count)
        if step == previous:
            break
        if step > 0:
            low = math.floor(low / step) * step
            high = math.ceil(high / step) * step
        elif step < 0:
            low = math.ceil(low * step) / step
            high = math.floor(high * step) / step
        else:
            break
        previous = step
    return low, high


def compute_domains(points: Iterable[TimedValue]) -> Domain:
    """Domain over every point given; empty input yields ``DEFAULT_DOMAIN``."""
    first_time: Optional[datetime] = None
    last_time: Optional[datetime] = None
    low = math.inf
    high = -math.inf

    for point in points:
        if first_time is None or point.timestamp < first_time:
            first_time = point.timestamp
        if last_time is None or point.timestamp > last_time:
            last_time = point.timestamp
        low = min(low, point.value)
        high = max(high, point.value)

    if first_time is None or last_time is None:
        return DEFAULT_DOMAIN

    try:
        value_range = nice_extent(low, high)
    except DomainDegenerateError:
        logger.debug("Widening flat value domain", extra={"reason": f"value={low}"})
        value_range = nice_extent(low - DEGENERATE_PADDING, high + DEGENERATE_PADDING)

    return Domain(time_range=(first_time, last_time), value_range=value_range)


@dataclass(frozen=True)
class ValueScale:
    """Linear value to pixel mapping; a flat domain maps to mid-range."""

    domain: Tuple[float, float]
    range: Tuple[float, float]

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        span = d1 - d0
        if span == 0:
            return (r0 + r1) / 2
        return r0 + (value - d0) / span * (r1 - r0)

    def invert(self, pixel: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if r1 == r0:
            return (d0 + d1) / 2
        return d0 + (pixel - r0) / (r1 - r0) * (d1 - d0)


@dataclass(frozen=True)
class TimeScale:
    domain: Tuple[datetime, datetime]
    range: Tuple[float, float]

    @property
    def width(self) -> timedelta:
        return self.domain[1] - self.domain[0]

    def __call__(self, moment: datetime) -> float:
        r0, r1 = self.range
        span = self.width.total_seconds()
        if span == 0:
            return (r0 + r1) / 2
        offset = (moment - self.domain[0]).total_seconds()
        return r0 + offset / span * (r1 - r0)

    def invert(self, pixel: float) -> datetime:
        r0, r1 = self.range
        if r1 == r0:
            return self.domain[0] + self.width / 2
        return self.domain[0] + self.width * ((pixel - r0) / (r1 - r0))


@dataclass(frozen=True)
class PanZoomTransform:
    """Gesture transform as reported by the front end's zoom behaviour."""

    k: float = 1.0
    x: float = 0.0


def build_scales(domain: Domain, pixel_width: float, pixel_height: float) -> Tuple[TimeScale, ValueScale]:
    time_scale = TimeScale(domain=domain.time_range, range=(0.0, float(pixel_width)))
    value_scale = ValueScale(domain=domain.value_range, range=(float(pixel_height), 0.0))
    return time_scale, value_scale


def apply_transform(time_scale: TimeScale, transform: PanZoomTransform, pixel_width: float) -> TimeScale:
    """Shift the time window by the pan offset.

    The window keeps its width whatever ``k`` is: zooming only changes point
    density, panning moves the window. Only the time axis is affected. At
    ``k == 1`` the base scale is used as is and any pan offset is ignored.
    """
    if transform.k == 1 or transform.x == 0 or pixel_width <= 0 or transform.k <= 0:
        return time_scale
    shift = time_scale.width * (transform.x / transform.k / pixel_width)
    start, end = time_scale.domain
    return TimeScale(domain=(start - shift, end - shift), range=time_scale.range)


@dataclass(frozen=True)
class HoverTarget:
    point: InterpolatedPoint
    pixel_x: float
    pixel_y: float


def resolve_hover(
    points: Sequence[InterpolatedPoint],
    pointer_x: float,
    pointer_y: float,
    time_scale: TimeScale,
    value_scale: ValueScale,
) -> Optional[HoverTarget]:
    """Pick the point nearest the pointer along x, breaking ties on y."""
    best: Optional[HoverTarget] = None
    best_key: Tuple[float, float] = (math.inf, math.inf)
    for point in points:
        pixel_x = time_scale(point.timestamp)
        pixel_y = value_scale(point.value)
        key = (abs(pixel_x - pointer_x), abs(pixel_y - pointer_y))
        if key < best_key:
            best_key = key
            best = HoverTarget(point=point, pixel_x=pixel_x, pixel_y=pixel_y)
    return best
