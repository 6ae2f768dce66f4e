"""Level-of-detail selection driven by the zoom factor."""

from __future__ import annotations

import math

from models.records import MAX_ZOOM, MIN_ZOOM


def clamp_zoom(zoom_factor: float, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> float:
    return min(max(zoom_factor, min_zoom), max_zoom)


def detail_level(zoom_factor: float, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM) -> float:
    """Map a zoom factor onto ``[0, 1]``; 0 shows daily averages, 1 every reading."""
    level = (zoom_factor - min_zoom) / (max_zoom - min_zoom)
    return min(max(level, 0.0), 1.0)


def points_to_show(value_count: int, level: float) -> int:
    return max(1, math.floor(1 + (value_count - 1) * level))


def coarsen_detail_level(level: float, step: float = 0.05) -> float:
    """Snap ``level`` to a grid of ``step`` so nearby zoom ticks share a cache slot.

    The ends of the range stay exact, so fully zoomed out is still pure
    averages and fully zoomed in still every reading. ``step <= 0`` disables
    snapping.
    """
    level = min(max(level, 0.0), 1.0)
    if step <= 0:
        return level
    slots = max(1, round(1 / step))
    return round(level * slots) / slots
