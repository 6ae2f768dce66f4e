from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional, TypeVar

T = TypeVar("T", int, float)

_SNAPSHOT_URL_ENV = "SNAPSHOT_URL"
_POLL_INTERVAL_ENV = "POLL_INTERVAL_SECONDS"
_FETCH_TIMEOUT_ENV = "FETCH_TIMEOUT_SECONDS"
_PIXEL_WIDTH_ENV = "CHART_PIXEL_WIDTH"
_PIXEL_HEIGHT_ENV = "CHART_PIXEL_HEIGHT"
_DETAIL_STEP_ENV = "LOD_DETAIL_STEP"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    snapshot_url: Optional[str]
    poll_interval_seconds: float
    fetch_timeout_seconds: float
    chart_pixel_width: int
    chart_pixel_height: int
    lod_detail_step: float
    log_level: str


def _read_env(name: str) -> Optional[str]:
    """Return the stripped variable, treating unset and blank alike."""
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip() or None


def _read_number(name: str, parse: Callable[[str], T], default: T, accept: Callable[[T], bool]) -> T:
    candidate = _read_env(name)
    if candidate is None:
        return default
    try:
        parsed = parse(candidate)
    except ValueError:
        return default
    return parsed if accept(parsed) else default


def _read_positive_float(name: str, default: float) -> float:
    return _read_number(name, float, default, lambda value: value > 0)


def _read_positive_int(name: str, default: int) -> int:
    return _read_number(name, int, default, lambda value: value > 0)


def _read_detail_step(default: float) -> float:
    # 0 switches off detail-level coarsening.
    return _read_number(_DETAIL_STEP_ENV, float, default, lambda value: 0 <= value <= 1)


def _read_log_level(default: str) -> str:
    candidate = _read_env(_LOG_LEVEL_ENV)
    return candidate.upper() if candidate else default


@lru_cache
def get_settings() -> Settings:
    return Settings(
        snapshot_url=_read_env(_SNAPSHOT_URL_ENV),
        poll_interval_seconds=_read_positive_float(_POLL_INTERVAL_ENV, 300.0),
        fetch_timeout_seconds=_read_positive_float(_FETCH_TIMEOUT_ENV, 30.0),
        chart_pixel_width=_read_positive_int(_PIXEL_WIDTH_ENV, 710),
        chart_pixel_height=_read_positive_int(_PIXEL_HEIGHT_ENV, 340),
        lod_detail_step=_read_detail_step(0.05),
        log_level=_read_log_level("INFO"),
    )
