"""Rate limiting of zoom-driven re-renders."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Generic, Optional, TypeVar

from models.records import ZoomState

FrameT = TypeVar("FrameT")


@dataclass(frozen=True)
class RenderRequest:
    metric: str
    zoom: ZoomState


class RenderThrottle(Generic[FrameT]):
    """Lets at most one render through per ``min_interval`` seconds.

    Requests that arrive too soon are parked; a newer request replaces the
    parked one (last writer wins) and :meth:`flush` renders whatever is
    parked once the host's timer fires.
    """

    def __init__(
        self,
        render: Callable[[str, ZoomState], FrameT],
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._render = render
        self._min_interval = min_interval
        self._clock = clock
        self._last_render_at: Optional[float] = None
        self._pending: Optional[RenderRequest] = None
        self._lock = Lock()

    @property
    def pending(self) -> Optional[RenderRequest]:
        with self._lock:
            return self._pending

    def request(self, metric: str, zoom: ZoomState) -> Optional[FrameT]:
        now = self._clock()
        with self._lock:
            if self._last_render_at is not None and now - self._last_render_at < self._min_interval:
                self._pending = RenderRequest(metric=metric, zoom=zoom)
                return None
            self._pending = None
            self._last_render_at = now
        return self._render(metric, zoom)

    def flush(self) -> Optional[FrameT]:
        with self._lock:
            pending = self._pending
            self._pending = None
            if pending is None:
                return None
            self._last_render_at = self._clock()
        return self._render(pending.metric, pending.zoom)
