from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CachedSnapshot:
    payload: Dict[str, Any]
    fetched_at: datetime


class SnapshotCache:
    """Session-scoped holder for the last snapshot that parsed successfully.

    Failed fetches never touch it, so whatever is displayed survives an outage.
    """

    def __init__(self) -> None:
        self._current: Optional[CachedSnapshot] = None
        self._lock = Lock()

    def put(self, payload: Dict[str, Any], fetched_at: Optional[datetime] = None) -> None:
        stamp = fetched_at or datetime.now(timezone.utc)
        with self._lock:
            self._current = CachedSnapshot(payload=copy.deepcopy(payload), fetched_at=stamp)

    def get(self) -> Optional[CachedSnapshot]:
        with self._lock:
            if self._current is None:
                return None
            return CachedSnapshot(
                payload=copy.deepcopy(self._current.payload),
                fetched_at=self._current.fetched_at,
            )

    @property
    def fetched_at(self) -> Optional[datetime]:
        with self._lock:
            return self._current.fetched_at if self._current else None

    def clear(self) -> None:
        with self._lock:
            self._current = None
