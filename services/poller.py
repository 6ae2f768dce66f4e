"""Periodic snapshot fetching feeding the chart engine."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import lru_cache
from threading import Event, Lock, Thread
from typing import Any, Dict, Optional

import httpx

from datastore.snapshot_cache import SnapshotCache
from services.engine import ChartEngine, IngestReport, build_default_engine
from services.errors import FetchError
from settings import get_settings

logger = logging.getLogger(__name__)


class PollOutcome(str, Enum):
    ok = "ok"
    skipped = "skipped"
    failed = "failed"


@dataclass(frozen=True)
class PollerStatus:
    running: bool
    snapshot_url: Optional[str]
    last_success_at: Optional[datetime]
    last_error: Optional[str]
    consecutive_failures: int


class SnapshotPoller:
    """Fetches the snapshot on a fixed interval and folds it into the engine.

    Only one fetch runs at a time: a tick that finds the previous fetch still
    in flight is skipped. A failed fetch keeps the cached snapshot and buckets
    intact and is reported through :meth:`status`.
    """

    def __init__(
        self,
        engine: ChartEngine,
        cache: SnapshotCache,
        url: Optional[str],
        interval: float = 300.0,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ) -> None:
        self.engine = engine
        self.cache = cache
        self.url = url
        self.interval = interval
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None
        self._in_flight = Lock()
        self._state_lock = Lock()
        self._stop = Event()
        self._thread: Optional[Thread] = None
        self._last_error: Optional[str] = None
        self._consecutive_failures = 0

    def fetch(self) -> Dict[str, Any]:
        if not self.url:
            raise FetchError("No snapshot URL configured.")
        try:
            response = self._client.get(self.url)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise FetchError(f"Snapshot request failed with status {exc.response.status_code}.") from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Snapshot request failed: {exc}") from exc
        except ValueError as exc:
            raise FetchError("Snapshot response is not valid JSON.") from exc

        # An empty database serialises as null.
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            raise FetchError("Snapshot response is not a JSON object.")
        return payload

    def poll_once(self) -> PollOutcome:
        if not self._in_flight.acquire(blocking=False):
            logger.info("Previous fetch still running; skipping tick", extra={"url": self.url})
            return PollOutcome.skipped
        try:
            start_time = time.perf_counter()
            try:
                payload = self.fetch()
            except FetchError as exc:
                with self._state_lock:
                    self._last_error = str(exc)
                    self._consecutive_failures += 1
                    failures = self._consecutive_failures
                logger.warning(
                    "Snapshot fetch failed; keeping last good snapshot",
                    extra={"url": self.url, "reason": str(exc), "error_count": failures},
                )
                return PollOutcome.failed

            report: IngestReport = self.engine.ingest_snapshot(payload)
            self.cache.put(payload)
            with self._state_lock:
                self._last_error = None
                self._consecutive_failures = 0
            logger.info(
                "Snapshot polled",
                extra={
                    "url": self.url,
                    "reading_count": report.folded_count,
                    "error_count": report.error_count,
                    "elapsed_ms": int((time.perf_counter() - start_time) * 1000),
                },
            )
            return PollOutcome.ok
        finally:
            self._in_flight.release()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = Thread(target=self._run, name="snapshot-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        if self._owns_client:
            self._client.close()

    def status(self) -> PollerStatus:
        with self._state_lock:
            return PollerStatus(
                running=self._thread is not None and self._thread.is_alive(),
                snapshot_url=self.url,
                last_success_at=self.cache.fetched_at,
                last_error=self._last_error,
                consecutive_failures=self._consecutive_failures,
            )

    def _run(self) -> None:
        # First fetch happens immediately, then once per interval.
        while True:
            self.poll_once()
            if self._stop.wait(self.interval):
                break


@lru_cache
def build_default_cache() -> SnapshotCache:
    return SnapshotCache()


@lru_cache
def build_default_poller() -> SnapshotPoller:
    """Factory that wires the poller to the default engine and cache."""
    settings = get_settings()
    return SnapshotPoller(
        engine=build_default_engine(),
        cache=build_default_cache(),
        url=settings.snapshot_url,
        interval=settings.poll_interval_seconds,
        timeout=settings.fetch_timeout_seconds,
    )
