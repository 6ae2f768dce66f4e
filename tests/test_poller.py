from __future__ import annotations

import json
from typing import Callable, List

import httpx
import pytest

from datastore.snapshot_cache import SnapshotCache
from models.records import ZoomState
from services.aggregator import DailyAggregator
from services.engine import ChartEngine
from services.errors import FetchError
from services.poller import PollOutcome, SnapshotPoller

URL = "https://example.test/data.json"

SNAPSHOT = {
    "-Na": {"createdAt": "2024-06-01T08:00:00Z", "aqi": 40, "PM10": 58},
    "-Nb": {"createdAt": "2024-06-01T09:00:00Z", "aqi": 44, "PM10": 66},
}


def _poller(handler: Callable[[httpx.Request], httpx.Response], url: str | None = URL) -> SnapshotPoller:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return SnapshotPoller(
        engine=ChartEngine(aggregator=DailyAggregator()),
        cache=SnapshotCache(),
        url=url,
        interval=60.0,
        client=client,
    )


def test_successful_poll_ingests_and_caches() -> None:
    poller = _poller(lambda request: httpx.Response(200, json=SNAPSHOT))

    assert poller.poll_once() is PollOutcome.ok

    assert sorted(poller.engine.metrics()) == ["PM10", "aqi"]
    cached = poller.cache.get()
    assert cached is not None and cached.payload == SNAPSHOT
    status = poller.status()
    assert status.last_error is None
    assert status.last_success_at == cached.fetched_at


def test_failed_poll_keeps_last_good_snapshot() -> None:
    responses: List[httpx.Response] = [
        httpx.Response(200, json=SNAPSHOT),
        httpx.Response(503, text="unavailable"),
    ]
    poller = _poller(lambda request: responses.pop(0))

    assert poller.poll_once() is PollOutcome.ok
    assert poller.poll_once() is PollOutcome.failed

    cached = poller.cache.get()
    assert cached is not None and cached.payload == SNAPSHOT
    frame = poller.engine.render("aqi", ZoomState(zoom_factor=8.0))
    assert [point.value for point in frame.points] == [40.0, 44.0]
    status = poller.status()
    assert "503" in (status.last_error or "")
    assert status.consecutive_failures == 1


def test_transport_errors_become_fetch_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    poller = _poller(handler)

    with pytest.raises(FetchError):
        poller.fetch()
    assert poller.poll_once() is PollOutcome.failed
    assert poller.status().consecutive_failures == 1


@pytest.mark.parametrize(
    ("response", "message"),
    [
        (httpx.Response(200, text="<html>"), "not valid JSON"),
        (httpx.Response(200, json=[1, 2, 3]), "not a JSON object"),
    ],
)
def test_unusable_payloads_are_rejected(response: httpx.Response, message: str) -> None:
    poller = _poller(lambda request: response)

    with pytest.raises(FetchError, match=message):
        poller.fetch()


def test_null_payload_is_an_empty_snapshot() -> None:
    poller = _poller(lambda request: httpx.Response(200, content=json.dumps(None)))

    assert poller.poll_once() is PollOutcome.ok
    assert poller.engine.metrics() == []


def test_tick_during_inflight_fetch_is_skipped() -> None:
    nested: List[PollOutcome] = []
    poller: SnapshotPoller

    def handler(request: httpx.Request) -> httpx.Response:
        nested.append(poller.poll_once())
        return httpx.Response(200, json=SNAPSHOT)

    poller = _poller(handler)

    assert poller.poll_once() is PollOutcome.ok
    assert nested == [PollOutcome.skipped]


def test_success_after_failure_clears_banner() -> None:
    responses: List[httpx.Response] = [
        httpx.Response(500),
        httpx.Response(200, json=SNAPSHOT),
    ]
    poller = _poller(lambda request: responses.pop(0))

    poller.poll_once()
    assert poller.status().last_error is not None

    poller.poll_once()
    assert poller.status().last_error is None
    assert poller.status().consecutive_failures == 0


def test_missing_url_fails_without_request() -> None:
    poller = _poller(lambda request: pytest.fail("no request expected"), url=None)

    assert poller.poll_once() is PollOutcome.failed
    assert poller.status().last_error == "No snapshot URL configured."


def test_start_and_stop_background_thread() -> None:
    poller = _poller(lambda request: httpx.Response(200, json=SNAPSHOT))

    poller.start()
    try:
        assert poller.status().running
    finally:
        poller.stop()

    assert not poller.status().running
    assert poller.engine.metrics()
