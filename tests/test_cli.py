from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest
from typer.testing import CliRunner

from cli.app import app
from cli.config import load_config


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.ingested_path: Path | None = None
        self.series_calls: List[tuple[str, float, float]] = []
        self.closed = False

    def ingest_file(self, path: Path) -> Dict[str, Any]:
        self.ingested_path = path
        return {
            "record_count": 2,
            "reading_count": 1,
            "folded_count": 1,
            "errors": [{"record_id": "bad", "reason": "invalid timestamp"}],
        }

    def list_metrics(self) -> List[Dict[str, Any]]:
        return [{"metric": "PM10", "bucket_count": 2, "reading_count": 9}]

    def get_buckets(self, metric: str) -> List[Dict[str, Any]]:
        return [
            {
                "date": "2024-06-01",
                "anchor": "2024-06-01T08:00:00Z",
                "average": 37.0,
                "count": 8,
                "values": [58, 66, 8, 8, 8, 8, 69, 71],
            }
        ]

    def get_series(self, metric: str, zoom: float, pan: float) -> Dict[str, Any]:
        self.series_calls.append((metric, zoom, pan))
        return {
            "metric": metric,
            "zoom_factor": zoom,
            "detail_level": 0.0,
            "is_empty": False,
            "domain": {
                "time_range": ["2024-06-01T08:00:00Z", "2024-06-02T09:00:00Z"],
                "value_range": [5.0, 75.0],
            },
            "points": [
                {"timestamp": "2024-06-01T08:00:00Z", "kind": "average", "value": 37.0, "x": 0.0, "y": 161.9},
            ],
        }

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": True,
            "snapshot_url": "https://example.test/data.json",
            "last_success_at": None,
            "last_error": "Snapshot request failed with status 503.",
            "consecutive_failures": 2,
        }

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    instance = StubClient(config=None)

    def factory(config):
        instance.config = config
        return instance

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return instance


def _write_snapshot(tmp_path: Path) -> Path:
    path = tmp_path / "snapshot.json"
    records = {
        f"r{index}": {"createdAt": f"2024_6_1_{8 + index}_0_0", "PM10": value}
        for index, value in enumerate([58, 66, 8, 8, 8, 8, 69, 71])
    }
    records["bad"] = {"createdAt": "soon", "PM10": 1}
    path.write_text(json.dumps(records))
    return path


def test_ingest_command(stub: StubClient, runner: CliRunner, tmp_path) -> None:
    path = _write_snapshot(tmp_path)

    result = runner.invoke(app, ["ingest", str(path)])

    assert result.exit_code == 0
    assert "folded_count: 1" in result.stdout
    assert "record bad: invalid timestamp" in result.stdout
    assert stub.ingested_path == path
    assert stub.closed is True


def test_metrics_and_buckets_commands(stub: StubClient, runner: CliRunner) -> None:
    metrics = runner.invoke(app, ["metrics"])
    buckets = runner.invoke(app, ["buckets", "PM10"])

    assert metrics.exit_code == 0
    assert "PM10: 2 days, 9 readings" in metrics.stdout
    assert buckets.exit_code == 0
    assert "2024-06-01: avg=37.0 count=8 [58, 66, 8, 8, 8, 8, 69, 71]" in buckets.stdout


def test_series_command_passes_zoom_and_pan(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["--base-url", "http://chart:9000/", "series", "PM10", "--zoom", "3", "--pan", "12"])

    assert result.exit_code == 0
    assert stub.series_calls == [("PM10", 3.0, 12.0)]
    assert stub.config.base_url == "http://chart:9000"
    assert "average" in result.stdout


def test_series_command_rejects_out_of_range_zoom(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["series", "PM10", "--zoom", "9"])

    assert result.exit_code != 0
    assert not stub.series_calls


def test_status_command_shows_banner(stub: StubClient, runner: CliRunner) -> None:
    result = runner.invoke(app, ["status"])

    assert result.exit_code == 0
    assert "Last fetch failed: Snapshot request failed with status 503." in result.stdout


def test_preview_renders_locally(stub: StubClient, runner: CliRunner, tmp_path) -> None:
    path = _write_snapshot(tmp_path)

    result = runner.invoke(app, ["preview", str(path), "PM10", "--zoom", "8"])

    assert result.exit_code == 0
    assert "Dropped 1 malformed record(s)." in result.stdout
    assert result.stdout.count(" reading ") == 8
    assert "detail_level: 1.0" in result.stdout


def test_preview_draws_last_step_of_a_gesture(stub: StubClient, runner: CliRunner, tmp_path) -> None:
    path = _write_snapshot(tmp_path)

    result = runner.invoke(app, ["preview", str(path), "PM10", "-z", "8", "-z", "4.5", "-z", "1"])

    assert result.exit_code == 0
    assert "zoom_factor: 1.0" in result.stdout
    assert result.stdout.count(" average ") == 1


def test_preview_unknown_metric(stub: StubClient, runner: CliRunner, tmp_path) -> None:
    path = _write_snapshot(tmp_path)

    result = runner.invoke(app, ["preview", str(path), "no2"])

    assert result.exit_code == 0
    assert "No data for this metric." in result.stdout


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://env-host:8000/")
    monkeypatch.setenv("CLI_TIMEOUT", "not-a-number")

    config = load_config()

    assert config.base_url == "http://env-host:8000"
    assert config.timeout == 30.0
