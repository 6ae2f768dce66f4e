from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from cli.client import ApiClient, load_snapshot_file
from cli.config import CLIConfig, load_config
from cli.render import render_buckets, render_ingest, render_metrics, render_series, render_status
from models.records import ZoomState
from services.aggregator import DailyAggregator
from services.engine import ChartEngine, RenderFrame


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the air quality chart service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def frame_to_payload(frame: RenderFrame) -> Dict[str, Any]:
    """Shape a locally rendered frame like the service's series response."""
    return {
        "metric": frame.metric,
        "zoom_factor": frame.zoom.zoom_factor,
        "detail_level": frame.detail_level,
        "is_empty": frame.is_empty,
        "domain": {
            "time_range": [moment.isoformat() for moment in frame.domain.time_range],
            "value_range": list(frame.domain.value_range),
        },
        "points": [
            {
                "timestamp": point.timestamp.isoformat(),
                "kind": point.kind.value,
                "value": point.value,
                "x": frame.time_to_x(point),
                "y": frame.value_to_y(point),
            }
            for point in frame.points
        ],
    }


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Chart service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("ingest")
def ingest_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to a JSON snapshot."),
) -> None:
    """Send a snapshot file to the service."""
    state = _get_state(ctx)
    typer.echo(f"Sending {file} to {state.config.base_url} ...")
    payload = state.client.ingest_file(file)
    render_ingest(payload)


@app.command("metrics")
def metrics_command(ctx: typer.Context) -> None:
    """List metrics known to the service."""
    state = _get_state(ctx)
    render_metrics(state.client.list_metrics())


@app.command("buckets")
def buckets_command(
    ctx: typer.Context,
    metric: str = typer.Argument(..., help="Metric field name, e.g. PM10."),
) -> None:
    """Show the daily buckets for a metric."""
    state = _get_state(ctx)
    render_buckets(metric, state.client.get_buckets(metric))


@app.command("series")
def series_command(
    ctx: typer.Context,
    metric: str = typer.Argument(..., help="Metric field name, e.g. PM10."),
    zoom: float = typer.Option(1.0, "--zoom", "-z", min=1.0, max=8.0, help="Zoom factor between 1 and 8."),
    pan: float = typer.Option(0.0, "--pan", help="Pan offset in pixels."),
) -> None:
    """Fetch the interpolated series for a zoom/pan state."""
    state = _get_state(ctx)
    render_series(state.client.get_series(metric, zoom=zoom, pan=pan))


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show snapshot polling status."""
    state = _get_state(ctx)
    render_status(state.client.get_status())


@app.command("preview")
def preview_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to a JSON snapshot."),
    metric: str = typer.Argument(..., help="Metric field name, e.g. PM10."),
    zoom: List[float] = typer.Option(
        [1.0],
        "--zoom",
        "-z",
        help="Zoom factor; repeat to replay a gesture, only the last step is drawn.",
    ),
    pan: float = typer.Option(0.0, "--pan", help="Pan offset in pixels."),
) -> None:
    """Render a snapshot file locally without contacting the service."""
    state = _get_state(ctx)
    engine = ChartEngine(aggregator=DailyAggregator())
    report = engine.ingest_snapshot(load_snapshot_file(file))
    if report.error_count:
        typer.secho(f"Dropped {report.error_count} malformed record(s).", fg=typer.colors.YELLOW)

    throttle = engine.throttled(state.config.throttle_interval)
    frame: Optional[RenderFrame] = None
    for step in zoom:
        rendered = throttle.request(metric, ZoomState(zoom_factor=step, pan_offset_pixels=pan))
        frame = rendered or frame
    final = throttle.flush()
    frame = final or frame
    if frame is None:
        raise typer.Exit(code=1)
    render_series(frame_to_payload(frame))
