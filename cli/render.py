from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_metrics(metrics: List[Dict[str, Any]]) -> None:
    echo_heading("Metrics")
    if not metrics:
        typer.echo("No metrics ingested yet.")
        return
    for item in metrics:
        typer.echo(
            f"  - {item.get('metric')}: {item.get('bucket_count')} days, "
            f"{item.get('reading_count')} readings"
        )


def render_buckets(metric: str, buckets: List[Dict[str, Any]]) -> None:
    echo_heading(f"Daily buckets for {metric}")
    if not buckets:
        typer.echo("No data for this metric.")
        return
    for bucket in buckets:
        values = ", ".join(f"{value:g}" for value in bucket.get("values") or [])
        typer.echo(
            f"  - {bucket.get('date')}: avg={bucket.get('average')} "
            f"count={bucket.get('count')} [{values}]"
        )


def render_series(payload: Dict[str, Any]) -> None:
    echo_heading(f"Series for {payload.get('metric')}")
    domain = payload.get("domain") or {}
    echo_key_values(
        [
            ("zoom_factor", payload.get("zoom_factor")),
            ("detail_level", payload.get("detail_level")),
            ("time_range", " .. ".join(str(item) for item in domain.get("time_range") or [])),
            ("value_range", " .. ".join(str(item) for item in domain.get("value_range") or [])),
        ]
    )

    typer.echo()
    echo_heading("Points")
    if payload.get("is_empty"):
        typer.echo("No data for this metric.")
        return
    for point in payload.get("points") or []:
        typer.echo(
            f"  - {point.get('timestamp')} {point.get('kind'):<7} "
            f"value={point.get('value'):.2f} x={point.get('x'):.1f} y={point.get('y'):.1f}"
        )


def render_status(payload: Dict[str, Any]) -> None:
    echo_heading("Poller")
    echo_key_values(
        [
            ("running", payload.get("running")),
            ("snapshot_url", payload.get("snapshot_url")),
            ("last_success_at", payload.get("last_success_at")),
            ("consecutive_failures", payload.get("consecutive_failures")),
        ]
    )
    last_error = payload.get("last_error")
    if last_error:
        typer.secho(f"Last fetch failed: {last_error}", fg=typer.colors.YELLOW)


def render_ingest(payload: Dict[str, Any]) -> None:
    echo_heading("Ingest")
    echo_key_values(
        [
            ("record_count", payload.get("record_count")),
            ("reading_count", payload.get("reading_count")),
            ("folded_count", payload.get("folded_count")),
        ]
    )
    errors = payload.get("errors") or []
    typer.echo()
    echo_heading("Errors")
    if errors:
        for error in errors:
            typer.echo(f"  - record {error.get('record_id')}: {error.get('reason')}")
    else:
        typer.echo("No errors recorded.")
