from __future__ import annotations

from datetime import time
from typing import Any, Iterable, Sequence

import typer

from models.config import NodeRule
from models.records import RunSummary, UpdateRecord
from services.windows import is_active


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_plan(records: Sequence[UpdateRecord]) -> None:
    echo_heading("Planned Updates")
    if not records:
        typer.echo("No nodes need updating.")
        return
    for record in records:
        window = record.window.label if record.window is not None else "-"
        typer.echo(
            f"  - {record.node_type} node {record.node_id}: rate -> {record.rate} (window {window})"
        )


def render_summary(summary: RunSummary) -> None:
    echo_heading("Run Summary")
    echo_key_values(
        [
            ("planned", summary.planned),
            ("applied", summary.applied),
            ("failed", summary.failed),
            ("status", "ok" if summary.succeeded else "partial"),
        ]
    )


def render_rules(rules: Sequence[NodeRule], now: time, zone_name: str) -> None:
    echo_heading("Configured Nodes")
    echo_key_values([("timezone", zone_name), ("now", now.isoformat())])
    for rule in rules:
        typer.echo()
        typer.echo(f"{rule.type} node {rule.id}")
        if not rule.windows:
            typer.echo("  (no rate windows)")
            continue
        for window in rule.windows:
            marker = "active" if is_active(window, now) else "idle"
            typer.echo(f"  - {window.label} rate={window.rate} [{marker}]")
