from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional
from zoneinfo import ZoneInfo

import typer

from cli.config import CLIConfig, load_cli_config
from cli.render import render_plan, render_rules, render_summary
from exceptions import ConfigError, DynamicRateError
from logging_config import configure_logging
from models.config import PanelConfig, load_config
from panel.client import PanelClient
from services.reconciler import RateReconciler
from services.updater import RateUpdater
from services.windows import current_time, resolve_zone

logger = logging.getLogger(__name__)


@dataclass
class CLIState:
    options: CLIConfig
    zone: ZoneInfo


app = typer.Typer(
    help="Adjust panel node rates according to time-of-day windows.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _fail(message: str) -> NoReturn:
    logger.error(message)
    raise typer.Exit(code=1)


def _load(state: CLIState) -> PanelConfig:
    try:
        return load_config(state.options.config_path)
    except ConfigError as exc:
        _fail(f"Failed to load configuration: {exc}")


def _build_updater(ctx: typer.Context, state: CLIState) -> RateUpdater:
    config = _load(state)
    client = PanelClient(config, timeout=state.options.request_timeout)
    ctx.call_on_close(client.close)
    return RateUpdater(config=config, client=client, reconciler=RateReconciler(state.zone))


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML configuration file (defaults to DYNAMIC_RATE_CONFIG_PATH env or ./config.yaml).",
    ),
    timezone: Optional[str] = typer.Option(
        None,
        "--timezone",
        help="IANA timezone used to evaluate windows (defaults to Asia/Shanghai).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Per-request network timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    options = load_cli_config(config_path=config, timezone=timezone, request_timeout=timeout)
    try:
        zone = resolve_zone(options.timezone)
    except ConfigError as exc:
        configure_logging(timezone="UTC")
        _fail(f"Failed to load configuration: {exc}")
    configure_logging(timezone=zone.key)
    ctx.obj = CLIState(options=options, zone=zone)


@app.command("run")
def run_command(ctx: typer.Context) -> None:
    """Push the currently active rate of every configured node to the panel."""
    state = _get_state(ctx)
    updater = _build_updater(ctx, state)
    try:
        summary = updater.run()
    except DynamicRateError as exc:
        _fail(f"Rate adjustment failed: {exc}")
    render_summary(summary)


@app.command("plan")
def plan_command(ctx: typer.Context) -> None:
    """Show which updates a run would make, without saving anything."""
    state = _get_state(ctx)
    updater = _build_updater(ctx, state)
    try:
        plan = updater.plan()
    except DynamicRateError as exc:
        _fail(f"Planning failed: {exc}")
    render_plan(plan.records)


@app.command("check-config")
def check_config_command(ctx: typer.Context) -> None:
    """Validate the configuration file and show which windows are active now."""
    state = _get_state(ctx)
    config = _load(state)
    render_rules(config.nodes, current_time(state.zone), state.zone.key)
