"""CLI entrypoint for stak-metrics."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import time
from pathlib import Path
from typing import Annotated, Any

import requests
import typer
from eth_utils import is_address
from rich.console import Console

from .clients import IndexerClient
from .domain import OfferingSnapshot, VaultSnapshot, positions_for_owner
from .errors import StakMetricsError
from .logger import get_logger, setup_logging
from .processors import compute_offering_metrics, compute_vault_metrics
from .report import (
    dumps_document,
    render_offering,
    render_offering_list,
    render_vault,
    render_vault_list,
)
from .settings import MetricsSettings, Network
from .state import AppState
from .vesting import vesting_schedule

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    add_help_option=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Vesting and position economics for Stak Flying ICOs and Stak Vaults.",
)

EXIT_ERROR = 1
EXIT_INCONSISTENT = 2

SnapshotOption = Annotated[
    Path | None,
    typer.Option(
        "--snapshot",
        "-s",
        exists=True,
        dir_okay=False,
        help="Read the indexer record from a JSON file instead of querying the indexer.",
    ),
]
OwnerOption = Annotated[
    str | None,
    typer.Option("--owner", help="Only show positions held by this address."),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Print metrics and vesting schedule as JSON."),
]


def _build_logger() -> logging.Logger:
    """Build a logger instance."""
    return get_logger("stak_metrics")


def _validate_address(value: str | None, name: str) -> str | None:
    if value is not None and not is_address(value):
        raise typer.BadParameter(f"{value!r} is not a valid address", param_hint=name)
    return value


def load_record(path: Path, key: str) -> dict[str, Any]:
    """Load an indexer record from a JSON file.

    Accepts the bare record, ``{key: record}`` or a full GraphQL response
    ``{"data": {key: record}}``.
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as e:
        raise typer.BadParameter(
            f"cannot read {path}: {e}", param_hint="--snapshot"
        ) from e
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        payload = payload["data"]
    if isinstance(payload, dict) and key in payload:
        payload = payload[key]
    if not isinstance(payload, dict):
        raise typer.BadParameter(
            f"{path} does not contain a {key} record", param_hint="--snapshot"
        )
    return payload


def _indexer_client(settings: MetricsSettings) -> IndexerClient:
    try:
        url = settings.indexer_url_required
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--indexer-url") from e
    api_key = (
        settings.indexer_api_key.get_secret_value()
        if settings.indexer_api_key
        else None
    )
    return IndexerClient(
        url,
        api_key=api_key,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
    )


def _fail(state: AppState, error: Exception) -> typer.Exit:
    state.logger.error("%s", error)
    typer.echo(f"Error: {error}", err=True)
    return typer.Exit(code=EXIT_ERROR)


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to a TOML config file (can include [stak_metrics] table).",
        ),
    ] = None,
    network: Annotated[
        Network | None,
        typer.Option("--network", "-n", help="Network whose indexer to query."),
    ] = None,
    indexer_url: Annotated[
        str | None,
        typer.Option("--indexer-url", help="GraphQL endpoint; overrides the network default."),
    ] = None,
    now: Annotated[
        int | None,
        typer.Option(
            "--now",
            help="Evaluation time in unix seconds. Defaults to the current time.",
        ),
    ] = None,
    samples: Annotated[
        int | None,
        typer.Option("--samples", min=2, help="Number of vesting schedule points."),
    ] = None,
    strict: Annotated[
        bool | None,
        typer.Option(
            "--strict/--no-strict",
            help="Exit with code 2 when the snapshot has data inconsistencies.",
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
        ),
    ] = None,
):
    """Load configuration and capture the evaluation time shared by every metric."""
    if config_path:
        os.environ["STAK_METRICS_CONFIG"] = str(config_path)

    init_kwargs: dict[str, Network | bool | int | str] = {}
    if network is not None:
        init_kwargs["network"] = network
    if indexer_url is not None:
        init_kwargs["indexer_url"] = indexer_url
    if samples is not None:
        init_kwargs["chart_samples"] = samples
    if strict is not None:
        init_kwargs["strict"] = strict
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()

    settings = MetricsSettings(**init_kwargs)
    setup_logging(settings.log_level)

    ctx.obj = AppState(
        settings=settings,
        logger=_build_logger(),
        now=now if now is not None else int(time.time()),
    )


@app.command("offering")
def offering(
    ctx: typer.Context,
    address: Annotated[str, typer.Argument(help="Flying ICO contract address.")],
    snapshot: SnapshotOption = None,
    owner: OwnerOption = None,
    as_json: JsonOption = False,
):
    """Show supply, vesting and position metrics for a Flying ICO."""
    state: AppState = ctx.obj
    settings = state.settings
    _validate_address(address, "ADDRESS")
    _validate_address(owner, "--owner")

    try:
        if snapshot is not None:
            record = OfferingSnapshot.from_record(load_record(snapshot, "flyingICO"))
        else:
            record = _indexer_client(settings).fetch_offering(address)
        metrics = compute_offering_metrics(record, state.now)
    except (StakMetricsError, requests.RequestException) as e:
        raise _fail(state, e) from e

    if owner is not None:
        metrics = dataclasses.replace(
            metrics, positions=list(positions_for_owner(metrics.positions, owner))
        )

    schedule = vesting_schedule(
        metrics.window,
        metrics.tokens_locked,
        samples=settings.chart_samples,
        padding_days=settings.chart_padding_days,
    )

    if as_json:
        typer.echo(dumps_document(metrics, schedule))
    else:
        render_offering(metrics, schedule, Console())

    if settings.strict and not metrics.is_consistent:
        raise typer.Exit(code=EXIT_INCONSISTENT)


@app.command("vault")
def vault(
    ctx: typer.Context,
    address: Annotated[str, typer.Argument(help="Stak Vault contract address.")],
    snapshot: SnapshotOption = None,
    owner: OwnerOption = None,
    as_json: JsonOption = False,
):
    """Show asset, share and position metrics for a Stak Vault."""
    state: AppState = ctx.obj
    settings = state.settings
    _validate_address(address, "ADDRESS")
    _validate_address(owner, "--owner")

    try:
        if snapshot is not None:
            record = VaultSnapshot.from_record(load_record(snapshot, "stakVault"))
        else:
            record = _indexer_client(settings).fetch_vault(address)
        metrics = compute_vault_metrics(record, state.now)
    except (StakMetricsError, requests.RequestException) as e:
        raise _fail(state, e) from e

    if owner is not None:
        metrics = dataclasses.replace(
            metrics, positions=list(positions_for_owner(metrics.positions, owner))
        )

    schedule = vesting_schedule(
        metrics.window,
        metrics.total_shares,
        samples=settings.chart_samples,
        padding_days=settings.chart_padding_days,
    )

    if as_json:
        typer.echo(dumps_document(metrics, schedule))
    else:
        render_vault(metrics, schedule, Console())

    if settings.strict and not metrics.is_consistent:
        raise typer.Exit(code=EXIT_INCONSISTENT)


@app.command("offerings")
def offerings(ctx: typer.Context):
    """List Flying ICOs known to the indexer."""
    state: AppState = ctx.obj
    try:
        snapshots = _indexer_client(state.settings).list_offerings()
        render_offering_list(snapshots, state.now, Console())
    except (StakMetricsError, requests.RequestException) as e:
        raise _fail(state, e) from e


@app.command("vaults")
def vaults(ctx: typer.Context):
    """List Stak Vaults known to the indexer."""
    state: AppState = ctx.obj
    try:
        snapshots = _indexer_client(state.settings).list_vaults()
        render_vault_list(snapshots, state.now, Console())
    except (StakMetricsError, requests.RequestException) as e:
        raise _fail(state, e) from e


@app.command("show-config")
def show_config(ctx: typer.Context):
    """Print effective config (with secrets redacted) and exit."""
    state: AppState = ctx.obj
    typer.echo(json.dumps(state.settings.as_safe_dict(), indent=2))


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
