"""Rich console dashboards for offering and vault metrics."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence

from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..constants import FLYING_TOKEN_DECIMALS, WHOLE_TOKEN_DECIMALS
from ..domain import OfferingSnapshot, VaultSnapshot
from ..errors import DataInconsistencyError
from ..processors import (
    OfferingMetrics,
    Slice,
    VaultMetrics,
    compute_net_assets,
    offering_window,
    vault_window,
)
from ..units import decode, format_amount
from ..vesting import VestingPoint, VestingWindow, vesting_fraction, vesting_progress


def _format_date(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")


def _format_percent(value: Decimal | None) -> str:
    if value is None:
        return "—"
    return f"{format_amount(value)}%"


def _truncate_address(address: str) -> str:
    """Truncate address for display."""
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"


def _key_value_panel(rows: list[tuple[str, str]], title: str, style: str) -> Panel:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="dim")
    table.add_column("Value", style=style)
    for key, value in rows:
        table.add_row(key, value)
    return Panel(table, title=f"[bold]{title}[/]", border_style=style)


def _breakdown_panel(slices: Sequence[Slice], title: str) -> Panel:
    table = Table(expand=True)
    table.add_column("Segment", style="cyan")
    table.add_column("Amount", justify="right")
    table.add_column("Share", justify="right", style="yellow")
    for item in slices:
        style = "red" if item.value < 0 else None
        table.add_row(
            item.label,
            format_amount(item.value),
            _format_percent(item.percent),
            style=style,
        )
    return Panel(table, title=f"[bold]{title}[/]", border_style="cyan")


def _schedule_panel(schedule: Sequence[VestingPoint], stride: int) -> Panel:
    table = Table(expand=True)
    table.add_column("Date", style="dim")
    table.add_column("Timestamp", justify="right", style="dim")
    table.add_column("Vested", justify="right", style="green")
    last = len(schedule) - 1
    for index, point in enumerate(schedule):
        if index % stride and index != last:
            continue
        table.add_row(
            _format_date(point.timestamp),
            str(point.timestamp),
            format_amount(point.vested_amount),
        )
    return Panel(table, title="[bold]Vesting Schedule[/]", border_style="green")


def _inconsistency_panel(findings: Sequence[DataInconsistencyError]) -> Panel:
    lines = Text()
    for finding in findings:
        lines.append(f"{finding.field}: ", style="bold red")
        lines.append(f"{finding}\n")
    return Panel(lines, title="[bold red]Data Inconsistencies[/]", border_style="red")


def render_offering(
    metrics: OfferingMetrics,
    schedule: Sequence[VestingPoint],
    console: Console | None = None,
    schedule_stride: int = 5,
) -> None:
    """Print the Flying ICO dashboard."""
    console = console or Console()

    info_panel = _key_value_panel(
        [
            ("Address", _truncate_address(metrics.address)),
            ("Name", metrics.name or "—"),
            ("Symbol", metrics.symbol or "—"),
            (
                "Vesting",
                f"{_format_date(metrics.window.start)} - {_format_date(metrics.window.end)}",
            ),
        ],
        "Offering",
        "blue",
    )
    summary_panel = _key_value_panel(
        [
            ("Token Cap", format_amount(metrics.token_cap, 0)),
            ("Total Supply", format_amount(metrics.total_supply)),
            ("Tokens Per USD", format_amount(metrics.tokens_per_usd, 0)),
            ("Remaining Cap", format_amount(metrics.remaining_cap)),
            ("Vested", _format_percent(vesting_progress(metrics.locked_fraction))),
            ("Positions", str(len(metrics.positions))),
        ],
        "Summary",
        "green",
    )

    assets_table = Table(expand=True)
    assets_table.add_column("Asset", style="cyan")
    assets_table.add_column("Address", style="dim")
    assets_table.add_column("Total", justify="right")
    for asset in metrics.backing_assets:
        assets_table.add_row(
            asset.symbol,
            _truncate_address(asset.address),
            format_amount(asset.total, 6),
        )

    positions_table = Table(expand=True)
    positions_table.add_column("#", style="cyan")
    positions_table.add_column("Owner", style="dim")
    positions_table.add_column("Invested", justify="right")
    positions_table.add_column("Tokens", justify="right")
    positions_table.add_column("Divestible", justify="right", style="yellow")
    positions_table.add_column("Vested", justify="right", style="green")
    positions_table.add_column("Progress", justify="right")
    for position in metrics.positions:
        positions_table.add_row(
            position.position_id,
            _truncate_address(position.owner),
            f"{format_amount(position.asset_amount)} {position.asset_symbol}",
            format_amount(position.vesting_amount),
            format_amount(position.divestible_tokens),
            format_amount(position.vested_tokens),
            _format_percent(position.vesting_progress),
            style="dim" if position.is_closed else None,
        )

    parts: list[object] = [
        Columns([info_panel, summary_panel], equal=True, expand=True),
        Columns(
            [
                _breakdown_panel(metrics.supply_breakdown, "Supply Distribution"),
                _breakdown_panel(metrics.distribution_breakdown, "Token Distribution"),
            ],
            equal=True,
            expand=True,
        ),
        Panel(assets_table, title="[bold]Backing Assets[/]", border_style="cyan"),
        Panel(positions_table, title="[bold]Positions[/]", border_style="magenta"),
        _schedule_panel(schedule, schedule_stride),
    ]
    if metrics.inconsistencies:
        parts.append(_inconsistency_panel(metrics.inconsistencies))

    console.print()
    console.print(
        Panel(
            Group(*parts),
            title="[bold white]Flying ICO[/]",
            border_style="white",
            padding=(1, 2),
        )
    )
    console.print()


def render_vault(
    metrics: VaultMetrics,
    schedule: Sequence[VestingPoint],
    console: Console | None = None,
    schedule_stride: int = 5,
) -> None:
    """Print the Stak Vault dashboard."""
    console = console or Console()

    info_panel = _key_value_panel(
        [
            ("Address", _truncate_address(metrics.address)),
            ("Name", metrics.name or "—"),
            ("Symbol", metrics.symbol or "—"),
            ("Decimals", str(metrics.decimals)),
            (
                "Vesting",
                f"{_format_date(metrics.window.start)} - {_format_date(metrics.window.end)}",
            ),
        ],
        "Vault",
        "blue",
    )
    summary_panel = _key_value_panel(
        [
            ("Idle Assets", format_amount(metrics.idle_assets)),
            ("Invested Assets", format_amount(metrics.invested_assets)),
            ("Performance Fees", format_amount(metrics.performance_fees, 4)),
            ("Total Assets", format_amount(metrics.total_assets)),
            ("Utilization", _format_percent(metrics.utilization_rate)),
            ("Total Shares", format_amount(metrics.total_shares)),
            ("Price / Share", format_amount(metrics.price_per_share, 6)),
        ],
        "Summary",
        "green",
    )

    positions_table = Table(expand=True)
    positions_table.add_column("#", style="cyan")
    positions_table.add_column("Owner", style="dim")
    positions_table.add_column("Shares", justify="right")
    positions_table.add_column("Divestible", justify="right", style="yellow")
    positions_table.add_column("Vested", justify="right", style="green")
    positions_table.add_column("Value", justify="right")
    positions_table.add_column("P/L", justify="right")
    for position in metrics.positions:
        pnl_style = None
        if position.profit_loss is not None:
            pnl_style = "green" if position.profit_loss >= 0 else "red"
        pnl = Text(
            f"{format_amount(position.profit_loss)} ({_format_percent(position.profit_loss_percent)})",
            style=pnl_style or "",
        )
        positions_table.add_row(
            position.position_id,
            _truncate_address(position.owner),
            format_amount(position.share_amount),
            format_amount(position.divestible_shares),
            format_amount(position.vested_shares),
            format_amount(position.current_value),
            pnl,
            style="dim" if position.is_closed else None,
        )

    parts: list[object] = [
        Columns([info_panel, summary_panel], equal=True, expand=True),
        _breakdown_panel(metrics.share_distribution, "Share Distribution"),
        Panel(positions_table, title="[bold]Positions[/]", border_style="magenta"),
        _schedule_panel(schedule, schedule_stride),
    ]
    if metrics.inconsistencies:
        parts.append(_inconsistency_panel(metrics.inconsistencies))

    console.print()
    console.print(
        Panel(
            Group(*parts),
            title="[bold white]Stak Vault[/]",
            border_style="white",
            padding=(1, 2),
        )
    )
    console.print()


def _window_cells(window: VestingWindow, now: int) -> tuple[str, str]:
    period = f"{_format_date(window.start)} - {_format_date(window.end)}"
    return period, _format_percent(vesting_progress(vesting_fraction(window, now)))


def _optional_decode(raw: str | None, decimals: int) -> Decimal | None:
    return None if raw is None else decode(raw, decimals)


def render_offering_list(
    snapshots: Sequence[OfferingSnapshot],
    now: int,
    console: Console | None = None,
) -> None:
    """Print a one-row-per-offering overview table."""
    console = console or Console()

    table = Table(title="Flying ICOs", expand=True)
    table.add_column("Address", style="cyan")
    table.add_column("Name")
    table.add_column("Symbol", style="dim")
    table.add_column("Token Cap", justify="right")
    table.add_column("Total Supply", justify="right")
    table.add_column("Vesting", style="dim")
    table.add_column("Vested", justify="right", style="green")
    for snapshot in snapshots:
        period, progress = _window_cells(offering_window(snapshot), now)
        table.add_row(
            _truncate_address(snapshot.address),
            snapshot.name or "—",
            snapshot.symbol or "—",
            format_amount(_optional_decode(snapshot.token_cap, WHOLE_TOKEN_DECIMALS), 0),
            format_amount(_optional_decode(snapshot.total_supply, FLYING_TOKEN_DECIMALS)),
            period,
            progress,
        )

    console.print(table)


def render_vault_list(
    snapshots: Sequence[VaultSnapshot],
    now: int,
    console: Console | None = None,
) -> None:
    """Print a one-row-per-vault overview table."""
    console = console or Console()

    table = Table(title="Stak Vaults", expand=True)
    table.add_column("Address", style="cyan")
    table.add_column("Name")
    table.add_column("Symbol", style="dim")
    table.add_column("Total Assets", justify="right")
    table.add_column("Invested", justify="right")
    table.add_column("Vesting", style="dim")
    table.add_column("Vested", justify="right", style="green")
    for snapshot in snapshots:
        net_assets = compute_net_assets(snapshot)
        period, progress = _window_cells(vault_window(snapshot), now)
        table.add_row(
            _truncate_address(snapshot.address),
            snapshot.name or "—",
            snapshot.symbol or "—",
            format_amount(net_assets.total),
            format_amount(net_assets.invested),
            period,
            progress,
        )

    console.print(table)
