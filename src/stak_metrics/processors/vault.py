from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ..constants import PERFORMANCE_FEE_DECIMALS
from ..domain.snapshots import VaultPosition, VaultSnapshot
from ..errors import DataInconsistencyError
from ..logger import get_logger
from ..units import decode, parse_decimals, parse_timestamp, precise
from ..vesting import (
    VestingWindow,
    position_vesting_fraction,
    vesting_fraction,
    vesting_progress,
)
from .common import (
    Slice,
    build_breakdown,
    check_non_negative,
    percent_of,
    require,
    to_jsonable,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class VaultPositionMetrics:
    """Per-position share split and valuation in a Stak Vault."""

    position_id: str
    owner: str
    share_amount: Decimal
    asset_amount: Decimal | None
    shares_unlocked: Decimal | None
    assets_divested: Decimal | None
    locked_fraction: Decimal
    divestible_shares: Decimal
    vested_shares: Decimal
    vesting_progress: Decimal
    current_value: Decimal | None
    profit_loss: Decimal | None
    profit_loss_percent: Decimal | None
    is_closed: bool


@dataclass
class VaultMetrics:
    """Derived Stak Vault metrics at a single evaluation time."""

    address: str
    name: str | None
    symbol: str | None
    evaluated_at: int
    decimals: int
    window: VestingWindow
    idle_assets: Decimal
    invested_assets: Decimal
    performance_fees: Decimal
    total_assets: Decimal
    utilization_rate: Decimal
    total_shares: Decimal
    price_per_share: Decimal | None
    locked_fraction: Decimal
    shares_vested: Decimal
    shares_unlocked: Decimal
    shares_locked: Decimal
    share_distribution: list[Slice]
    positions: list[VaultPositionMetrics] = field(default_factory=list)
    inconsistencies: list[DataInconsistencyError] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.inconsistencies

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to a JSON-safe dictionary."""
        data = to_jsonable(self)
        data["is_consistent"] = self.is_consistent
        return data


@dataclass(frozen=True)
class NetAssets:
    """Vault assets after netting out accrued performance fees."""

    idle: Decimal
    invested: Decimal
    performance_fees: Decimal
    total: Decimal


def vault_window(snapshot: VaultSnapshot) -> VestingWindow:
    return VestingWindow.parse(
        require(snapshot, "vesting_start", "vault"),
        require(snapshot, "vesting_end", "vault"),
    )


def compute_net_assets(snapshot: VaultSnapshot) -> NetAssets:
    """Idle plus invested assets minus performance fees.

    Fees are decoded at their own fixed 4-decimal scale, independent of the
    vault asset decimals.
    """
    decimals = parse_decimals(snapshot.decimals)
    idle = decode(require(snapshot, "total_assets", "vault"), decimals, "total_assets")
    invested = decode(
        require(snapshot, "invested_assets", "vault"), decimals, "invested_assets"
    )
    fees = decode(
        require(snapshot, "total_performance_fees", "vault"),
        PERFORMANCE_FEE_DECIMALS,
        "total_performance_fees",
    )
    with precise():
        total = idle + invested - fees
    return NetAssets(idle=idle, invested=invested, performance_fees=fees, total=total)


def _optional_amount(raw: str | None, decimals: int, name: str) -> Decimal | None:
    if raw is None:
        return None
    return decode(raw, decimals, name)


def _shares_unlocked(snapshot: VaultSnapshot, decimals: int) -> Decimal:
    if snapshot.total_shares_unlocked is not None:
        return decode(snapshot.total_shares_unlocked, decimals, "total_shares_unlocked")
    with precise():
        return sum(
            (
                decode(
                    require(position, "shares_unlocked", "position"),
                    decimals,
                    "shares_unlocked",
                )
                for position in snapshot.positions
            ),
            Decimal(0),
        )


def compute_position_metrics(
    position: VaultPosition,
    window: VestingWindow,
    decimals: int,
    price_per_share: Decimal | None,
    now: int,
) -> VaultPositionMetrics:
    share_amount = decode(
        require(position, "share_amount", "position"), decimals, "share_amount"
    )
    created_at = parse_timestamp(
        require(position, "created_at", "position"), "created_at"
    )
    asset_amount = _optional_amount(position.asset_amount, decimals, "asset_amount")
    locked = position_vesting_fraction(window, created_at, now)

    current_value: Decimal | None = None
    profit_loss: Decimal | None = None
    profit_loss_percent: Decimal | None = None
    with precise():
        divestible = share_amount * locked
        vested = share_amount - divestible
        if price_per_share is not None:
            current_value = share_amount * price_per_share
            if asset_amount is not None:
                profit_loss = current_value - asset_amount
                profit_loss_percent = percent_of(profit_loss, asset_amount)

    return VaultPositionMetrics(
        position_id=position.position_id,
        owner=position.owner,
        share_amount=share_amount,
        asset_amount=asset_amount,
        shares_unlocked=_optional_amount(
            position.shares_unlocked, decimals, "shares_unlocked"
        ),
        assets_divested=_optional_amount(
            position.assets_divested, decimals, "assets_divested"
        ),
        locked_fraction=locked,
        divestible_shares=divestible,
        vested_shares=vested,
        vesting_progress=vesting_progress(locked),
        current_value=current_value,
        profit_loss=profit_loss,
        profit_loss_percent=profit_loss_percent,
        is_closed=position.is_closed,
    )


def compute_vault_metrics(snapshot: VaultSnapshot, now: int) -> VaultMetrics:
    """Derive asset, share and per-position metrics for a Stak Vault.

    Performance fees are decoded at their own fixed scale and netted out of
    the vault's idle plus invested assets before any ratio is taken.

    Args:
        snapshot: Indexer snapshot of the vault
        now: Evaluation time in unix seconds, shared by every derived value

    Returns:
        Vault metrics with any data inconsistencies attached

    Raises:
        MissingFieldError: If a field needed for a metric is absent
        ParseError: If a numeric field is malformed
    """
    decimals = parse_decimals(snapshot.decimals)
    window = vault_window(snapshot)
    if not window.is_well_formed:
        logger.warning(
            "Vault %s has a malformed vesting window (%d >= %d)",
            snapshot.address,
            window.start,
            window.end,
        )

    net_assets = compute_net_assets(snapshot)
    total_assets = net_assets.total
    total_shares = decode(
        require(snapshot, "total_shares", "vault"), decimals, "total_shares"
    )
    shares_unlocked = _shares_unlocked(snapshot, decimals)

    locked_fraction = vesting_fraction(window, now)
    with precise():
        utilization_rate = percent_of(net_assets.invested, total_assets)
        price_per_share = total_assets / total_shares if total_shares != 0 else None
        shares_vested = total_shares * (1 - locked_fraction)
        shares_locked = total_shares - shares_unlocked - shares_vested

    logger.debug(
        "Vault %s: total_assets=%s utilization=%s pps=%s",
        snapshot.address,
        total_assets,
        utilization_rate,
        price_per_share,
    )

    findings: list[DataInconsistencyError] = []
    check_non_negative("total_assets", total_assets, findings)
    check_non_negative("shares_locked", shares_locked, findings)
    for finding in findings:
        logger.warning("Vault %s: %s", snapshot.address, finding)

    positions = [
        compute_position_metrics(position, window, decimals, price_per_share, now)
        for position in snapshot.positions
    ]

    return VaultMetrics(
        address=snapshot.address,
        name=snapshot.name,
        symbol=snapshot.symbol,
        evaluated_at=now,
        decimals=decimals,
        window=window,
        idle_assets=net_assets.idle,
        invested_assets=net_assets.invested,
        performance_fees=net_assets.performance_fees,
        total_assets=total_assets,
        utilization_rate=utilization_rate,
        total_shares=total_shares,
        price_per_share=price_per_share,
        locked_fraction=locked_fraction,
        shares_vested=shares_vested,
        shares_unlocked=shares_unlocked,
        shares_locked=shares_locked,
        share_distribution=build_breakdown(
            [
                ("Locked Shares", shares_locked),
                ("Unlocked Shares", shares_unlocked),
                ("Vested Shares", shares_vested),
            ]
        ),
        positions=positions,
        inconsistencies=findings,
    )
