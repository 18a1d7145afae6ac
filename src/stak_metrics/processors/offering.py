from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ..constants import FLYING_TOKEN_DECIMALS, WHOLE_TOKEN_DECIMALS
from ..domain.snapshots import OfferingPosition, OfferingSnapshot
from ..errors import DataInconsistencyError
from ..logger import get_logger
from ..units import decode, parse_timestamp, precise
from ..vesting import (
    VestingWindow,
    position_vesting_fraction,
    vesting_fraction,
    vesting_progress,
)
from .common import Slice, build_breakdown, check_non_negative, require, to_jsonable

logger = get_logger(__name__)


@dataclass(frozen=True)
class BackingAsset:
    address: str
    symbol: str
    total: Decimal | None


@dataclass(frozen=True)
class OfferingPositionMetrics:
    """Per-position split of a Flying ICO investment."""

    position_id: str
    owner: str
    asset_symbol: str
    asset_amount: Decimal | None
    token_amount: Decimal | None
    vesting_amount: Decimal
    locked_fraction: Decimal
    divestible_tokens: Decimal
    vested_tokens: Decimal
    vesting_progress: Decimal
    is_closed: bool


@dataclass
class OfferingMetrics:
    """Derived Flying ICO metrics at a single evaluation time."""

    address: str
    name: str | None
    symbol: str | None
    evaluated_at: int
    window: VestingWindow
    token_cap: Decimal
    tokens_per_usd: Decimal | None
    total_supply: Decimal
    tokens_unlocked: Decimal
    tokens_locked: Decimal
    remaining_cap: Decimal
    locked_fraction: Decimal
    vested_tokens: Decimal
    supply_breakdown: list[Slice]
    distribution_breakdown: list[Slice]
    backing_assets: list[BackingAsset] = field(default_factory=list)
    positions: list[OfferingPositionMetrics] = field(default_factory=list)
    inconsistencies: list[DataInconsistencyError] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return not self.inconsistencies

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to a JSON-safe dictionary."""
        data = to_jsonable(self)
        data["is_consistent"] = self.is_consistent
        return data


def offering_window(snapshot: OfferingSnapshot) -> VestingWindow:
    return VestingWindow.parse(
        require(snapshot, "vesting_start", "offering"),
        require(snapshot, "vesting_end", "offering"),
    )


def compute_position_metrics(
    snapshot: OfferingSnapshot,
    position: OfferingPosition,
    window: VestingWindow,
    now: int,
) -> OfferingPositionMetrics:
    """Split a position's vesting tokens into divestible and vested parts.

    The locked fraction runs from the later of the position's creation and
    the window start, so late investors are not credited earlier progress.
    """
    asset = snapshot.accepted_asset(position.asset)
    asset_decimals = asset.decimals if asset else None

    vesting_amount = decode(
        require(position, "vesting_amount", "position"),
        FLYING_TOKEN_DECIMALS,
        "vesting_amount",
    )
    created_at = parse_timestamp(
        require(position, "created_at", "position"), "created_at"
    )
    locked = position_vesting_fraction(window, created_at, now)

    with precise():
        divestible = vesting_amount * locked
        vested = vesting_amount - divestible

    return OfferingPositionMetrics(
        position_id=position.position_id,
        owner=position.owner,
        asset_symbol=asset.display_symbol if asset else "UNKNOWN",
        asset_amount=(
            decode(position.asset_amount, asset_decimals, "asset_amount")
            if position.asset_amount is not None
            else None
        ),
        token_amount=(
            decode(position.token_amount, FLYING_TOKEN_DECIMALS, "token_amount")
            if position.token_amount is not None
            else None
        ),
        vesting_amount=vesting_amount,
        locked_fraction=locked,
        divestible_tokens=divestible,
        vested_tokens=vested,
        vesting_progress=vesting_progress(locked),
        is_closed=position.is_closed,
    )


def compute_offering_metrics(snapshot: OfferingSnapshot, now: int) -> OfferingMetrics:
    """Derive supply, vesting and per-position metrics for a Flying ICO.

    Args:
        snapshot: Indexer snapshot of the offering
        now: Evaluation time in unix seconds, shared by every derived value

    Returns:
        Offering metrics with any data inconsistencies attached

    Raises:
        MissingFieldError: If a field needed for a metric is absent
        ParseError: If a numeric field is malformed
    """
    window = offering_window(snapshot)
    if not window.is_well_formed:
        logger.warning(
            "Offering %s has a malformed vesting window (%d >= %d)",
            snapshot.address,
            window.start,
            window.end,
        )

    token_cap = decode(
        require(snapshot, "token_cap", "offering"), WHOLE_TOKEN_DECIMALS, "token_cap"
    )
    total_supply = decode(
        require(snapshot, "total_supply", "offering"),
        FLYING_TOKEN_DECIMALS,
        "total_supply",
    )
    tokens_unlocked = decode(
        require(snapshot, "tokens_unlocked", "offering"),
        FLYING_TOKEN_DECIMALS,
        "tokens_unlocked",
    )
    tokens_per_usd = (
        decode(snapshot.tokens_per_usd, WHOLE_TOKEN_DECIMALS, "tokens_per_usd")
        if snapshot.tokens_per_usd is not None
        else None
    )

    locked_fraction = vesting_fraction(window, now)
    with precise():
        tokens_locked = total_supply - tokens_unlocked
        remaining_cap = token_cap - total_supply
        vested_tokens = tokens_locked * (1 - locked_fraction)

    logger.debug(
        "Offering %s: supply=%s unlocked=%s locked_fraction=%s",
        snapshot.address,
        total_supply,
        tokens_unlocked,
        locked_fraction,
    )

    findings: list[DataInconsistencyError] = []
    check_non_negative("remaining_cap", remaining_cap, findings)
    check_non_negative("tokens_locked", tokens_locked, findings)
    for finding in findings:
        logger.warning("Offering %s: %s", snapshot.address, finding)

    backing_assets = [
        BackingAsset(
            address=asset.address,
            symbol=asset.display_symbol,
            total=(
                decode(asset.total_assets, asset.decimals, "total_assets")
                if asset.total_assets is not None
                else None
            ),
        )
        for asset in snapshot.accepted_assets
    ]

    positions = [
        compute_position_metrics(snapshot, position, window, now)
        for position in snapshot.positions
    ]

    return OfferingMetrics(
        address=snapshot.address,
        name=snapshot.name,
        symbol=snapshot.symbol,
        evaluated_at=now,
        window=window,
        token_cap=token_cap,
        tokens_per_usd=tokens_per_usd,
        total_supply=total_supply,
        tokens_unlocked=tokens_unlocked,
        tokens_locked=tokens_locked,
        remaining_cap=remaining_cap,
        locked_fraction=locked_fraction,
        vested_tokens=vested_tokens,
        supply_breakdown=build_breakdown(
            [("Remaining Cap", remaining_cap), ("Total Supply", total_supply)]
        ),
        distribution_breakdown=build_breakdown(
            [
                ("Tokens Put", tokens_locked),
                ("Tokens Purchased", tokens_unlocked),
                ("Tokens Vested", vested_tokens),
            ]
        ),
        backing_assets=backing_assets,
        positions=positions,
        inconsistencies=findings,
    )
