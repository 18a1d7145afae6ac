"""Read-only snapshots of indexer records.

Fields keep the indexer's raw strings (``None`` when the key is absent).
Decoding happens in the processors so a missing value surfaces as a
``MissingFieldError`` at the metric that needs it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Protocol, Sequence, TypeVar


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _first_present(record: Mapping[str, Any], *keys: str) -> Any:
    """Value of the first key that is present and not null."""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def _bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


@dataclass(frozen=True)
class AcceptedAsset:
    """Asset accepted by a Flying ICO, with its aggregate deposits."""

    address: str
    symbol: str | None = None
    decimals: str | None = None
    total_assets: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "AcceptedAsset":
        return cls(
            address=str(record.get("address") or record.get("id") or ""),
            symbol=_str_or_none(record.get("symbol")),
            decimals=_str_or_none(record.get("decimals")),
            total_assets=_str_or_none(record.get("totalAssets")),
        )

    @property
    def display_symbol(self) -> str:
        return self.symbol or "UNKNOWN"


@dataclass(frozen=True)
class OfferingPosition:
    """Investor position in a Flying ICO."""

    position_id: str
    owner: str
    asset: str | None = None
    asset_amount: str | None = None
    token_amount: str | None = None
    vesting_amount: str | None = None
    is_closed: bool = False
    created_at: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "OfferingPosition":
        return cls(
            position_id=_str_or_none(_first_present(record, "positionId", "id")) or "",
            owner=str(record.get("user") or ""),
            asset=_str_or_none(record.get("asset")),
            asset_amount=_str_or_none(record.get("assetAmount")),
            token_amount=_str_or_none(record.get("tokenAmount")),
            vesting_amount=_str_or_none(record.get("vestingAmount")),
            is_closed=_bool(record.get("isClosed", False)),
            created_at=_str_or_none(record.get("createdAt")),
        )


@dataclass(frozen=True)
class OfferingSnapshot:
    """Flying ICO aggregate as returned by the indexer."""

    address: str
    name: str | None = None
    symbol: str | None = None
    token_cap: str | None = None
    tokens_per_usd: str | None = None
    total_supply: str | None = None
    tokens_unlocked: str | None = None
    vesting_start: str | None = None
    vesting_end: str | None = None
    accepted_assets: tuple[AcceptedAsset, ...] = field(default_factory=tuple)
    positions: tuple[OfferingPosition, ...] = field(default_factory=tuple)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "OfferingSnapshot":
        return cls(
            address=str(record.get("id") or ""),
            name=_str_or_none(record.get("name")),
            symbol=_str_or_none(record.get("symbol")),
            token_cap=_str_or_none(record.get("tokenCap")),
            tokens_per_usd=_str_or_none(record.get("tokensPerUsd")),
            total_supply=_str_or_none(record.get("totalSupply")),
            tokens_unlocked=_str_or_none(record.get("tokensUnlocked")),
            vesting_start=_str_or_none(record.get("vestingStart")),
            vesting_end=_str_or_none(record.get("vestingEnd")),
            accepted_assets=tuple(
                AcceptedAsset.from_record(item)
                for item in record.get("acceptedAssets") or []
            ),
            positions=tuple(
                OfferingPosition.from_record(item)
                for item in record.get("positions") or []
            ),
        )

    def accepted_asset(self, address: str | None) -> AcceptedAsset | None:
        if not address:
            return None
        wanted = address.lower()
        for asset in self.accepted_assets:
            if asset.address.lower() == wanted:
                return asset
        return None


@dataclass(frozen=True)
class VaultPosition:
    """Depositor position in a Stak Vault."""

    position_id: str
    owner: str
    asset_amount: str | None = None
    share_amount: str | None = None
    shares_unlocked: str | None = None
    assets_divested: str | None = None
    is_closed: bool = False
    created_at: str | None = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "VaultPosition":
        return cls(
            position_id=_str_or_none(_first_present(record, "positionId", "id")) or "",
            owner=str(record.get("user") or ""),
            asset_amount=_str_or_none(record.get("assetAmount")),
            share_amount=_str_or_none(record.get("shareAmount")),
            shares_unlocked=_str_or_none(record.get("sharesUnlocked")),
            assets_divested=_str_or_none(record.get("assetsDivested")),
            is_closed=_bool(record.get("isClosed", False)),
            created_at=_str_or_none(record.get("createdAt")),
        )


@dataclass(frozen=True)
class VaultSnapshot:
    """Stak Vault aggregate as returned by the indexer."""

    address: str
    name: str | None = None
    symbol: str | None = None
    decimals: str | None = None
    total_assets: str | None = None
    invested_assets: str | None = None
    total_performance_fees: str | None = None
    total_shares: str | None = None
    total_shares_unlocked: str | None = None
    vesting_start: str | None = None
    vesting_end: str | None = None
    positions: tuple[VaultPosition, ...] = field(default_factory=tuple)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "VaultSnapshot":
        return cls(
            address=str(record.get("id") or ""),
            name=_str_or_none(record.get("name")),
            symbol=_str_or_none(record.get("symbol")),
            decimals=_str_or_none(record.get("decimals")),
            total_assets=_str_or_none(record.get("totalAssets")),
            invested_assets=_str_or_none(record.get("investedAssets")),
            total_performance_fees=_str_or_none(record.get("totalPerformanceFees")),
            total_shares=_str_or_none(
                _first_present(record, "totalShares", "totalSupply")
            ),
            total_shares_unlocked=_str_or_none(record.get("totalSharesUnlocked")),
            vesting_start=_str_or_none(record.get("vestingStart")),
            vesting_end=_str_or_none(record.get("vestingEnd")),
            positions=tuple(
                VaultPosition.from_record(item)
                for item in record.get("positions") or []
            ),
        )


class HasOwner(Protocol):
    owner: str


PositionT = TypeVar("PositionT", bound=HasOwner)


def positions_for_owner(
    positions: Iterable[PositionT], owner: str | None
) -> Sequence[PositionT]:
    """Filter positions to a single owner, comparing addresses case-insensitively."""
    if owner is None:
        return list(positions)
    wanted = owner.lower()
    return [position for position in positions if position.owner.lower() == wanted]
