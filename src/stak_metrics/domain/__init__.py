"""Domain models for indexer snapshots."""

from __future__ import annotations

from .snapshots import (
    AcceptedAsset,
    OfferingPosition,
    OfferingSnapshot,
    VaultPosition,
    VaultSnapshot,
    positions_for_owner,
)

__all__ = [
    "AcceptedAsset",
    "OfferingPosition",
    "OfferingSnapshot",
    "VaultPosition",
    "VaultSnapshot",
    "positions_for_owner",
]
