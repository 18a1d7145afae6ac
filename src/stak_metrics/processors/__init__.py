from __future__ import annotations

from .common import Slice
from .offering import (
    OfferingMetrics,
    OfferingPositionMetrics,
    compute_offering_metrics,
    offering_window,
)
from .vault import (
    NetAssets,
    VaultMetrics,
    VaultPositionMetrics,
    compute_net_assets,
    compute_vault_metrics,
    vault_window,
)

__all__ = [
    "Slice",
    "OfferingMetrics",
    "OfferingPositionMetrics",
    "compute_offering_metrics",
    "offering_window",
    "NetAssets",
    "VaultMetrics",
    "VaultPositionMetrics",
    "compute_net_assets",
    "compute_vault_metrics",
    "vault_window",
]
