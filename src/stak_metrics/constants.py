"""Protocol constants and indexer endpoints."""

from typing import Optional, TypedDict

DEFAULT_DECIMALS = 18

# Flying ICO tokens are always minted with 18 decimals.
FLYING_TOKEN_DECIMALS = 18

# tokenCap and tokensPerUsd are stored as whole tokens.
WHOLE_TOKEN_DECIMALS = 0

# Stak Vault performance fees accrue at a fixed 4-decimal scale,
# independent of the vault asset's decimals.
PERFORMANCE_FEE_DECIMALS = 4

SECONDS_PER_DAY = 24 * 60 * 60

DEFAULT_CHART_SAMPLES = 51
DEFAULT_CHART_PADDING_DAYS = 30


class NetworkEndpoints(TypedDict):
    indexer: Optional[str]
    explorer: str


SEPOLIA_ENDPOINTS: NetworkEndpoints = {
    "indexer": "https://api.studio.thegraph.com/query/69146/stak-protocol/version/latest",
    "explorer": "https://sepolia.etherscan.io",
}

MAINNET_ENDPOINTS: NetworkEndpoints = {
    "indexer": None,
    "explorer": "https://etherscan.io",
}

BASE_ENDPOINTS: NetworkEndpoints = {
    "indexer": None,
    "explorer": "https://basescan.org",
}
