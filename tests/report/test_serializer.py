from __future__ import annotations

import json
from decimal import Decimal

from stak_metrics.domain import VaultSnapshot
from stak_metrics.processors import compute_vault_metrics
from stak_metrics.report import build_document, dumps_document
from stak_metrics.vesting import VestingPoint


def _metrics():
    snapshot = VaultSnapshot.from_record(
        {
            "id": "0xvault",
            "decimals": "18",
            "totalAssets": str(10**18),
            "investedAssets": "0",
            "totalPerformanceFees": "0",
            "totalShares": str(10**18),
            "totalSharesUnlocked": str(2 * 10**18),
            "vestingStart": "1000",
            "vestingEnd": "2000",
        }
    )
    return compute_vault_metrics(snapshot, now=1500)


def test_build_document_shapes_metrics_and_schedule():
    schedule = [
        VestingPoint(timestamp=1000, vested_amount=Decimal(0)),
        VestingPoint(timestamp=2000, vested_amount=Decimal("1.5")),
    ]

    document = build_document(_metrics(), schedule)

    assert document["kind"] == "vault"
    assert document["vesting_schedule"] == [
        {"timestamp": 1000, "vested_amount": "0"},
        {"timestamp": 2000, "vested_amount": "1.5"},
    ]


def test_inconsistencies_are_serialized():
    document = json.loads(dumps_document(_metrics(), []))

    metrics = document["metrics"]
    assert metrics["is_consistent"] is False
    [finding] = metrics["inconsistencies"]
    assert finding["field"] == "shares_locked"
    assert Decimal(finding["value"]) == Decimal("-1.5")
