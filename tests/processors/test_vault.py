from __future__ import annotations

from decimal import Decimal

import pytest

from stak_metrics.domain import VaultSnapshot
from stak_metrics.errors import MissingFieldError, ParseError
from stak_metrics.processors.vault import compute_net_assets, compute_vault_metrics
from stak_metrics.units import precise

ALICE = "0x1111111111111111111111111111111111111111"
BOB = "0x2222222222222222222222222222222222222222"


def make_record(**overrides):
    record = {
        "id": "0x3333333333333333333333333333333333333333",
        "name": "Stak USDC",
        "symbol": "sUSDC",
        "decimals": "6",
        "totalAssets": "1000000000",
        "investedAssets": "500000000",
        "totalPerformanceFees": "40000",
        "totalShares": "1000000000",
        "totalSharesUnlocked": "100000000",
        "vestingStart": "1000",
        "vestingEnd": "2000",
        "positions": [
            {
                "positionId": "1",
                "user": ALICE,
                "assetAmount": "600000000",
                "shareAmount": "600000000",
                "sharesUnlocked": "60000000",
                "assetsDivested": "0",
                "isClosed": False,
                "createdAt": "1000",
            },
            {
                "positionId": "2",
                "user": BOB,
                "assetAmount": "500000000",
                "shareAmount": "400000000",
                "sharesUnlocked": "40000000",
                "assetsDivested": "0",
                "isClosed": False,
                "createdAt": "1500",
            },
        ],
    }
    record.update(overrides)
    return record


@pytest.fixture
def snapshot():
    return VaultSnapshot.from_record(make_record())


def test_total_assets_nets_out_performance_fees(snapshot):
    metrics = compute_vault_metrics(snapshot, now=1500)

    assert metrics.idle_assets == Decimal(1000)
    assert metrics.invested_assets == Decimal(500)
    assert metrics.performance_fees == Decimal(4)
    assert metrics.total_assets == Decimal(1496)


def test_net_assets_without_share_fields():
    record = make_record()
    del record["totalShares"]
    del record["positions"]

    net = compute_net_assets(VaultSnapshot.from_record(record))

    assert net.idle == 1000
    assert net.invested == 500
    assert net.performance_fees == 4
    assert net.total == 1496


def test_utilization_rate(snapshot):
    metrics = compute_vault_metrics(snapshot, now=1500)

    assert float(metrics.utilization_rate) == pytest.approx(33.42, abs=0.01)
    with precise():
        assert metrics.utilization_rate == Decimal(500) / Decimal(1496) * 100


def test_performance_fees_keep_their_own_scale():
    """Fees are 4-decimal even when the asset has 18 decimals."""
    snapshot = VaultSnapshot.from_record(
        make_record(
            decimals="18",
            totalAssets="1000000000000000000000",
            investedAssets="0",
            totalPerformanceFees="10000",
            totalShares="1000000000000000000000",
            totalSharesUnlocked="0",
            positions=[],
        )
    )

    metrics = compute_vault_metrics(snapshot, now=1500)

    assert metrics.performance_fees == Decimal(1)
    assert metrics.total_assets == Decimal(999)


def test_price_per_share(snapshot):
    metrics = compute_vault_metrics(snapshot, now=1500)

    assert metrics.total_shares == Decimal(1000)
    assert metrics.price_per_share == Decimal("1.496")


def test_price_per_share_guarded_without_shares():
    snapshot = VaultSnapshot.from_record(
        make_record(totalShares="0", totalSharesUnlocked="0", positions=[])
    )

    metrics = compute_vault_metrics(snapshot, now=1500)

    assert metrics.price_per_share is None


def test_share_split(snapshot):
    metrics = compute_vault_metrics(snapshot, now=1500)

    assert metrics.locked_fraction == Decimal("0.5")
    assert metrics.shares_vested == Decimal(500)
    assert metrics.shares_unlocked == Decimal(100)
    assert metrics.shares_locked == Decimal(400)
    assert metrics.is_consistent
    assert [s.label for s in metrics.share_distribution] == [
        "Locked Shares",
        "Unlocked Shares",
        "Vested Shares",
    ]
    assert [s.percent for s in metrics.share_distribution] == [
        Decimal(40),
        Decimal(10),
        Decimal(50),
    ]


def test_shares_unlocked_falls_back_to_positions():
    record = make_record()
    del record["totalSharesUnlocked"]

    metrics = compute_vault_metrics(VaultSnapshot.from_record(record), now=1500)

    assert metrics.shares_unlocked == Decimal(100)


def test_shares_unlocked_fallback_requires_position_field():
    record = make_record()
    del record["totalSharesUnlocked"]
    del record["positions"][1]["sharesUnlocked"]

    with pytest.raises(MissingFieldError) as exc_info:
        compute_vault_metrics(VaultSnapshot.from_record(record), now=1500)

    assert exc_info.value.field == "shares_unlocked"


def test_negative_locked_shares_are_reported_not_clamped():
    snapshot = VaultSnapshot.from_record(make_record(totalSharesUnlocked="900000000"))

    metrics = compute_vault_metrics(snapshot, now=1500)

    assert metrics.shares_locked == Decimal(-400)
    assert not metrics.is_consistent
    [finding] = metrics.inconsistencies
    assert finding.field == "shares_locked"
    assert finding.value == Decimal(-400)


def test_negative_total_assets_zeroes_utilization():
    snapshot = VaultSnapshot.from_record(
        make_record(totalAssets="0", investedAssets="1000000", totalPerformanceFees="20000")
    )

    metrics = compute_vault_metrics(snapshot, now=1500)

    assert metrics.total_assets == Decimal(-1)
    assert metrics.utilization_rate == 0
    assert "total_assets" in [f.field for f in metrics.inconsistencies]


def test_position_metrics(snapshot):
    metrics = compute_vault_metrics(snapshot, now=1500)
    first, second = metrics.positions

    assert first.locked_fraction == Decimal("0.5")
    assert first.divestible_shares == Decimal(300)
    assert first.vested_shares == Decimal(300)
    assert first.vesting_progress == Decimal(50)
    assert first.current_value == Decimal("897.6")
    assert first.profit_loss == Decimal("297.6")
    assert first.profit_loss_percent == Decimal("49.6")

    # Opened halfway through the window, so nothing has vested yet.
    assert second.locked_fraction == 1
    assert second.divestible_shares == Decimal(400)
    assert second.vested_shares == 0
    assert second.current_value == Decimal("598.4")
    assert second.profit_loss == Decimal("98.4")


def test_position_without_price_has_no_valuation():
    snapshot = VaultSnapshot.from_record(make_record(totalShares="0"))

    metrics = compute_vault_metrics(snapshot, now=1500)

    for position in metrics.positions:
        assert position.current_value is None
        assert position.profit_loss is None
        assert position.profit_loss_percent is None


def test_profit_loss_percent_zero_without_initial_assets():
    record = make_record()
    record["positions"][0]["assetAmount"] = "0"

    metrics = compute_vault_metrics(VaultSnapshot.from_record(record), now=1500)

    assert metrics.positions[0].profit_loss_percent == 0


def test_missing_decimals_default_to_eighteen():
    record = make_record(
        totalAssets="2000000000000000000",
        investedAssets="0",
        totalPerformanceFees="0",
        totalShares="1000000000000000000",
        totalSharesUnlocked="0",
        positions=[],
    )
    del record["decimals"]

    metrics = compute_vault_metrics(VaultSnapshot.from_record(record), now=1500)

    assert metrics.decimals == 18
    assert metrics.price_per_share == Decimal(2)


@pytest.mark.parametrize(
    "key, field",
    [
        ("investedAssets", "invested_assets"),
        ("totalPerformanceFees", "total_performance_fees"),
        ("vestingStart", "vesting_start"),
    ],
)
def test_missing_field_is_named(key, field):
    record = make_record()
    del record[key]

    with pytest.raises(MissingFieldError, match=field) as exc_info:
        compute_vault_metrics(VaultSnapshot.from_record(record), now=1500)

    assert exc_info.value.field == field


def test_missing_position_created_at_is_named():
    record = make_record()
    del record["positions"][0]["createdAt"]

    with pytest.raises(MissingFieldError, match="position.created_at"):
        compute_vault_metrics(VaultSnapshot.from_record(record), now=1500)


def test_malformed_amount_raises_parse_error():
    snapshot = VaultSnapshot.from_record(make_record(totalAssets="12abc"))

    with pytest.raises(ParseError, match="total_assets"):
        compute_vault_metrics(snapshot, now=1500)


def test_same_snapshot_and_time_give_identical_results(snapshot):
    first = compute_vault_metrics(snapshot, now=1700)
    second = compute_vault_metrics(snapshot, now=1700)

    assert first.to_dict() == second.to_dict()


def test_to_dict_is_json_safe(snapshot):
    data = compute_vault_metrics(snapshot, now=1500).to_dict()

    assert Decimal(data["total_assets"]) == 1496
    assert data["window"] == {"start": 1000, "end": 2000}
    assert data["is_consistent"] is True
    assert data["positions"][0]["position_id"] == "1"
