from __future__ import annotations

from decimal import Decimal

import pytest

from stak_metrics.domain import OfferingSnapshot
from stak_metrics.errors import MissingFieldError
from stak_metrics.processors.offering import compute_offering_metrics

ALICE = "0x1111111111111111111111111111111111111111"
BOB = "0x2222222222222222222222222222222222222222"
USDC = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"
E18 = 10**18


def make_record(**overrides):
    record = {
        "id": "0x4444444444444444444444444444444444444444",
        "name": "Flying Token",
        "symbol": "FLY",
        "tokenCap": "1000000",
        "tokensPerUsd": "10",
        "totalSupply": str(5000 * E18),
        "tokensUnlocked": str(1000 * E18),
        "vestingStart": "1000",
        "vestingEnd": "2000",
        "acceptedAssets": [
            {
                "id": "a1",
                "address": USDC,
                "symbol": "USDC",
                "decimals": "6",
                "totalAssets": "250000000",
            },
            {"id": "a2", "address": "0x0000000000000000000000000000000000000000"},
        ],
        "positions": [
            {
                "positionId": "1",
                "user": ALICE,
                "assetAmount": "10000000",
                "tokenAmount": str(100 * E18),
                "vestingAmount": str(100 * E18),
                "asset": USDC.lower(),
                "isClosed": False,
                "createdAt": "900",
            },
            {
                "positionId": "2",
                "user": BOB,
                "assetAmount": str(E18),
                "tokenAmount": str(40 * E18),
                "vestingAmount": str(40 * E18),
                "asset": "0x5555555555555555555555555555555555555555",
                "isClosed": False,
                "createdAt": "1500",
            },
        ],
    }
    record.update(overrides)
    return record


@pytest.fixture
def snapshot():
    return OfferingSnapshot.from_record(make_record())


def test_supply_metrics(snapshot):
    metrics = compute_offering_metrics(snapshot, now=1500)

    assert metrics.token_cap == Decimal(1_000_000)
    assert metrics.tokens_per_usd == Decimal(10)
    assert metrics.total_supply == Decimal(5000)
    assert metrics.tokens_unlocked == Decimal(1000)
    assert metrics.tokens_locked == Decimal(4000)
    assert metrics.remaining_cap == Decimal(995_000)
    assert metrics.is_consistent


@pytest.mark.parametrize(
    "now, vested",
    [
        (1000, Decimal(0)),
        (1500, Decimal(2000)),
        (2500, Decimal(4000)),
    ],
)
def test_global_vested_tokens(snapshot, now, vested):
    metrics = compute_offering_metrics(snapshot, now=now)

    assert metrics.vested_tokens == vested


def test_breakdowns(snapshot):
    metrics = compute_offering_metrics(snapshot, now=1500)

    supply = {s.label: s for s in metrics.supply_breakdown}
    assert supply["Remaining Cap"].percent == Decimal("99.5")
    assert supply["Total Supply"].percent == Decimal("0.5")

    distribution = {s.label: s for s in metrics.distribution_breakdown}
    assert distribution["Tokens Put"].value == Decimal(4000)
    assert distribution["Tokens Purchased"].value == Decimal(1000)
    assert distribution["Tokens Vested"].value == Decimal(2000)
    assert float(distribution["Tokens Put"].percent) == pytest.approx(400 / 7)
    assert sum(s.percent for s in metrics.distribution_breakdown) == pytest.approx(
        Decimal(100)
    )


def test_breakdown_percent_is_zero_for_empty_totals():
    snapshot = OfferingSnapshot.from_record(
        make_record(tokenCap="0", totalSupply="0", tokensUnlocked="0", positions=[])
    )

    metrics = compute_offering_metrics(snapshot, now=1500)

    assert all(s.percent == 0 for s in metrics.supply_breakdown)
    assert all(s.percent == 0 for s in metrics.distribution_breakdown)


def test_backing_assets_use_their_own_decimals(snapshot):
    metrics = compute_offering_metrics(snapshot, now=1500)

    usdc, unknown = metrics.backing_assets
    assert usdc.symbol == "USDC"
    assert usdc.total == Decimal(250)
    assert unknown.symbol == "UNKNOWN"
    assert unknown.total is None


def test_position_created_before_window_vests_with_window(snapshot):
    metrics = compute_offering_metrics(snapshot, now=1500)
    position = metrics.positions[0]

    assert position.asset_symbol == "USDC"
    assert position.asset_amount == Decimal(10)
    assert position.token_amount == Decimal(100)
    assert position.locked_fraction == Decimal("0.5")
    assert position.divestible_tokens == Decimal(50)
    assert position.vested_tokens == Decimal(50)
    assert position.vesting_progress == Decimal(50)


def test_late_position_is_not_credited_earlier_progress(snapshot):
    metrics = compute_offering_metrics(snapshot, now=1750)
    position = metrics.positions[1]

    assert position.locked_fraction == Decimal("0.5")
    assert position.divestible_tokens == Decimal(20)
    assert position.vested_tokens == Decimal(20)
    # Unknown backing asset falls back to 18 decimals.
    assert position.asset_symbol == "UNKNOWN"
    assert position.asset_amount == Decimal(1)


def test_divestible_plus_vested_equals_vesting_amount(snapshot):
    for now in (0, 1000, 1234, 1777, 2000, 3000):
        metrics = compute_offering_metrics(snapshot, now=now)
        for position in metrics.positions:
            assert (
                position.divestible_tokens + position.vested_tokens
                == position.vesting_amount
            )


def test_position_opened_at_window_close_is_fully_unlocked():
    record = make_record()
    record["positions"][0]["createdAt"] = "2000"

    metrics = compute_offering_metrics(OfferingSnapshot.from_record(record), now=2000)

    position = metrics.positions[0]
    assert position.locked_fraction == 0
    assert position.divestible_tokens == 0
    assert position.vested_tokens == Decimal(100)


def test_oversubscribed_offering_reports_negative_remaining_cap():
    snapshot = OfferingSnapshot.from_record(make_record(tokenCap="4000"))

    metrics = compute_offering_metrics(snapshot, now=1500)

    assert metrics.remaining_cap == Decimal(-1000)
    assert [f.field for f in metrics.inconsistencies] == ["remaining_cap"]
    assert metrics.to_dict()["is_consistent"] is False


def test_more_unlocked_than_supply_is_reported():
    snapshot = OfferingSnapshot.from_record(
        make_record(tokensUnlocked=str(6000 * E18))
    )

    metrics = compute_offering_metrics(snapshot, now=1500)

    assert metrics.tokens_locked == Decimal(-1000)
    assert "tokens_locked" in [f.field for f in metrics.inconsistencies]


@pytest.mark.parametrize(
    "key, field",
    [
        ("tokenCap", "token_cap"),
        ("totalSupply", "total_supply"),
        ("tokensUnlocked", "tokens_unlocked"),
        ("vestingEnd", "vesting_end"),
    ],
)
def test_missing_field_is_named(key, field):
    record = make_record()
    del record[key]

    with pytest.raises(MissingFieldError) as exc_info:
        compute_offering_metrics(OfferingSnapshot.from_record(record), now=1500)

    assert exc_info.value.field == field


def test_missing_vesting_amount_is_named():
    record = make_record()
    del record["positions"][1]["vestingAmount"]

    with pytest.raises(MissingFieldError, match="position.vesting_amount"):
        compute_offering_metrics(OfferingSnapshot.from_record(record), now=1500)


def test_tokens_per_usd_is_optional():
    record = make_record()
    del record["tokensPerUsd"]

    metrics = compute_offering_metrics(OfferingSnapshot.from_record(record), now=1500)

    assert metrics.tokens_per_usd is None


def test_same_snapshot_and_time_give_identical_results(snapshot):
    assert (
        compute_offering_metrics(snapshot, now=1600).to_dict()
        == compute_offering_metrics(snapshot, now=1600).to_dict()
    )
