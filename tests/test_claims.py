"""Claim aggregation across individually emitted YieldClaimed events."""

from sinag_admin.reconciliation.claims import aggregate_claims
from sinag_admin.reconciliation.events import YieldClaimed


def claim(campaign, round_number, amount):
    return YieldClaimed(campaign_id=campaign, round_number=round_number, amount=amount)


def test_claims_grouped_per_campaign_round():
    claims = aggregate_claims([
        claim("X", 1, 100),
        claim("X", 1, 100),
        claim("X", 1, 200),
        claim("X", 2, 10),
    ])

    assert claims.as_dict() == {("X", 1): (400, 3), ("X", 2): (10, 1)}


def test_missing_key_yields_zero_totals():
    claims = aggregate_claims([claim("X", 1, 5)])

    stats = claims.get("Y", 1)
    assert (stats.total_claimed, stats.claimed_shares) == (0, 0)
    assert claims.get("X", 3).claimed_shares == 0


def test_sums_past_float_precision_stay_exact():
    amount = 2 ** 60 + 1
    claims = aggregate_claims([claim("X", 1, amount), claim("X", 1, amount)])

    assert claims.get("X", 1).total_claimed == 2 * amount


def test_empty_stream():
    claims = aggregate_claims([])

    assert len(claims) == 0
    assert claims.as_dict() == {}
