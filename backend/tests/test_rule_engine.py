"""
Tests for campaign rule evaluation: rule priority, thresholds and reasons.
"""

import pytest
from ads_optimizer.services.normalizer import NormalizedCampaign
from ads_optimizer.services.rule_engine import RULES, evaluate_campaign
from tests.helpers import make_config


def campaign(**overrides) -> NormalizedCampaign:
    values = dict(
        campaign_id="c1",
        name="Campaign 1",
        status="ACTIVE",
        spend=100.0,
        cost_per_result=50.0,
        ctr=1.5,
        impressions=10000,
        conversions=2,
        daily_budget=100.0,
        platform="meta",
    )
    values.update(overrides)
    return NormalizedCampaign(**values)


def test_runaway_cpa_pauses():
    """CPA 200 against a 50 x 3 = 150 threshold is paused."""
    decision = evaluate_campaign(
        campaign(spend=300, impressions=10000, cost_per_result=200, conversions=5), make_config()
    )
    assert decision.action == "pause"
    assert "R$200.00" in decision.reason
    assert "3x" in decision.reason


def test_insufficient_data_skips_regardless_of_cpa():
    decision = evaluate_campaign(
        campaign(spend=20, impressions=50, cost_per_result=500, conversions=0), make_config()
    )
    assert decision.action == "skip"
    assert decision.reason == "Insufficient data to evaluate"


@pytest.mark.parametrize("spend,impressions", [(49.99, 10000), (500, 999)])
def test_either_minimum_triggers_skip(spend, impressions):
    decision = evaluate_campaign(
        campaign(spend=spend, impressions=impressions, cost_per_result=10, conversions=10), make_config()
    )
    assert decision.action == "skip"


def test_zero_conversions_after_meaningful_spend_pauses():
    decision = evaluate_campaign(
        campaign(spend=180, conversions=0, cost_per_result=0), make_config()
    )
    assert decision.action == "pause"
    assert decision.reason == "Spent R$180.00 with no conversions"


def test_high_performer_boosts():
    decision = evaluate_campaign(
        campaign(spend=120, cost_per_result=30, conversions=4), make_config()
    )
    assert decision.action == "boost"
    assert "below 70% of target" in decision.reason


def test_high_performer_needs_three_conversions():
    decision = evaluate_campaign(
        campaign(spend=120, cost_per_result=30, conversions=2), make_config()
    )
    assert decision.action == "keep"


def test_runaway_cpa_wins_over_zero_conversions():
    """Rule order: the CPA rule is checked before the zero-conversion rule."""
    decision = evaluate_campaign(
        campaign(spend=1000, cost_per_result=400, conversions=0), make_config()
    )
    assert decision.action == "pause"
    assert decision.reason.startswith("CPA")


def test_keep_reason_shows_cpa():
    decision = evaluate_campaign(campaign(cost_per_result=45.5, conversions=2), make_config())
    assert decision.action == "keep"
    assert decision.reason == "Performance within acceptable range (CPA: R$45.50)"


def test_zero_conversions_below_spend_threshold_keeps_with_na():
    """Spend between the evaluation minimum and 3x target with no conversions is kept."""
    decision = evaluate_campaign(
        campaign(spend=120, cost_per_result=0, conversions=0), make_config()
    )
    assert decision.action == "keep"
    assert decision.reason == "Performance within acceptable range (CPA: N/A)"


def test_metrics_snapshot():
    decision = evaluate_campaign(
        campaign(spend=300, cost_per_result=200, conversions=5, ctr=0.8), make_config()
    )
    assert decision.metrics == {"spend": 300, "conversions": 5, "cpa": 200, "ctr": 0.8}
    assert decision.summary() == {
        "campaign": "Campaign 1",
        "platform": "meta",
        "action": "pause",
        "reason": decision.reason,
    }


def test_evaluation_is_idempotent():
    config = make_config()
    c = campaign(spend=300, cost_per_result=200, conversions=5)
    assert evaluate_campaign(c, config) == evaluate_campaign(c, config)


def test_rule_order_is_fixed():
    assert [r.name for r in RULES] == [
        "insufficient_data", "runaway_cpa", "no_conversions", "high_performer",
    ]


def test_custom_thresholds_are_respected():
    config = make_config(target_cpa=100, max_cpa_multiplier=2)
    assert evaluate_campaign(campaign(cost_per_result=180, conversions=3), config).action == "keep"
    assert evaluate_campaign(campaign(cost_per_result=201, conversions=3), config).action == "pause"
