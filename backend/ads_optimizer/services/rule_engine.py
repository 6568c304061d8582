"""
Rule Engine — Classifies one campaign as pause / boost / keep / skip.

Rules are evaluated in order and the first match wins:
  1. Not enough spend or impressions          -> skip
  2. CPA above target * max_cpa_multiplier    -> pause
  3. No conversions after 3x target CPA spend -> pause
  4. CPA below 70% of target, >= 3 conversions -> boost
  5. Anything else                            -> keep

Pure functions only: no I/O, no state between calls.
"""

from dataclasses import dataclass, field
from typing import Callable
from ads_optimizer.models import DecisionAction, OptimizationConfig
from ads_optimizer.services.normalizer import NormalizedCampaign

ZERO_CONVERSION_SPEND_MULTIPLIER = 3
BOOST_CPA_RATIO = 0.7
BOOST_MIN_CONVERSIONS = 3


@dataclass
class Decision:
    campaign_id: str
    campaign_name: str
    platform: str
    action: str
    reason: str
    metrics: dict = field(default_factory=dict)

    def summary(self) -> dict:
        return {
            "campaign": self.campaign_name,
            "platform": self.platform,
            "action": self.action,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class Rule:
    name: str
    action: str
    matches: Callable[[NormalizedCampaign, OptimizationConfig], bool]
    reason: Callable[[NormalizedCampaign, OptimizationConfig], str]


def _money(value: float) -> str:
    return f"R${value:.2f}"


def _insufficient_data(c: NormalizedCampaign, cfg: OptimizationConfig) -> bool:
    return c.spend < cfg.min_spend_to_evaluate or c.impressions < cfg.min_impressions_to_evaluate


def _runaway_cpa(c: NormalizedCampaign, cfg: OptimizationConfig) -> bool:
    return c.cost_per_result > 0 and c.cost_per_result > cfg.target_cpa * cfg.max_cpa_multiplier


def _no_conversions(c: NormalizedCampaign, cfg: OptimizationConfig) -> bool:
    return c.conversions == 0 and c.spend > cfg.target_cpa * ZERO_CONVERSION_SPEND_MULTIPLIER


def _high_performer(c: NormalizedCampaign, cfg: OptimizationConfig) -> bool:
    return (
        c.cost_per_result > 0
        and c.cost_per_result < cfg.target_cpa * BOOST_CPA_RATIO
        and c.conversions >= BOOST_MIN_CONVERSIONS
    )


RULES: tuple[Rule, ...] = (
    Rule(
        name="insufficient_data",
        action=DecisionAction.SKIP.value,
        matches=_insufficient_data,
        reason=lambda c, cfg: "Insufficient data to evaluate",
    ),
    Rule(
        name="runaway_cpa",
        action=DecisionAction.PAUSE.value,
        matches=_runaway_cpa,
        reason=lambda c, cfg: (
            f"CPA ({_money(c.cost_per_result)}) exceeds {cfg.max_cpa_multiplier:g}x "
            f"the target ({_money(cfg.target_cpa)})"
        ),
    ),
    Rule(
        name="no_conversions",
        action=DecisionAction.PAUSE.value,
        matches=_no_conversions,
        reason=lambda c, cfg: f"Spent {_money(c.spend)} with no conversions",
    ),
    Rule(
        name="high_performer",
        action=DecisionAction.BOOST.value,
        matches=_high_performer,
        reason=lambda c, cfg: f"Excellent CPA ({_money(c.cost_per_result)}), below 70% of target",
    ),
)


def _keep_reason(c: NormalizedCampaign) -> str:
    cpa = _money(c.cost_per_result) if c.cost_per_result > 0 else "N/A"
    return f"Performance within acceptable range (CPA: {cpa})"


def decision_metrics(c: NormalizedCampaign) -> dict:
    return {
        "spend": c.spend,
        "conversions": c.conversions,
        "cpa": c.cost_per_result,
        "ctr": c.ctr,
    }


def evaluate_campaign(campaign: NormalizedCampaign, config: OptimizationConfig) -> Decision:
    """Apply RULES to one campaign using a config snapshot taken at the start of the run."""
    for rule in RULES:
        if rule.matches(campaign, config):
            action, reason = rule.action, rule.reason(campaign, config)
            break
    else:
        action, reason = DecisionAction.KEEP.value, _keep_reason(campaign)

    return Decision(
        campaign_id=campaign.campaign_id,
        campaign_name=campaign.name,
        platform=campaign.platform,
        action=action,
        reason=reason,
        metrics=decision_metrics(campaign),
    )
