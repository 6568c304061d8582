"""
Action Executor — Applies pause / budget changes on the ad platform,
then patches the local campaign cache to match.
"""

import logging
from typing import Optional
from ads_optimizer.errors import ValidationError
from ads_optimizer.models import OptimizationConfig, PendingAction, PendingActionType
from ads_optimizer.platforms import PlatformRegistry
from ads_optimizer.utils import safe_float

logger = logging.getLogger(__name__)


def boosted_budget(current: float, increase_pct: float, max_daily_budget: float) -> Optional[float]:
    """
    New daily budget after a boost, capped at max_daily_budget.
    None when the budget is unknown or the result would not be strictly higher.
    """
    if not current or current <= 0:
        return None
    new_budget = round(min(current * (1 + increase_pct / 100), max_daily_budget), 2)
    if new_budget <= current:
        return None
    return new_budget


def validate_budget(value) -> float:
    budget = safe_float(value, default=-1.0)
    if isinstance(value, bool) or budget <= 0:
        raise ValidationError("daily_budget is required and must be a positive number")
    return budget


class ActionExecutor:
    def __init__(self, repo, platforms: PlatformRegistry):
        self.repo = repo
        self.platforms = platforms

    async def pause(self, platform_name: str, campaign_id: str) -> bool:
        """Pause on the platform. Returns whether the cache row was updated."""
        platform = await self.platforms.get(platform_name)
        await platform.pause_campaign(campaign_id)
        return await self.repo.update_campaign(platform_name, campaign_id, status=platform.paused_status)

    async def resume(self, platform_name: str, campaign_id: str) -> bool:
        platform = await self.platforms.get(platform_name)
        await platform.resume_campaign(campaign_id)
        return await self.repo.update_campaign(platform_name, campaign_id, status=platform.active_status)

    async def set_budget(self, platform_name: str, campaign_id: str, daily_budget: float) -> bool:
        daily_budget = validate_budget(daily_budget)
        platform = await self.platforms.get(platform_name)
        await platform.set_daily_budget(campaign_id, daily_budget)
        return await self.repo.update_campaign(platform_name, campaign_id, daily_budget=daily_budget)

    async def _current_budget(self, action: PendingAction) -> float:
        """Daily budget from the cache, falling back to the one recorded when the action was queued."""
        campaign = await self.repo.get_campaign(action.platform, action.campaign_id)
        if campaign is not None and safe_float(campaign.daily_budget) > 0:
            return safe_float(campaign.daily_budget)
        return safe_float((action.proposed_changes or {}).get("old_budget"))

    async def execute_pending(self, action: PendingAction, config: Optional[OptimizationConfig]) -> dict:
        """
        Run the mutation stored on a pending action.
        Budget changes are capped at the max_daily_budget in force now, not when queued.
        A boost that would no longer raise the budget is skipped and reported as a keep.
        Returns the changes actually applied.
        """
        changes = action.proposed_changes or {}

        if action.action_type == PendingActionType.PAUSE.value:
            cache_updated = await self.pause(action.platform, action.campaign_id)
            return {"status": "PAUSED", "cache_updated": cache_updated}

        if action.action_type in (PendingActionType.BOOST.value, PendingActionType.ADJUST_BUDGET.value):
            new_budget = validate_budget(changes.get("new_budget"))
            if config is not None and config.max_daily_budget and new_budget > config.max_daily_budget:
                logger.info(
                    f"Capping approved budget for {action.campaign_id}: "
                    f"{new_budget} -> {config.max_daily_budget}"
                )
                new_budget = config.max_daily_budget
            if action.action_type == PendingActionType.BOOST.value:
                current = await self._current_budget(action)
                if current > 0 and new_budget <= current:
                    logger.info(
                        f"Approved boost for {action.campaign_id} would not raise the budget "
                        f"({current} -> {new_budget}), not applied"
                    )
                    return {
                        "outcome": "keep",
                        "old_budget": current,
                        "new_budget": current,
                        "reason": (
                            f"Current budget R${current:.2f} is not below the approved "
                            f"R${new_budget:.2f}, boost not applied"
                        ),
                    }
            cache_updated = await self.set_budget(action.platform, action.campaign_id, new_budget)
            return {
                "old_budget": changes.get("old_budget"),
                "new_budget": new_budget,
                "cache_updated": cache_updated,
            }

        raise ValidationError(f"Unsupported action type: {action.action_type}")
