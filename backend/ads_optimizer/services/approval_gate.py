"""
Approval Gate — Decides whether a pause/boost decision executes now, waits for
a human, or is only logged. Owns the pending action lifecycle:

    pending -> approved   (mutation executed)
    pending -> rejected   (no platform call)

Both transitions happen once; a resolved row can never be resolved again.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Optional
from ads_optimizer.errors import NotFoundError, OptimizerError, PlatformAPIError
from ads_optimizer.models import DecisionAction, OptimizationConfig, PendingAction, PendingStatus, Platform
from ads_optimizer.services.action_executor import ActionExecutor, boosted_budget
from ads_optimizer.services.audit_logger import AuditLogger
from ads_optimizer.services.rule_engine import Decision
from ads_optimizer.utils import safe_float

logger = logging.getLogger(__name__)

OPTIMIZER_SOURCE = "optimizer"
APPROVAL_SOURCE = "human_approval"

NOT_FOUND_MESSAGE = "Pending action not found or already resolved"

PLATFORM_LABELS = {
    Platform.META.value: "Meta",
    Platform.GOOGLE.value: "Google Ads",
}


@dataclass
class GateOutcome:
    """How one decision was handled. `counted_as` is None when nothing should be tallied."""
    counted_as: Optional[str]
    pending: bool = False
    error: Optional[str] = None


class ApprovalGate:
    def __init__(self, repo, executor: ActionExecutor, audit: AuditLogger):
        self.repo = repo
        self.executor = executor
        self.audit = audit

    async def _log(self, decision: Decision, action: str, details: dict, status: str = "success"):
        return await self.audit.record(
            action_type=f"optimizer_{action}",
            source=OPTIMIZER_SOURCE,
            campaign_id=decision.campaign_id,
            campaign_name=decision.campaign_name,
            platform=decision.platform,
            details={"reason": decision.reason, "metrics": decision.metrics, **details},
            status=status,
        )

    # ── Optimizer Routing ────────────────────────────────────────────

    async def route(self, decision: Decision, config: OptimizationConfig) -> GateOutcome:
        action = decision.action

        if action in (DecisionAction.KEEP.value, DecisionAction.SKIP.value):
            await self._log(decision, action, {})
            return GateOutcome(counted_as=action)

        enabled = config.auto_pause_enabled if action == DecisionAction.PAUSE.value else config.auto_boost_enabled
        if not enabled:
            await self._log(decision, action, {"auto_action_disabled": True})
            return GateOutcome(counted_as=action)

        if action == DecisionAction.PAUSE.value:
            proposed = {"status": "PAUSED"}
        else:
            campaign = await self.repo.get_campaign(decision.platform, decision.campaign_id)
            current = safe_float(getattr(campaign, "daily_budget", None)) if campaign else 0.0
            if current <= 0:
                await self._log(decision, DecisionAction.KEEP.value, {
                    "reason": f"{decision.reason} (current budget unknown, boost not applied)",
                })
                return GateOutcome(counted_as=DecisionAction.KEEP.value)
            new_budget = boosted_budget(current, config.budget_increase_pct, config.max_daily_budget)
            if new_budget is None:
                await self._log(decision, DecisionAction.KEEP.value, {
                    "reason": f"{decision.reason} (budget already at maximum: R${current:.2f})",
                })
                return GateOutcome(counted_as=DecisionAction.KEEP.value)
            proposed = {"old_budget": current, "new_budget": new_budget}

        if config.approval_mode_enabled:
            return await self._queue(decision, proposed)
        return await self._execute(decision, proposed)

    async def _queue(self, decision: Decision, proposed: dict) -> GateOutcome:
        existing = await self.repo.find_open_pending(decision.campaign_id, decision.platform, decision.action)
        created = None
        if existing is None:
            created = await self.repo.add_pending_action(
                campaign_id=decision.campaign_id,
                campaign_name=decision.campaign_name,
                platform=decision.platform,
                action_type=decision.action,
                ai_reasoning=decision.reason,
                current_metrics=decision.metrics,
                proposed_changes=proposed,
            )
        if created is None:
            await self._log(decision, decision.action, {
                **proposed, "pending_approval": True, "already_pending": True,
                "pending_action_id": str(existing.id) if existing else None,
            })
            return GateOutcome(counted_as=decision.action)

        await self._log(decision, decision.action, {
            **proposed, "pending_approval": True, "pending_action_id": str(created.id),
        })
        return GateOutcome(counted_as=decision.action, pending=True)

    async def _execute(self, decision: Decision, proposed: dict) -> GateOutcome:
        label = PLATFORM_LABELS.get(decision.platform, decision.platform)
        try:
            if decision.action == DecisionAction.PAUSE.value:
                cache_updated = await self.executor.pause(decision.platform, decision.campaign_id)
            else:
                cache_updated = await self.executor.set_budget(
                    decision.platform, decision.campaign_id, proposed["new_budget"]
                )
        except OptimizerError as e:
            message = f"{label} API {decision.action} failed for {decision.campaign_id}: {e}"
            logger.error(message)
            await self._log(decision, decision.action, {**proposed, "error": str(e)}, status="error")
            return GateOutcome(counted_as=None, error=message)

        error = None
        if not cache_updated:
            error = f"Cache update found no row for {decision.action} {decision.campaign_id}"
        await self._log(decision, decision.action, {**proposed, "cache_updated": cache_updated})
        return GateOutcome(counted_as=decision.action, error=error)

    # ── Human Approval ───────────────────────────────────────────────

    async def list_pending(self, limit: int = 100) -> list[PendingAction]:
        return await self.repo.list_pending_actions(limit=limit)

    async def _open_action(self, action_id: uuid.UUID) -> PendingAction:
        action = await self.repo.get_open_pending_action(action_id)
        if action is None:
            raise NotFoundError(NOT_FOUND_MESSAGE)
        return action

    def _approval_details(self, action: PendingAction) -> dict:
        return {
            "pending_action_id": str(action.id),
            "ai_reasoning": action.ai_reasoning,
            "proposed_changes": action.proposed_changes,
        }

    async def approve(self, action_id: uuid.UUID, config: Optional[OptimizationConfig]) -> PendingAction:
        """
        Execute a queued action and mark it approved.
        On platform failure the row stays pending and an error audit entry is written.
        """
        action = await self._open_action(action_id)
        audit_type = f"approve_{action.action_type}"

        try:
            applied = await self.executor.execute_pending(action, config)
        except PlatformAPIError as e:
            label = PLATFORM_LABELS.get(action.platform, action.platform)
            await self.audit.record(
                action_type=audit_type,
                source=APPROVAL_SOURCE,
                campaign_id=action.campaign_id,
                campaign_name=action.campaign_name,
                platform=action.platform,
                details={**self._approval_details(action), "error": str(e)},
                status="error",
            )
            raise PlatformAPIError(action.platform, f"Failed to execute action on {label}: {e}") from e

        await self.repo.resolve_pending_action(action, PendingStatus.APPROVED.value)
        await self.audit.record(
            action_type=audit_type,
            source=APPROVAL_SOURCE,
            campaign_id=action.campaign_id,
            campaign_name=action.campaign_name,
            platform=action.platform,
            details={**self._approval_details(action), "applied": applied},
        )
        return action

    async def reject(self, action_id: uuid.UUID) -> PendingAction:
        action = await self._open_action(action_id)
        await self.repo.resolve_pending_action(action, PendingStatus.REJECTED.value)
        await self.audit.record(
            action_type=f"reject_{action.action_type}",
            source=APPROVAL_SOURCE,
            campaign_id=action.campaign_id,
            campaign_name=action.campaign_name,
            platform=action.platform,
            details=self._approval_details(action),
        )
        return action
