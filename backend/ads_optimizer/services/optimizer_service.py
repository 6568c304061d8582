"""
Optimizer Service — One optimizer run over the active campaigns of one or both platforms.

Steps:
  1. Load the config snapshot (fatal if missing)
  2. Take the run lock so two runs never mutate the same campaigns at once
  3. Normalize and evaluate every active campaign
  4. Route each decision through the approval gate, committing per campaign
  5. Persist run counters and return the summary
"""

import logging
import time
from typing import Optional
from ads_optimizer.errors import ConfigurationError, RunInProgressError, ValidationError
from ads_optimizer.models import OptimizationConfig, Platform, RunStatus
from ads_optimizer.platforms import PlatformRegistry
from ads_optimizer.services.action_executor import ActionExecutor
from ads_optimizer.services.approval_gate import ApprovalGate
from ads_optimizer.services.audit_logger import AuditLogger
from ads_optimizer.services.normalizer import normalize_campaign
from ads_optimizer.services.rule_engine import evaluate_campaign

logger = logging.getLogger(__name__)

ALL_PLATFORMS = [Platform.META.value, Platform.GOOGLE.value]
COUNTERS = ("paused", "boosted", "kept", "skipped")
COUNTER_FOR_ACTION = {"pause": "paused", "boost": "boosted", "keep": "kept", "skip": "skipped"}


class OptimizerService:
    def __init__(self, repo, platforms: PlatformRegistry):
        self.repo = repo
        self.platforms = platforms
        self.audit = AuditLogger(repo)
        self.executor = ActionExecutor(repo, platforms)
        self.gate = ApprovalGate(repo, self.executor, self.audit)

    @staticmethod
    def _empty_result(platform_label: str, message: str, approval_mode: Optional[bool] = None) -> dict:
        result = {
            "success": True,
            "message": message,
            "platform": platform_label,
            "evaluated": 0,
            **{name: 0 for name in COUNTERS},
            "pending_approval": 0,
            "decisions": [],
        }
        if approval_mode is not None:
            result["approval_mode"] = approval_mode
        return result

    async def run(self, platform: Optional[str] = None, trigger: str = "manual") -> dict:
        started = time.monotonic()

        if platform and platform not in ALL_PLATFORMS:
            raise ValidationError(f"Invalid platform: {platform!r}. Use 'meta' or 'google'.")
        targets = [platform] if platform else list(ALL_PLATFORMS)
        platform_label = platform or "all"

        config = await self.repo.get_config()
        if config is None:
            raise ConfigurationError("Optimization config not found")

        if not config.optimizer_enabled:
            logger.info("Optimizer disabled, nothing to do")
            return self._empty_result(platform_label, "Optimizer is disabled")

        if not await self.repo.try_lock_optimizer():
            raise RunInProgressError("Optimizer run already in progress")
        try:
            return await self._run_locked(config, targets, platform_label, trigger, started)
        finally:
            await self.repo.unlock_optimizer()

    async def _run_locked(
        self, config: OptimizationConfig, targets: list[str], platform_label: str, trigger: str, started: float
    ) -> dict:
        campaigns = []
        for name in targets:
            rows = await self.repo.list_active_campaigns(name)
            campaigns.extend(normalize_campaign(row, name) for row in rows)

        approval_mode = bool(config.approval_mode_enabled)
        if not campaigns:
            logger.info(f"No active campaigns for {platform_label}")
            return self._empty_result(platform_label, "No active campaigns found", approval_mode)

        # Missing credentials must fail the run before anything is evaluated
        if not approval_mode and (config.auto_pause_enabled or config.auto_boost_enabled):
            for name in sorted({c.platform for c in campaigns}):
                await self.platforms.get(name)

        run = await self.repo.start_run(platform_label, trigger)
        await self.repo.commit()
        logger.info(f"Optimizer run {run.id} started: {len(campaigns)} campaigns ({platform_label}, {trigger})")

        counts = {name: 0 for name in COUNTERS}
        pending = 0
        errors: list[str] = []
        decisions = []

        for campaign in campaigns:
            decision = evaluate_campaign(campaign, config)
            decisions.append(decision)
            outcome = await self.gate.route(decision, config)
            if outcome.counted_as:
                counts[COUNTER_FOR_ACTION[outcome.counted_as]] += 1
            if outcome.pending:
                pending += 1
            if outcome.error:
                errors.append(outcome.error)
            # Each campaign is committed on its own; earlier platform changes stay recorded
            await self.repo.commit()

        elapsed_ms = int((time.monotonic() - started) * 1000)
        await self.repo.finish_run(
            run,
            RunStatus.COMPLETED.value,
            evaluated=len(decisions),
            pending_approval=pending,
            approval_mode=approval_mode,
            errors=errors or None,
            elapsed_ms=elapsed_ms,
            **counts,
        )
        logger.info(
            f"Optimizer run {run.id} done in {elapsed_ms}ms: "
            f"{counts} pending={pending} errors={len(errors)}"
        )

        result = {
            "success": True,
            "run_id": str(run.id),
            "platform": platform_label,
            "evaluated": len(decisions),
            **counts,
            "pending_approval": pending,
            "approval_mode": approval_mode,
            "elapsed_ms": elapsed_ms,
        }
        if errors:
            result["errors"] = errors
        result["decisions"] = [d.summary() for d in decisions]
        return result
