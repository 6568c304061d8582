"""
Ads Repository — All database access for the optimizer, approvals and audit trail.
Services depend on this class instead of an AsyncSession so they can be tested with a fake.
"""

import logging
import uuid
from typing import Any, Optional
from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession
from ads_optimizer.models import (
    AgentAction, GoogleAdsCampaign, MetaCampaign, OptimizationConfig,
    OptimizerRun, PendingAction, PendingStatus, Platform, RunStatus,
)
from ads_optimizer.platforms import active_status_for
from ads_optimizer.utils import utcnow

logger = logging.getLogger(__name__)

CAMPAIGN_MODELS = {
    Platform.META.value: MetaCampaign,
    Platform.GOOGLE.value: GoogleAdsCampaign,
}

# Key for pg_try_advisory_lock; any constant shared by all optimizer runs
OPTIMIZER_LOCK_KEY = 7_340_021


class AdsRepository:
    def __init__(self, db: AsyncSession):
        self.db = db
        self._lock_conn: Optional[AsyncConnection] = None

    async def commit(self) -> None:
        await self.db.commit()

    # ── Optimization Config ──────────────────────────────────────────

    async def get_config(self) -> Optional[OptimizationConfig]:
        result = await self.db.execute(
            select(OptimizationConfig).order_by(OptimizationConfig.created_at).limit(1)
        )
        return result.scalar_one_or_none()

    async def update_config(self, config: OptimizationConfig, changes: dict[str, Any]) -> OptimizationConfig:
        for key, value in changes.items():
            setattr(config, key, value)
        config.updated_at = utcnow()
        await self.db.flush()
        return config

    # ── Campaign Cache ───────────────────────────────────────────────

    async def list_active_campaigns(self, platform: str) -> list:
        model = CAMPAIGN_MODELS[platform]
        result = await self.db.execute(
            select(model)
            .where(model.status == active_status_for(platform))
            .order_by(model.campaign_id)
        )
        return list(result.scalars().all())

    async def get_campaign(self, platform: str, campaign_id: str):
        model = CAMPAIGN_MODELS[platform]
        result = await self.db.execute(select(model).where(model.campaign_id == campaign_id))
        return result.scalar_one_or_none()

    async def update_campaign(self, platform: str, campaign_id: str, **fields) -> bool:
        """Patch cache fields after a successful mutation. Returns False when no row matched."""
        model = CAMPAIGN_MODELS[platform]
        result = await self.db.execute(
            update(model)
            .where(model.campaign_id == campaign_id)
            .values(**fields, updated_at=utcnow())
        )
        return (result.rowcount or 0) > 0

    # ── Pending Actions ──────────────────────────────────────────────

    async def find_open_pending(self, campaign_id: str, platform: str, action_type: str) -> Optional[PendingAction]:
        result = await self.db.execute(
            select(PendingAction).where(
                PendingAction.campaign_id == campaign_id,
                PendingAction.platform == platform,
                PendingAction.action_type == action_type,
                PendingAction.status == PendingStatus.PENDING.value,
            )
        )
        return result.scalar_one_or_none()

    async def add_pending_action(self, **fields) -> Optional[PendingAction]:
        """
        Insert a pending action inside a savepoint.
        Returns None when the partial unique index reports an open duplicate.
        """
        action = PendingAction(status=PendingStatus.PENDING.value, **fields)
        try:
            async with self.db.begin_nested():
                self.db.add(action)
                await self.db.flush()
        except IntegrityError:
            logger.info(
                f"Pending {fields.get('action_type')} already open for "
                f"{fields.get('platform')}:{fields.get('campaign_id')}"
            )
            return None
        return action

    async def list_pending_actions(self, limit: int = 100) -> list[PendingAction]:
        result = await self.db.execute(
            select(PendingAction)
            .where(PendingAction.status == PendingStatus.PENDING.value)
            .order_by(PendingAction.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_open_pending_action(self, action_id: uuid.UUID) -> Optional[PendingAction]:
        """Lock and return the row if it is still pending."""
        result = await self.db.execute(
            select(PendingAction)
            .where(
                PendingAction.id == action_id,
                PendingAction.status == PendingStatus.PENDING.value,
            )
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def resolve_pending_action(self, action: PendingAction, status: str) -> PendingAction:
        action.status = status
        action.resolved_at = utcnow()
        await self.db.flush()
        return action

    # ── Audit Trail ──────────────────────────────────────────────────

    async def add_agent_action(self, **fields) -> AgentAction:
        entry = AgentAction(**fields)
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def list_agent_actions(
        self,
        source: Optional[str] = None,
        platform: Optional[str] = None,
        action_type: Optional[str] = None,
        limit: int = 100,
    ) -> list[AgentAction]:
        query = select(AgentAction).order_by(AgentAction.created_at.desc()).limit(limit)
        if source:
            query = query.where(AgentAction.source == source)
        if platform:
            query = query.where(AgentAction.platform == platform)
        if action_type:
            query = query.where(AgentAction.action_type == action_type)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ── Optimizer Runs ───────────────────────────────────────────────

    async def try_lock_optimizer(self) -> bool:
        """
        Session-level advisory lock held on its own connection, so it survives
        the per-campaign commits of the run. Release with unlock_optimizer().
        """
        conn = await self.db.bind.connect()
        try:
            result = await conn.execute(
                text("SELECT pg_try_advisory_lock(:key)"), {"key": OPTIMIZER_LOCK_KEY}
            )
            acquired = bool(result.scalar())
            await conn.commit()
        except Exception:
            await conn.close()
            raise
        if not acquired:
            await conn.close()
            return False
        self._lock_conn = conn
        return True

    async def unlock_optimizer(self) -> None:
        conn, self._lock_conn = self._lock_conn, None
        if conn is None:
            return
        try:
            await conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": OPTIMIZER_LOCK_KEY})
            await conn.commit()
        finally:
            await conn.close()

    async def start_run(self, platform: str, trigger: str) -> OptimizerRun:
        run = OptimizerRun(platform=platform, trigger=trigger, status=RunStatus.RUNNING.value)
        self.db.add(run)
        await self.db.flush()
        return run

    async def finish_run(self, run: OptimizerRun, status: str, **fields) -> OptimizerRun:
        run.status = status
        for key, value in fields.items():
            setattr(run, key, value)
        run.completed_at = utcnow()
        await self.db.flush()
        return run

    async def list_runs(self, limit: int = 20) -> list[OptimizerRun]:
        result = await self.db.execute(
            select(OptimizerRun).order_by(OptimizerRun.started_at.desc()).limit(limit)
        )
        return list(result.scalars().all())
