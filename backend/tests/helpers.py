"""
Test doubles: model factories, an in-memory repository and recording fake platforms.
"""

import uuid
from ads_optimizer.errors import PlatformAPIError, ValidationError
from ads_optimizer.models import (
    AgentAction, GoogleAdsCampaign, MetaCampaign, OptimizationConfig,
    OptimizerRun, PendingAction, PendingStatus,
)
from ads_optimizer.platforms import AdPlatform
from ads_optimizer.utils import utcnow


def make_config(**overrides) -> OptimizationConfig:
    values = dict(
        id=uuid.uuid4(),
        optimizer_enabled=True,
        auto_pause_enabled=True,
        auto_boost_enabled=True,
        approval_mode_enabled=False,
        target_cpa=50.0,
        max_cpa_multiplier=3.0,
        min_spend_to_evaluate=50.0,
        min_impressions_to_evaluate=1000,
        budget_increase_pct=20.0,
        max_daily_budget=200.0,
        min_daily_budget=10.0,
        min_roas=None,
        updated_at=utcnow(),
    )
    values.update(overrides)
    return OptimizationConfig(**values)


def meta_campaign(campaign_id: str, **overrides) -> MetaCampaign:
    values = dict(
        id=uuid.uuid4(),
        campaign_id=campaign_id,
        name=f"Meta {campaign_id}",
        status="ACTIVE",
        daily_budget=100.0,
        impressions=10000,
        clicks=200,
        spend=100.0,
        ctr=2.0,
        conversions=2,
        cost_per_result=50.0,
    )
    values.update(overrides)
    return MetaCampaign(**values)


def google_campaign(campaign_id: str, **overrides) -> GoogleAdsCampaign:
    values = dict(
        id=uuid.uuid4(),
        campaign_id=campaign_id,
        name=f"Google {campaign_id}",
        status="ENABLED",
        daily_budget=100.0,
        impressions=10000,
        clicks=200,
        cost=100.0,
        ctr=2.0,
        conversions=2.0,
        cost_per_conversion=50.0,
    )
    values.update(overrides)
    return GoogleAdsCampaign(**values)


class FakeRepository:
    """Implements the AdsRepository interface over plain lists and dicts."""

    def __init__(self, config=None, campaigns=None, lock_available: bool = True):
        self.config = config
        self.campaigns = {"meta": {}, "google": {}}
        for c in campaigns or []:
            platform = "google" if isinstance(c, GoogleAdsCampaign) else "meta"
            self.campaigns[platform][c.campaign_id] = c
        self.pending: list[PendingAction] = []
        self.actions: list[AgentAction] = []
        self.runs: list[OptimizerRun] = []
        self.lock_available = lock_available
        self.locked = False
        self.commits = 0

    async def commit(self):
        self.commits += 1

    async def get_config(self):
        return self.config

    async def update_config(self, config, changes):
        for key, value in changes.items():
            setattr(config, key, value)
        config.updated_at = utcnow()
        return config

    async def list_active_campaigns(self, platform):
        active = "ENABLED" if platform == "google" else "ACTIVE"
        return [c for c in self.campaigns[platform].values() if c.status == active]

    async def get_campaign(self, platform, campaign_id):
        return self.campaigns[platform].get(campaign_id)

    async def update_campaign(self, platform, campaign_id, **fields):
        row = self.campaigns[platform].get(campaign_id)
        if row is None:
            return False
        for key, value in fields.items():
            setattr(row, key, value)
        return True

    async def find_open_pending(self, campaign_id, platform, action_type):
        for p in self.pending:
            if (p.campaign_id, p.platform, p.action_type, p.status) == (
                campaign_id, platform, action_type, PendingStatus.PENDING.value
            ):
                return p
        return None

    async def add_pending_action(self, **fields):
        if await self.find_open_pending(fields["campaign_id"], fields["platform"], fields["action_type"]):
            return None
        action = PendingAction(
            id=uuid.uuid4(), status=PendingStatus.PENDING.value, created_at=utcnow(), **fields
        )
        self.pending.append(action)
        return action

    async def list_pending_actions(self, limit=100):
        return [p for p in self.pending if p.status == PendingStatus.PENDING.value][:limit]

    async def get_open_pending_action(self, action_id):
        for p in self.pending:
            if p.id == action_id and p.status == PendingStatus.PENDING.value:
                return p
        return None

    async def resolve_pending_action(self, action, status):
        action.status = status
        action.resolved_at = utcnow()
        return action

    async def add_agent_action(self, **fields):
        entry = AgentAction(id=uuid.uuid4(), created_at=utcnow(), **fields)
        self.actions.append(entry)
        return entry

    async def list_agent_actions(self, source=None, platform=None, action_type=None, limit=100):
        entries = [
            a for a in reversed(self.actions)
            if (not source or a.source == source)
            and (not platform or a.platform == platform)
            and (not action_type or a.action_type == action_type)
        ]
        return entries[:limit]

    async def try_lock_optimizer(self):
        self.locked = self.lock_available
        return self.lock_available

    async def unlock_optimizer(self):
        self.locked = False

    async def start_run(self, platform, trigger):
        run = OptimizerRun(id=uuid.uuid4(), platform=platform, trigger=trigger, status="running", started_at=utcnow())
        self.runs.append(run)
        return run

    async def finish_run(self, run, status, **fields):
        run.status = status
        for key, value in fields.items():
            setattr(run, key, value)
        run.completed_at = utcnow()
        return run

    async def list_runs(self, limit=20):
        return list(reversed(self.runs))[:limit]

    # test helpers
    def actions_of(self, action_type):
        return [a for a in self.actions if a.action_type == action_type]


class FakePlatform(AdPlatform):
    """
    Records every call. Raises PlatformAPIError for campaign ids in `failing`
    and ValidationError for ids in `invalid`.
    """

    def __init__(self, name="meta", active_status="ACTIVE", failing=(), invalid=()):
        self.name = name
        self.active_status = active_status
        self.failing = set(failing)
        self.invalid = set(invalid)
        self.calls: list[tuple] = []

    def _check(self, campaign_id):
        if campaign_id in self.invalid:
            raise ValidationError(f"Invalid campaign id: {campaign_id!r}")
        if campaign_id in self.failing:
            raise PlatformAPIError(self.name, f"campaign {campaign_id} rejected")

    async def pause_campaign(self, campaign_id):
        self._check(campaign_id)
        self.calls.append(("pause", campaign_id))

    async def resume_campaign(self, campaign_id):
        self._check(campaign_id)
        self.calls.append(("resume", campaign_id))

    async def set_daily_budget(self, campaign_id, amount):
        self._check(campaign_id)
        self.calls.append(("budget", campaign_id, amount))

    async def resolve_budget_resource(self, campaign_id):
        return campaign_id

