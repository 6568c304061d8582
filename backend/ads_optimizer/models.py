"""
ABRAhub Ads Optimizer — Database Models
Campaign caches (written by the sync jobs), optimizer configuration,
approval queue, audit trail, and platform credentials.
"""

import uuid
import enum
from datetime import datetime, timezone
from sqlalchemy import (
    String, Text, Float, Integer, BigInteger, Boolean, DateTime,
    JSON, Index, text,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID
from ads_optimizer.database import Base


def _utcnow() -> datetime:
    """Naive UTC now — matches DB columns (TIMESTAMP WITHOUT TIME ZONE)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ══════════════════════════════════════════════════════════════════════
#  ENUMS
# ══════════════════════════════════════════════════════════════════════

class Platform(str, enum.Enum):
    META = "meta"
    GOOGLE = "google"


class DecisionAction(str, enum.Enum):
    PAUSE = "pause"
    BOOST = "boost"
    KEEP = "keep"
    SKIP = "skip"


class PendingActionType(str, enum.Enum):
    PAUSE = "pause"
    BOOST = "boost"
    ADJUST_BUDGET = "adjust_budget"


class PendingStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RunStatus(str, enum.Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# ══════════════════════════════════════════════════════════════════════
#  CAMPAIGN CACHES: Full overwrite by the sync jobs
# ══════════════════════════════════════════════════════════════════════

class MetaCampaign(Base):
    """Meta Ads campaign mirrored by the Meta sync job (last 30 days of insights)."""
    __tablename__ = "ads_campaigns"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    campaign_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(512), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=True)  # ACTIVE / PAUSED / ARCHIVED
    objective: Mapped[str] = mapped_column(String(100), nullable=True)
    daily_budget: Mapped[float] = mapped_column(Float, nullable=True)  # local currency, not cents
    lifetime_budget: Mapped[float] = mapped_column(Float, nullable=True)
    impressions: Mapped[int] = mapped_column(BigInteger, nullable=True, default=0)
    clicks: Mapped[int] = mapped_column(Integer, nullable=True, default=0)
    reach: Mapped[int] = mapped_column(BigInteger, nullable=True, default=0)
    spend: Mapped[float] = mapped_column(Float, nullable=True, default=0.0)
    cpc: Mapped[float] = mapped_column(Float, nullable=True)
    cpm: Mapped[float] = mapped_column(Float, nullable=True)
    ctr: Mapped[float] = mapped_column(Float, nullable=True)
    conversions: Mapped[int] = mapped_column(Integer, nullable=True, default=0)
    cost_per_result: Mapped[float] = mapped_column(Float, nullable=True, default=0.0)
    synced_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_ads_campaigns_status", "status"),
    )


class GoogleAdsCampaign(Base):
    """Google Ads campaign mirrored by the Google Ads sync job (micros already converted)."""
    __tablename__ = "google_ads_campaigns"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    campaign_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(512), nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=True)  # ENABLED / PAUSED
    channel_type: Mapped[str] = mapped_column(String(100), nullable=True)
    daily_budget: Mapped[float] = mapped_column(Float, nullable=True)
    impressions: Mapped[int] = mapped_column(BigInteger, nullable=True, default=0)
    clicks: Mapped[int] = mapped_column(Integer, nullable=True, default=0)
    cost: Mapped[float] = mapped_column(Float, nullable=True, default=0.0)
    ctr: Mapped[float] = mapped_column(Float, nullable=True)  # percent
    conversions: Mapped[float] = mapped_column(Float, nullable=True, default=0.0)
    cost_per_conversion: Mapped[float] = mapped_column(Float, nullable=True, default=0.0)
    conversion_rate: Mapped[float] = mapped_column(Float, nullable=True)
    synced_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_google_ads_campaigns_status", "status"),
    )


# ══════════════════════════════════════════════════════════════════════
#  OPTIMIZATION CONFIG: Singleton row of thresholds and feature flags
# ══════════════════════════════════════════════════════════════════════

class OptimizationConfig(Base):
    """Thresholds and feature flags read at the start of every optimizer run."""
    __tablename__ = "ads_optimization_config"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    optimizer_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    auto_pause_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    auto_boost_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    approval_mode_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    target_cpa: Mapped[float] = mapped_column(Float, nullable=False, default=50.0)
    max_cpa_multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=3.0)
    min_spend_to_evaluate: Mapped[float] = mapped_column(Float, nullable=False, default=50.0)
    min_impressions_to_evaluate: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    budget_increase_pct: Mapped[float] = mapped_column(Float, nullable=False, default=20.0)
    max_daily_budget: Mapped[float] = mapped_column(Float, nullable=False, default=200.0)
    min_daily_budget: Mapped[float] = mapped_column(Float, nullable=True, default=10.0)
    min_roas: Mapped[float] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)


# ══════════════════════════════════════════════════════════════════════
#  PENDING ACTIONS: Human-in-the-loop approval queue
# ══════════════════════════════════════════════════════════════════════

class PendingAction(Base):
    """
    Optimizer decision waiting for human sign-off.
    Resolved exactly once: pending → approved | rejected.
    """
    __tablename__ = "ads_pending_actions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    campaign_id: Mapped[str] = mapped_column(String(255), nullable=False)
    campaign_name: Mapped[str] = mapped_column(String(512), nullable=True)
    platform: Mapped[str] = mapped_column(String(20), nullable=False, default=Platform.META.value)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)  # pause | boost | adjust_budget
    ai_reasoning: Mapped[str] = mapped_column(Text, nullable=True)
    current_metrics: Mapped[dict] = mapped_column(JSON, nullable=True)
    proposed_changes: Mapped[dict] = mapped_column(JSON, nullable=True)
    # {"status": "PAUSED"} or {"old_budget": x, "new_budget": y}
    status: Mapped[str] = mapped_column(String(20), default=PendingStatus.PENDING.value)
    resolved_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    __table_args__ = (
        Index("ix_ads_pending_actions_status", "status"),
        Index("ix_ads_pending_actions_created_at", "created_at"),
        # At most one open action per campaign and action type
        Index(
            "uq_ads_pending_actions_open",
            "campaign_id", "platform", "action_type",
            unique=True,
            postgresql_where=text("status = 'pending'"),
        ),
    )


# ══════════════════════════════════════════════════════════════════════
#  AGENT ACTIONS: Append-only audit trail
# ══════════════════════════════════════════════════════════════════════

class AgentAction(Base):
    """Every optimizer decision and every executed, queued, or resolved action."""
    __tablename__ = "ads_agent_actions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    action_type: Mapped[str] = mapped_column(String(100), nullable=False)
    # optimizer_pause, optimizer_boost, optimizer_keep, optimizer_skip,
    # approve_<type>, reject_<type>, pause_campaign, resume_campaign, update_budget
    source: Mapped[str] = mapped_column(String(50), nullable=False)  # optimizer, human_approval, manual
    campaign_id: Mapped[str] = mapped_column(String(255), nullable=True)
    campaign_name: Mapped[str] = mapped_column(String(512), nullable=True)
    platform: Mapped[str] = mapped_column(String(20), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="success")
    details: Mapped[dict] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)

    __table_args__ = (
        Index("ix_ads_agent_actions_action_type", "action_type"),
        Index("ix_ads_agent_actions_source", "source"),
        Index("ix_ads_agent_actions_campaign", "platform", "campaign_id"),
        Index("ix_ads_agent_actions_created_at", "created_at"),
    )


# ══════════════════════════════════════════════════════════════════════
#  OPTIMIZER RUNS: One record per invocation
# ══════════════════════════════════════════════════════════════════════

class OptimizerRun(Base):
    """Summary counters of a single optimizer invocation."""
    __tablename__ = "ads_optimizer_runs"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    platform: Mapped[str] = mapped_column(String(20), nullable=False)  # meta | google | all
    trigger: Mapped[str] = mapped_column(String(50), default="manual")  # manual | cron
    status: Mapped[str] = mapped_column(String(20), default=RunStatus.RUNNING.value)
    evaluated: Mapped[int] = mapped_column(Integer, default=0)
    paused: Mapped[int] = mapped_column(Integer, default=0)
    boosted: Mapped[int] = mapped_column(Integer, default=0)
    kept: Mapped[int] = mapped_column(Integer, default=0)
    skipped: Mapped[int] = mapped_column(Integer, default=0)
    pending_approval: Mapped[int] = mapped_column(Integer, default=0)
    approval_mode: Mapped[bool] = mapped_column(Boolean, nullable=True)
    errors: Mapped[list] = mapped_column(JSON, nullable=True)
    error_message: Mapped[str] = mapped_column(Text, nullable=True)
    elapsed_ms: Mapped[int] = mapped_column(Integer, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    completed_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_ads_optimizer_runs_started_at", "started_at"),
        Index("ix_ads_optimizer_runs_status", "status"),
    )


# ══════════════════════════════════════════════════════════════════════
#  PLATFORM CREDENTIALS
# ══════════════════════════════════════════════════════════════════════

class MetaTokenConfig(Base):
    """Long-lived Meta access token, refreshed before it expires."""
    __tablename__ = "meta_token_config"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    token_type: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)  # ads | instagram
    access_token: Mapped[str] = mapped_column(Text, nullable=False)  # encrypted
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    last_refreshed_at: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)


class GoogleAdsConfig(Base):
    """Google Ads account credentials. Single row."""
    __tablename__ = "google_ads_config"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[str] = mapped_column(String(50), nullable=True)
    client_id: Mapped[str] = mapped_column(String(512), nullable=True)
    client_secret: Mapped[str] = mapped_column(Text, nullable=True)  # encrypted
    refresh_token: Mapped[str] = mapped_column(Text, nullable=True)  # encrypted
    developer_token: Mapped[str] = mapped_column(Text, nullable=True)  # encrypted
    is_connected: Mapped[bool] = mapped_column(Boolean, default=False)
    last_token_refresh: Mapped[datetime] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, onupdate=_utcnow)
