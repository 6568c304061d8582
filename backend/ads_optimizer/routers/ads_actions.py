"""
Ads Actions Router — Approval queue, optimizer config, manual campaign controls
and the activity feed.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from ads_optimizer.dependencies import get_platform_registry, get_repository
from ads_optimizer.errors import NotFoundError, PlatformAPIError
from ads_optimizer.models import AgentAction, OptimizationConfig, PendingAction, Platform
from ads_optimizer.platforms import PlatformRegistry, active_status_for
from ads_optimizer.services.action_executor import ActionExecutor, validate_budget
from ads_optimizer.services.ads_repository import AdsRepository
from ads_optimizer.services.approval_gate import PLATFORM_LABELS, ApprovalGate
from ads_optimizer.services.audit_logger import AuditLogger
from ads_optimizer.utils import iso, parse_uuid

logger = logging.getLogger(__name__)

router = APIRouter()

PLATFORMS = {p.value for p in Platform}


# ── Request Models ────────────────────────────────────────────────────

class ConfigUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    optimizer_enabled: Optional[bool] = None
    auto_pause_enabled: Optional[bool] = None
    auto_boost_enabled: Optional[bool] = None
    approval_mode_enabled: Optional[bool] = None
    target_cpa: Optional[float] = Field(None, gt=0)
    max_cpa_multiplier: Optional[float] = Field(None, gt=0)
    min_spend_to_evaluate: Optional[float] = Field(None, ge=0)
    min_impressions_to_evaluate: Optional[int] = Field(None, ge=0)
    budget_increase_pct: Optional[float] = Field(None, gt=0)
    max_daily_budget: Optional[float] = Field(None, gt=0)
    min_daily_budget: Optional[float] = Field(None, ge=0)
    min_roas: Optional[float] = Field(None, ge=0)


class CampaignActionRequest(BaseModel):
    platform: str = Platform.META.value
    reason: Optional[str] = None
    source: str = "manual"


class BudgetUpdateRequest(CampaignActionRequest):
    daily_budget: Optional[float] = None


# ── Helpers ───────────────────────────────────────────────────────────

def _services(repo: AdsRepository, platforms: PlatformRegistry) -> tuple[ApprovalGate, ActionExecutor, AuditLogger]:
    audit = AuditLogger(repo)
    executor = ActionExecutor(repo, platforms)
    return ApprovalGate(repo, executor, audit), executor, audit


def _check_platform(platform: str) -> str:
    if platform not in PLATFORMS:
        raise HTTPException(status_code=400, detail=f"Invalid platform: {platform!r}. Use 'meta' or 'google'.")
    return platform


def _serialize_pending(a: PendingAction) -> dict:
    return {
        "id": str(a.id),
        "campaign_id": a.campaign_id,
        "campaign_name": a.campaign_name,
        "platform": a.platform,
        "action_type": a.action_type,
        "ai_reasoning": a.ai_reasoning,
        "current_metrics": a.current_metrics,
        "proposed_changes": a.proposed_changes,
        "status": a.status,
        "resolved_at": iso(a.resolved_at),
        "created_at": iso(a.created_at),
    }


def _serialize_resolution(a: PendingAction) -> dict:
    return {
        "success": True,
        "action_id": str(a.id),
        "action_type": a.action_type,
        "campaign_id": a.campaign_id,
        "campaign_name": a.campaign_name,
        "status": a.status,
    }


def _serialize_config(c: OptimizationConfig) -> dict:
    return {
        "id": str(c.id),
        "optimizer_enabled": c.optimizer_enabled,
        "auto_pause_enabled": c.auto_pause_enabled,
        "auto_boost_enabled": c.auto_boost_enabled,
        "approval_mode_enabled": c.approval_mode_enabled,
        "target_cpa": c.target_cpa,
        "max_cpa_multiplier": c.max_cpa_multiplier,
        "min_spend_to_evaluate": c.min_spend_to_evaluate,
        "min_impressions_to_evaluate": c.min_impressions_to_evaluate,
        "budget_increase_pct": c.budget_increase_pct,
        "max_daily_budget": c.max_daily_budget,
        "min_daily_budget": c.min_daily_budget,
        "min_roas": c.min_roas,
        "updated_at": iso(c.updated_at),
    }


def _serialize_activity(a: AgentAction) -> dict:
    return {
        "id": str(a.id),
        "action_type": a.action_type,
        "source": a.source,
        "campaign_id": a.campaign_id,
        "campaign_name": a.campaign_name,
        "platform": a.platform,
        "status": a.status,
        "details": a.details,
        "created_at": iso(a.created_at),
    }


# ── Approval Queue ────────────────────────────────────────────────────

@router.get("/pending-actions")
async def list_pending_actions(
    limit: int = Query(100, ge=1, le=500),
    repo: AdsRepository = Depends(get_repository),
):
    actions = await repo.list_pending_actions(limit=limit)
    return {"pending_actions": [_serialize_pending(a) for a in actions]}


@router.post("/approve-action/{action_id}")
async def approve_action(
    action_id: str,
    repo: AdsRepository = Depends(get_repository),
    platforms: PlatformRegistry = Depends(get_platform_registry),
):
    """Execute a queued action on the platform and mark it approved."""
    gate, _, _ = _services(repo, platforms)
    config = await repo.get_config()
    try:
        action = await gate.approve(parse_uuid(action_id, "action_id"), config)
    except PlatformAPIError:
        # Keep the error audit entry; the row itself is still pending
        await repo.commit()
        raise
    return _serialize_resolution(action)


@router.post("/reject-action/{action_id}")
async def reject_action(
    action_id: str,
    repo: AdsRepository = Depends(get_repository),
    platforms: PlatformRegistry = Depends(get_platform_registry),
):
    gate, _, _ = _services(repo, platforms)
    action = await gate.reject(parse_uuid(action_id, "action_id"))
    return _serialize_resolution(action)


# ── Optimization Config ───────────────────────────────────────────────

@router.get("/config")
async def get_config(repo: AdsRepository = Depends(get_repository)):
    config = await repo.get_config()
    if not config:
        raise NotFoundError("Config not found")
    return _serialize_config(config)


@router.post("/config")
async def update_config(
    payload: ConfigUpdateRequest,
    repo: AdsRepository = Depends(get_repository),
):
    """Partial update: only fields present in the body change."""
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    config = await repo.get_config()
    if not config:
        raise NotFoundError("Config not found")
    config = await repo.update_config(config, changes)
    logger.info(f"Optimization config updated: {sorted(changes)}")
    return _serialize_config(config)


# ── Manual Campaign Controls ──────────────────────────────────────────

async def _record_failure(
    audit: AuditLogger,
    repo: AdsRepository,
    action_type: str,
    campaign_id: str,
    payload: CampaignActionRequest,
    error: PlatformAPIError,
    details: Optional[dict] = None,
):
    await audit.record(
        action_type=action_type,
        source=payload.source,
        campaign_id=campaign_id,
        platform=payload.platform,
        details={**(details or {}), "reason": payload.reason, "error": str(error)},
        status="error",
    )
    await repo.commit()


@router.post("/pause/{campaign_id}")
async def pause_campaign(
    campaign_id: str,
    payload: Optional[CampaignActionRequest] = None,
    repo: AdsRepository = Depends(get_repository),
    platforms: PlatformRegistry = Depends(get_platform_registry),
):
    payload = payload or CampaignActionRequest()
    _check_platform(payload.platform)
    _, executor, audit = _services(repo, platforms)
    try:
        cache_updated = await executor.pause(payload.platform, campaign_id)
    except PlatformAPIError as e:
        await _record_failure(audit, repo, "pause_campaign", campaign_id, payload, e)
        raise
    await audit.record(
        action_type="pause_campaign",
        source=payload.source,
        campaign_id=campaign_id,
        platform=payload.platform,
        details={"reason": payload.reason, "cache_updated": cache_updated},
    )
    return {"success": True, "campaign_id": campaign_id, "platform": payload.platform, "status": "PAUSED"}


@router.post("/resume/{campaign_id}")
async def resume_campaign(
    campaign_id: str,
    payload: Optional[CampaignActionRequest] = None,
    repo: AdsRepository = Depends(get_repository),
    platforms: PlatformRegistry = Depends(get_platform_registry),
):
    payload = payload or CampaignActionRequest()
    _check_platform(payload.platform)
    _, executor, audit = _services(repo, platforms)
    try:
        cache_updated = await executor.resume(payload.platform, campaign_id)
    except PlatformAPIError as e:
        await _record_failure(audit, repo, "resume_campaign", campaign_id, payload, e)
        raise
    await audit.record(
        action_type="resume_campaign",
        source=payload.source,
        campaign_id=campaign_id,
        platform=payload.platform,
        details={"reason": payload.reason, "cache_updated": cache_updated},
    )
    return {
        "success": True,
        "campaign_id": campaign_id,
        "platform": payload.platform,
        "status": active_status_for(payload.platform),
    }


@router.post("/budget/{campaign_id}")
async def update_budget(
    campaign_id: str,
    payload: BudgetUpdateRequest,
    repo: AdsRepository = Depends(get_repository),
    platforms: PlatformRegistry = Depends(get_platform_registry),
):
    _check_platform(payload.platform)
    daily_budget = validate_budget(payload.daily_budget)
    _, executor, audit = _services(repo, platforms)

    campaign = await repo.get_campaign(payload.platform, campaign_id)
    old_budget = campaign.daily_budget if campaign else None

    try:
        await executor.set_budget(payload.platform, campaign_id, daily_budget)
    except PlatformAPIError as e:
        label = PLATFORM_LABELS.get(payload.platform, payload.platform)
        logger.error(f"{label} budget update failed for {campaign_id}: {e}")
        await _record_failure(
            audit, repo, "update_budget", campaign_id, payload, e,
            details={"old_budget": old_budget, "new_budget": daily_budget},
        )
        raise
    await audit.record(
        action_type="update_budget",
        source=payload.source,
        campaign_id=campaign_id,
        campaign_name=campaign.name if campaign else None,
        platform=payload.platform,
        details={"old_budget": old_budget, "new_budget": daily_budget, "reason": payload.reason},
    )
    return {
        "success": True,
        "campaign_id": campaign_id,
        "platform": payload.platform,
        "old_budget": old_budget,
        "new_budget": daily_budget,
    }


# ── Activity Feed ─────────────────────────────────────────────────────

@router.get("/activity")
async def list_activity(
    source: Optional[str] = Query(None),
    platform: Optional[str] = Query(None),
    action_type: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    repo: AdsRepository = Depends(get_repository),
):
    entries = await repo.list_agent_actions(
        source=source, platform=platform, action_type=action_type, limit=limit
    )
    return {"activity": [_serialize_activity(a) for a in entries]}
