"""
Optimizer Router — Trigger an optimizer run and browse past runs.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from ads_optimizer.dependencies import get_platform_registry, get_repository
from ads_optimizer.models import OptimizerRun
from ads_optimizer.platforms import PlatformRegistry
from ads_optimizer.services.ads_repository import AdsRepository
from ads_optimizer.services.optimizer_service import OptimizerService
from ads_optimizer.utils import iso

logger = logging.getLogger(__name__)

router = APIRouter()


class OptimizerRunRequest(BaseModel):
    platform: Optional[str] = None  # meta | google; both when omitted


def _serialize_run(run: OptimizerRun) -> dict:
    return {
        "id": str(run.id),
        "platform": run.platform,
        "trigger": run.trigger,
        "status": run.status,
        "evaluated": run.evaluated,
        "paused": run.paused,
        "boosted": run.boosted,
        "kept": run.kept,
        "skipped": run.skipped,
        "pending_approval": run.pending_approval,
        "approval_mode": run.approval_mode,
        "errors": run.errors or [],
        "error_message": run.error_message,
        "elapsed_ms": run.elapsed_ms,
        "started_at": iso(run.started_at),
        "completed_at": iso(run.completed_at),
    }


@router.post("")
async def run_optimizer(
    payload: Optional[OptimizerRunRequest] = None,
    repo: AdsRepository = Depends(get_repository),
    platforms: PlatformRegistry = Depends(get_platform_registry),
):
    """Evaluate active campaigns and pause / boost / queue them per the current config."""
    platform = payload.platform if payload else None
    service = OptimizerService(repo, platforms)
    return await service.run(platform=platform, trigger="manual")


@router.get("/runs")
async def list_runs(
    limit: int = Query(20, ge=1, le=200),
    repo: AdsRepository = Depends(get_repository),
):
    runs = await repo.list_runs(limit=limit)
    return {"runs": [_serialize_run(r) for r in runs]}
