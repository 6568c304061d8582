"""
Cron / Sync Hook — Called by the campaign sync jobs once fresh rows are in place.

The caller proves itself with CRON_SECRET, sent either as
  X-Cron-Secret: <CRON_SECRET>
or
  Authorization: Bearer <CRON_SECRET>
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel
from ads_optimizer.config import get_settings
from ads_optimizer.dependencies import get_platform_registry, get_repository
from ads_optimizer.platforms import PlatformRegistry
from ads_optimizer.services.ads_repository import AdsRepository
from ads_optimizer.services.optimizer_service import OptimizerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["Cron"])


class CronOptimizerRequest(BaseModel):
    platform: Optional[str] = None


async def _require_cron_secret(
    x_cron_secret: str | None = Header(None, alias="X-Cron-Secret"),
    authorization: str | None = Header(None),
) -> None:
    secret = get_settings().cron_secret
    if not secret:
        raise HTTPException(500, "CRON_SECRET not configured")
    token = x_cron_secret
    if not token and authorization and authorization.startswith("Bearer "):
        token = authorization[7:]
    if token != secret:
        raise HTTPException(401, "Invalid cron secret")


@router.post("/ads-optimizer")
async def cron_ads_optimizer(
    payload: Optional[CronOptimizerRequest] = None,
    _: None = Depends(_require_cron_secret),
    repo: AdsRepository = Depends(get_repository),
    platforms: PlatformRegistry = Depends(get_platform_registry),
):
    """
    Sync-job completion hook:
    POST /api/cron/ads-optimizer
    Header: X-Cron-Secret: <CRON_SECRET>
    """
    platform = payload.platform if payload else None
    result = await OptimizerService(repo, platforms).run(platform=platform, trigger="cron")
    logger.info(
        f"Cron optimizer run finished: evaluated={result['evaluated']} "
        f"pending={result['pending_approval']} errors={len(result.get('errors', []))}"
    )
    return result
