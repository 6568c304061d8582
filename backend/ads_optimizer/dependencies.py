"""
Request-scoped FastAPI dependencies shared by the routers.
Tests override these to swap in a fake repository and fake platforms.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from ads_optimizer.database import get_db
from ads_optimizer.platforms import PlatformRegistry
from ads_optimizer.services.ads_repository import AdsRepository
from ads_optimizer.services.token_service import build_platform_registry


async def get_repository(db: AsyncSession = Depends(get_db)) -> AdsRepository:
    return AdsRepository(db)


async def get_platform_registry(db: AsyncSession = Depends(get_db)) -> PlatformRegistry:
    return build_platform_registry(db)
