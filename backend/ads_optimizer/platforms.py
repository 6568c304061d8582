"""
Ad platform adapters.
One AdPlatform per ad network so the executor never branches on platform name.
Every platform call is followed by a fixed delay to stay under the API rate limits.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional
from ads_optimizer.errors import ConfigurationError, PlatformAPIError, ValidationError
from ads_optimizer.google_ads_client import GoogleAdsClient, units_to_micros
from ads_optimizer.meta_client import MetaAdsClient
from ads_optimizer.models import Platform

logger = logging.getLogger(__name__)


class AdPlatform(ABC):
    """Mutations the optimizer needs from an ad network."""

    name: str = ""
    active_status: str = ""
    paused_status: str = "PAUSED"
    rate_limit_seconds: float = 0.0

    async def _throttle(self) -> None:
        if self.rate_limit_seconds > 0:
            await asyncio.sleep(self.rate_limit_seconds)

    @abstractmethod
    async def pause_campaign(self, campaign_id: str) -> None:
        ...

    @abstractmethod
    async def resume_campaign(self, campaign_id: str) -> None:
        ...

    @abstractmethod
    async def set_daily_budget(self, campaign_id: str, amount: float) -> None:
        """Set the campaign's daily budget, in account currency units."""

    @abstractmethod
    async def resolve_budget_resource(self, campaign_id: str) -> str:
        """Return the id of the object that owns the campaign's budget."""


class MetaPlatform(AdPlatform):
    """Meta campaigns carry their own budget, so the campaign node is mutated directly."""

    name = Platform.META.value
    active_status = "ACTIVE"

    def __init__(self, client: MetaAdsClient, rate_limit_seconds: float = 0.2):
        self.client = client
        self.rate_limit_seconds = rate_limit_seconds

    async def pause_campaign(self, campaign_id: str) -> None:
        try:
            await self.client.update_campaign_status(campaign_id, self.paused_status)
        finally:
            await self._throttle()

    async def resume_campaign(self, campaign_id: str) -> None:
        try:
            await self.client.update_campaign_status(campaign_id, self.active_status)
        finally:
            await self._throttle()

    async def set_daily_budget(self, campaign_id: str, amount: float) -> None:
        budget_node = await self.resolve_budget_resource(campaign_id)
        try:
            await self.client.update_campaign_budget(budget_node, amount)
        finally:
            await self._throttle()

    async def resolve_budget_resource(self, campaign_id: str) -> str:
        return campaign_id


class GooglePlatform(AdPlatform):
    """
    Google Ads budgets live on a separate campaign_budget resource.
    Budget changes look up that resource via GAQL, then mutate it in micros.
    """

    name = Platform.GOOGLE.value
    active_status = "ENABLED"

    def __init__(self, client: GoogleAdsClient, rate_limit_seconds: float = 0.1):
        self.client = client
        self.rate_limit_seconds = rate_limit_seconds

    async def _set_status(self, campaign_id: str, status: str) -> None:
        try:
            await self.client.mutate_campaign(campaign_id, {"status": status}, "status")
        finally:
            await self._throttle()

    async def pause_campaign(self, campaign_id: str) -> None:
        await self._set_status(campaign_id, self.paused_status)

    async def resume_campaign(self, campaign_id: str) -> None:
        await self._set_status(campaign_id, self.active_status)

    async def resolve_budget_resource(self, campaign_id: str) -> str:
        if not str(campaign_id).isdigit():
            raise ValidationError(f"Invalid Google Ads campaign id: {campaign_id!r}")
        query = (
            "SELECT campaign.id, campaign_budget.id "
            f"FROM campaign WHERE campaign.id = {campaign_id}"
        )
        try:
            results = await self.client.search(query)
        finally:
            await self._throttle()
        budget_id = None
        if results:
            budget_id = (results[0].get("campaignBudget") or {}).get("id")
        if not budget_id:
            raise PlatformAPIError("google", f"Could not find budget for campaign {campaign_id}")
        return str(budget_id)

    async def set_daily_budget(self, campaign_id: str, amount: float) -> None:
        budget_id = await self.resolve_budget_resource(campaign_id)
        try:
            await self.client.mutate_budget(budget_id, units_to_micros(amount))
        finally:
            await self._throttle()


PLATFORM_CLASSES: dict[str, type[AdPlatform]] = {
    Platform.META.value: MetaPlatform,
    Platform.GOOGLE.value: GooglePlatform,
}


def active_status_for(platform: str) -> str:
    return PLATFORM_CLASSES[platform].active_status


PlatformFactory = Callable[[], Awaitable[AdPlatform]]


class PlatformRegistry:
    """
    Lazily builds one AdPlatform per network and caches it for the request.
    Factories raise ConfigurationError when credentials are missing.
    """

    def __init__(self, factories: Optional[dict[str, PlatformFactory]] = None):
        self._factories = dict(factories or {})
        self._instances: dict[str, AdPlatform] = {}

    @classmethod
    def from_instances(cls, platforms: dict[str, AdPlatform]) -> "PlatformRegistry":
        registry = cls()
        registry._instances.update(platforms)
        return registry

    async def get(self, name: str) -> AdPlatform:
        if name in self._instances:
            return self._instances[name]
        factory = self._factories.get(name)
        if factory is None:
            raise ConfigurationError(f"No credentials configured for platform '{name}'")
        platform = await factory()
        self._instances[name] = platform
        logger.info(f"Platform '{name}' ready")
        return platform
