"""
Meta Marketing API Client
Thin async wrapper over the Graph API used to mutate campaigns.
Graph API expects form-encoded params and budgets in cents.
"""

import logging
from typing import Any, Optional
import httpx
from ads_optimizer.errors import PlatformAPIError

logger = logging.getLogger(__name__)

GRAPH_API_BASE = "https://graph.facebook.com"


class MetaAdsClient:
    """
    Wrapper around the Meta Graph API.
    Each instance is bound to one access token and one ad account.
    """

    def __init__(
        self,
        access_token: str,
        account_ref: str = "",
        api_version: str = "v21.0",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.account_ref = account_ref
        self.api_version = api_version
        self.timeout = timeout
        self._transport = transport

    @property
    def base_url(self) -> str:
        return f"{GRAPH_API_BASE}/{self.api_version}"

    async def post(self, endpoint: str, params: dict[str, Any]) -> dict:
        """POST form params to a Graph node, e.g. a campaign id."""
        body = {k: str(v) for k, v in params.items()}
        body["access_token"] = self.access_token
        logger.info(f"Meta POST {endpoint} fields={sorted(params.keys())}")
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(f"{self.base_url}/{endpoint}", data=body)
            except httpx.HTTPError as e:
                raise PlatformAPIError("meta", f"Meta API request failed: {e}") from e
        return self._parse(response)

    async def get(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> dict:
        query = dict(params or {})
        query["access_token"] = self.access_token
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.get(f"{self.base_url}/{endpoint}", params=query)
            except httpx.HTTPError as e:
                raise PlatformAPIError("meta", f"Meta API request failed: {e}") from e
        return self._parse(response)

    @staticmethod
    def _parse(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError:
            raise PlatformAPIError(
                "meta",
                f"Meta API returned non-JSON ({response.status_code}): {response.text[:200]}",
            )
        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise PlatformAPIError("meta", f"Meta API error: {message}")
        return data

    # ── Convenience Methods ──────────────────────────────────────────

    async def update_campaign_status(self, campaign_id: str, status: str) -> dict:
        return await self.post(campaign_id, {"status": status})

    async def update_campaign_budget(self, campaign_id: str, daily_budget: float) -> dict:
        return await self.post(campaign_id, {"daily_budget": to_cents(daily_budget)})

    async def get_campaign(self, campaign_id: str) -> dict:
        return await self.get(campaign_id, {"fields": "id,name,status,daily_budget"})


def to_cents(amount: float) -> str:
    return str(round(amount * 100))
