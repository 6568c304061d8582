"""
Google Ads API Client
REST wrapper for GAQL search and campaign / campaign budget mutations.
Amounts cross the wire in micros (1 unit = 1,000,000 micros).
"""

import json
import logging
from typing import Any, Optional
import httpx
from ads_optimizer.errors import PlatformAPIError

logger = logging.getLogger(__name__)

GOOGLE_ADS_API_BASE = "https://googleads.googleapis.com"


class GoogleAdsClient:
    """
    Wrapper around the Google Ads REST API for a single customer account.
    The access token must already be fresh (see token_service).
    """

    def __init__(
        self,
        customer_id: str,
        access_token: str,
        developer_token: str,
        api_version: str = "v17",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.customer_id = customer_id.replace("-", "")
        self.access_token = access_token
        self.developer_token = developer_token
        self.api_version = api_version
        self.timeout = timeout
        self._transport = transport

    @property
    def customer_url(self) -> str:
        return f"{GOOGLE_ADS_API_BASE}/{self.api_version}/customers/{self.customer_id}"

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "developer-token": self.developer_token,
            "Content-Type": "application/json",
        }

    async def _post(self, path: str, payload: dict[str, Any], what: str) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(f"{self.customer_url}/{path}", json=payload, headers=self.headers)
            except httpx.HTTPError as e:
                raise PlatformAPIError("google", f"Google Ads {what} request failed: {e}") from e
        try:
            data = response.json()
        except ValueError:
            raise PlatformAPIError(
                "google",
                f"Google Ads API returned non-JSON ({response.status_code}): {response.text[:200]}",
            )
        if isinstance(data, dict) and data.get("error"):
            raise PlatformAPIError("google", f"Google Ads {what} error: {json.dumps(data['error'])[:300]}")
        return data

    async def search(self, query: str) -> list[dict]:
        """Run a GAQL query and return the results array."""
        logger.info(f"Google Ads search: {' '.join(query.split())[:120]}")
        data = await self._post("googleAds:search", {"query": query}, "search")
        return data.get("results", [])

    async def mutate_campaign(self, campaign_id: str, fields: dict[str, Any], update_mask: str) -> dict:
        logger.info(f"Google Ads mutate campaign {campaign_id} mask={update_mask}")
        operation = {
            "update": {
                "resourceName": f"customers/{self.customer_id}/campaigns/{campaign_id}",
                **fields,
            },
            "updateMask": update_mask,
        }
        return await self._post("campaigns:mutate", {"operations": [operation]}, "mutate")

    async def mutate_budget(self, budget_id: str, amount_micros: str) -> dict:
        logger.info(f"Google Ads mutate budget {budget_id} amountMicros={amount_micros}")
        operation = {
            "update": {
                "resourceName": f"customers/{self.customer_id}/campaignBudgets/{budget_id}",
                "amountMicros": amount_micros,
            },
            "updateMask": "amountMicros",
        }
        return await self._post("campaignBudgets:mutate", {"operations": [operation]}, "budget mutate")


def micros_to_units(micros) -> float:
    return float(micros) / 1_000_000


def units_to_micros(amount: float) -> str:
    return str(round(amount * 1_000_000))
