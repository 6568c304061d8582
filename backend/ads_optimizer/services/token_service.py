"""
Token Service — Platform credentials for Meta and Google Ads.
Loads stored tokens, refreshes them when needed, and builds the platform registry.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from ads_optimizer.config import Settings, get_settings
from ads_optimizer.crypto import decrypt_secret, encrypt_secret
from ads_optimizer.errors import ConfigurationError
from ads_optimizer.google_ads_client import GoogleAdsClient
from ads_optimizer.meta_client import GRAPH_API_BASE, MetaAdsClient
from ads_optimizer.models import GoogleAdsConfig, MetaTokenConfig, Platform
from ads_optimizer.platforms import GooglePlatform, MetaPlatform, PlatformRegistry
from ads_optimizer.utils import utcnow

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

# Long-lived Meta tokens last ~60 days; exchange them once inside this window
META_REFRESH_WINDOW = timedelta(days=7)


def _make_aware(dt: datetime) -> datetime:
    """DB returns naive datetimes; treat them as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _meta_token_needs_refresh(row: MetaTokenConfig) -> bool:
    if not row.expires_at:
        return False
    return datetime.now(timezone.utc) >= _make_aware(row.expires_at) - META_REFRESH_WINDOW


async def exchange_meta_token(access_token: str, settings: Settings) -> dict:
    """
    Swap a long-lived Meta token for a fresh one via fb_exchange_token.
    Returns dict with access_token and expires_in.
    """
    async with httpx.AsyncClient() as client:
        response = await client.get(
            f"{GRAPH_API_BASE}/{settings.meta_graph_api_version}/oauth/access_token",
            params={
                "grant_type": "fb_exchange_token",
                "client_id": settings.meta_app_id,
                "client_secret": settings.meta_app_secret,
                "fb_exchange_token": access_token,
            },
            timeout=settings.http_timeout_seconds,
        )
        response.raise_for_status()
        return response.json()


async def get_meta_access_token(db: AsyncSession, settings: Optional[Settings] = None) -> str:
    """
    Stored token first (refreshed if close to expiry), then META_ADS_ACCESS_TOKEN.
    Raises ConfigurationError when neither is available.
    """
    settings = settings or get_settings()
    result = await db.execute(
        select(MetaTokenConfig).where(MetaTokenConfig.token_type == "ads")
    )
    row = result.scalar_one_or_none()

    if row and row.access_token:
        token = decrypt_secret(row.access_token)
        if _meta_token_needs_refresh(row) and settings.meta_app_id and settings.meta_app_secret:
            logger.info("Meta access token expires soon, exchanging...")
            try:
                data = await exchange_meta_token(token, settings)
                token = data["access_token"]
                row.access_token = encrypt_secret(token)
                expires_in = data.get("expires_in")
                if expires_in:
                    row.expires_at = utcnow() + timedelta(seconds=int(expires_in))
                row.last_refreshed_at = utcnow()
                await db.flush()
                logger.info(f"Meta access token refreshed, expires in {expires_in}s")
            except httpx.HTTPStatusError as e:
                logger.error(f"Meta token refresh failed: {e.response.status_code} — {e.response.text}")
            except (httpx.HTTPError, KeyError, ValueError) as e:
                logger.error(f"Meta token refresh failed: {e}")
        if token:
            return token

    if settings.meta_ads_access_token:
        return settings.meta_ads_access_token

    raise ConfigurationError("Meta access token not configured")


async def refresh_google_access_token(
    client_id: str,
    client_secret: str,
    refresh_token: str,
    timeout: float = 30.0,
) -> str:
    async with httpx.AsyncClient() as client:
        response = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": client_id,
                "client_secret": client_secret,
            },
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=timeout,
        )
    data = response.json()
    if response.status_code >= 400 or "access_token" not in data:
        raise ConfigurationError(
            f"Failed to refresh Google access token: {data.get('error_description') or data.get('error') or response.status_code}"
        )
    return data["access_token"]


async def get_google_ads_client(db: AsyncSession, settings: Optional[Settings] = None) -> GoogleAdsClient:
    """Load google_ads_config, refresh the OAuth access token and return a ready client."""
    settings = settings or get_settings()
    result = await db.execute(select(GoogleAdsConfig).limit(1))
    row = result.scalar_one_or_none()
    if not row:
        raise ConfigurationError("Google Ads not configured")

    refresh_token = decrypt_secret(row.refresh_token)
    developer_token = decrypt_secret(row.developer_token)
    if not row.customer_id or not refresh_token or not developer_token:
        raise ConfigurationError("Google Ads credentials incomplete")

    client_id = row.client_id or settings.google_ads_client_id
    client_secret = decrypt_secret(row.client_secret) or settings.google_ads_client_secret
    if not client_id or not client_secret:
        raise ConfigurationError("Google Ads OAuth client not configured")

    access_token = await refresh_google_access_token(
        client_id, client_secret, refresh_token, timeout=settings.http_timeout_seconds
    )
    row.last_token_refresh = utcnow()
    await db.flush()

    return GoogleAdsClient(
        customer_id=row.customer_id,
        access_token=access_token,
        developer_token=developer_token,
        api_version=settings.google_ads_api_version,
        timeout=settings.http_timeout_seconds,
    )


def build_platform_registry(db: AsyncSession, settings: Optional[Settings] = None) -> PlatformRegistry:
    """Registry whose platforms are created on first use, so unused credentials are never required."""
    settings = settings or get_settings()

    async def _meta() -> MetaPlatform:
        token = await get_meta_access_token(db, settings)
        client = MetaAdsClient(
            access_token=token,
            account_ref=settings.meta_account_ref,
            api_version=settings.meta_graph_api_version,
            timeout=settings.http_timeout_seconds,
        )
        return MetaPlatform(client, rate_limit_seconds=settings.meta_rate_limit_seconds)

    async def _google() -> GooglePlatform:
        client = await get_google_ads_client(db, settings)
        return GooglePlatform(client, rate_limit_seconds=settings.google_rate_limit_seconds)

    return PlatformRegistry({
        Platform.META.value: _meta,
        Platform.GOOGLE.value: _google,
    })
