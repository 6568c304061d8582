"""
Tests for loading platform credentials, token refresh and at-rest encryption.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch
import pytest
from cryptography.fernet import Fernet
from ads_optimizer.config import Settings
from ads_optimizer.errors import ConfigurationError
from ads_optimizer.models import GoogleAdsConfig, MetaTokenConfig
from ads_optimizer.platforms import GooglePlatform, MetaPlatform
from ads_optimizer.services import token_service
from ads_optimizer.utils import utcnow


def _settings(**overrides) -> Settings:
    values = dict(database_url="postgresql+asyncpg://localhost/test", meta_rate_limit_seconds=0)
    values.update(overrides)
    return Settings(**values)


def _db_returning(row):
    """AsyncSession stand-in whose execute() yields `row` from scalar_one_or_none()."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = row
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    db.flush = AsyncMock()
    return db


@pytest.mark.anyio
async def test_meta_token_prefers_stored_row():
    row = MetaTokenConfig(token_type="ads", access_token="stored-token", expires_at=utcnow() + timedelta(days=40))
    token = await token_service.get_meta_access_token(
        _db_returning(row), _settings(meta_ads_access_token="env-token")
    )
    assert token == "stored-token"


@pytest.mark.anyio
async def test_meta_token_falls_back_to_env():
    token = await token_service.get_meta_access_token(
        _db_returning(None), _settings(meta_ads_access_token="env-token")
    )
    assert token == "env-token"


@pytest.mark.anyio
async def test_meta_token_missing_everywhere():
    with pytest.raises(ConfigurationError, match="Meta access token not configured"):
        await token_service.get_meta_access_token(_db_returning(None), _settings())


@pytest.mark.anyio
async def test_meta_token_near_expiry_is_exchanged():
    row = MetaTokenConfig(token_type="ads", access_token="old", expires_at=utcnow() + timedelta(days=2))
    db = _db_returning(row)
    exchange = AsyncMock(return_value={"access_token": "fresh", "expires_in": 5184000})

    with patch.object(token_service, "exchange_meta_token", exchange):
        token = await token_service.get_meta_access_token(
            db, _settings(meta_app_id="app", meta_app_secret="secret")
        )

    assert token == "fresh"
    exchange.assert_awaited_once()
    assert row.last_refreshed_at is not None
    assert row.expires_at > utcnow() + timedelta(days=50)
    db.flush.assert_awaited()


@pytest.mark.anyio
async def test_meta_token_not_exchanged_without_app_secret():
    row = MetaTokenConfig(token_type="ads", access_token="old", expires_at=utcnow() + timedelta(days=2))
    exchange = AsyncMock()

    with patch.object(token_service, "exchange_meta_token", exchange):
        token = await token_service.get_meta_access_token(_db_returning(row), _settings())

    assert token == "old"
    exchange.assert_not_awaited()


@pytest.mark.anyio
async def test_google_client_is_built_from_config_row():
    row = GoogleAdsConfig(
        customer_id="123-456-7890",
        client_id="client",
        client_secret="secret",
        refresh_token="refresh",
        developer_token="dev",
    )
    refresh = AsyncMock(return_value="access-123")

    with patch.object(token_service, "refresh_google_access_token", refresh):
        client = await token_service.get_google_ads_client(_db_returning(row), _settings())

    refresh.assert_awaited_once_with("client", "secret", "refresh", timeout=30.0)
    assert client.customer_id == "1234567890"
    assert client.access_token == "access-123"
    assert client.developer_token == "dev"
    assert row.last_token_refresh is not None


@pytest.mark.anyio
async def test_google_incomplete_credentials():
    row = GoogleAdsConfig(customer_id="1", client_id="c", client_secret="s", refresh_token=None, developer_token="d")
    with pytest.raises(ConfigurationError, match="incomplete"):
        await token_service.get_google_ads_client(_db_returning(row), _settings())

    with pytest.raises(ConfigurationError, match="not configured"):
        await token_service.get_google_ads_client(_db_returning(None), _settings())


@pytest.mark.anyio
async def test_registry_builds_platforms_lazily():
    db = _db_returning(None)
    registry = token_service.build_platform_registry(db, _settings(meta_ads_access_token="env-token"))

    meta = await registry.get("meta")
    assert isinstance(meta, MetaPlatform)
    assert meta.client.access_token == "env-token"

    fake_google = GooglePlatform(MagicMock())
    with patch.object(token_service, "get_google_ads_client", AsyncMock(return_value=fake_google.client)):
        google = await registry.get("google")
    assert isinstance(google, GooglePlatform)


def test_secrets_round_trip_with_key():
    from ads_optimizer import crypto

    key = Fernet.generate_key().decode()
    crypto._fernet.cache_clear()
    with patch.object(crypto, "get_settings", lambda: _settings(encryption_key=key)):
        encrypted = crypto.encrypt_secret("refresh-token")
        assert encrypted != "refresh-token"
        assert crypto.decrypt_secret(encrypted) == "refresh-token"
        # plaintext rows written before the key existed are still readable
        assert crypto.decrypt_secret("legacy-plain") == "legacy-plain"
    crypto._fernet.cache_clear()


def test_secrets_pass_through_without_key_in_development():
    from ads_optimizer import crypto

    crypto._fernet.cache_clear()
    with patch.object(crypto, "get_settings", lambda: _settings(encryption_key="")):
        assert crypto.encrypt_secret("abc") == "abc"
        assert crypto.decrypt_secret(None) is None
    crypto._fernet.cache_clear()
