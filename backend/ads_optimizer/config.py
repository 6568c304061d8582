import logging
from pydantic_settings import BaseSettings
from pydantic import model_validator, ConfigDict
from functools import lru_cache

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment: "development" or "production"
    environment: str = "development"

    database_url: str = "postgresql+asyncpg://localhost/abrahub"

    @model_validator(mode="before")
    @classmethod
    def _fix_database_url_for_asyncpg(cls, values: dict) -> dict:
        """Supabase/Postgres gives postgresql:// — we need postgresql+asyncpg:// for asyncpg."""
        if not isinstance(values, dict):
            return values
        url = values.get("database_url") or ""
        if url.startswith("postgresql://") and "+asyncpg" not in url:
            values["database_url"] = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return values

    api_key: str = ""  # Required in production; in dev, empty = auth disabled
    cron_secret: str = ""  # Shared secret for the sync-job hook
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    encryption_key: str = ""

    # Meta Marketing API
    meta_ad_account_id: str = ""
    meta_ads_access_token: str = ""  # Fallback when no token is stored in meta_token_config
    meta_app_id: str = ""
    meta_app_secret: str = ""
    meta_graph_api_version: str = "v21.0"

    # Google Ads API (account-level credentials live in google_ads_config)
    google_ads_client_id: str = ""
    google_ads_client_secret: str = ""
    google_ads_api_version: str = "v17"

    # Fixed delay after every platform call, in seconds
    meta_rate_limit_seconds: float = 0.2
    google_rate_limit_seconds: float = 0.1
    http_timeout_seconds: float = 30.0

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":
        """Enforce that critical secrets are set when running in production."""
        if self.is_production:
            if not self.api_key:
                raise ValueError(
                    "API_KEY must be set in production. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )
            if not self.encryption_key:
                raise ValueError(
                    "ENCRYPTION_KEY must be set in production. "
                    "Generate one with: python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\""
                )
            if not self.database_url or "localhost" in self.database_url:
                logger.warning("DATABASE_URL appears to point at localhost in production.")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origin_list(self) -> list[str]:
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins or ["http://localhost:5173", "http://localhost:3000"]

    @property
    def meta_account_ref(self) -> str:
        """Graph API node for the ad account (always prefixed with act_)."""
        account_id = self.meta_ad_account_id.strip()
        if not account_id:
            return ""
        return account_id if account_id.startswith("act_") else f"act_{account_id}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
