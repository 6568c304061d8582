"""
Encryption at rest for platform secrets (Meta tokens, Google refresh/developer tokens).

Fernet key comes from ENCRYPTION_KEY. Without a key (development only) values
pass through unchanged so a local database works without extra setup.
"""

import logging
from functools import lru_cache
from cryptography.fernet import Fernet, InvalidToken
from ads_optimizer.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def _fernet() -> Fernet | None:
    settings = get_settings()
    if not settings.encryption_key:
        if settings.is_production:
            raise RuntimeError("ENCRYPTION_KEY must be set in production.")
        logger.warning("ENCRYPTION_KEY not set — platform secrets are stored in plaintext (dev only).")
        return None
    try:
        return Fernet(settings.encryption_key.encode())
    except ValueError as exc:
        raise RuntimeError(f"Invalid ENCRYPTION_KEY: {exc}") from exc


def encrypt_secret(value: str | None) -> str | None:
    if not value:
        return None
    f = _fernet()
    return f.encrypt(value.encode()).decode() if f else value


def decrypt_secret(value: str | None) -> str | None:
    if not value:
        return None
    f = _fernet()
    if f is None:
        return value
    try:
        return f.decrypt(value.encode()).decode()
    except InvalidToken:
        # Rows written before a key was configured are still plaintext
        logger.warning("Stored secret is not a Fernet token — using it as plaintext.")
        return value

