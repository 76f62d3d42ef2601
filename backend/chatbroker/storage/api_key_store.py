"""
API Key Store - provider credentials.

Keys are base64-encoded before they are written. This is obfuscation only,
not encryption: anyone with read access to the database can recover them.
Read APIs expose presence and timestamps; only ``get_actual`` decodes a key,
for the provider adapter's use.
"""

import base64
import binascii
import logging
from typing import Dict, Mapping, Optional

from sqlalchemy import delete, select

from ..models.settings import ApiKeyStatus
from .database import Database, utcnow
from .orm import ApiKeyModel

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("openai", "anthropic")


def encode_key(api_key: str) -> str:
    return base64.b64encode(api_key.encode("utf-8")).decode("ascii")


def decode_key(encoded: str) -> str:
    return base64.b64decode(encoded.encode("ascii"), validate=True).decode("utf-8")


def mask_key(api_key: Optional[str]) -> str:
    """Loggable form of a key: its first 8 characters."""
    return f"{api_key[:8]}..." if api_key else "NOT SET"


class ApiKeyStore:
    """
    Persistence operations for provider API keys.

    Args:
        database: Shared database handle
        env_keys: Provider -> key taken from the environment, used when no
            key is stored for that provider
    """

    def __init__(self, database: Database, env_keys: Optional[Mapping[str, Optional[str]]] = None):
        self.database = database
        self.env_keys = dict(env_keys or {})

    async def set(self, provider: str, api_key: str) -> ApiKeyStatus:
        """Store (or replace) the key of a provider; ``created_at`` is kept on replace."""
        encoded = encode_key(api_key.strip())
        now = utcnow()
        async with self.database.transaction() as db:
            row = await db.get(ApiKeyModel, provider)
            if row is None:
                row = ApiKeyModel(provider=provider, key_hash=encoded, created_at=now, updated_at=now)
                db.add(row)
            else:
                row.key_hash = encoded
                row.updated_at = now
            await db.flush()
            status = ApiKeyStatus(is_set=True, created_at=row.created_at, updated_at=row.updated_at)

        logger.info("API key stored", extra={"extra_fields": {"provider": provider}})
        return status

    async def is_set(self, provider: str) -> bool:
        async with self.database.transaction() as db:
            return await db.get(ApiKeyModel, provider) is not None

    async def list(self) -> Dict[str, ApiKeyStatus]:
        """Existence surface: ``{provider: {isSet, created_at, updated_at}}``."""
        stmt = select(ApiKeyModel.provider, ApiKeyModel.created_at, ApiKeyModel.updated_at)
        async with self.database.transaction() as db:
            rows = (await db.execute(stmt)).all()
        return {
            provider: ApiKeyStatus(is_set=True, created_at=created_at, updated_at=updated_at)
            for provider, created_at, updated_at in rows
        }

    async def delete(self, provider: str) -> bool:
        async with self.database.transaction() as db:
            result = await db.execute(delete(ApiKeyModel).where(ApiKeyModel.provider == provider))
            return result.rowcount > 0

    async def get_actual(self, provider: str) -> Optional[str]:
        """
        Decoded key for internal use; never expose the return value through an API.

        Falls back to the environment key when nothing is stored or the stored
        value cannot be decoded.
        """
        async with self.database.transaction() as db:
            row = await db.get(ApiKeyModel, provider)
            encoded = row.key_hash if row is not None else None

        if encoded:
            try:
                key = decode_key(encoded)
                logger.debug(f"Found stored API key for {provider}: {mask_key(key)}")
                return key
            except (binascii.Error, UnicodeDecodeError, ValueError) as e:
                logger.warning(f"Stored API key for {provider} could not be decoded: {e}")

        env_key = self.env_keys.get(provider) or None
        logger.debug(f"Environment API key for {provider}: {mask_key(env_key)}")
        return env_key

    async def get_credentials(self) -> Dict[str, Optional[str]]:
        """Decoded keys of every supported provider."""
        return {provider: await self.get_actual(provider) for provider in SUPPORTED_PROVIDERS}
