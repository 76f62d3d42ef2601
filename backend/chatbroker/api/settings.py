"""
Settings API endpoints - string settings and provider API keys.

Stored API keys are only ever reported as existence plus timestamps.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..core.errors import ChatBrokerError, InvalidRequestError, NotFoundError
from ..llm import LLMService
from ..models import ApiKeyTest, SettingsUpdate, SettingValue
from ..storage import SUPPORTED_PROVIDERS
from ..storage.stores import Stores
from .deps import get_llm_service, get_stores

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["settings"])


async def _settings_snapshot(stores: Stores) -> Dict[str, Any]:
    api_keys = await stores.api_keys.list()
    return {
        "settings": await stores.settings.get_all(),
        "apiKeys": {
            provider: status.model_dump(mode="json", by_alias=True)
            for provider, status in api_keys.items()
        },
    }


@router.get("/settings")
async def get_settings(stores: Stores = Depends(get_stores)):
    return await _settings_snapshot(stores)


@router.put("/settings")
async def update_settings(update: SettingsUpdate, stores: Stores = Depends(get_stores)):
    """
    Update settings and/or API keys.

    Providers are checked before anything is written, so a rejected request
    changes nothing. Settings are written as one unit; empty API key values
    are skipped.
    """
    api_keys = {
        provider: api_key
        for provider, api_key in (update.api_keys or {}).items()
        if api_key and api_key.strip()
    }
    for provider in api_keys:
        if provider not in SUPPORTED_PROVIDERS:
            raise InvalidRequestError(f"Unsupported provider: {provider}")

    if update.settings:
        await stores.settings.set_multiple(update.settings)
    for provider, api_key in api_keys.items():
        await stores.api_keys.set(provider, api_key)

    return {"message": "Settings updated successfully", **await _settings_snapshot(stores)}


@router.get("/settings/{key}")
async def get_setting(key: str, stores: Stores = Depends(get_stores)):
    value = await stores.settings.get(key)
    if value is None:
        raise NotFoundError("Setting not found")
    return {"key": key, "value": value}


@router.put("/settings/{key}")
async def put_setting(key: str, body: SettingValue, stores: Stores = Depends(get_stores)):
    if body.value is None:
        raise InvalidRequestError("Value is required")
    stored = await stores.settings.set(key, body.value)
    return {**stored, "message": "Setting updated successfully"}


@router.delete("/settings/{key}")
async def delete_setting(key: str, stores: Stores = Depends(get_stores)):
    if not await stores.settings.delete(key):
        raise NotFoundError("Setting not found")
    return {"message": "Setting deleted successfully"}


@router.post("/settings/test-api-key")
async def test_api_key(body: ApiKeyTest, llm_service: LLMService = Depends(get_llm_service)):
    """
    Check a key against its provider with a short prompt.

    The key is used for this call only and is not stored.
    """
    if not body.provider or not body.api_key:
        raise InvalidRequestError("Provider and API key are required")
    if body.provider not in SUPPORTED_PROVIDERS:
        raise InvalidRequestError("Unsupported provider")

    try:
        result = await llm_service.check_api_key(body.provider, body.api_key)
    except ChatBrokerError as e:
        logger.warning(f"API key test failed for {body.provider}: {e.message}")
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": e.message, "type": e.error_type},
        )

    return {
        "success": True,
        "message": "API key is valid",
        "provider": body.provider,
        "testResponse": result.content[:100] + "...",
    }
