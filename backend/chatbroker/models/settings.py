"""
Settings Models - API key status and settings request bodies.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiKeyStatus(BaseModel):
    """What callers may learn about a stored key: that it exists, and when."""
    model_config = ConfigDict(populate_by_name=True)

    is_set: bool = Field(True, alias="isSet")
    created_at: datetime
    updated_at: datetime


class SettingsUpdate(BaseModel):
    """Body of ``PUT /api/settings``."""
    model_config = ConfigDict(populate_by_name=True)

    settings: Optional[Dict[str, Any]] = None
    api_keys: Optional[Dict[str, Optional[str]]] = Field(None, alias="apiKeys")


class SettingValue(BaseModel):
    """Body of ``PUT /api/settings/{key}``."""
    value: Any = None


class ApiKeyTest(BaseModel):
    """Body of ``POST /api/settings/test-api-key``."""
    model_config = ConfigDict(populate_by_name=True)

    provider: Optional[str] = None
    api_key: Optional[str] = Field(None, alias="apiKey")
