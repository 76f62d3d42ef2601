"""
Report Models - usage aggregate rows.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class UsageStat(BaseModel):
    """Assistant messages grouped by (model, day, content_type)."""
    model_config = ConfigDict(protected_namespaces=())

    model: Optional[str] = None
    message_count: int
    total_tokens: int
    date: str  # YYYY-MM-DD
    content_type: str
