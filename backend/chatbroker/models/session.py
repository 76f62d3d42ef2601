"""
Session Models - Defines structures for chat sessions.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class Session(BaseModel):
    """Session row, optionally annotated with read-time statistics."""
    model_config = ConfigDict(protected_namespaces=())

    id: str
    created_at: datetime
    updated_at: datetime
    title: Optional[str] = None
    model_used: Optional[str] = None

    # Computed at read time
    message_count: Optional[int] = None
    last_message_at: Optional[datetime] = None

    @classmethod
    def from_row(
        cls,
        row: Any,
        message_count: Optional[int] = None,
        last_message_at: Optional[datetime] = None,
    ) -> "Session":
        return cls(
            id=row.id,
            created_at=row.created_at,
            updated_at=row.updated_at,
            title=row.title,
            model_used=row.model_used,
            message_count=message_count,
            last_message_at=last_message_at,
        )

