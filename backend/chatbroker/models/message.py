"""
Message Models - persisted chat turns and the structured image metadata.
"""

import json
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict


class ImageMetadata(BaseModel):
    """Generation details kept alongside an image result."""
    prompt: Optional[str] = None
    revised_prompt: Optional[str] = None
    image_url: str
    size: Optional[str] = None
    quality: Optional[str] = None  # premium image model only
    style: Optional[str] = None  # premium image model only

    def to_storage(self) -> str:
        """Serialize for the ``image_metadata`` text column."""
        data: Dict[str, Any] = self.model_dump()
        for optional_key in ("quality", "style"):
            if data[optional_key] is None:
                del data[optional_key]
        return json.dumps(data, ensure_ascii=False)

    @classmethod
    def from_storage(cls, raw: Optional[str]) -> Optional["ImageMetadata"]:
        if not raw:
            return None
        return cls.model_validate(json.loads(raw))


class Message(BaseModel):
    """Message row as exposed to callers."""
    model_config = ConfigDict(protected_namespaces=())

    id: str
    session_id: str
    content: str
    role: Literal["user", "assistant"]
    model: Optional[str] = None
    timestamp: datetime
    token_count: int = 0
    content_type: Literal["text", "image"] = "text"
    image_metadata: Optional[ImageMetadata] = None

    @classmethod
    def from_row(cls, row: Any) -> "Message":
        return cls(
            id=row.id,
            session_id=row.session_id,
            content=row.content,
            role=row.role,
            model=row.model,
            timestamp=row.timestamp,
            token_count=row.token_count or 0,
            # Rows predating the content_type column read as text
            content_type=row.content_type or "text",
            image_metadata=ImageMetadata.from_storage(row.image_metadata),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Row shape with image metadata in its stored (optional-key) form."""
        data = self.model_dump(mode="json")
        if self.image_metadata is not None:
            data["image_metadata"] = json.loads(self.image_metadata.to_storage())
        return data
