"""
Message Store - append-only conversation history and the usage aggregate.

Appending a message touches its parent session in the same transaction.
``usage_stats`` is the single aggregate primitive; every report is derived
from its rows by the caller.
"""

import logging
from typing import Any, List, Mapping, Optional, Union

from sqlalchemy import delete, func, literal_column, select

from ..core.errors import NotFoundError
from ..models.message import ImageMetadata, Message
from ..models.report import UsageStat
from .database import Database, new_id, utcnow
from .orm import MessageModel, SessionModel
from .session_store import touch_session

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"content", "model", "token_count", "content_type", "image_metadata"})

ImageMetadataLike = Union[ImageMetadata, Mapping[str, Any]]


def _serialize_image_metadata(value: Optional[ImageMetadataLike]) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, ImageMetadata):
        value = ImageMetadata.model_validate(dict(value))
    return value.to_storage()


class MessageStore:
    """Persistence operations for messages."""

    def __init__(self, database: Database):
        self.database = database

    async def create(
        self,
        session_id: str,
        content: str,
        role: str,
        model: Optional[str] = None,
        token_count: int = 0,
        content_type: str = "text",
        image_metadata: Optional[ImageMetadataLike] = None,
    ) -> Message:
        """
        Append a message to a session.

        The parent session's ``updated_at`` is advanced and, when ``model`` is
        not None, its ``model_used`` is set, in the same transaction.

        Raises:
            NotFoundError: If the session does not exist
            PersistenceError: If the row violates a constraint (e.g. an unknown role)
        """
        async with self.database.transaction() as db:
            session_row = await db.get(SessionModel, session_id)
            if session_row is None:
                raise NotFoundError(f"Session not found: {session_id}")

            row = MessageModel(
                id=new_id(),
                session_id=session_id,
                content=content,
                role=role,
                model=model,
                timestamp=utcnow(),
                token_count=token_count,
                content_type=content_type,
                image_metadata=_serialize_image_metadata(image_metadata),
            )
            db.add(row)
            touch_session(session_row, model)
            await db.flush()
            message = Message.from_row(row)

        logger.debug(
            "Message stored",
            extra={"extra_fields": {
                "session_id": session_id,
                "message_id": message.id,
                "role": role,
                "content_type": content_type,
                "token_count": token_count,
            }}
        )
        return message

    async def get(self, message_id: str) -> Optional[Message]:
        async with self.database.transaction() as db:
            row = await db.get(MessageModel, message_id)
            return Message.from_row(row) if row is not None else None

    async def list_for_session(self, session_id: str, limit: int = 100) -> List[Message]:
        """
        Messages of a session, oldest first.

        Args:
            session_id: Owning session id
            limit: Maximum number of messages
        """
        stmt = (
            select(MessageModel)
            .where(MessageModel.session_id == session_id)
            .order_by(MessageModel.timestamp.asc())
            .limit(limit)
        )
        async with self.database.transaction() as db:
            rows = (await db.execute(stmt)).scalars().all()
            return [Message.from_row(row) for row in rows]

    async def list_recent_for_session(self, session_id: str, limit: int = 100) -> List[Message]:
        """
        The newest ``limit`` messages of a session, returned oldest first.

        Rows sharing a timestamp keep their insertion order.
        """
        stmt = (
            select(MessageModel)
            .where(MessageModel.session_id == session_id)
            .order_by(MessageModel.timestamp.desc(), literal_column("messages.rowid").desc())
            .limit(limit)
        )
        async with self.database.transaction() as db:
            rows = (await db.execute(stmt)).scalars().all()
            return [Message.from_row(row) for row in reversed(rows)]

    async def update(self, message_id: str, **fields) -> Optional[Message]:
        """
        Explicit update path for an existing message.

        Raises:
            ValueError: If a non-updatable field is given
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update message fields: {sorted(unknown)}")
        if "image_metadata" in fields:
            fields["image_metadata"] = _serialize_image_metadata(fields["image_metadata"])

        async with self.database.transaction() as db:
            row = await db.get(MessageModel, message_id)
            if row is None:
                return None
            for name, value in fields.items():
                setattr(row, name, value)
            await db.flush()
            return Message.from_row(row)

    async def delete(self, message_id: str) -> bool:
        async with self.database.transaction() as db:
            result = await db.execute(delete(MessageModel).where(MessageModel.id == message_id))
            return result.rowcount > 0

    async def usage_stats(self) -> List[UsageStat]:
        """
        Group assistant messages by (model, calendar day, content_type).

        Returns:
            List[UsageStat]: count and summed token_count per group, newest day first
        """
        day = func.date(MessageModel.timestamp)
        content_type = func.coalesce(MessageModel.content_type, "text")
        stmt = (
            select(
                MessageModel.model,
                func.count(MessageModel.id),
                func.coalesce(func.sum(MessageModel.token_count), 0),
                day,
                content_type,
            )
            .where(MessageModel.role == "assistant")
            .group_by(MessageModel.model, day, content_type)
            .order_by(day.desc())
        )
        async with self.database.transaction() as db:
            rows = (await db.execute(stmt)).all()

        return [
            UsageStat(
                model=model,
                message_count=count,
                total_tokens=int(tokens or 0),
                date=str(date),
                content_type=ctype,
            )
            for model, count, tokens, date, ctype in rows
        ]
