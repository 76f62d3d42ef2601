"""
Session Store - create, read, update and delete conversation sessions.

Message counts and last-message timestamps are computed at read time with
an outer join; nothing is maintained incrementally.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.session import Session
from .database import Database, new_id, utcnow
from .orm import MessageModel, SessionModel

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({"title", "model_used"})


def touch_session(row: SessionModel, model: Optional[str] = None) -> None:
    """
    Advance ``updated_at`` (never backwards) and record the model, if given.

    A ``None`` model leaves ``model_used`` untouched.
    """
    now = utcnow()
    if row.updated_at is None or now > row.updated_at:
        row.updated_at = now
    if model is not None:
        row.model_used = model


class SessionStore:
    """Persistence operations for sessions."""

    def __init__(self, database: Database):
        self.database = database

    async def create(self, title: Optional[str] = None, model_used: Optional[str] = None) -> Session:
        """
        Create a new session.

        Args:
            title: Optional title (usually derived from the first prompt)
            model_used: Optional initial model id

        Returns:
            Session: The created session with ``message_count`` 0
        """
        now = utcnow()
        async with self.database.transaction() as db:
            row = SessionModel(
                id=new_id(),
                title=title,
                model_used=model_used,
                created_at=now,
                updated_at=now,
            )
            db.add(row)
            await db.flush()
            session = Session.from_row(row, message_count=0)

        logger.info("Session created", extra={"extra_fields": {"session_id": session.id}})
        return session

    async def get(self, session_id: str) -> Optional[Session]:
        """
        Get a session annotated with its message count.

        Returns:
            Optional[Session]: The session, or None if it does not exist
        """
        stmt = (
            self._stats_query()
            .where(SessionModel.id == session_id)
        )
        async with self.database.transaction() as db:
            result = (await db.execute(stmt)).first()
        if result is None:
            return None
        row, message_count, last_message_at = result
        return Session.from_row(row, message_count, last_message_at)

    async def list_with_stats(self, limit: int = 50) -> List[Session]:
        """
        List sessions with message_count and last_message_at.

        Args:
            limit: Maximum number of sessions, most recently updated first
        """
        stmt = (
            self._stats_query()
            .order_by(SessionModel.updated_at.desc())
            .limit(limit)
        )
        async with self.database.transaction() as db:
            rows = (await db.execute(stmt)).all()
        return [Session.from_row(row, count, last) for row, count, last in rows]

    async def count(self) -> int:
        async with self.database.transaction() as db:
            return (await db.execute(select(func.count(SessionModel.id)))).scalar_one()

    async def update(self, session_id: str, **fields) -> Optional[Session]:
        """
        Update title and/or model_used; always advances ``updated_at``.

        Returns:
            Optional[Session]: The updated session, or None if it does not exist

        Raises:
            ValueError: If a field other than title/model_used is given
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update session fields: {sorted(unknown)}")

        async with self.database.transaction() as db:
            row = await db.get(SessionModel, session_id)
            if row is None:
                return None
            for name, value in fields.items():
                setattr(row, name, value)
            touch_session(row)
            await db.flush()
            return Session.from_row(row)

    async def delete(self, session_id: str) -> bool:
        """
        Delete a session and all of its messages in one transaction.

        Returns:
            bool: True if a session row was removed
        """
        async with self.database.transaction() as db:
            deleted_messages = await self._delete_messages(db, session_id)
            result = await db.execute(delete(SessionModel).where(SessionModel.id == session_id))
            removed = result.rowcount > 0

        if removed:
            logger.info(
                "Session deleted",
                extra={"extra_fields": {"session_id": session_id, "messages_deleted": deleted_messages}}
            )
        return removed

    @staticmethod
    async def _delete_messages(db: AsyncSession, session_id: str) -> int:
        result = await db.execute(delete(MessageModel).where(MessageModel.session_id == session_id))
        return result.rowcount

    @staticmethod
    def _stats_query():
        return (
            select(
                SessionModel,
                func.count(MessageModel.id).label("message_count"),
                func.max(MessageModel.timestamp).label("last_message_at"),
            )
            .outerjoin(MessageModel, MessageModel.session_id == SessionModel.id)
            .group_by(SessionModel.id)
        )
