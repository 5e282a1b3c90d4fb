"""Append-only store for conversation turns.

Every ``append`` commits immediately and returns the persisted row,
including the database-assigned ``id`` and ``created_at``.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from src.db.models import Message, Role
from src.db.schemas import MessageCreate, parse_input
from src.errors import StoreError, ValidationError

logger = logging.getLogger(__name__)


class MessageStore:
    """Durable log of ``user`` / ``assistant`` turns ordered by creation time."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def append(self, role: Role | str, content: str, *, strict: bool = True) -> Message:
        """Persist one turn and return it.

        With ``strict=False`` only the role is checked; model replies are
        stored as produced, even when empty or longer than a user may type.
        """
        if strict:
            parsed = parse_input(MessageCreate, {"role": role, "content": content})
            role, content = parsed.role, parsed.content
        else:
            try:
                role = Role(role)
            except ValueError as exc:
                raise ValidationError(f"role: unknown role {role!r}") from exc

        with self._session_factory() as session:
            row = Message(role=Role(role).value, content=content)
            session.add(row)
            try:
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise StoreError(str(exc)) from exc
            session.refresh(row)

        logger.debug("Stored %s message id=%d (%d chars)", row.role, row.id, len(row.content))
        return row

    def recent(self, limit: int) -> list[Message]:
        """Return at most *limit* messages, most-recent-first."""
        if limit <= 0:
            return []
        stmt = (
            select(Message)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
        )
        with self._session_factory() as session:
            return list(session.scalars(stmt))

    def all(self) -> list[Message]:
        """Return every message, oldest-first."""
        stmt = select(Message).order_by(Message.created_at.asc(), Message.id.asc())
        with self._session_factory() as session:
            return list(session.scalars(stmt))

    def clear(self) -> int:
        """Delete every message and return how many rows were removed."""
        with self._session_factory() as session:
            result = session.execute(delete(Message))
            session.commit()
        removed = result.rowcount or 0
        logger.info("Cleared %d messages", removed)
        return removed
