"""CRUD store for the blog entities (users and posts).

These rows exist to give the agent something to manipulate.  Reads return
detached ORM objects with the relationships each caller needs eagerly
loaded (``get_user`` → posts, ``get_post`` / ``list_posts`` → author).
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker

from src.db.models import Post, User
from src.db.schemas import PostCreate, PostUpdate, UserCreate, UserUpdate, parse_input
from src.errors import StoreError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_POST_LIMIT = 50
MAX_POST_LIMIT = 100

# Columns that may be explicitly set to NULL through an update
_NULLABLE_USER_FIELDS = {"bio"}


def _changes(update: UserUpdate | PostUpdate, nullable: set[str] = frozenset()) -> dict[str, Any]:
    """Return only the fields the caller actually supplied."""
    changes = update.model_dump(exclude_unset=True)
    for key, value in changes.items():
        if value is None and key not in nullable:
            raise ValidationError(f"{key}: may not be null")
    return changes


def _check_id(value: int, name: str = "id") -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValidationError(f"{name}: must be a positive integer")


class EntityStore:
    """Users and their posts."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    # ── Internal helpers ─────────────────────────────────────────────

    def _commit(self, session: Session) -> None:
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            logger.info("Integrity violation: %s", exc.orig)
            raise StoreError(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreError(str(exc)) from exc

    # ── Users ────────────────────────────────────────────────────────

    def create_user(self, data: UserCreate | dict[str, Any]) -> User:
        payload = parse_input(UserCreate, data)
        with self._session_factory() as session:
            user = User(**payload.model_dump())
            session.add(user)
            self._commit(session)
            session.refresh(user)
        logger.debug("Created user id=%d email=%s", user.id, user.email)
        return user

    def update_user(self, user_id: int, data: UserUpdate | dict[str, Any]) -> User | None:
        """Apply a partial update.  ``updated_at`` is always bumped."""
        _check_id(user_id)
        changes = _changes(parse_input(UserUpdate, data), _NULLABLE_USER_FIELDS)
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if user is None:
                return None
            for key, value in changes.items():
                setattr(user, key, value)
            user.updated_at = func.now()
            self._commit(session)
            session.refresh(user)
        return user

    def get_user(self, user_id: int) -> User | None:
        """Return the user with their posts, or ``None``."""
        _check_id(user_id)
        stmt = select(User).where(User.id == user_id).options(selectinload(User.posts))
        with self._session_factory() as session:
            return session.scalars(stmt).first()

    def list_users(self) -> list[User]:
        stmt = select(User).order_by(User.created_at.desc(), User.id.desc())
        with self._session_factory() as session:
            return list(session.scalars(stmt))

    def count_users(self) -> int:
        with self._session_factory() as session:
            return session.scalar(select(func.count()).select_from(User)) or 0

    def delete_user(self, user_id: int) -> bool:
        """Delete a user and, by cascade, their posts."""
        _check_id(user_id)
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if user is None:
                return False
            session.delete(user)
            self._commit(session)
        logger.info("Deleted user id=%d", user_id)
        return True

    # ── Posts ────────────────────────────────────────────────────────

    def create_post(self, data: PostCreate | dict[str, Any]) -> Post:
        payload = parse_input(PostCreate, data)
        with self._session_factory() as session:
            post = Post(**payload.model_dump())
            session.add(post)
            self._commit(session)
            session.refresh(post)
        logger.debug("Created post id=%d for user %d", post.id, post.user_id)
        return post

    def update_post(self, post_id: int, data: PostUpdate | dict[str, Any]) -> Post | None:
        """Apply a partial update.  ``updated_at`` is always bumped."""
        _check_id(post_id)
        changes = _changes(parse_input(PostUpdate, data))
        with self._session_factory() as session:
            post = session.get(Post, post_id)
            if post is None:
                return None
            for key, value in changes.items():
                setattr(post, key, value)
            post.updated_at = func.now()
            self._commit(session)
            session.refresh(post)
        return post

    def get_post(self, post_id: int) -> Post | None:
        """Return the post with its author, or ``None``."""
        _check_id(post_id)
        stmt = select(Post).where(Post.id == post_id).options(selectinload(Post.user))
        with self._session_factory() as session:
            return session.scalars(stmt).first()

    def list_posts(self, limit: int = DEFAULT_POST_LIMIT) -> list[Post]:
        """Newest posts first, each with its author loaded."""
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_POST_LIMIT:
            raise ValidationError(f"limit: must be between 1 and {MAX_POST_LIMIT}")
        stmt = (
            select(Post)
            .options(selectinload(Post.user))
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(limit)
        )
        with self._session_factory() as session:
            return list(session.scalars(stmt))

    def list_posts_by_user(self, user_id: int) -> list[Post]:
        _check_id(user_id, "user_id")
        stmt = (
            select(Post)
            .where(Post.user_id == user_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
        )
        with self._session_factory() as session:
            return list(session.scalars(stmt))
