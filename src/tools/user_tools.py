"""LangChain tools for managing blog users.

Each tool wraps one :class:`EntityStore` method and returns a human-readable
string.  Empty results are spelled out ("No users found...") because the
consumer is a language model that must be told explicitly when nothing
matched.
"""

from __future__ import annotations

import json
import logging

from langchain_core.tools import BaseTool, tool
from pydantic import BaseModel, Field

from src.db.schemas import UserCreate
from src.errors import StoreError, ValidationError
from src.services.entity_store import EntityStore

logger = logging.getLogger(__name__)


class GetUserArgs(BaseModel):
    id: int = Field(..., gt=0, description="The user's ID")


def create_user_tools(store: EntityStore) -> list[BaseTool]:
    """Build the user tools bound to *store*."""

    @tool("create_user", args_schema=UserCreate)
    def create_user(name: str, email: str, bio: str | None = None) -> str:
        """Create a new user in the database.

        Use this when asked to add, create, or register a user. Provide the
        user's name, email, and optionally a bio.
        """
        try:
            user = store.create_user({"name": name, "email": email, "bio": bio})
        except (ValidationError, StoreError) as e:
            logger.warning("create_user failed: %s", e)
            return f"Could not create user {name} <{email}>: {e}"
        return f"Successfully created user: {user.name} (ID: {user.id}, Email: {user.email})"

    @tool("get_user", args_schema=GetUserArgs)
    def get_user(id: int) -> str:  # noqa: A002 — matches the tool's argument name
        """Get detailed information about a specific user by their ID, including their posts.

        Use this when you need to look up user details or check if a user exists.
        """
        user = store.get_user(id)
        if user is None:
            return f"User with ID {id} not found"
        return json.dumps(
            {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "bio": user.bio,
                "postCount": len(user.posts),
                "createdAt": user.created_at.isoformat(),
            },
            indent=2,
        )

    @tool
    def list_users() -> str:
        """Get a list of all users in the database.

        Use this to see who exists in the system or when asked to show all users.
        """
        users = store.list_users()
        if not users:
            return "No users found in the database."
        return json.dumps(
            [{"id": u.id, "name": u.name, "email": u.email} for u in users],
            indent=2,
        )

    @tool
    def count_users() -> str:
        """Count the total number of users in the database.

        Use this when asked 'how many users' or to get user statistics.
        """
        return f"Total users in database: {store.count_users()}"

    return [create_user, get_user, list_users, count_users]
