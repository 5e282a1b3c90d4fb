"""Pydantic schemas for the FastAPI endpoints.

Responses are serialised with camelCase keys (``createdAt``,
``assistantMessage``); request bodies accept either spelling.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.db.models import Role
from src.db.schemas import MAX_MESSAGE_LENGTH
from src.prompts import Persona


class _ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Chat ─────────────────────────────────────────────────────────────


class ChatRequest(_ApiModel):
    """Incoming chat message from the frontend."""

    message: str = Field(
        ..., min_length=1, max_length=MAX_MESSAGE_LENGTH, description="The user's message"
    )
    character: Persona | None = Field(
        default=None, description="Persona for plain chat mode (default: 'default')"
    )


class MessageOut(_ApiModel):
    id: int
    role: Role
    content: str
    created_at: datetime


class ToolCallOut(_ApiModel):
    tool_name: str
    input: dict[str, Any]
    output: str | None = None
    timestamp: datetime
    success: bool


class ChatResponse(_ApiModel):
    """Both turns of the exchange, plus the agent's tool trace if any."""

    user_message: MessageOut
    assistant_message: MessageOut
    tool_calls: list[ToolCallOut] | None = None


class ClearResponse(_ApiModel):
    deleted: int


# ── Users & posts ────────────────────────────────────────────────────


class UserOut(_ApiModel):
    id: int
    name: str
    email: str
    bio: str | None = None
    created_at: datetime
    updated_at: datetime


class PostOut(_ApiModel):
    id: int
    user_id: int
    title: str
    content: str
    published: bool
    created_at: datetime
    updated_at: datetime


class UserWithPosts(UserOut):
    posts: list[PostOut] = []


class PostWithUser(PostOut):
    user: UserOut | None = None


class CountResponse(_ApiModel):
    count: int


# ── Misc ─────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "blog-agent-chat"
