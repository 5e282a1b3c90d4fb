"""Pydantic input schemas for the persistence layer.

Every store write goes through one of these models so that bad input is
rejected with :class:`src.errors.ValidationError` before any SQL runs.
Field names are snake_case; camelCase aliases (``userId``) are accepted too
so API payloads can be passed straight through.
"""

from __future__ import annotations

import re
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from src.db.models import Role
from src.errors import ValidationError

MAX_MESSAGE_LENGTH = 10_000

# RFC 5322-ish pattern — covers the vast majority of real-world emails
# without requiring an external dependency.
_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)


def _validate_email(email: str) -> str | None:
    """Return an error message if *email* looks invalid, else ``None``."""
    if not email or not email.strip():
        return "No email address was provided."
    email = email.strip()
    if not _EMAIL_RE.match(email):
        return f'"{email}" does not look like a valid email address.'
    return None


class _StoreInput(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class MessageCreate(_StoreInput):
    role: Role
    content: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)


class UserCreate(_StoreInput):
    name: str = Field(..., min_length=1, max_length=255, description="The user's full name")
    email: str = Field(..., max_length=255, description="The user's email address")
    bio: str | None = Field(
        default=None,
        max_length=1000,
        description="Optional biography or description about the user",
    )

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str) -> str:
        error = _validate_email(value)
        if error:
            raise ValueError(error)
        return value.strip()


class UserUpdate(_StoreInput):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    bio: str | None = Field(default=None, max_length=1000)

    @field_validator("email")
    @classmethod
    def _check_email(cls, value: str | None) -> str | None:
        if value is None:
            return value
        error = _validate_email(value)
        if error:
            raise ValueError(error)
        return value.strip()


class PostCreate(_StoreInput):
    user_id: int = Field(..., gt=0, description="The ID of the user who is creating the post")
    title: str = Field(..., min_length=1, max_length=500, description="The post title")
    content: str = Field(..., min_length=1, description="The post content/body")
    published: bool = Field(
        default=False, description="Whether to publish immediately (default: false)"
    )


class PostUpdate(_StoreInput):
    user_id: int | None = Field(default=None, gt=0)
    title: str | None = Field(default=None, min_length=1, max_length=500)
    content: str | None = Field(default=None, min_length=1)
    published: bool | None = None


_M = TypeVar("_M", bound=BaseModel)


def describe_validation_error(exc: PydanticValidationError) -> str:
    """Flatten pydantic's error list into one readable sentence."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid input"


def parse_input(model: type[_M], data: _M | dict[str, Any]) -> _M:
    """Validate *data* against *model*, raising our ``ValidationError``."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(describe_validation_error(exc)) from exc
