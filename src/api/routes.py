"""FastAPI route definitions for the chat and blog-entity API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Query, Request, Response

from src.api.schemas import (
    ChatRequest,
    ChatResponse,
    ClearResponse,
    CountResponse,
    HealthResponse,
    MessageOut,
    PostOut,
    PostWithUser,
    ToolCallOut,
    UserOut,
    UserWithPosts,
)
from src.db.schemas import PostCreate, PostUpdate, UserCreate, UserUpdate
from src.errors import NotFoundError, StoreError, UpstreamGenerationError, ValidationError
from src.services.chat_service import ChatService
from src.services.entity_store import DEFAULT_POST_LIMIT, MAX_POST_LIMIT, EntityStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_chat_service(request: Request) -> ChatService:
    """Retrieve the chat service initialised during the FastAPI lifespan."""
    service = getattr(request.app.state, "chat_service", None)
    if service is None:
        raise HTTPException(
            status_code=503,
            detail="The chat service is still starting up. Please try again in a moment.",
        )
    return service


def _get_entity_store(request: Request) -> EntityStore:
    store = getattr(request.app.state, "entity_store", None)
    if store is None:
        raise HTTPException(
            status_code=503,
            detail="The database is still starting up. Please try again in a moment.",
        )
    return store


# ── Health ───────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


# ── Chat ─────────────────────────────────────────────────────────────


@router.post("/chat", response_model=ChatResponse, response_model_exclude_none=True)
async def chat(request: ChatRequest, http_request: Request):
    """Send a message and get the assistant's reply.

    ``service.chat()`` blocks on the model call, so it is offloaded to a
    worker thread to keep the event loop responsive.
    """
    service = _get_chat_service(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        result = await asyncio.to_thread(service.chat, request.message, request.character)
    except (ValidationError, StoreError, UpstreamGenerationError):
        raise
    except Exception as e:
        # Log the full traceback server-side, but do NOT leak it to the client
        logger.exception("[%s] Error processing chat request", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e

    logger.info(
        "[%s] chat turn stored (user=%d, assistant=%d, tools=%d)",
        request_id,
        result.user_message.id,
        result.assistant_message.id,
        len(result.tool_calls or []),
    )
    return ChatResponse(
        user_message=MessageOut.model_validate(result.user_message),
        assistant_message=MessageOut.model_validate(result.assistant_message),
        tool_calls=(
            [ToolCallOut.model_validate(c) for c in result.tool_calls]
            if result.tool_calls
            else None
        ),
    )


@router.get("/messages", response_model=list[MessageOut])
def get_messages(http_request: Request):
    """All stored turns, oldest first."""
    return _get_chat_service(http_request).get_messages()


@router.delete("/messages", response_model=ClearResponse)
def clear_messages(http_request: Request):
    """Delete the whole conversation history."""
    return ClearResponse(deleted=_get_chat_service(http_request).clear_messages())


# ── Users ────────────────────────────────────────────────────────────


@router.post("/users", response_model=UserOut, status_code=201)
def create_user(body: UserCreate, http_request: Request):
    return _get_entity_store(http_request).create_user(body)


@router.get("/users", response_model=list[UserOut])
def list_users(http_request: Request):
    return _get_entity_store(http_request).list_users()


@router.get("/users/count", response_model=CountResponse)
def count_users(http_request: Request):
    return CountResponse(count=_get_entity_store(http_request).count_users())


@router.get("/users/{user_id}", response_model=UserWithPosts)
def get_user(user_id: int, http_request: Request):
    user = _get_entity_store(http_request).get_user(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


@router.patch("/users/{user_id}", response_model=UserOut)
def update_user(user_id: int, body: UserUpdate, http_request: Request):
    user = _get_entity_store(http_request).update_user(user_id, body)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


@router.delete("/users/{user_id}", status_code=204)
def delete_user(user_id: int, http_request: Request):
    if not _get_entity_store(http_request).delete_user(user_id):
        raise NotFoundError("User", user_id)
    return Response(status_code=204)


@router.get("/users/{user_id}/posts", response_model=list[PostOut])
def list_posts_by_user(user_id: int, http_request: Request):
    return _get_entity_store(http_request).list_posts_by_user(user_id)


# ── Posts ────────────────────────────────────────────────────────────


@router.post("/posts", response_model=PostOut, status_code=201)
def create_post(body: PostCreate, http_request: Request):
    return _get_entity_store(http_request).create_post(body)


@router.get("/posts", response_model=list[PostWithUser])
def list_posts(
    http_request: Request,
    limit: int = Query(DEFAULT_POST_LIMIT, ge=1, le=MAX_POST_LIMIT),
):
    return _get_entity_store(http_request).list_posts(limit)


@router.get("/posts/{post_id}", response_model=PostWithUser)
def get_post(post_id: int, http_request: Request):
    post = _get_entity_store(http_request).get_post(post_id)
    if post is None:
        raise NotFoundError("Post", post_id)
    return post


@router.patch("/posts/{post_id}", response_model=PostOut)
def update_post(post_id: int, body: PostUpdate, http_request: Request):
    post = _get_entity_store(http_request).update_post(post_id, body)
    if post is None:
        raise NotFoundError("Post", post_id)
    return post
