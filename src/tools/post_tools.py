"""LangChain tools for managing blog posts."""

from __future__ import annotations

import json
import logging

from langchain_core.tools import BaseTool, tool
from pydantic import BaseModel, Field

from src.errors import StoreError, ValidationError
from src.services.entity_store import EntityStore

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 100


class CreatePostArgs(BaseModel):
    userId: int = Field(..., gt=0, description="The ID of the user who is creating the post")
    title: str = Field(..., min_length=1, max_length=500, description="The post title")
    content: str = Field(..., min_length=1, description="The post content/body")
    published: bool = Field(
        default=False, description="Whether to publish immediately (default: false)"
    )


class PostsByUserArgs(BaseModel):
    userId: int = Field(..., gt=0, description="The user's ID whose posts you want to retrieve")


def create_post_tools(store: EntityStore) -> list[BaseTool]:
    """Build the post tools bound to *store*."""

    @tool("create_post", args_schema=CreatePostArgs)
    def create_post(userId: int, title: str, content: str, published: bool = False) -> str:  # noqa: N803
        """Create a new blog post for a specific user.

        You must provide the userId of the author, along with the post title
        and content. Optionally specify if it should be published immediately.
        """
        try:
            post = store.create_post(
                {"user_id": userId, "title": title, "content": content, "published": published}
            )
        except (ValidationError, StoreError) as e:
            # Most commonly an unknown userId (foreign key violation)
            logger.warning("create_post failed for user %s: %s", userId, e)
            return f"Could not create post for user {userId}: {e}"
        return (
            f'Successfully created post: "{post.title}" (ID: {post.id}) '
            f"for user {post.user_id}. Published: {str(post.published).lower()}"
        )

    @tool("get_posts_by_user", args_schema=PostsByUserArgs)
    def get_posts_by_user(userId: int) -> str:  # noqa: N803
        """Get all posts created by a specific user.

        Use this to see what a user has written or to check a user's posts.
        """
        posts = store.list_posts_by_user(userId)
        if not posts:
            return f"User {userId} has not created any posts yet."
        return json.dumps(
            [
                {
                    "id": p.id,
                    "title": p.title,
                    "published": p.published,
                    "contentPreview": p.content[:PREVIEW_CHARS] + "...",
                    "createdAt": p.created_at.isoformat(),
                }
                for p in posts
            ],
            indent=2,
        )

    @tool
    def list_posts() -> str:
        """Get a list of all posts in the database with their authors.

        Use this to see all posts across all users.
        """
        posts = store.list_posts()
        if not posts:
            return "No posts found in the database."
        return json.dumps(
            [
                {
                    "id": p.id,
                    "title": p.title,
                    "authorName": p.user.name if p.user else "Unknown",
                    "published": p.published,
                    "createdAt": p.created_at.isoformat(),
                }
                for p in posts
            ],
            indent=2,
        )

    return [create_post, get_posts_by_user, list_posts]
