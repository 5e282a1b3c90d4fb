"""Tests for the user and post LangChain tools."""

from __future__ import annotations

import json

import pytest

from src.tools.post_tools import create_post_tools
from src.tools.user_tools import create_user_tools


@pytest.fixture
def tools(entity_store):
    return {t.name: t for t in [*create_user_tools(entity_store), *create_post_tools(entity_store)]}


class TestToolCatalogue:
    def test_tool_names(self, tools):
        assert set(tools) == {
            "create_user",
            "get_user",
            "list_users",
            "count_users",
            "create_post",
            "get_posts_by_user",
            "list_posts",
        }

    def test_every_tool_has_a_description(self, tools):
        for tool in tools.values():
            assert tool.description.strip()

    def test_create_post_schema_uses_user_id_argument(self, tools):
        assert "userId" in tools["create_post"].args


class TestUserTools:
    def test_create_user_confirms_with_id(self, tools, entity_store):
        result = tools["create_user"].invoke({"name": "Ada", "email": "ada@example.com"})
        assert result == "Successfully created user: Ada (ID: 1, Email: ada@example.com)"
        assert entity_store.count_users() == 1

    def test_create_user_with_taken_email_reports_failure(self, tools, ada):
        result = tools["create_user"].invoke({"name": "Copy", "email": ada.email})
        assert result.startswith("Could not create user")
        assert "ada@example.com" in result

    def test_get_user_not_found_is_a_sentence(self, tools):
        assert tools["get_user"].invoke({"id": 99}) == "User with ID 99 not found"

    def test_get_user_returns_details_and_post_count(self, tools, entity_store, ada):
        entity_store.create_post({"user_id": ada.id, "title": "T", "content": "C"})
        data = json.loads(tools["get_user"].invoke({"id": ada.id}))
        assert data["name"] == "Ada Lovelace"
        assert data["postCount"] == 1
        assert "createdAt" in data

    def test_list_users_empty(self, tools):
        assert tools["list_users"].invoke({}) == "No users found in the database."

    def test_list_users_returns_json(self, tools, ada):
        data = json.loads(tools["list_users"].invoke({}))
        assert data == [{"id": ada.id, "name": ada.name, "email": ada.email}]

    def test_count_users(self, tools, ada):
        assert tools["count_users"].invoke({}) == "Total users in database: 1"


class TestPostTools:
    def test_create_post_confirms_with_id(self, tools, ada):
        result = tools["create_post"].invoke(
            {"userId": ada.id, "title": "Hello", "content": "First post"}
        )
        assert result == (
            f'Successfully created post: "Hello" (ID: 1) for user {ada.id}. Published: false'
        )

    def test_create_post_published_flag(self, tools, ada):
        result = tools["create_post"].invoke(
            {"userId": ada.id, "title": "Live", "content": "Now", "published": True}
        )
        assert result.endswith("Published: true")

    def test_create_post_for_missing_user_reports_failure(self, tools):
        result = tools["create_post"].invoke({"userId": 77, "title": "T", "content": "C"})
        assert result.startswith("Could not create post for user 77")

    def test_get_posts_by_user_empty(self, tools, ada):
        result = tools["get_posts_by_user"].invoke({"userId": ada.id})
        assert result == f"User {ada.id} has not created any posts yet."

    def test_get_posts_by_user_previews_content(self, tools, entity_store, ada):
        entity_store.create_post({"user_id": ada.id, "title": "Long", "content": "x" * 300})
        [post] = json.loads(tools["get_posts_by_user"].invoke({"userId": ada.id}))
        assert post["title"] == "Long"
        assert post["contentPreview"] == "x" * 100 + "..."

    def test_list_posts_empty(self, tools):
        assert tools["list_posts"].invoke({}) == "No posts found in the database."

    def test_list_posts_includes_author_name(self, tools, entity_store, ada):
        entity_store.create_post({"user_id": ada.id, "title": "T", "content": "C"})
        [post] = json.loads(tools["list_posts"].invoke({}))
        assert post["authorName"] == "Ada Lovelace"
        assert post["published"] is False
