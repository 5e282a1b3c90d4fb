"""Shared test fixtures for the Blog Agent Chat test suite."""

from __future__ import annotations

import os

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")
    os.environ.setdefault("DATABASE_URL", "sqlite://")
    os.environ["METRICS_ENABLED"] = "false"


@pytest.fixture
def session_factory():
    """A fresh in-memory SQLite database per test."""
    from src.db.session import create_db_engine, init_db, make_session_factory

    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def message_store(session_factory):
    from src.services.message_store import MessageStore

    return MessageStore(session_factory)


@pytest.fixture
def entity_store(session_factory):
    from src.services.entity_store import EntityStore

    return EntityStore(session_factory)


@pytest.fixture
def ada(entity_store):
    """A stored user to hang posts off."""
    return entity_store.create_user({"name": "Ada Lovelace", "email": "ada@example.com"})
