"""Tests for the conversation orchestrator.

LLMs are replaced by mocks via the builder functions in ``src.agent``;
stores run against a real in-memory SQLite database.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from src.errors import UpstreamGenerationError, ValidationError
from src.prompts import SYSTEM_PROMPTS, Persona
from src.services.chat_service import ChatService, extract_tool_calls


# ── Helpers ──────────────────────────────────────────────────────────


def _make_mock_llm(response_content: str):
    """Create a mock LLM that returns a fixed AIMessage."""
    mock_llm = MagicMock()
    mock_llm.invoke.return_value = AIMessage(content=response_content)
    return mock_llm


def _make_scripted_agent_llm(*tool_calls: dict):
    """Mock agent LLM: requests *tool_calls* once, then echoes the last tool result."""
    mock_llm = MagicMock()

    def _invoke(messages):
        last = messages[-1]
        if isinstance(last, ToolMessage):
            return AIMessage(content=f"Done! {last.content}")
        if tool_calls:
            return AIMessage(content="", tool_calls=list(tool_calls))
        return AIMessage(content="Nothing to do.")

    mock_llm.invoke.side_effect = _invoke
    return mock_llm


def _tool_call(name: str, args: dict, call_id: str = "call_1") -> dict:
    return {"name": name, "args": args, "id": call_id, "type": "tool_call"}


@pytest.fixture
def plain_llm():
    llm = _make_mock_llm("Hi there")
    with patch("src.agent._build_llm", return_value=llm):
        yield llm


@pytest.fixture
def plain_service(plain_llm, message_store, entity_store):
    return ChatService(message_store, entity_store, mode="plain")


def _agent_service(llm, message_store, entity_store) -> ChatService:
    with patch("src.agent._build_agent_llm", return_value=llm):
        return ChatService(message_store, entity_store, mode="agent")


# ── Plain mode ───────────────────────────────────────────────────────


class TestPlainMode:
    def test_round_trip_stores_both_turns_in_order(self, plain_service):
        result = plain_service.chat("Hello")

        assert result.user_message.content == "Hello"
        assert result.assistant_message.content == "Hi there"
        assert result.tool_calls is None

        rows = [(m.role, m.content) for m in plain_service.get_messages()]
        assert rows == [("user", "Hello"), ("assistant", "Hi there")]

    def test_default_persona_prompt_used(self, plain_service, plain_llm):
        plain_service.chat("Hello")
        sent = plain_llm.invoke.call_args[0][0]
        assert isinstance(sent[0], SystemMessage)
        assert sent[0].content == SYSTEM_PROMPTS[Persona.default]

    def test_character_selects_persona_prompt(self, plain_service, plain_llm):
        plain_service.chat("Ahoy", character="luffy")
        sent = plain_llm.invoke.call_args[0][0]
        assert sent[0].content == SYSTEM_PROMPTS[Persona.luffy]

    def test_unknown_character_rejected_before_storing(self, plain_service, plain_llm):
        with pytest.raises(ValidationError):
            plain_service.chat("Hello", character="batman")
        assert plain_service.get_messages() == []
        plain_llm.invoke.assert_not_called()

    def test_history_is_chronological_and_includes_current_turn(self, plain_service, plain_llm):
        plain_service.chat("first")
        plain_service.chat("second")
        sent = plain_llm.invoke.call_args[0][0][1:]
        assert [type(m) for m in sent] == [HumanMessage, AIMessage, HumanMessage]
        assert [m.content for m in sent] == ["first", "Hi there", "second"]

    def test_history_window_caps_context(self, plain_service, plain_llm, message_store):
        for i in range(15):
            message_store.append("user" if i % 2 == 0 else "assistant", f"old {i}")
        plain_service.chat("newest")
        sent = plain_llm.invoke.call_args[0][0][1:]
        assert len(sent) == 10
        assert sent[-1].content == "newest"
        assert sent[0].content == "old 6"

    def test_custom_history_window(self, plain_llm, message_store, entity_store):
        service = ChatService(message_store, entity_store, mode="plain", history_window=2)
        service.chat("a")
        service.chat("b")
        sent = plain_llm.invoke.call_args[0][0][1:]
        assert [m.content for m in sent] == ["Hi there", "b"]

    def test_message_of_10000_chars_accepted(self, plain_service):
        result = plain_service.chat("x" * 10_000)
        assert len(result.user_message.content) == 10_000

    def test_message_of_10001_chars_rejected(self, plain_service):
        with pytest.raises(ValidationError):
            plain_service.chat("x" * 10_001)
        assert plain_service.get_messages() == []

    def test_empty_message_rejected(self, plain_service):
        with pytest.raises(ValidationError):
            plain_service.chat("")

    def test_empty_reply_is_still_stored(self, plain_service, plain_llm):
        plain_llm.invoke.return_value = AIMessage(content="")
        result = plain_service.chat("Say nothing")
        assert result.assistant_message.content == ""
        assert [m.role for m in plain_service.get_messages()] == ["user", "assistant"]

    def test_upstream_failure_keeps_user_turn(self, plain_service, plain_llm):
        plain_llm.invoke.side_effect = RuntimeError("quota exceeded")
        with pytest.raises(UpstreamGenerationError):
            plain_service.chat("Are you there?")

        rows = plain_service.get_messages()
        assert len(rows) == 1
        assert rows[-1].role == "user"
        assert rows[-1].content == "Are you there?"

    def test_chat_after_clear_succeeds(self, plain_service):
        plain_service.chat("Hello")
        plain_service.clear_messages()
        assert plain_service.get_messages() == []

        result = plain_service.chat("Fresh start")
        assert result.assistant_message.content == "Hi there"
        assert len(plain_service.get_messages()) == 2

    def test_clear_twice_is_fine(self, plain_service):
        plain_service.clear_messages()
        assert plain_service.clear_messages() == 0


# ── Agent mode ───────────────────────────────────────────────────────


class TestAgentMode:
    def test_create_user_via_tool(self, message_store, entity_store):
        llm = _make_scripted_agent_llm(
            _tool_call("create_user", {"name": "Ada", "email": "ada@example.com"})
        )
        service = _agent_service(llm, message_store, entity_store)

        result = service.chat("Please create a user named Ada with email ada@example.com")

        [user] = entity_store.list_users()
        assert (user.name, user.email) == ("Ada", "ada@example.com")
        assert f"ID: {user.id}" in result.assistant_message.content

        [call] = result.tool_calls
        assert call.tool_name == "create_user"
        assert call.input == {"name": "Ada", "email": "ada@example.com"}
        assert call.success is True
        assert call.output is None
        assert call.timestamp is not None

    def test_agent_prompt_and_current_message_sent(self, message_store, entity_store):
        llm = _make_scripted_agent_llm()
        service = _agent_service(llm, message_store, entity_store)
        service.chat("How many users?")

        sent = llm.invoke.call_args[0][0]
        assert isinstance(sent[0], SystemMessage)
        assert "blog platform" in sent[0].content
        assert sent[-1].content == "How many users?"

    def test_no_tools_used_means_no_trace(self, message_store, entity_store):
        service = _agent_service(_make_scripted_agent_llm(), message_store, entity_store)
        result = service.chat("Just saying hi")
        assert result.tool_calls is None
        assert result.assistant_message.content == "Nothing to do."

    def test_character_ignored_in_agent_mode(self, message_store, entity_store):
        service = _agent_service(_make_scripted_agent_llm(), message_store, entity_store)
        result = service.chat("Hi", character="goku")
        assert result.assistant_message.content == "Nothing to do."

    def test_failed_tool_call_marked_unsuccessful(self, message_store, entity_store):
        llm = _make_scripted_agent_llm(_tool_call("get_user", {"id": 0}))
        service = _agent_service(llm, message_store, entity_store)

        result = service.chat("Show me user zero")

        [call] = result.tool_calls
        assert call.tool_name == "get_user"
        assert call.success is False
        assert result.assistant_message.content.startswith("Done!")

    def test_agent_failure_raises_upstream_error(self, message_store, entity_store):
        llm = MagicMock()
        llm.invoke.side_effect = ConnectionError("network down")
        service = _agent_service(llm, message_store, entity_store)

        with pytest.raises(UpstreamGenerationError):
            service.chat("Create some users")

        [only] = service.get_messages()
        assert only.role == "user"

    def test_agent_history_comes_from_store(self, message_store, entity_store):
        message_store.append("user", "My name is Grace")
        message_store.append("assistant", "Nice to meet you, Grace!")
        llm = _make_scripted_agent_llm()
        service = _agent_service(llm, message_store, entity_store)

        service.chat("What's my name?")

        contents = [m.content for m in llm.invoke.call_args[0][0][1:]]
        assert contents[:2] == ["My name is Grace", "Nice to meet you, Grace!"]


# ── Construction & helpers ──────────────────────────────────────────


class TestConstruction:
    def test_unknown_mode_rejected(self, message_store, entity_store):
        with pytest.raises(ValueError, match="mode"):
            ChatService(message_store, entity_store, mode="streaming")

    def test_zero_history_window_rejected(self, plain_llm, message_store, entity_store):
        with pytest.raises(ValueError):
            ChatService(message_store, entity_store, mode="plain", history_window=0)


class TestExtractToolCalls:
    def test_pairs_calls_with_results(self):
        messages = [
            AIMessage(
                content="",
                tool_calls=[
                    _tool_call("count_users", {}, "a"),
                    _tool_call("get_user", {"id": 3}, "b"),
                ],
            ),
            ToolMessage(content="Total users in database: 2", tool_call_id="a"),
            ToolMessage(content="Error: boom", tool_call_id="b", status="error"),
        ]
        records = extract_tool_calls(messages)
        assert [(r.tool_name, r.success) for r in records] == [
            ("count_users", True),
            ("get_user", False),
        ]
        assert records[1].input == {"id": 3}

    def test_call_without_result_is_unsuccessful(self):
        messages = [AIMessage(content="", tool_calls=[_tool_call("list_users", {}, "x")])]
        [record] = extract_tool_calls(messages)
        assert record.success is False

    def test_no_tool_calls(self):
        assert extract_tool_calls([HumanMessage(content="hi"), AIMessage(content="hello")]) == []
