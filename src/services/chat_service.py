"""Conversation orchestration.

``ChatService.chat`` is the one place where the steps of a turn are
sequenced:

    validate → persist user turn → load last N turns → call model/agent
             → persist assistant turn → return both turns

The service holds no conversation state of its own; everything it knows
comes from the message store on each call.  If the model call fails the
user turn stays persisted and no assistant turn is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage
from pydantic import BaseModel, Field

from src.agent import create_blog_agent, create_text_generator, message_text
from src.config import CHAT_MODE, HISTORY_WINDOW
from src.db.models import Message, Role
from src.db.schemas import MAX_MESSAGE_LENGTH, parse_input
from src.errors import UpstreamGenerationError
from src.prompts import Persona, get_system_prompt
from src.services.entity_store import EntityStore
from src.services.message_store import MessageStore
from src.tools.post_tools import create_post_tools
from src.tools.user_tools import create_user_tools

logger = logging.getLogger(__name__)

PLAIN_MODE = "plain"
AGENT_MODE = "agent"
CHAT_MODES = (PLAIN_MODE, AGENT_MODE)


class ChatInput(BaseModel):
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    character: Persona = Persona.default


@dataclass
class ToolCallRecord:
    """One tool invocation made by the agent during a turn.

    ``output`` is not filled in: only the call itself is traced.
    """

    tool_name: str
    input: dict[str, Any]
    timestamp: datetime
    success: bool
    output: str | None = None


@dataclass
class ChatResult:
    user_message: Message
    assistant_message: Message
    tool_calls: list[ToolCallRecord] | None = field(default=None)


def _to_langchain(history: Sequence[Message]) -> list[BaseMessage]:
    """Map stored turns onto LangChain message types."""
    converted: list[BaseMessage] = []
    for msg in history:
        if msg.role == Role.user.value:
            converted.append(HumanMessage(content=msg.content))
        else:
            converted.append(AIMessage(content=msg.content))
    return converted


def extract_tool_calls(messages: Sequence[BaseMessage]) -> list[ToolCallRecord]:
    """Collect the tool calls requested in *messages*, in order.

    A call counts as successful unless its matching ``ToolMessage`` carries
    ``status="error"`` (or no result was produced at all).
    """
    statuses = {
        m.tool_call_id: getattr(m, "status", "success")
        for m in messages
        if isinstance(m, ToolMessage)
    }
    records: list[ToolCallRecord] = []
    for m in messages:
        if not isinstance(m, AIMessage):
            continue
        for call in m.tool_calls:
            status = statuses.get(call.get("id"))
            records.append(
                ToolCallRecord(
                    tool_name=call["name"],
                    input=dict(call.get("args") or {}),
                    timestamp=datetime.now(UTC),
                    success=status is not None and status != "error",
                )
            )
    return records


class ChatService:
    """Runs one chat turn against the message store and the model."""

    def __init__(
        self,
        message_store: MessageStore,
        entity_store: EntityStore,
        *,
        mode: str = CHAT_MODE,
        history_window: int = HISTORY_WINDOW,
    ):
        if mode not in CHAT_MODES:
            raise ValueError(f"Unknown chat mode {mode!r}; expected one of {CHAT_MODES}")
        if history_window < 1:
            raise ValueError("history_window must be at least 1")

        self.mode = mode
        self.history_window = history_window
        self._messages = message_store
        self._entities = entity_store
        self._generate = None
        self._agent = None

        if mode == PLAIN_MODE:
            self._generate = create_text_generator()
        else:
            tools = [*create_user_tools(entity_store), *create_post_tools(entity_store)]
            self._agent = create_blog_agent(tools)

        logger.info("ChatService ready (mode=%s, history_window=%d)", mode, history_window)

    # ── Public API ───────────────────────────────────────────────────

    def chat(self, message: str, character: Persona | str | None = None) -> ChatResult:
        """Persist *message*, ask the model for a reply, persist and return both."""
        data: dict[str, Any] = {"message": message}
        if character is not None:
            data["character"] = character
        request = parse_input(ChatInput, data)

        user_message = self._messages.append(Role.user, request.message)

        recent = self._messages.recent(self.history_window)
        history = _to_langchain(list(reversed(recent)))
        logger.debug("Loaded %d turns of history", len(history))

        tool_calls: list[ToolCallRecord] | None = None
        try:
            if self.mode == PLAIN_MODE:
                text = self._generate(get_system_prompt(request.character), history)
            else:
                text, tool_calls = self._run_agent(history, request.message)
        except Exception as exc:
            logger.exception("Model call failed; user message %d left unanswered", user_message.id)
            raise UpstreamGenerationError(
                f"Failed to generate a reply: {type(exc).__name__}"
            ) from exc

        if not text:
            logger.warning("Model returned an empty reply; storing it anyway")

        assistant_message = self._messages.append(Role.assistant, text, strict=False)
        return ChatResult(
            user_message=user_message,
            assistant_message=assistant_message,
            tool_calls=tool_calls or None,
        )

    def get_messages(self) -> list[Message]:
        return self._messages.all()

    def clear_messages(self) -> int:
        return self._messages.clear()

    # ── Internal ─────────────────────────────────────────────────────

    def _run_agent(
        self, history: list[BaseMessage], message: str
    ) -> tuple[str, list[ToolCallRecord]]:
        inputs = [*history, HumanMessage(content=message)]
        result = self._agent.invoke({"messages": inputs})

        produced = result.get("messages", [])[len(inputs):]
        if not produced or not isinstance(produced[-1], AIMessage):
            raise ValueError("Agent finished without an AI message")

        tool_calls = extract_tool_calls(produced)
        if tool_calls:
            logger.info(
                "Agent used %d tool call(s): %s",
                len(tool_calls), ", ".join(c.tool_name for c in tool_calls),
            )
        return message_text(produced[-1]), tool_calls
