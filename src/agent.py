"""LLM and LangGraph agent construction for the blog chat.

Two ways of producing an assistant reply are supported:

  1. **plain**  — one ``ChatAnthropic`` call with a persona system prompt
                  and the recent conversation history.
  2. **agent**  — a LangGraph StateGraph with two nodes:

       * **chatbot** — the LLM with the user/post tools bound
       * **tools**   — executes whatever tool calls the LLM requested

     Routing:
       chatbot → (has tool calls?) → tools → chatbot (loop)
               → (no tool calls?)  → END

  Memory:
    Neither path keeps state between requests.  The conversation history
    lives in the ``message`` table and is passed in on every call.
"""

from __future__ import annotations

import logging
from typing import Annotated, Callable, Sequence

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, AnyMessage, BaseMessage, SystemMessage
from langchain_core.tools import BaseTool
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from langgraph.prebuilt import ToolNode
from typing_extensions import TypedDict

from src.config import AGENT_MODEL_NAME, ANTHROPIC_API_KEY, MODEL_NAME
from src.prompts import get_agent_system_prompt
from src.services.metrics import metrics

logger = logging.getLogger(__name__)

TextGenerator = Callable[[str, Sequence[BaseMessage]], str]


# ── State schema ─────────────────────────────────────────────────────


class AgentState(TypedDict):
    """The state that flows through the graph.

    ``messages`` uses the LangGraph ``add_messages`` reducer so that each
    node can append messages without overwriting the full history.
    """

    messages: Annotated[list[AnyMessage], add_messages]


# ── Helpers ──────────────────────────────────────────────────────────


def message_text(message: BaseMessage) -> str:
    """Return the plain text of a model message.

    Anthropic replies that also carry tool calls come back as a list of
    content blocks; only the ``text`` blocks are kept.
    """
    content = message.content
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


# ── LLM builders ────────────────────────────────────────────────────


def _build_llm() -> ChatAnthropic:
    """Build the LLM used for plain persona chat (no tools)."""
    return ChatAnthropic(
        model=MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.7,
        max_tokens=1024,
    )


def _build_agent_llm(tools: Sequence[BaseTool]):
    """Build the agent LLM with the entity tools bound."""
    llm = ChatAnthropic(
        model=AGENT_MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.7,
        max_tokens=2048,
    )
    return llm.bind_tools(list(tools))


# ── Plain mode ───────────────────────────────────────────────────────


def create_text_generator() -> TextGenerator:
    """Return ``generate(system_prompt, messages) -> text``.

    The LLM client is created once and captured in the closure.
    """
    llm = _build_llm()

    def generate(system_prompt: str, messages: Sequence[BaseMessage]) -> str:
        logger.debug("generate invoked — model: %s, %d messages", MODEL_NAME, len(messages))
        with metrics.timed("anthropic", "generate"):
            response = llm.invoke([SystemMessage(content=system_prompt), *messages])
        return message_text(response)

    return generate


# ── Agent mode ───────────────────────────────────────────────────────


def _make_chatbot_node(tools: Sequence[BaseTool]):
    """Create the chatbot node.

    The LLM + tool bindings are captured in the closure so that repeated
    node invocations (chatbot -> tools -> chatbot -> ...) share one client.
    """
    llm_with_tools = _build_agent_llm(tools)

    def chatbot_node(state: AgentState) -> dict:
        """Invoke the LLM with the agent prompt and the conversation so far."""
        logger.debug("chatbot node invoked — model: %s (with tools)", AGENT_MODEL_NAME)
        system = SystemMessage(content=get_agent_system_prompt())
        with metrics.timed("anthropic", "agent_invoke"):
            response = llm_with_tools.invoke([system] + state["messages"])
        return {"messages": [response]}

    return chatbot_node


def should_use_tools(state: AgentState) -> str:
    """Check if the last message has tool calls; if so, route to tools node."""
    last_message = state["messages"][-1]
    if isinstance(last_message, AIMessage) and last_message.tool_calls:
        return "tools"
    return END


def create_blog_agent(tools: Sequence[BaseTool]):
    """Build and compile the tool-using agent graph.

    Tool failures (bad arguments, exceptions) are turned into error
    ``ToolMessage``s for the model instead of aborting the run.  The only
    bound on tool round-trips is LangGraph's own recursion limit.

    Returns a compiled graph that can be invoked with:
        graph.invoke({"messages": [HumanMessage(content="...")]})
    """
    graph = StateGraph(AgentState)

    graph.add_node("chatbot", _make_chatbot_node(tools))
    graph.add_node("tools", ToolNode(list(tools), handle_tool_errors=True))

    graph.set_entry_point("chatbot")
    graph.add_conditional_edges(
        "chatbot", should_use_tools, {"tools": "tools", END: END},
    )
    graph.add_edge("tools", "chatbot")

    compiled = graph.compile()
    logger.debug(
        "Blog agent compiled — model: %s, tools: %s",
        AGENT_MODEL_NAME, ", ".join(t.name for t in tools),
    )
    return compiled
