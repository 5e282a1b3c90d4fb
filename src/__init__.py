"""Blog Agent Chat — a persisted chat assistant that can manage a toy blog.

Architecture Overview
=====================

Every chat turn runs through ``ChatService.chat``:

1. the user's message is validated and written to the ``message`` table;
2. the last ``HISTORY_WINDOW`` turns (default 10) are loaded oldest-first;
3. the reply is produced in one of two modes chosen by ``CHAT_MODE``:

   * **plain** — a single Claude call with a persona system prompt
     (``default``, ``luffy``, ``ironman``, ``goku``);
   * **agent** — a **LangGraph** loop (chatbot ⇄ tools) where Claude can
     create and list users and posts through LangChain tools;

4. the reply is written back as an ``assistant`` turn and both turns are
   returned, with the agent's tool-call trace when tools were used.

Key Design Decisions
--------------------
- **Stateless service**: all conversation state lives in the database, so
  the service can be rebuilt at any time and served by several workers.
- **No compensation**: if the model call fails the user's turn stays
  stored without an answer; the caller gets an ``UpstreamGenerationError``.
- **Tools speak English**: tools return sentences (including "nothing
  found") rather than empty structures, since the reader is an LLM.

Package Structure
-----------------
- ``src/agent.py`` — LLM builders and the LangGraph agent graph
- ``src/config.py`` — Centralized configuration from environment variables
- ``src/errors.py`` — Exception taxonomy
- ``src/prompts.py`` — Persona prompts and the agent system prompt
- ``src/server.py`` — FastAPI application
- ``src/main.py`` — CLI chat interface
- ``src/db/`` — SQLAlchemy models, engine setup, input schemas
- ``src/services/`` — Message/entity stores, chat orchestration, metrics
- ``src/tools/`` — LangChain tools over the entity store
- ``src/api/`` — FastAPI routes and Pydantic schemas
"""
