"""CLI entry point for the Blog Agent Chat service.

A terminal chat loop over the same ``ChatService`` the API uses, handy for
trying prompts without the frontend.  Turns are written to the database
configured by ``DATABASE_URL``.

Usage:
    uv run python -m src.main                 # mode from CHAT_MODE
    uv run python -m src.main --mode plain --character luffy
    uv run python -m src.main --debug         # show SQL and API calls
"""

from __future__ import annotations

import argparse
import logging

from src.config import CHAT_MODE, DATABASE_URL, SQL_ECHO
from src.db.session import create_db_engine, init_db, make_session_factory
from src.errors import UpstreamGenerationError, ValidationError
from src.prompts import Persona
from src.services.chat_service import CHAT_MODES, ChatService
from src.services.entity_store import EntityStore
from src.services.message_store import MessageStore

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    root_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        # Silence chatty HTTP loggers even if root is WARNING
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("src").setLevel(logging.DEBUG if debug else logging.INFO)


def _print_history(service: ChatService) -> None:
    messages = service.get_messages()
    if not messages:
        print("\n(no messages yet)\n")
        return
    print()
    for msg in messages:
        print(f"  [{msg.id}] {msg.role}: {msg.content}")
    print()


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Blog Agent Chat CLI")
    parser.add_argument("--mode", choices=CHAT_MODES, default=CHAT_MODE)
    parser.add_argument(
        "--character", choices=[p.value for p in Persona], default=None,
        help="Persona to use in plain mode",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including SQL and HTTP requests",
    )
    args = parser.parse_args()

    _configure_logging(debug=args.debug)

    engine = create_db_engine(DATABASE_URL, echo=SQL_ECHO or args.debug)
    init_db(engine)
    session_factory = make_session_factory(engine)
    service = ChatService(
        MessageStore(session_factory), EntityStore(session_factory), mode=args.mode,
    )

    print("\n" + "=" * 60)
    print(f"  Blog Agent Chat - CLI ({args.mode} mode)")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'clear' to wipe history, 'history' to list it.")
    print("=" * 60 + "\n")

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue

        command = user_input.lower()
        if command in ("exit", "quit", "q"):
            print("\nGoodbye!")
            break
        if command == "clear":
            removed = service.clear_messages()
            print(f"\n>> Cleared {removed} messages.\n")
            continue
        if command == "history":
            _print_history(service)
            continue

        try:
            result = service.chat(user_input, args.character)
        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except ValidationError as e:
            print(f"\n>> {e}\n")
            continue
        except UpstreamGenerationError:
            logger.exception("Error processing message")
            print("\nAssistant: Sorry, I couldn't generate a reply. Please try again.\n")
            continue

        for call in result.tool_calls or []:
            status = "ok" if call.success else "failed"
            print(f"  ↳ {call.tool_name}({call.input}) [{status}]")
        print(f"\nAssistant: {result.assistant_message.content}\n")

    engine.dispose()


if __name__ == "__main__":
    main()
