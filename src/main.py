"""CLI entry point for the chat gateway.

A terminal chat against the same ChatGateway the HTTP server uses, with
the real store, knowledge document and model.  For production, use the
FastAPI server (src/server.py).

Usage:
    uv run python -m src.main            # normal mode (quiet)
    uv run python -m src.main --debug    # debug mode (shows API calls)
"""

from __future__ import annotations

import argparse
import logging
import uuid

from dotenv import load_dotenv

from src.actions import ChatTurn, LoadHistory
from src.config import PERSONA_FILE
from src.errors import GatewayError
from src.gateway import ChatGateway
from src.prompts import load_persona

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


def _print_history(gateway: ChatGateway, session_id: str) -> None:
    transcript = gateway.handle(LoadHistory(session_id=session_id)).history
    if not transcript:
        print("\n(no messages yet)\n")
        return
    print()
    for turn in transcript:
        speaker = "You" if turn.get("role") == "user" else gateway.persona.name
        print(f"  {speaker}: {turn.get('content', '')}")
    print()


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Chat gateway CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    parser.add_argument("--name", help="Your name, used to personalise replies")
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    gateway = ChatGateway(persona=load_persona(PERSONA_FILE))
    assistant = gateway.persona.name

    print("\n" + "=" * 60)
    print(f"  {assistant} - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' for a new session,")
    print("            'history' to show this session's transcript.")
    print("=" * 60 + "\n")

    session_id = str(uuid.uuid4())
    logger.info("Started new session: %s", session_id)

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
            print("\nGoodbye! Have a great day!")
            break

        if command == "new":
            session_id = str(uuid.uuid4())
            print(f"\n>> New session started: {session_id[:8]}...\n")
            continue

        try:
            if command == "history":
                _print_history(gateway, session_id)
                continue

            result = gateway.handle(
                ChatTurn(session_id=session_id, message=user_input, user_name=args.name),
            )
            print(f"\n{assistant}: {result.reply}\n")

        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except GatewayError as e:
            print(f"\n{assistant}: I'm sorry, something went wrong: {e.message}")
            print("     Please try again or type 'new' to start a fresh session.\n")
        except Exception:
            logger.exception("Error processing message")
            print(f"\n{assistant}: I'm sorry, something went wrong.")
            print("     Please try again or type 'new' to start a fresh session.\n")


if __name__ == "__main__":
    main()
