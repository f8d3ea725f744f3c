"""CLI entry point for the Mediverse triage service.

A terminal chat against an in-memory service, for testing and development.
For production, use the FastAPI server (src/server.py).

Usage:
    uv run python -m src.main                  # normal mode (quiet)
    uv run python -m src.main --debug          # debug mode (shows API calls)
    uv run python -m src.main --user alice     # chat as a specific user id
"""

from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from src.errors import MediverseError
from src.models import Mode

logger = logging.getLogger(__name__)

_MODE_LABELS = {
    Mode.GENERIC: "AI nurse",
    Mode.DOCTOR_HANDOFF_PENDING: "waiting for your confirmation",
    Mode.DOCTOR_ACTIVE: "doctor",
}


def _configure_logging(debug: bool = False) -> None:
    """WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("src").setLevel(logging.DEBUG if debug else logging.INFO)


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Mediverse triage CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    parser.add_argument("--user", default="cli-user", help="User id to chat as")
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    # Imported here so --help works without ANTHROPIC_API_KEY configured
    from src.services.conversations import create_conversation_service

    print("\n" + "=" * 60)
    print("  Mediverse - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' for a new conversation.")
    print("=" * 60 + "\n")

    service = create_conversation_service()
    conversation_id = service.create_conversation(args.user)
    logger.info("Started new conversation: %s", conversation_id)

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "q"):
            print("\nGoodbye!")
            break

        if user_input.lower() == "new":
            conversation_id = service.create_conversation(args.user)
            print(f"\n>> New conversation started: {conversation_id[:8]}...\n")
            continue

        try:
            turn = service.post_message(conversation_id, args.user, user_input)
        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except MediverseError as e:
            logger.exception("Error processing message")
            print(f"\nMediverse: Sorry, something went wrong: {e}")
            print("     Please try again or type 'new' to start a fresh conversation.\n")
            continue

        mode = turn.conversation.mode
        speaker = (
            turn.conversation.assigned_doctor.name
            if mode == Mode.DOCTOR_ACTIVE
            else "Mediverse"
        )
        print(f"\n{speaker}: {turn.reply}")
        print(f"     [{_MODE_LABELS[mode]}]\n")


if __name__ == "__main__":
    main()
