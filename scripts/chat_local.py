#!/usr/bin/env python3
"""
Interactive local chat harness (no HTTP, no WhatsApp).

Usage:
  python3 scripts/chat_local.py

What it does:
- Keeps a stable sender id (your "phone number") for the session
- Sends your typed messages through the same ConversationUseCase the webhook uses
- Prints the reply text and the dialog step after each message
- Uses DATABASE_URL from the environment, so bookings land in the real local database
"""

from __future__ import annotations

import os
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.domain.entities.message import Message
from app.wiring.dependencies import (
    get_conversation_use_case,
    get_reminder_scheduler_use_case,
    get_session_store,
    get_staff_directory,
)


def _print_header(sender_id: str) -> None:
    print("\nLocal Chat Harness")
    print("-" * 60)
    print(f"sender_id: {sender_id}")
    print("Type your message and press Enter.")
    print("Commands: /new, /staff NAME, /sweep, /quit, /help")
    print("-" * 60)


def main() -> None:
    sender_id = os.getenv("CHAT_SENDER_ID", "905550000000")
    use_case = get_conversation_use_case()
    sessions = get_session_store()
    _print_header(sender_id)

    while True:
        try:
            user_text = input("\n> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            return

        if not user_text:
            continue

        cmd = user_text.lower()
        if cmd in ("/quit", "/exit"):
            print("Bye!")
            return
        if cmd == "/help":
            print("Commands:")
            print("  /new        -> switch to a new sender id (fresh session)")
            print("  /staff NAME -> add a barber to the staff directory")
            print("  /sweep      -> run one reminder/feedback sweep now")
            print("  /quit       -> exit")
            continue
        if cmd == "/new":
            sender_id = f"9055{int(time.time()) % 10**8:08d}"
            print(f"New sender_id: {sender_id}")
            continue
        if cmd.startswith("/staff "):
            member = get_staff_directory().add_staff(user_text[len("/staff ") :])
            print(f"Added {member.name} ({member.id})")
            continue
        if cmd == "/sweep":
            print(get_reminder_scheduler_use_case().run_sweep())
            continue

        message = Message(
            id=f"local_{int(time.time() * 1000)}",
            sender_id=sender_id,
            text=user_text,
            timestamp=int(time.time()),
            platform="local",
        )

        now = use_case.now()
        reply = use_case.process(message, now)
        session = sessions.get(sender_id, now)

        print("\n--- Reply ---")
        print(reply.strip() or "(empty reply)")
        print(f"\nstep: {session.step.value if session else 'IDLE'}")
        print("-" * 60)


if __name__ == "__main__":
    main()
