"""
Sales assistant entry point.

Runs the orchestrator either as an interactive console chat or as a
replay of inbound events, one JSON object per line:

    {"user_id": "PSID-1", "text": "how much is the xpander?"}
    {"user_id": "PSID-1", "payload": "PAYMENT_CASH"}

Outbound messages are printed as JSON lines in the same order.

Usage:
    Console mode: python main.py console
    Replay mode:  python main.py replay events.jsonl
"""

import asyncio
import json
import logging
import sys

from sales_assistant.config import settings

logger = logging.getLogger(__name__)


async def replay(path: str) -> None:
    """Feed recorded inbound events through the orchestrator."""
    from sales_assistant.bootstrap import build_default_orchestrator

    orchestrator, messenger = build_default_orchestrator()
    with open(path, encoding="utf-8") as handle:
        for line_no, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Skipping malformed event on line %d", line_no)
                continue

            user_id = str(event.get("user_id", "replay-user"))
            messenger.clear()
            if event.get("payload"):
                await orchestrator.handle_payload(user_id, str(event["payload"]))
            else:
                await orchestrator.handle_message(user_id, str(event.get("text", "")))
            for message in messenger.outbox:
                print(message.model_dump_json(exclude_none=True))


def _run_console_mode() -> None:
    """Start the offline console demo."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    asyncio.run(session.run())


def _run_replay_mode(path: str) -> None:
    logger.info("Replaying events for '%s' from %s", settings.agent_name, path)
    asyncio.run(replay(path))


if __name__ == "__main__":
    if len(sys.argv) > 2 and sys.argv[1] == "replay":
        _run_replay_mode(sys.argv[2])
    elif len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        print(__doc__)
        sys.exit(1)
