"""
Offline console demo: chat with the sales assistant in a terminal.

Runs the real orchestrator, guardrails, quote dialogue and in-memory
stores. Without OPENAI_API_KEY the rule-based classifier and stored FAQ
answers are used, so no network is needed.

Usage:
    python console_demo.py
    python console_demo.py --scenario financing
    python console_demo.py --scenario info

In interactive mode, prefix a line with "/" to send it as a quick-reply
payload instead of text, e.g. "/PAYMENT_FINANCING".
"""

import argparse
import asyncio

from sales_assistant.bootstrap import build_default_orchestrator
from sales_assistant.config import settings
from sales_assistant.schemas.message_schema import MessageKind, OutboundMessage

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

CONSOLE_USER_ID = "console-user"


class ConsoleSession:
    """Drives one user's conversation through the orchestrator."""

    # Pre-scripted scenarios for --scenario flag. "/" marks a payload.
    SCENARIOS: dict[str, list[str]] = {
        "quote": [
            "hi",
            "show me your models",
            "how much is the xpander gls?",
            "cash",
        ],
        "financing": [
            "I want a quote",
            "montero sport black series",
            "/PAYMENT_FINANCING",
            "/DOWN_PAYMENT_30",
            "/TERM_48",
        ],
        "info": [
            "What is the warranty?",
            "photos of xpander",
            "specs of xpander gls",
            "How long does it take to get a car loan approved?",
        ],
        "blocked": [
            "how do I hack the dealer system",
            "specs of the corolla",
            "specs of strada glx 4x2",
        ],
    }

    def __init__(self, use_language_model: bool = True) -> None:
        self.orchestrator, self.messenger = build_default_orchestrator(use_language_model)
        self.user_id = CONSOLE_USER_ID

    def agent_say(self, message: OutboundMessage) -> None:
        if message.kind == MessageKind.CAROUSEL:
            print(f"{GREEN}{BOLD}[Assistant]{RESET} {GREEN}[carousel: {len(message.cards)} cards]{RESET}")
            for card in message.cards:
                print(f"{GREEN}    - {card.title} ({card.subtitle or ''}){RESET}")
            return
        if message.kind == MessageKind.IMAGE:
            print(f"{GREEN}{BOLD}[Assistant]{RESET} {GREEN}[image] {message.image_url}{RESET}")
            return
        print(f"{GREEN}{BOLD}[Assistant]{RESET} {GREEN}{message.text}{RESET}")
        if message.quick_replies:
            options = " | ".join(f"{r.title} (/{r.payload})" for r in message.quick_replies)
            print(f"{YELLOW}    Quick replies: {options}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    async def send(self, line: str) -> None:
        self.messenger.clear()
        if line.startswith("/"):
            result = await self.orchestrator.handle_payload(self.user_id, line[1:])
        else:
            result = await self.orchestrator.handle_message(self.user_id, line)
        for message in self.messenger.outbox:
            self.agent_say(message)

        intent = result.intent.value if result.intent else "-"
        self.system_log(f"Route: {result.route.value}  Intent: {intent}")
        if result.quote is not None:
            self.system_log(f"Quote stored: {result.quote.id}")

    async def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  SALES ASSISTANT - Scenario: {scenario}{RESET}")
        print(f"{BOLD}  Brand: {settings.business.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        for step in steps:
            print(f"\n{BLUE}[Customer] {RESET}{step}")
            await self.send(step)

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    async def run(self) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  SALES ASSISTANT - Console Demo{RESET}")
        print(f"{BOLD}  Brand: {settings.business.name}{RESET}")
        print(f"{BOLD}  Type 'quit' to exit, '/PAYLOAD' to tap a quick reply{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

        while True:
            user_input = input(f"\n{BLUE}[Customer] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            await self.send(user_input)


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    parser.add_argument(
        "--no-llm",
        action="store_true",
        help="Ignore OPENAI_API_KEY and use rule-based behavior only",
    )
    args = parser.parse_args()

    session = ConsoleSession(use_language_model=not args.no_llm)
    if args.scenario:
        asyncio.run(session.run_scenario(args.scenario))
    else:
        asyncio.run(session.run())


if __name__ == "__main__":
    main()
