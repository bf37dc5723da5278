# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Main entrypoint when running the agent defined in this directory with
`python -m multitool_agent`.
"""

import sys
import logging
import asyncio
import argparse

from pathlib import Path
from typing import Optional

from .agent import Agent
from .src.config import MODEL_OPTIONS, Settings, settings
from .src.events.event_bus_utils import alerts
from .src.types.common import Mode, ProviderName
from .src.types.agent_types import LoopResult

logging.captureWarnings(True)
logger = logging.getLogger(__name__)


def setup_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="multitool_agent")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(sub: argparse.ArgumentParser):
        sub.add_argument(
            "--provider",
            type=str,
            choices=[p.value for p in ProviderName],
            default=None,
            help="The provider to talk to (defaults to AGENT_PROVIDER or openai)",
        )
        sub.add_argument(
            "--model", type=str, default=None, help="Model name for the provider"
        )
        sub.add_argument(
            "--export",
            type=str,
            default=None,
            help="Write the conversation to this path as JSON once done",
        )
        sub.add_argument(
            "--quiet", action="store_true", help="Don't log tool activity to stdout"
        )

    # Chat command
    chat_parser = subparsers.add_parser("chat")
    chat_parser.add_argument(
        "--prompt",
        type=str,
        default=None,
        help="A single prompt to send; without it an interactive session starts",
    )
    add_common(chat_parser)

    # Research command
    research_parser = subparsers.add_parser("research")
    research_parser.add_argument(
        "--prompt", type=str, required=True, help="The research question"
    )
    research_parser.add_argument(
        "--report-out",
        type=str,
        default="research-report.md",
        help="Where to write the generated report",
    )
    add_common(research_parser)

    # Models command
    models_parser = subparsers.add_parser("models")
    models_parser.add_argument(
        "--provider", type=str, choices=[p.value for p in ProviderName], default=None
    )

    return parser


def build_settings(provider: Optional[str], model: Optional[str]) -> Settings:
    update = {}
    if provider is not None:
        update["provider"] = ProviderName(provider)
        # A model picked for another provider makes no sense here
        update["model"] = None
    if model is not None:
        update["model"] = model
    return settings.model_copy(update=update)


def print_alerts(agent: Agent):
    for alert in alerts(agent.session.event_bus.get_events()):
        print(f"[!] {alert}", file=sys.stderr)


async def run_chat(agent: Agent, prompt: Optional[str]) -> Optional[LoopResult]:
    if prompt is not None:
        return await agent.exec(prompt, Mode.CHAT)

    result = None
    print("Type your message, or 'exit' to quit.")
    while True:
        try:
            text = await asyncio.to_thread(input, "you> ")
        except EOFError:
            break
        if text.strip().lower() in {"exit", "quit"}:
            break
        result = await agent.exec(text, Mode.CHAT)
    return result


async def run_research(agent: Agent, prompt: str, report_out: Path) -> Optional[LoopResult]:
    result = await agent.exec(prompt, Mode.RESEARCH)
    if agent.write_report(report_out) is not None:
        print(f"Report written to {report_out}")
    return result


async def main() -> int:
    parser = setup_parser()
    args = parser.parse_args()

    if args.command == "models":
        providers = [ProviderName(args.provider)] if args.provider else list(ProviderName)
        for provider in providers:
            print(f"{provider.value}: {', '.join(MODEL_OPTIONS[provider])}")
        return 0

    agent = Agent(
        settings=build_settings(args.provider, args.model), verbose=not args.quiet
    )

    if args.command == "chat":
        result = await run_chat(agent, args.prompt)
    elif args.command == "research":
        result = await run_research(agent, args.prompt, Path(args.report_out))
    else:
        parser.error(f"Unknown command {args.command}")

    if args.quiet:
        # Alerts were already logged as they happened otherwise
        print_alerts(agent)
    if args.export:
        agent.export(Path(args.export))

    return 1 if result is not None and result.failed else 0


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
