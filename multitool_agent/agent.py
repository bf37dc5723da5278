# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The main entrypoint to the system.
"""

import signal
import asyncio
import logging

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .src.agents import AgentSession
from .src.config import Settings, settings as default_settings
from .src.events.event_bus_utils import log_to_stdout
from .src.types.common import Mode
from .src.types.agent_types import LoopResult, Report
from .src.types.event_types import EventType, Event

load_dotenv()

# Configure logging
logging.basicConfig(
    level=default_settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)


async def print_assistant_message(event: Event):
    print(f"\nassistant> {event.content}\n")


class Agent:
    """
    The Agent class acts as the 'root' of the application state: it owns a
    single AgentSession, wires its events to the terminal, and cancels the
    in-flight run on SIGINT/SIGTERM.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[AgentSession] = None,
        verbose: bool = True,
    ):
        self.settings = settings or default_settings
        self.session = session or AgentSession(settings=self.settings)
        self.verbose = verbose

        self._shutdown_requested = False
        self._register_signal_handlers()

    def _register_signal_handlers(self):
        """Register signal handlers for graceful shutdown"""
        try:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                logger.debug(f"Agent registering handler for {sig.name}")
                loop.add_signal_handler(sig, lambda s=sig: self._signal_handler(s))
            logger.debug("Agent signal handlers registered successfully")
        except (RuntimeError, NotImplementedError) as e:
            logger.debug(f"Could not register agent signal handlers: {e}")

    def _signal_handler(self, sig: signal.Signals):
        if self._shutdown_requested or not self.session.running:
            # Second signal, or nothing to cancel: stop outright
            logger.warning("Forced shutdown requested")
            asyncio.get_running_loop().stop()
            return

        logger.info(f"Agent received signal {sig.name}, cancelling the current run...")
        self._shutdown_requested = True
        self.session.cancel()

    async def exec(self, prompt: str, mode: Mode = Mode.CHAT) -> Optional[LoopResult]:
        """
        Sends one user prompt to the session and runs the agent loop on it.

        Tool activity and alerts are logged to stdout while the run is in
        progress, and assistant messages are printed as they arrive.

        Returns:
            The LoopResult, or None if a run was already in progress.
        """
        event_bus = self.session.event_bus
        event_bus.subscribe(EventType.ASSISTANT_MESSAGE, print_assistant_message)
        if self.verbose:
            event_bus.subscribe(set(EventType), log_to_stdout)

        try:
            if mode == Mode.RESEARCH:
                result = await self.session.research(prompt)
            else:
                result = await self.session.chat(prompt)
        finally:
            self._shutdown_requested = False
            event_bus.unsubscribe(EventType.ASSISTANT_MESSAGE, print_assistant_message)
            if self.verbose:
                event_bus.unsubscribe(set(EventType), log_to_stdout)

        if result is not None and result.failed:
            logger.info(f"Run ended in state {result.state.value}: {result.error}")
        return result

    @property
    def report(self) -> Optional[Report]:
        return self.session.report

    def write_report(self, path: Path) -> Optional[Path]:
        """Writes the last research report as-is. Rendering to HTML or PDF is
        left to whatever consumes the file."""
        if self.session.report is None:
            return None
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.session.report.content)
        logger.info(f"Report written to {path}")
        return path

    def export(self, path: Path) -> Path:
        """Writes the full conversation as a JSON array of messages."""
        exported = self.session.export(path)
        logger.info(f"Conversation exported to {exported}")
        return exported
