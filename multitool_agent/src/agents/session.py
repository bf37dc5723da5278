# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The agent loop.

An AgentSession owns one conversation. Each loop run alternates between
requesting a completion from the configured provider and executing the tool
calls it asks for, until the model answers without tool calls or the turn
budget runs out:

    REQUESTING -> DONE                      (no tool calls)
    REQUESTING -> EXECUTING -> REQUESTING   (one or more tool calls)
    any state  -> FAILED                    (configuration or provider error)

Only the session mutates its ConversationState. Tools return values, and the
session appends them.
"""

import uuid
import asyncio
import logging

from pathlib import Path
from typing import Any, Callable, Optional

import httpx

from ..config import Settings
from ..conversation import ConversationState, get_preamble
from ..events import EventBus
from ..llm import CompletionOptions, create_completion, get_provider
from ..llm.providers import ProviderAdapter
from ..sandbox import SandboxExecutor
from ..tools import ToolContext, ToolRegistry, build_registry
from ..tools.generate_report import report_prompt
from ..types.common import Mode, ProviderName, ReportFormat
from ..types.errors import AgentError, LoopCancelledError
from ..types.agent_types import LoopResult, LoopState, Report
from ..types.event_types import Event, EventType
from ..types.llm_types import Message, Role, ToolCall

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

RESEARCH_META = {"mode": "research", "depth": "detailed", "numSources": 5}


class AgentSession:
    """One conversation with the agent, and at most one active loop run over it."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[ToolRegistry] = None,
        event_bus: Optional[EventBus] = None,
        provider_factory: Optional[Callable[[ProviderName], ProviderAdapter]] = None,
        sandbox: Optional[SandboxExecutor] = None,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        session_id: Optional[str] = None,
    ):
        self.settings = settings or Settings()
        self.state = ConversationState()
        self.event_bus = event_bus or EventBus()
        self.mode = Mode.CHAT
        self.report: Optional[Report] = None

        self._id = session_id or f"session_{uuid.uuid4().hex[:8]}"
        self._provider_factory = provider_factory
        self._running = False
        self._cancel_requested = False
        self._task: Optional[asyncio.Task] = None
        self._turns = 0

        self.context = ToolContext(
            settings=self.settings,
            sandbox=sandbox or SandboxExecutor(timeout=self.settings.sandbox_timeout),
            provider_factory=provider_factory,
            http_transport=http_transport,
            on_report=self._on_report,
        )
        self.registry = registry if registry is not None else build_registry(self.context)

    @property
    def id(self) -> str:
        return self._id

    @property
    def running(self) -> bool:
        return self._running

    # Public operations ========================================================

    async def chat(self, text: str) -> Optional[LoopResult]:
        """Sends a chat message and runs the loop. A no-op while a run is active."""
        text = text.strip()
        if not text or self._running:
            return None
        self.mode = Mode.CHAT
        self.state.append_user(text)
        return await self.run_loop()

    async def research(self, text: str) -> Optional[LoopResult]:
        """Runs the loop in research mode, then writes a report unless the run
        was cancelled.

        A failed report is published as an alert; it never raises.
        """
        text = text.strip()
        if not text or self._running:
            return None
        self.mode = Mode.RESEARCH
        self.state.append_user(text, meta=dict(RESEARCH_META))

        result = await self.run_loop()
        if result is None or isinstance(result.error, LoopCancelledError):
            return result

        summaries = [m.to_dict() for m in self.state if m.role == Role.ASSISTANT]
        try:
            content = await self.context.complete(
                report_prompt(text, summaries, {}, ReportFormat.MD.value)
            )
            await self._on_report(Report(query=text, content=content))
        except AgentError as e:
            logger.warning(f"Report generation failed: {e}")
            await self._publish(
                EventType.APPLICATION_ERROR, f"Report generation failed: {e}"
            )
        return result

    async def run_loop(self) -> Optional[LoopResult]:
        """Runs the agent loop over the current conversation.

        Returns None without touching the conversation if a run is already
        active on this session.
        """
        if self._running:
            logger.warning(f"Loop already running on {self._id}, ignoring request")
            return None

        self._running = True
        self._cancel_requested = False
        self._turns = 0
        self._task = asyncio.create_task(self._run())
        try:
            return await self._task
        except asyncio.CancelledError:
            if not self._cancel_requested:
                raise
            return await self._handle_cancelled()
        finally:
            self._running = False
            self._task = None

    def cancel(self) -> bool:
        """Cancels the in-flight run, if any. In-flight tool calls and sandbox
        processes are torn down with it."""
        if self._task is None or self._task.done():
            return False
        self._cancel_requested = True
        self._task.cancel()
        return True

    def clear(self) -> bool:
        """Empties the conversation. Refused while a run is active."""
        if self._running:
            return False
        self.state.clear()
        self.report = None
        return True

    def export(self, path: Path | str) -> Path:
        return self.state.export(Path(path))

    # Loop internals ===========================================================

    def _get_adapter(self) -> ProviderAdapter:
        api_key = self.settings.validate_credentials()
        if self._provider_factory is not None:
            return self._provider_factory(self.settings.provider)
        return get_provider(
            self.settings.provider, api_key, timeout=self.settings.http_timeout
        )

    async def _run(self) -> LoopResult:
        try:
            adapter = self._get_adapter()
        except AgentError as e:
            return await self._fail(e, None)

        self.state.ensure_system_preamble(self.mode.value, get_preamble(self.mode))

        options = CompletionOptions(
            model=self.settings.resolved_model, max_tokens=self.settings.max_tokens
        )
        tools = self.registry.list()
        final_message: Optional[Message] = None

        for turn in range(1, self.settings.max_turns + 1):
            await self._publish_state(LoopState.REQUESTING, turn)
            try:
                completion = await create_completion(
                    adapter, list(self.state.messages), tools, options
                )
            except AgentError as e:
                return await self._fail(e, final_message)

            self._turns = turn
            final_message = self.state.append_assistant(
                completion.content, completion.tool_calls or None
            )
            if completion.content.strip():
                await self._publish(
                    EventType.ASSISTANT_MESSAGE,
                    completion.content,
                    mode=self.mode.value,
                )

            if not completion.tool_calls:
                return await self._finish(LoopState.DONE, final_message)

            await self._publish_state(LoopState.EXECUTING, turn)
            await self._execute_tool_calls(completion.tool_calls)

        logger.warning(
            f"Turn budget of {self.settings.max_turns} exhausted on {self._id}"
        )
        await self._publish(
            EventType.APPLICATION_WARNING,
            f"Stopped after {self.settings.max_turns} turns",
        )
        return await self._finish(LoopState.DONE, final_message, budget_exhausted=True)

    async def _execute_tool_calls(self, tool_calls: list[ToolCall]) -> None:
        for tc in tool_calls:
            await self._publish(
                EventType.TOOL_CALL,
                tc.name,
                name=tc.name,
                args=tc.arguments,
                call_id=tc.id,
            )

        results = await self.registry.dispatch_all(tool_calls)

        # Appended in call order, whatever order the calls completed in
        for tc, result in zip(tool_calls, results):
            self.state.append_tool(tc.id, tc.name, result.to_content())
            await self._publish(
                EventType.TOOL_RESULT, result.to_content(), tool_result=result
            )

    async def _handle_cancelled(self) -> LoopResult:
        last = self.state.last_assistant_message()
        pending = set(self.state.pending_tool_call_ids())
        if last is not None and last.tool_calls:
            for tc in last.tool_calls:
                if tc.id in pending:
                    self.state.append_tool(tc.id, tc.name, '{"error": "Cancelled"}')

        error = LoopCancelledError()
        logger.info(f"Loop run on {self._id} cancelled after {self._turns} turns")
        await self._publish(EventType.APPLICATION_WARNING, str(error))
        await self._publish_state(LoopState.FAILED, self._turns)
        return LoopResult(
            state=LoopState.FAILED, turns=self._turns, final_message=last, error=error
        )

    async def _fail(self, error: Exception, final_message: Optional[Message]) -> LoopResult:
        logger.error(f"Agent loop error: {error}")
        await self._publish(EventType.APPLICATION_ERROR, f"Agent loop error: {error}")
        await self._publish_state(LoopState.FAILED, self._turns)
        return LoopResult(
            state=LoopState.FAILED,
            turns=self._turns,
            final_message=final_message,
            error=error,
        )

    async def _finish(
        self,
        state: LoopState,
        final_message: Optional[Message],
        budget_exhausted: bool = False,
    ) -> LoopResult:
        await self._publish_state(state, self._turns)
        return LoopResult(
            state=state,
            turns=self._turns,
            final_message=final_message,
            budget_exhausted=budget_exhausted,
        )

    async def _on_report(self, report: Report) -> None:
        self.report = report
        await self._publish(
            EventType.REPORT_READY,
            report.content,
            query=report.query,
            format=report.format.value,
        )

    async def _publish_state(self, state: LoopState, turn: int) -> None:
        await self._publish(EventType.LOOP_STATE, state.value, turn=turn)

    async def _publish(self, event_type: EventType, content: str, **metadata: Any) -> None:
        await self.event_bus.publish(
            Event(type=event_type, content=content, metadata=metadata), self._id
        )
