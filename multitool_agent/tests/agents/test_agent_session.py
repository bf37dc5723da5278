# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the agent loop, driven by scripted providers."""
import asyncio
import json

import httpx
import pytest
from unittest.mock import Mock

from multitool_agent.src.agents import AgentSession, RESEARCH_META
from multitool_agent.src.config import Settings
from multitool_agent.src.llm.providers import GeminiProvider
from multitool_agent.src.tools import ToolRegistry
from multitool_agent.src.types.common import Mode, ProviderName
from multitool_agent.src.types.errors import (
    ConfigurationError,
    LoopCancelledError,
    ProviderInvocationError,
)
from multitool_agent.src.types.agent_types import LoopState
from multitool_agent.src.types.event_types import EventType
from multitool_agent.src.types.llm_types import Role, ToolSpec

pytestmark = pytest.mark.asyncio


@pytest.fixture
def completed():
    """Tool names in the order their handlers finished."""
    return []


@pytest.fixture
def registry(completed):
    registry = ToolRegistry()

    async def web_search(args):
        await asyncio.sleep(0.05)
        completed.append("web_search")
        return [{"title": args.get("q"), "url": "https://example.com"}]

    async def js_exec(args):
        completed.append("js_exec")
        return {"result": "2"}

    async def echo(args):
        return args

    async def hang(args):
        await asyncio.sleep(60)

    registry.register(ToolSpec(name="web_search"), web_search)
    registry.register(ToolSpec(name="js_exec"), js_exec)
    registry.register(ToolSpec(name="echo"), echo)
    registry.register(ToolSpec(name="hang"), hang)
    return registry


@pytest.fixture
def make_session(settings, registry):
    def make(provider, **kwargs):
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("registry", registry)
        return AgentSession(provider_factory=lambda name: provider, **kwargs)

    return make


def roles(session):
    return [m.role for m in session.state]


def events_of(session, event_type):
    return [e.content for e in session.event_bus.get_events_by_type(event_type)]


async def test_plain_answer_finishes_in_one_cycle(make_session, scripted_provider, reply):
    provider = scripted_provider([reply("4")], supports_tools=False)
    session = make_session(provider)

    result = await session.chat("What is 2+2?")

    assert result.state == LoopState.DONE
    assert result.turns == 1
    assert result.final_message.content == "4"
    assert len(provider.payloads) == 1
    assert provider.payloads[0]["tools"] == []
    assert roles(session) == [Role.SYSTEM, Role.USER, Role.ASSISTANT]
    assert events_of(session, EventType.ASSISTANT_MESSAGE) == ["4"]


async def test_tool_messages_follow_call_order(make_session, scripted_provider, reply, completed):
    provider = scripted_provider(
        [
            reply(
                "",
                [
                    ("a", "web_search", '{"q":"x"}'),
                    ("b", "js_exec", '{"code":"1+1"}'),
                ],
            ),
            reply("done"),
        ]
    )
    session = make_session(provider)

    result = await session.chat("search and compute")

    assert result.state == LoopState.DONE
    assert result.turns == 2
    # js_exec finished first, but its message still comes second
    assert completed == ["js_exec", "web_search"]
    messages = session.state.messages
    assert messages[2].role == Role.ASSISTANT
    assert [(m.role, m.tool_call_id) for m in messages[3:5]] == [
        (Role.TOOL, "a"),
        (Role.TOOL, "b"),
    ]
    assert json.loads(messages[4].content) == {"result": "2"}
    assert messages[5].content == "done"

    # The second request carries the full exchange
    second = provider.payloads[1]["messages"]
    assert [m["role"] for m in second] == ["system", "user", "assistant", "tool", "tool"]
    assert provider.payloads[0]["tools"] == ["web_search", "js_exec", "echo", "hang"]


async def test_empty_tool_call_turn_is_not_rendered(make_session, scripted_provider, reply):
    provider = scripted_provider([reply("", [("a", "echo", "{}")]), reply("final")])
    session = make_session(provider)

    await session.chat("hi")

    assert events_of(session, EventType.ASSISTANT_MESSAGE) == ["final"]
    assert len(events_of(session, EventType.TOOL_CALL)) == 1
    assert len(events_of(session, EventType.TOOL_RESULT)) == 1


async def test_provider_error_fails_without_appending(make_session, scripted_provider):
    provider = scripted_provider([ProviderInvocationError("openai", 401, "Unauthorized")])
    session = make_session(provider)

    result = await session.chat("hello")

    assert result.state == LoopState.FAILED
    assert result.error.status_code == 401
    assert roles(session) == [Role.SYSTEM, Role.USER]
    assert len(provider.payloads) == 1
    assert any("401" in alert for alert in events_of(session, EventType.APPLICATION_ERROR))
    with pytest.raises(ProviderInvocationError):
        result.raise_for_error()


async def test_undecodable_provider_reply_fails_the_run(make_session):
    gateway_page = httpx.MockTransport(
        lambda r: httpx.Response(200, text="<html>gateway</html>")
    )
    session = make_session(GeminiProvider("g-key", transport=gateway_page))

    result = await session.chat("hi")

    assert result.state == LoopState.FAILED
    assert isinstance(result.error, ProviderInvocationError)
    assert roles(session) == [Role.SYSTEM, Role.USER]
    assert any(
        a.startswith("Agent loop error") for a in events_of(session, EventType.APPLICATION_ERROR)
    )
    assert events_of(session, EventType.LOOP_STATE)[-1] == LoopState.FAILED.value


async def test_provider_error_after_tool_turn(make_session, scripted_provider, reply):
    provider = scripted_provider(
        [reply("", [("a", "echo", "{}")]), ProviderInvocationError("openai", 500)]
    )
    session = make_session(provider)

    result = await session.chat("hi")

    assert result.state == LoopState.FAILED
    assert result.turns == 1
    assert roles(session) == [Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.TOOL]


async def test_concurrent_run_is_a_no_op(make_session, scripted_provider, reply):
    provider = scripted_provider([reply("slow answer")], delay=0.2)
    session = make_session(provider)

    first = asyncio.create_task(session.chat("first"))
    await asyncio.sleep(0.05)
    assert session.running
    snapshot = list(session.state.messages)

    assert await session.run_loop() is None
    assert await session.chat("second") is None
    assert await session.research("third") is None
    assert list(session.state.messages) == snapshot

    result = await first
    assert result.state == LoopState.DONE
    assert len(provider.payloads) == 1
    assert not session.running


async def test_turn_budget(make_session, scripted_provider, reply):
    provider = scripted_provider([reply("again", [("x", "echo", "{}")])])
    session = make_session(provider)

    result = await session.chat("loop forever")

    assert result.state == LoopState.DONE
    assert result.budget_exhausted
    assert result.turns == 8
    assert len(provider.payloads) == 8
    assert result.final_message.content == "again"
    # Every call got its answer, even on the last turn
    assert session.state.pending_tool_call_ids() == []
    assert events_of(session, EventType.APPLICATION_WARNING) == ["Stopped after 8 turns"]


async def test_turn_budget_is_configurable(settings, make_session, scripted_provider, reply):
    provider = scripted_provider([reply("", [("x", "echo", "{}")])])
    session = make_session(provider, settings=settings.model_copy(update={"max_turns": 2}))

    result = await session.chat("go")

    assert result.turns == 2
    assert len(provider.payloads) == 2


async def test_missing_credentials_fail_before_any_request(registry, scripted_provider, reply):
    provider = scripted_provider([reply("never")])
    factory = Mock(return_value=provider)
    settings = Settings(provider=ProviderName.GROQ, api_key="", _env_file=None)
    session = AgentSession(settings=settings, registry=registry, provider_factory=factory)

    result = await session.chat("hello")

    assert result.state == LoopState.FAILED
    assert isinstance(result.error, ConfigurationError)
    assert str(result.error) == "Missing API key/token for groq."
    factory.assert_not_called()
    assert provider.payloads == []
    assert roles(session) == [Role.USER]


async def test_malformed_openai_key(registry, scripted_provider, reply):
    settings = Settings(provider=ProviderName.OPENAI, api_key="abc", _env_file=None)
    session = AgentSession(
        settings=settings,
        registry=registry,
        provider_factory=lambda name: scripted_provider([reply("never")]),
    )

    result = await session.chat("hello")
    assert isinstance(result.error, ConfigurationError)
    assert "sk-" in str(result.error)


async def test_preamble_is_inserted_once(make_session, scripted_provider, reply):
    session = make_session(scripted_provider([reply("ok")]))

    await session.chat("one")
    await session.chat("two")

    systems = [m for m in session.state if m.role == Role.SYSTEM]
    assert len(systems) == 1
    assert systems[0].mode == "chat"
    assert session.state.messages[0] is systems[0]


async def test_malformed_arguments_keep_the_loop_going(make_session, scripted_provider, reply):
    provider = scripted_provider([reply("", [("a", "echo", "{oops")]), reply("recovered")])
    session = make_session(provider)

    result = await session.chat("hi")

    assert result.state == LoopState.DONE
    assert session.state.messages[3].content == "{}"


async def test_unknown_tool_is_reported_to_the_model(make_session, scripted_provider, reply):
    provider = scripted_provider([reply("", [("a", "nope", "{}")]), reply("sorry")])
    session = make_session(provider)

    result = await session.chat("hi")

    assert result.state == LoopState.DONE
    assert json.loads(session.state.messages[3].content) == {"error": "Unknown tool: nope"}


async def test_research_always_writes_a_report(make_session, scripted_provider, reply):
    provider = scripted_provider([reply("findings"), reply("# Report")])
    session = make_session(provider)

    result = await session.research("What is fusion?")

    assert result.state == LoopState.DONE
    assert session.mode == Mode.RESEARCH
    assert session.state.messages[1].meta == RESEARCH_META
    assert session.state.messages[0].mode == "research"
    assert session.report.content == "# Report"
    assert session.report.query == "What is fusion?"
    assert events_of(session, EventType.REPORT_READY) == ["# Report"]

    report_request = provider.payloads[-1]
    assert report_request["tools"] == []
    assert 'research report about "What is fusion?"' in report_request["messages"][0]["content"]
    # The report call does not touch the conversation
    assert roles(session) == [Role.SYSTEM, Role.USER, Role.ASSISTANT]


async def test_failed_report_is_an_alert(make_session, scripted_provider, reply):
    provider = scripted_provider([reply("findings"), ProviderInvocationError("openai", 500)])
    session = make_session(provider)

    result = await session.research("topic")

    assert result.state == LoopState.DONE
    assert session.report is None
    assert any(
        a.startswith("Report generation failed")
        for a in events_of(session, EventType.APPLICATION_ERROR)
    )


async def test_cancel_during_request(make_session, scripted_provider, reply):
    provider = scripted_provider([reply("too late")], delay=10)
    session = make_session(provider)

    task = asyncio.create_task(session.chat("hi"))
    await asyncio.sleep(0.05)
    assert session.cancel()

    result = await task
    assert result.state == LoopState.FAILED
    assert isinstance(result.error, LoopCancelledError)
    assert not session.running
    assert roles(session) == [Role.SYSTEM, Role.USER]


async def test_cancel_during_tool_execution_answers_pending_calls(
    make_session, scripted_provider, reply
):
    provider = scripted_provider([reply("", [("a", "hang", "{}"), ("b", "echo", "{}")])])
    session = make_session(provider)

    task = asyncio.create_task(session.chat("hi"))
    await asyncio.sleep(0.1)
    session.cancel()
    result = await task

    assert result.state == LoopState.FAILED
    assert session.state.pending_tool_call_ids() == []
    tool_messages = [m for m in session.state if m.role == Role.TOOL]
    assert [m.tool_call_id for m in tool_messages] == ["a", "b"]
    assert json.loads(tool_messages[0].content) == {"error": "Cancelled"}


async def test_cancelled_research_skips_the_report(make_session, scripted_provider, reply):
    provider = scripted_provider([reply("too late")], delay=10)
    session = make_session(provider)

    task = asyncio.create_task(session.research("topic"))
    await asyncio.sleep(0.05)
    session.cancel()
    result = await task

    assert isinstance(result.error, LoopCancelledError)
    assert session.report is None
    # Only the interrupted loop request was ever sent
    assert len(provider.payloads) == 1
    assert events_of(session, EventType.REPORT_READY) == []


async def test_cancel_without_a_run(make_session, scripted_provider, reply):
    session = make_session(scripted_provider([reply("x")]))
    assert session.cancel() is False


async def test_clear_and_export(make_session, scripted_provider, reply, tmp_path):
    session = make_session(scripted_provider([reply("answer")]))
    await session.chat("question")

    path = session.export(tmp_path / "conversation.json")
    exported = json.loads(path.read_text())
    assert [m["role"] for m in exported] == ["system", "user", "assistant"]

    assert session.clear()
    assert len(session.state) == 0


async def test_clear_is_refused_while_running(make_session, scripted_provider, reply):
    session = make_session(scripted_provider([reply("x")], delay=0.2))

    task = asyncio.create_task(session.chat("hi"))
    await asyncio.sleep(0.05)
    assert session.clear() is False
    await task
    assert len(session.state) == 3


async def test_sessions_are_independent(make_session, scripted_provider, reply):
    one = make_session(scripted_provider([reply("first")], delay=0.05))
    two = make_session(scripted_provider([reply("second")], delay=0.05))

    results = await asyncio.gather(one.chat("a"), two.chat("b"))

    assert [r.state for r in results] == [LoopState.DONE, LoopState.DONE]
    assert one.state.messages[-1].content == "first"
    assert two.state.messages[-1].content == "second"
    assert one.event_bus is not two.event_bus


async def test_loop_states_are_published(make_session, scripted_provider, reply):
    provider = scripted_provider([reply("", [("a", "echo", "{}")]), reply("ok")])
    session = make_session(provider)

    await session.chat("hi")

    assert events_of(session, EventType.LOOP_STATE) == [
        "requesting",
        "executing",
        "requesting",
        "done",
    ]
