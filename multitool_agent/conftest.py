# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import asyncio

import pytest

from multitool_agent.src.config import Settings
from multitool_agent.src.llm.base import Completion, CompletionOptions
from multitool_agent.src.types.common import ProviderName
from multitool_agent.src.types.llm_types import Message, ToolCall, ToolSpec


# Optional: Define custom command-line options for your markers
def pytest_addoption(parser):
    parser.addoption(
        "--run-llm",
        action="store_true",
        default=False,
        help="Run tests marked with 'uses_llm'",
    )
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run tests marked with 'slow'",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "uses_llm: talks to a real provider API")
    config.addinivalue_line("markers", "slow: takes more than a few seconds")


# Skip tests based on markers unless the corresponding option is provided
def pytest_collection_modifyitems(config, items):
    if not config.getoption("--run-llm"):
        skip_llm = pytest.mark.skip(reason="need --run-llm option to run")
        for item in items:
            if "uses_llm" in item.keywords:
                item.add_marker(skip_llm)
    if not config.getoption("--run-slow"):
        skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


class ScriptedProvider:
    """A provider adapter that replays canned replies, one per invoke.

    Entries may be Completions or exceptions to raise. Once the script runs
    out, the last entry repeats. Every payload sent is recorded.
    """

    def __init__(
        self,
        script: list,
        provider: ProviderName = ProviderName.OPENAI,
        supports_tools: bool = True,
        delay: float = 0.0,
    ):
        self.provider = provider
        self.supports_tools = supports_tools
        self.script = list(script)
        self.delay = delay
        self.payloads: list[dict] = []

    def translate_request(
        self, messages: list[Message], tools: list[ToolSpec], options: CompletionOptions
    ) -> dict:
        return {
            "model": options.model,
            "messages": [m.to_dict() for m in messages],
            "tools": [t.name for t in tools],
        }

    async def invoke(self, payload: dict):
        self.payloads.append(payload)
        if self.delay:
            await asyncio.sleep(self.delay)
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, Exception):
            raise step
        return step

    def parse_response(self, raw) -> Completion:
        return raw


def make_reply(content: str = "", tool_calls: list[tuple[str, str, str]] | None = None):
    """A canned assistant completion; tool calls are (id, name, arguments) triples."""
    return Completion(
        content=content,
        tool_calls=[
            ToolCall(id=id_, name=name, arguments=args) for id_, name, args in tool_calls or []
        ],
        provider=ProviderName.OPENAI,
    )


@pytest.fixture
def settings():
    return Settings(
        provider=ProviderName.OPENAI,
        api_key="sk-test-key",
        sandbox_timeout=5.0,
        _env_file=None,
    )


@pytest.fixture
def scripted_provider():
    return ScriptedProvider


@pytest.fixture
def reply():
    return make_reply
