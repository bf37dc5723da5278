# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from __future__ import annotations

import json
import time
import asyncio
import logging

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, ClassVar, Iterable, Optional

import httpx
from pydantic import BaseModel, ConfigDict, PrivateAttr

from ..config import Settings
from ..llm.api import create_completion, get_provider
from ..llm.base import CompletionOptions
from ..llm.providers import ProviderAdapter
from ..sandbox import SandboxExecutor
from ..types.common import ProviderName
from ..types.errors import ToolExecutionError, UnknownToolError
from ..types.llm_types import Message, Role, ToolCall, ToolSpec
from ..types.agent_types import Report
from ..types.tool_types import ToolHandler, ToolResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def parse_tool_arguments(raw_arguments: Any, tool_name: str = "") -> dict[str, Any]:
    """Decodes a tool call's arguments into an object.

    Malformed JSON, or JSON that is not an object, yields an empty object and a
    warning; the call still goes ahead.
    """
    if isinstance(raw_arguments, dict):
        return raw_arguments
    if raw_arguments is None or (isinstance(raw_arguments, str) and not raw_arguments.strip()):
        return {}
    try:
        args = json.loads(raw_arguments)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(
            f"Malformed arguments for tool {tool_name}, substituting an empty object: {e}",
            extra={"tool_name": tool_name, "raw_arguments": str(raw_arguments)[:200]},
        )
        return {}
    if not isinstance(args, dict):
        logger.warning(
            f"Arguments for tool {tool_name} are not a JSON object, substituting an empty object",
            extra={"tool_name": tool_name, "raw_arguments": str(raw_arguments)[:200]},
        )
        return {}
    return args


class ToolRegistry:
    """Holds tool schemas and handlers, and runs tool calls.

    `dispatch` is the containment boundary for tool failures: whatever a
    handler does, the caller gets a ToolResult back.
    """

    def __init__(self):
        self._tools: dict[str, tuple[ToolSpec, ToolHandler]] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def register(self, spec: ToolSpec, handler: ToolHandler) -> None:
        if spec.name in self._tools:
            raise ValueError(f"A tool named {spec.name} is already registered")
        self._tools[spec.name] = (spec, handler)

    def lookup(self, name: str) -> ToolHandler:
        """Raises UnknownToolError if nothing is registered under `name`."""
        try:
            return self._tools[name][1]
        except KeyError:
            raise UnknownToolError(name)

    async def dispatch(
        self, name: str, raw_arguments: Any, call_id: Optional[str] = None
    ) -> ToolResult:
        """Runs one tool call. Never raises, except for cancellation."""
        start_time = time.time()
        args = parse_tool_arguments(raw_arguments, name)

        try:
            handler = self.lookup(name)
            output = await handler(args)
            try:
                json.dumps(output)
            except (TypeError, ValueError) as e:
                raise ToolExecutionError(name, f"Tool returned an unusable result: {e}")
        except UnknownToolError as e:
            logger.warning(f"Model requested unknown tool {name}")
            return ToolResult(tool_name=name, call_id=call_id, error=str(e))
        except Exception as e:
            logger.error(f"Error during tool execution: {str(e)}")
            return ToolResult(
                tool_name=name,
                call_id=call_id,
                error=str(e) or type(e).__name__,
                duration=time.time() - start_time,
            )

        return ToolResult(
            tool_name=name,
            call_id=call_id,
            output=output,
            duration=time.time() - start_time,
        )

    async def dispatch_all(self, tool_calls: Iterable[ToolCall]) -> list[ToolResult]:
        """Runs the calls of one turn concurrently; results come back in call order."""
        return list(
            await asyncio.gather(
                *(self.dispatch(tc.name, tc.arguments, call_id=tc.id) for tc in tool_calls)
            )
        )

    def list(self) -> list[ToolSpec]:
        """The registered tool specs, in registration order."""
        return [spec for spec, _ in self._tools.values()]


@dataclass
class ToolContext:
    """What the bundled tools may reach: settings, HTTP, providers, the sandbox.

    Tools only ever return values; anything they want recorded goes through
    the session via `on_report`.
    """

    settings: Settings
    sandbox: SandboxExecutor = field(default_factory=SandboxExecutor)
    provider_factory: Optional[Callable[[ProviderName], ProviderAdapter]] = None
    http_transport: Optional[httpx.AsyncBaseTransport] = None
    on_report: Optional[Callable[[Report], Awaitable[None]]] = None

    def http_client(self) -> httpx.AsyncClient:
        kwargs: dict[str, Any] = {}
        if self.http_transport is not None:
            kwargs["transport"] = self.http_transport
        if self.settings.http_timeout is not None:
            kwargs["timeout"] = self.settings.http_timeout
        return httpx.AsyncClient(**kwargs)

    def get_adapter(self, provider: Optional[ProviderName] = None) -> ProviderAdapter:
        provider = provider or self.settings.provider
        if self.provider_factory is not None:
            return self.provider_factory(provider)
        return get_provider(
            provider,
            self.settings.validate_credentials(),
            timeout=self.settings.http_timeout,
        )

    async def complete(
        self,
        prompt: str,
        provider: Optional[ProviderName] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """A nested single-shot completion. No tool schema is sent, so tools
        cannot trigger further tool calls."""
        if model is None and (provider is None or provider == self.settings.provider):
            model = self.settings.model
        adapter = self.get_adapter(provider)
        completion = await create_completion(
            adapter,
            [Message(role=Role.USER, content=prompt)],
            tools=[],
            options=CompletionOptions(
                model=model, max_tokens=max_tokens or self.settings.max_tokens
            ),
        )
        return completion.content


# Every concrete BaseTool subclass, by tool name, in definition order
tool_catalogue: dict[str, type["BaseTool"]] = {}


def _clean_schema(node: Any) -> Any:
    """Drops pydantic's generated titles from a JSON schema node."""
    if isinstance(node, list):
        return [_clean_schema(n) for n in node]
    if not isinstance(node, dict):
        return node
    cleaned = {}
    for key, value in node.items():
        if key == "title":
            continue
        if key == "properties" and isinstance(value, dict):
            cleaned[key] = {name: _clean_schema(prop) for name, prop in value.items()}
        else:
            cleaned[key] = _clean_schema(value)
    return cleaned


class BaseTool(BaseModel):
    """Abstract base class for the bundled tools.

    The model fields are the tool's arguments; the function-calling schema is
    derived from them.
    """

    TOOL_NAME: ClassVar[str]
    TOOL_DESCRIPTION: ClassVar[str]

    model_config = ConfigDict(extra="ignore")

    _context: ToolContext = PrivateAttr()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if "TOOL_NAME" in cls.__dict__:
            tool_catalogue[cls.TOOL_NAME] = cls

    @abstractmethod
    async def run(self) -> Any:
        """Execute the tool and return a JSON-serializable value"""
        pass

    @classmethod
    def tool_spec(cls) -> ToolSpec:
        schema = cls.model_json_schema()
        properties = _clean_schema(schema.get("properties", {}))
        return ToolSpec(
            name=cls.TOOL_NAME,
            description=cls.TOOL_DESCRIPTION,
            parameters={
                "type": "object",
                "properties": properties,
                "required": list(schema.get("required", [])),
            },
        )

    @classmethod
    def handler(cls, context: ToolContext) -> ToolHandler:
        async def run_tool(args: dict[str, Any]) -> Any:
            tool = cls.model_validate(args)
            tool._context = context
            return await tool.run()

        run_tool.__name__ = f"run_{cls.TOOL_NAME}"
        return run_tool


def register_tools(
    registry: ToolRegistry,
    context: ToolContext,
    tools: Optional[Iterable[type[BaseTool]]] = None,
) -> ToolRegistry:
    """Binds tool classes to a context and registers them."""
    for tool_cls in tools if tools is not None else tool_catalogue.values():
        registry.register(tool_cls.tool_spec(), tool_cls.handler(context))
    return registry
