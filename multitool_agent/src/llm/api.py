# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Entry points for talking to a provider through its adapter."""

import logging

from typing import Optional
from datetime import datetime

from .base import Completion, CompletionOptions, TimingInfo
from .providers import (
    ProviderAdapter,
    AnthropicProvider,
    GeminiProvider,
    openai_provider,
    groq_provider,
)
from ..types.common import ProviderName
from ..types.errors import AgentError, ConfigurationError, ProviderInvocationError
from ..types.llm_types import Message, ToolSpec

logger = logging.getLogger(__name__)


def get_provider(
    name: ProviderName | str,
    api_key: str,
    timeout: Optional[float] = None,
) -> ProviderAdapter:
    """Builds the adapter for a provider name.

    Raises:
        ConfigurationError: if the provider is not one we know how to talk to
    """
    try:
        provider = ProviderName(name)
    except ValueError:
        raise ConfigurationError(f"Unknown provider: {name}")

    match provider:
        case ProviderName.OPENAI:
            return openai_provider(api_key, timeout=timeout)
        case ProviderName.GROQ:
            return groq_provider(api_key, timeout=timeout)
        case ProviderName.GEMINI:
            return GeminiProvider(api_key, timeout=timeout)
        case ProviderName.ANTHROPIC:
            return AnthropicProvider(api_key, timeout=timeout)


async def create_completion(
    adapter: ProviderAdapter,
    messages: list[Message],
    tools: Optional[list[ToolSpec]] = None,
    options: Optional[CompletionOptions] = None,
) -> Completion:
    """One request/response cycle: translate, invoke once, parse.

    Tool schemas are only handed to adapters that can carry them on the wire.
    Invocation errors propagate unchanged, and a reply the adapter cannot
    parse becomes a ProviderInvocationError. Nothing is retried.
    """
    options = options or CompletionOptions()
    tool_specs = list(tools or []) if adapter.supports_tools else []

    start_time = datetime.now()
    payload = adapter.translate_request(list(messages), tool_specs, options)
    raw = await adapter.invoke(payload)
    try:
        completion = adapter.parse_response(raw)
    except AgentError:
        raise
    except Exception as e:
        raise ProviderInvocationError(
            adapter.provider.value, None, f"unreadable response: {e}"
        ) from e

    completion.timing = TimingInfo.since(start_time)
    if completion.model is None:
        completion.model = payload.get("model")

    logger.debug(
        f"{adapter.provider.value} completion in {completion.timing.total_duration}: "
        f"{len(completion.content)} chars, {len(completion.tool_calls)} tool calls"
    )
    return completion
