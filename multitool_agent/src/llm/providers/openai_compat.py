# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""OpenAI-compatible chat completions provider (OpenAI and Groq backends)."""

import logging

from typing import Any, ClassVar, Optional
from openai import AsyncOpenAI, APIConnectionError, APIError, APIStatusError
from pydantic import BaseModel

from ..base import Completion, CompletionOptions
from .base_provider import content_as_text
from ...types.common import ProviderName
from ...types.errors import ProviderInvocationError
from ...types.llm_types import Message, Role, ToolCall, ToolSpec

logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"
GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class OpenAICompatibleProvider:
    """Provider implementation for the chat completions wire format.

    The same class serves every backend that speaks this protocol; the
    instance is tagged with the provider it talks to.
    """

    supports_tools: ClassVar[bool] = True

    def __init__(
        self,
        provider: ProviderName,
        api_key: str,
        base_url: str,
        default_model: str,
        client: Optional[AsyncOpenAI] = None,
        timeout: Optional[float] = None,
    ):
        self.provider = provider
        self.default_model = default_model
        if client is None:
            kwargs: dict[str, Any] = dict(api_key=api_key, base_url=base_url, max_retries=0)
            if timeout is not None:
                kwargs["timeout"] = timeout
            client = AsyncOpenAI(**kwargs)
        self.client = client

    def _prepare_messages(self, messages: list[Message]) -> list[dict]:
        """Maps canonical messages to the chat completions message list"""
        out_messages = []
        for msg in messages:
            out: dict[str, Any] = {"role": msg.role.value}
            if msg.role == Role.ASSISTANT:
                if msg.tool_calls:
                    out["tool_calls"] = [
                        {
                            "id": tc.id,
                            "type": "function",
                            "function": {"name": tc.name, "arguments": tc.arguments},
                        }
                        for tc in msg.tool_calls
                    ]
                    content = (msg.content or "").strip()
                    out["content"] = content if content else None
                else:
                    out["content"] = content_as_text(msg.content)
            elif msg.role == Role.TOOL:
                out["tool_call_id"] = msg.tool_call_id
                if msg.name:
                    out["name"] = msg.name
                out["content"] = content_as_text(msg.content)
            else:
                out["content"] = content_as_text(msg.content)
                if msg.name:
                    out["name"] = msg.name
            out_messages.append(out)
        return out_messages

    def translate_request(
        self,
        messages: list[Message],
        tools: list[ToolSpec],
        options: CompletionOptions,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": options.model or self.default_model,
            "messages": self._prepare_messages(messages),
            "max_tokens": options.max_tokens,
        }
        # An empty tools array is rejected by the API, so leave it out
        if tools:
            payload["tools"] = [
                {"type": "function", "function": t.to_function_schema()} for t in tools
            ]
        return payload

    async def invoke(self, payload: dict[str, Any]) -> Any:
        try:
            return await self.client.chat.completions.create(**payload)
        except APIStatusError as e:
            raise ProviderInvocationError(
                self.provider.value, e.status_code, str(e.message)
            ) from e
        except APIConnectionError as e:
            raise ProviderInvocationError(self.provider.value, None, str(e)) from e
        except APIError as e:
            # Undecodable or malformed replies
            raise ProviderInvocationError(
                self.provider.value, getattr(e, "status_code", None), str(e.message)
            ) from e

    def parse_response(self, raw: Any) -> Completion:
        choices = getattr(raw, "choices", None) or []
        if not choices:
            logger.warning(f"{self.provider.value} response carried no choices")
            return Completion(provider=self.provider, model=getattr(raw, "model", None))

        message = choices[0].message
        tool_calls = []
        for tc in getattr(message, "tool_calls", None) or []:
            function = getattr(tc, "function", None)
            if function is None:
                continue
            tool_calls.append(
                ToolCall(id=tc.id, name=function.name, arguments=function.arguments)
            )

        return Completion(
            content=message.content or "",
            tool_calls=tool_calls,
            provider=self.provider,
            model=getattr(raw, "model", None),
            raw_response=raw.model_dump() if isinstance(raw, BaseModel) else None,
        )


def openai_provider(api_key: str, **kwargs) -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider(
        ProviderName.OPENAI, api_key, OPENAI_BASE_URL, "gpt-4o-mini", **kwargs
    )


def groq_provider(api_key: str, **kwargs) -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider(
        ProviderName.GROQ, api_key, GROQ_BASE_URL, "mixtral-8x7b-32768", **kwargs
    )
