# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Anthropic messages API provider implementation."""

import logging

from typing import Any, ClassVar, Optional
from anthropic import AsyncAnthropic, APIConnectionError, APIError, APIStatusError
from pydantic import BaseModel

from ..base import Completion, CompletionOptions
from .base_provider import content_as_text
from ...types.common import ProviderName
from ...types.errors import ProviderInvocationError
from ...types.llm_types import Message, Role, ToolSpec

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider:
    """Messages API provider. Tool calls are never sent or received."""

    provider: ProviderName = ProviderName.ANTHROPIC
    supports_tools: ClassVar[bool] = False

    def __init__(
        self,
        api_key: str,
        default_model: str = "claude-3-5-sonnet-latest",
        client: Optional[AsyncAnthropic] = None,
        timeout: Optional[float] = None,
    ):
        self.default_model = default_model
        if client is None:
            kwargs: dict[str, Any] = dict(
                api_key=api_key,
                max_retries=0,
                default_headers={"anthropic-version": ANTHROPIC_VERSION},
            )
            if timeout is not None:
                kwargs["timeout"] = timeout
            client = AsyncAnthropic(**kwargs)
        self.client = client

    def _prepare_messages(self, messages: list[Message]) -> tuple[str | None, list[dict]]:
        """Returns the hoisted system text and the user/assistant message list.

        The messages API only accepts the user and assistant roles, so system
        preambles move to the `system` parameter and tool results are sent as
        user text.
        """
        system_parts = []
        out_messages = []
        for msg in messages:
            text = content_as_text(msg.content)
            if msg.role == Role.SYSTEM:
                system_parts.append(text)
                continue
            if not text:
                # Empty text blocks are rejected by the API
                logger.debug(f"Skipping empty {msg.role.value} message")
                continue
            role = "assistant" if msg.role == Role.ASSISTANT else "user"
            out_messages.append({"role": role, "content": text})
        system = "\n\n".join(system_parts) if system_parts else None
        return system, out_messages

    def translate_request(
        self,
        messages: list[Message],
        tools: list[ToolSpec],
        options: CompletionOptions,
    ) -> dict[str, Any]:
        system, out_messages = self._prepare_messages(messages)
        payload: dict[str, Any] = {
            "model": options.model or self.default_model,
            "max_tokens": options.max_tokens or 800,
            "messages": out_messages,
        }
        if system:
            payload["system"] = system
        return payload

    async def invoke(self, payload: dict[str, Any]) -> Any:
        try:
            return await self.client.messages.create(**payload)
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
        text = ""
        for block in getattr(raw, "content", None) or []:
            if getattr(block, "type", None) == "text":
                text = block.text or ""
                break
        else:
            logger.warning("Anthropic response carried no text block")

        return Completion(
            content=text,
            provider=self.provider,
            model=getattr(raw, "model", None),
            raw_response=raw.model_dump() if isinstance(raw, BaseModel) else None,
        )
