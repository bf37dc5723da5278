# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Gemini REST api LLM provider implementation."""

import httpx
import logging

from typing import Any, ClassVar, Optional

from ..base import Completion, CompletionOptions
from .base_provider import content_as_text
from ...types.common import ProviderName
from ...types.errors import ProviderInvocationError
from ...types.llm_types import Message, Role, ToolSpec

logger = logging.getLogger(__name__)


class GeminiProvider:
    """generateContent over plain REST. Tool calls are never sent or received."""

    provider: ProviderName = ProviderName.GEMINI
    supports_tools: ClassVar[bool] = False

    base_url = "https://generativelanguage.googleapis.com/v1beta/models/{model_id}:generateContent"

    def __init__(
        self,
        api_key: str,
        default_model: str = "gemini-2.5-flash",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self._api_key = api_key
        self.default_model = default_model
        self._transport = transport
        self._timeout = timeout

    def _role_mapping(self, role: Role) -> str:
        match role:
            case Role.ASSISTANT:
                return "model"
            case _:
                return "user"

    def _prepare_messages(self, messages: list[Message]) -> list[dict]:
        """Maps canonical messages into gemini `contents`, one text part each"""
        return [
            {
                "role": self._role_mapping(msg.role),
                "parts": [{"text": content_as_text(msg.content)}],
            }
            for msg in messages
        ]

    def translate_request(
        self,
        messages: list[Message],
        tools: list[ToolSpec],
        options: CompletionOptions,
    ) -> dict[str, Any]:
        # The model id travels in the URL; it is kept here so invoke can
        # build it, and popped before the body is sent
        return {
            "model": options.model or self.default_model,
            "contents": self._prepare_messages(messages),
            "generationConfig": {"maxOutputTokens": options.max_tokens},
        }

    async def invoke(self, payload: dict[str, Any]) -> Any:
        body = dict(payload)
        model = body.pop("model")
        url = self.base_url.format(model_id=model)
        headers = {"Content-Type": "application/json"}

        client_kwargs: dict[str, Any] = {}
        if self._transport is not None:
            client_kwargs["transport"] = self._transport
        if self._timeout is not None:
            client_kwargs["timeout"] = self._timeout

        try:
            async with httpx.AsyncClient(**client_kwargs) as client:
                response = await client.post(
                    url, params={"key": self._api_key}, headers=headers, json=body
                )
        except httpx.HTTPError as e:
            raise ProviderInvocationError(self.provider.value, None, str(e)) from e

        if not response.is_success:
            raise ProviderInvocationError(self.provider.value, response.status_code)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderInvocationError(
                self.provider.value, response.status_code, "invalid JSON body"
            ) from e

    def parse_response(self, raw: Any) -> Completion:
        text = ""
        try:
            text = raw["candidates"][0]["content"]["parts"][0].get("text") or ""
        except (KeyError, IndexError, TypeError, AttributeError):
            logger.warning("Gemini response carried no text candidate")

        return Completion(
            content=text,
            provider=self.provider,
            model=raw.get("modelVersion") if isinstance(raw, dict) else None,
            raw_response=raw if isinstance(raw, dict) else None,
        )
