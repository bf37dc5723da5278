# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""The capability set every provider adapter implements.

Adapters are stateless over (messages, tool schemas, credentials): they hold a
client for the network call and nothing about the session. The two variants
without tool calling on the wire implement the same surface and simply never
report tool calls.
"""

import json

from typing import Any, ClassVar, Protocol, runtime_checkable

from ..base import Completion, CompletionOptions
from ...types.common import ProviderName
from ...types.llm_types import Message, ToolSpec


@runtime_checkable
class ProviderAdapter(Protocol):
    """Translate, invoke, parse: one provider's wire protocol."""

    provider: ProviderName
    supports_tools: ClassVar[bool]

    def translate_request(
        self,
        messages: list[Message],
        tools: list[ToolSpec],
        options: CompletionOptions,
    ) -> dict[str, Any]:
        """Maps canonical messages and tool schemas into the provider payload."""
        ...

    async def invoke(self, payload: dict[str, Any]) -> Any:
        """Performs a single network attempt.

        Raises:
            ProviderInvocationError: on any non-success status or transport failure
        """
        ...

    def parse_response(self, raw: Any) -> Completion:
        """Extracts the first completion candidate."""
        ...


def content_as_text(content: Any) -> str:
    """Message content as a plain string, encoding anything structured."""
    if isinstance(content, str):
        return content
    if content is None:
        return ""
    return json.dumps(content)
