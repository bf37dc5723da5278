# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from pydantic import Field

from .base_tool import BaseTool
from ..types.common import ProviderName

DEFAULT_GROQ_MODEL = "mixtral-8x7b-32768"


class GroqProxy(BaseTool):
    TOOL_NAME = "groq_proxy"
    TOOL_DESCRIPTION = """Ask a model hosted on Groq a one-off question.
The nested call carries no tools and no conversation history."""

    prompt: str = Field(..., description="The prompt to send")
    model: str = Field(
        default=DEFAULT_GROQ_MODEL, description="The Groq-hosted model to use"
    )
    max_tokens: int = Field(default=200, ge=1, description="Length bound on the completion")

    async def run(self) -> dict[str, str]:
        completion = await self._context.complete(
            self.prompt,
            provider=ProviderName.GROQ,
            model=self.model,
            max_tokens=self.max_tokens,
        )
        return {"model": self.model, "completion": completion}
