# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from typing import Literal
from pydantic import Field

from .base_tool import BaseTool


class Summarize(BaseTool):
    TOOL_NAME = "summarize"
    TOOL_DESCRIPTION = "Summarize a text (short TL;DR or detailed deep dive)."

    text: str = Field(..., description="The text to summarize")
    mode: Literal["short", "detailed"] = Field(..., description="How deep the summary goes")
    max_tokens: int = Field(default=400, ge=1, description="Length bound on the summary")

    async def run(self) -> dict[str, str]:
        prompt = f"Summarize this text in {self.mode} form:\n\n{self.text}"
        summary = await self._context.complete(prompt, max_tokens=self.max_tokens)
        return {"summary": summary}
