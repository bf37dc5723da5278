# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import json

from pydantic import Field

from .base_tool import BaseTool


class Compare(BaseTool):
    TOOL_NAME = "compare"
    TOOL_DESCRIPTION = "Compare multiple summaries and extract consensus/conflicts."

    summaries: list[dict] = Field(..., description="The summaries to compare")
    focus: str = Field(default="", description="Aspect to focus the comparison on")

    async def run(self) -> dict[str, str]:
        prompt = (
            "Compare these summaries and highlight consensus and conflicts.\n"
            f"Focus: {self.focus or 'general'}\n\n{json.dumps(self.summaries)}"
        )
        comparison = await self._context.complete(prompt)
        return {"comparison": comparison}
