# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import json
import logging

from typing import Literal
from pydantic import Field

from .base_tool import BaseTool
from ..types.common import ReportFormat
from ..types.agent_types import Report

logger = logging.getLogger(__name__)


def report_prompt(query: str, summaries: list, comparison: dict, format: str) -> str:
    return (
        f'Generate a structured research report about "{query}".\n'
        f"Summaries: {json.dumps(summaries)}\n"
        f"Comparison: {json.dumps(comparison)}\n"
        f"Format: {format}"
    )


class GenerateReport(BaseTool):
    TOOL_NAME = "generate_report"
    TOOL_DESCRIPTION = "Generate structured research report (Markdown, HTML, PDF)."

    query: str = Field(..., description="The research question the report answers")
    summaries: list[dict] = Field(..., description="Summaries gathered during research")
    comparison: dict = Field(..., description="The comparison of those summaries")
    format: Literal["md", "html", "pdf"] = Field(..., description="Output format")

    async def run(self) -> dict[str, str]:
        prompt = report_prompt(self.query, self.summaries, self.comparison, self.format)
        content = await self._context.complete(prompt)

        report = Report(
            query=self.query, content=content, format=ReportFormat(self.format)
        )
        if self._context.on_report is not None:
            await self._context.on_report(report)
        else:
            logger.debug("No report handler registered; report returned only")
        return {"report": content}
