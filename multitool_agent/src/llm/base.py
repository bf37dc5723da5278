# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Base models and shared functionality for LLM interactions."""

from typing import Any, Dict, Optional
from datetime import datetime, timedelta
from pydantic import BaseModel, Field

from ..types.common import ProviderName
from ..types.llm_types import ToolCall


class CompletionOptions(BaseModel):
    """Per-request knobs passed to a provider adapter."""

    model: Optional[str] = None
    max_tokens: int = 800


class TimingInfo(BaseModel):
    """Timing information for LLM interactions."""

    start_time: datetime = Field(description="When the request started")
    end_time: datetime = Field(description="When the response completed")
    total_duration: timedelta = Field(description="Total duration of the request")

    @classmethod
    def since(cls, start_time: datetime) -> "TimingInfo":
        end_time = datetime.now()
        return cls(
            start_time=start_time,
            end_time=end_time,
            total_duration=end_time - start_time,
        )

    def __str__(self) -> str:
        fmt = "%Y-%m-%d %H:%M:%S"
        return (
            f"- Start {self.start_time.strftime(fmt)}, End {self.end_time.strftime(fmt)}\n"
            f"- Duration: {self.total_duration}"
        )


class Completion(BaseModel):
    """A provider reply, normalized into the canonical assistant shape."""

    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    provider: ProviderName
    model: Optional[str] = None
    timing: Optional[TimingInfo] = None
    raw_response: Optional[Dict[str, Any]] = Field(default=None, exclude=True)

    def __str__(self) -> str:
        comp_str = f"{'='*80}\n{self.content}\n"
        for tc in self.tool_calls:
            comp_str += f"{'-'*10}\nTool call {tc.name} (id: {tc.id}): {tc.arguments}\n"
        comp_str += f"{'-'*80}\nProvider: {self.provider.value}, Model: {self.model}\n"
        if self.timing:
            comp_str += f"Timing:\n{self.timing}\n"
        comp_str += f"{'='*80}\n"
        return comp_str
