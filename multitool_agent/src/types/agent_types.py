# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from .common import ReportFormat
from .llm_types import Message


class LoopState(str, Enum):
    """States of one agent loop run."""

    REQUESTING = "requesting"
    EXECUTING = "executing"
    DONE = "done"
    FAILED = "failed"


class LoopResult(BaseModel):
    """
    The outcome of one agent loop run.

    `final_message` is the last assistant message appended during the run,
    which stands as the answer even when the turn budget ran out with tool
    calls still pending.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    state: LoopState
    turns: int = 0
    final_message: Optional[Message] = None
    budget_exhausted: bool = False
    error: Optional[Exception] = Field(default=None, exclude=True)

    @property
    def failed(self) -> bool:
        return self.state == LoopState.FAILED

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class Report(BaseModel):
    """A generated research report, handed to the report writers as-is."""

    query: str
    content: str
    format: ReportFormat = ReportFormat.MD
