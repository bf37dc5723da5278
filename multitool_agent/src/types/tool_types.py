# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import json

from typing import Any, Awaitable, Callable, Optional
from pydantic import BaseModel

# A tool handler takes the decoded argument object and returns any
# JSON-serializable value
ToolHandler = Callable[[dict[str, Any]], Awaitable[Any]]


class ToolResult(BaseModel):
    """Represents the result of a tool execution."""

    tool_name: str
    call_id: Optional[str] = None
    output: Any = None
    error: Optional[str] = None
    duration: float = 0.0  # on tool error paths, duration is often 0

    @property
    def success(self) -> bool:
        return self.error is None

    def payload(self) -> Any:
        if self.error is not None:
            return {"error": self.error}
        return self.output

    def to_content(self) -> str:
        """The JSON text stored as the tool message content."""
        return json.dumps(self.payload())

    def __str__(self):
        status = "SUCCESS" if self.success else "FAILURE"
        return f"{self.tool_name} [{status}] ({self.duration:.3f}s): {self.to_content()}"
