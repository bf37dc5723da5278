# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
The tools the agent can call. Each tool is a pydantic model whose fields are
its arguments; importing this module registers them in `tool_catalogue`.
"""

from typing import Optional

from .base_tool import (
    BaseTool,
    ToolContext,
    ToolRegistry,
    parse_tool_arguments,
    register_tools,
    tool_catalogue,
)
from .web_search import WebSearch
from .groq_proxy import GroqProxy
from .python_exec import PythonExec
from .search_academic import SearchAcademic
from .summarize import Summarize
from .compare import Compare
from .generate_report import GenerateReport

DEFAULT_TOOLS: list[type[BaseTool]] = [
    WebSearch,
    GroqProxy,
    PythonExec,
    SearchAcademic,
    Summarize,
    Compare,
    GenerateReport,
]


def build_registry(
    context: ToolContext, tools: Optional[list[type[BaseTool]]] = None
) -> ToolRegistry:
    """A fresh registry holding the given tools, or the bundled set."""
    return register_tools(ToolRegistry(), context, tools or DEFAULT_TOOLS)


__all__ = [
    "BaseTool",
    "ToolContext",
    "ToolRegistry",
    "DEFAULT_TOOLS",
    "build_registry",
    "parse_tool_arguments",
    "register_tools",
    "tool_catalogue",
]
