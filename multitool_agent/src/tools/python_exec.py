# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from pydantic import Field

from .base_tool import BaseTool


class PythonExec(BaseTool):
    TOOL_NAME = "python_exec"
    TOOL_DESCRIPTION = """Run a snippet of Python in an isolated, short-lived interpreter.
The value of the final expression is returned as `result`, or the exception as
`error`. Anything printed is returned as `stdout`. There is no network or
filesystem state shared between runs, and runs are killed after a timeout."""

    code: str = Field(..., description="The Python source to execute")

    async def run(self) -> dict[str, str]:
        outcome = await self._context.sandbox.run(self.code)
        return outcome.to_dict()
