# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Error taxonomy shared by the agent loop, the providers and the tools.

Only ConfigurationError and ProviderInvocationError are fatal to a loop run.
Tool errors are caught at the dispatch boundary and turned into an error
payload for the model to read on its next turn.
"""


class AgentError(Exception):
    """Root of all errors raised by this package."""


class ConfigurationError(AgentError):
    """Missing or malformed settings, detected before any network call."""


class ProviderInvocationError(AgentError):
    """A provider call came back with a non-success status, or never came back."""

    def __init__(self, provider: str, status_code: int | None, message: str = ""):
        self.provider = provider
        self.status_code = status_code
        detail = f"{provider} API error: {status_code if status_code is not None else 'transport failure'}"
        if message:
            detail += f" ({message})"
        super().__init__(detail)


class ToolExecutionError(AgentError):
    """A tool handler failed or produced a result that cannot be sent back."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        super().__init__(message)


class UnknownToolError(AgentError):
    """No handler is registered under the requested tool name."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


class LoopCancelledError(AgentError):
    """The in-flight loop run was cancelled before it finished."""

    def __init__(self):
        super().__init__("Agent loop run was cancelled")
