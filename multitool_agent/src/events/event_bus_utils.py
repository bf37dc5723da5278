# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Utility functions for working with the event bus."""

from ..types.tool_types import ToolResult
from ..types.event_types import EventType, Event


async def log_to_stdout(event: Event):
    """Print tool activity and alerts to stdout with clear formatting.

    Assistant text is rendered separately by the CLI, so it is skipped here.
    """

    max_content_len = 50
    prefix_width = 18

    def truncate(text: str, length: int = max_content_len) -> str:
        """Helper to truncate text and handle newlines"""
        text = text.replace("\n", " ")
        return f"{text[:length]}..." if len(text) > length else text

    def format_output(prefix: str, content: str, metadata: str = "") -> None:
        """Helper to format and print consistent output"""
        print(
            f"{prefix:<{prefix_width}s} => {content}{' | ' + metadata if metadata else ''}"
        )

    event_content = truncate(str(event.content))

    if event.type in (EventType.ASSISTANT_MESSAGE, EventType.LOOP_STATE):
        return
    elif event.type == EventType.TOOL_CALL:
        name = event.metadata.get("name", "unknown tool")
        args = truncate(str(event.metadata.get("args", "{}")))
        format_output(event.type.value, f"{name}, {args}")
    elif event.type == EventType.TOOL_RESULT:
        result = event.metadata.get("tool_result")
        if not isinstance(result, ToolResult):
            return
        content = f"{result.tool_name}, success: {result.success}, "
        content += f"duration: {result.duration:.1f}, {event_content} "
        format_output(event.type.value, content)
    else:
        format_output(event.type.value, event_content)


def alerts(events: list[Event]) -> list[str]:
    """The user-visible alert texts among a list of events, in order."""
    return [
        e.content
        for e in events
        if e.type in (EventType.APPLICATION_ERROR, EventType.APPLICATION_WARNING)
    ]
