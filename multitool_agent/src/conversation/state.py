# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""The ordered, append-only message log of one conversation."""

import json
import logging

from pathlib import Path
from typing import Any, Iterator, Optional

from ..types.llm_types import Message, Role, ToolCall

logger = logging.getLogger(__name__)


class ConversationState:
    """
    Holds the messages of a conversation in arrival order.

    Messages are only ever appended, with one exception: a tagged system
    preamble may be inserted at the head, at most once per mode. Tool
    messages are matched to the tool calls of the assistant message that
    precedes them, so order is load-bearing here.
    """

    def __init__(self, messages: Optional[list[Message]] = None):
        self._messages: list[Message] = list(messages or [])

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def append_user(self, text: str, meta: Optional[dict[str, Any]] = None) -> Message:
        message = Message(role=Role.USER, content=text, meta=meta)
        self._messages.append(message)
        return message

    def append_assistant(
        self, content: Optional[str], tool_calls: Optional[list[ToolCall]] = None
    ) -> Message:
        message = Message(
            role=Role.ASSISTANT,
            content=content,
            tool_calls=list(tool_calls) if tool_calls else None,
        )
        self._messages.append(message)
        return message

    def append_tool(self, tool_call_id: str, name: str, content: str) -> Message:
        """Appends the result of one tool call.

        Raises:
            ValueError: if the id does not belong to an unanswered call of the
                most recent assistant message.
        """
        pending = self.pending_tool_call_ids()
        if tool_call_id not in pending:
            raise ValueError(
                f"tool call id {tool_call_id!r} does not match an unanswered call "
                "of the preceding assistant message"
            )
        message = Message(
            role=Role.TOOL, tool_call_id=tool_call_id, name=name, content=content
        )
        self._messages.append(message)
        return message

    def pending_tool_call_ids(self) -> list[str]:
        """Ids of the latest assistant message's calls that have no tool message yet."""
        answered: set[str] = set()
        for message in reversed(self._messages):
            if message.role == Role.TOOL:
                answered.add(message.tool_call_id)
                continue
            if message.role == Role.ASSISTANT and message.tool_calls:
                return [tc.id for tc in message.tool_calls if tc.id not in answered]
            break
        return []

    def ensure_system_preamble(self, mode: str, text: str) -> bool:
        """Inserts the preamble for `mode` at the head unless one is already there.

        Returns:
            True if a preamble was inserted, False if this was a no-op.
        """
        for message in self._messages:
            if message.role == Role.SYSTEM and message.mode == mode:
                return False
        self._messages.insert(0, Message(role=Role.SYSTEM, content=text, mode=mode))
        logger.debug(f"Inserted system preamble for mode {mode}")
        return True

    def last_assistant_message(self) -> Optional[Message]:
        for message in reversed(self._messages):
            if message.role == Role.ASSISTANT:
                return message
        return None

    def clear(self) -> None:
        self._messages.clear()

    # Export ------------------------------------------------------------------

    def to_list(self) -> list[dict[str, Any]]:
        return [m.to_dict() for m in self._messages]

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_list(), indent=indent)

    def export(self, path: Path) -> Path:
        """Writes the conversation as an ordered JSON array of messages."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_json())
        return path
