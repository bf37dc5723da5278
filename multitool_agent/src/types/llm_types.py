# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""The canonical, provider-independent message representation.

Every provider adapter reads a list of these messages and hands back an
assistant message in the same shape, so the agent loop never sees a wire
format.
"""

import json

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator, model_validator


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    SYSTEM = "system"


class ToolCall(BaseModel):
    """A model-issued request to run a named tool.

    The arguments are always held as the JSON string the model produced (or
    the encoding of a structured value), so that replaying the call on the
    next turn sends back exactly the same bytes.
    """

    id: str
    name: str
    arguments: str = "{}"

    @field_validator("arguments", mode="before")
    @classmethod
    def encode_arguments(cls, value: Any) -> str:
        if value is None:
            return "{}"
        if isinstance(value, str):
            return value
        return json.dumps(value)

    def parsed_arguments(self) -> Any:
        """Decode the arguments; raises json.JSONDecodeError on malformed input."""
        return json.loads(self.arguments)


class Message(BaseModel):
    """A single entry in a conversation."""

    role: Role
    content: Optional[str] = None
    tool_calls: Optional[list[ToolCall]] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None
    meta: Optional[dict[str, Any]] = None
    # Tags a system preamble with the operating mode it belongs to
    mode: Optional[str] = None

    @model_validator(mode="after")
    def check_role_fields(self) -> "Message":
        if self.tool_calls is not None and self.role != Role.ASSISTANT:
            raise ValueError("only assistant messages may carry tool calls")
        if self.meta is not None and self.role != Role.USER:
            raise ValueError("only user messages may carry meta")
        if self.mode is not None and self.role != Role.SYSTEM:
            raise ValueError("only system messages may be tagged with a mode")

        if self.role == Role.TOOL:
            if not self.tool_call_id:
                raise ValueError("tool messages require a tool_call_id")
        elif self.tool_call_id is not None:
            raise ValueError("only tool messages may reference a tool call")

        if self.content is None:
            if self.role != Role.ASSISTANT or not self.tool_calls:
                raise ValueError(
                    "content may only be null on an assistant message carrying tool calls"
                )
        return self

    def to_dict(self) -> dict[str, Any]:
        """The export shape: unset fields are omitted, field order is stable."""
        return self.model_dump(mode="json", exclude_none=True)


class ToolSpec(BaseModel):
    """The function-calling contract of one tool.

    `parameters` is a JSON-schema object and is forwarded verbatim to
    providers that support tool calling.
    """

    name: str = Field(..., min_length=1)
    description: str = ""
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )

    @field_validator("parameters")
    @classmethod
    def check_parameters(cls, value: dict[str, Any]) -> dict[str, Any]:
        if value.get("type") != "object":
            raise ValueError("tool parameters must be a JSON schema of type 'object'")
        properties = value.get("properties", {})
        if not isinstance(properties, dict):
            raise ValueError("tool parameter 'properties' must be a mapping")
        missing = [name for name in value.get("required", []) if name not in properties]
        if missing:
            raise ValueError(f"required parameters are not declared: {missing}")
        return value

    def to_function_schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }
