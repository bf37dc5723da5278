# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the canonical message model and the shared result types."""
import json
import pytest

from pydantic import ValidationError

from multitool_agent.src.types.errors import ConfigurationError, ProviderInvocationError
from multitool_agent.src.types.llm_types import Message, Role, ToolCall, ToolSpec
from multitool_agent.src.types.tool_types import ToolResult
from multitool_agent.src.types.agent_types import LoopResult, LoopState


class TestToolCall:
    def test_structured_arguments_survive_encoding(self):
        args = {"q": "quantum error correction", "num": 5, "filters": {"year": [2020, 2024]}}
        call = ToolCall(id="call_1", name="web_search", arguments=args)

        assert isinstance(call.arguments, str)
        assert call.parsed_arguments() == args

    def test_string_arguments_are_kept_verbatim(self):
        raw = '{"q":  "spacing kept"}'
        assert ToolCall(id="c", name="t", arguments=raw).arguments == raw

    def test_missing_arguments_default_to_empty_object(self):
        assert ToolCall(id="c", name="t", arguments=None).arguments == "{}"
        assert ToolCall(id="c", name="t").parsed_arguments() == {}


class TestMessage:
    def test_assistant_with_tool_calls_may_have_null_content(self):
        msg = Message(
            role=Role.ASSISTANT,
            content=None,
            tool_calls=[ToolCall(id="a", name="t")],
        )
        assert msg.content is None

    def test_assistant_without_tool_calls_needs_content(self):
        with pytest.raises(ValidationError):
            Message(role=Role.ASSISTANT, content=None)
        # Empty text is still a defined string
        assert Message(role=Role.ASSISTANT, content="").content == ""

    @pytest.mark.parametrize(
        "fields",
        [
            dict(role=Role.USER, content="x", tool_calls=[ToolCall(id="a", name="t")]),
            dict(role=Role.TOOL, content="x"),
            dict(role=Role.USER, content="x", tool_call_id="a"),
            dict(role=Role.ASSISTANT, content="x", meta={"mode": "research"}),
            dict(role=Role.USER, content="x", mode="chat"),
        ],
    )
    def test_role_field_rules(self, fields):
        with pytest.raises(ValidationError):
            Message(**fields)

    def test_to_dict_omits_unset_fields(self):
        msg = Message(role=Role.TOOL, content="{}", tool_call_id="a", name="t")
        assert msg.to_dict() == {
            "role": "tool",
            "content": "{}",
            "tool_call_id": "a",
            "name": "t",
        }


class TestToolSpec:
    def test_schema_is_kept_verbatim(self):
        params = {
            "type": "object",
            "properties": {
                "q": {"type": "string"},
                "num": {"type": "integer", "default": 3, "minimum": 1, "maximum": 10},
                "mode": {"type": "string", "enum": ["short", "detailed"]},
            },
            "required": ["q"],
        }
        spec = ToolSpec(name="web_search", description="search", parameters=params)
        assert spec.to_function_schema() == {
            "name": "web_search",
            "description": "search",
            "parameters": params,
        }

    def test_required_must_be_declared(self):
        with pytest.raises(ValidationError):
            ToolSpec(
                name="t",
                parameters={"type": "object", "properties": {}, "required": ["q"]},
            )

    def test_parameters_must_be_an_object_schema(self):
        with pytest.raises(ValidationError):
            ToolSpec(name="t", parameters={"type": "array"})


class TestToolResult:
    def test_success_payload_is_the_output(self):
        result = ToolResult(tool_name="t", output={"result": "2"})
        assert result.success
        assert json.loads(result.to_content()) == {"result": "2"}

    def test_failure_payload_is_an_error_object(self):
        result = ToolResult(tool_name="t", output="ignored", error="boom")
        assert not result.success
        assert result.payload() == {"error": "boom"}
        assert "FAILURE" in str(result)


def test_loop_result_reraises_its_error():
    error = ProviderInvocationError("openai", 401)
    result = LoopResult(state=LoopState.FAILED, error=error)

    assert result.failed
    with pytest.raises(ProviderInvocationError):
        result.raise_for_error()
    # The error is kept out of serialized results
    assert "error" not in result.model_dump()


def test_provider_error_message():
    assert str(ProviderInvocationError("groq", 429)) == "groq API error: 429"
    assert "transport failure" in str(ProviderInvocationError("gemini", None))
    assert isinstance(ConfigurationError("x"), Exception)
