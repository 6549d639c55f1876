"""Tests for session event parsing and guardrail messages."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from turnguard.config import ToolErrorAction
from turnguard.events import (
    GuardrailEventType,
    MessageStart,
    ToolExecutionEnd,
    ToolGuardrailEvent,
    format_guardrail_message,
    parse_session_event,
)


class TestParseSessionEvent:
    def test_assistant_message_start(self):
        parsed = parse_session_event({"type": "message_start", "message": {"role": "assistant"}})
        assert parsed == MessageStart(role="assistant")

    def test_message_start_without_message(self):
        assert parse_session_event({"type": "message_start"}) == MessageStart(role=None)

    def test_tool_execution_end_camel_case(self):
        parsed = parse_session_event(
            {
                "type": "tool_execution_end",
                "toolName": "bash",
                "toolCallId": "tool-1",
                "isError": True,
                "result": {"error": "Boom"},
            }
        )
        assert parsed == ToolExecutionEnd(tool_name="bash", tool_call_id="tool-1", is_error=True, result={"error": "Boom"})

    def test_tool_execution_end_snake_case_attributes(self):
        evt = SimpleNamespace(type="tool_execution_end", tool_name="read", tool_call_id="t2", is_error=False, result="ok")
        parsed = parse_session_event(evt)
        assert isinstance(parsed, ToolExecutionEnd)
        assert parsed.tool_name == "read"
        assert parsed.is_error is False

    def test_missing_is_error_means_success(self):
        parsed = parse_session_event({"type": "tool_execution_end", "toolName": "read"})
        assert parsed.is_error is False

    def test_missing_tool_name(self):
        parsed = parse_session_event({"type": "tool_execution_end", "isError": True})
        assert parsed.tool_name == ""

    @pytest.mark.parametrize(
        "evt",
        [None, 42, "message_start", {}, {"type": "tool_execution_start", "toolName": "x"}, {"type": "agent_end"}],
    )
    def test_irrelevant_events(self, evt):
        assert parse_session_event(evt) is None


class TestFormatGuardrailMessage:
    def test_consecutive_error_message(self):
        event = ToolGuardrailEvent(
            type=GuardrailEventType.CONSECUTIVE_ERROR_LIMIT,
            count=3,
            limit=3,
            action=ToolErrorAction.ABORT,
            tool_name="exec",
            error_message="permission denied",
        )
        text = format_guardrail_message(event)
        assert "'exec'" in text
        assert "3 times" in text
        assert "permission denied" in text

    def test_long_error_is_truncated(self):
        event = ToolGuardrailEvent(
            type=GuardrailEventType.CONSECUTIVE_ERROR_LIMIT,
            count=2,
            limit=2,
            action=ToolErrorAction.WARN,
            tool_name="exec",
            error_message="x" * 500,
        )
        text = format_guardrail_message(event)
        assert "x" * 197 + "..." in text
        assert "x" * 198 not in text

    def test_empty_error(self):
        event = ToolGuardrailEvent(
            type=GuardrailEventType.CONSECUTIVE_ERROR_LIMIT,
            count=2,
            limit=2,
            action=ToolErrorAction.WARN,
            tool_name="exec",
            error_message="",
        )
        assert "(no error message)" in format_guardrail_message(event)

    def test_budget_message(self):
        event = ToolGuardrailEvent(
            type=GuardrailEventType.TOOL_CALL_BUDGET_EXCEEDED,
            count=50,
            limit=50,
            action=ToolErrorAction.ESCALATE,
            tool_name="read",
        )
        text = format_guardrail_message(event)
        assert "50 calls this turn" in text
        assert "'read'" in text
