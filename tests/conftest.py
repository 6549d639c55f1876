"""Shared test fixtures."""

from __future__ import annotations

import pytest

from turnguard import ToolErrorAction, ToolGuardrails


class StubSession:
    """Session stub that captures the subscribed handler."""

    def __init__(self):
        self.handler = None
        self.unsubscribe_calls = 0

    def subscribe(self, fn):
        self.handler = fn

        def _unsubscribe():
            self.unsubscribe_calls += 1

        return _unsubscribe

    def emit(self, evt):
        assert self.handler is not None, "nothing subscribed"
        self.handler(evt)


class RecordingCallback:
    """Guardrail callback that records every event (for tests)."""

    def __init__(self):
        self.events = []

    def __call__(self, event):
        self.events.append(event)

    @property
    def types(self):
        return [e.type.value for e in self.events]


def assistant_start():
    return {"type": "message_start", "message": {"role": "assistant"}}


def tool_end(tool_name="read", *, call_id="tool-1", is_error=False, result="ok"):
    return {
        "type": "tool_execution_end",
        "toolName": tool_name,
        "toolCallId": call_id,
        "isError": is_error,
        "result": result,
    }


@pytest.fixture
def stub_session():
    return StubSession()


@pytest.fixture
def recorder():
    return RecordingCallback()


@pytest.fixture
def policy():
    return ToolGuardrails(
        max_consecutive_tool_errors=2,
        max_tool_calls_per_turn=3,
        tool_error_action=ToolErrorAction.WARN,
    )
