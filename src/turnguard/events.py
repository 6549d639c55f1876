"""Guardrail events and the session events that drive them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from turnguard.config import ToolErrorAction

_MESSAGE_EXCERPT_CHARS = 200


class GuardrailEventType(StrEnum):
    CONSECUTIVE_ERROR_LIMIT = "consecutive_error_limit"
    TOOL_CALL_BUDGET_EXCEEDED = "tool_call_budget_exceeded"


@dataclass(frozen=True)
class ToolGuardrailEvent:
    """A guardrail breach, handed to the host callback.

    ``count`` is the counter value that reached ``limit``. ``action`` is
    the configured directive; interpreting it is the host's job.
    """

    type: GuardrailEventType
    count: int
    limit: int
    action: ToolErrorAction
    tool_name: str | None = None
    error_message: str | None = None
    run_id: str | None = None


# ---------------------------------------------------------------------------
# Session events
# ---------------------------------------------------------------------------

MESSAGE_START = "message_start"
TOOL_EXECUTION_END = "tool_execution_end"


@dataclass(frozen=True)
class MessageStart:
    role: str | None = None


@dataclass(frozen=True)
class ToolExecutionEnd:
    tool_name: str
    tool_call_id: str | None = None
    is_error: bool = False
    result: Any = None


def _field(obj: Any, *names: str) -> Any:
    """First non-None field among ``names``, from a mapping or attributes."""
    for name in names:
        if isinstance(obj, Mapping):
            value = obj.get(name)
        else:
            value = getattr(obj, name, None)
        if value is not None:
            return value
    return None


def parse_session_event(evt: Any) -> MessageStart | ToolExecutionEnd | None:
    """Parse a raw session event. Returns None for anything not relevant.

    Accepts mappings or objects with attributes, camelCase or snake_case
    field names. Malformed events are ignored rather than rejected.
    """
    evt_type = _field(evt, "type")

    if evt_type == MESSAGE_START:
        role = _field(_field(evt, "message"), "role")
        return MessageStart(role=role if isinstance(role, str) else None)

    if evt_type == TOOL_EXECUTION_END:
        tool_name = _field(evt, "toolName", "tool_name")
        if not isinstance(tool_name, str):
            tool_name = "" if tool_name is None else str(tool_name)
        tool_call_id = _field(evt, "toolCallId", "tool_call_id")
        return ToolExecutionEnd(
            tool_name=tool_name,
            tool_call_id=None if tool_call_id is None else str(tool_call_id),
            is_error=_field(evt, "isError", "is_error") is True,
            result=_field(evt, "result"),
        )

    return None


# ---------------------------------------------------------------------------
# Host-facing text
# ---------------------------------------------------------------------------


def format_guardrail_message(event: ToolGuardrailEvent) -> str:
    """Short, actionable text for a guardrail event.

    Hosts inject this into the conversation (warn) or attach it to the
    abort/escalation they raise.
    """
    if event.type == GuardrailEventType.CONSECUTIVE_ERROR_LIMIT:
        excerpt = event.error_message or "(no error message)"
        if len(excerpt) > _MESSAGE_EXCERPT_CHARS:
            excerpt = excerpt[: _MESSAGE_EXCERPT_CHARS - 3] + "..."
        return (
            f"Tool '{event.tool_name}' failed {event.count} times in a row with the same error "
            f"(limit {event.limit}): {excerpt}. Stop retrying and change approach."
        )
    tool = f" (last: '{event.tool_name}')" if event.tool_name else ""
    return (
        f"Tool call budget reached: {event.count} calls this turn{tool}, limit {event.limit}. "
        "Finish the turn with what you have."
    )
