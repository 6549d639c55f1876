"""turnguard — Tool-use guardrails for agent sessions."""

from __future__ import annotations

from importlib.metadata import version as _pkg_version

try:
    __version__ = _pkg_version("turnguard")
except Exception:  # pragma: no cover — editable installs, test envs
    __version__ = "0.0.0-dev"

from turnguard.config import (
    DEFAULT_MAX_CONSECUTIVE_TOOL_ERRORS,
    DEFAULT_MAX_TOOL_CALLS_PER_TURN,
    DEFAULT_TOOL_ERROR_ACTION,
    MAX_CONSECUTIVE_TOOL_ERRORS_LIMIT,
    MAX_TOOL_CALLS_PER_TURN_LIMIT,
    ToolErrorAction,
    ToolGuardrails,
    resolve_tool_guardrails,
)
from turnguard.events import (
    GuardrailEventType,
    MessageStart,
    ToolExecutionEnd,
    ToolGuardrailEvent,
    format_guardrail_message,
    parse_session_event,
)
from turnguard.normalize import ERROR_KEY_MAX_CHARS, extract_tool_error_message, normalize_error_key
from turnguard.subscribe import AgentSession, InMemorySession, ToolGuardrailSubscription, subscribe_tool_guardrails
from turnguard.telemetry import GuardrailTelemetry, has_otel
from turnguard.tracker import ConsecutiveToolError, GuardrailState, TurnBudget, check_consecutive_tool_error

__all__ = [
    "__version__",
    "AgentSession",
    "ConsecutiveToolError",
    "DEFAULT_MAX_CONSECUTIVE_TOOL_ERRORS",
    "DEFAULT_MAX_TOOL_CALLS_PER_TURN",
    "DEFAULT_TOOL_ERROR_ACTION",
    "ERROR_KEY_MAX_CHARS",
    "GuardrailEventType",
    "GuardrailState",
    "GuardrailTelemetry",
    "InMemorySession",
    "MAX_CONSECUTIVE_TOOL_ERRORS_LIMIT",
    "MAX_TOOL_CALLS_PER_TURN_LIMIT",
    "MessageStart",
    "ToolErrorAction",
    "ToolExecutionEnd",
    "ToolGuardrailEvent",
    "ToolGuardrailSubscription",
    "ToolGuardrails",
    "TurnBudget",
    "check_consecutive_tool_error",
    "extract_tool_error_message",
    "format_guardrail_message",
    "has_otel",
    "normalize_error_key",
    "parse_session_event",
    "resolve_tool_guardrails",
    "subscribe_tool_guardrails",
]
