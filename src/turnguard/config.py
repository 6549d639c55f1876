"""Tool guardrail policy — resolve a loosely-shaped config into clamped limits."""

from __future__ import annotations

import math
import numbers
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import Any

DEFAULT_MAX_CONSECUTIVE_TOOL_ERRORS = 3
DEFAULT_MAX_TOOL_CALLS_PER_TURN = 50

MAX_CONSECUTIVE_TOOL_ERRORS_LIMIT = 25
MAX_TOOL_CALLS_PER_TURN_LIMIT = 200


class ToolErrorAction(StrEnum):
    """What the host should do when a guardrail fires."""

    WARN = "warn"
    ESCALATE = "escalate"
    ABORT = "abort"


DEFAULT_TOOL_ERROR_ACTION = ToolErrorAction.ABORT


@dataclass(frozen=True)
class ToolGuardrails:
    """Resolved guardrail policy.

    ALWAYS create via resolve_tool_guardrails() when the input comes
    from user config. Direct construction is for tests and callers that
    already hold validated values.
    """

    max_consecutive_tool_errors: int = DEFAULT_MAX_CONSECUTIVE_TOOL_ERRORS
    max_tool_calls_per_turn: int = DEFAULT_MAX_TOOL_CALLS_PER_TURN
    tool_error_action: ToolErrorAction = DEFAULT_TOOL_ERROR_ACTION


# (camelCase, snake_case) spellings; camelCase wins when both are set.
_CONSECUTIVE_KEYS = ("maxConsecutiveToolErrors", "max_consecutive_tool_errors")
_BUDGET_KEYS = ("maxToolCallsPerTurn", "max_tool_calls_per_turn")
_ACTION_KEYS = ("toolErrorAction", "tool_error_action")
_SECTION_KEYS = ("toolGuardrails", "tool_guardrails")


def _section(parent: Any, key: str) -> Mapping | None:
    if not isinstance(parent, Mapping):
        return None
    value = parent.get(key)
    return value if isinstance(value, Mapping) else None


def _lookup(section: Mapping | None, keys: tuple[str, ...]) -> Any:
    if section is None:
        return None
    for key in keys:
        value = section.get(key)
        if value is not None:
            return value
    return None


def _first_present(*values: Any) -> Any:
    """Null-coalesce: first value that is not None."""
    for value in values:
        if value is not None:
            return value
    return None


def _clamp_int(raw: Any, default: int, upper: int) -> int:
    # bool is an int subclass but never a valid limit
    if isinstance(raw, bool) or not isinstance(raw, numbers.Real):
        return default
    if isinstance(raw, numbers.Rational):
        # always finite; math.floor stays exact for arbitrarily large values
        floored = math.floor(raw)
    elif isinstance(raw, Decimal):
        if not raw.is_finite():
            return default
        floored = math.floor(raw)
    else:
        value = float(raw)
        if not math.isfinite(value):
            return default
        floored = math.floor(value)
    return max(1, min(upper, floored))


def _coerce_action(raw: Any) -> ToolErrorAction:
    if isinstance(raw, str):
        try:
            return ToolErrorAction(raw)
        except ValueError:
            return DEFAULT_TOOL_ERROR_ACTION
    return DEFAULT_TOOL_ERROR_ACTION


def resolve_tool_guardrails(cfg: Mapping[str, Any] | None = None) -> ToolGuardrails:
    """Resolve guardrail limits from ``cfg["agents"]["defaults"]``.

    Nested ``toolGuardrails`` fields win over the same fields set directly
    on ``defaults``, which win over the built-in defaults. Malformed values
    never raise: non-finite or non-numeric limits fall back to the default,
    finite ones are floored and clamped, unknown actions become ``abort``.
    """
    defaults = _section(_section(cfg, "agents"), "defaults")
    guardrails = None
    if defaults is not None:
        guardrails = _first_present(*(_section(defaults, key) for key in _SECTION_KEYS))

    raw_consecutive = _first_present(_lookup(guardrails, _CONSECUTIVE_KEYS), _lookup(defaults, _CONSECUTIVE_KEYS))
    raw_budget = _first_present(_lookup(guardrails, _BUDGET_KEYS), _lookup(defaults, _BUDGET_KEYS))
    raw_action = _first_present(_lookup(guardrails, _ACTION_KEYS), _lookup(defaults, _ACTION_KEYS))

    return ToolGuardrails(
        max_consecutive_tool_errors=_clamp_int(
            raw_consecutive, DEFAULT_MAX_CONSECUTIVE_TOOL_ERRORS, MAX_CONSECUTIVE_TOOL_ERRORS_LIMIT
        ),
        max_tool_calls_per_turn=_clamp_int(raw_budget, DEFAULT_MAX_TOOL_CALLS_PER_TURN, MAX_TOOL_CALLS_PER_TURN_LIMIT),
        tool_error_action=_coerce_action(raw_action),
    )
