"""Guardrail state — consecutive tool errors and per-turn call budget.

Counter semantics:
- turn calls: every tool_execution_end, success or failure. Reset when an
  assistant message starts.
- consecutive error: latest run of failures with the same tool name and
  normalized error. Survives turn boundaries. Only failures update it, so a
  success between two identical failures does not break the streak.

Each guardrail kind fires once per breach. The "breach key" is the turn
number for the budget and the streak number for consecutive errors; an
event is emitted only when the key differs from the last reported one.
"""

from __future__ import annotations

from dataclasses import dataclass

from turnguard.config import ToolGuardrails
from turnguard.events import GuardrailEventType, ToolGuardrailEvent
from turnguard.normalize import normalize_error_key


@dataclass(frozen=True)
class ConsecutiveToolError:
    tool_name: str
    error_message: str
    count: int


def check_consecutive_tool_error(
    tool_name: str,
    error: str | None,
    previous: ConsecutiveToolError | None,
) -> ConsecutiveToolError:
    """Next consecutive-error record for a failing call.

    Same tool and same normalized error as ``previous`` -> count + 1.
    Anything else starts over at 1.
    """
    normalized = normalize_error_key(error)
    if previous is not None and previous.tool_name == tool_name and previous.error_message == normalized:
        return ConsecutiveToolError(tool_name=tool_name, error_message=normalized, count=previous.count + 1)
    return ConsecutiveToolError(tool_name=tool_name, error_message=normalized, count=1)


class TurnBudget:
    """Tool calls made in the current assistant turn."""

    def __init__(self):
        self._calls = 0

    @property
    def calls_this_turn(self) -> int:
        return self._calls

    def reset_turn(self) -> None:
        self._calls = 0

    def record_call(self) -> int:
        self._calls += 1
        return self._calls


class GuardrailState:
    """Per-subscription guardrail state machine.

    NOT THREAD-SAFE. One instance per live subscription; events must be
    applied in delivery order.
    """

    def __init__(self, policy: ToolGuardrails, run_id: str | None = None):
        self._policy = policy
        self._run_id = run_id
        self._budget = TurnBudget()
        self._turn = 0
        self._consecutive: ConsecutiveToolError | None = None
        self._streak = 0
        self._reported: dict[GuardrailEventType, int] = {}

    @property
    def policy(self) -> ToolGuardrails:
        return self._policy

    @property
    def turn_calls(self) -> int:
        return self._budget.calls_this_turn

    @property
    def consecutive_error(self) -> ConsecutiveToolError | None:
        return self._consecutive

    def reset_turn(self) -> None:
        """Start a new assistant turn. Consecutive errors are kept."""
        self._budget.reset_turn()
        self._turn += 1

    def record_tool_call(self, tool_name: str | None = None) -> ToolGuardrailEvent | None:
        """Count one finished tool call against the turn budget."""
        count = self._budget.record_call()
        limit = self._policy.max_tool_calls_per_turn
        if count < limit or not self._mark_reported(GuardrailEventType.TOOL_CALL_BUDGET_EXCEEDED, self._turn):
            return None
        return ToolGuardrailEvent(
            type=GuardrailEventType.TOOL_CALL_BUDGET_EXCEEDED,
            count=count,
            limit=limit,
            action=self._policy.tool_error_action,
            tool_name=tool_name or None,
            run_id=self._run_id,
        )

    def record_failure(self, tool_name: str, error: str | None) -> ToolGuardrailEvent | None:
        """Feed a failing tool call into the consecutive-error tracker."""
        current = check_consecutive_tool_error(tool_name, error, self._consecutive)
        if current.count == 1:
            self._streak += 1
        self._consecutive = current

        limit = self._policy.max_consecutive_tool_errors
        if current.count < limit or not self._mark_reported(GuardrailEventType.CONSECUTIVE_ERROR_LIMIT, self._streak):
            return None
        return ToolGuardrailEvent(
            type=GuardrailEventType.CONSECUTIVE_ERROR_LIMIT,
            count=current.count,
            limit=limit,
            action=self._policy.tool_error_action,
            tool_name=current.tool_name,
            error_message=current.error_message,
            run_id=self._run_id,
        )

    def _mark_reported(self, kind: GuardrailEventType, breach_key: int) -> bool:
        """Record ``breach_key`` for ``kind``. False if it was already reported."""
        if self._reported.get(kind) == breach_key:
            return False
        self._reported[kind] = breach_key
        return True
