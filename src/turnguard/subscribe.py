"""Session subscription — route session events into the guardrail state."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol

from turnguard.config import ToolGuardrails, resolve_tool_guardrails
from turnguard.events import MessageStart, ToolExecutionEnd, ToolGuardrailEvent, parse_session_event
from turnguard.normalize import extract_tool_error_message
from turnguard.telemetry import GuardrailTelemetry
from turnguard.tracker import GuardrailState

logger = logging.getLogger(__name__)


class AgentSession(Protocol):
    """Anything that delivers session events to a subscriber."""

    def subscribe(self, handler: Callable[[Any], None]) -> Callable[[], None]: ...


class InMemorySession:
    """Minimal AgentSession that delivers emitted events to its subscribers.

    Suitable for: replaying recorded event logs, tests, demos.
    """

    def __init__(self):
        self._handlers: list[Callable[[Any], None]] = []

    def subscribe(self, handler: Callable[[Any], None]) -> Callable[[], None]:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    def emit(self, evt: Any) -> None:
        for handler in list(self._handlers):
            handler(evt)


class ToolGuardrailSubscription:
    """Watches one session's event stream and reports guardrail breaches.

    The subscription does NOT stop the session. It only:
    1. Resets the turn budget on each assistant message_start
    2. Counts every tool_execution_end against the budget
    3. Tracks consecutive identical failures
    4. Hands each breach to the host callback, once per breach
    """

    def __init__(
        self,
        session: AgentSession,
        *,
        run_id: str,
        tool_guardrails: ToolGuardrails | None,
        on_tool_guardrail_triggered: Callable[[ToolGuardrailEvent], Any],
        telemetry: GuardrailTelemetry | None = None,
    ):
        self._run_id = run_id
        self._state = GuardrailState(tool_guardrails or resolve_tool_guardrails(None), run_id=run_id)
        self._callback = on_tool_guardrail_triggered
        self._telemetry = telemetry or GuardrailTelemetry()
        self._active = True
        self._detach = session.subscribe(self.handle_event)

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def state(self) -> GuardrailState:
        return self._state

    @property
    def active(self) -> bool:
        return self._active

    def handle_event(self, evt: Any) -> None:
        if not self._active:
            return
        parsed = parse_session_event(evt)
        if isinstance(parsed, MessageStart):
            if parsed.role == "assistant":
                self._state.reset_turn()
                logger.debug("Run %s: assistant turn started, tool budget reset", self._run_id)
        elif isinstance(parsed, ToolExecutionEnd):
            self._on_tool_execution_end(parsed)

    def _on_tool_execution_end(self, evt: ToolExecutionEnd) -> None:
        self._telemetry.record_tool_call(evt.tool_name, evt.is_error)

        budget_event = self._state.record_tool_call(evt.tool_name)
        logger.debug(
            "Run %s: tool %s finished (error=%s), %d call(s) this turn",
            self._run_id,
            evt.tool_name,
            evt.is_error,
            self._state.turn_calls,
        )

        if evt.is_error:
            error_event = self._state.record_failure(evt.tool_name, extract_tool_error_message(evt.result))
            if error_event is not None:
                self._emit(error_event)

        if budget_event is not None:
            self._emit(budget_event)

    def _emit(self, event: ToolGuardrailEvent) -> None:
        logger.warning(
            "Run %s: tool guardrail %s triggered (tool=%s, count=%d, limit=%d, action=%s)",
            self._run_id,
            event.type.value,
            event.tool_name,
            event.count,
            event.limit,
            event.action.value,
        )
        self._telemetry.record_triggered(event)
        try:
            self._callback(event)
        except Exception:
            logger.exception("Tool guardrail callback raised for run %s", self._run_id)

    def unsubscribe(self) -> None:
        """Detach from the session. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        if callable(self._detach):
            self._detach()


def subscribe_tool_guardrails(
    *,
    session: AgentSession,
    run_id: str,
    tool_guardrails: ToolGuardrails | None,
    on_tool_guardrail_triggered: Callable[[ToolGuardrailEvent], Any],
    telemetry: GuardrailTelemetry | None = None,
) -> Callable[[], None]:
    """Attach tool guardrails to a live session. Returns an unsubscribe function.

    Usage:
        unsubscribe = subscribe_tool_guardrails(
            session=session,
            run_id=run_id,
            tool_guardrails=resolve_tool_guardrails(cfg),
            on_tool_guardrail_triggered=handle_guardrail,
        )
        try:
            ...  # run the agent
        finally:
            unsubscribe()
    """
    subscription = ToolGuardrailSubscription(
        session,
        run_id=run_id,
        tool_guardrails=tool_guardrails,
        on_tool_guardrail_triggered=on_tool_guardrail_triggered,
        telemetry=telemetry,
    )
    return subscription.unsubscribe
