"""OpenTelemetry metrics — graceful no-op if absent."""

from __future__ import annotations

from turnguard.events import ToolGuardrailEvent

try:
    from opentelemetry import metrics

    _HAS_OTEL = True
except ImportError:
    _HAS_OTEL = False


def has_otel() -> bool:
    """Check if OpenTelemetry is available."""
    return _HAS_OTEL


class GuardrailTelemetry:
    """OTel counters for tool calls and guardrail triggers.

    No-op if opentelemetry is not installed.

    Install: pip install turnguard[otel]
    """

    def __init__(self):
        if _HAS_OTEL:
            self._meter = metrics.get_meter("turnguard")
            self._setup_metrics()
        else:
            self._meter = None

    def _setup_metrics(self):
        if not self._meter:
            return
        self._tool_call_counter = self._meter.create_counter(
            "turnguard.tool_calls",
            description="Number of finished tool executions observed",
        )
        self._triggered_counter = self._meter.create_counter(
            "turnguard.guardrails.triggered",
            description="Number of guardrail events emitted",
        )

    def record_tool_call(self, tool_name: str, is_error: bool) -> None:
        if _HAS_OTEL and self._meter:
            self._tool_call_counter.add(1, {"tool.name": tool_name, "tool.is_error": is_error})

    def record_triggered(self, event: ToolGuardrailEvent) -> None:
        if _HAS_OTEL and self._meter:
            self._triggered_counter.add(
                1,
                {
                    "guardrail.type": event.type.value,
                    "guardrail.action": event.action.value,
                    "tool.name": event.tool_name or "",
                },
            )
