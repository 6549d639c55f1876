#!/usr/bin/env python3
"""Looping agent demo — a simulated session that keeps failing the same way.

The "agent" retries a bash command that always fails with the same error,
then floods one turn with reads. turnguard reports both patterns; the host
decides what to do with each action.

Usage:
    python looping_agent.py                  # abort on first guardrail
    python looping_agent.py --action warn    # keep going, print warnings
"""

from __future__ import annotations

import argparse
import logging
import sys

from turnguard import (
    InMemorySession,
    ToolErrorAction,
    ToolGuardrailEvent,
    format_guardrail_message,
    resolve_tool_guardrails,
    subscribe_tool_guardrails,
)


class RunAborted(Exception):
    pass


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--action", choices=[a.value for a in ToolErrorAction], default="abort")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    policy = resolve_tool_guardrails(
        {
            "agents": {
                "defaults": {
                    "toolGuardrails": {
                        "maxConsecutiveToolErrors": 3,
                        "maxToolCallsPerTurn": 8,
                        "toolErrorAction": args.action,
                    }
                }
            }
        }
    )

    pending: list[ToolGuardrailEvent] = []
    session = InMemorySession()
    unsubscribe = subscribe_tool_guardrails(
        session=session,
        run_id="demo-run",
        tool_guardrails=policy,
        on_tool_guardrail_triggered=pending.append,
    )

    def handle_pending() -> None:
        while pending:
            event = pending.pop(0)
            print(f"[guardrail:{event.action}] {format_guardrail_message(event)}")
            if event.action == ToolErrorAction.ABORT:
                raise RunAborted(event.type.value)

    try:
        for turn in range(4):
            session.emit({"type": "message_start", "message": {"role": "assistant"}})
            session.emit(
                {
                    "type": "tool_execution_end",
                    "toolName": "bash",
                    "toolCallId": f"bash-{turn}",
                    "isError": True,
                    "result": {"error": "rm: cannot remove '/etc/hosts': Permission denied"},
                }
            )
            handle_pending()

        session.emit({"type": "message_start", "message": {"role": "assistant"}})
        for i in range(10):
            session.emit(
                {
                    "type": "tool_execution_end",
                    "toolName": "read",
                    "toolCallId": f"read-{i}",
                    "isError": False,
                    "result": "...",
                }
            )
            handle_pending()
    except RunAborted as e:
        print(f"Run aborted by host: {e}")
        sys.exit(1)
    finally:
        unsubscribe()

    print("Run finished.")


if __name__ == "__main__":
    main()
