"""turnguard CLI — resolve guardrail policies and replay session event logs."""

from __future__ import annotations

import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.markup import escape

from turnguard.config import ToolErrorAction, ToolGuardrails, resolve_tool_guardrails
from turnguard.events import ToolGuardrailEvent, format_guardrail_message
from turnguard.subscribe import InMemorySession, subscribe_tool_guardrails

_console = Console(highlight=False)
_err_console = Console(stderr=True, highlight=False)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class ConfigFileError(Exception):
    """Raised when a --config file cannot be read or parsed."""


def _load_config_file(path: str) -> dict:
    """Load a YAML (or JSON) config file. Must contain a mapping."""
    try:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(str(e)) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFileError(f"expected a mapping at the top level, got {type(data).__name__}")
    return data


def _build_policy(
    config_path: str | None,
    max_consecutive_tool_errors: float | None,
    max_tool_calls_per_turn: float | None,
    tool_error_action: str | None,
) -> ToolGuardrails:
    """Load --config, apply option overrides into toolGuardrails, then resolve.

    Exits with code 1 on an unreadable config file.
    """
    cfg: dict[str, Any] = {}
    if config_path:
        try:
            cfg = _load_config_file(config_path)
        except ConfigFileError as e:
            _err_console.print(f"[red]Failed to load config {escape(config_path)}: {escape(str(e))}[/red]")
            sys.exit(1)

    overrides = {
        "maxConsecutiveToolErrors": max_consecutive_tool_errors,
        "maxToolCallsPerTurn": max_tool_calls_per_turn,
        "toolErrorAction": tool_error_action,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        section = cfg
        for key in ("agents", "defaults", "toolGuardrails"):
            if not isinstance(section.get(key), dict):
                section[key] = {}
            section = section[key]
        section.update(overrides)

    return resolve_tool_guardrails(cfg)


def _policy_dict(policy: ToolGuardrails) -> dict:
    return {
        "maxConsecutiveToolErrors": policy.max_consecutive_tool_errors,
        "maxToolCallsPerTurn": policy.max_tool_calls_per_turn,
        "toolErrorAction": policy.tool_error_action.value,
    }


def _event_dict(event: ToolGuardrailEvent) -> dict:
    data = asdict(event)
    data["type"] = event.type.value
    data["action"] = event.action.value
    return data


def _policy_options(func):
    """Shared policy options for resolve and replay."""
    func = click.option(
        "--tool-error-action",
        type=click.Choice([a.value for a in ToolErrorAction]),
        default=None,
        help="Action attached to guardrail events.",
    )(func)
    func = click.option(
        "--max-tool-calls-per-turn", type=float, default=None, help="Tool call budget per assistant turn."
    )(func)
    func = click.option(
        "--max-consecutive-tool-errors", type=float, default=None, help="Identical consecutive failures allowed."
    )(func)
    func = click.option(
        "--config", "config_path", type=click.Path(exists=True), default=None, help="YAML/JSON config file."
    )(func)
    return func


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """turnguard — Tool-use guardrails for agent sessions."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command()
def version() -> None:
    """Show the installed turnguard version."""
    from turnguard import __version__

    click.echo(f"turnguard {__version__}")


# ---------------------------------------------------------------------------
# resolve
# ---------------------------------------------------------------------------


@cli.command()
@_policy_options
def resolve(
    config_path: str | None,
    max_consecutive_tool_errors: float | None,
    max_tool_calls_per_turn: float | None,
    tool_error_action: str | None,
) -> None:
    """Print the resolved guardrail policy as JSON."""
    policy = _build_policy(config_path, max_consecutive_tool_errors, max_tool_calls_per_turn, tool_error_action)
    click.echo(json.dumps(_policy_dict(policy), indent=2))


# ---------------------------------------------------------------------------
# replay
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("file", type=click.Path(exists=True))
@_policy_options
@click.option("--run-id", default="replay", help="Run id attached to emitted events.")
@click.option("--json", "json_output", is_flag=True, help="Emit guardrail events as JSON lines.")
def replay(
    file: str,
    config_path: str | None,
    max_consecutive_tool_errors: float | None,
    max_tool_calls_per_turn: float | None,
    tool_error_action: str | None,
    run_id: str,
    json_output: bool,
) -> None:
    """Replay a JSONL session event log through the guardrails."""
    policy = _build_policy(config_path, max_consecutive_tool_errors, max_tool_calls_per_turn, tool_error_action)

    raw = Path(file).read_text(encoding="utf-8").strip()
    lines = raw.split("\n") if raw else []

    triggered: list[ToolGuardrailEvent] = []
    session = InMemorySession()
    unsubscribe = subscribe_tool_guardrails(
        session=session,
        run_id=run_id,
        tool_guardrails=policy,
        on_tool_guardrail_triggered=triggered.append,
    )

    total = 0
    skipped = 0
    try:
        for i, line in enumerate(lines, 1):
            line = line.strip()
            if not line:
                continue
            try:
                evt = json.loads(line)
            except json.JSONDecodeError:
                _err_console.print(f"[yellow]Warning: skipped invalid JSON on line {i}[/yellow]")
                skipped += 1
                continue

            total += 1
            before = len(triggered)
            session.emit(evt)
            for event in triggered[before:]:
                if json_output:
                    click.echo(json.dumps({"line": i, **_event_dict(event)}))
                else:
                    color = "red" if event.action == ToolErrorAction.ABORT else "yellow"
                    _console.print(
                        f"[{color} bold]{event.type.value.upper()}[/{color} bold] "
                        f"line {i} → [bold]{event.action.value}[/bold]"
                    )
                    _console.print(f"  {escape(format_guardrail_message(event))}")
    finally:
        unsubscribe()

    if not json_output:
        _console.print(
            f"\nReplayed {total} event(s), skipped {skipped}, " f"{len(triggered)} guardrail event(s) triggered."
        )

    aborted = any(event.action == ToolErrorAction.ABORT for event in triggered)
    sys.exit(1 if aborted else 0)
