"""CLI command implementations."""

from __future__ import annotations

import json
import os
import time
import uuid
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer

from resource_handler.cli import app
from resource_handler.cli.errors import handle_error

if TYPE_CHECKING:
    from resource_handler.entrypoint import HandlerEntrypoint

ConfigPath = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="YAML settings file with a 'handler:' section."),
]

NoColor = Annotated[
    bool,
    typer.Option("--no-color", help="Disable colored output."),
]

_ACTIONS = ("CREATE", "READ", "UPDATE", "DELETE", "LIST")


def _use_color(no_color: bool) -> bool:
    """Determine whether to use color output."""
    return not (no_color or os.environ.get("NO_COLOR"))


def _read_json(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    return data


def _build_entrypoint(config: Path | None) -> HandlerEntrypoint:
    from resource_handler.config import load_settings
    from resource_handler.entrypoint import HandlerEntrypoint

    return HandlerEntrypoint(settings=load_settings(config))


def _build_event(
    action: str,
    payload: Path,
    *,
    type_name: str | None,
    context: Path | None,
) -> dict[str, Any]:
    request = _read_json(payload)
    # Replays of the same operation must share one token.
    request.setdefault("clientRequestToken", str(uuid.uuid4()))
    event: dict[str, Any] = {"action": action, "request": request}
    if type_name:
        event["resourceType"] = type_name
    if context is not None:
        event["callbackContext"] = _read_json(context)
    return event


@app.command()
def invoke(
    action: Annotated[
        str,
        typer.Argument(help=f"Handler action: {', '.join(_ACTIONS)}."),
    ],
    payload: Annotated[
        Path,
        typer.Argument(help="JSON request file (desiredResourceState, previousResourceState, ...)."),
    ],
    config: ConfigPath = None,
    type_name: Annotated[
        str | None,
        typer.Option("--type", "-t", help="Resource type name (optional with one registered type)."),
    ] = None,
    context: Annotated[
        Path | None,
        typer.Option("--context", help="JSON callback context to resume from."),
    ] = None,
    max_invocations: Annotated[
        int,
        typer.Option("--max-invocations", min=1, help="Give up after this many invocations."),
    ] = 100,
    no_wait: Annotated[
        bool,
        typer.Option("--no-wait", help="Re-invoke immediately instead of honouring delays."),
    ] = False,
    once: Annotated[
        bool,
        typer.Option("--once", help="Run a single invocation and print its context."),
    ] = False,
    no_color: NoColor = False,
) -> None:
    """Invoke a handler action and drive it to a terminal status."""
    from rich.console import Console

    from resource_handler.cli.formatting import format_event
    from resource_handler.driver import drive

    color = _use_color(no_color)
    action = action.upper()
    if action not in _ACTIONS:
        typer.echo(f"Unknown action '{action}', expected one of {', '.join(_ACTIONS)}", err=True)
        raise typer.Exit(2)

    try:
        entry = _build_entrypoint(config)
        event = _build_event(action, payload, type_name=type_name, context=context)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    def on_event(invocation: int, response: dict[str, Any]) -> None:
        typer.echo(format_event(invocation, response, color=color))

    try:
        if once:
            final = entry.test_entrypoint(event)
            on_event(1, final)
        else:
            console = Console(stderr=True, no_color=not color)
            with console.status(f"{action} in progress..."):
                final = drive(
                    entry.test_entrypoint,
                    event,
                    max_invocations=max_invocations,
                    sleep=(lambda _s: None) if no_wait else time.sleep,
                    on_event=on_event,
                )
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    if final.get("status") == "FAILED":
        raise typer.Exit(1)


@app.command()
def types(
    config: ConfigPath = None,
    no_color: NoColor = False,
) -> None:
    """List registered resource types and the actions they support."""
    from resource_handler.cli.formatting import format_types

    color = _use_color(no_color)
    try:
        registry = _build_entrypoint(config).registry
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    registrations = [registry.get(name) for name in registry.type_names()]
    typer.echo(format_types(registrations, color=color))


@app.command(name="config")
def config_cmd(
    config: ConfigPath = None,
    no_color: NoColor = False,
) -> None:
    """Show the resolved handler settings."""
    from resource_handler.cli.formatting import format_settings
    from resource_handler.config import load_settings

    color = _use_color(no_color)
    try:
        settings = load_settings(config)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(format_settings(settings))
