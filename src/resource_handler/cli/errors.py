"""Map exceptions to clean stderr messages and exit codes."""

from __future__ import annotations

import json

import typer


def _err(msg: str, *, fg: str | None) -> None:
    """Print a styled message to stderr."""
    typer.echo(typer.style(msg, fg=fg), err=True)


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Print a clean error message to stderr and return an exit code.

    All errors map to exit code 1.  No tracebacks are printed.
    """
    from resource_handler.config.loader import ConfigError
    from resource_handler.driver import DriverTimeoutError
    from resource_handler.handlers.registry import UnknownResourceTypeError

    fg = typer.colors.RED if color else None

    if isinstance(exc, ConfigError):
        _err(f"Configuration error: {exc}", fg=fg)
    elif isinstance(exc, json.JSONDecodeError):
        _err(f"Invalid JSON: {exc}", fg=fg)
    elif isinstance(exc, OSError):
        _err(f"Cannot read file: {exc}", fg=fg)
    elif isinstance(exc, UnknownResourceTypeError):
        _err(f"{exc}", fg=fg)
    elif isinstance(exc, DriverTimeoutError):
        _err(f"Timed out: {exc}", fg=fg)
        message = exc.last_event.get("message")
        if message:
            _err(f"  Last message: {message}", fg=fg)
    else:
        _err(f"Error: {exc}", fg=fg)

    return 1
