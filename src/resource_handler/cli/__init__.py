"""``resource-handler``: run handler actions locally and watch them converge."""

from __future__ import annotations

import logging
import sys
from typing import Annotated

import botocore
import typer

from resource_handler import __version__
from resource_handler.config.settings import LOG_LEVELS, normalize_log_level

app = typer.Typer(
    name="resource-handler",
    help="Invoke resource handlers locally, re-invoking until a terminal status.",
    no_args_is_help=True,
    add_completion=False,
)

_LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Index is the -v count; 0 leaves logging unconfigured.
_VERBOSITY_LEVELS: tuple[str | None, ...] = (None, "INFO", "DEBUG")

# AWS SDK loggers stay at WARNING unless -vvv asks for wire-level detail.
_SDK_LOGGERS = ("botocore", "boto3", "urllib3")
_SDK_DEBUG_VERBOSITY = 3


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"resource-handler {__version__} (botocore {botocore.__version__})")
        raise typer.Exit


def _log_level_callback(value: str | None) -> str | None:
    if value is None:
        return None
    try:
        return normalize_log_level(value)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


def _configure_logging(verbose: int, log_level: str | None = None) -> str | None:
    """Send ``resource_handler`` logs to stderr.

    An explicit *log_level* (``--log-level`` or ``HANDLER_LOG``) wins over the
    ``-v`` count. Returns the level applied, or None when nothing was asked for.
    """
    level = log_level or _VERBOSITY_LEVELS[min(verbose, len(_VERBOSITY_LEVELS) - 1)]
    if level is None:
        return None

    logging.basicConfig(
        level=logging.WARNING,
        format=_LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    logging.getLogger("resource_handler").setLevel(level)

    sdk_level = logging.DEBUG if verbose >= _SDK_DEBUG_VERBOSITY else logging.WARNING
    for name in _SDK_LOGGERS:
        logging.getLogger(name).setLevel(sdk_level)
    return level


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase log verbosity (-v info, -vv debug, -vvv with AWS SDK debug).",
        ),
    ] = 0,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            envvar="HANDLER_LOG",
            callback=_log_level_callback,
            help=f"Handler log level ({', '.join(LOG_LEVELS)}); overrides -v.",
        ),
    ] = None,
) -> None:
    """Invoke resource handlers locally."""
    _ = version
    _configure_logging(verbose, log_level)


# Register commands after app is created to avoid circular imports.
from resource_handler.cli import commands as _commands  # noqa: E402, F401
