"""Progress event and settings rendering."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, NamedTuple

import typer

if TYPE_CHECKING:
    from collections.abc import Callable

    from resource_handler.config.settings import HandlerSettings
    from resource_handler.handlers.registry import ResourceTypeRegistration


class _StatusStyle(NamedTuple):
    color: str
    symbol: str
    label: str


_STATUS_STYLES: dict[str, _StatusStyle] = {
    "IN_PROGRESS": _StatusStyle("yellow", "~", "in progress"),
    "SUCCESS": _StatusStyle("green", "+", "succeeded"),
    "FAILED": _StatusStyle("red", "!", "failed"),
}

_UNKNOWN_STYLE = _StatusStyle("bright_black", "?", "unknown status")


def styler(color: bool) -> Callable[..., str]:
    """Return ``typer.style`` when *color* is True, otherwise a passthrough."""
    if color:
        return typer.style
    return lambda text, **_kw: text


def _align_values(items: dict[str, str]) -> list[tuple[str, str]]:
    """Right-pad keys so ``=`` signs align."""
    if not items:
        return []
    max_key = max(len(k) for k in items)
    return [(k.ljust(max_key), v) for k, v in items.items()]


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    if value is None:
        return "null"
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def _model_lines(model: dict[str, Any], indent: str) -> list[str]:
    return [
        f"{indent}{k} = {v}"
        for k, v in _align_values({k: _format_value(v) for k, v in model.items()})
    ]


def format_event(invocation: int, event: dict[str, Any], *, color: bool = True) -> str:
    """Render one wire progress event as a status line plus details."""
    style = styler(color)
    status = str(event.get("status", ""))
    s = _STATUS_STYLES.get(status, _UNKNOWN_STYLE)

    head = f"{s.symbol} [{invocation}] {status or '?'}: {s.label}"
    if "callbackDelaySeconds" in event:
        head += f" (re-invoke in {event['callbackDelaySeconds']}s)"
    lines = [style(head, fg=s.color, bold=True)]

    if "errorCode" in event:
        lines.append(style(f"    errorCode = {event['errorCode']}", fg=s.color))
    if event.get("message"):
        lines.append(f"    message   = {event['message']}")
    if "callbackContext" in event:
        lines.append(f"    context   = {json.dumps(event['callbackContext'], sort_keys=True)}")
    if "resourceModel" in event:
        lines.append("    resourceModel {")
        lines.extend(_model_lines(event["resourceModel"], "      "))
        lines.append("    }")
    if "resourceModels" in event:
        models = event["resourceModels"]
        lines.append(f"    resourceModels ({len(models)})")
        for model in models:
            lines.append("    {")
            lines.extend(_model_lines(model, "      "))
            lines.append("    }")
    if "nextToken" in event:
        lines.append(f"    nextToken = {event['nextToken']}")
    return "\n".join(lines)


def format_types(registrations: list[ResourceTypeRegistration], *, color: bool = True) -> str:
    """Render registered resource types with their supported actions."""
    style = styler(color)
    if not registrations:
        return "No resource types registered."
    return "\n".join(
        f"{style(r.type_name, bold=True)}  "
        + ", ".join(a.value for a in r.actions.supported())
        for r in registrations
    )


def format_settings(settings: HandlerSettings) -> str:
    """Render resolved settings as aligned ``key = value`` lines."""
    values = {k: _format_value(v) for k, v in settings.model_dump(mode="json").items()}
    return "\n".join(f"{k} = {v}" for k, v in _align_values(values))
