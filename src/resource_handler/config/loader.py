"""YAML settings file loader."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import dotenv_values
from pydantic import ValidationError
from ruamel.yaml import YAML

from resource_handler.config.settings import HandlerSettings

logger = logging.getLogger(__name__)

_ENV_PREFIX = "HANDLER_"


class ConfigError(Exception):
    """Raised for configuration loading / validation errors."""


def _resolve_settings(raw_handler: dict[str, Any], config_dir: Path) -> dict[str, Any]:
    """Resolve settings fields from YAML, env vars, and ``.env`` file.

    Priority (highest wins): YAML value > env var > ``.env`` file.
    """
    env_file = config_dir / ".env"
    dotenv_vals = dotenv_values(env_file, encoding="utf-8-sig") if env_file.is_file() else {}

    unknown = set(raw_handler) - set(HandlerSettings.model_fields)
    if unknown:
        raise ConfigError(f"Unknown handler setting(s): {', '.join(sorted(unknown))}")

    resolved: dict[str, Any] = {}
    for field in HandlerSettings.model_fields:
        env_key = f"{_ENV_PREFIX}{field.upper()}"
        val = raw_handler.get(field)
        if val is None:
            val = os.environ.get(env_key)
        if val is None:
            val = dotenv_vals.get(env_key)
        if val is not None:
            resolved[field] = val
    return resolved


def load_settings(path: Path | str | None = None) -> HandlerSettings:
    """Load handler settings, optionally from a YAML file's ``handler:`` section.

    Without a path, settings come from ``HANDLER_*`` environment variables only.

    Raises:
        ConfigError: On YAML parse errors or validation failures.
    """
    if path is None:
        try:
            return HandlerSettings()
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc

    path = Path(path)
    try:
        raw = YAML(typ="safe").load(path)
    except Exception as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    raw_handler = raw.get("handler") or {}
    if not isinstance(raw_handler, dict):
        raise ConfigError(f"{path}: 'handler' must be a mapping")

    try:
        settings = HandlerSettings.model_validate(_resolve_settings(raw_handler, path.parent))
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    logger.info("Loaded settings from %s", path)
    return settings
