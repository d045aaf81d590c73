"""Settings loading and the default handler registry."""

from resource_handler.config.loader import ConfigError, load_settings
from resource_handler.config.registry import default_registry
from resource_handler.config.settings import HandlerSettings

__all__ = [
    "ConfigError",
    "HandlerSettings",
    "default_registry",
    "load_settings",
]
