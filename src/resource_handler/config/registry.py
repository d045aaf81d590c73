"""Default resource type registry factory."""

from __future__ import annotations

from typing import TYPE_CHECKING

from resource_handler.handlers.hosted_zone_handler import HostedZoneHandler
from resource_handler.handlers.registry import ResourceTypeRegistry

if TYPE_CHECKING:
    from resource_handler.config.settings import HandlerSettings


def default_registry(settings: HandlerSettings | None = None) -> ResourceTypeRegistry:
    """Create a fresh registry with all built-in resource types and handlers."""
    policy = settings.to_policy() if settings is not None else None
    page_size = settings.list_page_size if settings is not None else 100

    registry = ResourceTypeRegistry()
    registry.register(HostedZoneHandler(policy, page_size=page_size))
    return registry
