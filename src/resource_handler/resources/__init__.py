"""Resource model definitions."""

from resource_handler.resources.base import ResourceModel
from resource_handler.resources.hosted_zone import (
    HostedZoneConfig,
    HostedZoneResource,
    HostedZoneTag,
)

__all__ = [
    "HostedZoneConfig",
    "HostedZoneResource",
    "HostedZoneTag",
    "ResourceModel",
]
