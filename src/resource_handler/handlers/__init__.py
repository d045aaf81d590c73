"""Resource handlers and their dispatch."""

from resource_handler.handlers.actions import ActionTable
from resource_handler.handlers.base import ResourceHandler
from resource_handler.handlers.hosted_zone_handler import HostedZoneContext, HostedZoneHandler
from resource_handler.handlers.registry import (
    ResourceTypeRegistration,
    ResourceTypeRegistry,
    UnknownResourceTypeError,
)
from resource_handler.handlers.stabilize import (
    RetryDecision,
    StabilizationPolicy,
    poll,
    retry_decision,
    retry_or_fail,
)

__all__ = [
    "ActionTable",
    "HostedZoneContext",
    "HostedZoneHandler",
    "ResourceHandler",
    "ResourceTypeRegistration",
    "ResourceTypeRegistry",
    "RetryDecision",
    "StabilizationPolicy",
    "UnknownResourceTypeError",
    "poll",
    "retry_decision",
    "retry_or_fail",
]
