"""Resource type registry for handler dispatch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from resource_handler.handlers.actions import ActionTable

if TYPE_CHECKING:
    from resource_handler.core.context import CallbackContext
    from resource_handler.handlers.base import ResourceHandler
    from resource_handler.resources.base import ResourceModel


class UnknownResourceTypeError(LookupError):
    """Raised when a resource type has no registration/handler."""

    def __init__(self, type_name: str) -> None:
        super().__init__(f"Unknown resource type: {type_name}")
        self.type_name = type_name


@dataclass(frozen=True)
class ResourceTypeRegistration:
    type_name: str
    model: type[ResourceModel]
    context_type: type[CallbackContext]
    handler: ResourceHandler[Any, Any]
    actions: ActionTable


class ResourceTypeRegistry:
    """Registry mapping type_name -> (model, context type, handler, action table)."""

    def __init__(self) -> None:
        self._registrations: dict[str, ResourceTypeRegistration] = {}

    def register(self, handler: ResourceHandler[Any, Any]) -> ResourceTypeRegistration:
        model = getattr(handler, "model", None)
        type_name = getattr(model, "type_name", None)
        if not isinstance(type_name, str) or not type_name:
            raise ValueError("Handler model must define a non-empty classvar `type_name`")

        if type_name in self._registrations:
            raise ValueError(f"Resource type already registered: {type_name}")

        registration = ResourceTypeRegistration(
            type_name=type_name,
            model=model,
            context_type=handler.context_type,
            handler=handler,
            actions=ActionTable.for_handler(handler),
        )
        self._registrations[type_name] = registration
        return registration

    def get(self, type_name: str) -> ResourceTypeRegistration:
        try:
            return self._registrations[type_name]
        except KeyError as e:
            raise UnknownResourceTypeError(type_name) from e

    def only(self) -> ResourceTypeRegistration:
        """The single registration, for payloads that omit the resource type."""
        if len(self._registrations) != 1:
            raise UnknownResourceTypeError("<unspecified>")
        return next(iter(self._registrations.values()))

    def type_names(self) -> list[str]:
        return sorted(self._registrations)
