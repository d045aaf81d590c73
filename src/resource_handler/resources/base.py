"""Base class for resource models."""

from collections.abc import Mapping
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_pascal

from resource_handler.core.errors import HandlerError, HandlerErrorCode
from resource_handler.resources.markers import (
    collect_compare_strategies,
    collect_create_only,
    collect_read_only,
    values_differ,
)


class ResourceModel(BaseModel):
    """Base class for all resource models.

    Models are pure data: the desired or observed state of one resource
    instance. Handlers know how to drive the downstream service towards it.
    Fields use snake_case in Python and the schema's PascalCase on the wire.
    """

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_pascal,
        populate_by_name=True,
    )

    type_name: ClassVar[str]
    primary_identifier: ClassVar[tuple[str, ...]]

    @classmethod
    def from_wire(cls, raw: Mapping[str, Any] | None) -> Self | None:
        """Validate a host-supplied property bag; ``None``/empty -> ``None``."""
        if not raw:
            return None
        try:
            return cls.model_validate(dict(raw))
        except ValidationError as exc:
            raise HandlerError(
                HandlerErrorCode.INVALID_REQUEST,
                f"Model validation failed for {cls.type_name}: {exc}",
            ) from exc

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def identifier(self) -> str | None:
        """Primary identifier projection, or ``None`` while any part is unset."""
        parts = [getattr(self, name) for name in self.primary_identifier]
        if any(p is None or p == "" for p in parts):
            return None
        return "|".join(str(p) for p in parts)

    def has_identifier(self) -> bool:
        return self.identifier() is not None

    def create_only_changes(self, previous: Self) -> list[str]:
        """Create-only fields whose desired value differs from *previous*."""
        return [
            name
            for name in collect_create_only(self)
            if getattr(self, name) != getattr(previous, name)
        ]

    def diff(self, previous: Self) -> dict[str, dict[str, Any]]:
        """Writable fields that differ from *previous* as ``{"from", "to"}`` pairs."""
        read_only = set(collect_read_only(self))
        strategies = collect_compare_strategies(self)
        desired = self.model_dump(mode="json", exclude=read_only)
        prior = previous.model_dump(mode="json", exclude=read_only)
        return {
            k: {"from": prior.get(k), "to": v}
            for k, v in desired.items()
            if values_differ(v, prior.get(k), strategy=strategies.get(k))
        }
