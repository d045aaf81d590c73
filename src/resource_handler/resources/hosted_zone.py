"""Route 53 hosted zone resource model."""

from __future__ import annotations

from typing import Annotated, ClassVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

from resource_handler.resources.base import ResourceModel
from resource_handler.resources.markers import Compare, CreateOnly, ReadOnly


class HostedZoneConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_pascal, populate_by_name=True)

    comment: str | None = Field(default=None, max_length=256)


class HostedZoneTag(BaseModel):
    model_config = ConfigDict(extra="forbid", alias_generator=to_pascal, populate_by_name=True)

    key: str = Field(min_length=1, max_length=128)
    value: str = Field(max_length=256)


class HostedZoneResource(ResourceModel):
    """A public Route 53 hosted zone.

    ``id`` and ``name_servers`` are assigned by Route 53 once the zone
    exists; ``id`` is the primary identifier.
    """

    type_name: ClassVar[str] = "AWS::Route53::HostedZone"
    primary_identifier: ClassVar[tuple[str, ...]] = ("id",)

    name: Annotated[str, CreateOnly()] = Field(min_length=1, max_length=1024)
    hosted_zone_config: HostedZoneConfig | None = None
    hosted_zone_tags: Annotated[list[HostedZoneTag], Compare("set")] = Field(
        default_factory=list
    )
    id: Annotated[str | None, ReadOnly()] = None
    name_servers: Annotated[list[str] | None, ReadOnly()] = None

    @property
    def comment(self) -> str | None:
        return self.hosted_zone_config.comment if self.hosted_zone_config else None

    def tag_map(self) -> dict[str, str]:
        return {t.key: t.value for t in self.hosted_zone_tags}
