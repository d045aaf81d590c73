"""Route 53 hosted zone handler.

Create and Delete are asynchronous on the Route 53 side: both return a change
whose status moves from ``PENDING`` to ``INSYNC``. The change id and the zone
id travel in the callback context so that a re-invocation polls the change
instead of issuing the call again. Comment and tag updates apply immediately,
so Update finishes in a single invocation unless throttled.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from botocore.exceptions import BotoCoreError, ClientError

from resource_handler.core.context import CallbackContext
from resource_handler.core.errors import HandlerError, HandlerErrorCode, classify_exception
from resource_handler.core.progress import ProgressEvent
from resource_handler.handlers.base import ResourceHandler
from resource_handler.handlers.stabilize import poll, retry_or_fail
from resource_handler.resources.hosted_zone import (
    HostedZoneConfig,
    HostedZoneResource,
    HostedZoneTag,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from resource_handler.core.request import ResourceHandlerRequest
    from resource_handler.core.session import SessionProxy
    from resource_handler.handlers.stabilize import StabilizationPolicy

logger = logging.getLogger(__name__)

_INSYNC = "INSYNC"
_PENDING = "PENDING"
_ZONE_PREFIX = "/hostedzone/"
_TAG_RESOURCE_TYPE = "hostedzone"

_DOWNSTREAM_ERRORS = (ClientError, BotoCoreError)


class HostedZoneContext(CallbackContext):
    """Resumption state for hosted zone operations.

    Attributes:
        hosted_zone_id: Zone created (or found) by this operation.
        change_id: Route 53 change being waited on.
        tagged: Whether the create-time tags were applied.
    """

    hosted_zone_id: str | None = None
    change_id: str | None = None
    tagged: bool = False


def _zone_id(raw_id: str) -> str:
    return raw_id.removeprefix(_ZONE_PREFIX)


def _normalize_name(name: str) -> str:
    return name.removesuffix(".").lower()


def _caller_reference(
    request: ResourceHandlerRequest[HostedZoneResource], desired: HostedZoneResource
) -> str:
    """CallerReference that stays the same across replays of one Create."""
    if request.client_request_token:
        return request.client_request_token
    if request.logical_resource_identifier:
        seed = "/".join(
            (
                request.stack_id or "",
                request.logical_resource_identifier,
                _normalize_name(desired.name),
            )
        )
        return str(uuid.uuid5(uuid.NAMESPACE_URL, seed))
    logger.warning("No client request token; create of %s is not retry-safe", desired.name)
    return str(uuid.uuid4())


def _model_from_zone(
    zone: Mapping[str, Any],
    *,
    name_servers: list[str] | None = None,
    tags: list[Mapping[str, str]] | None = None,
) -> HostedZoneResource:
    comment = zone.get("Config", {}).get("Comment")
    return HostedZoneResource(
        name=zone["Name"].removesuffix("."),
        hosted_zone_config=HostedZoneConfig(comment=comment) if comment else None,
        hosted_zone_tags=[HostedZoneTag(key=t["Key"], value=t["Value"]) for t in tags or []],
        id=_zone_id(zone["Id"]),
        name_servers=name_servers,
    )


class HostedZoneHandler(ResourceHandler[HostedZoneResource, HostedZoneContext]):
    """CRUDL handler for ``AWS::Route53::HostedZone``."""

    model = HostedZoneResource
    context_type = HostedZoneContext

    def __init__(
        self, policy: StabilizationPolicy | None = None, *, page_size: int = 100
    ) -> None:
        super().__init__(policy)
        self.page_size = page_size

    # ── downstream helpers ────────────────────────────────────────────

    def _client(self, session: SessionProxy) -> Any:
        return session.client("route53")

    def _read_model(self, client: Any, zone_id: str) -> HostedZoneResource:
        resp = client.get_hosted_zone(Id=zone_id)
        tag_set = client.list_tags_for_resource(
            ResourceType=_TAG_RESOURCE_TYPE, ResourceId=zone_id
        ).get("ResourceTagSet", {})
        return _model_from_zone(
            resp["HostedZone"],
            name_servers=resp.get("DelegationSet", {}).get("NameServers"),
            tags=tag_set.get("Tags", []),
        )

    def _change_status(self, client: Any, change_id: str) -> str:
        return client.get_change(Id=change_id)["ChangeInfo"]["Status"]

    def _zone_exists(self, client: Any, zone_id: str) -> bool:
        try:
            client.get_hosted_zone(Id=zone_id)
        except ClientError as exc:
            if classify_exception(exc).code != HandlerErrorCode.NOT_FOUND:
                raise
            return False
        return True

    def _change_tags(
        self,
        client: Any,
        zone_id: str,
        *,
        add: Mapping[str, str],
        remove: set[str],
    ) -> None:
        kwargs: dict[str, Any] = {}
        if add:
            kwargs["AddTags"] = [{"Key": k, "Value": v} for k, v in sorted(add.items())]
        if remove:
            kwargs["RemoveTagKeys"] = sorted(remove)
        if not kwargs:
            return
        logger.debug("Tagging zone %s: +%s -%s", zone_id, sorted(add), sorted(remove))
        client.change_tags_for_resource(
            ResourceType=_TAG_RESOURCE_TYPE, ResourceId=zone_id, **kwargs
        )

    def _find_own_zone(self, client: Any, name: str, caller_reference: str) -> str | None:
        """Zone id created earlier for this same operation, if any."""
        resp = client.list_hosted_zones_by_name(DNSName=name, MaxItems=str(self.page_size))
        for zone in resp.get("HostedZones", []):
            if _normalize_name(zone["Name"]) != _normalize_name(name):
                break
            if zone.get("CallerReference") == caller_reference:
                return _zone_id(zone["Id"])
        return None

    def _start_create(
        self,
        client: Any,
        desired: HostedZoneResource,
        caller_reference: str,
        context: HostedZoneContext,
    ) -> tuple[HostedZoneContext, str]:
        """Create the zone, or adopt the one a lost invocation already created."""
        existing = self._find_own_zone(client, desired.name, caller_reference)
        if existing is not None:
            logger.info("Adopting hosted zone %s for %s", existing, desired.name)
            return context.evolve(hosted_zone_id=existing), _INSYNC

        kwargs: dict[str, Any] = {"Name": desired.name, "CallerReference": caller_reference}
        if desired.comment:
            kwargs["HostedZoneConfig"] = {"Comment": desired.comment, "PrivateZone": False}
        resp = client.create_hosted_zone(**kwargs)

        zone_id = _zone_id(resp["HostedZone"]["Id"])
        change = resp["ChangeInfo"]
        logger.info("Created hosted zone %s (%s), change %s", zone_id, desired.name, change["Id"])
        return context.evolve(hosted_zone_id=zone_id, change_id=change["Id"]), change["Status"]

    # ── actions ───────────────────────────────────────────────────────

    def create(
        self,
        session: SessionProxy,
        request: ResourceHandlerRequest[HostedZoneResource],
        context: HostedZoneContext,
    ) -> ProgressEvent:
        desired = request.desired()
        if desired.id is not None:
            raise HandlerError(
                HandlerErrorCode.INVALID_REQUEST, "Id is read-only and cannot be set on create"
            )

        caller_reference = _caller_reference(request, desired)

        client = self._client(session)
        what = f"Hosted zone {desired.name}"
        try:
            if context.hosted_zone_id is None:
                context, status = self._start_create(client, desired, caller_reference, context)
            elif context.change_id is not None:
                status = self._change_status(client, context.change_id)
            else:
                status = _INSYNC

            if not context.tagged:
                self._change_tags(client, context.hosted_zone_id, add=desired.tag_map(), remove=set())
                context = context.evolve(tagged=True)

            converged = status == _INSYNC
            model = (
                self._read_model(client, context.hosted_zone_id)
                if converged
                else desired.model_copy(update={"id": context.hosted_zone_id})
            )
        except _DOWNSTREAM_ERRORS as exc:
            return retry_or_fail(
                self.policy, context, classify_exception(exc), model=desired, what=what
            )

        return poll(self.policy, context, converged=converged, model=model, what=what)

    def read(
        self,
        session: SessionProxy,
        request: ResourceHandlerRequest[HostedZoneResource],
        context: HostedZoneContext,
    ) -> ProgressEvent:
        _ = context
        zone_id = request.desired().id
        if zone_id is None:
            raise HandlerError.not_found(HostedZoneResource.type_name, None)

        try:
            model = self._read_model(self._client(session), zone_id)
        except ClientError as exc:
            error = classify_exception(exc)
            if error.code == HandlerErrorCode.NOT_FOUND:
                raise HandlerError.not_found(HostedZoneResource.type_name, zone_id) from exc
            raise error from exc
        return ProgressEvent.success(model)

    def update(
        self,
        session: SessionProxy,
        request: ResourceHandlerRequest[HostedZoneResource],
        context: HostedZoneContext,
    ) -> ProgressEvent:
        desired = request.desired()
        previous = request.previous_resource_state
        if previous is None:
            raise HandlerError(
                HandlerErrorCode.INVALID_REQUEST, "previousResourceState is required for update"
            )

        zone_id = desired.id or previous.id
        if zone_id is None:
            raise HandlerError.not_found(HostedZoneResource.type_name, None)

        changed = desired.create_only_changes(previous)
        if changed:
            raise HandlerError.not_updatable(HostedZoneResource.type_name, changed)

        diff = desired.diff(previous)
        if not diff:
            logger.info("Hosted zone %s already in desired state", zone_id)
            return ProgressEvent.success(previous.model_copy(update={"id": zone_id}))

        client = self._client(session)
        what = f"Hosted zone {zone_id}"
        try:
            if "hosted_zone_config" in diff:
                kwargs: dict[str, Any] = {"Id": zone_id}
                if desired.comment:
                    kwargs["Comment"] = desired.comment
                client.update_hosted_zone_comment(**kwargs)
            if "hosted_zone_tags" in diff:
                prior_tags = previous.tag_map()
                wanted = desired.tag_map()
                self._change_tags(
                    client,
                    zone_id,
                    add={k: v for k, v in wanted.items() if prior_tags.get(k) != v},
                    remove=set(prior_tags) - set(wanted),
                )
            model = self._read_model(client, zone_id)
        except _DOWNSTREAM_ERRORS as exc:
            error = classify_exception(exc)
            if error.code == HandlerErrorCode.NOT_FOUND:
                raise HandlerError.not_found(HostedZoneResource.type_name, zone_id) from exc
            return retry_or_fail(self.policy, context, error, model=desired, what=what)

        logger.info("Updated hosted zone %s: %s", zone_id, ", ".join(sorted(diff)))
        return ProgressEvent.success(model)

    def delete(
        self,
        session: SessionProxy,
        request: ResourceHandlerRequest[HostedZoneResource],
        context: HostedZoneContext,
    ) -> ProgressEvent:
        zone_id = context.hosted_zone_id or request.desired().id
        if zone_id is None:
            raise HandlerError(HandlerErrorCode.INVALID_REQUEST, "Id is required for delete")

        client = self._client(session)
        what = f"Deletion of hosted zone {zone_id}"
        try:
            if context.change_id is None:
                try:
                    resp = client.delete_hosted_zone(Id=zone_id)
                except ClientError as exc:
                    if classify_exception(exc).code != HandlerErrorCode.NOT_FOUND:
                        raise
                    logger.info("Hosted zone %s already deleted", zone_id)
                    return ProgressEvent.success()
                change = resp["ChangeInfo"]
                context = context.evolve(hosted_zone_id=zone_id, change_id=change["Id"])
                status = change["Status"]
            else:
                try:
                    status = self._change_status(client, context.change_id)
                except ClientError as exc:
                    if classify_exception(exc).code != HandlerErrorCode.NOT_FOUND:
                        raise
                    if not self._zone_exists(client, zone_id):
                        logger.info(
                            "Change %s expired; hosted zone %s is gone", context.change_id, zone_id
                        )
                        return ProgressEvent.success()
                    logger.warning(
                        "Change %s expired but hosted zone %s remains; deleting again",
                        context.change_id,
                        zone_id,
                    )
                    context = context.evolve(change_id=None)
                    status = _PENDING
        except _DOWNSTREAM_ERRORS as exc:
            return retry_or_fail(
                self.policy, context, classify_exception(exc), model=None, what=what
            )

        return poll(self.policy, context, converged=status == _INSYNC, model=None, what=what)

    def list(
        self,
        session: SessionProxy,
        request: ResourceHandlerRequest[HostedZoneResource],
        context: HostedZoneContext,
    ) -> ProgressEvent:
        _ = context
        kwargs: dict[str, Any] = {"MaxItems": str(self.page_size)}
        if request.next_token:
            kwargs["Marker"] = request.next_token

        resp = self._client(session).list_hosted_zones(**kwargs)
        models = [
            _model_from_zone(zone)
            for zone in resp.get("HostedZones", [])
            if not zone.get("Config", {}).get("PrivateZone", False)
        ]
        next_token = resp.get("NextMarker") if resp.get("IsTruncated") else None
        return ProgressEvent.list_success(models, next_token)
