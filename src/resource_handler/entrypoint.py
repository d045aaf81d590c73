"""Process-level entrypoints: raw event in, wire progress event out.

Two event shapes are accepted. ``entrypoint`` takes the orchestrator's
envelope (properties under ``requestData``, the bearer token doubling as the
client request token). ``test_entrypoint`` takes the flat shape used by local
tooling and contract tests. Both return a well-formed progress event for any
input and never raise.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from resource_handler.config.registry import default_registry
from resource_handler.config.settings import HandlerSettings
from resource_handler.core.errors import HandlerError, HandlerErrorCode, classify_exception
from resource_handler.core.progress import ProgressEvent
from resource_handler.core.request import Action, Credentials, ResourceHandlerRequest
from resource_handler.core.session import SessionProxy
from resource_handler.handlers.registry import ResourceTypeRegistry, UnknownResourceTypeError

logger = logging.getLogger(__name__)

SessionFactory = Callable[[Credentials | None, str | None], SessionProxy]


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class _RequestData(_WireModel):
    caller_credentials: Credentials | None = None
    logical_resource_id: str | None = None
    resource_properties: dict[str, Any] | None = None
    previous_resource_properties: dict[str, Any] | None = None
    system_tags: dict[str, str] = Field(default_factory=dict)
    stack_tags: dict[str, str] = Field(default_factory=dict)
    previous_stack_tags: dict[str, str] = Field(default_factory=dict)


class OrchestratorEvent(_WireModel):
    """Envelope sent by the orchestrator for one invocation."""

    action: Action
    resource_type: str | None = None
    region: str | None = None
    aws_account_id: str | None = None
    stack_id: str | None = None
    bearer_token: str = ""
    next_token: str | None = None
    callback_context: dict[str, Any] | None = None
    request_data: _RequestData = Field(default_factory=_RequestData)


class _LocalRequest(_WireModel):
    client_request_token: str = ""
    desired_resource_state: dict[str, Any] | None = None
    previous_resource_state: dict[str, Any] | None = None
    logical_resource_identifier: str | None = None
    next_token: str | None = None
    region: str | None = None
    aws_account_id: str | None = None


class LocalEvent(_WireModel):
    """Flat event shape for local invocation."""

    action: Action
    resource_type: str | None = None
    credentials: Credentials | None = None
    callback_context: dict[str, Any] | None = None
    request: _LocalRequest = Field(default_factory=_LocalRequest)


def _invalid(exc: Exception) -> ProgressEvent:
    return ProgressEvent.failed(HandlerErrorCode.INVALID_REQUEST, f"Malformed event: {exc}")


class HandlerEntrypoint:
    """Dispatch raw events to the registered handlers.

    A fresh ``SessionProxy`` is built for every invocation; nothing derived
    from one event is reused for the next.
    """

    def __init__(
        self,
        registry: ResourceTypeRegistry | None = None,
        settings: HandlerSettings | None = None,
        *,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self.settings = settings if settings is not None else HandlerSettings()
        self.registry = registry if registry is not None else default_registry(self.settings)
        self._session_factory = session_factory or self._default_session
        package_logger = logging.getLogger("resource_handler")
        # -v / HANDLER_LOG from the CLI take precedence.
        if package_logger.level == logging.NOTSET:
            package_logger.setLevel(self.settings.log_level)

    def _default_session(self, credentials: Credentials | None, region: str | None) -> SessionProxy:
        region = region or self.settings.region
        if credentials is None:
            return SessionProxy(region=region, endpoint_url=self.settings.endpoint_url)
        return SessionProxy.from_credentials(
            credentials, region=region, endpoint_url=self.settings.endpoint_url
        )

    def entrypoint(self, event: Mapping[str, Any], context: Any = None) -> dict[str, Any]:
        """Handle one orchestrator invocation."""
        _ = context
        try:
            parsed = OrchestratorEvent.model_validate(event)
        except ValidationError as exc:
            logger.warning("Rejected orchestrator event: %s", exc)
            return _invalid(exc).to_wire()

        data = parsed.request_data
        progress = self._dispatch(
            action=parsed.action,
            type_name=parsed.resource_type,
            credentials=data.caller_credentials,
            region=parsed.region,
            raw_context=parsed.callback_context,
            raw_desired=data.resource_properties,
            raw_previous=data.previous_resource_properties,
            request_fields={
                "logical_resource_identifier": data.logical_resource_id,
                "client_request_token": parsed.bearer_token,
                "next_token": parsed.next_token,
                "region": parsed.region,
                "aws_account_id": parsed.aws_account_id,
                "stack_id": parsed.stack_id,
                "desired_resource_tags": data.stack_tags,
                "previous_resource_tags": data.previous_stack_tags,
                "system_tags": data.system_tags,
            },
        )
        response = progress.to_wire()
        if parsed.bearer_token:
            response["bearerToken"] = parsed.bearer_token
        return response

    def test_entrypoint(self, event: Mapping[str, Any], context: Any = None) -> dict[str, Any]:
        """Handle one invocation in the flat local shape."""
        _ = context
        try:
            parsed = LocalEvent.model_validate(event)
        except ValidationError as exc:
            logger.warning("Rejected test event: %s", exc)
            return _invalid(exc).to_wire()

        req = parsed.request
        progress = self._dispatch(
            action=parsed.action,
            type_name=parsed.resource_type,
            credentials=parsed.credentials,
            region=req.region,
            raw_context=parsed.callback_context,
            raw_desired=req.desired_resource_state,
            raw_previous=req.previous_resource_state,
            request_fields={
                "logical_resource_identifier": req.logical_resource_identifier,
                "client_request_token": req.client_request_token,
                "next_token": req.next_token,
                "region": req.region,
                "aws_account_id": req.aws_account_id,
            },
        )
        return progress.to_wire()

    def _dispatch(
        self,
        *,
        action: Action,
        type_name: str | None,
        credentials: Credentials | None,
        region: str | None,
        raw_context: Mapping[str, Any] | None,
        raw_desired: Mapping[str, Any] | None,
        raw_previous: Mapping[str, Any] | None,
        request_fields: dict[str, Any],
    ) -> ProgressEvent:
        try:
            registration = (
                self.registry.get(type_name) if type_name else self.registry.only()
            )
            callback_context = registration.context_type.from_wire(raw_context)
            request = ResourceHandlerRequest(
                desired_resource_state=registration.model.from_wire(raw_desired),
                previous_resource_state=registration.model.from_wire(raw_previous),
                **request_fields,
            )
            session = self._session_factory(credentials, region)
        except UnknownResourceTypeError as exc:
            return ProgressEvent.failed(HandlerErrorCode.INVALID_REQUEST, str(exc))
        except HandlerError as exc:
            return exc.to_progress_event()
        except Exception as exc:
            logger.exception("Failed to prepare %s invocation", action.value)
            return classify_exception(exc).to_progress_event()

        logger.info(
            "%s %s (attempt %d)",
            action.value,
            registration.type_name,
            callback_context.attempt,
        )
        return registration.actions.invoke(action, session, request, callback_context)


@lru_cache(maxsize=1)
def _default_entrypoint() -> HandlerEntrypoint:
    return HandlerEntrypoint()


def entrypoint(event: Mapping[str, Any], context: Any = None) -> dict[str, Any]:
    """Module-level orchestrator entrypoint."""
    return _default_entrypoint().entrypoint(event, context)


def test_entrypoint(event: Mapping[str, Any], context: Any = None) -> dict[str, Any]:
    """Module-level local entrypoint."""
    return _default_entrypoint().test_entrypoint(event, context)


