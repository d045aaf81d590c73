"""Action table: explicit ``Action`` -> handler function mapping.

The table is also the action boundary. Whatever an action raises is turned
into a FAILED event, and whatever it returns is checked against the
progress-event contract before it reaches the host.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from resource_handler.core.errors import HandlerError, HandlerErrorCode, classify_exception
from resource_handler.core.progress import OperationStatus, ProgressEvent
from resource_handler.core.request import Action
from resource_handler.handlers.base import ResourceHandler
from resource_handler.resources.base import ResourceModel

if TYPE_CHECKING:
    from collections.abc import Callable

    from resource_handler.core.context import CallbackContext
    from resource_handler.core.request import ResourceHandlerRequest
    from resource_handler.core.session import SessionProxy

    ActionFn = Callable[
        [SessionProxy, ResourceHandlerRequest[Any], CallbackContext], ProgressEvent
    ]

logger = logging.getLogger(__name__)

# Actions whose SUCCESS must carry a model with a populated primary identifier.
_MODEL_ACTIONS = frozenset({Action.CREATE, Action.UPDATE, Action.READ})


def _contract_violation(type_name: str, action: Action, detail: str) -> ProgressEvent:
    logger.error("%s %s handler broke the progress contract: %s", type_name, action.value, detail)
    return ProgressEvent.failed(
        HandlerErrorCode.INTERNAL_FAILURE,
        f"{action.value} handler for {type_name} {detail}",
    )


class ActionTable:
    """Dispatch table for one resource type's handler actions."""

    def __init__(self, type_name: str) -> None:
        self._type_name = type_name
        self._actions: dict[Action, ActionFn] = {}

    @classmethod
    def for_handler(cls, handler: ResourceHandler[Any, Any]) -> ActionTable:
        """Bind the actions *handler* implements.

        Actions left as the ``ResourceHandler`` default are not registered.
        """
        table = cls(handler.model.type_name)
        handler_cls = type(handler)
        if handler_cls.create is not ResourceHandler.create:
            table.register(Action.CREATE, handler.create)
        if handler_cls.read is not ResourceHandler.read:
            table.register(Action.READ, handler.read)
        if handler_cls.update is not ResourceHandler.update:
            table.register(Action.UPDATE, handler.update)
        if handler_cls.delete is not ResourceHandler.delete:
            table.register(Action.DELETE, handler.delete)
        if handler_cls.list is not ResourceHandler.list:
            table.register(Action.LIST, handler.list)
        return table

    @property
    def type_name(self) -> str:
        return self._type_name

    def register(self, action: Action, fn: ActionFn) -> None:
        if action in self._actions:
            raise ValueError(f"Action already registered for {self._type_name}: {action.value}")
        self._actions[action] = fn

    def supported(self) -> list[Action]:
        return [a for a in Action if a in self._actions]

    def get(self, action: Action) -> ActionFn:
        try:
            return self._actions[action]
        except KeyError as e:
            raise HandlerError(
                HandlerErrorCode.INVALID_REQUEST,
                f"Action {action.value} is not supported by {self._type_name}",
            ) from e

    def invoke(
        self,
        action: Action,
        session: SessionProxy,
        request: ResourceHandlerRequest[Any],
        context: CallbackContext,
    ) -> ProgressEvent:
        """Run one action and return a contract-conforming progress event."""
        logger.debug(
            "Invoking %s %s (attempt=%d, retries=%d)",
            self._type_name,
            action.value,
            context.attempt,
            context.retries,
        )
        try:
            fn = self.get(action)
            event = fn(session, request, context)
        except Exception as exc:
            error = classify_exception(exc)
            if error.code == HandlerErrorCode.INTERNAL_FAILURE:
                logger.exception("%s %s failed unexpectedly", self._type_name, action.value)
            else:
                logger.info(
                    "%s %s failed: %s", self._type_name, action.value, error.code.value
                )
            return error.to_progress_event()

        return self._enforce_contract(action, event)

    def _enforce_contract(self, action: Action, event: Any) -> ProgressEvent:
        if not isinstance(event, ProgressEvent):
            return _contract_violation(
                self._type_name, action, f"returned {type(event).__name__}, not a ProgressEvent"
            )

        match event.status:
            case OperationStatus.PENDING:
                return _contract_violation(self._type_name, action, "returned PENDING")
            case OperationStatus.IN_PROGRESS if not action.mutating:
                return _contract_violation(self._type_name, action, "must not return IN_PROGRESS")
            case OperationStatus.SUCCESS if action in _MODEL_ACTIONS:
                model = event.resource_model
                if not isinstance(model, ResourceModel) or not model.has_identifier():
                    return _contract_violation(
                        self._type_name,
                        action,
                        "returned SUCCESS without a model carrying its primary identifier",
                    )
            case OperationStatus.SUCCESS if action == Action.DELETE:
                return event.model_copy(update={"resource_model": None})
            case OperationStatus.SUCCESS if action == Action.LIST:
                if event.resource_models is None:
                    return event.model_copy(update={"resource_models": []})
            case _:
                pass

        logger.debug("%s %s -> %s", self._type_name, action.value, event.status.value)
        return event
