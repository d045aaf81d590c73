"""Progress events: the single output of every handler invocation."""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from resource_handler.core.context import CallbackContext, check_context_size
from resource_handler.core.errors import HandlerErrorCode


class OperationStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def terminal(self) -> bool:
        return self in (OperationStatus.SUCCESS, OperationStatus.FAILED)


def _model_to_wire(model: Any) -> Any:
    if isinstance(model, BaseModel):
        return model.model_dump(mode="json", by_alias=True, exclude_none=True)
    return model


class ProgressEvent(BaseModel):
    """Status of an operation after one invocation.

    IN_PROGRESS events always carry a callback context; FAILED events always
    carry an error code and message; terminal events never carry a context.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: OperationStatus
    resource_model: Any = None
    resource_models: list[Any] | None = None
    next_token: str | None = None
    callback_context: CallbackContext | None = None
    callback_delay_seconds: int | None = Field(default=None, ge=0)
    error_code: HandlerErrorCode | None = None
    message: str = ""

    @model_validator(mode="after")
    def _check_status_invariants(self) -> Self:
        if self.status == OperationStatus.IN_PROGRESS:
            if self.callback_context is None:
                raise ValueError("IN_PROGRESS events require a callback context")
            check_context_size(self.callback_context.to_wire())
        elif self.status.terminal:
            # The host discards context once the operation is over.
            self.callback_context = None
            self.callback_delay_seconds = None

        if self.status == OperationStatus.FAILED:
            if self.error_code is None or not self.message:
                raise ValueError("FAILED events require an error code and a message")
        elif self.error_code is not None:
            raise ValueError(f"error_code is only valid on FAILED events, got {self.status.value}")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status.terminal

    @classmethod
    def success(cls, model: Any = None, *, message: str = "") -> ProgressEvent:
        return cls(status=OperationStatus.SUCCESS, resource_model=model, message=message)

    @classmethod
    def list_success(
        cls, models: Sequence[Any], next_token: str | None = None
    ) -> ProgressEvent:
        return cls(
            status=OperationStatus.SUCCESS,
            resource_models=list(models),
            next_token=next_token or None,
        )

    @classmethod
    def in_progress(
        cls,
        model: Any,
        context: CallbackContext,
        delay_seconds: int | None = None,
        *,
        message: str = "",
    ) -> ProgressEvent:
        return cls(
            status=OperationStatus.IN_PROGRESS,
            resource_model=model,
            callback_context=context,
            callback_delay_seconds=delay_seconds,
            message=message,
        )

    @classmethod
    def failed(cls, code: HandlerErrorCode, message: str, *, model: Any = None) -> ProgressEvent:
        return cls(
            status=OperationStatus.FAILED,
            error_code=HandlerErrorCode(code),
            message=message or HandlerErrorCode(code).value,
            resource_model=model,
        )

    def to_wire(self) -> dict[str, Any]:
        """Render the host-facing response, omitting absent values."""
        wire: dict[str, Any] = {"status": self.status.value}
        if self.resource_model is not None:
            wire["resourceModel"] = _model_to_wire(self.resource_model)
        if self.resource_models is not None:
            wire["resourceModels"] = [_model_to_wire(m) for m in self.resource_models]
        if self.next_token is not None:
            wire["nextToken"] = self.next_token
        if self.callback_context is not None:
            wire["callbackContext"] = self.callback_context.to_wire()
        if self.callback_delay_seconds is not None:
            wire["callbackDelaySeconds"] = self.callback_delay_seconds
        if self.error_code is not None:
            wire["errorCode"] = self.error_code.value
        if self.message:
            wire["message"] = self.message
        return wire
