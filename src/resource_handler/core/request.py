"""Handler request types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, SecretStr
from pydantic.alias_generators import to_camel

from resource_handler.core.errors import HandlerError, HandlerErrorCode

M = TypeVar("M", bound=BaseModel)


class Action(str, Enum):
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LIST = "LIST"

    @property
    def mutating(self) -> bool:
        """Create/Update/Delete may span several invocations; Read/List may not."""
        return self in (Action.CREATE, Action.UPDATE, Action.DELETE)


class Credentials(BaseModel):
    """Temporary credentials handed over by the host for one invocation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    access_key_id: str
    secret_access_key: SecretStr
    session_token: SecretStr | None = None


@dataclass(frozen=True)
class ResourceHandlerRequest(Generic[M]):
    """Everything a handler action receives besides the session and context.

    The same request is replayed unchanged on every re-invocation of an
    operation; only the callback context evolves.
    """

    desired_resource_state: M | None = None
    previous_resource_state: M | None = None
    logical_resource_identifier: str | None = None
    client_request_token: str = ""
    next_token: str | None = None
    region: str | None = None
    aws_account_id: str | None = None
    stack_id: str | None = None
    desired_resource_tags: dict[str, str] = field(default_factory=dict)
    previous_resource_tags: dict[str, str] = field(default_factory=dict)
    system_tags: dict[str, str] = field(default_factory=dict)

    def desired(self) -> M:
        """Desired state, failing with ``InvalidRequest`` when absent."""
        if self.desired_resource_state is None:
            raise HandlerError(HandlerErrorCode.INVALID_REQUEST, "desiredResourceState is required")
        return self.desired_resource_state

