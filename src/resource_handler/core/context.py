"""Typed callback contexts.

The host persists the callback context returned with an IN_PROGRESS event
and replays it verbatim on the next invocation of the same operation. It is
the only state that survives between invocations, so every handler declares
its resumption state as a ``CallbackContext`` subclass.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from resource_handler.core.errors import HandlerError, HandlerErrorCode

logger = logging.getLogger(__name__)

# Serialized JSON size ceiling for a callback context.
MAX_CALLBACK_CONTEXT_BYTES = 8 * 1024


class CallbackContext(BaseModel):
    """Resumption state threaded through re-invocations.

    Attributes:
        attempt: Stabilization polls performed so far.
        retries: Transient downstream failures recovered so far.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    attempt: int = Field(default=0, ge=0)
    retries: int = Field(default=0, ge=0)

    @classmethod
    def from_wire(cls, raw: Mapping[str, Any] | None) -> Self:
        """Build a context from the host's replayed mapping.

        ``None`` or an empty mapping means the operation has not started yet.
        """
        if not raw:
            return cls()
        try:
            return cls.model_validate(dict(raw))
        except ValidationError as exc:
            raise HandlerError(
                HandlerErrorCode.INVALID_REQUEST, f"Malformed callback context: {exc}"
            ) from exc

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the host. Always contains ``attempt``."""
        data = self.model_dump(mode="json", by_alias=True, exclude_defaults=True)
        data["attempt"] = self.attempt
        return data

    @property
    def started(self) -> bool:
        """True once any state beyond the counters has been recorded."""
        return bool(self.model_dump(exclude_defaults=True, exclude={"attempt", "retries"}))

    def evolve(self, **changes: Any) -> Self:
        return self.model_copy(update=changes)

    def advance(self, **changes: Any) -> Self:
        """Copy for the next poll: bumps ``attempt`` and clears ``retries``."""
        return self.model_copy(update={"attempt": self.attempt + 1, "retries": 0, **changes})

    def retried(self, **changes: Any) -> Self:
        """Copy for the next retry after a transient failure."""
        return self.model_copy(update={"retries": self.retries + 1, **changes})


def check_context_size(data: Mapping[str, Any]) -> None:
    """Raise ``InternalFailure`` if *data* exceeds the host's size bound."""
    size = len(json.dumps(data, separators=(",", ":"), default=str).encode("utf-8"))
    if size > MAX_CALLBACK_CONTEXT_BYTES:
        logger.error("Callback context is %d bytes (limit %d)", size, MAX_CALLBACK_CONTEXT_BYTES)
        raise HandlerError(
            HandlerErrorCode.INTERNAL_FAILURE,
            f"Callback context exceeds {MAX_CALLBACK_CONTEXT_BYTES} bytes ({size})",
        )
