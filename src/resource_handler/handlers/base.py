"""Handler interface."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar, Generic, TypeVar

from resource_handler.core.context import CallbackContext
from resource_handler.handlers.stabilize import StabilizationPolicy
from resource_handler.resources.base import ResourceModel

if TYPE_CHECKING:
    from resource_handler.core.progress import ProgressEvent
    from resource_handler.core.request import ResourceHandlerRequest
    from resource_handler.core.session import SessionProxy

M = TypeVar("M", bound=ResourceModel)
C = TypeVar("C", bound=CallbackContext)


class ResourceHandler(Generic[M, C]):
    """Base class for resource handlers.

    One method per action, each mapping ``(session, request, context)`` to a
    ``ProgressEvent``. Implementations keep no state between calls: anything
    needed to resume goes into the returned callback context. Subclass and
    override the actions the resource supports; the rest report
    ``InvalidRequest`` through the action table.
    """

    model: ClassVar[type[ResourceModel]]
    context_type: ClassVar[type[CallbackContext]] = CallbackContext

    def __init__(self, policy: StabilizationPolicy | None = None) -> None:
        self.policy = policy or StabilizationPolicy()

    def create(
        self, session: SessionProxy, request: ResourceHandlerRequest[M], context: C
    ) -> ProgressEvent:
        """Create the resource. May span several invocations."""
        raise NotImplementedError

    def read(
        self, session: SessionProxy, request: ResourceHandlerRequest[M], context: C
    ) -> ProgressEvent:
        """Return the current state. Single invocation."""
        raise NotImplementedError

    def update(
        self, session: SessionProxy, request: ResourceHandlerRequest[M], context: C
    ) -> ProgressEvent:
        """Move the resource from previous to desired state. May span several invocations."""
        raise NotImplementedError

    def delete(
        self, session: SessionProxy, request: ResourceHandlerRequest[M], context: C
    ) -> ProgressEvent:
        """Delete the resource; an already-absent resource counts as deleted."""
        raise NotImplementedError

    def list(
        self, session: SessionProxy, request: ResourceHandlerRequest[M], context: C
    ) -> ProgressEvent:
        """Return one page of resources. Single invocation."""
        raise NotImplementedError
