"""Resource provider handlers: CRUDL lifecycle, progress events and re-invocation."""

__version__ = "0.1.0"

from resource_handler.core import (  # noqa: E402
    Action,
    CallbackContext,
    HandlerError,
    HandlerErrorCode,
    OperationStatus,
    ProgressEvent,
    ResourceHandlerRequest,
    SessionProxy,
)
from resource_handler.entrypoint import HandlerEntrypoint  # noqa: E402
from resource_handler.handlers import ResourceHandler, ResourceTypeRegistry  # noqa: E402
from resource_handler.resources import ResourceModel  # noqa: E402

__all__ = [
    "Action",
    "CallbackContext",
    "HandlerEntrypoint",
    "HandlerError",
    "HandlerErrorCode",
    "OperationStatus",
    "ProgressEvent",
    "ResourceHandler",
    "ResourceHandlerRequest",
    "ResourceModel",
    "ResourceTypeRegistry",
    "SessionProxy",
    "__version__",
]
