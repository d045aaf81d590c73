"""Core protocol types shared by handlers and the entrypoint."""

from resource_handler.core.context import MAX_CALLBACK_CONTEXT_BYTES, CallbackContext
from resource_handler.core.errors import HandlerError, HandlerErrorCode, classify_exception
from resource_handler.core.progress import OperationStatus, ProgressEvent
from resource_handler.core.request import Action, Credentials, ResourceHandlerRequest
from resource_handler.core.session import SessionProxy

__all__ = [
    "MAX_CALLBACK_CONTEXT_BYTES",
    "Action",
    "CallbackContext",
    "Credentials",
    "HandlerError",
    "HandlerErrorCode",
    "OperationStatus",
    "ProgressEvent",
    "ResourceHandlerRequest",
    "SessionProxy",
    "classify_exception",
]
