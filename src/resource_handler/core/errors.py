"""Handler error taxonomy.

Every failure a handler action can surface is described by one
``HandlerErrorCode``. There is a single exception type, ``HandlerError``,
carrying the code; callers branch on ``error.code`` rather than on
exception subclasses.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from botocore.exceptions import (
    ClientError,
    HTTPClientError,
    NoCredentialsError,
    ParamValidationError,
)
from botocore.exceptions import ConnectionError as BotoConnectionError
from pydantic import ValidationError

if TYPE_CHECKING:
    from resource_handler.core.progress import ProgressEvent

logger = logging.getLogger(__name__)


class HandlerErrorCode(str, Enum):
    NOT_FOUND = "NotFound"
    ALREADY_EXISTS = "AlreadyExists"
    INVALID_REQUEST = "InvalidRequest"
    ACCESS_DENIED = "AccessDenied"
    THROTTLING = "Throttling"
    SERVICE_INTERNAL_ERROR = "ServiceInternalError"
    NOT_UPDATABLE = "NotUpdatable"
    INTERNAL_FAILURE = "InternalFailure"
    NOT_STABILIZED = "NotStabilized"
    RESOURCE_CONFLICT = "ResourceConflict"
    SERVICE_LIMIT_EXCEEDED = "ServiceLimitExceeded"
    NETWORK_FAILURE = "NetworkFailure"
    GENERAL_SERVICE_EXCEPTION = "GeneralServiceException"

    @property
    def retryable(self) -> bool:
        """Whether the fault is transient and worth another invocation."""
        return self in _RETRYABLE_CODES


_RETRYABLE_CODES: frozenset[HandlerErrorCode] = frozenset(
    {
        HandlerErrorCode.THROTTLING,
        HandlerErrorCode.SERVICE_INTERNAL_ERROR,
        HandlerErrorCode.NETWORK_FAILURE,
    }
)


class HandlerError(Exception):
    """A classified handler failure.

    Raising it from an action is equivalent to returning
    ``ProgressEvent.failed(code, message)``.
    """

    def __init__(self, code: HandlerErrorCode, message: str) -> None:
        self.code = HandlerErrorCode(code)
        self.message = message or self.code.value
        super().__init__(f"{self.code.value}: {self.message}")

    @property
    def retryable(self) -> bool:
        return self.code.retryable

    def to_progress_event(self) -> ProgressEvent:
        from resource_handler.core.progress import ProgressEvent

        return ProgressEvent.failed(self.code, self.message)

    @classmethod
    def not_found(cls, type_name: str, identifier: str | None) -> HandlerError:
        if identifier is None:
            return cls(
                HandlerErrorCode.NOT_FOUND,
                f"Resource of type '{type_name}' has no primary identifier to look up.",
            )
        return cls(
            HandlerErrorCode.NOT_FOUND,
            f"Resource of type '{type_name}' with identifier '{identifier}' was not found.",
        )

    @classmethod
    def not_updatable(cls, type_name: str, fields: list[str]) -> HandlerError:
        return cls(
            HandlerErrorCode.NOT_UPDATABLE,
            f"Resource of type '{type_name}' cannot update create-only properties: "
            + ", ".join(fields),
        )


# Downstream service error codes -> taxonomy. Codes are matched verbatim
# against ``ClientError.response["Error"]["Code"]``.
_CLIENT_ERROR_CODES: dict[str, HandlerErrorCode] = {
    # not found
    "NotFound": HandlerErrorCode.NOT_FOUND,
    "NotFoundException": HandlerErrorCode.NOT_FOUND,
    "ResourceNotFoundException": HandlerErrorCode.NOT_FOUND,
    "NoSuchEntity": HandlerErrorCode.NOT_FOUND,
    "NoSuchHostedZone": HandlerErrorCode.NOT_FOUND,
    "NoSuchChange": HandlerErrorCode.NOT_FOUND,
    # already exists
    "AlreadyExistsException": HandlerErrorCode.ALREADY_EXISTS,
    "ResourceAlreadyExistsException": HandlerErrorCode.ALREADY_EXISTS,
    "EntityAlreadyExists": HandlerErrorCode.ALREADY_EXISTS,
    "HostedZoneAlreadyExists": HandlerErrorCode.ALREADY_EXISTS,
    # invalid request
    "ValidationError": HandlerErrorCode.INVALID_REQUEST,
    "ValidationException": HandlerErrorCode.INVALID_REQUEST,
    "InvalidInput": HandlerErrorCode.INVALID_REQUEST,
    "InvalidArgumentException": HandlerErrorCode.INVALID_REQUEST,
    "InvalidParameterException": HandlerErrorCode.INVALID_REQUEST,
    "InvalidParameterValue": HandlerErrorCode.INVALID_REQUEST,
    "InvalidDomainName": HandlerErrorCode.INVALID_REQUEST,
    "InvalidVPCId": HandlerErrorCode.INVALID_REQUEST,
    # access denied
    "AccessDenied": HandlerErrorCode.ACCESS_DENIED,
    "AccessDeniedException": HandlerErrorCode.ACCESS_DENIED,
    "UnauthorizedOperation": HandlerErrorCode.ACCESS_DENIED,
    "UnrecognizedClientException": HandlerErrorCode.ACCESS_DENIED,
    "InvalidClientTokenId": HandlerErrorCode.ACCESS_DENIED,
    "ExpiredToken": HandlerErrorCode.ACCESS_DENIED,
    "ExpiredTokenException": HandlerErrorCode.ACCESS_DENIED,
    # throttling
    "Throttling": HandlerErrorCode.THROTTLING,
    "ThrottlingException": HandlerErrorCode.THROTTLING,
    "TooManyRequestsException": HandlerErrorCode.THROTTLING,
    "RequestLimitExceeded": HandlerErrorCode.THROTTLING,
    "PriorRequestNotComplete": HandlerErrorCode.THROTTLING,
    "ProvisionedThroughputExceededException": HandlerErrorCode.THROTTLING,
    # service side
    "InternalError": HandlerErrorCode.SERVICE_INTERNAL_ERROR,
    "InternalFailure": HandlerErrorCode.SERVICE_INTERNAL_ERROR,
    "InternalServiceError": HandlerErrorCode.SERVICE_INTERNAL_ERROR,
    "ServiceUnavailable": HandlerErrorCode.SERVICE_INTERNAL_ERROR,
    # conflicts
    "ConflictException": HandlerErrorCode.RESOURCE_CONFLICT,
    "ResourceInUseException": HandlerErrorCode.RESOURCE_CONFLICT,
    "ConcurrentModification": HandlerErrorCode.RESOURCE_CONFLICT,
    "HostedZoneNotEmpty": HandlerErrorCode.RESOURCE_CONFLICT,
    "ConflictingDomainExists": HandlerErrorCode.RESOURCE_CONFLICT,
    # limits
    "LimitExceeded": HandlerErrorCode.SERVICE_LIMIT_EXCEEDED,
    "LimitExceededException": HandlerErrorCode.SERVICE_LIMIT_EXCEEDED,
    "ServiceQuotaExceededException": HandlerErrorCode.SERVICE_LIMIT_EXCEEDED,
    "TooManyHostedZones": HandlerErrorCode.SERVICE_LIMIT_EXCEEDED,
    "TooManyTagKeys": HandlerErrorCode.SERVICE_LIMIT_EXCEEDED,
}


def client_error_code(exc: ClientError) -> str:
    """Return the service error code of a botocore ``ClientError``."""
    return str(exc.response.get("Error", {}).get("Code", ""))


def _classify_client_error(exc: ClientError) -> HandlerError:
    error = exc.response.get("Error", {})
    service_code = str(error.get("Code", ""))
    message = str(error.get("Message") or exc)

    code = _CLIENT_ERROR_CODES.get(service_code)
    if code is None:
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        code = (
            HandlerErrorCode.SERVICE_INTERNAL_ERROR
            if status >= 500
            else HandlerErrorCode.GENERAL_SERVICE_EXCEPTION
        )
    return HandlerError(code, message)


def classify_exception(exc: BaseException) -> HandlerError:
    """Map any exception raised inside an action onto the taxonomy.

    Unknown exceptions become ``InternalFailure`` and keep their message.
    """
    match exc:
        case HandlerError():
            return exc
        case ClientError():
            return _classify_client_error(exc)
        case ParamValidationError():
            return HandlerError(HandlerErrorCode.INVALID_REQUEST, str(exc))
        case ValidationError():
            # Request input is validated before dispatch; this is the handler's own model.
            return HandlerError(HandlerErrorCode.INTERNAL_FAILURE, str(exc))
        case NoCredentialsError():
            return HandlerError(HandlerErrorCode.ACCESS_DENIED, str(exc))
        case BotoConnectionError() | HTTPClientError():
            return HandlerError(HandlerErrorCode.NETWORK_FAILURE, str(exc))
        case _:
            logger.debug("Unclassified %s downgraded to InternalFailure", type(exc).__name__)
            return HandlerError(HandlerErrorCode.INTERNAL_FAILURE, str(exc) or type(exc).__name__)
