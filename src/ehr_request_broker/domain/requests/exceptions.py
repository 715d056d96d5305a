"""Exceptions raised by request lifecycle coordination.

Errors raised synchronously to the caller of ``create_request``,
``start_request`` or a notification derive from RequestBrokerError and
carry the machine-readable code used by the REST API. Collaborator errors
(DispatchError, BundleParseError) are raised by dispatchers and codecs and
are translated or absorbed by the coordinator.
"""

from typing import Optional

from ...constants.errors import ErrorCodes, ErrorMessages


class RequestBrokerError(Exception):
    """Base class for errors surfaced to coordinator callers.

    Parameters
    ----------
    message : str
        Human-readable description of the failure
    """

    code = ErrorCodes.INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AdmissionDeniedError(RequestBrokerError):
    """The citizen already has too many requests in flight.

    The caller should retry later; the broker never retries by itself.

    Parameters
    ----------
    running_count : int
        Number of in-flight requests counted for the citizen
    """

    code = ErrorCodes.TOO_MANY_REQUESTS

    def __init__(self, running_count: int):
        super().__init__(ErrorMessages.format_too_many_requests(running_count))
        self.running_count = running_count


class InvalidStateError(RequestBrokerError):
    """Operation attempted against a request whose status forbids it."""

    code = ErrorCodes.INVALID_STATE


class RequestNotFoundError(RequestBrokerError):
    """Unknown request id, or a request owned by another citizen."""

    code = ErrorCodes.REQUEST_NOT_FOUND


class ResponseNotFoundError(RequestNotFoundError):
    """Unknown response id, or a response not belonging to the request."""

    code = ErrorCodes.RESPONSE_NOT_FOUND


class CommunicationError(RequestBrokerError):
    """Dispatching a request to the EHR middleware failed."""

    code = ErrorCodes.COMMUNICATION_ERROR


class DispatchError(Exception):
    """Raised by dispatchers when a request cannot be sent upstream.

    Parameters
    ----------
    message : str
        Description of the transport failure
    status_code : Optional[int], default=None
        HTTP status returned by the EHR middleware, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BundleParseError(Exception):
    """Raised by bundle codecs when a payload is not a valid bundle."""
