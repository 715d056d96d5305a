"""Abstract interfaces for request lifecycle coordination.

This module defines the contracts between the RequestLifecycleCoordinator
and its collaborators: the request and response stores, the bundle codec,
and the upstream dispatcher. It also defines the public contract of the
coordinator itself, consumed by the REST API.

The interfaces follow the Dependency Inversion Principle: the coordinator
depends on these abstractions, and concrete in-memory, HTTP or mock
implementations are injected at construction time.

Examples
--------
>>> coordinator = RequestLifecycleCoordinator(
...     request_store=InMemoryRequestStore(),
...     response_store=InMemoryResponseStore(),
...     bundle_codec=JsonBundleCodec(),
...     dispatcher=HttpEhrDispatcher(config),
...     config=CoordinationConfig(max_concurrent_running_request_per_day=3),
... )
>>> request = coordinator.create_request("/r2da/Encounter", "C1", "en")
>>> coordinator.start_request(request.id, "C1", "token")
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, List, Optional, Union

from .models import EhrRequest, EhrResponse, RequestStatus

if TYPE_CHECKING:
    from ..bundles.models import Bundle


class RequestStore(ABC):
    """Persistence contract for requests.

    Implementations must return copies of stored requests, so that a
    caller mutating a loaded request never changes persisted state
    without going through ``save`` or ``compare_and_set``.
    """

    @abstractmethod
    def save(self, request: EhrRequest) -> EhrRequest:
        """Insert or overwrite a request and return the stored copy."""
        pass

    @abstractmethod
    def find_by_id(self, request_id: str) -> Optional[EhrRequest]:
        """Return the request with ``request_id``, None if unknown."""
        pass

    @abstractmethod
    def compare_and_set(
        self, request: EhrRequest, expected_status: RequestStatus
    ) -> bool:
        """Persist ``request`` only if the stored status is unchanged.

        Parameters
        ----------
        request : EhrRequest
            The updated request to persist
        expected_status : RequestStatus
            Status the stored request must still have

        Returns
        -------
        bool
            True if the request was persisted, False if the stored status
            differs from ``expected_status`` or the request is unknown

        Notes
        -----
        This is the conditional update that makes transitions safe when
        two notifications for the same request race each other.
        """
        pass

    @abstractmethod
    def count_running(
        self, citizen_id: str, from_time: datetime, to_time: datetime
    ) -> int:
        """Count in-flight requests of a citizen created in the window.

        In flight means NEW or RUNNING, as defined by
        ``RequestStatus.is_in_flight``.
        """
        pass

    @abstractmethod
    def find_equivalent(
        self,
        citizen_id: str,
        query_signature: str,
        from_time: datetime,
        to_time: datetime,
        statuses: Optional[Iterable[RequestStatus]] = None,
    ) -> List[EhrRequest]:
        """Find requests of a citizen with the same query signature.

        Parameters
        ----------
        citizen_id : str
            Owner of the requests
        query_signature : str
            Normalized query signature to match exactly
        from_time, to_time : datetime
            Inclusive creation time range
        statuses : Optional[Iterable[RequestStatus]], default=None
            Restrict results to these statuses; None means any status

        Returns
        -------
        List[EhrRequest]
            Matching requests, most recently created first
        """
        pass

    @abstractmethod
    def find_by_citizen(self, citizen_id: str) -> List[EhrRequest]:
        """Return all requests of a citizen, most recently created first."""
        pass

    @abstractmethod
    def find_by_status_updated_before(
        self, statuses: Iterable[RequestStatus], before: datetime
    ) -> List[EhrRequest]:
        """Return requests in ``statuses`` last updated before ``before``."""
        pass


class ResponseStore(ABC):
    """Persistence contract for responses."""

    @abstractmethod
    def save(self, response: EhrResponse) -> EhrResponse:
        """Store a response and return it."""
        pass

    @abstractmethod
    def find_by_id(self, response_id: str) -> Optional[EhrResponse]:
        """Return the response with ``response_id``, None if unknown."""
        pass

    @abstractmethod
    def delete(self, response_id: str) -> None:
        """Remove a response; unknown ids are ignored."""
        pass


class BundleCodec(ABC):
    """Parsing, validation and annotation of result payloads."""

    @abstractmethod
    def parse_and_validate(self, raw_payload: Union[str, bytes]) -> "Bundle":
        """Parse a raw payload, raising BundleParseError if invalid."""
        pass

    @abstractmethod
    def annotate(self, bundle: "Bundle") -> "Bundle":
        """Return the bundle annotated with provenance metadata."""
        pass

    @abstractmethod
    def serialize(self, bundle: "Bundle") -> str:
        """Serialize a bundle back to its raw payload form."""
        pass


class Dispatcher(ABC):
    """Sends admitted requests to the EHR middleware.

    Dispatch is fire-and-forget: a successful ``send`` only means the
    middleware accepted the request. The outcome arrives later through
    the coordinator's notification operations.
    """

    @abstractmethod
    def send(self, request: EhrRequest, auth_token: Optional[str]) -> None:
        """Send ``request`` upstream, raising DispatchError on failure."""
        pass


class RequestCoordinatorInterface(ABC):
    """Public contract of the request lifecycle coordinator.

    All methods are safe to call concurrently. Operations on the same
    request id are serialized; operations on different ids proceed in
    parallel. Errors of caller-invoked operations are raised to the
    caller; errors found while processing notification payloads are
    recorded on the request instead.
    """

    @abstractmethod
    def create_request(
        self,
        resource_locator: str,
        citizen_id: str,
        preferred_languages: Optional[str] = None,
    ) -> EhrRequest:
        """Admit and persist a new request in status NEW.

        Raises
        ------
        AdmissionDeniedError
            If the citizen reached the concurrency limit
        ValueError
            If the resource locator has no resource path
        """
        pass

    @abstractmethod
    def start_request(
        self,
        request_id: str,
        person_identifier: Optional[str] = None,
        auth_token: Optional[str] = None,
    ) -> EhrRequest:
        """Start a NEW request from the cache or by dispatching it.

        Raises
        ------
        RequestNotFoundError
            If the request does not exist
        InvalidStateError
            If the request is not NEW
        CommunicationError
            If dispatch failed; the request is left FAILED
        """
        pass

    @abstractmethod
    def complete_successfully(
        self, request_id: str, payload: Union[str, bytes]
    ) -> None:
        """Record the final result of a running request."""
        pass

    @abstractmethod
    def complete_partially(
        self, request_id: str, payload: Union[str, bytes]
    ) -> None:
        """Record a partial result of a running request."""
        pass

    @abstractmethod
    def complete_unsuccessfully(self, request_id: str, message: str) -> None:
        """Record that the EHR middleware failed to serve the request."""
        pass

    @abstractmethod
    def list_requests(self, citizen_id: str) -> List[EhrRequest]:
        """Return the citizen's requests, most recent first."""
        pass

    @abstractmethod
    def get_request(self, request_id: str, citizen_id: str) -> EhrRequest:
        """Return a request owned by ``citizen_id``."""
        pass

    @abstractmethod
    def get_result(
        self,
        request_id: str,
        citizen_id: str,
        response_id: Optional[str] = None,
    ) -> EhrResponse:
        """Return a stored result of a COMPLETED request."""
        pass
