"""Request lifecycle coordination module.

This module provides the service that admits data-retrieval requests on
behalf of citizens, reuses cached results of equivalent requests, tracks
each request through its lifecycle, and finalizes it when the EHR
middleware reports back.

The module includes:
- RequestLifecycleCoordinator: Main service owning the lifecycle
- Data models: EhrRequest, EhrResponse, RequestStatus, CoordinationConfig
- Collaborator contracts: RequestStore, ResponseStore, BundleCodec, Dispatcher
- Custom exceptions: RequestBrokerError types

Examples
--------
>>> coordinator = RequestLifecycleCoordinator(
...     request_store, response_store, codec, dispatcher, config
... )
>>> request = coordinator.create_request("/r2da/Encounter", "C1", "en")
>>> coordinator.start_request(request.id, "C1", auth_token)
"""

from .coordinator import RequestLifecycleCoordinator
from .exceptions import (
    AdmissionDeniedError,
    BundleParseError,
    CommunicationError,
    DispatchError,
    InvalidStateError,
    RequestBrokerError,
    RequestNotFoundError,
    ResponseNotFoundError,
)
from .interfaces import (
    BundleCodec,
    Dispatcher,
    RequestCoordinatorInterface,
    RequestStore,
    ResponseStore,
)
from .models import (
    CoordinationConfig,
    EhrRequest,
    EhrResponse,
    RequestStatus,
)

__all__ = [
    "RequestLifecycleCoordinator",
    "RequestCoordinatorInterface",
    "RequestStore",
    "ResponseStore",
    "BundleCodec",
    "Dispatcher",
    "CoordinationConfig",
    "EhrRequest",
    "EhrResponse",
    "RequestStatus",
    "RequestBrokerError",
    "AdmissionDeniedError",
    "InvalidStateError",
    "RequestNotFoundError",
    "ResponseNotFoundError",
    "CommunicationError",
    "DispatchError",
    "BundleParseError",
]
