"""Request lifecycle coordination service implementation.

This module implements the RequestLifecycleCoordinator, the component that
admits data-retrieval requests on behalf of citizens, short-circuits them
from the cache when an equivalent result exists, dispatches them to the
EHR middleware otherwise, and finalizes them when the middleware later
reports success, partial results, or failure.

The coordinator keeps no entity state between calls. Every operation
loads the current request from the RequestStore, checks the lifecycle
precondition, mutates a copy, and persists it with a conditional update.
Operations on the same citizen (admission) or the same request id
(transitions) are serialized with per-key locks.

Examples
--------
>>> coordinator = RequestLifecycleCoordinator(
...     request_store, response_store, codec, dispatcher, config
... )
>>> request = coordinator.create_request("/r2da/Encounter", "C1", "en")
>>> request = coordinator.start_request(request.id, "C1", "token")
>>> request.status
<RequestStatus.RUNNING: 'RUNNING'>
>>> # later, from the EHR middleware callback
>>> coordinator.complete_successfully(request.id, bundle_json)
"""

import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional, Union

from ...constants.errors import ErrorMessages
from .exceptions import (
    AdmissionDeniedError,
    BundleParseError,
    CommunicationError,
    DispatchError,
    InvalidStateError,
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
from .locks import KeyedLock
from .models import CoordinationConfig, EhrRequest, EhrResponse, RequestStatus
from .query import extract_query_signature
from .windows import days_window, hours_window, is_older_than

logger = logging.getLogger(__name__)

_NOTIFIABLE = (RequestStatus.RUNNING, RequestStatus.PARTIALLY_COMPLETED)


class RequestLifecycleCoordinator(RequestCoordinatorInterface):
    """Concrete implementation of the request lifecycle coordinator.

    Parameters
    ----------
    request_store : RequestStore
        Persistence for requests; must support compare-and-set
    response_store : ResponseStore
        Persistence for result payloads
    bundle_codec : BundleCodec
        Parses, validates and annotates payloads delivered by notifications
    dispatcher : Dispatcher
        Sends started requests to the EHR middleware
    config : Optional[CoordinationConfig], default=None
        Admission, cache and sweep settings. If None, uses defaults
        (no admission limit, no cache, no sweep)
    clock : Callable[[], datetime], default=datetime.now
        Source of the current time for timestamps and windows

    Attributes
    ----------
    config : CoordinationConfig
        Active configuration
    _citizen_locks : KeyedLock
        Serializes the count-then-insert admission sequence per citizen
    _request_locks : KeyedLock
        Serializes load-check-mutate-persist sequences per request id
    _sweep_thread : Optional[threading.Thread]
        Background thread failing stale requests, if configured

    Notes
    -----
    State transitions are decided by ``RequestStatus.can_transition_to``
    and persisted with ``RequestStore.compare_and_set``. The per-request
    lock makes transitions safe within one process; the conditional update
    keeps them safe when several processes share a store. A lost race is
    reported as InvalidStateError, never applied twice.

    Errors found while processing a notification payload are recorded on
    the request (status FAILED plus failure message) rather than raised,
    since the EHR middleware has nobody waiting on the outcome.
    """

    def __init__(
        self,
        request_store: RequestStore,
        response_store: ResponseStore,
        bundle_codec: BundleCodec,
        dispatcher: Dispatcher,
        config: Optional[CoordinationConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.request_store = request_store
        self.response_store = response_store
        self.bundle_codec = bundle_codec
        self.dispatcher = dispatcher
        self.config = config or CoordinationConfig()
        self._clock = clock
        self._citizen_locks = KeyedLock()
        self._request_locks = KeyedLock()
        self._shutdown = False
        self._sweep_event = threading.Event()
        self._sweep_thread: Optional[threading.Thread] = None

        if (
            self.config.sweep_interval_seconds > 0
            and self.config.stale_running_after_hours > 0
        ):
            self._start_sweep_thread()

    # ------------------------------------------------------------------
    # Admission control and cache lookup
    # ------------------------------------------------------------------

    def admit(self, citizen_id: str) -> None:
        """Check whether the citizen may create another request.

        Parameters
        ----------
        citizen_id : str
            The requesting citizen

        Raises
        ------
        AdmissionDeniedError
            If the citizen already has ``max_concurrent_running_request_per_day``
            requests in NEW or RUNNING created within the admission window

        Notes
        -----
        Read-only. The caller must hold the citizen lock across this check
        and the insert of the new request for the limit to be hard.
        """
        limit = self.config.max_concurrent_running_request_per_day
        if limit <= 0:
            return

        from_time, to_time = hours_window(
            self._clock(), self.config.admission_window_hours
        )
        running = self.request_store.count_running(
            citizen_id, from_time, to_time
        )
        if running >= limit:
            logger.warning(
                f"Denied new request for citizen {citizen_id}: "
                f"{running}/{limit} requests in flight"
            )
            raise AdmissionDeniedError(running)

    def find_cached_equivalent(
        self, citizen_id: str, query_signature: str
    ) -> Optional[str]:
        """Find a reusable response for an equivalent completed request.

        Parameters
        ----------
        citizen_id : str
            Owner of the candidate requests
        query_signature : str
            Normalized signature the candidates must share

        Returns
        -------
        Optional[str]
            First response id of the most recent COMPLETED equivalent
            request created within the cache window, None on a miss or
            when caching is disabled
        """
        days = self.config.cache_duration_in_days
        if days <= 0:
            return None

        from_time, to_time = days_window(self._clock(), days)
        candidates = self.request_store.find_equivalent(
            citizen_id,
            query_signature,
            from_time,
            to_time,
            statuses=(RequestStatus.COMPLETED,),
        )
        for candidate in candidates:
            if candidate.first_response_id:
                return candidate.first_response_id
        return None

    # ------------------------------------------------------------------
    # Caller-invoked operations
    # ------------------------------------------------------------------

    def create_request(
        self,
        resource_locator: str,
        citizen_id: str,
        preferred_languages: Optional[str] = None,
    ) -> EhrRequest:
        query_signature = extract_query_signature(resource_locator)

        with self._citizen_locks.hold(citizen_id):
            self.admit(citizen_id)
            now = self._clock()
            request = self.request_store.save(
                EhrRequest(
                    query_signature=query_signature,
                    citizen_id=citizen_id,
                    preferred_languages=preferred_languages,
                    created_at=now,
                    updated_at=now,
                )
            )

        logger.info(
            f"Created request {request.id} for query {query_signature}"
        )
        return request

    def start_request(
        self,
        request_id: str,
        person_identifier: Optional[str] = None,
        auth_token: Optional[str] = None,
    ) -> EhrRequest:
        # The lock is held across dispatch so that an early callback from
        # the middleware waits until RUNNING is persisted.
        with self._request_locks.hold(request_id):
            request = self._load(request_id)
            if person_identifier and person_identifier != request.citizen_id:
                raise RequestNotFoundError(
                    ErrorMessages.format_not_owned(request_id)
                )
            if request.status != RequestStatus.NEW:
                raise InvalidStateError(
                    ErrorMessages.format_cannot_start(
                        request.status.value, request_id
                    )
                )

            cached_response_id = self.find_cached_equivalent(
                request.citizen_id, request.query_signature
            )
            if cached_response_id is not None:
                logger.debug(
                    f"Found a valid cached response {cached_response_id} "
                    f"for request {request_id}"
                )
                request.add_response_id(cached_response_id)
                return self._transition(
                    request, RequestStatus.NEW, RequestStatus.COMPLETED
                )

            logger.debug(
                f"No cached response, sending request {request_id} to EHR"
            )
            try:
                self.dispatcher.send(request, auth_token)
            except DispatchError as e:
                logger.error(f"Failed to dispatch request {request_id}: {e}")
                request.failure_message = str(e)
                self._transition(
                    request, RequestStatus.NEW, RequestStatus.FAILED
                )
                raise CommunicationError(str(e)) from e

            try:
                started = self._transition(
                    request, RequestStatus.NEW, RequestStatus.RUNNING
                )
            except InvalidStateError:
                # The middleware already has the request; its callbacks
                # will be rejected unless another process moved it on.
                logger.error(
                    f"Request {request_id} was dispatched but changed "
                    f"concurrently before it could be marked RUNNING"
                )
                raise

        logger.info(f"Started request {request_id}")
        return started

    # ------------------------------------------------------------------
    # Notifications from the EHR middleware
    # ------------------------------------------------------------------

    def complete_successfully(
        self, request_id: str, payload: Union[str, bytes]
    ) -> None:
        with self._request_locks.hold(request_id):
            request = self._load_notifiable(request_id)
            self._store_result(
                request, payload, RequestStatus.COMPLETED, annotate=True
            )

    def complete_partially(
        self, request_id: str, payload: Union[str, bytes]
    ) -> None:
        with self._request_locks.hold(request_id):
            request = self._load_notifiable(request_id)
            self._store_result(
                request,
                payload,
                RequestStatus.PARTIALLY_COMPLETED,
                annotate=False,
            )

    def complete_unsuccessfully(self, request_id: str, message: str) -> None:
        with self._request_locks.hold(request_id):
            request = self._load_notifiable(request_id)
            request.failure_message = message
            self._transition(request, request.status, RequestStatus.FAILED)

        logger.info(f"Request {request_id} failed upstream: {message}")

    # ------------------------------------------------------------------
    # Read-side queries
    # ------------------------------------------------------------------

    def list_requests(self, citizen_id: str) -> List[EhrRequest]:
        return self.request_store.find_by_citizen(citizen_id)

    def get_request(self, request_id: str, citizen_id: str) -> EhrRequest:
        request = self.request_store.find_by_id(request_id)
        if request is None or request.citizen_id != citizen_id:
            raise RequestNotFoundError(
                ErrorMessages.format_not_owned(request_id)
            )
        return request

    def get_result(
        self,
        request_id: str,
        citizen_id: str,
        response_id: Optional[str] = None,
    ) -> EhrResponse:
        """Return a stored result of a COMPLETED request.

        Parameters
        ----------
        request_id : str
            The request whose result is wanted
        citizen_id : str
            The requesting citizen; must own the request
        response_id : Optional[str], default=None
            A specific response of the request. If None, the final
            (most recently appended) response is returned

        Raises
        ------
        RequestNotFoundError
            If the request is unknown or owned by another citizen
        InvalidStateError
            If the request is not COMPLETED
        ResponseNotFoundError
            If the response does not belong to the request or is missing
        """
        request = self.get_request(request_id, citizen_id)
        if request.status != RequestStatus.COMPLETED:
            raise InvalidStateError(
                ErrorMessages.format_cannot_retrieve(
                    request.status.value, request_id
                )
            )

        wanted = response_id or request.last_response_id
        if wanted not in request.response_ids:
            raise ResponseNotFoundError(
                f"Response {wanted} not found for request {request_id}."
            )

        response = self.response_store.find_by_id(wanted)
        if response is None or response.citizen_id != citizen_id:
            raise ResponseNotFoundError(
                f"Response {wanted} not found for request {request_id}."
            )
        return response

    # ------------------------------------------------------------------
    # Stale request sweep
    # ------------------------------------------------------------------

    def fail_stale_requests(self) -> int:
        """Fail requests left RUNNING or PARTIALLY_COMPLETED for too long.

        Returns
        -------
        int
            Number of requests moved to FAILED

        Notes
        -----
        Disabled when ``stale_running_after_hours`` is 0. Each candidate is
        re-read under its request lock, so a notification that arrives
        during the sweep wins over the sweep.
        """
        hours = self.config.stale_running_after_hours
        if hours <= 0:
            return 0

        now = self._clock()
        threshold, _ = hours_window(now, hours)
        candidates = self.request_store.find_by_status_updated_before(
            _NOTIFIABLE, threshold
        )

        failed = 0
        for candidate in candidates:
            with self._request_locks.hold(candidate.id):
                request = self.request_store.find_by_id(candidate.id)
                if (
                    request is None
                    or not request.status.accepts_notifications()
                    or not is_older_than(request.updated_at, now, hours)
                ):
                    continue
                request.failure_message = ErrorMessages.STALE_REQUEST
                try:
                    self._transition(
                        request, request.status, RequestStatus.FAILED
                    )
                except InvalidStateError:
                    continue
                failed += 1

        if failed > 0:
            logger.info(f"Failed {failed} stale requests")
        return failed

    def shutdown(self):
        """Stop the background sweep thread, if running."""
        logger.info("Shutting down RequestLifecycleCoordinator")
        self._shutdown = True
        self._sweep_event.set()

        if self._sweep_thread and self._sweep_thread.is_alive():
            self._sweep_thread.join(timeout=1.0)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, request_id: str) -> EhrRequest:
        request = self.request_store.find_by_id(request_id)
        if request is None:
            logger.warning(f"Operation on unknown request {request_id}")
            raise RequestNotFoundError(
                ErrorMessages.format_request_not_found(request_id)
            )
        return request

    def _load_notifiable(self, request_id: str) -> EhrRequest:
        request = self._load(request_id)
        if not request.status.accepts_notifications():
            logger.warning(
                f"Rejected notification for request {request_id} "
                f"in status {request.status.value}"
            )
            raise InvalidStateError(
                ErrorMessages.format_cannot_elaborate(
                    request.status.value, request_id
                )
            )
        return request

    def _store_result(
        self,
        request: EhrRequest,
        payload: Union[str, bytes],
        target: RequestStatus,
        annotate: bool,
    ) -> None:
        """Validate a payload and store it as a response of ``request``.

        An invalid payload, or a valid one that cannot be annotated or
        stored, moves the request to FAILED and returns normally; the
        notification is acknowledged, not retried. A notification that
        loses the conditional update raises InvalidStateError and leaves
        no response in the store.
        """
        expected = request.status
        try:
            bundle = self.bundle_codec.parse_and_validate(payload)
        except BundleParseError as e:
            logger.error(
                f"Error while parsing the bundle received for request "
                f"{request.id}: {e}",
                exc_info=True,
            )
            request.failure_message = ErrorMessages.format_invalid_bundle(
                str(e)
            )
            self._transition(request, expected, RequestStatus.FAILED)
            return

        logger.debug(
            f"Request {request.id} received a valid bundle with "
            f"{len(bundle.entry)} entries"
        )
        try:
            if annotate:
                content = self.bundle_codec.serialize(
                    self.bundle_codec.annotate(bundle)
                )
            elif isinstance(payload, bytes):
                content = payload.decode("utf-8")
            else:
                content = payload
            response = self.response_store.save(
                EhrResponse(
                    citizen_id=request.citizen_id,
                    payload=content,
                    created_at=self._clock(),
                )
            )
        except Exception as e:
            logger.error(
                f"Error while storing the result of request "
                f"{request.id}: {e}",
                exc_info=True,
            )
            request.failure_message = ErrorMessages.format_result_not_stored(
                str(e)
            )
            self._transition(request, expected, RequestStatus.FAILED)
            return

        request.add_response_id(response.id)
        try:
            self._transition(request, expected, target)
        except InvalidStateError:
            # A rejected notification leaves no response behind
            self.response_store.delete(response.id)
            raise

        logger.info(
            f"Stored response {response.id} for request {request.id}, "
            f"status {target.value}"
        )

    def _transition(
        self,
        request: EhrRequest,
        expected: RequestStatus,
        target: RequestStatus,
    ) -> EhrRequest:
        if not expected.can_transition_to(target):
            raise InvalidStateError(
                f"Request {request.id} cannot move from {expected.value} "
                f"to {target.value}."
            )

        request.status = target
        request.updated_at = self._clock()
        if not self.request_store.compare_and_set(request, expected):
            raise InvalidStateError(
                f"Request {request.id} is no longer {expected.value}; "
                f"it was modified concurrently."
            )

        logger.debug(
            f"Request {request.id}: {expected.value} -> {target.value}"
        )
        return request

    def _start_sweep_thread(self):
        """Start the background stale request sweep thread."""

        def sweep_worker():
            logger.info(
                f"Sweep thread started, interval: "
                f"{self.config.sweep_interval_seconds}s"
            )

            while not self._shutdown:
                try:
                    if self._sweep_event.wait(
                        timeout=self.config.sweep_interval_seconds
                    ):
                        break

                    if not self._shutdown:
                        self.fail_stale_requests()

                except Exception as e:
                    logger.error(f"Error in sweep thread: {e}", exc_info=True)

            logger.info("Sweep thread stopped")

        self._sweep_thread = threading.Thread(
            target=sweep_worker,
            name="RequestLifecycleCoordinator-Sweep",
            daemon=True,
        )
        self._sweep_thread.start()
