"""Data models for request lifecycle coordination.

This module defines the core data structures used by the
RequestLifecycleCoordinator to track data-retrieval requests made on
behalf of a citizen, the result payloads produced by the EHR middleware,
and the configuration that bounds admission and caching behavior.

The models represent the business concepts involved in brokering
asynchronous requests: a request is admitted, started, and later finalized
by independent notifications arriving from the EHR middleware.

Examples
--------
>>> # Create a new request
>>> request = EhrRequest(
...     query_signature="Encounter?date=2024",
...     citizen_id="CITIZEN_001",
... )
>>> request.status
<RequestStatus.NEW: 'NEW'>
>>>
>>> # Check whether the request still counts against admission control
>>> if request.status.is_in_flight():
...     print("Request still in flight")
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class RequestStatus(Enum):
    """Status enumeration for the request lifecycle.

    The status progression follows:
    NEW → RUNNING → COMPLETED

    with RUNNING ⇄ PARTIALLY_COMPLETED while the EHR middleware streams
    partial results. A cache hit moves NEW straight to COMPLETED, and a
    dispatch failure moves NEW straight to FAILED.

    Attributes
    ----------
    NEW : str
        Request admitted and persisted, not yet started
    RUNNING : str
        Request dispatched to the EHR middleware, awaiting a notification
    PARTIALLY_COMPLETED : str
        At least one partial result stored, more results expected
    COMPLETED : str
        Final result available, terminal
    FAILED : str
        Processing failed, failure message available, terminal

    Notes
    -----
    COMPLETED and FAILED are terminal: no transition is accepted once
    reached. The transition table is kept in ``can_transition_to`` so the
    coordinator never decides legality ad hoc.

    Examples
    --------
    >>> RequestStatus.NEW.can_transition_to(RequestStatus.RUNNING)
    True
    >>> RequestStatus.COMPLETED.can_transition_to(RequestStatus.FAILED)
    False
    """

    NEW = "NEW"
    RUNNING = "RUNNING"
    PARTIALLY_COMPLETED = "PARTIALLY_COMPLETED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    def is_terminal(self) -> bool:
        """Check if this status represents a terminal state.

        Returns
        -------
        bool
            True if status is COMPLETED or FAILED
        """
        return self in {self.COMPLETED, self.FAILED}

    def is_in_flight(self) -> bool:
        """Check if this status counts against admission control.

        Returns
        -------
        bool
            True if status is NEW or RUNNING
        """
        return self in {self.NEW, self.RUNNING}

    def accepts_notifications(self) -> bool:
        """Check if completion notifications may be applied.

        Returns
        -------
        bool
            True if status is RUNNING or PARTIALLY_COMPLETED
        """
        return self in {self.RUNNING, self.PARTIALLY_COMPLETED}

    def can_transition_to(self, target: "RequestStatus") -> bool:
        """Check whether the lifecycle allows moving to ``target``.

        Parameters
        ----------
        target : RequestStatus
            The status the caller wants to move to

        Returns
        -------
        bool
            True if the transition is part of the lifecycle
        """
        return target in _TRANSITIONS[self]


_TRANSITIONS = {
    RequestStatus.NEW: frozenset(
        {
            RequestStatus.RUNNING,
            RequestStatus.COMPLETED,
            RequestStatus.FAILED,
        }
    ),
    RequestStatus.RUNNING: frozenset(
        {
            RequestStatus.PARTIALLY_COMPLETED,
            RequestStatus.COMPLETED,
            RequestStatus.FAILED,
        }
    ),
    RequestStatus.PARTIALLY_COMPLETED: frozenset(
        {
            RequestStatus.PARTIALLY_COMPLETED,
            RequestStatus.COMPLETED,
            RequestStatus.FAILED,
        }
    ),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.FAILED: frozenset(),
}


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class CoordinationConfig:
    """Configuration settings for the request lifecycle coordinator.

    Attributes
    ----------
    max_concurrent_running_request_per_day : int, default=0
        Maximum number of in-flight requests (NEW or RUNNING) a citizen
        may have created within the admission window. 0 disables the check
    cache_duration_in_days : int, default=0
        How far back an equivalent completed request may be reused as a
        cached result. 0 disables caching, every start dispatches upstream
    admission_window_hours : int, default=24
        Width of the rolling window used by admission control
    stale_running_after_hours : int, default=0
        Age after which a request still RUNNING or PARTIALLY_COMPLETED is
        failed by the stale request sweep. 0 disables the sweep
    sweep_interval_seconds : int, default=0
        How often the background sweep thread runs. 0 disables the thread;
        the sweep can still be invoked manually

    Notes
    -----
    Configuration is passed to the coordinator at construction time and
    never read from process-wide state, so tests can run coordinators
    with different limits side by side.

    Examples
    --------
    >>> config = CoordinationConfig(
    ...     max_concurrent_running_request_per_day=3,
    ...     cache_duration_in_days=1,
    ... )
    """

    max_concurrent_running_request_per_day: int = 0
    cache_duration_in_days: int = 0
    admission_window_hours: int = 24
    stale_running_after_hours: int = 0
    sweep_interval_seconds: int = 0


@dataclass
class EhrRequest:
    """A data-retrieval request tracked from creation to terminal outcome.

    Attributes
    ----------
    query_signature : str
        Normalized representation of the requested data subset, used to
        find equivalent requests for caching
    citizen_id : str
        Identifier of the requesting citizen; scopes ownership checks,
        admission control and cache lookup
    preferred_languages : Optional[str], default=None
        Caller language preference, forwarded to the EHR middleware
    status : RequestStatus, default=NEW
        Current lifecycle status, changed only by the coordinator
    response_ids : List[str], default=empty
        Ordered, append-only ids of the responses produced so far
    failure_message : Optional[str], default=None
        Reason for failure, set only when status is FAILED
    id : str
        Opaque unique identifier assigned at creation
    created_at : datetime
        Creation timestamp, immutable, used by all time-window queries
    updated_at : datetime
        Timestamp of the last persisted transition

    Notes
    -----
    Instances are plain values. Stores hand out copies, so mutating an
    instance has no effect until it is persisted through the store.
    """

    query_signature: str
    citizen_id: str
    preferred_languages: Optional[str] = None
    status: RequestStatus = RequestStatus.NEW
    response_ids: List[str] = field(default_factory=list)
    failure_message: Optional[str] = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def first_response_id(self) -> Optional[str]:
        """Id of the first stored response, None if there is none yet."""
        return self.response_ids[0] if self.response_ids else None

    @property
    def last_response_id(self) -> Optional[str]:
        """Id of the most recently stored response."""
        return self.response_ids[-1] if self.response_ids else None

    def add_response_id(self, response_id: str) -> None:
        """Append a response id, keeping call order."""
        self.response_ids.append(response_id)


@dataclass(frozen=True)
class EhrResponse:
    """An immutable result payload produced for a request.

    Attributes
    ----------
    citizen_id : str
        Copied from the owning request to allow ownership checks
        without a join
    payload : str
        Raw or annotated bundle content
    id : str
        Opaque unique identifier assigned at creation
    created_at : datetime
        Creation timestamp
    """

    citizen_id: str
    payload: str
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=datetime.now)
