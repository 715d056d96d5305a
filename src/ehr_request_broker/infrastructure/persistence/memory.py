"""Thread-safe in-memory request and response stores.

These stores keep entities in dictionaries guarded by a lock and hand out
copies, so that a caller can only change persisted state through ``save``
or ``compare_and_set``. They back the application in single-process
deployments and every test of the coordinator.
"""

import copy
import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ...domain.requests.interfaces import RequestStore, ResponseStore
from ...domain.requests.models import EhrRequest, EhrResponse, RequestStatus


class InMemoryRequestStore(RequestStore):
    """Dictionary-backed RequestStore.

    Attributes
    ----------
    _requests : Dict[str, EhrRequest]
        Stored requests keyed by id
    _lock : threading.RLock
        Guards every read and write of ``_requests``
    """

    def __init__(self):
        self._requests: Dict[str, EhrRequest] = {}
        self._lock = threading.RLock()

    def save(self, request: EhrRequest) -> EhrRequest:
        with self._lock:
            self._requests[request.id] = copy.deepcopy(request)
            return copy.deepcopy(request)

    def find_by_id(self, request_id: str) -> Optional[EhrRequest]:
        with self._lock:
            stored = self._requests.get(request_id)
            return copy.deepcopy(stored) if stored else None

    def compare_and_set(
        self, request: EhrRequest, expected_status: RequestStatus
    ) -> bool:
        with self._lock:
            stored = self._requests.get(request.id)
            if stored is None or stored.status != expected_status:
                return False
            self._requests[request.id] = copy.deepcopy(request)
            return True

    def count_running(
        self, citizen_id: str, from_time: datetime, to_time: datetime
    ) -> int:
        with self._lock:
            return sum(
                1
                for r in self._requests.values()
                if r.citizen_id == citizen_id
                and r.status.is_in_flight()
                and from_time <= r.created_at <= to_time
            )

    def find_equivalent(
        self,
        citizen_id: str,
        query_signature: str,
        from_time: datetime,
        to_time: datetime,
        statuses: Optional[Iterable[RequestStatus]] = None,
    ) -> List[EhrRequest]:
        allowed = set(statuses) if statuses is not None else None
        with self._lock:
            matches = [
                r
                for r in self._requests.values()
                if r.citizen_id == citizen_id
                and r.query_signature == query_signature
                and from_time <= r.created_at <= to_time
                and (allowed is None or r.status in allowed)
            ]
            return _newest_first(matches)

    def find_by_citizen(self, citizen_id: str) -> List[EhrRequest]:
        with self._lock:
            return _newest_first(
                r
                for r in self._requests.values()
                if r.citizen_id == citizen_id
            )

    def find_by_status_updated_before(
        self, statuses: Iterable[RequestStatus], before: datetime
    ) -> List[EhrRequest]:
        allowed = set(statuses)
        with self._lock:
            return [
                copy.deepcopy(r)
                for r in self._requests.values()
                if r.status in allowed and r.updated_at < before
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)


class InMemoryResponseStore(ResponseStore):
    """Dictionary-backed ResponseStore.

    Responses are frozen dataclasses, so no copying is needed.
    """

    def __init__(self):
        self._responses: Dict[str, EhrResponse] = {}
        self._lock = threading.Lock()

    def save(self, response: EhrResponse) -> EhrResponse:
        with self._lock:
            self._responses[response.id] = response
            return response

    def find_by_id(self, response_id: str) -> Optional[EhrResponse]:
        with self._lock:
            return self._responses.get(response_id)

    def delete(self, response_id: str) -> None:
        with self._lock:
            self._responses.pop(response_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._responses)


def _newest_first(requests: Iterable[EhrRequest]) -> List[EhrRequest]:
    return [
        copy.deepcopy(r)
        for r in sorted(requests, key=lambda r: r.created_at, reverse=True)
    ]
