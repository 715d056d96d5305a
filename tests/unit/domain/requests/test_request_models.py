"""Test request lifecycle data models."""

import pytest

from ehr_request_broker.domain.requests.models import (
    EhrRequest,
    RequestStatus,
)

ALLOWED = {
    (RequestStatus.NEW, RequestStatus.RUNNING),
    (RequestStatus.NEW, RequestStatus.COMPLETED),
    (RequestStatus.NEW, RequestStatus.FAILED),
    (RequestStatus.RUNNING, RequestStatus.PARTIALLY_COMPLETED),
    (RequestStatus.RUNNING, RequestStatus.COMPLETED),
    (RequestStatus.RUNNING, RequestStatus.FAILED),
    (RequestStatus.PARTIALLY_COMPLETED, RequestStatus.PARTIALLY_COMPLETED),
    (RequestStatus.PARTIALLY_COMPLETED, RequestStatus.COMPLETED),
    (RequestStatus.PARTIALLY_COMPLETED, RequestStatus.FAILED),
}


class TestRequestStatus:
    """Test the status transition table and predicates."""

    @pytest.mark.parametrize("source", list(RequestStatus))
    @pytest.mark.parametrize("target", list(RequestStatus))
    def test_transition_table(self, source, target):
        assert source.can_transition_to(target) == (
            (source, target) in ALLOWED
        )

    def test_terminal_statuses(self):
        terminal = {s for s in RequestStatus if s.is_terminal()}
        assert terminal == {RequestStatus.COMPLETED, RequestStatus.FAILED}

    def test_in_flight_statuses(self):
        in_flight = {s for s in RequestStatus if s.is_in_flight()}
        assert in_flight == {RequestStatus.NEW, RequestStatus.RUNNING}

    def test_notifiable_statuses(self):
        notifiable = {s for s in RequestStatus if s.accepts_notifications()}
        assert notifiable == {
            RequestStatus.RUNNING,
            RequestStatus.PARTIALLY_COMPLETED,
        }


class TestEhrRequest:
    """Test the request entity."""

    def test_defaults(self):
        request = EhrRequest(query_signature="Encounter", citizen_id="C1")

        assert request.status == RequestStatus.NEW
        assert request.response_ids == []
        assert request.first_response_id is None
        assert request.last_response_id is None
        assert request.id

    def test_response_ids_keep_order(self):
        request = EhrRequest(query_signature="Encounter", citizen_id="C1")

        request.add_response_id("r1")
        request.add_response_id("r2")

        assert request.first_response_id == "r1"
        assert request.last_response_id == "r2"
