"""Test finalization of running requests by middleware notifications.

A final result is validated, annotated with provenance and stored; a
partial result is validated and stored as received; an invalid payload
fails the request without raising.
"""

import json
from unittest.mock import patch

import pytest

from ehr_request_broker.domain.requests.models import RequestStatus
from tests.fixtures import INVALID_PAYLOADS, create_bundle_json


class TestSuccessfulCompletion:
    """Test the final result notification."""

    def test_success_stores_annotated_result(
        self, coordinator, running_request, response_store
    ):
        """Test a valid final bundle completes the request.

        Given - A RUNNING request of C1
        When - The middleware delivers a bundle with two resources
        Then - The request is COMPLETED with one response
        And - The stored bundle carries one Provenance per resource
        """
        # When - Final result
        coordinator.complete_successfully(
            running_request.id,
            create_bundle_json(("Encounter", "Observation")),
        )

        # Then - Completed
        stored = coordinator.get_request(running_request.id, "C1")
        assert stored.status == RequestStatus.COMPLETED
        assert len(stored.response_ids) == 1

        response = response_store.find_by_id(stored.response_ids[0])
        assert response.citizen_id == "C1"
        bundle = json.loads(response.payload)
        provenances = [
            e["resource"]
            for e in bundle["entry"]
            if e["resource"]["resourceType"] == "Provenance"
        ]
        assert len(bundle["entry"]) == 4
        assert sorted(p["target"][0]["reference"] for p in provenances) == [
            "Encounter/res-1",
            "Observation/res-2",
        ]

    def test_partial_then_success_keeps_both_results_in_order(
        self, coordinator, running_request, response_store
    ):
        """Test partial results accumulate before the final one.

        Given - A RUNNING request
        When - A partial result arrives, then the final result
        Then - The request is COMPLETED with both response ids in order
        And - The partial payload is stored exactly as received
        """
        partial_payload = create_bundle_json(("Encounter",))

        # When - Partial result
        coordinator.complete_partially(running_request.id, partial_payload)
        after_partial = coordinator.get_request(running_request.id, "C1")
        assert after_partial.status == RequestStatus.PARTIALLY_COMPLETED

        # And - Final result
        coordinator.complete_successfully(
            running_request.id, create_bundle_json(("Observation",))
        )

        # Then - Both results in order
        stored = coordinator.get_request(running_request.id, "C1")
        assert stored.status == RequestStatus.COMPLETED
        assert len(stored.response_ids) == 2
        assert stored.response_ids[0] == after_partial.response_ids[0]
        assert (
            response_store.find_by_id(stored.response_ids[0]).payload
            == partial_payload
        )

    def test_several_partial_results(self, coordinator, running_request):
        """Test a request may receive any number of partial results."""
        for _ in range(3):
            coordinator.complete_partially(
                running_request.id, create_bundle_json()
            )

        stored = coordinator.get_request(running_request.id, "C1")
        assert stored.status == RequestStatus.PARTIALLY_COMPLETED
        assert len(stored.response_ids) == 3
        assert len(set(stored.response_ids)) == 3


class TestInvalidPayload:
    """Test notifications carrying a payload that is not a valid bundle."""

    @pytest.mark.parametrize("payload_name", sorted(INVALID_PAYLOADS))
    def test_invalid_final_payload_fails_request(
        self, coordinator, running_request, response_store, payload_name
    ):
        """Test an invalid bundle fails the request without raising.

        Given - A RUNNING request
        When - The middleware delivers an invalid payload as final result
        Then - The request is FAILED with a validation message
        And - No response is stored
        """
        coordinator.complete_successfully(
            running_request.id, INVALID_PAYLOADS[payload_name]
        )

        stored = coordinator.get_request(running_request.id, "C1")
        assert stored.status == RequestStatus.FAILED
        assert stored.failure_message.startswith(
            "The received bundle is not valid: "
        )
        assert stored.response_ids == []
        assert len(response_store) == 0

    def test_empty_payload_message(self, coordinator, running_request):
        """Test the failure message names the problem."""
        coordinator.complete_successfully(running_request.id, "   ")

        stored = coordinator.get_request(running_request.id, "C1")
        assert stored.failure_message == (
            "The received bundle is not valid: Empty payload"
        )

    def test_invalid_partial_payload_keeps_earlier_results(
        self, coordinator, running_request, response_store
    ):
        """Test a bad partial result fails the request but keeps history.

        Given - A request with one stored partial result
        When - An invalid partial payload arrives
        Then - The request is FAILED and still lists the first result
        """
        coordinator.complete_partially(
            running_request.id, create_bundle_json()
        )

        coordinator.complete_partially(
            running_request.id, INVALID_PAYLOADS["not_json"]
        )

        stored = coordinator.get_request(running_request.id, "C1")
        assert stored.status == RequestStatus.FAILED
        assert len(stored.response_ids) == 1
        assert len(response_store) == 1


    def test_partial_payload_that_is_not_utf8_fails_request(
        self, coordinator, running_request, response_store
    ):
        """Test undecodable bytes are rejected, not stored.

        Given - A RUNNING request
        When - A partial result arrives as Latin-1 encoded bytes
        Then - The request is FAILED and nothing is stored
        """
        payload = create_bundle_json().replace("res-1", "Jos\u00e9")

        coordinator.complete_partially(
            running_request.id, payload.encode("latin-1")
        )

        stored = coordinator.get_request(running_request.id, "C1")
        assert stored.status == RequestStatus.FAILED
        assert "not UTF-8" in stored.failure_message
        assert len(response_store) == 0

    def test_partial_payload_bytes_are_stored_as_text(
        self, coordinator, running_request, response_store
    ):
        payload = create_bundle_json().replace("res-1", "Jos\u00e9")

        coordinator.complete_partially(
            running_request.id, payload.encode("utf-8")
        )

        stored = coordinator.get_request(running_request.id, "C1")
        result = response_store.find_by_id(stored.response_ids[0])
        assert stored.status == RequestStatus.PARTIALLY_COMPLETED
        assert result.payload == payload


class TestStorageFailure:
    """Test a valid result that cannot be annotated or stored."""

    def test_store_error_fails_request(
        self, coordinator, running_request, response_store
    ):
        """Test a storage error is recorded instead of raised.

        Given - A RUNNING request and a response store that is full
        When - The middleware delivers a valid final bundle
        Then - The notification returns normally
        And - The request is FAILED with the storage error as message
        """
        with patch.object(
            response_store, "save", side_effect=RuntimeError("disk full")
        ):
            coordinator.complete_successfully(
                running_request.id, create_bundle_json()
            )

        stored = coordinator.get_request(running_request.id, "C1")
        assert stored.status == RequestStatus.FAILED
        assert stored.failure_message == (
            "The received bundle could not be processed: disk full"
        )
        assert stored.response_ids == []
        assert len(response_store) == 0

    def test_store_error_on_partial_result_fails_request(
        self, coordinator, running_request, response_store
    ):
        with patch.object(
            response_store, "save", side_effect=RuntimeError("disk full")
        ):
            coordinator.complete_partially(
                running_request.id, create_bundle_json()
            )

        stored = coordinator.get_request(running_request.id, "C1")
        assert stored.status == RequestStatus.FAILED
        assert "disk full" in stored.failure_message

    def test_annotation_error_fails_request(
        self, coordinator, running_request, codec, response_store
    ):
        with patch.object(
            codec, "annotate", side_effect=ValueError("no organization")
        ):
            coordinator.complete_successfully(
                running_request.id, create_bundle_json()
            )

        stored = coordinator.get_request(running_request.id, "C1")
        assert stored.status == RequestStatus.FAILED
        assert "no organization" in stored.failure_message
        assert len(response_store) == 0

class TestUnsuccessfulCompletion:
    """Test the failure notification."""

    def test_failure_records_message(self, coordinator, running_request):
        """Test a failure notification fails the request with its message.

        Given - A RUNNING request
        When - The middleware reports it could not serve the request
        Then - The request is FAILED with that message
        """
        coordinator.complete_unsuccessfully(
            running_request.id, "Patient record locked"
        )

        stored = coordinator.get_request(running_request.id, "C1")
        assert stored.status == RequestStatus.FAILED
        assert stored.failure_message == "Patient record locked"

    def test_failure_after_partial_result(self, coordinator, running_request):
        """Test a partially completed request can still fail."""
        coordinator.complete_partially(
            running_request.id, create_bundle_json()
        )

        coordinator.complete_unsuccessfully(running_request.id, "Timeout")

        stored = coordinator.get_request(running_request.id, "C1")
        assert stored.status == RequestStatus.FAILED
        assert len(stored.response_ids) == 1
