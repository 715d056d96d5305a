"""Pytest fixtures for request lifecycle coordination tests.

Coordinators are built on in-memory stores, a recording dispatcher and a
manually advanced clock, so every test controls time and observes exactly
what was sent to the EHR middleware.
"""

import pytest

from ehr_request_broker.domain.bundles.codec import JsonBundleCodec
from ehr_request_broker.domain.bundles.provenance import ProvenanceBuilder
from ehr_request_broker.domain.requests.coordinator import (
    RequestLifecycleCoordinator,
)
from ehr_request_broker.domain.requests.models import CoordinationConfig
from ehr_request_broker.infrastructure.persistence.memory import (
    InMemoryRequestStore,
    InMemoryResponseStore,
)
from tests.fixtures import FakeClock, RecordingDispatcher


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def request_store():
    return InMemoryRequestStore()


@pytest.fixture
def response_store():
    return InMemoryResponseStore()


@pytest.fixture
def codec(clock):
    return JsonBundleCodec(ProvenanceBuilder("Test Hospital", clock=clock))


@pytest.fixture
def make_coordinator(request_store, response_store, codec, dispatcher, clock):
    """Factory building coordinators with the given config values.

    Coordinators created here are shut down after the test.
    """
    created = []

    def _make(**config_values):
        config = CoordinationConfig(**config_values)
        coordinator = RequestLifecycleCoordinator(
            request_store=request_store,
            response_store=response_store,
            bundle_codec=codec,
            dispatcher=dispatcher,
            config=config,
            clock=clock,
        )
        created.append(coordinator)
        return coordinator

    yield _make

    for coordinator in created:
        coordinator.shutdown()


@pytest.fixture
def coordinator(make_coordinator):
    """Coordinator with an admission limit of 3 and a one-day cache."""
    return make_coordinator(
        max_concurrent_running_request_per_day=3,
        cache_duration_in_days=1,
    )


@pytest.fixture
def running_request(coordinator):
    """A request of citizen C1 that has been dispatched."""
    created = coordinator.create_request("/r2da/Encounter", "C1", "en")
    return coordinator.start_request(created.id, "C1", "token")
