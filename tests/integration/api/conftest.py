"""API-level integration test fixtures.

Provides a running application built by ``create_app`` on a temporary
configuration file, in-memory stores, a recording dispatcher in place of
the EHR middleware, and a manually advanced clock.
"""

import tempfile
from dataclasses import dataclass
from pathlib import Path

import pytest
import yaml
from fastapi.testclient import TestClient

from ehr_request_broker.api.main import create_app
from ehr_request_broker.infrastructure.config.loader import ConfigLoader
from tests.fixtures import (
    BROKER_CONFIG,
    CITIZEN_HEADERS,
    FakeClock,
    RecordingDispatcher,
)


@dataclass
class ApiContext:
    client: TestClient
    dispatcher: RecordingDispatcher
    clock: FakeClock

    def submit(self, query="Encounter", headers=None):
        """Submit a request and return its id."""
        response = self.client.get(
            f"/r2da/{query}", headers=headers or CITIZEN_HEADERS
        )
        assert response.status_code == 202, response.text
        return response.json()["request_id"]


@pytest.fixture
def config_path():
    with tempfile.NamedTemporaryFile(
        mode="w", suffix=".yaml", delete=False
    ) as f:
        yaml.dump(BROKER_CONFIG, f)
        path = Path(f.name)
    yield path
    path.unlink()


@pytest.fixture
def api_context(config_path):
    """Full API context with startup and shutdown handled by TestClient."""
    dispatcher = RecordingDispatcher()
    clock = FakeClock()
    app = create_app(
        ConfigLoader(config_path), dispatcher=dispatcher, clock=clock
    )

    with TestClient(app) as client:
        yield ApiContext(client=client, dispatcher=dispatcher, clock=clock)
