"""Test fixtures for the EHR request broker.

Example usage:
    >>> from tests.fixtures import FakeClock, RecordingDispatcher
    >>> from tests.fixtures import create_bundle_json
    >>>
    >>> clock = FakeClock()
    >>> dispatcher = RecordingDispatcher()
    >>> payload = create_bundle_json(("Encounter", "Observation"))
"""

from .broker_data import (
    BROKER_CONFIG,
    CITIZEN_HEADERS,
    INVALID_PAYLOADS,
    OTHER_CITIZEN_HEADERS,
    TEST_START,
    FakeClock,
    RecordingDispatcher,
    create_bundle,
    create_bundle_json,
)

__all__ = [
    "BROKER_CONFIG",
    "CITIZEN_HEADERS",
    "OTHER_CITIZEN_HEADERS",
    "INVALID_PAYLOADS",
    "TEST_START",
    "FakeClock",
    "RecordingDispatcher",
    "create_bundle",
    "create_bundle_json",
]
