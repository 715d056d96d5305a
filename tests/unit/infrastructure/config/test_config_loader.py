"""Behavior tests for configuration loading functionality."""

import tempfile
from pathlib import Path

import pytest
import yaml

from ehr_request_broker.domain.requests.models import CoordinationConfig
from ehr_request_broker.infrastructure.config.loader import ConfigLoader
from ehr_request_broker.infrastructure.config.models import (
    EhrMiddlewareConfig,
)

VALID_COORDINATOR = {
    "max_concurrent_running_request_per_day": 3,
    "cache_duration_in_days": 1,
}


def _write_config(config_data) -> Path:
    with tempfile.NamedTemporaryFile(
        mode="w", suffix=".yaml", delete=False
    ) as f:
        yaml.dump(config_data, f)
        return Path(f.name)


class TestConfigLoader:
    """Test configuration file handling."""

    def test_load_default_config(self):
        """Test the shipped configuration file is complete.

        Given - The default configuration file
        When - Every section is loaded
        Then - Each section has its shipped values
        """
        # Given - Config loader with default path
        loader = ConfigLoader()

        # When - Load sections
        coord_config = loader.get_coordinator_config()
        ehr_config = loader.get_ehr_middleware_config()

        # Then - Shipped values
        assert isinstance(coord_config, CoordinationConfig)
        assert coord_config.max_concurrent_running_request_per_day == 3
        assert coord_config.cache_duration_in_days == 1
        assert coord_config.admission_window_hours == 24
        assert coord_config.stale_running_after_hours == 0
        assert isinstance(ehr_config, EhrMiddlewareConfig)
        assert loader.get_provenance_config().enabled is True
        assert loader.get_logging_config().level == "INFO"

    def test_missing_file_raises(self):
        loader = ConfigLoader(Path("/nonexistent/broker.yaml"))

        with pytest.raises(FileNotFoundError):
            loader.load()

    def test_config_is_cached(self):
        """Test the file is read once.

        Given - A loaded configuration
        When - The file is deleted and sections are read again
        Then - Values still come from the first read
        """
        config_path = _write_config({"coordinator": VALID_COORDINATOR})
        loader = ConfigLoader(config_path)
        loader.load()
        config_path.unlink()

        coord_config = loader.get_coordinator_config()

        assert coord_config.cache_duration_in_days == 1


class TestCoordinatorConfig:
    """Test the coordinator section."""

    def test_custom_coordinator_config(self):
        """Test every coordinator value can be set.

        Given - A coordinator section with all fields
        When - Loading coordinator config
        Then - All values are taken from the file
        """
        config_path = _write_config(
            {
                "coordinator": {
                    "max_concurrent_running_request_per_day": 5,
                    "cache_duration_in_days": 7,
                    "admission_window_hours": 12,
                    "stale_running_after_hours": 48,
                    "sweep_interval_seconds": 300,
                }
            }
        )

        try:
            config = ConfigLoader(config_path).get_coordinator_config()

            assert config == CoordinationConfig(
                max_concurrent_running_request_per_day=5,
                cache_duration_in_days=7,
                admission_window_hours=12,
                stale_running_after_hours=48,
                sweep_interval_seconds=300,
            )
        finally:
            config_path.unlink()

    def test_optional_fields_use_defaults(self):
        config_path = _write_config({"coordinator": VALID_COORDINATOR})

        try:
            config = ConfigLoader(config_path).get_coordinator_config()

            assert config.admission_window_hours == 24
            assert config.stale_running_after_hours == 0
            assert config.sweep_interval_seconds == 0
        finally:
            config_path.unlink()

    def test_missing_section_raises(self):
        """Test the coordinator section is mandatory."""
        config_path = _write_config({"logging": {"level": "INFO"}})

        try:
            with pytest.raises(ValueError) as exc_info:
                ConfigLoader(config_path).get_coordinator_config()

            assert "Missing required 'coordinator' section" in str(
                exc_info.value
            )
        finally:
            config_path.unlink()

    def test_missing_required_field_raises(self):
        config_path = _write_config(
            {"coordinator": {"cache_duration_in_days": 1}}
        )

        try:
            with pytest.raises(ValueError) as exc_info:
                ConfigLoader(config_path).get_coordinator_config()

            assert "max_concurrent_running_request_per_day" in str(
                exc_info.value
            )
        finally:
            config_path.unlink()

    @pytest.mark.parametrize(
        "field,value",
        [
            ("max_concurrent_running_request_per_day", -1),
            ("cache_duration_in_days", "one"),
            ("cache_duration_in_days", 1.5),
            ("max_concurrent_running_request_per_day", True),
            ("stale_running_after_hours", -2),
        ],
    )
    def test_invalid_values_raise(self, field, value):
        """Test values must be non-negative integers."""
        config_path = _write_config(
            {"coordinator": {**VALID_COORDINATOR, field: value}}
        )

        try:
            with pytest.raises(ValueError) as exc_info:
                ConfigLoader(config_path).get_coordinator_config()

            assert f"Invalid {field}" in str(exc_info.value)
        finally:
            config_path.unlink()

    def test_zero_admission_window_raises(self):
        config_path = _write_config(
            {
                "coordinator": {
                    **VALID_COORDINATOR,
                    "admission_window_hours": 0,
                }
            }
        )

        try:
            with pytest.raises(ValueError):
                ConfigLoader(config_path).get_coordinator_config()
        finally:
            config_path.unlink()


class TestOtherSections:
    """Test middleware, provenance, API and logging sections."""

    def test_ehr_middleware_config(self):
        config_path = _write_config(
            {
                "ehr_middleware": {
                    "base_url": "https://ehr.example.org",
                    "callback_base_url": "https://broker.example.org",
                    "timeout_seconds": 3,
                }
            }
        )

        try:
            config = ConfigLoader(config_path).get_ehr_middleware_config()

            assert config.base_url == "https://ehr.example.org"
            assert config.callback_base_url == "https://broker.example.org"
            assert config.timeout_seconds == 3.0
        finally:
            config_path.unlink()

    @pytest.mark.parametrize(
        "section",
        [
            None,
            {"base_url": "https://ehr.example.org"},
            {
                "base_url": "https://ehr.example.org",
                "callback_base_url": "https://broker.example.org",
                "timeout_seconds": 0,
            },
        ],
        ids=["missing_section", "missing_callback", "zero_timeout"],
    )
    def test_invalid_ehr_middleware_config_raises(self, section):
        data = {"coordinator": VALID_COORDINATOR}
        if section is not None:
            data["ehr_middleware"] = section
        config_path = _write_config(data)

        try:
            with pytest.raises(ValueError):
                ConfigLoader(config_path).get_ehr_middleware_config()
        finally:
            config_path.unlink()

    def test_optional_sections_default(self):
        """Test provenance, API and logging sections may be omitted.

        Given - A file with only the coordinator section
        When - The optional sections are loaded
        Then - Defaults are returned
        """
        config_path = _write_config({"coordinator": VALID_COORDINATOR})

        try:
            loader = ConfigLoader(config_path)

            provenance = loader.get_provenance_config()
            assert provenance.enabled is True
            assert provenance.organization_name == "EHR Request Broker"
            assert provenance.organization_id is None
            assert loader.get_api_config().services_context_path == ""
            assert loader.get_logging_config().level == "INFO"
        finally:
            config_path.unlink()

    def test_custom_optional_sections(self):
        config_path = _write_config(
            {
                "provenance": {
                    "enabled": False,
                    "organization_name": "General Hospital",
                    "organization_id": 42,
                },
                "api": {"services_context_path": "/broker/"},
                "logging": {"level": "debug"},
            }
        )

        try:
            loader = ConfigLoader(config_path)

            provenance = loader.get_provenance_config()
            assert provenance.enabled is False
            assert provenance.organization_name == "General Hospital"
            assert provenance.organization_id == "42"
            assert loader.get_api_config().services_context_path == "/broker"
            assert loader.get_logging_config().level == "DEBUG"
        finally:
            config_path.unlink()

    def test_invalid_logging_level_raises(self):
        config_path = _write_config({"logging": {"level": "LOUD"}})

        try:
            with pytest.raises(ValueError) as exc_info:
                ConfigLoader(config_path).get_logging_config()

            assert "Invalid logging level" in str(exc_info.value)
        finally:
            config_path.unlink()
