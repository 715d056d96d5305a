"""Configuration loading utilities.

This module provides functionality to load and parse YAML configuration files,
with support for defaults and validation.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

import yaml

from ...domain.requests.models import CoordinationConfig
from .models import (
    ApiConfig,
    EhrMiddlewareConfig,
    LoggingConfig,
    ProvenanceConfig,
)

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ConfigLoader:
    """Loads and manages application configuration from YAML files.

    This class provides a centralized way to load configuration from YAML files,
    with caching to avoid repeated file I/O.

    Parameters
    ----------
    config_path : Optional[Path]
        Path to the configuration file. If None, defaults to "config/default.yaml"

    Attributes
    ----------
    config_path : Path
        The path to the configuration file
    _config_data : Optional[Dict]
        Cached configuration data
    """

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize the config loader with a path."""
        self.config_path = Path(config_path or "config/default.yaml")
        self._config_data: Optional[Dict] = None

    def load(self) -> Dict:
        """Load raw configuration data from YAML file.

        Loads the YAML file and caches the result. Subsequent calls
        return the cached data.

        Returns
        -------
        Dict
            The parsed YAML configuration as a dictionary

        Raises
        ------
        FileNotFoundError
            If the configuration file doesn't exist
        yaml.YAMLError
            If the YAML file is malformed
        """
        if self._config_data is None:
            if not self.config_path.exists():
                raise FileNotFoundError(
                    f"Configuration file not found: {self.config_path}"
                )

            with open(self.config_path) as f:
                try:
                    self._config_data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise yaml.YAMLError(
                        f"Failed to parse config file {self.config_path}: {e}"
                    )

        return self._config_data

    def get_coordinator_config(self) -> CoordinationConfig:
        """Get request lifecycle coordinator configuration.

        Extracts the coordinator section from the configuration and
        validates it. The admission limit and the cache duration must be
        set explicitly; the remaining settings fall back to defaults.

        Returns
        -------
        CoordinationConfig
            The coordinator configuration

        Raises
        ------
        ValueError
            If the coordinator section is missing, incomplete, or holds a
            negative or non-integer value

        Notes
        -----
        Both required settings use 0 as "disabled":

        - max_concurrent_running_request_per_day: 0 admits every request
        - cache_duration_in_days: 0 dispatches every started request

        Examples
        --------
        >>> loader = ConfigLoader()
        >>> coord_config = loader.get_coordinator_config()
        >>> print(coord_config.cache_duration_in_days)
        1
        """
        data = self.load()

        # Require coordinator section
        if "coordinator" not in data:
            raise ValueError(
                "Missing required 'coordinator' section in configuration. "
                "Admission and cache parameters must be explicitly configured."
            )

        coord_data = data["coordinator"] or {}

        required_fields = [
            "max_concurrent_running_request_per_day",
            "cache_duration_in_days",
        ]
        missing_fields = [
            field for field in required_fields if field not in coord_data
        ]
        if missing_fields:
            raise ValueError(
                f"Missing required coordinator fields: {missing_fields}. "
                "All configuration parameters must be explicitly set."
            )

        defaults = CoordinationConfig()
        values = {
            "max_concurrent_running_request_per_day": coord_data[
                "max_concurrent_running_request_per_day"
            ],
            "cache_duration_in_days": coord_data["cache_duration_in_days"],
            "admission_window_hours": coord_data.get(
                "admission_window_hours", defaults.admission_window_hours
            ),
            "stale_running_after_hours": coord_data.get(
                "stale_running_after_hours",
                defaults.stale_running_after_hours,
            ),
            "sweep_interval_seconds": coord_data.get(
                "sweep_interval_seconds", defaults.sweep_interval_seconds
            ),
        }

        # Validate field values
        for name, value in values.items():
            if (
                not isinstance(value, int)
                or isinstance(value, bool)
                or value < 0
            ):
                raise ValueError(
                    f"Invalid {name}: {value}. "
                    "Must be a non-negative integer."
                )

        if values["admission_window_hours"] == 0:
            raise ValueError(
                "Invalid admission_window_hours: 0. Must be positive."
            )

        return CoordinationConfig(**values)

    def get_ehr_middleware_config(self) -> EhrMiddlewareConfig:
        """Get EHR middleware connection configuration.

        Returns
        -------
        EhrMiddlewareConfig
            Base URL, timeout and callback base URL

        Raises
        ------
        ValueError
            If the ehr_middleware section or a URL is missing, or the
            timeout is not a positive number
        """
        data = self.load()

        if "ehr_middleware" not in data:
            raise ValueError(
                "Missing required 'ehr_middleware' section in configuration."
            )

        ehr_data = data["ehr_middleware"] or {}
        missing = [
            f for f in ("base_url", "callback_base_url") if not ehr_data.get(f)
        ]
        if missing:
            raise ValueError(
                f"Missing required ehr_middleware fields: {missing}"
            )

        timeout = ehr_data.get("timeout_seconds", 10.0)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError(
                f"Invalid timeout_seconds: {timeout}. "
                "Must be a positive number."
            )

        return EhrMiddlewareConfig(
            base_url=str(ehr_data["base_url"]),
            callback_base_url=str(ehr_data["callback_base_url"]),
            timeout_seconds=float(timeout),
        )

    def get_provenance_config(self) -> ProvenanceConfig:
        """Get provenance annotation configuration.

        The section is optional; a missing section enables annotation
        with the default organization name.
        """
        data = self.load()
        prov_data = data.get("provenance") or {}
        defaults = ProvenanceConfig()

        organization_id = prov_data.get("organization_id")
        return ProvenanceConfig(
            enabled=bool(prov_data.get("enabled", defaults.enabled)),
            organization_name=str(
                prov_data.get("organization_name", defaults.organization_name)
            ),
            organization_id=(
                str(organization_id) if organization_id is not None else None
            ),
        )

    def get_api_config(self) -> ApiConfig:
        """Get REST API configuration."""
        data = self.load()
        api_data = data.get("api") or {}
        return ApiConfig(
            services_context_path=str(
                api_data.get("services_context_path", "")
            ).rstrip("/")
        )

    def get_logging_config(self) -> LoggingConfig:
        """Get logging configuration.

        Raises
        ------
        ValueError
            If the level is not a standard logging level name
        """
        data = self.load()
        logging_data = data.get("logging") or {}
        level = str(logging_data.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid logging level '{level}'. "
                f"Valid levels are: {', '.join(sorted(VALID_LOG_LEVELS))}"
            )
        return LoggingConfig(level=level)

    def configure_logging(self) -> None:
        """Apply the logging section to the root logger."""
        logging.basicConfig(
            level=self.get_logging_config().level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
