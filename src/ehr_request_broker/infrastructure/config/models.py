"""Configuration data models.

This module defines the data structures for application configuration,
using dataclasses for type safety and clarity. The coordinator's own
settings live with the domain in ``CoordinationConfig``.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class EhrMiddlewareConfig:
    """Connection settings for the EHR middleware.

    Attributes
    ----------
    base_url : str
        Root URL of the EHR middleware; requests are posted to
        ``{base_url}/requests``
    timeout_seconds : float
        Timeout applied to every dispatch call. Default: 10 seconds.
    callback_base_url : str
        Public root URL of this broker, used to build the callback URL the
        middleware calls when a request completes
    """

    base_url: str
    callback_base_url: str
    timeout_seconds: float = 10.0


@dataclass
class ProvenanceConfig:
    """Provenance annotation settings.

    Attributes
    ----------
    enabled : bool
        Whether final results are annotated before being stored
    organization_name : str
        Display name of the organization recorded as author
    organization_id : Optional[str]
        Identifier of the organization, if any
    """

    enabled: bool = True
    organization_name: str = "EHR Request Broker"
    organization_id: Optional[str] = None


@dataclass
class ApiConfig:
    """REST API settings.

    Attributes
    ----------
    services_context_path : str
        Public prefix prepended to result URLs returned by the status
        endpoint, e.g. ``https://broker.example.org``. Empty for
        relative URLs.
    """

    services_context_path: str = ""


@dataclass
class LoggingConfig:
    """Logging settings.

    Attributes
    ----------
    level : str
        Root logging level name, e.g. "INFO" or "DEBUG"
    """

    level: str = "INFO"
