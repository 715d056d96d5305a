"""Infrastructure configuration module."""

from .loader import ConfigLoader
from .models import (
    ApiConfig,
    EhrMiddlewareConfig,
    LoggingConfig,
    ProvenanceConfig,
)

__all__ = [
    "ConfigLoader",
    "ApiConfig",
    "EhrMiddlewareConfig",
    "LoggingConfig",
    "ProvenanceConfig",
]
