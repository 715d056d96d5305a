"""Constants module for the EHR Request Broker.

This module contains application constants including error codes and
error messages shared between the domain and the REST API.
"""

from .errors import ErrorCodes, ErrorMessages

__all__ = ["ErrorCodes", "ErrorMessages"]
