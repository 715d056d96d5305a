"""FastAPI dependency injection functions for service layer access.

This module provides dependency injection functions that give endpoints
access to the request coordinator and API settings stored in the
application state during startup, instead of module-level globals.

Examples
--------
>>> @router.get("/requests")
>>> def list_requests(
...     coordinator: RequestCoordinatorInterface = Depends(get_coordinator)
... ):
...     ...
"""

from fastapi import Request

from ..domain.requests.interfaces import RequestCoordinatorInterface
from ..infrastructure.config.models import ApiConfig


def get_coordinator(request: Request) -> RequestCoordinatorInterface:
    """Dependency to get the request coordinator from app state.

    Parameters
    ----------
    request : Request
        FastAPI request object containing app reference

    Returns
    -------
    RequestCoordinatorInterface
        The coordinator created during application startup

    Raises
    ------
    AttributeError
        If the application has not been started
    """
    return request.app.state.coordinator


def get_api_config(request: Request) -> ApiConfig:
    """Dependency to get the REST API settings from app state."""
    return request.app.state.api_config
