"""REST API for the EHR request broker.

The application is built by ``create_app`` so tests can supply their own
configuration, stores and dispatcher. Collaborators are created during
startup and stored in ``app.state`` for access through the dependency
functions in ``api.dependencies``.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..constants.errors import ErrorCodes
from ..domain.requests.exceptions import (
    AdmissionDeniedError,
    RequestBrokerError,
)
from ..domain.requests.interfaces import (
    Dispatcher,
    RequestStore,
    ResponseStore,
)
from ..infrastructure.api.models import ApiError, ApiResponse
from ..infrastructure.config.loader import ConfigLoader
from ..infrastructure.dispatch.http_dispatcher import HttpEhrDispatcher
from ..infrastructure.factories.coordinator_factory import CoordinatorFactory
from .endpoints import callbacks as callback_endpoints
from .endpoints import requests as request_endpoints

logger = logging.getLogger(__name__)

HTTP_STATUS_BY_ERROR_CODE = {
    ErrorCodes.TOO_MANY_REQUESTS: 429,
    ErrorCodes.INVALID_STATE: 409,
    ErrorCodes.REQUEST_NOT_FOUND: 404,
    ErrorCodes.RESPONSE_NOT_FOUND: 404,
    ErrorCodes.COMMUNICATION_ERROR: 502,
}


async def handle_broker_error(
    request: Request, exc: RequestBrokerError
) -> JSONResponse:
    """Translate coordinator errors into the API error envelope."""
    details = None
    if isinstance(exc, AdmissionDeniedError):
        details = {"running_count": exc.running_count}

    body = ApiResponse(
        success=False,
        request_id=request.path_params.get("request_id"),
        error=ApiError(code=exc.code, message=exc.message, details=details),
    )
    return JSONResponse(
        status_code=HTTP_STATUS_BY_ERROR_CODE.get(exc.code, 500),
        content=body.model_dump(mode="json"),
    )


def create_app(
    config_loader: Optional[ConfigLoader] = None,
    request_store: Optional[RequestStore] = None,
    response_store: Optional[ResponseStore] = None,
    dispatcher: Optional[Dispatcher] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> FastAPI:
    """Build the FastAPI application.

    Parameters
    ----------
    config_loader : Optional[ConfigLoader], default=None
        Loader for the YAML configuration; ``config/default.yaml`` if None
    request_store, response_store : optional
        Stores handed to the coordinator; in-memory stores if None
    dispatcher : Optional[Dispatcher], default=None
        Dispatcher handed to the coordinator; an HTTP dispatcher to the
        configured EHR middleware if None
    clock : Callable[[], datetime], default=datetime.now
        Time source for the coordinator

    Returns
    -------
    FastAPI
        Application whose collaborators are created at startup

    Examples
    --------
    >>> app = create_app(ConfigLoader(Path("config/test.yaml")))
    >>> with TestClient(app) as client:
    ...     client.get("/requests", headers={"X-Citizen-Id": "C1"})
    """
    loader = config_loader or ConfigLoader()

    async def startup(app: FastAPI):
        loader.configure_logging()

        try:
            coordinator = CoordinatorFactory.create_from_config(
                loader,
                request_store=request_store,
                response_store=response_store,
                dispatcher=dispatcher,
                clock=clock,
            )
        except ValueError as e:
            logger.error(f"Failed to load coordinator config: {e}")
            raise

        app.state.coordinator = coordinator
        app.state.api_config = loader.get_api_config()
        logger.info(
            f"EHR request broker started with config: {coordinator.config}"
        )

    async def shutdown(app: FastAPI):
        coordinator = getattr(app.state, "coordinator", None)
        if coordinator is None:
            return
        coordinator.shutdown()
        if isinstance(coordinator.dispatcher, HttpEhrDispatcher):
            coordinator.dispatcher.close()
        logger.info("EHR request broker stopped")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await startup(app)
        yield
        await shutdown(app)

    app = FastAPI(
        title="EHR Request Broker API",
        description="Data-retrieval requests from citizens to the EHR "
        "middleware",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestBrokerError, handle_broker_error)

    @app.get("/")
    async def root(request: Request):
        """Health check endpoint."""
        coordinator = getattr(request.app.state, "coordinator", None)
        return {
            "status": "ok",
            "service": "EHR Request Broker API",
            "version": __version__,
            "coordinator_active": coordinator is not None,
        }

    app.include_router(request_endpoints.router)
    app.include_router(callback_endpoints.router)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
