"""Citizen-facing request endpoints.

A citizen submits a data-retrieval request by calling the ``/r2da`` path
with the FHIR query they want, then polls the status endpoint until the
request is completed or failed, and finally downloads the result.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse, Response

from ...constants.errors import ErrorCodes, ErrorMessages
from ...domain.requests.interfaces import RequestCoordinatorInterface
from ...domain.requests.models import RequestStatus
from ...infrastructure.api.auth import get_auth_token, get_current_citizen
from ...infrastructure.api.models import (
    ApiError,
    ApiResponse,
    RequestOutcome,
    RequestOutput,
    RequestView,
)
from ...infrastructure.config.models import ApiConfig
from ..dependencies import get_api_config, get_coordinator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["requests"])


def _status_url(api_config: ApiConfig, request_id: str) -> str:
    return f"{api_config.services_context_path}/requests/{request_id}/status"


def _response_url(
    api_config: ApiConfig, request_id: str, response_id: str
) -> str:
    return (
        f"{api_config.services_context_path}/requests/{request_id}"
        f"/response/{response_id}"
    )


@router.get("/r2da/{query:path}", status_code=202, response_model=ApiResponse)
def submit_request(
    query: str,
    request: Request,
    citizen_id: str = Depends(get_current_citizen),
    auth_token: Optional[str] = Depends(get_auth_token),
    accept_language: Optional[str] = Header(default=None),
    coordinator: RequestCoordinatorInterface = Depends(get_coordinator),
    api_config: ApiConfig = Depends(get_api_config),
):
    """Create and start a data-retrieval request.

    Parameters
    ----------
    query : str
        FHIR query below ``/r2da``, e.g. ``Encounter`` or
        ``Patient/$everything``; the query string is kept

    Returns
    -------
    ApiResponse
        202 Accepted with the request id, its status, and the URL to poll

    Raises
    ------
    AdmissionDeniedError
        429 if the citizen has too many requests in flight
    CommunicationError
        502 if the EHR middleware could not be reached
    """
    resource_locator = f"/r2da/{query}"
    if request.url.query:
        resource_locator = f"{resource_locator}?{request.url.query}"

    try:
        created = coordinator.create_request(
            resource_locator, citizen_id, accept_language
        )
    except ValueError as e:
        return JSONResponse(
            status_code=400,
            content=ApiResponse(
                success=False,
                error=ApiError(code=ErrorCodes.INVALID_QUERY, message=str(e)),
            ).model_dump(mode="json"),
        )

    started = coordinator.start_request(created.id, citizen_id, auth_token)

    return ApiResponse(
        success=True,
        request_id=started.id,
        data={
            "status": started.status.value,
            "monitor_url": _status_url(api_config, started.id),
        },
    )


@router.get("/requests", response_model=List[RequestView])
def list_requests(
    citizen_id: str = Depends(get_current_citizen),
    coordinator: RequestCoordinatorInterface = Depends(get_coordinator),
):
    """List the calling citizen's requests, most recent first."""
    return [
        RequestView.from_request(r)
        for r in coordinator.list_requests(citizen_id)
    ]


@router.get("/requests/{request_id}", response_model=RequestView)
def get_request(
    request_id: str,
    citizen_id: str = Depends(get_current_citizen),
    coordinator: RequestCoordinatorInterface = Depends(get_coordinator),
):
    """Return one of the calling citizen's requests."""
    return RequestView.from_request(
        coordinator.get_request(request_id, citizen_id)
    )


@router.get(
    "/requests/{request_id}/status",
    response_model=RequestOutcome,
    responses={202: {"model": ApiResponse}},
)
def monitor_request_status(
    request_id: str,
    citizen_id: str = Depends(get_current_citizen),
    coordinator: RequestCoordinatorInterface = Depends(get_coordinator),
    api_config: ApiConfig = Depends(get_api_config),
):
    """Report the outcome of a request.

    Returns
    -------
    RequestOutcome
        For COMPLETED requests, one Bundle output per stored response, the
        last one being the final result. For FAILED requests, the failure
        message in ``error``.
    ApiResponse
        202 Accepted while the request is NEW, RUNNING or
        PARTIALLY_COMPLETED
    """
    ehr_request = coordinator.get_request(request_id, citizen_id)
    outcome = RequestOutcome(
        request=ehr_request.query_signature, status=ehr_request.status.value
    )

    if ehr_request.status == RequestStatus.FAILED:
        outcome.error = ehr_request.failure_message
        return outcome

    if ehr_request.status == RequestStatus.COMPLETED:
        outcome.output = [
            RequestOutput(
                type="Bundle",
                url=_response_url(api_config, request_id, response_id),
            )
            for response_id in ehr_request.response_ids
        ]
        return outcome

    return JSONResponse(
        status_code=202,
        content=ApiResponse(
            success=True,
            request_id=request_id,
            data={
                "status": ehr_request.status.value,
                "message": ErrorMessages.REQUEST_STILL_RUNNING,
            },
        ).model_dump(mode="json"),
    )


@router.get("/requests/{request_id}/response/{response_id}")
def get_request_result(
    request_id: str,
    response_id: str,
    citizen_id: str = Depends(get_current_citizen),
    coordinator: RequestCoordinatorInterface = Depends(get_coordinator),
):
    """Download a stored result of a completed request as bundle JSON."""
    response = coordinator.get_result(request_id, citizen_id, response_id)
    return Response(
        content=response.payload, media_type="application/fhir+json"
    )
