"""Notification endpoints called by the EHR middleware.

The middleware reports the outcome of a dispatched request by posting the
result bundle (final or partial) or a failure message. An invalid bundle
is still acknowledged with 204: the request is marked FAILED and the
citizen observes the failure through the status endpoint.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from ...domain.requests.interfaces import RequestCoordinatorInterface
from ...infrastructure.api.models import FailureNotification
from ..dependencies import get_coordinator

router = APIRouter(prefix="/callbacks", tags=["callbacks"])


async def _read_payload(request: Request) -> bytes:
    # Raw bytes; the codec rejects bodies that are not valid UTF-8
    return await request.body()


@router.post("/{request_id}/success", status_code=204)
async def notify_success(
    request_id: str,
    request: Request,
    coordinator: RequestCoordinatorInterface = Depends(get_coordinator),
):
    """Deliver the final result bundle of a request.

    Raises
    ------
    RequestNotFoundError
        404 for an unknown request id
    InvalidStateError
        409 if the request is not RUNNING or PARTIALLY_COMPLETED
    """
    payload = await _read_payload(request)
    await run_in_threadpool(
        coordinator.complete_successfully, request_id, payload
    )
    return Response(status_code=204)


@router.post("/{request_id}/partial", status_code=204)
async def notify_partial(
    request_id: str,
    request: Request,
    coordinator: RequestCoordinatorInterface = Depends(get_coordinator),
):
    """Deliver a partial result bundle of a request."""
    payload = await _read_payload(request)
    await run_in_threadpool(
        coordinator.complete_partially, request_id, payload
    )
    return Response(status_code=204)


@router.post("/{request_id}/failure", status_code=204)
def notify_failure(
    request_id: str,
    notification: FailureNotification,
    coordinator: RequestCoordinatorInterface = Depends(get_coordinator),
):
    """Report that the EHR middleware could not serve a request."""
    coordinator.complete_unsuccessfully(request_id, notification.message)
    return Response(status_code=204)
