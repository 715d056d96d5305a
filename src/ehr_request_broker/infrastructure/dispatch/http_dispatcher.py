"""HTTP dispatcher posting admitted requests to the EHR middleware.

The middleware acknowledges a request synchronously and reports its
outcome later by calling back the broker's notification endpoints at the
``callbackUrl`` carried in the request body.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ...domain.requests.exceptions import DispatchError
from ...domain.requests.interfaces import Dispatcher
from ...domain.requests.models import EhrRequest
from ..config.models import EhrMiddlewareConfig

logger = logging.getLogger(__name__)


class HttpEhrDispatcher(Dispatcher):
    """Dispatcher backed by an ``httpx.Client``.

    Parameters
    ----------
    config : EhrMiddlewareConfig
        Middleware base URL, timeout and callback base URL
    client : Optional[httpx.Client], default=None
        Client to use. If None, one is created from ``config``; tests pass
        a client built on ``httpx.MockTransport``

    Notes
    -----
    Any transport error or HTTP error status is raised as DispatchError,
    which the coordinator turns into a FAILED request and a
    CommunicationError for the caller of ``start_request``.
    """

    def __init__(
        self,
        config: EhrMiddlewareConfig,
        client: Optional[httpx.Client] = None,
    ):
        self.config = config
        self._client = client or httpx.Client(
            base_url=config.base_url, timeout=config.timeout_seconds
        )

    def send(self, request: EhrRequest, auth_token: Optional[str]) -> None:
        try:
            response = self._client.post(
                "/requests",
                json=self._build_body(request),
                headers=self._build_headers(request, auth_token),
            )
        except httpx.HTTPError as e:
            raise DispatchError(
                f"Error while contacting the EHR middleware: {e}"
            ) from e

        if response.is_error:
            raise DispatchError(
                f"EHR middleware refused request {request.id}: "
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        logger.debug(
            f"Request {request.id} accepted by EHR middleware "
            f"(HTTP {response.status_code})"
        )

    def close(self):
        """Close the underlying HTTP client."""
        self._client.close()

    def _build_body(self, request: EhrRequest) -> Dict[str, Any]:
        callback_base = self.config.callback_base_url.rstrip("/")
        return {
            "requestId": request.id,
            "citizenId": request.citizen_id,
            "query": request.query_signature,
            "callbackUrl": f"{callback_base}/callbacks/{request.id}",
        }

    def _build_headers(
        self, request: EhrRequest, auth_token: Optional[str]
    ) -> Dict[str, str]:
        headers = {"X-Request-Id": request.id}
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        if request.preferred_languages:
            headers["Accept-Language"] = request.preferred_languages
        return headers
