"""Citizen identification for the REST API.

Authentication of citizens happens upstream of the broker (an identity
gateway); the broker only reads the resulting identity from the
``X-Citizen-Id`` header and forwards the caller's bearer token to the EHR
middleware.

Examples
--------
>>> @router.get("/requests")
>>> async def list_requests(
...     citizen_id: str = Depends(get_current_citizen)
... ) -> ApiResponse:
...     ...
"""

from typing import Optional

from fastapi import Header, HTTPException, Security
from fastapi.security import APIKeyHeader

from ...constants.errors import ErrorCodes

citizen_header = APIKeyHeader(name="X-Citizen-Id", auto_error=False)


async def get_current_citizen(
    citizen_id: Optional[str] = Security(citizen_header),
) -> str:
    """FastAPI dependency returning the identifier of the calling citizen.

    Raises
    ------
    HTTPException
        401 Unauthorized if no citizen identity was provided
    """
    if not citizen_id or not citizen_id.strip():
        raise HTTPException(
            status_code=401,
            detail={
                "code": ErrorCodes.MISSING_CITIZEN,
                "message": "Missing citizen identity",
            },
        )
    return citizen_id.strip()


async def get_auth_token(
    authorization: Optional[str] = Header(default=None),
) -> Optional[str]:
    """FastAPI dependency returning the caller's bearer token, if any."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token:
        return token.strip()
    return authorization.strip()
