"""Pydantic models for REST API requests and responses."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ...domain.requests.models import EhrRequest


class ApiError(BaseModel):
    """Error details for failed API requests."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None, description="Additional error context"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "code": "TOO_MANY_REQUESTS",
                "message": "Too many concurrent running request: 3. "
                "Please try later.",
                "details": {"running_count": 3},
            }
        }
    }


class ApiResponse(BaseModel):
    """Generic API response for all operations.

    This unified response structure is used for both successful and failed
    operations, providing a consistent interface for clients.
    """

    success: bool = Field(..., description="Whether the request succeeded")
    request_id: Optional[str] = Field(
        default=None, description="Id of the data-retrieval request concerned"
    )
    data: Optional[Dict[str, Any]] = Field(
        default=None, description="Response data for query operations"
    )
    error: Optional[ApiError] = Field(
        default=None, description="Error details if failed"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now, description="Server timestamp"
    )

    model_config = {
        "json_schema_extra": {
            "examples": {
                "success": {
                    "value": {
                        "success": True,
                        "request_id": "5b0c9f0d8f3a4e2b9a6f2d1e7c4b3a21",
                        "data": {
                            "status": "RUNNING",
                            "monitor_url": "/requests/5b0c.../status",
                        },
                        "error": None,
                        "timestamp": "2024-01-15T10:00:01.001Z",
                    }
                },
                "failure": {
                    "value": {
                        "success": False,
                        "request_id": None,
                        "error": {
                            "code": "TOO_MANY_REQUESTS",
                            "message": "Too many concurrent running "
                            "request: 3. Please try later.",
                        },
                        "timestamp": "2024-01-15T10:00:01.001Z",
                    }
                },
            }
        }
    }


class RequestView(BaseModel):
    """Public representation of a data-retrieval request."""

    id: str
    query: str
    citizen_id: str
    preferred_languages: Optional[str] = None
    status: str
    response_ids: List[str] = Field(default_factory=list)
    failure_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_request(cls, request: EhrRequest) -> "RequestView":
        return cls(
            id=request.id,
            query=request.query_signature,
            citizen_id=request.citizen_id,
            preferred_languages=request.preferred_languages,
            status=request.status.value,
            response_ids=list(request.response_ids),
            failure_message=request.failure_message,
            created_at=request.created_at,
            updated_at=request.updated_at,
        )


class RequestOutput(BaseModel):
    """A result produced by a completed request."""

    type: str = Field(..., description="Resource type of the output")
    url: str = Field(..., description="URL from which to download it")


class RequestOutcome(BaseModel):
    """Outcome of a request as reported by the status endpoint."""

    request: str = Field(..., description="Query of the request")
    status: str
    output: List[RequestOutput] = Field(default_factory=list)
    error: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "request": "Encounter?date=2024",
                "status": "COMPLETED",
                "output": [
                    {
                        "type": "Bundle",
                        "url": "/requests/5b0c.../response/9e1f...",
                    }
                ],
                "error": None,
            }
        }
    }


class FailureNotification(BaseModel):
    """Body of the failure callback sent by the EHR middleware."""

    message: str = Field(..., min_length=1, description="Failure reason")
