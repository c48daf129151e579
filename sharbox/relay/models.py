"""Request and response models for the relay API."""
from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, Field


class AppendResponse(BaseModel):
    status: Literal["queued", "duplicate"] = "queued"
    message_id: Annotated[str, Field()]


class BufferResponse(BaseModel):
    count: Annotated[int, Field(ge=0)]
    envelopes: Annotated[list[dict[str, Any]], Field()]


class AckRequest(BaseModel):
    message_ids: Annotated[list[Annotated[str, Field(min_length=1)]], Field()]


class AckResponse(BaseModel):
    deleted: Annotated[int, Field(ge=0)]


class HealthResponse(BaseModel):
    status: Annotated[Literal["healthy", "degraded"], Field()]
    protocol_version: Annotated[str, Field()]
    timestamp: Annotated[str, Field()]
    message: Optional[str] = None


class ErrorDetail(BaseModel):
    code: Annotated[
        Literal[
            "INVALID_FORMAT",
            "BATCH_TOO_LARGE",
            "STORE_UNAVAILABLE",
            "RATE_LIMITED",
            "INTERNAL_ERROR",
        ],
        Field(),
    ]
    message: Annotated[str, Field()]
    details: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail
