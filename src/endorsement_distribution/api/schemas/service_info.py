"""Pydantic schemas for the service discovery and problem documents."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ServiceStatus(str, Enum):
    """Service readiness reported by the well-known endpoint."""

    READY = "READY"
    STARTING = "STARTING"


class ServiceEndpoints(BaseModel):
    """Endpoint templates offered by the service."""

    model_config = ConfigDict(populate_by_name=True)

    coserv_request: str = Field(
        ...,
        alias="coservRequest",
        description="Path template for CoSERV queries",
    )


class ServiceInfo(BaseModel):
    """Response schema for the well-known service info endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(..., description="Service version")
    status: ServiceStatus = Field(..., description="Readiness of the service")
    endpoints: ServiceEndpoints
    supported_media_types: list[str] = Field(
        ...,
        alias="supportedMediaTypes",
        description="Media types the CoSERV endpoint can produce",
    )


class ProblemDetails(BaseModel):
    """RFC 7807 problem document returned for every error."""

    type: str = Field("about:blank", description="Problem type URI")
    title: str = Field(..., description="HTTP status phrase")
    status: int = Field(..., description="HTTP status code")
    detail: str | None = Field(None, description="Human-readable explanation")
    kind: str | None = Field(None, description="Machine-readable error kind")
    index: int | None = Field(None, description="Offending selector entry index")
    request_id: str | None = Field(None, description="Correlation ID of the request")
