"""API request/response schemas."""

from endorsement_distribution.api.schemas.service_info import (
    ProblemDetails,
    ServiceEndpoints,
    ServiceInfo,
    ServiceStatus,
)

__all__ = [
    "ProblemDetails",
    "ServiceEndpoints",
    "ServiceInfo",
    "ServiceStatus",
]
