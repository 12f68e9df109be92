"""Service discovery router.

GET /.well-known/veraison/endorsement-distribution
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from endorsement_distribution import __version__
from endorsement_distribution.api.routers.coserv import API_PREFIX, COSERV_PATH
from endorsement_distribution.api.schemas import ServiceEndpoints, ServiceInfo, ServiceStatus
from endorsement_distribution.coserv.result import MEDIA_TYPE

router = APIRouter(prefix="/.well-known/veraison", tags=["discovery"])


@router.get("/endorsement-distribution", response_model=ServiceInfo)
async def service_info(request: Request) -> ServiceInfo:
    """Describe the service version, readiness and endpoints."""
    ready = getattr(request.app.state, "resolver", None) is not None
    return ServiceInfo(
        version=request.app.version or __version__,
        status=ServiceStatus.READY if ready else ServiceStatus.STARTING,
        endpoints=ServiceEndpoints(coserv_request=API_PREFIX + COSERV_PATH),
        supported_media_types=[MEDIA_TYPE],
    )
