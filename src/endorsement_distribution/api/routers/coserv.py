"""CoSERV endorsement distribution router.

GET /endorsement-distribution/v1/coserv/{query}

The path segment is a base64url CoSERV query. The response body is the
CBOR-encoded CoSERV result. Failures are raised as exceptions and rendered
as problem documents by ErrorHandlerMiddleware.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, Response, status

from endorsement_distribution.api.middleware.errors import ProblemError
from endorsement_distribution.api.negotiation import negotiate
from endorsement_distribution.api.schemas import ProblemDetails
from endorsement_distribution.coserv.result import MEDIA_TYPE
from endorsement_distribution.services.resolver import Resolver

logger = logging.getLogger(__name__)

API_PREFIX = "/endorsement-distribution/v1"
COSERV_PATH = "/coserv/{query}"

router = APIRouter(
    prefix=API_PREFIX,
    tags=["coserv"],
    responses={
        400: {"description": "Malformed query or selector", "model": ProblemDetails},
        404: {"description": "No artifacts found", "model": ProblemDetails},
        406: {"description": "Accept header excludes the CoSERV media type", "model": ProblemDetails},
        500: {"description": "Store or encoding failure", "model": ProblemDetails},
    },
)


def get_resolver(request: Request) -> Resolver:
    """Resolver dependency, built at app creation or during startup."""
    resolver: Resolver | None = getattr(request.app.state, "resolver", None)
    if resolver is None:
        raise ProblemError(status.HTTP_503_SERVICE_UNAVAILABLE, "resolver is not initialized")
    return resolver


def get_tenant_id(request: Request) -> str:
    return getattr(request.app.state, "tenant_id", None) or "0"


@router.get(
    COSERV_PATH,
    response_class=Response,
    responses={200: {"content": {MEDIA_TYPE: {}}, "description": "CoSERV result"}},
)
async def coserv_request(
    query: str,
    resolver: Annotated[Resolver, Depends(get_resolver)],
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    accept: Annotated[str | None, Header()] = None,
) -> Response:
    """Resolve a CoSERV query into a CoSERV result.

    Content negotiation happens before the query is looked at, so a
    request that cannot accept the result never reaches the store.
    """
    content_type = negotiate(accept)
    if content_type is None:
        raise ProblemError(
            status.HTTP_406_NOT_ACCEPTABLE,
            f"the only supported output format is {MEDIA_TYPE}",
            "not_acceptable",
        )

    logger.info("Processing CoSERV request: tenant=%s, media_type=%s", tenant_id, content_type)

    body = await resolver.resolve(tenant_id, query)
    return Response(content=body, media_type=content_type)
