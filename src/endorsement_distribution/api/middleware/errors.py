"""Error handling middleware producing RFC 7807 problem documents.

All errors leave the service as ``application/problem+json``:

    {"type": "about:blank", "title": "Not Found", "status": 404,
     "detail": "...", "kind": "no_artifacts_found", "request_id": "..."}

CoSERV errors are mapped to a status code by their error class (client,
not found, server). Routes raise ProblemError for transport-level failures
such as content negotiation.
"""

import logging
from collections.abc import Awaitable, Callable
from http import HTTPStatus
from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from endorsement_distribution.api.middleware.request_id import get_request_id
from endorsement_distribution.coserv.errors import CoservError, ErrorClass

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"

STATUS_BY_ERROR_CLASS = {
    ErrorClass.CLIENT: HTTPStatus.BAD_REQUEST,
    ErrorClass.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorClass.SERVER: HTTPStatus.INTERNAL_SERVER_ERROR,
}


class ProblemError(Exception):
    """Transport-level error rendered as a problem document.

    Attributes:
        status_code: HTTP status code to return.
        detail: Human-readable explanation.
        kind: Optional machine-readable error kind.
    """

    def __init__(self, status_code: int, detail: str, kind: str | None = None) -> None:
        self.status_code = status_code
        self.detail = detail
        self.kind = kind
        super().__init__(detail)


def build_problem_response(
    status_code: int,
    detail: str | None = None,
    kind: str | None = None,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build a problem+json response.

    Args:
        status_code: HTTP status code.
        detail: Human-readable description.
        kind: Machine-readable error kind.
        extra: Additional members to include.

    Returns:
        JSONResponse with the problem document.
    """
    body: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status_code).phrase,
        "status": status_code,
    }
    if detail:
        body["detail"] = detail
    if kind:
        body["kind"] = kind
    if extra:
        body.update(extra)

    request_id = get_request_id()
    if request_id:
        body["request_id"] = request_id

    return JSONResponse(status_code=status_code, content=body, media_type=PROBLEM_MEDIA_TYPE)


def problem_for_coserv_error(exc: CoservError) -> JSONResponse:
    status_code = STATUS_BY_ERROR_CLASS[exc.error_class]
    extra = {"index": exc.detail["index"]} if "index" in exc.detail else None
    return build_problem_response(status_code, exc.message, exc.kind.value, extra)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware that turns exceptions into problem documents.

    Handles:
    - ProblemError: transport-level errors raised by routes
    - CoservError and subclasses: resolution failures, by error class
    - HTTPException: FastAPI's built-in HTTP errors
    - Generic exceptions: unexpected errors (logged, returns 500)
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except ProblemError as exc:
            logger.warning(
                "API error: status=%d, path=%s, detail=%s",
                exc.status_code,
                request.url.path,
                exc.detail,
            )
            return build_problem_response(exc.status_code, exc.detail, exc.kind)
        except CoservError as exc:
            log = logger.error if exc.error_class == ErrorClass.SERVER else logger.info
            log(
                "CoSERV request failed: kind=%s, path=%s, detail=%s",
                exc.kind.value,
                request.url.path,
                exc.message,
            )
            return problem_for_coserv_error(exc)
        except HTTPException as exc:
            return build_problem_response(exc.status_code, str(exc.detail))
        except Exception:
            logger.exception(
                "Unexpected error processing request: %s %s",
                request.method,
                request.url.path,
            )
            return build_problem_response(
                HTTPStatus.INTERNAL_SERVER_ERROR,
                "An internal error occurred",
                "internal_error",
            )
