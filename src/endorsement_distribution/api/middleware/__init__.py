"""API middleware components.

- Request ID tracking for log correlation
- Problem-details error responses
"""

from endorsement_distribution.api.middleware.errors import (
    ErrorHandlerMiddleware,
    ProblemError,
    build_problem_response,
)
from endorsement_distribution.api.middleware.request_id import RequestIDMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "ProblemError",
    "RequestIDMiddleware",
    "build_problem_response",
]
