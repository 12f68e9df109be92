"""API routers.

- coserv: CoSERV query resolution
- well_known: service discovery
"""

from endorsement_distribution.api.routers.coserv import router as coserv_router
from endorsement_distribution.api.routers.well_known import router as well_known_router

__all__ = [
    "coserv_router",
    "well_known_router",
]
