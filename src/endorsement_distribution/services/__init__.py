"""Service layer.

- store: endorsement store gateway (SQL and in-memory implementations)
- resolver: CoSERV query resolution orchestration
"""

from endorsement_distribution.services.resolver import Resolver
from endorsement_distribution.services.store import (
    EndorsementStore,
    InMemoryEndorsementStore,
    SqlEndorsementStore,
)

__all__ = [
    "EndorsementStore",
    "InMemoryEndorsementStore",
    "Resolver",
    "SqlEndorsementStore",
]
