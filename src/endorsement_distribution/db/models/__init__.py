"""Database table definitions.

- base: Common metadata with naming conventions
- endorsements: Key/value table holding stored artifacts
"""

from endorsement_distribution.db.models.base import metadata
from endorsement_distribution.db.models.endorsements import endorsements

__all__ = [
    "endorsements",
    "metadata",
]
