"""Endorsements key/value table.

Covers the store schema shared with provisioning tools: a two-column table
of (key, value) rows with a non-unique index on the key. Each value is a
JSON array of standard base64 artifact encodings. A key may span several
rows; their artifacts are concatenated in row order.
"""

from sqlalchemy import Column, Index, Table, Text

from endorsement_distribution.db.models.base import metadata

endorsements = Table(
    "endorsements",
    metadata,
    Column("kv_key", Text, nullable=False),
    Column("kv_val", Text, nullable=False),
    Index("ix_endorsements_kv_key", "kv_key"),
)
