"""Endorsement store gateway.

The resolver depends only on the EndorsementStore contract:

- fetch(key): all artifacts for a key, in storage order; raises
  StoreError(NOT_FOUND) when the key has no artifacts.
- replace(key, artifacts): atomically swap every artifact under a key
  (delete-then-insert in one transaction). Used by provisioning.

Two implementations are provided:

- SqlEndorsementStore: PostgreSQL via SQLAlchemy async sessions. Every
  operation checks a connection out of the pool and returns it when done.
- InMemoryEndorsementStore: dict-backed, for development and tests.

Stored values are JSON arrays of standard base64 strings, one per artifact.
A key whose rows hold no artifacts at all is reported as NOT_FOUND, and
replacing a key with an empty list removes it.

Example:
    store = SqlEndorsementStore(init_engine(settings.database))
    await store.replace(key, [b"endorsement-1", b"endorsement-2"])
    artifacts = await store.fetch(key)
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from endorsement_distribution.coserv.errors import StoreError, StoreErrorKind
from endorsement_distribution.db.models import endorsements

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


def serialize_artifacts(artifacts: Sequence[bytes]) -> str:
    """Encode artifacts as the JSON text stored in kv_val."""
    return json.dumps([base64.b64encode(a).decode("ascii") for a in artifacts])


def deserialize_artifacts(value: str, key: str | None = None) -> list[bytes]:
    """Decode a kv_val JSON array back into artifacts.

    Raises:
        StoreError: MALFORMED_VALUE if the text is not a JSON array of
            base64 strings.
    """
    try:
        encoded = json.loads(value)
        if not isinstance(encoded, list) or not all(isinstance(e, str) for e in encoded):
            msg = "expected a JSON array of strings"
            raise ValueError(msg)
        return [base64.b64decode(e, validate=True) for e in encoded]
    except (ValueError, binascii.Error) as e:
        raise StoreError(
            StoreErrorKind.MALFORMED_VALUE,
            f"stored value is malformed: {e}",
            key=key,
        ) from e


def _not_found(key: str) -> StoreError:
    return StoreError(StoreErrorKind.NOT_FOUND, f"no artifacts found for key: {key}", key=key)


class EndorsementStore(ABC):
    """Key/value contract the resolver uses to reach stored artifacts."""

    @abstractmethod
    async def fetch(self, key: str) -> list[bytes]:
        """Return every artifact stored under key, in storage order.

        Raises:
            StoreError: NOT_FOUND if the key has no artifacts, or a
                connection/value failure.
        """

    @abstractmethod
    async def replace(self, key: str, artifacts: Sequence[bytes]) -> None:
        """Atomically replace every artifact stored under key.

        Raises:
            StoreError: CONNECTION_FAILURE or TRANSACTION_FAILURE.
        """


class SqlEndorsementStore(EndorsementStore):
    """PostgreSQL-backed endorsement store.

    Attributes:
        session_factory: Factory producing pooled async sessions.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def fetch(self, key: str) -> list[bytes]:
        stmt = select(endorsements.c.kv_val).where(endorsements.c.kv_key == key)

        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                values = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Store fetch failed: key=%s, error=%s", key, e)
            raise StoreError(
                StoreErrorKind.CONNECTION_FAILURE,
                f"failed to query store: {e}",
                key=key,
            ) from e

        artifacts: list[bytes] = []
        for value in values:
            artifacts.extend(deserialize_artifacts(value, key))

        if not artifacts:
            raise _not_found(key)

        logger.debug("Fetched %d artifact(s) from %d row(s): key=%s", len(artifacts), len(values), key)
        return artifacts

    async def replace(self, key: str, artifacts: Sequence[bytes]) -> None:
        value = serialize_artifacts(artifacts) if artifacts else None

        try:
            async with self.session_factory() as session, session.begin():
                await session.execute(delete(endorsements).where(endorsements.c.kv_key == key))
                if value is not None:
                    await session.execute(insert(endorsements).values(kv_key=key, kv_val=value))
        except (PoolTimeoutError, OperationalError, InterfaceError) as e:
            logger.error("Store replace failed: key=%s, error=%s", key, e)
            raise StoreError(
                StoreErrorKind.CONNECTION_FAILURE,
                f"store connection failed: {e}",
                key=key,
            ) from e
        except SQLAlchemyError as e:
            logger.error("Store replace failed: key=%s, error=%s", key, e)
            raise StoreError(
                StoreErrorKind.TRANSACTION_FAILURE,
                f"failed to replace artifacts: {e}",
                key=key,
            ) from e

        logger.info("Replaced artifacts: key=%s, count=%d", key, len(artifacts))


class InMemoryEndorsementStore(EndorsementStore):
    """Dict-backed endorsement store for development and tests.

    Values are kept in their serialized form so that the same decoding
    rules apply as for the SQL store.
    """

    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self.fetch_count = 0

    async def fetch(self, key: str) -> list[bytes]:
        self.fetch_count += 1
        value = self._values.get(key)
        if value is None:
            raise _not_found(key)
        artifacts = deserialize_artifacts(value, key)
        if not artifacts:
            raise _not_found(key)
        return artifacts

    async def replace(self, key: str, artifacts: Sequence[bytes]) -> None:
        if artifacts:
            self._values[key] = serialize_artifacts(artifacts)
        else:
            self._values.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._values)
