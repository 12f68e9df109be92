"""CoSERV query resolution.

The Resolver is the single operation the transport layer calls:

    resolve(tenant_id, encoded_query) -> encoded result bytes

Steps: decode the query, synthesize lookup keys, fetch every key from the
store, concatenate the artifacts in key order, and encode the result with
the query's own profile and artifact type.

Fetches for one request run concurrently, bounded by a semaphore, and are
reassembled by key index rather than completion order. A key with no stored
artifacts contributes nothing; the request only fails with
NO_ARTIFACTS_FOUND when every key comes back empty. Any other store failure
cancels the remaining fetches and fails the request, as does the per-request
timeout. There is no partial result.

Usage:
    resolver = Resolver(store, fetch_timeout=5.0)
    body = await resolver.resolve("0", path_segment)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from endorsement_distribution.coserv import query as query_codec
from endorsement_distribution.coserv import result as result_codec
from endorsement_distribution.coserv.errors import (
    CoservError,
    ResolveError,
    ResolveErrorKind,
    StoreError,
    StoreErrorKind,
)
from endorsement_distribution.coserv.keys import DEFAULT_SCHEME, KeySynthesizer

if TYPE_CHECKING:
    from endorsement_distribution.core.config import ResolverSettings
    from endorsement_distribution.services.store import EndorsementStore

logger = logging.getLogger(__name__)


class Resolver:
    """Stateless CoSERV query resolver.

    Attributes:
        store: Backing endorsement store.
        synthesizer: Lookup key synthesizer.
        fetch_timeout: Seconds allowed for all fetches of one request.
        max_concurrent_fetches: Fetches in flight at once for one request.
    """

    def __init__(
        self,
        store: EndorsementStore,
        synthesizer: KeySynthesizer | None = None,
        fetch_timeout: float = 10.0,
        max_concurrent_fetches: int = 4,
    ) -> None:
        self.store = store
        self.synthesizer = synthesizer or KeySynthesizer(DEFAULT_SCHEME)
        self.fetch_timeout = fetch_timeout
        self.max_concurrent_fetches = max_concurrent_fetches

    @classmethod
    def from_settings(cls, store: EndorsementStore, settings: ResolverSettings) -> Resolver:
        """Build a resolver configured from resolver settings."""
        return cls(
            store,
            synthesizer=KeySynthesizer(settings.key_scheme),
            fetch_timeout=settings.fetch_timeout,
            max_concurrent_fetches=settings.max_concurrent_fetches,
        )

    async def resolve(self, tenant_id: str, encoded_query: str) -> bytes:
        """Resolve an encoded CoSERV query into an encoded CoSERV result.

        Args:
            tenant_id: Tenant namespace for lookup keys.
            encoded_query: base64url CoSERV query from the request path.

        Returns:
            CBOR-encoded CoSERV result.

        Raises:
            ResolveError: Wrapping the decode, synthesis, store or encode
                failure (kind preserved), or NO_ARTIFACTS_FOUND / TIMEOUT.
        """
        try:
            query = query_codec.decode(encoded_query)
            keys = self.synthesizer.synthesize(tenant_id, query)
        except CoservError as e:
            logger.info("Rejected CoSERV query: kind=%s, reason=%s", e.kind.value, e.message)
            raise ResolveError.wrap(e) from e

        logger.info(
            "Resolving CoSERV query: tenant=%s, profile=%s, artifact_type=%s, keys=%d",
            tenant_id,
            query.profile,
            query.artifact_type.name,
            len(keys),
        )

        artifacts: list[bytes] = []
        if keys:
            artifacts = await self._fetch_all(keys)
            if not artifacts:
                raise ResolveError(
                    ResolveErrorKind.NO_ARTIFACTS_FOUND,
                    f"no artifacts found for {len(keys)} key(s)",
                    detail={"keys": keys},
                )

        try:
            body = result_codec.encode(query.profile, query.artifact_type, artifacts)
        except CoservError as e:
            logger.error("Failed to encode CoSERV result: %s", e.message)
            raise ResolveError.wrap(e) from e

        logger.info(
            "Resolved CoSERV query: profile=%s, artifacts=%d, bytes=%d",
            query.profile,
            len(artifacts),
            len(body),
        )
        return body

    async def _fetch_all(self, keys: list[str]) -> list[bytes]:
        """Fetch every key concurrently and concatenate results in key order."""
        semaphore = asyncio.Semaphore(self.max_concurrent_fetches)

        async def fetch_one(key: str) -> list[bytes]:
            async with semaphore:
                try:
                    return await self.store.fetch(key)
                except StoreError as e:
                    if e.kind != StoreErrorKind.NOT_FOUND:
                        raise
                    logger.debug("No artifacts stored under key=%s", key)
                    return []

        tasks = [asyncio.create_task(fetch_one(key)) for key in keys]
        try:
            async with asyncio.timeout(self.fetch_timeout):
                per_key = await asyncio.gather(*tasks)
        except TimeoutError as e:
            logger.warning("Store fetches timed out after %.1fs (keys=%d)", self.fetch_timeout, len(keys))
            raise ResolveError(
                ResolveErrorKind.TIMEOUT,
                f"store fetches did not complete within {self.fetch_timeout}s",
            ) from e
        except StoreError as e:
            logger.error("Store fetch failed: kind=%s, key=%s", e.kind.value, e.key)
            raise ResolveError.wrap(e) from e
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            # Collect every outcome so sibling failures are retrieved, not leaked
            await asyncio.gather(*tasks, return_exceptions=True)

        artifacts: list[bytes] = []
        for chunk in per_key:
            artifacts.extend(chunk)
        return artifacts
