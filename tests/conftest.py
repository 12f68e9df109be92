"""Pytest configuration and shared fixtures.

Unit and API tests run against the in-memory endorsement store and need no
external services.

Environment variables for integration tests:
    TEST_DATABASE_URL: PostgreSQL connection URL (tests/integration/)
"""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from endorsement_distribution.api import create_app
from endorsement_distribution.coserv.keys import reference_value_key, trust_anchor_key
from endorsement_distribution.coserv.query import encode_query
from endorsement_distribution.services.store import InMemoryEndorsementStore
from tests.factories import COSERV_PREFIX, IMPL_ID, UEID, rv_query, ta_query


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def memory_store() -> InMemoryEndorsementStore:
    """Empty in-memory endorsement store."""
    return InMemoryEndorsementStore()


@pytest.fixture
async def seeded_store(memory_store: InMemoryEndorsementStore) -> InMemoryEndorsementStore:
    """In-memory store holding the sample reference values and trust anchor."""
    await memory_store.replace(reference_value_key("0", IMPL_ID), [b"rv-1", b"rv-2"])
    await memory_store.replace(trust_anchor_key("0", UEID), [b"ta-1"])
    return memory_store


# ---------------------------------------------------------------------------
# FastAPI application fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def test_app(seeded_store: InMemoryEndorsementStore):
    """Create a test application instance over the seeded store."""
    return create_app(store=seeded_store)


@pytest.fixture
async def api_client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for API testing.

    Uses httpx.AsyncClient with ASGI transport for in-process testing
    without network overhead.
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def rv_path() -> str:
    """Request path for the sample reference value query."""
    return COSERV_PREFIX + encode_query(rv_query(IMPL_ID))


@pytest.fixture
def ta_path() -> str:
    """Request path for the sample trust anchor query."""
    return COSERV_PREFIX + encode_query(ta_query(UEID))
