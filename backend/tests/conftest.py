"""Shared pytest fixtures for the knapsack test suite."""

import random

import pytest
from httpx import ASGITransport, AsyncClient

from mhk.crypto.knapsack import generate_keypair
from mhk.main import app


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def rng():
    """Seeded entropy source so generated keys are reproducible."""
    return random.Random(20240501)


@pytest.fixture()
def small_keypair(rng):
    """A 16-byte key with 16-bit increments: fast, still multi-byte capable."""
    return generate_keypair(max_chars=16, max_bits=16, rng=rng)


@pytest.fixture()
async def client():
    """Provide an async HTTP test client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
