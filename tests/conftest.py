"""Shared pytest fixtures for the fastpaillier test suite."""

import os
import random

os.environ.setdefault("FASTPAILLIER_SERVICE_KEY_BITS", "256")
os.environ.setdefault("FASTPAILLIER_WORKERS", "2")

import pytest
from httpx import ASGITransport, AsyncClient

from fastpaillier.config import get_settings

get_settings.cache_clear()

from fastpaillier.crypto.paillier import DecryptionKey, generate_keypair
from fastpaillier.main import app
from known_primes import SMALL_P, SMALL_Q


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def rng():
    """Deterministic random source so failures can be replayed."""
    return random.Random(0x5EED)


@pytest.fixture(scope="session")
def keypair():
    """A 256-bit key pair (two 128-bit safe primes), generated once per run."""
    return generate_keypair(256, rng=random.Random(2024))


@pytest.fixture(scope="session")
def small_key():
    """Toy key over n = 2579 * 2819, for exact hand-checkable values."""
    return DecryptionKey.from_primes(SMALL_P, SMALL_Q)


@pytest.fixture()
async def client():
    """Provide an async HTTP test client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
