"""Randomness source plumbing.

Every sampling function takes an optional ``rng``: anything exposing
``randrange`` and ``getrandbits`` (``secrets.SystemRandom`` in production,
a seeded ``random.Random`` in tests). ``None`` means the process-wide
system source.
"""

import secrets
from typing import Optional, Protocol

from fastpaillier.crypto.errors import InsufficientRandomness


class RandomSource(Protocol):
    def randrange(self, start: int, stop: int) -> int: ...

    def getrandbits(self, k: int) -> int: ...


system_random = secrets.SystemRandom()


def resolve(rng: Optional[RandomSource]) -> RandomSource:
    return system_random if rng is None else rng


def randbits(bits: int, rng: Optional[RandomSource] = None) -> int:
    """Uniform integer in ``[0, 2**bits)``."""
    try:
        return resolve(rng).getrandbits(bits)
    except (OSError, NotImplementedError) as exc:
        raise InsufficientRandomness("random source unavailable") from exc


def randrange(start: int, stop: int, rng: Optional[RandomSource] = None) -> int:
    """Uniform integer in ``[start, stop)``."""
    try:
        return resolve(rng).randrange(start, stop)
    except (OSError, NotImplementedError) as exc:
        raise InsufficientRandomness("random source unavailable") from exc
