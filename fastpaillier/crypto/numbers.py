"""Number-theory helpers composed on top of Python's big integers."""

import math
from functools import lru_cache
from typing import Optional, Tuple

from fastpaillier.config import get_settings
from fastpaillier.crypto.rng import RandomSource, randbits, randrange


@lru_cache
def small_primes(limit: int) -> Tuple[int, ...]:
    """Odd primes below ``limit`` (sieve of Eratosthenes), used for trial division."""
    flags = bytearray([1]) * limit
    flags[0:2] = b"\x00\x00"
    for i in range(2, math.isqrt(limit - 1) + 1):
        if flags[i]:
            flags[i * i :: i] = bytearray(len(range(i * i, limit, i)))
    return tuple(i for i in range(3, limit) if flags[i])


def sieve_table() -> Tuple[int, ...]:
    """Trial-division table for the configured ``FASTPAILLIER_SIEVE_LIMIT``."""
    return small_primes(get_settings().sieve_limit)


def passes_sieve(n: int, primes: Optional[Tuple[int, ...]] = None) -> bool:
    """False if ``n`` has a small odd factor other than itself."""
    if primes is None:
        primes = sieve_table()
    for p in primes:
        if p * p > n:
            return True
        if n % p == 0:
            return n == p
    return True


def _miller_rabin(n: int, rounds: int, rng: Optional[RandomSource]) -> bool:
    d = n - 1
    s = 0
    while d % 2 == 0:
        d //= 2
        s += 1

    for _ in range(rounds):
        a = randrange(2, n - 1, rng)
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(s - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


def is_probable_prime(n: int, rounds: Optional[int] = None, rng: Optional[RandomSource] = None) -> bool:
    if rounds is None:
        rounds = get_settings().mr_rounds
    if n < 2:
        return False
    if n in (2, 3):
        return True
    if n % 2 == 0:
        return False
    primes = sieve_table()
    if n <= primes[-1]:
        return n in primes
    if not passes_sieve(n, primes):
        return False
    return _miller_rabin(n, rounds, rng)


def random_odd(bits: int, rng: Optional[RandomSource] = None) -> int:
    """Random odd integer of exactly ``bits`` bits (top and bottom bit forced)."""
    if bits < 2:
        raise ValueError("bit length must be at least 2")
    return randbits(bits, rng) | 1 | (1 << (bits - 1))


def in_mult_group(x: int, n: int) -> bool:
    """True if ``x`` is a non-negative integer below ``n`` that is coprime to ``n``."""
    return 0 <= x < n and math.gcd(x, n) == 1


def sample_in_mult_group(n: int, rng: Optional[RandomSource] = None) -> int:
    """Uniform element of ``Z*_n``; non-coprime draws are resampled."""
    while True:
        x = randrange(1, n, rng)
        if math.gcd(x, n) == 1:
            return x
