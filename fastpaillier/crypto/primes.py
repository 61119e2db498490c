"""Safe prime search.

A safe prime is ``p = 2q + 1`` with ``q`` prime. Candidates ``q`` are drawn
with :func:`random_odd`, screened for small factors of both ``q`` and
``2q + 1`` in a single pass over the sieve table, and only the survivors
pay for Miller-Rabin.
"""

import logging
import multiprocessing
import time
from concurrent.futures import FIRST_COMPLETED, ProcessPoolExecutor, wait
from typing import Optional, Tuple

from fastpaillier.config import get_settings
from fastpaillier.crypto.errors import InvalidKeySize, PrimeGenerationExhausted
from fastpaillier.crypto.numbers import is_probable_prime, random_odd, sieve_table
from fastpaillier.crypto.rng import RandomSource

logger = logging.getLogger(__name__)

MIN_SAFE_PRIME_BITS = 16

# Budgets and cancellation are polled once per this many candidates.
_POLL_INTERVAL = 64


def _check_bits(bits: int) -> None:
    if bits < MIN_SAFE_PRIME_BITS:
        raise InvalidKeySize(f"safe prime must have at least {MIN_SAFE_PRIME_BITS} bits, got {bits}")


def passes_safe_prime_sieve(q: int, primes: Optional[Tuple[int, ...]] = None) -> bool:
    """Trial division of both ``q`` and ``2q + 1`` by the sieve table."""
    if primes is None:
        primes = sieve_table()
    p = 2 * q + 1
    for s in primes:
        r = q % s
        # r == (s - 1) / 2  <=>  s divides 2q + 1
        if (r == 0 and q != s) or (r == (s - 1) // 2 and p != s):
            return False
    return True


def is_safe_prime_candidate(
    q: int,
    rounds: Optional[int] = None,
    rng: Optional[RandomSource] = None,
    primes: Optional[Tuple[int, ...]] = None,
) -> bool:
    """True if ``q`` and ``2q + 1`` are both (probable) primes."""
    if q < 2:
        return False
    if not passes_safe_prime_sieve(q, primes):
        return False
    return is_probable_prime(q, rounds, rng) and is_probable_prime(2 * q + 1, rounds, rng)


def is_safe_prime(p: int, rounds: Optional[int] = None, rng: Optional[RandomSource] = None) -> bool:
    if p < 5 or p % 2 == 0:
        return False
    return is_safe_prime_candidate((p - 1) // 2, rounds, rng)


def _search(
    bits: int,
    rounds: Optional[int],
    rng: Optional[RandomSource],
    max_iterations: Optional[int],
    timeout: Optional[float],
    stop_event=None,
) -> Optional[Tuple[int, int]]:
    """Candidate loop. Returns ``None`` only when ``stop_event`` fires."""
    deadline = None if timeout is None else time.monotonic() + timeout
    primes = sieve_table()
    attempts = 0
    while True:
        if max_iterations is not None and attempts >= max_iterations:
            raise PrimeGenerationExhausted(f"no {bits}-bit safe prime within {attempts} candidates")
        if attempts % _POLL_INTERVAL == 0:
            if deadline is not None and time.monotonic() >= deadline:
                raise PrimeGenerationExhausted(f"no {bits}-bit safe prime within {timeout}s ({attempts} candidates)")
            if stop_event is not None and stop_event.is_set():
                return None
        attempts += 1

        q = random_odd(bits - 1, rng)
        if is_safe_prime_candidate(q, rounds, rng, primes):
            logger.debug("found %d-bit safe prime after %d candidates", bits, attempts)
            return 2 * q + 1, q


def generate_safe_prime(
    bits: int,
    *,
    rng: Optional[RandomSource] = None,
    rounds: Optional[int] = None,
    max_iterations: Optional[int] = None,
    timeout: Optional[float] = None,
) -> Tuple[int, int]:
    """
    Return ``(p, q)`` with ``p = 2q + 1``, both prime, ``p`` exactly ``bits`` bits.

    The search has no cap unless ``max_iterations`` (candidates) or
    ``timeout`` (seconds) is given; running out raises
    :class:`PrimeGenerationExhausted`.
    """
    _check_bits(bits)
    return _search(bits, rounds, rng, max_iterations, timeout)


def _search_worker(bits, rounds, max_iterations, timeout, stop_event):
    try:
        return _search(bits, rounds, None, max_iterations, timeout, stop_event)
    except PrimeGenerationExhausted:
        return None


def generate_safe_prime_parallel(
    bits: int,
    workers: Optional[int] = None,
    *,
    rounds: Optional[int] = None,
    max_iterations: Optional[int] = None,
    timeout: Optional[float] = None,
) -> Tuple[int, int]:
    """
    Same contract as :func:`generate_safe_prime`, searched by ``workers`` processes.

    Each worker draws from the system random source; the first pair found
    wins and the others notice the shared stop event at their next poll.
    ``max_iterations`` applies per worker.
    """
    _check_bits(bits)
    if workers is None:
        workers = get_settings().workers
    if workers < 1:
        raise ValueError("workers must be >= 1")
    if workers == 1:
        return generate_safe_prime(bits, rounds=rounds, max_iterations=max_iterations, timeout=timeout)

    logger.debug("starting %d workers for a %d-bit safe prime", workers, bits)
    with multiprocessing.Manager() as manager:
        stop_event = manager.Event()
        with ProcessPoolExecutor(max_workers=workers) as pool:
            pending = {
                pool.submit(_search_worker, bits, rounds, max_iterations, timeout, stop_event)
                for _ in range(workers)
            }
            deadline = None if timeout is None else time.monotonic() + timeout
            try:
                while pending:
                    remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                    done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
                    if not done:
                        raise PrimeGenerationExhausted(f"no {bits}-bit safe prime within {timeout}s")
                    for future in done:
                        pair = future.result()
                        if pair is not None:
                            return pair
            finally:
                stop_event.set()
    raise PrimeGenerationExhausted(f"all {workers} workers exhausted their budget")
