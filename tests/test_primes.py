import multiprocessing
import random
import threading
import time
from concurrent.futures import ProcessPoolExecutor

import pytest

from fastpaillier.crypto.errors import InvalidKeySize, PrimeGenerationExhausted
from fastpaillier.crypto.primes import (
    MIN_SAFE_PRIME_BITS,
    _search,
    _search_worker,
    generate_safe_prime,
    generate_safe_prime_parallel,
    is_safe_prime,
    is_safe_prime_candidate,
    passes_safe_prime_sieve,
)
from known_primes import SMALL_P, SMALL_Q

# Deterministic Miller-Rabin: these bases are exact for n < 3.3 * 10^24.
_DETERMINISTIC_BASES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41)


def _reference_is_prime(n: int) -> bool:
    assert n < 3 * 10**24
    if n < 2:
        return False
    for p in _DETERMINISTIC_BASES:
        if n % p == 0:
            return n == p
    d, s = n - 1, 0
    while d % 2 == 0:
        d //= 2
        s += 1
    for a in _DETERMINISTIC_BASES:
        x = pow(a, d, n)
        if x in (1, n - 1):
            continue
        for _ in range(s - 1):
            x = x * x % n
            if x == n - 1:
                break
        else:
            return False
    return True


@pytest.mark.parametrize("bits", [MIN_SAFE_PRIME_BITS, 24, 48, 64, 80])
def test_generated_safe_primes_are_valid(bits):
    rng = random.Random(bits)
    for _ in range(3):
        p, q = generate_safe_prime(bits, rng=rng)
        assert p == 2 * q + 1
        assert p.bit_length() == bits
        assert _reference_is_prime(p)
        assert _reference_is_prime(q)


def test_generated_safe_prime_large():
    p, q = generate_safe_prime(256, rng=random.Random(11))
    assert p == 2 * q + 1
    assert p.bit_length() == 256
    assert is_safe_prime(p)


def test_seeded_search_is_reproducible():
    assert generate_safe_prime(64, rng=random.Random(42)) == generate_safe_prime(64, rng=random.Random(42))


def test_known_safe_primes():
    assert is_safe_prime(SMALL_P)
    assert is_safe_prime(SMALL_Q)
    assert is_safe_prime(23)
    assert not is_safe_prime(29)  # 14 is not prime
    assert not is_safe_prime(2579 * 2819)


def test_candidate_tester():
    assert is_safe_prime_candidate(1289)  # 2579 = 2 * 1289 + 1
    assert not is_safe_prime_candidate(13)  # 27 is composite
    assert not is_safe_prime_candidate(15)


def test_sieve_screens_both_halves():
    # 3 divides q
    assert not passes_safe_prime_sieve(3 * 1000003)
    # q = 5 mod 11 means 11 divides 2q + 1
    q = 11 * 100003 + 5
    assert (2 * q + 1) % 11 == 0
    assert q % 11 != 0
    assert not passes_safe_prime_sieve(q, primes=(11,))
    assert passes_safe_prime_sieve(1289)


@pytest.mark.parametrize("bits", [0, 2, 8, MIN_SAFE_PRIME_BITS - 1])
def test_rejects_too_small_bit_length(bits):
    with pytest.raises(InvalidKeySize):
        generate_safe_prime(bits)
    with pytest.raises(InvalidKeySize):
        generate_safe_prime_parallel(bits, 2)


def test_iteration_budget():
    with pytest.raises(PrimeGenerationExhausted):
        generate_safe_prime(512, rng=random.Random(0), max_iterations=3)


def test_time_budget():
    with pytest.raises(PrimeGenerationExhausted):
        generate_safe_prime(512, timeout=0)


def test_parallel_search():
    p, q = generate_safe_prime_parallel(48, 2)
    assert p == 2 * q + 1
    assert p.bit_length() == 48
    assert _reference_is_prime(p)
    assert _reference_is_prime(q)


def test_parallel_search_single_worker_falls_back():
    p, q = generate_safe_prime_parallel(32, 1)
    assert p == 2 * q + 1
    assert _reference_is_prime(q)


def test_parallel_search_budget_exhausted():
    with pytest.raises(PrimeGenerationExhausted):
        generate_safe_prime_parallel(1024, 2, max_iterations=2)


def test_search_stops_when_event_is_set():
    stop = threading.Event()
    stop.set()
    assert _search(512, None, None, None, None, stop) is None


def test_worker_in_pool_stops_on_shared_event():
    # A 2048-bit search would run for minutes; only the event can end it.
    with multiprocessing.Manager() as manager:
        stop = manager.Event()
        with ProcessPoolExecutor(max_workers=1) as pool:
            future = pool.submit(_search_worker, 2048, None, None, None, stop)
            time.sleep(0.5)
            assert not future.done()
            stop.set()
            assert future.result(timeout=60) is None
