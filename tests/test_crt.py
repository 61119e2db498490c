import random

import pytest

from fastpaillier.crypto.crt import CrtExp
from fastpaillier.crypto.errors import InvalidPrimes
from fastpaillier.crypto.numbers import sample_in_mult_group
from fastpaillier.crypto.primes import generate_safe_prime


@pytest.fixture(scope="module")
def primes():
    rng = random.Random(99)
    p, _ = generate_safe_prime(128, rng=rng)
    q = p
    while q == p:
        q, _ = generate_safe_prime(128, rng=rng)
    return p, q


@pytest.mark.parametrize("square", [False, True])
def test_factorized_exp_matches_pow(primes, square):
    p, q = primes
    crt = CrtExp.build_nn(p, q) if square else CrtExp.build_n(p, q)
    modulus = (p * q) ** 2 if square else p * q
    assert crt.modulus == modulus

    rng = random.Random(square)
    for _ in range(50):
        x = sample_in_mult_group(modulus, rng)
        e = rng.getrandbits(512)
        if rng.random() < 0.5:
            e = -e
        assert crt.exp(x, crt.prepare_exponent(e)) == pow(x, e, modulus)


def test_zero_exponent(primes):
    p, q = primes
    crt = CrtExp.build_nn(p, q)
    assert crt.exp(12345, crt.prepare_exponent(0)) == 1


def test_non_coprime_moduli_rejected():
    with pytest.raises(InvalidPrimes):
        CrtExp.build(6, 2, 9, 6)


def test_repr_does_not_show_factors(primes):
    p, q = primes
    assert str(p) not in repr(CrtExp.build_n(p, q))
