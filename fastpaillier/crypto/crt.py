"""Exponentiation modulo ``m1 * m2`` when the factorization is known.

``x^e mod m1*m2`` is split into ``x^(e mod phi1) mod m1`` and
``x^(e mod phi2) mod m2`` and recombined with Garner's formula. Each half
works on numbers half as long, and the reduced exponents are no longer than
the moduli. Only valid for ``x`` coprime to both moduli.
"""

from dataclasses import dataclass
from typing import NamedTuple

from fastpaillier.crypto.errors import InvalidPrimes


class CrtExponent(NamedTuple):
    e1: int
    e2: int


@dataclass(frozen=True, repr=False)
class CrtExp:
    m1: int
    phi1: int
    m2: int
    phi2: int
    # m1^-1 mod m2
    beta: int

    @classmethod
    def build(cls, m1: int, phi1: int, m2: int, phi2: int) -> "CrtExp":
        try:
            beta = pow(m1, -1, m2)
        except ValueError as exc:
            raise InvalidPrimes("CRT moduli are not coprime") from exc
        return cls(m1=m1, phi1=phi1, m2=m2, phi2=phi2, beta=beta)

    @classmethod
    def build_n(cls, p: int, q: int) -> "CrtExp":
        """Exponentiation modulo ``n = p*q``."""
        return cls.build(p, p - 1, q, q - 1)

    @classmethod
    def build_nn(cls, p: int, q: int) -> "CrtExp":
        """Exponentiation modulo ``n^2 = p^2 * q^2``."""
        return cls.build(p * p, p * (p - 1), q * q, q * (q - 1))

    @property
    def modulus(self) -> int:
        return self.m1 * self.m2

    def prepare_exponent(self, e: int) -> CrtExponent:
        # Python's % is non-negative, so negative exponents reduce to the
        # matching positive power of the inverse.
        return CrtExponent(e % self.phi1, e % self.phi2)

    def exp(self, x: int, exponent: CrtExponent) -> int:
        r1 = pow(x % self.m1, exponent.e1, self.m1)
        r2 = pow(x % self.m2, exponent.e2, self.m2)
        return r1 + ((r2 - r1) * self.beta % self.m2) * self.m1

    def __repr__(self) -> str:
        return f"CrtExp(modulus_bits={self.modulus.bit_length()})"
