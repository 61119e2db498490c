"""Paillier keys and ciphertext operations.

``EncryptionKey`` is the public half: encryption and the homomorphic
operations. ``DecryptionKey`` owns an ``EncryptionKey`` plus the
factorization of ``n`` and every constant derived from it, which makes
decryption, encryption and randomness recovery run modulo ``p^2`` / ``q^2``
instead of ``n^2``.

The generator is fixed to ``g = n + 1``, so ``g^m mod n^2 = 1 + m*n``.
Ciphertexts are plain ints and carry no reference to their key: combining
ciphertexts from different keys is the caller's responsibility (serialized
ciphertexts are checked, see ``serialization``).
"""

import hashlib
import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

from fastpaillier.config import get_settings
from fastpaillier.crypto.crt import CrtExp, CrtExponent
from fastpaillier.crypto.errors import (
    InvalidCiphertext,
    InvalidKeySize,
    InvalidPlaintext,
    InvalidPrimes,
    InvalidRandomness,
    KeyMismatch,
)
from fastpaillier.crypto.numbers import in_mult_group, sample_in_mult_group
from fastpaillier.crypto.primes import MIN_SAFE_PRIME_BITS, generate_safe_prime, generate_safe_prime_parallel
from fastpaillier.crypto.rng import RandomSource

logger = logging.getLogger(__name__)

MIN_KEY_BITS = 2 * MIN_SAFE_PRIME_BITS


@dataclass(frozen=True)
class EncryptionKey:
    n: int
    nn: int = field(init=False, repr=False, compare=False)
    half_n: int = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.n < 15 or self.n % 2 == 0:
            raise InvalidKeySize("modulus must be odd and >= 15")
        object.__setattr__(self, "nn", self.n * self.n)
        object.__setattr__(self, "half_n", self.n // 2)

    @property
    def bits(self) -> int:
        return self.n.bit_length()

    @property
    def fingerprint(self) -> str:
        """SHA-256 of the big-endian modulus, used to tag serialized values."""
        raw = self.n.to_bytes((self.n.bit_length() + 7) // 8, "big")
        return hashlib.sha256(raw).hexdigest()

    def check_same_key(self, other: "EncryptionKey") -> None:
        if other.n != self.n:
            raise KeyMismatch("keys have different moduli")

    # ── Validation ─────────────────────────────────

    def check_plaintext(self, m: int) -> None:
        if not 0 <= m < self.n:
            raise InvalidPlaintext("plaintext out of range [0, n)")

    def check_ciphertext(self, c: int) -> None:
        if not 0 <= c < self.nn:
            raise InvalidCiphertext("ciphertext out of range [0, n^2)")
        if math.gcd(c, self.n) != 1:
            raise InvalidCiphertext("ciphertext is not invertible modulo n^2")

    def check_randomness(self, r: int) -> None:
        if not (r > 0 and in_mult_group(r, self.n)):
            raise InvalidRandomness("randomness must be in [1, n) and coprime to n")

    def sample_randomness(self, rng: Optional[RandomSource] = None) -> int:
        return sample_in_mult_group(self.n, rng)

    # ── Encryption ─────────────────────────────────

    def encrypt(self, m: int, r: Optional[int] = None, rng: Optional[RandomSource] = None) -> int:
        """``(1 + m*n) * r^n mod n^2``; ``r`` is sampled when omitted."""
        self.check_plaintext(m)
        if r is None:
            r = self.sample_randomness(rng)
        else:
            self.check_randomness(r)
        return (1 + m * self.n) * pow(r, self.n, self.nn) % self.nn

    def encrypt_with_randomness(self, m: int, rng: Optional[RandomSource] = None) -> Tuple[int, int]:
        """Encrypt with fresh randomness and return ``(ciphertext, r)``."""
        self.check_plaintext(m)
        r = self.sample_randomness(rng)
        return self.encrypt(m, r), r

    # ── Homomorphic operations ─────────────────────

    def add(self, c1: int, c2: int) -> int:
        """Enc(m1), Enc(m2) -> Enc(m1 + m2 mod n)."""
        self.check_ciphertext(c1)
        self.check_ciphertext(c2)
        return c1 * c2 % self.nn

    def add_plain(self, c: int, m: int) -> int:
        """Enc(m1), m2 -> Enc(m1 + m2 mod n) without a second exponentiation."""
        self.check_ciphertext(c)
        self.check_plaintext(m)
        return c * (1 + m * self.n) % self.nn

    def negate(self, c: int) -> int:
        """Enc(m) -> Enc(-m mod n)."""
        self.check_ciphertext(c)
        return pow(c, -1, self.nn)

    def subtract(self, c1: int, c2: int) -> int:
        """Enc(m1), Enc(m2) -> Enc(m1 - m2 mod n)."""
        self.check_ciphertext(c1)
        return c1 * self.negate(c2) % self.nn

    def multiply_by_scalar(self, c: int, k: int) -> int:
        """Enc(m), k -> Enc(k*m mod n); negative ``k`` goes through the inverse of ``c``."""
        self.check_ciphertext(c)
        return pow(c, k, self.nn)

    def rerandomize(self, c: int, rng: Optional[RandomSource] = None) -> int:
        """Same plaintext, fresh randomness."""
        self.check_ciphertext(c)
        r = self.sample_randomness(rng)
        return c * pow(r, self.n, self.nn) % self.nn

    # ── Signed plaintexts ──────────────────────────

    def in_signed_range(self, x: int) -> bool:
        """True if ``x`` is in ``[-n//2, n//2]``."""
        return -self.half_n <= x <= self.half_n

    def encode_signed(self, x: int) -> int:
        """Map ``[-n//2, n//2]`` onto ``[0, n)``."""
        if not self.in_signed_range(x):
            raise InvalidPlaintext("signed plaintext out of range [-n/2, n/2]")
        return x % self.n

    def decode_signed(self, m: int) -> int:
        """Inverse of :meth:`encode_signed`."""
        self.check_plaintext(m)
        return m - self.n if m > self.half_n else m


@dataclass(frozen=True, repr=False)
class DecryptionKey:
    """
    Private key built from two distinct primes ``p`` and ``q``.

    All CRT material is computed once in ``__post_init__``:

    * ``pp``, ``qq``: ``p^2``, ``q^2``
    * ``p_inv_mod_q``: Garner coefficient for recombining ``m mod p`` and ``m mod q``
    * ``hp``, ``hq``: ``L_p(g^(p-1) mod p^2)^-1 mod p`` and its ``q`` twin
    * ``lambda_``, ``mu``: ``lcm(p-1, q-1)`` and ``L(g^lambda mod n^2)^-1 mod n``
      for the textbook (non-CRT) decryption

    Python integers are immutable, so the secrets cannot be wiped when the
    key is dropped; keep the object's lifetime short where that matters.
    """

    p: int
    q: int
    encryption_key: EncryptionKey = field(init=False, compare=False)
    pp: int = field(init=False, compare=False)
    qq: int = field(init=False, compare=False)
    p_inv_mod_q: int = field(init=False, compare=False)
    hp: int = field(init=False, compare=False)
    hq: int = field(init=False, compare=False)
    lambda_: int = field(init=False, compare=False)
    mu: int = field(init=False, compare=False)
    _exp_nn: CrtExp = field(init=False, compare=False)
    _n_exponent: CrtExponent = field(init=False, compare=False)
    _exp_n: CrtExp = field(init=False, compare=False)
    _root_exponent: CrtExponent = field(init=False, compare=False)

    def __post_init__(self):
        p, q = self.p, self.q
        if p == q:
            raise InvalidPrimes("p and q must be distinct")
        if p < 3 or q < 3 or p % 2 == 0 or q % 2 == 0:
            raise InvalidPrimes("p and q must be odd primes")
        n = p * q
        phi = (p - 1) * (q - 1)
        if math.gcd(n, phi) != 1:
            raise InvalidPrimes("gcd(n, phi(n)) != 1")

        ek = EncryptionKey(n)
        pp, qq = p * p, q * q
        g = n + 1
        lambda_ = math.lcm(p - 1, q - 1)
        try:
            mu = pow((pow(g, lambda_, ek.nn) - 1) // n, -1, n)
            hp = pow((pow(g, p - 1, pp) - 1) // p, -1, p)
            hq = pow((pow(g, q - 1, qq) - 1) // q, -1, q)
            p_inv_mod_q = pow(p, -1, q)
            n_inv_mod_lambda = pow(n, -1, lambda_)
        except ValueError as exc:
            raise InvalidPrimes("p and q do not form a valid Paillier key") from exc

        exp_nn = CrtExp.build_nn(p, q)
        exp_n = CrtExp.build_n(p, q)

        values = {
            "encryption_key": ek,
            "pp": pp,
            "qq": qq,
            "p_inv_mod_q": p_inv_mod_q,
            "hp": hp,
            "hq": hq,
            "lambda_": lambda_,
            "mu": mu,
            "_exp_nn": exp_nn,
            "_n_exponent": exp_nn.prepare_exponent(n),
            "_exp_n": exp_n,
            "_root_exponent": exp_n.prepare_exponent(n_inv_mod_lambda),
        }
        for name, value in values.items():
            object.__setattr__(self, name, value)

    @classmethod
    def from_primes(cls, p: int, q: int) -> "DecryptionKey":
        return cls(p, q)

    def __repr__(self) -> str:
        return f"DecryptionKey(bits={self.n.bit_length()})"

    @property
    def n(self) -> int:
        return self.encryption_key.n

    @property
    def nn(self) -> int:
        return self.encryption_key.nn

    @property
    def bits_length(self) -> int:
        """Bit length of the smaller prime."""
        return min(self.p.bit_length(), self.q.bit_length())

    def matches(self, ek: EncryptionKey) -> bool:
        return ek.n == self.n

    # ── Decryption ─────────────────────────────────

    def decrypt(self, c: int) -> int:
        """CRT decryption: recover ``m mod p`` and ``m mod q`` separately, then recombine."""
        self.encryption_key.check_ciphertext(c)
        p, q = self.p, self.q
        mp = (pow(c, p - 1, self.pp) - 1) // p * self.hp % p
        mq = (pow(c, q - 1, self.qq) - 1) // q * self.hq % q
        return mp + (mq - mp) * self.p_inv_mod_q % q * p

    def decrypt_without_crt(self, c: int) -> int:
        """Textbook ``L(c^lambda mod n^2) * mu mod n``."""
        self.encryption_key.check_ciphertext(c)
        n = self.n
        return (pow(c, self.lambda_, self.nn) - 1) // n * self.mu % n

    def decrypt_signed(self, c: int) -> int:
        return self.encryption_key.decode_signed(self.decrypt(c))

    # ── Encryption with known factorization ────────

    def _blinding_factor(self, r: int) -> int:
        # r^n mod n^2
        return self._exp_nn.exp(r, self._n_exponent)

    def encrypt_fast(self, m: int, r: Optional[int] = None, rng: Optional[RandomSource] = None) -> int:
        """Same output as ``EncryptionKey.encrypt``; ``r^n`` computed modulo ``p^2`` and ``q^2``."""
        ek = self.encryption_key
        ek.check_plaintext(m)
        if r is None:
            r = ek.sample_randomness(rng)
        else:
            ek.check_randomness(r)
        return (1 + m * self.n) * self._blinding_factor(r) % self.nn

    encrypt = encrypt_fast

    def encrypt_with_randomness(self, m: int, rng: Optional[RandomSource] = None) -> Tuple[int, int]:
        self.encryption_key.check_plaintext(m)
        r = self.encryption_key.sample_randomness(rng)
        return self.encrypt_fast(m, r), r

    def rerandomize_fast(self, c: int, rng: Optional[RandomSource] = None) -> int:
        self.encryption_key.check_ciphertext(c)
        r = self.encryption_key.sample_randomness(rng)
        return c * self._blinding_factor(r) % self.nn

    rerandomize = rerandomize_fast

    def extract_randomness(self, c: int, m: int) -> int:
        """
        Recover the ``r`` with ``c = (1 + m*n) * r^n mod n^2``.

        Dividing out ``1 + m*n`` leaves ``r^n``; its ``n``-th root modulo ``n``
        is ``(r^n)^(n^-1 mod lambda)``, taken modulo ``p`` and ``q``.
        Raises :class:`InvalidPlaintext` if ``m`` is not the plaintext of ``c``.
        """
        ek = self.encryption_key
        ek.check_ciphertext(c)
        ek.check_plaintext(m)
        # (1 + m*n)^-1 = 1 - m*n mod n^2
        r_to_n = c * (1 - m * self.n) % self.nn
        r = self._exp_n.exp(r_to_n, self._root_exponent)
        if self._blinding_factor(r) != r_to_n:
            raise InvalidPlaintext("ciphertext does not encrypt the given plaintext")
        return r

    # ── Public operations ──────────────────────────

    def add(self, c1: int, c2: int) -> int:
        return self.encryption_key.add(c1, c2)

    def add_plain(self, c: int, m: int) -> int:
        return self.encryption_key.add_plain(c, m)

    def subtract(self, c1: int, c2: int) -> int:
        return self.encryption_key.subtract(c1, c2)

    def negate(self, c: int) -> int:
        return self.encryption_key.negate(c)

    def multiply_by_scalar(self, c: int, k: int) -> int:
        return self.encryption_key.multiply_by_scalar(c, k)


def _check_key_bits(bits: int) -> None:
    if bits % 2:
        raise InvalidKeySize(f"modulus bit length must be even, got {bits}")
    if bits < MIN_KEY_BITS:
        raise InvalidKeySize(f"modulus must have at least {MIN_KEY_BITS} bits, got {bits}")


def generate_keypair(
    bits: Optional[int] = None,
    *,
    rng: Optional[RandomSource] = None,
    workers: int = 1,
    rounds: Optional[int] = None,
    max_iterations: Optional[int] = None,
    timeout: Optional[float] = None,
) -> Tuple[EncryptionKey, DecryptionKey]:
    """
    Generate a key pair whose modulus has exactly ``bits`` bits.

    Both factors are independent ``bits/2``-bit safe primes. When their
    product comes out one bit short the smaller prime is redrawn.
    ``workers > 1`` searches each prime in parallel processes (``rng`` is
    then ignored: every worker uses the system source).
    """
    if bits is None:
        bits = get_settings().key_bits
    _check_key_bits(bits)
    prime_bits = bits // 2

    def draw() -> int:
        if workers > 1:
            p, _ = generate_safe_prime_parallel(
                prime_bits, workers, rounds=rounds, max_iterations=max_iterations, timeout=timeout
            )
        else:
            p, _ = generate_safe_prime(
                prime_bits, rng=rng, rounds=rounds, max_iterations=max_iterations, timeout=timeout
            )
        return p

    logger.info("generating %d-bit Paillier key", bits)
    p = draw()
    q = draw()
    while p == q or (p * q).bit_length() != bits:
        logger.debug("redrawing a factor: modulus has %d bits", (p * q).bit_length())
        p = max(p, q)
        q = draw()

    dk = DecryptionKey.from_primes(p, q)
    logger.info("generated %d-bit Paillier key", dk.n.bit_length())
    return dk.encryption_key, dk
