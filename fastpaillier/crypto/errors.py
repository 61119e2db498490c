"""Typed failures raised by the Paillier primitives.

Every precondition violation surfaces as one of these; nothing is silently
reduced or corrected. All of them derive from ``ValueError`` so callers that
only care about "bad input" can keep catching that.
"""


class PaillierError(ValueError):
    """Base class for every error raised by fastpaillier."""


class InvalidPlaintext(PaillierError):
    """Plaintext outside ``[0, n)`` (or not the plaintext of a ciphertext)."""


class InvalidCiphertext(PaillierError):
    """Ciphertext outside ``[0, n^2)`` or not a unit modulo ``n^2``."""


class InvalidRandomness(PaillierError):
    """Caller-supplied nonce outside ``[1, n)`` or sharing a factor with ``n``."""


class KeyMismatch(PaillierError):
    """Operation combined values or keys belonging to different moduli."""


class InsufficientRandomness(PaillierError):
    """The random source is unavailable or refused to produce bytes."""


class PrimeGenerationExhausted(PaillierError):
    """Prime search ran out of its iteration or time budget."""


class InvalidKeySize(PaillierError):
    """Requested bit length is too small, or odd where evenness is required."""


class InvalidPrimes(PaillierError):
    """``p`` and ``q`` cannot form a Paillier key."""


class DecodeError(PaillierError):
    """Serialized key or ciphertext data is malformed."""
