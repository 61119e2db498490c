"""
Wire encodings for keys and ciphertexts.

Integers are unsigned big-endian. Standalone integers use the minimal
length (zero is a single ``0x00`` byte); ciphertexts use the fixed length
of ``n^2`` so every ciphertext under one key has the same size. Multi-field
binary records are a sequence of ``u32 length || bytes`` frames.

Only ``n`` is stored for an encryption key and only ``(p, q)`` for a
decryption key; every CRT constant is recomputed on load.
"""

import struct
from typing import List

from pydantic import BaseModel, Field, ValidationError

from fastpaillier.crypto.errors import DecodeError, KeyMismatch
from fastpaillier.crypto.paillier import DecryptionKey, EncryptionKey

_FRAME = struct.Struct(">I")
_HEX = "^[0-9a-f]+$"


# ── Integers ───────────────────────────────────────

def byte_length(x: int) -> int:
    return max(1, (x.bit_length() + 7) // 8)


def int_to_bytes(x: int, length: int | None = None) -> bytes:
    if x < 0:
        raise ValueError("only non-negative integers can be encoded")
    if length is None:
        length = byte_length(x)
    try:
        return x.to_bytes(length, "big")
    except OverflowError as exc:
        raise ValueError(f"integer does not fit in {length} bytes") from exc


def bytes_to_int(data: bytes) -> int:
    if not data:
        raise DecodeError("empty integer encoding")
    return int.from_bytes(data, "big")


def pack_ints(*values: int) -> bytes:
    out = bytearray()
    for value in values:
        raw = int_to_bytes(value)
        out += _FRAME.pack(len(raw))
        out += raw
    return bytes(out)


def unpack_ints(data: bytes, count: int) -> List[int]:
    values = []
    offset = 0
    for _ in range(count):
        if offset + _FRAME.size > len(data):
            raise DecodeError("truncated length prefix")
        (size,) = _FRAME.unpack_from(data, offset)
        offset += _FRAME.size
        if size == 0 or offset + size > len(data):
            raise DecodeError("truncated integer field")
        values.append(bytes_to_int(data[offset : offset + size]))
        offset += size
    if offset != len(data):
        raise DecodeError(f"{len(data) - offset} trailing bytes")
    return values


# ── Binary keys and ciphertexts ────────────────────

def encode_encryption_key(ek: EncryptionKey) -> bytes:
    return pack_ints(ek.n)


def decode_encryption_key(data: bytes) -> EncryptionKey:
    (n,) = unpack_ints(data, 1)
    return EncryptionKey(n)


def encode_decryption_key(dk: DecryptionKey) -> bytes:
    return pack_ints(dk.p, dk.q)


def decode_decryption_key(data: bytes) -> DecryptionKey:
    p, q = unpack_ints(data, 2)
    return DecryptionKey.from_primes(p, q)


def encode_ciphertext(c: int, ek: EncryptionKey) -> bytes:
    ek.check_ciphertext(c)
    return int_to_bytes(c, byte_length(ek.nn))


def decode_ciphertext(data: bytes, ek: EncryptionKey) -> int:
    if len(data) != byte_length(ek.nn):
        raise DecodeError(f"ciphertext must be {byte_length(ek.nn)} bytes, got {len(data)}")
    c = bytes_to_int(data)
    ek.check_ciphertext(c)
    return c


# ── JSON documents ─────────────────────────────────

class EncryptionKeyDocument(BaseModel):
    n: str = Field(min_length=1, pattern=_HEX)


class DecryptionKeyDocument(BaseModel):
    p: str = Field(min_length=1, pattern=_HEX)
    q: str = Field(min_length=1, pattern=_HEX)


class CiphertextDocument(BaseModel):
    key_fingerprint: str = Field(min_length=64, max_length=64, pattern=_HEX)
    ciphertext: str = Field(min_length=1, pattern=_HEX)


def _validate(model, raw: str | bytes):
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        raise DecodeError(f"invalid {model.__name__}: {exc.error_count()} error(s)") from exc


def encryption_key_to_json(ek: EncryptionKey) -> str:
    return EncryptionKeyDocument(n=format(ek.n, "x")).model_dump_json()


def encryption_key_from_json(raw: str | bytes) -> EncryptionKey:
    doc = _validate(EncryptionKeyDocument, raw)
    return EncryptionKey(int(doc.n, 16))


def decryption_key_to_json(dk: DecryptionKey) -> str:
    return DecryptionKeyDocument(p=format(dk.p, "x"), q=format(dk.q, "x")).model_dump_json()


def decryption_key_from_json(raw: str | bytes) -> DecryptionKey:
    doc = _validate(DecryptionKeyDocument, raw)
    return DecryptionKey.from_primes(int(doc.p, 16), int(doc.q, 16))


def ciphertext_to_json(c: int, ek: EncryptionKey) -> str:
    ek.check_ciphertext(c)
    return CiphertextDocument(key_fingerprint=ek.fingerprint, ciphertext=format(c, "x")).model_dump_json()


def ciphertext_from_json(raw: str | bytes, ek: EncryptionKey) -> int:
    """Decode a ciphertext document, refusing documents made under another key."""
    doc = _validate(CiphertextDocument, raw)
    if doc.key_fingerprint != ek.fingerprint:
        raise KeyMismatch("ciphertext was produced under a different key")
    c = int(doc.ciphertext, 16)
    ek.check_ciphertext(c)
    return c
