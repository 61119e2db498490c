"""
Batch helpers dispatching independent operations over a process pool.

Keys are immutable and picklable, so each worker gets its own copy and no
locking is involved. ``workers=1`` runs inline, which is also what small
batches should use: pool start-up costs more than a few encryptions.
"""

import logging
from concurrent.futures import ProcessPoolExecutor
from functools import reduce
from typing import Iterable, List, Optional, Union

from fastpaillier.config import get_settings
from fastpaillier.crypto.paillier import DecryptionKey, EncryptionKey

logger = logging.getLogger(__name__)

Key = Union[EncryptionKey, DecryptionKey]


def _public(key: Key) -> EncryptionKey:
    return key.encryption_key if isinstance(key, DecryptionKey) else key


def _resolve_workers(workers: Optional[int]) -> int:
    if workers is None:
        workers = get_settings().workers
    if workers < 1:
        raise ValueError("workers must be >= 1")
    return workers


def encrypt_many(key: Key, plaintexts: Iterable[int], *, workers: Optional[int] = None, chunksize: int = 16) -> List[int]:
    """Encrypt each plaintext with fresh randomness (CRT path when ``key`` is a DecryptionKey)."""
    plaintexts = list(plaintexts)
    ek = _public(key)
    for m in plaintexts:
        ek.check_plaintext(m)
    workers = _resolve_workers(workers)
    if workers == 1:
        return [key.encrypt(m) for m in plaintexts]
    logger.debug("encrypting %d values on %d workers", len(plaintexts), workers)
    with ProcessPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(key.encrypt, plaintexts, chunksize=chunksize))


def decrypt_many(dk: DecryptionKey, ciphertexts: Iterable[int], *, workers: Optional[int] = None, chunksize: int = 16) -> List[int]:
    ciphertexts = list(ciphertexts)
    for c in ciphertexts:
        dk.encryption_key.check_ciphertext(c)
    workers = _resolve_workers(workers)
    if workers == 1:
        return [dk.decrypt(c) for c in ciphertexts]
    logger.debug("decrypting %d values on %d workers", len(ciphertexts), workers)
    with ProcessPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(dk.decrypt, ciphertexts, chunksize=chunksize))


def _sum_chunk(ek: EncryptionKey, chunk: List[int]) -> int:
    # 1 is the encryption of 0 with r = 1
    return reduce(ek.add, chunk, 1)


def sum_ciphertexts(key: Key, ciphertexts: Iterable[int], *, workers: Optional[int] = None) -> int:
    """
    Homomorphic sum of all ciphertexts.

    An empty input yields ``1``, the trivial encryption of zero; rerandomize
    it before handing it to anyone who should not learn that.
    """
    ek = _public(key)
    ciphertexts = list(ciphertexts)
    workers = _resolve_workers(workers)
    if workers == 1 or len(ciphertexts) < 2 * workers:
        return _sum_chunk(ek, ciphertexts)
    size = -(-len(ciphertexts) // workers)
    chunks = [ciphertexts[i : i + size] for i in range(0, len(ciphertexts), size)]
    with ProcessPoolExecutor(max_workers=workers) as pool:
        partials = list(pool.map(_sum_chunk, [ek] * len(chunks), chunks))
    return _sum_chunk(ek, partials)
