"""
Runtime configuration, read from the environment.
Every knob has a production default; tests override through env vars.
"""

import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field


# ── Defaults ───────────────────────────────────────
DEFAULT_KEY_BITS = 3072  # two 1536-bit safe primes, ~128-bit security
DEFAULT_MR_ROUNDS = 64  # false positive rate <= 4^-64 = 2^-128
DEFAULT_SIEVE_LIMIT = 2000
DEFAULT_SERVICE_KEY_BITS = 512


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    key_bits: int = Field(default=DEFAULT_KEY_BITS, ge=32)
    mr_rounds: int = Field(default=DEFAULT_MR_ROUNDS, ge=1, le=256)
    sieve_limit: int = Field(default=DEFAULT_SIEVE_LIMIT, ge=5)
    workers: int = Field(default=1, ge=1)
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    service_key_bits: int = Field(default=DEFAULT_SERVICE_KEY_BITS, ge=32)


@lru_cache
def get_settings() -> Settings:
    """Build settings from ``FASTPAILLIER_*`` variables (cached; call ``cache_clear`` after changing env)."""
    return Settings(
        key_bits=int(os.getenv("FASTPAILLIER_KEY_BITS", str(DEFAULT_KEY_BITS))),
        mr_rounds=int(os.getenv("FASTPAILLIER_MR_ROUNDS", str(DEFAULT_MR_ROUNDS))),
        sieve_limit=int(os.getenv("FASTPAILLIER_SIEVE_LIMIT", str(DEFAULT_SIEVE_LIMIT))),
        workers=int(os.getenv("FASTPAILLIER_WORKERS", "1")),
        log_level=os.getenv("FASTPAILLIER_LOG_LEVEL", "INFO").upper(),
        service_key_bits=int(os.getenv("FASTPAILLIER_SERVICE_KEY_BITS", str(DEFAULT_SERVICE_KEY_BITS))),
    )
