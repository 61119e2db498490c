from contextlib import asynccontextmanager
from functools import lru_cache
import logging
from typing import Annotated

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from fastpaillier.batch import sum_ciphertexts
from fastpaillier.config import get_settings
from fastpaillier.crypto.errors import KeyMismatch, PaillierError
from fastpaillier.crypto.paillier import DecryptionKey, EncryptionKey, generate_keypair
from fastpaillier.logs import configure_logging

logger = logging.getLogger(__name__)

_DECIMAL = "^[0-9]+$"


@lru_cache
def get_service_keypair() -> tuple[EncryptionKey, DecryptionKey]:
    """Key pair held by this service process, generated on first use."""
    return generate_keypair(get_settings().service_key_bits)


def get_key_id() -> str:
    ek, _ = get_service_keypair()
    return ek.fingerprint[:16]


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    get_service_keypair()
    logger.info("service key %s ready", get_key_id())
    yield


app = FastAPI(
    title="fastpaillier key service",
    version="0.1.0",
    lifespan=lifespan,
)


# ── Security: HTTP headers ───────────────────────────────────
@app.middleware("http")
async def security_headers(request: Request, call_next):
    response: Response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Cache-Control"] = "no-store"
    return response


@app.exception_handler(PaillierError)
async def paillier_error_handler(request: Request, exc: PaillierError) -> JSONResponse:
    status_code = 409 if isinstance(exc, KeyMismatch) else 400
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "error": type(exc).__name__})


class EncryptRequest(BaseModel):
    plaintext: str = Field(min_length=1, pattern=_DECIMAL)


class CiphertextsRequest(BaseModel):
    key_id: str = Field(min_length=1, max_length=64)
    ciphertexts: list[Annotated[str, Field(pattern=_DECIMAL)]] = Field(min_length=1)


class AddRequest(BaseModel):
    key_id: str = Field(min_length=1, max_length=64)
    a: str = Field(min_length=1, pattern=_DECIMAL)
    b: str = Field(min_length=1, pattern=_DECIMAL)


class MultiplyRequest(BaseModel):
    key_id: str = Field(min_length=1, max_length=64)
    ciphertext: str = Field(min_length=1, pattern=_DECIMAL)
    scalar: str = Field(min_length=1, pattern="^-?[0-9]+$")


def _require_key(key_id: str) -> EncryptionKey:
    if key_id != get_key_id():
        raise KeyMismatch(f"unknown key_id {key_id!r}")
    ek, _ = get_service_keypair()
    return ek


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/crypto/pubkey")
async def get_public_key():
    """Return the service's Paillier public key for client-side encryption."""
    ek, _ = get_service_keypair()
    return {"key_id": get_key_id(), "n": str(ek.n), "bits": ek.bits}


@app.post("/crypto/encrypt")
async def encrypt_value(payload: EncryptRequest):
    """Encrypt with the service key (CRT path, server-side fallback for thin clients)."""
    _, dk = get_service_keypair()
    ciphertext = dk.encrypt_fast(int(payload.plaintext))
    return {"key_id": get_key_id(), "ciphertext": str(ciphertext)}


@app.post("/crypto/add")
async def add_ciphertexts(payload: AddRequest):
    ek = _require_key(payload.key_id)
    return {"key_id": payload.key_id, "ciphertext": str(ek.add(int(payload.a), int(payload.b)))}


@app.post("/crypto/multiply")
async def multiply_ciphertext(payload: MultiplyRequest):
    ek = _require_key(payload.key_id)
    result = ek.multiply_by_scalar(int(payload.ciphertext), int(payload.scalar))
    return {"key_id": payload.key_id, "ciphertext": str(result)}


@app.post("/crypto/aggregate")
async def aggregate(payload: CiphertextsRequest):
    """Homomorphic sum of the submitted ciphertexts, returned encrypted.

    The total is never decrypted here: callers may submit any ciphertext.
    """
    ek = _require_key(payload.key_id)
    agg = sum_ciphertexts(ek, [int(raw) for raw in payload.ciphertexts], workers=1)
    return {
        "key_id": payload.key_id,
        "count": len(payload.ciphertexts),
        "aggregate_ciphertext": str(agg),
    }
