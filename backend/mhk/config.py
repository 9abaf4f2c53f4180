"""
Runtime configuration read from the environment.
MHK_MAX_CHARS and MHK_MAX_BITS together decide the key size (and memory use).
"""

import os

DEFAULT_MAX_CHARS = 150
DEFAULT_MAX_BITS = 50
DEFAULT_KEY_ID = "key-v1"
DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://127.0.0.1:3000"


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def get_max_chars() -> int:
    """Maximum message length in UTF-8 bytes."""
    return _positive_int("MHK_MAX_CHARS", DEFAULT_MAX_CHARS)


def get_max_bits() -> int:
    """Bit width of the random increments used during key generation."""
    return _positive_int("MHK_MAX_BITS", DEFAULT_MAX_BITS)


def get_key_id() -> str:
    return os.getenv("MHK_KEY_ID", DEFAULT_KEY_ID)


def get_cors_origins() -> list[str]:
    raw = os.getenv("MHK_CORS_ORIGINS", DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
