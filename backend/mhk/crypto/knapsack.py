"""Merkle-Hellman knapsack cryptosystem (superincreasing sequence, modular blinding)."""

import logging
import re
import secrets
from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

from mhk.config import get_max_bits, get_max_chars
from mhk.crypto.errors import EmptyMessage, InvalidEncoding, InvalidLength, MalformedCiphertext

logger = logging.getLogger(__name__)

BITS_PER_BYTE = 8
_DECIMAL = re.compile(r"[0-9]+")
# int<->str conversion is capped (sys.get_int_max_str_digits); convert in blocks below it
_BLOCK_DIGITS = 1000
_BLOCK = 10 ** _BLOCK_DIGITS


class EntropySource(Protocol):
    def getrandbits(self, k: int) -> int: ...


@dataclass(frozen=True)
class PrivateKey:
    w: tuple[int, ...]
    q: int
    r: int

    @property
    def n(self) -> int:
        return len(self.w)

    @property
    def max_chars(self) -> int:
        return self.n // BITS_PER_BYTE


@dataclass(frozen=True)
class PublicKey:
    b: tuple[int, ...]

    @property
    def n(self) -> int:
        return len(self.b)

    @property
    def max_chars(self) -> int:
        return self.n // BITS_PER_BYTE


@dataclass(frozen=True)
class KeyPair:
    private: PrivateKey
    public: PublicKey


def _increment(rng: EntropySource, max_bits: int) -> int:
    # getrandbits may return 0
    return rng.getrandbits(max_bits) + 1


def generate_private_key(n: int, max_bits: int, rng: EntropySource | None = None) -> PrivateKey:
    """
    Build a superincreasing sequence of ``n`` elements plus (q, r).

    Every element is the running sum plus a random positive increment, so
    the superincreasing property holds by construction. ``r = q - 1`` is
    always coprime with ``q``.
    """
    if n <= 0:
        raise ValueError("key length must be positive")
    if max_bits <= 0:
        raise ValueError("max_bits must be positive")
    if rng is None:
        rng = secrets.SystemRandom()

    first = _increment(rng, max_bits)
    w = [first]
    total = first
    for _ in range(1, n):
        nxt = total + _increment(rng, max_bits)
        w.append(nxt)
        total += nxt

    q = total + _increment(rng, max_bits)
    r = q - 1
    return PrivateKey(w=tuple(w), q=q, r=r)


def derive_public_key(priv: PrivateKey) -> PublicKey:
    return PublicKey(b=tuple((wi * priv.r) % priv.q for wi in priv.w))


def generate_keypair(
    max_chars: int | None = None,
    max_bits: int | None = None,
    rng: EntropySource | None = None,
) -> KeyPair:
    """Generate a key pair able to carry messages of up to ``max_chars`` bytes."""
    if max_chars is None:
        max_chars = get_max_chars()
    if max_bits is None:
        max_bits = get_max_bits()
    priv = generate_private_key(max_chars * BITS_PER_BYTE, max_bits, rng)
    pub = derive_public_key(priv)
    logger.info("generated knapsack key pair: %d elements, q has %d bits", priv.n, priv.q.bit_length())
    return KeyPair(private=priv, public=pub)


# ── Bit vectors ──────────────────────────────────────────────


def message_to_bits(data: bytes, width: int) -> list[int]:
    """Fixed-width, MSB-first bit vector of ``data``, left-padded with zero bytes."""
    pad = width // BITS_PER_BYTE - len(data)
    if pad < 0:
        raise InvalidLength(f"message needs {len(data) * BITS_PER_BYTE} bits, key holds {width}")
    padded = bytes(pad) + data
    return [(byte >> shift) & 1 for byte in padded for shift in range(7, -1, -1)]


def bits_to_message(bits: Sequence[int]) -> bytes:
    """Inverse of :func:`message_to_bits`; leading zero bytes are treated as padding."""
    out = bytearray()
    for start in range(0, len(bits), BITS_PER_BYTE):
        byte = 0
        for bit in bits[start:start + BITS_PER_BYTE]:
            byte = (byte << 1) | bit
        out.append(byte)
    return bytes(out).lstrip(b"\x00")


def subset_sum(bits: Iterable[int], weights: Sequence[int]) -> int:
    return sum(weight for bit, weight in zip(bits, weights) if bit)


def recover_bits(target: int, w: Sequence[int]) -> list[int]:
    """
    Solve the superincreasing subset-sum problem greedily.

    Since ``w[i]`` exceeds the sum of all smaller elements, any remaining
    target >= ``w[i]`` must include index ``i``. A non-zero remainder means
    the target was not produced by this key; it is ignored.
    """
    bits = [0] * len(w)
    for i in range(len(w) - 1, -1, -1):
        if w[i] <= target:
            bits[i] = 1
            target -= w[i]
    return bits


def unblind(priv: PrivateKey, c: int) -> int:
    return (c % priv.q) * pow(priv.r, -1, priv.q) % priv.q


def parse_ciphertext(ciphertext: int | str) -> int:
    if isinstance(ciphertext, bool):
        raise MalformedCiphertext("ciphertext must be an integer")
    if isinstance(ciphertext, int):
        if ciphertext < 0:
            raise MalformedCiphertext("ciphertext must be non-negative")
        return ciphertext
    if not isinstance(ciphertext, str):
        raise MalformedCiphertext(f"unsupported ciphertext type {type(ciphertext).__name__}")
    text = ciphertext.strip()
    if not _DECIMAL.fullmatch(text):
        raise MalformedCiphertext("ciphertext must be a non-negative decimal integer")
    return _parse_decimal(text)


def _parse_decimal(text: str) -> int:
    value = 0
    for start in range(0, len(text), _BLOCK_DIGITS):
        block = text[start:start + _BLOCK_DIGITS]
        value = value * 10 ** len(block) + int(block)
    return value


def format_ciphertext(c: int) -> str:
    """Decimal rendering of ``c`` that works past the interpreter's digit limit."""
    if c < _BLOCK:
        return str(c)
    blocks = []
    while c:
        c, low = divmod(c, _BLOCK)
        blocks.append(low)
    head = str(blocks.pop())
    return head + "".join(str(block).zfill(_BLOCK_DIGITS) for block in reversed(blocks))


# ── Cipher ──────────────────────────────────────────────────


def _as_bytes(message: str | bytes) -> bytes:
    if isinstance(message, str):
        try:
            return message.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise InvalidEncoding(f"message is not valid UTF-8 text (position {exc.start})") from exc
    return bytes(message)


def encrypt(pub: PublicKey, message: str | bytes) -> int:
    data = _as_bytes(message)
    if not data:
        raise EmptyMessage("cannot encrypt an empty message")
    if len(data) > pub.max_chars:
        raise InvalidLength(f"maximum message length is {pub.max_chars} bytes, got {len(data)}")
    return subset_sum(message_to_bits(data, pub.n), pub.b)


def decrypt_bytes(priv: PrivateKey, ciphertext: int | str) -> bytes:
    c = parse_ciphertext(ciphertext)
    return bits_to_message(recover_bits(unblind(priv, c), priv.w))


def decrypt(priv: PrivateKey, ciphertext: int | str) -> str:
    # no integrity check: foreign ciphertexts decode to replacement characters, not errors
    return decrypt_bytes(priv, ciphertext).decode("utf-8", errors="replace")


def encrypt_text(pub: PublicKey, text: str) -> str:
    return format_ciphertext(encrypt(pub, text))


def decrypt_text(priv: PrivateKey, ciphertext: str) -> str:
    return decrypt(priv, ciphertext)


def superincreasing_violations(w: Sequence[int]) -> list[int]:
    """Indices ``i`` where ``w[i]`` does not exceed the sum of ``w[:i]`` (index 0 must be >= 1)."""
    bad = []
    total = 0
    for i, wi in enumerate(w):
        if wi <= total:
            bad.append(i)
        total += wi
    return bad
