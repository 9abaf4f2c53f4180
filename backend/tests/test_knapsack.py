import math
import random

import pytest

from mhk.crypto.errors import EmptyMessage, InvalidEncoding, InvalidLength, KnapsackError, MalformedCiphertext
from mhk.crypto.knapsack import (
    PrivateKey,
    PublicKey,
    bits_to_message,
    decrypt,
    decrypt_bytes,
    decrypt_text,
    derive_public_key,
    encrypt,
    encrypt_text,
    format_ciphertext,
    generate_keypair,
    generate_private_key,
    message_to_bits,
    parse_ciphertext,
    recover_bits,
    subset_sum,
    superincreasing_violations,
    unblind,
)


# w=[2,3,7,20], q=41, r=40: the textbook-sized key used to check each step by hand
WORKED_PRIV = PrivateKey(w=(2, 3, 7, 20), q=41, r=40)


@pytest.mark.anyio
async def test_worked_example_public_key():
    assert math.gcd(WORKED_PRIV.r, WORKED_PRIV.q) == 1
    assert derive_public_key(WORKED_PRIV).b == (39, 38, 34, 21)


@pytest.mark.anyio
async def test_worked_example_encrypt_and_recover():
    pub = derive_public_key(WORKED_PRIV)
    c = subset_sum([1, 0, 1, 1], pub.b)
    assert c == 39 + 34 + 21 == 94

    assert pow(WORKED_PRIV.r, -1, WORKED_PRIV.q) == 40
    t = unblind(WORKED_PRIV, c)
    assert t == 29 == 2 + 7 + 20
    assert recover_bits(t, WORKED_PRIV.w) == [1, 0, 1, 1]


@pytest.mark.anyio
async def test_greedy_recovery_every_subset():
    w = WORKED_PRIV.w
    for mask in range(16):
        bits = [(mask >> (3 - i)) & 1 for i in range(4)]
        assert recover_bits(subset_sum(bits, w), w) == bits


@pytest.mark.anyio
async def test_roundtrip_ascii_and_utf8(small_keypair):
    pub, priv = small_keypair.public, small_keypair.private
    for msg in ["a", "Hello", "x" * 16, "héllo wörld", "€uro", "日本語"]:
        c = encrypt(pub, msg)
        assert decrypt(priv, c) == msg


@pytest.mark.anyio
async def test_roundtrip_default_size():
    keypair = generate_keypair(max_chars=150, max_bits=50)
    msg = "The quick brown fox jumps over the lazy dog. " * 3
    assert len(msg.encode("utf-8")) <= 150
    assert decrypt_text(keypair.private, encrypt_text(keypair.public, msg)) == msg


@pytest.mark.anyio
async def test_encrypt_accepts_bytes(small_keypair):
    pub, priv = small_keypair.public, small_keypair.private
    c = encrypt(pub, b"\xc3\xa9t\xc3\xa9")
    assert decrypt_bytes(priv, c) == b"\xc3\xa9t\xc3\xa9"
    assert decrypt(priv, c) == "été"


@pytest.mark.anyio
async def test_generated_key_invariants(small_keypair):
    priv = small_keypair.private
    assert priv.n == 16 * 8
    assert priv.w[0] >= 1
    for i in range(1, priv.n):
        assert priv.w[i] > sum(priv.w[:i])
    assert priv.q > sum(priv.w)
    assert math.gcd(priv.r, priv.q) == 1
    assert priv.r == priv.q - 1
    assert superincreasing_violations(priv.w) == []
    assert small_keypair.public == derive_public_key(priv)


@pytest.mark.anyio
async def test_invariants_hold_across_seeds():
    for seed in range(20):
        priv = generate_private_key(24, 4, random.Random(seed))
        assert superincreasing_violations(priv.w) == []
        assert priv.q > sum(priv.w)
        assert math.gcd(priv.r, priv.q) == 1


@pytest.mark.anyio
async def test_seeded_generation_is_reproducible():
    a = generate_keypair(max_chars=4, max_bits=8, rng=random.Random(7))
    b = generate_keypair(max_chars=4, max_bits=8, rng=random.Random(7))
    assert a == b
    assert a.public.n == 32
    assert a.public.max_chars == 4


@pytest.mark.anyio
async def test_generation_rejects_non_positive_sizes():
    with pytest.raises(ValueError):
        generate_private_key(0, 50)
    with pytest.raises(ValueError):
        generate_private_key(8, 0)


@pytest.mark.anyio
async def test_encryption_is_deterministic(small_keypair):
    pub = small_keypair.public
    assert encrypt(pub, "same message") == encrypt(pub, "same message")
    assert encrypt(pub, "same message") != encrypt(pub, "other message")


@pytest.mark.anyio
async def test_ciphertext_matches_big_endian_bit_string(small_keypair):
    pub = small_keypair.public
    data = "knapsack".encode("utf-8")
    bit_string = format(int.from_bytes(data, "big"), f"0{pub.n}b")
    expected = sum(bi * int(bit) for bi, bit in zip(pub.b, bit_string))
    assert encrypt(pub, data) == expected


@pytest.mark.anyio
async def test_empty_message_rejected(small_keypair):
    with pytest.raises(EmptyMessage):
        encrypt(small_keypair.public, "")
    with pytest.raises(EmptyMessage):
        encrypt(small_keypair.public, b"")


@pytest.mark.anyio
async def test_oversized_message_rejected(small_keypair):
    pub = small_keypair.public
    encrypt(pub, "x" * pub.max_chars)
    with pytest.raises(InvalidLength):
        encrypt(pub, "x" * (pub.max_chars + 1))


@pytest.mark.anyio
async def test_length_is_measured_in_utf8_bytes(small_keypair):
    # 9 characters, 18 bytes
    with pytest.raises(InvalidLength):
        encrypt(small_keypair.public, "é" * 9)


@pytest.mark.anyio
async def test_validation_errors_are_value_errors():
    assert issubclass(EmptyMessage, KnapsackError)
    assert issubclass(InvalidLength, KnapsackError)
    assert issubclass(MalformedCiphertext, KnapsackError)
    assert issubclass(InvalidEncoding, KnapsackError)
    assert issubclass(KnapsackError, ValueError)


@pytest.mark.anyio
@pytest.mark.parametrize("bad", ["", "   ", "12a", "-5", "+3", "1_000", "0x1f", "3.5", "١٢"])
async def test_malformed_ciphertext_strings(small_keypair, bad):
    with pytest.raises(MalformedCiphertext):
        decrypt(small_keypair.private, bad)


@pytest.mark.anyio
@pytest.mark.parametrize("bad", [-1, True, 3.5, None, b"12"])
async def test_malformed_ciphertext_values(bad):
    with pytest.raises(MalformedCiphertext):
        parse_ciphertext(bad)


@pytest.mark.anyio
async def test_parse_ciphertext_accepts_decimal_forms():
    assert parse_ciphertext(" 94\n") == 94
    assert parse_ciphertext("007") == 7
    assert parse_ciphertext(0) == 0


@pytest.mark.anyio
async def test_decrypt_accepts_decimal_string(small_keypair):
    pub, priv = small_keypair.public, small_keypair.private
    c = encrypt_text(pub, "decimal")
    assert c.isdigit()
    assert decrypt(priv, c) == "decimal"


@pytest.mark.anyio
async def test_foreign_ciphertext_yields_garbage_not_error(small_keypair, rng):
    other = generate_keypair(max_chars=16, max_bits=16, rng=rng)
    c = encrypt(other.public, "secret")
    result = decrypt(small_keypair.private, c)
    assert isinstance(result, str)
    assert result != "secret"


@pytest.mark.anyio
async def test_bit_vector_is_fixed_width_msb_first():
    assert message_to_bits(b"A", 8) == [0, 1, 0, 0, 0, 0, 0, 1]
    bits = message_to_bits(b"A", 24)
    assert len(bits) == 24
    assert bits[:16] == [0] * 16
    assert bits_to_message(bits) == b"A"


@pytest.mark.anyio
async def test_bit_vector_rejects_overflow():
    with pytest.raises(InvalidLength):
        message_to_bits(b"abc", 16)


@pytest.mark.anyio
async def test_generate_keypair_reads_configuration(monkeypatch, rng):
    monkeypatch.setenv("MHK_MAX_CHARS", "4")
    monkeypatch.setenv("MHK_MAX_BITS", "8")
    keypair = generate_keypair(rng=rng)
    assert keypair.public.n == 32
    assert keypair.private.w[0] <= 2 ** 8


@pytest.mark.anyio
async def test_superincreasing_violations_reports_indices():
    assert superincreasing_violations((2, 3, 7, 20)) == []
    assert superincreasing_violations((2, 3, 4, 20)) == [2]
    assert superincreasing_violations((0, 1)) == [0]


@pytest.mark.anyio
async def test_leading_nul_bytes_are_dropped_as_padding(small_keypair):
    pub, priv = small_keypair.public, small_keypair.private
    assert decrypt(priv, encrypt(pub, "\x00a")) == "a"
    assert decrypt_bytes(priv, encrypt(pub, b"\x00\x00hi")) == b"hi"
    assert encrypt(pub, "\x00") == 0
    assert decrypt(priv, 0) == ""


@pytest.mark.anyio
async def test_unencodable_message_rejected(small_keypair):
    with pytest.raises(InvalidEncoding):
        encrypt(small_keypair.public, "a\ud800")


@pytest.mark.anyio
async def test_ciphertext_longer_than_int_digit_limit_decrypts():
    text = "1" * 5000
    repunit = (10 ** 5000 - 1) // 9
    assert parse_ciphertext(text) == repunit
    result = decrypt(WORKED_PRIV, text)
    assert isinstance(result, str)
    assert decrypt_bytes(WORKED_PRIV, text) == decrypt_bytes(WORKED_PRIV, repunit % WORKED_PRIV.q)


@pytest.mark.anyio
async def test_format_ciphertext_past_int_digit_limit():
    assert format_ciphertext(12345) == "12345"
    assert format_ciphertext(10 ** 1000) == "1" + "0" * 1000
    assert format_ciphertext(10 ** 5000 + 7) == "1" + "0" * 4999 + "7"
    big = 3 ** 20000
    assert parse_ciphertext(format_ciphertext(big)) == big


@pytest.mark.anyio
async def test_encrypt_text_with_huge_public_key():
    # a key this large only comes from a big MHK_MAX_CHARS; build the public side directly
    pub = PublicKey(b=tuple(10 ** 4400 + i for i in range(8)))
    # "a" = 0b01100001 selects b[1], b[2], b[7]
    assert encrypt_text(pub, "a") == "3" + "0" * 4398 + "10"
