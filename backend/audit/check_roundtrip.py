"""Vérifie le chiffrement/déchiffrement : aller-retour, déterminisme et rejet des messages invalides."""

import sys

from mhk.crypto.errors import EmptyMessage, InvalidLength
from mhk.crypto.knapsack import KeyPair, decrypt, encrypt, generate_keypair

SAMPLES = ["a", "Hello, knapsack!", "héhé ünïcødé", "0123456789"]


def check(keypair: KeyPair | None = None) -> dict:
    if keypair is None:
        keypair = generate_keypair()
    pub, priv = keypair.public, keypair.private

    samples = [s for s in SAMPLES if len(s.encode("utf-8")) <= pub.max_chars]
    samples.append("x" * pub.max_chars)

    violations = []
    for msg in samples:
        c = encrypt(pub, msg)
        if decrypt(priv, c) != msg:
            violations.append({"message": msg[:32], "reason": "aller-retour incorrect"})
        if encrypt(pub, msg) != c:
            violations.append({"message": msg[:32], "reason": "chiffrement non déterministe"})

    try:
        encrypt(pub, "")
        violations.append({"message": "", "reason": "message vide accepté"})
    except EmptyMessage:
        pass

    try:
        encrypt(pub, "x" * (pub.max_chars + 1))
        violations.append({"message": f"{pub.max_chars + 1} octets", "reason": "message trop long accepté"})
    except InvalidLength:
        pass

    return {
        "check": "roundtrip",
        "samples": len(samples),
        "violations": violations,
        "passed": len(violations) == 0,
    }


if __name__ == "__main__":
    result = check()
    status = "✅ PASS" if result["passed"] else "❌ FAIL"
    print(f"{status} – Aller-retour : {result['samples']} message(s), {len(result['violations'])} violation(s)")
    for v in result["violations"]:
        print(f"  ⚠️  {v['reason']} (message={v['message']!r})")
    sys.exit(0 if result["passed"] else 1)
