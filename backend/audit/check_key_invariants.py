"""Vérifie les invariants d'une paire de clés knapsack (super-croissance, module, coprimalité)."""

import math
import sys

from mhk.crypto.knapsack import KeyPair, derive_public_key, generate_keypair, superincreasing_violations


def check(keypair: KeyPair | None = None) -> dict:
    if keypair is None:
        keypair = generate_keypair()
    priv, pub = keypair.private, keypair.public

    violations = []
    if priv.n == 0:
        violations.append({"reason": "w est vide"})
    for i in superincreasing_violations(priv.w):
        reason = "premier élément de w non positif" if i == 0 else "w n'est pas super-croissante"
        violations.append({"index": i, "reason": reason})

    if priv.q <= sum(priv.w):
        violations.append({"reason": "q doit être strictement supérieur à la somme de w"})
    if math.gcd(priv.r, priv.q) != 1:
        violations.append({"reason": "r et q ne sont pas premiers entre eux"})
    if derive_public_key(priv) != pub:
        violations.append({"reason": "la clé publique ne correspond pas à (w, q, r)"})

    return {
        "check": "key_invariants",
        "elements": priv.n,
        "q_bits": priv.q.bit_length(),
        "violations": violations,
        "passed": len(violations) == 0,
    }


if __name__ == "__main__":
    result = check()
    status = "✅ PASS" if result["passed"] else "❌ FAIL"
    print(f"{status} – Invariants de clé : {result['elements']} éléments, q sur {result['q_bits']} bits, "
          f"{len(result['violations'])} violation(s)")
    for v in result["violations"]:
        print(f"  ⚠️  {v}")
    sys.exit(0 if result["passed"] else 1)
