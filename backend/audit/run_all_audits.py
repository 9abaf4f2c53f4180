"""Lance tous les audits de la paire de clés et produit un rapport consolidé."""

import json
import sys
from datetime import datetime, timezone

from audit.check_key_invariants import check as check_key_invariants
from audit.check_roundtrip import check as check_roundtrip
from mhk.crypto.knapsack import generate_keypair


CHECKS = [
    check_key_invariants,
    check_roundtrip,
]


def run_checks(keypair=None) -> list[dict]:
    if keypair is None:
        keypair = generate_keypair()
    return [fn(keypair) for fn in CHECKS]


def build_report(results: list[dict]) -> dict:
    passed = sum(1 for r in results if r["passed"])
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "summary": {"total": len(results), "passed": passed, "failed": len(results) - passed},
        "checks": results,
    }


def print_report(report: dict) -> None:
    for r in report["checks"]:
        violations = r.get("violations", [])
        if r["passed"]:
            print(f"  ✅ {r['check']}")
        else:
            print(f"  ❌ {r['check']} ({len(violations)} violation(s))")
            for v in violations:
                print(f"      ⚠️  {json.dumps(v, ensure_ascii=False)}")

    summary = report["summary"]
    print()
    print("-" * 60)
    print(f"  Résultat : {summary['passed']}/{summary['total']} vérifications réussies")
    if summary["failed"]:
        print(f"  ⚠️  {summary['failed']} vérification(s) en échec")
    else:
        print("  🎉 Tous les audits sont passés avec succès")


def main(report_path: str = "audit_report.json") -> int:
    print("=" * 60)
    print("  🔒 AUDIT – Merkle-Hellman Knapsack")
    print(f"  📅 {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}")
    print("=" * 60)
    print()

    report = build_report(run_checks())
    print_report(report)

    with open(report_path, "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2, ensure_ascii=False, default=str)
    print(f"\n  📄 Rapport JSON exporté : {report_path}")
    print("=" * 60)

    return 0 if report["summary"]["failed"] == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
