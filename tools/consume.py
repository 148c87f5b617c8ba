"""Replay collected scenario fixtures and check their recorded outcomes."""

from __future__ import annotations

import json
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))

from title_escrow.scenario import run_scenario, scenario_from_dict  # noqa: E402


def _check_case(case: dict) -> list[str]:
    name = case.get("name", "scenario")
    report = run_scenario(scenario_from_dict(case))

    failures = [
        f"{name}: step {o.index} {o.method} expected {o.expected}, got {o.actual}"
        for o in report.outcomes
        if not o.matched
    ]
    if not report.digest_matched:
        failures.append(f"{name}: digest_mismatch")

    expected = case.get("expected", {})
    if "balance" in expected and report.balance != expected["balance"]:
        failures.append(f"{name}: balance_mismatch")
    if "payments" in expected and report.payments != expected["payments"]:
        failures.append(f"{name}: payments_mismatch")
    custody = {str(k): v for k, v in report.custody.items()}
    if "custody" in expected and custody != expected["custody"]:
        failures.append(f"{name}: custody_mismatch")
    return failures


def main() -> None:
    fixtures = ROOT / "fixtures"
    if not fixtures.exists():
        raise SystemExit(f"fixtures dir not found: {fixtures} (run tools/fill.py first)")

    failures: list[str] = []
    count = 0
    for path in sorted(fixtures.rglob("*.json")):
        data = json.loads(path.read_text())
        for case in data.get("scenarios", []):
            failures.extend(f"{path.relative_to(fixtures)}: {f}" for f in _check_case(case))
            count += 1

    if failures:
        for f in failures:
            print("FAIL", f)
        raise SystemExit(1)

    print(f"All {count} scenarios passed")


if __name__ == "__main__":
    main()
