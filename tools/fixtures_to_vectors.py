#!/usr/bin/env python3
"""Convert collected scenario fixtures into YAML scenario files.

Each JSON fixture holds a list of scenarios; every scenario becomes its own
YAML document under the vectors directory, ready for ``title-escrow run``.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from title_escrow.accounts import label, resolve  # noqa: E402
from yaml_dump import write_yaml  # noqa: E402


def _named(value: str) -> str:
    return label(resolve(value))


def to_vector(case: dict) -> dict:
    """Rewrite hex parties as account names where one is known."""
    out = dict(case)
    out["roles"] = {
        role: (_named(addr) if addr else None) for role, addr in case.get("roles", {}).items()
    }
    out["assets"] = {int(asset_id): _named(holder) for asset_id, holder in case.get("assets", {}).items()}
    calls = []
    for call in case.get("calls", []):
        call = dict(call, caller=_named(call["caller"]))
        args = dict(call.get("args") or {})
        if "buyer" in args:
            args["buyer"] = _named(args["buyer"])
        call["args"] = args
        calls.append(call)
    out["calls"] = calls
    return out


def main() -> None:
    parser = argparse.ArgumentParser(description="Convert scenario fixtures to YAML vectors")
    parser.add_argument("--fixtures", default=str(ROOT / "fixtures"))
    parser.add_argument("--vectors", default=str(ROOT / "vectors"))
    args = parser.parse_args()

    fixtures = Path(args.fixtures).resolve()
    vectors = Path(args.vectors).resolve()

    if not fixtures.exists():
        raise SystemExit(f"fixtures dir not found: {fixtures}")

    vectors.mkdir(parents=True, exist_ok=True)

    count = 0
    for path in sorted(fixtures.rglob("*.json")):
        data = json.loads(path.read_text())
        rel = path.relative_to(fixtures).with_suffix("")
        for case in data.get("scenarios", []):
            dest = vectors / rel / f"{case.get('name', 'scenario')}.yaml"
            dest.parent.mkdir(parents=True, exist_ok=True)
            write_yaml(dest, to_vector(case))
            count += 1

    print(f"Written {count} scenario files into {vectors}")


if __name__ == "__main__":
    main()
