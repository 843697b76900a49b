"""Consume fixtures and validate against the Python escrow model.

Run from the repository root: `python -m tools.consume`.
"""

from __future__ import annotations

import json
from pathlib import Path

from escrow_spec.state_digest import compute_state_digest
from escrow_spec.state_transition import apply_tx
from tools.fixtures_io import error_name, state_from_json, state_to_json, tx_from_json

ROOT = Path(__file__).resolve().parent.parent


def check_state_cases(path: Path) -> list[str]:
    failures: list[str] = []
    data = json.loads(path.read_text())

    for case in data.get("cases", []):
        pre_state = state_from_json(case["pre_state"])
        tx = tx_from_json(case["tx"])
        post_state, result = apply_tx(pre_state, tx)

        expected = case["expected"]
        if result.ok != expected["ok"]:
            failures.append(f"{case['name']}: ok_mismatch")
            continue

        if error_name(result.error) != expected["error"]:
            failures.append(f"{case['name']}: error_mismatch")
            continue

        actual = compute_state_digest(state_to_json(post_state))
        if actual != compute_state_digest(expected["post_state"]):
            failures.append(f"{case['name']}: state_digest_mismatch")

    return failures


def main() -> None:
    fixtures = ROOT / "fixtures"

    failures: list[str] = []
    for path in sorted(fixtures.rglob("*.json")):
        failures.extend(check_state_cases(path))

    if failures:
        for f in failures:
            print("FAIL", f)
        raise SystemExit(1)

    print("All fixtures passed")


if __name__ == "__main__":
    main()
