#!/usr/bin/env python3
"""Convert spec fixtures into replayable YAML vectors.

Each fixture case becomes one vector carrying the pre-state, the transaction,
and the expected outcome: success flag, error label and wire code, and the
post-state digest.

Run from the repository root: `python -m tools.fixtures_to_vectors`.
"""

from __future__ import annotations

import argparse
import json
from enum import IntEnum
from pathlib import Path
from typing import Any

from escrow_spec.errors import ErrorCode, EscrowError, ProgramError
from escrow_spec.programs.associated_token import AssociatedTokenError
from escrow_spec.programs.system import SystemProgramError
from escrow_spec.programs.token import TokenError
from escrow_spec.state_digest import compute_state_digest
from tools.yaml_dump import write_yaml

ROOT = Path(__file__).resolve().parent.parent

ERROR_ENUMS: dict[str, type[IntEnum]] = {
    "ErrorCode": ErrorCode,
    "EscrowError": EscrowError,
    "TokenError": TokenError,
    "SystemProgramError": SystemProgramError,
    "AssociatedTokenError": AssociatedTokenError,
}


def map_error_code(name: str | None) -> int:
    """Wire code for a fixture error label, 0 on success."""
    if not name:
        return 0
    enum_name, _, member = name.partition(".")
    enum = ERROR_ENUMS.get(enum_name)
    if enum is None or member not in enum.__members__:
        raise ValueError(f"unknown error label {name!r}")
    return ProgramError(enum[member], "").to_u64()


def case_to_vector(case: dict[str, Any]) -> dict[str, Any]:
    expected = case.get("expected", {})
    post_state = expected.get("post_state")
    return {
        "name": case.get("name", ""),
        "description": case.get("description", ""),
        "pre_state": case.get("pre_state"),
        "input": {"kind": "tx", "tx": case.get("tx")},
        "expected": {
            "success": bool(expected.get("ok", False)),
            "error": expected.get("error"),
            "error_code": map_error_code(expected.get("error")),
            "state_digest": compute_state_digest(post_state) if post_state else "",
            "post_state": post_state,
        },
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Convert fixtures to vectors")
    parser.add_argument("--fixtures", default=str(ROOT / "fixtures"))
    parser.add_argument("--vectors", default=str(ROOT / "vectors"))
    args = parser.parse_args()

    fixtures = Path(args.fixtures).resolve()
    vectors = Path(args.vectors).resolve()

    if not fixtures.exists():
        raise SystemExit(f"fixtures dir not found: {fixtures}")

    count = 0
    for path in sorted(fixtures.rglob("*.json")):
        data = json.loads(path.read_text())
        if not isinstance(data, dict) or not isinstance(data.get("cases"), list):
            continue
        dest = (vectors / path.relative_to(fixtures)).with_suffix(".yaml")
        write_yaml(dest, {"test_vectors": [case_to_vector(c) for c in data["cases"]]})
        count += 1

    print(f"Written {count} vector files into {vectors}")


if __name__ == "__main__":
    main()
