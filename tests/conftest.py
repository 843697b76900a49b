"""Pytest hooks to generate fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from escrow_spec.state_transition import TransitionResult, apply_tx
from escrow_spec.types import LedgerState, Transaction
from tools.fixtures_io import error_name, state_to_json, tx_to_json

_STATE_CASES: dict[str, list[dict[str, Any]]] = {}


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Output directory for generated fixtures",
    )


def record_case(
    rel_path: str, name: str, pre_state: LedgerState, tx: Transaction
) -> tuple[LedgerState, TransitionResult]:
    pre_json = state_to_json(pre_state)
    post_state, result = apply_tx(pre_state, tx)
    _STATE_CASES.setdefault(rel_path, []).append(
        {
            "name": name,
            "pre_state": pre_json,
            "tx": tx_to_json(tx),
            "expected": {
                "ok": result.ok,
                "error": error_name(result.error),
                "post_state": state_to_json(post_state),
            },
        }
    )
    return post_state, result


@pytest.fixture
def state_test_group() -> Callable[[str, str, LedgerState, Transaction], tuple[LedgerState, TransitionResult]]:
    """Apply a transaction, collect it as a fixture case, and hand back the outcome."""
    return record_case


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir:
        return

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    for rel_path, cases in _STATE_CASES.items():
        if not cases:
            continue
        target = out / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps({"cases": cases}, indent=2))
