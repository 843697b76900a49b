#!/usr/bin/env python3
"""
Escrow vector replay

Replays YAML/JSON vectors through the Python state transition and compares
the outcome (success, error label, post-state digest) with the expectation.

Usage: python -m tools.replay --vectors vectors/
"""

import glob
import json
import logging
import os
import sys
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import click
import yaml

from escrow_spec.state_digest import compute_state_digest
from escrow_spec.state_transition import apply_tx
from tools.fixtures_io import error_name, state_from_json, state_to_json, tx_from_json

logger = logging.getLogger(__name__)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("true", "1", "yes")


@dataclass
class ReplayConfig:
    """Settings for a replay run."""
    vector_dir: str = "vectors"
    verbose: bool = False
    stop_on_first_failure: bool = False

    @classmethod
    def from_env(cls) -> "ReplayConfig":
        """Load configuration from environment variables."""
        return cls(
            vector_dir=os.environ.get("VECTOR_DIR", "vectors"),
            verbose=_env_flag("VERBOSE"),
            stop_on_first_failure=_env_flag("STOP_ON_FIRST_FAILURE"),
        )


@dataclass
class VectorResult:
    vector_name: str
    passed: bool
    execution_time_ms: float
    error: Optional[str] = None


@dataclass
class SuiteResult:
    suite_name: str
    results: List[VectorResult] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.passed)


def load_vectors(path: str) -> List[Dict[str, Any]]:
    with open(path) as f:
        if path.endswith(".json"):
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if not isinstance(data, dict):
        return []
    return list(data.get("test_vectors", []))


def run_vector(vector: Dict[str, Any]) -> VectorResult:
    """Run a single vector."""
    name = vector.get("name", "unknown")
    start_time = time.time()

    def done(error: Optional[str] = None) -> VectorResult:
        return VectorResult(
            vector_name=name,
            passed=error is None,
            execution_time_ms=(time.time() - start_time) * 1000,
            error=error,
        )

    pre_state = state_from_json(vector.get("pre_state") or {})
    tx = tx_from_json(vector["input"]["tx"])
    post_state, result = apply_tx(pre_state, tx)
    for line in result.logs:
        logger.debug(f"    {line}")

    expected = vector.get("expected", {})
    if result.ok != bool(expected.get("success", False)):
        return done(f"success mismatch: got {result.ok}")

    actual_error = error_name(result.error)
    if actual_error != expected.get("error"):
        return done(f"error mismatch: got {actual_error}, expected {expected.get('error')}")

    digest = expected.get("state_digest")
    if digest:
        actual_digest = compute_state_digest(state_to_json(post_state))
        if actual_digest != digest:
            return done(f"state digest mismatch: got {actual_digest}")

    return done()


def run_suite(path: str, stop_on_first_failure: bool = False) -> SuiteResult:
    suite = SuiteResult(suite_name=path)
    logger.info(f"Running suite: {path}")
    for vector in load_vectors(path):
        result = run_vector(vector)
        suite.results.append(result)

        status = "PASS" if result.passed else "FAIL"
        detail = f" ({result.error})" if result.error else ""
        logger.info(f"  [{status}] {result.vector_name}{detail}")

        if not result.passed and stop_on_first_failure:
            break
    return suite


def find_vector_files(vector_dir: str) -> List[str]:
    """Find all vector files in directory."""
    files = []
    for ext in ("yaml", "yml", "json"):
        files.extend(glob.glob(os.path.join(vector_dir, "**", f"*.{ext}"), recursive=True))
    return sorted(files)


@click.command()
@click.option(
    "--vectors",
    default=None,
    help="Path to vectors directory or specific vector file",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--stop-on-failure",
    is_flag=True,
    help="Stop on first vector failure",
)
def main(vectors: Optional[str], verbose: bool, stop_on_failure: bool) -> None:
    """Replay escrow vectors."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    # Load config from environment, then override with CLI args
    config = ReplayConfig.from_env()
    if verbose:
        config.verbose = True
    if stop_on_failure:
        config.stop_on_first_failure = True
    if config.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    vector_dir = vectors or config.vector_dir
    if os.path.isfile(vector_dir):
        vector_files = [vector_dir]
    else:
        vector_files = find_vector_files(vector_dir)

    if not vector_files:
        logger.error(f"No vector files found in {vector_dir}")
        sys.exit(1)

    logger.info(f"Found {len(vector_files)} vector files")

    total_failed = 0
    total = 0
    for path in vector_files:
        suite = run_suite(path, config.stop_on_first_failure)
        total += len(suite.results)
        total_failed += suite.failed
        if suite.failed and config.stop_on_first_failure:
            break

    logger.info(f"{total - total_failed}/{total} vectors passed")
    sys.exit(0 if total_failed == 0 else 1)


if __name__ == "__main__":
    main()
