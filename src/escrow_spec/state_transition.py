"""State transition entrypoints for the escrow spec."""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Dict, Optional

from .config import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from .errors import ErrorCode, ProgramError
from .processor import process_instruction
from .programs import associated_token, system, token
from .runtime import InvokeContext, Processor
from .types import LedgerState, Transaction

logger = logging.getLogger(__name__)


def default_programs() -> Dict[bytes, Processor]:
    return {
        SYSTEM_PROGRAM_ID: system.process,
        TOKEN_PROGRAM_ID: token.process,
        TOKEN_2022_PROGRAM_ID: token.process,
        ASSOCIATED_TOKEN_PROGRAM_ID: associated_token.process,
        PROGRAM_ID: process_instruction,
    }


class TransitionResult:
    """Thin wrapper for verify/apply results."""

    def __init__(self, ok: bool, error: Optional[ProgramError] = None, logs: Optional[list[str]] = None):
        self.ok = ok
        self.error = error
        self.logs = logs or []

    @classmethod
    def success(cls, logs: Optional[list[str]] = None) -> "TransitionResult":
        return cls(True, None, logs)

    @classmethod
    def failure(cls, error: ProgramError, logs: Optional[list[str]] = None) -> "TransitionResult":
        return cls(False, error, logs)


def _verify_common(tx: Transaction) -> None:
    if not tx.instructions:
        raise ProgramError(ErrorCode.INVALID_ARGUMENT, "transaction has no instructions")
    if not tx.signers:
        raise ProgramError(ErrorCode.MISSING_REQUIRED_SIGNATURE, "transaction has no signatures")
    if len(set(tx.signers)) != len(tx.signers):
        raise ProgramError(ErrorCode.INVALID_ARGUMENT, "duplicate signature")


def verify_tx(state: LedgerState, tx: Transaction) -> TransitionResult:
    """Stateless checks: every signer flag must be backed by a signature."""
    try:
        _verify_common(tx)
        signed = set(tx.signers)
        for ix in tx.instructions:
            for meta in ix.accounts:
                if meta.is_signer and meta.address not in signed:
                    raise ProgramError(
                        ErrorCode.MISSING_REQUIRED_SIGNATURE, f"missing signature for {meta.address.hex()}"
                    )
        return TransitionResult.success()
    except ProgramError as exc:
        return TransitionResult.failure(exc)


def _prune(state: LedgerState) -> None:
    # Accounts without lamports do not survive the transaction.
    state.accounts = {
        addr: acct for addr, acct in state.accounts.items() if acct.lamports > 0 or acct.executable
    }


def apply_tx(
    state: LedgerState, tx: Transaction, programs: Optional[Dict[bytes, Processor]] = None
) -> tuple[LedgerState, TransitionResult]:
    """Apply tx atomically.

    Any failure, at any instruction or nesting depth, returns the input state
    unchanged together with the error and the program log up to the failure.
    """
    try:
        _verify_common(tx)
    except ProgramError as exc:
        return state, TransitionResult.failure(exc)

    working = deepcopy(state)
    ctx = InvokeContext(working, programs if programs is not None else default_programs(), tx.signers)
    try:
        for ix in tx.instructions:
            ctx.execute(ix)
    except ProgramError as exc:
        logger.info(f"transaction rejected: {exc}")
        return state, TransitionResult.failure(exc, ctx.logs)

    _prune(working)
    return working, TransitionResult.success(ctx.logs)


def apply_block(
    state: LedgerState, txs: list[Transaction], programs: Optional[Dict[bytes, Processor]] = None
) -> tuple[LedgerState, list[TransitionResult]]:
    """Apply transactions strictly in order, each one atomically.

    A failing transaction is rejected wholesale and leaves no trace; later
    transactions see the state as if it had never been submitted. Of two
    settlements racing on the same escrow the first in order wins.
    """
    working = state
    results = []
    for tx in txs:
        working, result = apply_tx(working, tx, programs)
        results.append(result)

    if working is state:
        working = deepcopy(state)
    working.slot += 1
    return working, results
