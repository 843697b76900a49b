"""Core types for the escrow settlement spec.

The ledger is a flat map of accounts. Programs never own Python objects of
their own: everything they persist lives in an account's `data` bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass
class Account:
    address: bytes
    owner: bytes
    lamports: int = 0
    data: bytearray = field(default_factory=bytearray)
    executable: bool = False


@dataclass
class AccountMeta:
    address: bytes
    is_signer: bool = False
    is_writable: bool = False


@dataclass
class Instruction:
    program_id: bytes
    accounts: List[AccountMeta]
    data: bytes = b""


@dataclass
class Transaction:
    instructions: List[Instruction]
    # Addresses whose signatures accompany the transaction.
    signers: List[bytes] = field(default_factory=list)


@dataclass
class LedgerState:
    accounts: dict[bytes, Account] = field(default_factory=dict)
    slot: int = 0


# --- Escrow ---


@dataclass(frozen=True)
class Escrow:
    seed: int
    maker: bytes
    mint_a: bytes
    mint_b: bytes
    receive: int
    bump: int
