"""Escrow spec configuration constants.

Program identities are fixed for the lifetime of the process. `PROGRAM_ID`
may be overridden once, at import time, through `ESCROW_PROGRAM_ID` (hex).
"""

import os

ADDRESS_SIZE = 32


def _program_id_from_env(default: bytes) -> bytes:
    raw = os.environ.get("ESCROW_PROGRAM_ID", "").strip()
    if not raw:
        return default
    value = bytes.fromhex(raw[2:] if raw.startswith(("0x", "0X")) else raw)
    if len(value) != ADDRESS_SIZE:
        raise ValueError(f"ESCROW_PROGRAM_ID must be {ADDRESS_SIZE} bytes, got {len(value)}")
    return value


# Program identities
SYSTEM_PROGRAM_ID = bytes(32)
TOKEN_PROGRAM_ID = bytes.fromhex("06ddf6e1d765a193d9cbe146ceeb79ac1cb485ed5f5b37913a8cf5857eff00a9")
TOKEN_2022_PROGRAM_ID = bytes.fromhex("06ddf6e1ee758fde18425dbce46ccddab61afc4d83b90d27febdf928d8a18bfc")
ASSOCIATED_TOKEN_PROGRAM_ID = bytes.fromhex("8c97258f4e2489f1bb3d1029148e0d830b5a1399daff1084048e7bd8dbe9f859")
PROGRAM_ID = _program_id_from_env(
    bytes.fromhex("5e3c0f1a9b7d24e6c8a1f30d57b29e4c6a08d1f3b5c7e9a2d4f60817263a4b5c")
)

TOKEN_PROGRAM_IDS = frozenset({TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID})

# Address derivation
MAX_SEEDS = 16
MAX_SEED_LEN = 32
PDA_MARKER = b"ProgramDerivedAddress"
ESCROW_SEED_PREFIX = b"escrow"

# Instruction discriminators
TAKE_DISCRIMINATOR = 1
REFUND_DISCRIMINATOR = 2

# Fixed account list arity
TAKE_ACCOUNT_COUNT = 12
REFUND_ACCOUNT_COUNT = 8

# Runtime limits
MAX_INVOKE_DEPTH = 4
MAX_PERMITTED_DATA_LENGTH = 10 * 1024 * 1024

# Storage rent (lamports)
LAMPORTS_PER_SOL = 1_000_000_000
ACCOUNT_STORAGE_OVERHEAD = 128
LAMPORTS_PER_BYTE_YEAR = 3480
EXEMPTION_THRESHOLD_YEARS = 2

U64_MAX = (1 << 64) - 1


def minimum_balance(data_len: int) -> int:
    """Lamports needed for an account of `data_len` bytes to be rent exempt."""
    return (ACCOUNT_STORAGE_OVERHEAD + data_len) * LAMPORTS_PER_BYTE_YEAR * EXEMPTION_THRESHOLD_YEARS
