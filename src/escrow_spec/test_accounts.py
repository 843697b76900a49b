"""Deterministic test identities and pre-state builders.

Escrow records and vaults are placed into the pre-state directly, in the
shape the (out of scope) make instruction leaves them.
"""

from __future__ import annotations

from typing import Optional

from blake3 import blake3

from .client import find_escrow_address, vault_address
from .config import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    LAMPORTS_PER_SOL,
    PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
    minimum_balance,
)
from .encoding import ESCROW_LEN, encode_escrow
from .programs.associated_token import get_associated_token_address
from .programs.token import ACCOUNT_LEN, MINT_LEN, Mint, TokenAccount
from .types import Account, Escrow, LedgerState


def _identity(name: str) -> bytes:
    return blake3(b"escrow-spec/identity/" + name.encode()).digest()


# Named identities (32-byte addresses)
MAKER = _identity("maker")
TAKER = _identity("taker")
MALLORY = _identity("mallory")
MINT_AUTHORITY = _identity("mint-authority")
MINT_X = _identity("mint-x")
MINT_Y = _identity("mint-y")

DEFAULT_WALLET_LAMPORTS = 10 * LAMPORTS_PER_SOL


def wallet(address: bytes, lamports: int = DEFAULT_WALLET_LAMPORTS) -> Account:
    return Account(address=address, owner=SYSTEM_PROGRAM_ID, lamports=lamports)


def program_accounts() -> list[Account]:
    return [
        Account(address=pid, owner=SYSTEM_PROGRAM_ID, lamports=1, executable=True)
        for pid in (SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID, TOKEN_2022_PROGRAM_ID, ASSOCIATED_TOKEN_PROGRAM_ID, PROGRAM_ID)
    ]


def mint_account(address: bytes, decimals: int = 6, supply: int = 0, token_program: bytes = TOKEN_PROGRAM_ID) -> Account:
    mint = Mint(mint_authority=MINT_AUTHORITY, supply=supply, decimals=decimals)
    return Account(
        address=address,
        owner=token_program,
        lamports=minimum_balance(MINT_LEN),
        data=bytearray(mint.pack()),
    )


def token_account(
    owner: bytes,
    mint: bytes,
    amount: int,
    token_program: bytes = TOKEN_PROGRAM_ID,
    address: Optional[bytes] = None,
) -> Account:
    """Initialized token account, at the (owner, mint) associated address by default."""
    if address is None:
        address = get_associated_token_address(owner, mint, token_program)
    return Account(
        address=address,
        owner=token_program,
        lamports=minimum_balance(ACCOUNT_LEN),
        data=bytearray(TokenAccount(mint=mint, owner=owner, amount=amount).pack()),
    )


def escrow_record(
    maker: bytes,
    seed: int,
    mint_a: bytes,
    mint_b: bytes,
    receive: int,
    address: Optional[bytes] = None,
    bump: Optional[int] = None,
) -> Account:
    derived, canonical = find_escrow_address(maker, seed)
    escrow = Escrow(
        seed=seed,
        maker=maker,
        mint_a=mint_a,
        mint_b=mint_b,
        receive=receive,
        bump=canonical if bump is None else bump,
    )
    return Account(
        address=derived if address is None else address,
        owner=PROGRAM_ID,
        lamports=minimum_balance(ESCROW_LEN),
        data=bytearray(encode_escrow(escrow)),
    )


def put(state: LedgerState, *accounts: Account) -> LedgerState:
    for account in accounts:
        state.accounts[account.address] = account
    return state


def escrow_state(
    seed: int = 42,
    deposit: int = 500,
    receive: int = 1000,
    taker_b_balance: int = 5000,
    maker: bytes = MAKER,
    taker: bytes = TAKER,
    mint_a: bytes = MINT_X,
    mint_b: bytes = MINT_Y,
) -> tuple[LedgerState, bytes]:
    """A funded escrow plus both wallets; returns (state, escrow address).

    The taker holds `taker_b_balance` of mint_b. Neither the taker's mint_a
    account nor the maker's mint_b account exists yet.
    """
    state = LedgerState()
    put(state, *program_accounts())
    put(
        state,
        wallet(maker),
        wallet(taker),
        mint_account(mint_a, supply=deposit),
        mint_account(mint_b, supply=taker_b_balance),
    )
    record = escrow_record(maker, seed, mint_a, mint_b, receive)
    put(
        state,
        record,
        token_account(record.address, mint_a, deposit, address=vault_address(record.address, mint_a)),
        token_account(taker, mint_b, taker_b_balance),
    )
    return state, record.address
