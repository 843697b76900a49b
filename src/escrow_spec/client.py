"""Client-side helpers: derive escrow addresses and build settlement instructions."""

from __future__ import annotations

from .config import (
    ESCROW_SEED_PREFIX,
    PROGRAM_ID,
    REFUND_DISCRIMINATOR,
    SYSTEM_PROGRAM_ID,
    TAKE_DISCRIMINATOR,
    TOKEN_PROGRAM_ID,
)
from .pda import find_program_address
from .programs.associated_token import get_associated_token_address
from .types import AccountMeta, Instruction, Transaction


def find_escrow_address(maker: bytes, seed: int) -> tuple[bytes, int]:
    return find_program_address([ESCROW_SEED_PREFIX, maker, seed.to_bytes(8, "little")], PROGRAM_ID)


def vault_address(escrow: bytes, mint_a: bytes, token_program: bytes = TOKEN_PROGRAM_ID) -> bytes:
    return get_associated_token_address(escrow, mint_a, token_program)


def take_instruction(
    taker: bytes,
    maker: bytes,
    escrow: bytes,
    mint_a: bytes,
    mint_b: bytes,
    token_program: bytes = TOKEN_PROGRAM_ID,
) -> Instruction:
    return Instruction(
        program_id=PROGRAM_ID,
        accounts=[
            AccountMeta(taker, is_signer=True, is_writable=True),
            AccountMeta(maker, is_writable=True),
            AccountMeta(escrow, is_writable=True),
            AccountMeta(mint_a),
            AccountMeta(mint_b),
            AccountMeta(vault_address(escrow, mint_a, token_program), is_writable=True),
            AccountMeta(get_associated_token_address(taker, mint_a, token_program), is_writable=True),
            AccountMeta(get_associated_token_address(taker, mint_b, token_program), is_writable=True),
            AccountMeta(get_associated_token_address(maker, mint_b, token_program), is_writable=True),
            AccountMeta(SYSTEM_PROGRAM_ID),
            AccountMeta(token_program),
            AccountMeta(PROGRAM_ID),
        ],
        data=bytes([TAKE_DISCRIMINATOR]),
    )


def refund_instruction(
    maker: bytes,
    escrow: bytes,
    mint_a: bytes,
    token_program: bytes = TOKEN_PROGRAM_ID,
) -> Instruction:
    return Instruction(
        program_id=PROGRAM_ID,
        accounts=[
            AccountMeta(maker, is_signer=True, is_writable=True),
            AccountMeta(escrow, is_writable=True),
            AccountMeta(mint_a),
            AccountMeta(vault_address(escrow, mint_a, token_program), is_writable=True),
            AccountMeta(get_associated_token_address(maker, mint_a, token_program), is_writable=True),
            AccountMeta(SYSTEM_PROGRAM_ID),
            AccountMeta(token_program),
            AccountMeta(PROGRAM_ID),
        ],
        data=bytes([REFUND_DISCRIMINATOR]),
    )


def take_transaction(taker: bytes, maker: bytes, escrow: bytes, mint_a: bytes, mint_b: bytes) -> Transaction:
    return Transaction(instructions=[take_instruction(taker, maker, escrow, mint_a, mint_b)], signers=[taker])


def refund_transaction(maker: bytes, escrow: bytes, mint_a: bytes) -> Transaction:
    return Transaction(instructions=[refund_instruction(maker, escrow, mint_a)], signers=[maker])
