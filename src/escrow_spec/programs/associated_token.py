"""Associated token account program.

An associated token account lives at the address derived from
(wallet, token program, mint) under this program's id, so every
(owner, mint) pair has exactly one canonical token account.
"""

from __future__ import annotations

from enum import IntEnum
from typing import List

from ..config import ASSOCIATED_TOKEN_PROGRAM_ID, SYSTEM_PROGRAM_ID, TOKEN_PROGRAM_ID, minimum_balance
from ..errors import ErrorCode, ProgramError
from ..pda import build_authority, find_program_address
from ..runtime import AccountView, InvokeContext
from ..types import AccountMeta, Instruction
from . import system, token

CREATE = 0
CREATE_IDEMPOTENT = 1


class AssociatedTokenError(IntEnum):
    INVALID_OWNER = 0


def find_associated_token_address(
    wallet: bytes, mint: bytes, token_program: bytes = TOKEN_PROGRAM_ID
) -> tuple[bytes, int]:
    return find_program_address([wallet, token_program, mint], ASSOCIATED_TOKEN_PROGRAM_ID)


def get_associated_token_address(wallet: bytes, mint: bytes, token_program: bytes = TOKEN_PROGRAM_ID) -> bytes:
    return find_associated_token_address(wallet, mint, token_program)[0]


def create_associated_token_account(
    payer: bytes,
    wallet: bytes,
    mint: bytes,
    token_program: bytes = TOKEN_PROGRAM_ID,
    idempotent: bool = True,
) -> Instruction:
    return Instruction(
        program_id=ASSOCIATED_TOKEN_PROGRAM_ID,
        accounts=[
            AccountMeta(payer, is_signer=True, is_writable=True),
            AccountMeta(get_associated_token_address(wallet, mint, token_program), is_writable=True),
            AccountMeta(wallet),
            AccountMeta(mint),
            AccountMeta(SYSTEM_PROGRAM_ID),
            AccountMeta(token_program),
        ],
        data=bytes([CREATE_IDEMPOTENT if idempotent else CREATE]),
    )


def process(ctx: InvokeContext, program_id: bytes, accounts: List[AccountView], data: bytes) -> None:
    mode = data[0] if data else CREATE
    if mode not in (CREATE, CREATE_IDEMPOTENT):
        raise ProgramError(ErrorCode.INVALID_INSTRUCTION_DATA, f"unsupported associated token instruction {mode}")
    if len(accounts) < 6:
        raise ProgramError(ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS, "create needs 6 accounts")
    payer, associated, wallet, mint, _system_program, token_program = accounts[:6]

    address, bump = find_associated_token_address(wallet.address, mint.address, token_program.address)
    if address != associated.address:
        raise ProgramError(ErrorCode.INVALID_SEEDS, "associated address does not match seed derivation")

    if mode == CREATE_IDEMPOTENT and associated.is_owned_by(token_program.address):
        existing = token.TokenAccount.from_account_view(associated)
        if existing.owner != wallet.address:
            raise ProgramError(AssociatedTokenError.INVALID_OWNER, "associated account owned by another wallet")
        if existing.mint != mint.address:
            raise ProgramError(ErrorCode.INVALID_ACCOUNT_DATA, "associated account holds another mint")
        ctx.log("associated token account already exists")
        return

    if not mint.is_owned_by(token_program.address):
        raise ProgramError(ErrorCode.INCORRECT_PROGRAM_ID, "mint not owned by the given token program")

    ctx.log("Create")
    signer = build_authority(wallet.address, token_program.address, mint.address, bytes([bump]))
    ctx.invoke_signed(
        system.create_account(
            payer.address,
            associated.address,
            minimum_balance(token.ACCOUNT_LEN),
            token.ACCOUNT_LEN,
            token_program.address,
        ),
        [signer],
    )
    ctx.invoke(token.initialize_account3(associated.address, mint.address, wallet.address, token_program.address))
