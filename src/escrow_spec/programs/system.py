"""System program: account creation and lamport transfers."""

from __future__ import annotations

from enum import IntEnum
from typing import List

from ..config import MAX_PERMITTED_DATA_LENGTH, SYSTEM_PROGRAM_ID
from ..encoding import Reader, Writer
from ..errors import ErrorCode, ProgramError
from ..runtime import AccountView, InvokeContext
from ..types import AccountMeta, Instruction

CREATE_ACCOUNT = 0
TRANSFER = 2


class SystemProgramError(IntEnum):
    ACCOUNT_ALREADY_IN_USE = 0
    RESULT_WITH_NEGATIVE_LAMPORTS = 1
    INVALID_PROGRAM_ID = 2
    INVALID_ACCOUNT_DATA_LENGTH = 3


def create_account(funder: bytes, new_account: bytes, lamports: int, space: int, owner: bytes) -> Instruction:
    w = Writer(bytearray())
    w.write_u32(CREATE_ACCOUNT)
    w.write_u64(lamports)
    w.write_u64(space)
    w.write_address(owner)
    return Instruction(
        program_id=SYSTEM_PROGRAM_ID,
        accounts=[
            AccountMeta(funder, is_signer=True, is_writable=True),
            AccountMeta(new_account, is_signer=True, is_writable=True),
        ],
        data=bytes(w.buf),
    )


def transfer(source: bytes, destination: bytes, lamports: int) -> Instruction:
    w = Writer(bytearray())
    w.write_u32(TRANSFER)
    w.write_u64(lamports)
    return Instruction(
        program_id=SYSTEM_PROGRAM_ID,
        accounts=[
            AccountMeta(source, is_signer=True, is_writable=True),
            AccountMeta(destination, is_writable=True),
        ],
        data=bytes(w.buf),
    )


def process(ctx: InvokeContext, program_id: bytes, accounts: List[AccountView], data: bytes) -> None:
    r = Reader(data, ErrorCode.INVALID_INSTRUCTION_DATA)
    tag = r.read_u32()
    if tag == CREATE_ACCOUNT:
        _process_create_account(accounts, r.read_u64(), r.read_u64(), r.read_address())
    elif tag == TRANSFER:
        _process_transfer(accounts, r.read_u64())
    else:
        raise ProgramError(ErrorCode.INVALID_INSTRUCTION_DATA, f"unsupported system instruction {tag}")


def _process_create_account(accounts: List[AccountView], lamports: int, space: int, owner: bytes) -> None:
    if len(accounts) < 2:
        raise ProgramError(ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS, "create_account needs 2 accounts")
    funder, new_account = accounts[0], accounts[1]

    if not funder.is_signer or not new_account.is_signer:
        raise ProgramError(ErrorCode.MISSING_REQUIRED_SIGNATURE, "create_account requires both signatures")
    if new_account.lamports > 0 or new_account.data_len > 0 or not new_account.is_owned_by(SYSTEM_PROGRAM_ID):
        raise ProgramError(SystemProgramError.ACCOUNT_ALREADY_IN_USE, "account already in use")
    if space > MAX_PERMITTED_DATA_LENGTH:
        raise ProgramError(SystemProgramError.INVALID_ACCOUNT_DATA_LENGTH, "requested space too large")
    if funder.lamports < lamports:
        raise ProgramError(SystemProgramError.RESULT_WITH_NEGATIVE_LAMPORTS, "funder has insufficient lamports")

    funder.debit(lamports)
    new_account.credit(lamports)
    new_account.allocate(space)
    new_account.assign(owner)


def _process_transfer(accounts: List[AccountView], lamports: int) -> None:
    if len(accounts) < 2:
        raise ProgramError(ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS, "transfer needs 2 accounts")
    source, destination = accounts[0], accounts[1]

    if not source.is_signer:
        raise ProgramError(ErrorCode.MISSING_REQUIRED_SIGNATURE, "transfer source must sign")
    if source.data_len > 0:
        raise ProgramError(ErrorCode.INVALID_ARGUMENT, "transfer source must not carry data")
    if source.lamports < lamports:
        raise ProgramError(SystemProgramError.RESULT_WITH_NEGATIVE_LAMPORTS, "insufficient lamports")

    source.debit(lamports)
    destination.credit(lamports)
