"""Token program: mint/account layouts plus transfer, close and initialize.

Layouts follow the widely deployed token program (82-byte mints, 165-byte
token accounts, `COption` fields as u32 tag + fixed body). The same
processor serves the token-2022 program id for base-layout accounts.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import List, Optional, Sequence

from ..config import TOKEN_PROGRAM_ID, TOKEN_PROGRAM_IDS, U64_MAX, minimum_balance
from ..encoding import Reader, Writer
from ..errors import ErrorCode, ProgramError
from ..pda import Signer
from ..runtime import AccountView, InvokeContext
from ..types import AccountMeta, Instruction

MINT_LEN = 82
ACCOUNT_LEN = 165

TRANSFER = 3
CLOSE_ACCOUNT = 9
INITIALIZE_ACCOUNT3 = 18


class TokenError(IntEnum):
    NOT_RENT_EXEMPT = 0
    INSUFFICIENT_FUNDS = 1
    INVALID_MINT = 2
    MINT_MISMATCH = 3
    OWNER_MISMATCH = 4
    ALREADY_IN_USE = 6
    UNINITIALIZED_STATE = 9
    NON_NATIVE_HAS_BALANCE = 11
    OVERFLOW = 14
    ACCOUNT_FROZEN = 17


class AccountState(IntEnum):
    UNINITIALIZED = 0
    INITIALIZED = 1
    FROZEN = 2


@dataclass(frozen=True)
class Mint:
    mint_authority: Optional[bytes]
    supply: int
    decimals: int
    is_initialized: bool = True
    freeze_authority: Optional[bytes] = None

    def pack(self) -> bytes:
        w = Writer(bytearray())
        w.write_option_address(self.mint_authority)
        w.write_u64(self.supply)
        w.write_u8(self.decimals)
        w.write_bool(self.is_initialized)
        w.write_option_address(self.freeze_authority)
        return bytes(w.buf)

    @classmethod
    def unpack(cls, data: bytes) -> "Mint":
        if len(data) < MINT_LEN:
            raise ProgramError(ErrorCode.INVALID_ACCOUNT_DATA, "mint data too short")
        r = Reader(data[:MINT_LEN])
        mint = cls(
            mint_authority=r.read_option_address(),
            supply=r.read_u64(),
            decimals=r.read_u8(),
            is_initialized=r.read_bool(),
            freeze_authority=r.read_option_address(),
        )
        if not mint.is_initialized:
            raise ProgramError(ErrorCode.UNINITIALIZED_ACCOUNT, "mint not initialized")
        return mint

    @classmethod
    def from_account_view(cls, view: AccountView) -> "Mint":
        if view.owner not in TOKEN_PROGRAM_IDS:
            raise ProgramError(ErrorCode.INVALID_ACCOUNT_OWNER, "mint not owned by a token program")
        with view.try_borrow() as ref:
            return cls.unpack(ref.data)


@dataclass(frozen=True)
class TokenAccount:
    mint: bytes
    owner: bytes
    amount: int = 0
    delegate: Optional[bytes] = None
    state: AccountState = AccountState.INITIALIZED
    is_native: Optional[int] = None
    delegated_amount: int = 0
    close_authority: Optional[bytes] = None

    def pack(self) -> bytes:
        w = Writer(bytearray())
        w.write_address(self.mint)
        w.write_address(self.owner)
        w.write_u64(self.amount)
        w.write_option_address(self.delegate)
        w.write_u8(self.state)
        w.write_option_u64(self.is_native)
        w.write_u64(self.delegated_amount)
        w.write_option_address(self.close_authority)
        return bytes(w.buf)

    @classmethod
    def unpack_unchecked(cls, data: bytes) -> "TokenAccount":
        if len(data) < ACCOUNT_LEN:
            raise ProgramError(ErrorCode.INVALID_ACCOUNT_DATA, "token account data too short")
        r = Reader(data[:ACCOUNT_LEN])
        mint = r.read_address()
        owner = r.read_address()
        amount = r.read_u64()
        delegate = r.read_option_address()
        state_byte = r.read_u8()
        if state_byte > AccountState.FROZEN:
            raise ProgramError(ErrorCode.INVALID_ACCOUNT_DATA, f"invalid account state {state_byte}")
        return cls(
            mint=mint,
            owner=owner,
            amount=amount,
            delegate=delegate,
            state=AccountState(state_byte),
            is_native=r.read_option_u64(),
            delegated_amount=r.read_u64(),
            close_authority=r.read_option_address(),
        )

    @classmethod
    def unpack(cls, data: bytes) -> "TokenAccount":
        account = cls.unpack_unchecked(data)
        if account.state == AccountState.UNINITIALIZED:
            raise ProgramError(TokenError.UNINITIALIZED_STATE, "token account not initialized")
        return account

    @classmethod
    def from_account_view(cls, view: AccountView) -> "TokenAccount":
        if view.owner not in TOKEN_PROGRAM_IDS:
            raise ProgramError(ErrorCode.INVALID_ACCOUNT_OWNER, "token account not owned by a token program")
        with view.try_borrow() as ref:
            return cls.unpack(ref.data)


# --- Instruction builders ---


def transfer(
    source: bytes, destination: bytes, authority: bytes, amount: int, token_program: bytes = TOKEN_PROGRAM_ID
) -> Instruction:
    w = Writer(bytearray())
    w.write_u8(TRANSFER)
    w.write_u64(amount)
    return Instruction(
        program_id=token_program,
        accounts=[
            AccountMeta(source, is_writable=True),
            AccountMeta(destination, is_writable=True),
            AccountMeta(authority, is_signer=True),
        ],
        data=bytes(w.buf),
    )


def close_account(
    account: bytes, destination: bytes, authority: bytes, token_program: bytes = TOKEN_PROGRAM_ID
) -> Instruction:
    return Instruction(
        program_id=token_program,
        accounts=[
            AccountMeta(account, is_writable=True),
            AccountMeta(destination, is_writable=True),
            AccountMeta(authority, is_signer=True),
        ],
        data=bytes([CLOSE_ACCOUNT]),
    )


def initialize_account3(
    account: bytes, mint: bytes, owner: bytes, token_program: bytes = TOKEN_PROGRAM_ID
) -> Instruction:
    w = Writer(bytearray())
    w.write_u8(INITIALIZE_ACCOUNT3)
    w.write_address(owner)
    return Instruction(
        program_id=token_program,
        accounts=[AccountMeta(account, is_writable=True), AccountMeta(mint)],
        data=bytes(w.buf),
    )


@dataclass
class Transfer:
    """Cross-program transfer issued from another program."""

    source: AccountView
    destination: AccountView
    authority: AccountView
    amount: int
    token_program: bytes = TOKEN_PROGRAM_ID

    def instruction(self) -> Instruction:
        return transfer(
            self.source.address, self.destination.address, self.authority.address, self.amount, self.token_program
        )

    def invoke(self, ctx: InvokeContext) -> None:
        ctx.invoke(self.instruction())

    def invoke_signed(self, ctx: InvokeContext, signers: Sequence[Signer]) -> None:
        ctx.invoke_signed(self.instruction(), signers)


@dataclass
class CloseAccount:
    account: AccountView
    destination: AccountView
    authority: AccountView
    token_program: bytes = TOKEN_PROGRAM_ID

    def instruction(self) -> Instruction:
        return close_account(self.account.address, self.destination.address, self.authority.address, self.token_program)

    def invoke(self, ctx: InvokeContext) -> None:
        ctx.invoke(self.instruction())

    def invoke_signed(self, ctx: InvokeContext, signers: Sequence[Signer]) -> None:
        ctx.invoke_signed(self.instruction(), signers)


# --- Processor ---


def process(ctx: InvokeContext, program_id: bytes, accounts: List[AccountView], data: bytes) -> None:
    if not data:
        raise ProgramError(ErrorCode.INVALID_INSTRUCTION_DATA, "missing token instruction tag")
    tag = data[0]
    r = Reader(data[1:], ErrorCode.INVALID_INSTRUCTION_DATA)
    if tag == TRANSFER:
        _process_transfer(program_id, accounts, r.read_u64())
    elif tag == CLOSE_ACCOUNT:
        _process_close_account(program_id, accounts)
    elif tag == INITIALIZE_ACCOUNT3:
        _process_initialize_account3(program_id, accounts, r.read_address())
    else:
        raise ProgramError(ErrorCode.INVALID_INSTRUCTION_DATA, f"unsupported token instruction {tag}")


def _require_accounts(accounts: List[AccountView], n: int) -> None:
    if len(accounts) < n:
        raise ProgramError(ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS, f"expected {n} accounts, got {len(accounts)}")


def _load(view: AccountView, program_id: bytes) -> TokenAccount:
    if not view.is_owned_by(program_id):
        raise ProgramError(ErrorCode.INCORRECT_PROGRAM_ID, "token account owned by another program")
    with view.try_borrow() as ref:
        return TokenAccount.unpack(ref.data)


def _store(view: AccountView, account: TokenAccount) -> None:
    with view.try_borrow_mut() as ref:
        ref.data[:ACCOUNT_LEN] = account.pack()


def _validate_owner(expected: bytes, authority: AccountView) -> None:
    if authority.address != expected:
        raise ProgramError(TokenError.OWNER_MISMATCH, "authority does not own the account")
    if not authority.is_signer:
        raise ProgramError(ErrorCode.MISSING_REQUIRED_SIGNATURE, "account owner must sign")


def _process_transfer(program_id: bytes, accounts: List[AccountView], amount: int) -> None:
    _require_accounts(accounts, 3)
    source_view, destination_view, authority = accounts[0], accounts[1], accounts[2]

    source = _load(source_view, program_id)
    destination = _load(destination_view, program_id)
    if AccountState.FROZEN in (source.state, destination.state):
        raise ProgramError(TokenError.ACCOUNT_FROZEN, "account frozen")
    if source.amount < amount:
        raise ProgramError(TokenError.INSUFFICIENT_FUNDS, "insufficient token balance")
    if source.mint != destination.mint:
        raise ProgramError(TokenError.MINT_MISMATCH, "source and destination mints differ")
    _validate_owner(source.owner, authority)

    if source_view.address == destination_view.address:
        return
    if destination.amount + amount > U64_MAX:
        raise ProgramError(TokenError.OVERFLOW, "destination balance overflow")

    _store(source_view, replace(source, amount=source.amount - amount))
    _store(destination_view, replace(destination, amount=destination.amount + amount))


def _process_close_account(program_id: bytes, accounts: List[AccountView]) -> None:
    _require_accounts(accounts, 3)
    account_view, destination, authority = accounts[0], accounts[1], accounts[2]
    if account_view.address == destination.address:
        raise ProgramError(ErrorCode.INVALID_ACCOUNT_DATA, "cannot close an account into itself")

    account = _load(account_view, program_id)
    if account.is_native is None and account.amount != 0:
        raise ProgramError(TokenError.NON_NATIVE_HAS_BALANCE, "account still holds tokens")
    _validate_owner(account.close_authority or account.owner, authority)

    lamports = account_view.lamports
    destination.credit(lamports)
    account_view.debit(lamports)
    with account_view.try_borrow_mut() as ref:
        ref.data[:] = bytes(len(ref.data))
    account_view.close()


def _process_initialize_account3(program_id: bytes, accounts: List[AccountView], owner: bytes) -> None:
    _require_accounts(accounts, 2)
    account_view, mint_view = accounts[0], accounts[1]

    if not account_view.is_owned_by(program_id):
        raise ProgramError(ErrorCode.INCORRECT_PROGRAM_ID, "account not owned by the token program")
    if account_view.data_len != ACCOUNT_LEN:
        raise ProgramError(ErrorCode.INVALID_ACCOUNT_DATA, "token account has the wrong size")
    with account_view.try_borrow() as ref:
        existing = TokenAccount.unpack_unchecked(ref.data)
    if existing.state != AccountState.UNINITIALIZED:
        raise ProgramError(TokenError.ALREADY_IN_USE, "token account already initialized")
    if account_view.lamports < minimum_balance(ACCOUNT_LEN):
        raise ProgramError(TokenError.NOT_RENT_EXEMPT, "token account not rent exempt")
    if not mint_view.is_owned_by(program_id):
        raise ProgramError(TokenError.INVALID_MINT, "mint owned by another program")
    try:
        with mint_view.try_borrow() as ref:
            Mint.unpack(ref.data)
    except ProgramError as exc:
        raise ProgramError(TokenError.INVALID_MINT, f"invalid mint: {exc.message}") from exc

    _store(account_view, TokenAccount(mint=mint_view.address, owner=owner))
