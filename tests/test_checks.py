"""Account validation specs."""

from __future__ import annotations

import pytest

from escrow_spec.checks import (
    check_associated_token_account,
    check_mint_interface,
    check_program_account,
    check_signer,
    check_token_account,
)
from escrow_spec.config import PROGRAM_ID, SYSTEM_PROGRAM_ID, TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID
from escrow_spec.errors import EscrowError, ProgramError
from escrow_spec.programs.token import ACCOUNT_LEN, MINT_LEN, Mint
from escrow_spec.runtime import AccountView, InvokeContext
from escrow_spec.test_accounts import MAKER, MINT_AUTHORITY, MINT_X, TAKER, escrow_record, mint_account, token_account
from escrow_spec.types import Account, LedgerState


def _view(account: Account, is_signer: bool = False) -> AccountView:
    ctx = InvokeContext(LedgerState(accounts={account.address: account}), {})
    return AccountView(ctx, account, is_signer, False)


def _extended_mint(account_type: int, owner: bytes = TOKEN_2022_PROGRAM_ID) -> Account:
    base = Mint(mint_authority=MINT_AUTHORITY, supply=0, decimals=6).pack()
    data = base + bytes(ACCOUNT_LEN - MINT_LEN) + bytes([account_type]) + bytes(8)
    return Account(address=MINT_X, owner=owner, lamports=1, data=bytearray(data))


def _fails_with(code: EscrowError, check, *args) -> None:
    with pytest.raises(ProgramError) as exc:
        check(*args)
    assert exc.value.code == code


def test_check_signer() -> None:
    check_signer(_view(Account(address=MAKER, owner=SYSTEM_PROGRAM_ID), is_signer=True))
    _fails_with(EscrowError.NOT_SIGNER, check_signer, _view(Account(address=MAKER, owner=SYSTEM_PROGRAM_ID)))


def test_check_program_account() -> None:
    record = escrow_record(MAKER, 42, MINT_X, MINT_X, 1)
    check_program_account(_view(record))

    _fails_with(
        EscrowError.INVALID_ACCOUNT_DATA,
        check_program_account,
        _view(Account(address=record.address, owner=PROGRAM_ID, data=bytearray(112))),
    )
    record.owner = SYSTEM_PROGRAM_ID
    _fails_with(EscrowError.INVALID_OWNER, check_program_account, _view(record))


def test_check_mint_interface_base_layout() -> None:
    check_mint_interface(_view(mint_account(MINT_X)))
    check_mint_interface(_view(mint_account(MINT_X, token_program=TOKEN_2022_PROGRAM_ID)))


def test_check_mint_interface_extended_layout() -> None:
    check_mint_interface(_view(_extended_mint(1)))
    _fails_with(EscrowError.INVALID_ACCOUNT_DATA, check_mint_interface, _view(_extended_mint(2)))
    _fails_with(
        EscrowError.INVALID_ACCOUNT_DATA, check_mint_interface, _view(_extended_mint(1, owner=TOKEN_PROGRAM_ID))
    )


def test_check_mint_interface_rejects() -> None:
    _fails_with(EscrowError.INVALID_OWNER, check_mint_interface, _view(Account(address=MINT_X, owner=SYSTEM_PROGRAM_ID)))
    uninitialized = Account(address=MINT_X, owner=TOKEN_PROGRAM_ID, data=bytearray(MINT_LEN))
    _fails_with(EscrowError.INVALID_ACCOUNT_DATA, check_mint_interface, _view(uninitialized))


def test_check_token_account() -> None:
    check_token_account(_view(token_account(TAKER, MINT_X, 5)))
    uninitialized = Account(address=TAKER, owner=TOKEN_PROGRAM_ID, data=bytearray(ACCOUNT_LEN))
    _fails_with(EscrowError.INVALID_ACCOUNT_DATA, check_token_account, _view(uninitialized))


def test_check_associated_token_account() -> None:
    token_program = _view(Account(address=TOKEN_PROGRAM_ID, owner=SYSTEM_PROGRAM_ID, executable=True))
    wallet = _view(Account(address=TAKER, owner=SYSTEM_PROGRAM_ID))
    mint = _view(mint_account(MINT_X))

    check_associated_token_account(_view(token_account(TAKER, MINT_X, 0)), wallet, mint, token_program)
    misplaced = token_account(TAKER, MINT_X, 0, address=MAKER)
    _fails_with(EscrowError.INVALID_ADDRESS, check_associated_token_account, _view(misplaced), wallet, mint, token_program)
