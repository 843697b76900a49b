"""Account validation predicates used by the escrow instructions.

Each check raises the specific escrow error (not-signer, invalid-owner,
invalid-account-data, invalid-address) so a failing transaction says which
account was wrong.
"""

from __future__ import annotations

from .config import ASSOCIATED_TOKEN_PROGRAM_ID, PROGRAM_ID, TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_IDS
from .encoding import ESCROW_LEN
from .errors import EscrowError, ProgramError, escrow_err
from .programs import associated_token
from .programs.token import ACCOUNT_LEN, MINT_LEN, AccountState, Mint, TokenAccount
from .runtime import AccountView, InvokeContext
from .types import AccountMeta, Instruction

# Token-2022 accounts carrying extensions store their account type here.
_EXTENSION_ACCOUNT_TYPE_OFFSET = ACCOUNT_LEN
_ACCOUNT_TYPE_MINT = 1
_ACCOUNT_TYPE_ACCOUNT = 2


def check_signer(account: AccountView) -> None:
    if not account.is_signer:
        raise escrow_err(EscrowError.NOT_SIGNER)


def check_program_account(account: AccountView) -> None:
    if not account.is_owned_by(PROGRAM_ID):
        raise escrow_err(EscrowError.INVALID_OWNER)
    if account.data_len != ESCROW_LEN:
        raise escrow_err(EscrowError.INVALID_ACCOUNT_DATA)


def _extension_type(account: AccountView, base_len: int) -> int:
    # Base-layout accounts have no type byte; extended ones are tagged.
    if account.data_len == base_len:
        return 0
    if account.owner != TOKEN_2022_PROGRAM_ID or account.data_len <= _EXTENSION_ACCOUNT_TYPE_OFFSET:
        raise escrow_err(EscrowError.INVALID_ACCOUNT_DATA)
    with account.try_borrow() as ref:
        return ref.data[_EXTENSION_ACCOUNT_TYPE_OFFSET]


def check_mint_interface(account: AccountView) -> None:
    if account.owner not in TOKEN_PROGRAM_IDS:
        raise escrow_err(EscrowError.INVALID_OWNER)
    kind = _extension_type(account, MINT_LEN)
    if kind not in (0, _ACCOUNT_TYPE_MINT):
        raise escrow_err(EscrowError.INVALID_ACCOUNT_DATA)
    try:
        with account.try_borrow() as ref:
            Mint.unpack(ref.data)
    except ProgramError as exc:
        raise escrow_err(EscrowError.INVALID_ACCOUNT_DATA) from exc


def check_token_account(account: AccountView) -> None:
    if account.owner not in TOKEN_PROGRAM_IDS:
        raise escrow_err(EscrowError.INVALID_OWNER)
    kind = _extension_type(account, ACCOUNT_LEN)
    if kind not in (0, _ACCOUNT_TYPE_ACCOUNT):
        raise escrow_err(EscrowError.INVALID_ACCOUNT_DATA)
    with account.try_borrow() as ref:
        state = TokenAccount.unpack_unchecked(ref.data).state
    if state == AccountState.UNINITIALIZED:
        raise escrow_err(EscrowError.INVALID_ACCOUNT_DATA)


def check_associated_token_account(
    account: AccountView, authority: AccountView, mint: AccountView, token_program: AccountView
) -> None:
    check_token_account(account)
    expected = associated_token.get_associated_token_address(
        authority.address, mint.address, token_program.address
    )
    if account.address != expected:
        raise escrow_err(EscrowError.INVALID_ADDRESS)


def init_associated_token_account(
    ctx: InvokeContext,
    account: AccountView,
    mint: AccountView,
    payer: AccountView,
    owner: AccountView,
    system_program: AccountView,
    token_program: AccountView,
) -> None:
    # A candidate that is not the derived address fails inside the
    # associated token program.
    ctx.invoke(
        Instruction(
            program_id=ASSOCIATED_TOKEN_PROGRAM_ID,
            accounts=[
                AccountMeta(payer.address, is_signer=True, is_writable=True),
                AccountMeta(account.address, is_writable=True),
                AccountMeta(owner.address),
                AccountMeta(mint.address),
                AccountMeta(system_program.address),
                AccountMeta(token_program.address),
            ],
            data=bytes([associated_token.CREATE_IDEMPOTENT]),
        )
    )


def init_associated_token_account_if_needed(
    ctx: InvokeContext,
    account: AccountView,
    mint: AccountView,
    payer: AccountView,
    owner: AccountView,
    system_program: AccountView,
    token_program: AccountView,
) -> None:
    """Create the associated account unless it already exists for (owner, mint)."""
    try:
        check_associated_token_account(account, owner, mint, token_program)
    except ProgramError:
        init_associated_token_account(ctx, account, mint, payer, owner, system_program, token_program)


def close_program_account(account: AccountView, destination: AccountView) -> None:
    """Close a program-owned account, reclaiming its lamports to `destination`."""
    lamports = account.lamports
    destination.credit(lamports)
    account.debit(lamports)
    account.close()
