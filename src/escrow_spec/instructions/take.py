"""Take: the taker fulfils the swap.

The vault's whole balance goes to the taker, the taker pays `receive` units
of the requested mint to the maker, and both the vault and the escrow record
are closed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from ..checks import (
    check_associated_token_account,
    check_mint_interface,
    check_program_account,
    check_signer,
    close_program_account,
    init_associated_token_account_if_needed,
)
from ..config import PROGRAM_ID, TAKE_ACCOUNT_COUNT, TAKE_DISCRIMINATOR
from ..encoding import load_escrow
from ..errors import ErrorCode, EscrowError, ProgramError, escrow_err
from ..pda import build_authority, escrow_seeds, verify_program_address
from ..programs.token import CloseAccount, TokenAccount, Transfer
from ..runtime import AccountView, InvokeContext


@dataclass
class TakeAccounts:
    taker: AccountView
    maker: AccountView
    escrow: AccountView
    mint_a: AccountView
    mint_b: AccountView
    vault: AccountView
    taker_ata_a: AccountView
    taker_ata_b: AccountView
    maker_ata_b: AccountView
    system_program: AccountView
    token_program: AccountView

    @classmethod
    def from_accounts(cls, accounts: List[AccountView]) -> "TakeAccounts":
        if len(accounts) < TAKE_ACCOUNT_COUNT:
            raise ProgramError(
                ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS, f"take expects {TAKE_ACCOUNT_COUNT} accounts, got {len(accounts)}"
            )
        (
            taker,
            maker,
            escrow,
            mint_a,
            mint_b,
            vault,
            taker_ata_a,
            taker_ata_b,
            maker_ata_b,
            system_program,
            token_program,
            _,
        ) = accounts[:TAKE_ACCOUNT_COUNT]

        check_signer(taker)
        check_program_account(escrow)
        check_mint_interface(mint_a)
        check_mint_interface(mint_b)
        check_associated_token_account(taker_ata_b, taker, mint_b, token_program)
        check_associated_token_account(vault, escrow, mint_a, token_program)

        return cls(
            taker=taker,
            maker=maker,
            escrow=escrow,
            mint_a=mint_a,
            mint_b=mint_b,
            vault=vault,
            taker_ata_a=taker_ata_a,
            taker_ata_b=taker_ata_b,
            maker_ata_b=maker_ata_b,
            system_program=system_program,
            token_program=token_program,
        )


class Take:
    DISCRIMINATOR = TAKE_DISCRIMINATOR

    def __init__(self, ctx: InvokeContext, accounts: TakeAccounts):
        self.ctx = ctx
        self.accounts = accounts

    @classmethod
    def from_accounts(cls, ctx: InvokeContext, accounts: List[AccountView]) -> "Take":
        a = TakeAccounts.from_accounts(accounts)
        init_associated_token_account_if_needed(
            ctx, a.taker_ata_a, a.mint_a, a.taker, a.taker, a.system_program, a.token_program
        )
        init_associated_token_account_if_needed(
            ctx, a.maker_ata_b, a.mint_b, a.taker, a.maker, a.system_program, a.token_program
        )
        return cls(ctx, a)

    def process(self) -> None:
        a = self.accounts
        token_program = a.token_program.address

        data = a.escrow.try_borrow()
        escrow = load_escrow(data.data)

        seeds = escrow_seeds(a.maker.address, escrow.seed, escrow.bump)
        verify_program_address(a.escrow.address, seeds, PROGRAM_ID)
        if (escrow.maker, escrow.mint_a, escrow.mint_b) != (a.maker.address, a.mint_a.address, a.mint_b.address):
            raise escrow_err(EscrowError.INVALID_ACCOUNT_DATA)

        signer = build_authority(*seeds)
        amount = TokenAccount.from_account_view(a.vault).amount
        self.ctx.log(f"take: releasing {amount} from vault, charging {escrow.receive}")

        Transfer(a.vault, a.taker_ata_a, a.escrow, amount, token_program).invoke_signed(self.ctx, [signer])
        CloseAccount(a.vault, a.maker, a.escrow, token_program).invoke_signed(self.ctx, [signer])
        data.release()

        Transfer(a.taker_ata_b, a.maker_ata_b, a.taker, escrow.receive, token_program).invoke(self.ctx)
        close_program_account(a.escrow, a.taker)
