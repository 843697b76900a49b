"""Refund: the maker cancels and takes its deposit back."""

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
from ..config import PROGRAM_ID, REFUND_ACCOUNT_COUNT, REFUND_DISCRIMINATOR
from ..encoding import load_escrow
from ..errors import ErrorCode, EscrowError, ProgramError, escrow_err
from ..pda import build_authority, escrow_seeds, verify_program_address
from ..programs.token import CloseAccount, TokenAccount, Transfer
from ..runtime import AccountView, InvokeContext


@dataclass
class RefundAccounts:
    maker: AccountView
    escrow: AccountView
    mint_a: AccountView
    vault: AccountView
    maker_ata_a: AccountView
    system_program: AccountView
    token_program: AccountView

    @classmethod
    def from_accounts(cls, accounts: List[AccountView]) -> "RefundAccounts":
        if len(accounts) < REFUND_ACCOUNT_COUNT:
            raise ProgramError(
                ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS,
                f"refund expects {REFUND_ACCOUNT_COUNT} accounts, got {len(accounts)}",
            )
        maker, escrow, mint_a, vault, maker_ata_a, system_program, token_program, _ = accounts[:REFUND_ACCOUNT_COUNT]

        check_signer(maker)
        check_program_account(escrow)
        check_mint_interface(mint_a)
        check_associated_token_account(vault, escrow, mint_a, token_program)

        return cls(
            maker=maker,
            escrow=escrow,
            mint_a=mint_a,
            vault=vault,
            maker_ata_a=maker_ata_a,
            system_program=system_program,
            token_program=token_program,
        )


class Refund:
    DISCRIMINATOR = REFUND_DISCRIMINATOR

    def __init__(self, ctx: InvokeContext, accounts: RefundAccounts):
        self.ctx = ctx
        self.accounts = accounts

    @classmethod
    def from_accounts(cls, ctx: InvokeContext, accounts: List[AccountView]) -> "Refund":
        a = RefundAccounts.from_accounts(accounts)
        init_associated_token_account_if_needed(
            ctx, a.maker_ata_a, a.mint_a, a.maker, a.maker, a.system_program, a.token_program
        )
        return cls(ctx, a)

    def process(self) -> None:
        a = self.accounts
        token_program = a.token_program.address

        data = a.escrow.try_borrow()
        escrow = load_escrow(data.data)

        seeds = escrow_seeds(a.maker.address, escrow.seed, escrow.bump)
        verify_program_address(a.escrow.address, seeds, PROGRAM_ID)
        # Only the maker named in the record may refund.
        if escrow.maker != a.maker.address or escrow.mint_a != a.mint_a.address:
            raise escrow_err(EscrowError.INVALID_ACCOUNT_DATA)

        signer = build_authority(*seeds)
        amount = TokenAccount.from_account_view(a.vault).amount
        self.ctx.log(f"refund: returning {amount} to maker")

        Transfer(a.vault, a.maker_ata_a, a.escrow, amount, token_program).invoke_signed(self.ctx, [signer])
        CloseAccount(a.vault, a.maker, a.escrow, token_program).invoke_signed(self.ctx, [signer])
        data.release()

        close_program_account(a.escrow, a.maker)
