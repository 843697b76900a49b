"""Escrow program entrypoint: dispatch on the leading instruction byte."""

from __future__ import annotations

from typing import List

from .encoding import split_discriminator
from .errors import ErrorCode, ProgramError
from .instructions.refund import Refund
from .instructions.take import Take
from .runtime import AccountView, InvokeContext


def process_instruction(ctx: InvokeContext, program_id: bytes, accounts: List[AccountView], data: bytes) -> None:
    discriminator, _ = split_discriminator(data)
    if discriminator == Take.DISCRIMINATOR:
        ctx.log("Instruction: Take")
        Take.from_accounts(ctx, accounts).process()
    elif discriminator == Refund.DISCRIMINATOR:
        ctx.log("Instruction: Refund")
        Refund.from_accounts(ctx, accounts).process()
    else:
        raise ProgramError(ErrorCode.INVALID_INSTRUCTION_DATA, f"unknown instruction {discriminator}")
