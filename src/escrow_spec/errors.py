"""Escrow spec error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Union


class ErrorCode(IntEnum):
    """Builtin program errors plus runtime (instruction-level) faults."""

    # Builtin program errors
    INVALID_ARGUMENT = 2
    INVALID_INSTRUCTION_DATA = 3
    INVALID_ACCOUNT_DATA = 4
    ACCOUNT_DATA_TOO_SMALL = 5
    INSUFFICIENT_FUNDS = 6
    INCORRECT_PROGRAM_ID = 7
    MISSING_REQUIRED_SIGNATURE = 8
    ACCOUNT_ALREADY_INITIALIZED = 9
    UNINITIALIZED_ACCOUNT = 10
    NOT_ENOUGH_ACCOUNT_KEYS = 11
    ACCOUNT_BORROW_FAILED = 12
    MAX_SEED_LENGTH_EXCEEDED = 13
    INVALID_SEEDS = 14
    ILLEGAL_OWNER = 18
    INVALID_ACCOUNT_OWNER = 23
    ARITHMETIC_OVERFLOW = 24

    # Runtime faults
    PRIVILEGE_ESCALATION = 0x100
    REENTRANCY_NOT_ALLOWED = 0x101
    CALL_DEPTH = 0x102
    READONLY_DATA_MODIFIED = 0x103
    EXTERNAL_ACCOUNT_DATA_MODIFIED = 0x104


class EscrowError(IntEnum):
    """Custom errors returned by the escrow program."""

    NOT_SIGNER = 0
    INVALID_OWNER = 1
    INVALID_ACCOUNT_DATA = 2
    INVALID_ADDRESS = 3

    def to_str(self) -> str:
        return _ESCROW_MESSAGES[self]

    @classmethod
    def from_u32(cls, code: int) -> "EscrowError":
        try:
            return cls(code)
        except ValueError:
            raise ProgramError(ErrorCode.INVALID_ARGUMENT, f"unknown escrow error code {code}") from None


_ESCROW_MESSAGES = {
    EscrowError.NOT_SIGNER: "Error: Not signer of the transaction",
    EscrowError.INVALID_OWNER: "Error: Invalid account owner",
    EscrowError.INVALID_ACCOUNT_DATA: "Error: Invalid account data",
    EscrowError.INVALID_ADDRESS: "Error: Invalid address",
}


Code = Union[ErrorCode, IntEnum]

# Wire value of a custom error whose code is 0.
CUSTOM_ZERO = 1 << 32


@dataclass(frozen=True)
class ProgramError(Exception):
    code: Code
    message: str

    @property
    def is_custom(self) -> bool:
        return not isinstance(self.code, ErrorCode)

    def to_u64(self) -> int:
        """Wire value: custom codes as-is, builtin codes in the upper 32 bits.

        Custom code 0 would read as success, so it goes out as CUSTOM_ZERO.
        """
        if self.is_custom:
            return int(self.code) or CUSTOM_ZERO
        return int(self.code) << 32

    def __str__(self) -> str:
        return f"{self.code.name}({int(self.code):#x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__", "__suppress_context__"))
_frozen_setattr = ProgramError.__setattr__


def _program_error_setattr(self: ProgramError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


ProgramError.__setattr__ = _program_error_setattr  # type: ignore[method-assign]


def escrow_err(code: EscrowError) -> ProgramError:
    return ProgramError(code=code, message=code.to_str())
