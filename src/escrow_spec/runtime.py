"""Single-threaded invocation runtime.

Programs see accounts through `AccountView`s. The runtime enforces the
ownership rules (only the owning program writes data or spends lamports),
data borrow discipline (shared reads or one exclusive write per account) and
privilege propagation across cross-program calls. Nothing here is
concurrent: every call either returns or raises `ProgramError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from .config import MAX_INVOKE_DEPTH, MAX_PERMITTED_DATA_LENGTH, SYSTEM_PROGRAM_ID, U64_MAX
from .errors import ErrorCode, ProgramError
from .pda import Signer
from .types import Account, Instruction, LedgerState

logger = logging.getLogger(__name__)

Processor = Callable[["InvokeContext", bytes, List["AccountView"], bytes], None]


@dataclass
class _Frame:
    program_id: bytes
    signers: frozenset
    writable: frozenset
    refs: list = field(default_factory=list)


class DataRef:
    """Borrow of one account's data.

    Must be released explicitly (or by leaving a `with` block) before the
    same account is resized, reassigned or closed.
    """

    def __init__(self, ctx: "InvokeContext", account: Account, exclusive: bool):
        self._ctx = ctx
        self._account = account
        self.exclusive = exclusive
        self.released = False

    @property
    def data(self):
        if self.released:
            raise ProgramError(ErrorCode.ACCOUNT_BORROW_FAILED, "account data used after release")
        if self.exclusive:
            return self._account.data
        return bytes(self._account.data)

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self._ctx._release(self._account.address, self.exclusive)

    def __enter__(self) -> "DataRef":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class AccountView:
    def __init__(self, ctx: "InvokeContext", account: Account, is_signer: bool, is_writable: bool):
        self._ctx = ctx
        self._account = account
        self.is_signer = is_signer
        self.is_writable = is_writable

    @property
    def address(self) -> bytes:
        return self._account.address

    @property
    def owner(self) -> bytes:
        return self._account.owner

    @property
    def lamports(self) -> int:
        return self._account.lamports

    @property
    def executable(self) -> bool:
        return self._account.executable

    @property
    def data_len(self) -> int:
        return len(self._account.data)

    def is_owned_by(self, program_id: bytes) -> bool:
        return self._account.owner == program_id

    def __repr__(self) -> str:
        return f"AccountView({self.address.hex()}, signer={self.is_signer}, writable={self.is_writable})"

    # --- data access ---

    def try_borrow(self) -> DataRef:
        self._ctx._acquire(self.address, exclusive=False)
        return self._ctx._track(DataRef(self._ctx, self._account, exclusive=False))

    def try_borrow_mut(self) -> DataRef:
        self._require_owned_writable("data")
        self._ctx._acquire(self.address, exclusive=True)
        return self._ctx._track(DataRef(self._ctx, self._account, exclusive=True))

    # --- lamports ---

    def credit(self, amount: int) -> None:
        if not self.is_writable:
            raise ProgramError(ErrorCode.READONLY_DATA_MODIFIED, "credit to read-only account")
        if self._account.lamports + amount > U64_MAX:
            raise ProgramError(ErrorCode.ARITHMETIC_OVERFLOW, "lamports overflow")
        self._account.lamports += amount

    def debit(self, amount: int) -> None:
        self._require_owned_writable("lamports")
        if self._account.lamports < amount:
            raise ProgramError(ErrorCode.INSUFFICIENT_FUNDS, "insufficient lamports")
        self._account.lamports -= amount

    # --- storage lifecycle ---

    def allocate(self, space: int) -> None:
        self._require_owned_writable("data")
        self._ctx._require_unborrowed(self.address)
        if space > MAX_PERMITTED_DATA_LENGTH:
            raise ProgramError(ErrorCode.INVALID_ARGUMENT, "allocation exceeds maximum data length")
        if self._account.data:
            raise ProgramError(ErrorCode.ACCOUNT_ALREADY_INITIALIZED, "account already allocated")
        self._account.data = bytearray(space)

    def assign(self, owner: bytes) -> None:
        self._require_owned_writable("owner")
        self._ctx._require_unborrowed(self.address)
        self._account.owner = owner

    def close(self) -> None:
        """Drop the account's storage; lamports must already have been moved out."""
        self._require_owned_writable("data")
        self._ctx._require_unborrowed(self.address)
        if self._account.lamports != 0:
            raise ProgramError(ErrorCode.INVALID_ARGUMENT, "cannot close an account holding lamports")
        self._account.data = bytearray()
        self._account.owner = SYSTEM_PROGRAM_ID

    def _require_owned_writable(self, what: str) -> None:
        if not self.is_writable:
            raise ProgramError(ErrorCode.READONLY_DATA_MODIFIED, f"{what} of read-only account modified")
        if self._account.owner != self._ctx.current_program:
            raise ProgramError(
                ErrorCode.EXTERNAL_ACCOUNT_DATA_MODIFIED, f"{what} of account owned by another program modified"
            )


class InvokeContext:
    """Execution context of one transaction."""

    def __init__(self, state: LedgerState, programs: Dict[bytes, Processor], signers: Sequence[bytes] = ()):
        self.state = state
        self.programs = programs
        self.signers = frozenset(signers)
        self.logs: list[str] = []
        self._frames: list[_Frame] = []
        self._borrows: dict[bytes, int] = {}

    @property
    def current_program(self) -> Optional[bytes]:
        return self._frames[-1].program_id if self._frames else None

    @property
    def depth(self) -> int:
        return len(self._frames)

    def log(self, message: str) -> None:
        self._emit(f"Program log: {message}")

    def _emit(self, line: str) -> None:
        self.logs.append(line)
        logger.debug(line)

    def load_account(self, address: bytes) -> Account:
        account = self.state.accounts.get(address)
        if account is None:
            account = Account(address=address, owner=SYSTEM_PROGRAM_ID)
            self.state.accounts[address] = account
        return account

    # --- instruction execution ---

    def execute(self, ix: Instruction) -> None:
        """Run a top-level instruction of the transaction."""
        for meta in ix.accounts:
            if meta.is_signer and meta.address not in self.signers:
                raise ProgramError(
                    ErrorCode.MISSING_REQUIRED_SIGNATURE, f"missing signature for {meta.address.hex()}"
                )
        self._run(ix)

    def invoke(self, ix: Instruction) -> None:
        self.invoke_signed(ix, ())

    def invoke_signed(self, ix: Instruction, signers: Sequence[Signer]) -> None:
        """Cross-program call from the current program.

        Signer and writable flags must already be held by the caller, except
        for addresses the caller derives from `signers` under its own id.
        """
        if not self._frames:
            raise ProgramError(ErrorCode.INVALID_ARGUMENT, "cross-program call outside a program")
        caller = self._frames[-1]
        derived = {s.address_for(caller.program_id) for s in signers}

        for meta in ix.accounts:
            if meta.is_signer and meta.address not in caller.signers and meta.address not in derived:
                raise ProgramError(
                    ErrorCode.PRIVILEGE_ESCALATION, f"signer privilege escalated for {meta.address.hex()}"
                )
            if meta.is_writable:
                if meta.address not in caller.writable:
                    raise ProgramError(
                        ErrorCode.PRIVILEGE_ESCALATION, f"writable privilege escalated for {meta.address.hex()}"
                    )
                if self._borrows.get(meta.address, 0):
                    raise ProgramError(
                        ErrorCode.ACCOUNT_BORROW_FAILED, f"{meta.address.hex()} is borrowed by the caller"
                    )

        stack = [f.program_id for f in self._frames]
        if ix.program_id in stack and stack[-1] != ix.program_id:
            raise ProgramError(ErrorCode.REENTRANCY_NOT_ALLOWED, "cross-program reentrancy not allowed")
        if len(self._frames) >= MAX_INVOKE_DEPTH:
            raise ProgramError(ErrorCode.CALL_DEPTH, "maximum invoke depth reached")

        self._run(ix)

    def _run(self, ix: Instruction) -> None:
        processor = self.programs.get(ix.program_id)
        if processor is None:
            raise ProgramError(ErrorCode.INCORRECT_PROGRAM_ID, f"unknown program {ix.program_id.hex()}")

        signers = frozenset(m.address for m in ix.accounts if m.is_signer)
        writable = frozenset(m.address for m in ix.accounts if m.is_writable)
        views = [
            AccountView(self, self.load_account(m.address), m.address in signers, m.address in writable)
            for m in ix.accounts
        ]

        frame = _Frame(program_id=ix.program_id, signers=signers, writable=writable)
        self._frames.append(frame)
        name = ix.program_id.hex()
        self._emit(f"Program {name} invoke [{len(self._frames)}]")
        try:
            processor(self, ix.program_id, views, bytes(ix.data))
        except ProgramError as exc:
            self._emit(f"Program {name} failed: {exc}")
            raise
        finally:
            # Borrows do not outlive the program that took them.
            for ref in frame.refs:
                ref.release()
            self._frames.pop()
        self._emit(f"Program {name} success")

    # --- borrow bookkeeping ---

    def _track(self, ref: DataRef) -> DataRef:
        if self._frames:
            self._frames[-1].refs.append(ref)
        return ref

    def _acquire(self, address: bytes, exclusive: bool) -> None:
        held = self._borrows.get(address, 0)
        if exclusive and held != 0:
            raise ProgramError(ErrorCode.ACCOUNT_BORROW_FAILED, f"{address.hex()} already borrowed")
        if not exclusive and held < 0:
            raise ProgramError(ErrorCode.ACCOUNT_BORROW_FAILED, f"{address.hex()} mutably borrowed")
        self._borrows[address] = -1 if exclusive else held + 1

    def _release(self, address: bytes, exclusive: bool) -> None:
        held = self._borrows.get(address, 0)
        held = 0 if exclusive else held - 1
        if held:
            self._borrows[address] = held
        else:
            self._borrows.pop(address, None)

    def _require_unborrowed(self, address: bytes) -> None:
        if self._borrows.get(address, 0):
            raise ProgramError(ErrorCode.ACCOUNT_BORROW_FAILED, f"{address.hex()} is still borrowed")
