"""Account-data and instruction-data encoding (little-endian, fixed width)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config import ADDRESS_SIZE
from .errors import ErrorCode, EscrowError, ProgramError, escrow_err
from .types import Escrow

# seed u64 | maker | mint_a | mint_b | receive u64 | bump u8
ESCROW_LEN = 8 + ADDRESS_SIZE * 3 + 8 + 1


@dataclass
class Writer:
    buf: bytearray

    def write_u8(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(1, "little", signed=False))

    def write_u32(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(4, "little", signed=False))

    def write_u64(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(8, "little", signed=False))

    def write_bytes(self, b: bytes) -> None:
        self.buf.extend(b)

    def write_bool(self, v: bool) -> None:
        self.write_u8(1 if v else 0)

    def write_address(self, value: bytes) -> None:
        _expect_len("address", value, ADDRESS_SIZE)
        self.write_bytes(value)

    def write_option_address(self, value: Optional[bytes]) -> None:
        # COption<Pubkey>: u32 tag followed by a fixed 32-byte body.
        if value is None:
            self.write_u32(0)
            self.write_bytes(bytes(ADDRESS_SIZE))
        else:
            self.write_u32(1)
            self.write_address(value)

    def write_option_u64(self, value: Optional[int]) -> None:
        if value is None:
            self.write_u32(0)
            self.write_u64(0)
        else:
            self.write_u32(1)
            self.write_u64(value)


class Reader:
    def __init__(self, data: bytes, code: ErrorCode = ErrorCode.INVALID_ACCOUNT_DATA):
        self.data = bytes(data)
        self.pos = 0
        self._code = code

    def _take(self, n: int) -> bytes:
        if self.pos + n > len(self.data):
            raise ProgramError(self._code, "unexpected end of data")
        chunk = self.data[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def read_u8(self) -> int:
        return self._take(1)[0]

    def read_u32(self) -> int:
        return int.from_bytes(self._take(4), "little")

    def read_u64(self) -> int:
        return int.from_bytes(self._take(8), "little")

    def read_bool(self) -> bool:
        v = self.read_u8()
        if v > 1:
            raise ProgramError(self._code, f"invalid bool byte {v}")
        return v == 1

    def read_address(self) -> bytes:
        return self._take(ADDRESS_SIZE)

    def _read_option_tag(self) -> bool:
        tag = self.read_u32()
        if tag > 1:
            raise ProgramError(self._code, f"invalid option tag {tag}")
        return tag == 1

    def read_option_address(self) -> Optional[bytes]:
        present = self._read_option_tag()
        value = self.read_address()
        return value if present else None

    def read_option_u64(self) -> Optional[int]:
        present = self._read_option_tag()
        value = self.read_u64()
        return value if present else None


def _expect_len(name: str, value: bytes, size: int) -> None:
    if len(value) != size:
        raise ProgramError(ErrorCode.INVALID_ARGUMENT, f"{name} must be {size} bytes")


# --- Escrow record ---


def encode_escrow(escrow: Escrow) -> bytes:
    w = Writer(bytearray())
    w.write_u64(escrow.seed)
    w.write_address(escrow.maker)
    w.write_address(escrow.mint_a)
    w.write_address(escrow.mint_b)
    w.write_u64(escrow.receive)
    w.write_u8(escrow.bump)
    return bytes(w.buf)


def load_escrow(data: bytes) -> Escrow:
    """Parse a persisted escrow record; malformed bytes are a data fault."""
    if len(data) != ESCROW_LEN:
        raise escrow_err(EscrowError.INVALID_ACCOUNT_DATA)
    r = Reader(data)
    return Escrow(
        seed=r.read_u64(),
        maker=r.read_address(),
        mint_a=r.read_address(),
        mint_b=r.read_address(),
        receive=r.read_u64(),
        bump=r.read_u8(),
    )


# --- Instruction data ---


def split_discriminator(data: bytes) -> tuple[int, bytes]:
    if not data:
        raise ProgramError(ErrorCode.INVALID_INSTRUCTION_DATA, "missing instruction discriminator")
    return data[0], bytes(data[1:])
