"""Program-derived addresses and delegated signing authority.

A derived address is a BLAKE3 digest of the seeds, the deriving program's id
and a fixed marker. Digests that decode to an ed25519 point are rejected, so
no private key can exist for a derived address; the only way to sign for one
is for the deriving program to present the seeds again (see `Signer`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from blake3 import blake3

from .config import ESCROW_SEED_PREFIX, MAX_SEED_LEN, MAX_SEEDS, PDA_MARKER
from .errors import ErrorCode, EscrowError, ProgramError, escrow_err

# ed25519 field prime and twisted Edwards curve constant d = -121665/121666.
_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P


def is_on_curve(data: bytes) -> bool:
    """True if `data` is a compressed ed25519 point that decompresses."""
    y = int.from_bytes(data, "little") & ((1 << 255) - 1)
    if y >= _P:
        return False
    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    x2 = u * pow(v, _P - 2, _P) % _P
    # Decompresses iff x^2 = u/v has a root (Euler's criterion).
    return x2 == 0 or pow(x2, (_P - 1) // 2, _P) == 1


def _check_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise ProgramError(ErrorCode.MAX_SEED_LENGTH_EXCEEDED, f"too many seeds ({len(seeds)})")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise ProgramError(ErrorCode.MAX_SEED_LENGTH_EXCEEDED, f"seed longer than {MAX_SEED_LEN} bytes")


def create_program_address(seeds: Sequence[bytes], program_id: bytes) -> bytes:
    _check_seeds(seeds)
    hasher = blake3()
    for seed in seeds:
        hasher.update(bytes(seed))
    hasher.update(program_id)
    hasher.update(PDA_MARKER)
    address = hasher.digest()
    if is_on_curve(address):
        raise ProgramError(ErrorCode.INVALID_SEEDS, "derived address lies on the ed25519 curve")
    return address


def find_program_address(seeds: Sequence[bytes], program_id: bytes) -> tuple[bytes, int]:
    """Return the derived address for the highest viable bump (canonical bump)."""
    for bump in range(255, -1, -1):
        try:
            return create_program_address([*seeds, bytes([bump])], program_id), bump
        except ProgramError as exc:
            if exc.code != ErrorCode.INVALID_SEEDS:
                raise
    raise ProgramError(ErrorCode.INVALID_SEEDS, "unable to find a viable bump seed")


def verify_address(claimed: bytes, derived: bytes) -> None:
    if claimed != derived:
        raise escrow_err(EscrowError.INVALID_ADDRESS)


def verify_program_address(claimed: bytes, seeds: Sequence[bytes], program_id: bytes) -> None:
    """Re-derive from `seeds` and require `claimed` to be that address."""
    try:
        derived = create_program_address(seeds, program_id)
    except ProgramError as exc:
        if exc.code != ErrorCode.INVALID_SEEDS:
            raise
        # No derived address exists for these seeds, so nothing can match.
        raise escrow_err(EscrowError.INVALID_ADDRESS) from exc
    verify_address(claimed, derived)


def escrow_seeds(maker: bytes, seed: int, bump: int) -> tuple[bytes, ...]:
    return (ESCROW_SEED_PREFIX, maker, seed.to_bytes(8, "little"), bytes([bump]))


@dataclass(frozen=True)
class Signer:
    """Signing capability for a derived address.

    Carries only seeds. The runtime re-derives the address with the id of the
    program presenting it, so the capability signs for nothing when used by
    any other program.
    """

    seeds: tuple[bytes, ...]

    def address_for(self, program_id: bytes) -> bytes:
        return create_program_address(self.seeds, program_id)


def build_authority(*seeds: bytes) -> Signer:
    _check_seeds(seeds)
    return Signer(seeds=tuple(bytes(s) for s in seeds))
