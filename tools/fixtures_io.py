"""Helpers to serialize/deserialize escrow spec fixtures."""

from __future__ import annotations

from typing import Any

from escrow_spec.types import Account, AccountMeta, Instruction, LedgerState, Transaction


def _hex_to_bytes(v: str) -> bytes:
    return bytes.fromhex(v)


def _bytes_to_hex(v: bytes) -> str:
    return bytes(v).hex()


def state_to_json(state: LedgerState) -> dict[str, Any]:
    accounts_out = [
        {
            "address": _bytes_to_hex(a.address),
            "owner": _bytes_to_hex(a.owner),
            "lamports": a.lamports,
            "data": _bytes_to_hex(a.data),
            "executable": a.executable,
        }
        for _, a in sorted(state.accounts.items())
    ]
    return {"slot": state.slot, "accounts": accounts_out}


def state_from_json(data: dict[str, Any]) -> LedgerState:
    state = LedgerState(slot=int(data.get("slot", 0)))
    for a in data.get("accounts", []):
        address = _hex_to_bytes(a["address"])
        state.accounts[address] = Account(
            address=address,
            owner=_hex_to_bytes(a["owner"]),
            lamports=int(a.get("lamports", 0)),
            data=bytearray(_hex_to_bytes(a.get("data", ""))),
            executable=bool(a.get("executable", False)),
        )
    return state


def tx_to_json(tx: Transaction) -> dict[str, Any]:
    return {
        "signers": [_bytes_to_hex(s) for s in tx.signers],
        "instructions": [
            {
                "program_id": _bytes_to_hex(ix.program_id),
                "accounts": [
                    {
                        "address": _bytes_to_hex(m.address),
                        "is_signer": m.is_signer,
                        "is_writable": m.is_writable,
                    }
                    for m in ix.accounts
                ],
                "data": _bytes_to_hex(ix.data),
            }
            for ix in tx.instructions
        ],
    }


def tx_from_json(data: dict[str, Any]) -> Transaction:
    instructions = [
        Instruction(
            program_id=_hex_to_bytes(ix["program_id"]),
            accounts=[
                AccountMeta(
                    address=_hex_to_bytes(m["address"]),
                    is_signer=bool(m.get("is_signer", False)),
                    is_writable=bool(m.get("is_writable", False)),
                )
                for m in ix.get("accounts", [])
            ],
            data=_hex_to_bytes(ix.get("data", "")),
        )
        for ix in data.get("instructions", [])
    ]
    return Transaction(
        instructions=instructions,
        signers=[_hex_to_bytes(s) for s in data.get("signers", [])],
    )


def error_name(error: Any) -> str | None:
    """Fixture error label: `<Enum>.<MEMBER>` so custom codes stay unambiguous."""
    if error is None:
        return None
    return f"{type(error.code).__name__}.{error.code.name}"
