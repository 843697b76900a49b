"""Take settlement fixtures."""

from __future__ import annotations

from blake3 import blake3

from escrow_spec.client import find_escrow_address, take_instruction, take_transaction, vault_address
from escrow_spec.config import LAMPORTS_PER_SOL, minimum_balance
from escrow_spec.encoding import ESCROW_LEN
from escrow_spec.errors import ErrorCode, EscrowError
from escrow_spec.programs.associated_token import get_associated_token_address
from escrow_spec.programs.token import ACCOUNT_LEN, TokenAccount, TokenError
from escrow_spec.state_digest import compute_state_digest
from escrow_spec.test_accounts import (
    MAKER,
    MALLORY,
    MINT_X,
    MINT_Y,
    TAKER,
    escrow_record,
    escrow_state,
    mint_account,
    put,
    token_account,
)
from escrow_spec.types import LedgerState, Transaction
from tools.fixtures_io import state_to_json

FIXTURE = "transactions/escrow/take.json"
MINT_Z = blake3(b"escrow-spec/identity/mint-z").digest()


def _amount(state: LedgerState, address: bytes) -> int:
    return TokenAccount.unpack(bytes(state.accounts[address].data)).amount


def _digest(state: LedgerState) -> str:
    return compute_state_digest(state_to_json(state))


def test_take_success(state_test_group) -> None:
    state, escrow = escrow_state(deposit=500, receive=1000, taker_b_balance=5000)
    vault = vault_address(escrow, MINT_X)
    tx = take_transaction(TAKER, MAKER, escrow, MINT_X, MINT_Y)

    post, result = state_test_group(FIXTURE, "take_success", state, tx)

    assert result.ok, result.error
    assert _amount(post, get_associated_token_address(TAKER, MINT_X)) == 500
    assert _amount(post, get_associated_token_address(TAKER, MINT_Y)) == 4000
    assert _amount(post, get_associated_token_address(MAKER, MINT_Y)) == 1000
    assert escrow not in post.accounts
    assert vault not in post.accounts

    # Record rent goes to the taker, vault rent to the maker; the taker funds both new accounts.
    ata_rent = minimum_balance(ACCOUNT_LEN)
    assert post.accounts[TAKER].lamports == 10 * LAMPORTS_PER_SOL - 2 * ata_rent + minimum_balance(ESCROW_LEN)
    assert post.accounts[MAKER].lamports == 10 * LAMPORTS_PER_SOL + ata_rent
    assert "Program log: Instruction: Take" in result.logs


def test_take_existing_token_accounts(state_test_group) -> None:
    state, escrow = escrow_state()
    put(state, token_account(TAKER, MINT_X, 0), token_account(MAKER, MINT_Y, 7))
    tx = take_transaction(TAKER, MAKER, escrow, MINT_X, MINT_Y)

    post, result = state_test_group(FIXTURE, "take_existing_token_accounts", state, tx)

    assert result.ok, result.error
    assert _amount(post, get_associated_token_address(TAKER, MINT_X)) == 500
    assert _amount(post, get_associated_token_address(MAKER, MINT_Y)) == 1007
    assert post.accounts[TAKER].lamports == 10 * LAMPORTS_PER_SOL + minimum_balance(ESCROW_LEN)


def test_take_taker_not_signer(state_test_group) -> None:
    state, escrow = escrow_state()
    ix = take_instruction(TAKER, MAKER, escrow, MINT_X, MINT_Y)
    ix.accounts[0].is_signer = False
    tx = Transaction(instructions=[ix], signers=[TAKER])

    post, result = state_test_group(FIXTURE, "take_taker_not_signer", state, tx)

    assert not result.ok
    assert result.error.code == EscrowError.NOT_SIGNER
    assert post is state


def test_take_escrow_not_at_derived_address(state_test_group) -> None:
    state, _ = escrow_state()
    fake = blake3(b"escrow-spec/identity/fake-escrow").digest()
    put(
        state,
        escrow_record(MAKER, 42, MINT_X, MINT_Y, 1000, address=fake),
        token_account(fake, MINT_X, 500, address=vault_address(fake, MINT_X)),
    )
    tx = take_transaction(TAKER, MAKER, fake, MINT_X, MINT_Y)

    post, result = state_test_group(FIXTURE, "take_escrow_not_at_derived_address", state, tx)

    assert not result.ok
    assert result.error.code == EscrowError.INVALID_ADDRESS
    assert post is state


def test_take_requested_mint_mismatch(state_test_group) -> None:
    state, escrow = escrow_state()
    put(state, mint_account(MINT_Z, supply=5000), token_account(TAKER, MINT_Z, 5000))
    tx = take_transaction(TAKER, MAKER, escrow, MINT_X, MINT_Z)

    post, result = state_test_group(FIXTURE, "take_requested_mint_mismatch", state, tx)

    assert not result.ok
    assert result.error.code == EscrowError.INVALID_ACCOUNT_DATA
    assert post is state


def test_take_escrow_wrong_owner(state_test_group) -> None:
    state, escrow = escrow_state()
    state.accounts[escrow].owner = MALLORY
    tx = take_transaction(TAKER, MAKER, escrow, MINT_X, MINT_Y)

    _, result = state_test_group(FIXTURE, "take_escrow_wrong_owner", state, tx)

    assert not result.ok
    assert result.error.code == EscrowError.INVALID_OWNER


def test_take_insufficient_requested_tokens(state_test_group) -> None:
    state, escrow = escrow_state(receive=1000, taker_b_balance=999)
    before = _digest(state)
    tx = take_transaction(TAKER, MAKER, escrow, MINT_X, MINT_Y)

    post, result = state_test_group(FIXTURE, "take_insufficient_requested_tokens", state, tx)

    assert not result.ok
    assert result.error.code == TokenError.INSUFFICIENT_FUNDS
    # Vault payout and both account creations are rolled back too.
    assert _digest(post) == before
    assert _amount(post, vault_address(escrow, MINT_X)) == 500
    assert get_associated_token_address(TAKER, MINT_X) not in post.accounts


def test_take_twice(state_test_group) -> None:
    state, escrow = escrow_state()
    tx = take_transaction(TAKER, MAKER, escrow, MINT_X, MINT_Y)
    state, result = state_test_group(FIXTURE, "take_first", state, tx)
    assert result.ok, result.error

    post, result = state_test_group(FIXTURE, "take_already_settled", state, tx)

    assert not result.ok
    assert result.error.code == EscrowError.INVALID_OWNER
    assert post is state


def test_take_not_enough_accounts(state_test_group) -> None:
    state, escrow = escrow_state()
    ix = take_instruction(TAKER, MAKER, escrow, MINT_X, MINT_Y)
    ix.accounts = ix.accounts[:11]
    tx = Transaction(instructions=[ix], signers=[TAKER])

    _, result = state_test_group(FIXTURE, "take_not_enough_accounts", state, tx)

    assert not result.ok
    assert result.error.code == ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS


def test_take_extra_accounts_ignored(state_test_group) -> None:
    state, escrow = escrow_state()
    ix = take_instruction(TAKER, MAKER, escrow, MINT_X, MINT_Y)
    ix.accounts.append(ix.accounts[3])
    tx = Transaction(instructions=[ix], signers=[TAKER])

    _, result = state_test_group(FIXTURE, "take_extra_accounts_ignored", state, tx)

    assert result.ok, result.error


def test_take_record_bump_is_canonical() -> None:
    _, escrow = escrow_state(seed=7)
    assert escrow == find_escrow_address(MAKER, 7)[0]


def test_unknown_instruction(state_test_group) -> None:
    state, escrow = escrow_state()
    for name, data in (("escrow_unknown_discriminator", b"\x09"), ("escrow_empty_instruction_data", b"")):
        ix = take_instruction(TAKER, MAKER, escrow, MINT_X, MINT_Y)
        ix.data = data
        post, result = state_test_group(FIXTURE, name, state, Transaction(instructions=[ix], signers=[TAKER]))

        assert result.error.code == ErrorCode.INVALID_INSTRUCTION_DATA
        assert post is state
