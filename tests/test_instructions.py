from __future__ import annotations

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from solana_stablecoin import instructions as ix
from solana_stablecoin.constants import (
    IX_ADD_TO_BLACKLIST,
    IX_GRANT_ROLE,
    IX_INITIALIZE,
    IX_MINT_TOKENS,
    IX_REVOKE_ROLE,
    IX_TRANSFER_HOOK_EXECUTE,
    IX_UPDATE_SUPPLY_CAP,
    SSS_CORE_PROGRAM_ID,
    SSS_HOOK_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    sighash,
)
from solana_stablecoin.errors import InvalidRoleError, ReasonTooLongError, ZeroAmountError
from solana_stablecoin.model import Preset, Role
from solana_stablecoin.pda import (
    derive_blacklist_pda,
    derive_config_pda,
    derive_extra_account_metas_pda,
    derive_role_pda,
)


@pytest.fixture()
def mint() -> Pubkey:
    return Keypair().pubkey()


@pytest.fixture()
def signer() -> Pubkey:
    return Keypair().pubkey()


def test_discriminators_match_anchor_sighash() -> None:
    assert IX_INITIALIZE == sighash("global", "initialize")
    assert IX_MINT_TOKENS == sighash("global", "mint_tokens")
    assert IX_GRANT_ROLE == sighash("global", "grant_role")
    assert IX_ADD_TO_BLACKLIST == sighash("global", "add_to_blacklist")


def test_grant_seizer_role_targets_derived_role_account(mint: Pubkey, signer: Pubkey) -> None:
    config, _ = derive_config_pda(mint)
    holder = Keypair().pubkey()

    instruction = ix.build_grant_role(config, signer, holder, Role.SEIZER)

    role_account, _ = derive_role_pda(config, holder, 6)
    meta = instruction.accounts[4]
    assert meta.pubkey == role_account
    assert meta.is_writable and not meta.is_signer
    assert bytes(instruction.data) == IX_GRANT_ROLE + bytes([6])
    assert instruction.accounts[0].pubkey == signer
    assert instruction.accounts[0].is_signer and instruction.accounts[0].is_writable
    assert instruction.accounts[2].pubkey == derive_role_pda(config, signer, Role.ADMIN)[0]
    assert instruction.accounts[-1].pubkey == SYSTEM_PROGRAM_ID


def test_grant_role_rejects_unknown_role(mint: Pubkey, signer: Pubkey) -> None:
    config, _ = derive_config_pda(mint)

    with pytest.raises(InvalidRoleError):
        ix.build_grant_role(config, signer, signer, 9)


def test_revoke_role_carries_no_arguments(mint: Pubkey, signer: Pubkey) -> None:
    config, _ = derive_config_pda(mint)
    holder = Keypair().pubkey()

    instruction = ix.build_revoke_role(config, signer, holder, "minter")

    assert bytes(instruction.data) == IX_REVOKE_ROLE
    assert instruction.accounts[3].pubkey == derive_role_pda(config, holder, Role.MINTER)[0]
    assert instruction.accounts[3].is_writable


def test_mint_tokens_layout(mint: Pubkey, signer: Pubkey) -> None:
    destination = Keypair().pubkey()

    instruction = ix.build_mint_tokens(mint, signer, destination, 1_000_000)

    config, _ = derive_config_pda(mint)
    assert instruction.program_id == SSS_CORE_PROGRAM_ID
    assert bytes(instruction.data) == IX_MINT_TOKENS + (1_000_000).to_bytes(8, "little")
    assert [meta.pubkey for meta in instruction.accounts] == [
        signer,
        config,
        derive_role_pda(config, signer, Role.MINTER)[0],
        mint,
        destination,
        TOKEN_2022_PROGRAM_ID,
    ]
    assert [meta.is_writable for meta in instruction.accounts] == [
        False,
        True,
        True,
        True,
        True,
        False,
    ]


def test_mint_tokens_appends_price_feed(mint: Pubkey, signer: Pubkey) -> None:
    feed = Keypair().pubkey()

    instruction = ix.build_mint_tokens(mint, signer, Keypair().pubkey(), 5, price_feed=feed)

    assert len(instruction.accounts) == 7
    last = instruction.accounts[-1]
    assert last.pubkey == feed
    assert not last.is_signer and not last.is_writable


@pytest.mark.parametrize("amount", [0, -1])
def test_zero_amount_rejected(mint: Pubkey, signer: Pubkey, amount: int) -> None:
    with pytest.raises(ZeroAmountError):
        ix.build_burn_tokens(mint, signer, Keypair().pubkey(), amount)


def test_amount_above_u64_rejected(mint: Pubkey, signer: Pubkey) -> None:
    with pytest.raises(ValueError):
        ix.build_seize(mint, signer, Keypair().pubkey(), Keypair().pubkey(), 2**64)


def test_freeze_and_thaw_share_accounts(mint: Pubkey, signer: Pubkey) -> None:
    account = Keypair().pubkey()

    freeze = ix.build_freeze_account(mint, signer, account)
    thaw = ix.build_thaw_account(mint, signer, account)

    assert freeze.accounts == thaw.accounts
    assert bytes(freeze.data) != bytes(thaw.data)
    assert freeze.accounts[4].pubkey == account and freeze.accounts[4].is_writable


def test_pause_uses_pauser_role(mint: Pubkey, signer: Pubkey) -> None:
    config, _ = derive_config_pda(mint)

    instruction = ix.build_pause(config, signer)

    assert [meta.pubkey for meta in instruction.accounts] == [
        signer,
        config,
        derive_role_pda(config, signer, Role.PAUSER)[0],
    ]


def test_update_supply_cap_encodes_option(mint: Pubkey, signer: Pubkey) -> None:
    config, _ = derive_config_pda(mint)

    cleared = ix.build_update_supply_cap(config, signer, None)
    capped = ix.build_update_supply_cap(config, signer, 42)

    assert bytes(cleared.data) == IX_UPDATE_SUPPLY_CAP + b"\x00"
    assert bytes(capped.data) == IX_UPDATE_SUPPLY_CAP + b"\x01" + (42).to_bytes(8, "little")


def test_initialize_encodes_arguments(mint: Pubkey, signer: Pubkey) -> None:
    args = ix.InitializeArgs(preset=Preset.SSS_2, name="USD", symbol="USD", decimals=6)

    instruction = ix.build_initialize(mint, signer, args)

    data = bytes(instruction.data)
    assert data[:8] == IX_INITIALIZE
    assert data[8] == 2
    assert data[9:16] == b"\x03\x00\x00\x00USD"
    # uri "", decimals, then four absent options.
    assert data[-9:] == b"\x00\x00\x00\x00" + bytes([6]) + b"\x00\x00\x00\x00"
    config, _ = derive_config_pda(mint)
    assert instruction.accounts[1].pubkey == config
    assert instruction.accounts[3].pubkey == derive_role_pda(config, signer, Role.ADMIN)[0]


def test_add_to_blacklist_targets_hook_program(mint: Pubkey, signer: Pubkey) -> None:
    target = Keypair().pubkey()

    instruction = ix.build_add_to_blacklist(mint, signer, target, "OFAC match")

    config, _ = derive_config_pda(mint)
    assert instruction.program_id == SSS_HOOK_PROGRAM_ID
    assert instruction.accounts[1].pubkey == derive_role_pda(config, signer, Role.BLACKLISTER)[0]
    assert instruction.accounts[4].pubkey == derive_blacklist_pda(mint, target)[0]
    assert bytes(instruction.data)[8:] == (10).to_bytes(4, "little") + b"OFAC match"


def test_blacklist_reason_limit(mint: Pubkey, signer: Pubkey) -> None:
    target = Keypair().pubkey()

    ix.build_add_to_blacklist(mint, signer, target, "r" * 512)
    with pytest.raises(ReasonTooLongError):
        ix.build_add_to_blacklist(mint, signer, target, "r" * 513)


def test_transfer_hook_execute_keys_entries_by_owner(mint: Pubkey) -> None:
    source, destination = Keypair().pubkey(), Keypair().pubkey()
    authority, owner = Keypair().pubkey(), Keypair().pubkey()

    instruction = ix.build_transfer_hook_execute(
        source, mint, destination, authority, 10, destination_owner=owner
    )

    pubkeys = [meta.pubkey for meta in instruction.accounts]
    assert pubkeys == [
        source,
        mint,
        destination,
        authority,
        derive_extra_account_metas_pda(mint)[0],
        derive_blacklist_pda(mint, authority)[0],
        derive_blacklist_pda(mint, owner)[0],
    ]
    assert not any(meta.is_writable or meta.is_signer for meta in instruction.accounts)


def test_transfer_hook_execute_accepts_zero_amount(mint: Pubkey) -> None:
    owner = Keypair().pubkey()

    instruction = ix.build_transfer_hook_execute(
        Keypair().pubkey(), mint, Keypair().pubkey(), owner, 0, destination_owner=owner
    )

    assert bytes(instruction.data) == IX_TRANSFER_HOOK_EXECUTE + bytes(8)
    with pytest.raises(ValueError):
        ix.build_transfer_hook_execute(
            Keypair().pubkey(), mint, Keypair().pubkey(), owner, -1, destination_owner=owner
        )
