from __future__ import annotations

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from solana_stablecoin import token2022
from solana_stablecoin.token2022 import AuthorityType, ExtensionType


def test_plain_mint_len() -> None:
    assert token2022.get_mint_len([]) == 82


def test_extension_lengths_sum_with_tlv_headers() -> None:
    length = token2022.get_mint_len([ExtensionType.METADATA_POINTER])

    assert length == 165 + 1 + 4 + 64


def test_packed_metadata_length() -> None:
    packed = token2022.pack_token_metadata(
        Pubkey.default(), Pubkey.default(), "Dollar", "USD", "https://x.io"
    )

    assert len(packed) == 32 + 32 + (4 + 6) + (4 + 3) + (4 + 12) + 4


def test_initialize_mint2_without_freeze_authority() -> None:
    mint, authority = Keypair().pubkey(), Keypair().pubkey()

    instruction = token2022.initialize_mint2(mint, 6, authority, None)

    assert bytes(instruction.data) == bytes([20, 6]) + bytes(authority) + b"\x00"
    assert instruction.program_id == token2022.TOKEN_2022_PROGRAM_ID


def test_set_authority_can_clear() -> None:
    mint, current = Keypair().pubkey(), Keypair().pubkey()

    instruction = token2022.set_authority(mint, current, AuthorityType.FREEZE_ACCOUNT, None)

    assert bytes(instruction.data) == bytes([6, int(AuthorityType.FREEZE_ACCOUNT), 0])
    assert instruction.accounts[1].is_signer


def test_metadata_initialize_accounts() -> None:
    mint, config = Keypair().pubkey(), Keypair().pubkey()

    instruction = token2022.initialize_token_metadata(mint, config, config, "Dollar", "USD", "")

    assert bytes(instruction.data[:8]) == token2022.TOKEN_METADATA_INITIALIZE
    assert [meta.pubkey for meta in instruction.accounts] == [mint, config, mint, config]
    assert instruction.accounts[0].is_writable
    assert instruction.accounts[3].is_signer


def test_confidential_mint_rejects_short_auditor() -> None:
    with pytest.raises(ValueError):
        token2022.initialize_confidential_transfer_mint(
            Keypair().pubkey(), None, True, bytes(31)
        )


def test_confidential_mint_without_auditor_uses_zero_key() -> None:
    instruction = token2022.initialize_confidential_transfer_mint(
        Keypair().pubkey(), None, False, None
    )

    assert bytes(instruction.data) == bytes([27, 0]) + bytes(32) + b"\x00" + bytes(32)


def test_mint_colliding_with_multisig_size_is_padded(monkeypatch: pytest.MonkeyPatch) -> None:
    # 165 + 1 + 4 + 185 lands exactly on the 355-byte multisig size.
    monkeypatch.setitem(token2022.EXTENSION_LENGTHS, ExtensionType.METADATA_POINTER, 185)

    assert token2022.get_mint_len([ExtensionType.METADATA_POINTER]) == 357
