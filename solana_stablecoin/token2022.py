"""Hand-built Token-2022 instructions used during mint creation.

Each encoder writes the instruction tag, the extension sub-instruction where
one exists, and the fixed-width payload in little-endian order. Optional
authorities follow Token-2022 conventions: ``COption`` fields carry a one-byte
tag, ``OptionalNonZeroPubkey`` fields use 32 zero bytes for "none".
"""

from __future__ import annotations

import hashlib
from enum import IntEnum
from typing import Sequence

from borsh_construct import CStruct, Option, String, U8, U64, Vec
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, create_account

from .constants import TOKEN_2022_PROGRAM_ID

PUBKEY = U8[32]
ZERO_KEY = bytes(32)

BASE_ACCOUNT_LEN = 165
ACCOUNT_TYPE_LEN = 1
MULTISIG_LEN = 355
TLV_HEADER_LEN = 4
EXTENSION_TYPE_LEN = 2


class ExtensionType(IntEnum):
    """Token-2022 extension type ids used by the stablecoin tiers."""

    CONFIDENTIAL_TRANSFER_MINT = 4
    DEFAULT_ACCOUNT_STATE = 6
    PERMANENT_DELEGATE = 12
    TRANSFER_HOOK = 14
    METADATA_POINTER = 18

    @property
    def data_len(self) -> int:
        return EXTENSION_LENGTHS[self]


EXTENSION_LENGTHS = {
    ExtensionType.CONFIDENTIAL_TRANSFER_MINT: 65,
    ExtensionType.DEFAULT_ACCOUNT_STATE: 1,
    ExtensionType.PERMANENT_DELEGATE: 32,
    ExtensionType.TRANSFER_HOOK: 64,
    ExtensionType.METADATA_POINTER: 64,
}


class TokenInstruction(IntEnum):
    SET_AUTHORITY = 6
    INITIALIZE_MINT2 = 20
    CONFIDENTIAL_TRANSFER_EXTENSION = 27
    DEFAULT_ACCOUNT_STATE_EXTENSION = 28
    INITIALIZE_PERMANENT_DELEGATE = 35
    TRANSFER_HOOK_EXTENSION = 36
    METADATA_POINTER_EXTENSION = 39


class AuthorityType(IntEnum):
    MINT_TOKENS = 0
    FREEZE_ACCOUNT = 1


class AccountState(IntEnum):
    UNINITIALIZED = 0
    INITIALIZED = 1
    FROZEN = 2


class ConfidentialTransferInstruction(IntEnum):
    INITIALIZE_MINT = 0
    DEPOSIT = 5
    APPLY_PENDING_BALANCE = 8


TOKEN_METADATA_INITIALIZE = hashlib.sha256(
    b"spl_token_metadata_interface:initialize_account"
).digest()[:8]

InitializeMint2Layout = CStruct(
    "decimals" / U8,
    "mint_authority" / PUBKEY,
    "freeze_authority" / Option(PUBKEY),
)
SetAuthorityLayout = CStruct(
    "authority_type" / U8,
    "new_authority" / Option(PUBKEY),
)
TokenMetadataInitializeLayout = CStruct(
    "name" / String,
    "symbol" / String,
    "uri" / String,
)
PackedTokenMetadataLayout = CStruct(
    "update_authority" / PUBKEY,
    "mint" / PUBKEY,
    "name" / String,
    "symbol" / String,
    "uri" / String,
    "additional_metadata" / Vec(CStruct("key" / String, "value" / String)),
)
DepositLayout = CStruct("amount" / U64, "decimals" / U8)


def get_mint_len(extensions: Sequence[ExtensionType]) -> int:
    """Space a mint account needs for ``extensions`` (excluding variable metadata)."""

    if not extensions:
        return 82
    length = BASE_ACCOUNT_LEN + ACCOUNT_TYPE_LEN + sum(
        TLV_HEADER_LEN + extension.data_len for extension in extensions
    )
    # A mint the same size as a multisig would be misread; pad past it.
    if length == MULTISIG_LEN:
        length += EXTENSION_TYPE_LEN
    return length


def pack_token_metadata(
    update_authority: Pubkey, mint: Pubkey, name: str, symbol: str, uri: str
) -> bytes:
    return PackedTokenMetadataLayout.build(
        {
            "update_authority": list(bytes(update_authority)),
            "mint": list(bytes(mint)),
            "name": name,
            "symbol": symbol,
            "uri": uri,
            "additional_metadata": [],
        }
    )


def _key(value: Pubkey | None) -> bytes:
    return bytes(value) if value is not None else ZERO_KEY


def _mint_only(mint: Pubkey, data: bytes) -> Instruction:
    return Instruction(TOKEN_2022_PROGRAM_ID, data, [AccountMeta(mint, False, True)])


def create_mint_account(
    payer: Pubkey, mint: Pubkey, lamports: int, space: int
) -> Instruction:
    return create_account(
        CreateAccountParams(
            from_pubkey=payer,
            to_pubkey=mint,
            lamports=lamports,
            space=space,
            owner=TOKEN_2022_PROGRAM_ID,
        )
    )


def initialize_metadata_pointer(
    mint: Pubkey, authority: Pubkey | None, metadata_address: Pubkey | None
) -> Instruction:
    data = (
        bytes([TokenInstruction.METADATA_POINTER_EXTENSION, 0])
        + _key(authority)
        + _key(metadata_address)
    )
    return _mint_only(mint, data)


def initialize_permanent_delegate(mint: Pubkey, delegate: Pubkey) -> Instruction:
    return _mint_only(mint, bytes([TokenInstruction.INITIALIZE_PERMANENT_DELEGATE]) + bytes(delegate))


def initialize_transfer_hook(
    mint: Pubkey, authority: Pubkey | None, hook_program_id: Pubkey | None
) -> Instruction:
    data = (
        bytes([TokenInstruction.TRANSFER_HOOK_EXTENSION, 0])
        + _key(authority)
        + _key(hook_program_id)
    )
    return _mint_only(mint, data)


def initialize_default_account_state(mint: Pubkey, state: AccountState) -> Instruction:
    return _mint_only(
        mint, bytes([TokenInstruction.DEFAULT_ACCOUNT_STATE_EXTENSION, 0, int(state)])
    )


def initialize_confidential_transfer_mint(
    mint: Pubkey,
    authority: Pubkey | None,
    auto_approve_new_accounts: bool,
    auditor_elgamal_pubkey: bytes | None,
) -> Instruction:
    """ConfidentialTransfer ``InitializeMint``: a fixed 67-byte payload."""

    auditor = auditor_elgamal_pubkey if auditor_elgamal_pubkey is not None else ZERO_KEY
    if len(auditor) != 32:
        raise ValueError(f"Auditor ElGamal pubkey must be 32 bytes, got {len(auditor)}")
    data = (
        bytes(
            [
                TokenInstruction.CONFIDENTIAL_TRANSFER_EXTENSION,
                ConfidentialTransferInstruction.INITIALIZE_MINT,
            ]
        )
        + _key(authority)
        + bytes([1 if auto_approve_new_accounts else 0])
        + bytes(auditor)
    )
    return _mint_only(mint, data)


def initialize_mint2(
    mint: Pubkey,
    decimals: int,
    mint_authority: Pubkey,
    freeze_authority: Pubkey | None,
) -> Instruction:
    data = bytes([TokenInstruction.INITIALIZE_MINT2]) + InitializeMint2Layout.build(
        {
            "decimals": decimals,
            "mint_authority": list(bytes(mint_authority)),
            "freeze_authority": list(bytes(freeze_authority)) if freeze_authority is not None else None,
        }
    )
    return _mint_only(mint, data)


def initialize_token_metadata(
    mint: Pubkey,
    update_authority: Pubkey,
    mint_authority: Pubkey,
    name: str,
    symbol: str,
    uri: str,
    *,
    metadata: Pubkey | None = None,
) -> Instruction:
    data = TOKEN_METADATA_INITIALIZE + TokenMetadataInitializeLayout.build(
        {"name": name, "symbol": symbol, "uri": uri}
    )
    accounts = [
        AccountMeta(metadata or mint, False, True),
        AccountMeta(update_authority, False, False),
        AccountMeta(mint, False, False),
        AccountMeta(mint_authority, True, False),
    ]
    return Instruction(TOKEN_2022_PROGRAM_ID, data, accounts)


def set_authority(
    account: Pubkey,
    current_authority: Pubkey,
    authority_type: AuthorityType,
    new_authority: Pubkey | None,
) -> Instruction:
    data = bytes([TokenInstruction.SET_AUTHORITY]) + SetAuthorityLayout.build(
        {
            "authority_type": int(authority_type),
            "new_authority": list(bytes(new_authority)) if new_authority is not None else None,
        }
    )
    accounts = [
        AccountMeta(account, False, True),
        AccountMeta(current_authority, True, False),
    ]
    return Instruction(TOKEN_2022_PROGRAM_ID, data, accounts)


def confidential_deposit(
    token_account: Pubkey, mint: Pubkey, owner: Pubkey, amount: int, decimals: int
) -> Instruction:
    data = bytes(
        [TokenInstruction.CONFIDENTIAL_TRANSFER_EXTENSION, ConfidentialTransferInstruction.DEPOSIT]
    ) + DepositLayout.build({"amount": amount, "decimals": decimals})
    accounts = [
        AccountMeta(token_account, False, True),
        AccountMeta(mint, False, False),
        AccountMeta(owner, True, False),
    ]
    return Instruction(TOKEN_2022_PROGRAM_ID, data, accounts)


def confidential_apply_pending_balance(
    token_account: Pubkey,
    owner: Pubkey,
    expected_pending_balance_credit_counter: int,
    new_decryptable_available_balance: bytes,
) -> Instruction:
    if len(new_decryptable_available_balance) != 36:
        raise ValueError("Decryptable available balance must be a 36-byte AE ciphertext")
    data = (
        bytes(
            [
                TokenInstruction.CONFIDENTIAL_TRANSFER_EXTENSION,
                ConfidentialTransferInstruction.APPLY_PENDING_BALANCE,
            ]
        )
        + U64.build(expected_pending_balance_credit_counter)
        + bytes(new_decryptable_available_balance)
    )
    accounts = [
        AccountMeta(token_account, False, True),
        AccountMeta(owner, True, False),
    ]
    return Instruction(TOKEN_2022_PROGRAM_ID, data, accounts)
