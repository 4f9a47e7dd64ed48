"""Instruction builders for the sss-core and sss-transfer-hook programs.

Every builder returns an inert :class:`solders.instruction.Instruction`:
an 8-byte discriminator followed by Borsh-encoded arguments, with accounts in
the exact positional order the program declares. Authorization is expressed
only by passing the derived role address of the signer.
"""

from __future__ import annotations

from dataclasses import dataclass

from borsh_construct import Bool, CStruct, Option, String, U8, U64
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from .constants import (
    IX_ADD_TO_BLACKLIST,
    IX_BURN_TOKENS,
    IX_FREEZE_ACCOUNT,
    IX_GRANT_ROLE,
    IX_INITIALIZE,
    IX_INITIALIZE_EXTRA_ACCOUNT_METAS,
    IX_MINT_TOKENS,
    IX_PAUSE,
    IX_REMOVE_FROM_BLACKLIST,
    IX_REVOKE_ROLE,
    IX_SEIZE,
    IX_THAW_ACCOUNT,
    IX_TRANSFER_AUTHORITY,
    IX_TRANSFER_HOOK_EXECUTE,
    IX_UNPAUSE,
    IX_UPDATE_MINTER,
    IX_UPDATE_SUPPLY_CAP,
    MAX_REASON_LEN,
    SSS_CORE_PROGRAM_ID,
    SSS_HOOK_PROGRAM_ID,
    SYSTEM_PROGRAM_ID,
    TOKEN_2022_PROGRAM_ID,
    U64_MAX,
)
from .errors import ReasonTooLongError, ZeroAmountError
from .model import Preset, Role
from .pda import (
    derive_blacklist_pda,
    derive_config_pda,
    derive_extra_account_metas_pda,
    derive_role_pda,
)

InitializeArgsLayout = CStruct(
    "preset" / U8,
    "name" / String,
    "symbol" / String,
    "uri" / String,
    "decimals" / U8,
    "supply_cap" / Option(U64),
    "enable_permanent_delegate" / Option(Bool),
    "enable_transfer_hook" / Option(Bool),
    "default_account_frozen" / Option(Bool),
)
AmountLayout = CStruct("amount" / U64)
RoleArgLayout = CStruct("role" / U8)
OptionalU64Layout = CStruct("value" / Option(U64))
ReasonLayout = CStruct("reason" / String)


@dataclass(frozen=True)
class InitializeArgs:
    preset: Preset
    name: str
    symbol: str
    uri: str = ""
    decimals: int = 6
    supply_cap: int | None = None
    enable_permanent_delegate: bool | None = None
    enable_transfer_hook: bool | None = None
    default_account_frozen: bool | None = None

    def encode(self) -> bytes:
        return InitializeArgsLayout.build(
            {
                "preset": int(Preset.parse(self.preset)),
                "name": self.name,
                "symbol": self.symbol,
                "uri": self.uri,
                "decimals": self.decimals,
                "supply_cap": self.supply_cap,
                "enable_permanent_delegate": self.enable_permanent_delegate,
                "enable_transfer_hook": self.enable_transfer_hook,
                "default_account_frozen": self.default_account_frozen,
            }
        )


def _signer(pubkey: Pubkey, writable: bool = False) -> AccountMeta:
    return AccountMeta(pubkey, True, writable)


def _writable(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey, False, True)


def _readonly(pubkey: Pubkey) -> AccountMeta:
    return AccountMeta(pubkey, False, False)


def _check_amount(amount: int) -> int:
    if amount <= 0:
        raise ZeroAmountError()
    if amount > U64_MAX:
        raise ValueError(f"Amount {amount} does not fit in a u64")
    return amount


def _check_optional_u64(value: int | None, label: str) -> int | None:
    if value is not None and not 0 <= value <= U64_MAX:
        raise ValueError(f"{label} {value} does not fit in a u64")
    return value


def _encode_amount(discriminator: bytes, amount: int) -> bytes:
    return discriminator + AmountLayout.build({"amount": _check_amount(amount)})


# sss-core -----------------------------------------------------------------


def build_initialize(
    mint: Pubkey,
    authority: Pubkey,
    args: InitializeArgs,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
) -> Instruction:
    config, _ = derive_config_pda(mint, core_program_id)
    admin_role, _ = derive_role_pda(config, authority, Role.ADMIN, core_program_id)
    _check_optional_u64(args.supply_cap, "Supply cap")
    accounts = [
        _signer(authority, writable=True),
        _writable(config),
        _readonly(mint),
        _writable(admin_role),
        _readonly(TOKEN_2022_PROGRAM_ID),
        _readonly(SYSTEM_PROGRAM_ID),
    ]
    return Instruction(core_program_id, IX_INITIALIZE + args.encode(), accounts)


def build_mint_tokens(
    mint: Pubkey,
    minter: Pubkey,
    to: Pubkey,
    amount: int,
    *,
    price_feed: Pubkey | None = None,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
) -> Instruction:
    """Issue ``amount`` base units to the token account ``to``.

    When ``price_feed`` is given it is appended as a read-only trailing
    account so the program can enforce a USD-denominated quota.
    """

    config, _ = derive_config_pda(mint, core_program_id)
    minter_role, _ = derive_role_pda(config, minter, Role.MINTER, core_program_id)
    data = _encode_amount(IX_MINT_TOKENS, amount)
    accounts = [
        _signer(minter),
        _writable(config),
        _writable(minter_role),
        _writable(mint),
        _writable(to),
        _readonly(TOKEN_2022_PROGRAM_ID),
    ]
    if price_feed is not None:
        accounts.append(_readonly(price_feed))
    return Instruction(core_program_id, data, accounts)


def build_burn_tokens(
    mint: Pubkey,
    burner: Pubkey,
    source: Pubkey,
    amount: int,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
) -> Instruction:
    config, _ = derive_config_pda(mint, core_program_id)
    burner_role, _ = derive_role_pda(config, burner, Role.BURNER, core_program_id)
    data = _encode_amount(IX_BURN_TOKENS, amount)
    accounts = [
        _signer(burner),
        _writable(config),
        _readonly(burner_role),
        _writable(mint),
        _writable(source),
        _readonly(TOKEN_2022_PROGRAM_ID),
    ]
    return Instruction(core_program_id, data, accounts)


def _freeze_like(
    discriminator: bytes,
    mint: Pubkey,
    freezer: Pubkey,
    token_account: Pubkey,
    core_program_id: Pubkey,
) -> Instruction:
    config, _ = derive_config_pda(mint, core_program_id)
    freezer_role, _ = derive_role_pda(config, freezer, Role.FREEZER, core_program_id)
    accounts = [
        _signer(freezer),
        _readonly(config),
        _readonly(freezer_role),
        _readonly(mint),
        _writable(token_account),
        _readonly(TOKEN_2022_PROGRAM_ID),
    ]
    return Instruction(core_program_id, discriminator, accounts)


def build_freeze_account(
    mint: Pubkey,
    freezer: Pubkey,
    token_account: Pubkey,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
) -> Instruction:
    return _freeze_like(IX_FREEZE_ACCOUNT, mint, freezer, token_account, core_program_id)


def build_thaw_account(
    mint: Pubkey,
    freezer: Pubkey,
    token_account: Pubkey,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
) -> Instruction:
    return _freeze_like(IX_THAW_ACCOUNT, mint, freezer, token_account, core_program_id)


def _pause_like(
    discriminator: bytes, config: Pubkey, pauser: Pubkey, core_program_id: Pubkey
) -> Instruction:
    pauser_role, _ = derive_role_pda(config, pauser, Role.PAUSER, core_program_id)
    accounts = [_signer(pauser), _writable(config), _readonly(pauser_role)]
    return Instruction(core_program_id, discriminator, accounts)


def build_pause(
    config: Pubkey, pauser: Pubkey, *, core_program_id: Pubkey = SSS_CORE_PROGRAM_ID
) -> Instruction:
    return _pause_like(IX_PAUSE, config, pauser, core_program_id)


def build_unpause(
    config: Pubkey, pauser: Pubkey, *, core_program_id: Pubkey = SSS_CORE_PROGRAM_ID
) -> Instruction:
    return _pause_like(IX_UNPAUSE, config, pauser, core_program_id)


def build_seize(
    mint: Pubkey,
    seizer: Pubkey,
    source: Pubkey,
    destination: Pubkey,
    amount: int,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
) -> Instruction:
    """Move ``amount`` out of ``source`` through the permanent delegate."""

    config, _ = derive_config_pda(mint, core_program_id)
    seizer_role, _ = derive_role_pda(config, seizer, Role.SEIZER, core_program_id)
    data = _encode_amount(IX_SEIZE, amount)
    accounts = [
        _signer(seizer),
        _readonly(config),
        _readonly(seizer_role),
        _readonly(mint),
        _writable(source),
        _writable(destination),
        _readonly(TOKEN_2022_PROGRAM_ID),
    ]
    return Instruction(core_program_id, data, accounts)


def build_grant_role(
    config: Pubkey,
    admin: Pubkey,
    grantee: Pubkey,
    role: Role | int | str,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
) -> Instruction:
    resolved = Role.parse(role)
    admin_role, _ = derive_role_pda(config, admin, Role.ADMIN, core_program_id)
    role_account, _ = derive_role_pda(config, grantee, resolved, core_program_id)
    data = IX_GRANT_ROLE + RoleArgLayout.build({"role": int(resolved)})
    accounts = [
        _signer(admin, writable=True),
        _readonly(config),
        _readonly(admin_role),
        _readonly(grantee),
        _writable(role_account),
        _readonly(SYSTEM_PROGRAM_ID),
    ]
    return Instruction(core_program_id, data, accounts)


def build_revoke_role(
    config: Pubkey,
    admin: Pubkey,
    holder: Pubkey,
    role: Role | int | str,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
) -> Instruction:
    """Close ``holder``'s role account; its rent goes back to ``admin``."""

    admin_role, _ = derive_role_pda(config, admin, Role.ADMIN, core_program_id)
    role_account, _ = derive_role_pda(config, holder, role, core_program_id)
    accounts = [
        _signer(admin, writable=True),
        _readonly(config),
        _readonly(admin_role),
        _writable(role_account),
    ]
    return Instruction(core_program_id, IX_REVOKE_ROLE, accounts)


def build_transfer_authority(
    config: Pubkey,
    admin: Pubkey,
    new_authority: Pubkey,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
) -> Instruction:
    admin_role, _ = derive_role_pda(config, admin, Role.ADMIN, core_program_id)
    new_admin_role, _ = derive_role_pda(config, new_authority, Role.ADMIN, core_program_id)
    accounts = [
        _signer(admin, writable=True),
        _writable(config),
        _writable(admin_role),
        _readonly(new_authority),
        _writable(new_admin_role),
        _readonly(SYSTEM_PROGRAM_ID),
    ]
    return Instruction(core_program_id, IX_TRANSFER_AUTHORITY, accounts)


def build_update_minter(
    config: Pubkey,
    admin: Pubkey,
    minter: Pubkey,
    new_quota: int | None,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
) -> Instruction:
    """Set or clear (``None``) the mint quota on ``minter``'s role account."""

    admin_role, _ = derive_role_pda(config, admin, Role.ADMIN, core_program_id)
    minter_role, _ = derive_role_pda(config, minter, Role.MINTER, core_program_id)
    data = IX_UPDATE_MINTER + OptionalU64Layout.build(
        {"value": _check_optional_u64(new_quota, "Quota")}
    )
    accounts = [
        _signer(admin),
        _readonly(config),
        _readonly(admin_role),
        _writable(minter_role),
    ]
    return Instruction(core_program_id, data, accounts)


def build_update_supply_cap(
    config: Pubkey,
    admin: Pubkey,
    new_supply_cap: int | None,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
) -> Instruction:
    admin_role, _ = derive_role_pda(config, admin, Role.ADMIN, core_program_id)
    data = IX_UPDATE_SUPPLY_CAP + OptionalU64Layout.build(
        {"value": _check_optional_u64(new_supply_cap, "Supply cap")}
    )
    accounts = [_signer(admin), _writable(config), _readonly(admin_role)]
    return Instruction(core_program_id, data, accounts)


# sss-transfer-hook --------------------------------------------------------


def build_add_to_blacklist(
    mint: Pubkey,
    blacklister: Pubkey,
    address: Pubkey,
    reason: str,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
    hook_program_id: Pubkey = SSS_HOOK_PROGRAM_ID,
) -> Instruction:
    if len(reason.encode("utf-8")) > MAX_REASON_LEN:
        raise ReasonTooLongError()
    # The hook checks a role account owned by the core program.
    config, _ = derive_config_pda(mint, core_program_id)
    blacklister_role, _ = derive_role_pda(config, blacklister, Role.BLACKLISTER, core_program_id)
    entry, _ = derive_blacklist_pda(mint, address, hook_program_id)
    accounts = [
        _signer(blacklister, writable=True),
        _readonly(blacklister_role),
        _readonly(mint),
        _readonly(address),
        _writable(entry),
        _readonly(SYSTEM_PROGRAM_ID),
    ]
    data = IX_ADD_TO_BLACKLIST + ReasonLayout.build({"reason": reason})
    return Instruction(hook_program_id, data, accounts)


def build_remove_from_blacklist(
    mint: Pubkey,
    blacklister: Pubkey,
    address: Pubkey,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
    hook_program_id: Pubkey = SSS_HOOK_PROGRAM_ID,
) -> Instruction:
    config, _ = derive_config_pda(mint, core_program_id)
    blacklister_role, _ = derive_role_pda(config, blacklister, Role.BLACKLISTER, core_program_id)
    entry, _ = derive_blacklist_pda(mint, address, hook_program_id)
    accounts = [
        _signer(blacklister, writable=True),
        _readonly(blacklister_role),
        _readonly(mint),
        _writable(entry),
    ]
    return Instruction(hook_program_id, IX_REMOVE_FROM_BLACKLIST, accounts)


def build_initialize_extra_account_metas(
    mint: Pubkey,
    payer: Pubkey,
    *,
    hook_program_id: Pubkey = SSS_HOOK_PROGRAM_ID,
) -> Instruction:
    extra_metas, _ = derive_extra_account_metas_pda(mint, hook_program_id)
    accounts = [
        _signer(payer, writable=True),
        _writable(extra_metas),
        _readonly(mint),
        _readonly(SYSTEM_PROGRAM_ID),
    ]
    return Instruction(hook_program_id, IX_INITIALIZE_EXTRA_ACCOUNT_METAS, accounts)


def build_transfer_hook_execute(
    source: Pubkey,
    mint: Pubkey,
    destination: Pubkey,
    authority: Pubkey,
    amount: int,
    *,
    destination_owner: Pubkey,
    hook_program_id: Pubkey = SSS_HOOK_PROGRAM_ID,
) -> Instruction:
    """The call Token-2022 makes into the hook on every transfer.

    The sender entry is keyed by the transfer authority and the receiver
    entry by the owner of ``destination``.
    """

    extra_metas, _ = derive_extra_account_metas_pda(mint, hook_program_id)
    sender_entry, _ = derive_blacklist_pda(mint, authority, hook_program_id)
    receiver_entry, _ = derive_blacklist_pda(mint, destination_owner, hook_program_id)
    accounts = [
        _readonly(source),
        _readonly(mint),
        _readonly(destination),
        _readonly(authority),
        _readonly(extra_metas),
        _readonly(sender_entry),
        _readonly(receiver_entry),
    ]
    # Token-2022 runs the hook for zero-amount transfers as well.
    data = IX_TRANSFER_HOOK_EXECUTE + AmountLayout.build(
        {"amount": _check_optional_u64(amount, "Amount")}
    )
    return Instruction(hook_program_id, data, accounts)
