"""Domain enums, value types and on-chain account decoders."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any

from borsh_construct import Bool, CStruct, I64, Option, String, U8, U32, U64
from construct import ConstructError
from solders.pubkey import Pubkey

from .constants import (
    ACCOUNT_BLACKLIST_ENTRY,
    ACCOUNT_ROLE,
    ACCOUNT_STABLECOIN_CONFIG,
)
from .errors import InvalidPresetError, InvalidRoleError

PUBKEY = U8[32]


class AccountDecodeError(ValueError):
    """Raised when account data does not match the expected layout."""


class Role(IntEnum):
    """Capability kinds. The byte values are part of the PDA seeds."""

    ADMIN = 0
    MINTER = 1
    FREEZER = 2
    PAUSER = 3
    BURNER = 4
    BLACKLISTER = 5
    SEIZER = 6

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def parse(cls, value: "Role | int | str") -> "Role":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper().replace("-", "_")
            if key.isdigit():
                return cls.parse(int(key))
            try:
                return cls[key]
            except KeyError:
                raise InvalidRoleError(f"Unknown role: {value!r}") from None
        try:
            return cls(value)
        except ValueError:
            raise InvalidRoleError(f"Unknown role: {value!r}") from None


class Preset(IntEnum):
    """Product tiers. The value is stored in the config account."""

    SSS_1 = 1
    SSS_2 = 2
    SSS_3 = 3

    @property
    def label(self) -> str:
        return f"sss-{self.value}"

    @classmethod
    def parse(cls, value: "Preset | int | str") -> "Preset":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace("_", "-")
            if key.startswith("sss-"):
                key = key[4:]
            if not key.isdigit():
                raise InvalidPresetError(f"Unknown preset: {value!r}")
            value = int(key)
        try:
            return cls(value)
        except ValueError:
            raise InvalidPresetError(f"Unknown preset: {value!r}") from None


StablecoinConfigLayout = CStruct(
    "authority" / PUBKEY,
    "mint" / PUBKEY,
    "preset" / U8,
    "paused" / Bool,
    "supply_cap" / Option(U64),
    "total_minted" / U64,
    "total_burned" / U64,
    "bump" / U8,
    "name" / String,
    "symbol" / String,
    "uri" / String,
    "decimals" / U8,
    "enable_permanent_delegate" / Bool,
    "enable_transfer_hook" / Bool,
    "default_account_frozen" / Bool,
    "admin_count" / U32,
)

RoleAccountLayout = CStruct(
    "config" / PUBKEY,
    "address" / PUBKEY,
    "role" / U8,
    "granted_by" / PUBKEY,
    "granted_at" / I64,
    "bump" / U8,
    "mint_quota" / Option(U64),
    "amount_minted" / U64,
)

BlacklistEntryLayout = CStruct(
    "mint" / PUBKEY,
    "address" / PUBKEY,
    "added_by" / PUBKEY,
    "added_at" / I64,
    "reason" / String,
    "bump" / U8,
)


@dataclass(frozen=True)
class StablecoinInfo:
    """Decoded ``StablecoinConfig`` account."""

    config: Pubkey
    authority: Pubkey
    mint: Pubkey
    preset: Preset
    paused: bool
    supply_cap: int | None
    total_minted: int
    total_burned: int
    bump: int
    name: str
    symbol: str
    uri: str
    decimals: int
    enable_permanent_delegate: bool
    enable_transfer_hook: bool
    default_account_frozen: bool
    admin_count: int

    @property
    def current_supply(self) -> int:
        return max(self.total_minted - self.total_burned, 0)

    def can_mint(self, amount: int) -> bool:
        """Mirror of the program's supply-cap check for ``amount`` new units."""

        new_total = self.total_minted + amount
        if new_total > 2**64 - 1:
            return False
        if self.supply_cap is None:
            return True
        return max(new_total - self.total_burned, 0) <= self.supply_cap

    def to_dict(self) -> dict[str, Any]:
        return {
            "config": str(self.config),
            "mint": str(self.mint),
            "authority": str(self.authority),
            "preset": self.preset.label,
            "paused": self.paused,
            "supply_cap": self.supply_cap,
            "total_minted": self.total_minted,
            "total_burned": self.total_burned,
            "current_supply": self.current_supply,
            "name": self.name,
            "symbol": self.symbol,
            "uri": self.uri,
            "decimals": self.decimals,
            "enable_permanent_delegate": self.enable_permanent_delegate,
            "enable_transfer_hook": self.enable_transfer_hook,
            "default_account_frozen": self.default_account_frozen,
            "admin_count": self.admin_count,
        }


@dataclass(frozen=True)
class RoleInfo:
    """Decoded role account. Its existence is the authorization proof."""

    address: Pubkey
    config: Pubkey
    holder: Pubkey
    role: Role
    granted_by: Pubkey
    granted_at: datetime
    bump: int
    mint_quota: int | None
    amount_minted: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": str(self.address),
            "config": str(self.config),
            "holder": str(self.holder),
            "role": self.role.label,
            "granted_by": str(self.granted_by),
            "granted_at": self.granted_at.isoformat(),
            "mint_quota": self.mint_quota,
            "amount_minted": self.amount_minted,
        }


@dataclass(frozen=True)
class BlacklistInfo:
    """Decoded blacklist entry."""

    address: Pubkey
    mint: Pubkey
    target: Pubkey
    added_by: Pubkey
    added_at: datetime
    reason: str
    bump: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": str(self.address),
            "mint": str(self.mint),
            "target": str(self.target),
            "added_by": str(self.added_by),
            "added_at": self.added_at.isoformat(),
            "reason": self.reason,
        }


def _to_pubkey(raw: Any) -> Pubkey:
    return Pubkey(bytes(raw))


def _to_datetime(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def _strip_discriminator(data: bytes, expected: bytes, kind: str) -> bytes:
    if len(data) < 8 or bytes(data[:8]) != expected:
        raise AccountDecodeError(f"Account data is not a {kind} account")
    return bytes(data[8:])


def _parse(layout: CStruct, body: bytes, kind: str) -> Any:
    try:
        return layout.parse(body)
    except (ConstructError, ValueError) as exc:
        raise AccountDecodeError(f"Malformed {kind} account data: {exc}") from exc


def decode_stablecoin_config(address: Pubkey, data: bytes) -> StablecoinInfo:
    body = _strip_discriminator(data, ACCOUNT_STABLECOIN_CONFIG, "StablecoinConfig")
    parsed = _parse(StablecoinConfigLayout, body, "StablecoinConfig")
    return StablecoinInfo(
        config=address,
        authority=_to_pubkey(parsed.authority),
        mint=_to_pubkey(parsed.mint),
        preset=Preset.parse(parsed.preset),
        paused=bool(parsed.paused),
        supply_cap=parsed.supply_cap,
        total_minted=parsed.total_minted,
        total_burned=parsed.total_burned,
        bump=parsed.bump,
        name=parsed.name,
        symbol=parsed.symbol,
        uri=parsed.uri,
        decimals=parsed.decimals,
        enable_permanent_delegate=bool(parsed.enable_permanent_delegate),
        enable_transfer_hook=bool(parsed.enable_transfer_hook),
        default_account_frozen=bool(parsed.default_account_frozen),
        admin_count=parsed.admin_count,
    )


def decode_role_account(address: Pubkey, data: bytes) -> RoleInfo:
    body = _strip_discriminator(data, ACCOUNT_ROLE, "RoleAccount")
    parsed = _parse(RoleAccountLayout, body, "RoleAccount")
    return RoleInfo(
        address=address,
        config=_to_pubkey(parsed.config),
        holder=_to_pubkey(parsed.address),
        role=Role.parse(parsed.role),
        granted_by=_to_pubkey(parsed.granted_by),
        granted_at=_to_datetime(parsed.granted_at),
        bump=parsed.bump,
        mint_quota=parsed.mint_quota,
        amount_minted=parsed.amount_minted,
    )


def decode_blacklist_entry(address: Pubkey, data: bytes) -> BlacklistInfo:
    body = _strip_discriminator(data, ACCOUNT_BLACKLIST_ENTRY, "BlacklistEntry")
    parsed = _parse(BlacklistEntryLayout, body, "BlacklistEntry")
    return BlacklistInfo(
        address=address,
        mint=_to_pubkey(parsed.mint),
        target=_to_pubkey(parsed.address),
        added_by=_to_pubkey(parsed.added_by),
        added_at=_to_datetime(parsed.added_at),
        reason=parsed.reason,
        bump=parsed.bump,
    )
