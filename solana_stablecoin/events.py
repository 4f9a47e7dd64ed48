"""Decode sss-core events from transaction log messages."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass, fields
from typing import Any, Iterable

from borsh_construct import CStruct, Option, String, U8, U64
from construct import ConstructError
from solders.pubkey import Pubkey

from .constants import sighash

logger = logging.getLogger(__name__)

PROGRAM_DATA_PREFIX = "Program data: "
PUBKEY = U8[32]


@dataclass(frozen=True)
class StablecoinInitialized:
    mint: Pubkey
    authority: Pubkey
    preset: int
    supply_cap: int | None
    name: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class TokensMinted:
    mint: Pubkey
    to: Pubkey
    amount: int
    minter: Pubkey
    new_supply: int


@dataclass(frozen=True)
class TokensBurned:
    mint: Pubkey
    source: Pubkey
    amount: int
    burner: Pubkey
    new_supply: int


@dataclass(frozen=True)
class AccountFrozen:
    mint: Pubkey
    account: Pubkey
    freezer: Pubkey


@dataclass(frozen=True)
class AccountThawed:
    mint: Pubkey
    account: Pubkey
    freezer: Pubkey


@dataclass(frozen=True)
class OperationsPaused:
    mint: Pubkey
    pauser: Pubkey


@dataclass(frozen=True)
class OperationsUnpaused:
    mint: Pubkey
    pauser: Pubkey


@dataclass(frozen=True)
class TokensSeized:
    mint: Pubkey
    source: Pubkey
    to: Pubkey
    amount: int
    seizer: Pubkey


@dataclass(frozen=True)
class RoleGranted:
    config: Pubkey
    address: Pubkey
    role: int
    granted_by: Pubkey


@dataclass(frozen=True)
class RoleRevoked:
    config: Pubkey
    address: Pubkey
    role: int
    revoked_by: Pubkey


@dataclass(frozen=True)
class AuthorityTransferred:
    config: Pubkey
    source: Pubkey
    to: Pubkey


@dataclass(frozen=True)
class ConfigUpdated:
    config: Pubkey
    field: str
    updater: Pubkey


# Wire field order. ``from`` is renamed ``source`` on the Python side.
_LAYOUTS: dict[type, CStruct] = {
    StablecoinInitialized: CStruct(
        "mint" / PUBKEY,
        "authority" / PUBKEY,
        "preset" / U8,
        "supply_cap" / Option(U64),
        "name" / String,
        "symbol" / String,
        "decimals" / U8,
    ),
    TokensMinted: CStruct(
        "mint" / PUBKEY, "to" / PUBKEY, "amount" / U64, "minter" / PUBKEY, "new_supply" / U64
    ),
    TokensBurned: CStruct(
        "mint" / PUBKEY, "source" / PUBKEY, "amount" / U64, "burner" / PUBKEY, "new_supply" / U64
    ),
    AccountFrozen: CStruct("mint" / PUBKEY, "account" / PUBKEY, "freezer" / PUBKEY),
    AccountThawed: CStruct("mint" / PUBKEY, "account" / PUBKEY, "freezer" / PUBKEY),
    OperationsPaused: CStruct("mint" / PUBKEY, "pauser" / PUBKEY),
    OperationsUnpaused: CStruct("mint" / PUBKEY, "pauser" / PUBKEY),
    TokensSeized: CStruct(
        "mint" / PUBKEY, "source" / PUBKEY, "to" / PUBKEY, "amount" / U64, "seizer" / PUBKEY
    ),
    RoleGranted: CStruct(
        "config" / PUBKEY, "address" / PUBKEY, "role" / U8, "granted_by" / PUBKEY
    ),
    RoleRevoked: CStruct(
        "config" / PUBKEY, "address" / PUBKEY, "role" / U8, "revoked_by" / PUBKEY
    ),
    AuthorityTransferred: CStruct("config" / PUBKEY, "source" / PUBKEY, "to" / PUBKEY),
    ConfigUpdated: CStruct("config" / PUBKEY, "field" / String, "updater" / PUBKEY),
}

EVENT_TYPES: dict[bytes, type] = {sighash("event", cls.__name__): cls for cls in _LAYOUTS}


def _convert(value: Any) -> Any:
    if isinstance(value, list) and len(value) == 32:
        return Pubkey(bytes(value))
    return value


def decode_event(payload: bytes) -> Any | None:
    """Decode one event payload (discriminator + Borsh body); ``None`` if unknown."""

    event_type = EVENT_TYPES.get(bytes(payload[:8]))
    if event_type is None:
        return None
    parsed = _LAYOUTS[event_type].parse(bytes(payload[8:]))
    values = {item.name: _convert(getattr(parsed, item.name)) for item in fields(event_type)}
    return event_type(**values)


def parse_events(logs: Iterable[str]) -> list[Any]:
    events: list[Any] = []
    for line in logs:
        if not line.startswith(PROGRAM_DATA_PREFIX):
            continue
        encoded = line[len(PROGRAM_DATA_PREFIX):].strip()
        try:
            event = decode_event(base64.b64decode(encoded, validate=True))
        except (binascii.Error, ValueError) as exc:
            logger.debug("Skipping undecodable event line %r: %s", line, exc)
            continue
        except ConstructError as exc:
            logger.debug("Skipping malformed event payload %r: %s", line, exc)
            continue
        if event is None:
            logger.debug("Skipping unknown event discriminator in %r", line)
            continue
        events.append(event)
    return events
