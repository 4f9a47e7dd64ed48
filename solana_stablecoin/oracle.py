"""Pyth v2 price feed parsing and fixed-point USD conversion."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from solders.instruction import AccountMeta
from solders.pubkey import Pubkey

from .constants import PYTH_FEEDS, PYTH_V2_DEVNET_PROGRAM_ID, PYTH_V2_MAINNET_PROGRAM_ID
from .errors import InvalidOracleDataError, InvalidOraclePriceError

logger = logging.getLogger(__name__)

EXPONENT_OFFSET = 20
PRICE_OFFSET = 208
MIN_PRICE_ACCOUNT_LEN = PRICE_OFFSET + 8
PYTH_OWNERS = frozenset({PYTH_V2_MAINNET_PROGRAM_ID, PYTH_V2_DEVNET_PROGRAM_ID})

__all__ = [
    "OracleDataError",
    "OraclePrice",
    "OraclePriceError",
    "PYTH_FEEDS",
    "build_oracle_remaining_account",
    "fetch_price_feed",
    "parse_price_feed",
    "token_amount_to_usd",
    "usd_to_token_amount",
]


class OracleDataError(InvalidOracleDataError):
    """Price account buffer is too short to hold a v2 aggregate price."""


class OraclePriceError(InvalidOraclePriceError):
    """Aggregate price mantissa is zero or negative."""


@dataclass(frozen=True)
class OraclePrice:
    mantissa: int
    exponent: int

    @property
    def price_usd(self) -> float:
        return self.mantissa * 10.0**self.exponent


def parse_price_feed(buffer: bytes) -> OraclePrice:
    """Read the exponent and aggregate price out of a Pyth v2 price account."""

    data = bytes(buffer)
    if len(data) < MIN_PRICE_ACCOUNT_LEN:
        raise OracleDataError(
            f"Invalid price account: expected >= {MIN_PRICE_ACCOUNT_LEN} bytes, got {len(data)}"
        )
    exponent = int.from_bytes(data[EXPONENT_OFFSET : EXPONENT_OFFSET + 4], "little", signed=True)
    mantissa = int.from_bytes(data[PRICE_OFFSET : PRICE_OFFSET + 8], "little", signed=True)
    if mantissa <= 0:
        raise OraclePriceError(f"Invalid oracle price: {mantissa} (must be positive)")
    return OraclePrice(mantissa=mantissa, exponent=exponent)


def usd_to_token_amount(usd: int, price: OraclePrice, decimals: int) -> int:
    """Convert whole ``usd`` into token base units, truncating toward zero."""

    if usd < 0:
        raise ValueError("USD amount must not be negative")
    if price.mantissa <= 0:
        raise OraclePriceError(f"Invalid oracle price: {price.mantissa} (must be positive)")
    scale = 10**decimals
    if price.exponent < 0:
        return usd * scale * 10 ** (-price.exponent) // price.mantissa
    return usd * scale // (price.mantissa * 10**price.exponent)


def token_amount_to_usd(units: int, price: OraclePrice, decimals: int) -> float:
    """Approximate USD value of ``units``; not an exact inverse of the forward conversion."""

    scale = 10**decimals
    if price.exponent < 0:
        return (units * price.mantissa) / (scale * 10 ** (-price.exponent))
    return (units * price.mantissa * 10**price.exponent) / scale


def fetch_price_feed(rpc: Any, address: Pubkey) -> OraclePrice:
    account = rpc.get_account_info(address)
    if account is None:
        raise OracleDataError(f"Price feed account not found: {address}")
    if account.owner not in PYTH_OWNERS:
        logger.warning("Price feed %s is owned by %s, not a Pyth v2 program", address, account.owner)
    price = parse_price_feed(account.data)
    logger.debug("Price feed %s: mantissa=%d exponent=%d", address, price.mantissa, price.exponent)
    return price


def build_oracle_remaining_account(address: Pubkey) -> AccountMeta:
    return AccountMeta(address, False, False)
