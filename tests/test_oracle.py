from __future__ import annotations

import pytest
from solders.pubkey import Pubkey

from solana_stablecoin.constants import PYTH_V2_MAINNET_PROGRAM_ID
from solana_stablecoin.errors import InvalidOracleDataError, InvalidOraclePriceError
from solana_stablecoin.oracle import (
    OraclePrice,
    build_oracle_remaining_account,
    fetch_price_feed,
    parse_price_feed,
    token_amount_to_usd,
    usd_to_token_amount,
)
from solana_stablecoin.rpc_client import AccountInfo


def _price_account(mantissa: int, exponent: int, length: int = 240) -> bytes:
    data = bytearray(length)
    data[20:24] = exponent.to_bytes(4, "little", signed=True)
    data[208:216] = mantissa.to_bytes(8, "little", signed=True)
    return bytes(data)


class AccountRPC:
    def __init__(self, account: AccountInfo | None) -> None:
        self.account = account

    def get_account_info(self, address: Pubkey) -> AccountInfo | None:
        return self.account


def test_parse_price_feed_reads_fixed_offsets() -> None:
    price = parse_price_feed(_price_account(100_000_000, -8))

    assert price == OraclePrice(mantissa=100_000_000, exponent=-8)
    assert price.price_usd == pytest.approx(1.0)


def test_short_buffer_rejected() -> None:
    with pytest.raises(InvalidOracleDataError):
        parse_price_feed(bytes(215))
    parse_price_feed(_price_account(1, 0, length=216))


@pytest.mark.parametrize("mantissa", [0, -5])
def test_non_positive_price_rejected(mantissa: int) -> None:
    with pytest.raises(InvalidOraclePriceError):
        parse_price_feed(_price_account(mantissa, -8))


def test_one_dollar_peg_conversion() -> None:
    price = OraclePrice(mantissa=100_000_000, exponent=-8)

    assert usd_to_token_amount(100, price, 6) == 100_000_000


@pytest.mark.parametrize(
    ("price", "usd"),
    [
        (OraclePrice(mantissa=15_012_345_678, exponent=-8), 250),
        (OraclePrice(mantissa=999_870, exponent=-6), 1_000),
        (OraclePrice(mantissa=3, exponent=2), 42),
    ],
)
def test_conversion_round_trip_is_close(price: OraclePrice, usd: int) -> None:
    units = usd_to_token_amount(usd, price, 6)

    assert token_amount_to_usd(units, price, 6) == pytest.approx(usd, rel=1e-5)


def test_conversion_truncates_toward_zero() -> None:
    price = OraclePrice(mantissa=3, exponent=0)

    assert usd_to_token_amount(1, price, 0) == 0
    assert usd_to_token_amount(10, price, 0) == 3


def test_negative_usd_rejected() -> None:
    with pytest.raises(ValueError):
        usd_to_token_amount(-1, OraclePrice(mantissa=1, exponent=0), 6)


def test_fetch_price_feed_parses_account_data() -> None:
    account = AccountInfo(
        lamports=1,
        owner=PYTH_V2_MAINNET_PROGRAM_ID,
        data=_price_account(2_000_000, -6),
        executable=False,
    )

    price = fetch_price_feed(AccountRPC(account), Pubkey.default())

    assert price.mantissa == 2_000_000
    assert price.exponent == -6


def test_fetch_price_feed_missing_account() -> None:
    with pytest.raises(InvalidOracleDataError):
        fetch_price_feed(AccountRPC(None), Pubkey.default())


def test_remaining_account_is_read_only() -> None:
    feed = Pubkey.default()
    meta = build_oracle_remaining_account(feed)

    assert meta.pubkey == feed
    assert not meta.is_signer
    assert not meta.is_writable
