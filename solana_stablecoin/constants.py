"""Program ids, PDA domain tags and wire discriminators for the SSS programs."""

from __future__ import annotations

import hashlib

from solders.pubkey import Pubkey

SSS_CORE_PROGRAM_ID = Pubkey.from_string("SSSCFmmtaU1oToJ9eMqzTtPbK9EAyoXdivUG4irBHVP")
SSS_HOOK_PROGRAM_ID = Pubkey.from_string("HookFvKFaoF9KL8TUXUnQK5r2mJoMYdBENu549seRyXW")

SYSTEM_PROGRAM_ID = Pubkey.from_string("11111111111111111111111111111111")
TOKEN_2022_PROGRAM_ID = Pubkey.from_string("TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb")

# PDA domain tags. Each address family owns exactly one tag.
SSS_CONFIG_SEED = b"sss-config"
SSS_ROLE_SEED = b"sss-role"
BLACKLIST_SEED = b"blacklist"
EXTRA_ACCOUNT_METAS_SEED = b"extra-account-metas"

MAX_SEED_LEN = 32
MAX_SEEDS = 16

# Client-side limits mirrored from the programs.
MAX_NAME_LEN = 32
MAX_SYMBOL_LEN = 10
MAX_URI_LEN = 200
MAX_REASON_LEN = 512
MAX_DECIMALS = 9
DEFAULT_DECIMALS = 6
U64_MAX = 2**64 - 1


def sighash(namespace: str, name: str) -> bytes:
    """Return the 8-byte Anchor discriminator for ``namespace:name``."""

    return hashlib.sha256(f"{namespace}:{name}".encode()).digest()[:8]


# sss-core instruction discriminators (IDL v0.1.0).
IX_INITIALIZE = bytes([175, 175, 109, 31, 13, 152, 155, 237])
IX_MINT_TOKENS = bytes([59, 132, 24, 246, 122, 39, 8, 243])
IX_BURN_TOKENS = bytes([76, 15, 51, 254, 229, 215, 121, 66])
IX_FREEZE_ACCOUNT = bytes([253, 75, 82, 133, 167, 238, 43, 130])
IX_THAW_ACCOUNT = bytes([115, 152, 79, 213, 213, 169, 184, 35])
IX_PAUSE = bytes([211, 22, 221, 251, 74, 121, 193, 47])
IX_UNPAUSE = bytes([169, 144, 4, 38, 10, 141, 188, 255])
IX_SEIZE = bytes([129, 159, 143, 31, 161, 224, 241, 84])
IX_GRANT_ROLE = bytes([218, 234, 128, 15, 82, 33, 236, 253])
IX_REVOKE_ROLE = bytes([179, 232, 2, 180, 48, 227, 82, 7])
IX_TRANSFER_AUTHORITY = bytes([48, 169, 76, 72, 229, 180, 55, 161])
IX_UPDATE_MINTER = bytes([164, 129, 164, 88, 75, 29, 91, 38])
IX_UPDATE_SUPPLY_CAP = bytes([9, 215, 52, 77, 1, 9, 162, 17])

# sss-transfer-hook instruction discriminators.
IX_INITIALIZE_EXTRA_ACCOUNT_METAS = bytes([22, 213, 130, 114, 1, 174, 121, 36])
IX_ADD_TO_BLACKLIST = bytes([90, 115, 98, 231, 173, 119, 117, 176])
IX_REMOVE_FROM_BLACKLIST = bytes([47, 105, 20, 10, 165, 168, 203, 219])
# Token-2022 calls the hook with the interface discriminator, not Anchor's.
IX_TRANSFER_HOOK_EXECUTE = sighash("spl-transfer-hook-interface", "execute")

# Account discriminators.
ACCOUNT_STABLECOIN_CONFIG = bytes([127, 25, 244, 213, 1, 192, 101, 6])
ACCOUNT_ROLE = bytes([142, 236, 135, 197, 214, 3, 244, 226])
ACCOUNT_BLACKLIST_ENTRY = bytes([218, 179, 231, 40, 141, 25, 168, 189])

# Pyth v2 price accounts.
PYTH_V2_MAINNET_PROGRAM_ID = Pubkey.from_string("FsJ3A3u2vn5cTVofAjvy6y5kwABJAqYWpe4975bi2epH")
PYTH_V2_DEVNET_PROGRAM_ID = Pubkey.from_string("gSbePebfvPy7tRqimPoVecS2UsBvYv46ynrzWocc92s")
PYTH_FEEDS = {
    "SOL_USD_MAINNET": Pubkey.from_string("H6ARHf6YXhGYeQfUzQNGk6rDNnLBQKrenN712K4AQJEG"),
    "SOL_USD_DEVNET": Pubkey.from_string("J83w4HKfqxwcq3BEMMkPFSppX3gqekLyLJBexebFVkix"),
    "USDC_USD_MAINNET": Pubkey.from_string("Gnt27xtC473ZT2Mw5u8wZ68Z3gULkSTb5DuxJy7eJotD"),
    "USDT_USD_MAINNET": Pubkey.from_string("3vxLXJqLqF3JG5TCbYycbKWRBbCJQLxQmBGCkyqEEefL"),
}
