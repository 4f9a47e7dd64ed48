"""Solana Stablecoin Standard (SSS) client package."""

from .client import HandleCache, StablecoinClient, StablecoinNotFoundError
from .config import ConfigurationError, RPCConfig, load_keypair, load_rpc_config
from .constants import SSS_CORE_PROGRAM_ID, SSS_HOOK_PROGRAM_ID
from .errors import (
    ClientSideCreationError,
    DerivationError,
    OpaqueProgramError,
    PausedError,
    ProofRequiredError,
    QuotaExceededError,
    StablecoinError,
    SupplyCapExceededError,
    UnauthorizedError,
    map_program_error,
)
from .events import parse_events
from .model import BlacklistInfo, Preset, Role, RoleInfo, StablecoinInfo
from .oracle import OraclePrice, parse_price_feed, token_amount_to_usd, usd_to_token_amount
from .pda import (
    derive_blacklist_pda,
    derive_config_pda,
    derive_extra_account_metas_pda,
    derive_role_pda,
)
from .planner import ExtensionSelection, MintOptions, MintPlan, plan_extensions
from .rpc_client import RPCError, RPCTransportError, SolanaRPCClient

__all__ = [
    "HandleCache",
    "StablecoinClient",
    "StablecoinNotFoundError",
    "ConfigurationError",
    "RPCConfig",
    "load_keypair",
    "load_rpc_config",
    "SSS_CORE_PROGRAM_ID",
    "SSS_HOOK_PROGRAM_ID",
    "ClientSideCreationError",
    "DerivationError",
    "OpaqueProgramError",
    "PausedError",
    "ProofRequiredError",
    "QuotaExceededError",
    "StablecoinError",
    "SupplyCapExceededError",
    "UnauthorizedError",
    "map_program_error",
    "parse_events",
    "BlacklistInfo",
    "Preset",
    "Role",
    "RoleInfo",
    "StablecoinInfo",
    "OraclePrice",
    "parse_price_feed",
    "token_amount_to_usd",
    "usd_to_token_amount",
    "derive_blacklist_pda",
    "derive_config_pda",
    "derive_extra_account_metas_pda",
    "derive_role_pda",
    "ExtensionSelection",
    "MintOptions",
    "MintPlan",
    "plan_extensions",
    "RPCError",
    "RPCTransportError",
    "SolanaRPCClient",
]
