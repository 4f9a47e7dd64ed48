"""Command-line interface for administering SSS stablecoins.

Each subcommand is a thin wrapper over :class:`StablecoinClient` or one of the
pure helpers (address derivation, oracle conversion). Connection settings
come from ``~/.sss.yaml`` and ``SSS_*`` environment variables, overridable per
invocation.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Sequence

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .client import StablecoinClient
from .config import ConfigurationError, RPCConfig, load_keypair, load_rpc_config
from .constants import PYTH_FEEDS
from .errors import StablecoinError
from .events import parse_events
from .model import Preset, Role
from .oracle import fetch_price_feed, token_amount_to_usd, usd_to_token_amount
from .pda import (
    derive_blacklist_pda,
    derive_config_pda,
    derive_extra_account_metas_pda,
    derive_role_pda,
)
from .planner import MintOptions, plan_mint_creation
from .rpc_client import RPCError, RPCTransportError, SolanaRPCClient, TransactionFailedError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def _pubkey(value: str, flag: str) -> Pubkey:
    try:
        return Pubkey.from_string(value)
    except ValueError as exc:
        raise CLIError(f"{flag} is not a valid address: {value}") from exc


def _amount(value: str, flag: str) -> int:
    try:
        amount = int(value)
    except ValueError as exc:
        raise CLIError(f"{flag} must be an integer number of base units") from exc
    if amount <= 0:
        raise CLIError(f"{flag} must be greater than zero")
    return amount


def _optional_u64(args: argparse.Namespace, flag: str) -> int | None:
    if args.none:
        return None
    if args.value is None:
        raise CLIError(f"Provide {flag} or --none")
    try:
        value = int(args.value)
    except ValueError as exc:
        raise CLIError(f"{flag} must be an integer") from exc
    if value < 0:
        raise CLIError(f"{flag} must not be negative")
    return value


def _emit(args: argparse.Namespace, payload: dict[str, Any]) -> None:
    if args.as_json:
        print(json.dumps(payload, indent=2, default=str))
        return
    for key, value in payload.items():
        print(f"{key}: {value}")


def _add_mint(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--mint", required=True, help="Stablecoin mint address")


def _add_optional_u64(parser: argparse.ArgumentParser, flag: str, help_text: str) -> None:
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(flag, dest="value", help=help_text)
    group.add_argument("--none", action="store_true", help="Remove the limit")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Solana Stablecoin Standard CLI")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument("--rpc-url", default=None, help="JSON-RPC endpoint (overrides SSS_RPC_URL)")
    parser.add_argument("--keypair", default=None, help="Signer keypair file (overrides SSS_KEYPAIR)")
    parser.add_argument("--core-program-id", default=None, help="sss-core program id")
    parser.add_argument("--hook-program-id", default=None, help="sss-transfer-hook program id")
    parser.add_argument("--json", dest="as_json", action="store_true", help="Emit JSON output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    pda_parser = subparsers.add_parser("pda", help="derive a program address offline")
    pda_parser.add_argument(
        "kind", choices=["config", "role", "blacklist", "extra-metas"], help="Address family"
    )
    _add_mint(pda_parser)
    pda_parser.add_argument("--holder", help="Role holder (role addresses)")
    pda_parser.add_argument("--role", help="Role name or number (role addresses)")
    pda_parser.add_argument("--address", help="Blacklisted wallet (blacklist addresses)")

    status_parser = subparsers.add_parser("status", help="show the stablecoin configuration")
    _add_mint(status_parser)

    create_parser = subparsers.add_parser("create", help="create a new stablecoin")
    create_parser.add_argument(
        "--preset", default="sss-1", help="Tier: sss-1 (minimal), sss-2 (compliant), sss-3 (confidential)"
    )
    create_parser.add_argument("--name", required=True)
    create_parser.add_argument("--symbol", required=True)
    create_parser.add_argument("--uri", default="")
    create_parser.add_argument("--decimals", type=int, default=6)
    create_parser.add_argument("--supply-cap", type=int, default=None)
    create_parser.add_argument(
        "--auditor-key", default=None, help="Hex-encoded 32-byte auditor ElGamal key (sss-3)"
    )
    create_parser.add_argument(
        "--no-auto-approve",
        action="store_true",
        help="Require approval of new confidential accounts (sss-3)",
    )
    create_parser.add_argument(
        "--dry-run", action="store_true", help="Print the mint plan without submitting"
    )

    mint_parser = subparsers.add_parser("mint", help="issue tokens to a token account")
    _add_mint(mint_parser)
    mint_parser.add_argument("--to", required=True, help="Destination token account")
    mint_parser.add_argument("--amount", required=True, help="Amount in base units")
    mint_parser.add_argument("--price-feed", default=None, help="Optional Pyth price account")

    burn_parser = subparsers.add_parser("burn", help="burn tokens from a token account")
    _add_mint(burn_parser)
    burn_parser.add_argument("--from", dest="source", required=True, help="Source token account")
    burn_parser.add_argument("--amount", required=True, help="Amount in base units")

    for name, verb in (("freeze", "freeze"), ("thaw", "thaw")):
        freeze_parser = subparsers.add_parser(name, help=f"{verb} a token account")
        _add_mint(freeze_parser)
        freeze_parser.add_argument("--account", required=True, help="Token account")

    for name in ("pause", "unpause"):
        pause_parser = subparsers.add_parser(name, help=f"{name} all operations")
        _add_mint(pause_parser)

    seize_parser = subparsers.add_parser("seize", help="seize tokens via the permanent delegate")
    _add_mint(seize_parser)
    seize_parser.add_argument("--from", dest="source", required=True, help="Source token account")
    seize_parser.add_argument("--to", required=True, help="Destination token account")
    seize_parser.add_argument("--amount", required=True, help="Amount in base units")

    roles_parser = subparsers.add_parser("roles", help="grant, revoke or inspect roles")
    roles_parser.add_argument("action", choices=["grant", "revoke", "check", "list"])
    _add_mint(roles_parser)
    roles_parser.add_argument("--holder", required=True, help="Role holder wallet")
    roles_parser.add_argument("--role", default=None, help="Role name or number")

    blacklist_parser = subparsers.add_parser("blacklist", help="manage the transfer blacklist")
    blacklist_parser.add_argument("action", choices=["add", "remove", "check"])
    _add_mint(blacklist_parser)
    blacklist_parser.add_argument("--address", required=True, help="Wallet address")
    blacklist_parser.add_argument("--reason", default="", help="Reason (add only)")

    cap_parser = subparsers.add_parser("supply-cap", help="set or clear the supply cap")
    _add_mint(cap_parser)
    _add_optional_u64(cap_parser, "--cap", "New supply cap in base units")

    quota_parser = subparsers.add_parser("minter-quota", help="set or clear a minter's quota")
    _add_mint(quota_parser)
    quota_parser.add_argument("--minter", required=True, help="Minter wallet")
    _add_optional_u64(quota_parser, "--quota", "New quota in base units")

    authority_parser = subparsers.add_parser(
        "transfer-authority", help="hand the admin role to another wallet"
    )
    _add_mint(authority_parser)
    authority_parser.add_argument("--new-authority", required=True)

    oracle_parser = subparsers.add_parser("oracle", help="read a Pyth price feed")
    oracle_parser.add_argument(
        "--feed", required=True, help=f"Price account or one of: {', '.join(sorted(PYTH_FEEDS))}"
    )
    oracle_parser.add_argument("--usd", type=int, default=None, help="Convert whole USD to units")
    oracle_parser.add_argument("--units", type=int, default=None, help="Convert units to USD")
    oracle_parser.add_argument("--decimals", type=int, default=6)

    events_parser = subparsers.add_parser("events", help="decode events from a transaction")
    events_parser.add_argument("--signature", required=True)

    return parser


def _load_config(args: argparse.Namespace) -> RPCConfig:
    overrides = {
        "endpoint": args.rpc_url,
        "keypair": args.keypair,
        "core_program_id": args.core_program_id,
        "hook_program_id": args.hook_program_id,
    }
    return load_rpc_config(
        config_path=args.config,
        overrides={key: value for key, value in overrides.items() if value is not None},
    )


def _rpc(args: argparse.Namespace) -> tuple[SolanaRPCClient, RPCConfig]:
    config = _load_config(args)
    return SolanaRPCClient(config), config


def _client(args: argparse.Namespace, *, signing: bool = True) -> StablecoinClient:
    rpc, config = _rpc(args)
    # Reads never sign.
    payer = load_keypair(config.keypair_path) if signing else Keypair()
    return StablecoinClient(
        rpc,
        payer,
        _pubkey(args.mint, "--mint"),
        core_program_id=config.core_program_id,
        hook_program_id=config.hook_program_id,
    )


def cmd_pda(args: argparse.Namespace) -> None:
    config = _load_config(args)
    mint = _pubkey(args.mint, "--mint")
    if args.kind == "config":
        address, bump = derive_config_pda(mint, config.core_program_id)
    elif args.kind == "role":
        if not args.holder or args.role is None:
            raise CLIError("role addresses need --holder and --role")
        config_pda, _ = derive_config_pda(mint, config.core_program_id)
        address, bump = derive_role_pda(
            config_pda, _pubkey(args.holder, "--holder"), args.role, config.core_program_id
        )
    elif args.kind == "blacklist":
        if not args.address:
            raise CLIError("blacklist addresses need --address")
        address, bump = derive_blacklist_pda(
            mint, _pubkey(args.address, "--address"), config.hook_program_id
        )
    else:
        address, bump = derive_extra_account_metas_pda(mint, config.hook_program_id)
    _emit(args, {"address": str(address), "bump": bump})


def cmd_status(args: argparse.Namespace) -> None:
    _emit(args, _client(args, signing=False).info().to_dict())


def cmd_create(args: argparse.Namespace) -> None:
    rpc, config = _rpc(args)
    payer = load_keypair(config.keypair_path)
    auditor = None
    if args.auditor_key:
        try:
            auditor = bytes.fromhex(args.auditor_key)
        except ValueError as exc:
            raise CLIError("--auditor-key must be hex") from exc
    options = MintOptions(
        name=args.name,
        symbol=args.symbol,
        uri=args.uri,
        decimals=args.decimals,
        supply_cap=args.supply_cap,
        auditor_elgamal_pubkey=auditor,
        auto_approve_new_accounts=not args.no_auto_approve,
        core_program_id=config.core_program_id,
        hook_program_id=config.hook_program_id,
    )
    preset = Preset.parse(args.preset)
    if args.dry_run:
        plan = plan_mint_creation(rpc, payer.pubkey(), Keypair().pubkey(), preset, options)
        _emit(args, plan.to_jsonable())
        return
    client = StablecoinClient.create(rpc, payer, options, preset)
    _emit(args, {"mint": str(client.mint), "config": str(client.config), "preset": preset.label})


def cmd_mint(args: argparse.Namespace) -> None:
    client = _client(args)
    price_feed = _pubkey(args.price_feed, "--price-feed") if args.price_feed else None
    signature = client.mint_tokens(
        _pubkey(args.to, "--to"), _amount(args.amount, "--amount"), price_feed=price_feed
    )
    _emit(args, {"signature": signature})


def cmd_burn(args: argparse.Namespace) -> None:
    client = _client(args)
    signature = client.burn(_pubkey(args.source, "--from"), _amount(args.amount, "--amount"))
    _emit(args, {"signature": signature})


def cmd_freeze(args: argparse.Namespace, *, thaw: bool) -> None:
    client = _client(args)
    account = _pubkey(args.account, "--account")
    signature = client.thaw(account) if thaw else client.freeze(account)
    _emit(args, {"signature": signature})


def cmd_pause(args: argparse.Namespace, *, resume: bool) -> None:
    client = _client(args)
    signature = client.unpause() if resume else client.pause()
    _emit(args, {"signature": signature})


def cmd_seize(args: argparse.Namespace) -> None:
    client = _client(args)
    signature = client.seize(
        _pubkey(args.source, "--from"),
        _pubkey(args.to, "--to"),
        _amount(args.amount, "--amount"),
    )
    _emit(args, {"signature": signature})


def cmd_roles(args: argparse.Namespace) -> None:
    client = _client(args, signing=args.action in {"grant", "revoke"})
    holder = _pubkey(args.holder, "--holder")
    if args.action == "list":
        _emit(args, {"holder": str(holder), "roles": [role.label for role in client.roles.held(holder)]})
        return
    if args.role is None:
        raise CLIError(f"roles {args.action} needs --role")
    role = Role.parse(args.role)
    if args.action == "grant":
        _emit(args, {"signature": client.roles.grant(holder, role)})
    elif args.action == "revoke":
        _emit(args, {"signature": client.roles.revoke(holder, role)})
    else:
        info = client.roles.get(holder, role)
        _emit(args, info.to_dict() if info else {"holder": str(holder), "role": role.label, "granted": False})


def cmd_blacklist(args: argparse.Namespace) -> None:
    client = _client(args, signing=args.action != "check")
    address = _pubkey(args.address, "--address")
    if args.action == "add":
        _emit(args, {"signature": client.blacklist.add(address, args.reason)})
    elif args.action == "remove":
        _emit(args, {"signature": client.blacklist.remove(address)})
    else:
        info = client.blacklist.get(address)
        _emit(args, info.to_dict() if info else {"target": str(address), "blacklisted": False})


def cmd_supply_cap(args: argparse.Namespace) -> None:
    cap = _optional_u64(args, "--cap")
    _emit(args, {"signature": _client(args).update_supply_cap(cap)})


def cmd_minter_quota(args: argparse.Namespace) -> None:
    quota = _optional_u64(args, "--quota")
    client = _client(args)
    _emit(args, {"signature": client.update_minter(_pubkey(args.minter, "--minter"), quota)})


def cmd_transfer_authority(args: argparse.Namespace) -> None:
    client = _client(args)
    new_authority = _pubkey(args.new_authority, "--new-authority")
    _emit(args, {"signature": client.transfer_authority(new_authority)})


def cmd_oracle(args: argparse.Namespace) -> None:
    rpc, _ = _rpc(args)
    feed = PYTH_FEEDS.get(args.feed.upper()) or _pubkey(args.feed, "--feed")
    price = fetch_price_feed(rpc, feed)
    payload: dict[str, Any] = {
        "feed": str(feed),
        "mantissa": price.mantissa,
        "exponent": price.exponent,
        "price_usd": price.price_usd,
    }
    if args.usd is not None:
        payload["units"] = usd_to_token_amount(args.usd, price, args.decimals)
    if args.units is not None:
        payload["usd"] = token_amount_to_usd(args.units, price, args.decimals)
    _emit(args, payload)


def cmd_events(args: argparse.Namespace) -> None:
    rpc, _ = _rpc(args)
    transaction = rpc.get_transaction(args.signature)
    if transaction is None:
        raise CLIError(f"Transaction not found: {args.signature}")
    logs = ((transaction.get("meta") or {}).get("logMessages")) or []
    events = parse_events(logs)
    if args.as_json:
        print(
            json.dumps(
                [{"event": type(event).__name__, **vars(event)} for event in events],
                indent=2,
                default=str,
            )
        )
        return
    if not events:
        print("No stablecoin events found.")
        return
    for event in events:
        fields = ", ".join(f"{key}={value}" for key, value in vars(event).items())
        print(f"{type(event).__name__}: {fields}")


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    try:
        if args.command == "pda":
            cmd_pda(args)
        elif args.command == "status":
            cmd_status(args)
        elif args.command == "create":
            cmd_create(args)
        elif args.command == "mint":
            cmd_mint(args)
        elif args.command == "burn":
            cmd_burn(args)
        elif args.command in {"freeze", "thaw"}:
            cmd_freeze(args, thaw=args.command == "thaw")
        elif args.command in {"pause", "unpause"}:
            cmd_pause(args, resume=args.command == "unpause")
        elif args.command == "seize":
            cmd_seize(args)
        elif args.command == "roles":
            cmd_roles(args)
        elif args.command == "blacklist":
            cmd_blacklist(args)
        elif args.command == "supply-cap":
            cmd_supply_cap(args)
        elif args.command == "minter-quota":
            cmd_minter_quota(args)
        elif args.command == "transfer-authority":
            cmd_transfer_authority(args)
        elif args.command == "oracle":
            cmd_oracle(args)
        elif args.command == "events":
            cmd_events(args)
        else:  # pragma: no cover - argparse enforces choices
            raise CLIError(f"Unknown command: {args.command}")
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
    except (
        CLIError,
        ConfigurationError,
        RPCError,
        RPCTransportError,
        TransactionFailedError,
        StablecoinError,
        ValueError,
    ) as exc:
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])
