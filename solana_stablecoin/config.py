"""Shared configuration loader for the stablecoin client."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .constants import SSS_CORE_PROGRAM_ID, SSS_HOOK_PROGRAM_ID


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".sss.yaml"
DEFAULT_KEYPAIR_PATH = Path.home() / ".config" / "solana" / "id.json"
DEFAULT_ENDPOINT = "http://127.0.0.1:8899"
DEFAULT_COMMITMENT = "confirmed"
DEFAULT_TIMEOUT = 30.0
COMMITMENTS = frozenset({"processed", "confirmed", "finalized"})

_CONFIG_PATH_OVERRIDE: Path | None = None


@dataclass
class RPCConfig:
    """Connection and program settings for a Solana JSON-RPC endpoint."""

    endpoint: str = DEFAULT_ENDPOINT
    commitment: str = DEFAULT_COMMITMENT
    timeout: float = DEFAULT_TIMEOUT
    core_program_id: Pubkey = field(default_factory=lambda: SSS_CORE_PROGRAM_ID)
    hook_program_id: Pubkey = field(default_factory=lambda: SSS_HOOK_PROGRAM_ID)
    keypair_path: Path = field(default_factory=lambda: DEFAULT_KEYPAIR_PATH)

    @property
    def base_url(self) -> str:
        return self.endpoint


def set_default_config_path(path: str | Path | None) -> None:
    """Remember a user-supplied config path for future loads."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML mapping")
    return loaded


def _section(file_config: Mapping[str, Any], name: str, path: Path) -> Mapping[str, Any]:
    section = file_config.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected '{name}' to be a mapping in {path}")
    return section


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None and value != "":
            return value
    return default


def _parse_endpoint(raw: str) -> str:
    parsed = urlparse(raw)
    if parsed.scheme.lower() not in {"http", "https"} or not parsed.hostname:
        raise ConfigurationError(f"Invalid RPC endpoint URL: {raw}")
    return raw


def _coerce_timeout(raw: Any) -> float:
    try:
        timeout = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid RPC timeout: {raw}") from exc
    if timeout <= 0:
        raise ConfigurationError(f"RPC timeout must be positive: {raw}")
    return timeout


def _coerce_commitment(raw: Any) -> str:
    commitment = str(raw).strip().lower()
    if commitment not in COMMITMENTS:
        raise ConfigurationError(
            f"Unknown commitment {raw!r}; expected one of {', '.join(sorted(COMMITMENTS))}"
        )
    return commitment


def _coerce_pubkey(raw: Any, *, label: str) -> Pubkey:
    if isinstance(raw, Pubkey):
        return raw
    try:
        return Pubkey.from_string(str(raw))
    except ValueError as exc:
        raise ConfigurationError(f"Invalid {label} program id: {raw}") from exc


def load_rpc_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RPCConfig:
    """Load RPC configuration from overrides, environment variables and optional YAML.

    The YAML file holds an ``rpc`` section (``endpoint``, ``commitment``,
    ``timeout``), a ``programs`` section (``core``, ``hook``) and a top-level
    ``keypair`` path.
    """

    env_map = os.environ if env is None else env
    explicit_path = config_path is not None or _CONFIG_PATH_OVERRIDE is not None
    path = (
        Path(config_path).expanduser()
        if config_path is not None
        else _CONFIG_PATH_OVERRIDE or DEFAULT_CONFIG_PATH
    )

    file_config = _load_config_file(path, required=explicit_path)
    rpc_section = _section(file_config, "rpc", path)
    programs_section = _section(file_config, "programs", path)
    override_map = dict(overrides or {})

    endpoint = _first_value(
        override_map.get("endpoint"),
        env_map.get("SSS_RPC_URL"),
        rpc_section.get("endpoint"),
        default=DEFAULT_ENDPOINT,
    )
    commitment = _first_value(
        override_map.get("commitment"),
        env_map.get("SSS_COMMITMENT"),
        rpc_section.get("commitment"),
        default=DEFAULT_COMMITMENT,
    )
    timeout = _first_value(
        override_map.get("timeout"),
        env_map.get("SSS_RPC_TIMEOUT"),
        rpc_section.get("timeout"),
        default=DEFAULT_TIMEOUT,
    )
    core_program = _first_value(
        override_map.get("core_program_id"),
        env_map.get("SSS_CORE_PROGRAM_ID"),
        programs_section.get("core"),
        default=SSS_CORE_PROGRAM_ID,
    )
    hook_program = _first_value(
        override_map.get("hook_program_id"),
        env_map.get("SSS_HOOK_PROGRAM_ID"),
        programs_section.get("hook"),
        default=SSS_HOOK_PROGRAM_ID,
    )
    keypair = _first_value(
        override_map.get("keypair"),
        env_map.get("SSS_KEYPAIR"),
        file_config.get("keypair"),
        default=DEFAULT_KEYPAIR_PATH,
    )

    return RPCConfig(
        endpoint=_parse_endpoint(str(endpoint)),
        commitment=_coerce_commitment(commitment),
        timeout=_coerce_timeout(timeout),
        core_program_id=_coerce_pubkey(core_program, label="core"),
        hook_program_id=_coerce_pubkey(hook_program, label="hook"),
        keypair_path=Path(keypair).expanduser(),
    )


def load_keypair(path: str | Path) -> Keypair:
    """Read a Solana CLI keypair file (a JSON array of 64 byte values)."""

    keypair_path = Path(path).expanduser()
    if not keypair_path.exists():
        raise ConfigurationError(f"Keypair file not found: {keypair_path}")
    try:
        raw = json.loads(keypair_path.read_text())
    except ValueError as exc:
        raise ConfigurationError(f"Keypair file {keypair_path} is not valid JSON") from exc
    if not isinstance(raw, list) or len(raw) != 64:
        raise ConfigurationError(f"Keypair file {keypair_path} must hold 64 byte values")
    try:
        return Keypair.from_bytes(bytes(raw))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Keypair file {keypair_path} is invalid: {exc}") from exc
