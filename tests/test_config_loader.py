import json
from pathlib import Path

import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from solana_stablecoin.config import (
    ConfigurationError,
    RPCConfig,
    load_keypair,
    load_rpc_config,
)
from solana_stablecoin.constants import SSS_CORE_PROGRAM_ID, SSS_HOOK_PROGRAM_ID

OTHER_PROGRAM = "11111111111111111111111111111111"


@pytest.fixture(autouse=True)
def isolate_default_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("solana_stablecoin.config.DEFAULT_CONFIG_PATH", tmp_path / "missing.yaml")


def test_load_rpc_config_prefers_environment_over_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        rpc:
          endpoint: http://filehost:8899
          commitment: finalized
          timeout: 12
        programs:
          core: "11111111111111111111111111111111"
        keypair: /tmp/file-id.json
        """
    )

    env_map = {
        "SSS_RPC_URL": "https://api.devnet.solana.com",
        "SSS_COMMITMENT": "processed",
        "SSS_KEYPAIR": "/tmp/env-id.json",
    }

    config = load_rpc_config(config_path=config_path, env=env_map)

    assert isinstance(config, RPCConfig)
    assert config.endpoint == "https://api.devnet.solana.com"
    assert config.commitment == "processed"
    assert config.timeout == 12.0
    assert config.core_program_id == Pubkey.from_string(OTHER_PROGRAM)
    assert config.hook_program_id == SSS_HOOK_PROGRAM_ID
    assert config.keypair_path == Path("/tmp/env-id.json")


def test_overrides_beat_environment() -> None:
    config = load_rpc_config(
        env={"SSS_RPC_URL": "http://envhost:8899", "SSS_CORE_PROGRAM_ID": OTHER_PROGRAM},
        overrides={"endpoint": "http://override:9000", "core_program_id": SSS_CORE_PROGRAM_ID},
    )

    assert config.endpoint == "http://override:9000"
    assert config.core_program_id == SSS_CORE_PROGRAM_ID


def test_defaults_without_file_or_environment() -> None:
    config = load_rpc_config(env={})

    assert config.endpoint == "http://127.0.0.1:8899"
    assert config.commitment == "confirmed"
    assert config.timeout == 30.0
    assert config.core_program_id == SSS_CORE_PROGRAM_ID
    assert config.hook_program_id == SSS_HOOK_PROGRAM_ID


def test_blank_environment_values_are_ignored() -> None:
    config = load_rpc_config(env={"SSS_RPC_URL": "", "SSS_COMMITMENT": ""})

    assert config.endpoint == "http://127.0.0.1:8899"
    assert config.commitment == "confirmed"


def test_explicit_missing_config_path_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_rpc_config(config_path=tmp_path / "absent.yaml", env={})


@pytest.mark.parametrize(
    "env_map",
    [
        {"SSS_RPC_URL": "ftp://host"},
        {"SSS_COMMITMENT": "eventually"},
        {"SSS_RPC_TIMEOUT": "-1"},
        {"SSS_RPC_TIMEOUT": "soon"},
        {"SSS_HOOK_PROGRAM_ID": "not-a-key"},
    ],
)
def test_invalid_values_raise_configuration_error(env_map: dict[str, str]) -> None:
    with pytest.raises(ConfigurationError):
        load_rpc_config(env=env_map)


def test_non_mapping_section_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("rpc: just-a-string\n")

    with pytest.raises(ConfigurationError):
        load_rpc_config(config_path=config_path, env={})


def test_load_keypair_reads_solana_cli_format(tmp_path: Path) -> None:
    keypair = Keypair()
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(bytes(keypair))))

    loaded = load_keypair(path)

    assert loaded.pubkey() == keypair.pubkey()


def test_load_keypair_rejects_bad_files(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_keypair(tmp_path / "absent.json")

    short = tmp_path / "short.json"
    short.write_text(json.dumps([1, 2, 3]))
    with pytest.raises(ConfigurationError):
        load_keypair(short)

    garbage = tmp_path / "garbage.json"
    garbage.write_text("{not json")
    with pytest.raises(ConfigurationError):
        load_keypair(garbage)
