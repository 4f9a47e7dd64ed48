from __future__ import annotations

import threading
from typing import Any

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from solana_stablecoin.client import HandleCache, StablecoinClient, StablecoinNotFoundError
from solana_stablecoin.constants import (
    ACCOUNT_ROLE,
    ACCOUNT_STABLECOIN_CONFIG,
    IX_INITIALIZE,
    IX_INITIALIZE_EXTRA_ACCOUNT_METAS,
    SSS_CORE_PROGRAM_ID,
    SSS_HOOK_PROGRAM_ID,
)
from solana_stablecoin.errors import (
    ClientSideCreationError,
    PausedError,
    ProofRequiredError,
    StablecoinError,
)
from solana_stablecoin.model import Preset, Role, RoleAccountLayout, StablecoinConfigLayout
from solana_stablecoin.pda import derive_config_pda, derive_role_pda
from solana_stablecoin.planner import ExtensionSelection, MintOptions
from solana_stablecoin.rpc_client import AccountInfo, RPCError


class StubRPC:
    def __init__(self) -> None:
        self.accounts: dict[Pubkey, AccountInfo] = {}
        self.sent: list[VersionedTransaction] = []
        self.confirmed: list[str] = []
        self.send_error: Exception | None = None
        self.logs: list[str] = []

    def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        return 10 * size

    def get_latest_blockhash(self) -> Hash:
        return Hash.default()

    def send_transaction(self, transaction: VersionedTransaction) -> str:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(transaction)
        return f"sig-{len(self.sent)}"

    def confirm_transaction(self, signature: str) -> dict[str, Any]:
        self.confirmed.append(signature)
        return {"confirmationStatus": "confirmed", "err": None}

    def get_account_info(self, address: Pubkey) -> AccountInfo | None:
        return self.accounts.get(address)

    def get_multiple_accounts(self, addresses: list[Pubkey]) -> list[AccountInfo | None]:
        return [self.accounts.get(address) for address in addresses]

    def get_transaction(self, signature: str) -> dict[str, Any] | None:
        return {"meta": {"logMessages": self.logs}}


def _account(data: bytes, owner: Pubkey = SSS_CORE_PROGRAM_ID) -> AccountInfo:
    return AccountInfo(lamports=1, owner=owner, data=data, executable=False)


def _config_data(mint: Pubkey, authority: Pubkey, **changes: Any) -> bytes:
    values: dict[str, Any] = {
        "authority": list(bytes(authority)),
        "mint": list(bytes(mint)),
        "preset": 2,
        "paused": False,
        "supply_cap": 1_000,
        "total_minted": 700,
        "total_burned": 100,
        "bump": 254,
        "name": "Dollar",
        "symbol": "USDX",
        "uri": "",
        "decimals": 6,
        "enable_permanent_delegate": True,
        "enable_transfer_hook": True,
        "default_account_frozen": True,
        "admin_count": 1,
    }
    values.update(changes)
    return ACCOUNT_STABLECOIN_CONFIG + StablecoinConfigLayout.build(values)


@pytest.fixture()
def rpc() -> StubRPC:
    return StubRPC()


@pytest.fixture()
def payer() -> Keypair:
    return Keypair()


@pytest.fixture()
def client(rpc: StubRPC, payer: Keypair) -> StablecoinClient:
    return StablecoinClient(rpc, payer, Keypair().pubkey())  # type: ignore[arg-type]


def _program_ids(transaction: VersionedTransaction) -> list[Pubkey]:
    message = transaction.message
    keys = message.account_keys
    return [keys[instruction.program_id_index] for instruction in message.instructions]


def test_create_sss2_appends_initialize_and_extra_metas(rpc: StubRPC, payer: Keypair) -> None:
    mint_keypair = Keypair()

    client = StablecoinClient.create(
        rpc,  # type: ignore[arg-type]
        payer,
        MintOptions(name="Dollar", symbol="USDX"),
        Preset.SSS_2,
        mint_keypair=mint_keypair,
    )

    assert client.mint == mint_keypair.pubkey()
    assert client.config == derive_config_pda(mint_keypair.pubkey())[0]
    assert rpc.confirmed == ["sig-1"]
    transaction = rpc.sent[0]
    assert len(transaction.signatures) == 2
    instructions = transaction.message.instructions
    assert bytes(instructions[-2].data)[:8] == IX_INITIALIZE
    assert bytes(instructions[-1].data) == IX_INITIALIZE_EXTRA_ACCOUNT_METAS
    assert _program_ids(transaction)[-2:] == [SSS_CORE_PROGRAM_ID, SSS_HOOK_PROGRAM_ID]


def test_create_sss1_has_no_hook_instruction(rpc: StubRPC, payer: Keypair) -> None:
    StablecoinClient.create(
        rpc,  # type: ignore[arg-type]
        payer,
        MintOptions(name="Dollar", symbol="USDX"),
        "sss-1",
    )

    assert SSS_HOOK_PROGRAM_ID not in _program_ids(rpc.sent[0])


def test_create_from_selection_matches_mint_extensions(rpc: StubRPC, payer: Keypair) -> None:
    StablecoinClient.create(
        rpc,  # type: ignore[arg-type]
        payer,
        MintOptions(name="Dollar", symbol="USDX"),
        ExtensionSelection(transfer_hook=True),
    )

    instructions = rpc.sent[0].message.instructions
    token_tags = [bytes(instruction.data)[0] for instruction in instructions[1:-2]]
    assert 36 in token_tags
    assert 28 not in token_tags
    # supply cap absent, then permanent delegate, transfer hook, default frozen.
    assert bytes(instructions[-2].data)[-7:] == b"\x00\x01\x01\x01\x01\x01\x00"


def test_create_sss3_fails_before_sending(rpc: StubRPC, payer: Keypair) -> None:
    with pytest.raises(ClientSideCreationError) as excinfo:
        StablecoinClient.create(
            rpc,  # type: ignore[arg-type]
            payer,
            MintOptions(name="Private", symbol="PUSD"),
            Preset.SSS_3,
        )

    assert "sss-3" in str(excinfo.value)
    assert isinstance(excinfo.value, StablecoinError)
    assert rpc.sent == []
    with pytest.raises(ClientSideCreationError):
        StablecoinClient.create(
            rpc,  # type: ignore[arg-type]
            payer,
            MintOptions(name="Private", symbol="PUSD"),
            ExtensionSelection(confidential_transfer=True),
        )


def test_load_requires_config_account(rpc: StubRPC, payer: Keypair) -> None:
    mint = Keypair().pubkey()

    with pytest.raises(StablecoinNotFoundError):
        StablecoinClient.load(rpc, payer, mint)  # type: ignore[arg-type]

    config, _ = derive_config_pda(mint)
    rpc.accounts[config] = _account(_config_data(mint, payer.pubkey()))
    assert StablecoinClient.load(rpc, payer, mint).config == config  # type: ignore[arg-type]


def test_info_decodes_config(client: StablecoinClient, rpc: StubRPC, payer: Keypair) -> None:
    rpc.accounts[client.config] = _account(_config_data(client.mint, payer.pubkey()))

    info = client.info()

    assert info.preset is Preset.SSS_2
    assert info.supply_cap == 1_000
    assert info.current_supply == 600
    assert client.total_supply() == 600
    assert info.can_mint(400)
    assert not info.can_mint(401)
    assert info.to_dict()["preset"] == "sss-2"


def test_mint_tokens_is_signed_by_payer(client: StablecoinClient, rpc: StubRPC, payer: Keypair) -> None:
    signature = client.mint_tokens(Keypair().pubkey(), 25)

    assert signature == "sig-1"
    message = rpc.sent[0].message
    assert message.account_keys[0] == payer.pubkey()
    assert _program_ids(rpc.sent[0]) == [SSS_CORE_PROGRAM_ID]


def test_program_error_is_raised_as_typed_error(client: StablecoinClient, rpc: StubRPC) -> None:
    original = RPCError(
        -32002,
        "Transaction simulation failed",
        {"logs": ["Program log: AnchorError occurred. Error Code: Paused. Error Number: 6000."]},
    )
    rpc.send_error = original

    with pytest.raises(PausedError) as excinfo:
        client.pause()

    assert excinfo.value.__cause__ is original


def test_unrecognised_rpc_error_propagates_unchanged(client: StablecoinClient, rpc: StubRPC) -> None:
    original = RPCError(-32005, "Node is behind")
    rpc.send_error = original

    with pytest.raises(RPCError) as excinfo:
        client.unpause()

    assert excinfo.value is original


def test_roles_get_and_held(client: StablecoinClient, rpc: StubRPC, payer: Keypair) -> None:
    holder = Keypair().pubkey()
    address, bump = derive_role_pda(client.config, holder, Role.MINTER)
    rpc.accounts[address] = _account(
        ACCOUNT_ROLE
        + RoleAccountLayout.build(
            {
                "config": list(bytes(client.config)),
                "address": list(bytes(holder)),
                "role": 1,
                "granted_by": list(bytes(payer.pubkey())),
                "granted_at": 1_700_000_000,
                "bump": bump,
                "mint_quota": None,
                "amount_minted": 0,
            }
        )
    )

    info = client.roles.get(holder, "minter")

    assert info is not None
    assert info.role is Role.MINTER
    assert info.holder == holder
    assert client.roles.check(holder, Role.MINTER)
    assert not client.roles.check(holder, Role.SEIZER)
    assert client.roles.held(holder) == [Role.MINTER]


def test_blacklist_check_missing_entry(client: StablecoinClient) -> None:
    assert client.blacklist.get(Keypair().pubkey()) is None
    assert not client.blacklist.check(Keypair().pubkey())


def test_confidential_deposit_reads_decimals(
    client: StablecoinClient, rpc: StubRPC, payer: Keypair
) -> None:
    rpc.accounts[client.config] = _account(_config_data(client.mint, payer.pubkey(), decimals=2))

    client.confidential.deposit(Keypair().pubkey(), 10)

    data = bytes(rpc.sent[0].message.instructions[0].data)
    assert data[-1] == 2


def test_confidential_transfer_requires_proofs(client: StablecoinClient) -> None:
    with pytest.raises(ProofRequiredError):
        client.confidential.transfer(Keypair().pubkey(), Keypair().pubkey(), 1)
    with pytest.raises(ProofRequiredError):
        client.confidential.withdraw(Keypair().pubkey(), 1, 6)


def test_events_reads_transaction_logs(client: StablecoinClient, rpc: StubRPC) -> None:
    rpc.logs = ["Program log: nothing to see"]

    assert client.events("sig") == []


def test_handle_cache_builds_each_handle_once(rpc: StubRPC, payer: Keypair) -> None:
    calls: list[Pubkey] = []
    lock = threading.Lock()

    def factory(mint: Pubkey) -> StablecoinClient:
        with lock:
            calls.append(mint)
        return StablecoinClient(rpc, payer, mint)  # type: ignore[arg-type]

    cache = HandleCache(factory)
    mint = Keypair().pubkey()
    results: list[StablecoinClient] = []
    threads = [threading.Thread(target=lambda: results.append(cache.get(mint))) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert calls == [mint]
    assert all(result is results[0] for result in results)
    assert mint in cache and len(cache) == 1
    cache.evict(mint)
    assert mint not in cache
