"""High-level facade tying derivation, instruction building and submission together."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Sequence

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from . import confidential as confidential_ops
from . import instructions as ix
from .constants import SSS_CORE_PROGRAM_ID, SSS_HOOK_PROGRAM_ID
from .errors import ClientSideCreationError, StablecoinError, map_program_error
from .events import parse_events
from .model import (
    BlacklistInfo,
    Preset,
    Role,
    RoleInfo,
    StablecoinInfo,
    decode_blacklist_entry,
    decode_role_account,
    decode_stablecoin_config,
)
from .pda import derive_blacklist_pda, derive_config_pda, derive_role_pda
from .planner import ExtensionSelection, MintOptions, plan_mint_creation, resolve_preset
from .rpc_client import RPCError, SolanaRPCClient, TransactionFailedError

logger = logging.getLogger(__name__)


class StablecoinNotFoundError(StablecoinError):
    default_message = "No StablecoinConfig found for mint"


class StablecoinClient:
    """Operate one stablecoin (identified by its mint) as ``payer``.

    Every write builds its instruction locally, signs with ``payer`` and waits
    for confirmation. Program failures are raised as the matching
    :class:`~solana_stablecoin.errors.StablecoinError` subclass.
    """

    def __init__(
        self,
        rpc: SolanaRPCClient,
        payer: Keypair,
        mint: Pubkey,
        *,
        core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
        hook_program_id: Pubkey = SSS_HOOK_PROGRAM_ID,
    ) -> None:
        self.rpc = rpc
        self.payer = payer
        self.mint = mint
        self.core_program_id = core_program_id
        self.hook_program_id = hook_program_id
        self.config, self.config_bump = derive_config_pda(mint, core_program_id)
        self.roles = RoleOperations(self)
        self.blacklist = BlacklistOperations(self)
        self.confidential = ConfidentialOperations(self)

    @property
    def signer(self) -> Pubkey:
        return self.payer.pubkey()

    # Factories ------------------------------------------------------------

    @classmethod
    def create(
        cls,
        rpc: SolanaRPCClient,
        payer: Keypair,
        options: MintOptions,
        preset: Preset | int | str | ExtensionSelection = Preset.SSS_1,
        *,
        mint_keypair: Keypair | None = None,
    ) -> "StablecoinClient":
        """Create the mint, its config account and (tier 2) the hook's extra metas.

        ``preset`` may be an :class:`ExtensionSelection`, in which case the
        tier is inferred, the mint carries exactly the selected extensions and
        the selection is forwarded as explicit flags. Tier 3 raises
        :class:`ClientSideCreationError` before anything is sent.
        """

        resolved = resolve_preset(preset)
        if resolved is Preset.SSS_3:
            raise ClientSideCreationError(resolved.label)
        mint_keypair = mint_keypair or Keypair()
        mint = mint_keypair.pubkey()
        plan = plan_mint_creation(rpc, payer.pubkey(), mint, preset, options)
        selection = preset if isinstance(preset, ExtensionSelection) else None
        args = ix.InitializeArgs(
            preset=plan.preset,
            name=options.name,
            symbol=options.symbol,
            uri=options.uri,
            decimals=options.decimals,
            supply_cap=options.supply_cap,
            enable_permanent_delegate=selection.permanent_delegate if selection else None,
            enable_transfer_hook=selection.transfer_hook if selection else None,
            default_account_frozen=selection.default_account_frozen if selection else None,
        )
        instructions = list(plan.instructions)
        instructions.append(
            ix.build_initialize(mint, payer.pubkey(), args, core_program_id=options.core_program_id)
        )
        if plan.preset is Preset.SSS_2:
            instructions.append(
                ix.build_initialize_extra_account_metas(
                    mint, payer.pubkey(), hook_program_id=options.hook_program_id
                )
            )
        client = cls(
            rpc,
            payer,
            mint,
            core_program_id=options.core_program_id,
            hook_program_id=options.hook_program_id,
        )
        signature = client._send(instructions, extra_signers=[mint_keypair])
        logger.info("Created %s stablecoin %s (%s)", plan.preset.label, mint, signature)
        return client

    @classmethod
    def load(
        cls,
        rpc: SolanaRPCClient,
        payer: Keypair,
        mint: Pubkey,
        *,
        core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
        hook_program_id: Pubkey = SSS_HOOK_PROGRAM_ID,
    ) -> "StablecoinClient":
        client = cls(
            rpc, payer, mint, core_program_id=core_program_id, hook_program_id=hook_program_id
        )
        if rpc.get_account_info(client.config) is None:
            raise StablecoinNotFoundError(f"No StablecoinConfig found for mint {mint}")
        return client

    # Submission -----------------------------------------------------------

    def _send(
        self, instructions: Sequence[Instruction], *, extra_signers: Sequence[Keypair] = ()
    ) -> str:
        try:
            blockhash = self.rpc.get_latest_blockhash()
            message = MessageV0.try_compile(self.signer, list(instructions), [], blockhash)
            transaction = VersionedTransaction(message, [self.payer, *extra_signers])
            signature = self.rpc.send_transaction(transaction)
            self.rpc.confirm_transaction(signature)
        except (RPCError, TransactionFailedError) as exc:
            mapped = map_program_error(
                exc,
                core_program_id=self.core_program_id,
                hook_program_id=self.hook_program_id,
            )
            if mapped is exc:
                raise
            raise mapped from exc
        return signature

    def _send_one(self, instruction: Instruction, operation: str) -> str:
        signature = self._send([instruction])
        logger.info("%s on %s confirmed: %s", operation, self.mint, signature)
        return signature

    # Token operations -----------------------------------------------------

    def mint_tokens(self, to: Pubkey, amount: int, *, price_feed: Pubkey | None = None) -> str:
        instruction = ix.build_mint_tokens(
            self.mint,
            self.signer,
            to,
            amount,
            price_feed=price_feed,
            core_program_id=self.core_program_id,
        )
        return self._send_one(instruction, "mint")

    def burn(self, source: Pubkey, amount: int) -> str:
        instruction = ix.build_burn_tokens(
            self.mint, self.signer, source, amount, core_program_id=self.core_program_id
        )
        return self._send_one(instruction, "burn")

    def freeze(self, token_account: Pubkey) -> str:
        instruction = ix.build_freeze_account(
            self.mint, self.signer, token_account, core_program_id=self.core_program_id
        )
        return self._send_one(instruction, "freeze")

    def thaw(self, token_account: Pubkey) -> str:
        instruction = ix.build_thaw_account(
            self.mint, self.signer, token_account, core_program_id=self.core_program_id
        )
        return self._send_one(instruction, "thaw")

    def pause(self) -> str:
        instruction = ix.build_pause(self.config, self.signer, core_program_id=self.core_program_id)
        return self._send_one(instruction, "pause")

    def unpause(self) -> str:
        instruction = ix.build_unpause(
            self.config, self.signer, core_program_id=self.core_program_id
        )
        return self._send_one(instruction, "unpause")

    def seize(self, source: Pubkey, destination: Pubkey, amount: int) -> str:
        """Seize through the permanent delegate.

        Tier-2 mints reject this on chain because the transfer CPI does not
        carry the hook's extra accounts; that error is raised unchanged.
        """

        instruction = ix.build_seize(
            self.mint,
            self.signer,
            source,
            destination,
            amount,
            core_program_id=self.core_program_id,
        )
        return self._send_one(instruction, "seize")

    def update_supply_cap(self, new_supply_cap: int | None) -> str:
        instruction = ix.build_update_supply_cap(
            self.config, self.signer, new_supply_cap, core_program_id=self.core_program_id
        )
        return self._send_one(instruction, "update-supply-cap")

    def update_minter(self, minter: Pubkey, new_quota: int | None) -> str:
        instruction = ix.build_update_minter(
            self.config, self.signer, minter, new_quota, core_program_id=self.core_program_id
        )
        return self._send_one(instruction, "update-minter")

    def transfer_authority(self, new_authority: Pubkey) -> str:
        instruction = ix.build_transfer_authority(
            self.config, self.signer, new_authority, core_program_id=self.core_program_id
        )
        return self._send_one(instruction, "transfer-authority")

    # Reads ----------------------------------------------------------------

    def info(self) -> StablecoinInfo:
        account = self.rpc.get_account_info(self.config)
        if account is None:
            raise StablecoinNotFoundError(f"No StablecoinConfig found for mint {self.mint}")
        return decode_stablecoin_config(self.config, account.data)

    def total_supply(self) -> int:
        return self.info().current_supply

    def events(self, signature: str) -> list[Any]:
        transaction = self.rpc.get_transaction(signature)
        meta = (transaction or {}).get("meta") or {}
        return parse_events(meta.get("logMessages") or [])


class RoleOperations:
    """Grant, revoke and look up role accounts for one stablecoin."""

    def __init__(self, client: StablecoinClient) -> None:
        self._client = client

    def _address(self, holder: Pubkey, role: Role | int | str) -> Pubkey:
        address, _ = derive_role_pda(
            self._client.config, holder, role, self._client.core_program_id
        )
        return address

    def grant(self, holder: Pubkey, role: Role | int | str) -> str:
        client = self._client
        instruction = ix.build_grant_role(
            client.config, client.signer, holder, role, core_program_id=client.core_program_id
        )
        return client._send_one(instruction, f"grant {Role.parse(role).label}")

    def revoke(self, holder: Pubkey, role: Role | int | str) -> str:
        client = self._client
        instruction = ix.build_revoke_role(
            client.config, client.signer, holder, role, core_program_id=client.core_program_id
        )
        return client._send_one(instruction, f"revoke {Role.parse(role).label}")

    def get(self, holder: Pubkey, role: Role | int | str) -> RoleInfo | None:
        address = self._address(holder, role)
        account = self._client.rpc.get_account_info(address)
        if account is None:
            return None
        return decode_role_account(address, account.data)

    def check(self, holder: Pubkey, role: Role | int | str) -> bool:
        return self.get(holder, role) is not None

    def held(self, holder: Pubkey) -> list[Role]:
        """Every role ``holder`` currently has, fetched in one round trip."""

        roles = list(Role)
        accounts = self._client.rpc.get_multiple_accounts(
            [self._address(holder, role) for role in roles]
        )
        return [role for role, account in zip(roles, accounts) if account is not None]


class BlacklistOperations:
    def __init__(self, client: StablecoinClient) -> None:
        self._client = client

    def add(self, address: Pubkey, reason: str) -> str:
        client = self._client
        instruction = ix.build_add_to_blacklist(
            client.mint,
            client.signer,
            address,
            reason,
            core_program_id=client.core_program_id,
            hook_program_id=client.hook_program_id,
        )
        return client._send_one(instruction, "blacklist add")

    def remove(self, address: Pubkey) -> str:
        client = self._client
        instruction = ix.build_remove_from_blacklist(
            client.mint,
            client.signer,
            address,
            core_program_id=client.core_program_id,
            hook_program_id=client.hook_program_id,
        )
        return client._send_one(instruction, "blacklist remove")

    def get(self, address: Pubkey) -> BlacklistInfo | None:
        entry, _ = derive_blacklist_pda(self._client.mint, address, self._client.hook_program_id)
        account = self._client.rpc.get_account_info(entry)
        if account is None:
            return None
        return decode_blacklist_entry(entry, account.data)

    def check(self, address: Pubkey) -> bool:
        return self.get(address) is not None


class ConfidentialOperations:
    def __init__(self, client: StablecoinClient) -> None:
        self._client = client

    def deposit(self, token_account: Pubkey, amount: int, decimals: int | None = None) -> str:
        client = self._client
        if decimals is None:
            decimals = client.info().decimals
        instruction = confidential_ops.build_deposit(
            token_account, client.mint, client.signer, amount, decimals
        )
        return client._send_one(instruction, "confidential deposit")

    def apply_pending(
        self,
        token_account: Pubkey,
        *,
        aes_key: bytes,
        new_available_balance: int,
        expected_pending_balance_credit_counter: int | None = None,
    ) -> str:
        """Fold pending credits into the available balance.

        ``new_available_balance`` is the plaintext balance after applying;
        it is encrypted under ``aes_key``. The credit counter is read from the
        token account unless given.
        """

        client = self._client
        counter = expected_pending_balance_credit_counter
        if counter is None:
            account = client.rpc.get_account_info(token_account)
            if account is None:
                raise StablecoinError(f"Token account not found: {token_account}")
            counter = confidential_ops.read_pending_balance_credit_counter(account.data)
        ciphertext = confidential_ops.encrypt_decryptable_balance(aes_key, new_available_balance)
        instruction = confidential_ops.build_apply_pending_balance(
            token_account, client.signer, counter, ciphertext
        )
        return client._send_one(instruction, "confidential apply-pending")

    def transfer(self, source: Pubkey, destination: Pubkey, amount: int) -> str:
        return confidential_ops.build_transfer(source, destination, amount)

    def withdraw(self, token_account: Pubkey, amount: int, decimals: int) -> str:
        return confidential_ops.build_withdraw(token_account, amount, decimals)


class HandleCache:
    """Thread-safe mint address -> :class:`StablecoinClient` cache."""

    def __init__(self, factory: Callable[[Pubkey], StablecoinClient]) -> None:
        self._factory = factory
        self._handles: dict[Pubkey, StablecoinClient] = {}
        self._lock = threading.Lock()

    def get(self, mint: Pubkey) -> StablecoinClient:
        with self._lock:
            handle = self._handles.get(mint)
            if handle is None:
                handle = self._factory(mint)
                self._handles[mint] = handle
            return handle

    def evict(self, mint: Pubkey) -> None:
        with self._lock:
            self._handles.pop(mint, None)

    def __contains__(self, mint: object) -> bool:
        with self._lock:
            return mint in self._handles

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)
