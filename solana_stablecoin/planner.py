"""Preset-driven planning of Token-2022 mint creation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Protocol, Sequence

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from . import token2022
from .config import ConfigurationError
from .constants import (
    DEFAULT_DECIMALS,
    MAX_DECIMALS,
    MAX_NAME_LEN,
    MAX_SYMBOL_LEN,
    MAX_URI_LEN,
    SSS_CORE_PROGRAM_ID,
    SSS_HOOK_PROGRAM_ID,
)
from .errors import (
    InvalidPresetError,
    NameTooLongError,
    SymbolTooLongError,
    UriTooLongError,
)
from .model import Preset
from .pda import derive_config_pda
from .token2022 import AccountState, AuthorityType, ExtensionType

logger = logging.getLogger(__name__)


class RentSource(Protocol):
    def get_minimum_balance_for_rent_exemption(self, size: int) -> int: ...


PRESET_EXTENSIONS: dict[Preset, tuple[ExtensionType, ...]] = {
    Preset.SSS_1: (ExtensionType.METADATA_POINTER, ExtensionType.PERMANENT_DELEGATE),
    Preset.SSS_2: (
        ExtensionType.METADATA_POINTER,
        ExtensionType.PERMANENT_DELEGATE,
        ExtensionType.TRANSFER_HOOK,
        ExtensionType.DEFAULT_ACCOUNT_STATE,
    ),
    Preset.SSS_3: (
        ExtensionType.METADATA_POINTER,
        ExtensionType.PERMANENT_DELEGATE,
        ExtensionType.CONFIDENTIAL_TRANSFER_MINT,
    ),
}


@dataclass
class MintOptions:
    """Caller-controlled parameters for a new stablecoin mint."""

    name: str
    symbol: str
    uri: str = ""
    decimals: int = DEFAULT_DECIMALS
    supply_cap: int | None = None
    auditor_elgamal_pubkey: bytes | None = None
    auto_approve_new_accounts: bool = True
    lamports: int | None = None
    core_program_id: Pubkey = field(default_factory=lambda: SSS_CORE_PROGRAM_ID)
    hook_program_id: Pubkey = field(default_factory=lambda: SSS_HOOK_PROGRAM_ID)

    def validate(self) -> None:
        if len(self.name.encode("utf-8")) > MAX_NAME_LEN:
            raise NameTooLongError()
        if len(self.symbol.encode("utf-8")) > MAX_SYMBOL_LEN:
            raise SymbolTooLongError()
        if len(self.uri.encode("utf-8")) > MAX_URI_LEN:
            raise UriTooLongError()
        if not 0 <= self.decimals <= MAX_DECIMALS:
            raise ValueError(f"Decimals must be between 0 and {MAX_DECIMALS}, got {self.decimals}")
        if self.auditor_elgamal_pubkey is not None and len(self.auditor_elgamal_pubkey) != 32:
            raise ValueError("Auditor ElGamal pubkey must be 32 bytes")


@dataclass(frozen=True)
class ExtensionSelection:
    """Granular extension request.

    The preset is inferred from it and the mint carries exactly the selected
    extensions.
    """

    permanent_delegate: bool = True
    transfer_hook: bool = False
    confidential_transfer: bool = False
    default_account_frozen: bool = False

    def infer_preset(self) -> Preset:
        if self.transfer_hook and self.confidential_transfer:
            raise InvalidPresetError(
                "Transfer hook and confidential transfer cannot be enabled together"
            )
        if self.confidential_transfer:
            return Preset.SSS_3
        if self.transfer_hook:
            return Preset.SSS_2
        return Preset.SSS_1

    def extensions(self) -> tuple[ExtensionType, ...]:
        """The Token-2022 extensions this selection puts on the mint."""

        wanted = [ExtensionType.METADATA_POINTER]
        if self.permanent_delegate:
            wanted.append(ExtensionType.PERMANENT_DELEGATE)
        if self.transfer_hook:
            wanted.append(ExtensionType.TRANSFER_HOOK)
        if self.confidential_transfer:
            wanted.append(ExtensionType.CONFIDENTIAL_TRANSFER_MINT)
        if self.default_account_frozen:
            wanted.append(ExtensionType.DEFAULT_ACCOUNT_STATE)
        return tuple(wanted)


@dataclass
class MintPlan:
    """Everything needed to create a mint for one preset."""

    preset: Preset
    extensions: tuple[ExtensionType, ...]
    mint_len: int
    total_len: int
    options: MintOptions
    lamports: int | None = None
    config: Pubkey | None = None
    instructions: list[Instruction] = field(default_factory=list)

    def to_jsonable(self) -> Dict[str, Any]:
        return {
            "preset": self.preset.label,
            "extensions": extension_names(self.extensions),
            "mint_len": self.mint_len,
            "total_len": self.total_len,
            "lamports": self.lamports,
            "config": str(self.config) if self.config is not None else None,
            "instructions": len(self.instructions),
        }


def resolve_preset(preset: Preset | int | str | ExtensionSelection) -> Preset:
    if isinstance(preset, ExtensionSelection):
        return preset.infer_preset()
    return Preset.parse(preset)


def plan_extensions(
    preset: Preset | int | str | ExtensionSelection, options: MintOptions
) -> MintPlan:
    """Pick the extension set and account sizes for ``preset`` without touching the network."""

    resolved = resolve_preset(preset)
    options.validate()
    if isinstance(preset, ExtensionSelection):
        extensions = preset.extensions()
    else:
        extensions = PRESET_EXTENSIONS[resolved]
    if (
        ExtensionType.TRANSFER_HOOK in extensions
        and ExtensionType.CONFIDENTIAL_TRANSFER_MINT in extensions
    ):  # pragma: no cover - guarded by infer_preset
        raise InvalidPresetError("Transfer hook and confidential transfer are exclusive")

    mint_len = token2022.get_mint_len(extensions)
    # Key material is fixed-width, so placeholder keys size the metadata exactly.
    metadata_len = len(
        token2022.pack_token_metadata(
            Pubkey.default(), Pubkey.default(), options.name, options.symbol, options.uri
        )
    )
    total_len = mint_len + token2022.TLV_HEADER_LEN + metadata_len
    return MintPlan(
        preset=resolved,
        extensions=extensions,
        mint_len=mint_len,
        total_len=total_len,
        options=options,
    )


def build_mint_instructions(
    plan: MintPlan, *, payer: Pubkey, mint: Pubkey, lamports: int
) -> MintPlan:
    """Return ``plan`` with the ordered mint-creation instructions filled in."""

    options = plan.options
    config, _ = derive_config_pda(mint, options.core_program_id)
    # Tier 3 hands authority to the config PDA directly; tiers 1/2 pass through the payer.
    direct_authority = plan.preset is Preset.SSS_3
    initial_authority = config if direct_authority else payer

    instructions = [
        token2022.create_mint_account(payer, mint, lamports, plan.mint_len),
        token2022.initialize_metadata_pointer(mint, config, mint),
    ]
    if ExtensionType.PERMANENT_DELEGATE in plan.extensions:
        instructions.append(token2022.initialize_permanent_delegate(mint, config))
    if ExtensionType.TRANSFER_HOOK in plan.extensions:
        instructions.append(
            token2022.initialize_transfer_hook(mint, config, options.hook_program_id)
        )
    if ExtensionType.CONFIDENTIAL_TRANSFER_MINT in plan.extensions:
        instructions.append(
            token2022.initialize_confidential_transfer_mint(
                mint,
                config,
                options.auto_approve_new_accounts,
                options.auditor_elgamal_pubkey,
            )
        )
    if ExtensionType.DEFAULT_ACCOUNT_STATE in plan.extensions:
        instructions.append(
            token2022.initialize_default_account_state(mint, AccountState.FROZEN)
        )
    instructions.append(
        token2022.initialize_mint2(mint, options.decimals, initial_authority, initial_authority)
    )
    instructions.append(
        token2022.initialize_token_metadata(
            mint, config, initial_authority, options.name, options.symbol, options.uri
        )
    )
    if not direct_authority:
        instructions.append(
            token2022.set_authority(mint, payer, AuthorityType.MINT_TOKENS, config)
        )
        instructions.append(
            token2022.set_authority(mint, payer, AuthorityType.FREEZE_ACCOUNT, config)
        )
    return replace(plan, lamports=lamports, config=config, instructions=instructions)


def plan_mint_creation(
    rpc: RentSource,
    payer: Pubkey,
    mint: Pubkey,
    preset: Preset | int | str | ExtensionSelection,
    options: MintOptions,
) -> MintPlan:
    """Plan a mint and fund it for rent exemption over its full metadata size."""

    plan = plan_extensions(preset, options)
    minimum = int(rpc.get_minimum_balance_for_rent_exemption(plan.total_len))
    lamports = minimum
    if options.lamports is not None:
        if options.lamports < minimum:
            raise ConfigurationError(
                f"Supplied {options.lamports} lamports is below the rent-exempt minimum "
                f"of {minimum} for {plan.total_len} bytes"
            )
        lamports = options.lamports
    logger.debug(
        "Planned %s mint %s: extensions=%s mint_len=%d total_len=%d lamports=%d",
        plan.preset.label,
        mint,
        [extension.name for extension in plan.extensions],
        plan.mint_len,
        plan.total_len,
        lamports,
    )
    return build_mint_instructions(plan, payer=payer, mint=mint, lamports=lamports)


def extension_names(extensions: Sequence[ExtensionType]) -> list[str]:
    return [extension.name.lower() for extension in extensions]
