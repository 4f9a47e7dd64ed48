"""Program-derived address derivation for the SSS programs.

Every address the remote programs expect is a pure function of a domain tag,
the seed material and the owning program id. Hashing and the bump search are
left to solders; this module checks the seed limits first so that bad input
surfaces as :class:`DerivationError`.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence

from solders.pubkey import Pubkey

from .constants import (
    BLACKLIST_SEED,
    EXTRA_ACCOUNT_METAS_SEED,
    MAX_SEED_LEN,
    MAX_SEEDS,
    SSS_CONFIG_SEED,
    SSS_CORE_PROGRAM_ID,
    SSS_HOOK_PROGRAM_ID,
    SSS_ROLE_SEED,
)
from .errors import DerivationError
from .model import Role

logger = logging.getLogger(__name__)


class AddressKind(Enum):
    """Address families and the number of seeds following the domain tag."""

    CONFIG = (SSS_CONFIG_SEED, 1)
    ROLE = (SSS_ROLE_SEED, 3)
    BLACKLIST = (BLACKLIST_SEED, 2)
    EXTRA_ACCOUNT_METAS = (EXTRA_ACCOUNT_METAS_SEED, 1)

    @property
    def tag(self) -> bytes:
        return self.value[0]

    @property
    def seed_count(self) -> int:
        return self.value[1]

    @property
    def default_program_id(self) -> Pubkey:
        if self in (AddressKind.CONFIG, AddressKind.ROLE):
            return SSS_CORE_PROGRAM_ID
        return SSS_HOOK_PROGRAM_ID


def _seed_bytes(seed: bytes | Pubkey | int) -> bytes:
    if isinstance(seed, Pubkey):
        return bytes(seed)
    if isinstance(seed, int):
        if not 0 <= seed <= 255:
            raise DerivationError(f"Integer seed must fit in one byte: {seed}")
        return bytes([seed])
    return bytes(seed)


def _check_seeds(seeds: Sequence[bytes], limit: int) -> None:
    if len(seeds) > limit:
        raise DerivationError(f"At most {limit} seeds are allowed, got {len(seeds)}")
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise DerivationError(
                f"Seed of {len(seed)} bytes exceeds the {MAX_SEED_LEN} byte limit"
            )


def create_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey | None:
    """Hash ``seeds`` under ``program_id``; ``None`` when the result is on curve."""

    _check_seeds(seeds, MAX_SEEDS)
    try:
        return Pubkey.create_program_address(list(seeds), program_id)
    except Exception as exc:  # solders does not export its PubkeyError
        # With the seed limits checked, the only remaining failure is an on-curve hash.
        logger.debug("Seeds hash onto the curve under %s: %s", program_id, exc)
        return None


def find_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> tuple[Pubkey, int]:
    """Return the canonical (highest bump) off-curve address for ``seeds``."""

    # The bump occupies one seed slot.
    _check_seeds(seeds, MAX_SEEDS - 1)
    return Pubkey.find_program_address(list(seeds), program_id)


def derive(
    kind: AddressKind,
    *seeds: bytes | Pubkey | int,
    program_id: Pubkey | None = None,
) -> tuple[Pubkey, int]:
    """Derive the address of ``kind`` for ``seeds``.

    ``seeds`` follow the domain tag in wire order, e.g. ``(config, holder,
    role)`` for :attr:`AddressKind.ROLE`. The owning program defaults to the
    core program for config and role addresses and to the hook program for
    blacklist and extra-account-metas addresses.
    """

    if len(seeds) != kind.seed_count:
        raise DerivationError(
            f"{kind.name} addresses take {kind.seed_count} seed(s), got {len(seeds)}"
        )
    owner = program_id or kind.default_program_id
    address, bump = find_program_address(
        [kind.tag, *(_seed_bytes(seed) for seed in seeds)], owner
    )
    logger.debug("Derived %s address %s (bump %d)", kind.name, address, bump)
    return address, bump


def derive_config_pda(mint: Pubkey, program_id: Pubkey | None = None) -> tuple[Pubkey, int]:
    return derive(AddressKind.CONFIG, mint, program_id=program_id)


def derive_role_pda(
    config: Pubkey,
    holder: Pubkey,
    role: Role | int | str,
    program_id: Pubkey | None = None,
) -> tuple[Pubkey, int]:
    return derive(
        AddressKind.ROLE, config, holder, int(Role.parse(role)), program_id=program_id
    )


def derive_blacklist_pda(
    mint: Pubkey, address: Pubkey, program_id: Pubkey | None = None
) -> tuple[Pubkey, int]:
    return derive(AddressKind.BLACKLIST, mint, address, program_id=program_id)


def derive_extra_account_metas_pda(
    mint: Pubkey, program_id: Pubkey | None = None
) -> tuple[Pubkey, int]:
    return derive(AddressKind.EXTRA_ACCOUNT_METAS, mint, program_id=program_id)
