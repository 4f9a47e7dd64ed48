"""Typed failures for the SSS programs and the wire-error mapper.

Every known program error code has exactly one exception class. Errors that
carry no recognisable code are handed back untouched when they are already
exceptions, or wrapped in :class:`OpaqueProgramError` so the original text is
never lost.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping

from solders.pubkey import Pubkey

from .constants import SSS_CORE_PROGRAM_ID, SSS_HOOK_PROGRAM_ID

logger = logging.getLogger(__name__)


class StablecoinError(Exception):
    """Base error for all stablecoin client failures."""

    code: str | None = None
    default_message = "Stablecoin operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class DerivationError(StablecoinError):
    """No valid program address exists for the supplied seeds."""

    default_message = "Unable to derive a program address"


class ProofRequiredError(StablecoinError):
    """Operation needs a zero-knowledge proof this library does not generate."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Confidential {operation} requires zero-knowledge proofs; generate them with "
            "a dedicated proof service (solana-zk-sdk) and submit the instruction yourself"
        )
        self.operation = operation


class ClientSideCreationError(StablecoinError):
    """The preset cannot be created from a client-signed transaction."""

    def __init__(self, preset_label: str) -> None:
        super().__init__(
            f"{preset_label} mints hand their authorities to the config PDA before the "
            "metadata is written, so creation needs a program-side initializer; plan it "
            "with plan_mint_creation and submit it through that program"
        )
        self.preset_label = preset_label


class OpaqueProgramError(StablecoinError):
    """Failure with no recognised program error code."""

    def __init__(self, message: str, original: Any = None) -> None:
        super().__init__(message)
        self.original = original


# sss-core -----------------------------------------------------------------


class PausedError(StablecoinError):
    code = "Paused"
    default_message = "Operations are paused"


class NotPausedError(StablecoinError):
    code = "NotPaused"
    default_message = "Operations are not paused"


class SupplyCapExceededError(StablecoinError):
    code = "SupplyCapExceeded"
    default_message = "Supply cap exceeded"


class UnauthorizedError(StablecoinError):
    code = "Unauthorized"
    default_message = "Missing required role"


class InvalidPresetError(StablecoinError, ValueError):
    code = "InvalidPreset"
    default_message = "Invalid preset value"


class LastAdminError(StablecoinError):
    code = "LastAdmin"
    default_message = "Cannot remove the last admin"


class ArithmeticOverflowError(StablecoinError):
    code = "ArithmeticOverflow"
    default_message = "Overflow in arithmetic operation"


class MintMismatchError(StablecoinError):
    code = "MintMismatch"
    default_message = "Mint mismatch"


class InvalidSupplyCapError(StablecoinError):
    code = "InvalidSupplyCap"
    default_message = "Invalid supply cap: must be >= current supply"


class ZeroAmountError(StablecoinError, ValueError):
    code = "ZeroAmount"
    default_message = "Amount must be greater than zero"


class InvalidRoleError(StablecoinError, ValueError):
    code = "InvalidRole"
    default_message = "Invalid role value"


class InvalidOracleDataError(StablecoinError, ValueError):
    code = "InvalidOracleData"
    default_message = "Invalid oracle price feed data"


class InvalidOraclePriceError(StablecoinError, ValueError):
    code = "InvalidOraclePrice"
    default_message = "Oracle price is stale or non-positive"


class QuotaExceededError(StablecoinError):
    code = "QuotaExceeded"
    default_message = "Minter quota exceeded"


class NameTooLongError(StablecoinError, ValueError):
    code = "NameTooLong"
    default_message = "Name exceeds maximum length of 32 characters"


class SymbolTooLongError(StablecoinError, ValueError):
    code = "SymbolTooLong"
    default_message = "Symbol exceeds maximum length of 10 characters"


class UriTooLongError(StablecoinError, ValueError):
    code = "UriTooLong"
    default_message = "URI exceeds maximum length of 200 characters"


# sss-transfer-hook --------------------------------------------------------


class SenderBlacklistedError(StablecoinError):
    code = "SenderBlacklisted"
    default_message = "Sender is blacklisted"


class ReceiverBlacklistedError(StablecoinError):
    code = "ReceiverBlacklisted"
    default_message = "Receiver is blacklisted"


class ReasonTooLongError(StablecoinError, ValueError):
    code = "ReasonTooLong"
    default_message = "Reason exceeds maximum length"


CORE_ERROR_MAP: dict[str, type[StablecoinError]] = {
    cls.code: cls  # type: ignore[misc]
    for cls in (
        PausedError,
        NotPausedError,
        SupplyCapExceededError,
        UnauthorizedError,
        InvalidPresetError,
        LastAdminError,
        ArithmeticOverflowError,
        MintMismatchError,
        InvalidSupplyCapError,
        ZeroAmountError,
        InvalidRoleError,
        InvalidOracleDataError,
        InvalidOraclePriceError,
        QuotaExceededError,
        NameTooLongError,
        SymbolTooLongError,
        UriTooLongError,
    )
}

HOOK_ERROR_MAP: dict[str, type[StablecoinError]] = {
    cls.code: cls  # type: ignore[misc]
    for cls in (SenderBlacklistedError, ReceiverBlacklistedError, ReasonTooLongError)
}

# Anchor numbers custom errors from 6000 in declaration order.
CORE_ERROR_NUMBERS: dict[int, str] = {
    6000 + index: name
    for index, name in enumerate(
        [
            "Paused",
            "NotPaused",
            "SupplyCapExceeded",
            "Unauthorized",
            "InvalidPreset",
            "LastAdmin",
            "ArithmeticOverflow",
            "MintMismatch",
            "InvalidSupplyCap",
            "ZeroAmount",
            "InvalidRole",
            "InvalidOracleData",
            "InvalidOraclePrice",
            "QuotaExceeded",
            "NameTooLong",
            "SymbolTooLong",
            "UriTooLong",
        ]
    )
}
HOOK_ERROR_NUMBERS: dict[int, str] = {
    6000: "SenderBlacklisted",
    6001: "ReceiverBlacklisted",
    6002: "ReasonTooLong",
    6003: "Unauthorized",
}

_ERROR_CODE_LOG_RE = re.compile(r"Error Code: (\w+)\.")
_CUSTOM_ERROR_LOG_RE = re.compile(
    r"Program (\w+) failed: custom program error: 0x([0-9a-fA-F]+)"
)


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _collect_logs(err: Any) -> list[str]:
    logs: list[str] = []
    for source in (err, _field(err, "data")):
        if source is None:
            continue
        candidate = _field(source, "logs")
        if isinstance(candidate, Iterable) and not isinstance(candidate, (str, bytes)):
            logs.extend(str(line) for line in candidate)
    return logs


def _nested_error_code(err: Any) -> str | None:
    nested = _field(err, "error")
    if nested is None:
        return None
    error_code = _field(nested, "errorCode") or _field(nested, "error_code")
    code = _field(error_code, "code") if error_code is not None else None
    return code if isinstance(code, str) and code else None


def _custom_error_code(
    logs: list[str], core_program_id: Pubkey, hook_program_id: Pubkey
) -> str | None:
    tables = {
        str(core_program_id): CORE_ERROR_NUMBERS,
        str(hook_program_id): HOOK_ERROR_NUMBERS,
    }
    for line in logs:
        match = _CUSTOM_ERROR_LOG_RE.search(line)
        if match and match.group(1) in tables:
            name = tables[match.group(1)].get(int(match.group(2), 16))
            if name is not None:
                return name
    return None


def extract_error_code(
    err: Any,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
    hook_program_id: Pubkey = SSS_HOOK_PROGRAM_ID,
) -> str | None:
    """Return the program error code name embedded in ``err``, if any."""

    code = _nested_error_code(err)
    if code:
        return code
    logs = _collect_logs(err)
    first_named: str | None = None
    for line in logs:
        match = _ERROR_CODE_LOG_RE.search(line)
        if match is None:
            continue
        name = match.group(1)
        if name in CORE_ERROR_MAP or name in HOOK_ERROR_MAP:
            return name
        first_named = first_named or name
    # Unrecognised names defer to the numbered form from our own programs.
    return _custom_error_code(logs, core_program_id, hook_program_id) or first_named


def map_program_error(
    err: Any,
    *,
    core_program_id: Pubkey = SSS_CORE_PROGRAM_ID,
    hook_program_id: Pubkey = SSS_HOOK_PROGRAM_ID,
) -> BaseException:
    """Translate a wire error into a typed :class:`StablecoinError`.

    Unknown codes, or errors without any code, come back unchanged when they
    are already exceptions; anything else is wrapped in
    :class:`OpaqueProgramError` preserving its text. This function never
    raises.
    """

    try:
        code = extract_error_code(
            err, core_program_id=core_program_id, hook_program_id=hook_program_id
        )
    except Exception:  # malformed payloads fall through to the passthrough below
        logger.debug("Could not inspect wire error %r", err, exc_info=True)
        code = None

    if code:
        factory = CORE_ERROR_MAP.get(code) or HOOK_ERROR_MAP.get(code)
        if factory is not None:
            logger.debug("Mapped program error code %s to %s", code, factory.__name__)
            return factory()

    if isinstance(err, BaseException):
        return err
    try:
        text = str(err)
    except Exception:
        text = repr(err)
    return OpaqueProgramError(text, original=err)
