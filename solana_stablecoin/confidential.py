"""Confidential-balance operations that need no zero-knowledge proof.

Deposits move public balance into the pending confidential balance and
``ApplyPendingBalance`` folds pending credits into the available balance.
Both only need the owner's signature plus, for the latter, the new available
balance encrypted under the owner's AES key. Transfers and withdrawals need
range and equality proofs, which this library does not generate.
"""

from __future__ import annotations

import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCMSIV
from solders.instruction import Instruction
from solders.pubkey import Pubkey

from . import token2022
from .constants import MAX_DECIMALS, U64_MAX
from .errors import ProofRequiredError, ZeroAmountError

logger = logging.getLogger(__name__)

AE_KEY_SIZE = 16
AE_NONCE_SIZE = 12
AE_CIPHERTEXT_SIZE = 36
ELGAMAL_KEY_SIZE = 32

CONFIDENTIAL_TRANSFER_ACCOUNT_EXTENSION = 5
# approved, elgamal pubkey, pending lo/hi, available, decryptable balance, two credit flags
_PENDING_CREDIT_COUNTER_OFFSET = 1 + 32 + 64 + 64 + 64 + 36 + 1 + 1


def generate_test_elgamal_keypair() -> tuple[bytes, bytes]:
    """Random 32-byte stand-ins for an ElGamal keypair.

    Only useful where no encryption is exercised (local validators, demos).
    Real keys come from the twisted ElGamal scheme in ``solana-zk-sdk``.
    """

    return os.urandom(ELGAMAL_KEY_SIZE), os.urandom(ELGAMAL_KEY_SIZE)


def generate_test_aes_key() -> bytes:
    return os.urandom(AE_KEY_SIZE)


def derive_elgamal_keypair(signer: object, token_account: Pubkey) -> tuple[bytes, bytes]:
    raise ProofRequiredError("ElGamal key derivation")


def encrypt_decryptable_balance(aes_key: bytes, amount: int) -> bytes:
    """Encrypt ``amount`` into the 36-byte decryptable-balance ciphertext."""

    if not 0 <= amount <= U64_MAX:
        raise ValueError(f"Balance {amount} does not fit in a u64")
    nonce = os.urandom(AE_NONCE_SIZE)
    sealed = AESGCMSIV(aes_key).encrypt(nonce, amount.to_bytes(8, "little"), None)
    return nonce + sealed


def decrypt_decryptable_balance(aes_key: bytes, ciphertext: bytes) -> int:
    if len(ciphertext) != AE_CIPHERTEXT_SIZE:
        raise ValueError(f"Expected a {AE_CIPHERTEXT_SIZE}-byte ciphertext, got {len(ciphertext)}")
    nonce, sealed = ciphertext[:AE_NONCE_SIZE], ciphertext[AE_NONCE_SIZE:]
    try:
        plaintext = AESGCMSIV(aes_key).decrypt(nonce, sealed, None)
    except InvalidTag as exc:
        raise ValueError("Failed to decrypt balance; wrong key or corrupted data") from exc
    return int.from_bytes(plaintext, "little")


def read_pending_balance_credit_counter(account_data: bytes) -> int:
    """Pull the pending-balance credit counter out of a Token-2022 account's TLV area."""

    data = bytes(account_data)
    offset = token2022.BASE_ACCOUNT_LEN + token2022.ACCOUNT_TYPE_LEN
    while offset + token2022.TLV_HEADER_LEN <= len(data):
        ext_type = int.from_bytes(data[offset : offset + 2], "little")
        length = int.from_bytes(data[offset + 2 : offset + 4], "little")
        value = data[offset + 4 : offset + 4 + length]
        if ext_type == CONFIDENTIAL_TRANSFER_ACCOUNT_EXTENSION:
            start = _PENDING_CREDIT_COUNTER_OFFSET
            if len(value) < start + 8:
                break
            return int.from_bytes(value[start : start + 8], "little")
        if ext_type == 0:
            break
        offset += token2022.TLV_HEADER_LEN + length
    raise ValueError("Token account is not configured for confidential transfers")


def build_deposit(
    token_account: Pubkey, mint: Pubkey, owner: Pubkey, amount: int, decimals: int
) -> Instruction:
    if amount <= 0:
        raise ZeroAmountError()
    if amount > U64_MAX:
        raise ValueError(f"Amount {amount} does not fit in a u64")
    if not 0 <= decimals <= MAX_DECIMALS:
        raise ValueError(f"Decimals must be between 0 and {MAX_DECIMALS}, got {decimals}")
    return token2022.confidential_deposit(token_account, mint, owner, amount, decimals)


def build_apply_pending_balance(
    token_account: Pubkey,
    owner: Pubkey,
    expected_pending_balance_credit_counter: int,
    new_decryptable_available_balance: bytes,
) -> Instruction:
    return token2022.confidential_apply_pending_balance(
        token_account,
        owner,
        expected_pending_balance_credit_counter,
        new_decryptable_available_balance,
    )


def build_transfer(*_: object, **__: object) -> Instruction:
    raise ProofRequiredError("transfer")


def build_withdraw(*_: object, **__: object) -> Instruction:
    raise ProofRequiredError("withdraw")
