"""Typed JSON-RPC client for Solana nodes.

The client is a thin transport: each helper maps to one RPC method and
returns parsed values. Program errors stay untyped here; the facade passes
them through :func:`solana_stablecoin.errors.map_program_error`.
"""

from __future__ import annotations

import base64
import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import requests
from requests import RequestException, Response
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from .config import RPCConfig, load_rpc_config

logger = logging.getLogger(__name__)

_COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


class RPCError(RuntimeError):
    """Raised when the node responds with a JSON-RPC error."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data

    @property
    def logs(self) -> list[str]:
        if isinstance(self.data, dict):
            return list(self.data.get("logs") or [])
        return []


class RPCTransportError(RuntimeError):
    """Raised when the RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransactionFailedError(RuntimeError):
    """A submitted transaction landed but its execution failed."""

    def __init__(self, signature: str, err: Any, logs: Sequence[str] | None = None) -> None:
        super().__init__(f"Transaction {signature} failed: {err}")
        self.signature = signature
        self.err = err
        self.logs = list(logs or [])


@dataclass(frozen=True)
class AccountInfo:
    lamports: int
    owner: Pubkey
    data: bytes
    executable: bool

    @classmethod
    def from_json(cls, value: Dict[str, Any]) -> "AccountInfo":
        raw = value.get("data") or ["", "base64"]
        payload = raw[0] if isinstance(raw, list) else raw
        return cls(
            lamports=int(value.get("lamports", 0)),
            owner=Pubkey.from_string(value["owner"]),
            data=base64.b64decode(payload),
            executable=bool(value.get("executable", False)),
        )


class SolanaRPCClient:
    """Typed JSON-RPC client for a Solana cluster.

    Connection defaults come from :func:`load_rpc_config`: ``SSS_RPC_URL``,
    ``SSS_COMMITMENT`` and ``SSS_RPC_TIMEOUT`` or the ``rpc`` section of
    ``~/.sss.yaml``.
    """

    def __init__(self, config: RPCConfig | None = None) -> None:
        self.config = config or RPCConfig()
        self._session = requests.Session()

    @classmethod
    def from_env(cls) -> "SolanaRPCClient":
        """Instantiate a client using environment variables or config file."""

        return cls(load_rpc_config())

    @property
    def commitment(self) -> str:
        return self.config.commitment

    def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """Perform a JSON-RPC request."""

        payload = {
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": method,
            "params": params or [],
        }
        logger.debug("RPC call %s params=%s", method, params)
        try:
            response = self._session.post(
                self.config.base_url,
                data=json.dumps(payload),
                headers={"content-type": "application/json"},
                timeout=self.config.timeout,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RPCTransportError(
                "RPC connection failed. Ensure the cluster is reachable and SSS_RPC_URL "
                "(or ~/.sss.yaml) points to the right endpoint."
            ) from exc
        try:
            self._raise_for_status(response)
        except requests.HTTPError as exc:
            logger.error(
                "RPC HTTP error: %s", exc, exc_info=logger.isEnabledFor(logging.DEBUG)
            )
            raise RPCTransportError(
                "RPC server returned an HTTP error; check the endpoint URL and SSS_RPC_URL.",
                status_code=response.status_code,
            ) from exc
        try:
            result = response.json()
        except ValueError as exc:
            logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
            raise RPCTransportError("RPC server returned malformed JSON") from exc
        if result.get("error"):
            error = result["error"]
            raise RPCError(
                error.get("code", -1), error.get("message", "unknown"), error.get("data")
            )
        return result.get("result")

    def _raise_for_status(self, response: Response) -> None:
        if not response.ok:
            logger.error("RPC HTTP error %s from %s", response.status_code, response.url)
            if response.status_code == 429:
                raise RPCTransportError(
                    "Rate limited (429). Use a dedicated RPC endpoint via SSS_RPC_URL.",
                    status_code=response.status_code,
                )
        response.raise_for_status()

    # Convenience wrappers -------------------------------------------------

    def get_account_info(self, address: Pubkey) -> AccountInfo | None:
        result = self.call(
            "getAccountInfo",
            [str(address), {"encoding": "base64", "commitment": self.commitment}],
        )
        value = (result or {}).get("value")
        return AccountInfo.from_json(value) if value else None

    def get_multiple_accounts(self, addresses: Sequence[Pubkey]) -> list[AccountInfo | None]:
        result = self.call(
            "getMultipleAccounts",
            [
                [str(address) for address in addresses],
                {"encoding": "base64", "commitment": self.commitment},
            ],
        )
        values = (result or {}).get("value") or []
        return [AccountInfo.from_json(value) if value else None for value in values]

    def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        return int(self.call("getMinimumBalanceForRentExemption", [size]))

    def get_latest_blockhash(self) -> Hash:
        result = self.call("getLatestBlockhash", [{"commitment": self.commitment}])
        return Hash.from_string(result["value"]["blockhash"])

    def send_transaction(self, transaction: VersionedTransaction) -> str:
        encoded = base64.b64encode(bytes(transaction)).decode("ascii")
        signature = self.call(
            "sendTransaction",
            [encoded, {"encoding": "base64", "preflightCommitment": self.commitment}],
        )
        logger.debug("Submitted transaction %s", signature)
        return signature

    def get_signature_statuses(self, signatures: Sequence[str]) -> list[Dict[str, Any] | None]:
        result = self.call(
            "getSignatureStatuses",
            [list(signatures), {"searchTransactionHistory": False}],
        )
        return list((result or {}).get("value") or [])

    def get_transaction(self, signature: str) -> Dict[str, Any] | None:
        commitment = "confirmed" if self.commitment == "processed" else self.commitment
        return self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )

    def confirm_transaction(
        self, signature: str, *, timeout: float | None = None, poll_interval: float = 0.5
    ) -> Dict[str, Any]:
        """Poll until ``signature`` reaches the configured commitment.

        Raises :class:`TransactionFailedError` when the transaction landed with
        an error and :class:`RPCTransportError` when ``timeout`` elapses.
        """

        wanted = _COMMITMENT_RANK.get(self.commitment, 1)
        deadline = time.monotonic() + (timeout if timeout is not None else self.config.timeout)
        while True:
            statuses = self.get_signature_statuses([signature])
            status = statuses[0] if statuses else None
            if status:
                if status.get("err"):
                    raise TransactionFailedError(
                        signature, status["err"], self._transaction_logs(signature)
                    )
                reached = _COMMITMENT_RANK.get(status.get("confirmationStatus") or "", -1)
                if reached >= wanted:
                    return status
            if time.monotonic() >= deadline:
                raise RPCTransportError(
                    f"Timed out waiting for transaction {signature} to reach {self.commitment}"
                )
            time.sleep(poll_interval)

    def _transaction_logs(self, signature: str) -> list[str]:
        transaction = self.get_transaction(signature)
        meta = (transaction or {}).get("meta") or {}
        return list(meta.get("logMessages") or [])
