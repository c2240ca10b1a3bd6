"""
Ledger Adapter

Submits usage records to the UsageLogger contract and decodes receipts.

Submission is two-phase: ``submit`` signs and broadcasts the transaction
and returns a PendingSubmission; ``PendingSubmission.wait`` blocks (without
blocking the event loop) until the transaction is included. Every failure
on the way, including missing configuration, RPC errors, nonce conflicts,
reverts, out-of-gas and receipt timeouts, is raised as
LedgerSubmitFailedError.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from eth_account import Account
from web3 import AsyncWeb3, Web3
from web3.logs import DISCARD
from web3.providers import AsyncHTTPProvider

from usage_audit.config import Settings
from usage_audit.exceptions import LedgerSubmitFailedError
from usage_audit.ledger.contract import (
    LAST_SEEN_AT_FUNCTION,
    LOG_USAGE_FUNCTION,
    USAGE_LOGGED_EVENT,
    USAGE_LOGGER_ABI,
)
from usage_audit.utils.fingerprint import to_bytes32

logger = logging.getLogger(__name__)


@dataclass
class UsageEvent:
    """A decoded UsageLogged event."""

    submitter: str
    key_fingerprint: str
    timestamp: int
    request_fingerprint: str
    tag: str


@dataclass
class LedgerReceipt:
    """Receipt of an included logUsage transaction."""

    tx_hash: str
    block_number: int
    events: list[UsageEvent] = field(default_factory=list)


def decode_usage_events(contract: Any, receipt: Any) -> list[UsageEvent]:
    """
    Decode UsageLogged events from a transaction receipt.

    Logs emitted by other contracts or with other signatures are skipped.

    Args:
        contract: web3 contract bound to the UsageLogger ABI
        receipt: Transaction receipt

    Returns:
        Decoded events in log order
    """
    event = getattr(contract.events, USAGE_LOGGED_EVENT)()
    decoded = []
    for log in event.process_receipt(receipt, errors=DISCARD):
        args = log["args"]
        decoded.append(
            UsageEvent(
                submitter=args["submitter"],
                key_fingerprint=Web3.to_hex(args["apiKeyHash"]),
                timestamp=int(args["timestamp"]),
                request_fingerprint=Web3.to_hex(args["requestHash"]),
                tag=args["tag"],
            )
        )
    return decoded


class PendingSubmission:
    """Handle on a broadcast transaction that may not be included yet."""

    def __init__(self, adapter: "LedgerAdapter", tx_hash: str) -> None:
        self.adapter = adapter
        self.tx_hash = tx_hash

    async def wait(self, timeout: float | None = None) -> LedgerReceipt:
        """
        Wait for inclusion and return the receipt.

        Args:
            timeout: Seconds to wait (defaults to the adapter's setting)

        Raises:
            LedgerSubmitFailedError: On timeout, revert or RPC failure
        """
        timeout = timeout if timeout is not None else self.adapter.receipt_timeout
        try:
            w3 = self.adapter.web3()
            receipt = await w3.eth.wait_for_transaction_receipt(
                self.tx_hash, timeout=timeout
            )
        except Exception as exc:
            raise self.adapter.failure("waiting for receipt", exc) from exc

        if receipt["status"] != 1:
            raise LedgerSubmitFailedError(
                f"Blockchain logging failed: transaction {self.tx_hash} reverted"
            )

        try:
            events = decode_usage_events(self.adapter.contract(), receipt)
        except Exception as exc:
            raise self.adapter.failure("decoding receipt", exc) from exc

        return LedgerReceipt(
            tx_hash=Web3.to_hex(receipt["transactionHash"]),
            block_number=int(receipt["blockNumber"]),
            events=events,
        )


class LedgerAdapter:
    """
    Client for the UsageLogger contract.

    The web3 connection and signing account are created lazily, so an
    unconfigured adapter can exist; it fails each call with
    LedgerSubmitFailedError instead.
    """

    def __init__(
        self,
        rpc_url: str | None,
        private_key: str | None,
        contract_address: str | None,
        receipt_timeout: float = 120.0,
        w3: AsyncWeb3 | None = None,
    ) -> None:
        """
        Args:
            rpc_url: JSON-RPC endpoint of the ledger network
            private_key: Hex private key of the submitting wallet
            contract_address: Deployed UsageLogger address
            receipt_timeout: Seconds to wait for inclusion
            w3: Pre-built AsyncWeb3 instance (tests inject a fake)
        """
        self.rpc_url = rpc_url
        self.private_key = private_key
        self.contract_address = contract_address
        self.receipt_timeout = receipt_timeout
        self._w3 = w3
        self._contract: Any = None
        self._account: Any = None
        # Serialises nonce lookup and broadcast only; receipt waits overlap
        self._send_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "LedgerAdapter":
        """Build an adapter from application settings."""
        return cls(
            rpc_url=settings.ledger_rpc_url,
            private_key=settings.ledger_private_key,
            contract_address=settings.ledger_contract_address,
            receipt_timeout=settings.ledger_receipt_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(
            (self._w3 is not None or self.rpc_url)
            and self.private_key
            and self.contract_address
        )

    def failure(self, stage: str, exc: Exception) -> LedgerSubmitFailedError:
        """Log a transport failure and wrap it as LedgerSubmitFailedError."""
        logger.warning(
            "Ledger call failed",
            extra={
                "context": {
                    "stage": stage,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                }
            },
        )
        return LedgerSubmitFailedError(
            f"Blockchain logging failed while {stage}: {type(exc).__name__}"
        )

    def web3(self) -> AsyncWeb3:
        if self._w3 is None:
            if not self.rpc_url:
                raise LedgerSubmitFailedError("Ledger RPC URL is not configured")
            self._w3 = AsyncWeb3(AsyncHTTPProvider(self.rpc_url))
        return self._w3

    def contract(self) -> Any:
        if self._contract is None:
            if not self.contract_address:
                raise LedgerSubmitFailedError("Ledger contract address is not configured")
            self._contract = self.web3().eth.contract(
                address=Web3.to_checksum_address(self.contract_address),
                abi=USAGE_LOGGER_ABI,
            )
        return self._contract

    def account(self) -> Any:
        if self._account is None:
            if not self.private_key:
                raise LedgerSubmitFailedError("Ledger private key is not configured")
            self._account = Account.from_key(self.private_key)
        return self._account

    async def submit(
        self,
        key_fingerprint: str,
        timestamp: int,
        request_fingerprint: str,
        tag: str,
    ) -> PendingSubmission:
        """
        Sign and broadcast a logUsage transaction.

        Args:
            key_fingerprint: 0x-prefixed keccak-256 of the API key
            timestamp: Unix seconds
            request_fingerprint: SHA-256 hex of the forwarded request
            tag: Caller label

        Returns:
            PendingSubmission to await for inclusion

        Raises:
            LedgerSubmitFailedError: For any configuration or transport failure
        """
        try:
            w3 = self.web3()
            account = self.account()
            call = getattr(self.contract().functions, LOG_USAGE_FUNCTION)(
                to_bytes32(key_fingerprint),
                int(timestamp),
                to_bytes32(request_fingerprint),
                tag,
            )
            async with self._send_lock:
                nonce = await w3.eth.get_transaction_count(account.address, "pending")
                tx = await call.build_transaction(
                    {"from": account.address, "nonce": nonce}
                )
                signed = account.sign_transaction(tx)
                tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        except LedgerSubmitFailedError:
            raise
        except Exception as exc:
            raise self.failure("submitting transaction", exc) from exc

        pending = PendingSubmission(self, Web3.to_hex(tx_hash))
        logger.info(
            "Ledger transaction broadcast",
            extra={"context": {"tx_hash": pending.tx_hash, "tag": tag}},
        )
        return pending

    async def submit_and_wait(
        self,
        key_fingerprint: str,
        timestamp: int,
        request_fingerprint: str,
        tag: str,
    ) -> LedgerReceipt:
        """Submit a usage record and wait for its inclusion."""
        pending = await self.submit(key_fingerprint, timestamp, request_fingerprint, tag)
        return await pending.wait()

    async def last_seen_at(self, key_fingerprint: str) -> int:
        """
        Read the monotonic last-seen watermark for a key fingerprint.

        Returns:
            Unix seconds, 0 if the key was never submitted

        Raises:
            LedgerSubmitFailedError: If the ledger cannot be read
        """
        try:
            call = getattr(self.contract().functions, LAST_SEEN_AT_FUNCTION)(
                to_bytes32(key_fingerprint)
            )
            return int(await call.call())
        except LedgerSubmitFailedError:
            raise
        except Exception as exc:
            raise self.failure("reading lastSeenAt", exc) from exc
