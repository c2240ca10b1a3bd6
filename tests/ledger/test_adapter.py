"""Tests for LedgerAdapter with a mocked web3 connection."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from hexbytes import HexBytes
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted
from web3.logs import DISCARD

from usage_audit.exceptions import LedgerSubmitFailedError
from usage_audit.ledger.adapter import LedgerAdapter, PendingSubmission
from usage_audit.utils.fingerprint import to_bytes32

# Well-known throwaway key (never holds funds)
PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
CONTRACT_ADDRESS = "0x" + "12" * 20
KEY_FP = "0x" + "11" * 32
REQUEST_FP = "22" * 32
TX_HASH = HexBytes("0x" + "ab" * 32)


def _unsigned_tx(nonce: int = 7) -> dict:
    return {
        "to": Web3.to_checksum_address(CONTRACT_ADDRESS),
        "value": 0,
        "gas": 100_000,
        "maxFeePerGas": 2_000_000_000,
        "maxPriorityFeePerGas": 1_000_000_000,
        "nonce": nonce,
        "chainId": 1337,
        "data": "0x1234",
    }


def _receipt(status: int = 1) -> dict:
    return {"status": status, "transactionHash": TX_HASH, "blockNumber": 42}


@pytest.fixture
def contract() -> MagicMock:
    contract = MagicMock()
    log_usage_call = MagicMock()
    log_usage_call.build_transaction = AsyncMock(return_value=_unsigned_tx())
    contract.functions.logUsage.return_value = log_usage_call
    last_seen_call = MagicMock()
    last_seen_call.call = AsyncMock(return_value=1731326400)
    contract.functions.lastSeenAt.return_value = last_seen_call
    contract.events.UsageLogged.return_value.process_receipt.return_value = [
        {
            "args": {
                "submitter": "0x" + "34" * 20,
                "apiKeyHash": to_bytes32(KEY_FP),
                "timestamp": 1731326400,
                "requestHash": to_bytes32(REQUEST_FP),
                "tag": "proxy:v1",
            }
        }
    ]
    return contract


@pytest.fixture
def w3(contract) -> MagicMock:
    w3 = MagicMock()
    w3.eth.contract.return_value = contract
    w3.eth.get_transaction_count = AsyncMock(return_value=7)
    w3.eth.send_raw_transaction = AsyncMock(return_value=TX_HASH)
    w3.eth.wait_for_transaction_receipt = AsyncMock(return_value=_receipt())
    return w3


@pytest.fixture
def adapter(w3) -> LedgerAdapter:
    return LedgerAdapter(
        rpc_url=None,
        private_key=PRIVATE_KEY,
        contract_address=CONTRACT_ADDRESS,
        receipt_timeout=5.0,
        w3=w3,
    )


@pytest.mark.asyncio
async def test_submit_returns_pending_handle(adapter, w3, contract):
    """submit broadcasts a signed logUsage call and returns a pending handle."""
    pending = await adapter.submit(KEY_FP, 1731326400, REQUEST_FP, "proxy:v1")

    assert isinstance(pending, PendingSubmission)
    assert pending.tx_hash == "0x" + "ab" * 32

    contract.functions.logUsage.assert_called_once_with(
        to_bytes32(KEY_FP), 1731326400, to_bytes32(REQUEST_FP), "proxy:v1"
    )
    account_address = adapter.account().address
    w3.eth.get_transaction_count.assert_awaited_once_with(account_address, "pending")
    build_args = contract.functions.logUsage.return_value.build_transaction.call_args
    assert build_args[0][0] == {"from": account_address, "nonce": 7}
    raw = w3.eth.send_raw_transaction.call_args[0][0]
    assert isinstance(raw, bytes) and len(raw) > 0
    # Submitting does not wait for inclusion
    w3.eth.wait_for_transaction_receipt.assert_not_called()


@pytest.mark.asyncio
async def test_wait_returns_decoded_receipt(adapter, w3, contract):
    """Waiting yields the receipt hash, block and decoded UsageLogged events."""
    pending = await adapter.submit(KEY_FP, 1731326400, REQUEST_FP, "proxy:v1")
    receipt = await pending.wait()

    w3.eth.wait_for_transaction_receipt.assert_awaited_once_with(
        pending.tx_hash, timeout=5.0
    )
    assert receipt.tx_hash == "0x" + "ab" * 32
    assert receipt.block_number == 42
    assert len(receipt.events) == 1
    event = receipt.events[0]
    assert event.key_fingerprint == KEY_FP
    assert event.request_fingerprint == "0x" + REQUEST_FP
    assert event.timestamp == 1731326400
    assert event.tag == "proxy:v1"
    process_receipt = contract.events.UsageLogged.return_value.process_receipt
    assert process_receipt.call_args.kwargs["errors"] is DISCARD


@pytest.mark.asyncio
async def test_submit_and_wait(adapter):
    receipt = await adapter.submit_and_wait(KEY_FP, 1731326400, REQUEST_FP, "proxy:v1")

    assert receipt.tx_hash == "0x" + "ab" * 32


@pytest.mark.asyncio
async def test_rpc_failure_is_wrapped(adapter, w3):
    """Transport errors become LedgerSubmitFailedError."""
    w3.eth.get_transaction_count.side_effect = ConnectionError("rpc unreachable")

    with pytest.raises(LedgerSubmitFailedError) as exc_info:
        await adapter.submit(KEY_FP, 1731326400, REQUEST_FP, "proxy:v1")

    assert "ConnectionError" in exc_info.value.message


@pytest.mark.asyncio
async def test_gas_estimation_failure_is_wrapped(adapter, contract):
    """Reverts during gas estimation (e.g. out of gas) are wrapped too."""
    contract.functions.logUsage.return_value.build_transaction.side_effect = (
        ContractLogicError("execution reverted")
    )

    with pytest.raises(LedgerSubmitFailedError):
        await adapter.submit(KEY_FP, 1731326400, REQUEST_FP, "proxy:v1")


@pytest.mark.asyncio
async def test_nonce_conflict_is_wrapped(adapter, w3):
    w3.eth.send_raw_transaction.side_effect = ValueError(
        {"code": -32000, "message": "nonce too low"}
    )

    with pytest.raises(LedgerSubmitFailedError):
        await adapter.submit(KEY_FP, 1731326400, REQUEST_FP, "proxy:v1")


@pytest.mark.asyncio
async def test_receipt_timeout_is_wrapped(adapter, w3):
    w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("not mined")

    with pytest.raises(LedgerSubmitFailedError) as exc_info:
        await adapter.submit_and_wait(KEY_FP, 1731326400, REQUEST_FP, "proxy:v1")

    assert "receipt" in exc_info.value.message


@pytest.mark.asyncio
async def test_reverted_transaction_fails(adapter, w3):
    w3.eth.wait_for_transaction_receipt.return_value = _receipt(status=0)

    with pytest.raises(LedgerSubmitFailedError) as exc_info:
        await adapter.submit_and_wait(KEY_FP, 1731326400, REQUEST_FP, "proxy:v1")

    assert "reverted" in exc_info.value.message


@pytest.mark.asyncio
async def test_unconfigured_adapter_fails_cleanly():
    """An adapter without settings fails each call instead of crashing."""
    adapter = LedgerAdapter(rpc_url=None, private_key=None, contract_address=None)

    assert adapter.configured is False
    with pytest.raises(LedgerSubmitFailedError):
        await adapter.submit_and_wait(KEY_FP, 1731326400, REQUEST_FP, "proxy:v1")
    with pytest.raises(LedgerSubmitFailedError):
        await adapter.last_seen_at(KEY_FP)


@pytest.mark.asyncio
async def test_last_seen_at(adapter, contract):
    assert await adapter.last_seen_at(KEY_FP) == 1731326400
    contract.functions.lastSeenAt.assert_called_once_with(to_bytes32(KEY_FP))


@pytest.mark.asyncio
async def test_last_seen_at_failure(adapter, contract):
    contract.functions.lastSeenAt.return_value.call.side_effect = OSError("down")

    with pytest.raises(LedgerSubmitFailedError):
        await adapter.last_seen_at(KEY_FP)


def test_from_settings():
    from usage_audit.config import Settings

    adapter = LedgerAdapter.from_settings(
        Settings(
            ledger_rpc_url="http://127.0.0.1:8545",
            ledger_private_key=PRIVATE_KEY,
            ledger_contract_address=CONTRACT_ADDRESS,
            ledger_receipt_timeout_seconds=30,
        )
    )

    assert adapter.configured is True
    assert adapter.receipt_timeout == 30
