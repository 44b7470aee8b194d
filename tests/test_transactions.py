"""Tests for broadcast and receipt polling."""

from __future__ import annotations

import threading
import time

import pytest
import requests
from web3.exceptions import Web3RPCError

from arb_api.evm.connections import NodeConnection
from arb_api.evm.signer import Credential, TransactionBuilder
from arb_api.evm.transactions import NodeTransactionClient
from arb_api.exceptions import (
    InvalidResponseError,
    NetworkError,
    NotConfirmedError,
    RejectedByNodeError,
    ValidationError,
)
from arb_api.types import FeeQuote, SignedPayload

from fakes import CHAIN_ID, PRIVATE_KEY, RECIPIENT, FakeClock, make_receipt


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def client(fast_config, fake_web3, clock) -> NodeTransactionClient:
    connection = NodeConnection(fast_config, web3=fake_web3)
    connection.connect()
    return NodeTransactionClient(
        connection, clock=clock.monotonic, sleep=clock.sleep, wait_for=clock.wait_for
    )


@pytest.fixture()
def payload() -> SignedPayload:
    quote = FeeQuote(max_fee_per_gas=200, max_priority_fee_per_gas=1)
    return TransactionBuilder().build(
        Credential.from_key(PRIVATE_KEY), RECIPIENT, 1000, quote, CHAIN_ID, nonce=0
    )


class TestBroadcast:
    def test_returns_hash(self, client, payload, fake_web3):
        assert client.broadcast(payload) == payload.tx_hash
        assert fake_web3.eth.sent == [payload.raw_transaction]

    def test_rejection_carries_reason(self, client, payload, fake_web3):
        reason = "insufficient funds for gas * price + value"
        fake_web3.eth.script(
            "send_raw_transaction",
            Web3RPCError(reason, rpc_response={"error": {"code": -32000, "message": reason}}),
        )

        with pytest.raises(RejectedByNodeError) as excinfo:
            client.broadcast(payload)

        assert excinfo.value.reason == reason
        assert excinfo.value.tx_hash == payload.tx_hash
        assert excinfo.value.stage == "broadcast"

    def test_transport_failure(self, client, payload, fake_web3):
        fake_web3.eth.script("send_raw_transaction", requests.ConnectionError("reset"))

        with pytest.raises(NetworkError) as excinfo:
            client.broadcast(payload)

        assert excinfo.value.details["tx_hash"] == payload.tx_hash
        assert excinfo.value.endpoint == "http://localhost:8545"

    def test_malformed_hash_keeps_local_hash(self, client, payload, fake_web3):
        fake_web3.eth.script("send_raw_transaction", ValueError("invalid hex"))

        with pytest.raises(InvalidResponseError) as excinfo:
            client.broadcast(payload)

        assert excinfo.value.details["tx_hash"] == payload.tx_hash
        assert excinfo.value.stage == "broadcast"

    def test_requires_connection(self, fast_config, fake_web3, payload):
        disconnected = NodeTransactionClient(NodeConnection(fast_config, web3=fake_web3))
        with pytest.raises(NetworkError):
            disconnected.broadcast(payload)


class TestReceipts:
    def test_pending_receipt_is_none(self, client):
        assert client.get_receipt("0x" + "ab" * 32) is None

    def test_receipt_found(self, client, fake_web3):
        tx_hash = "0x" + "ab" * 32
        fake_web3.eth.script("get_transaction_receipt", make_receipt(tx_hash, block_number=42))

        receipt = client.get_receipt(tx_hash)

        assert receipt is not None
        assert receipt.tx_hash == tx_hash
        assert receipt.block_number == 42
        assert receipt.succeeded

    def test_await_polls_until_found(self, client, fake_web3, clock):
        fake_web3.eth.script("get_transaction_receipt", None, None, "auto")

        receipt = client.await_receipt("0x" + "cd" * 32, poll_interval=1.0, timeout=10.0)

        assert receipt.tx_hash == "0x" + "cd" * 32
        assert clock.sleeps == [1.0, 1.0]

    def test_await_times_out_with_hash(self, client, fake_web3, clock):
        tx_hash = "0x" + "ef" * 32

        with pytest.raises(NotConfirmedError) as excinfo:
            client.await_receipt(tx_hash, poll_interval=1.0, timeout=3.0)

        assert excinfo.value.tx_hash == tx_hash
        assert not excinfo.value.cancelled
        assert clock.now == 3.0
        assert fake_web3.eth.calls.count("get_transaction_receipt") == 4

    def test_last_sleep_is_clamped_to_deadline(self, client, clock):
        with pytest.raises(NotConfirmedError):
            client.await_receipt("0x" + "ef" * 32, poll_interval=2.0, timeout=3.0)
        assert clock.sleeps == [2.0, 1.0]

    def test_zero_timeout_polls_once(self, client, fake_web3, clock):
        with pytest.raises(NotConfirmedError):
            client.await_receipt("0x" + "ef" * 32, poll_interval=1.0, timeout=0.0)
        assert fake_web3.eth.calls.count("get_transaction_receipt") == 1
        assert clock.sleeps == []

    def test_poll_errors_are_tolerated(self, client, fake_web3):
        fake_web3.eth.script(
            "get_transaction_receipt", requests.Timeout("slow"), ConnectionError("reset"), "auto"
        )

        receipt = client.await_receipt("0x" + "12" * 32, poll_interval=1.0, timeout=10.0)

        assert receipt.succeeded

    def test_cancel_stops_waiting(self, client, fake_web3):
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(NotConfirmedError) as excinfo:
            client.await_receipt("0x" + "34" * 32, 1.0, 10.0, cancel_event=cancel)

        assert excinfo.value.cancelled
        assert excinfo.value.tx_hash == "0x" + "34" * 32

    def test_cancel_during_wait(self, client, fake_web3, clock):
        clock.cancel_after = 2
        cancel = threading.Event()

        with pytest.raises(NotConfirmedError) as excinfo:
            client.await_receipt("0x" + "34" * 32, 1.0, 10.0, cancel_event=cancel)

        assert excinfo.value.cancelled
        assert clock.sleeps == [1.0, 1.0]
        assert fake_web3.eth.calls.count("get_transaction_receipt") == 2

    def test_cancel_from_another_thread(self, fast_config, fake_web3):
        connection = NodeConnection(fast_config, web3=fake_web3)
        connection.connect()
        client = NodeTransactionClient(connection)
        cancel = threading.Event()
        timer = threading.Timer(0.05, cancel.set)

        started = time.monotonic()
        timer.start()
        try:
            with pytest.raises(NotConfirmedError) as excinfo:
                client.await_receipt("0x" + "78" * 32, 5.0, 30.0, cancel_event=cancel)
        finally:
            timer.cancel()

        assert excinfo.value.cancelled
        assert time.monotonic() - started < 5.0

    @pytest.mark.parametrize("interval,timeout", [(-1.0, 1.0), (1.0, -1.0)])
    def test_negative_bounds_rejected(self, client, interval, timeout):
        with pytest.raises(ValidationError):
            client.await_receipt("0x" + "56" * 32, poll_interval=interval, timeout=timeout)
