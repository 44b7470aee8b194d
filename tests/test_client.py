"""End-to-end tests for ArbProtocolEVM against a scripted node."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
import requests
from eth_abi import encode as abi_encode
from eth_account import Account
from web3.exceptions import ContractLogicError, Web3RPCError

from arb_api import ArbProtocolEVM
from arb_api.evm.contracts import HELLO_WEB3_ABI
from arb_api.exceptions import (
    InvalidAddressError,
    InvalidAmountError,
    InvalidResponseError,
    NetworkError,
    NotConfirmedError,
    RejectedByNodeError,
    SigningError,
    ValidationError,
)
from arb_api.types import PipelineStage, TransferStatus
from arb_api.utils import wei_to_ether

from fakes import (
    CHAIN_ID,
    PRIVATE_KEY,
    RECIPIENT,
    FakeEth,
    FakeWeb3,
    contract_stub,
    make_receipt,
)

HELLO_CONTRACT = "0x3f1f78ED98Cd180794f1346F5bD379D5Ec47DE90"


def _client(config, web3, **kwargs) -> ArbProtocolEVM:
    client = ArbProtocolEVM(config=config, web3=web3, **kwargs)
    client.connect()
    return client


@pytest.fixture()
def api(fast_config, fake_web3) -> ArbProtocolEVM:
    return _client(fast_config, fake_web3, private_key=PRIVATE_KEY)


class TestConnection:
    def test_connect(self, api):
        assert api.is_connected()
        api.disconnect()
        assert not api.is_connected()

    def test_unreachable_node(self, fast_config):
        api = ArbProtocolEVM(config=fast_config, web3=FakeWeb3(connected=False))
        with pytest.raises(NetworkError):
            api.connect()
        assert not api.is_connected()

    def test_chain_mismatch(self, fast_config):
        api = ArbProtocolEVM(config=fast_config, web3=FakeWeb3(FakeEth(chain_id=42161)))
        with pytest.raises(ValidationError) as excinfo:
            api.connect()
        assert excinfo.value.field == "chain_id"
        assert not api.is_connected()

    def test_reads_need_connection(self, fast_config, fake_web3):
        api = ArbProtocolEVM(config=fast_config, web3=fake_web3)
        with pytest.raises(NetworkError):
            api.query_balance(RECIPIENT)

    def test_address_from_key(self, api, fast_config, fake_web3):
        assert api.address is not None
        assert ArbProtocolEVM(config=fast_config, web3=fake_web3).address is None

    def test_explorer_url(self, api):
        assert api.explorer_url("0xabc") == "https://explorer.test/tx/0xabc"


class TestReads:
    def test_balance_of_one_ether(self, api, fake_web3):
        fake_web3.eth.script("get_balance", 10**18)

        balance = api.query_balance(RECIPIENT)

        assert balance == 10**18
        assert isinstance(balance, int)
        assert wei_to_ether(balance) == 1.0

    def test_balance_defaults_to_configured_wallet(self, api, fake_web3):
        fake_web3.eth.script("get_balance", 5)
        assert api.query_balance() == 5

    def test_balance_rejects_bad_address(self, api, fake_web3):
        with pytest.raises(InvalidAddressError):
            api.query_balance("0x1234")
        assert "get_balance" not in fake_web3.eth.calls

    def test_malformed_balance(self, api, fake_web3):
        fake_web3.eth.script("get_balance", "lots")
        with pytest.raises(InvalidResponseError):
            api.query_balance(RECIPIENT)

    def test_transient_failures_are_retried(self, api, fake_web3):
        fake_web3.eth.script("get_balance", requests.ConnectionError("reset"), 7)
        assert api.query_balance(RECIPIENT) == 7
        assert fake_web3.eth.calls.count("get_balance") == 2

    def test_retries_are_bounded(self, api, fake_web3):
        fake_web3.eth.script("get_balance", requests.ConnectionError("reset"))
        with pytest.raises(NetworkError):
            api.query_balance(RECIPIENT)
        assert fake_web3.eth.calls.count("get_balance") == 3

    def test_rpc_error_is_not_retried(self, api, fake_web3):
        fake_web3.eth.script("get_balance", Web3RPCError("header not found"))
        with pytest.raises(InvalidResponseError):
            api.query_balance(RECIPIENT)
        assert fake_web3.eth.calls.count("get_balance") == 1

    def test_estimate_fee(self, api, fake_web3):
        fake_web3.eth.script("fee_history", {"baseFeePerGas": [8, 10], "reward": [[3]]})

        quote = api.estimate_fee()

        assert quote.max_fee_per_gas == 23
        assert quote.max_priority_fee_per_gas == 3
        assert api.estimate_total_cost(quote) == 23 * 21_000

    def test_legacy_fee(self, api, fake_web3):
        fake_web3.eth.script("gas_price", 100)
        assert api.get_gas_price() == 100
        assert api.estimate_transfer_fee() == 2_100_000

    def test_call_hello_web3(self, api, fake_web3):
        fake_web3.eth.contracts[HELLO_CONTRACT] = contract_stub("hello_web3", "Hello Web3!")
        assert api.call_hello_web3(HELLO_CONTRACT) == "Hello Web3!"

    def test_call_hello_web3_needs_address(self, api):
        with pytest.raises(ValidationError):
            api.call_hello_web3()

    def test_call_view_decodes_raw_call(self, api, fake_web3):
        fake_web3.eth.script("call", abi_encode(["string"], ["Hello Web3!"]))

        result = api.queries.call_view(HELLO_CONTRACT, "hello_web3()", [], [], ["string"])

        assert result == ("Hello Web3!",)

    def test_call_view_rejects_garbage(self, api, fake_web3):
        fake_web3.eth.script("call", b"\x01")
        with pytest.raises(InvalidResponseError):
            api.queries.call_view(HELLO_CONTRACT, "hello_web3()", [], [], ["string"])

    def test_unknown_contract_function(self, api, fake_web3):
        fake_web3.eth.contracts[HELLO_CONTRACT] = contract_stub("hello_web3", "hi")
        with pytest.raises(ValidationError):
            api.call_contract(HELLO_CONTRACT, HELLO_WEB3_ABI, "goodbye")

    def test_contract_revert(self, api, fake_web3):
        def revert():
            raise ContractLogicError("execution reverted")

        fake_web3.eth.contracts[HELLO_CONTRACT] = SimpleNamespace(
            functions=SimpleNamespace(hello_web3=lambda *args: SimpleNamespace(call=revert))
        )

        with pytest.raises(InvalidResponseError):
            api.call_hello_web3(HELLO_CONTRACT)


class TestTransfer:
    def test_confirmed(self, api, fake_web3):
        fake_web3.eth.script("get_transaction_receipt", "auto")

        result = api.transfer(RECIPIENT, 10**15)

        assert result.status is TransferStatus.CONFIRMED
        assert result.success
        assert result.receipt is not None
        assert result.transaction_hash == result.receipt.tx_hash
        assert len(fake_web3.eth.sent) == 1
        assert result.amount == 10**15

    def test_not_confirmed_keeps_hash(self, api, fake_web3):
        result = api.transfer(RECIPIENT, 10**15)

        assert result.status is TransferStatus.NOT_CONFIRMED
        assert result.pending
        assert result.transaction_hash is not None
        assert isinstance(result.error, NotConfirmedError)
        assert result.error.tx_hash == result.transaction_hash
        assert result.stage is PipelineStage.CONFIRM

    def test_insufficient_funds_is_rejected_once(self, api, fake_web3):
        reason = "insufficient funds for gas * price + value"
        fake_web3.eth.script(
            "send_raw_transaction",
            Web3RPCError(reason, rpc_response={"error": {"code": -32000, "message": reason}}),
        )

        result = api.transfer(RECIPIENT, 10**30)

        assert result.status is TransferStatus.REJECTED
        assert isinstance(result.error, RejectedByNodeError)
        assert result.error.reason == reason
        assert result.stage is PipelineStage.BROADCAST
        assert len(fake_web3.eth.sent) == 1
        assert "get_transaction_receipt" not in fake_web3.eth.calls

    def test_zero_amount_makes_no_node_calls(self, api, fake_web3):
        calls_after_connect = list(fake_web3.eth.calls)

        result = api.transfer(RECIPIENT, 0)

        assert result.status is TransferStatus.FAILED
        assert isinstance(result.error, InvalidAmountError)
        assert result.stage is PipelineStage.VALIDATE
        assert fake_web3.eth.calls == calls_after_connect

    def test_invalid_recipient(self, api, fake_web3):
        result = api.transfer("0xnot-an-address", 1)

        assert result.status is TransferStatus.FAILED
        assert isinstance(result.error, InvalidAddressError)
        assert fake_web3.eth.sent == []

    def test_without_credential(self, fast_config, fake_web3):
        api = _client(fast_config, fake_web3)

        result = api.transfer(RECIPIENT, 1)

        assert result.status is TransferStatus.FAILED
        assert isinstance(result.error, SigningError)
        assert fake_web3.eth.sent == []

    def test_disconnected_fails_without_node_calls(self, api, fake_web3):
        api.disconnect()
        calls_before = list(fake_web3.eth.calls)

        result = api.transfer(RECIPIENT, 1)

        assert result.status is TransferStatus.FAILED
        assert isinstance(result.error, NetworkError)
        assert result.stage is None
        assert fake_web3.eth.calls == calls_before
        assert fake_web3.eth.sent == []

    def test_broadcast_resend_after_transport_failure(self, api, fake_web3):
        fake_web3.eth.script(
            "send_raw_transaction", requests.ConnectionError("reset"), "accepted"
        )
        fake_web3.eth.script("get_transaction_receipt", "auto")

        result = api.transfer(RECIPIENT, 1)

        assert result.status is TransferStatus.CONFIRMED
        assert len(fake_web3.eth.sent) == 2
        assert fake_web3.eth.sent[0] == fake_web3.eth.sent[1]

    def test_already_known_on_resend_counts_as_broadcast(self, api, fake_web3):
        fake_web3.eth.script(
            "send_raw_transaction",
            requests.Timeout("slow"),
            Web3RPCError("already known"),
        )
        fake_web3.eth.script("get_transaction_receipt", "auto")

        result = api.transfer(RECIPIENT, 1)

        assert result.status is TransferStatus.CONFIRMED
        assert len(fake_web3.eth.sent) == 2

    def test_already_known_on_first_send_is_rejection(self, api, fake_web3):
        fake_web3.eth.script("send_raw_transaction", Web3RPCError("already known"))

        result = api.transfer(RECIPIENT, 1)

        assert result.status is TransferStatus.REJECTED

    def test_broadcast_gives_up(self, api, fake_web3):
        fake_web3.eth.script("send_raw_transaction", requests.ConnectionError("reset"))

        result = api.transfer(RECIPIENT, 1)

        assert result.status is TransferStatus.FAILED
        assert isinstance(result.error, NetworkError)
        assert result.stage is PipelineStage.BROADCAST
        assert result.transaction_hash is not None
        assert len(fake_web3.eth.sent) == 3

    def test_reverted_receipt(self, api, fake_web3):
        fake_web3.eth.script(
            "get_transaction_receipt", make_receipt("0x" + "aa" * 32, status=0)
        )

        result = api.transfer(RECIPIENT, 1)

        assert result.status is TransferStatus.CONFIRMED
        assert not result.success

    def test_quote_failure_reports_stage(self, api, fake_web3):
        fake_web3.eth.script("fee_history", {"baseFeePerGas": []})

        result = api.transfer(RECIPIENT, 1)

        assert result.status is TransferStatus.FAILED
        assert result.stage is PipelineStage.QUOTE
        assert fake_web3.eth.sent == []

    def test_nonce_is_pending_count(self, fast_config, fake_web3):
        events = []
        api = _client(fast_config, fake_web3, private_key=PRIVATE_KEY, observer=events.append)
        fake_web3.eth.script("get_transaction_count", 9)
        fake_web3.eth.script("get_transaction_receipt", "auto")

        api.transfer(RECIPIENT, 1)

        quoted = next(event for event in events if event.state == "quoted")
        assert quoted.details["nonce"] == 9

    def test_observer_sees_stages_in_order(self, fast_config, fake_web3):
        events = []
        api = _client(fast_config, fake_web3, private_key=PRIVATE_KEY, observer=events.append)
        fake_web3.eth.script("get_transaction_receipt", "auto")

        api.transfer(RECIPIENT, 1)

        assert [event.state for event in events] == [
            "validated",
            "quoted",
            "built",
            "signed",
            "broadcast",
            "confirmed",
        ]
        assert events[-1].tx_hash == events[-2].tx_hash

    def test_failing_observer_does_not_break_transfer(self, fast_config, fake_web3):
        def explode(event):
            raise RuntimeError("observer bug")

        api = _client(fast_config, fake_web3, private_key=PRIVATE_KEY, observer=explode)
        fake_web3.eth.script("get_transaction_receipt", "auto")

        assert api.transfer(RECIPIENT, 1).status is TransferStatus.CONFIRMED

    def test_transfer_ether(self, api, fake_web3):
        fake_web3.eth.script("get_transaction_receipt", "auto")

        result = api.transfer_ether(RECIPIENT, "0.0001")

        assert result.status is TransferStatus.CONFIRMED
        assert result.amount == 10**14

    def test_transfer_ether_rejects_negative(self, api, fake_web3):
        result = api.transfer_ether(RECIPIENT, -1)

        assert result.status is TransferStatus.FAILED
        assert result.stage is PipelineStage.VALIDATE
        assert fake_web3.eth.sent == []

    def test_explicit_chain_id_is_signed(self, api, fake_web3):
        fake_web3.eth.script("get_transaction_receipt", "auto")

        result = api.transfer(RECIPIENT, 1, chain_id=CHAIN_ID)

        assert result.success
        assert Account.recover_transaction(fake_web3.eth.sent[0]) == str(api.address)
