"""Read-only node queries: balances, fee market, nonces and contract calls."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from ..base import ReadOnlyNode
from ..constants import BASE_FEE_MULTIPLIER
from ..exceptions import InvalidResponseError, ValidationError
from ..retry import RetryConfig, retry_call
from ..types import Address, FeeQuote
from ..utils import parse_quantity
from .config import DEFAULT_FEE_HISTORY_PERCENTILE
from .connections import NodeConnection

T = TypeVar("T")

logger = logging.getLogger(__name__)


def fee_quote_from_history(history: Mapping[str, Any]) -> FeeQuote:
    """Derive a fee quote from a one-block ``eth_feeHistory`` reply.

    The last ``baseFeePerGas`` entry is the next block's base fee; the
    single reward percentile is the priority fee. ``max_fee_per_gas``
    leaves room for the base fee to double before inclusion.
    """
    try:
        base_fees = history["baseFeePerGas"]
        rewards = history.get("reward") or []
        next_base_fee = parse_quantity(base_fees[-1], field="baseFeePerGas")
        priority_fee = (
            parse_quantity(rewards[-1][0], field="reward") if rewards and rewards[-1] else 0
        )
    except (KeyError, IndexError, TypeError, AttributeError) as exc:
        raise InvalidResponseError(
            "Malformed eth_feeHistory response",
            details={"error": str(exc), "history": repr(history)},
        ) from exc

    max_fee = next_base_fee * BASE_FEE_MULTIPLIER + priority_fee
    return FeeQuote(
        max_fee_per_gas=max_fee,
        max_priority_fee_per_gas=priority_fee,
        base_fee_per_gas=next_base_fee,
    )


class NodeQueryClient(ReadOnlyNode):
    """Read-only view of a node; retries transient transport failures."""

    def __init__(
        self,
        connection: NodeConnection,
        *,
        retry: RetryConfig | None = None,
        fee_history_percentile: float = DEFAULT_FEE_HISTORY_PERCENTILE,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._connection = connection
        self._retry = retry or connection.config.read_retry
        self._percentile = fee_history_percentile
        self._sleep = sleep

    def get_balance(self, address: Address | str) -> int:
        account = Address.coerce(address)
        raw = self._read("eth_getBalance", lambda w3: w3.eth.get_balance(account.checksum))
        balance = parse_quantity(raw, field="balance")
        logger.debug("Balance of %s: %s wei", account, balance)
        return balance

    def get_fee_market_snapshot(self) -> FeeQuote:
        history = self._read(
            "eth_feeHistory",
            lambda w3: w3.eth.fee_history(1, "latest", [self._percentile]),
        )
        if not isinstance(history, Mapping):
            raise InvalidResponseError(
                "Malformed eth_feeHistory response", details={"history": repr(history)}
            )
        quote = fee_quote_from_history(history)
        logger.debug(
            "Fee snapshot: max_fee=%s priority=%s base=%s",
            quote.max_fee_per_gas,
            quote.max_priority_fee_per_gas,
            quote.base_fee_per_gas,
        )
        return quote

    def get_gas_price(self) -> int:
        raw = self._read("eth_gasPrice", lambda w3: w3.eth.gas_price)
        return parse_quantity(raw, field="gasPrice")

    def get_nonce(self, address: Address | str) -> int:
        account = Address.coerce(address)
        raw = self._read(
            "eth_getTransactionCount",
            lambda w3: w3.eth.get_transaction_count(account.checksum, "pending"),
        )
        return parse_quantity(raw, field="nonce")

    def get_chain_id(self) -> int:
        raw = self._read("eth_chainId", lambda w3: w3.eth.chain_id)
        return parse_quantity(raw, field="chainId")

    def call_contract(
        self,
        address: Address | str,
        abi: Sequence[dict[str, Any]],
        function_name: str,
        *args: Any,
    ) -> Any:
        target = Address.coerce(address)

        def _call(w3: Web3) -> Any:
            contract = w3.eth.contract(address=target.checksum, abi=list(abi))
            try:
                contract_function = getattr(contract.functions, function_name)
            except AttributeError as exc:
                raise ValidationError(
                    f"Function {function_name} not found in ABI",
                    field="function_name",
                    value=function_name,
                ) from exc
            try:
                return contract_function(*args).call()
            except (ContractLogicError, BadFunctionCallOutput) as exc:
                raise InvalidResponseError(
                    f"Contract call {function_name} failed",
                    endpoint=self._connection.endpoint,
                    details={"contract": target.checksum, "error": str(exc)},
                ) from exc

        return self._read(f"eth_call:{function_name}", _call)

    def call_view(
        self,
        address: Address | str,
        signature: str,
        input_types: Sequence[str],
        args: Sequence[Any],
        output_types: Sequence[str],
    ) -> tuple[Any, ...]:
        """Raw ``eth_call`` using an explicit ``name(types)`` signature."""

        target = Address.coerce(address)
        selector = bytes(Web3.keccak(text=signature)[:4])
        call_data = selector + (abi_encode(list(input_types), list(args)) if input_types else b"")

        result = self._read(
            f"eth_call:{signature}",
            lambda w3: w3.eth.call({"to": target.checksum, "data": call_data}),
        )

        if not output_types:
            return tuple()

        try:
            decoded = abi_decode(list(output_types), bytes(result))
        except Exception as exc:
            raise InvalidResponseError(
                f"Failed to decode {signature} response",
                endpoint=self._connection.endpoint,
                details={"contract": target.checksum, "error": str(exc)},
            ) from exc

        return tuple(decoded)

    def _read(self, method: str, fn: Callable[[Web3], T]) -> T:
        return retry_call(
            lambda: self._connection.request(method, fn),
            self._retry,
            description=method,
            sleep=self._sleep,
        )
