"""Abstract interfaces for the Arbitrum transfer client.

Node access is split into two narrow capabilities so a read-only
implementation (or test double) cannot broadcast anything.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from .types import Address, FeeQuote, Receipt, SignedPayload, TransferResult


class ReadOnlyNode(ABC):
    """Queries that never change chain state."""

    @abstractmethod
    def get_balance(self, address: Address | str) -> int:
        pass

    @abstractmethod
    def get_fee_market_snapshot(self) -> FeeQuote:
        pass

    @abstractmethod
    def get_gas_price(self) -> int:
        pass

    @abstractmethod
    def get_nonce(self, address: Address | str) -> int:
        pass

    @abstractmethod
    def get_chain_id(self) -> int:
        pass

    @abstractmethod
    def call_contract(
        self,
        address: Address | str,
        abi: Sequence[dict[str, Any]],
        function_name: str,
        *args: Any,
    ) -> Any:
        pass


class TransactionSubmitter(ABC):
    """Broadcast of signed payloads and receipt lookup."""

    @abstractmethod
    def broadcast(self, payload: SignedPayload) -> str:
        pass

    @abstractmethod
    def get_receipt(self, tx_hash: str) -> Receipt | None:
        pass

    @abstractmethod
    def await_receipt(
        self,
        tx_hash: str,
        poll_interval: float,
        timeout: float,
        cancel_event: threading.Event | None = None,
    ) -> Receipt:
        pass


class ArbProtocolBase(ABC):
    """Caller-facing interface."""

    @abstractmethod
    def estimate_fee(self) -> FeeQuote:
        pass

    @abstractmethod
    def query_balance(self, address: Address | str) -> int:
        pass

    @abstractmethod
    def transfer(
        self,
        recipient: Address | str,
        amount: int,
        chain_id: int | None = None,
        *,
        gas_limit: int | None = None,
        poll_interval: float | None = None,
        timeout: float | None = None,
    ) -> TransferResult:
        pass

    @abstractmethod
    def connect(self) -> None:
        pass

    @abstractmethod
    def disconnect(self) -> None:
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        pass
