"""Arbitrum EVM client: balances, fee quotes, contract reads and transfers."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any

from web3 import Web3

from ..base import ArbProtocolBase, ReadOnlyNode, TransactionSubmitter
from ..exceptions import (
    ArbProtocolError,
    InvalidAmountError,
    NetworkError,
    NotConfirmedError,
    RejectedByNodeError,
    ValidationError,
)
from ..types import Address, FeeQuote, PipelineStage, TransferResult, TransferStatus
from ..utils import ether_to_wei
from .config import EVMClientConfig, NetworkConfig
from .connections import NodeConnection
from .contracts import call_hello_web3
from .fees import FeeEstimator, estimate_transfer_fee
from .pipeline import Observer, TransferPipeline
from .queries import NodeQueryClient
from .signer import Credential, TransactionBuilder
from .transactions import NodeTransactionClient

logger = logging.getLogger(__name__)


class ArbProtocolEVM(ArbProtocolBase):
    """Talk to one Arbitrum node on behalf of one signing credential.

    The credential is optional: without it every read works and
    ``transfer`` reports a ``SigningError``.
    """

    def __init__(
        self,
        network: NetworkConfig | None = None,
        *,
        private_key: str | None = None,
        credential: Credential | None = None,
        config: EVMClientConfig | None = None,
        observer: Observer | None = None,
        web3: Web3 | None = None,
    ) -> None:
        if config is None:
            config = EVMClientConfig(network=network or NetworkConfig.arbitrum_sepolia())
        elif network is not None:
            config = config.with_network(network)

        if credential is None and private_key is not None:
            credential = Credential.from_key(private_key)

        self._config = config
        self._credential = credential
        self._connection = NodeConnection(config, web3=web3)
        self._queries = NodeQueryClient(
            self._connection,
            retry=config.read_retry,
            fee_history_percentile=config.fee_history_percentile,
        )
        self._submitter = NodeTransactionClient(self._connection)
        self._fees = FeeEstimator(self._queries)
        self._pipeline = TransferPipeline(
            self._queries,
            self._submitter,
            config,
            builder=TransactionBuilder(config.network.base_gas_limit),
            observer=observer,
        )

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------
    def connect(self) -> None:
        try:
            self._connection.connect()
        except (ValidationError, NetworkError):
            self.disconnect()
            raise
        except Exception as exc:  # pragma: no cover
            self.disconnect()
            raise NetworkError(
                "Failed to initialize Arbitrum EVM connection",
                endpoint=self.rpc_url,
                details={"error": str(exc)},
            ) from exc

    def disconnect(self) -> None:
        self._connection.disconnect()

    def is_connected(self) -> bool:
        return self._connection.is_connected()

    def _ensure_connected(self) -> None:
        self._connection.ensure_connected()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def config(self) -> EVMClientConfig:
        return self._config

    @property
    def rpc_url(self) -> str:
        return self._config.rpc_url

    @property
    def address(self) -> Address | None:
        """Sender address derived from the credential, if one is held."""
        return self._credential.address if self._credential is not None else None

    @property
    def queries(self) -> ReadOnlyNode:
        return self._queries

    @property
    def submitter(self) -> TransactionSubmitter:
        return self._submitter

    def explorer_url(self, tx_hash: str) -> str | None:
        return self._config.network.explorer_tx_url(tx_hash)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def estimate_fee(self) -> FeeQuote:
        self._ensure_connected()
        return self._fees.estimate_fee()

    def estimate_total_cost(
        self, fee_quote: FeeQuote | None = None, gas_limit: int | None = None
    ) -> int:
        quote = fee_quote if fee_quote is not None else self.estimate_fee()
        limit = self._config.network.base_gas_limit if gas_limit is None else gas_limit
        return self._fees.estimate_total_cost(quote, limit)

    def get_gas_price(self) -> int:
        self._ensure_connected()
        return self._queries.get_gas_price()

    def estimate_transfer_fee(self, gas_limit: int | None = None) -> int:
        """Legacy fee estimate: current gas price times the gas limit."""
        limit = self._config.network.base_gas_limit if gas_limit is None else gas_limit
        return estimate_transfer_fee(self.get_gas_price(), limit)

    def query_balance(self, address: Address | str | None = None) -> int:
        target = address if address is not None else self._config.network.wallet_address
        if target is None:
            raise ValidationError("No address given and no wallet configured", field="address")
        self._ensure_connected()
        return self._queries.get_balance(target)

    def call_contract(
        self,
        address: Address | str,
        abi: Sequence[dict[str, Any]],
        function_name: str,
        *args: Any,
    ) -> Any:
        self._ensure_connected()
        return self._queries.call_contract(address, abi, function_name, *args)

    def call_hello_web3(self, contract_address: Address | str | None = None) -> str:
        target = (
            contract_address
            if contract_address is not None
            else self._config.network.hello_web3_contract
        )
        if target is None:
            raise ValidationError(
                "No HelloWeb3 contract address configured", field="hello_web3_contract"
            )
        self._ensure_connected()
        return call_hello_web3(self._queries, target)

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------
    def transfer(
        self,
        recipient: Address | str,
        amount: int,
        chain_id: int | None = None,
        *,
        gas_limit: int | None = None,
        poll_interval: float | None = None,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> TransferResult:
        """Send ``amount`` wei to ``recipient`` and wait for the receipt.

        Never raises for transfer outcomes. ``NOT_CONFIRMED`` means the
        transaction was broadcast but no receipt arrived in time; it may
        still confirm, so keep ``transaction_hash``.
        """
        network_id = self._config.chain_id if chain_id is None else chain_id
        context = {"recipient": str(recipient), "amount": amount}

        try:
            self._ensure_connected()
            receipt = self._pipeline.execute(
                self._credential,
                recipient,
                amount,
                network_id,
                gas_limit=gas_limit,
                poll_interval=poll_interval,
                timeout=timeout,
                cancel_event=cancel_event,
            )
        except NotConfirmedError as exc:
            return TransferResult(
                status=TransferStatus.NOT_CONFIRMED,
                transaction_hash=exc.tx_hash,
                error=exc,
                stage=PipelineStage.CONFIRM,
                **context,
            )
        except RejectedByNodeError as exc:
            logger.error("Transfer rejected by node: %s", exc.reason)
            return TransferResult(
                status=TransferStatus.REJECTED,
                transaction_hash=exc.tx_hash,
                error=exc,
                stage=PipelineStage.BROADCAST,
                **context,
            )
        except ArbProtocolError as exc:
            logger.error("Transfer failed at %s: %s", exc.stage, exc)
            return TransferResult(
                status=TransferStatus.FAILED,
                transaction_hash=exc.details.get("tx_hash"),
                error=exc,
                stage=PipelineStage(exc.stage) if exc.stage else None,
                **context,
            )
        except Exception as exc:
            logger.exception("Unexpected transfer failure")
            return TransferResult(
                status=TransferStatus.FAILED,
                error=ArbProtocolError(str(exc), details={"error_type": type(exc).__name__}),
                **context,
            )

        if not receipt.succeeded:
            logger.warning("Transaction %s was included but reverted", receipt.tx_hash)
        return TransferResult(
            status=TransferStatus.CONFIRMED,
            transaction_hash=receipt.tx_hash,
            receipt=receipt,
            stage=PipelineStage.CONFIRM,
            **context,
        )

    def transfer_ether(
        self,
        recipient: Address | str,
        ether: float | str,
        chain_id: int | None = None,
        **kwargs: Any,
    ) -> TransferResult:
        """Convert a display amount in ether (truncating to whole wei) and transfer it."""
        try:
            amount = ether_to_wei(ether)
        except InvalidAmountError as exc:
            exc.details.setdefault("stage", PipelineStage.VALIDATE.value)
            return TransferResult(
                status=TransferStatus.FAILED,
                error=exc,
                stage=PipelineStage.VALIDATE,
                recipient=str(recipient),
            )
        return self.transfer(recipient, amount, chain_id, **kwargs)
