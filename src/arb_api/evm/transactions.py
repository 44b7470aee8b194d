"""Transaction broadcast and receipt polling for the Arbitrum EVM client."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from web3 import Web3
from web3.exceptions import TransactionNotFound, Web3RPCError

from ..base import TransactionSubmitter
from ..exceptions import (
    InvalidResponseError,
    NetworkError,
    NotConfirmedError,
    RejectedByNodeError,
    ValidationError,
)
from ..types import PipelineStage, Receipt, SignedPayload
from ..utils import normalise_tx_hash
from .connections import TRANSPORT_ERRORS, NodeConnection, rpc_error_reason, transport_status_code

logger = logging.getLogger(__name__)


class NodeTransactionClient(TransactionSubmitter):
    """Encapsulate raw transaction submission and receipt handling."""

    def __init__(
        self,
        connection: NodeConnection,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        wait_for: Callable[[threading.Event, float], bool] = threading.Event.wait,
    ) -> None:
        self._connection = connection
        self._clock = clock
        self._sleep = sleep
        # Blocks until the event is set or the timeout passes; True when set
        self._wait_for = wait_for

    def broadcast(self, payload: SignedPayload) -> str:
        """Send a signed payload once. Retry policy belongs to the caller."""

        self._connection.ensure_connected()
        web3 = self._connection.web3
        logger.info("Broadcasting transaction %s", payload.tx_hash)

        try:
            node_hash = web3.eth.send_raw_transaction(payload.raw_transaction)
        except TRANSPORT_ERRORS as exc:
            raise NetworkError(
                "Transport failure while broadcasting transaction",
                endpoint=self._connection.endpoint,
                status_code=transport_status_code(exc),
                details={
                    "stage": PipelineStage.BROADCAST.value,
                    "tx_hash": payload.tx_hash,
                    "error": str(exc),
                },
            ) from exc
        except Web3RPCError as exc:
            reason = rpc_error_reason(exc)
            raise RejectedByNodeError(
                f"Node rejected transaction: {reason}",
                reason=reason,
                tx_hash=payload.tx_hash,
                details={
                    "stage": PipelineStage.BROADCAST.value,
                    "endpoint": self._connection.endpoint,
                },
            ) from exc
        except (ValueError, TypeError) as exc:
            # The payload may have been accepted; keep the local hash for follow-up
            raise InvalidResponseError(
                "Node returned a malformed result for eth_sendRawTransaction",
                endpoint=self._connection.endpoint,
                details={
                    "stage": PipelineStage.BROADCAST.value,
                    "tx_hash": payload.tx_hash,
                    "error": str(exc),
                },
            ) from exc

        tx_hash = normalise_tx_hash(node_hash)
        if tx_hash != payload.tx_hash:
            logger.warning(
                "Node reported hash %s for locally signed %s", tx_hash, payload.tx_hash
            )
        logger.info("Transaction sent hash=%s", tx_hash)
        return tx_hash

    def get_receipt(self, tx_hash: str) -> Receipt | None:
        """Single receipt lookup; ``None`` while the transaction is pending."""

        def _lookup(w3: Web3) -> Any:
            try:
                return w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                return None

        raw = self._connection.request("eth_getTransactionReceipt", _lookup)
        if raw is None:
            return None
        return Receipt.from_web3(raw, tx_hash=tx_hash)

    def await_receipt(
        self,
        tx_hash: str,
        poll_interval: float,
        timeout: float,
        cancel_event: threading.Event | None = None,
    ) -> Receipt:
        """Poll until a receipt appears, ``timeout`` elapses or the wait is cancelled.

        Cancelling or timing out only stops the wait; the transaction stays
        broadcast and may still be included.
        """
        if poll_interval < 0:
            raise ValidationError(
                "Poll interval cannot be negative", field="poll_interval", value=poll_interval
            )
        if timeout < 0:
            raise ValidationError("Timeout cannot be negative", field="timeout", value=timeout)

        deadline = self._clock() + timeout
        attempt = 0
        logger.debug(
            "Stage transfer [confirm]: poll receipt (tx=%s, timeout=%s, interval=%s)",
            tx_hash,
            timeout,
            poll_interval,
        )

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise self._not_confirmed(tx_hash, timeout, cancelled=True)

            attempt += 1
            try:
                receipt = self.get_receipt(tx_hash)
            except NetworkError as exc:
                logger.debug("Receipt poll error (attempt %s) for %s: %s", attempt, tx_hash, exc)
                receipt = None

            if receipt is not None:
                logger.info(
                    "Transaction confirmed hash=%s block=%s status=%s",
                    tx_hash,
                    receipt.block_number,
                    receipt.status,
                )
                return receipt

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise self._not_confirmed(tx_hash, timeout, cancelled=False)

            wait = min(poll_interval, remaining)
            if cancel_event is not None:
                if self._wait_for(cancel_event, wait):
                    raise self._not_confirmed(tx_hash, timeout, cancelled=True)
            else:
                self._sleep(wait)

    def _not_confirmed(self, tx_hash: str, timeout: float, *, cancelled: bool) -> NotConfirmedError:
        reason = "cancelled" if cancelled else f"not confirmed within {timeout}s"
        logger.info("Receipt wait for %s %s; transaction may still confirm", tx_hash, reason)
        return NotConfirmedError(
            f"Transaction {tx_hash} {reason}",
            tx_hash=tx_hash,
            timeout=timeout,
            cancelled=cancelled,
            details={"stage": PipelineStage.CONFIRM.value},
        )
