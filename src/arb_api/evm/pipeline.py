"""Transfer pipeline: quote, build, sign, broadcast, confirm.

States run strictly in order::

    Built -> Signed -> Broadcast -> Confirmed | NotConfirmed | Rejected

Validation happens before any node access. Signing errors and node
rejections are never retried. Broadcast is retried on transport failures
only with the identical payload: nodes key their pool by transaction hash,
so a resend either lands once or is answered with "already known", which is
treated as accepted.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from ..base import ReadOnlyNode, TransactionSubmitter
from ..constants import ALREADY_KNOWN_MARKERS
from ..exceptions import (
    ArbProtocolError,
    NetworkError,
    NotConfirmedError,
    RejectedByNodeError,
    SigningError,
)
from ..retry import calculate_delay
from ..types import Address, FeeQuote, PipelineStage, Receipt, SignedPayload, TransferEvent
from .config import EVMClientConfig
from .signer import (
    Credential,
    TransactionBuilder,
    validate_amount,
    validate_chain_id,
    validate_recipient,
)

logger = logging.getLogger(__name__)

Observer = Callable[[TransferEvent], None]


def is_already_known(reason: str | None) -> bool:
    if not reason:
        return False
    lowered = reason.lower()
    return any(marker in lowered for marker in ALREADY_KNOWN_MARKERS)


class TransferPipeline:
    """Run one value transfer from validation to receipt."""

    def __init__(
        self,
        queries: ReadOnlyNode,
        submitter: TransactionSubmitter,
        config: EVMClientConfig,
        *,
        builder: TransactionBuilder | None = None,
        observer: Observer | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._queries = queries
        self._submitter = submitter
        self._config = config
        self._builder = builder or TransactionBuilder(config.network.base_gas_limit)
        self._observer = observer
        self._sleep = sleep

    def execute(
        self,
        credential: Credential | None,
        recipient: Address | str,
        amount: int,
        chain_id: int,
        *,
        gas_limit: int | None = None,
        fee_quote: FeeQuote | None = None,
        poll_interval: float | None = None,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> Receipt:
        """Transfer ``amount`` wei and wait for the receipt.

        Raises ``NotConfirmedError`` (carrying the hash) when the wait ends
        without a receipt; every other failure carries its stage in
        ``details["stage"]``.
        """
        with self._stage(PipelineStage.VALIDATE):
            to = validate_recipient(recipient)
            value = validate_amount(amount)
            network_id = validate_chain_id(chain_id)
            if credential is None:
                raise SigningError("No signing credential configured for transfers")
            self._emit(PipelineStage.VALIDATE, "validated", recipient=str(to), amount=value)

        with self._stage(PipelineStage.QUOTE):
            quote = fee_quote or self._queries.get_fee_market_snapshot()
            nonce = self._queries.get_nonce(credential.address)
            self._emit(
                PipelineStage.QUOTE,
                "quoted",
                max_fee_per_gas=quote.max_fee_per_gas,
                max_priority_fee_per_gas=quote.max_priority_fee_per_gas,
                nonce=nonce,
            )

        with self._stage(PipelineStage.BUILD):
            request = self._builder.prepare(
                credential, to, value, quote, network_id, nonce=nonce, gas_limit=gas_limit
            )
            self._emit(PipelineStage.BUILD, "built", gas_limit=request.gas_limit)

        with self._stage(PipelineStage.SIGN):
            payload = self._builder.sign(request, credential)
            self._emit(PipelineStage.SIGN, "signed", tx_hash=payload.tx_hash)

        with self._stage(PipelineStage.BROADCAST, tx_hash=payload.tx_hash):
            tx_hash = self._broadcast(payload)
            self._emit(PipelineStage.BROADCAST, "broadcast", tx_hash=tx_hash)

        with self._stage(PipelineStage.CONFIRM, tx_hash=tx_hash):
            receipt = self._submitter.await_receipt(
                tx_hash,
                poll_interval=(
                    self._config.poll_interval if poll_interval is None else poll_interval
                ),
                timeout=self._config.receipt_timeout if timeout is None else timeout,
                cancel_event=cancel_event,
            )
            self._emit(
                PipelineStage.CONFIRM,
                "confirmed",
                tx_hash=tx_hash,
                block_number=receipt.block_number,
                status=receipt.status,
            )
        return receipt

    def _broadcast(self, payload: SignedPayload) -> str:
        retry = self._config.broadcast_retry
        attempts = max(1, retry.max_attempts)

        for attempt in range(attempts):
            try:
                return self._submitter.broadcast(payload)
            except RejectedByNodeError as exc:
                if attempt > 0 and is_already_known(exc.reason):
                    logger.info(
                        "Node already holds %s after a resend; treating as broadcast",
                        payload.tx_hash,
                    )
                    return payload.tx_hash
                raise
            except NetworkError as exc:
                if attempt >= attempts - 1:
                    raise
                delay = calculate_delay(attempt, retry)
                logger.warning(
                    "Broadcast of %s failed (attempt %s/%s), resending in %.2fs: %s",
                    payload.tx_hash,
                    attempt + 1,
                    attempts,
                    delay,
                    exc,
                )
                self._emit(
                    PipelineStage.BROADCAST,
                    "retrying",
                    tx_hash=payload.tx_hash,
                    attempt=attempt + 1,
                )
                self._sleep(delay)

        raise RuntimeError("Broadcast loop exited without a result")  # pragma: no cover

    @contextmanager
    def _stage(self, stage: PipelineStage, *, tx_hash: str | None = None) -> Iterator[None]:
        logger.debug("Stage transfer [%s]: start", stage.value)
        try:
            yield
        except NotConfirmedError as exc:
            exc.details.setdefault("stage", stage.value)
            self._emit(stage, "not_confirmed", tx_hash=exc.tx_hash, cancelled=exc.cancelled)
            raise
        except ArbProtocolError as exc:
            exc.details.setdefault("stage", stage.value)
            if tx_hash is not None:
                exc.details.setdefault("tx_hash", tx_hash)
            logger.debug("Stage transfer [%s]: transfer aborted (reason=%s)", stage.value, exc)
            self._emit(stage, "failed", tx_hash=tx_hash, error=str(exc))
            raise

    def _emit(
        self, stage: PipelineStage, state: str, tx_hash: str | None = None, **details: Any
    ) -> None:
        event = TransferEvent(stage=stage, state=state, tx_hash=tx_hash, details=details)
        logger.debug("Stage transfer [%s]: %s %s", stage.value, state, details or "")
        if self._observer is None:
            return
        try:
            self._observer(event)
        except Exception:
            logger.exception("Transfer observer failed on %s/%s", stage.value, state)
