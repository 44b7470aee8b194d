"""Transaction assembly and signing.

Signing is a pure function of the request fields and the credential: no
node access happens here, so nonce and fee quote must already be known.
"""

from __future__ import annotations

import logging
from typing import Any, cast

from eth_account import Account
from eth_account.signers.local import LocalAccount

from ..constants import BASE_TRANSFER_GAS_LIMIT, MAX_UINT256
from ..exceptions import InvalidAmountError, SigningError, ValidationError
from ..types import Address, FeeQuote, SignedPayload, TransactionRequest
from ..utils import normalise_tx_hash

logger = logging.getLogger(__name__)


class Credential:
    """A private signing key. Its repr only ever shows the derived address."""

    __slots__ = ("_account",)

    def __init__(self, account: LocalAccount) -> None:
        self._account = account

    @classmethod
    def from_key(cls, private_key: str | bytes) -> Credential:
        if isinstance(private_key, str):
            private_key = private_key.strip()
            if private_key and not private_key.lower().startswith("0x"):
                private_key = "0x" + private_key
        if not private_key:
            raise SigningError("Private key is empty", details={"field": "private_key"})

        try:
            account = cast(LocalAccount, Account.from_key(private_key))
        except Exception as exc:
            # The message never includes the key material itself
            raise SigningError(
                "Failed to derive signer account from provided private key",
                details={"field": "private_key", "error_type": type(exc).__name__},
            ) from None

        return cls(account)

    @property
    def address(self) -> Address:
        return Address.parse(self._account.address)

    def sign_transaction(self, tx: dict[str, Any]) -> Any:
        return self._account.sign_transaction(tx)

    def __repr__(self) -> str:
        return f"Credential(address={self.address})"


def validate_recipient(recipient: Address | str) -> Address:
    return Address.coerce(recipient)


def validate_amount(amount: int) -> int:
    """Transfers move a strictly positive whole number of wei."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(
            "Transfer amount must be an integer number of wei", field="amount", value=amount
        )
    if amount <= 0:
        raise InvalidAmountError("Transfer amount must be positive", field="amount", value=amount)
    if amount > MAX_UINT256:
        raise InvalidAmountError("Amount exceeds uint256 maximum", field="amount", value=amount)
    return amount


def validate_chain_id(chain_id: int | None) -> int:
    if isinstance(chain_id, bool) or not isinstance(chain_id, int) or chain_id <= 0:
        raise SigningError(
            "A positive chain ID is required to bind the signature to one network",
            details={"field": "chain_id", "value": chain_id},
        )
    return chain_id


class TransactionBuilder:
    """Assemble and sign EIP-1559 value transfers."""

    def __init__(self, default_gas_limit: int = BASE_TRANSFER_GAS_LIMIT) -> None:
        self._default_gas_limit = default_gas_limit

    def prepare(
        self,
        credential: Credential,
        recipient: Address | str,
        amount: int,
        fee_quote: FeeQuote,
        chain_id: int,
        *,
        nonce: int,
        gas_limit: int | None = None,
    ) -> TransactionRequest:
        to = validate_recipient(recipient)
        value = validate_amount(amount)
        network_id = validate_chain_id(chain_id)

        if isinstance(nonce, bool) or not isinstance(nonce, int) or nonce < 0:
            raise ValidationError(
                "Nonce must be a non-negative integer", field="nonce", value=nonce
            )

        limit = self._default_gas_limit if gas_limit is None else gas_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValidationError(
                "Gas limit must be a positive integer", field="gas_limit", value=limit
            )

        return TransactionRequest(
            sender=credential.address,
            recipient=to,
            value=value,
            fee_quote=fee_quote,
            chain_id=network_id,
            nonce=nonce,
            gas_limit=limit,
        )

    def sign(self, request: TransactionRequest, credential: Credential) -> SignedPayload:
        validate_chain_id(request.chain_id)
        if credential.address != request.sender:
            raise SigningError(
                "Credential does not control the request sender",
                details={"sender": str(request.sender), "credential": str(credential.address)},
            )

        try:
            signed = credential.sign_transaction(request.as_tx_dict())
        except Exception as exc:
            raise SigningError(
                "Failed to sign transaction",
                details={"error": str(exc), "sender": str(request.sender)},
            ) from exc

        payload = SignedPayload(
            raw_transaction=bytes(signed.raw_transaction),
            tx_hash=normalise_tx_hash(bytes(signed.hash)),
            request=request,
        )
        logger.debug(
            "Signed transfer %s -> %s value=%s nonce=%s chain_id=%s hash=%s",
            request.sender,
            request.recipient,
            request.value,
            request.nonce,
            request.chain_id,
            payload.tx_hash,
        )
        return payload

    def build(
        self,
        credential: Credential,
        recipient: Address | str,
        amount: int,
        fee_quote: FeeQuote,
        chain_id: int,
        *,
        nonce: int,
        gas_limit: int | None = None,
    ) -> SignedPayload:
        request = self.prepare(
            credential,
            recipient,
            amount,
            fee_quote,
            chain_id,
            nonce=nonce,
            gas_limit=gas_limit,
        )
        return self.sign(request, credential)
