"""Type definitions and data models for the Arbitrum transfer client."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from eth_typing import ChecksumAddress, HexStr
from web3 import Web3

from .constants import (
    ADDRESS_LENGTH,
    ADDRESS_PREFIX,
    BASE_TRANSFER_GAS_LIMIT,
    EIP1559_TX_TYPE,
)
from .exceptions import ArbProtocolError, InvalidAddressError, InvalidResponseError
from .utils import normalise_tx_hash, serialise_receipt

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

Wei = int  # Amount in the chain's smallest unit
TxHash = str  # 0x-prefixed transaction hash


@dataclass(frozen=True)
class Address:
    """A 20-byte account identifier compared byte-wise."""

    raw: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.raw, bytes) or len(self.raw) != ADDRESS_LENGTH:
            raise InvalidAddressError(
                f"Address must be exactly {ADDRESS_LENGTH} bytes",
                field="address",
                value=self.raw,
            )

    @classmethod
    def parse(cls, text: Any) -> Address:
        """Parse ``0x`` + 40 hex digits in any letter case.

        Checksum casing is not enforced; every case variant of the same
        digits parses to the same address.
        """
        if not isinstance(text, str):
            raise InvalidAddressError("Address must be a string", field="address", value=text)

        if text[:2].lower() != ADDRESS_PREFIX:
            raise InvalidAddressError(
                "Address is missing the 0x prefix", field="address", value=text
            )

        digits = text[2:]
        if len(digits) != ADDRESS_LENGTH * 2:
            raise InvalidAddressError(
                f"Address must have {ADDRESS_LENGTH * 2} hex digits, got {len(digits)}",
                field="address",
                value=text,
            )
        if not _HEX_DIGITS.issuperset(digits):
            raise InvalidAddressError(
                "Address contains non-hex characters", field="address", value=text
            )

        return cls(bytes.fromhex(digits))

    @classmethod
    def coerce(cls, value: Address | str) -> Address:
        if isinstance(value, Address):
            return value
        return cls.parse(value)

    @property
    def hex(self) -> str:
        """Lowercase 0x-prefixed form."""
        return ADDRESS_PREFIX + self.raw.hex()

    @property
    def checksum(self) -> ChecksumAddress:
        return Web3.to_checksum_address(self.hex)

    def __str__(self) -> str:
        return self.checksum


@dataclass(frozen=True)
class FeeQuote:
    """EIP-1559 fee bounds, in wei per gas unit."""

    max_fee_per_gas: int
    max_priority_fee_per_gas: int
    base_fee_per_gas: int | None = None

    def __post_init__(self) -> None:
        for name in ("max_fee_per_gas", "max_priority_fee_per_gas"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise InvalidResponseError(
                    f"Fee quote field {name} must be a non-negative integer",
                    details={"field": name, "value": value},
                )
        if self.max_priority_fee_per_gas > self.max_fee_per_gas:
            raise InvalidResponseError(
                "Fee quote priority fee exceeds max fee",
                details={
                    "max_fee_per_gas": self.max_fee_per_gas,
                    "max_priority_fee_per_gas": self.max_priority_fee_per_gas,
                },
            )


@dataclass(frozen=True)
class TransactionRequest:
    """Everything needed to sign one EIP-1559 value transfer."""

    sender: Address
    recipient: Address
    value: int
    fee_quote: FeeQuote
    chain_id: int
    nonce: int
    gas_limit: int = BASE_TRANSFER_GAS_LIMIT
    data: bytes = b""

    def as_tx_dict(self) -> dict[str, Any]:
        """Return the typed transaction dict consumed by eth-account."""

        return {
            "type": EIP1559_TX_TYPE,
            "chainId": self.chain_id,
            "nonce": self.nonce,
            "to": self.recipient.checksum,
            "value": self.value,
            "gas": self.gas_limit,
            "maxFeePerGas": self.fee_quote.max_fee_per_gas,
            "maxPriorityFeePerGas": self.fee_quote.max_priority_fee_per_gas,
            "data": self.data,
            "accessList": [],
        }


@dataclass(frozen=True)
class SignedPayload:
    """Signed raw transaction bytes ready for eth_sendRawTransaction."""

    raw_transaction: bytes
    tx_hash: TxHash
    request: TransactionRequest

    @property
    def raw_hex(self) -> HexStr:
        return HexStr("0x" + self.raw_transaction.hex())


@dataclass(frozen=True)
class Receipt:
    """Terminal record of an included transaction."""

    tx_hash: TxHash
    status: int | None = None
    block_number: int | None = None
    gas_used: int | None = None
    effective_gas_price: int | None = None
    raw: Mapping[str, Any] | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_web3(cls, receipt: Mapping[str, Any], tx_hash: TxHash | None = None) -> Receipt:
        """Build a receipt from a web3 ``TxReceipt`` (or any mapping)."""

        raw_hash = receipt.get("transactionHash")
        resolved = normalise_tx_hash(raw_hash) if raw_hash is not None else tx_hash
        if resolved is None:
            raise InvalidResponseError(
                "Receipt has no transaction hash", details={"receipt": repr(receipt)}
            )

        try:
            return cls(
                tx_hash=resolved,
                status=_optional_int(receipt.get("status")),
                block_number=_optional_int(receipt.get("blockNumber")),
                gas_used=_optional_int(receipt.get("gasUsed")),
                effective_gas_price=_optional_int(receipt.get("effectiveGasPrice")),
                raw=serialise_receipt(dict(receipt)),
            )
        except (TypeError, ValueError) as exc:
            raise InvalidResponseError(
                "Receipt contains malformed fields",
                details={"tx_hash": resolved, "error": str(exc)},
            ) from exc


class TransferStatus(str, Enum):
    """Outcome of a transfer as seen by the caller."""

    CONFIRMED = "confirmed"
    NOT_CONFIRMED = "not_confirmed"
    REJECTED = "rejected"
    FAILED = "failed"


class PipelineStage(str, Enum):
    """Stages of the transfer pipeline, in execution order."""

    VALIDATE = "validate"
    QUOTE = "quote"
    BUILD = "build"
    SIGN = "sign"
    BROADCAST = "broadcast"
    CONFIRM = "confirm"


@dataclass(frozen=True)
class TransferEvent:
    """State transition reported to pipeline observers."""

    stage: PipelineStage
    state: str
    tx_hash: TxHash | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class TransferResult:
    """Result of a transfer call; never loses the hash once broadcast."""

    status: TransferStatus
    transaction_hash: TxHash | None = None
    receipt: Receipt | None = None
    error: ArbProtocolError | None = None
    stage: PipelineStage | None = None
    recipient: str | None = None
    amount: int | None = None

    @property
    def success(self) -> bool:
        return (
            self.status is TransferStatus.CONFIRMED
            and self.receipt is not None
            and self.receipt.succeeded
        )

    @property
    def pending(self) -> bool:
        """True when the transaction was broadcast but not seen on-chain yet."""
        return self.status is TransferStatus.NOT_CONFIRMED

    def raise_for_status(self) -> None:
        if self.error is not None:
            raise self.error


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, str):
        return int(value, 16) if value.lower().startswith("0x") else int(value)
    return int(value)
