"""Arbitrum transfer client.

Reads balances, quotes EIP-1559 fees, calls read-only contract methods, and
builds, signs and submits value transfers against a single JSON-RPC node.
"""

from .base import ArbProtocolBase, ReadOnlyNode, TransactionSubmitter
from .evm import (
    ArbProtocolEVM,
    Credential,
    EVMClientConfig,
    FeeEstimator,
    NetworkConfig,
    TransactionBuilder,
    TransferPipeline,
    estimate_total_cost,
    estimate_transfer_fee,
)
from .exceptions import (
    ArbProtocolError,
    InvalidAddressError,
    InvalidAmountError,
    InvalidResponseError,
    NetworkError,
    NotConfirmedError,
    RejectedByNodeError,
    SigningError,
    ValidationError,
)
from .retry import RetryConfig
from .types import (
    Address,
    FeeQuote,
    PipelineStage,
    Receipt,
    SignedPayload,
    TransactionRequest,
    TransferEvent,
    TransferResult,
    TransferStatus,
    Wei,
)
from .utils import (
    ether_to_wei,
    format_ether,
    format_units,
    gwei_to_wei,
    to_base_unit,
    to_display_unit,
    wei_to_ether,
    wei_to_gwei,
)

__version__ = "0.1.0"

__all__ = [
    # Clients and interfaces
    "ArbProtocolBase",
    "ArbProtocolEVM",
    "ReadOnlyNode",
    "TransactionSubmitter",
    "FeeEstimator",
    "TransactionBuilder",
    "TransferPipeline",
    "Credential",
    # Configuration
    "EVMClientConfig",
    "NetworkConfig",
    "RetryConfig",
    # Types
    "Address",
    "FeeQuote",
    "PipelineStage",
    "Receipt",
    "SignedPayload",
    "TransactionRequest",
    "TransferEvent",
    "TransferResult",
    "TransferStatus",
    "Wei",
    # Exceptions
    "ArbProtocolError",
    "InvalidAddressError",
    "InvalidAmountError",
    "InvalidResponseError",
    "NetworkError",
    "NotConfirmedError",
    "RejectedByNodeError",
    "SigningError",
    "ValidationError",
    # Utility functions
    "estimate_total_cost",
    "estimate_transfer_fee",
    "ether_to_wei",
    "format_ether",
    "format_units",
    "gwei_to_wei",
    "to_base_unit",
    "to_display_unit",
    "wei_to_ether",
    "wei_to_gwei",
]
