"""EVM node access for the Arbitrum transfer client."""

from .client import ArbProtocolEVM
from .config import EVMClientConfig, NetworkConfig, network_config_from_env, private_key_from_env
from .connections import NodeConnection
from .fees import FeeEstimator, estimate_total_cost, estimate_transfer_fee
from .pipeline import TransferPipeline
from .queries import NodeQueryClient
from .signer import Credential, TransactionBuilder
from .transactions import NodeTransactionClient

__all__ = [
    "ArbProtocolEVM",
    "Credential",
    "EVMClientConfig",
    "FeeEstimator",
    "NetworkConfig",
    "NodeConnection",
    "NodeQueryClient",
    "NodeTransactionClient",
    "TransactionBuilder",
    "TransferPipeline",
    "estimate_total_cost",
    "estimate_transfer_fee",
    "network_config_from_env",
    "private_key_from_env",
]
