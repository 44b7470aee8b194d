"""Configuration containers for the Arbitrum EVM client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from dotenv import load_dotenv

from ..constants import BASE_TRANSFER_GAS_LIMIT, ChainID
from ..exceptions import ValidationError
from ..retry import NO_RETRY, RetryConfig

DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_RECEIPT_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_FEE_HISTORY_PERCENTILE = 50.0

ARBITRUM_SEPOLIA_RPC = "https://sepolia-rollup.arbitrum.io/rpc"
ARBITRUM_ONE_RPC = "https://arb1.arbitrum.io/rpc"


@dataclass(frozen=True)
class NetworkConfig:
    """A single node endpoint and the network it serves."""

    name: str
    rpc_url: str
    chain_id: int
    base_gas_limit: int = BASE_TRANSFER_GAS_LIMIT
    wallet_address: str | None = None
    hello_web3_contract: str | None = None
    target_address: str | None = None
    explorer_url: str | None = None

    @classmethod
    def arbitrum_sepolia(cls) -> NetworkConfig:
        return cls(
            name="Arbitrum Sepolia",
            rpc_url=ARBITRUM_SEPOLIA_RPC,
            chain_id=int(ChainID.ARBITRUM_SEPOLIA),
            wallet_address="0x7531d89aeffAc1B42DfF2e4B0Af1862d89041C35",
            hello_web3_contract="0x3f1f78ED98Cd180794f1346F5bD379D5Ec47DE90",
            explorer_url="https://sepolia.arbiscan.io",
        )

    @classmethod
    def arbitrum_mainnet(cls) -> NetworkConfig:
        # Mainnet wallet and contract addresses must be supplied by the user
        return cls(
            name="Arbitrum One",
            rpc_url=ARBITRUM_ONE_RPC,
            chain_id=int(ChainID.ARBITRUM_ONE),
            explorer_url="https://arbiscan.io",
        )

    @classmethod
    def custom(
        cls,
        name: str,
        rpc_url: str,
        chain_id: int,
        base_gas_limit: int = BASE_TRANSFER_GAS_LIMIT,
        wallet_address: str | None = None,
        hello_web3_contract: str | None = None,
        target_address: str | None = None,
        explorer_url: str | None = None,
    ) -> NetworkConfig:
        if isinstance(chain_id, bool) or not isinstance(chain_id, int) or chain_id <= 0:
            raise ValidationError(
                "Chain ID must be a positive integer", field="chain_id", value=chain_id
            )
        if not rpc_url:
            raise ValidationError("RPC URL is required", field="rpc_url", value=rpc_url)
        return cls(
            name=name,
            rpc_url=rpc_url,
            chain_id=chain_id,
            base_gas_limit=base_gas_limit,
            wallet_address=wallet_address,
            hello_web3_contract=hello_web3_contract,
            target_address=target_address,
            explorer_url=explorer_url,
        )

    def explorer_tx_url(self, tx_hash: str) -> str | None:
        if self.explorer_url is None:
            return None
        return f"{self.explorer_url.rstrip('/')}/tx/{tx_hash}"


@dataclass(frozen=True)
class EVMClientConfig:
    """Aggregated configuration used to construct the EVM client."""

    network: NetworkConfig = field(default_factory=NetworkConfig.arbitrum_sepolia)
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    fee_history_percentile: float = DEFAULT_FEE_HISTORY_PERCENTILE
    read_retry: RetryConfig = RetryConfig()
    broadcast_retry: RetryConfig = NO_RETRY

    @property
    def rpc_url(self) -> str:
        return self.network.rpc_url

    @property
    def chain_id(self) -> int:
        return self.network.chain_id

    def with_network(self, network: NetworkConfig) -> EVMClientConfig:
        return replace(self, network=network)


def _optional_env(name: str) -> str | None:
    value = os.getenv(name)
    return value.strip() if value and value.strip() else None


def network_config_from_env(
    env_path: Path | str | None = None,
    *,
    default: NetworkConfig | None = None,
) -> NetworkConfig:
    """Overlay ``ARB_RPC_URL``, ``CHAIN_ID`` and address variables on a preset."""

    load_dotenv(env_path)
    base = default or NetworkConfig.arbitrum_sepolia()

    chain_id = base.chain_id
    raw_chain_id = _optional_env("CHAIN_ID")
    if raw_chain_id is not None:
        try:
            chain_id = int(raw_chain_id, 0)
        except ValueError as exc:
            raise ValidationError(
                "CHAIN_ID must be an integer", field="CHAIN_ID", value=raw_chain_id
            ) from exc

    return NetworkConfig.custom(
        name=_optional_env("NETWORK_NAME") or base.name,
        rpc_url=_optional_env("ARB_RPC_URL") or base.rpc_url,
        chain_id=chain_id,
        base_gas_limit=base.base_gas_limit,
        wallet_address=_optional_env("WALLET_ADDRESS") or base.wallet_address,
        hello_web3_contract=_optional_env("HELLO_WEB3_CONTRACT") or base.hello_web3_contract,
        target_address=_optional_env("TARGET_ADDRESS") or base.target_address,
        explorer_url=base.explorer_url,
    )


def private_key_from_env(env_path: Path | str | None = None, name: str = "PRIVATE_KEY") -> str:
    """Read the signing key from the environment or a ``.env`` file."""

    load_dotenv(env_path)
    value = _optional_env(name)
    if value is None:
        raise ValidationError(f"{name} not found in environment variables", field=name)
    return value
