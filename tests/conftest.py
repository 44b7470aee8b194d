from __future__ import annotations

import pytest

from arb_api.evm.config import EVMClientConfig, NetworkConfig
from arb_api.retry import RetryConfig

from fakes import CHAIN_ID, RECIPIENT, FakeWeb3


@pytest.fixture()
def network() -> NetworkConfig:
    return NetworkConfig.custom(
        name="Test Network",
        rpc_url="http://localhost:8545",
        chain_id=CHAIN_ID,
        wallet_address=RECIPIENT,
        explorer_url="https://explorer.test",
    )


@pytest.fixture()
def fast_config(network: NetworkConfig) -> EVMClientConfig:
    no_wait = RetryConfig(max_attempts=3, base_delay=0.0, jitter=False)
    return EVMClientConfig(
        network=network,
        receipt_timeout=0.0,
        poll_interval=0.0,
        read_retry=no_wait,
        broadcast_retry=no_wait,
    )


@pytest.fixture()
def fake_web3() -> FakeWeb3:
    return FakeWeb3()
