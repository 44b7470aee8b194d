"""Example: Query an account balance on Arbitrum Sepolia."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from arb_api import ArbProtocolEVM, format_ether, wei_to_ether
from arb_api.evm import network_config_from_env

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def main() -> None:
    """Print the balance of WALLET_ADDRESS (or the preset wallet)."""

    network = network_config_from_env()
    client = ArbProtocolEVM(network)

    client.connect()
    try:
        balance = client.query_balance()
        logging.info("Balance of %s: %s wei", network.wallet_address, balance)
        logging.info(
            "Exact: %s ETH (display: %.6f ETH)", format_ether(balance), wei_to_ether(balance)
        )
    finally:
        client.disconnect()


if __name__ == "__main__":
    main()
