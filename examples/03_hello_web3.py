"""Example: Call the read-only HelloWeb3 contract."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from arb_api import ArbProtocolEVM
from arb_api.evm import network_config_from_env

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def main() -> None:
    network = network_config_from_env()
    if not network.hello_web3_contract:
        raise ValueError("HELLO_WEB3_CONTRACT not found in environment variables")

    client = ArbProtocolEVM(network)
    client.connect()
    try:
        greeting = client.call_hello_web3()
        logging.info("HelloWeb3 at %s says: %s", network.hello_web3_contract, greeting)
    finally:
        client.disconnect()


if __name__ == "__main__":
    main()
