"""Example: Quote transfer fees using eth_feeHistory and eth_gasPrice."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from arb_api import ArbProtocolEVM, wei_to_ether, wei_to_gwei
from arb_api.evm import network_config_from_env

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


def main() -> None:
    """Compare the EIP-1559 upper bound with the legacy gas price estimate."""

    network = network_config_from_env()
    client = ArbProtocolEVM(network)

    client.connect()
    try:
        quote = client.estimate_fee()
        logging.info(
            "maxFeePerGas=%s gwei maxPriorityFeePerGas=%s gwei (base fee %s wei)",
            wei_to_gwei(quote.max_fee_per_gas),
            wei_to_gwei(quote.max_priority_fee_per_gas),
            quote.base_fee_per_gas,
        )

        max_cost = client.estimate_total_cost(quote, network.base_gas_limit)
        logging.info("Worst-case fee for a plain transfer: %.8f ETH", wei_to_ether(max_cost))

        gas_price = client.get_gas_price()
        legacy_fee = client.estimate_transfer_fee()
        logging.info(
            "Legacy estimate: %s gwei x %s gas = %.8f ETH",
            wei_to_gwei(gas_price),
            network.base_gas_limit,
            wei_to_ether(legacy_fee),
        )
    finally:
        client.disconnect()


if __name__ == "__main__":
    main()
