"""Example: Send a small EIP-1559 value transfer and wait for the receipt."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from arb_api import ArbProtocolEVM, TransferEvent, format_ether
from arb_api.evm import network_config_from_env, private_key_from_env

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

AMOUNT_ETHER = "0.0001"


def log_event(event: TransferEvent) -> None:
    logging.info("[%s] %s %s", event.stage.value, event.state, event.tx_hash or "")


def main() -> None:
    """Transfer AMOUNT_ETHER from PRIVATE_KEY's account to TARGET_ADDRESS."""

    network = network_config_from_env()
    if not network.target_address:
        raise ValueError("TARGET_ADDRESS not found in environment variables")

    client = ArbProtocolEVM(network, private_key=private_key_from_env(), observer=log_event)

    client.connect()
    try:
        before = client.query_balance(client.address)
        logging.info("Sender %s holds %s ETH", client.address, format_ether(before))

        result = client.transfer_ether(network.target_address, AMOUNT_ETHER)

        if result.success:
            logging.info("Transfer confirmed: %s", client.explorer_url(result.transaction_hash))
        elif result.pending:
            # Still broadcast; may confirm later
            logging.warning(
                "No receipt yet for %s; check %s later",
                result.transaction_hash,
                client.explorer_url(result.transaction_hash),
            )
        else:
            logging.error("Transfer %s at %s: %s", result.status.value, result.stage, result.error)
    finally:
        client.disconnect()


if __name__ == "__main__":
    main()
