"""Constants shared by the Arbitrum transfer client."""

from enum import IntEnum

# Unit scales, expressed as decimal places below one ether
GWEI_DECIMALS = 9
ETHER_DECIMALS = 18

WEI_PER_GWEI = 10**GWEI_DECIMALS
WEI_PER_ETHER = 10**ETHER_DECIMALS

# uint256 bounds what the chain can represent at all
MAX_DECIMALS = 77
MAX_UINT256 = 2**256 - 1

# Largest integer a float holds exactly; display conversions above it are lossy
FLOAT_SAFE_INTEGER = 2**53

ADDRESS_LENGTH = 20
ADDRESS_PREFIX = "0x"

# Plain ETH transfer with empty calldata
BASE_TRANSFER_GAS_LIMIT = 21_000

# EIP-1559 typed transaction envelope
EIP1559_TX_TYPE = 2

# Multiplier applied to the next block's base fee when quoting max_fee_per_gas
BASE_FEE_MULTIPLIER = 2


class ChainID(IntEnum):
    """Known network identifiers."""

    ARBITRUM_ONE = 42161
    ARBITRUM_SEPOLIA = 421614


# Fragments of node error messages meaning the payload is already in the pool
ALREADY_KNOWN_MARKERS = (
    "already known",
    "known transaction",
    "already imported",
    "alreadyknown",
)
