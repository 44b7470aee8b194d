"""Fee estimation from a single live fee-market snapshot."""

from __future__ import annotations

from ..base import ReadOnlyNode
from ..constants import BASE_TRANSFER_GAS_LIMIT
from ..exceptions import ValidationError
from ..types import FeeQuote


def _check_gas_limit(gas_limit: int) -> None:
    if isinstance(gas_limit, bool) or not isinstance(gas_limit, int):
        raise ValidationError("Gas limit must be an integer", field="gas_limit", value=gas_limit)
    if gas_limit < 0:
        raise ValidationError("Gas limit cannot be negative", field="gas_limit", value=gas_limit)


def estimate_total_cost(fee_quote: FeeQuote, gas_limit: int) -> int:
    """Upper bound on the fee paid, in wei: ``max_fee_per_gas * gas_limit``."""
    _check_gas_limit(gas_limit)
    return fee_quote.max_fee_per_gas * gas_limit


def estimate_transfer_fee(gas_price: int, gas_limit: int) -> int:
    """Legacy (pre EIP-1559) fee: ``gas_price * gas_limit``."""
    _check_gas_limit(gas_limit)
    if isinstance(gas_price, bool) or not isinstance(gas_price, int) or gas_price < 0:
        raise ValidationError(
            "Gas price must be a non-negative integer", field="gas_price", value=gas_price
        )
    return gas_price * gas_limit


class FeeEstimator:
    """Quote fees from the node. Quotes are never cached or smoothed."""

    def __init__(self, node: ReadOnlyNode) -> None:
        self._node = node

    def estimate_fee(self) -> FeeQuote:
        return self._node.get_fee_market_snapshot()

    def estimate_total_cost(self, fee_quote: FeeQuote, gas_limit: int) -> int:
        return estimate_total_cost(fee_quote, gas_limit)

    def estimate_legacy_fee(self, gas_limit: int = BASE_TRANSFER_GAS_LIMIT) -> tuple[int, int]:
        """Return ``(gas_price, total_fee)`` using ``eth_gasPrice``."""
        gas_price = self._node.get_gas_price()
        return gas_price, estimate_transfer_fee(gas_price, gas_limit)
