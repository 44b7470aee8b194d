"""Unit conversions and small helpers for the Arbitrum transfer client.

Amounts are always ``int`` wei. Float conversions exist only for human
display: a float carries 53 bits of mantissa, so any amount above
``FLOAT_SAFE_INTEGER`` wei (about 0.009 ether) may be rounded when shown.
Never feed a display value back into signing or fee arithmetic.
"""

from collections.abc import Mapping, Sequence
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import Any

from hexbytes import HexBytes

from .constants import ETHER_DECIMALS, GWEI_DECIMALS, MAX_DECIMALS, MAX_UINT256
from .exceptions import InvalidAmountError, InvalidResponseError, ValidationError

# Enough digits for any uint256 scaled by 10**77
_PRECISION = 160


def _check_decimals(decimals: int) -> None:
    if isinstance(decimals, bool) or not isinstance(decimals, int):
        raise ValidationError("Decimals must be an integer", field="decimals", value=decimals)
    if not 0 <= decimals <= MAX_DECIMALS:
        raise ValidationError(
            f"Decimals must be between 0 and {MAX_DECIMALS}", field="decimals", value=decimals
        )


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(
            "Base-unit amount must be an integer", field="amount", value=amount
        )
    if amount < 0:
        raise InvalidAmountError("Amount cannot be negative", field="amount", value=amount)


def to_display_unit(amount: int, decimals: int) -> float:
    """Scale a base-unit amount down for display. Lossy above 2**53."""
    _check_amount(amount)
    _check_decimals(decimals)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return float(Decimal(amount).scaleb(-decimals))


def to_base_unit(display: float | Decimal | int | str, decimals: int) -> int:
    """Scale a display value up to base units, truncating toward zero.

    Floats are read through their shortest ``repr`` so ``0.0001`` becomes
    exactly ``10**14`` wei at 18 decimals rather than the binary expansion
    ``100000000000000.02``. Digits beyond ``decimals`` are dropped.
    """
    _check_decimals(decimals)
    if isinstance(display, bool):
        raise InvalidAmountError("Amount must be numeric", field="amount", value=display)

    try:
        value = display if isinstance(display, Decimal) else Decimal(str(display))
    except InvalidOperation as exc:
        raise InvalidAmountError("Amount must be numeric", field="amount", value=display) from exc

    if not value.is_finite():
        raise InvalidAmountError("Amount must be finite", field="amount", value=display)
    if value < 0:
        raise InvalidAmountError("Amount cannot be negative", field="amount", value=display)

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN)

    base = int(scaled)
    if base > MAX_UINT256:
        raise InvalidAmountError("Amount exceeds uint256 maximum", field="amount", value=display)
    return base


def wei_to_gwei(wei: int) -> float:
    return to_display_unit(wei, GWEI_DECIMALS)


def wei_to_ether(wei: int) -> float:
    return to_display_unit(wei, ETHER_DECIMALS)


def gwei_to_wei(gwei: float | Decimal | int | str) -> int:
    return to_base_unit(gwei, GWEI_DECIMALS)


def ether_to_wei(ether: float | Decimal | int | str) -> int:
    return to_base_unit(ether, ETHER_DECIMALS)


def format_units(amount: int, decimals: int) -> str:
    """Exact decimal rendering of a base-unit amount, e.g. ``"1.5"``."""
    _check_amount(amount)
    _check_decimals(decimals)
    if decimals == 0:
        return str(amount)

    whole, fraction = divmod(amount, 10**decimals)
    fraction_str = str(fraction).rjust(decimals, "0").rstrip("0") or "0"
    return f"{whole}.{fraction_str}"


def format_ether(amount: int) -> str:
    return format_units(amount, ETHER_DECIMALS)


def parse_quantity(value: Any, *, field: str) -> int:
    """Read a JSON-RPC quantity (int or 0x-hex string) as a non-negative int."""
    if isinstance(value, bool):
        raise InvalidResponseError(
            f"Node returned a non-numeric {field}", details={"field": field, "value": value}
        )
    if isinstance(value, int):
        result = value
    elif isinstance(value, str) and value.lower().startswith("0x"):
        try:
            result = int(value, 16)
        except ValueError as exc:
            raise InvalidResponseError(
                f"Node returned malformed hex for {field}",
                details={"field": field, "value": value},
            ) from exc
    else:
        raise InvalidResponseError(
            f"Node returned a non-numeric {field}", details={"field": field, "value": value}
        )

    if result < 0:
        raise InvalidResponseError(
            f"Node returned a negative {field}", details={"field": field, "value": value}
        )
    return result


def normalise_tx_hash(value: Any) -> str:
    """Return a lowercase 0x-prefixed transaction hash."""
    if isinstance(value, bytes | bytearray):
        return HexBytes(value).to_0x_hex()
    if isinstance(value, str):
        lowered = value.lower()
        return lowered if lowered.startswith("0x") else "0x" + lowered
    raise InvalidResponseError("Unrecognised transaction hash", details={"value": repr(value)})


def serialise_receipt(receipt: Any) -> Any:
    """Serialise web3 receipt objects into JSON-friendly structures."""
    if receipt is None:
        return None
    if isinstance(receipt, Mapping):
        return {key: serialise_receipt(value) for key, value in receipt.items()}
    if isinstance(receipt, Sequence) and not isinstance(
        receipt, str | bytes | bytearray | HexBytes
    ):
        return [serialise_receipt(item) for item in receipt]
    if isinstance(receipt, bytes | bytearray | HexBytes):
        return HexBytes(receipt).to_0x_hex()
    return receipt
