"""Conversion between human decimal amounts and integer base units."""

from decimal import (
    Decimal,
    DecimalException,
    InvalidOperation,
    Rounded,
    Underflow,
    localcontext,
)
from typing import Union

# uint256 needs 78 significant digits
_PRECISION = 100
MAX_UINT256 = 2**256 - 1


def parse_decimal(value: Union[str, int, Decimal, None]) -> Decimal:
    """Parse a user supplied amount into a finite Decimal.

    Raises:
        ValueError: If the value is empty, non-numeric, NaN or infinite
    """
    if value is None:
        raise ValueError("amount is required")
    text = str(value).strip()
    if not text:
        raise ValueError("amount is required")

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"not a number: {text!r}")

    if not amount.is_finite():
        raise ValueError(f"not a finite number: {text!r}")
    return amount


def parse_units(value: Union[str, Decimal], decimals: int) -> int:
    """Convert a decimal amount to base units, e.g. "10.5" @ 18 -> 10500000000000000000.

    Raises:
        ValueError: If the amount has more fractional digits than `decimals` allows,
            is out of uint256 range or loses digits when scaled
    """
    amount = value if isinstance(value, Decimal) else parse_decimal(value)

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        ctx.traps[Rounded] = True
        ctx.traps[Underflow] = True
        try:
            scaled = amount.scaleb(decimals)
        except DecimalException as e:
            raise ValueError(f"amount out of range: {type(e).__name__}") from e
        if scaled > MAX_UINT256:
            raise ValueError("amount exceeds uint256")
        if scaled != scaled.to_integral_value():
            raise ValueError(f"fractional component exceeds {decimals} decimals")
        return int(scaled)


def format_units(value: int, decimals: int) -> str:
    """Format base units as a decimal string, always keeping one fractional digit.

    1000000000000000000 @ 18 -> "1.0", 0 -> "0.0", 10500000000000000000 -> "10.5"
    """
    sign = "-" if value < 0 else ""
    value = abs(value)

    if decimals == 0:
        return f"{sign}{value}.0"

    whole, fraction = divmod(value, 10**decimals)
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{fraction_text}"
