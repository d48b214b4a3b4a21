"""Wei / ether conversions.

All ledger amounts are integers in wei.  These helpers exist for humans:
tests, the demo and the CLI.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

WEI_PER_ETHER = 10**18
ETHER_DECIMALS = 18


def parse_ether(value: str | int | Decimal) -> int:
    """Convert an ether amount to wei, exactly.

    >>> parse_ether("0.1")
    100000000000000000
    """
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Not a decimal amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")

    # Integer arithmetic on the digits; Decimal context precision never applies
    sign, digits, exponent = amount.as_tuple()
    coefficient = int("".join(map(str, digits)) or "0")
    shift = exponent + ETHER_DECIMALS
    if shift >= 0:
        wei = coefficient * 10**shift
    else:
        wei, remainder = divmod(coefficient, 10**-shift)
        if remainder:
            raise ValueError(f"{value!r} ether has more than 18 decimal places")
    return -wei if sign else wei


def format_ether(wei: int) -> str:
    """Render wei as an ether string without trailing zeros.

    >>> format_ether(100000000000000000)
    '0.1'
    """
    sign = "-" if wei < 0 else ""
    whole, fraction = divmod(abs(wei), WEI_PER_ETHER)
    if not fraction:
        return f"{sign}{whole}"
    decimals = str(fraction).rjust(ETHER_DECIMALS, "0").rstrip("0")
    return f"{sign}{whole}.{decimals}"
