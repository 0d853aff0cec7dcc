"""
Exact fixed-point helpers

Every rate and ratio reported by the matcher is derived from integers with
floor division and then wrapped in a Decimal built from a string, so no
value ever passes through float or through a Decimal context rounding step.
"""

from decimal import Decimal

BIPS_PER_PERCENT = 100

ZERO = Decimal("0")


def fixed_point_divide(numerator: int, denominator: int, digits: int = 4) -> Decimal:
    """
    Divide two non-negative integers, keeping `digits` fractional digits.

    The quotient is truncated toward zero. A zero denominator yields zero.

    Examples:
        >>> fixed_point_divide(2, 3)
        Decimal('0.6666')
        >>> fixed_point_divide(17500000, 35000)
        Decimal('500.0000')
    """
    if digits < 0:
        raise ValueError(f"digits must be non-negative, got {digits}")
    if numerator < 0 or denominator < 0:
        raise ValueError(
            f"operands must be non-negative, got {numerator}/{denominator}"
        )
    if denominator == 0:
        return ZERO

    scaled = (numerator * 10 ** digits) // denominator
    if digits == 0:
        return Decimal(scaled)
    return Decimal(f"{scaled}E-{digits}")


def format_units(amount: int, decimals: int = 0) -> str:
    """
    Render an integer amount of base units as a decimal string.

    Examples:
        >>> format_units(1500000, 6)
        '1.5'
        >>> format_units(20000)
        '20000'
    """
    if decimals <= 0:
        return str(amount)

    sign = "-" if amount < 0 else ""
    whole, fraction = divmod(abs(amount), 10 ** decimals)
    fraction_str = str(fraction).rjust(decimals, "0").rstrip("0")
    if fraction_str:
        return f"{sign}{whole}.{fraction_str}"
    return f"{sign}{whole}"


def bips_to_percent(rate_bips) -> Decimal:
    """Convert a rate in basis points (int or Decimal) to a percentage."""
    return Decimal(rate_bips) / BIPS_PER_PERCENT
