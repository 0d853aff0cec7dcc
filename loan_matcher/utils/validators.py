"""
Input validation utilities

This module provides validation functions for order amounts, rates and
timestamps to ensure data integrity throughout the loan matcher.
"""

from typing import Any, Optional, Union

from .exceptions import (
    ArithmeticOverflowException,
    InvalidOrderException,
)

# Largest value the settlement contracts can represent
UINT256_MAX = 2 ** 256 - 1


def sanitize_int(value: Union[str, int], field_name: str = "value") -> int:
    """
    Convert a value to an exact integer with proper error handling.

    Accepts ints and decimal-integer strings. Floats and bools are rejected
    so that no binary rounding can leak into amounts or rates.

    Args:
        value: Value to convert
        field_name: Field name for error context

    Returns:
        Integer representation of the value

    Raises:
        InvalidOrderException: If value is not an exact integer
    """
    if isinstance(value, bool):
        raise InvalidOrderException(
            f"Invalid integer value for {field_name}: {value}",
            details={"field": field_name, "value": value}
        )

    if isinstance(value, int):
        return value

    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text[:1] in ("-", "+") else text
        if digits.isdigit() and digits.isascii():
            return int(text)

    raise InvalidOrderException(
        f"Invalid integer value for {field_name}: {value!r}",
        details={"field": field_name, "value": str(value)}
    )


def ensure_uint256(value: int, field_name: str, order_id: Optional[Any] = None) -> int:
    """
    Check that a value fits the settlement range.

    Raises:
        ArithmeticOverflowException: If value exceeds UINT256_MAX
    """
    if value > UINT256_MAX:
        raise ArithmeticOverflowException(
            f"{field_name} exceeds representable precision (uint256)",
            details={"field": field_name, "order_id": order_id, "value": str(value)}
        )
    return value


def validate_amount(
    amount: Any,
    field_name: str,
    order_id: Optional[Any] = None,
    allow_zero: bool = False,
) -> bool:
    """
    Validate an integer principal amount.

    Args:
        amount: Amount to validate
        field_name: Field name for error context
        order_id: Order id for error context
        allow_zero: Whether zero is acceptable

    Returns:
        True if amount is valid

    Raises:
        InvalidOrderException: If amount is not an int, negative, or zero when not allowed
        ArithmeticOverflowException: If amount exceeds uint256
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidOrderException(
            f"{field_name} must be an integer, got {type(amount).__name__}",
            details={"field": field_name, "order_id": order_id}
        )

    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidOrderException(
            f"{field_name} must be positive, got {amount}",
            details={"field": field_name, "order_id": order_id, "value": str(amount)}
        )

    ensure_uint256(amount, field_name, order_id)
    return True


def validate_rate(rate_bips: Any, field_name: str, order_id: Optional[Any] = None) -> bool:
    """
    Validate an interest rate expressed in integer basis points.

    Raises:
        InvalidOrderException: If rate is not an int or is negative
        ArithmeticOverflowException: If rate exceeds uint256
    """
    if isinstance(rate_bips, bool) or not isinstance(rate_bips, int):
        raise InvalidOrderException(
            f"{field_name} must be an integer number of basis points, "
            f"got {type(rate_bips).__name__}",
            details={"field": field_name, "order_id": order_id}
        )

    if rate_bips < 0:
        raise InvalidOrderException(
            f"{field_name} cannot be negative, got {rate_bips}",
            details={"field": field_name, "order_id": order_id, "value": str(rate_bips)}
        )

    ensure_uint256(rate_bips, field_name, order_id)
    return True


def validate_timestamp(timestamp: Any, field_name: str, order_id: Optional[Any] = None) -> bool:
    """
    Validate a unix timestamp in seconds.

    Raises:
        InvalidOrderException: If timestamp is not a positive int
        ArithmeticOverflowException: If timestamp exceeds uint256
    """
    validate_amount(timestamp, field_name, order_id)
    return True


def validate_bounds(
    lower: Optional[int],
    upper: Optional[int],
    value: int,
    field_name: str,
    order_id: Optional[Any] = None,
) -> bool:
    """
    Validate an optional [lower, upper] bound pair against a value.

    Raises:
        InvalidOrderException: If the bounds contradict each other or exclude value
    """
    if lower is not None and upper is not None and lower > upper:
        raise InvalidOrderException(
            f"min {field_name} {lower} exceeds max {field_name} {upper}",
            details={"field": field_name, "order_id": order_id}
        )

    if lower is not None and value < lower:
        raise InvalidOrderException(
            f"{field_name} {value} is below minimum {lower}",
            details={"field": field_name, "order_id": order_id, "min": str(lower)}
        )

    if upper is not None and value > upper:
        raise InvalidOrderException(
            f"{field_name} {value} exceeds maximum {upper}",
            details={"field": field_name, "order_id": order_id, "max": str(upper)}
        )

    return True


def validate_sender(sender: Any, order_id: Optional[Any] = None) -> bool:
    """
    Validate an order sender identity.

    Raises:
        InvalidOrderException: If sender is empty or not a string
    """
    if not isinstance(sender, str) or not sender.strip():
        raise InvalidOrderException(
            f"Invalid sender: {sender!r}",
            details={"order_id": order_id}
        )
    return True
