# PATH: core/math.py
"""
Math utilities for XARB.

Fixed-point conversions between smallest-unit integers and human-scale
Decimals. Money and prices never go through float.
"""

from decimal import Decimal, InvalidOperation, ROUND_FLOOR
from typing import Union

from core.constants import BPS_DENOMINATOR, SlippageDirection

Number = Union[str, int, float, Decimal]


def safe_decimal(value: Union[Number, None], default: Decimal = Decimal("0")) -> Decimal:
    """
    Safely convert value to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary
    expansion.

    Args:
        value: Value to convert
        default: Default if conversion fails

    Returns:
        Decimal value
    """
    if value is None:
        return default

    try:
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return default


def decimal_to_bps(value: Number) -> Decimal:
    """
    Convert decimal fraction to basis points (0.005 -> 50 bps).
    """
    return safe_decimal(value) * Decimal(BPS_DENOMINATOR)


def to_ui(amount: int, decimals: int) -> Decimal:
    """
    Convert a smallest-unit amount to human scale.

    Args:
        amount: Amount in smallest units (lamports, micro-USDC, ...)
        decimals: Token decimals

    Returns:
        Human-scale Decimal amount
    """
    return Decimal(int(amount)) / (Decimal(10) ** decimals)


def from_ui(amount: Number, decimals: int) -> int:
    """
    Convert a human-scale amount to smallest units, rounding down.

    Args:
        amount: Human-scale amount
        decimals: Token decimals

    Returns:
        Integer amount in smallest units
    """
    scaled = safe_decimal(amount) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def price_from_amounts(
    in_amount: int,
    out_amount: int,
    decimals_in: int,
    decimals_out: int,
) -> Decimal:
    """
    Human-scale price (out per 1 in) implied by a pair of raw amounts.

    Returns Decimal("0") for a zero input so callers can reject it.
    """
    in_ui = to_ui(in_amount, decimals_in)
    if in_ui <= 0:
        return Decimal("0")
    return to_ui(out_amount, decimals_out) / in_ui


def apply_slippage(
    amount: int,
    slippage_bps: int,
    direction: Union[SlippageDirection, str] = SlippageDirection.OUT,
) -> int:
    """
    Apply a slippage tolerance to a smallest-unit amount.

    'out': minimum acceptable output, amount * (10000 - bps) // 10000
    'in':  maximum acceptable input,  amount * (10000 + bps) // 10000

    Integer arithmetic, truncating.
    """
    direction = SlippageDirection(direction)
    if direction is SlippageDirection.IN:
        return (int(amount) * (BPS_DENOMINATOR + int(slippage_bps))) // BPS_DENOMINATOR
    return (int(amount) * (BPS_DENOMINATOR - int(slippage_bps))) // BPS_DENOMINATOR


def constant_product_out_amount(
    in_amount: int,
    reserve_in: int,
    reserve_out: int,
    fee_bps: int,
) -> int:
    """
    Output of an x*y=k pool for a given input, fee taken from the input.

    Args:
        in_amount: Input in smallest units
        reserve_in: Pool reserve of the input token
        reserve_out: Pool reserve of the output token
        fee_bps: Pool fee in basis points

    Returns:
        Output amount in smallest units (0 for non-positive input)
    """
    if in_amount <= 0:
        return 0
    in_after_fee = (in_amount * (BPS_DENOMINATOR - fee_bps)) // BPS_DENOMINATOR
    numerator = in_after_fee * reserve_out
    denominator = reserve_in + in_after_fee
    if denominator <= 0:
        return 0
    return numerator // denominator
