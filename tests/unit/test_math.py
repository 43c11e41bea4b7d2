"""
tests/unit/test_math.py - Tests for core/math.py

Critical tests for:
- Smallest-unit <-> human-scale conversions
- Slippage floors/ceilings with integer truncation
- Constant-product output
"""

import pytest
from decimal import Decimal

from core.constants import SlippageDirection
from core.math import (
    apply_slippage,
    constant_product_out_amount,
    decimal_to_bps,
    from_ui,
    price_from_amounts,
    safe_decimal,
    to_ui,
)


class TestSafeDecimal:
    """safe_decimal conversions."""

    def test_float_goes_through_str(self):
        assert safe_decimal(0.1) == Decimal("0.1")

    def test_decimal_passthrough(self):
        value = Decimal("1.23")
        assert safe_decimal(value) is value

    def test_garbage_returns_default(self):
        assert safe_decimal("abc") == Decimal("0")
        assert safe_decimal(None, default=Decimal("7")) == Decimal("7")


class TestBps:
    def test_decimal_to_bps(self):
        assert decimal_to_bps("0.005") == Decimal("50")


class TestUiConversions:
    """to_ui / from_ui."""

    def test_to_ui_lamports(self):
        assert to_ui(1_500_000_000, 9) == Decimal("1.5")

    def test_from_ui_micro_usdc(self):
        assert from_ui("2.5", 6) == 2_500_000

    def test_from_ui_floors(self):
        """Fractions of a smallest unit are dropped, never rounded up."""
        assert from_ui("0.0000000019", 9) == 1
        assert from_ui("1.9999999", 6) == 1_999_999

    def test_from_ui_zero_decimals(self):
        assert from_ui("42.9", 0) == 42


class TestPriceFromAmounts:
    def test_human_scale_price(self):
        # 1 SOL -> 150 USDC
        price = price_from_amounts(10**9, 150 * 10**6, 9, 6)
        assert price == Decimal("150")

    def test_zero_input_is_zero_price(self):
        assert price_from_amounts(0, 100, 9, 6) == Decimal("0")


class TestApplySlippage:
    """Slippage with integer truncation."""

    def test_out_direction(self):
        assert apply_slippage(1_000_000, 50, SlippageDirection.OUT) == 995_000

    def test_in_direction(self):
        assert apply_slippage(1_000_000, 50, SlippageDirection.IN) == 1_005_000

    def test_default_is_out(self):
        assert apply_slippage(10_000, 100) == 9_900

    def test_accepts_string_direction(self):
        assert apply_slippage(10_000, 100, "in") == 10_100

    def test_truncates(self):
        # 999 * 9950 / 10000 = 994.005 -> 994
        assert apply_slippage(999, 50, "out") == 994
        # 999 * 10050 / 10000 = 1003.995 -> 1003
        assert apply_slippage(999, 50, "in") == 1003

    def test_zero_bps_is_identity(self):
        assert apply_slippage(12345, 0, "out") == 12345

    def test_rejects_unknown_direction(self):
        with pytest.raises(ValueError):
            apply_slippage(100, 10, "sideways")


class TestConstantProduct:
    def test_no_fee(self):
        # 100 in against 1000/1000: 100 * 1000 / 1100 = 90.9 -> 90
        assert constant_product_out_amount(100, 1000, 1000, 0) == 90

    def test_fee_taken_from_input(self):
        # 30 bps of 10_000 leaves 9_970
        expected = (9_970 * 1_000_000) // (1_000_000 + 9_970)
        assert constant_product_out_amount(10_000, 1_000_000, 1_000_000, 30) == expected

    def test_non_positive_input(self):
        assert constant_product_out_amount(0, 1000, 1000, 30) == 0
        assert constant_product_out_amount(-5, 1000, 1000, 30) == 0
