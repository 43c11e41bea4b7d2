# PATH: tests/unit/test_core_models.py
"""
Unit tests for core data models.
"""

import dataclasses
import unittest
from decimal import Decimal

from core.constants import OpportunityKind
from core.models import Opportunity, Quote, SwapResult, TokenInfo

SOL = TokenInfo(symbol="SOL", mint="So11111111111111111111111111111111111111112", decimals=9)
USDC = TokenInfo(symbol="USDC", mint="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", decimals=6)


class TestQuote(unittest.TestCase):
    """QUOTE CONTRACT: integer amounts, human-scale price."""

    def test_from_amounts_derives_price(self):
        quote = Quote.from_amounts(SOL, USDC, 2 * 10**9, 301 * 10**6, "jupiter-raydium", "Pool1")
        self.assertEqual(quote.price, Decimal("150.5"))
        self.assertEqual(quote.in_symbol, "SOL")
        self.assertEqual(quote.pool_id, "Pool1")

    def test_reverse_price(self):
        quote = Quote.from_amounts(USDC, SOL, 150 * 10**6, 10**9, "v")
        self.assertLess(abs(quote.price * 150 - 1), Decimal("1e-20"))

    def test_immutable(self):
        quote = Quote("SOL", "USDC", 1, 1, Decimal("1"), "v")
        with self.assertRaises(dataclasses.FrozenInstanceError):
            quote.price = Decimal("2")

    def test_direction(self):
        self.assertEqual(Quote("SOL", "USDC", 1, 1, Decimal("1"), "v").direction, "SOL->USDC")

    def test_to_dict_stringifies_numbers(self):
        data = Quote("SOL", "USDC", 10**9, 150 * 10**6, Decimal("150"), "v").to_dict()
        self.assertEqual(data["in_amount"], "1000000000")
        self.assertEqual(data["out_amount"], "150000000")
        self.assertEqual(data["price"], "150")
        self.assertIsNone(data["pool_id"])


class TestOpportunity(unittest.TestCase):
    def test_to_dict(self):
        buy = Quote("SOL", "USDC", 10**9, 100 * 10**6, Decimal("100"), "a")
        sell = Quote("SOL", "USDC", 10**9, 102 * 10**6, Decimal("102"), "b")
        opp = Opportunity(
            kind=OpportunityKind.SIMPLE_FORWARD,
            buy_venue="a",
            sell_venue="b",
            in_symbol="SOL",
            out_symbol="USDC",
            size_in_base_units=10 * 10**9,
            est_profit_usd=Decimal("19.80"),
            profit_bps=Decimal("198"),
            buy_quote=buy,
            sell_quote=sell,
        )

        data = opp.to_dict()

        self.assertEqual(data["kind"], "SIMPLE_FORWARD")
        self.assertEqual(data["size_in_base_units"], "10000000000")
        self.assertEqual(data["est_profit_usd"], "19.80")
        self.assertEqual(data["sell_quote"]["venue"], "b")


class TestSwapResult(unittest.TestCase):
    def test_failure_defaults(self):
        result = SwapResult(success=False, description="no route")
        self.assertIsNone(result.tx_id)
        self.assertIsNone(result.to_dict()["out_amount"])

    def test_to_dict(self):
        data = SwapResult(success=True, tx_id="Sig", out_amount=5).to_dict()
        self.assertTrue(data["success"])
        self.assertEqual(data["out_amount"], "5")


if __name__ == "__main__":
    unittest.main()
