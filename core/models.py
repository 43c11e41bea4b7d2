# PATH: core/models.py
"""
Core data models for XARB.

QUOTE CONTRACT
==============
- amounts are integers in smallest units
- price is ALWAYS "out_symbol per 1 in_symbol" at human scale
- quotes are immutable and carry no identity beyond their fields

OPPORTUNITY CONTRACT
====================
- est_profit_usd has passed the validation guard and the profit floors
- never persisted across ticks
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional

from core.constants import OpportunityKind
from core.math import price_from_amounts


@dataclass(frozen=True)
class TokenInfo:
    """Token metadata resolved from the registry."""
    symbol: str
    mint: str
    decimals: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "mint": self.mint,
            "decimals": self.decimals,
        }


@dataclass(frozen=True)
class Quote:
    """Quote from a venue for an exact input amount."""
    in_symbol: str
    out_symbol: str
    in_amount: int
    out_amount: int
    price: Decimal
    venue: str
    pool_id: Optional[str] = None

    @classmethod
    def from_amounts(
        cls,
        token_in: TokenInfo,
        token_out: TokenInfo,
        in_amount: int,
        out_amount: int,
        venue: str,
        pool_id: Optional[str] = None,
    ) -> "Quote":
        """Build a quote whose price is derived from the raw amounts."""
        return cls(
            in_symbol=token_in.symbol,
            out_symbol=token_out.symbol,
            in_amount=in_amount,
            out_amount=out_amount,
            price=price_from_amounts(in_amount, out_amount, token_in.decimals, token_out.decimals),
            venue=venue,
            pool_id=pool_id,
        )

    @property
    def direction(self) -> str:
        return f"{self.in_symbol}->{self.out_symbol}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "in_symbol": self.in_symbol,
            "out_symbol": self.out_symbol,
            "in_amount": str(self.in_amount),
            "out_amount": str(self.out_amount),
            "price": str(self.price),
            "venue": self.venue,
            "pool_id": self.pool_id,
        }


@dataclass(frozen=True)
class Opportunity:
    """Scored arbitrage candidate: buy on one venue, sell on the other."""
    kind: OpportunityKind
    buy_venue: str
    sell_venue: str
    in_symbol: str
    out_symbol: str
    size_in_base_units: int
    est_profit_usd: Decimal
    profit_bps: Decimal
    buy_quote: Quote
    sell_quote: Quote

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "buy_venue": self.buy_venue,
            "sell_venue": self.sell_venue,
            "in_symbol": self.in_symbol,
            "out_symbol": self.out_symbol,
            "size_in_base_units": str(self.size_in_base_units),
            "est_profit_usd": str(self.est_profit_usd),
            "profit_bps": str(self.profit_bps),
            "buy_quote": self.buy_quote.to_dict(),
            "sell_quote": self.sell_quote.to_dict(),
        }


@dataclass(frozen=True)
class SwapRequest:
    """One swap leg to submit to a venue."""
    in_symbol: str
    out_symbol: str
    in_amount: int
    min_out_amount: int


@dataclass
class SwapResult:
    """Structural outcome of a swap submission. Venues never raise."""
    success: bool
    description: str = ""
    tx_id: Optional[str] = None
    out_amount: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "description": self.description,
            "tx_id": self.tx_id,
            "out_amount": str(self.out_amount) if self.out_amount is not None else None,
            "metadata": self.metadata,
        }
