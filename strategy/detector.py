"""
strategy/detector.py - Cross-venue opportunity detector.

DETECTION CONTRACT:
===================

Per evaluate() call:
  1. resolve both tokens (unknown -> None, warning)
  2. connectivity breaker (probe failed -> None)
  3. four probe-sized quotes: base->quote and quote->base on both venues
     (implausible quotes are dropped; NetworkExhaustedError -> None)
  4. simple-spread candidates, one per direction
  5. round-trip candidates, forward (B then A) and reverse (A then B)
  6. realism guard, then profit floors
  7. selection: best round trip > forward simple > reverse simple

Quote naming below is "<venue>_<direction>" where fwd = base->quote and
rev = quote->base.

===================
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from chains.network import ConnectivityBreaker, ConnectivityChecker, NetworkExhaustedError
from core.constants import OpportunityKind
from core.logging import get_logger, log_opportunity, log_quote
from core.math import decimal_to_bps, from_ui
from core.models import Opportunity, Quote, TokenInfo
from core.validators import DEFAULT_BOUNDS, SanityBounds, opportunity_is_plausible, price_is_plausible
from dex.adapters.base import Venue
from discovery.registry import TokenRegistry

logger = get_logger(__name__)

ONE = Decimal("1")
HUNDRED = Decimal("100")


def _fmt(value: Optional[Decimal]) -> str:
    return "n/a" if value is None else f"{value:.6f}"


@dataclass(frozen=True)
class QuoteBook:
    """The four probe quotes gathered in one evaluation. None = unavailable."""
    a_fwd: Optional[Quote]
    b_fwd: Optional[Quote]
    a_rev: Optional[Quote]
    b_rev: Optional[Quote]

    @property
    def forward_product(self) -> Optional[Decimal]:
        """Round trip quote->base on B, then base->quote on A."""
        if self.b_rev is None or self.a_fwd is None:
            return None
        return self.b_rev.price * self.a_fwd.price

    @property
    def reverse_product(self) -> Optional[Decimal]:
        """Round trip quote->base on A, then base->quote on B."""
        if self.a_rev is None or self.b_fwd is None:
            return None
        return self.a_rev.price * self.b_fwd.price


class OpportunityDetector:
    """
    Reconciles quotes from two venues into at most one opportunity per tick.

    Usage:
        detector = OpportunityDetector(venue_a, venue_b, registry, Decimal("5"))
        opp = await detector.evaluate(("SOL", "USDC"), Decimal("150"), Decimal("200"))
    """

    def __init__(
        self,
        venue_a: Venue,
        venue_b: Venue,
        registry: TokenRegistry,
        min_profit_usd: Decimal,
        min_profit_bps: Optional[Decimal] = None,
        bounds: Optional[SanityBounds] = None,
        breaker: Optional[ConnectivityBreaker] = None,
        connectivity: Optional[ConnectivityChecker] = None,
    ):
        self.venue_a = venue_a
        self.venue_b = venue_b
        self.registry = registry
        self.min_profit_usd = Decimal(min_profit_usd)
        self.min_profit_bps = Decimal(min_profit_bps) if min_profit_bps is not None else None
        self.bounds = bounds or DEFAULT_BOUNDS
        self.breaker = breaker
        self.connectivity = connectivity

    # =========================================================================
    # PUBLIC
    # =========================================================================

    async def evaluate(
        self,
        pair: Tuple[str, str],
        reference_price_usd: Decimal,
        notional_usd: Decimal,
    ) -> Optional[Opportunity]:
        """
        Look for one profitable, plausible opportunity on the pair.

        Args:
            pair: (base symbol, quote symbol)
            reference_price_usd: USD price of one base token
            notional_usd: Reference trade size in USD

        Returns:
            The selected Opportunity, or None
        """
        reference_price_usd = Decimal(reference_price_usd)
        notional_usd = Decimal(notional_usd)

        base_symbol, quote_symbol = pair
        base = self.registry.lookup(base_symbol)
        quote = self.registry.lookup(quote_symbol)
        if base is None or quote is None:
            logger.warning(
                f"Unknown token(s) for pair {base_symbol}/{quote_symbol}",
                extra={"context": {"base": base_symbol, "quote": quote_symbol}},
            )
            return None

        if not await self._connectivity_ok():
            return None

        try:
            book = await self._gather_quotes(base, quote)
        except NetworkExhaustedError as e:
            logger.error(
                f"Quote request exhausted retries, skipping cycle: {e}",
                extra={"context": {"pair": f"{base.symbol}/{quote.symbol}", "attempts": e.attempts}},
            )
            return None

        self._log_summary(book)

        if reference_price_usd <= 0:
            logger.warning(
                f"Non-positive reference price {reference_price_usd}, skipping cycle",
                extra={"context": {"reference_price_usd": str(reference_price_usd)}},
            )
            return None

        base_usd = reference_price_usd
        quote_usd = ONE / reference_price_usd

        round_trips = [
            opp for opp in (
                self._round_trip(book.b_rev, book.a_fwd, quote, notional_usd, reference_price_usd),
                self._round_trip(book.a_rev, book.b_fwd, quote, notional_usd, reference_price_usd),
            )
            if opp is not None
        ]
        forward = self._simple(
            book.a_fwd, book.b_fwd, OpportunityKind.SIMPLE_FORWARD, base, notional_usd, base_usd,
        )
        reverse = self._simple(
            book.a_rev, book.b_rev, OpportunityKind.SIMPLE_REVERSE, quote, notional_usd, quote_usd,
        )

        best = self._select(round_trips, forward, reverse)
        if best is not None:
            log_opportunity(logger, best, "DETECTED")
        return best

    # =========================================================================
    # QUOTES
    # =========================================================================

    async def _connectivity_ok(self) -> bool:
        if self.breaker is None or self.connectivity is None:
            return True
        if not self.breaker.should_probe():
            return True

        logger.info("Performing periodic connectivity check...")
        if await self.connectivity.check():
            return True
        logger.error("Connectivity validation failed, skipping arbitrage cycle")
        return False

    async def _gather_quotes(self, base: TokenInfo, quote: TokenInfo) -> QuoteBook:
        base_probe = from_ui(1, base.decimals)
        quote_probe = from_ui(1, quote.decimals)
        return QuoteBook(
            a_fwd=await self._quote(self.venue_a, base, quote, base_probe),
            b_fwd=await self._quote(self.venue_b, base, quote, base_probe),
            a_rev=await self._quote(self.venue_a, quote, base, quote_probe),
            b_rev=await self._quote(self.venue_b, quote, base, quote_probe),
        )

    async def _quote(
        self,
        venue: Venue,
        token_in: TokenInfo,
        token_out: TokenInfo,
        in_amount: int,
    ) -> Optional[Quote]:
        quote = await venue.get_quote(token_in.symbol, token_out.symbol, in_amount)
        if quote is None:
            return None
        if not price_is_plausible(quote.price, f"{venue.name} {quote.direction}", self.bounds):
            return None
        return quote

    def _log_summary(self, book: QuoteBook) -> None:
        log_quote(logger, "forward A", book.a_fwd)
        log_quote(logger, "forward B", book.b_fwd)
        log_quote(logger, "reverse A", book.a_rev)
        log_quote(logger, "reverse B", book.b_rev)

        forward, reverse = book.forward_product, book.reverse_product
        logger.info(
            f"[roundtrip] B->A product={_fmt(forward)} A->B product={_fmt(reverse)}",
            extra={
                "context": {
                    "forward_product": str(forward) if forward is not None else None,
                    "reverse_product": str(reverse) if reverse is not None else None,
                }
            },
        )

    # =========================================================================
    # CANDIDATES
    # =========================================================================

    def _simple(
        self,
        quote_a: Optional[Quote],
        quote_b: Optional[Quote],
        kind: OpportunityKind,
        token_in: TokenInfo,
        notional_usd: Decimal,
        input_usd_price: Decimal,
    ) -> Optional[Opportunity]:
        """Same-direction spread between the two venues."""
        if quote_a is None or quote_b is None:
            return None

        buy, sell = (quote_a, quote_b) if quote_a.price <= quote_b.price else (quote_b, quote_a)
        delta = sell.price - buy.price
        if delta <= 0:
            return None

        edge = delta / ((buy.price + sell.price) / 2)
        est_profit_usd = edge * notional_usd
        label = f"{buy.in_symbol}/{buy.out_symbol}"

        if not opportunity_is_plausible(est_profit_usd, edge * HUNDRED, buy.price, sell.price, label, self.bounds):
            return None

        return self._gate(
            Opportunity(
                kind=kind,
                buy_venue=buy.venue,
                sell_venue=sell.venue,
                in_symbol=buy.in_symbol,
                out_symbol=buy.out_symbol,
                size_in_base_units=from_ui(notional_usd / input_usd_price, token_in.decimals),
                est_profit_usd=est_profit_usd,
                profit_bps=decimal_to_bps(edge),
                buy_quote=buy,
                sell_quote=sell,
            )
        )

    def _round_trip(
        self,
        buy: Optional[Quote],
        sell: Optional[Quote],
        token_in: TokenInfo,
        notional_usd: Decimal,
        reference_price_usd: Decimal,
    ) -> Optional[Opportunity]:
        """
        Closed loop: buy converts quote->base, sell converts it back.

        The loop starts in the quote token and is sized as
        notional / reference price in its smallest units.
        """
        if buy is None or sell is None:
            return None

        edge = buy.price * sell.price - ONE
        if edge <= 0:
            return None

        est_profit_usd = edge * notional_usd
        label = f"{buy.in_symbol}/{buy.out_symbol} {buy.venue}->{sell.venue}"

        # Both sides expressed as base->quote so the divergence fuse compares like with like
        if not opportunity_is_plausible(est_profit_usd, edge * HUNDRED, sell.price, ONE / buy.price, label, self.bounds):
            return None

        return self._gate(
            Opportunity(
                kind=OpportunityKind.ROUND_TRIP,
                buy_venue=buy.venue,
                sell_venue=sell.venue,
                in_symbol=buy.in_symbol,
                out_symbol=buy.out_symbol,
                size_in_base_units=from_ui(notional_usd / reference_price_usd, token_in.decimals),
                est_profit_usd=est_profit_usd,
                profit_bps=decimal_to_bps(edge),
                buy_quote=buy,
                sell_quote=sell,
            )
        )

    def _gate(self, opp: Opportunity) -> Optional[Opportunity]:
        """Profit floors: USD always, bps when configured."""
        if opp.est_profit_usd < self.min_profit_usd:
            logger.debug(
                f"Below min profit: ${opp.est_profit_usd:.4f} < ${self.min_profit_usd}",
                extra={"context": {"kind": opp.kind.value, "est_profit_usd": str(opp.est_profit_usd)}},
            )
            return None
        if self.min_profit_bps is not None and opp.profit_bps < self.min_profit_bps:
            logger.debug(
                f"Below min bps: {opp.profit_bps:.2f} < {self.min_profit_bps}",
                extra={"context": {"kind": opp.kind.value, "profit_bps": str(opp.profit_bps)}},
            )
            return None
        return opp

    @staticmethod
    def _select(
        round_trips: Iterable[Opportunity],
        forward: Optional[Opportunity],
        reverse: Optional[Opportunity],
    ) -> Optional[Opportunity]:
        best: Optional[Opportunity] = None
        for opp in round_trips:
            if best is None or opp.est_profit_usd > best.est_profit_usd:
                best = opp
        return best or forward or reverse
