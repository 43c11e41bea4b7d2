# PATH: execution/dex_dex_executor.py
"""
Two-leg DEX-DEX executor.

DEX-DEX EXECUTION CONTRACT:
===========================

execute(opportunity) → ExecutionResult
  - never raises for failed quotes, failed swaps or exhausted retries
  - legs are sequential and NOT atomic
  - at most one buy leg and one sell leg per call, never retried

Daily window:
  - keyed by UTC date, rolled lazily at every cap check
  - +1 exactly when a buy leg succeeds (the commit point)

Partial failure:
  - buy ok + sell failed → CRITICAL "unhedged position" alarm that names
    the buy tx id; the position has to be unwound by an operator

===========================
"""

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from core.constants import (
    DEFAULT_POST_TRADE_COOLDOWN_SECONDS,
    DEFAULT_RATE_LIMITED_VENUES,
    DEFAULT_SLIPPAGE_BPS,
    DEFAULT_TRADE_SIZE_SOL,
    DENOMINATING_SYMBOL,
    SlippageDirection,
)
from core.exceptions import ArbError
from core.logging import get_logger, log_opportunity, log_trade_leg
from core.math import apply_slippage, from_ui
from core.models import Opportunity, Quote, SwapRequest, SwapResult
from core.time import now_utc, utc_day_key
from dex.adapters.base import Venue
from discovery.registry import TokenRegistry, normalize_symbol
from execution.state_machine import LegState, LegStateMachine

logger = get_logger(__name__)

Clock = Callable[[], datetime]
Sleeper = Callable[[float], Awaitable[Any]]


@dataclass
class DailyTradeWindow:
    """Rolling per-UTC-day trade counter."""
    day_key: str
    count: int = 0

    def roll(self, today: str) -> bool:
        """Reset to {today, 0} if the day changed. Returns True on reset."""
        if today == self.day_key:
            return False
        self.day_key = today
        self.count = 0
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"day_key": self.day_key, "count": self.count}


@dataclass
class ExecutionResult:
    """Result of one execute() call."""
    trade_id: str
    state: LegState
    buy_venue: str
    sell_venue: str
    est_profit_usd: Decimal
    daily_count: int
    buy_tx_id: Optional[str] = None
    sell_tx_id: Optional[str] = None
    error_message: Optional[str] = None
    history: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.state == LegState.DONE

    @property
    def is_unhedged(self) -> bool:
        return self.state == LegState.ABORT_SELL_FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trade_id": self.trade_id,
            "state": self.state.value,
            "is_success": self.is_success,
            "is_unhedged": self.is_unhedged,
            "buy_venue": self.buy_venue,
            "sell_venue": self.sell_venue,
            "est_profit_usd": str(self.est_profit_usd),
            "daily_count": self.daily_count,
            "buy_tx_id": self.buy_tx_id,
            "sell_tx_id": self.sell_tx_id,
            "error_message": self.error_message,
            "history": self.history,
        }


@dataclass
class ExecutorConfig:
    """Configuration for the two-leg executor."""
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    max_daily_trades: Optional[int] = None
    dry_run: bool = True  # Default to dry run (safe)
    max_trade_size_sol: Decimal = Decimal(DEFAULT_TRADE_SIZE_SOL)
    rate_limited_venues: Tuple[str, ...] = DEFAULT_RATE_LIMITED_VENUES
    post_trade_cooldown_seconds: float = DEFAULT_POST_TRADE_COOLDOWN_SECONDS

    @classmethod
    def from_arb_config(cls, config: Any) -> "ExecutorConfig":
        """Build from a strategy.config.ArbConfig."""
        return cls(
            slippage_bps=config.slippage_bps,
            max_daily_trades=config.max_daily_trades,
            dry_run=config.dry_run,
            max_trade_size_sol=config.trade_size_sol,
            rate_limited_venues=tuple(config.rate_limited_venues),
            post_trade_cooldown_seconds=config.post_trade_cooldown_seconds,
        )


class LegFailed(Exception):
    """Internal signal: the current leg could not complete."""

    def __init__(self, message: str, tx_id: Optional[str] = None):
        super().__init__(message)
        self.tx_id = tx_id


class DexDexExecutor:
    """
    Sequences the buy and sell legs of an opportunity.

    Usage:
        executor = DexDexExecutor([venue_a, venue_b], registry, ExecutorConfig(dry_run=False))
        result = await executor.execute(opportunity)
    """

    def __init__(
        self,
        venues: Iterable[Venue],
        registry: TokenRegistry,
        config: Optional[ExecutorConfig] = None,
        clock: Clock = now_utc,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.venues: Dict[str, Venue] = {}
        for venue in venues:
            if venue.name in self.venues:
                raise ValueError(f"Duplicate venue name: {venue.name}")
            self.venues[venue.name] = venue
        self.registry = registry
        self.config = config or ExecutorConfig()
        self.clock = clock
        self.sleep = sleep
        self.window = DailyTradeWindow(day_key=utc_day_key(self.clock()))
        self._sequence = itertools.count(1)

    # =========================================================================
    # DAILY WINDOW
    # =========================================================================

    @property
    def daily_count(self) -> int:
        return self.window.count

    def can_execute_today(self) -> bool:
        """Roll the window if the UTC day changed, then check the cap."""
        if self.window.roll(utc_day_key(self.clock())):
            logger.info(
                f"[LIVE] New trading day {self.window.day_key}, daily count reset",
                extra={"context": self.window.to_dict()},
            )
        limit = self.config.max_daily_trades
        if limit is None:
            return True
        return self.window.count < limit

    def compute_trade_size(self, in_symbol: str) -> int:
        """
        Per-leg input size in smallest units.

        The denominating asset trades max_trade_size_sol; anything else
        trades one human unit. Never zero.
        """
        symbol = normalize_symbol(in_symbol)
        decimals = self.registry.decimals_for(symbol)
        if symbol == DENOMINATING_SYMBOL:
            amount = from_ui(self.config.max_trade_size_sol, decimals)
        else:
            amount = from_ui(1, decimals)
        return max(amount, 1)

    # =========================================================================
    # EXECUTION
    # =========================================================================

    async def execute(self, opp: Opportunity) -> ExecutionResult:
        """
        Execute an opportunity as two sequential legs.

        Args:
            opp: Opportunity selected by the detector

        Returns:
            ExecutionResult with the terminal state and tx ids
        """
        sm = LegStateMachine(trade_id=f"{self.window.day_key}-{next(self._sequence):04d}")
        result = ExecutionResult(
            trade_id=sm.trade_id,
            state=sm.state,
            buy_venue=opp.buy_venue,
            sell_venue=opp.sell_venue,
            est_profit_usd=opp.est_profit_usd,
            daily_count=self.window.count,
        )

        sm.transition_to(LegState.CAP_CHECK)
        if not self.can_execute_today():
            logger.info(
                f"[LIVE] Daily trade limit reached ({self.config.max_daily_trades}). Skipping.",
                extra={"context": {**self.window.to_dict(), "max_daily_trades": self.config.max_daily_trades}},
            )
            sm.transition_to(LegState.ABORT_CAP, reason="daily cap reached")
            return self._finish(sm, result)

        if self.config.dry_run:
            log_opportunity(logger, opp, "DRY_RUN")
            logger.info(
                f"[DRY] Would execute: buy on {opp.buy_venue}, sell on {opp.sell_venue}, "
                f"est_profit_usd={opp.est_profit_usd:.3f}",
                extra={"context": {"trade_id": sm.trade_id, "kind": opp.kind.value}},
            )
            sm.transition_to(LegState.DRY_RUN_LOG, reason="dry run")
            return self._finish(sm, result)

        sm.transition_to(LegState.BUY_QUOTE)
        try:
            buy_venue = self._venue(opp.buy_venue)
            sell_venue = self._venue(opp.sell_venue)
            in_amount = self.compute_trade_size(opp.in_symbol)
            buy_quote, buy_result = await self._run_leg(
                sm, "buy", buy_venue, opp.in_symbol, opp.out_symbol, in_amount, LegState.BUY_EXECUTE,
            )
        except (LegFailed, ArbError) as e:
            result.error_message = str(e)
            result.buy_tx_id = getattr(e, "tx_id", None)
            sm.transition_to(LegState.ABORT_BUY_FAILED, reason=str(e))
            if result.buy_tx_id:
                # Submitted but unconfirmed: it may still land
                logger.error(
                    f"[LIVE] Buy leg on {opp.buy_venue} failed with a submitted tx {result.buy_tx_id}. "
                    f"Check it before the next trade",
                    extra={
                        "context": {
                            "trade_id": sm.trade_id,
                            "buy_tx_id": result.buy_tx_id,
                            "buy_venue": opp.buy_venue,
                            "error": str(e),
                        }
                    },
                )
            return self._finish(sm, result)

        # Commit point: inventory risk taken
        self.window.count += 1
        result.buy_tx_id = buy_result.tx_id
        sm.transition_to(LegState.SELL_QUOTE, metadata={"buy_tx_id": buy_result.tx_id})
        logger.info(
            f"[LIVE] Buy leg succeeded on {buy_venue.name}. "
            f"tx={buy_result.tx_id or 'n/a'} dailyCount={self.window.count}",
            extra={"context": {"trade_id": sm.trade_id, "tx_id": buy_result.tx_id, **self.window.to_dict()}},
        )

        received = buy_result.out_amount if buy_result.out_amount is not None else buy_quote.out_amount
        try:
            _, sell_result = await self._run_leg(
                sm, "sell", sell_venue, opp.out_symbol, opp.in_symbol, received, LegState.SELL_EXECUTE,
            )
        except Exception as e:
            result.error_message = str(e) or type(e).__name__
            sm.transition_to(LegState.ABORT_SELL_FAILED, reason=str(e))
            logger.critical(
                f"[LIVE] UNHEDGED POSITION: sell leg failed on {sell_venue.name} after buy succeeded. "
                f"Prior buy tx was {buy_result.tx_id or 'n/a'} on {buy_venue.name}",
                extra={
                    "context": {
                        "trade_id": sm.trade_id,
                        "buy_tx_id": buy_result.tx_id,
                        "buy_venue": buy_venue.name,
                        "sell_venue": sell_venue.name,
                        "held_symbol": opp.out_symbol,
                        "held_amount": str(received),
                        "error": str(e),
                    }
                },
            )
            return self._finish(sm, result)

        result.sell_tx_id = sell_result.tx_id
        sm.transition_to(LegState.DONE)
        logger.info(
            f"[LIVE] Executed both legs. buyTx={buy_result.tx_id or 'n/a'} sellTx={sell_result.tx_id or 'n/a'}",
            extra={
                "context": {
                    "trade_id": sm.trade_id,
                    "buy_tx_id": buy_result.tx_id,
                    "sell_tx_id": sell_result.tx_id,
                    "est_profit_usd": str(opp.est_profit_usd),
                }
            },
        )

        if sell_venue.name in self.config.rate_limited_venues:
            logger.info(
                f"[LIVE] Waiting {self.config.post_trade_cooldown_seconds}s after {sell_venue.name} "
                f"transaction to respect rate limits...",
                extra={"context": {"venue": sell_venue.name}},
            )
            await self.sleep(self.config.post_trade_cooldown_seconds)

        return self._finish(sm, result)

    async def _run_leg(
        self,
        sm: LegStateMachine,
        leg: str,
        venue: Venue,
        in_symbol: str,
        out_symbol: str,
        in_amount: int,
        execute_state: LegState,
    ) -> Tuple[Quote, SwapResult]:
        """Fresh quote, slippage floor, swap. Raises LegFailed on any failure."""
        quote = await venue.get_quote(in_symbol, out_symbol, in_amount)
        if quote is None:
            logger.warning(
                f"[LIVE] {leg.capitalize()} quote unavailable on {venue.name}",
                extra={"context": {"trade_id": sm.trade_id, "leg": leg, "venue": venue.name}},
            )
            raise LegFailed(f"{leg} quote unavailable on {venue.name}")

        sm.transition_to(execute_state, metadata={"quoted_out": str(quote.out_amount)})
        min_out = apply_slippage(quote.out_amount, self.config.slippage_bps, SlippageDirection.OUT)
        request = SwapRequest(
            in_symbol=in_symbol,
            out_symbol=out_symbol,
            in_amount=in_amount,
            min_out_amount=min_out,
        )
        swap = await venue.execute_swap(request)
        log_trade_leg(
            logger, leg, venue.name, swap.success, swap.tx_id, swap.description,
            trade_id=sm.trade_id, in_amount=str(in_amount), min_out_amount=str(min_out),
        )
        if not swap.success:
            raise LegFailed(f"{leg} leg failed on {venue.name}: {swap.description}", tx_id=swap.tx_id)
        return quote, swap

    def _venue(self, name: str) -> Venue:
        venue = self.venues.get(name)
        if venue is None:
            raise LegFailed(f"Unknown venue {name!r}")
        return venue

    def _finish(self, sm: LegStateMachine, result: ExecutionResult) -> ExecutionResult:
        result.state = sm.state
        result.daily_count = self.window.count
        result.history = [t.to_dict() for t in sm.history]
        return result
