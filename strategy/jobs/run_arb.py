# PATH: strategy/jobs/run_arb.py
"""
strategy/jobs/run_arb.py - Detect-then-execute loop.

One cycle = detector.evaluate() followed, when an opportunity is found,
by executor.execute(). Cycles never overlap: the loop awaits the cycle,
then sleeps the poll interval. Exceptions raised inside a cycle are
logged and counted; they never stop the loop.
"""

import asyncio
import signal
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from core.exceptions import InfraError
from core.logging import get_logger
from core.time import now_utc
from execution.dex_dex_executor import DexDexExecutor
from strategy.detector import OpportunityDetector

logger = get_logger("xarb.loop")

Sleeper = Callable[[float], Awaitable[Any]]

# Graceful shutdown flag
_shutdown_requested = False


def handle_shutdown(signum: int, frame: object) -> None:
    """Handle shutdown signals."""
    request_shutdown()
    logger.info("Shutdown requested", extra={"context": {"signal": signum}})


def request_shutdown() -> None:
    global _shutdown_requested
    _shutdown_requested = True


def reset_shutdown() -> None:
    global _shutdown_requested
    _shutdown_requested = False


def install_signal_handlers() -> None:
    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)


@dataclass
class CycleSummary:
    """Outcome of one detect-then-execute cycle."""
    cycle: int
    started_at: str
    duration_ms: int = 0
    opportunity: Optional[Dict[str, Any]] = None
    execution: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def found_opportunity(self) -> bool:
        return self.opportunity is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycle": self.cycle,
            "started_at": self.started_at,
            "duration_ms": self.duration_ms,
            "opportunity": self.opportunity,
            "execution": self.execution,
            "error": self.error,
        }


@dataclass
class ArbSession:
    """Running totals for one process lifetime."""
    started_at: datetime = field(default_factory=now_utc)
    cycles: int = 0
    opportunities: int = 0
    completed: int = 0
    unhedged: int = 0
    errors: int = 0
    est_profit_usd: Decimal = Decimal("0")

    def record(self, summary: CycleSummary) -> None:
        self.cycles += 1
        if summary.error:
            self.errors += 1
        if summary.opportunity is not None:
            self.opportunities += 1
        execution = summary.execution or {}
        if execution.get("is_success"):
            self.completed += 1
            self.est_profit_usd += Decimal(execution["est_profit_usd"])
        if execution.get("is_unhedged"):
            self.unhedged += 1

    def get_summary(self) -> Dict[str, Any]:
        elapsed = now_utc() - self.started_at
        return {
            "session_start": self.started_at.isoformat(),
            "elapsed_seconds": int(elapsed.total_seconds()),
            "cycles": self.cycles,
            "opportunities": self.opportunities,
            "completed": self.completed,
            "unhedged": self.unhedged,
            "errors": self.errors,
            "est_profit_usd": str(self.est_profit_usd),
        }


async def run_cycle(
    detector: OpportunityDetector,
    executor: DexDexExecutor,
    pair: Tuple[str, str],
    reference_price_usd: Decimal,
    notional_usd: Decimal,
    cycle: int = 0,
) -> CycleSummary:
    """
    Run one cycle. Never raises.

    Returns:
        CycleSummary
    """
    started = now_utc()
    summary = CycleSummary(cycle=cycle, started_at=started.isoformat())

    try:
        opportunity = await detector.evaluate(pair, reference_price_usd, notional_usd)
        if opportunity is not None:
            summary.opportunity = opportunity.to_dict()
            result = await executor.execute(opportunity)
            summary.execution = result.to_dict()

    except InfraError as e:
        summary.error = str(e)
        logger.error(f"Infra error: {e.message}", extra={"context": {"cycle": cycle, "code": e.code.value}})

    except Exception as e:
        summary.error = str(e)
        logger.error(f"Cycle error: {e}", extra={"context": {"cycle": cycle}}, exc_info=True)

    summary.duration_ms = int((now_utc() - started).total_seconds() * 1000)
    return summary


async def arb_loop(
    detector: OpportunityDetector,
    executor: DexDexExecutor,
    pair: Tuple[str, str],
    reference_price_usd: Decimal,
    notional_usd: Decimal,
    interval_seconds: float,
    max_cycles: Optional[int] = None,
    session: Optional[ArbSession] = None,
    sleep: Sleeper = asyncio.sleep,
) -> ArbSession:
    """
    Continuous detect-then-execute loop.

    Args:
        interval_seconds: Sleep between cycles
        max_cycles: Stop after this many cycles (None for infinite)
        session: Totals to update (a new one if None)
        sleep: Sleep coroutine (injectable for tests)
    """
    session = session or ArbSession()
    cycle_count = 0

    while not _shutdown_requested:
        cycle_count += 1
        logger.debug(f"=== Arb Cycle {cycle_count} ===")

        summary = await run_cycle(detector, executor, pair, reference_price_usd, notional_usd, cycle_count)
        session.record(summary)

        if cycle_count % 10 == 0:
            logger.info("Arb loop progress", extra={"context": session.get_summary()})

        if max_cycles is not None and cycle_count >= max_cycles:
            logger.info("Max cycles reached", extra={"context": {"max_cycles": max_cycles}})
            break

        if not _shutdown_requested:
            await sleep(interval_seconds)

    logger.info("Arb loop terminated", extra={"context": session.get_summary()})
    return session
