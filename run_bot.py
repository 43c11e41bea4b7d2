#!/usr/bin/env python3
"""
run_bot.py - CLI entrypoint for the cross-venue arbitrage bot.

Usage:
    python run_bot.py                          # dry run, config/strategy.yaml + env
    python run_bot.py --pair SOL,USDC --max-cycles 10
    python run_bot.py --paper --live           # execute against simulated pools
    python run_bot.py --live                   # real swaps (needs a keypair)

Startup order: logging -> config -> connectivity gate -> venues -> loop.
A configuration error or a failed connectivity gate exits with status 1.
"""

import asyncio
import dataclasses
import sys
from decimal import Decimal
from typing import Optional

import click
import httpx

from chains.network import ConnectivityBreaker, ConnectivityChecker
from chains.providers import SolanaRPCProvider
from chains.wallet import load_keypair
from core.exceptions import ConfigError
from core.logging import get_logger, set_global_context, setup_logging
from core.math import from_ui
from dex.adapters.jupiter import JupiterVenue
from dex.adapters.simulated import SimulatedPool, SimulatedVenue
from discovery.registry import TokenRegistry
from execution.dex_dex_executor import DexDexExecutor, ExecutorConfig
from strategy.config import ArbConfig, load_config
from strategy.detector import OpportunityDetector
from strategy.jobs.run_arb import arb_loop, install_signal_handlers

logger = get_logger("xarb.bot")

# Paper pools hold this many base tokens; venue B is priced this much richer
PAPER_POOL_DEPTH = Decimal("1000")
PAPER_PRICE_SKEW = Decimal("1.01")


def build_paper_venues(config: ArbConfig, registry: TokenRegistry) -> list[SimulatedVenue]:
    """Two constant-product venues around the reference price, B skewed up."""
    base, quote = config.tokens
    base_decimals = registry.decimals_for(base)
    quote_decimals = registry.decimals_for(quote)

    def pool(price: Decimal) -> SimulatedPool:
        return SimulatedPool(
            symbol_a=base,
            symbol_b=quote,
            reserve_a=from_ui(PAPER_POOL_DEPTH, base_decimals),
            reserve_b=from_ui(PAPER_POOL_DEPTH * price, quote_decimals),
        )

    return [
        SimulatedVenue("paper-a", registry, [pool(config.reference_price_usd)]),
        SimulatedVenue("paper-b", registry, [pool(config.reference_price_usd * PAPER_PRICE_SKEW)]),
    ]


def build_live_venues(
    config: ArbConfig,
    registry: TokenRegistry,
) -> tuple[list[JupiterVenue], Optional[SolanaRPCProvider]]:
    """
    Two Jupiter venues restricted to disjoint DEX sets.

    Outside dry-run the signing keypair is loaded eagerly.

    Raises:
        ConfigError: No usable keypair for a live run
    """
    keypair = None
    rpc = None
    if not config.dry_run:
        keypair = load_keypair(config.wallet_path)
        rpc = SolanaRPCProvider([config.rpc_url])

    venues = [
        JupiterVenue(
            registry,
            dexes,
            slippage_bps=config.slippage_bps,
            keypair=keypair,
            rpc=rpc,
            priority_fee_lamports=config.priority_fee_lamports,
            compute_unit_price_microlamports=config.compute_unit_price_microlamports,
        )
        for dexes in (config.venue_a_dexes, config.venue_b_dexes)
    ]
    return venues, rpc


async def run_bot(
    config: ArbConfig,
    registry: TokenRegistry,
    paper: bool,
    skip_connectivity: bool,
    max_cycles: Optional[int],
) -> int:
    """Wire everything and run the loop. Returns the process exit code."""
    async with httpx.AsyncClient() as client:
        use_gate = not paper and not skip_connectivity
        checker = ConnectivityChecker(client, config.connectivity_endpoints)

        if use_gate and not await checker.check():
            logger.error("Startup connectivity gate failed, refusing to start")
            return 1

        rpc = None
        if paper:
            venues = build_paper_venues(config, registry)
        else:
            try:
                venues, rpc = build_live_venues(config, registry)
            except ConfigError as e:
                logger.error(f"Configuration error: {e}", extra={"context": {"code": e.code.value}})
                return 1

        try:
            breaker = None
            if use_gate:
                breaker = ConnectivityBreaker(
                    every=config.connectivity_check_every,
                    probability=config.connectivity_check_probability,
                    seed=config.connectivity_check_seed,
                )

            venue_a, venue_b = venues
            detector = OpportunityDetector(
                venue_a,
                venue_b,
                registry,
                min_profit_usd=config.min_profit_usd,
                min_profit_bps=config.min_profit_bps,
                bounds=config.sanity,
                breaker=breaker,
                connectivity=checker if use_gate else None,
            )
            executor = DexDexExecutor(venues, registry, ExecutorConfig.from_arb_config(config))

            install_signal_handlers()
            await arb_loop(
                detector,
                executor,
                config.tokens,
                config.reference_price_usd,
                config.max_notional_usd,
                config.interval_seconds,
                max_cycles=max_cycles,
            )
        finally:
            for venue in venues:
                if isinstance(venue, JupiterVenue):
                    await venue.close()
            if rpc is not None:
                await rpc.close()

    return 0


@click.command()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Strategy YAML (default: config/strategy.yaml)")
@click.option("--pair", "-p", default=None, help="Token pair as BASE,QUOTE (default: TOKENS)")
@click.option("--interval", "-i", type=float, default=None, help="Seconds between cycles")
@click.option("--dry-run/--live", default=None, help="Override DRY_RUN")
@click.option("--max-cycles", type=int, default=None, help="Stop after N cycles")
@click.option("--log-level", "-l", default="INFO", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]))
@click.option("--json-logs/--no-json-logs", default=True, help="Use JSON log format")
@click.option("--skip-connectivity", is_flag=True, help="Skip the startup gate and in-loop breaker")
@click.option("--paper", is_flag=True, help="Trade against simulated constant-product pools")
def main(
    config_path: Optional[str],
    pair: Optional[str],
    interval: Optional[float],
    dry_run: Optional[bool],
    max_cycles: Optional[int],
    log_level: str,
    json_logs: bool,
    skip_connectivity: bool,
    paper: bool,
) -> None:
    """
    XARB cross-venue arbitrage bot.

    Compares quotes for one pair on two venues and executes the best
    plausible opportunity as two sequential swap legs.
    """
    setup_logging(level=log_level, json_output=json_logs)
    set_global_context(service="xarb", version="0.1.0")

    try:
        config = load_config(config_path)
        overrides = {}
        if pair:
            base, _, quote = pair.partition(",")
            if not base.strip() or not quote.strip():
                raise ConfigError(f"--pair must look like BASE,QUOTE, got {pair!r}")
            overrides["tokens"] = (base.strip().upper(), quote.strip().upper())
        if interval is not None:
            overrides["scan_interval_seconds"] = interval
        if dry_run is not None:
            overrides["dry_run"] = dry_run
        config = dataclasses.replace(config, **overrides)

        registry = TokenRegistry()
        for symbol in config.tokens:
            if registry.lookup(symbol) is None:
                raise ConfigError(
                    f"Unknown token {symbol}: set MINT_{symbol} and DECIMALS_{symbol}",
                    details={"symbol": symbol},
                )
    except ConfigError as e:
        logger.error(f"Configuration error: {e}", extra={"context": {"code": e.code.value}})
        sys.exit(1)

    logger.info(
        "Starting XARB",
        extra={
            "context": {
                "pair": "/".join(config.tokens),
                "dry_run": config.dry_run,
                "paper": paper,
                "venue_a_dexes": list(config.venue_a_dexes),
                "venue_b_dexes": list(config.venue_b_dexes),
                "min_profit_usd": str(config.min_profit_usd),
                "max_notional_usd": str(config.max_notional_usd),
                "interval_seconds": config.interval_seconds,
                "max_daily_trades": config.max_daily_trades,
            }
        },
    )

    try:
        exit_code = asyncio.run(run_bot(config, registry, paper, skip_connectivity, max_cycles))
    except KeyboardInterrupt:
        logger.info("XARB interrupted")
        exit_code = 0
    except Exception as e:
        logger.error(f"XARB error: {e}", extra={"context": {"error": str(e)}}, exc_info=True)
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
