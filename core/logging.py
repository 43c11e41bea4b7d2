"""
core/logging.py - Structured JSON logging.

All logs include:
- timestamp (ISO 8601)
- level
- logger
- message
- context (venue, pair, tx_id, latency_ms, etc.)

Contextual fields are passed only via extra={"context": {...}}.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Global context that gets added to all log entries
_global_context: dict[str, Any] = {}


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Output format:
    {
        "timestamp": "2026-01-04T12:00:00.000+00:00",
        "level": "INFO",
        "logger": "xarb.detector",
        "message": "Quotes fetched",
        "context": {
            "venue": "jupiter-raydium",
            "price": "0.000073"
        }
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = {}
        context.update(_global_context)

        if hasattr(record, "context") and record.context:
            context.update(record.context)

        if record.exc_info:
            context["exception"] = self.formatException(record.exc_info)

        if context:
            log_entry["context"] = context

        return json.dumps(log_entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable formatter for console output.
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        base = f"{timestamp} | {record.levelname:<8} | {record.name} | {record.getMessage()}"

        if hasattr(record, "context") and record.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in list(record.context.items())[:4])
            if len(record.context) > 4:
                ctx_str += f", ... (+{len(record.context) - 4} more)"
            base += f" | {ctx_str}"

        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)

        return base


class ContextAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds context to all log entries.
    """

    def process(
        self, msg: str, kwargs: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        extra = kwargs.get("extra", {})
        context = {**self.extra, **extra.get("context", {})}

        kwargs["extra"] = {"context": context}
        return msg, kwargs


def set_global_context(**kwargs: Any) -> None:
    """
    Set global context that gets added to all log entries.

    Example:
        set_global_context(service="xarb", mode="dry-run")
    """
    _global_context.update(kwargs)


def clear_global_context() -> None:
    """Clear global logging context."""
    _global_context.clear()


def get_logger(name: str, **context: Any) -> ContextAdapter:
    """
    Get a logger with optional default context.

    Args:
        name: Logger name (e.g., "xarb.detector")
        **context: Default context for all log entries from this logger

    Returns:
        ContextAdapter with structured logging

    Example:
        logger = get_logger("xarb.venue", venue="jupiter-raydium")
        logger.info("Quote fetched", extra={"context": {"latency_ms": 50}})
    """
    logger = logging.getLogger(name)
    return ContextAdapter(logger, context)


def setup_logging(
    level: str = "INFO",
    json_output: bool = True,
    log_file: str | None = None,
) -> None:
    """
    Setup logging configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: Use JSON formatting (recommended for production)
        log_file: Optional file path for logging (always JSON)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JSONFormatter() if json_output else ConsoleFormatter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def log_quote(logger: ContextAdapter, label: str, quote: Any) -> None:
    """Log a quote (or its absence) with standard context."""
    if quote is None:
        logger.info(f"[quotes] {label}: unavailable", extra={"context": {"label": label}})
        return
    logger.info(
        f"[quotes] {label}: {quote.venue} {quote.in_symbol}->{quote.out_symbol} price={quote.price:.6f}",
        extra={
            "context": {
                "label": label,
                "venue": quote.venue,
                "in_symbol": quote.in_symbol,
                "out_symbol": quote.out_symbol,
                "in_amount": quote.in_amount,
                "out_amount": quote.out_amount,
                "price": str(quote.price),
            }
        },
    )


def log_opportunity(
    logger: ContextAdapter,
    opportunity: Any,
    status: str,
    **extra: Any,
) -> None:
    """Log an opportunity decision with standard context."""
    logger.info(
        f"Opportunity: {opportunity.kind.value} buy@{opportunity.buy_venue} "
        f"sell@{opportunity.sell_venue} | {status} | est ${opportunity.est_profit_usd:.4f}",
        extra={
            "context": {
                "kind": opportunity.kind.value,
                "buy_venue": opportunity.buy_venue,
                "sell_venue": opportunity.sell_venue,
                "in_symbol": opportunity.in_symbol,
                "out_symbol": opportunity.out_symbol,
                "est_profit_usd": str(opportunity.est_profit_usd),
                "profit_bps": str(opportunity.profit_bps),
                "status": status,
                **extra,
            }
        },
    )


def log_trade_leg(
    logger: ContextAdapter,
    leg: str,
    venue: str,
    success: bool,
    tx_id: str | None = None,
    description: str = "",
    **extra: Any,
) -> None:
    """Log the outcome of one swap leg with standard context."""
    status = "OK" if success else "FAILED"
    log = logger.info if success else logger.warning
    log(
        f"[LIVE] {leg} leg {status} on {venue} tx={tx_id or 'n/a'} {description}".rstrip(),
        extra={
            "context": {
                "leg": leg,
                "venue": venue,
                "success": success,
                "tx_id": tx_id,
                "description": description,
                **extra,
            }
        },
    )
