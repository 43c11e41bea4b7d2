# PATH: core/validators.py
"""
Realism guard for XARB.

Pure predicates that reject degenerate prices and implausible opportunities
before they can be mistaken for real arbitrage. Every bound here is an
upper-bound sanity fuse, not a risk parameter: profit floors live in the
detector's threshold gate.

CONTRACTS:
- price_is_plausible(): False for non-positive, non-finite, sentinel or
  out-of-band prices
- opportunity_is_plausible(): short-circuits on an implausible price before
  looking at any profit figure

USAGE:
    from core.validators import price_is_plausible, opportunity_is_plausible

    if not opportunity_is_plausible(profit_usd, profit_pct, p1, p2, "SOL/USDC"):
        return None
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

from core.constants import (
    MAX_PRICE_DIVERGENCE_PERCENT,
    MAX_PROFIT_PERCENT,
    MAX_PROFIT_USD,
    PRICE_MAX,
    PRICE_MIN,
    PRICE_SENTINELS,
)
from core.logging import get_logger
from core.math import Number, safe_decimal

logger = get_logger("xarb.validators")


@dataclass(frozen=True)
class SanityBounds:
    """Configured limits for the realism guard."""
    price_min: Decimal = PRICE_MIN
    price_max: Decimal = PRICE_MAX
    sentinels: Tuple[Decimal, ...] = PRICE_SENTINELS
    max_profit_percent: Decimal = MAX_PROFIT_PERCENT
    max_profit_usd: Decimal = MAX_PROFIT_USD
    max_price_divergence_percent: Decimal = MAX_PRICE_DIVERGENCE_PERCENT


DEFAULT_BOUNDS = SanityBounds()


def _reject(label: str, reason: str, message: str, **values: object) -> bool:
    logger.warning(
        f"[Validation] {message} for {label}",
        extra={"context": {"label": label, "reason": reason, **{k: str(v) for k, v in values.items()}}},
    )
    return False


def price_is_plausible(
    price: Number,
    label: str,
    bounds: Optional[SanityBounds] = None,
) -> bool:
    """
    Check that a price looks like a real market price.

    Args:
        price: Human-scale price (out per 1 in)
        label: Pair/venue label for the rejection log
        bounds: Sanity bounds (defaults to DEFAULT_BOUNDS)

    Returns:
        True if the price is positive, finite, not a sentinel and in band
    """
    bounds = bounds or DEFAULT_BOUNDS
    value = safe_decimal(price, default=Decimal("NaN"))

    if not value.is_finite():
        return _reject(label, "non_finite", f"Invalid price {price}", price=price)

    if value <= 0:
        return _reject(label, "non_positive", f"Invalid price {price}", price=price)

    if value in bounds.sentinels:
        return _reject(
            label, "sentinel",
            f"Suspicious round price {value} (possible fallback data)",
            price=value,
        )

    if value < bounds.price_min or value > bounds.price_max:
        return _reject(
            label, "out_of_band",
            f"Price {value} outside [{bounds.price_min}, {bounds.price_max}]",
            price=value, price_min=bounds.price_min, price_max=bounds.price_max,
        )

    return True


def opportunity_is_plausible(
    profit_usd: Number,
    profit_percent: Number,
    price1: Number,
    price2: Number,
    label: str,
    bounds: Optional[SanityBounds] = None,
) -> bool:
    """
    Check that an opportunity is realistic rather than a data bug.

    price1 and price2 must express the same conceptual exchange rate
    (out per 1 in, same direction).

    Args:
        profit_usd: Estimated profit in USD
        profit_percent: Estimated edge in percent
        price1: Price on the first venue
        price2: Price on the second venue
        label: Pair label for the rejection log
        bounds: Sanity bounds (defaults to DEFAULT_BOUNDS)

    Returns:
        True if all four sanity fuses hold
    """
    bounds = bounds or DEFAULT_BOUNDS

    if not price_is_plausible(price1, f"{label}-venue1", bounds):
        return False
    if not price_is_plausible(price2, f"{label}-venue2", bounds):
        return False

    pct = safe_decimal(profit_percent)
    if pct > bounds.max_profit_percent:
        return _reject(
            label, "profit_percent",
            f"Unrealistic profit margin {pct}%",
            profit_percent=pct, max_profit_percent=bounds.max_profit_percent,
        )

    usd = safe_decimal(profit_usd)
    if usd > bounds.max_profit_usd:
        return _reject(
            label, "profit_usd",
            f"Unrealistic profit amount ${usd}",
            profit_usd=usd, max_profit_usd=bounds.max_profit_usd,
        )

    p1 = safe_decimal(price1)
    p2 = safe_decimal(price2)
    divergence = abs(p1 - p2) / ((p1 + p2) / 2) * 100
    if divergence > bounds.max_price_divergence_percent:
        return _reject(
            label, "price_divergence",
            f"Unrealistic price difference {divergence:.2f}% between venues",
            divergence_percent=divergence,
            max_divergence_percent=bounds.max_price_divergence_percent,
        )

    logger.debug(
        f"[Validation] Opportunity validated for {label}",
        extra={"context": {"label": label, "profit_usd": str(usd), "profit_percent": str(pct)}},
    )
    return True
