# PATH: core/constants.py
"""
Constants for XARB.

Contains enums, defaults, and configuration constants.
"""

from decimal import Decimal
from enum import Enum
from typing import Final

# =============================================================================
# TRADING DEFAULTS
# =============================================================================

BPS_DENOMINATOR: Final[int] = 10_000

DEFAULT_SLIPPAGE_BPS = 50
DEFAULT_MAX_NOTIONAL_USD = "200"
DEFAULT_POLL_INTERVAL_MS = 1200

# Denominating asset and its default per-leg size
DENOMINATING_SYMBOL: Final[str] = "SOL"
DEFAULT_TRADE_SIZE_SOL = "0.01"

# Decimals assumed for tokens missing from the registry
DEFAULT_TOKEN_DECIMALS = 9

# Venues that enforce external rate limits get a cooldown after a sell leg
DEFAULT_RATE_LIMITED_VENUES: Final[tuple[str, ...]] = ("jupiter-raydium", "jupiter-whirlpool")
DEFAULT_POST_TRADE_COOLDOWN_SECONDS = 1.0

# =============================================================================
# NETWORK DEFAULTS
# =============================================================================

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_SECONDS = 1.0
DEFAULT_MAX_DELAY_SECONDS = 10.0
DEFAULT_TIMEOUT_SECONDS = 10.0

# Uniform jitter added to each backoff delay
BACKOFF_JITTER_SECONDS = 1.0

DEFAULT_CONNECTIVITY_PROBABILITY = 0.1

JUPITER_QUOTE_URL: Final[str] = "https://quote-api.jup.ag/v6/quote"
JUPITER_SWAP_URL: Final[str] = "https://quote-api.jup.ag/v6/swap"

DEFAULT_CONNECTIVITY_ENDPOINTS: Final[tuple[str, ...]] = (
    "https://api-v3.raydium.io/mint/list",
    (
        "https://quote-api.jup.ag/v6/quote"
        "?inputMint=So11111111111111111111111111111111111111112"
        "&outputMint=EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
        "&amount=1000000"
    ),
)

DEFAULT_RPC_URL: Final[str] = "https://api.mainnet-beta.solana.com"

# =============================================================================
# PRICE SANITY BOUNDS
# =============================================================================

# Round values that upstream integrations return as dummy data on failure
PRICE_SENTINELS: Final[tuple[Decimal, ...]] = (
    Decimal("1"),
    Decimal("0.001"),
    Decimal("1000"),
)

PRICE_MIN: Final[Decimal] = Decimal("0.000000001")
PRICE_MAX: Final[Decimal] = Decimal("1000000")

MAX_PROFIT_PERCENT: Final[Decimal] = Decimal("50")
MAX_PROFIT_USD: Final[Decimal] = Decimal("10000")
MAX_PRICE_DIVERGENCE_PERCENT: Final[Decimal] = Decimal("20")


class OpportunityKind(str, Enum):
    """How an opportunity was derived from the four quotes."""
    SIMPLE_FORWARD = "SIMPLE_FORWARD"
    SIMPLE_REVERSE = "SIMPLE_REVERSE"
    ROUND_TRIP = "ROUND_TRIP"


class SlippageDirection(str, Enum):
    """Which side of a swap the slippage tolerance applies to."""
    IN = "in"
    OUT = "out"


class ErrorCode(str, Enum):
    """Error codes carried by XARB exceptions."""
    # Infrastructure
    INFRA_NETWORK_EXHAUSTED = "INFRA_NETWORK_EXHAUSTED"
    INFRA_RPC_ERROR = "INFRA_RPC_ERROR"

    # Adapter boundary
    ADAPTER_BAD_RESPONSE = "ADAPTER_BAD_RESPONSE"

    # Configuration
    CONFIG_MISSING = "CONFIG_MISSING"
    CONFIG_INVALID = "CONFIG_INVALID"

    # Execution
    INVALID_TRANSITION = "INVALID_TRANSITION"

    UNKNOWN = "UNKNOWN"
