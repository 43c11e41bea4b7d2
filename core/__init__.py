"""
core - Core utilities and models for XARB.

This package contains:
- models.py: Data models (TokenInfo, Quote, Opportunity, SwapRequest, SwapResult)
- constants.py: Enums, defaults and sanity bounds
- exceptions.py: Typed exceptions with error codes
- math.py: Fixed-point conversions and slippage (no float money)
- validators.py: Realism guard for prices and opportunities
- time.py: UTC day keys
- logging.py: Structured JSON logging
"""

from core.constants import ErrorCode, OpportunityKind, SlippageDirection
from core.exceptions import (
    AdapterResponseError,
    ArbError,
    ConfigError,
    InfraError,
    RPCError,
)
from core.logging import get_logger, setup_logging
from core.models import (
    Opportunity,
    Quote,
    SwapRequest,
    SwapResult,
    TokenInfo,
)

__all__ = [
    # Constants
    "ErrorCode",
    "OpportunityKind",
    "SlippageDirection",
    # Exceptions
    "AdapterResponseError",
    "ArbError",
    "ConfigError",
    "InfraError",
    "RPCError",
    # Models
    "Opportunity",
    "Quote",
    "SwapRequest",
    "SwapResult",
    "TokenInfo",
    # Logging
    "get_logger",
    "setup_logging",
]
