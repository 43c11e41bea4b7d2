"""
discovery/registry.py - Token registry.

Two-tier lookup, no magic:
1. Override tier: MINT_<SYM> / DECIMALS_<SYM> from the environment
2. Builtin tier: static table below

Symbols are matched case-insensitively after trimming.
"""

import os
from typing import Mapping, Optional

from core.constants import DEFAULT_TOKEN_DECIMALS, ErrorCode
from core.exceptions import ConfigError
from core.logging import get_logger
from core.models import TokenInfo

logger = get_logger(__name__)


BUILTIN_TOKENS: dict[str, TokenInfo] = {
    "SOL": TokenInfo(
        symbol="SOL",
        mint="So11111111111111111111111111111111111111112",
        decimals=9,
    ),
    "USDC": TokenInfo(
        symbol="USDC",
        mint="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        decimals=6,
    ),
}


def normalize_symbol(symbol: str | None) -> str:
    return (symbol or "").strip().upper()


class TokenRegistry:
    """
    Resolve token symbols to mint + decimals.

    Usage:
        registry = TokenRegistry()
        sol = registry.lookup("sol")
    """

    def __init__(
        self,
        builtins: Optional[Mapping[str, TokenInfo]] = None,
        env: Optional[Mapping[str, str]] = None,
    ):
        self.builtins = dict(BUILTIN_TOKENS if builtins is None else builtins)
        self.env = os.environ if env is None else env

    def _override(self, symbol: str) -> TokenInfo | None:
        mint = (self.env.get(f"MINT_{symbol}") or "").strip()
        decimals_raw = (self.env.get(f"DECIMALS_{symbol}") or "").strip()
        if not mint and not decimals_raw:
            return None

        builtin = self.builtins.get(symbol)
        if not mint:
            if builtin is None:
                raise ConfigError(
                    f"DECIMALS_{symbol} set but MINT_{symbol} missing and no builtin mint",
                    details={"symbol": symbol},
                )
            mint = builtin.mint

        if decimals_raw:
            try:
                decimals = int(decimals_raw)
            except ValueError as e:
                raise ConfigError(
                    f"DECIMALS_{symbol} is not an integer: {decimals_raw!r}",
                    code=ErrorCode.CONFIG_INVALID,
                ) from e
        else:
            decimals = builtin.decimals if builtin else DEFAULT_TOKEN_DECIMALS

        return TokenInfo(symbol=symbol, mint=mint, decimals=decimals)

    def lookup(self, symbol: str) -> TokenInfo | None:
        """Resolve a symbol, override tier first. None if unknown."""
        sym = normalize_symbol(symbol)
        if not sym:
            return None
        override = self._override(sym)
        if override is not None:
            return override
        return self.builtins.get(sym)

    def decimals_for(self, symbol: str, default: int = DEFAULT_TOKEN_DECIMALS) -> int:
        """Decimals for a symbol, or `default` if the symbol is unknown."""
        token = self.lookup(symbol)
        return token.decimals if token else default
