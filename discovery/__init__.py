"""
discovery/ - Token metadata resolution.
"""

from discovery.registry import BUILTIN_TOKENS, TokenRegistry, normalize_symbol

__all__ = [
    "BUILTIN_TOKENS",
    "TokenRegistry",
    "normalize_symbol",
]
