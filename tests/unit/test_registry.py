"""
tests/unit/test_registry.py - Registry tests.
"""

import pytest

from core.constants import ErrorCode
from core.exceptions import ConfigError
from core.models import TokenInfo
from discovery.registry import BUILTIN_TOKENS, TokenRegistry, normalize_symbol


class TestNormalizeSymbol:
    def test_trims_and_uppercases(self):
        assert normalize_symbol("  sol ") == "SOL"

    def test_none_is_empty(self):
        assert normalize_symbol(None) == ""


class TestBuiltinTier:
    def test_sol(self, registry):
        sol = registry.lookup("SOL")
        assert sol.mint == "So11111111111111111111111111111111111111112"
        assert sol.decimals == 9

    def test_usdc(self, registry):
        usdc = registry.lookup("USDC")
        assert usdc.mint == "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
        assert usdc.decimals == 6

    def test_case_insensitive(self, registry):
        assert registry.lookup(" usdc ") == BUILTIN_TOKENS["USDC"]

    def test_unknown(self, registry):
        assert registry.lookup("FOO") is None
        assert registry.lookup("") is None

    def test_decimals_for_unknown_uses_default(self, registry):
        assert registry.decimals_for("FOO") == 9
        assert registry.decimals_for("FOO", default=4) == 4


class TestOverrideTier:
    """MINT_<SYM> / DECIMALS_<SYM> take precedence over builtins."""

    def test_full_override(self):
        registry = TokenRegistry(env={"MINT_BONK": "BonkMint111", "DECIMALS_BONK": "5"})
        assert registry.lookup("bonk") == TokenInfo(symbol="BONK", mint="BonkMint111", decimals=5)

    def test_mint_override_keeps_builtin_decimals(self):
        registry = TokenRegistry(env={"MINT_USDC": "OtherUsdcMint"})
        usdc = registry.lookup("USDC")
        assert usdc.mint == "OtherUsdcMint"
        assert usdc.decimals == 6

    def test_decimals_override_keeps_builtin_mint(self):
        registry = TokenRegistry(env={"DECIMALS_SOL": "8"})
        sol = registry.lookup("SOL")
        assert sol.mint == BUILTIN_TOKENS["SOL"].mint
        assert sol.decimals == 8

    def test_new_mint_without_decimals_defaults_to_nine(self):
        registry = TokenRegistry(env={"MINT_JUP": "JupMint111"})
        assert registry.lookup("JUP").decimals == 9

    def test_blank_override_ignored(self):
        registry = TokenRegistry(env={"MINT_SOL": "  ", "DECIMALS_SOL": ""})
        assert registry.lookup("SOL") == BUILTIN_TOKENS["SOL"]

    def test_decimals_without_any_mint_raises(self):
        registry = TokenRegistry(env={"DECIMALS_FOO": "6"})
        with pytest.raises(ConfigError):
            registry.lookup("FOO")

    def test_non_integer_decimals_raises(self):
        registry = TokenRegistry(env={"DECIMALS_SOL": "nine"})
        with pytest.raises(ConfigError) as exc_info:
            registry.lookup("SOL")
        assert exc_info.value.code == ErrorCode.CONFIG_INVALID

    def test_custom_builtins(self):
        token = TokenInfo(symbol="XYZ", mint="XyzMint", decimals=3)
        registry = TokenRegistry(builtins={"XYZ": token}, env={})
        assert registry.lookup("xyz") == token
        assert registry.lookup("SOL") is None
