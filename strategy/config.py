"""
strategy/config.py - Strategy configuration.

Each option resolves in order: environment variable -> YAML -> default.
Options with no default are required; a missing required option raises
ConfigError at startup.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

import yaml
from dotenv import load_dotenv

from config import DEFAULT_STRATEGY_FILE, load_yaml
from core.constants import (
    DEFAULT_CONNECTIVITY_ENDPOINTS,
    DEFAULT_CONNECTIVITY_PROBABILITY,
    DEFAULT_MAX_NOTIONAL_USD,
    DEFAULT_POLL_INTERVAL_MS,
    DEFAULT_POST_TRADE_COOLDOWN_SECONDS,
    DEFAULT_RATE_LIMITED_VENUES,
    DEFAULT_RPC_URL,
    DEFAULT_SLIPPAGE_BPS,
    DEFAULT_TRADE_SIZE_SOL,
    ErrorCode,
)
from core.exceptions import ConfigError
from core.validators import SanityBounds

REQUIRED = object()


@dataclass
class ArbConfig:
    """Full strategy configuration."""

    min_profit_usd: Decimal
    min_profit_bps: Optional[Decimal] = None
    max_notional_usd: Decimal = Decimal(DEFAULT_MAX_NOTIONAL_USD)
    slippage_bps: int = DEFAULT_SLIPPAGE_BPS
    max_daily_trades: Optional[int] = None
    dry_run: bool = True
    max_trade_size_sol: Optional[Decimal] = None

    rpc_url: str = DEFAULT_RPC_URL
    wallet_path: str = "./keypair.json"
    tokens: tuple[str, str] = ("SOL", "USDC")
    reference_price_usd: Decimal = Decimal("1")

    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    scan_interval_seconds: Optional[float] = None

    priority_fee_lamports: int = 0
    compute_unit_price_microlamports: int = 0

    venue_a_dexes: tuple[str, ...] = ("Raydium",)
    venue_b_dexes: tuple[str, ...] = ("Whirlpool",)
    rate_limited_venues: tuple[str, ...] = DEFAULT_RATE_LIMITED_VENUES
    post_trade_cooldown_seconds: float = DEFAULT_POST_TRADE_COOLDOWN_SECONDS

    connectivity_check_every: Optional[int] = None
    connectivity_check_probability: float = DEFAULT_CONNECTIVITY_PROBABILITY
    connectivity_check_seed: Optional[int] = None
    connectivity_endpoints: tuple[str, ...] = DEFAULT_CONNECTIVITY_ENDPOINTS

    sanity: SanityBounds = field(default_factory=SanityBounds)

    @property
    def interval_seconds(self) -> float:
        """Seconds between cycles; scan_interval_seconds wins when set."""
        if self.scan_interval_seconds:
            return self.scan_interval_seconds
        return self.poll_interval_ms / 1000

    @property
    def trade_size_sol(self) -> Decimal:
        return self.max_trade_size_sol if self.max_trade_size_sol is not None else Decimal(DEFAULT_TRADE_SIZE_SOL)


# =============================================================================
# PARSERS
# =============================================================================

def _parse_decimal(value: Any) -> Decimal:
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"not a decimal: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"not a finite decimal: {value!r}")
    return result


def _parse_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"not an integer: {value!r}")
    return int(str(value).strip())


def _parse_float(value: Any) -> float:
    return float(str(value).strip())


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _parse_list(value: Any) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        items = [str(v) for v in value]
    else:
        items = str(value).split(",")
    return tuple(s.strip() for s in items if s.strip())


def _parse_pair(value: Any) -> tuple[str, str]:
    items = _parse_list(value)
    if len(items) != 2:
        raise ValueError(f"expected exactly two tokens, got {list(items)}")
    return items[0].upper(), items[1].upper()


# key -> (env var, parser, default)
OPTIONS: dict[str, tuple[Optional[str], Callable[[Any], Any], Any]] = {
    "min_profit_usd": ("MIN_PROFIT_USD", _parse_decimal, REQUIRED),
    "min_profit_bps": ("MIN_PROFIT_BPS", _parse_decimal, None),
    "max_notional_usd": ("MAX_NOTIONAL_USD", _parse_decimal, Decimal(DEFAULT_MAX_NOTIONAL_USD)),
    "slippage_bps": ("SLIPPAGE_BPS", _parse_int, DEFAULT_SLIPPAGE_BPS),
    "max_daily_trades": ("MAX_DAILY_TRADES", _parse_int, None),
    "dry_run": ("DRY_RUN", _parse_bool, True),
    "max_trade_size_sol": ("MAX_TRADE_SIZE_SOL", _parse_decimal, None),
    "rpc_url": ("SOLANA_RPC_URL", str, DEFAULT_RPC_URL),
    "wallet_path": ("WALLET_KEYPAIR_PATH", str, "./keypair.json"),
    "tokens": ("TOKENS", _parse_pair, ("SOL", "USDC")),
    "reference_price_usd": ("REFERENCE_PRICE_USD", _parse_decimal, Decimal("1")),
    "poll_interval_ms": ("POLL_INTERVAL_MS", _parse_int, DEFAULT_POLL_INTERVAL_MS),
    "scan_interval_seconds": ("SCAN_INTERVAL_SECONDS", _parse_float, None),
    "priority_fee_lamports": ("PRIORITY_FEE_MICROLAMPORTS", _parse_int, 0),
    "compute_unit_price_microlamports": ("COMPUTE_UNIT_PRICE_MICROLAMPORTS", _parse_int, 0),
    "venue_a_dexes": ("VENUE_A_DEXES", _parse_list, ("Raydium",)),
    "venue_b_dexes": ("VENUE_B_DEXES", _parse_list, ("Whirlpool",)),
    "rate_limited_venues": ("RATE_LIMITED_VENUES", _parse_list, DEFAULT_RATE_LIMITED_VENUES),
    "post_trade_cooldown_seconds": (None, _parse_float, DEFAULT_POST_TRADE_COOLDOWN_SECONDS),
    "connectivity_check_every": ("CONNECTIVITY_CHECK_EVERY", _parse_int, None),
    "connectivity_check_probability": ("CONNECTIVITY_CHECK_PROBABILITY", _parse_float, DEFAULT_CONNECTIVITY_PROBABILITY),
    "connectivity_check_seed": ("CONNECTIVITY_CHECK_SEED", _parse_int, None),
    "connectivity_endpoints": (None, _parse_list, DEFAULT_CONNECTIVITY_ENDPOINTS),
}

SANITY_PARSERS: dict[str, Callable[[Any], Any]] = {
    "price_min": _parse_decimal,
    "price_max": _parse_decimal,
    "sentinels": lambda v: tuple(_parse_decimal(x) for x in _parse_list(v)),
    "max_profit_percent": _parse_decimal,
    "max_profit_usd": _parse_decimal,
    "max_price_divergence_percent": _parse_decimal,
}


def resolve_option(
    key: str,
    env: Mapping[str, str],
    file_values: Mapping[str, Any],
) -> Any:
    """
    Resolve one option: env override first, then YAML, then default.

    Empty env strings count as unset.

    Raises:
        ConfigError: Required option missing, or a value fails to parse
    """
    env_name, parser, default = OPTIONS[key]

    raw: Any = None
    source = "default"
    if env_name and env.get(env_name, "") != "":
        raw, source = env[env_name], f"env {env_name}"
    elif file_values.get(key) is not None:
        raw, source = file_values[key], "config file"

    if raw is None:
        if default is REQUIRED:
            hint = f" (set {env_name} or '{key}' in the config file)" if env_name else ""
            raise ConfigError(f"Missing required config: {key}{hint}", details={"key": key})
        return default

    try:
        return parser(raw)
    except ValueError as e:
        raise ConfigError(
            f"Invalid value for {key} from {source}: {e}",
            code=ErrorCode.CONFIG_INVALID,
            details={"key": key, "source": source},
        ) from e


def _load_sanity(data: Any) -> SanityBounds:
    if not data:
        return SanityBounds()
    if not isinstance(data, dict):
        raise ConfigError("'sanity' must be a mapping", code=ErrorCode.CONFIG_INVALID)

    values = {}
    for key, value in data.items():
        parser = SANITY_PARSERS.get(key)
        if parser is None:
            raise ConfigError(f"Unknown sanity option: {key}", code=ErrorCode.CONFIG_INVALID)
        try:
            values[key] = parser(value)
        except ValueError as e:
            raise ConfigError(
                f"Invalid value for sanity.{key}: {e}",
                code=ErrorCode.CONFIG_INVALID,
            ) from e
    return SanityBounds(**values)


def load_config(
    config_path: Path | None = None,
    env: Optional[Mapping[str, str]] = None,
    use_dotenv: bool = True,
) -> ArbConfig:
    """
    Load strategy configuration.

    Args:
        config_path: YAML file (default: config/strategy.yaml, skipped if absent)
        env: Environment mapping (default: os.environ after load_dotenv())
        use_dotenv: Load a .env file into os.environ first

    Returns:
        ArbConfig

    Raises:
        ConfigError: Missing required option or malformed value
    """
    if env is None:
        if use_dotenv:
            load_dotenv()
        env = os.environ

    file_values: dict[str, Any] = {}
    path = Path(config_path) if config_path is not None else DEFAULT_STRATEGY_FILE
    if path.exists():
        try:
            file_values = load_yaml(path)
        except (ValueError, yaml.YAMLError) as e:
            raise ConfigError(str(e), code=ErrorCode.CONFIG_INVALID) from e
    elif config_path is not None:
        raise ConfigError(f"Config file not found: {path}", details={"path": str(path)})

    values = {key: resolve_option(key, env, file_values) for key in OPTIONS}
    values["sanity"] = _load_sanity(file_values.get("sanity"))

    if values["slippage_bps"] < 0 or values["slippage_bps"] >= 10_000:
        raise ConfigError(
            f"slippage_bps must be in [0, 10000), got {values['slippage_bps']}",
            code=ErrorCode.CONFIG_INVALID,
        )
    if values["max_notional_usd"] <= 0:
        raise ConfigError("max_notional_usd must be positive", code=ErrorCode.CONFIG_INVALID)

    return ArbConfig(**values)
