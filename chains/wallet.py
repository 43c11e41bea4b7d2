"""
chains/wallet.py - Signing keypair loading.

Sources, in order:
1. SOLANA_PRIVATE_KEY env var: JSON byte array, comma-separated bytes, or base58
2. Keypair JSON file (solana-keygen format)

Loading is eager: a live venue refuses to start without a usable keypair.
"""

import json
import os
from pathlib import Path
from typing import Mapping, Optional

from solders.keypair import Keypair

from core.constants import ErrorCode
from core.exceptions import ConfigError
from core.logging import get_logger

logger = get_logger(__name__)

PRIVATE_KEY_ENV = "SOLANA_PRIVATE_KEY"


def parse_private_key(raw: str) -> Keypair:
    """
    Parse a private key string into a Keypair.

    Raises:
        ConfigError: If the string is not a valid 64-byte secret key
    """
    raw = raw.strip()
    try:
        if raw.startswith("["):
            return Keypair.from_bytes(bytes(int(x) for x in json.loads(raw)))
        if "," in raw:
            return Keypair.from_bytes(bytes(int(x.strip()) for x in raw.split(",") if x.strip()))
        return Keypair.from_base58_string(raw)
    except (ValueError, TypeError) as e:
        raise ConfigError(
            f"{PRIVATE_KEY_ENV} is not a valid secret key",
            code=ErrorCode.CONFIG_INVALID,
            details={"error": str(e)},
        ) from e


def load_keypair(
    wallet_path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> Keypair:
    """
    Load the signing keypair.

    Args:
        wallet_path: Path to a keypair JSON file
        env: Environment mapping (defaults to os.environ)

    Raises:
        ConfigError: If no usable keypair is found
    """
    env = os.environ if env is None else env

    raw = (env.get(PRIVATE_KEY_ENV) or "").strip()
    if raw:
        keypair = parse_private_key(raw)
        logger.info("Loaded signing keypair from environment", extra={"context": {"pubkey": str(keypair.pubkey())}})
        return keypair

    if not wallet_path:
        raise ConfigError(f"No signing key: set {PRIVATE_KEY_ENV} or WALLET_KEYPAIR_PATH")

    path = Path(wallet_path)
    if not path.exists():
        raise ConfigError(f"Keypair file not found: {path}", details={"path": str(path)})

    try:
        keypair = Keypair.from_json(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise ConfigError(
            f"Keypair file is not valid: {path}",
            code=ErrorCode.CONFIG_INVALID,
            details={"path": str(path), "error": str(e)},
        ) from e

    logger.info("Loaded signing keypair from file", extra={"context": {"pubkey": str(keypair.pubkey())}})
    return keypair
