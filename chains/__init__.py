"""
chains/ - Network and blockchain interaction layer.

Modules:
- network: bounded retry, timeout-bounded HTTP, connectivity gate
- providers: Solana RPC provider with failover
- wallet: signing keypair loading
"""

from chains.network import (
    CONNECTIVITY_POLICY,
    DEFAULT_RETRY_POLICY,
    ConnectivityBreaker,
    ConnectivityChecker,
    NetworkExhaustedError,
    RetryPolicy,
    backoff_delay,
    call_with_retry,
    fetch_with_retry,
)
from chains.providers import (
    RPCResponse,
    RPCStats,
    SolanaRPCProvider,
)

__all__ = [
    # Network
    "CONNECTIVITY_POLICY",
    "DEFAULT_RETRY_POLICY",
    "ConnectivityBreaker",
    "ConnectivityChecker",
    "NetworkExhaustedError",
    "RetryPolicy",
    "backoff_delay",
    "call_with_retry",
    "fetch_with_retry",
    # Providers
    "RPCResponse",
    "RPCStats",
    "SolanaRPCProvider",
]
