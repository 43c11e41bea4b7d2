"""
chains/providers.py - Solana JSON-RPC provider with failover.

Provides reliable RPC access with:
- Multiple endpoint failover
- Request timeout handling
- Latency tracking per endpoint
- Transaction submission and confirmation polling
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any

import httpx

from core.exceptions import RPCError
from core.logging import get_logger

logger = get_logger(__name__)

CONFIRMED_STATUSES = ("confirmed", "finalized")


@dataclass
class RPCStats:
    """Statistics for an RPC endpoint."""
    url: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None
    last_success_ts: int | None = None

    @property
    def avg_latency_ms(self) -> int:
        if self.successful_requests == 0:
            return 0
        return self.total_latency_ms // self.successful_requests

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests


@dataclass
class RPCResponse:
    """Response from an RPC call."""
    result: Any
    latency_ms: int
    endpoint_used: str


class SolanaRPCProvider:
    """
    Solana RPC provider with failover support.

    Tries each endpoint in order until one succeeds. Owns its HTTP client.
    """

    def __init__(
        self,
        rpc_urls: list[str],
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.rpc_urls = [u for u in rpc_urls if u]
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._request_id = 0

        self.stats: dict[str, RPCStats] = {
            url: RPCStats(url=url) for url in self.rpc_urls
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                limits=httpx.Limits(max_connections=10),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def call(
        self,
        method: str,
        params: list | None = None,
    ) -> RPCResponse:
        """
        Make an RPC call with failover.

        Raises:
            RPCError: If all endpoints fail
        """
        if not self.rpc_urls:
            raise RPCError("No RPC endpoints configured")

        client = self._get_client()
        last_error: Exception | None = None

        for url in self.rpc_urls:
            stats = self.stats[url]
            stats.total_requests += 1

            payload = {
                "jsonrpc": "2.0",
                "method": method,
                "params": params or [],
                "id": self._next_request_id(),
            }

            start_ms = int(time.time() * 1000)

            try:
                resp = await client.post(url, json=payload)
                latency_ms = int(time.time() * 1000) - start_ms
                resp.raise_for_status()
                result = resp.json()

                if "error" in result:
                    error = result["error"]
                    error_msg = error.get("message", str(error)) if isinstance(error, dict) else str(error)
                    stats.failed_requests += 1
                    stats.last_error = error_msg
                    last_error = RPCError(f"RPC error: {error_msg}", details={"url": url, "method": method})
                    logger.debug(f"RPC error from {url}: {error_msg}")
                    continue

                stats.successful_requests += 1
                stats.total_latency_ms += latency_ms
                stats.last_success_ts = int(time.time() * 1000)

                return RPCResponse(
                    result=result.get("result"),
                    latency_ms=latency_ms,
                    endpoint_used=url,
                )

            except httpx.TimeoutException as e:
                latency_ms = int(time.time() * 1000) - start_ms
                stats.failed_requests += 1
                stats.last_error = f"Timeout after {latency_ms}ms"
                last_error = e
                logger.debug(f"RPC timeout for {url}: {latency_ms}ms")

            except (httpx.HTTPError, ValueError) as e:
                stats.failed_requests += 1
                stats.last_error = str(e)
                last_error = e
                logger.debug(f"RPC failed for {url}: {e}")

        raise RPCError(
            f"All RPC endpoints failed for {method}",
            details={
                "method": method,
                "endpoints_tried": len(self.rpc_urls),
                "last_error": str(last_error),
            },
        )

    async def send_transaction(self, signed_tx_b64: str, skip_preflight: bool = True) -> str:
        """
        Submit a signed, base64-encoded transaction.

        Returns:
            Transaction signature
        """
        response = await self.call(
            "sendTransaction",
            [
                signed_tx_b64,
                {
                    "encoding": "base64",
                    "skipPreflight": skip_preflight,
                    "preflightCommitment": "confirmed",
                    "maxRetries": 3,
                },
            ],
        )
        if not isinstance(response.result, str):
            raise RPCError("sendTransaction returned no signature", details={"result": response.result})
        return response.result

    async def get_signature_statuses(self, signatures: list[str]) -> list[dict | None]:
        """Fetch statuses for a list of signatures (None = unknown)."""
        response = await self.call(
            "getSignatureStatuses",
            [signatures, {"searchTransactionHistory": False}],
        )
        value = (response.result or {}).get("value") if isinstance(response.result, dict) else None
        if not isinstance(value, list):
            raise RPCError("Malformed getSignatureStatuses response", details={"result": response.result})
        return value

    async def confirm_transaction(
        self,
        signature: str,
        timeout_seconds: float = 60.0,
        poll_interval_seconds: float = 1.0,
    ) -> bool:
        """
        Poll until the signature is confirmed, errored, or the timeout passes.

        Returns:
            True if confirmed without error, False otherwise
        """
        deadline = time.monotonic() + timeout_seconds

        while time.monotonic() < deadline:
            statuses = await self.get_signature_statuses([signature])
            status = statuses[0] if statuses else None

            if status:
                if status.get("err"):
                    logger.warning(
                        f"Transaction {signature} failed on-chain",
                        extra={"context": {"signature": signature, "err": status.get("err")}},
                    )
                    return False
                if status.get("confirmationStatus") in CONFIRMED_STATUSES:
                    return True

            await asyncio.sleep(poll_interval_seconds)

        logger.warning(
            f"Transaction {signature} not confirmed within {timeout_seconds}s",
            extra={"context": {"signature": signature, "timeout_seconds": timeout_seconds}},
        )
        return False

    def get_stats_summary(self) -> dict:
        """Get statistics summary for all endpoints."""
        return {
            url: {
                "total_requests": s.total_requests,
                "success_rate": round(s.success_rate, 3),
                "avg_latency_ms": s.avg_latency_ms,
                "last_error": s.last_error,
            }
            for url, s in self.stats.items()
        }
