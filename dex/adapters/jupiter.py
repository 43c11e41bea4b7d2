"""
dex/adapters/jupiter.py - Jupiter v6 routed venue.

Jupiter aggregates many Solana DEXes. Restricting a quote to a set of DEX
labels (the `dexes` query parameter) turns one aggregator into one venue,
so two instances with disjoint DEX sets quote independently:

    venue_a = JupiterVenue(registry, dexes=["Raydium"])    # "jupiter-raydium"
    venue_b = JupiterVenue(registry, dexes=["Whirlpool"])  # "jupiter-whirlpool"

Quotes are parsed and validated at this boundary; a malformed response or
a 4xx "no route" answer becomes None. Running out of retries on a quote
is an infrastructure failure and raises NetworkExhaustedError.

Live swaps (keypair + RPC provider required):
  1. fresh quote, re-checked against min_out_amount
  2. serialized transaction from the swap API
  3. signed with the solders keypair, submitted and confirmed over RPC
"""

import asyncio
import base64
from typing import Any, Dict, Iterable, Optional

import httpx
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from chains.network import DEFAULT_RETRY_POLICY, NetworkExhaustedError, RetryPolicy, Sleeper, fetch_with_retry
from chains.providers import SolanaRPCProvider
from core.constants import DEFAULT_SLIPPAGE_BPS, JUPITER_QUOTE_URL, JUPITER_SWAP_URL
from core.exceptions import AdapterResponseError
from core.logging import get_logger
from core.models import Quote, SwapRequest, SwapResult, TokenInfo
from discovery.registry import TokenRegistry

logger = get_logger(__name__)


def venue_name_for(dexes: Iterable[str]) -> str:
    """Stable venue name from a DEX label set ("Raydium" -> "jupiter-raydium")."""
    labels = [d.strip().lower().replace(" ", "") for d in dexes if d.strip()]
    return "jupiter-" + "-".join(labels) if labels else "jupiter"


def _parse_amount(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or value is None:
        raise AdapterResponseError(f"Missing or invalid {field_name}", details={field_name: value})
    try:
        amount = int(str(value))
    except ValueError as e:
        raise AdapterResponseError(f"Non-integer {field_name}: {value!r}", details={field_name: value}) from e
    if amount < 0:
        raise AdapterResponseError(f"Negative {field_name}: {amount}", details={field_name: value})
    return amount


def _pool_id(data: Dict[str, Any]) -> Optional[str]:
    route = data.get("routePlan")
    if not isinstance(route, list) or not route:
        return None
    swap_info = route[0].get("swapInfo") if isinstance(route[0], dict) else None
    if not isinstance(swap_info, dict):
        return None
    amm_key = swap_info.get("ammKey")
    return str(amm_key) if amm_key else None


def parse_quote_response(
    data: Any,
    token_in: TokenInfo,
    token_out: TokenInfo,
    in_amount: int,
    venue: str,
) -> Optional[Quote]:
    """
    Validate a Jupiter /quote payload and build a Quote.

    Returns:
        Quote, or None if the payload is malformed or has no output
    """
    if not isinstance(data, dict):
        logger.warning(
            f"[{venue}] Quote response is not an object",
            extra={"context": {"venue": venue, "type": type(data).__name__}},
        )
        return None

    try:
        out_amount = _parse_amount(data.get("outAmount"), "outAmount")
        quoted_in = _parse_amount(data.get("inAmount", in_amount), "inAmount")
    except AdapterResponseError as e:
        logger.warning(
            f"[{venue}] Malformed quote response: {e.message}",
            extra={"context": {"venue": venue, **e.details}},
        )
        return None

    if quoted_in != in_amount:
        logger.warning(
            f"[{venue}] Quote inAmount {quoted_in} does not match request {in_amount}",
            extra={"context": {"venue": venue, "quoted_in": quoted_in, "requested_in": in_amount}},
        )
        return None

    if out_amount == 0:
        logger.info(
            f"[{venue}] No viable route for {token_in.symbol}->{token_out.symbol}",
            extra={"context": {"venue": venue}},
        )
        return None

    return Quote.from_amounts(token_in, token_out, in_amount, out_amount, venue, _pool_id(data))


def _is_client_error(error: NetworkExhaustedError) -> bool:
    """4xx other than 429: the aggregator answered, there is just no route."""
    cause = error.last_error
    if not isinstance(cause, httpx.HTTPStatusError):
        return False
    status = cause.response.status_code
    return 400 <= status < 500 and status != 429


class JupiterVenue:
    """
    Venue backed by the Jupiter v6 quote/swap API.

    Owns its httpx client unless one is injected.
    """

    def __init__(
        self,
        registry: TokenRegistry,
        dexes: Iterable[str],
        name: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        keypair: Optional[Keypair] = None,
        rpc: Optional[SolanaRPCProvider] = None,
        priority_fee_lamports: int = 0,
        compute_unit_price_microlamports: int = 0,
        confirm_timeout_seconds: float = 60.0,
        quote_url: str = JUPITER_QUOTE_URL,
        swap_url: str = JUPITER_SWAP_URL,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.registry = registry
        self.dexes = [d.strip() for d in dexes if d.strip()]
        self.name = name or venue_name_for(self.dexes)
        self.slippage_bps = slippage_bps
        self.retry_policy = retry_policy
        self.keypair = keypair
        self.rpc = rpc
        self.priority_fee_lamports = priority_fee_lamports
        self.compute_unit_price_microlamports = compute_unit_price_microlamports
        self.confirm_timeout_seconds = confirm_timeout_seconds
        self.quote_url = quote_url
        self.swap_url = swap_url
        self.sleep = sleep

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={"Accept": "application/json"},
            limits=httpx.Limits(max_connections=10),
        )

    @property
    def can_trade(self) -> bool:
        return self.keypair is not None and self.rpc is not None

    async def close(self) -> None:
        """Close the HTTP client if this venue created it."""
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # QUOTES
    # =========================================================================

    def _quote_params(self, token_in: TokenInfo, token_out: TokenInfo, in_amount: int) -> Dict[str, str]:
        params = {
            "inputMint": token_in.mint,
            "outputMint": token_out.mint,
            "amount": str(in_amount),
            "slippageBps": str(self.slippage_bps),
            "onlyDirectRoutes": "false",
            "asLegacyTransaction": "false",
        }
        if self.dexes:
            params["dexes"] = ",".join(self.dexes)
        return params

    async def _fetch_quote(
        self,
        token_in: TokenInfo,
        token_out: TokenInfo,
        in_amount: int,
    ) -> Optional[Dict[str, Any]]:
        """Raw quote payload, or None when the aggregator reports no route."""
        try:
            response = await fetch_with_retry(
                self._client,
                "GET",
                self.quote_url,
                self.retry_policy,
                sleep=self.sleep,
                params=self._quote_params(token_in, token_out, in_amount),
            )
        except NetworkExhaustedError as e:
            if _is_client_error(e):
                logger.info(
                    f"[{self.name}] No route for {token_in.symbol}->{token_out.symbol}",
                    extra={"context": {"venue": self.name, "error": repr(e.last_error)}},
                )
                return None
            raise

        try:
            return response.json()
        except ValueError:
            logger.warning(
                f"[{self.name}] Quote response is not JSON",
                extra={"context": {"venue": self.name, "status": response.status_code}},
            )
            return None

    async def get_quote(
        self,
        in_symbol: str,
        out_symbol: str,
        in_amount: int,
    ) -> Optional[Quote]:
        """
        Quote an exact-input swap restricted to this venue's DEX set.

        Raises:
            NetworkExhaustedError: If the quote API stayed unreachable
        """
        token_in = self.registry.lookup(in_symbol)
        token_out = self.registry.lookup(out_symbol)
        if token_in is None or token_out is None:
            logger.warning(
                f"[{self.name}] Unknown token(s) {in_symbol}/{out_symbol}",
                extra={"context": {"venue": self.name, "in_symbol": in_symbol, "out_symbol": out_symbol}},
            )
            return None

        data = await self._fetch_quote(token_in, token_out, in_amount)
        if data is None:
            return None
        return parse_quote_response(data, token_in, token_out, in_amount, self.name)

    # =========================================================================
    # SWAPS
    # =========================================================================

    def _swap_body(self, quote_response: Dict[str, Any]) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "quoteResponse": quote_response,
            "userPublicKey": str(self.keypair.pubkey()),
            "wrapAndUnwrapSol": True,
        }
        # Jupiter accepts only one of the two fee options
        if self.priority_fee_lamports > 0:
            body["prioritizationFeeLamports"] = self.priority_fee_lamports
        elif self.compute_unit_price_microlamports > 0:
            body["computeUnitPriceMicroLamports"] = self.compute_unit_price_microlamports
        return body

    def _sign(self, swap_transaction_b64: str) -> str:
        raw = VersionedTransaction.from_bytes(base64.b64decode(swap_transaction_b64))
        signed = VersionedTransaction(raw.message, [self.keypair])
        return base64.b64encode(bytes(signed)).decode("ascii")

    async def execute_swap(self, request: SwapRequest) -> SwapResult:
        """
        Quote, build, sign, submit and confirm one swap.

        Never raises: every failure is reported as SwapResult(success=False).
        """
        if not self.can_trade:
            return SwapResult(success=False, description=f"{self.name} has no signing keypair or RPC provider")

        token_in = self.registry.lookup(request.in_symbol)
        token_out = self.registry.lookup(request.out_symbol)
        if token_in is None or token_out is None:
            return SwapResult(
                success=False,
                description=f"Unknown tokens {request.in_symbol}/{request.out_symbol}",
            )

        try:
            quote_response = await self._fetch_quote(token_in, token_out, request.in_amount)
            quote = (
                parse_quote_response(quote_response, token_in, token_out, request.in_amount, self.name)
                if quote_response is not None else None
            )
            if quote is None:
                return SwapResult(success=False, description="No viable Jupiter route")

            if quote.out_amount < request.min_out_amount:
                return SwapResult(
                    success=False,
                    description=f"Jupiter quote {quote.out_amount} < required {request.min_out_amount}",
                )

            response = await fetch_with_retry(
                self._client,
                "POST",
                self.swap_url,
                self.retry_policy,
                sleep=self.sleep,
                json=self._swap_body(quote_response),
            )
            swap_data = response.json()
            swap_transaction = swap_data.get("swapTransaction") if isinstance(swap_data, dict) else None
            if not isinstance(swap_transaction, str) or not swap_transaction:
                return SwapResult(success=False, description="Swap response has no swapTransaction")

            signature = await self.rpc.send_transaction(self._sign(swap_transaction))
            logger.info(
                f"[{self.name}] Submitted swap {request.in_symbol}->{request.out_symbol} sig={signature}",
                extra={"context": {"venue": self.name, "signature": signature, "in_amount": str(request.in_amount)}},
            )

            confirmed = await self.rpc.confirm_transaction(signature, timeout_seconds=self.confirm_timeout_seconds)
            if not confirmed:
                return SwapResult(
                    success=False,
                    tx_id=signature,
                    description="Jupiter swap submitted but not confirmed",
                )

            return SwapResult(
                success=True,
                tx_id=signature,
                description="Jupiter swap submitted",
                out_amount=quote.out_amount,
                metadata={"pool_id": quote.pool_id},
            )

        except Exception as e:
            logger.error(
                f"[{self.name}] Swap error: {e}",
                extra={"context": {"venue": self.name, "error": str(e)}},
                exc_info=True,
            )
            return SwapResult(success=False, description=f"Jupiter swap error: {e}")
