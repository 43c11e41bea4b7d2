"""
tests/unit/test_jupiter_adapter.py - Tests for dex/adapters/jupiter.py

HTTP is served by httpx.MockTransport; nothing leaves the process.
"""

import json
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest
from solders.keypair import Keypair

from chains.network import NetworkExhaustedError, RetryPolicy
from core.constants import JUPITER_QUOTE_URL
from core.models import SwapRequest
from dex.adapters import JupiterVenue, Venue, parse_quote_response, venue_name_for

NO_RETRY = RetryPolicy(max_retries=0, timeout=1.0)


async def no_sleep(delay: float) -> None:
    return None


def make_venue(registry, handler, **kwargs) -> JupiterVenue:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("retry_policy", NO_RETRY)
    return JupiterVenue(registry, dexes=["Raydium"], client=client, sleep=no_sleep, **kwargs)


def quote_payload(in_amount=10**9, out_amount=150_000_000, amm_key="PoolKey111"):
    return {
        "inAmount": str(in_amount),
        "outAmount": str(out_amount),
        "routePlan": [{"swapInfo": {"ammKey": amm_key, "label": "Raydium"}}],
    }


class TestVenueName:
    def test_single_dex(self):
        assert venue_name_for(["Raydium"]) == "jupiter-raydium"

    def test_multi_word_and_multiple(self):
        assert venue_name_for(["Raydium CLMM", "Whirlpool"]) == "jupiter-raydiumclmm-whirlpool"

    def test_empty(self):
        assert venue_name_for([]) == "jupiter"


class TestParseQuoteResponse:
    """Boundary validation of the /quote payload."""

    def test_valid(self, registry):
        sol, usdc = registry.lookup("SOL"), registry.lookup("USDC")
        quote = parse_quote_response(quote_payload(), sol, usdc, 10**9, "jupiter-raydium")

        assert quote.out_amount == 150_000_000
        assert quote.price == Decimal("150")
        assert quote.pool_id == "PoolKey111"
        assert quote.venue == "jupiter-raydium"

    @pytest.mark.parametrize("payload", [
        None,
        [],
        {"inAmount": "1000000000"},
        {"inAmount": "1000000000", "outAmount": "abc"},
        {"inAmount": "1000000000", "outAmount": "-5"},
        {"inAmount": "1000000000", "outAmount": True},
    ])
    def test_malformed_is_none(self, registry, payload):
        sol, usdc = registry.lookup("SOL"), registry.lookup("USDC")
        assert parse_quote_response(payload, sol, usdc, 10**9, "v") is None

    def test_in_amount_mismatch(self, registry):
        sol, usdc = registry.lookup("SOL"), registry.lookup("USDC")
        assert parse_quote_response(quote_payload(in_amount=5), sol, usdc, 10**9, "v") is None

    def test_zero_out_amount(self, registry):
        sol, usdc = registry.lookup("SOL"), registry.lookup("USDC")
        assert parse_quote_response(quote_payload(out_amount=0), sol, usdc, 10**9, "v") is None

    def test_missing_route_plan(self, registry):
        sol, usdc = registry.lookup("SOL"), registry.lookup("USDC")
        quote = parse_quote_response({"outAmount": "150000000"}, sol, usdc, 10**9, "v")
        assert quote.pool_id is None


class TestGetQuote:
    @pytest.mark.asyncio
    async def test_request_parameters(self, registry):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            seen["url"] = f"{request.url.scheme}://{request.url.host}{request.url.path}"
            return httpx.Response(200, json=quote_payload())

        venue = make_venue(registry, handler, slippage_bps=25)
        assert isinstance(venue, Venue)

        quote = await venue.get_quote("SOL", "USDC", 10**9)

        assert quote is not None
        assert quote.in_symbol == "SOL"
        assert seen["url"] == JUPITER_QUOTE_URL
        assert seen["inputMint"] == registry.lookup("SOL").mint
        assert seen["outputMint"] == registry.lookup("USDC").mint
        assert seen["amount"] == "1000000000"
        assert seen["slippageBps"] == "25"
        assert seen["dexes"] == "Raydium"

    @pytest.mark.asyncio
    async def test_client_error_means_no_route(self, registry):
        venue = make_venue(registry, lambda request: httpx.Response(400, json={"error": "No routes found"}))
        assert await venue.get_quote("SOL", "USDC", 10**9) is None

    @pytest.mark.asyncio
    async def test_server_error_raises_after_retries(self, registry):
        calls = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            calls["n"] += 1
            return httpx.Response(503)

        venue = make_venue(registry, handler, retry_policy=RetryPolicy(max_retries=2, base_delay=0.01, timeout=1.0))

        with pytest.raises(NetworkExhaustedError):
            await venue.get_quote("SOL", "USDC", 10**9)
        assert calls["n"] == 3

    @pytest.mark.asyncio
    async def test_rate_limited_is_infrastructure(self, registry):
        venue = make_venue(registry, lambda request: httpx.Response(429))
        with pytest.raises(NetworkExhaustedError):
            await venue.get_quote("SOL", "USDC", 10**9)

    @pytest.mark.asyncio
    async def test_non_json_body(self, registry):
        venue = make_venue(registry, lambda request: httpx.Response(200, content=b"<html>"))
        assert await venue.get_quote("SOL", "USDC", 10**9) is None

    @pytest.mark.asyncio
    async def test_unknown_token_skips_http(self, registry):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        venue = make_venue(registry, handler)
        assert await venue.get_quote("FOO", "USDC", 10**9) is None


class TestExecuteSwap:
    """execute_swap reports failures structurally, never by raising."""

    @pytest.mark.asyncio
    async def test_without_keypair(self, registry):
        venue = make_venue(registry, lambda request: httpx.Response(200, json=quote_payload()))
        result = await venue.execute_swap(SwapRequest("SOL", "USDC", 10**9, 1))
        assert result.success is False
        assert "keypair" in result.description

    @pytest.mark.asyncio
    async def test_quote_below_min_out(self, registry):
        rpc = AsyncMock()
        venue = make_venue(
            registry, lambda request: httpx.Response(200, json=quote_payload()),
            keypair=Keypair(), rpc=rpc,
        )

        result = await venue.execute_swap(SwapRequest("SOL", "USDC", 10**9, 200_000_000))

        assert result.success is False
        rpc.send_transaction.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_submitted_and_confirmed(self, registry, monkeypatch):
        keypair = Keypair()
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/swap"):
                bodies.append(json.loads(request.content))
                return httpx.Response(200, json={"swapTransaction": "dW5zaWduZWQ="})
            return httpx.Response(200, json=quote_payload())

        rpc = AsyncMock()
        rpc.send_transaction.return_value = "Sig111"
        rpc.confirm_transaction.return_value = True
        venue = make_venue(registry, handler, keypair=keypair, rpc=rpc, priority_fee_lamports=5000)
        monkeypatch.setattr(venue, "_sign", lambda tx: "signed-" + tx)

        result = await venue.execute_swap(SwapRequest("SOL", "USDC", 10**9, 149_000_000))

        assert result.success is True
        assert result.tx_id == "Sig111"
        assert result.out_amount == 150_000_000
        rpc.send_transaction.assert_awaited_once_with("signed-dW5zaWduZWQ=")
        body = bodies[0]
        assert body["userPublicKey"] == str(keypair.pubkey())
        assert body["wrapAndUnwrapSol"] is True
        assert body["prioritizationFeeLamports"] == 5000
        assert "computeUnitPriceMicroLamports" not in body
        assert body["quoteResponse"]["outAmount"] == "150000000"

    @pytest.mark.asyncio
    async def test_unconfirmed_keeps_signature(self, registry, monkeypatch):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/swap"):
                return httpx.Response(200, json={"swapTransaction": "dHg="})
            return httpx.Response(200, json=quote_payload())

        rpc = AsyncMock()
        rpc.send_transaction.return_value = "Sig222"
        rpc.confirm_transaction.return_value = False
        venue = make_venue(registry, handler, keypair=Keypair(), rpc=rpc)
        monkeypatch.setattr(venue, "_sign", lambda tx: tx)

        result = await venue.execute_swap(SwapRequest("SOL", "USDC", 10**9, 1))

        assert result.success is False
        assert result.tx_id == "Sig222"

    @pytest.mark.asyncio
    async def test_rpc_error_is_reported(self, registry, monkeypatch):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/swap"):
                return httpx.Response(200, json={"swapTransaction": "dHg="})
            return httpx.Response(200, json=quote_payload())

        rpc = AsyncMock()
        rpc.send_transaction.side_effect = RuntimeError("blockhash not found")
        venue = make_venue(registry, handler, keypair=Keypair(), rpc=rpc)
        monkeypatch.setattr(venue, "_sign", lambda tx: tx)

        result = await venue.execute_swap(SwapRequest("SOL", "USDC", 10**9, 1))

        assert result.success is False
        assert "blockhash not found" in result.description

    @pytest.mark.asyncio
    async def test_missing_swap_transaction(self, registry):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/swap"):
                return httpx.Response(200, json={})
            return httpx.Response(200, json=quote_payload())

        rpc = AsyncMock()
        venue = make_venue(registry, handler, keypair=Keypair(), rpc=rpc)

        result = await venue.execute_swap(SwapRequest("SOL", "USDC", 10**9, 1))

        assert result.success is False
        rpc.send_transaction.assert_not_awaited()
