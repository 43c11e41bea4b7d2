"""
tests/unit/test_providers.py - Tests for chains/providers.py
"""

import json

import httpx
import pytest

from chains.providers import SolanaRPCProvider
from core.exceptions import RPCError


def provider_for(handler, urls=("https://rpc-1.test", "https://rpc-2.test")) -> SolanaRPCProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SolanaRPCProvider(list(urls), client=client)


class TestCall:
    @pytest.mark.asyncio
    async def test_failover_to_second_endpoint(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "rpc-1.test":
                return httpx.Response(502)
            body = json.loads(request.content)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": 42})

        provider = provider_for(handler)
        response = await provider.call("getSlot")

        assert response.result == 42
        assert response.endpoint_used == "https://rpc-2.test"
        stats = provider.get_stats_summary()
        assert stats["https://rpc-1.test"]["success_rate"] == 0
        assert stats["https://rpc-2.test"]["success_rate"] == 1
        await provider.close()

    @pytest.mark.asyncio
    async def test_rpc_error_on_every_endpoint(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"message": "bad"}})

        provider = provider_for(handler)
        with pytest.raises(RPCError):
            await provider.call("getSlot")

    @pytest.mark.asyncio
    async def test_no_endpoints(self):
        with pytest.raises(RPCError):
            await SolanaRPCProvider([]).call("getSlot")


class TestTransactions:
    @pytest.mark.asyncio
    async def test_send_transaction(self):
        sent = {}

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            sent.update(body)
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "Sig111"})

        provider = provider_for(handler, urls=("https://rpc.test",))

        assert await provider.send_transaction("dHg=") == "Sig111"
        assert sent["method"] == "sendTransaction"
        assert sent["params"][0] == "dHg="
        assert sent["params"][1]["encoding"] == "base64"

    @pytest.mark.asyncio
    async def test_send_without_signature(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": None})

        provider = provider_for(handler, urls=("https://rpc.test",))
        with pytest.raises(RPCError):
            await provider.send_transaction("dHg=")

    @pytest.mark.asyncio
    async def test_confirm_transaction(self):
        def handler(request: httpx.Request) -> httpx.Response:
            status = {"confirmationStatus": "confirmed", "err": None}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"value": [status]}})

        provider = provider_for(handler, urls=("https://rpc.test",))
        assert await provider.confirm_transaction("Sig111", timeout_seconds=5) is True

    @pytest.mark.asyncio
    async def test_confirm_reports_on_chain_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            status = {"confirmationStatus": "confirmed", "err": {"InstructionError": [0, "Custom"]}}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"value": [status]}})

        provider = provider_for(handler, urls=("https://rpc.test",))
        assert await provider.confirm_transaction("Sig111", timeout_seconds=5) is False
