"""Tests for the wallet tools against mocked Helius, DefiLlama and Telegram APIs."""

from __future__ import annotations

import json

import httpx
import pytest
import pytest_asyncio

from corvus.handlers import WalletTools
from corvus.lib.defillama import DefiLlamaClient
from corvus.lib.helius import HeliusClient
from corvus.lib.registry import SOL_MINT
from corvus.lib.telegram import TelegramClient

WALLET = "11111111111111111111111111111111"
JITOSOL = "J1toso1uCk3RLmjorhTtrVwY9HJ7X8V9yYac6Y7kGCPn"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

PROTOCOLS = [
    {"name": "Jito", "slug": "jito", "category": "Liquid Staking",
     "tvl": 2_000_000_000, "chainTvls": {"Solana": 2_000_000_000}},
    {"name": "Kamino Lend", "slug": "kamino-lend", "category": "Lending",
     "tvl": 1_500_000_000, "chainTvls": {"Solana": 1_500_000_000}},
    {"name": "Aave V3", "slug": "aave-v3", "category": "Lending",
     "tvl": 9_000_000_000, "chainTvls": {"Ethereum": 9_000_000_000}},
]

PRICES = {
    f"solana:{SOL_MINT}": {"symbol": "SOL", "price": 80.5, "decimals": 9, "confidence": 0.99},
    f"solana:{USDC}": {"symbol": "USDC", "price": 1.0, "decimals": 6, "confidence": 0.99},
    f"solana:{JITOSOL}": {"symbol": "JITOSOL", "price": 95.0, "decimals": 9, "confidence": 0.98},
}


def _mock_api(request: httpx.Request) -> httpx.Response:
    host, path = request.url.host, request.url.path

    if host == "mainnet.helius-rpc.com":
        assert request.url.params["api-key"] == "test-key"
        body = json.loads(request.content)
        if body["method"] == "getBalance":
            return httpx.Response(200, json={"result": {"value": 2_500_000_000}})
        if body["method"] == "getAssetsByOwner":
            return httpx.Response(200, json={"result": {
                "nativeBalance": {"lamports": 1_000_000_000},
                "items": [
                    {"id": JITOSOL, "interface": "FungibleToken",
                     "token_info": {"balance": 3_000_000_000, "decimals": 9},
                     "content": {"metadata": {"symbol": "JitoSOL", "name": "Jito Staked SOL"}}},
                    {"id": "KvauLt111", "interface": "FungibleToken",
                     "token_info": {"balance": 5_000_000, "decimals": 6},
                     "content": {"metadata": {"symbol": "kUSDC-SOL", "name": "Kamino Vault"}}},
                    {"id": "NftMint111", "interface": "V1_NFT"},
                ],
            }})

    if host == "api.helius.xyz" and path.endswith("/transactions"):
        return httpx.Response(200, json=[
            {"signature": "sig1", "timestamp": 1_700_000_000, "description": "Swap",
             "type": "SWAP", "fee": 5000},
        ])

    if host == "api.llama.fi" and path == "/protocols":
        return httpx.Response(200, json=PROTOCOLS)
    if host == "api.llama.fi" and path.startswith("/protocol/"):
        slug = path.rsplit("/", 1)[-1]
        proto = next(p for p in PROTOCOLS if p["slug"] == slug)
        return httpx.Response(200, json={
            **proto,
            "tvl": [{"totalLiquidityUSD": 1}, {"totalLiquidityUSD": 2_000_000_000}],
            "chainTvls": {"Solana": {"tvl": [{"totalLiquidityUSD": 2_000_000_000}]}},
        })

    if host == "coins.llama.fi":
        requested = path.rsplit("/", 1)[-1].split(",")
        return httpx.Response(200, json={"coins": {k: PRICES[k] for k in requested if k in PRICES}})

    if host == "api.telegram.org":
        body = json.loads(request.content)
        if body["chat_id"] == "999":
            return httpx.Response(400, json={"ok": False, "description": "Bad Request: chat not found"})
        return httpx.Response(200, json={"ok": True, "result": {
            "message_id": 7, "date": 1_700_000_000, "chat": {"id": int(body["chat_id"])},
            "text": body["text"],
        }})

    return httpx.Response(404)


@pytest_asyncio.fixture
async def tools():
    http = httpx.AsyncClient(transport=httpx.MockTransport(_mock_api))
    wallet_tools = WalletTools(
        helius=HeliusClient(api_key="test-key", http=http),
        llama=DefiLlamaClient(http=http),
        telegram=TelegramClient(bot_token="123:abc", http=http),
    )
    yield wallet_tools
    await http.aclose()


def _load(result: str) -> dict:
    return json.loads(result)


class TestWalletTools:

    @pytest.mark.asyncio
    async def test_sol_balance_with_usd_value(self, tools):
        data = _load(await tools.get_sol_balance(WALLET))
        assert data["balance_sol"] == 2.5
        assert data["price_usd"] == 80.5
        assert data["value_usd"] == pytest.approx(201.25)
        assert data["_meta"]["data_source"]

    @pytest.mark.asyncio
    async def test_invalid_wallet_never_reaches_network(self, tools):
        data = _load(await tools.get_sol_balance("not-a-wallet"))
        assert data["error"].startswith("Invalid Solana address")
        assert data["_meta"]["tool"] == "get_sol_balance"

    @pytest.mark.asyncio
    async def test_missing_helius_key(self, monkeypatch):
        monkeypatch.delenv("HELIUS_API_KEY", raising=False)
        http = httpx.AsyncClient(transport=httpx.MockTransport(_mock_api))
        wallet_tools = WalletTools(helius=HeliusClient(http=http),
                                   llama=DefiLlamaClient(http=http),
                                   telegram=TelegramClient(http=http))

        data = _load(await wallet_tools.get_sol_balance(WALLET))
        await wallet_tools.aclose()

        assert data["error"] == "HELIUS_API_KEY environment variable is not set"

    @pytest.mark.asyncio
    async def test_token_balances_sol_first_and_fungible_only(self, tools):
        data = _load(await tools.get_token_balances(WALLET))
        mints = [t["mint"] for t in data["tokens"]]
        assert mints == [SOL_MINT, JITOSOL, "KvauLt111"]
        assert data["summary"]["tokens_unpriced"] == 1
        assert data["summary"]["total_value_usd"] == pytest.approx(80.5 + 3 * 95.0)

    @pytest.mark.asyncio
    async def test_token_price_by_symbol_and_unknown(self, tools):
        data = _load(await tools.get_token_price("SOL, usdc, NoSuchMint"))
        assert data["requested"] == 3
        assert data["found"] == 2
        assert data["prices"][0]["price_usd"] == 80.5
        assert "error" in data["prices"][2]

    @pytest.mark.asyncio
    async def test_token_price_rejects_empty_and_too_many(self, tools):
        assert "error" in _load(await tools.get_token_price("  "))
        too_many = ",".join(["SOL"] * 51)
        assert "Maximum 50 tokens" in _load(await tools.get_token_price(too_many))["error"]

    @pytest.mark.asyncio
    async def test_recent_transactions(self, tools):
        data = _load(await tools.get_recent_transactions(WALLET, 5))
        assert data["transaction_count"] == 1
        tx = data["transactions"][0]
        assert tx["type"] == "SWAP"
        assert tx["fee_sol"] == pytest.approx(0.000005)
        assert tx["timestamp"].startswith("2023-11-14")

    @pytest.mark.asyncio
    async def test_transaction_limit_is_bounded(self, tools):
        data = _load(await tools.get_recent_transactions(WALLET, 51))
        assert data["error"] == "limit cannot exceed 50."

    @pytest.mark.asyncio
    async def test_protocol_tvl_by_fuzzy_name(self, tools):
        data = _load(await tools.get_protocol_tvl("jit"))
        assert data["protocol"] == "Jito"
        assert data["tvl_solana"] == 2_000_000_000
        assert data["tvl_total"][-1]["totalLiquidityUSD"] == 2_000_000_000

    @pytest.mark.asyncio
    async def test_unknown_protocol_suggests_alternatives(self, tools):
        data = _load(await tools.get_protocol_tvl("nonexistent"))
        assert "Could not find Solana protocol" in data["error"]
        assert "Jito" in data["error"]

    @pytest.mark.asyncio
    async def test_top_protocols_solana_only_sorted(self, tools):
        data = _load(await tools.get_top_solana_protocols())
        assert [p["name"] for p in data["protocols"]] == ["Jito", "Kamino Lend"]

    @pytest.mark.asyncio
    async def test_top_protocols_category_filter(self, tools):
        data = _load(await tools.get_top_solana_protocols(limit=5, category="lending"))
        assert [p["name"] for p in data["protocols"]] == ["Kamino Lend"]
        assert data["category"] == "lending"

    @pytest.mark.asyncio
    async def test_defi_positions_classification(self, tools):
        data = _load(await tools.analyze_wallet_defi_positions(WALLET))
        assert [p["symbol"] for p in data["known_positions"]] == ["JitoSOL"]
        assert data["known_positions"][0]["protocol"] == "Jito"
        assert [p["mint"] for p in data["likely_defi"]] == ["KvauLt111"]
        # Native SOL is a base asset, not a position
        assert [p["mint"] for p in data["unclassified"]] == [SOL_MINT]
        assert data["limitations"]

    @pytest.mark.asyncio
    async def test_telegram_alert_formats_severity(self, tools):
        data = _load(await tools.send_telegram_alert("12345", "SOL *dropped*", "warning"))
        assert data["success"] is True
        assert data["message_id"] == 7
        assert data["chat_id"] == 12345

    @pytest.mark.asyncio
    async def test_telegram_error_description_is_passed_through(self, tools):
        data = _load(await tools.send_telegram_alert("999", "hello"))
        assert data["error"] == "Telegram API error: Bad Request: chat not found"

    @pytest.mark.asyncio
    async def test_telegram_rejects_bad_input(self, tools):
        assert "not a valid Telegram chat ID" in _load(
            await tools.send_telegram_alert("bad id", "hi"))["error"]
        assert "4096" in _load(await tools.send_telegram_alert("1", "x" * 4001))["error"]
        assert "Invalid severity" in _load(
            await tools.send_telegram_alert("1", "hi", "panic"))["error"]

    @pytest.mark.asyncio
    async def test_handler_table_matches_catalog(self, tools):
        from corvus.tools import TOOL_DEFS
        assert list(tools.handlers()) == [t.name for t in TOOL_DEFS]
