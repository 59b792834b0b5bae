"""Helius RPC / DAS / Enhanced Transactions client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

import httpx

from corvus.lib.api import ApiResult, UpstreamError, safe_api_call
from corvus.lib.registry import SOL_MINT

RPC_URL = "https://mainnet.helius-rpc.com/"
API_URL = "https://api.helius.xyz/v0"

LAMPORTS_PER_SOL = 1_000_000_000
# Assets per DAS page; larger wallets come back incomplete
ASSET_PAGE_LIMIT = 100
MAX_TRANSACTIONS = 50


@dataclass
class TokenBalance:
    mint: str
    balance: float
    decimals: int
    symbol: str | None = None
    name: str | None = None
    price_usd: float | None = None


@dataclass
class Transaction:
    signature: str
    timestamp: int
    description: str
    type: str
    fee_sol: float
    native_transfers: list = field(default_factory=list)
    token_transfers: list = field(default_factory=list)


class HeliusClient:
    """Reads wallet state from Helius. Every method returns an ApiResult."""

    def __init__(self, api_key: str | None = None, http: httpx.AsyncClient | None = None):
        self.api_key = api_key or os.environ.get("HELIUS_API_KEY", "")
        self.http = http or httpx.AsyncClient()

    async def aclose(self):
        await self.http.aclose()

    def _missing_key(self) -> ApiResult | None:
        if not self.api_key:
            return ApiResult(error="HELIUS_API_KEY environment variable is not set")
        return None

    async def _rpc(self, method: str, params) -> dict:
        response = await self.http.post(
            RPC_URL,
            params={"api-key": self.api_key},
            json={"jsonrpc": "2.0", "id": 1, "method": method, "params": params},
        )
        response.raise_for_status()
        data = response.json()
        if data.get("error"):
            raise UpstreamError(data["error"].get("message", "RPC error"))
        return data.get("result") or {}

    async def get_sol_balance(self, wallet: str) -> ApiResult[dict]:
        if missing := self._missing_key():
            return missing

        async def call():
            result = await self._rpc("getBalance", [wallet])
            lamports = result["value"]
            return {"balance_sol": lamports / LAMPORTS_PER_SOL, "balance_lamports": lamports}

        return await safe_api_call(call(), "Helius RPC")

    async def get_token_balances(self, wallet: str) -> ApiResult[list[TokenBalance]]:
        """Fungible holdings, native SOL first when present."""
        if missing := self._missing_key():
            return missing

        async def call():
            result = await self._rpc("getAssetsByOwner", {
                "ownerAddress": wallet,
                "page": 1,
                "limit": ASSET_PAGE_LIMIT,
                "displayOptions": {"showFungible": True, "showNativeBalance": True},
            })
            tokens = []
            for item in result.get("items") or []:
                if item.get("interface") not in ("FungibleToken", "FungibleAsset"):
                    continue
                info = item.get("token_info") or {}
                decimals = info.get("decimals") or 0
                metadata = (item.get("content") or {}).get("metadata") or {}
                tokens.append(TokenBalance(
                    mint=item["id"],
                    balance=(info.get("balance") or 0) / 10 ** decimals,
                    decimals=decimals,
                    symbol=metadata.get("symbol"),
                    name=metadata.get("name"),
                    price_usd=(info.get("price_info") or {}).get("price_per_token"),
                ))
            native = result.get("nativeBalance")
            if native:
                tokens.insert(0, TokenBalance(
                    mint=SOL_MINT,
                    balance=native.get("lamports", 0) / LAMPORTS_PER_SOL,
                    decimals=9,
                    symbol="SOL",
                    name="Solana",
                ))
            return tokens

        return await safe_api_call(call(), "Helius DAS API")

    async def get_recent_transactions(
        self, wallet: str, limit: int = 10
    ) -> ApiResult[list[Transaction]]:
        if missing := self._missing_key():
            return missing

        async def call():
            response = await self.http.get(
                f"{API_URL}/addresses/{wallet}/transactions",
                params={"api-key": self.api_key, "limit": min(limit, MAX_TRANSACTIONS)},
            )
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, list):
                raise UpstreamError("Unexpected response format")
            return [
                Transaction(
                    signature=tx.get("signature", ""),
                    timestamp=tx.get("timestamp") or 0,
                    description=tx.get("description") or "Unknown transaction",
                    type=tx.get("type") or "UNKNOWN",
                    fee_sol=(tx.get("fee") or 0) / LAMPORTS_PER_SOL,
                    native_transfers=tx.get("nativeTransfers") or [],
                    token_transfers=tx.get("tokenTransfers") or [],
                )
                for tx in data
            ]

        return await safe_api_call(call(), "Helius Enhanced Transactions API")
