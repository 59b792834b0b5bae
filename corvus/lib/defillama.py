"""DefiLlama protocol and price client."""

from __future__ import annotations

import time

import httpx

from corvus.lib.api import ApiResult, safe_api_call

API_URL = "https://api.llama.fi"
COINS_URL = "https://coins.llama.fi"

# The full protocol list is large; keep it for a few minutes
PROTOCOLS_TTL = 5 * 60
PROTOCOLS_TIMEOUT = 10.0


def solana_tvl(protocol: dict) -> float:
    chain_tvls = protocol.get("chainTvls") or protocol.get("chain_tvls") or {}
    value = chain_tvls.get("Solana") or 0
    # Detail responses nest a time series under each chain
    if isinstance(value, dict):
        tvl = value.get("tvl") or []
        return tvl[-1].get("totalLiquidityUSD", 0) if tvl else 0
    return value


def _on_solana(protocol: dict) -> bool:
    chain_tvls = protocol.get("chainTvls") or protocol.get("chain_tvls") or {}
    return "Solana" in chain_tvls or "Solana" in (protocol.get("chains") or [])


class DefiLlamaClient:

    def __init__(self, http: httpx.AsyncClient | None = None):
        self.http = http or httpx.AsyncClient()
        self._protocols: list[dict] = []
        self._protocols_at = 0.0

    async def aclose(self):
        await self.http.aclose()

    async def _get_json(self, url: str):
        response = await self.http.get(url)
        response.raise_for_status()
        return response.json()

    async def all_protocols(self) -> ApiResult[list[dict]]:
        now = time.monotonic()
        if self._protocols and now - self._protocols_at < PROTOCOLS_TTL:
            return ApiResult(data=self._protocols)

        result = await safe_api_call(
            self._get_json(f"{API_URL}/protocols"),
            "DefiLlama Protocols API",
            PROTOCOLS_TIMEOUT,
        )
        if result.ok:
            self._protocols = result.data
            self._protocols_at = now
        return result

    async def solana_protocols(self) -> ApiResult[list[dict]]:
        result = await self.all_protocols()
        if not result.ok:
            return result
        return ApiResult(data=[p for p in result.data if _on_solana(p)])

    async def top_solana_protocols(
        self, limit: int = 10, category: str | None = None
    ) -> ApiResult[list[dict]]:
        result = await self.solana_protocols()
        if not result.ok:
            return result
        protocols = result.data
        if category:
            protocols = [
                p for p in protocols
                if (p.get("category") or "").lower() == category.lower()
            ]
        protocols = sorted(protocols, key=solana_tvl, reverse=True)
        return ApiResult(data=protocols[:limit])

    async def get_protocol(self, name_or_slug: str) -> ApiResult[dict]:
        """Exact slug, then exact name, then substring match; then fetch details."""
        result = await self.solana_protocols()
        if not result.ok:
            return ApiResult(error=result.error)

        protocols = result.data
        term = name_or_slug.lower().strip()
        match = (
            next((p for p in protocols if p.get("slug") == term), None)
            or next((p for p in protocols if (p.get("name") or "").lower() == term), None)
            or next(
                (p for p in protocols
                 if term in (p.get("slug") or "") or term in (p.get("name") or "").lower()),
                None,
            )
        )
        if match is None:
            suggestions = ", ".join(p.get("name", "?") for p in protocols[:5])
            return ApiResult(
                error=f'Could not find Solana protocol matching "{name_or_slug}". '
                      f"Try searching for: {suggestions}, etc."
            )

        return await safe_api_call(
            self._get_json(f"{API_URL}/protocol/{match['slug']}"),
            "DefiLlama Protocol API",
        )

    async def token_prices(self, mints: list[str]) -> ApiResult[dict[str, dict]]:
        """Current prices keyed by mint. Unknown mints are simply absent."""
        if not mints:
            return ApiResult(data={})

        async def call():
            coins = ",".join(f"solana:{mint}" for mint in mints)
            data = await self._get_json(f"{COINS_URL}/prices/current/{coins}")
            prices = {}
            for key, value in (data.get("coins") or {}).items():
                mint = key.removeprefix("solana:")
                prices[mint] = {
                    "mint": mint,
                    "symbol": value.get("symbol"),
                    "price": value.get("price"),
                    "decimals": value.get("decimals") or 0,
                    "confidence": value.get("confidence") or 0,
                    "timestamp": value.get("timestamp") or time.time(),
                }
            return prices

        return await safe_api_call(call(), "DefiLlama Coins API")
