"""Domain tools: validate, fetch, format.

Each tool is an async method taking primitive arguments and returning a JSON
string. Expected failures (bad input, upstream errors) come back as
``{"error": ...}`` payloads instead of exceptions.
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict
from datetime import datetime, timezone

from corvus.lib.defillama import DefiLlamaClient, solana_tvl
from corvus.lib.helius import HeliusClient
from corvus.lib.registry import (
    NON_POSITION_CATEGORIES,
    SOL_MINT,
    classify_unknown_token,
    known_defi_entry,
    resolve_mint,
)
from corvus.lib.telegram import TelegramClient
from corvus.lib.validation import (
    validate_positive_integer,
    validate_solana_address,
    validate_telegram_chat_id,
)

MAX_PRICE_TOKENS = 50
MAX_LIMIT = 50
DEFAULT_LIMIT = 10
TELEGRAM_MAX_CHARS = 4000
DUST_USD_THRESHOLD = 1.0
DUST_BALANCE_THRESHOLD = 0.01
LIKELY_DEFI_SCORE = 2

SEVERITY_PREFIX = {
    "info": "ℹ️",
    "warning": "⚠️",
    "critical": "🚨",
}

POSITION_LIMITATIONS = [
    "Orca Whirlpool and Raydium CLMM concentrated liquidity positions are NFT-based "
    "and not included in this scan",
    "Drift, Zeta, and other margin trading positions are stored in program accounts, "
    "not as wallet tokens",
    "Some Kamino vault tokens may appear in 'likely_defi' instead of 'known' - "
    "Kamino mints new tokens per vault",
    "Prices shown are current spot prices from DefiLlama, not entry prices or "
    "underlying vault values",
    "Receipt tokens (LP tokens, vault tokens) typically have no market price - "
    "their value depends on the underlying protocol",
    "Token scan limited to 100 tokens - wallets with more tokens may have incomplete results",
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(tool: str, message: str, **meta) -> str:
    return json.dumps({"error": message, "_meta": {"tool": tool, "timestamp": _now(), **meta}})


def _ok(payload: dict) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False)


class WalletTools:
    """The eight tools the agent can call, bound to their API clients."""

    def __init__(
        self,
        helius: HeliusClient | None = None,
        llama: DefiLlamaClient | None = None,
        telegram: TelegramClient | None = None,
    ):
        self.helius = helius or HeliusClient()
        self.llama = llama or DefiLlamaClient()
        self.telegram = telegram or TelegramClient()

    async def aclose(self):
        for client in (self.helius, self.llama, self.telegram):
            await client.aclose()

    def handlers(self) -> dict:
        """Tool name -> coroutine function, in catalog order."""
        return {
            "get_sol_balance": self.get_sol_balance,
            "get_token_balances": self.get_token_balances,
            "get_token_price": self.get_token_price,
            "get_recent_transactions": self.get_recent_transactions,
            "get_protocol_tvl": self.get_protocol_tvl,
            "get_top_solana_protocols": self.get_top_solana_protocols,
            "analyze_wallet_defi_positions": self.analyze_wallet_defi_positions,
            "send_telegram_alert": self.send_telegram_alert,
        }

    async def get_sol_balance(self, wallet: str) -> str:
        tool = "get_sol_balance"
        if err := validate_solana_address(wallet):
            return _error(tool, err)

        balance = await self.helius.get_sol_balance(wallet)
        if not balance.ok:
            return _error(tool, balance.error)

        prices = await self.llama.token_prices([SOL_MINT])
        price = ((prices.data or {}).get(SOL_MINT) or {}).get("price")
        sol = balance.data["balance_sol"]

        return _ok({
            "wallet": wallet,
            "balance_sol": sol,
            "balance_lamports": balance.data["balance_lamports"],
            "price_usd": price,
            "value_usd": sol * price if price else None,
            "_meta": {
                "data_source": "Helius RPC + DefiLlama Coins API",
                "timestamp": _now(),
                "note": "USD value calculated using current SOL price" if price
                        else "SOL price unavailable from DefiLlama",
            },
        })

    async def get_token_balances(self, wallet: str) -> str:
        tool = "get_token_balances"
        if err := validate_solana_address(wallet):
            return _error(tool, err)

        holdings = await self.helius.get_token_balances(wallet)
        if not holdings.ok:
            return _error(tool, holdings.error)

        tokens = holdings.data
        prices = (await self.llama.token_prices([t.mint for t in tokens])).data or {}

        rows = []
        for token in tokens:
            price = (prices.get(token.mint) or {}).get("price")
            row = asdict(token)
            row["price_usd"] = price
            row["value_usd"] = token.balance * price if price else None
            rows.append(row)

        priced = sum(1 for r in rows if r["price_usd"] is not None)
        unpriced = len(rows) - priced
        return _ok({
            "wallet": wallet,
            "token_count": len(rows),
            "tokens": rows,
            "summary": {
                "total_value_usd": sum(r["value_usd"] or 0 for r in rows),
                "tokens_priced": priced,
                "tokens_unpriced": unpriced,
            },
            "_meta": {
                "data_source": "Helius DAS API + DefiLlama Coins API",
                "timestamp": _now(),
                "note": f"{unpriced} token(s) have no market price available from DefiLlama"
                        if unpriced else "All tokens successfully priced",
            },
        })

    async def get_token_price(self, tokens: str) -> str:
        tool = "get_token_price"
        if not tokens or not str(tokens).strip():
            return _error(tool, "No tokens provided. Specify token symbols (SOL, USDC) "
                                "or mint addresses.")

        requested = [t.strip() for t in str(tokens).split(",") if t.strip()]
        if len(requested) > MAX_PRICE_TOKENS:
            return _error(tool, f"Maximum {MAX_PRICE_TOKENS} tokens allowed per request. "
                                f"You requested {len(requested)}.")

        mints = [resolve_mint(t) for t in requested]
        result = await self.llama.token_prices(mints)
        if not result.ok:
            return _error(tool, result.error)

        rows = []
        for original, mint in zip(requested, mints):
            data = result.data.get(mint)
            if not data:
                rows.append({
                    "token": original,
                    "mint": mint,
                    "error": "Price unavailable - this token is not tracked by "
                             "DefiLlama's price oracle",
                })
                continue
            rows.append({
                "token": original,
                "mint": mint,
                "symbol": data["symbol"],
                "price_usd": data["price"],
                "confidence": data["confidence"],
                "decimals": data["decimals"],
            })

        found = sum(1 for r in rows if "error" not in r)
        missing = len(rows) - found
        return _ok({
            "requested": len(requested),
            "found": found,
            "not_found": missing,
            "prices": rows,
            "_meta": {
                "data_source": "DefiLlama Coins API",
                "timestamp": _now(),
                "note": f"{missing} token(s) not found. Very new or low-liquidity tokens "
                        "may not be tracked." if missing else "All tokens successfully priced",
            },
        })

    async def get_recent_transactions(self, wallet: str, limit: int | None = None) -> str:
        tool = "get_recent_transactions"
        if err := validate_solana_address(wallet):
            return _error(tool, err)

        limit = limit or DEFAULT_LIMIT
        if err := validate_positive_integer(limit, "limit", MAX_LIMIT):
            return _error(tool, err)

        result = await self.helius.get_recent_transactions(wallet, int(limit))
        if not result.ok:
            return _error(tool, result.error)

        return _ok({
            "wallet": wallet,
            "transaction_count": len(result.data),
            "transactions": [
                {
                    "signature": tx.signature,
                    "timestamp": datetime.fromtimestamp(tx.timestamp, timezone.utc).isoformat(),
                    "description": tx.description,
                    "type": tx.type,
                    "fee_sol": tx.fee_sol,
                    "native_transfers": tx.native_transfers,
                    "token_transfers": tx.token_transfers,
                }
                for tx in result.data
            ],
            "_meta": {
                "data_source": "Helius Enhanced Transactions API",
                "timestamp": _now(),
                "note": "USD values shown are current prices, not prices at time of transaction",
            },
        })

    async def get_protocol_tvl(self, protocol: str) -> str:
        tool = "get_protocol_tvl"
        if not protocol or not str(protocol).strip():
            return _error(tool, "No protocol name provided. Specify a protocol name like "
                                "'kamino', 'jito', 'marinade', etc.")

        result = await self.llama.get_protocol(str(protocol))
        if not result.ok:
            return _error(tool, result.error)

        proto = result.data
        return _ok({
            "protocol": proto.get("name"),
            "slug": proto.get("slug"),
            "category": proto.get("category"),
            "tvl_total": proto.get("tvl"),
            "tvl_solana": solana_tvl(proto),
            "chain_breakdown": proto.get("chainTvls") or proto.get("chain_tvls") or {},
            "changes": {
                "1h": proto.get("change_1h"),
                "1d": proto.get("change_1d"),
                "7d": proto.get("change_7d"),
            },
            "_meta": {
                "data_source": "DefiLlama Protocol API",
                "timestamp": _now(),
                "note": "TVL values are in USD",
            },
        })

    async def get_top_solana_protocols(
        self, limit: int | None = None, category: str | None = None
    ) -> str:
        tool = "get_top_solana_protocols"
        limit = limit or DEFAULT_LIMIT
        if err := validate_positive_integer(limit, "limit", MAX_LIMIT):
            return _error(tool, err)

        result = await self.llama.top_solana_protocols(int(limit), category)
        if not result.ok:
            return _error(tool, result.error)

        return _ok({
            "category": category or "all",
            "protocol_count": len(result.data),
            "protocols": [
                {
                    "name": p.get("name"),
                    "slug": p.get("slug"),
                    "category": p.get("category"),
                    "tvl_solana": solana_tvl(p),
                    "tvl_total": p.get("tvl"),
                    "changes": {
                        "1h": p.get("change_1h"),
                        "1d": p.get("change_1d"),
                        "7d": p.get("change_7d"),
                    },
                }
                for p in result.data
            ],
            "_meta": {
                "data_source": "DefiLlama Protocols API",
                "timestamp": _now(),
                "note": "Sorted by Solana TVL (highest to lowest)",
            },
        })

    async def analyze_wallet_defi_positions(self, wallet: str) -> str:
        """Sort holdings into known positions, likely DeFi, and unclassified."""
        tool = "analyze_wallet_defi_positions"
        if err := validate_solana_address(wallet):
            return _error(tool, err)

        holdings = await self.helius.get_token_balances(wallet)
        if not holdings.ok:
            return _error(tool, holdings.error)

        tokens = holdings.data
        prices = (await self.llama.token_prices([t.mint for t in tokens])).data or {}

        kept = []
        for token in tokens:
            balance = token.balance if math.isfinite(token.balance) and token.balance >= 0 else 0
            price = (prices.get(token.mint) or {}).get("price")
            value = balance * price if price and math.isfinite(price) else None
            if value is not None and value >= DUST_USD_THRESHOLD:
                kept.append((token, balance, price, value))
            elif not price and balance >= DUST_BALANCE_THRESHOLD:
                kept.append((token, balance, price, value))

        known, likely, unclassified = [], [], []
        for token, balance, price, value in kept:
            base = {
                "mint": token.mint,
                "symbol": token.symbol,
                "name": token.name,
                "balance": balance,
                "price_usd": price,
                "value_usd": value,
            }
            entry = known_defi_entry(token.mint)
            if entry and entry.category not in NON_POSITION_CATEGORIES:
                known.append({
                    **base,
                    "symbol": token.symbol or entry.symbol,
                    "name": token.name or entry.name,
                    "protocol": entry.protocol,
                    "category": entry.category,
                    "confidence": "high",
                    "note": entry.description,
                })
                continue

            score, signals = classify_unknown_token(token.symbol, token.name, bool(price))
            if score >= LIKELY_DEFI_SCORE:
                note = f"Likely a DeFi position based on: {', '.join(signals)}."
                if not price:
                    note += (" No market price available - receipt tokens are typically "
                             "not traded directly.")
                likely.append({**base, "confidence": "medium", "signals": signals, "note": note})
                continue

            unclassified.append({
                **base,
                "confidence": "none",
                "note": "Could not classify this token. Showing raw data.",
            })

        def total(bucket):
            return sum(p["value_usd"] or 0 for p in bucket)

        dust = len(tokens) - len(kept)
        return _ok({
            "wallet": wallet,
            "summary": {
                "total_known_value_usd": total(known),
                "total_likely_defi_value_usd": total(likely),
                "total_unclassified_value_usd": total(unclassified),
                "total_estimated_usd": total(known) + total(likely) + total(unclassified),
                "known_positions_count": len(known),
                "likely_defi_count": len(likely),
                "unclassified_count": len(unclassified),
                "dust_filtered": dust,
            },
            "known_positions": known,
            "likely_defi": likely,
            "unclassified": unclassified,
            "limitations": POSITION_LIMITATIONS,
            "_meta": {
                "data_source": "Helius DAS API + DefiLlama Coins API",
                "timestamp": _now(),
                "tokens_scanned": len(tokens),
                "tokens_after_dust_filter": len(kept),
                "tokens_priced": len(prices),
                "tokens_unpriced": len(tokens) - len(prices),
            },
        })

    async def send_telegram_alert(
        self, chat_id: str, message: str, severity: str = "info"
    ) -> str:
        tool = "send_telegram_alert"
        if err := validate_telegram_chat_id(chat_id):
            return _error(tool, err)

        text = (message or "").strip()
        if not text:
            return _error(tool, "No message provided. Please provide a message to send.")
        if len(text) > TELEGRAM_MAX_CHARS:
            return _error(tool, "Message exceeds Telegram's 4096 character limit. "
                                "Please shorten your message.")
        if not self.telegram.configured:
            return _error(tool, "TELEGRAM_BOT_TOKEN environment variable is not set. "
                                "Please configure your Telegram bot token.")

        severity = severity or "info"
        prefix = SEVERITY_PREFIX.get(severity)
        if prefix is None:
            return _error(tool, f"Invalid severity level: {severity}")

        escaped = text.replace("\\", "\\\\").replace("*", "\\*").replace("_", "\\_")
        result = await self.telegram.send_message(
            chat_id.strip(), f"{prefix} *{severity.upper()}*\n\n{escaped}"
        )
        if not result.ok:
            return _error(tool, result.error)

        sent = result.data
        sent_at = (
            datetime.fromtimestamp(sent["date"], timezone.utc).isoformat()
            if sent.get("date") else _now()
        )
        return _ok({
            "success": True,
            "message_id": sent.get("message_id"),
            "chat_id": (sent.get("chat") or {}).get("id"),
            "sent_at": sent_at,
            "_meta": {
                "tool": tool,
                "timestamp": _now(),
                "severity": severity,
                "data_source": "Telegram Bot API",
            },
        })
