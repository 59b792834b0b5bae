"""Tool catalog, dispatcher and result truncation."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping

from corvus.providers.base import ToolCall, ToolDef

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Awaitable[str]]

_WALLET = {"type": "string", "description": "Base58 Solana wallet address (32-44 characters)"}

# --- Tool Definitions (provider-agnostic JSON Schema) ---

TOOL_DEFS: list[ToolDef] = [
    ToolDef(
        name="get_sol_balance",
        description="Get the SOL balance of a Solana wallet address. "
                    "Returns the balance in SOL and its current USD value.",
        parameters={
            "type": "object",
            "properties": {"wallet": _WALLET},
            "required": ["wallet"],
        },
    ),
    ToolDef(
        name="get_token_balances",
        description="Get ALL token holdings for a Solana wallet address. Returns every SPL "
                    "token the wallet holds with mint address, symbol, name, balance, "
                    "and USD value.",
        parameters={
            "type": "object",
            "properties": {"wallet": _WALLET},
            "required": ["wallet"],
        },
    ),
    ToolDef(
        name="get_token_price",
        description="Get current prices for one or more Solana tokens. Accepts token "
                    "symbols (SOL, USDC, JitoSOL, etc.) or mint addresses.",
        parameters={
            "type": "object",
            "properties": {
                "tokens": {
                    "type": "string",
                    "description": 'Comma-separated list of token symbols or mint addresses '
                                   '(e.g., "SOL,USDC,JitoSOL")',
                },
            },
            "required": ["tokens"],
        },
    ),
    ToolDef(
        name="get_recent_transactions",
        description="Get recent transaction history for a Solana wallet. "
                    "Returns parsed transactions with human-readable descriptions.",
        parameters={
            "type": "object",
            "properties": {
                "wallet": {"type": "string", "description": "Base58 Solana wallet address"},
                "limit": {
                    "type": "number",
                    "description": "Number of transactions to return (default 10, max 50)",
                },
            },
            "required": ["wallet"],
        },
    ),
    ToolDef(
        name="get_protocol_tvl",
        description="Get detailed TVL and metrics for a specific Solana DeFi protocol.",
        parameters={
            "type": "object",
            "properties": {
                "protocol": {
                    "type": "string",
                    "description": 'Protocol name (e.g., "kamino", "jito", "marinade", "raydium")',
                },
            },
            "required": ["protocol"],
        },
    ),
    ToolDef(
        name="get_top_solana_protocols",
        description="Get the top Solana DeFi protocols ranked by Total Value Locked.",
        parameters={
            "type": "object",
            "properties": {
                "limit": {
                    "type": "number",
                    "description": "Number of protocols to return (default 10, max 50)",
                },
                "category": {
                    "type": "string",
                    "description": 'Optional filter: "Lending", "DEX", "Liquid Staking", '
                                   '"Yield", "CDP"',
                },
            },
        },
    ),
    ToolDef(
        name="analyze_wallet_defi_positions",
        description="Analyze a Solana wallet's DeFi positions in depth. Identifies staking "
                    "positions, lending deposits, LP tokens, and idle assets.",
        parameters={
            "type": "object",
            "properties": {"wallet": _WALLET},
            "required": ["wallet"],
        },
    ),
    ToolDef(
        name="send_telegram_alert",
        description="Send a formatted message to a Telegram chat. "
                    "Use only when user explicitly requests alerts.",
        parameters={
            "type": "object",
            "properties": {
                "chat_id": {
                    "type": "string",
                    "description": "Telegram chat ID (numeric ID or @username)",
                },
                "message": {
                    "type": "string",
                    "description": "Message content (supports Markdown formatting)",
                },
                "severity": {
                    "type": "string",
                    "enum": ["info", "warning", "critical"],
                    "description": "Message severity level (default: info)",
                },
            },
            "required": ["chat_id", "message"],
        },
    ),
]


# --- Truncation ---

MAX_TEXT_CHARS = 5000
TRUNCATION_MARKER = "...[truncated]"

# Time series collapsed to their latest point
SERIES_FIELDS = ("tvl_total", "tvl_solana")
# Item lists cut to a prefix
ITEM_CAPS = {"tokens": 10, "transactions": 5}
# Nested breakdowns dropped outright
DROPPED_FIELDS = ("chain_breakdown",)


def truncate_tool_result(result: str) -> str:
    """Shrink a tool result before it goes back into the conversation.

    Idempotent: a result that has been through here once comes back unchanged.
    """
    try:
        data = json.loads(result)
    except (json.JSONDecodeError, TypeError):
        if len(result) > MAX_TEXT_CHARS:
            return result[:MAX_TEXT_CHARS] + TRUNCATION_MARKER
        return result

    if not isinstance(data, dict):
        text = json.dumps(data, ensure_ascii=False)
        if len(text) > MAX_TEXT_CHARS:
            return text[:MAX_TEXT_CHARS] + TRUNCATION_MARKER
        return text

    for key in SERIES_FIELDS:
        series = data.get(key)
        if isinstance(series, list) and series:
            latest = series[-1]
            data[key] = latest.get("totalLiquidityUSD", 0) if isinstance(latest, dict) else latest

    for key in DROPPED_FIELDS:
        data.pop(key, None)

    notes = []
    for key, cap in ITEM_CAPS.items():
        items = data.get(key)
        if isinstance(items, list) and len(items) > cap:
            notes.append(f"Showing first {cap} of {len(items)} {key}")
            data[key] = items[:cap]
    if notes:
        previous = data.get("_truncated")
        data["_truncated"] = "; ".join([previous, *notes] if previous else notes)

    return json.dumps(data, ensure_ascii=False)


# --- Dispatch ---

class ToolDispatcher:
    """Routes tool calls to their handlers through a name -> handler table.

    ``dispatch`` never raises; unknown tools and handler failures come back
    as ``{"error": ...}`` JSON for the model to read.
    """

    def __init__(self, handlers: Mapping[str, ToolHandler] | None = None,
                 definitions: list[ToolDef] | None = None):
        self._handlers: dict[str, ToolHandler] = dict(handlers or {})
        self._definitions = list(definitions if definitions is not None else TOOL_DEFS)

    @property
    def definitions(self) -> list[ToolDef]:
        return self._definitions

    @property
    def names(self) -> list[str]:
        return list(self._handlers)

    def register(self, name: str, handler: ToolHandler):
        self._handlers[name] = handler

    async def dispatch(self, call: ToolCall) -> str:
        """Execute a tool and return its (truncated) result as a string."""
        handler = self._handlers.get(call.name)
        if handler is None:
            logger.warning("Model requested unknown tool %r", call.name)
            return json.dumps({"error": f"Unknown tool: {call.name}"})

        logger.info("Calling tool %s(%s)", call.name, call.arguments)
        try:
            result = await handler(**call.arguments)
        except Exception as e:
            logger.debug("Tool %s failed", call.name, exc_info=e)
            return json.dumps({"error": f"Tool execution failed: {e}"})

        return truncate_tool_result(result)
