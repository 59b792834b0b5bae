"""Tests for validation, the token registries and safe_api_call."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from corvus.lib.api import UpstreamError, safe_api_call
from corvus.lib.registry import (
    SOL_MINT,
    classify_unknown_token,
    known_defi_entry,
    resolve_mint,
    symbol_for_mint,
)
from corvus.lib.validation import (
    b58decode,
    validate_positive_integer,
    validate_solana_address,
    validate_telegram_chat_id,
)

SYSTEM_PROGRAM = "11111111111111111111111111111111"


class TestValidation:

    @pytest.mark.parametrize("address", [SOL_MINT, SYSTEM_PROGRAM])
    def test_valid_addresses(self, address):
        assert validate_solana_address(address) is None

    @pytest.mark.parametrize("address", [
        "abc",
        "0OIl" * 10,  # characters outside the base58 alphabet
        SOL_MINT + "1",  # 33 bytes
    ])
    def test_invalid_addresses(self, address):
        assert validate_solana_address(address).startswith("Invalid Solana address")

    def test_missing_address(self):
        assert validate_solana_address("") == "No wallet address provided."
        assert validate_solana_address(None) == "No wallet address provided."

    def test_b58decode_keeps_leading_zeros(self):
        assert b58decode("1112") == b"\x00\x00\x00\x01"

    def test_positive_integer(self):
        assert validate_positive_integer(None, "limit") is None
        assert validate_positive_integer(10, "limit", 50) is None
        assert validate_positive_integer(0, "limit") == "limit must be a positive integer."
        assert validate_positive_integer("x", "limit") == "limit must be a positive integer."
        assert validate_positive_integer(51, "limit", 50) == "limit cannot exceed 50."

    @pytest.mark.parametrize("chat_id", ["123456", "-100123", "@alerts", " 42 "])
    def test_valid_chat_ids(self, chat_id):
        assert validate_telegram_chat_id(chat_id) is None

    def test_invalid_chat_id(self):
        assert "not a valid Telegram chat ID" in validate_telegram_chat_id("chat-one")
        assert validate_telegram_chat_id("") == "No Telegram chat ID provided."


class TestRegistry:

    def test_symbols_resolve_case_insensitively(self):
        assert resolve_mint("sol") == SOL_MINT
        assert resolve_mint(" JitoSOL ") == "J1toso1uCk3RLmjorhTtrVwY9HJ7X8V9yYac6Y7kGCPn"

    def test_unknown_identifier_is_treated_as_mint(self):
        assert resolve_mint("SomeMintAddress") == "SomeMintAddress"

    def test_reverse_lookup(self):
        assert symbol_for_mint(SOL_MINT) == "SOL"
        assert symbol_for_mint("unknown") is None

    def test_known_defi_entry(self):
        entry = known_defi_entry("mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So")
        assert entry.protocol == "Marinade"
        assert entry.category == "Liquid Staking"

    def test_receipt_token_scores_as_defi(self):
        score, signals = classify_unknown_token("kUSDC-SOL", "Kamino Vault LP", False)
        assert score >= 2
        assert {"no_market_price", "k_prefix", "known_protocol_in_name"} <= set(signals)

    def test_plain_token_scores_low(self):
        score, signals = classify_unknown_token("WIF", "dogwifhat", True)
        assert score == 0
        assert signals == []


class TestSafeApiCall:

    @pytest.mark.asyncio
    async def test_success_wraps_data(self):
        async def call():
            return {"x": 1}

        result = await safe_api_call(call(), "Test API")
        assert result.ok
        assert result.data == {"x": 1}

    @pytest.mark.asyncio
    async def test_timeout_names_context(self):
        result = await safe_api_call(asyncio.sleep(1), "Slow API", timeout=0.01)
        assert result.error == "Slow API did not respond within 0.01 seconds. Try again."

    @pytest.mark.asyncio
    async def test_upstream_message_passes_through(self):
        async def call():
            raise UpstreamError("chat not found")

        result = await safe_api_call(call(), "Telegram API")
        assert result.error == "Telegram API error: chat not found"

    @pytest.mark.asyncio
    async def test_connection_error_is_sanitized(self):
        async def call():
            raise httpx.ConnectError("dns failure for secret-host.internal")

        result = await safe_api_call(call(), "Helius RPC")
        assert result.error == "Helius RPC: Service temporarily unavailable"

    @pytest.mark.asyncio
    async def test_other_errors_hide_details(self):
        async def call():
            raise KeyError("api-key=abc123")

        result = await safe_api_call(call(), "Helius RPC")
        assert result.error == "Helius RPC: Request failed"
        assert "abc123" not in result.error
