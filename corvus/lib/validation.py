"""Input validation for tool arguments."""

from __future__ import annotations

import re

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX = {c: i for i, c in enumerate(BASE58_ALPHABET)}

PUBKEY_BYTES = 32

_CHAT_ID = re.compile(r"^-?\d+$")


def b58decode(value: str) -> bytes:
    """Decode a base58 string (Bitcoin alphabet). Raises ValueError."""
    num = 0
    for char in value:
        try:
            num = num * 58 + _BASE58_INDEX[char]
        except KeyError:
            raise ValueError(f"invalid base58 character {char!r}") from None
    body = num.to_bytes((num.bit_length() + 7) // 8, "big") if num else b""
    leading = len(value) - len(value.lstrip("1"))
    return b"\x00" * leading + body


def validate_solana_address(address) -> str | None:
    """Return an error message, or None when ``address`` is a valid public key."""
    if not address or not isinstance(address, str):
        return "No wallet address provided."
    try:
        decoded = b58decode(address.strip())
    except ValueError:
        decoded = b""
    if len(decoded) != PUBKEY_BYTES:
        return "Invalid Solana address format. Expected a base58-encoded public key."
    return None


def validate_positive_integer(value, name: str, max_value: int | None = None) -> str | None:
    """None is accepted (optional parameter)."""
    if value is None:
        return None
    try:
        num = int(value)
    except (TypeError, ValueError):
        return f"{name} must be a positive integer."
    if num <= 0:
        return f"{name} must be a positive integer."
    if max_value is not None and num > max_value:
        return f"{name} cannot exceed {max_value}."
    return None


def validate_telegram_chat_id(chat_id) -> str | None:
    """Chat ids are numeric (optionally negative for groups) or @usernames."""
    if not chat_id or not isinstance(chat_id, str):
        return "No Telegram chat ID provided."
    trimmed = chat_id.strip()
    if trimmed.startswith("@") or _CHAT_ID.match(trimmed):
        return None
    return f'"{trimmed}" is not a valid Telegram chat ID. Use a numeric ID or @username.'
