"""Static registries of well-known Solana tokens and DeFi receipt tokens."""

from __future__ import annotations

from dataclasses import dataclass

SOL_MINT = "So11111111111111111111111111111111111111112"

# Symbol -> mint
TOKEN_REGISTRY: dict[str, str] = {
    # Native & stablecoins
    "SOL": SOL_MINT,
    "USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    # Liquid staking
    "JITOSOL": "J1toso1uCk3RLmjorhTtrVwY9HJ7X8V9yYac6Y7kGCPn",
    "MSOL": "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So",
    "BSOL": "bSo13r4TkiE4KumL71LsHTPpL2euBYLFx6h9HP3piy1",
    "JUPSOL": "jupSoLaHXQiZZTSfEWMTRRgpnyFm8f6sZdosWBjx93v",
    "STSOL": "7dHbWXmci3dT8UFYWYZweBLXgycu7Y3iL6trKn1Y7ARj",
    # Governance
    "JUP": "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN",
    "JTO": "jtojtomepa8beP8AuQc6eXt5FriJwfFMwQx2v2f9mCL",
    "RAY": "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R",
    "ORCA": "orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE",
    "MNDE": "MNDEFzGvMt87ueuHvVU9VcTqsAP5b3fTGPsHuuPA5ey",
    # Popular
    "BONK": "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
}

MINT_TO_SYMBOL: dict[str, str] = {mint: symbol for symbol, mint in TOKEN_REGISTRY.items()}


def resolve_mint(identifier: str) -> str:
    """Known symbols map to their mint; anything else is taken as a mint already."""
    trimmed = identifier.strip()
    return TOKEN_REGISTRY.get(trimmed.upper(), trimmed)


def symbol_for_mint(mint: str) -> str | None:
    return MINT_TO_SYMBOL.get(mint)


@dataclass(frozen=True)
class DeFiEntry:
    mint: str
    symbol: str
    name: str
    protocol: str
    category: str
    description: str
    underlying_asset: str | None = None


DEFI_REGISTRY: list[DeFiEntry] = [
    # Liquid staking
    DeFiEntry("J1toso1uCk3RLmjorhTtrVwY9HJ7X8V9yYac6Y7kGCPn", "JitoSOL", "Jito Staked SOL",
              "Jito", "Liquid Staking",
              "Represents staked SOL in Jito's MEV-optimized staking pool", "SOL"),
    DeFiEntry("mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So", "mSOL", "Marinade Staked SOL",
              "Marinade", "Liquid Staking", "Represents staked SOL in Marinade Finance", "SOL"),
    DeFiEntry("bSo13r4TkiE4KumL71LsHTPpL2euBYLFx6h9HP3piy1", "bSOL", "BlazeStake Staked SOL",
              "BlazeStake", "Liquid Staking", "Represents staked SOL in BlazeStake protocol", "SOL"),
    DeFiEntry("jupSoLaHXQiZZTSfEWMTRRgpnyFm8f6sZdosWBjx93v", "JupSOL", "Jupiter Staked SOL",
              "Jupiter", "Liquid Staking",
              "Represents staked SOL in Jupiter's liquid staking pool", "SOL"),
    DeFiEntry("7dHbWXmci3dT8UFYWYZweBLXgycu7Y3iL6trKn1Y7ARj", "stSOL", "Lido Staked SOL",
              "Lido", "Liquid Staking", "Represents staked SOL in Lido protocol", "SOL"),
    # Base assets
    DeFiEntry(SOL_MINT, "SOL", "Solana", "Native", "Base Asset", "Native Solana token"),
    DeFiEntry("EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v", "USDC", "USD Coin",
              "Circle", "Stablecoin", "Circle's USD stablecoin"),
    DeFiEntry("Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB", "USDT", "Tether USD",
              "Tether", "Stablecoin", "Tether's USD stablecoin"),
    # Governance
    DeFiEntry("JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN", "JUP", "Jupiter",
              "Jupiter", "Governance", "Jupiter Exchange governance token"),
    DeFiEntry("DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263", "BONK", "Bonk",
              "BONK", "Memecoin", "Solana's community memecoin"),
    DeFiEntry("4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R", "RAY", "Raydium",
              "Raydium", "Governance", "Raydium DEX governance token"),
    DeFiEntry("orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE", "ORCA", "Orca",
              "Orca", "Governance", "Orca DEX governance token"),
    DeFiEntry("jtojtomepa8beP8AuQc6eXt5FriJwfFMwQx2v2f9mCL", "JTO", "Jito",
              "Jito", "Governance", "Jito governance token"),
    DeFiEntry("MNDEFzGvMt87ueuHvVU9VcTqsAP5b3fTGPsHuuPA5ey", "MNDE", "Marinade",
              "Marinade", "Governance", "Marinade Finance governance token"),
]

_DEFI_BY_MINT = {entry.mint: entry for entry in DEFI_REGISTRY}

# Categories that are held assets rather than DeFi positions
NON_POSITION_CATEGORIES = frozenset({"Base Asset", "Stablecoin"})

KNOWN_PROTOCOL_NAMES = (
    "kamino", "orca", "raydium", "meteora", "marinade", "solend", "drift", "marginfi",
)
DEFI_KEYWORDS = ("pool", "vault", "reserve", "deposit", "lp")


def known_defi_entry(mint: str) -> DeFiEntry | None:
    return _DEFI_BY_MINT.get(mint)


def classify_unknown_token(
    symbol: str | None, name: str | None, has_market_price: bool
) -> tuple[int, list[str]]:
    """Score how likely an unlisted token is a DeFi receipt token.

    Returns (score, signals); a score of 2 or more means "likely DeFi".
    """
    signals: list[str] = []
    sym = (symbol or "").lower()
    token_name = (name or "").lower()

    if not has_market_price:
        signals.append("no_market_price")
    if "lp" in sym:
        signals.append("lp_in_symbol")
    if "-" in sym:
        signals.append("pair_format")
    if sym.startswith("k") and len(sym) > 1:
        signals.append("k_prefix")
    if sym.startswith("c") and len(sym) > 1 and "solend" in token_name:
        signals.append("c_prefix")
    if any(p in token_name for p in KNOWN_PROTOCOL_NAMES):
        signals.append("known_protocol_in_name")
    if any(kw in token_name for kw in DEFI_KEYWORDS):
        signals.append("pool_or_vault_in_name")

    return len(signals), signals
