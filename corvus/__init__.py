"""Corvus: a conversational Solana DeFi assistant over multiple LLM providers."""

__version__ = "0.3.0"
