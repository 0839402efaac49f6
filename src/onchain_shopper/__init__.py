"""Onchain Shopper - a conversational shopping assistant that pays on-chain."""

__version__ = "0.1.0"
