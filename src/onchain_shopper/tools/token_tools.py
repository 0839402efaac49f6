"""Token plugin: look up, check and transfer fungible tokens such as USDC.

Works on both wallet backends; the wallet decides whether a token is an
ERC-20 contract or an SPL mint.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from onchain_shopper.tools.registry import Plugin, tool
from onchain_shopper.wallet.base import format_amount
from onchain_shopper.wallet.chains import Token, get_token

if TYPE_CHECKING:
    from onchain_shopper.wallet.base import WalletClient

logger = logging.getLogger("onchain_shopper.tools.token")


class TokenPlugin(Plugin):
    """Exposes a fixed list of tokens to the model."""

    name = "token"

    def __init__(self, symbols: list[str]):
        self.tokens: dict[str, Token] = {}
        for symbol in symbols:
            token = get_token(symbol)
            self.tokens[token.symbol] = token

    def supports_wallet(self, wallet: WalletClient) -> bool:
        return all(t.is_on(wallet.chain) for t in self.tokens.values())

    def _resolve(self, symbol: str) -> Token:
        key = symbol.strip().upper()
        if key not in self.tokens:
            raise ValueError(
                f"Token '{symbol}' is not enabled. Enabled tokens: {sorted(self.tokens)}"
            )
        return self.tokens[key]

    @tool(
        "get_token_info_by_symbol",
        "Get the name, decimals and on-chain address of an enabled token by its symbol.",
        {
            "type": "object",
            "properties": {
                "symbol": {"type": "string", "description": "Token symbol, e.g. USDC"},
            },
            "required": ["symbol"],
        },
    )
    def get_token_info_by_symbol(self, wallet: WalletClient, symbol: str) -> dict:
        token = self._resolve(symbol)
        return {
            "symbol": token.symbol,
            "name": token.name,
            "decimals": token.decimals,
            "address": token.address_on(wallet.chain),
            "chain": wallet.chain.name,
        }

    @tool(
        "get_token_balance",
        "Get the balance of an enabled token held by a wallet, in whole units.",
        {
            "type": "object",
            "properties": {
                "symbol": {"type": "string", "description": "Token symbol, e.g. USDC"},
                "wallet_address": {
                    "type": "string",
                    "description": "Address to check. Omit or pass empty string for this wallet.",
                },
            },
            "required": ["symbol"],
        },
    )
    def get_token_balance(self, wallet: WalletClient, symbol: str, wallet_address: str = "") -> str:
        token = self._resolve(symbol)
        balance = wallet.get_token_balance(token, wallet_address.strip() or None)
        return f"{format_amount(balance)} {token.symbol}"

    @tool(
        "transfer",
        "Transfer an amount of an enabled token from this wallet to another address.",
        {
            "type": "object",
            "properties": {
                "symbol": {"type": "string", "description": "Token symbol, e.g. USDC"},
                "to": {"type": "string", "description": "Recipient address"},
                "amount": {
                    "type": "string",
                    "description": "Amount in whole units, e.g. '12.5' for 12.5 USDC",
                },
            },
            "required": ["symbol", "to", "amount"],
        },
    )
    def transfer(self, wallet: WalletClient, symbol: str, to: str, amount: str) -> str:
        token = self._resolve(symbol)
        try:
            value = Decimal(str(amount).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Invalid amount '{amount}'") from exc
        if value <= 0:
            raise ValueError("Amount must be positive")

        tx_id = wallet.transfer_token(token, to.strip(), value)
        logger.info(f"Transferred {value} {token.symbol} to {to}: {tx_id}")
        return (
            f"Sent {format_amount(value)} {token.symbol} to {to.strip()}.\n"
            f"  Transaction: {tx_id}\n"
            f"  Explorer: {wallet.explorer_tx_url(tx_id)}"
        )
