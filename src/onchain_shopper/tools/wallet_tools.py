"""Core wallet tools, attached to every session.

These let the model read the wallet's own address and native balance.
Amounts are reported in whole units (ETH, SOL), never base units.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from onchain_shopper.tools.registry import Plugin, tool
from onchain_shopper.wallet.base import format_amount

if TYPE_CHECKING:
    from onchain_shopper.wallet.base import WalletClient


class WalletToolsPlugin(Plugin):
    name = "wallet"

    @tool(
        "get_wallet_address",
        "Get the address of the wallet that pays for purchases.",
        {
            "type": "object",
            "properties": {},
            "required": [],
        },
    )
    def get_wallet_address(self, wallet: WalletClient) -> str:
        return wallet.address

    @tool(
        "get_balance",
        "Get the native token balance (ETH or SOL) of a wallet, in whole units.",
        {
            "type": "object",
            "properties": {
                "address": {
                    "type": "string",
                    "description": "Address to check. Omit or pass empty string for this wallet.",
                }
            },
            "required": [],
        },
    )
    def get_balance(self, wallet: WalletClient, address: str = "") -> str:
        owner = address.strip() or None
        balance = wallet.get_native_balance(owner)
        return f"{format_amount(balance)} {wallet.chain.native_symbol}"
