"""Tools the model can call: wallet, token and checkout plugins."""

from __future__ import annotations

from typing import TYPE_CHECKING

from onchain_shopper.errors import SetupError
from onchain_shopper.tools.checkout import CheckoutPlugin
from onchain_shopper.tools.registry import Plugin, Tool, ToolRegistry, tool
from onchain_shopper.tools.token_tools import TokenPlugin
from onchain_shopper.tools.wallet_tools import WalletToolsPlugin

if TYPE_CHECKING:
    from onchain_shopper.config import ShopperConfig
    from onchain_shopper.wallet.base import WalletClient


def build_plugins(config: ShopperConfig) -> list[Plugin]:
    """Plugins enabled by the configuration (core wallet tools excluded)."""
    plugins: list[Plugin] = []
    if config.wallet.tokens:
        plugins.append(TokenPlugin(config.wallet.tokens))
    plugins.append(
        CheckoutPlugin(
            api_key=config.checkout.api_key,
            environment=config.checkout.resolved_environment,
            base_url=config.checkout.base_url,
        )
    )
    return plugins


def get_on_chain_tools(wallet: WalletClient, plugins: list[Plugin]) -> ToolRegistry:
    """Bind the core wallet tools and every plugin to *wallet*.

    Raises :class:`SetupError` if a plugin does not support the wallet's
    chain or two plugins define the same tool.
    """
    registry = ToolRegistry()
    for plugin in [WalletToolsPlugin(), *plugins]:
        if not plugin.supports_wallet(wallet):
            raise SetupError(
                f"Plugin '{plugin.name}' does not support chain '{wallet.chain.name}'"
            )
        try:
            for t in plugin.get_tools(wallet):
                registry.register(t)
        except ValueError as exc:
            raise SetupError(str(exc)) from exc
    return registry


__all__ = [
    "CheckoutPlugin",
    "Plugin",
    "TokenPlugin",
    "Tool",
    "ToolRegistry",
    "WalletToolsPlugin",
    "build_plugins",
    "get_on_chain_tools",
    "tool",
]
