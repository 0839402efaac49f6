"""Exception taxonomy for Onchain Shopper."""

from __future__ import annotations


class ShopperError(Exception):
    """Base class for all errors raised by this package."""


class SetupError(ShopperError):
    """Startup failed; the chat loop cannot be entered."""


class MissingCredentialError(SetupError):
    """A required credential is absent from the configuration."""

    def __init__(self, names: list[str]):
        self.names = names
        super().__init__(f"Missing required credential(s): {', '.join(names)}")


class UnknownToolError(ShopperError):
    """The model asked for a tool that is not registered."""


class WalletError(ShopperError):
    """A wallet operation could not be carried out."""


class CheckoutError(ShopperError):
    """The checkout service rejected or could not prepare an order."""
