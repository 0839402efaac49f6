"""The capability interface shared by every wallet backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal

from onchain_shopper.wallet.chains import Chain, Token


class WalletClient(ABC):
    """A signing wallet bound to one chain.

    Amounts are always expressed in whole units (ETH, SOL, USDC), never in
    base units; conversion happens inside the backend.
    """

    def __init__(self, chain: Chain):
        self.chain = chain

    @property
    @abstractmethod
    def address(self) -> str:
        """The wallet's public address."""

    @abstractmethod
    def get_native_balance(self, address: str | None = None) -> Decimal:
        """Native token balance of *address* (default: this wallet)."""

    @abstractmethod
    def get_token_balance(self, token: Token, address: str | None = None) -> Decimal:
        """Balance of *token* held by *address* (default: this wallet)."""

    @abstractmethod
    def transfer_token(self, token: Token, to: str, amount: Decimal) -> str:
        """Send *amount* of *token* to *to* and return the transaction id."""

    @abstractmethod
    def send_serialized_transaction(self, serialized: str) -> str:
        """Sign and submit a transaction prepared by a third party.

        Used to settle checkout orders; returns the transaction id.
        """

    def explorer_tx_url(self, tx_id: str) -> str:
        base, _, query = self.chain.explorer_url.partition("?")
        return f"{base}/tx/{tx_id}" + (f"?{query}" if query else "")


def to_base_units(amount: Decimal | str, decimals: int) -> int:
    """Convert a whole-unit amount to an integer number of base units.

    Raises ``ValueError`` for negative amounts or more precision than the
    token supports.
    """
    value = Decimal(str(amount))
    if value < 0:
        raise ValueError("amount must not be negative")
    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"amount {amount} has more than {decimals} decimal places")
    return int(scaled)


def from_base_units(amount: int, decimals: int) -> Decimal:
    return Decimal(amount).scaleb(-decimals)


def format_amount(amount: Decimal) -> str:
    """Render *amount* without exponent or trailing zeros."""
    return format(amount.normalize(), "f")
