"""Checkout plugin - buy physical products through Crossmint headless checkout.

The checkout service prepares a payment transaction for the order; the
session wallet signs and submits it.  Once that transaction is sent the
order is considered paid.

Uses Crossmint's REST API directly via httpx.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import httpx

from onchain_shopper.errors import CheckoutError
from onchain_shopper.tools.registry import Plugin, tool

if TYPE_CHECKING:
    from onchain_shopper.wallet.base import WalletClient

logger = logging.getLogger("onchain_shopper.tools.checkout")

CHECKOUT_BASE_URLS: dict[str, str] = {
    "production": "https://www.crossmint.com",
    "staging": "https://staging.crossmint.com",
}
ORDERS_PATH = "/api/2022-06-09/orders"

_ASIN_RE = re.compile(r"^[A-Z0-9]{10}$")
_AMAZON_PATH_RE = re.compile(r"/(?:dp|gp/product|gp/aw/d|exec/obidos/asin)/([A-Z0-9]{10})(?:[/?]|$)", re.I)
_LOCATOR_PREFIXES = ("amazon", "shopify")

# Currencies accepted per wallet family
_CURRENCIES: dict[str, set[str]] = {
    "evm": {"usdc", "eth"},
    "solana": {"usdc", "sol"},
}


def normalize_product_locator(value: str) -> str:
    """Map a product URL, ASIN or locator to the ``<store>:<id>`` form.

    >>> normalize_product_locator("https://www.amazon.com/Some-Thing/dp/B08SVZ775L?th=1")
    'amazon:B08SVZ775L'

    Raises ``ValueError`` if nothing usable can be found.
    """
    text = value.strip()
    if not text:
        raise ValueError("product locator is empty")

    prefix, sep, rest = text.partition(":")
    if sep and prefix.lower() in _LOCATOR_PREFIXES:
        if prefix.lower() == "amazon" and not rest.startswith("http"):
            asin = rest.strip().upper()
            if not _ASIN_RE.match(asin):
                raise ValueError(f"'{rest}' is not a valid Amazon product id")
            return f"amazon:{asin}"
        return f"{prefix.lower()}:{rest.strip()}"

    if _ASIN_RE.match(text.upper()) and text.upper().startswith("B0"):
        return f"amazon:{text.upper()}"

    parsed = urlparse(text)
    host = parsed.netloc.lower()
    if parsed.scheme in ("http", "https") and "amazon." in host:
        match = _AMAZON_PATH_RE.search(parsed.path)
        if match:
            return f"amazon:{match.group(1).upper()}"
        return f"amazon:{text}"

    raise ValueError(
        f"Cannot derive a product locator from '{value}'. "
        "Use the form 'amazon:<ASIN>' or an Amazon product URL."
    )


class CheckoutPlugin(Plugin):
    """Places orders with the headless checkout API and pays from the wallet."""

    name = "checkout"

    def __init__(
        self,
        api_key: str,
        environment: str = "production",
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if environment not in CHECKOUT_BASE_URLS and not base_url:
            raise ValueError(
                f"Unknown checkout environment '{environment}'. "
                f"Use one of {sorted(CHECKOUT_BASE_URLS)} or set a base_url."
            )
        self.api_key = api_key
        self.base_url = (base_url or CHECKOUT_BASE_URLS[environment]).rstrip("/")
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {"X-API-KEY": self.api_key, "Content-Type": "application/json"}

    async def create_order(self, body: dict) -> dict:
        """POST an order and return the ``order`` object of the response."""
        async with httpx.AsyncClient(transport=self._transport, timeout=60.0) as client:
            resp = await client.post(
                f"{self.base_url}{ORDERS_PATH}", json=body, headers=self._headers()
            )
        if resp.status_code >= 400:
            raise CheckoutError(f"Failed to create buy order: {resp.text}")
        data = resp.json()
        order = data.get("order")
        if not isinstance(order, dict):
            raise CheckoutError(f"Unexpected checkout response: {data}")
        return order

    @tool(
        "buy_token",
        (
            "Buy a physical product (e.g. from Amazon) and pay for it from the wallet. "
            "Only call this once the name, shipping address, recipient email, payment "
            "method and chain are all known. A successful call means the order is "
            "placed and paid."
        ),
        {
            "type": "object",
            "properties": {
                "product_locator": {
                    "type": "string",
                    "description": "Product locator such as 'amazon:B08SVZ775L', or an Amazon product URL",
                },
                "recipient_email": {"type": "string", "description": "Email of the recipient"},
                "recipient_name": {"type": "string", "description": "Full name for shipping"},
                "address_line1": {"type": "string", "description": "Street address"},
                "address_line2": {"type": "string", "description": "Apartment, suite, etc."},
                "city": {"type": "string"},
                "state": {"type": "string", "description": "State or region code"},
                "postal_code": {"type": "string"},
                "country": {"type": "string", "description": "Two-letter country code, e.g. US"},
                "currency": {
                    "type": "string",
                    "description": "Payment currency: usdc (default), eth on EVM chains, sol on Solana",
                },
            },
            "required": [
                "product_locator",
                "recipient_email",
                "recipient_name",
                "address_line1",
                "city",
                "postal_code",
                "country",
            ],
        },
    )
    async def buy_token(
        self,
        wallet: WalletClient,
        product_locator: str,
        recipient_email: str,
        recipient_name: str,
        address_line1: str,
        city: str,
        postal_code: str,
        country: str,
        address_line2: str = "",
        state: str = "",
        currency: str = "usdc",
    ) -> str:
        locator = normalize_product_locator(product_locator)
        currency = (currency or "usdc").strip().lower()
        allowed = _CURRENCIES[wallet.chain.family]
        if currency not in allowed:
            raise ValueError(
                f"Currency '{currency}' cannot be paid on {wallet.chain.name}. "
                f"Use one of {sorted(allowed)}."
            )

        physical_address = {
            "name": recipient_name.strip(),
            "line1": address_line1.strip(),
            "city": city.strip(),
            "postalCode": postal_code.strip(),
            "country": country.strip().upper(),
        }
        if address_line2.strip():
            physical_address["line2"] = address_line2.strip()
        if state.strip():
            physical_address["state"] = state.strip()

        body = {
            "recipient": {
                "email": recipient_email.strip(),
                "physicalAddress": physical_address,
            },
            "payment": {
                "method": wallet.chain.checkout_method,
                "currency": currency,
                "payerAddress": wallet.address,
            },
            "lineItems": [{"productLocator": locator}],
        }

        order = await self.create_order(body)
        order_id = order.get("orderId", "unknown")
        payment = order.get("payment") or {}
        serialized = (payment.get("preparation") or {}).get("serializedTransaction")
        if not serialized:
            failure = payment.get("failureReason") or payment.get("status") or "unknown"
            raise CheckoutError(
                f"Order {order_id} cannot be paid ({failure}); "
                "this item may not be available for purchase."
            )

        tx_id = wallet.send_serialized_transaction(serialized)
        logger.info(f"Order {order_id} for {locator} paid with {currency}: {tx_id}")
        return (
            f"Order placed and paid.\n"
            f"  Order ID: {order_id}\n"
            f"  Product: {locator}\n"
            f"  Recipient: {recipient_email.strip()}\n"
            f"  Transaction: {tx_id}\n"
            f"  Explorer: {wallet.explorer_tx_url(tx_id)}"
        )
