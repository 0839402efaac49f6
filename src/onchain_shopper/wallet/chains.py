"""Chain and token definitions for the supported wallet backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

ChainFamily = Literal["evm", "solana"]


@dataclass(frozen=True)
class Chain:
    """A network a wallet can transact on."""

    name: str
    family: ChainFamily
    rpc_url: str
    native_symbol: str
    native_decimals: int
    explorer_url: str
    checkout_method: str  # payment method name understood by the checkout service
    chain_id: Optional[int] = None  # EVM only


@dataclass(frozen=True)
class Token:
    """A fungible token deployed on one or more chains."""

    symbol: str
    name: str
    decimals: int
    addresses: dict[str, str] = field(default_factory=dict)

    def address_on(self, chain: Chain) -> str:
        """Contract (EVM) or mint (Solana) address of this token on *chain*.

        Raises ``KeyError`` if the token is not deployed there.
        """
        if chain.name not in self.addresses:
            raise KeyError(f"{self.symbol} is not available on {chain.name}")
        return self.addresses[chain.name]

    def is_on(self, chain: Chain) -> bool:
        return chain.name in self.addresses


CHAINS: dict[str, Chain] = {
    "base": Chain(
        name="base",
        family="evm",
        chain_id=8453,
        rpc_url="https://mainnet.base.org",
        native_symbol="ETH",
        native_decimals=18,
        explorer_url="https://basescan.org",
        checkout_method="base",
    ),
    "base-sepolia": Chain(
        name="base-sepolia",
        family="evm",
        chain_id=84532,
        rpc_url="https://sepolia.base.org",
        native_symbol="ETH",
        native_decimals=18,
        explorer_url="https://sepolia.basescan.org",
        checkout_method="base-sepolia",
    ),
    "ethereum": Chain(
        name="ethereum",
        family="evm",
        chain_id=1,
        rpc_url="https://eth.llamarpc.com",
        native_symbol="ETH",
        native_decimals=18,
        explorer_url="https://etherscan.io",
        checkout_method="ethereum",
    ),
    "polygon": Chain(
        name="polygon",
        family="evm",
        chain_id=137,
        rpc_url="https://polygon-rpc.com",
        native_symbol="POL",
        native_decimals=18,
        explorer_url="https://polygonscan.com",
        checkout_method="polygon",
    ),
    "arbitrum": Chain(
        name="arbitrum",
        family="evm",
        chain_id=42161,
        rpc_url="https://arb1.arbitrum.io/rpc",
        native_symbol="ETH",
        native_decimals=18,
        explorer_url="https://arbiscan.io",
        checkout_method="arbitrum",
    ),
    "solana": Chain(
        name="solana",
        family="solana",
        rpc_url="https://api.mainnet-beta.solana.com",
        native_symbol="SOL",
        native_decimals=9,
        explorer_url="https://explorer.solana.com",
        checkout_method="solana",
    ),
    "solana-devnet": Chain(
        name="solana-devnet",
        family="solana",
        rpc_url="https://api.devnet.solana.com",
        native_symbol="SOL",
        native_decimals=9,
        explorer_url="https://explorer.solana.com/?cluster=devnet",
        checkout_method="solana",
    ),
}

DEFAULT_CHAINS: dict[str, str] = {
    "evm": "base",
    "solana": "solana",
}

USDC = Token(
    symbol="USDC",
    name="USD Coin",
    decimals=6,
    addresses={
        "base": "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
        "base-sepolia": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
        "ethereum": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        "polygon": "0x3c499c542cEF5E3811e1192ce70d8cC03d5c3359",
        "arbitrum": "0xaf88d065e77c8cC2239327C5EDb3A432268e5831",
        "solana": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        "solana-devnet": "4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU",
    },
)

TOKENS: dict[str, Token] = {
    "USDC": USDC,
}


def get_chain(name: str) -> Chain:
    """Get a chain by name. Raises ``KeyError`` if not found."""
    if name not in CHAINS:
        raise KeyError(
            f"Unknown chain '{name}'. Available: {list_chain_names()}"
        )
    return CHAINS[name]


def list_chain_names(family: ChainFamily | None = None) -> list[str]:
    """Return the names of all supported chains, optionally for one family."""
    return [n for n, c in CHAINS.items() if family is None or c.family == family]


def get_token(symbol: str) -> Token:
    """Look a token up by (case-insensitive) symbol."""
    key = symbol.strip().upper()
    if key not in TOKENS:
        raise KeyError(f"Unknown token '{symbol}'. Available: {list(TOKENS)}")
    return TOKENS[key]
