"""Shared test fixtures and fakes."""

from __future__ import annotations

from decimal import Decimal

import pytest

from onchain_shopper.llm.base import BaseLLMProvider, LLMMessage, LLMResponse, ToolCall, ToolDefinition
from onchain_shopper.wallet.base import WalletClient
from onchain_shopper.wallet.chains import Token, get_chain

_ENV_VARS = (
    "WALLET_PRIVATE_KEY",
    "RPC_PROVIDER_URL",
    "SOLANA_PRIVATE_KEY",
    "SOLANA_RPC_URL",
    "CROSSMINT_API_KEY",
    "CROSSMINT_ENV",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "SHOPPER_WALLET",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's real credentials out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class FakeProvider(BaseLLMProvider):
    """Replays scripted responses and records every request."""

    def __init__(self, responses: list[LLMResponse | Exception] | None = None):
        super().__init__(api_key="test", model="fake-model")
        self.responses = list(responses or [])
        self.calls: list[tuple[list[LLMMessage], list[ToolDefinition] | None]] = []

    async def complete(self, messages, tools=None) -> LLMResponse:
        self.calls.append((list(messages), tools))
        if not self.responses:
            return LLMResponse(content="ok")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def text(content: str) -> LLMResponse:
    return LLMResponse(content=content, usage={"input_tokens": 10, "output_tokens": 5})


def calls(*pairs: tuple[str, dict], content: str = "") -> LLMResponse:
    return LLMResponse(
        content=content,
        tool_calls=[ToolCall(id=f"call-{i}", name=n, arguments=a) for i, (n, a) in enumerate(pairs)],
        usage={"input_tokens": 20, "output_tokens": 3},
    )


class FakeWallet(WalletClient):
    """In-memory wallet that records what it was asked to do."""

    def __init__(self, chain_name: str = "base", address: str = "0xPayer"):
        super().__init__(get_chain(chain_name))
        self._address = address
        self.native_balance = Decimal("0.25")
        self.token_balances: dict[str, Decimal] = {"USDC": Decimal("42.5")}
        self.transfers: list[tuple[str, str, Decimal]] = []
        self.serialized: list[str] = []

    @property
    def address(self) -> str:
        return self._address

    def get_native_balance(self, address=None) -> Decimal:
        return self.native_balance

    def get_token_balance(self, token: Token, address=None) -> Decimal:
        return self.token_balances.get(token.symbol, Decimal(0))

    def transfer_token(self, token: Token, to: str, amount: Decimal) -> str:
        self.transfers.append((token.symbol, to, amount))
        return "0xtransfer"

    def send_serialized_transaction(self, serialized: str) -> str:
        self.serialized.append(serialized)
        return "0xcheckout"


@pytest.fixture
def fake_wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def solana_wallet() -> FakeWallet:
    return FakeWallet("solana", address="PayerSoLAddress")
