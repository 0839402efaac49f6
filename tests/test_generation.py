"""Tests for the bounded tool-calling loop."""

import pytest

from onchain_shopper.errors import UnknownToolError
from onchain_shopper.llm.base import LLMMessage
from onchain_shopper.llm.generation import generate_text
from onchain_shopper.tools.registry import Tool, ToolRegistry
from tests.conftest import FakeProvider, calls, text


def _registry(**funcs) -> ToolRegistry:
    return ToolRegistry(
        Tool(name=name, description=name, parameters={"type": "object", "properties": {}}, func=f)
        for name, f in funcs.items()
    )


def _prompt() -> list[LLMMessage]:
    return [LLMMessage(role="system", content="sys"), LLMMessage(role="user", content="hi")]


class TestGenerateText:
    @pytest.mark.asyncio
    async def test_plain_answer_is_single_step(self):
        provider = FakeProvider([text("Hello!")])
        result = await generate_text(provider, _prompt(), _registry())

        assert result.text == "Hello!"
        assert len(result.steps) == 1
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_tool_result_is_fed_back(self):
        provider = FakeProvider([calls(("get_wallet_address", {})), text("Your address is 0xabc")])
        registry = _registry(get_wallet_address=lambda: "0xabc")

        result = await generate_text(provider, _prompt(), registry)

        assert result.text == "Your address is 0xabc"
        second_request = provider.calls[1][0]
        assert second_request[-2].role == "assistant"
        assert second_request[-2].tool_calls[0]["name"] == "get_wallet_address"
        assert second_request[-1].role == "tool"
        assert second_request[-1].content == "0xabc"
        assert second_request[-1].tool_call_id == "call-0"
        assert result.steps[0].tool_results[0].result == "0xabc"

    @pytest.mark.asyncio
    async def test_tools_are_advertised(self):
        provider = FakeProvider([text("ok")])
        await generate_text(provider, _prompt(), _registry(a=lambda: 1, b=lambda: 2))
        assert [d.name for d in provider.calls[0][1]] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_async_tool_and_json_result(self):
        async def lookup(symbol):
            return {"symbol": symbol, "decimals": 6}

        provider = FakeProvider([calls(("lookup", {"symbol": "USDC"})), text("done")])
        result = await generate_text(provider, _prompt(), _registry(lookup=lookup))
        assert result.steps[0].tool_results[0].result == '{"symbol": "USDC", "decimals": 6}'

    @pytest.mark.asyncio
    async def test_step_cap_returns_last_text(self):
        provider = FakeProvider([calls(("ping", {}), content=f"step {i}") for i in range(5)])
        result = await generate_text(provider, _prompt(), _registry(ping=lambda: "pong"), max_steps=3)

        assert len(provider.calls) == 3
        assert len(result.steps) == 3
        assert result.text == "step 2"

    @pytest.mark.asyncio
    async def test_default_cap_is_ten(self):
        provider = FakeProvider([calls(("ping", {})) for _ in range(20)])
        await generate_text(provider, _prompt(), _registry(ping=lambda: "pong"))
        assert len(provider.calls) == 10

    @pytest.mark.asyncio
    async def test_unknown_tool_fails_the_generation(self):
        provider = FakeProvider([calls(("missing", {}))])
        with pytest.raises(UnknownToolError):
            await generate_text(provider, _prompt(), _registry())

    @pytest.mark.asyncio
    async def test_tool_exception_fails_the_generation(self):
        def broken():
            raise RuntimeError("rpc down")

        provider = FakeProvider([calls(("broken", {})), text("Sorry, try later")])
        with pytest.raises(RuntimeError, match="rpc down"):
            await generate_text(provider, _prompt(), _registry(broken=broken))
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self):
        provider = FakeProvider([ConnectionError("offline")])
        with pytest.raises(ConnectionError):
            await generate_text(provider, _prompt(), _registry())

    @pytest.mark.asyncio
    async def test_input_messages_are_not_mutated(self):
        prompt = _prompt()
        provider = FakeProvider([calls(("ping", {})), text("done")])
        await generate_text(provider, prompt, _registry(ping=lambda: "pong"))
        assert len(prompt) == 2

    @pytest.mark.asyncio
    async def test_on_step_finish_sees_every_step(self):
        seen = []
        provider = FakeProvider([calls(("ping", {})), text("done")])
        await generate_text(
            provider, _prompt(), _registry(ping=lambda: "pong"), on_step_finish=seen.append
        )
        assert [s.index for s in seen] == [0, 1]
        assert seen[0].tool_results[0].name == "ping"
        assert seen[1].tool_results == []

    @pytest.mark.asyncio
    async def test_usage_is_summed(self):
        provider = FakeProvider([calls(("ping", {})), text("done")])
        result = await generate_text(provider, _prompt(), _registry(ping=lambda: "pong"))
        assert result.usage == {"input_tokens": 30, "output_tokens": 8}

    @pytest.mark.asyncio
    async def test_rejects_zero_steps(self):
        with pytest.raises(ValueError):
            await generate_text(FakeProvider(), _prompt(), _registry(), max_steps=0)
