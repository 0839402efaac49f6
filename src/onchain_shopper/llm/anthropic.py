"""Anthropic LLM provider using the ``anthropic`` SDK."""

from __future__ import annotations

import logging

import anthropic

from onchain_shopper.llm.base import (
    BaseLLMProvider,
    LLMMessage,
    LLMResponse,
    ToolCall,
    ToolDefinition,
)

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseLLMProvider):
    """Provider backed by the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        max_tokens: int = 4096,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        super().__init__(api_key=api_key, model=model, base_url=base_url, max_tokens=max_tokens)
        if client is None:
            client_kwargs: dict = {"api_key": self.api_key}
            if self.base_url:
                client_kwargs["base_url"] = self.base_url
            client = anthropic.AsyncAnthropic(**client_kwargs)
        self._client = client

    @staticmethod
    def _convert_messages(messages: list[LLMMessage]) -> tuple[str, list[dict]]:
        """Split off the system text and convert the rest to Anthropic blocks.

        Tool results travel back as ``user`` messages holding a
        ``tool_result`` block.
        """
        system_parts: list[str] = []
        converted: list[dict] = []
        for msg in messages:
            if msg.role == "system":
                system_parts.append(msg.content)
            elif msg.role == "assistant" and msg.tool_calls:
                blocks: list[dict] = []
                if msg.content:
                    blocks.append({"type": "text", "text": msg.content})
                for tc in msg.tool_calls:
                    blocks.append(
                        {
                            "type": "tool_use",
                            "id": tc["id"],
                            "name": tc["name"],
                            "input": tc.get("arguments") or {},
                        }
                    )
                converted.append({"role": "assistant", "content": blocks})
            elif msg.role == "tool":
                converted.append(
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "tool_result",
                                "tool_use_id": msg.tool_call_id or "",
                                "content": msg.content,
                            }
                        ],
                    }
                )
            else:
                converted.append({"role": msg.role, "content": msg.content})
        return "\n".join(system_parts), converted

    @staticmethod
    def _parse_response(response) -> LLMResponse:
        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(
                        id=block.id,
                        name=block.name,
                        arguments=block.input if isinstance(block.input, dict) else {},
                    )
                )

        usage = None
        if response.usage:
            usage = {
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            }

        return LLMResponse(
            content="\n".join(text_parts),
            tool_calls=tool_calls or None,
            usage=usage,
            stop_reason=response.stop_reason,
        )

    async def complete(
        self,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None = None,
    ) -> LLMResponse:
        system_text, anthropic_messages = self._convert_messages(messages)
        kwargs: dict = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": anthropic_messages,
        }
        if system_text:
            kwargs["system"] = system_text
        if tools:
            kwargs["tools"] = [
                {"name": t.name, "description": t.description, "input_schema": t.parameters}
                for t in tools
            ]

        try:
            response = await self._client.messages.create(**kwargs)
        except Exception as exc:
            logger.error("Anthropic API call failed: %s", exc)
            raise

        return self._parse_response(response)
