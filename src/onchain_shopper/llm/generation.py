"""Bounded tool-augmented generation.

:func:`generate_text` lets the model call registered tools for up to
``max_steps`` completions and returns the final text, the way
``Agent.think`` style loops work: each step is one model call, followed by
execution of every tool call it requested.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

from onchain_shopper.errors import UnknownToolError
from onchain_shopper.llm.base import BaseLLMProvider, LLMMessage, ToolCall

if TYPE_CHECKING:
    from onchain_shopper.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    tool_call_id: str
    name: str
    arguments: dict[str, Any]
    result: str


@dataclass
class StepResult:
    """What happened during one model call."""

    index: int
    text: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)


@dataclass
class GenerationResult:
    text: str
    steps: list[StepResult] = field(default_factory=list)
    usage: dict[str, int] = field(
        default_factory=lambda: {"input_tokens": 0, "output_tokens": 0}
    )


StepCallback = Callable[[StepResult], None]


async def _run_tool(registry: ToolRegistry, call: ToolCall) -> str:
    tool = registry.get_tool(call.name)
    if tool is None:
        raise UnknownToolError(
            f"Model requested unknown tool '{call.name}'. "
            f"Available: {registry.list_names()}"
        )
    logger.info("Calling tool %s(%s)", call.name, call.arguments)
    try:
        return await tool.execute(**call.arguments)
    except Exception as exc:
        logger.warning("Tool %s failed: %s", call.name, exc)
        raise


async def generate_text(
    provider: BaseLLMProvider,
    messages: list[LLMMessage],
    registry: ToolRegistry,
    max_steps: int = 10,
    on_step_finish: Optional[StepCallback] = None,
) -> GenerationResult:
    """Run the model with tools until it answers or *max_steps* is reached.

    *messages* is not modified.  When the step budget runs out while the
    model is still calling tools, the text of the last step is returned,
    which may be empty.

    Raises whatever the provider or a tool raises, and :class:`UnknownToolError`
    when the model names a tool that is not registered.
    """
    if max_steps < 1:
        raise ValueError("max_steps must be at least 1")

    working = list(messages)
    definitions = registry.definitions()
    result = GenerationResult(text="")

    for index in range(max_steps):
        response = await provider.complete(messages=working, tools=definitions)
        if response.usage:
            for key in ("input_tokens", "output_tokens"):
                result.usage[key] += response.usage.get(key, 0)

        step = StepResult(index=index, text=response.content or "")
        result.steps.append(step)
        result.text = step.text

        if not response.tool_calls:
            if on_step_finish:
                on_step_finish(step)
            break

        step.tool_calls = list(response.tool_calls)
        working.append(
            LLMMessage(
                role="assistant",
                content=response.content or "",
                tool_calls=[
                    {"id": tc.id, "name": tc.name, "arguments": tc.arguments}
                    for tc in response.tool_calls
                ],
            )
        )
        for call in response.tool_calls:
            output = await _run_tool(registry, call)
            step.tool_results.append(
                ToolResult(
                    tool_call_id=call.id,
                    name=call.name,
                    arguments=call.arguments,
                    result=output,
                )
            )
            working.append(LLMMessage(role="tool", content=output, tool_call_id=call.id))

        if on_step_finish:
            on_step_finish(step)
    else:
        logger.info("Step limit of %d reached", max_steps)

    logger.debug(
        "Generation finished after %d step(s), usage=%s", len(result.steps), result.usage
    )
    return result
