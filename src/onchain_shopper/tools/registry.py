"""Tool registry - collect wallet-bound tools for the model."""

from __future__ import annotations

import functools
import inspect
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable

from onchain_shopper.llm.base import ToolDefinition

if TYPE_CHECKING:
    from onchain_shopper.wallet.base import WalletClient

_TOOL_ATTR = "__shopper_tool__"


@dataclass
class Tool:
    name: str
    description: str
    parameters: dict[str, Any]
    func: Callable[..., Any] | Callable[..., Awaitable[Any]]
    is_async: bool = False

    def __post_init__(self) -> None:
        self.is_async = self.is_async or inspect.iscoroutinefunction(self.func)

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )

    async def execute(self, **kwargs) -> str:
        result = self.func(**kwargs)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, str):
            return result
        return json.dumps(result, default=str)


class ToolRegistry:
    """The set of tools offered to the model during one session."""

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: dict[str, Tool] = {}
        for t in tools:
            self.register(t)

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def get_tool(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list_names(self) -> list[str]:
        return list(self._tools.keys())

    def definitions(self) -> list[ToolDefinition]:
        return [t.to_definition() for t in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)


def tool(name: str, description: str, parameters: dict[str, Any]):
    """Mark a plugin method as a tool.

    The method receives the session's wallet as its first argument after
    ``self``; the remaining arguments are what the model supplies, described
    by the JSON Schema in *parameters*.

    Usage:
        class MyPlugin(Plugin):
            @tool("get_wallet_address", "Get the address of the wallet",
                  {"type": "object", "properties": {}})
            def get_wallet_address(self, wallet: WalletClient) -> str:
                ...
    """

    def decorator(func: Callable) -> Callable:
        setattr(func, _TOOL_ATTR, (name, description, parameters))
        return func

    return decorator


class Plugin:
    """A group of tools that operate on a wallet."""

    name: str = "plugin"

    def supports_wallet(self, wallet: WalletClient) -> bool:
        return True

    def get_tools(self, wallet: WalletClient) -> list[Tool]:
        """Bind every ``@tool`` method of this plugin to *wallet*."""
        tools = []
        for attr in dir(type(self)):
            func = getattr(type(self), attr)
            marker = getattr(func, _TOOL_ATTR, None)
            if marker is None:
                continue
            name, description, params = marker
            tools.append(
                Tool(
                    name=name,
                    description=description,
                    parameters=params,
                    func=functools.partial(func, self, wallet),
                    is_async=inspect.iscoroutinefunction(func),
                )
            )
        return tools
