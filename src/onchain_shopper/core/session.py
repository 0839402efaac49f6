"""The chat session and the interactive loop around it."""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from rich.console import Console
from rich.markup import escape

from onchain_shopper.core.conversation import ChatMessage, ConversationStore
from onchain_shopper.llm.base import BaseLLMProvider, LLMMessage
from onchain_shopper.llm.generation import StepCallback, StepResult, generate_text

if TYPE_CHECKING:
    from onchain_shopper.tools.registry import ToolRegistry

logger = logging.getLogger("onchain_shopper.session")

GREETING = "👋 Welcome! How can I assist you with your shopping today?"
EXIT_HINT = "Type 'exit' to end the conversation."
FAREWELL = "👋 Thanks for shopping with us! Have a great day!"
EXIT_COMMAND = "exit"


class ShoppingSession:
    """One conversation with the model, with wallet tools attached."""

    def __init__(
        self,
        provider: BaseLLMProvider,
        registry: ToolRegistry,
        system_prompt: str,
        max_steps: int = 10,
        on_step_finish: Optional[StepCallback] = None,
    ):
        self.provider = provider
        self.registry = registry
        self.system_prompt = system_prompt
        self.max_steps = max_steps
        self.on_step_finish = on_step_finish
        self.history = ConversationStore()

    def build_messages(self) -> list[LLMMessage]:
        """System prompt followed by the full history, in order."""
        messages = [LLMMessage(role="system", content=self.system_prompt)]
        messages.extend(
            LLMMessage(role=m.role, content=m.content) for m in self.history.snapshot()
        )
        return messages

    async def respond(self, text: str) -> str:
        """Record *text* as a user turn and return the model's reply.

        If generation fails the exception propagates; the user message stays
        in the history and no assistant message is recorded.
        """
        self.history.append(ChatMessage.user(text))
        result = await generate_text(
            self.provider,
            self.build_messages(),
            self.registry,
            max_steps=self.max_steps,
            on_step_finish=self.on_step_finish,
        )
        self.history.append(ChatMessage.assistant(result.text))
        return result.text


class LoopState(str, Enum):
    WAITING_FOR_INPUT = "waiting_for_input"
    PROCESSING = "processing"
    TERMINATED = "terminated"


class ChatLoop:
    """Read a line, answer it, repeat until the user types ``exit``."""

    def __init__(
        self,
        session: ShoppingSession,
        console: Console,
        read_line: Callable[[], str] | None = None,
    ):
        self.session = session
        self.console = console
        self._read_line = read_line or (lambda: console.input("[bold blue]You:[/bold blue] "))
        if session.on_step_finish is None:
            session.on_step_finish = self.print_tool_results
        self.state = LoopState.WAITING_FOR_INPUT

    def print_tool_results(self, step: StepResult) -> None:
        for r in step.tool_results:
            self.console.print(f"[dim]⚙ {r.name}: {escape(r.result)}[/dim]", highlight=False)

    def _terminate(self) -> None:
        self.console.print(f"\n{FAREWELL}")
        self.state = LoopState.TERMINATED

    async def run(self) -> None:
        self.console.print(GREETING)
        self.console.print(f"{EXIT_HINT}\n")

        while self.state is not LoopState.TERMINATED:
            try:
                line = self._read_line()
            except (EOFError, KeyboardInterrupt):
                self._terminate()
                break

            if line.strip().lower() == EXIT_COMMAND:
                self._terminate()
                break

            self.state = LoopState.PROCESSING
            try:
                with self.console.status("Thinking..."):
                    reply = await self.session.respond(line)
            except Exception as exc:
                logger.debug("Turn failed", exc_info=True)
                self.console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
            else:
                self.console.print(f"\n[bold green]Assistant:[/bold green] {escape(reply)}\n", highlight=False)
            self.state = LoopState.WAITING_FOR_INPUT
