"""Conversation state: immutable messages in an append-only store."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Iterator, Literal

Role = Literal["user", "assistant", "system"]


def _new_id(role: str) -> str:
    return f"{role}-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str
    id: str = field(default="")

    def __post_init__(self) -> None:
        if not self.id:
            object.__setattr__(self, "id", _new_id(self.role))

    @classmethod
    def user(cls, content: str) -> ChatMessage:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> ChatMessage:
        return cls(role="assistant", content=content)


class ConversationStore:
    """Ordered history of one chat session, kept in process memory.

    Messages can only be appended; there is no size bound.
    """

    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []

    def append(self, message: ChatMessage) -> None:
        self._messages.append(message)

    def snapshot(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(self.snapshot())
