"""Conversation state for a chat session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Literal

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class Message:
    """Single chat message."""

    role: Role
    content: str


class Conversation:
    """Ordered, append-only list of messages owned by one chat session."""

    def __init__(self) -> None:
        self._messages: List[Message] = []

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    @property
    def messages(self) -> tuple[Message, ...]:
        """Snapshot of the conversation, safe to hand to a provider."""
        return tuple(self._messages)

    def add_user_message(self, content: str) -> Message:
        message = Message("user", content)
        self._messages.append(message)
        return message

    def add_assistant_message(self, content: str) -> Message:
        message = Message("assistant", content)
        self._messages.append(message)
        return message

    def clear(self) -> None:
        self._messages.clear()
