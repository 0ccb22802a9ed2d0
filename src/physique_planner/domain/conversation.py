"""Conversation messages and the append-only transcript."""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import StrEnum


class Role(StrEnum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class TextPart:
    """Plain text content."""

    text: str


@dataclass(frozen=True)
class MediaPart:
    """Binary media content such as an image."""

    data: bytes
    mime_type: str

    def __repr__(self) -> str:
        return f"MediaPart(mime_type={self.mime_type!r}, size={len(self.data)})"


MessagePart = TextPart | MediaPart


@dataclass(frozen=True)
class ConversationMessage:
    """Single turn in a conversation."""

    role: Role
    parts: tuple[MessagePart, ...]

    @classmethod
    def user_text(cls, text: str) -> "ConversationMessage":
        """Build a user message with a single text part."""
        return cls(role=Role.USER, parts=(TextPart(text),))

    @classmethod
    def assistant_text(cls, text: str) -> "ConversationMessage":
        """Build an assistant message with a single text part."""
        return cls(role=Role.ASSISTANT, parts=(TextPart(text),))

    @property
    def text(self) -> str:
        """Concatenate the text parts of the message."""
        return " ".join(part.text for part in self.parts if isinstance(part, TextPart))


class Transcript:
    """Ordered message log. Messages can be appended but never changed."""

    def __init__(self, messages: tuple[ConversationMessage, ...] = ()) -> None:
        self._messages: list[ConversationMessage] = list(messages)

    def append(self, *messages: ConversationMessage) -> None:
        """Append messages in receipt order."""
        self._messages.extend(messages)

    @property
    def messages(self) -> tuple[ConversationMessage, ...]:
        """Return a snapshot of the transcript."""
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ConversationMessage]:
        return iter(self.messages)
