"""Pydantic models for HTTP request payloads."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field, StringConstraints, field_validator

from physique_planner.domain.conversation import (
    ConversationMessage,
    Role,
    TextPart,
)

NonBlankText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class MealPlanRequest(BaseModel):
    """Body of a meal plan request."""

    user_input: dict[str, object] | None = Field(default=None, alias="userInput")
    metrics: dict[str, object] | None = None
    preferences: list[str] = Field(default_factory=list)
    restrictions: list[str] = Field(default_factory=list)

    @field_validator("preferences", "restrictions", mode="before")
    @classmethod
    def _null_as_empty(cls, value: object) -> object:
        return [] if value is None else value


class ChatTextPart(BaseModel):
    """Text part of a chat message."""

    type: Literal["text"]
    text: NonBlankText


class ChatMessagePayload(BaseModel):
    """Chat message as sent by the presentation layer."""

    role: Literal["user", "assistant"]
    content: NonBlankText | Annotated[list[ChatTextPart], Field(min_length=1)]

    def to_message(self) -> ConversationMessage:
        """Convert to a domain conversation message."""
        if isinstance(self.content, str):
            parts = (TextPart(self.content),)
        else:
            parts = tuple(TextPart(part.text) for part in self.content)
        return ConversationMessage(role=Role(self.role), parts=parts)


class ChatRequest(BaseModel):
    """Body of a chat turn request."""

    messages: list[ChatMessagePayload] = Field(min_length=1)
