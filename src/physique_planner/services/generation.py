"""Generative model capability shared by the pipeline stages."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from physique_planner.domain.conversation import ConversationMessage
from physique_planner.domain.errors import EmptyModelOutputError, ModelBlockedError


@dataclass(frozen=True)
class GenerationRequest:
    """Single request to a generative model."""

    model: str
    instructions: str
    messages: Sequence[ConversationMessage]
    schema: dict[str, object] | None = None
    schema_name: str | None = None
    temperature: float | None = None
    max_output_tokens: int | None = None
    reasoning_effort: str | None = None
    store: bool = False


@dataclass(frozen=True)
class GenerationResult:
    """Raw outcome of a generative call."""

    text: str
    status: str = "completed"
    blocked: bool = False
    finish_reason: str | None = None
    usage: dict[str, object] | None = field(default=None)


class GenerationClient(Protocol):
    """Interface for generative model calls."""

    async def invoke(self, request: GenerationRequest) -> GenerationResult:
        """Run the request and return the raw result.

        Transport, auth, rate-limit and timeout failures raise UpstreamError.
        """


def require_text(result: GenerationResult, *, stage: str) -> str:
    """Return the result text or raise the matching typed failure."""
    if result.blocked:
        raise ModelBlockedError(
            f"{stage}: output blocked (finish_reason={result.finish_reason})"
        )
    text = result.text.strip() if result.text else ""
    if not text:
        raise EmptyModelOutputError(
            f"{stage}: model returned no text (status={result.status})"
        )
    return text
