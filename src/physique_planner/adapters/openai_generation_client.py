"""OpenAI Responses API client for text, vision and structured generation."""

import base64
import logging
from dataclasses import dataclass

import httpx
import openai
from openai import AsyncOpenAI

from physique_planner.domain.conversation import (
    ConversationMessage,
    MediaPart,
    Role,
    TextPart,
)
from physique_planner.domain.errors import ModelBlockedError, UpstreamError
from physique_planner.services.generation import (
    GenerationClient,
    GenerationRequest,
    GenerationResult,
)

_logger = logging.getLogger(__name__)

_BLOCKED_REASONS = {"content_filter"}
_POLICY_ERROR_CODES = {"content_policy_violation", "content_filter"}


@dataclass
class OpenAIGenerationClient(GenerationClient):
    """Generation client backed by the OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls,
        api_key: str,
        *,
        base_url: str | None = None,
        timeout_seconds: float = 90.0,
    ) -> "OpenAIGenerationClient":
        """Create a client with a bounded timeout and SDK retries disabled."""
        http_client = httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))
        return cls(
            client=AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout_seconds,
                max_retries=0,
                http_client=http_client,
            )
        )

    async def invoke(self, request: GenerationRequest) -> GenerationResult:
        """Call the Responses API and normalize the result."""
        payload = build_request_payload(request)
        try:
            response = await self.client.responses.create(**payload)
        except openai.APITimeoutError as exc:
            raise UpstreamError(
                f"model request timed out: {exc}", timed_out=True
            ) from exc
        except openai.APIConnectionError as exc:
            raise UpstreamError(f"could not reach model provider: {exc}") from exc
        except openai.APIStatusError as exc:
            if getattr(exc, "code", None) in _POLICY_ERROR_CODES:
                raise ModelBlockedError(f"request rejected by policy: {exc}") from exc
            raise UpstreamError(
                f"model provider returned {exc.status_code}: {exc}",
                status_code=exc.status_code,
            ) from exc

        status = getattr(response, "status", None) or "completed"
        if status == "failed":
            error = getattr(response, "error", None)
            raise UpstreamError(f"model response failed: {error}")
        finish_reason = _incomplete_reason(response)
        refused = _has_refusal(response)
        if finish_reason or refused:
            _logger.warning(
                "Model response not clean: status=%s reason=%s refusal=%s",
                status,
                finish_reason,
                refused,
            )
        return GenerationResult(
            text=getattr(response, "output_text", "") or "",
            status=status,
            blocked=refused or finish_reason in _BLOCKED_REASONS,
            finish_reason="refusal" if refused else finish_reason,
            usage=_usage_dict(response),
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.client.close()


def build_request_payload(request: GenerationRequest) -> dict[str, object]:
    """Translate a generation request into Responses API arguments."""
    payload: dict[str, object] = {
        "model": request.model,
        "instructions": request.instructions,
        "input": [_to_input_message(message) for message in request.messages],
        "store": request.store,
    }
    if request.schema is not None:
        payload["text"] = {
            "format": {
                "type": "json_schema",
                "name": request.schema_name or "structured_output",
                "strict": True,
                "schema": request.schema,
            }
        }
    if request.temperature is not None:
        payload["temperature"] = request.temperature
    if request.max_output_tokens is not None:
        payload["max_output_tokens"] = request.max_output_tokens
    if request.reasoning_effort:
        payload["reasoning"] = {"effort": request.reasoning_effort}
    return payload


def _to_input_message(message: ConversationMessage) -> dict[str, object]:
    text_type = "output_text" if message.role is Role.ASSISTANT else "input_text"
    content: list[dict[str, object]] = []
    for part in message.parts:
        if isinstance(part, TextPart):
            content.append({"type": text_type, "text": part.text})
        elif isinstance(part, MediaPart):
            content.append(
                {"type": "input_image", "image_url": _to_data_url(part)}
            )
    return {"role": message.role.value, "content": content}


def _to_data_url(part: MediaPart) -> str:
    """Convert media bytes to a base64 data URL for image input."""
    encoded = base64.b64encode(part.data).decode("utf-8")
    return f"data:{part.mime_type};base64,{encoded}"


def _incomplete_reason(response: object) -> str | None:
    details = getattr(response, "incomplete_details", None)
    return getattr(details, "reason", None) if details is not None else None


def _has_refusal(response: object) -> bool:
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for part in getattr(item, "content", None) or []:
            if getattr(part, "type", None) == "refusal":
                return True
    return False


def _usage_dict(response: object) -> dict[str, object] | None:
    usage = getattr(response, "usage", None)
    if usage is None:
        return None
    if hasattr(usage, "model_dump"):
        return usage.model_dump()
    return dict(usage)
