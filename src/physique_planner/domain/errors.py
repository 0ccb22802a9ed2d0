"""Typed failures raised by the pipeline stages."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """User-facing failure category."""

    BAD_INPUT = "bad_input"
    TRY_AGAIN = "try_again"
    POLICY_BLOCKED = "policy_blocked"


class PipelineError(Exception):
    """Base class for every failure surfaced at the pipeline boundary."""

    kind: ErrorKind = ErrorKind.TRY_AGAIN
    user_message: str = "Something went wrong. Please try again."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail or self.user_message


class IntakeValidationError(PipelineError):
    """Intake fields are missing or out of range."""

    kind = ErrorKind.BAD_INPUT
    user_message = "Some of the submitted data is invalid."

    def __init__(self, messages: list[str]) -> None:
        super().__init__("; ".join(messages))
        self.messages = messages


class EmptyModelOutputError(PipelineError):
    """The model call succeeded but produced no usable content."""

    user_message = "The AI model returned an empty response. Please try again."


class ModelBlockedError(PipelineError):
    """A safety or policy filter suppressed the model output."""

    kind = ErrorKind.POLICY_BLOCKED
    user_message = (
        "The AI model declined to respond because of its content policy. "
        "Try different photos or rephrase the request."
    )


class SchemaValidationError(PipelineError):
    """Structured output did not match the required shape."""

    user_message = "The generated plan was malformed. Please try again."


class UpstreamError(PipelineError):
    """Network, auth, rate-limit or timeout failure from the model provider."""

    user_message = "The AI service is unavailable right now. Please try again."

    def __init__(
        self,
        detail: str | None = None,
        *,
        status_code: int | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.timed_out = timed_out


class StageOrderError(PipelineError):
    """A stage was requested before its prerequisites completed."""

    kind = ErrorKind.BAD_INPUT
    user_message = "Please complete the previous step first."


class StageConflictError(PipelineError):
    """The pipeline changed while a stage call was in flight."""

    user_message = "Your data changed while this step was running. Please retry."
