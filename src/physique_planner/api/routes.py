"""Pipeline endpoints consumed by the presentation layer."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from physique_planner.api.models import ChatRequest, MealPlanRequest
from physique_planner.domain.errors import (
    EmptyModelOutputError,
    IntakeValidationError,
    ModelBlockedError,
    PipelineError,
    SchemaValidationError,
    StageConflictError,
    UpstreamError,
)
from physique_planner.domain.metrics import MetricsResult
from physique_planner.domain.profile import (
    ACTIVITY_LEVELS,
    HEIGHT_RANGE_CM,
    WEIGHT_RANGE_KG,
)
from physique_planner.domain.vision import ImageAsset, ImageRole
from physique_planner.services.metrics import compute_metrics, validate_profile

if TYPE_CHECKING:
    from physique_planner.containers import AppContainer

router = APIRouter(prefix="/api", tags=["pipeline"])
_logger = logging.getLogger(__name__)

_UNEXPECTED_ERROR = "Unexpected error. Please try again."
_POLICY_BLOCKED_STATUS = 422


@router.get("/activity-levels")
async def activity_levels() -> dict[str, object]:
    """List activity levels in order with their multipliers."""
    return {
        "levels": [
            {
                "id": level.value,
                "factor": float(info.factor),
                "title": info.title,
                "description": info.description,
            }
            for level, info in ACTIVITY_LEVELS.items()
        ]
    }


@router.post("/metrics")
async def metrics(request: Request) -> JSONResponse:
    """Validate intake data and return the computed metrics."""
    container: AppContainer = request.app.state.container
    try:
        body = await _read_json(request)
        profile = validate_profile(body)
        result = compute_metrics(profile)
    except PipelineError as exc:
        _logger.info("Intake rejected: %s", exc.detail)
        return _error_response(container, exc, "Invalid intake data")
    return JSONResponse(
        {
            "profile": profile.model_dump(mode="json", by_alias=True),
            "metrics": result.model_dump(by_alias=True),
        }
    )


@router.post("/analyze")
async def analyze(request: Request) -> JSONResponse:
    """Run the visual assessment on uploaded current and goal photos."""
    container: AppContainer = request.app.state.container
    try:
        async with request.form() as form:
            weight = _parse_measure("weight", form.get("weight"), WEIGHT_RANGE_KG)
            height = _parse_measure("height", form.get("height"), HEIGHT_RANGE_CM)
            current = await _read_images(
                form.getlist("currentPhotos"), ImageRole.CURRENT
            )
            goal = await _read_images(form.getlist("goalPhotos"), ImageRole.GOAL)
        _logger.info(
            "Analyze request: current_photos=%s goal_photos=%s",
            len(current),
            len(goal),
        )
        assessment = await container.vision_service.analyze_visuals(
            current, goal, weight, height
        )
    except PipelineError as exc:
        _log_failure("Visual assessment failed", exc)
        return _error_response(container, exc, "Failed to process visual analysis")
    except Exception as exc:
        _logger.exception("Visual assessment crashed")
        return _error_response(container, exc, "Failed to process visual analysis")

    payload: dict[str, object] = {
        "analysis": assessment.analysis,
        "weight": assessment.weight,
        "height": assessment.height,
    }
    if assessment.usage is not None:
        payload["usage"] = assessment.usage
    return JSONResponse(payload)


@router.post("/meal-plan")
async def meal_plan(request: Request) -> JSONResponse:
    """Generate a structured meal plan for a profile and its metrics."""
    container: AppContainer = request.app.state.container
    try:
        body = MealPlanRequest.model_validate(await _read_json(request))
    except ValidationError:
        return _simple_error("Invalid meal plan request.", status.HTTP_400_BAD_REQUEST)
    except PipelineError as exc:
        return _simple_error(exc.detail, _status_for(exc))
    if not body.user_input or not body.metrics:
        return _simple_error(
            "User data and metrics are required.", status.HTTP_400_BAD_REQUEST
        )

    try:
        profile = validate_profile(body.user_input)
        supplied = _parse_metrics(body.metrics)
        computed = compute_metrics(profile)
        if supplied != computed:
            raise IntakeValidationError(
                ["Metrics do not match the submitted profile. Recalculate them."]
            )
        plan = await container.meal_plan_service.generate_meal_plan(
            profile, computed, body.preferences, body.restrictions
        )
    except PipelineError as exc:
        _log_failure("Meal plan generation failed", exc)
        return _simple_error(_user_facing(container, exc), _status_for(exc))
    except Exception:
        _logger.exception("Meal plan generation crashed")
        return _simple_error(
            _UNEXPECTED_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return JSONResponse(
        {"success": True, "mealPlan": plan.model_dump(mode="json", by_alias=True)}
    )


@router.post("/chat")
async def chat(request: Request) -> JSONResponse:
    """Return the assistant reply for the submitted conversation."""
    container: AppContainer = request.app.state.container
    try:
        body = ChatRequest.model_validate(await _read_json(request))
    except ValidationError:
        return _simple_error("Invalid chat request.", status.HTTP_400_BAD_REQUEST)
    except PipelineError as exc:
        return _simple_error(exc.detail, _status_for(exc))
    if body.messages[-1].role != "user":
        return _simple_error(
            "The last message must come from the user.", status.HTTP_400_BAD_REQUEST
        )

    try:
        reply = await container.conversation_service.reply(
            [message.to_message() for message in body.messages]
        )
    except PipelineError as exc:
        _log_failure("Chat turn failed", exc)
        return _simple_error(_user_facing(container, exc), _status_for(exc))
    except Exception:
        _logger.exception("Chat turn crashed")
        return _simple_error(
            _UNEXPECTED_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return JSONResponse({"message": {"role": reply.role.value, "content": reply.text}})


async def _read_json(request: Request) -> object:
    """Parse the JSON body, treating malformed JSON as bad input."""
    try:
        return await request.json()
    except ValueError as exc:
        raise IntakeValidationError(["Request body must be valid JSON."]) from exc


def _parse_measure(
    name: str, raw: object, bounds: tuple[float, float]
) -> float:
    """Parse a decimal form field and check it against its range."""
    low, high = bounds
    message = f"{name.capitalize()} must be a number between {low:g} and {high:g}."
    if not isinstance(raw, str) or not raw.strip():
        raise IntakeValidationError([message])
    try:
        value = float(raw.strip().replace(",", "."))
    except ValueError as exc:
        raise IntakeValidationError([message]) from exc
    if not low <= value <= high:
        raise IntakeValidationError([message])
    return value


def _parse_metrics(raw: dict[str, object]) -> MetricsResult:
    try:
        return MetricsResult.model_validate(raw)
    except ValidationError as exc:
        raise IntakeValidationError(["Metrics are malformed."]) from exc


async def _read_images(entries: list[object], role: ImageRole) -> list[ImageAsset]:
    """Read uploaded files in submission order."""
    assets: list[ImageAsset] = []
    for entry in entries:
        if not isinstance(entry, UploadFile):
            raise IntakeValidationError([f"Each {role.value} photo must be a file."])
        assets.append(
            ImageAsset(data=await entry.read(), mime_type=entry.content_type, role=role)
        )
    return assets


def _status_for(exc: PipelineError) -> int:
    """Map a pipeline failure to an HTTP status code."""
    if isinstance(exc, UpstreamError):
        if exc.timed_out:
            return status.HTTP_504_GATEWAY_TIMEOUT
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, ModelBlockedError):
        return _POLICY_BLOCKED_STATUS
    if isinstance(exc, EmptyModelOutputError | SchemaValidationError):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, StageConflictError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


def _log_failure(message: str, exc: PipelineError) -> None:
    if isinstance(exc, IntakeValidationError):
        _logger.info("%s: %s", message, exc.detail)
    else:
        _logger.exception("%s: %s", message, type(exc).__name__)


def _user_facing(container: AppContainer, exc: PipelineError) -> str:
    """Return the user message, plus debug detail when running locally."""
    if isinstance(exc, IntakeValidationError):
        return exc.detail
    if container.settings.is_local:
        return f"{exc.user_message} (debug: {type(exc).__name__}: {exc.detail})"
    return exc.user_message


def _error_response(
    container: AppContainer, exc: Exception, error: str
) -> JSONResponse:
    """Build an ``{error, details}`` response for a failure."""
    if isinstance(exc, PipelineError):
        return JSONResponse(
            {"error": error, "details": _user_facing(container, exc)},
            status_code=_status_for(exc),
        )
    details = _UNEXPECTED_ERROR
    if container.settings.is_local:
        details = f"{details} (debug: {type(exc).__name__}: {exc})"
    return JSONResponse(
        {"error": error, "details": details},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def _simple_error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)
