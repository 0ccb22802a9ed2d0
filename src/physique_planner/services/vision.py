"""Visual body-composition assessment using a vision-capable model."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from physique_planner.domain.conversation import (
    ConversationMessage,
    MediaPart,
    Role,
    TextPart,
)
from physique_planner.domain.errors import IntakeValidationError
from physique_planner.domain.vision import ImageAsset, ImageRole, VisualAssessment
from physique_planner.services.generation import (
    GenerationClient,
    GenerationRequest,
    require_text,
)

_logger = logging.getLogger(__name__)

VISION_SYSTEM_PROMPT = """\
You are an expert in body composition analysis and physical transformation \
from photographs.

TASK: compare the person's current physique with their goal physique and \
provide a detailed analysis.

ANALYSIS STRUCTURE:

1. Current physique assessment
   - Apparent body composition (visually estimated body-fat range)
   - Muscle mass distribution
   - Posture and symmetry
   - Strengths already present

2. Comparison with the goal
   - Main differences observed
   - Areas needing the most focus (muscle gain, fat loss, definition)
   - Similarities that already exist

3. Feasibility
   - Is the goal realistic for this frame and bone structure?
   - Estimated time needed (honest but encouraging)
   - Effort required (diet, training, consistency)

4. Specific recommendations
   - Main focus (definition, hypertrophy, recomposition)
   - Training suggestions for key areas
   - General nutrition guidance
   - Sleep and recovery

5. Next steps
   - Actions the person can take right away
   - When in-person professional follow-up would help

TONE: empathetic, respectful, motivating but realistic, evidence based. \
Highlight positives before suggesting improvements.

IMPORTANT: this is a preliminary AI visual analysis. Always recommend an \
in-person professional assessment for a complete plan. Avoid medical \
diagnoses and unrealistic promises.
"""

_GENERIC_MIME_TYPES = {"", "application/octet-stream"}


@dataclass
class VisualAssessmentService:
    """Builds the multi-image request and validates the analysis text."""

    client: GenerationClient
    model: str
    reasoning_effort: str | None = None
    store: bool = False
    temperature: float | None = None
    max_output_tokens: int | None = None
    max_images_per_group: int = 5
    max_image_bytes: int = 10 * 1024 * 1024

    async def analyze_visuals(
        self,
        current: Sequence[ImageAsset],
        goal: Sequence[ImageAsset],
        weight: float,
        height: float,
    ) -> VisualAssessment:
        """Analyze current versus goal photos for the given body measurements."""
        self._validate_groups(current, goal)
        current_parts, goal_parts = await asyncio.gather(
            asyncio.to_thread(_to_media_parts, current),
            asyncio.to_thread(_to_media_parts, goal),
        )
        message = build_assessment_request(current_parts, goal_parts, weight, height)
        _logger.info(
            "Requesting visual assessment: current=%s goal=%s model=%s",
            len(current_parts),
            len(goal_parts),
            self.model,
        )
        result = await self.client.invoke(
            GenerationRequest(
                model=self.model,
                instructions=VISION_SYSTEM_PROMPT,
                messages=(message,),
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
            )
        )
        analysis = require_text(result, stage="visual assessment")
        return VisualAssessment(
            analysis=analysis,
            weight=weight,
            height=height,
            usage=result.usage,
        )

    def _validate_groups(
        self, current: Sequence[ImageAsset], goal: Sequence[ImageAsset]
    ) -> None:
        messages: list[str] = []
        for label, group, role in (
            ("current", current, ImageRole.CURRENT),
            ("goal", goal, ImageRole.GOAL),
        ):
            if not group:
                messages.append(f"At least one {label} physique photo is required.")
            if len(group) > self.max_images_per_group:
                messages.append(
                    f"At most {self.max_images_per_group} {label} physique photos "
                    "are allowed."
                )
            for asset in group:
                if asset.role is not role:
                    messages.append(f"A {asset.role.value} photo was sent as {label}.")
                if not asset.data:
                    messages.append(f"A {label} physique photo is empty.")
                elif len(asset.data) > self.max_image_bytes:
                    messages.append(f"A {label} physique photo is too large.")
                if not _is_image_mime_type(asset.mime_type):
                    messages.append(f"A {label} physique photo is not an image.")
        if messages:
            raise IntakeValidationError(messages)


def build_assessment_request(
    current: Sequence[MediaPart],
    goal: Sequence[MediaPart],
    weight: float,
    height: float,
) -> ConversationMessage:
    """Build the single user message: instructions, current photos, goal photos.

    The text refers to the photos by position, so current photos always come
    first and the two groups are never interleaved.
    """
    prompt = (
        "Analyze these body composition photos in detail.\n\n"
        "Provided data:\n"
        f"- Current weight: {weight:g} kg\n"
        f"- Height: {height:g} cm\n\n"
        "Current physique photos:\n"
        f"The first {len(current)} images show the person's current physique.\n\n"
        "Goal physique photos:\n"
        f"The next {len(goal)} images show the physique the person wants to "
        "reach.\n\n"
        "Please provide a complete analysis including:\n"
        "1. Assessment of the current body composition (fat distribution, "
        "apparent muscle mass, posture)\n"
        "2. A detailed comparison between the current and goal physique\n"
        "3. The main differences and the areas that need focus\n"
        "4. Specific, realistic recommendations to reach the goal\n"
        "5. An estimate of the time and effort required\n"
        "6. Suggested next steps, including whether a professional "
        "consultation would help\n\n"
        "Be empathetic, motivating and professional."
    )
    return ConversationMessage(
        role=Role.USER,
        parts=(TextPart(prompt), *current, *goal),
    )


def _to_media_parts(assets: Sequence[ImageAsset]) -> list[MediaPart]:
    """Convert uploaded assets into media parts, keeping their order."""
    return [
        MediaPart(data=asset.data, mime_type=_resolve_mime_type(asset))
        for asset in assets
    ]


def _resolve_mime_type(asset: ImageAsset) -> str:
    """Prefer the declared MIME type, sniffing the bytes when it is generic."""
    declared = (asset.mime_type or "").split(";")[0].strip().lower()
    if declared and declared not in _GENERIC_MIME_TYPES:
        return declared
    return _detect_mime_type(asset.data)


def _is_image_mime_type(mime_type: str | None) -> bool:
    declared = (mime_type or "").split(";")[0].strip().lower()
    return declared in _GENERIC_MIME_TYPES or declared.startswith("image/")


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in {b"GIF87a", b"GIF89a"}:
        return "image/gif"
    if image_bytes[4:12] in {b"ftypheic", b"ftypheix", b"ftypmif1"}:
        return "image/heic"
    return "image/jpeg"
