"""Conversational follow-up grounded in earlier stage results."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from physique_planner.domain.conversation import ConversationMessage, Transcript
from physique_planner.domain.metrics import MetricsResult
from physique_planner.domain.profile import BiometricProfile, Goal, Sex
from physique_planner.domain.vision import VisualAssessment
from physique_planner.services.generation import (
    GenerationClient,
    GenerationRequest,
    require_text,
)

_logger = logging.getLogger(__name__)

CHAT_SYSTEM_PROMPT = """\
You are a consultant specialized in body transformation and wellbeing.

The person has just received their metabolic metrics and possibly a detailed \
visual analysis comparing their current physique with their goal. Your role:
- Answer questions about the results they received
- Give practical, motivating advice
- Explain nutrition and training concepts simply
- Help build realistic strategies to reach their goals
- Suggest concrete next steps

Guidelines:
- Be clear, empathetic, positive and professional
- Use inclusive, respectful language
- Give evidence-based information
- When appropriate, suggest an in-person professional follow-up

Style: conversational and warm, objective without being cold, practical and \
focused on solutions.
"""

GOAL_LABELS: dict[Goal, str] = {
    Goal.CUTTING: "cutting (fat loss and definition)",
    Goal.MAINTENANCE: "maintenance",
    Goal.BULKING: "bulking (muscle gain)",
}

_SEX_LABELS: dict[Sex, str] = {Sex.FEMALE: "female", Sex.MALE: "male"}


def build_intro_message(profile: BiometricProfile, metrics: MetricsResult) -> str:
    """Summarize intake data and computed metrics as the opening user turn."""
    macros = metrics.macros
    return "\n".join(
        [
            "Here is my data to personalize the follow-up:",
            f"- Age: {profile.age} years",
            f"- Sex: {_SEX_LABELS[profile.sex]}",
            f"- Height: {profile.height:g} cm",
            f"- Weight: {profile.weight:g} kg",
            f"- Activity level: {profile.activity.title} "
            f"(x{profile.activity.factor})",
            f"- Goal: {GOAL_LABELS[profile.goal]}",
            "",
            "Calculated results:",
            f"- Estimated BMR: {metrics.bmr} kcal",
            f"- Maintenance calories (TDEE): {metrics.tdee} kcal",
            f"- Recommended daily calories for the goal: "
            f"{metrics.target_calories} kcal",
            f"- Macro split (g/day): {macros.protein} protein / "
            f"{macros.carbs} carbs / {macros.fat} fat",
            "",
            "Based on this, I'd like a body analysis and personalized suggestions.",
        ]
    )


def build_assessment_message(assessment: VisualAssessment) -> str:
    """Summarize the visual assessment as a user turn."""
    return "\n".join(
        [
            "This is the visual analysis I received for my photos "
            f"(weight {assessment.weight:g} kg, height {assessment.height:g} cm):",
            "",
            assessment.analysis,
        ]
    )


@dataclass
class ConversationService:
    """Runs one conversational model turn over a transcript."""

    client: GenerationClient
    model: str
    reasoning_effort: str | None = None
    store: bool = False
    temperature: float | None = None
    max_output_tokens: int | None = None

    async def reply(
        self, messages: Sequence[ConversationMessage]
    ) -> ConversationMessage:
        """Return the assistant reply to the given messages."""
        result = await self.client.invoke(
            GenerationRequest(
                model=self.model,
                instructions=CHAT_SYSTEM_PROMPT,
                messages=tuple(messages),
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
            )
        )
        text = require_text(result, stage="chat")
        return ConversationMessage.assistant_text(text)


@dataclass
class ConversationSession:
    """Transcript plus a lock that allows one model call at a time."""

    service: ConversationService
    transcript: Transcript = field(default_factory=Transcript)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def send(self, text: str) -> ConversationMessage:
        """Send a user turn and append it with the reply once the call resolves."""
        user_message = ConversationMessage.user_text(text)
        async with self._lock:
            pending = (*self.transcript.messages, user_message)
            _logger.info("Chat turn: transcript_length=%s", len(pending))
            reply = await self.service.reply(pending)
            self.transcript.append(user_message, reply)
        return reply
