"""Sequential pipeline state: intake, metrics, visuals, chat, meal plan.

Each stage is a frozen dataclass holding exactly the results that exist at that
point, so a later stage cannot be reached without the earlier results. Results
are committed only after the stage call resolves; a failed or cancelled call
leaves the previous state in place.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace

from physique_planner.domain.conversation import ConversationMessage, Transcript
from physique_planner.domain.errors import StageConflictError, StageOrderError
from physique_planner.domain.meal_plan import MealPlan
from physique_planner.domain.metrics import MetricsResult
from physique_planner.domain.profile import BiometricProfile
from physique_planner.domain.vision import ImageAsset, VisualAssessment
from physique_planner.services.conversation import (
    ConversationService,
    ConversationSession,
    build_assessment_message,
    build_intro_message,
)
from physique_planner.services.meal_plan import MealPlanService
from physique_planner.services.metrics import compute_metrics, validate_profile
from physique_planner.services.vision import VisualAssessmentService

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntakeStage:
    """Nothing submitted yet."""

    name = "intake"


@dataclass(frozen=True)
class MetricsComputed:
    """Profile validated and metrics derived."""

    profile: BiometricProfile
    metrics: MetricsResult
    name = "metrics_computed"


@dataclass(frozen=True)
class VisualAssessed:
    """Visual assessment completed."""

    profile: BiometricProfile
    metrics: MetricsResult
    assessment: VisualAssessment
    name = "visual_assessed"


@dataclass(frozen=True)
class Conversing:
    """Conversation started; the session owns the transcript."""

    profile: BiometricProfile
    metrics: MetricsResult
    assessment: VisualAssessment | None
    session: ConversationSession = field(compare=False)
    name = "conversing"


@dataclass(frozen=True)
class PlanGenerated:
    """Meal plan produced."""

    profile: BiometricProfile
    metrics: MetricsResult
    assessment: VisualAssessment | None
    session: ConversationSession | None = field(compare=False)
    meal_plan: MealPlan
    name = "plan_generated"


PipelineState = (
    IntakeStage | MetricsComputed | VisualAssessed | Conversing | PlanGenerated
)
_WithMetrics = MetricsComputed | VisualAssessed | Conversing | PlanGenerated


@dataclass
class PipelineCoordinator:
    """Drives the stages in order and owns their results."""

    vision_service: VisualAssessmentService
    conversation_service: ConversationService
    meal_plan_service: MealPlanService
    state: PipelineState = field(default_factory=IntakeStage)

    def submit_intake(self, data: Mapping[str, object]) -> MetricsResult:
        """Validate intake data and compute metrics, restarting the pipeline."""
        profile = validate_profile(data)
        metrics = compute_metrics(profile)
        self.state = MetricsComputed(profile=profile, metrics=metrics)
        _logger.info(
            "Intake accepted: goal=%s target=%s",
            profile.goal.value,
            metrics.target_calories,
        )
        return metrics

    async def request_visual_assessment(
        self,
        current: Sequence[ImageAsset],
        goal: Sequence[ImageAsset],
    ) -> VisualAssessment:
        """Run the visual assessment for the submitted profile.

        Allowed until the conversation or plan stage starts; re-running it
        from ``VisualAssessed`` replaces the previous assessment.
        """
        started = self._require_metrics("visual assessment")
        if isinstance(started, Conversing | PlanGenerated):
            raise StageOrderError(
                f"visual assessment cannot run after {started.name}; "
                "resubmit intake to start over"
            )
        assessment = await self.vision_service.analyze_visuals(
            current, goal, started.profile.weight, started.profile.height
        )
        self._commit(
            started,
            VisualAssessed(
                profile=started.profile,
                metrics=started.metrics,
                assessment=assessment,
            ),
        )
        return assessment

    async def send_chat_turn(self, text: str) -> ConversationMessage:
        """Send one user turn, starting the conversation on first use."""
        started = self._require_metrics("chat")
        existing = _session_of(started)
        if existing is not None:
            return await existing.send(text)
        assessment = _assessment_of(started)
        session = ConversationSession(
            service=self.conversation_service,
            transcript=Transcript(_context_messages(started, assessment)),
        )
        reply = await session.send(text)
        if isinstance(started, PlanGenerated):
            new_state: PipelineState = replace(started, session=session)
        else:
            new_state = Conversing(
                profile=started.profile,
                metrics=started.metrics,
                assessment=assessment,
                session=session,
            )
        self._commit(started, new_state)
        return reply

    async def request_meal_plan(
        self,
        preferences: Sequence[str] = (),
        restrictions: Sequence[str] = (),
    ) -> MealPlan:
        """Generate a meal plan from the engine-computed metrics."""
        started = self._require_metrics("meal plan")
        meal_plan = await self.meal_plan_service.generate_meal_plan(
            started.profile, started.metrics, preferences, restrictions
        )
        self._commit(
            started,
            PlanGenerated(
                profile=started.profile,
                metrics=started.metrics,
                assessment=_assessment_of(started),
                session=_session_of(started),
                meal_plan=meal_plan,
            ),
        )
        return meal_plan

    @property
    def transcript(self) -> tuple[ConversationMessage, ...]:
        """Return the conversation so far, empty before the first turn."""
        if isinstance(self.state, IntakeStage):
            return ()
        session = _session_of(self.state)
        if session is None:
            return ()
        return session.transcript.messages

    def _require_metrics(self, stage: str) -> _WithMetrics:
        state = self.state
        if isinstance(state, IntakeStage):
            raise StageOrderError(f"{stage} requires a completed intake")
        return state

    def _commit(self, expected: PipelineState, new_state: PipelineState) -> None:
        if self.state is not expected:
            raise StageConflictError(
                f"pipeline moved from {expected.name} to {self.state.name} "
                f"while {new_state.name} was running"
            )
        self.state = new_state


def _assessment_of(state: _WithMetrics) -> VisualAssessment | None:
    if isinstance(state, MetricsComputed):
        return None
    return state.assessment


def _session_of(state: _WithMetrics) -> ConversationSession | None:
    if isinstance(state, Conversing | PlanGenerated):
        return state.session
    return None


def _context_messages(
    state: _WithMetrics, assessment: VisualAssessment | None
) -> tuple[ConversationMessage, ...]:
    intro = build_intro_message(state.profile, state.metrics)
    messages = [ConversationMessage.user_text(intro)]
    if assessment is not None:
        messages.append(
            ConversationMessage.user_text(build_assessment_message(assessment))
        )
    return tuple(messages)
