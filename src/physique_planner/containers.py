"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from physique_planner.adapters.openai_generation_client import OpenAIGenerationClient
from physique_planner.config import Settings
from physique_planner.services.conversation import ConversationService
from physique_planner.services.generation import GenerationClient
from physique_planner.services.meal_plan import MealPlanService
from physique_planner.services.pipeline import PipelineCoordinator
from physique_planner.services.vision import VisualAssessmentService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    generation_client: GenerationClient
    vision_service: VisualAssessmentService
    conversation_service: ConversationService
    meal_plan_service: MealPlanService
    close_resources: Callable[[], Awaitable[None]]

    def new_pipeline(self) -> PipelineCoordinator:
        """Create a fresh, request-scoped pipeline coordinator."""
        return PipelineCoordinator(
            vision_service=self.vision_service,
            conversation_service=self.conversation_service,
            meal_plan_service=self.meal_plan_service,
        )


def build_services(
    settings: Settings, client: GenerationClient
) -> tuple[VisualAssessmentService, ConversationService, MealPlanService]:
    """Create the stage services for a generation client."""
    vision_service = VisualAssessmentService(
        client=client,
        model=settings.vision_model,
        reasoning_effort=settings.openai_reasoning_effort,
        store=settings.openai_store,
        temperature=settings.vision_temperature,
        max_output_tokens=settings.vision_max_output_tokens,
        max_images_per_group=settings.max_images_per_group,
        max_image_bytes=settings.max_image_bytes,
    )
    conversation_service = ConversationService(
        client=client,
        model=settings.chat_model,
        reasoning_effort=settings.openai_reasoning_effort,
        store=settings.openai_store,
        temperature=settings.chat_temperature,
        max_output_tokens=settings.chat_max_output_tokens,
    )
    meal_plan_service = MealPlanService(
        client=client,
        model=settings.planner_model,
        reasoning_effort=settings.openai_reasoning_effort,
        store=settings.openai_store,
        temperature=settings.planner_temperature,
        max_output_tokens=settings.planner_max_output_tokens,
    )
    return vision_service, conversation_service, meal_plan_service


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    openai_client = OpenAIGenerationClient.create(
        resolved_settings.openai_api_key,
        base_url=resolved_settings.openai_base_url,
        timeout_seconds=resolved_settings.request_timeout_seconds,
    )
    vision_service, conversation_service, meal_plan_service = build_services(
        resolved_settings, openai_client
    )

    async def close_resources() -> None:
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        generation_client=openai_client,
        vision_service=vision_service,
        conversation_service=conversation_service,
        meal_plan_service=meal_plan_service,
        close_resources=close_resources,
    )
