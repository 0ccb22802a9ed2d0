"""Shared test fixtures."""

import asyncio
import copy
from dataclasses import dataclass, field

import pytest

from physique_planner.config import Settings
from physique_planner.containers import AppContainer, build_services
from physique_planner.domain.profile import BiometricProfile
from physique_planner.domain.vision import ImageAsset, ImageRole
from physique_planner.services.generation import (
    GenerationClient,
    GenerationRequest,
    GenerationResult,
)

JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png"

PROFILE_DATA: dict[str, object] = {
    "age": 38,
    "height": 165,
    "weight": 68,
    "gender": "female",
    "activityLevel": "light",
    "goal": "cutting",
}

MEAL_PLAN_PAYLOAD: dict[str, object] = {
    "totalCalories": 1667,
    "macros": {"protein": 146, "carbs": 146, "fat": 56},
    "meals": [
        {
            "name": "Breakfast",
            "time": "07:00",
            "calories": 400,
            "foods": [
                {"item": "Scrambled eggs", "quantity": "2 eggs", "calories": 180},
                {"item": "Wholegrain toast", "quantity": "2 slices", "calories": 220},
            ],
        },
        {
            "name": "Lunch",
            "time": "12:30",
            "calories": 600,
            "foods": [
                {"item": "Grilled chicken", "quantity": "150 g", "calories": 250},
                {"item": "Brown rice", "quantity": "1 cup", "calories": 220},
                {"item": "Mixed salad", "quantity": "1 bowl", "calories": 130},
            ],
        },
        {
            "name": "Afternoon snack",
            "time": "15:30",
            "calories": 200,
            "foods": [
                {"item": "Greek yogurt", "quantity": "170 g", "calories": 200}
            ],
        },
        {
            "name": "Dinner",
            "time": "19:00",
            "calories": 467,
            "foods": [
                {"item": "Baked salmon", "quantity": "120 g", "calories": 280},
                {"item": "Roasted vegetables", "quantity": "1 plate", "calories": 187},
            ],
        },
    ],
    "notes": "Drink plenty of water.",
}


def meal_plan_payload() -> dict[str, object]:
    """Return a deep copy of the valid meal plan payload."""
    return copy.deepcopy(MEAL_PLAN_PAYLOAD)


def image(role: ImageRole, data: bytes = JPEG_BYTES, mime_type: str | None = None):
    """Build an image asset for tests."""
    return ImageAsset(data=data, mime_type=mime_type or "image/jpeg", role=role)


@dataclass
class FakeGenerationClient(GenerationClient):
    """Fake generation client returning queued outcomes."""

    outcomes: list[GenerationResult | Exception] = field(default_factory=list)
    requests: list[GenerationRequest] = field(default_factory=list)

    def queue(self, *outcomes: GenerationResult | Exception) -> None:
        self.outcomes.extend(outcomes)

    async def invoke(self, request: GenerationRequest) -> GenerationResult:
        self.requests.append(request)
        if not self.outcomes:
            return GenerationResult(text="Default reply.")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@dataclass
class GatedGenerationClient(GenerationClient):
    """Fake client that blocks each call until released."""

    result: GenerationResult = field(
        default_factory=lambda: GenerationResult(text="Gated reply.")
    )
    requests: list[GenerationRequest] = field(default_factory=list)
    active: int = 0
    max_active: int = 0
    started: asyncio.Event | None = None
    release: asyncio.Event | None = None

    async def invoke(self, request: GenerationRequest) -> GenerationResult:
        if self.started is None or self.release is None:
            self.started = asyncio.Event()
            self.release = asyncio.Event()
        self.requests.append(request)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.started.set()
        try:
            await self.release.wait()
        finally:
            self.active -= 1
        return self.result


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_api_key="openai-key", environment="test")


@pytest.fixture
def profile() -> BiometricProfile:
    return BiometricProfile.model_validate(PROFILE_DATA)


@pytest.fixture
def generation_client() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def container(
    settings: Settings, generation_client: FakeGenerationClient
) -> AppContainer:
    vision_service, conversation_service, meal_plan_service = build_services(
        settings, generation_client
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        generation_client=generation_client,
        vision_service=vision_service,
        conversation_service=conversation_service,
        meal_plan_service=meal_plan_service,
        close_resources=close_resources,
    )
