"""Structured meal plan generation."""

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import ValidationError

from physique_planner.domain.conversation import ConversationMessage
from physique_planner.domain.errors import SchemaValidationError
from physique_planner.domain.meal_plan import MealPlan
from physique_planner.domain.metrics import MetricsResult
from physique_planner.domain.profile import BiometricProfile, Goal
from physique_planner.services.generation import (
    GenerationClient,
    GenerationRequest,
    require_text,
)

_logger = logging.getLogger(__name__)

PLANNER_SYSTEM_PROMPT = """\
You are an expert in nutrition planning.

When creating meal plans:
- Use common, affordable foods
- Calculate macronutrients precisely
- Spread meals across the day with specific times
- Give portions in household measures as well as grams where useful
- Consider preparation effort, cost, nutritional variety, personal \
preferences and dietary restrictions

Return only the structured plan requested by the response schema.
"""

MEAL_SLOTS: tuple[tuple[str, str], ...] = (
    ("Breakfast", "07:00"),
    ("Morning snack", "10:00"),
    ("Lunch", "12:30"),
    ("Afternoon snack", "15:30"),
    ("Dinner", "19:00"),
    ("Late snack (optional)", "21:30"),
)

_GOAL_DESCRIPTIONS: dict[Goal, str] = {
    Goal.CUTTING: "muscle definition and fat loss",
    Goal.MAINTENANCE: "body weight maintenance",
    Goal.BULKING: "muscle mass gain (hypertrophy)",
}

MAX_CALORIE_DEVIATION = 0.10

_FOOD_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "item": {"type": "string"},
        "quantity": {"type": "string"},
        "calories": {"type": "integer", "minimum": 0},
    },
    "required": ["item", "quantity", "calories"],
    "additionalProperties": False,
}

MEAL_PLAN_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "totalCalories": {"type": "integer", "minimum": 1},
        "macros": {
            "type": "object",
            "properties": {
                "protein": {"type": "number", "minimum": 0},
                "carbs": {"type": "number", "minimum": 0},
                "fat": {"type": "number", "minimum": 0},
            },
            "required": ["protein", "carbs", "fat"],
            "additionalProperties": False,
        },
        "meals": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "time": {"type": "string"},
                    "calories": {"type": "integer", "minimum": 0},
                    "foods": {
                        "type": "array",
                        "minItems": 1,
                        "items": _FOOD_SCHEMA,
                    },
                },
                "required": ["name", "time", "calories", "foods"],
                "additionalProperties": False,
            },
        },
        "notes": {"anyOf": [{"type": "string"}, {"type": "null"}]},
    },
    "required": ["totalCalories", "macros", "meals", "notes"],
    "additionalProperties": False,
}


@dataclass
class MealPlanService:
    """Prompts the planner model and validates its structured output."""

    client: GenerationClient
    model: str
    reasoning_effort: str | None = None
    store: bool = False
    temperature: float | None = None
    max_output_tokens: int | None = None

    async def generate_meal_plan(
        self,
        profile: BiometricProfile,
        metrics: MetricsResult,
        preferences: Sequence[str] = (),
        restrictions: Sequence[str] = (),
    ) -> MealPlan:
        """Generate a meal plan hitting the computed calorie and macro targets."""
        prompt = build_meal_plan_prompt(profile, metrics, preferences, restrictions)
        result = await self.client.invoke(
            GenerationRequest(
                model=self.model,
                instructions=PLANNER_SYSTEM_PROMPT,
                messages=(ConversationMessage.user_text(prompt),),
                schema=MEAL_PLAN_SCHEMA,
                schema_name="meal_plan",
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
            )
        )
        plan = parse_meal_plan(require_text(result, stage="meal plan"))
        deviation = plan.calorie_deviation()
        if deviation > MAX_CALORIE_DEVIATION:
            _logger.warning(
                "Meal calories deviate from plan total: total=%s meals=%s (%.0f%%)",
                plan.total_calories,
                plan.meal_calories(),
                deviation * 100,
            )
        return plan


def parse_meal_plan(raw_text: str) -> MealPlan:
    """Validate model output against the MealPlan schema, or fail."""
    try:
        payload = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise SchemaValidationError(f"meal plan is not valid JSON: {exc}") from exc
    try:
        return MealPlan.model_validate(payload)
    except ValidationError as exc:
        raise SchemaValidationError(
            f"meal plan does not match schema: {exc.error_count()} error(s): "
            + "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            )
        ) from exc


def clean_items(items: Sequence[str]) -> list[str]:
    """Strip entries and drop blanks, keeping order."""
    return [item.strip() for item in items if item and item.strip()]


def build_meal_plan_prompt(
    profile: BiometricProfile,
    metrics: MetricsResult,
    preferences: Sequence[str] = (),
    restrictions: Sequence[str] = (),
) -> str:
    """Build the planner prompt with the full numeric targets."""
    goal = _GOAL_DESCRIPTIONS[profile.goal]
    macros = metrics.macros
    lines = [
        "Create a detailed, personalized meal plan for a person with this profile:",
        "",
        "Personal data:",
        f"- Age: {profile.age} years",
        f"- Sex: {profile.sex.value}",
        f"- Height: {profile.height:g} cm",
        f"- Weight: {profile.weight:g} kg",
        f"- Activity level: {profile.activity.title}",
        f"- Goal: {goal}",
        "",
        "Nutrition targets:",
        f"- Daily calories: {metrics.target_calories} kcal",
        f"- Protein: {macros.protein} g",
        f"- Carbohydrates: {macros.carbs} g",
        f"- Fat: {macros.fat} g",
    ]
    cleaned_preferences = clean_items(preferences)
    cleaned_restrictions = clean_items(restrictions)
    if cleaned_preferences:
        lines += ["", f"Food preferences: {', '.join(cleaned_preferences)}"]
    if cleaned_restrictions:
        lines += [
            "",
            f"Dietary restrictions (must be respected): "
            f"{', '.join(cleaned_restrictions)}",
        ]
    lines += [
        "",
        "Plan requirements:",
        "1. Spread the calories over 5-6 meals across the day",
        "2. Use common, accessible foods",
        "3. Give a specific time for each meal",
        "4. Give portions in household measures (cup, spoon, unit, grams)",
        "5. Calculate macronutrients precisely; meal calories should add up "
        "to the daily total",
        "6. Keep preparation practical and the menu varied",
        "7. Every meal must list at least one food",
        "",
        "Suggested structure (you may merge or skip slots):",
        *(f"- {name} ({time})" for name, time in MEAL_SLOTS),
        "",
        f"Create a balanced, practical plan suited to the goal of {goal}.",
    ]
    return "\n".join(lines)
