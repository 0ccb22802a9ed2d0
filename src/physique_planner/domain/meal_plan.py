"""Structured meal plan returned by the planner model."""

from pydantic import BaseModel, ConfigDict, Field


class _StrictModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class FoodItem(_StrictModel):
    """Single food within a meal."""

    item: str = Field(min_length=1)
    quantity: str
    calories: int = Field(ge=0)


class Meal(_StrictModel):
    """Meal slot with its foods in serving order."""

    name: str = Field(min_length=1)
    time: str
    calories: int = Field(ge=0)
    foods: tuple[FoodItem, ...] = Field(min_length=1)


class PlanMacros(_StrictModel):
    """Macro totals for the plan in grams."""

    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)


class MealPlan(_StrictModel):
    """Daily meal plan in chronological meal order."""

    total_calories: int = Field(alias="totalCalories", gt=0)
    macros: PlanMacros
    meals: tuple[Meal, ...] = Field(min_length=1)
    notes: str | None = None

    def meal_calories(self) -> int:
        """Sum the calories of every meal."""
        return sum(meal.calories for meal in self.meals)

    def calorie_deviation(self) -> float:
        """Relative gap between the meal sum and the stated daily total."""
        return abs(self.meal_calories() - self.total_calories) / self.total_calories
