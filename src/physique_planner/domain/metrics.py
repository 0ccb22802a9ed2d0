"""Derived metabolic metrics."""

from pydantic import BaseModel, ConfigDict, Field


class MacroBreakdown(BaseModel):
    """Daily macronutrient targets in grams."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    protein: int = Field(ge=0)
    carbs: int = Field(ge=0)
    fat: int = Field(ge=0)

    def calories(self) -> int:
        """Convert grams back to kcal (4/4/9 kcal per gram)."""
        return 4 * self.protein + 4 * self.carbs + 9 * self.fat


class MetricsResult(BaseModel):
    """Output of the metrics engine for a single profile."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    bmr: int
    tdee: int
    target_calories: int = Field(alias="targetCalories")
    macros: MacroBreakdown
