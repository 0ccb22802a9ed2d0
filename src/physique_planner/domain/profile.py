"""Biometric intake models."""

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class Sex(StrEnum):
    """Biological sex category used by the BMR formulas."""

    FEMALE = "female"
    MALE = "male"


class Goal(StrEnum):
    """Body composition goal."""

    CUTTING = "cutting"
    MAINTENANCE = "maintenance"
    BULKING = "bulking"


class ActivityLevel(StrEnum):
    """Weekly activity level, ordered from least to most active."""

    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "veryActive"


@dataclass(frozen=True)
class ActivityInfo:
    """Multiplier and labels for an activity level."""

    factor: Decimal
    title: str
    description: str


ACTIVITY_LEVELS: dict[ActivityLevel, ActivityInfo] = {
    ActivityLevel.SEDENTARY: ActivityInfo(
        factor=Decimal("1.2"),
        title="Sedentary",
        description="Little or no weekly exercise",
    ),
    ActivityLevel.LIGHT: ActivityInfo(
        factor=Decimal("1.375"),
        title="Lightly active",
        description="Light exercise 1-3 times a week",
    ),
    ActivityLevel.MODERATE: ActivityInfo(
        factor=Decimal("1.55"),
        title="Moderately active",
        description="Moderate exercise 3-5 times a week",
    ),
    ActivityLevel.ACTIVE: ActivityInfo(
        factor=Decimal("1.725"),
        title="Very active",
        description="Hard training 6-7 times a week",
    ),
    ActivityLevel.VERY_ACTIVE: ActivityInfo(
        factor=Decimal("1.9"),
        title="Extremely active",
        description="Hard daily training combined with physical work",
    ),
}

AGE_RANGE = (18, 80)
HEIGHT_RANGE_CM = (140.0, 200.0)
WEIGHT_RANGE_KG = (35.0, 180.0)


class BiometricProfile(BaseModel):
    """Validated intake data. Immutable once created."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    age: int = Field(ge=AGE_RANGE[0], le=AGE_RANGE[1])
    height: float = Field(ge=HEIGHT_RANGE_CM[0], le=HEIGHT_RANGE_CM[1])
    weight: float = Field(ge=WEIGHT_RANGE_KG[0], le=WEIGHT_RANGE_KG[1])
    sex: Sex = Field(alias="gender")
    activity_level: ActivityLevel = Field(alias="activityLevel")
    goal: Goal

    @property
    def activity(self) -> ActivityInfo:
        """Return multiplier and labels for the profile's activity level."""
        return ACTIVITY_LEVELS[self.activity_level]
