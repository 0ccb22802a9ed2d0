"""Deterministic metabolic calculations.

Every intermediate value is rounded half away from zero before it feeds the
next step. Arithmetic runs on ``Decimal`` so that half-way cases round the
same way on every platform.
"""

from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal

from pydantic import ValidationError

from physique_planner.domain.errors import IntakeValidationError
from physique_planner.domain.metrics import MacroBreakdown, MetricsResult
from physique_planner.domain.profile import (
    ACTIVITY_LEVELS,
    AGE_RANGE,
    HEIGHT_RANGE_CM,
    WEIGHT_RANGE_KG,
    ActivityLevel,
    BiometricProfile,
    Goal,
    Sex,
)

_BMR_COEFFICIENTS: dict[Sex, tuple[Decimal, Decimal, Decimal, Decimal]] = {
    # base, per kg, per cm, per year
    Sex.FEMALE: (Decimal("655"), Decimal("9.6"), Decimal("1.8"), Decimal("4.7")),
    Sex.MALE: (Decimal("66"), Decimal("13.7"), Decimal("5"), Decimal("6.8")),
}

GOAL_FACTORS: dict[Goal, Decimal] = {
    Goal.CUTTING: Decimal("0.85"),
    Goal.MAINTENANCE: Decimal("1.00"),
    Goal.BULKING: Decimal("1.15"),
}

# protein, carbs, fat share of daily calories
MACRO_SPLITS: dict[Goal, tuple[Decimal, Decimal, Decimal]] = {
    Goal.CUTTING: (Decimal("0.35"), Decimal("0.35"), Decimal("0.30")),
    Goal.MAINTENANCE: (Decimal("0.30"), Decimal("0.40"), Decimal("0.30")),
    Goal.BULKING: (Decimal("0.25"), Decimal("0.50"), Decimal("0.25")),
}

KCAL_PER_GRAM_PROTEIN = 4
KCAL_PER_GRAM_CARBS = 4
KCAL_PER_GRAM_FAT = 9

# Worst case of rounding each macro independently: 0.5 g of each, in kcal.
MACRO_ROUNDING_TOLERANCE_KCAL = 0.5 * (
    KCAL_PER_GRAM_PROTEIN + KCAL_PER_GRAM_CARBS + KCAL_PER_GRAM_FAT
)

_FIELD_LABELS = {
    "age": f"Age must be between {AGE_RANGE[0]} and {AGE_RANGE[1]} years.",
    "height": (
        f"Height must be between {HEIGHT_RANGE_CM[0]:g} cm "
        f"and {HEIGHT_RANGE_CM[1]:g} cm."
    ),
    "weight": (
        f"Weight must be between {WEIGHT_RANGE_KG[0]:g} kg "
        f"and {WEIGHT_RANGE_KG[1]:g} kg."
    ),
    "gender": "Sex must be 'female' or 'male'.",
    "activityLevel": (
        "Activity level must be one of: "
        + ", ".join(level.value for level in ActivityLevel)
        + "."
    ),
    "goal": "Goal must be one of: cutting, maintenance, bulking.",
}
_FIELD_LABELS["sex"] = _FIELD_LABELS["gender"]
_FIELD_LABELS["activity_level"] = _FIELD_LABELS["activityLevel"]


def round_half_away(value: Decimal | int | float) -> int:
    """Round to the nearest integer, ties away from zero."""
    return int(_to_decimal(value).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def validate_profile(data: Mapping[str, object]) -> BiometricProfile:
    """Build a profile from raw intake data or raise IntakeValidationError."""
    try:
        return BiometricProfile.model_validate(data)
    except ValidationError as exc:
        messages: list[str] = []
        for error in exc.errors():
            location = error["loc"][0] if error["loc"] else ""
            field_name = str(location)
            if error["type"] == "missing":
                message = f"Field '{field_name}' is required."
            elif error["type"] == "extra_forbidden":
                message = f"Unexpected field '{field_name}'."
            else:
                message = _FIELD_LABELS.get(field_name, error["msg"])
            if message not in messages:
                messages.append(message)
        raise IntakeValidationError(messages) from exc


def calculate_bmr(profile: BiometricProfile) -> int:
    """Basal metabolic rate in kcal/day."""
    base, per_kg, per_cm, per_year = _BMR_COEFFICIENTS[profile.sex]
    value = (
        base
        + per_kg * _to_decimal(profile.weight)
        + per_cm * _to_decimal(profile.height)
        - per_year * _to_decimal(profile.age)
    )
    return round_half_away(value)


def calculate_tdee(bmr: int, activity_level: ActivityLevel) -> int:
    """Maintenance energy: BMR scaled by the activity multiplier."""
    return round_half_away(bmr * ACTIVITY_LEVELS[activity_level].factor)


def adjust_calories_for_goal(tdee: int, goal: Goal) -> int:
    """Apply the goal deficit or surplus."""
    return round_half_away(tdee * GOAL_FACTORS[goal])


def calculate_macros(calories: int, goal: Goal) -> MacroBreakdown:
    """Split calories into macro grams using the goal's fixed percentages."""
    protein_share, carbs_share, fat_share = MACRO_SPLITS[goal]
    return MacroBreakdown(
        protein=round_half_away(calories * protein_share / KCAL_PER_GRAM_PROTEIN),
        carbs=round_half_away(calories * carbs_share / KCAL_PER_GRAM_CARBS),
        fat=round_half_away(calories * fat_share / KCAL_PER_GRAM_FAT),
    )


def compute_metrics(profile: BiometricProfile) -> MetricsResult:
    """Derive BMR, TDEE, goal-adjusted calories and macros for a profile."""
    _assert_in_range(profile)
    bmr = calculate_bmr(profile)
    tdee = calculate_tdee(bmr, profile.activity_level)
    target = adjust_calories_for_goal(tdee, profile.goal)
    return MetricsResult(
        bmr=bmr,
        tdee=tdee,
        target_calories=target,
        macros=calculate_macros(target, profile.goal),
    )


def _assert_in_range(profile: BiometricProfile) -> None:
    """Fail fast on profiles built without validation."""
    checks = (
        ("age", profile.age, AGE_RANGE),
        ("height", profile.height, HEIGHT_RANGE_CM),
        ("weight", profile.weight, WEIGHT_RANGE_KG),
    )
    messages = [
        _FIELD_LABELS[name]
        for name, value, (low, high) in checks
        if not low <= value <= high
    ]
    if messages:
        raise IntakeValidationError(messages)


def _to_decimal(value: Decimal | int | float) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
