"""Tests for the metrics engine."""

from decimal import Decimal

import pytest

from physique_planner.domain.errors import IntakeValidationError
from physique_planner.domain.profile import (
    ACTIVITY_LEVELS,
    ActivityLevel,
    BiometricProfile,
    Goal,
)
from physique_planner.services.metrics import (
    MACRO_ROUNDING_TOLERANCE_KCAL,
    adjust_calories_for_goal,
    calculate_bmr,
    calculate_macros,
    calculate_tdee,
    compute_metrics,
    round_half_away,
    validate_profile,
)
from tests.conftest import PROFILE_DATA


def _profile(**overrides: object) -> BiometricProfile:
    return BiometricProfile.model_validate({**PROFILE_DATA, **overrides})


def test_compute_metrics_female_cutting_example(profile) -> None:
    result = compute_metrics(profile)

    # 655 + 9.6*68 + 1.8*165 - 4.7*38 = 1426.2
    assert result.bmr == 1426
    # 1426 * 1.375 = 1960.75
    assert result.tdee == 1961
    # 1961 * 0.85 = 1666.85
    assert result.target_calories == 1667
    assert result.macros.protein == 146
    assert result.macros.carbs == 146
    assert result.macros.fat == 56


def test_compute_metrics_male_maintenance_is_exact() -> None:
    profile = _profile(
        age=30,
        height=180,
        weight=80,
        gender="male",
        activityLevel="moderate",
        goal="maintenance",
    )

    result = compute_metrics(profile)

    assert result.bmr == 1858
    assert result.tdee == 2880
    assert result.target_calories == 2880
    assert (result.macros.protein, result.macros.carbs, result.macros.fat) == (
        216,
        288,
        96,
    )
    assert result.macros.calories() == 2880


def test_compute_metrics_rounds_half_away_at_each_step() -> None:
    profile = _profile(
        age=25, height=170, weight=60, activityLevel="active", goal="bulking"
    )

    result = compute_metrics(profile)

    # 1419.5 -> 1420, 1420 * 1.725 = 2449.5 -> 2450, 2450 * 1.15 = 2817.5 -> 2818
    assert result.bmr == 1420
    assert result.tdee == 2450
    assert result.target_calories == 2818
    assert (result.macros.protein, result.macros.carbs, result.macros.fat) == (
        176,
        352,
        78,
    )


def test_round_half_away_from_zero() -> None:
    assert round_half_away(2.5) == 3
    assert round_half_away(-2.5) == -3
    assert round_half_away(Decimal("1666.85")) == 1667
    assert round_half_away(1.4999) == 1
    assert round_half_away(0.5) == 1


def test_individual_steps_match_compute_metrics(profile) -> None:
    bmr = calculate_bmr(profile)
    tdee = calculate_tdee(bmr, profile.activity_level)
    target = adjust_calories_for_goal(tdee, profile.goal)

    result = compute_metrics(profile)

    assert (bmr, tdee, target) == (result.bmr, result.tdee, result.target_calories)
    assert calculate_macros(target, profile.goal) == result.macros


def test_goal_adjustment_factors() -> None:
    assert adjust_calories_for_goal(2000, Goal.CUTTING) == 1700
    assert adjust_calories_for_goal(2000, Goal.MAINTENANCE) == 2000
    assert adjust_calories_for_goal(2000, Goal.BULKING) == 2300


@pytest.mark.parametrize("goal", list(Goal))
@pytest.mark.parametrize("sex", ["female", "male"])
@pytest.mark.parametrize(
    ("age", "height", "weight"),
    [(18, 140, 35), (38, 165, 68), (55, 182.5, 97.3), (80, 200, 180)],
)
def test_macro_calories_stay_within_rounding_tolerance(
    goal: Goal, sex: str, age: int, height: float, weight: float
) -> None:
    for level in ActivityLevel:
        profile = _profile(
            age=age,
            height=height,
            weight=weight,
            gender=sex,
            activityLevel=level.value,
            goal=goal.value,
        )
        result = compute_metrics(profile)

        difference = abs(result.macros.calories() - result.target_calories)
        assert difference <= MACRO_ROUNDING_TOLERANCE_KCAL


def test_activity_multipliers_are_distinct_and_increasing() -> None:
    factors = [ACTIVITY_LEVELS[level].factor for level in ActivityLevel]

    assert len(set(factors)) == len(factors)
    assert factors == sorted(factors)
    assert factors == [
        Decimal("1.2"),
        Decimal("1.375"),
        Decimal("1.55"),
        Decimal("1.725"),
        Decimal("1.9"),
    ]


def test_compute_metrics_is_deterministic(profile) -> None:
    first = compute_metrics(profile)
    second = compute_metrics(_profile())

    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


def test_validate_profile_accepts_wire_names() -> None:
    profile = validate_profile(PROFILE_DATA)

    assert profile.sex.value == "female"
    assert profile.activity_level is ActivityLevel.LIGHT
    assert profile.model_dump(mode="json", by_alias=True)["activityLevel"] == "light"


def test_validate_profile_reports_each_invalid_field() -> None:
    with pytest.raises(IntakeValidationError) as exc_info:
        validate_profile({**PROFILE_DATA, "age": 17, "weight": 200})

    assert exc_info.value.messages == [
        "Age must be between 18 and 80 years.",
        "Weight must be between 35 kg and 180 kg.",
    ]


def test_validate_profile_reports_missing_and_unknown_fields() -> None:
    data = {key: value for key, value in PROFILE_DATA.items() if key != "goal"}
    data["activityLevel"] = "extreme"

    with pytest.raises(IntakeValidationError) as exc_info:
        validate_profile(data)

    messages = exc_info.value.messages
    assert "Field 'goal' is required." in messages
    assert any(message.startswith("Activity level must be") for message in messages)


def test_validate_profile_rejects_fractional_age() -> None:
    with pytest.raises(IntakeValidationError):
        validate_profile({**PROFILE_DATA, "age": 30.5})


def test_compute_metrics_rejects_unvalidated_profile() -> None:
    unchecked = BiometricProfile.model_construct(
        age=12,
        height=165.0,
        weight=68.0,
        sex=_profile().sex,
        activity_level=ActivityLevel.LIGHT,
        goal=Goal.CUTTING,
    )

    with pytest.raises(IntakeValidationError):
        compute_metrics(unchecked)


def test_profile_is_immutable(profile) -> None:
    with pytest.raises(ValueError):
        profile.age = 40
