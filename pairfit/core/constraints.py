"""Hard safety and feasibility rules applied before any exercise is scored."""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from pairfit.core.models import SPACE_RANK, ExerciseDefinition, UserProgressProfile


@dataclass(frozen=True)
class ConstraintCheckResult:
    passed: bool
    reason: Optional[str] = None


@dataclass
class FilteredExercises:
    safe_for_a: List[ExerciseDefinition] = field(default_factory=list)
    safe_for_b: List[ExerciseDefinition] = field(default_factory=list)
    safe_for_both: List[ExerciseDefinition] = field(default_factory=list)


PASSED = ConstraintCheckResult(True)


def _equipment_satisfied(required: Iterable[str], available: set) -> bool:
    return all(item == "none" or item in available for item in required)


def check_constraints(
    exercise: ExerciseDefinition,
    profile: UserProgressProfile,
    available_equipment: Sequence[str],
    available_space: str,
) -> ConstraintCheckResult:
    """
    Check one exercise for one person. Rules run in a fixed order and the first
    failing rule decides the reason.
    """
    # Injury contraindications
    for injury in profile.current_injuries:
        if injury in exercise.contraindicated_injuries:
            return ConstraintCheckResult(False, f"Contraindicated for injury: {injury}")

    # Equipment, with alternatives
    equipment = set(available_equipment)
    if not _equipment_satisfied(exercise.equipment_required, equipment):
        if not any(_equipment_satisfied(alt, equipment) for alt in exercise.equipment_alternatives):
            missing = [e for e in exercise.equipment_required if e != "none" and e not in equipment]
            return ConstraintCheckResult(False, f"Missing required equipment: {', '.join(missing)}")

    # Space
    if SPACE_RANK[exercise.space_required] > SPACE_RANK.get(available_space, SPACE_RANK["medium"]):
        return ConstraintCheckResult(False, f"Requires more space: {exercise.space_required}")

    # Foundational abilities
    abilities = profile.estimated_abilities
    if exercise.requires_pushup_ability and abilities.push_up_max < 1:
        return ConstraintCheckResult(False, "Requires push-up ability")
    if exercise.requires_plank_ability and abilities.plank_max_seconds < 10:
        return ConstraintCheckResult(False, "Requires plank ability")
    if exercise.requires_squat_ability and abilities.squat_max < 1:
        return ConstraintCheckResult(False, "Requires squat ability")

    return PASSED


def filter_exercises_by_constraints(
    exercises: Iterable[ExerciseDefinition],
    profile_a: UserProgressProfile,
    profile_b: UserProgressProfile,
    available_equipment: Sequence[str],
    available_space: str,
) -> FilteredExercises:
    result = FilteredExercises()
    for exercise in exercises:
        ok_a = check_constraints(exercise, profile_a, available_equipment, available_space).passed
        ok_b = check_constraints(exercise, profile_b, available_equipment, available_space).passed
        if ok_a:
            result.safe_for_a.append(exercise)
        if ok_b:
            result.safe_for_b.append(exercise)
        if ok_a and ok_b:
            result.safe_for_both.append(exercise)
    return result
