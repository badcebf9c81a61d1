"""Weighted multi-factor scoring of candidate exercise pairs."""

from statistics import mean
from typing import Collection, Dict, FrozenSet, Iterable

from pairfit.core.models import (
    INTENSITY_RANK,
    ExerciseDefinition,
    PairingScore,
    PairingStrategy,
    UserProgressProfile,
)

SCORE_WEIGHTS: Dict[str, float] = {
    "safety_score": 1000,
    "ability_match_score": 100,
    "hr_zone_match_score": 50,
    "rir_match_score": 40,
    "time_sync_score": 30,
    "goal_alignment_score": 25,
    "enjoyment_score": 20,
    "variety_score": 15,
    "connection_score": 10,
}

LOWER_BODY = ("quadriceps", "hamstrings", "glutes")

# Which exercises serve which goal: matched against category, movement type and muscle group.
GOAL_TAGS: Dict[str, FrozenSet[str]] = {
    "lose_weight": frozenset({"cardio", "plyometric", "warmup_cardio", "full_body"}),
    "build_muscle": frozenset({"strength"}),
    "get_toned": frozenset({"strength", "core", "glutes"}),
    "flexibility": frozenset({"flexibility", "flexibility_static", "cooldown_stretch", "cooldown_mobility"}),
    "general_fitness": frozenset({"strength", "cardio", "full_body"}),
    "stress_relief": frozenset({"flexibility", "balance", "cooldown_stretch", "cooldown_mobility"}),
}

NO_GOAL_SCORE = 0.7


def estimate_target_difficulty(muscle_group: str, profile: UserProgressProfile) -> float:
    """Map the person's relevant 0-100 strength score onto the 1-5 difficulty scale."""
    abilities = profile.estimated_abilities
    if muscle_group in LOWER_BODY:
        strength = mean(abilities.strength_for(m) for m in LOWER_BODY)
    elif muscle_group in abilities.strength:
        strength = abilities.strength[muscle_group]
    else:
        strength = 50
    return 1 + (strength / 100) * 4


def ability_match(exercise: ExerciseDefinition, profile: UserProgressProfile) -> float:
    diff = abs(exercise.difficulty - estimate_target_difficulty(exercise.muscle_group, profile))
    if diff <= 0.5:
        return 1.0
    if diff <= 1.0:
        return 0.85
    if diff <= 1.5:
        return 0.7
    if diff <= 2.0:
        return 0.5
    return 0.3


def hr_zone_match(exercise_a: ExerciseDefinition, exercise_b: ExerciseDefinition) -> float:
    diff = abs(INTENSITY_RANK[exercise_a.intensity_level] - INTENSITY_RANK[exercise_b.intensity_level])
    return {0: 1.0, 1: 0.8, 2: 0.5}.get(diff, 0.3)


def estimated_seconds(exercise: ExerciseDefinition) -> int:
    return exercise.default_duration_seconds or (exercise.default_reps or 10) * 3


def time_sync(exercise_a: ExerciseDefinition, exercise_b: ExerciseDefinition) -> float:
    time_a = estimated_seconds(exercise_a)
    time_b = estimated_seconds(exercise_b)
    return min(time_a, time_b) / max(time_a, time_b)


def _goal_score(exercise: ExerciseDefinition, goals: Iterable[str]) -> float:
    goals = list(goals)
    if not goals:
        return NO_GOAL_SCORE
    tags = {exercise.category, exercise.movement_type, exercise.muscle_group}
    if any(tags & GOAL_TAGS.get(goal, frozenset()) for goal in goals):
        return 1.0
    return 0.4


def goal_alignment(
    exercise_a: ExerciseDefinition,
    exercise_b: ExerciseDefinition,
    profile_a: UserProgressProfile,
    profile_b: UserProgressProfile,
) -> float:
    if not profile_a.goals and not profile_b.goals:
        return NO_GOAL_SCORE
    return (_goal_score(exercise_a, profile_a.goals) + _goal_score(exercise_b, profile_b.goals)) / 2


def _enjoyment(exercise: ExerciseDefinition, profile: UserProgressProfile) -> float:
    prefs = profile.learned_preferences
    if exercise.id in prefs.preferred_exercises:
        return 1.0
    if exercise.id in prefs.disliked_exercises:
        return 0.2
    return 0.6


def variety(
    exercise_a: ExerciseDefinition,
    exercise_b: ExerciseDefinition,
    profile_a: UserProgressProfile,
    profile_b: UserProgressProfile,
    recent_exercise_ids: Collection[str] = (),
) -> float:
    ids = {exercise_a.id, exercise_b.id}
    if ids & set(recent_exercise_ids):
        return 0.4
    performed = set(profile_a.exercise_mastery) | set(profile_b.exercise_mastery)
    if not ids & performed:
        return 1.0
    return 0.7


def connection(strategy: PairingStrategy, is_partner_exercise: bool) -> float:
    if is_partner_exercise:
        return 1.0
    if strategy == PairingStrategy.MIRROR_FACING:
        return 0.8
    if strategy == PairingStrategy.COMPETITIVE_SAME:
        return 0.7
    return 0.4


def calculate_pair_score(
    exercise_a: ExerciseDefinition,
    exercise_b: ExerciseDefinition,
    profile_a: UserProgressProfile,
    profile_b: UserProgressProfile,
    strategy: PairingStrategy,
    is_partner_exercise: bool = False,
    recent_exercise_ids: Collection[str] = (),
) -> PairingScore:
    """
    Score a pair that has already passed the constraint filter for both people.

    Safety is therefore always 1.0; its large weight keeps any pair that slipped
    past the filter below every safe pair.
    """
    match_a = ability_match(exercise_a, profile_a)
    match_b = ability_match(exercise_b, profile_b)

    parts = {
        "safety_score": 1.0,
        "ability_match_score": (match_a + match_b) / 2,
        "hr_zone_match_score": hr_zone_match(exercise_a, exercise_b),
        "rir_match_score": min(match_a, match_b),
        "time_sync_score": time_sync(exercise_a, exercise_b),
        "goal_alignment_score": goal_alignment(exercise_a, exercise_b, profile_a, profile_b),
        "enjoyment_score": (_enjoyment(exercise_a, profile_a) + _enjoyment(exercise_b, profile_b)) / 2,
        "variety_score": variety(exercise_a, exercise_b, profile_a, profile_b, recent_exercise_ids),
        "connection_score": connection(strategy, is_partner_exercise),
    }
    total = sum(parts[name] * weight for name, weight in SCORE_WEIGHTS.items())
    return PairingScore(**parts, total_score=total)
