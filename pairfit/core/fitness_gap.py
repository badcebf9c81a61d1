"""Signed ability differential between two partners (positive = B stronger)."""

from datetime import datetime
from statistics import mean
from typing import Callable, Dict, List, Tuple

from pairfit.core.models import EstimatedAbilities, FitnessGapSnapshot, UserProgressProfile

UPPER_BODY = ("chest", "back", "shoulders")
LOWER_BODY = ("quadriceps", "hamstrings", "glutes")


def _mean_strength(abilities: EstimatedAbilities, muscles: Tuple[str, ...]) -> float:
    return mean(abilities.strength_for(m) for m in muscles)


# (dimension, extractor, denominator, weight); weights sum to 1.0
GAP_DIMENSIONS: List[Tuple[str, Callable[[EstimatedAbilities], float], float, float]] = [
    ("push_up", lambda a: a.push_up_max, 30, 0.15),
    ("plank", lambda a: a.plank_max_seconds, 120, 0.10),
    ("squat", lambda a: a.squat_max, 30, 0.15),
    ("cardio", lambda a: a.cardio_capacity_minutes, 30, 0.15),
    ("upper_strength", lambda a: _mean_strength(a, UPPER_BODY), 100, 0.15),
    ("lower_strength", lambda a: _mean_strength(a, LOWER_BODY), 100, 0.15),
    ("core_strength", lambda a: a.strength_for("core"), 100, 0.15),
]


def _normalise(value: float, denominator: float) -> float:
    return min(value / denominator, 1.0)


def calculate_fitness_gap(profile_a: UserProgressProfile, profile_b: UserProgressProfile) -> int:
    a = profile_a.estimated_abilities
    b = profile_b.estimated_abilities
    total = 0.0
    for _, extract, denominator, weight in GAP_DIMENSIONS:
        total += (_normalise(extract(b), denominator) - _normalise(extract(a), denominator)) * weight
    return round(total * 100)


def gap_by_area(profile_a: UserProgressProfile, profile_b: UserProgressProfile) -> Dict[str, float]:
    """Per-area differences, A minus B, as stored on gap snapshots."""
    a = profile_a.estimated_abilities
    b = profile_b.estimated_abilities
    areas: Dict[str, float] = {}
    for muscle in sorted(set(a.strength) | set(b.strength)):
        areas[f"strength_{muscle}"] = a.strength_for(muscle) - b.strength_for(muscle)
    areas["cardio"] = a.cardio_endurance - b.cardio_endurance
    return areas


def build_gap_snapshot(
    profile_a: UserProgressProfile, profile_b: UserProgressProfile, when: datetime
) -> FitnessGapSnapshot:
    return FitnessGapSnapshot(
        date=when,
        overall_gap=calculate_fitness_gap(profile_a, profile_b),
        gap_by_area=gap_by_area(profile_a, profile_b),
    )
