"""
Workout assembly for a couple.

The engine filters the catalog for both partners, measures the fitness gap,
picks a strategy per muscle group and keeps the best-scoring candidates, then
frames the main block with shared warm-up and cooldown pairs.
"""

import uuid
from datetime import datetime
from statistics import mean
from typing import Dict, List, Optional, Sequence

from pairfit.core.catalog import COOLDOWN_CATEGORIES, WARMUP_CATEGORIES, ExerciseCatalog
from pairfit.core.candidates import CandidateGenerator, generate_candidate_pairs
from pairfit.core.constraints import filter_exercises_by_constraints
from pairfit.core.fitness_gap import calculate_fitness_gap
from pairfit.core.models import (
    DifficultyLabel,
    ExerciseDefinition,
    ExercisePair,
    GeneratedWorkout,
    InteractionType,
    PairingInput,
    PairingStrategy,
    PhaseConfig,
    WorkoutType,
)
from pairfit.core.strategy import CONTACT_COMFORT_THRESHOLD, select_pairing_strategy
from pairfit.infra import log_utils

DEFAULT_MUSCLE_GROUPS: Dict[WorkoutType, List[str]] = {
    WorkoutType.STRENGTH: ["chest", "back", "shoulders", "quadriceps", "core"],
    WorkoutType.HIIT: ["full_body", "cardio", "core"],
    WorkoutType.CARDIO: ["cardio", "quadriceps", "core"],
    WorkoutType.FLEXIBILITY: ["full_body", "core"],
}
FALLBACK_MUSCLE_GROUPS = ["chest", "back", "quadriceps", "core"]

MAX_WARMUP_PAIRS = 4
MAX_COOLDOWN_PAIRS = 3
FRAME_PAIR_MINUTES = 1.5  # per warm-up / cooldown pair
REST_MINUTES_PER_SET = 1


def muscle_groups_for(workout_type: WorkoutType) -> List[str]:
    return list(DEFAULT_MUSCLE_GROUPS.get(workout_type, FALLBACK_MUSCLE_GROUPS))


def estimate_workout_duration(
    warmup: Sequence[ExercisePair], main: Sequence[ExercisePair], cooldown: Sequence[ExercisePair]
) -> int:
    total = (len(warmup) + len(cooldown)) * FRAME_PAIR_MINUTES
    for pair in main:
        total += pair.prescription_a.sets * (pair.target_duration_seconds / 60 + REST_MINUTES_PER_SET)
    return round(total)


def overall_difficulty(pairs: Sequence[ExercisePair]) -> DifficultyLabel:
    if not pairs:
        return "moderate"
    avg = mean((p.exercise_a.difficulty + p.exercise_b.difficulty) / 2 for p in pairs)
    if avg <= 1.5:
        return "beginner"
    if avg <= 2.5:
        return "easy"
    if avg <= 3.5:
        return "moderate"
    if avg <= 4.5:
        return "hard"
    return "advanced"


class PairingEngine:
    """Generates couple workouts from a read-only exercise catalog."""

    def __init__(self, catalog: ExerciseCatalog):
        self.catalog = catalog

    def generate_workout(
        self,
        pairing_input: PairingInput,
        phase_config: Optional[PhaseConfig] = None,
        now: Optional[datetime] = None,
    ) -> GeneratedWorkout:
        now = now or datetime.now()
        person_a = pairing_input.person_a
        person_b = pairing_input.person_b
        couple = pairing_input.couple_profile
        context = pairing_input.session_context

        gap = calculate_fitness_gap(person_a, person_b)
        filtered = filter_exercises_by_constraints(
            self.catalog, person_a, person_b, context.equipment, context.space
        )
        generator = CandidateGenerator(
            self.catalog, person_a, person_b, couple, phase_config, pairing_input.recent_exercise_ids
        )
        muscle_groups = list(context.focus) if context.focus else muscle_groups_for(context.workout_type)
        warnings: List[str] = []

        warmup = [
            generator.make_pair(
                f"warmup-{e.id}",
                e,
                e,
                PairingStrategy.IDENTICAL,
                InteractionType.MIRROR,
                target_hr_zone=2,
                target_rir=4,
                target_duration_seconds=e.default_duration_seconds or 30,
            )
            for e in self._frame_exercises(filtered.safe_for_both, WARMUP_CATEGORIES, MAX_WARMUP_PAIRS)
        ]

        frame_categories = (*WARMUP_CATEGORIES, *COOLDOWN_CATEGORIES)
        main_a = [e for e in filtered.safe_for_a if e.category not in frame_categories]
        main_b = [e for e in filtered.safe_for_b if e.category not in frame_categories]
        if couple.partner_exercise_comfort.mutual_comfort < CONTACT_COMFORT_THRESHOLD:
            main_a = [e for e in main_a if not e.requires_contact]
            main_b = [e for e in main_b if not e.requires_contact]
        main: List[ExercisePair] = []
        for group in muscle_groups:
            strategy = select_pairing_strategy(gap, couple, group)
            candidates = generate_candidate_pairs(
                group,
                person_a,
                person_b,
                couple,
                main_a,
                main_b,
                strategy,
                self.catalog,
                phase_config,
                pairing_input.recent_exercise_ids,
            )
            if not candidates:
                fallback = self._fallback_pair(generator, group, main_a, main_b)
                if fallback is None:
                    warnings.append(f"No safe exercise for {group}; group skipped")
                    log_utils.log_message(f"[pairing] {couple.couple_id}: no safe exercise for {group}", "WARN")
                    continue
                warnings.append(
                    f"No {strategy.value} pairing for {group}; using fallback "
                    f"{fallback.exercise_a.id} / {fallback.exercise_b.id}"
                )
                log_utils.log_message(
                    f"[pairing] {couple.couple_id}: {strategy.value} produced no pairs for {group}, fallback used",
                    "WARN",
                )
                main.append(fallback)
                continue

            ranked = sorted(candidates, key=lambda p: p.score.total_score, reverse=True)
            main.extend(ranked[: 2 if group == "core" else 1])

        cooldown = [
            generator.make_pair(
                f"cooldown-{e.id}",
                e,
                e,
                PairingStrategy.IDENTICAL,
                InteractionType.MIRROR,
                target_hr_zone=1,
                target_rir=5,
                target_duration_seconds=e.default_duration_seconds or 30,
            )
            for e in self._frame_exercises(filtered.safe_for_both, COOLDOWN_CATEGORIES, MAX_COOLDOWN_PAIRS)
        ]

        all_pairs = [*warmup, *main, *cooldown]
        workout = GeneratedWorkout(
            id=f"workout-{uuid.uuid4().hex[:12]}",
            created_at=now,
            couple_id=couple.couple_id,
            warmup=warmup,
            main_workout=main,
            cooldown=cooldown,
            estimated_duration=estimate_workout_duration(warmup, main, cooldown),
            workout_type=context.workout_type,
            focus_areas=muscle_groups,
            difficulty=overall_difficulty(main),
            total_exercises=len(all_pairs),
            partner_exercise_count=sum(1 for p in all_pairs if p.is_partner_exercise),
            competitive_element_count=sum(
                1 for p in all_pairs if p.interaction_type == InteractionType.COMPETITIVE
            ),
            fitness_gap=gap,
            warnings=warnings,
        )
        log_utils.log_message(
            f"[pairing] {couple.couple_id}: generated {workout.id} "
            f"({len(warmup)}/{len(main)}/{len(cooldown)} pairs, gap {gap}, ~{workout.estimated_duration} min)"
        )
        return workout

    @staticmethod
    def _frame_exercises(
        safe_for_both: Sequence[ExerciseDefinition], categories: Sequence[str], limit: int
    ) -> List[ExerciseDefinition]:
        return [e for e in safe_for_both if e.category in categories][:limit]

    @staticmethod
    def _fallback_pair(
        generator: CandidateGenerator,
        group: str,
        safe_a: Sequence[ExerciseDefinition],
        safe_b: Sequence[ExerciseDefinition],
    ) -> Optional[ExercisePair]:
        """First safe exercise per person for the group, marked as a fallback."""
        exercise_a = next((e for e in safe_a if e.muscle_group == group), None)
        exercise_b = next((e for e in safe_b if e.muscle_group == group), None)
        if exercise_a is None or exercise_b is None:
            return None
        strategy = (
            PairingStrategy.SAME_EXERCISE_DIFFERENT_REPS
            if exercise_a.id == exercise_b.id
            else PairingStrategy.SAME_MUSCLE_DIFFERENT_EXERCISE
        )
        return generator.make_pair(
            f"fallback-{exercise_a.id}-{exercise_b.id}",
            exercise_a,
            exercise_b,
            strategy,
            InteractionType.INDEPENDENT,
            is_fallback=True,
        )
