"""
Candidate pair generation and per-person prescriptions.

Every generator receives exercises that already passed the constraint filter
for the matching person, so each candidate it builds is safe for both.
"""

from typing import Collection, List, Optional, Sequence

from pairfit.core.catalog import ExerciseCatalog, find_exercise_for_difficulty
from pairfit.core.heart_rate import target_zone_for_pair
from pairfit.core.models import (
    CoupleProgressProfile,
    ExerciseDefinition,
    ExercisePair,
    InteractionType,
    PairingStrategy,
    PhaseConfig,
    Prescription,
    TrainingPhase,
    UserProgressProfile,
)
from pairfit.core.scoring import calculate_pair_score, estimate_target_difficulty
from pairfit.core.strategy import CONTACT_COMFORT_THRESHOLD

BASE_SETS = 3
MIN_REPS = 5
MAX_REPS = 25
REP_STEP = 3
DIFFERENT_EXERCISE_SCAN = 5


def calculate_prescription(
    exercise: ExerciseDefinition,
    profile: UserProgressProfile,
    phase_config: Optional[PhaseConfig] = None,
) -> Prescription:
    sets = BASE_SETS
    target_rir = 2
    if phase_config is not None:
        sets = max(1, round(BASE_SETS * phase_config.volume_multiplier))
        if phase_config.phase == TrainingPhase.DELOAD:
            target_rir = 3
        elif phase_config.phase == TrainingPhase.PEAK:
            target_rir = 1

    reps = exercise.default_reps
    mastery = profile.exercise_mastery.get(exercise.id)
    if mastery is not None and reps:
        if mastery.consistently_too_easy:
            reps = min(reps + REP_STEP, MAX_REPS)
        if mastery.consistently_too_hard:
            reps = max(reps - REP_STEP, MIN_REPS)

    return Prescription(
        sets=sets,
        reps=reps,
        duration=exercise.default_duration_seconds,
        target_rir=target_rir,
        tempo="2-0-2" if exercise.difficulty >= 4 else "2-1-2",
    )


def prescription_seconds(prescription: Prescription) -> int:
    return prescription.duration or (prescription.reps or 10) * 3


def synced_duration(prescription_a: Prescription, prescription_b: Prescription) -> int:
    return max(prescription_seconds(prescription_a), prescription_seconds(prescription_b))


class CandidateGenerator:
    """Builds scored candidate pairs for one muscle group under one strategy."""

    def __init__(
        self,
        catalog: ExerciseCatalog,
        profile_a: UserProgressProfile,
        profile_b: UserProgressProfile,
        couple_profile: CoupleProgressProfile,
        phase_config: Optional[PhaseConfig] = None,
        recent_exercise_ids: Collection[str] = (),
    ):
        self.catalog = catalog
        self.profile_a = profile_a
        self.profile_b = profile_b
        self.couple_profile = couple_profile
        self.phase_config = phase_config
        self.recent_exercise_ids = recent_exercise_ids

    def make_pair(
        self,
        pair_id: str,
        exercise_a: ExerciseDefinition,
        exercise_b: ExerciseDefinition,
        strategy: PairingStrategy,
        interaction: InteractionType,
        is_partner_exercise: bool = False,
        target_hr_zone: Optional[int] = None,
        target_rir: int = 2,
        target_duration_seconds: Optional[int] = None,
        is_fallback: bool = False,
    ) -> ExercisePair:
        prescription_a = calculate_prescription(exercise_a, self.profile_a, self.phase_config)
        prescription_b = calculate_prescription(exercise_b, self.profile_b, self.phase_config)
        if target_duration_seconds is None:
            target_duration_seconds = synced_duration(prescription_a, prescription_b)
        return ExercisePair(
            id=pair_id,
            exercise_a=exercise_a,
            exercise_b=exercise_b,
            pairing_strategy=strategy,
            prescription_a=prescription_a,
            prescription_b=prescription_b,
            target_hr_zone=target_hr_zone or target_zone_for_pair(exercise_a, exercise_b),
            target_rir=target_rir,
            target_duration_seconds=target_duration_seconds,
            is_partner_exercise=is_partner_exercise,
            interaction_type=interaction,
            score=calculate_pair_score(
                exercise_a,
                exercise_b,
                self.profile_a,
                self.profile_b,
                strategy,
                is_partner_exercise=is_partner_exercise,
                recent_exercise_ids=self.recent_exercise_ids,
            ),
            is_fallback=is_fallback,
        )

    # --- Strategies ----------------------------------------------------------
    def same_exercise_pairs(
        self,
        exercises_a: Sequence[ExerciseDefinition],
        exercises_b: Sequence[ExerciseDefinition],
        strategy: PairingStrategy,
    ) -> List[ExercisePair]:
        ids_b = {e.id for e in exercises_b}
        interaction = (
            InteractionType.COMPETITIVE
            if strategy == PairingStrategy.COMPETITIVE_SAME
            else InteractionType.INDEPENDENT
        )
        return [
            self.make_pair(f"pair-{e.id}-same", e, e, strategy, interaction)
            for e in exercises_a
            if e.id in ids_b
        ]

    def progression_chain_pairs(
        self,
        exercises_a: Sequence[ExerciseDefinition],
        exercises_b: Sequence[ExerciseDefinition],
        strategy: PairingStrategy,
    ) -> List[ExercisePair]:
        ids_b = {e.id for e in exercises_b}
        pairs: List[ExercisePair] = []
        for exercise_a in exercises_a:
            chain = self.catalog.progression_chain(exercise_a)
            if len(chain) < 2:
                continue
            target_b = estimate_target_difficulty(exercise_a.muscle_group, self.profile_b)
            exercise_b = find_exercise_for_difficulty(chain, target_b)
            if exercise_b.id not in ids_b:
                continue

            diff = abs(exercise_a.difficulty - exercise_b.difficulty)
            if strategy == PairingStrategy.ADJACENT_PROGRESSION and diff > 1.5:
                continue
            if strategy == PairingStrategy.DISTANT_PROGRESSION and diff < 1:
                continue

            pairs.append(
                self.make_pair(
                    f"pair-{exercise_a.id}-{exercise_b.id}-prog",
                    exercise_a,
                    exercise_b,
                    strategy,
                    InteractionType.MIRROR,
                )
            )
        return pairs

    def different_exercise_pairs(
        self,
        exercises_a: Sequence[ExerciseDefinition],
        exercises_b: Sequence[ExerciseDefinition],
    ) -> List[ExercisePair]:
        pairs: List[ExercisePair] = []
        for exercise_a in list(exercises_a)[:DIFFERENT_EXERCISE_SCAN]:
            target_b = estimate_target_difficulty(exercise_a.muscle_group, self.profile_b)
            matches = sorted(
                (e for e in exercises_b if abs(e.difficulty - target_b) <= 1),
                key=lambda e: abs(e.difficulty - target_b),
            )
            if not matches:
                continue
            exercise_b = matches[0]
            pairs.append(
                self.make_pair(
                    f"pair-{exercise_a.id}-{exercise_b.id}-diff",
                    exercise_a,
                    exercise_b,
                    PairingStrategy.SAME_MUSCLE_DIFFERENT_EXERCISE,
                    InteractionType.INDEPENDENT,
                )
            )
        return pairs

    def partner_pairs(
        self,
        exercises_a: Sequence[ExerciseDefinition],
        exercises_b: Sequence[ExerciseDefinition],
        strategy: PairingStrategy,
    ) -> List[ExercisePair]:
        ids_b = {e.id for e in exercises_b}
        comfort = self.couple_profile.partner_exercise_comfort.mutual_comfort
        pairs: List[ExercisePair] = []
        for exercise in exercises_a:
            if not exercise.is_partner_exercise or exercise.id not in ids_b:
                continue
            if exercise.requires_contact and comfort < CONTACT_COMFORT_THRESHOLD:
                continue
            if exercise.requires_contact:
                interaction = InteractionType.COOPERATIVE
            elif strategy == PairingStrategy.COMPETITIVE_SAME:
                interaction = InteractionType.COMPETITIVE
            else:
                interaction = InteractionType.MIRROR
            pairs.append(
                self.make_pair(
                    f"pair-{exercise.id}-partner",
                    exercise,
                    exercise,
                    strategy,
                    interaction,
                    is_partner_exercise=True,
                    target_duration_seconds=exercise.default_duration_seconds or 30,
                )
            )
        return pairs


def generate_candidate_pairs(
    muscle_group: str,
    profile_a: UserProgressProfile,
    profile_b: UserProgressProfile,
    couple_profile: CoupleProgressProfile,
    safe_a: Sequence[ExerciseDefinition],
    safe_b: Sequence[ExerciseDefinition],
    strategy: PairingStrategy,
    catalog: ExerciseCatalog,
    phase_config: Optional[PhaseConfig] = None,
    recent_exercise_ids: Collection[str] = (),
) -> List[ExercisePair]:
    """Scored candidates for one muscle group; empty when either side has nothing safe."""
    exercises_a = [e for e in safe_a if e.muscle_group == muscle_group]
    exercises_b = [e for e in safe_b if e.muscle_group == muscle_group]
    if couple_profile.partner_exercise_comfort.mutual_comfort < CONTACT_COMFORT_THRESHOLD:
        # Contact exercises stay out of every strategy until both partners are comfortable
        exercises_a = [e for e in exercises_a if not e.requires_contact]
        exercises_b = [e for e in exercises_b if not e.requires_contact]
    if not exercises_a or not exercises_b:
        return []

    gen = CandidateGenerator(catalog, profile_a, profile_b, couple_profile, phase_config, recent_exercise_ids)

    if strategy in (PairingStrategy.IDENTICAL, PairingStrategy.SAME_EXERCISE_DIFFERENT_REPS):
        return gen.same_exercise_pairs(exercises_a, exercises_b, strategy)
    if strategy in (PairingStrategy.ADJACENT_PROGRESSION, PairingStrategy.DISTANT_PROGRESSION):
        return gen.progression_chain_pairs(exercises_a, exercises_b, strategy)
    if strategy == PairingStrategy.SAME_MUSCLE_DIFFERENT_EXERCISE:
        return gen.different_exercise_pairs(exercises_a, exercises_b)
    if strategy in (PairingStrategy.MIRROR_FACING, PairingStrategy.COMPETITIVE_SAME):
        return gen.partner_pairs(exercises_a, exercises_b, strategy)
    return gen.progression_chain_pairs(exercises_a, exercises_b, PairingStrategy.ADJACENT_PROGRESSION)
