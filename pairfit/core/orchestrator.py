"""
Entry points for session-management code.

`Orchestrator` wires the engines to one storage backend and runs the
post-session pipeline in the required order: partner A, partner B, the couple,
the periodization plans, then feedback.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from statistics import mean
from typing import List, Optional, Sequence

from pairfit.core.catalog import ExerciseCatalog
from pairfit.core.couple_tracker import CoupleTracker
from pairfit.core.errors import WorkoutAlreadyCompletedError
from pairfit.core.feedback import FeedbackProcessor
from pairfit.core.models import (
    CoupleProgressProfile,
    ExerciseDefinition,
    ExerciseLog,
    ExerciseMastery,
    ExerciseProgressionRecommendation,
    FitnessLevel,
    GeneratedWorkout,
    PairingInput,
    PairingStrategy,
    PeriodizationPlan,
    PhaseConfig,
    ProcessedFeedback,
    SessionContext,
    UserProgressProfile,
    WorkoutLog,
)
from pairfit.core.pairing_engine import PairingEngine
from pairfit.core.periodization import PHASE_CONFIGS, PeriodizationManager
from pairfit.core.progress_tracker import ProgressTracker
from pairfit.core.progression import analyze_exercise_progression
from pairfit.core.workout_logger import WorkoutLogger
from pairfit.data_access.dal import DataAccessLayer
from pairfit.infra import log_utils

RECENT_WORKOUTS_FOR_VARIETY = 3


def fitness_level_of(profile: UserProgressProfile) -> FitnessLevel:
    """Coarse level from mean strength, using the midpoints between the initial ability bases."""
    strength = profile.estimated_abilities.strength
    average = mean(strength.values()) if strength else 50
    if average < 42.5:
        return "beginner"
    if average < 67.5:
        return "intermediate"
    return "advanced"


@dataclass(frozen=True)
class SessionOutcome:
    workout_log: WorkoutLog
    profile_a: UserProgressProfile
    profile_b: UserProgressProfile
    couple_profile: CoupleProgressProfile
    plan_a: PeriodizationPlan
    plan_b: PeriodizationPlan
    feedback: ProcessedFeedback


class Orchestrator:
    """Facade over every engine, sharing one `DataAccessLayer` and one catalog."""

    def __init__(self, dal: DataAccessLayer, catalog: ExerciseCatalog):
        self.dal = dal
        self.catalog = catalog
        self.pairing = PairingEngine(catalog)
        self.progress = ProgressTracker(dal, catalog)
        self.couples = CoupleTracker(dal)
        self.periodization = PeriodizationManager(dal)
        self.feedback = FeedbackProcessor(catalog)
        self.logger = WorkoutLogger(dal)

    # --- Generation ------------------------------------------------------------
    def shared_phase_config(self, person_a_id: str, person_b_id: str) -> Optional[PhaseConfig]:
        """The lighter of the two partners' current phases, or None without plans."""
        configs = [
            PHASE_CONFIGS[plan.current_phase]
            for plan in (self.dal.get_plan(person_a_id), self.dal.get_plan(person_b_id))
            if plan is not None
        ]
        if not configs:
            return None
        return min(configs, key=lambda c: c.volume_multiplier)

    def recent_exercise_ids(self, couple_id: str) -> List[str]:
        ids: List[str] = []
        for workout in self.dal.list_workouts_by_couple(couple_id, RECENT_WORKOUTS_FOR_VARIETY):
            ids.extend(log.exercise_id for log in [*workout.person_a_logs, *workout.person_b_logs])
        return list(dict.fromkeys(ids))

    def generate_workout(
        self,
        pairing_input: PairingInput,
        phase_config: Optional[PhaseConfig] = None,
        now: Optional[datetime] = None,
    ) -> GeneratedWorkout:
        couple_id = pairing_input.couple_profile.couple_id
        if phase_config is None:
            phase_config = self.shared_phase_config(pairing_input.person_a.user_id, pairing_input.person_b.user_id)
        if not pairing_input.recent_exercise_ids:
            pairing_input = pairing_input.model_copy(
                update={"recent_exercise_ids": self.recent_exercise_ids(couple_id)}
            )
        return self.pairing.generate_workout(pairing_input, phase_config, now)

    def generate_for_couple(
        self,
        couple_id: str,
        person_a_id: str,
        person_b_id: str,
        session_context: Optional[SessionContext] = None,
        now: Optional[datetime] = None,
    ) -> GeneratedWorkout:
        """Load (or create) both profiles and the couple profile, then generate."""
        profile_a = self.progress.apply_recovery_decay(self.progress.get_or_create_profile(person_a_id, now=now), now)
        profile_b = self.progress.apply_recovery_decay(self.progress.get_or_create_profile(person_b_id, now=now), now)
        couple = self.couples.get_or_create_profile(couple_id, person_a_id, person_b_id)
        pairing_input = PairingInput(
            person_a=profile_a,
            person_b=profile_b,
            couple_profile=couple,
            session_context=session_context or SessionContext(),
        )
        return self.generate_workout(pairing_input, now=now)

    # --- Single-step entry points ----------------------------------------------
    def analyze_exercise_progression(
        self, mastery: ExerciseMastery, recent_logs: Sequence[ExerciseLog], exercise: ExerciseDefinition
    ) -> ExerciseProgressionRecommendation:
        return analyze_exercise_progression(mastery, recent_logs, exercise, self.catalog)

    def update_user_after_workout(
        self,
        profile: UserProgressProfile,
        workout_log: WorkoutLog,
        exercise_logs: Optional[Sequence[ExerciseLog]] = None,
        now: Optional[datetime] = None,
    ) -> UserProgressProfile:
        return self.progress.update_after_workout(profile, workout_log, exercise_logs, now)

    def update_couple_after_workout(
        self,
        couple_profile: CoupleProgressProfile,
        workout_log: WorkoutLog,
        profile_a: UserProgressProfile,
        profile_b: UserProgressProfile,
        strategy_used: PairingStrategy,
        now: Optional[datetime] = None,
    ) -> CoupleProgressProfile:
        return self.couples.update_after_workout(couple_profile, workout_log, profile_a, profile_b, strategy_used, now)

    def update_plan_weekly(
        self, plan: PeriodizationPlan, profile: UserProgressProfile, now: Optional[datetime] = None
    ) -> PeriodizationPlan:
        return self.periodization.update_plan_weekly(plan, profile, now)

    def process_workout_feedback(
        self,
        workout_log: WorkoutLog,
        profile_a: UserProgressProfile,
        profile_b: UserProgressProfile,
        couple_profile: CoupleProgressProfile,
        strategy_used: PairingStrategy,
    ) -> ProcessedFeedback:
        return self.feedback.process_workout_feedback(workout_log, profile_a, profile_b, couple_profile, strategy_used)

    # --- Full pipeline ---------------------------------------------------------
    def get_or_create_plan(self, profile: UserProgressProfile, couple_id: Optional[str] = None,
                           now: Optional[datetime] = None) -> PeriodizationPlan:
        plan = self.dal.get_plan(profile.user_id)
        if plan is None:
            plan = self.periodization.create_initial_plan(profile.user_id, fitness_level_of(profile), couple_id, now)
        return plan

    def advance_plan(self, plan: PeriodizationPlan, profile: UserProgressProfile, now: datetime) -> PeriodizationPlan:
        """Apply one weekly update per full week elapsed since the plan's last recorded week."""
        while now >= plan.start_date + timedelta(weeks=plan.total_weeks_completed + 1):
            plan = self.periodization.update_plan_weekly(plan, profile, now)
        return plan

    def complete_session(
        self,
        workout_log: WorkoutLog,
        strategy_used: Optional[PairingStrategy] = None,
        now: Optional[datetime] = None,
    ) -> SessionOutcome:
        """
        Finish a session and fold it into every profile.

        The workout is completed (and saved) first if the caller has not done
        so. Each partner's update sees only their own logs; the couple update
        reads both final profiles. A workout already folded into the couple's
        pairing history raises WorkoutAlreadyCompletedError.
        """
        now = now or datetime.now()
        stored_couple = self.dal.get_couple_profile(workout_log.couple_id)
        if stored_couple is not None and any(e.workout_id == workout_log.id for e in stored_couple.pairing_history):
            raise WorkoutAlreadyCompletedError(f"Workout {workout_log.id} has already been processed")
        if not workout_log.is_complete:
            workout_log = self.logger.complete_workout(workout_log, now)
        else:
            self.dal.save_workout(workout_log)
        strategy = strategy_used or workout_log.strategy_used or PairingStrategy.IDENTICAL

        profile_a = self.progress.get_or_create_profile(workout_log.person_a_id, now=now)
        profile_b = self.progress.get_or_create_profile(workout_log.person_b_id, now=now)
        profile_a = self.progress.update_after_workout(self.progress.apply_recovery_decay(profile_a, now), workout_log, now=now)
        profile_b = self.progress.update_after_workout(self.progress.apply_recovery_decay(profile_b, now), workout_log, now=now)

        couple = self.couples.get_or_create_profile(
            workout_log.couple_id, workout_log.person_a_id, workout_log.person_b_id
        )
        couple = self.couples.update_after_workout(couple, workout_log, profile_a, profile_b, strategy, now)

        plan_a = self.advance_plan(self.get_or_create_plan(profile_a, couple.couple_id, now), profile_a, now)
        plan_b = self.advance_plan(self.get_or_create_plan(profile_b, couple.couple_id, now), profile_b, now)

        processed = self.feedback.process_workout_feedback(workout_log, profile_a, profile_b, couple, strategy)
        log_utils.log_message(
            f"[session] {couple.couple_id}: completed {workout_log.id} with {strategy.value}, "
            f"{len(processed.recommendations)} recommendations"
        )
        return SessionOutcome(workout_log, profile_a, profile_b, couple, plan_a, plan_b, processed)
