"""
Individual progress tracking.

`ProgressTracker.update_after_workout` folds one person's exercise logs into
their profile: mastery, consistency, recovery, abilities, progression rate and
learned preferences, in that order. Logs are applied in the order given since
the running averages and streaks are order-dependent.
"""

from datetime import datetime, timedelta
from statistics import mean
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pairfit.config import settings
from pairfit.core.catalog import ExerciseCatalog
from pairfit.core.models import (
    FORM_QUALITY_SCORES,
    MUSCLE_GROUPS,
    ConsistencyMetrics,
    EstimatedAbilities,
    ExerciseDefinition,
    ExerciseLog,
    ExerciseMastery,
    FatigueLevel,
    FitnessLevel,
    PersonalBest,
    PostWorkoutFeedback,
    ProgressionRate,
    UserProgressProfile,
    WorkoutLog,
    clamp,
)
from pairfit.data_access.dal import ProfileStorage
from pairfit.infra import log_utils

BASE_ABILITY: Dict[str, float] = {"beginner": 30, "intermediate": 55, "advanced": 80}


def fatigue_level(average: float) -> FatigueLevel:
    if average > 70:
        return FatigueLevel.EXHAUSTED
    if average > 50:
        return FatigueLevel.FATIGUED
    if average > 25:
        return FatigueLevel.MODERATE
    return FatigueLevel.FRESH


def recommended_rest_days(average: float) -> int:
    if average > 60:
        return 2
    if average > 30:
        return 1
    return 0


def fatigue_added(log: ExerciseLog, is_primary: bool) -> float:
    fatigue = 20 if is_primary else 10
    if log.actual_rir <= 1:
        fatigue += 15
    elif log.actual_rir <= 2:
        fatigue += 10
    elif log.actual_rir <= 3:
        fatigue += 5
    if log.actual_reps and log.actual_reps > 12:
        fatigue += 5
    return fatigue


def ability_adjustment(log: ExerciseLog, exercise: ExerciseDefinition) -> float:
    adjustment = 0.0
    if not log.completed:
        adjustment = -0.5
    elif log.actual_rir >= 4:
        adjustment = 0.5
    elif log.actual_rir >= 1:
        adjustment = 1.0
    else:
        adjustment = 0.5

    if log.form_quality == "perfect":
        adjustment += 0.3
    elif log.form_quality == "good":
        adjustment += 0.1

    return adjustment * exercise.difficulty / 5


def rate_from_masteries(masteries: Iterable[ExerciseMastery]) -> Optional[ProgressionRate]:
    improving = declining = 0
    for mastery in masteries:
        if mastery.times_performed < 3:
            continue
        if mastery.average_rir > 3 and mastery.average_form_quality >= 3:
            improving += 1
        elif mastery.average_rir < 1 or mastery.average_form_quality < 2:
            declining += 1
    if improving == 0 and declining == 0:
        return None
    if improving > declining * 2:
        return ProgressionRate.IMPROVING
    if declining > improving * 2:
        return ProgressionRate.DECLINING
    return ProgressionRate.PLATEAU


def _start_of_week(moment: datetime) -> datetime:
    monday = moment.date() - timedelta(days=moment.weekday())
    return datetime.combine(monday, datetime.min.time(), tzinfo=moment.tzinfo)


class ProgressTracker:
    """Maintains one person's `UserProgressProfile` across workouts."""

    def __init__(self, storage: ProfileStorage, catalog: ExerciseCatalog):
        self.storage = storage
        self.catalog = catalog

    # --- Creation --------------------------------------------------------------
    def create_initial_profile(
        self,
        user_id: str,
        fitness_level: FitnessLevel = "beginner",
        injuries: Sequence[str] = (),
        goals: Sequence[str] = (),
        now: Optional[datetime] = None,
    ) -> UserProgressProfile:
        now = now or datetime.now()
        base = BASE_ABILITY[fitness_level]
        abilities = EstimatedAbilities(
            push_up_max=round(base * 0.3),
            plank_max_seconds=round(base * 1.2),
            squat_max=round(base * 0.4),
            pull_up_max=round(base * 0.1),
            cardio_capacity_minutes=round(base * 0.3),
            strength={m: base for m in MUSCLE_GROUPS},
            flexibility={m: base * 0.8 for m in MUSCLE_GROUPS},
            cardio_endurance=base,
            balance=base * 0.9,
        )
        profile = UserProgressProfile(
            user_id=user_id,
            last_updated=now,
            estimated_abilities=abilities,
            current_injuries=list(injuries),
            goals=list(goals),
        )
        profile.recovery_status.last_recovery_update = now
        return profile

    def get_or_create_profile(
        self, user_id: str, fitness_level: FitnessLevel = "beginner", now: Optional[datetime] = None
    ) -> UserProgressProfile:
        existing = self.storage.get_profile(user_id)
        if existing is not None:
            return existing
        profile = self.create_initial_profile(user_id, fitness_level, now=now)
        self.storage.save_profile(profile)
        log_utils.log_message(f"[progress] Created {fitness_level} profile for {user_id}")
        return profile

    # --- Update ----------------------------------------------------------------
    def update_after_workout(
        self,
        profile: UserProgressProfile,
        workout_log: WorkoutLog,
        exercise_logs: Optional[Sequence[ExerciseLog]] = None,
        now: Optional[datetime] = None,
    ) -> UserProgressProfile:
        """Return an updated copy of `profile`; the copy is also saved to storage."""
        now = now or datetime.now()
        # Raises WorkoutMembershipError when the person is not in this workout
        workout_log.side_of(profile.user_id)
        if exercise_logs is None:
            exercise_logs = workout_log.logs_for(profile.user_id)

        updated = profile.model_copy(deep=True)
        for log in exercise_logs:
            self._update_mastery(updated, log, now)

        resolved = self._resolve_exercises(profile.user_id, exercise_logs)
        self._update_consistency(updated, now)
        self._update_recovery(updated, resolved, now)
        self._update_abilities(updated, resolved)
        self._update_progression_rate(updated)

        feedback = workout_log.feedback_for(profile.user_id)
        if feedback is not None:
            self._update_preferences(updated, feedback)

        updated.last_updated = now
        self.storage.save_profile(updated)
        log_utils.log_message(
            f"[progress] {profile.user_id}: applied {len(exercise_logs)} logs from {workout_log.id}"
        )
        return updated

    def save_profile(self, profile: UserProgressProfile) -> None:
        self.storage.save_profile(profile)

    def _resolve_exercises(self, user_id: str, logs: Sequence[ExerciseLog]) -> List[Tuple[ExerciseLog, ExerciseDefinition]]:
        resolved = []
        for log in logs:
            exercise = self.catalog.get(log.exercise_id)
            if exercise is None:
                log_utils.log_message(f"[progress] {user_id}: unknown exercise {log.exercise_id} skipped", "WARN")
                continue
            resolved.append((log, exercise))
        return resolved

    # --- Mastery ---------------------------------------------------------------
    @staticmethod
    def _update_mastery(profile: UserProgressProfile, log: ExerciseLog, now: datetime) -> None:
        existing = profile.exercise_mastery.get(log.exercise_id) or ExerciseMastery(exercise_id=log.exercise_id)
        n = existing.times_performed
        avg_rir = (existing.average_rir * n + log.actual_rir) / (n + 1)
        avg_form = (existing.average_form_quality * n + FORM_QUALITY_SCORES[log.form_quality]) / (n + 1)

        personal_best = existing.personal_best
        if log.actual_reps and (personal_best is None or log.actual_reps > personal_best.reps):
            personal_best = PersonalBest(reps=log.actual_reps, weight=log.actual_weight, date=now)

        form_ready = avg_form >= 3 and n >= 2 and not log.felt_pain
        times = n + 1
        profile.exercise_mastery[log.exercise_id] = ExerciseMastery(
            exercise_id=log.exercise_id,
            times_performed=times,
            average_rir=round(avg_rir, 1),
            average_form_quality=round(avg_form, 1),
            last_performed=now,
            personal_best=personal_best,
            form_ready_for_progression=form_ready,
            progression_unlocked_date=(
                now if form_ready and not existing.form_ready_for_progression else existing.progression_unlocked_date
            ),
            consistently_too_easy=times >= 3 and avg_rir > settings.PROGRESSION_RIR_TOO_EASY,
            consistently_too_hard=times >= 3 and avg_rir < 1,
        )

    # --- Consistency -----------------------------------------------------------
    @staticmethod
    def _update_consistency(profile: UserProgressProfile, now: datetime) -> None:
        current = profile.consistency
        last = current.last_workout_date

        if last is None:
            streak = 1
        elif (now - last).days <= settings.STREAK_MAX_GAP_DAYS:
            streak = current.current_streak + 1
        else:
            streak = 1

        this_week = current.workouts_this_week + 1 if last and last >= _start_of_week(now) else 1
        same_month = last is not None and (last.year, last.month) == (now.year, now.month)
        this_month = current.workouts_this_month + 1 if same_month else 1

        if current.average_workouts_per_week > 0:
            average = (current.average_workouts_per_week * 3 + this_week) / 4
        else:
            average = this_week

        profile.consistency = ConsistencyMetrics(
            current_streak=streak,
            longest_streak=max(streak, current.longest_streak),
            workouts_this_week=this_week,
            workouts_this_month=this_month,
            average_workouts_per_week=round(average, 1),
            last_workout_date=now,
        )

    # --- Recovery --------------------------------------------------------------
    @staticmethod
    def _update_recovery(profile: UserProgressProfile, resolved: Sequence[Tuple[ExerciseLog, ExerciseDefinition]], now: datetime) -> None:
        fatigue = dict(profile.recovery_status.fatigue_by_muscle)
        for log, exercise in resolved:
            for muscle in exercise.primary_muscles:
                fatigue[muscle] = min(100.0, fatigue.get(muscle, 0) + fatigue_added(log, True))
            for muscle in exercise.secondary_muscles:
                fatigue[muscle] = min(100.0, fatigue.get(muscle, 0) + fatigue_added(log, False))

        average = mean(fatigue.values()) if fatigue else 0.0
        status = profile.recovery_status
        status.fatigue_by_muscle = fatigue
        status.overall_fatigue = fatigue_level(average)
        status.recommended_rest_days = recommended_rest_days(average)
        status.last_recovery_update = now

    def apply_recovery_decay(self, profile: UserProgressProfile, now: Optional[datetime] = None) -> UserProgressProfile:
        """Exponential fatigue recovery since the last update; no-op under an hour."""
        now = now or datetime.now()
        hours = (now - profile.recovery_status.last_recovery_update).total_seconds() / 3600
        if hours < 1:
            return profile

        multiplier = settings.FATIGUE_DECAY_PER_DAY ** (hours / 24)
        updated = profile.model_copy(deep=True)
        fatigue = {m: max(0.0, v * multiplier) for m, v in profile.recovery_status.fatigue_by_muscle.items()}
        average = mean(fatigue.values()) if fatigue else 0.0

        status = updated.recovery_status
        status.fatigue_by_muscle = fatigue
        status.overall_fatigue = fatigue_level(average)
        status.recommended_rest_days = recommended_rest_days(average)
        status.last_recovery_update = now
        return updated

    # --- Abilities -------------------------------------------------------------
    @staticmethod
    def _update_abilities(profile: UserProgressProfile, resolved: Sequence[Tuple[ExerciseLog, ExerciseDefinition]]) -> None:
        abilities = profile.estimated_abilities
        for log, exercise in resolved:
            adjustment = ability_adjustment(log, exercise)
            if exercise.movement_type == "strength":
                for muscle in exercise.primary_muscles:
                    abilities.strength[muscle] = clamp(abilities.strength_for(muscle) + adjustment)
            elif exercise.movement_type == "flexibility":
                for muscle in exercise.primary_muscles:
                    current = abilities.flexibility.get(muscle, 50)
                    abilities.flexibility[muscle] = clamp(current + adjustment * 0.5)
            elif exercise.movement_type in ("cardio", "plyometric"):
                abilities.cardio_endurance = clamp(abilities.cardio_endurance + adjustment * 0.3)

    # --- Progression rate ------------------------------------------------------
    def _update_progression_rate(self, profile: UserProgressProfile) -> None:
        masteries = list(profile.exercise_mastery.values())
        if len(masteries) < 3:
            return
        overall = rate_from_masteries(masteries)
        profile.progression_rate.overall = overall or ProgressionRate.PLATEAU

        by_group: Dict[str, List[ExerciseMastery]] = {}
        for mastery in masteries:
            exercise = self.catalog.get(mastery.exercise_id)
            if exercise is not None:
                by_group.setdefault(exercise.muscle_group, []).append(mastery)
        for group, group_masteries in by_group.items():
            rate = rate_from_masteries(group_masteries)
            if rate is not None:
                profile.progression_rate.by_muscle_group[group] = rate

    # --- Preferences -----------------------------------------------------------
    @staticmethod
    def _update_preferences(profile: UserProgressProfile, feedback: PostWorkoutFeedback) -> None:
        prefs = profile.learned_preferences
        limit = settings.PREFERENCE_LIST_LIMIT
        if feedback.favorite_exercise and feedback.favorite_exercise not in prefs.preferred_exercises:
            prefs.preferred_exercises = [*prefs.preferred_exercises, feedback.favorite_exercise][-limit:]
        if feedback.least_favorite_exercise and feedback.least_favorite_exercise not in prefs.disliked_exercises:
            prefs.disliked_exercises = [*prefs.disliked_exercises, feedback.least_favorite_exercise][-limit:]

        if feedback.overall_difficulty <= 2:
            prefs.preferred_intensity = "light"
        elif feedback.overall_difficulty >= 4:
            prefs.preferred_intensity = "intense"
        else:
            prefs.preferred_intensity = "moderate"
