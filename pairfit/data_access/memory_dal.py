"""In-memory implementation of the Data Access Layer, for tests and development."""

from typing import Dict, List, Optional

from pairfit.core.models import (
    CoupleProgressProfile,
    ExerciseLog,
    PeriodizationPlan,
    UserProgressProfile,
    WorkoutLog,
)
from .dal import RECENT_WORKOUT_SCAN, DataAccessLayer, exercise_logs_from


class InMemoryDal(DataAccessLayer):
    """Keeps deep copies in per-instance dicts, so callers never share state with the store."""

    def __init__(self):
        self._profiles: Dict[str, UserProgressProfile] = {}
        self._couples: Dict[str, CoupleProgressProfile] = {}
        self._plans: Dict[str, PeriodizationPlan] = {}
        self._workouts: Dict[str, WorkoutLog] = {}

    # --- Profiles ------------------------------------------------------------
    def save_profile(self, profile: UserProgressProfile) -> None:
        self._profiles[profile.user_id] = profile.model_copy(deep=True)

    def get_profile(self, user_id: str) -> Optional[UserProgressProfile]:
        profile = self._profiles.get(user_id)
        return profile.model_copy(deep=True) if profile else None

    def delete_profile(self, user_id: str) -> None:
        self._profiles.pop(user_id, None)

    # --- Couples -------------------------------------------------------------
    def save_couple_profile(self, profile: CoupleProgressProfile) -> None:
        self._couples[profile.couple_id] = profile.model_copy(deep=True)

    def get_couple_profile(self, couple_id: str) -> Optional[CoupleProgressProfile]:
        profile = self._couples.get(couple_id)
        return profile.model_copy(deep=True) if profile else None

    def delete_couple_profile(self, couple_id: str) -> None:
        self._couples.pop(couple_id, None)

    # --- Plans ---------------------------------------------------------------
    def save_plan(self, plan: PeriodizationPlan) -> None:
        self._plans[plan.user_id] = plan.model_copy(deep=True)

    def get_plan(self, user_id: str) -> Optional[PeriodizationPlan]:
        plan = self._plans.get(user_id)
        return plan.model_copy(deep=True) if plan else None

    def delete_plan(self, user_id: str) -> None:
        self._plans.pop(user_id, None)

    # --- Workouts ------------------------------------------------------------
    def save_workout(self, workout: WorkoutLog) -> None:
        self._workouts[workout.id] = workout.model_copy(deep=True)

    def get_workout(self, workout_id: str) -> Optional[WorkoutLog]:
        workout = self._workouts.get(workout_id)
        return workout.model_copy(deep=True) if workout else None

    def _newest_first(self, workouts: List[WorkoutLog], limit: int) -> List[WorkoutLog]:
        ordered = sorted(workouts, key=lambda w: w.start_time, reverse=True)[:limit]
        return [w.model_copy(deep=True) for w in ordered]

    def list_workouts_by_user(self, user_id: str, limit: int = 50) -> List[WorkoutLog]:
        return self._newest_first(
            [w for w in self._workouts.values() if user_id in (w.person_a_id, w.person_b_id)], limit
        )

    def list_workouts_by_couple(self, couple_id: str, limit: int = 50) -> List[WorkoutLog]:
        return self._newest_first([w for w in self._workouts.values() if w.couple_id == couple_id], limit)

    def recent_exercise_logs(self, user_id: str, exercise_id: str, limit: int = 10) -> List[ExerciseLog]:
        workouts = self.list_workouts_by_user(user_id, RECENT_WORKOUT_SCAN)
        return exercise_logs_from(workouts, user_id, exercise_id, limit)

    def delete_workout(self, workout_id: str) -> None:
        self._workouts.pop(workout_id, None)
