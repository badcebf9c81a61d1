from abc import ABC, abstractmethod
from typing import List, Optional

from pairfit.core.models import (
    CoupleProgressProfile,
    ExerciseLog,
    PeriodizationPlan,
    UserProgressProfile,
    WorkoutLog,
)


class ProfileStorage(ABC):
    """Persistence contract for individual progress profiles, keyed by user id."""

    @abstractmethod
    def save_profile(self, profile: UserProgressProfile) -> None:
        pass

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[UserProgressProfile]:
        """Returns None when the user has no stored profile."""
        pass

    @abstractmethod
    def delete_profile(self, user_id: str) -> None:
        pass


class CoupleProfileStorage(ABC):
    """Persistence contract for couple profiles, keyed by couple id."""

    @abstractmethod
    def save_couple_profile(self, profile: CoupleProgressProfile) -> None:
        pass

    @abstractmethod
    def get_couple_profile(self, couple_id: str) -> Optional[CoupleProgressProfile]:
        pass

    @abstractmethod
    def delete_couple_profile(self, couple_id: str) -> None:
        pass


class PlanStorage(ABC):
    """Persistence contract for periodization plans, keyed by the plan owner's user id."""

    @abstractmethod
    def save_plan(self, plan: PeriodizationPlan) -> None:
        pass

    @abstractmethod
    def get_plan(self, user_id: str) -> Optional[PeriodizationPlan]:
        pass

    @abstractmethod
    def delete_plan(self, user_id: str) -> None:
        pass


class WorkoutLogStorage(ABC):
    """Persistence contract for completed workout sessions."""

    @abstractmethod
    def save_workout(self, workout: WorkoutLog) -> None:
        pass

    @abstractmethod
    def get_workout(self, workout_id: str) -> Optional[WorkoutLog]:
        pass

    @abstractmethod
    def list_workouts_by_user(self, user_id: str, limit: int = 50) -> List[WorkoutLog]:
        """Workouts the user took part in, newest first."""
        pass

    @abstractmethod
    def list_workouts_by_couple(self, couple_id: str, limit: int = 50) -> List[WorkoutLog]:
        """Workouts of the couple, newest first."""
        pass

    @abstractmethod
    def recent_exercise_logs(self, user_id: str, exercise_id: str, limit: int = 10) -> List[ExerciseLog]:
        """
        The user's logs for one exercise across their recent workouts.

        Returned oldest first so the result can be fed straight into the
        progression analyzer, which reads the tail as the most recent sessions.
        """
        pass

    @abstractmethod
    def delete_workout(self, workout_id: str) -> None:
        pass


class DataAccessLayer(ProfileStorage, CoupleProfileStorage, PlanStorage, WorkoutLogStorage, ABC):
    """
    Abstract Base Class for a Data Access Layer.
    Combines every storage contract so the orchestrator and CLI can work
    against any backend (in-memory, JSON, Postgres) through one object.
    """


RECENT_WORKOUT_SCAN = 20


def exercise_logs_from(workouts: List[WorkoutLog], user_id: str, exercise_id: str, limit: int) -> List[ExerciseLog]:
    """Shared helper: `workouts` newest first in, matching logs oldest first out."""
    logs: List[ExerciseLog] = []
    for workout in workouts:
        own = [log for log in workout.logs_for(user_id) if log.exercise_id == exercise_id]
        logs = own + logs
        if len(logs) >= limit:
            break
    return logs[-limit:]
