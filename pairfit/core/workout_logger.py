"""Session log lifecycle: start, log exercises, collect feedback, complete."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from statistics import mean
from typing import Any, Dict, List, Optional, Sequence

from pairfit.core.errors import WorkoutAlreadyCompletedError
from pairfit.core.models import (
    FORM_QUALITY_SCORES,
    ExerciseLog,
    FormQuality,
    PairingStrategy,
    PostWorkoutFeedback,
    WorkoutLog,
    WorkoutType,
)
from pairfit.data_access.dal import WorkoutLogStorage
from pairfit.infra import log_utils


@dataclass(frozen=True)
class PersonWorkoutStats:
    exercises_completed: int = 0
    total_sets: int = 0
    total_reps: int = 0
    average_rir: float = 0.0
    completion_rate: float = 0.0
    average_form_quality: float = 0.0


@dataclass(frozen=True)
class WorkoutStats:
    duration_minutes: int
    person_a: PersonWorkoutStats
    person_b: PersonWorkoutStats
    total_exercises: int
    completion_rate: float


def person_stats(logs: Sequence[ExerciseLog]) -> PersonWorkoutStats:
    if not logs:
        return PersonWorkoutStats()
    completed = [log for log in logs if log.completed]
    return PersonWorkoutStats(
        exercises_completed=len({log.exercise_id for log in completed}),
        total_sets=len(logs),
        total_reps=sum(log.actual_reps or 0 for log in logs),
        average_rir=round(mean(log.actual_rir for log in logs), 1),
        completion_rate=len(completed) / len(logs),
        average_form_quality=round(mean(FORM_QUALITY_SCORES[log.form_quality] for log in logs), 1),
    )


def _ensure_open(workout: WorkoutLog) -> None:
    if workout.is_complete:
        raise WorkoutAlreadyCompletedError(f"Workout {workout.id} already completed at {workout.end_time}")


class WorkoutLogger:
    """
    Builds up a `WorkoutLog` during a session.

    Each call returns a new log; only `complete_workout` touches storage.
    """

    def __init__(self, storage: WorkoutLogStorage):
        self.storage = storage

    def start_workout(
        self,
        couple_id: str,
        person_a_id: str,
        person_b_id: str,
        generated_workout_id: Optional[str] = None,
        workout_type: WorkoutType = WorkoutType.MIXED,
        strategy_used: Optional[PairingStrategy] = None,
        now: Optional[datetime] = None,
    ) -> WorkoutLog:
        return WorkoutLog(
            id=f"session-{uuid.uuid4().hex[:12]}",
            couple_id=couple_id,
            person_a_id=person_a_id,
            person_b_id=person_b_id,
            generated_workout_id=generated_workout_id,
            workout_type=workout_type,
            strategy_used=strategy_used,
            start_time=now or datetime.now(),
        )

    def log_exercise(
        self, workout: WorkoutLog, person_id: str, exercise_log: ExerciseLog, now: Optional[datetime] = None
    ) -> WorkoutLog:
        _ensure_open(workout)
        side = workout.side_of(person_id)
        stamped = exercise_log.model_copy(update={"timestamp": now or datetime.now()})
        if side == "a":
            return workout.model_copy(update={"person_a_logs": [*workout.person_a_logs, stamped]})
        return workout.model_copy(update={"person_b_logs": [*workout.person_b_logs, stamped]})

    def add_feedback(self, workout: WorkoutLog, person_id: str, feedback: PostWorkoutFeedback) -> WorkoutLog:
        _ensure_open(workout)
        field = "person_a_feedback" if workout.side_of(person_id) == "a" else "person_b_feedback"
        return workout.model_copy(update={field: feedback})

    def complete_workout(self, workout: WorkoutLog, now: Optional[datetime] = None) -> WorkoutLog:
        _ensure_open(workout)
        completed = workout.model_copy(update={"end_time": now or datetime.now()})
        self.storage.save_workout(completed)
        log_utils.log_message(
            f"[workout] {completed.couple_id}: saved {completed.id} "
            f"({len(completed.person_a_logs)}+{len(completed.person_b_logs)} logs)"
        )
        return completed

    def get_workout(self, workout_id: str) -> Optional[WorkoutLog]:
        return self.storage.get_workout(workout_id)

    def get_user_workouts(self, user_id: str, limit: int = 50) -> List[WorkoutLog]:
        return self.storage.list_workouts_by_user(user_id, limit)

    def get_couple_workouts(self, couple_id: str, limit: int = 50) -> List[WorkoutLog]:
        return self.storage.list_workouts_by_couple(couple_id, limit)

    def get_exercise_logs(self, user_id: str, exercise_id: str, limit: int = 10) -> List[ExerciseLog]:
        return self.storage.recent_exercise_logs(user_id, exercise_id, limit)

    @staticmethod
    def calculate_workout_stats(workout: WorkoutLog) -> WorkoutStats:
        duration = 0.0
        if workout.end_time is not None:
            duration = (workout.end_time - workout.start_time).total_seconds() / 60
        stats_a = person_stats(workout.person_a_logs)
        stats_b = person_stats(workout.person_b_logs)
        return WorkoutStats(
            duration_minutes=round(duration),
            person_a=stats_a,
            person_b=stats_b,
            total_exercises=len({log.exercise_id for log in [*workout.person_a_logs, *workout.person_b_logs]}),
            completion_rate=(stats_a.completion_rate + stats_b.completion_rate) / 2,
        )


# --- Builders --------------------------------------------------------------------

class ExerciseLogBuilder:
    """Fluent construction of an `ExerciseLog`; `build()` fills the defaults."""

    def __init__(self, exercise_id: str):
        self._fields: Dict[str, Any] = {"exercise_id": exercise_id}
        self._rir: Optional[float] = None

    def prescribed(self, reps: Optional[int] = None, duration: Optional[int] = None,
                   sets: Optional[int] = None, weight: Optional[float] = None, rir: Optional[int] = None):
        for key, value in (("reps", reps), ("duration", duration), ("sets", sets), ("weight", weight), ("rir", rir)):
            if value is not None:
                self._fields[f"prescribed_{key}"] = value
        return self

    def actual(self, reps: Optional[int] = None, duration: Optional[int] = None,
               sets: Optional[int] = None, weight: Optional[float] = None):
        for key, value in (("reps", reps), ("duration", duration), ("sets", sets), ("weight", weight)):
            if value is not None:
                self._fields[f"actual_{key}"] = value
        return self

    def rir(self, rir: float):
        self._rir = rir
        return self

    def form(self, quality: FormQuality):
        self._fields["form_quality"] = quality
        return self

    def not_completed(self):
        self._fields["completed"] = False
        return self

    def skipped(self, reason: Optional[str] = None):
        self._fields.update(completed=False, skipped=True, skip_reason=reason)
        return self

    def too_easy(self):
        self._fields["felt_too_easy"] = True
        return self

    def too_hard(self):
        self._fields["felt_too_hard"] = True
        return self

    def felt_pain(self, location: Optional[str] = None):
        self._fields.update(felt_pain=True, pain_location=location)
        return self

    def disliked(self):
        self._fields["enjoyed"] = False
        return self

    def notes(self, text: str):
        self._fields["notes"] = text
        return self

    def heart_rate(self, average: int, maximum: int):
        self._fields.update(heart_rate_avg=average, heart_rate_max=maximum)
        return self

    def build(self) -> ExerciseLog:
        rir = self._rir
        if rir is None:
            if self._fields.get("felt_too_easy"):
                rir = 4
            elif self._fields.get("felt_too_hard"):
                rir = 0
            else:
                rir = 2
        return ExerciseLog(**self._fields, actual_rir=rir)


class FeedbackBuilder:
    """Fluent construction of `PostWorkoutFeedback` with neutral 3/5 ratings."""

    def __init__(self):
        self._fields: Dict[str, Any] = {}

    def difficulty(self, rating: int):
        self._fields["overall_difficulty"] = rating
        return self

    def enjoyment(self, rating: int):
        self._fields["enjoyment_rating"] = rating
        return self

    def connection(self, rating: int):
        self._fields["partner_connection_rating"] = rating
        return self

    def exercise(self, exercise_id: str, verdict: str):
        self._fields.setdefault("exercise_feedback", {})[exercise_id] = verdict
        return self

    def would_not_repeat(self):
        self._fields["would_repeat"] = False
        return self

    def favorite(self, exercise_id: str):
        self._fields["favorite_exercise"] = exercise_id
        return self

    def least_favorite(self, exercise_id: str):
        self._fields["least_favorite_exercise"] = exercise_id
        return self

    def energy(self, level: str):
        self._fields["energy_level_after"] = level
        return self

    def soreness(self, areas: Sequence[str]):
        self._fields["soreness_areas"] = list(areas)
        return self

    def comments(self, text: str):
        self._fields["comments"] = text
        return self

    def build(self) -> PostWorkoutFeedback:
        return PostWorkoutFeedback(**self._fields)
