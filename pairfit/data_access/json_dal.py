"""JSON file-based implementation of the Data Access Layer."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel

from pairfit.config import settings
from pairfit.core.models import (
    CoupleProgressProfile,
    ExerciseLog,
    PeriodizationPlan,
    UserProgressProfile,
    WorkoutLog,
)
from pairfit.infra import log_utils
from .dal import RECENT_WORKOUT_SCAN, DataAccessLayer, exercise_logs_from

ModelT = TypeVar("ModelT", bound=BaseModel)


class JsonDal(DataAccessLayer):
    """Data Access Layer that persists one JSON document per entity under `settings.data_path`."""

    def _read_json(self, path: Path) -> Any:
        if not path.exists():
            return {}
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _write_json(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)

    def _path(self, kind: str, key: str) -> Path:
        return settings.data_path / kind / f"{key}.json"

    def _load(self, kind: str, key: str, model: Type[ModelT]) -> Optional[ModelT]:
        data = self._read_json(self._path(kind, key))
        if not data:
            return None
        return model.model_validate(data)

    def _save(self, kind: str, key: str, entity: BaseModel) -> None:
        self._write_json(self._path(kind, key), entity.model_dump(mode="json"))

    def _delete(self, kind: str, key: str) -> None:
        path = self._path(kind, key)
        if path.exists():
            path.unlink()
            log_utils.log_message(f"[JsonDal] Deleted {kind}/{key}")

    # --- Profiles ------------------------------------------------------------
    def save_profile(self, profile: UserProgressProfile) -> None:
        self._save("profiles", profile.user_id, profile)

    def get_profile(self, user_id: str) -> Optional[UserProgressProfile]:
        return self._load("profiles", user_id, UserProgressProfile)

    def delete_profile(self, user_id: str) -> None:
        self._delete("profiles", user_id)

    # --- Couples -------------------------------------------------------------
    def save_couple_profile(self, profile: CoupleProgressProfile) -> None:
        self._save("couples", profile.couple_id, profile)

    def get_couple_profile(self, couple_id: str) -> Optional[CoupleProgressProfile]:
        return self._load("couples", couple_id, CoupleProgressProfile)

    def delete_couple_profile(self, couple_id: str) -> None:
        self._delete("couples", couple_id)

    # --- Plans ---------------------------------------------------------------
    def save_plan(self, plan: PeriodizationPlan) -> None:
        self._save("plans", plan.user_id, plan)

    def get_plan(self, user_id: str) -> Optional[PeriodizationPlan]:
        return self._load("plans", user_id, PeriodizationPlan)

    def delete_plan(self, user_id: str) -> None:
        self._delete("plans", user_id)

    # --- Workouts ------------------------------------------------------------
    def save_workout(self, workout: WorkoutLog) -> None:
        self._save("workouts", workout.id, workout)

    def get_workout(self, workout_id: str) -> Optional[WorkoutLog]:
        return self._load("workouts", workout_id, WorkoutLog)

    def _all_workouts(self) -> List[WorkoutLog]:
        folder = settings.data_path / "workouts"
        if not folder.exists():
            return []
        return [WorkoutLog.model_validate(self._read_json(p)) for p in sorted(folder.glob("*.json"))]

    def list_workouts_by_user(self, user_id: str, limit: int = 50) -> List[WorkoutLog]:
        workouts = [w for w in self._all_workouts() if user_id in (w.person_a_id, w.person_b_id)]
        return sorted(workouts, key=lambda w: w.start_time, reverse=True)[:limit]

    def list_workouts_by_couple(self, couple_id: str, limit: int = 50) -> List[WorkoutLog]:
        workouts = [w for w in self._all_workouts() if w.couple_id == couple_id]
        return sorted(workouts, key=lambda w: w.start_time, reverse=True)[:limit]

    def recent_exercise_logs(self, user_id: str, exercise_id: str, limit: int = 10) -> List[ExerciseLog]:
        workouts = self.list_workouts_by_user(user_id, RECENT_WORKOUT_SCAN)
        return exercise_logs_from(workouts, user_id, exercise_id, limit)

    def delete_workout(self, workout_id: str) -> None:
        self._delete("workouts", workout_id)
