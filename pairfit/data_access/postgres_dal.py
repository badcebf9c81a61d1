from typing import List, Optional

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from pairfit.config import settings
from pairfit.core.models import (
    CoupleProgressProfile,
    ExerciseLog,
    PeriodizationPlan,
    UserProgressProfile,
    WorkoutLog,
)
from pairfit.data_access.dal import RECENT_WORKOUT_SCAN, DataAccessLayer, exercise_logs_from
from pairfit.infra import log_utils


def create_pool(conninfo: Optional[str] = None) -> ConnectionPool:
    """
    A small pool is enough for this synchronous, single-process engine.
    Rows come back as dicts so JSONB documents can be validated directly.
    """
    return ConnectionPool(
        conninfo=conninfo or settings.DATABASE_URL,
        min_size=1,
        max_size=3,
        kwargs={"row_factory": dict_row},
        open=True,
    )


class PostgresDal(DataAccessLayer):
    """
    A Data Access Layer implementation that uses a PostgreSQL database as the backend.
    Tables are defined in init-db/schema.sql; each entity is one JSONB document.
    """

    def __init__(self, pool: Optional[ConnectionPool] = None):
        self.pool = pool or create_pool()

    def close(self) -> None:
        self.pool.close()

    def _fetch_one(self, query: str, params: tuple) -> Optional[dict]:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchone()

    def _fetch_all(self, query: str, params: tuple) -> List[dict]:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchall()

    def _execute(self, query: str, params: tuple) -> None:
        with self.pool.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)

    # --- Profiles ------------------------------------------------------------
    def save_profile(self, profile: UserProgressProfile) -> None:
        log_utils.log_message(f"[PostgresDal] Saving profile {profile.user_id}")
        self._execute(
            """
            INSERT INTO user_profiles (user_id, profile, updated_at)
            VALUES (%s, %s, now())
            ON CONFLICT (user_id) DO UPDATE SET
                profile = EXCLUDED.profile, updated_at = EXCLUDED.updated_at;
            """,
            (profile.user_id, Jsonb(profile.model_dump(mode="json"))),
        )

    def get_profile(self, user_id: str) -> Optional[UserProgressProfile]:
        row = self._fetch_one("SELECT profile FROM user_profiles WHERE user_id = %s;", (user_id,))
        return UserProgressProfile.model_validate(row["profile"]) if row else None

    def delete_profile(self, user_id: str) -> None:
        self._execute("DELETE FROM user_profiles WHERE user_id = %s;", (user_id,))

    # --- Couples -------------------------------------------------------------
    def save_couple_profile(self, profile: CoupleProgressProfile) -> None:
        log_utils.log_message(f"[PostgresDal] Saving couple profile {profile.couple_id}")
        self._execute(
            """
            INSERT INTO couple_profiles (couple_id, person_a_id, person_b_id, profile, updated_at)
            VALUES (%s, %s, %s, %s, now())
            ON CONFLICT (couple_id) DO UPDATE SET
                profile = EXCLUDED.profile, updated_at = EXCLUDED.updated_at;
            """,
            (profile.couple_id, profile.person_a_id, profile.person_b_id, Jsonb(profile.model_dump(mode="json"))),
        )

    def get_couple_profile(self, couple_id: str) -> Optional[CoupleProgressProfile]:
        row = self._fetch_one("SELECT profile FROM couple_profiles WHERE couple_id = %s;", (couple_id,))
        return CoupleProgressProfile.model_validate(row["profile"]) if row else None

    def delete_couple_profile(self, couple_id: str) -> None:
        self._execute("DELETE FROM couple_profiles WHERE couple_id = %s;", (couple_id,))

    # --- Plans ---------------------------------------------------------------
    def save_plan(self, plan: PeriodizationPlan) -> None:
        log_utils.log_message(f"[PostgresDal] Saving plan {plan.id} for {plan.user_id}")
        self._execute(
            """
            INSERT INTO periodization_plans (user_id, couple_id, plan, updated_at)
            VALUES (%s, %s, %s, now())
            ON CONFLICT (user_id) DO UPDATE SET
                couple_id = EXCLUDED.couple_id, plan = EXCLUDED.plan, updated_at = EXCLUDED.updated_at;
            """,
            (plan.user_id, plan.couple_id, Jsonb(plan.model_dump(mode="json"))),
        )

    def get_plan(self, user_id: str) -> Optional[PeriodizationPlan]:
        row = self._fetch_one("SELECT plan FROM periodization_plans WHERE user_id = %s;", (user_id,))
        return PeriodizationPlan.model_validate(row["plan"]) if row else None

    def delete_plan(self, user_id: str) -> None:
        self._execute("DELETE FROM periodization_plans WHERE user_id = %s;", (user_id,))

    # --- Workouts ------------------------------------------------------------
    def save_workout(self, workout: WorkoutLog) -> None:
        log_utils.log_message(f"[PostgresDal] Saving workout {workout.id}")
        self._execute(
            """
            INSERT INTO workout_logs (id, couple_id, person_a_id, person_b_id, start_time, log)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (id) DO UPDATE SET log = EXCLUDED.log;
            """,
            (
                workout.id,
                workout.couple_id,
                workout.person_a_id,
                workout.person_b_id,
                workout.start_time,
                Jsonb(workout.model_dump(mode="json")),
            ),
        )

    def get_workout(self, workout_id: str) -> Optional[WorkoutLog]:
        row = self._fetch_one("SELECT log FROM workout_logs WHERE id = %s;", (workout_id,))
        return WorkoutLog.model_validate(row["log"]) if row else None

    def list_workouts_by_user(self, user_id: str, limit: int = 50) -> List[WorkoutLog]:
        rows = self._fetch_all(
            """
            SELECT log FROM workout_logs
            WHERE person_a_id = %s OR person_b_id = %s
            ORDER BY start_time DESC LIMIT %s;
            """,
            (user_id, user_id, limit),
        )
        return [WorkoutLog.model_validate(row["log"]) for row in rows]

    def list_workouts_by_couple(self, couple_id: str, limit: int = 50) -> List[WorkoutLog]:
        rows = self._fetch_all(
            "SELECT log FROM workout_logs WHERE couple_id = %s ORDER BY start_time DESC LIMIT %s;",
            (couple_id, limit),
        )
        return [WorkoutLog.model_validate(row["log"]) for row in rows]

    def recent_exercise_logs(self, user_id: str, exercise_id: str, limit: int = 10) -> List[ExerciseLog]:
        workouts = self.list_workouts_by_user(user_id, RECENT_WORKOUT_SCAN)
        return exercise_logs_from(workouts, user_id, exercise_id, limit)

    def delete_workout(self, workout_id: str) -> None:
        self._execute("DELETE FROM workout_logs WHERE id = %s;", (workout_id,))
