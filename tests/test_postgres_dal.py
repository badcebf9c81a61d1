"""Tests for the Postgres DAL implementation.

These tests require a running PostgreSQL instance. If the environment variable
`TEST_DATABASE_URL` is not set, the tests will be skipped. The tests mirror the
JSON DAL round-trip to ensure functional parity.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest

TEST_DB_URL = os.getenv("TEST_DATABASE_URL")

if TEST_DB_URL:
    from pairfit.core.models import ExerciseLog, WorkoutLog
    from pairfit.core.periodization import PeriodizationManager
    from pairfit.data_access.postgres_dal import PostgresDal, create_pool
    import psycopg
else:  # pragma: no cover - environment without postgres
    PostgresDal = None

NOW = datetime(2024, 3, 4, 18, 0)
SCHEMA = Path(__file__).resolve().parent.parent / "init-db/schema.sql"


@pytest.mark.skipif(PostgresDal is None, reason="TEST_DATABASE_URL not configured")
def test_postgres_dal_roundtrip(make_profile, couple):
    """Basic round-trip test for PostgresDal."""
    # Initialise schema on a clean slate
    with psycopg.connect(TEST_DB_URL, autocommit=True) as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA.read_text())
            cur.execute("TRUNCATE user_profiles, couple_profiles, periodization_plans, workout_logs;")

    dal = PostgresDal(create_pool(TEST_DB_URL))
    try:
        profile = make_profile("alex", goals=["build_muscle"])
        dal.save_profile(profile)
        assert dal.get_profile("alex") == profile

        dal.save_couple_profile(couple)
        assert dal.get_couple_profile("couple-1") == couple

        plan = PeriodizationManager(dal).create_initial_plan("alex", couple_id="couple-1", now=NOW)
        assert dal.get_plan("alex") == plan

        for day in range(2):
            dal.save_workout(
                WorkoutLog(
                    id=f"session-{day}",
                    couple_id="couple-1",
                    person_a_id="alex",
                    person_b_id="sam",
                    start_time=NOW + timedelta(days=day),
                    person_b_logs=[ExerciseLog(exercise_id="plank", actual_duration=30 + day)],
                )
            )
        assert [w.id for w in dal.list_workouts_by_couple("couple-1")] == ["session-1", "session-0"]
        assert [log.actual_duration for log in dal.recent_exercise_logs("sam", "plank")] == [30, 31]

        # Upserts replace the stored document
        profile.goals.append("flexibility")
        dal.save_profile(profile)
        assert dal.get_profile("alex").goals == ["build_muscle", "flexibility"]

        dal.delete_workout("session-0")
        assert dal.get_workout("session-0") is None
        dal.delete_profile("alex")
        assert dal.get_profile("alex") is None

        with psycopg.connect(TEST_DB_URL) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT couple_id FROM periodization_plans WHERE user_id = %s;", ("alex",))
                row = cur.fetchone()
                assert row and row[0] == "couple-1"
    finally:
        dal.close()
