import json
from datetime import datetime, timedelta

import pytest

from pairfit.cli import pairfit_cli
from pairfit.config import settings
from pairfit.core.errors import WorkoutAlreadyCompletedError
from pairfit.core.models import PairingStrategy, SessionContext, TrainingPhase
from pairfit.core.orchestrator import Orchestrator, fitness_level_of
from pairfit.core.workout_logger import ExerciseLogBuilder, FeedbackBuilder

NOW = datetime(2024, 3, 4, 18, 0)


@pytest.fixture
def orchestrator(dal, catalog):
    return Orchestrator(dal, catalog)


def _session(orchestrator, start, strategy=None):
    logger = orchestrator.logger
    workout = logger.start_workout("couple-1", "alex", "sam", strategy_used=strategy, now=start)
    workout = logger.log_exercise(workout, "alex", ExerciseLogBuilder("push-up").actual(reps=10).build(), start)
    workout = logger.log_exercise(workout, "sam", ExerciseLogBuilder("plank").actual(duration=40).too_easy().build(), start)
    workout = logger.add_feedback(workout, "alex", FeedbackBuilder().enjoyment(5).connection(5).build())
    return workout


def test_complete_session_updates_everything(orchestrator, dal):
    workout = _session(orchestrator, NOW)
    outcome = orchestrator.complete_session(workout, PairingStrategy.MIRROR_FACING, NOW + timedelta(minutes=40))

    assert outcome.workout_log.is_complete
    assert dal.get_workout(workout.id).end_time == NOW + timedelta(minutes=40)

    # Each partner only sees their own logs
    assert set(outcome.profile_a.exercise_mastery) == {"push-up"}
    assert set(outcome.profile_b.exercise_mastery) == {"plank"}
    assert dal.get_profile("alex") == outcome.profile_a

    couple = outcome.couple_profile
    assert couple.total_workouts_together == 1
    assert couple.pairing_history[-1].strategy_used == PairingStrategy.MIRROR_FACING
    assert dal.get_couple_profile("couple-1") == couple

    assert outcome.plan_a.current_phase == TrainingPhase.ADAPTATION
    assert dal.get_plan("sam") == outcome.plan_b
    assert outcome.feedback.person_b_insights.preference_updates.liked_exercises == ["plank"]


def test_resubmitted_session_is_rejected(orchestrator, dal):
    first = orchestrator.complete_session(_session(orchestrator, NOW), now=NOW)

    with pytest.raises(WorkoutAlreadyCompletedError):
        orchestrator.complete_session(first.workout_log, now=NOW + timedelta(hours=1))

    assert dal.get_profile("alex").exercise_mastery["push-up"].times_performed == 1
    assert dal.get_couple_profile("couple-1").total_workouts_together == 1
    assert len(dal.get_couple_profile("couple-1").pairing_history) == 1


def test_strategy_falls_back_to_log_then_identical(orchestrator):
    outcome = orchestrator.complete_session(_session(orchestrator, NOW, PairingStrategy.COMPETITIVE_SAME), now=NOW)
    assert outcome.couple_profile.pairing_history[-1].strategy_used == PairingStrategy.COMPETITIVE_SAME

    outcome = orchestrator.complete_session(_session(orchestrator, NOW + timedelta(days=1)), now=NOW + timedelta(days=1))
    assert outcome.couple_profile.pairing_history[-1].strategy_used == PairingStrategy.IDENTICAL


def test_plans_advance_per_elapsed_week(orchestrator):
    first = orchestrator.complete_session(_session(orchestrator, NOW), now=NOW)
    assert first.plan_a.total_weeks_completed == 0

    later = NOW + timedelta(days=15)
    second = orchestrator.complete_session(_session(orchestrator, later), now=later)
    assert second.plan_a.id == first.plan_a.id
    assert second.plan_a.total_weeks_completed == 2
    assert second.couple_profile.total_workouts_together == 2


def test_generation_uses_lighter_partner_phase(orchestrator, dal):
    orchestrator.complete_session(_session(orchestrator, NOW), now=NOW)
    orchestrator.periodization.force_phase_transition(dal.get_plan("sam"), TrainingPhase.DELOAD, "Travel", NOW)

    assert orchestrator.shared_phase_config("alex", "sam").phase == TrainingPhase.DELOAD
    assert set(orchestrator.recent_exercise_ids("couple-1")) == {"push-up", "plank"}

    workout = orchestrator.generate_for_couple("couple-1", "alex", "sam", SessionContext(), NOW + timedelta(days=1))
    assert workout.couple_id == "couple-1"
    assert workout.main_workout
    assert all(p.prescription_a.target_rir == 3 for p in workout.main_workout)


def test_generate_for_new_couple_creates_profiles(orchestrator, dal):
    workout = orchestrator.generate_for_couple("couple-9", "jo", "kim", now=NOW)
    assert workout.fitness_gap == 0
    assert dal.get_profile("jo") is not None
    assert dal.get_couple_profile("couple-9").person_b_id == "kim"
    assert orchestrator.shared_phase_config("jo", "kim") is None


def test_fitness_level_of(make_profile):
    assert fitness_level_of(make_profile(fitness_level="beginner")) == "beginner"
    assert fitness_level_of(make_profile(fitness_level="intermediate")) == "intermediate"
    assert fitness_level_of(make_profile(fitness_level="advanced")) == "advanced"


def test_cli_generate_and_summaries(monkeypatch, capsys):
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")

    assert pairfit_cli.main(["couple-summary", "--couple-id", "couple-1"]) == 1

    code = pairfit_cli.main(
        ["generate", "--couple-id", "couple-1", "--person-a", "alex", "--person-b", "sam", "--duration", "20"]
    )
    assert code == 0
    workout = json.loads(capsys.readouterr().out)
    assert workout["couple_id"] == "couple-1"
    assert workout["main_workout"]

    assert pairfit_cli.main(["couple-summary", "--couple-id", "couple-1"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["total_workouts"] == 0

    assert pairfit_cli.main(["plan-status", "--user-id", "alex"]) == 1
