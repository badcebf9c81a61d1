from datetime import datetime, timedelta

import pytest

from pairfit.core.errors import WorkoutAlreadyCompletedError, WorkoutMembershipError
from pairfit.core.models import PairingStrategy, WorkoutType
from pairfit.core.workout_logger import ExerciseLogBuilder, FeedbackBuilder, WorkoutLogger

NOW = datetime(2024, 3, 4, 18, 0)


@pytest.fixture
def logger(dal):
    return WorkoutLogger(dal)


def test_exercise_log_builder_defaults_rir_from_feel():
    assert ExerciseLogBuilder("plank").build().actual_rir == 2
    assert ExerciseLogBuilder("plank").too_easy().build().actual_rir == 4
    assert ExerciseLogBuilder("plank").too_hard().build().actual_rir == 0
    assert ExerciseLogBuilder("plank").too_easy().rir(3).build().actual_rir == 3

    log = (
        ExerciseLogBuilder("push-up")
        .prescribed(reps=10, sets=3)
        .actual(reps=8, sets=3)
        .form("okay")
        .felt_pain("wrist")
        .heart_rate(140, 165)
        .build()
    )
    assert (log.prescribed_reps, log.actual_reps, log.form_quality) == (10, 8, "okay")
    assert log.felt_pain and log.pain_location == "wrist"
    assert (log.heart_rate_avg, log.heart_rate_max) == (140, 165)

    skipped = ExerciseLogBuilder("burpee").skipped("tired").build()
    assert skipped.skipped and not skipped.completed and skipped.skip_reason == "tired"


def test_feedback_builder():
    feedback = (
        FeedbackBuilder()
        .difficulty(4)
        .enjoyment(5)
        .connection(2)
        .exercise("plank", "too_easy")
        .favorite("plank")
        .least_favorite("burpee")
        .soreness(["core"])
        .would_not_repeat()
        .build()
    )
    assert (feedback.overall_difficulty, feedback.enjoyment_rating, feedback.partner_connection_rating) == (4, 5, 2)
    assert feedback.exercise_feedback == {"plank": "too_easy"}
    assert feedback.soreness_areas == ["core"]
    assert not feedback.would_repeat
    assert FeedbackBuilder().build().enjoyment_rating == 3


def test_session_lifecycle(logger, dal):
    workout = logger.start_workout(
        "couple-1", "alex", "sam", "workout-abc", WorkoutType.STRENGTH, PairingStrategy.IDENTICAL, NOW
    )
    assert workout.id.startswith("session-")
    assert dal.get_workout(workout.id) is None

    workout = logger.log_exercise(workout, "alex", ExerciseLogBuilder("push-up").actual(reps=10).build(), NOW)
    workout = logger.log_exercise(workout, "sam", ExerciseLogBuilder("push-up").actual(reps=12).build(), NOW)
    workout = logger.log_exercise(workout, "sam", ExerciseLogBuilder("plank").not_completed().build(), NOW)
    workout = logger.add_feedback(workout, "sam", FeedbackBuilder().enjoyment(4).build())
    assert len(workout.person_a_logs) == 1 and len(workout.person_b_logs) == 2
    assert workout.person_b_logs[0].timestamp == NOW
    assert workout.person_b_feedback.enjoyment_rating == 4

    with pytest.raises(WorkoutMembershipError):
        logger.log_exercise(workout, "jo", ExerciseLogBuilder("plank").build())

    completed = logger.complete_workout(workout, NOW + timedelta(minutes=35))
    assert dal.get_workout(workout.id) == completed
    assert logger.get_workout(workout.id) == completed
    assert [w.id for w in logger.get_couple_workouts("couple-1")] == [workout.id]
    assert [log.actual_reps for log in logger.get_exercise_logs("sam", "push-up")] == [12]

    stats = WorkoutLogger.calculate_workout_stats(completed)
    assert stats.duration_minutes == 35
    assert stats.total_exercises == 2
    assert stats.person_b.completion_rate == 0.5
    assert stats.completion_rate == 0.75


def test_completed_workouts_are_frozen(logger):
    workout = logger.complete_workout(logger.start_workout("couple-1", "alex", "sam", now=NOW), NOW)
    with pytest.raises(WorkoutAlreadyCompletedError):
        logger.log_exercise(workout, "alex", ExerciseLogBuilder("plank").build())
    with pytest.raises(WorkoutAlreadyCompletedError):
        logger.add_feedback(workout, "alex", FeedbackBuilder().build())
    with pytest.raises(WorkoutAlreadyCompletedError):
        logger.complete_workout(workout)


def test_recent_exercise_logs_are_oldest_first(logger):
    for day, reps in enumerate((8, 9, 10)):
        start = NOW + timedelta(days=day)
        workout = logger.start_workout("couple-1", "alex", "sam", now=start)
        workout = logger.log_exercise(workout, "alex", ExerciseLogBuilder("push-up").actual(reps=reps).build(), start)
        logger.complete_workout(workout, start + timedelta(minutes=30))

    assert [log.actual_reps for log in logger.get_exercise_logs("alex", "push-up")] == [8, 9, 10]
    assert [log.actual_reps for log in logger.get_exercise_logs("alex", "push-up", limit=2)] == [9, 10]
    assert [w.start_time for w in logger.get_user_workouts("sam", limit=2)] == [
        NOW + timedelta(days=2),
        NOW + timedelta(days=1),
    ]
