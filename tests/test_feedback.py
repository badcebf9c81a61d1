import pytest

from pairfit.core.feedback import (
    PAIN_PREFIX,
    SKIP_WARNING,
    FeedbackProcessor,
    combine_intensity,
    extract_implicit_signals,
    infer_intensity,
)
from pairfit.core.models import (
    ChangeType,
    ExerciseLog,
    ExerciseMastery,
    ImplicitSignals,
    PairingStrategy,
    PostWorkoutFeedback,
)


@pytest.fixture
def processor(catalog):
    return FeedbackProcessor(catalog)


def _session(workout_log, logs_a=(), logs_b=(), feedback_a=None, feedback_b=None):
    return workout_log.model_copy(
        update={
            "person_a_logs": list(logs_a),
            "person_b_logs": list(logs_b),
            "person_a_feedback": feedback_a,
            "person_b_feedback": feedback_b,
        }
    )


def test_implicit_signals(make_profile):
    logs = [
        ExerciseLog(exercise_id="push-up", prescribed_reps=10, actual_reps=4, actual_rir=0),
        ExerciseLog(exercise_id="plank", skipped=True, completed=False, actual_rir=0),
        ExerciseLog(exercise_id="bodyweight-squat", prescribed_reps=10, actual_reps=7, actual_rir=1),
    ]
    signals = extract_implicit_signals(logs, make_profile())
    assert signals.workout_completion_rate == pytest.approx(2 / 3)
    assert signals.exercise_skip_rate == pytest.approx(2 / 3)
    assert signals.performance_vs_prescription == "underperformed"
    assert signals.average_rir == pytest.approx(1 / 3)
    assert extract_implicit_signals([], make_profile()) == ImplicitSignals()


def test_intensity_inference():
    easy = PostWorkoutFeedback(overall_difficulty=1)
    assert infer_intensity(easy, ImplicitSignals(average_rir=0)) == "higher"
    assert infer_intensity(None, ImplicitSignals(average_rir=0.5, workout_completion_rate=1)) == "lower"
    assert infer_intensity(None, ImplicitSignals(average_rir=4, workout_completion_rate=1)) == "higher"
    assert combine_intensity("higher", "same") == "higher"
    assert combine_intensity("higher", "lower") == "same"


def test_pain_is_the_top_recommendation(processor, make_profile, couple, workout_log):
    session = _session(
        workout_log,
        logs_a=[ExerciseLog(exercise_id="push-up", felt_pain=True, pain_location="wrist")],
        logs_b=[ExerciseLog(exercise_id="push-up", form_quality="poor")],
    )
    result = processor.process_workout_feedback(
        session, make_profile("alex"), make_profile("sam"), couple, PairingStrategy.IDENTICAL
    )
    assert result.person_a_insights.fatigue_warnings[0] == f"{PAIN_PREFIX} Push-Up (wrist) - requires attention"
    assert result.recommendations[0].priority == "high"
    assert result.recommendations[0].message.startswith(PAIN_PREFIX)
    assert "push-up" in result.person_a_insights.preference_updates.disliked_exercises
    assert result.person_b_insights.form_concerns
    priorities = [r.priority for r in result.recommendations]
    assert priorities == sorted(priorities, key=["high", "medium", "low"].index)


def test_liked_and_disliked_exercises(processor, make_profile):
    logs = [
        ExerciseLog(exercise_id="plank", felt_too_easy=True),
        ExerciseLog(exercise_id="burpee", felt_too_easy=True),
        ExerciseLog(exercise_id="mountain-climbers", enjoyed=False),
    ]
    feedback = PostWorkoutFeedback(
        favorite_exercise="dead-bug",
        least_favorite_exercise="plank",
        exercise_feedback={"wall-sit": "too_hard", "dead-bug": "just_right"},
    )
    profile = make_profile()
    insights = processor.process_user_feedback(logs, feedback, extract_implicit_signals(logs, profile), profile)
    prefs = insights.preference_updates
    assert prefs.liked_exercises == ["burpee", "dead-bug"]
    assert prefs.disliked_exercises == ["mountain-climbers", "plank", "wall-sit"]
    assert prefs.preferred_intensity == "same"


def test_mastered_exercises_get_adjustments(processor, make_profile):
    profile = make_profile()
    profile.exercise_mastery["push-up"] = ExerciseMastery(
        exercise_id="push-up", times_performed=6, form_ready_for_progression=True
    )
    logs = [ExerciseLog(exercise_id="push-up", actual_rir=4) for _ in range(3)]
    logs.append(ExerciseLog(exercise_id="not-in-catalog"))
    insights = processor.process_user_feedback(logs, None, extract_implicit_signals(logs, profile), profile)
    assert [a.change for a in insights.exercise_adjustments] == [ChangeType.PROGRESS_VARIATION]
    assert insights.exercise_adjustments[0].new_exercise_id == "decline-push-up"


def test_strategy_effectiveness_bounds(workout_log):
    great = _session(
        workout_log,
        feedback_a=PostWorkoutFeedback(enjoyment_rating=5, partner_connection_rating=5),
        feedback_b=PostWorkoutFeedback(enjoyment_rating=5, partner_connection_rating=4),
    )
    perfect = ImplicitSignals(workout_completion_rate=1.0, average_rir=2)
    score = FeedbackProcessor.strategy_effectiveness(great, PairingStrategy.MIRROR_FACING, perfect, perfect)
    assert score == 5.0
    assert FeedbackProcessor.strategy_effectiveness(great, PairingStrategy.IDENTICAL, perfect, perfect) == 4.5


def test_struggling_session_changes_pairing(processor, make_profile, couple, workout_log):
    session = _session(
        workout_log,
        logs_a=[ExerciseLog(exercise_id="push-up", completed=False), ExerciseLog(exercise_id="plank", completed=False)],
        logs_b=[ExerciseLog(exercise_id="push-up"), ExerciseLog(exercise_id="plank")],
        feedback_a=PostWorkoutFeedback(enjoyment_rating=1, partner_connection_rating=1),
        feedback_b=PostWorkoutFeedback(enjoyment_rating=1, partner_connection_rating=1),
    )
    result = processor.process_workout_feedback(
        session, make_profile("alex"), make_profile("sam"), couple, PairingStrategy.IDENTICAL
    )
    adjustments = result.couple_insights.pairing_adjustments
    assert adjustments.avoid_strategies == [PairingStrategy.IDENTICAL]
    assert adjustments.suggested_strategies == [
        PairingStrategy.SAME_EXERCISE_DIFFERENT_REPS,
        PairingStrategy.ADJACENT_PROGRESSION,
    ]
    assert adjustments.intensity_adjustment == -0.1
    assert "partner_connection" in adjustments.focus_areas
    assert result.couple_insights.connection_score == 1
    assert "Partner A struggling while B completing easily - gap may be widening" in (
        result.couple_insights.gap_observations
    )

    actions = [r.action for r in result.recommendations if r.type == "pairing" and r.action]
    assert actions == ['Try "same_exercise_different_reps" strategy next time']
    assert result.user_insights.preference_updates.preferred_intensity == "same"


def test_skips_raise_fatigue_recommendation(processor, make_profile, couple, workout_log):
    skipped = [ExerciseLog(exercise_id="plank", skipped=True, completed=False) for _ in range(3)]
    result = processor.process_workout_feedback(
        _session(workout_log, logs_a=skipped), make_profile("alex"), make_profile("sam"), couple, PairingStrategy.IDENTICAL
    )
    assert SKIP_WARNING in result.user_insights.fatigue_warnings
    assert any(r.type == "recovery" for r in result.recommendations)
