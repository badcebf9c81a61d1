from datetime import datetime

from pairfit.core.candidates import calculate_prescription, generate_candidate_pairs
from pairfit.core.catalog import ExerciseCatalog
from pairfit.core.constraints import check_constraints, filter_exercises_by_constraints
from pairfit.core.models import (
    ExerciseMastery,
    InteractionType,
    PairingInput,
    PairingStrategy,
    SessionContext,
    TrainingPhase,
    WorkoutType,
)
from pairfit.core.pairing_engine import PairingEngine
from pairfit.core.periodization import PHASE_CONFIGS

NOW = datetime(2024, 3, 4, 18, 0)


def _generate(catalog, a, b, couple, **context):
    pairing_input = PairingInput(person_a=a, person_b=b, couple_profile=couple, session_context=SessionContext(**context))
    return PairingEngine(catalog).generate_workout(pairing_input, now=NOW)


def test_generated_workout_is_safe_for_both(catalog, make_profile, couple):
    a = make_profile("alex", injuries=["wrist"])
    b = make_profile("sam", "advanced", injuries=["knee"])
    workout = _generate(catalog, a, b, couple, equipment=["dumbbell"], space="small")

    assert workout.main_workout
    for pair in workout.all_pairs:
        assert pair.score.safety_score == 1.0
        assert check_constraints(pair.exercise_a, a, ["dumbbell"], "small").passed
        assert check_constraints(pair.exercise_b, b, ["dumbbell"], "small").passed


def test_workout_shape_for_equal_partners(catalog, make_profile, couple):
    workout = _generate(catalog, make_profile("alex"), make_profile("sam"), couple)

    assert workout.fitness_gap == 0
    assert 0 < len(workout.warmup) <= 4
    assert 0 < len(workout.cooldown) <= 3
    assert all(p.target_hr_zone == 2 and p.target_rir == 4 for p in workout.warmup)
    assert all(p.target_hr_zone == 1 and p.target_rir == 5 for p in workout.cooldown)
    assert workout.focus_areas == ["chest", "back", "shoulders", "quadriceps", "core"]
    assert sum(1 for p in workout.main_workout if p.exercise_a.muscle_group == "core") == 2
    assert all(p.pairing_strategy == PairingStrategy.SAME_EXERCISE_DIFFERENT_REPS for p in workout.main_workout)
    assert workout.total_exercises == len(workout.all_pairs)
    assert workout.estimated_duration > 0
    assert not workout.warnings



def test_session_duration_does_not_change_the_workout(catalog, make_profile, couple):
    a, b = make_profile("alex"), make_profile("sam")
    short = _generate(catalog, a, b, couple, duration=15, intensity_preference="low")
    long = _generate(catalog, a, b, couple, duration=60)
    assert [p.exercise_a.id for p in short.all_pairs] == [p.exercise_a.id for p in long.all_pairs]


def test_contact_exercises_need_mutual_comfort(catalog, make_profile, couple):
    a, b = make_profile("alex"), make_profile("sam")
    workout = _generate(catalog, a, b, couple)
    assert not any(p.exercise_a.requires_contact for p in workout.all_pairs)


def test_fallback_and_skipped_groups_are_warned(make_profile, couple):
    catalog = ExerciseCatalog.from_records(
        [
            {"id": "crunch", "name": "Crunch", "muscle_group": "core", "contraindicated_injuries": ["neck"]},
            {"id": "dead-bug", "name": "Dead Bug", "muscle_group": "core", "contraindicated_injuries": ["lower_back"]},
            {"id": "pull-up", "name": "Pull-Up", "muscle_group": "back", "equipment_required": ["pull_up_bar"]},
        ]
    )
    a = make_profile("alex", injuries=["lower_back"])
    b = make_profile("sam", injuries=["neck"])
    workout = _generate(catalog, a, b, couple, focus=["core", "back"])

    assert len(workout.main_workout) == 1
    fallback = workout.main_workout[0]
    assert fallback.is_fallback
    assert (fallback.exercise_a.id, fallback.exercise_b.id) == ("crunch", "dead-bug")
    assert fallback.pairing_strategy == PairingStrategy.SAME_MUSCLE_DIFFERENT_EXERCISE
    assert any("fallback" in w for w in workout.warnings)
    assert "No safe exercise for back; group skipped" in workout.warnings


def test_progression_pairs_stay_in_one_chain(catalog, make_profile, couple):
    a = make_profile("alex")
    b = make_profile("sam", "advanced")
    filtered = filter_exercises_by_constraints(catalog, a, b, [], "medium")

    adjacent = generate_candidate_pairs(
        "chest", a, b, couple, filtered.safe_for_a, filtered.safe_for_b, PairingStrategy.ADJACENT_PROGRESSION, catalog
    )
    assert adjacent
    for pair in adjacent:
        chain_ids = [e.id for e in catalog.progression_chain(pair.exercise_a)]
        assert pair.exercise_b.id in chain_ids
        assert abs(pair.exercise_a.difficulty - pair.exercise_b.difficulty) <= 1.5
        assert pair.interaction_type == InteractionType.MIRROR

    distant = generate_candidate_pairs(
        "chest", a, b, couple, filtered.safe_for_a, filtered.safe_for_b, PairingStrategy.DISTANT_PROGRESSION, catalog
    )
    assert distant
    assert all(abs(p.exercise_a.difficulty - p.exercise_b.difficulty) >= 1 for p in distant)


def test_hiit_sessions_use_hiit_groups(catalog, make_profile, couple):
    workout = _generate(catalog, make_profile("alex"), make_profile("sam"), couple, workout_type=WorkoutType.HIIT)
    assert workout.workout_type == WorkoutType.HIIT
    assert {p.exercise_a.muscle_group for p in workout.main_workout} <= {"full_body", "cardio", "core"}


def test_prescription_follows_phase_and_mastery(catalog, make_profile):
    profile = make_profile()
    push_up = catalog.require("push-up")

    deload = calculate_prescription(push_up, profile, PHASE_CONFIGS[TrainingPhase.DELOAD])
    assert (deload.sets, deload.target_rir) == (2, 3)
    peak = calculate_prescription(push_up, profile, PHASE_CONFIGS[TrainingPhase.PEAK])
    assert (peak.sets, peak.target_rir) == (3, 1)

    profile.exercise_mastery["push-up"] = ExerciseMastery(exercise_id="push-up", consistently_too_easy=True)
    assert calculate_prescription(push_up, profile).reps == push_up.default_reps + 3
