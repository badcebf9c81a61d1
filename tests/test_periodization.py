from datetime import date, datetime, timedelta

import pytest

from pairfit.core.models import FatigueLevel, ProgressionRate, TrainingPhase
from pairfit.core.periodization import (
    PeriodizationManager,
    check_deload_triggers,
    next_deload_date,
    synchronize_couple_phases,
)

NOW = datetime(2024, 3, 4, 18, 0)


@pytest.fixture
def manager(dal):
    return PeriodizationManager(dal)


def _advance(manager, plan, profile, weeks):
    for week in range(1, weeks + 1):
        plan = manager.update_plan_weekly(plan, profile, NOW + timedelta(weeks=week))
    return plan


def test_initial_phase_depends_on_level(manager, dal):
    beginner = manager.create_initial_plan("alex", "beginner", "couple-1", NOW)
    intermediate = manager.create_initial_plan("sam", "intermediate", now=NOW)
    assert beginner.current_phase == TrainingPhase.ADAPTATION
    assert intermediate.current_phase == TrainingPhase.BUILDING
    assert beginner.next_planned_deload == date(2024, 4, 15)
    assert beginner.phase_history[0].reason == "Initial plan"
    assert dal.get_plan("alex") == beginner


def test_next_deload_date_counts_remaining_cycle():
    assert next_deload_date(NOW, TrainingPhase.PEAK) == (NOW + timedelta(weeks=2)).date()
    assert next_deload_date(NOW, TrainingPhase.DELOAD) == (NOW + timedelta(weeks=6)).date()


def test_standard_cycle(manager, make_profile):
    profile = make_profile()
    plan = manager.create_initial_plan("alex", now=NOW)

    plan = _advance(manager, plan, profile, 3)
    assert plan.current_phase == TrainingPhase.BUILDING
    assert plan.current_phase_week == 1
    assert plan.phase_history[0].end_date is not None

    # Six weeks without a deload cuts the first building block short
    plan = _advance(manager, plan, profile, 3)
    assert plan.current_phase == TrainingPhase.DELOAD
    assert plan.phase_history[-1].reason == "6 weeks since last deload"
    assert len(plan.phase_history) == 3


def test_building_then_peak_then_deload(manager, make_profile):
    profile = make_profile()
    plan = manager.create_initial_plan("alex", "intermediate", now=NOW)
    plan = manager.force_phase_transition(plan, TrainingPhase.BUILDING, "Second block", NOW)
    plan = plan.model_copy(update={"weeks_since_last_deload": 0})

    plan = _advance(manager, plan, profile, 4)
    assert plan.current_phase == TrainingPhase.PEAK
    plan = _advance(manager, plan, profile, 2)
    assert plan.current_phase == TrainingPhase.DELOAD
    assert plan.weeks_since_last_deload == 0
    plan = _advance(manager, plan, profile, 1)
    assert plan.current_phase == TrainingPhase.BUILDING


def test_time_since_deload_forces_deload(manager, make_profile):
    profile = make_profile()
    plan = manager.create_initial_plan("alex", "intermediate", now=NOW)
    plan = plan.model_copy(update={"current_phase_week": 4, "weeks_since_last_deload": 5})

    updated = manager.update_plan_weekly(plan, profile, NOW)
    assert updated.current_phase == TrainingPhase.DELOAD
    assert updated.weeks_since_last_deload == 0
    assert updated.current_phase_week == 1
    assert updated.phase_history[-1].reason == "6 weeks since last deload"
    assert updated.adjustments[-1].type == "phase_transition"
    assert plan.current_phase == TrainingPhase.BUILDING


def test_plateau_and_overtraining_triggers(manager, make_profile):
    plateau = make_profile()
    plateau.progression_rate.overall = ProgressionRate.PLATEAU
    plan = manager.create_initial_plan("alex", "intermediate", now=NOW)
    plan = _advance(manager, plan, plateau, 2)
    assert plan.current_phase == TrainingPhase.BUILDING
    assert plan.weeks_since_plateau_start == 2
    plan = _advance(manager, plan, plateau, 1)
    assert plan.current_phase == TrainingPhase.DELOAD

    tired = make_profile()
    tired.recovery_status.overall_fatigue = FatigueLevel.EXHAUSTED
    fresh_plan = manager.create_initial_plan("sam", "intermediate", now=NOW)
    assert check_deload_triggers(tired, fresh_plan) == "Persistent fatigue detected"


def test_declining_after_deload_restarts_adaptation(manager, make_profile):
    declining = make_profile()
    declining.progression_rate.overall = ProgressionRate.DECLINING
    plan = manager.create_initial_plan("alex", "intermediate", now=NOW)
    plan = manager.update_plan_weekly(plan, declining, NOW)
    assert plan.current_phase == TrainingPhase.DELOAD
    plan = manager.update_plan_weekly(plan, declining, NOW + timedelta(weeks=1))
    assert plan.current_phase == TrainingPhase.ADAPTATION


def test_history_and_adjustments_are_bounded(manager):
    plan = manager.create_initial_plan("alex", now=NOW)
    for i in range(25):
        phase = TrainingPhase.BUILDING if i % 2 else TrainingPhase.PEAK
        plan = manager.force_phase_transition(plan, phase, f"manual {i}", NOW + timedelta(days=i))
    assert len(plan.phase_history) == 20
    assert len(plan.adjustments) == 10
    assert plan.phase_history[-1].reason == "manual 24"


def test_phase_params_and_status(manager):
    plan = manager.create_initial_plan("alex", "intermediate", now=NOW)
    plan = plan.model_copy(update={"current_phase_week": 4})
    params = manager.get_phase_workout_params(plan)
    assert params.target_intensity == 0.85
    assert params.volume_multiplier == 1.0
    assert params.should_progress_exercises

    deload = manager.force_phase_transition(plan, TrainingPhase.DELOAD, "Scheduled", NOW)
    assert not manager.get_phase_workout_params(deload).should_progress_exercises

    status = manager.get_plan_status(plan, NOW)
    assert status["current_phase"] == "building"
    assert status["days_until_next_phase"] == 7
    assert status["intensity"] == "Medium-High"
    assert status["days_until_deload"] == 42


def test_couple_sync(manager, couple):
    plan_a = manager.create_initial_plan("alex", now=NOW)
    plan_b = manager.create_initial_plan("sam", now=NOW)
    assert synchronize_couple_phases(plan_a, plan_b, couple, NOW).synchronized

    ahead = manager.force_phase_transition(plan_b, TrainingPhase.BUILDING, "Early start", NOW)
    assert not synchronize_couple_phases(plan_a, ahead, couple, NOW).synchronized

    couple.total_workouts_together = 6
    result = synchronize_couple_phases(plan_a, ahead, couple, NOW + timedelta(weeks=1))
    assert result.synchronized
    assert result.plan_b == ahead

    deload = manager.force_phase_transition(plan_b, TrainingPhase.DELOAD, "Tired", NOW)
    assert not synchronize_couple_phases(plan_a, deload, couple, NOW + timedelta(weeks=1)).synchronized
