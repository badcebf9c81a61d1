"""
Training-phase management.

A plan cycles adaptation -> building -> building -> peak -> deload, and is
pushed into deload early whenever one of the `DELOAD_TRIGGERS` fires.
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from pairfit.config import settings
from pairfit.core.models import (
    CoupleProgressProfile,
    FatigueLevel,
    FitnessLevel,
    PeriodizationPlan,
    PhaseConfig,
    PhaseHistoryEntry,
    PlanAdjustment,
    ProgressionRate,
    TrainingPhase,
    UserProgressProfile,
)
from pairfit.data_access.dal import PlanStorage
from pairfit.infra import log_utils

PHASE_CONFIGS: Dict[TrainingPhase, PhaseConfig] = {
    TrainingPhase.ADAPTATION: PhaseConfig(
        phase=TrainingPhase.ADAPTATION,
        duration_weeks=3,
        intensity_range=(0.5, 0.7),
        volume_multiplier=0.7,
        progression_speed="slow",
        focus_areas=("form", "consistency", "movement_patterns"),
        description="Learn movements and build workout habits",
    ),
    TrainingPhase.BUILDING: PhaseConfig(
        phase=TrainingPhase.BUILDING,
        duration_weeks=4,
        intensity_range=(0.7, 0.85),
        volume_multiplier=1.0,
        progression_speed="normal",
        focus_areas=("progressive_overload", "strength", "endurance"),
        description="Progressive overload and building capacity",
    ),
    TrainingPhase.PEAK: PhaseConfig(
        phase=TrainingPhase.PEAK,
        duration_weeks=2,
        intensity_range=(0.85, 0.95),
        volume_multiplier=1.1,
        progression_speed="fast",
        focus_areas=("challenge", "performance", "new_variations"),
        description="Push limits and test progress",
    ),
    TrainingPhase.DELOAD: PhaseConfig(
        phase=TrainingPhase.DELOAD,
        duration_weeks=1,
        intensity_range=(0.4, 0.6),
        volume_multiplier=0.5,
        progression_speed="none",
        focus_areas=("recovery", "mobility", "technique"),
        description="Active recovery and regeneration",
    ),
}

STANDARD_CYCLE: Tuple[TrainingPhase, ...] = (
    TrainingPhase.ADAPTATION,
    TrainingPhase.BUILDING,
    TrainingPhase.BUILDING,
    TrainingPhase.PEAK,
    TrainingPhase.DELOAD,
)
PHASE_ORDER: Tuple[TrainingPhase, ...] = (
    TrainingPhase.ADAPTATION,
    TrainingPhase.BUILDING,
    TrainingPhase.PEAK,
    TrainingPhase.DELOAD,
)
ADJUSTMENT_LIMIT = 10
SYNC_MIN_WORKOUTS_PER_WEEK = 2


# --- Deload triggers -----------------------------------------------------------

@dataclass(frozen=True)
class TriggerResult:
    triggered: bool
    reason: str


@dataclass(frozen=True)
class DeloadTrigger:
    id: str
    name: str
    description: str
    check: Callable[[UserProgressProfile, PeriodizationPlan], TriggerResult]


def _time_since_deload(_: UserProgressProfile, plan: PeriodizationPlan) -> TriggerResult:
    weeks = plan.weeks_since_last_deload
    return TriggerResult(weeks >= settings.DELOAD_AFTER_WEEKS, f"{weeks} weeks since last deload")


def _plateau(profile: UserProgressProfile, plan: PeriodizationPlan) -> TriggerResult:
    weeks = plan.weeks_since_plateau_start or 0
    return TriggerResult(
        profile.progression_rate.overall == ProgressionRate.PLATEAU and weeks >= settings.PLATEAU_DELOAD_WEEKS,
        f"Performance plateau for {weeks} weeks",
    )


def _overtraining(profile: UserProgressProfile, _: PeriodizationPlan) -> TriggerResult:
    declining = profile.progression_rate.overall == ProgressionRate.DECLINING
    exhausted = profile.recovery_status.overall_fatigue == FatigueLevel.EXHAUSTED
    return TriggerResult(
        declining or exhausted,
        "Performance declining" if declining else "Persistent fatigue detected",
    )


def _consistency_drop(profile: UserProgressProfile, _: PeriodizationPlan) -> TriggerResult:
    average = profile.consistency.average_workouts_per_week
    this_week = profile.consistency.workouts_this_week
    return TriggerResult(
        average > 2 and this_week < average * 0.5,
        "Workout frequency dropped significantly",
    )


DELOAD_TRIGGERS: List[DeloadTrigger] = [
    DeloadTrigger("time_since_deload", "Time-Based Deload", "Automatic deload after 6 weeks without one", _time_since_deload),
    DeloadTrigger("plateau_detected", "Plateau Recovery", "Deload after 3 weeks of plateau", _plateau),
    DeloadTrigger("overtraining_signals", "Overtraining Prevention", "Deload when overtraining signs detected", _overtraining),
    DeloadTrigger("consistency_drop", "Motivation Reset", "Deload when workout frequency drops significantly", _consistency_drop),
]


def check_deload_triggers(profile: UserProgressProfile, plan: PeriodizationPlan) -> Optional[str]:
    """Reason of the first trigger that fires, or None."""
    for trigger in DELOAD_TRIGGERS:
        result = trigger.check(profile, plan)
        if result.triggered:
            return result.reason
    return None


def next_deload_date(from_date: datetime, phase: TrainingPhase) -> date:
    weeks = settings.DELOAD_AFTER_WEEKS
    if phase != TrainingPhase.DELOAD:
        remaining = 0
        for cycle_phase in STANDARD_CYCLE[STANDARD_CYCLE.index(phase):]:
            if cycle_phase == TrainingPhase.DELOAD:
                break
            remaining += PHASE_CONFIGS[cycle_phase].duration_weeks
        weeks = min(remaining, weeks)
    return (from_date + timedelta(weeks=weeks)).date()


def next_phase(plan: PeriodizationPlan, profile: UserProgressProfile) -> TrainingPhase:
    current = plan.current_phase
    if current == TrainingPhase.ADAPTATION:
        return TrainingPhase.BUILDING
    if current == TrainingPhase.BUILDING:
        recent_building = sum(1 for h in plan.phase_history[-3:] if h.phase == TrainingPhase.BUILDING)
        return TrainingPhase.PEAK if recent_building >= 2 else TrainingPhase.BUILDING
    if current == TrainingPhase.PEAK:
        return TrainingPhase.DELOAD
    if profile.progression_rate.overall == ProgressionRate.DECLINING:
        return TrainingPhase.ADAPTATION
    return TrainingPhase.BUILDING


# --- Manager -------------------------------------------------------------------

@dataclass(frozen=True)
class PhaseWorkoutParams:
    target_intensity: float
    volume_multiplier: float
    should_progress_exercises: bool
    focus_areas: Tuple[str, ...]


@dataclass(frozen=True)
class CoupleSyncResult:
    plan_a: PeriodizationPlan
    plan_b: PeriodizationPlan
    synchronized: bool


class PeriodizationManager:
    """Creates and advances periodization plans; saves them when given a storage."""

    def __init__(self, storage: Optional[PlanStorage] = None):
        self.storage = storage

    def create_initial_plan(
        self,
        user_id: str,
        fitness_level: FitnessLevel = "beginner",
        couple_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PeriodizationPlan:
        now = now or datetime.now()
        start = TrainingPhase.ADAPTATION if fitness_level == "beginner" else TrainingPhase.BUILDING
        plan = PeriodizationPlan(
            id=f"plan-{uuid.uuid4().hex[:12]}",
            user_id=user_id,
            couple_id=couple_id,
            start_date=now,
            current_phase=start,
            current_phase_start_date=now,
            phase_history=[PhaseHistoryEntry(phase=start, start_date=now, reason="Initial plan")],
            next_planned_deload=next_deload_date(now, start),
        )
        self._save(plan)
        log_utils.log_message(f"[periodization] {user_id}: new plan {plan.id} starting in {start.value}")
        return plan

    def update_plan_weekly(
        self,
        plan: PeriodizationPlan,
        profile: UserProgressProfile,
        now: Optional[datetime] = None,
    ) -> PeriodizationPlan:
        """Advance the plan by one completed week."""
        now = now or datetime.now()
        updated = plan.model_copy(deep=True)
        updated.total_weeks_completed += 1
        updated.current_phase_week += 1
        updated.weeks_since_last_deload += 1

        if profile.progression_rate.overall == ProgressionRate.PLATEAU:
            updated.weeks_since_plateau_start = (updated.weeks_since_plateau_start or 0) + 1
        else:
            updated.weeks_since_plateau_start = None

        reason = check_deload_triggers(profile, updated)
        if reason is not None and updated.current_phase != TrainingPhase.DELOAD:
            updated = self._transition(updated, TrainingPhase.DELOAD, reason, now)
        elif updated.current_phase_week > PHASE_CONFIGS[updated.current_phase].duration_weeks:
            updated = self._transition(updated, next_phase(updated, profile), "Phase duration completed", now)

        self._save(updated)
        return updated

    def force_phase_transition(
        self,
        plan: PeriodizationPlan,
        new_phase: TrainingPhase,
        reason: str,
        now: Optional[datetime] = None,
    ) -> PeriodizationPlan:
        updated = self._transition(plan.model_copy(deep=True), new_phase, reason, now or datetime.now())
        self._save(updated)
        return updated

    @staticmethod
    def get_current_phase_config(plan: PeriodizationPlan) -> PhaseConfig:
        return PHASE_CONFIGS[plan.current_phase]

    @staticmethod
    def get_phase_workout_params(plan: PeriodizationPlan) -> PhaseWorkoutParams:
        """Intensity ramps linearly across the weeks of the current phase."""
        config = PHASE_CONFIGS[plan.current_phase]
        low, high = config.intensity_range
        progress = plan.current_phase_week / config.duration_weeks
        return PhaseWorkoutParams(
            target_intensity=round(low + (high - low) * progress, 2),
            volume_multiplier=config.volume_multiplier,
            should_progress_exercises=config.progression_speed != "none",
            focus_areas=config.focus_areas,
        )

    @staticmethod
    def get_plan_status(plan: PeriodizationPlan, now: Optional[datetime] = None) -> dict:
        now = now or datetime.now()
        config = PHASE_CONFIGS[plan.current_phase]
        weeks_remaining = max(0, config.duration_weeks - plan.current_phase_week + 1)
        days_until_deload = 0
        if plan.next_planned_deload is not None:
            days_until_deload = max(0, (plan.next_planned_deload - now.date()).days)

        avg_intensity = sum(config.intensity_range) / 2
        if avg_intensity >= 0.85:
            intensity = "High"
        elif avg_intensity >= 0.7:
            intensity = "Medium-High"
        elif avg_intensity <= 0.5:
            intensity = "Low"
        else:
            intensity = "Moderate"

        return {
            "current_phase": plan.current_phase.value,
            "phase_description": config.description,
            "week_in_phase": plan.current_phase_week,
            "total_weeks_in_phase": config.duration_weeks,
            "days_until_next_phase": weeks_remaining * 7,
            "days_until_deload": days_until_deload,
            "intensity": intensity,
        }

    def _transition(
        self, plan: PeriodizationPlan, new_phase: TrainingPhase, reason: str, now: datetime
    ) -> PeriodizationPlan:
        """Close the open history entry and start `new_phase`; mutates `plan` (already a copy)."""
        if plan.phase_history:
            plan.phase_history[-1].end_date = now
        plan.phase_history = [
            *plan.phase_history,
            PhaseHistoryEntry(phase=new_phase, start_date=now, reason=reason),
        ][-settings.PHASE_HISTORY_LIMIT:]
        previous = plan.current_phase
        plan.current_phase = new_phase
        plan.current_phase_start_date = now
        plan.current_phase_week = 1
        if new_phase == TrainingPhase.DELOAD:
            plan.weeks_since_last_deload = 0
        plan.next_planned_deload = next_deload_date(now, new_phase)
        plan.adjustments = [
            *plan.adjustments,
            PlanAdjustment(date=now, type="phase_transition", description=f"Transitioned to {new_phase.value}: {reason}"),
        ][-ADJUSTMENT_LIMIT:]
        log_utils.log_message(
            f"[periodization] {plan.user_id}: {previous.value} -> {new_phase.value} ({reason})"
        )
        return plan

    def _save(self, plan: PeriodizationPlan) -> None:
        if self.storage is not None:
            self.storage.save_plan(plan)


def synchronize_couple_phases(
    plan_a: PeriodizationPlan,
    plan_b: PeriodizationPlan,
    couple_profile: CoupleProgressProfile,
    now: Optional[datetime] = None,
) -> CoupleSyncResult:
    """
    Report whether two partners' plans can run in step.

    Plans are never rewritten here: a partner who is one phase ahead and still
    mid-phase simply waits. Partners in deload are left to recover on their own.
    """
    now = now or datetime.now()
    if plan_a.current_phase == plan_b.current_phase:
        return CoupleSyncResult(plan_a, plan_b, True)
    if TrainingPhase.DELOAD in (plan_a.current_phase, plan_b.current_phase):
        return CoupleSyncResult(plan_a, plan_b, False)

    weeks = max(1, (now - couple_profile.created_at).days // 7)
    per_week = couple_profile.total_workouts_together / weeks
    if per_week >= SYNC_MIN_WORKOUTS_PER_WEEK:
        index_a = PHASE_ORDER.index(plan_a.current_phase)
        index_b = PHASE_ORDER.index(plan_b.current_phase)
        if abs(index_a - index_b) <= 1:
            ahead = plan_a if index_a > index_b else plan_b
            if ahead.current_phase_week < PHASE_CONFIGS[ahead.current_phase].duration_weeks:
                return CoupleSyncResult(plan_a, plan_b, True)

    return CoupleSyncResult(plan_a, plan_b, False)
