"""
Couple-level progress: fitness gap history, pairing history, partner comfort,
competitiveness and shared milestones.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from statistics import mean
from typing import Callable, Dict, List, Optional

from pairfit.config import settings
from pairfit.core.errors import WorkoutMembershipError
from pairfit.core.fitness_gap import build_gap_snapshot
from pairfit.core.models import (
    COMPETITIVE_STRATEGIES,
    PARTNER_STRATEGIES,
    ComfortPoint,
    CompetitiveResult,
    CoupleProgressProfile,
    GapTrend,
    PairingHistoryEntry,
    PairingStrategy,
    PartnerExerciseComfort,
    ProgressionRate,
    SharedMilestone,
    UserProgressProfile,
    WorkoutLog,
)
from pairfit.data_access.dal import CoupleProfileStorage
from pairfit.infra import log_utils

COMFORT_HISTORY_LIMIT = 20
COMPETITIVE_RESULTS_LIMIT = 10
TREND_WINDOW = 5
TREND_STEP = 2
NEUTRAL_RATING = 3
RATE_MIN_EXERCISES = 3


@dataclass(frozen=True)
class MilestoneContext:
    profile: CoupleProgressProfile
    workout: WorkoutLog
    person_a: UserProgressProfile
    person_b: UserProgressProfile
    now: datetime


@dataclass(frozen=True)
class MilestoneDefinition:
    id: str
    name: str
    description: str
    category: str  # consistency / connection / improvement / achievement
    check: Callable[[MilestoneContext], bool]


def _workouts_within(ctx: MilestoneContext, days: int) -> int:
    cutoff = ctx.now - timedelta(days=days)
    return sum(1 for h in ctx.profile.pairing_history if h.date >= cutoff)


def _gap_closed(ctx: MilestoneContext) -> bool:
    history = ctx.profile.fitness_gap_history
    if len(history) < 2:
        return False
    return abs(history[-1].overall_gap) < abs(history[0].overall_gap) * 0.9


def _measured_improving(person: UserProgressProfile) -> bool:
    # The rate is only measured once three exercises have history
    return len(person.exercise_mastery) >= RATE_MIN_EXERCISES and person.progression_rate.overall == ProgressionRate.IMPROVING


def _connection_rating_of_five(ctx: MilestoneContext) -> bool:
    ratings = [f.partner_connection_rating for f in (ctx.workout.person_a_feedback, ctx.workout.person_b_feedback) if f]
    return 5 in ratings


MILESTONE_DEFINITIONS: List[MilestoneDefinition] = [
    MilestoneDefinition(
        "first_workout", "First Steps", "Complete your first workout together", "consistency",
        lambda ctx: ctx.profile.total_workouts_together == 1,
    ),
    MilestoneDefinition(
        "week_streak", "Week Warriors", "Work out together for 7 days in a row", "consistency",
        lambda ctx: _workouts_within(ctx, 7) >= 7,
    ),
    MilestoneDefinition(
        "ten_workouts", "Dynamic Duo", "Complete 10 workouts together", "consistency",
        lambda ctx: ctx.profile.total_workouts_together == 10,
    ),
    MilestoneDefinition(
        "twenty_five_workouts", "Power Couple", "Complete 25 workouts together", "consistency",
        lambda ctx: ctx.profile.total_workouts_together == 25,
    ),
    MilestoneDefinition(
        "fifty_workouts", "Fitness Partners", "Complete 50 workouts together", "consistency",
        lambda ctx: ctx.profile.total_workouts_together == 50,
    ),
    MilestoneDefinition(
        "first_partner_exercise", "In Sync", "Complete your first partner exercise", "connection",
        lambda ctx: any(h.strategy_used in PARTNER_STRATEGIES for h in ctx.profile.pairing_history),
    ),
    MilestoneDefinition(
        "high_connection_rating", "Better Together", "Get a 5-star partner connection rating", "connection",
        _connection_rating_of_five,
    ),
    MilestoneDefinition(
        "comfortable_with_contact", "Trust Built", "Reach mutual comfort level for partner exercises", "connection",
        lambda ctx: ctx.profile.partner_exercise_comfort.mutual_comfort >= 4,
    ),
    MilestoneDefinition(
        "gap_closing", "Growing Together", "Reduce your fitness gap by 10%", "improvement",
        _gap_closed,
    ),
    MilestoneDefinition(
        "both_improved", "Rising Tide", "Both partners improve in the same week", "improvement",
        lambda ctx: _measured_improving(ctx.person_a) and _measured_improving(ctx.person_b),
    ),
    MilestoneDefinition(
        "tried_all_strategies", "Adventurous", "Try 5 different pairing strategies", "achievement",
        lambda ctx: len({h.strategy_used for h in ctx.profile.pairing_history}) >= 5,
    ),
    MilestoneDefinition(
        "competitive_victory", "Friendly Competition", "Complete a competitive workout", "achievement",
        lambda ctx: any(h.strategy_used in COMPETITIVE_STRATEGIES for h in ctx.profile.pairing_history),
    ),
]


@dataclass(frozen=True)
class StrategyStats:
    strategy: PairingStrategy
    avg_satisfaction: float
    times_used: int


def gap_trend(profile: CoupleProgressProfile) -> GapTrend:
    history = profile.fitness_gap_history
    if len(history) < 3:
        return "stable"
    gaps = [abs(s.overall_gap) for s in history[-TREND_WINDOW:]]
    increasing = sum(1 for prev, cur in zip(gaps, gaps[1:]) if cur > prev + TREND_STEP)
    decreasing = sum(1 for prev, cur in zip(gaps, gaps[1:]) if cur < prev - TREND_STEP)
    if increasing > decreasing + 1:
        return "widening"
    if decreasing > increasing + 1:
        return "closing"
    return "stable"


def _nudge(value: float, rating: int, step: float) -> float:
    if rating >= 4:
        return min(5.0, value + step)
    if rating <= 2:
        return max(1.0, value - step)
    return value


class CoupleTracker:
    """Maintains a couple's `CoupleProgressProfile` across joint workouts."""

    def __init__(self, storage: CoupleProfileStorage):
        self.storage = storage

    def create_initial_profile(
        self,
        couple_id: str,
        person_a_id: str,
        person_b_id: str,
        initial_contact_comfort: float = 2.0,
        now: Optional[datetime] = None,
    ) -> CoupleProgressProfile:
        return CoupleProgressProfile(
            couple_id=couple_id,
            person_a_id=person_a_id,
            person_b_id=person_b_id,
            created_at=now or datetime.now(),
            partner_exercise_comfort=PartnerExerciseComfort(
                person_a_comfort=initial_contact_comfort,
                person_b_comfort=initial_contact_comfort,
                mutual_comfort=initial_contact_comfort,
            ),
        )

    def get_or_create_profile(
        self, couple_id: str, person_a_id: str, person_b_id: str, initial_contact_comfort: float = 2.0
    ) -> CoupleProgressProfile:
        existing = self.storage.get_couple_profile(couple_id)
        if existing is not None:
            return existing
        profile = self.create_initial_profile(couple_id, person_a_id, person_b_id, initial_contact_comfort)
        self.storage.save_couple_profile(profile)
        log_utils.log_message(f"[couple] Created couple profile {couple_id}")
        return profile

    def update_after_workout(
        self,
        couple_profile: CoupleProgressProfile,
        workout_log: WorkoutLog,
        profile_a: UserProgressProfile,
        profile_b: UserProgressProfile,
        strategy_used: PairingStrategy,
        now: Optional[datetime] = None,
    ) -> CoupleProgressProfile:
        """Return an updated copy of `couple_profile`; both partner profiles must be final."""
        now = now or datetime.now()
        self._check_membership(couple_profile, workout_log, profile_a, profile_b)

        updated = couple_profile.model_copy(deep=True)
        updated.total_workouts_together += 1
        updated.last_workout_together = now

        snapshot = build_gap_snapshot(profile_a, profile_b, now)
        updated.fitness_gap_history = [*updated.fitness_gap_history, snapshot][-settings.GAP_HISTORY_LIMIT:]
        updated.gap_trend = gap_trend(updated)

        self._record_pairing(updated, workout_log, strategy_used, now)
        self._update_comfort(updated, workout_log, now)
        if strategy_used in COMPETITIVE_STRATEGIES:
            self._update_competitiveness(updated, workout_log, now)
        self._refresh_strategy_preferences(updated)
        self._check_milestones(updated, workout_log, profile_a, profile_b, now)

        self.storage.save_couple_profile(updated)
        log_utils.log_message(
            f"[couple] {updated.couple_id}: workout #{updated.total_workouts_together}, "
            f"gap {snapshot.overall_gap} ({updated.gap_trend})"
        )
        return updated

    @staticmethod
    def _check_membership(
        couple: CoupleProgressProfile,
        workout: WorkoutLog,
        profile_a: UserProgressProfile,
        profile_b: UserProgressProfile,
    ) -> None:
        if workout.couple_id != couple.couple_id:
            raise WorkoutMembershipError(f"Workout {workout.id} does not belong to couple {couple.couple_id}")
        if (profile_a.user_id, profile_b.user_id) != (workout.person_a_id, workout.person_b_id):
            raise WorkoutMembershipError(
                f"Profiles {profile_a.user_id}/{profile_b.user_id} do not match workout {workout.id}"
            )

    # --- History ---------------------------------------------------------------
    @staticmethod
    def _record_pairing(
        profile: CoupleProgressProfile, workout: WorkoutLog, strategy: PairingStrategy, now: datetime
    ) -> None:
        ratings = [
            f.enjoyment_rating if f else NEUTRAL_RATING
            for f in (workout.person_a_feedback, workout.person_b_feedback)
        ]
        entry = PairingHistoryEntry(
            date=now,
            workout_id=workout.id,
            strategy_used=strategy,
            satisfaction_score=mean(ratings),
            both_completed=all(l.completed for l in workout.person_a_logs)
            and all(l.completed for l in workout.person_b_logs),
        )
        profile.pairing_history = [*profile.pairing_history, entry][-settings.PAIRING_HISTORY_LIMIT:]

    # --- Comfort and competitiveness -------------------------------------------
    @staticmethod
    def _update_comfort(profile: CoupleProgressProfile, workout: WorkoutLog, now: datetime) -> None:
        comfort = profile.partner_exercise_comfort
        rating_a = workout.person_a_feedback.partner_connection_rating if workout.person_a_feedback else NEUTRAL_RATING
        rating_b = workout.person_b_feedback.partner_connection_rating if workout.person_b_feedback else NEUTRAL_RATING

        comfort.person_a_comfort = round(_nudge(comfort.person_a_comfort, rating_a, settings.COMFORT_STEP), 1)
        comfort.person_b_comfort = round(_nudge(comfort.person_b_comfort, rating_b, settings.COMFORT_STEP), 1)
        comfort.mutual_comfort = min(comfort.person_a_comfort, comfort.person_b_comfort)
        comfort.progression_history = [
            *comfort.progression_history,
            ComfortPoint(date=now, level=comfort.mutual_comfort),
        ][-COMFORT_HISTORY_LIMIT:]

    @staticmethod
    def _update_competitiveness(profile: CoupleProgressProfile, workout: WorkoutLog, now: datetime) -> None:
        comp = profile.competition_preference
        enjoy_a = workout.person_a_feedback.enjoyment_rating if workout.person_a_feedback else NEUTRAL_RATING
        enjoy_b = workout.person_b_feedback.enjoyment_rating if workout.person_b_feedback else NEUTRAL_RATING

        comp.competitive_workout_results = [
            *comp.competitive_workout_results,
            CompetitiveResult(date=now, workout_id=workout.id, person_a_score=enjoy_a, person_b_score=enjoy_b),
        ][-COMPETITIVE_RESULTS_LIMIT:]
        comp.person_a_competitiveness = round(_nudge(comp.person_a_competitiveness, enjoy_a, settings.COMPETITION_STEP), 2)
        comp.person_b_competitiveness = round(_nudge(comp.person_b_competitiveness, enjoy_b, settings.COMPETITION_STEP), 2)
        comp.mutual_competition_score = round((comp.person_a_competitiveness + comp.person_b_competitiveness) / 2, 2)

    def _refresh_strategy_preferences(self, profile: CoupleProgressProfile) -> None:
        preferred: List[PairingStrategy] = []
        avoid: List[PairingStrategy] = []
        for stats in self.get_best_strategies(profile):
            if stats.times_used < 2:
                continue
            if stats.avg_satisfaction >= 4:
                preferred.append(stats.strategy)
            elif stats.avg_satisfaction <= 2:
                avoid.append(stats.strategy)
        profile.preferred_strategies = preferred
        profile.avoid_strategies = avoid

    # --- Milestones ------------------------------------------------------------
    @staticmethod
    def _check_milestones(
        profile: CoupleProgressProfile,
        workout: WorkoutLog,
        person_a: UserProgressProfile,
        person_b: UserProgressProfile,
        now: datetime,
    ) -> None:
        achieved = {m.milestone_id for m in profile.shared_milestones}
        ctx = MilestoneContext(profile, workout, person_a, person_b, now)
        for definition in MILESTONE_DEFINITIONS:
            if definition.id in achieved or not definition.check(ctx):
                continue
            profile.shared_milestones.append(
                SharedMilestone(
                    milestone_id=definition.id,
                    name=definition.name,
                    description=definition.description,
                    category=definition.category,
                    achieved_date=now,
                )
            )
            log_utils.log_message(f"[couple] {profile.couple_id}: milestone '{definition.id}' reached")

    # --- Analysis --------------------------------------------------------------
    @staticmethod
    def get_best_strategies(profile: CoupleProgressProfile) -> List[StrategyStats]:
        scores: Dict[PairingStrategy, List[float]] = {}
        for entry in profile.pairing_history:
            scores.setdefault(entry.strategy_used, []).append(entry.satisfaction_score)
        stats = [StrategyStats(s, round(mean(v), 1), len(v)) for s, v in scores.items()]
        return sorted(stats, key=lambda s: s.avg_satisfaction, reverse=True)

    @staticmethod
    def get_recent_milestones(profile: CoupleProgressProfile, limit: int = 5) -> List[SharedMilestone]:
        return sorted(profile.shared_milestones, key=lambda m: m.achieved_date, reverse=True)[:limit]

    def get_progress_summary(self, profile: CoupleProgressProfile, now: Optional[datetime] = None) -> dict:
        now = now or datetime.now()
        streak = 0
        for entry in sorted(profile.pairing_history, key=lambda h: h.date, reverse=True):
            if (now - entry.date).days <= streak + 3:
                streak += 1
            else:
                break
        best = self.get_best_strategies(profile)
        return {
            "total_workouts": profile.total_workouts_together,
            "current_streak": streak,
            "gap_trend": profile.gap_trend,
            "milestones_achieved": len(profile.shared_milestones),
            "partner_comfort_level": profile.partner_exercise_comfort.mutual_comfort,
            "favorite_pairing_strategy": best[0].strategy.value if best else None,
        }
