"""
Fuses implicit session signals with explicit post-workout feedback.

The output (`ProcessedFeedback`) is advisory: nothing here writes to storage.
Callers feed the pairing adjustments and recommendations into the next
generation and surface the recommendations to the couple.
"""

from statistics import mean
from typing import Dict, List, Optional, Sequence

from pairfit.core.catalog import ExerciseCatalog
from pairfit.core.models import (
    COMPETITIVE_STRATEGIES,
    FORM_QUALITY_SCORES,
    PARTNER_STRATEGIES,
    ChangeType,
    CoupleInsights,
    CoupleProgressProfile,
    ExerciseLog,
    ImplicitSignals,
    IntensityDirection,
    PairingAdjustments,
    PairingStrategy,
    PostWorkoutFeedback,
    PreferenceUpdates,
    ProcessedFeedback,
    Recommendation,
    StrategyEffectiveness,
    UserInsights,
    UserProgressProfile,
    WorkoutLog,
)
from pairfit.core.progression import analyze_exercise_progression
from pairfit.infra import log_utils

NEUTRAL_RATING = 3
PERFORMANCE_SHARE = 0.3
FORM_TREND_MARGIN = 0.3
INTENSITY_STEP = 0.1
PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
INTENSITY_VALUES: Dict[str, int] = {"lower": -1, "same": 0, "higher": 1}

PAIN_PREFIX = "Pain reported during"
SKIP_WARNING = "High exercise skip rate - possible fatigue or exercise mismatch"
UNDERPERFORM_WARNING = "Consistently underperforming prescription - may need intensity reduction"


def extract_implicit_signals(logs: Sequence[ExerciseLog], profile: UserProgressProfile) -> ImplicitSignals:
    """Completion, skips, performance and form trend for one person's session logs."""
    if not logs:
        return ImplicitSignals()

    total = len(logs)
    skipped = sum(
        1
        for log in logs
        if log.skipped
        or log.actual_reps == 0
        or (log.prescribed_reps and log.actual_reps and log.actual_reps < log.prescribed_reps * 0.5)
    )

    exceeded = underperformed = 0
    for log in logs:
        if log.prescribed_reps and log.actual_reps:
            if log.actual_reps > log.prescribed_reps:
                exceeded += 1
            if log.actual_reps < log.prescribed_reps * 0.8:
                underperformed += 1
    performance = "met"
    if exceeded > total * PERFORMANCE_SHARE:
        performance = "exceeded"
    if underperformed > total * PERFORMANCE_SHARE:
        performance = "underperformed"

    session_form = mean(FORM_QUALITY_SCORES[log.form_quality] for log in logs)
    masteries = list(profile.exercise_mastery.values())
    historical_form = mean(m.average_form_quality for m in masteries) if masteries else 2.5
    form_trend = "stable"
    if session_form > historical_form + FORM_TREND_MARGIN:
        form_trend = "improving"
    elif session_form < historical_form - FORM_TREND_MARGIN:
        form_trend = "declining"

    return ImplicitSignals(
        workout_completion_rate=sum(1 for log in logs if log.completed) / total,
        exercise_skip_rate=skipped / total,
        performance_vs_prescription=performance,
        average_rir=mean(log.actual_rir for log in logs),
        form_trend=form_trend,
    )


def infer_intensity(feedback: Optional[PostWorkoutFeedback], signals: ImplicitSignals) -> IntensityDirection:
    """Explicit difficulty wins; without feedback the implicit signals decide."""
    if feedback is not None:
        if feedback.overall_difficulty <= 2:
            return "higher"
        if feedback.overall_difficulty >= 4:
            return "lower"
        return "same"
    if signals.average_rir <= 1 or signals.workout_completion_rate < 0.7:
        return "lower"
    if signals.average_rir >= 4 and signals.workout_completion_rate > 0.95:
        return "higher"
    return "same"


def combine_intensity(a: IntensityDirection, b: IntensityDirection) -> IntensityDirection:
    avg = (INTENSITY_VALUES[a] + INTENSITY_VALUES[b]) / 2
    if avg < -0.3:
        return "lower"
    if avg > 0.3:
        return "higher"
    return "same"


def _dedupe(items: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(items))


def _rating(feedback: Optional[PostWorkoutFeedback], field: str) -> int:
    return getattr(feedback, field) if feedback is not None else NEUTRAL_RATING


class FeedbackProcessor:
    """Turns a completed `WorkoutLog` into per-person and couple insights."""

    def __init__(self, catalog: ExerciseCatalog):
        self.catalog = catalog

    def process_workout_feedback(
        self,
        workout_log: WorkoutLog,
        profile_a: UserProgressProfile,
        profile_b: UserProgressProfile,
        couple_profile: CoupleProgressProfile,
        strategy_used: PairingStrategy,
    ) -> ProcessedFeedback:
        logs_a = workout_log.logs_for(profile_a.user_id)
        logs_b = workout_log.logs_for(profile_b.user_id)
        signals_a = extract_implicit_signals(logs_a, profile_a)
        signals_b = extract_implicit_signals(logs_b, profile_b)

        insights_a = self.process_user_feedback(
            logs_a, workout_log.feedback_for(profile_a.user_id), signals_a, profile_a
        )
        insights_b = self.process_user_feedback(
            logs_b, workout_log.feedback_for(profile_b.user_id), signals_b, profile_b
        )
        couple_insights = self.process_couple_metrics(
            workout_log, couple_profile, strategy_used, signals_a, signals_b
        )
        merged = UserInsights(
            exercise_adjustments=[*insights_a.exercise_adjustments, *insights_b.exercise_adjustments],
            preference_updates=PreferenceUpdates(
                liked_exercises=_dedupe(
                    [*insights_a.preference_updates.liked_exercises, *insights_b.preference_updates.liked_exercises]
                ),
                disliked_exercises=_dedupe(
                    [*insights_a.preference_updates.disliked_exercises, *insights_b.preference_updates.disliked_exercises]
                ),
                preferred_intensity=combine_intensity(
                    insights_a.preference_updates.preferred_intensity,
                    insights_b.preference_updates.preferred_intensity,
                ),
            ),
            fatigue_warnings=[*insights_a.fatigue_warnings, *insights_b.fatigue_warnings],
            form_concerns=[*insights_a.form_concerns, *insights_b.form_concerns],
        )
        recommendations = self.generate_recommendations(merged, couple_insights)

        log_utils.log_message(
            f"[feedback] {workout_log.couple_id}: workout {workout_log.id} processed, "
            f"{len(merged.exercise_adjustments)} adjustments, {len(recommendations)} recommendations"
        )
        return ProcessedFeedback(
            person_a_insights=insights_a,
            person_b_insights=insights_b,
            user_insights=merged,
            couple_insights=couple_insights,
            recommendations=recommendations,
        )

    # --- Per person ------------------------------------------------------------
    def process_user_feedback(
        self,
        logs: Sequence[ExerciseLog],
        feedback: Optional[PostWorkoutFeedback],
        signals: ImplicitSignals,
        profile: UserProgressProfile,
    ) -> UserInsights:
        liked: List[str] = []
        disliked: List[str] = []
        fatigue_warnings: List[str] = []
        form_concerns: List[str] = []

        by_exercise: Dict[str, List[ExerciseLog]] = {}
        for log in logs:
            by_exercise.setdefault(log.exercise_id, []).append(log)

        adjustments = []
        for exercise_id, exercise_logs in by_exercise.items():
            exercise = self.catalog.get(exercise_id)
            if exercise is None:
                log_utils.log_message(f"[feedback] {profile.user_id}: unknown exercise {exercise_id} skipped", "WARN")
                continue

            mastery = profile.exercise_mastery.get(exercise_id)
            if mastery is not None:
                rec = analyze_exercise_progression(mastery, exercise_logs, exercise, self.catalog)
                if rec.change != ChangeType.MAINTAIN:
                    adjustments.append(rec)

            for log in exercise_logs:
                if log.felt_too_easy:
                    liked.append(exercise_id)
                if log.felt_too_hard or log.felt_pain or not log.enjoyed:
                    disliked.append(exercise_id)
                if log.form_quality == "poor":
                    form_concerns.append(f"Form breakdown on {exercise.name} - consider regression or cues")
                if log.felt_pain:
                    where = f" ({log.pain_location})" if log.pain_location else ""
                    fatigue_warnings.append(f"{PAIN_PREFIX} {exercise.name}{where} - requires attention")

        if feedback is not None:
            if feedback.favorite_exercise:
                liked.append(feedback.favorite_exercise)
            if feedback.least_favorite_exercise:
                disliked.append(feedback.least_favorite_exercise)
            for exercise_id, verdict in feedback.exercise_feedback.items():
                if verdict == "too_hard":
                    disliked.append(exercise_id)

        if signals.exercise_skip_rate > 0.2:
            fatigue_warnings.append(SKIP_WARNING)
        if signals.performance_vs_prescription == "underperformed":
            fatigue_warnings.append(UNDERPERFORM_WARNING)

        disliked = _dedupe(disliked)
        return UserInsights(
            exercise_adjustments=adjustments,
            preference_updates=PreferenceUpdates(
                liked_exercises=[e for e in _dedupe(liked) if e not in disliked],
                disliked_exercises=disliked,
                preferred_intensity=infer_intensity(feedback, signals),
            ),
            fatigue_warnings=fatigue_warnings,
            form_concerns=form_concerns,
        )

    # --- Couple ----------------------------------------------------------------
    @staticmethod
    def strategy_effectiveness(
        workout_log: WorkoutLog,
        strategy: PairingStrategy,
        signals_a: ImplicitSignals,
        signals_b: ImplicitSignals,
    ) -> float:
        """Score on 1..5, starting from 3 and moving in half-point steps."""
        score = 3.0

        completion = (signals_a.workout_completion_rate + signals_b.workout_completion_rate) / 2
        if completion > 0.9:
            score += 0.5
        elif completion < 0.7:
            score -= 0.5

        rir_diff = abs(signals_a.average_rir - signals_b.average_rir)
        if rir_diff < 1.5:
            score += 0.5
        elif rir_diff > 3:
            score -= 0.5

        enjoyment = (
            _rating(workout_log.person_a_feedback, "enjoyment_rating")
            + _rating(workout_log.person_b_feedback, "enjoyment_rating")
        ) / 2
        if enjoyment >= 4:
            score += 0.5
        elif enjoyment <= 2:
            score -= 0.5

        if strategy in PARTNER_STRATEGIES or strategy in COMPETITIVE_STRATEGIES:
            connection = (
                _rating(workout_log.person_a_feedback, "partner_connection_rating")
                + _rating(workout_log.person_b_feedback, "partner_connection_rating")
            ) / 2
            if connection >= 4:
                score += 0.5
            elif connection <= 2:
                score -= 0.5

        return max(1.0, min(5.0, score))

    def process_couple_metrics(
        self,
        workout_log: WorkoutLog,
        couple_profile: CoupleProgressProfile,
        strategy_used: PairingStrategy,
        signals_a: ImplicitSignals,
        signals_b: ImplicitSignals,
    ) -> CoupleInsights:
        connection_score = (
            _rating(workout_log.person_a_feedback, "partner_connection_rating")
            + _rating(workout_log.person_b_feedback, "partner_connection_rating")
        ) / 2
        strategy_score = self.strategy_effectiveness(workout_log, strategy_used, signals_a, signals_b)

        history: Dict[PairingStrategy, List[float]] = {}
        for entry in couple_profile.pairing_history:
            if entry.strategy_used != strategy_used:
                history.setdefault(entry.strategy_used, []).append(entry.satisfaction_score)
        effectiveness = [StrategyEffectiveness(strategy=strategy_used, score=strategy_score)]
        effectiveness.extend(StrategyEffectiveness(strategy=s, score=mean(v)) for s, v in history.items())
        effectiveness.sort(key=lambda e: e.score, reverse=True)

        observations: List[str] = []
        rir_diff = abs(signals_a.average_rir - signals_b.average_rir)
        if rir_diff > 2:
            observations.append(f"Large effort disparity (RIR diff: {rir_diff:.1f}) - consider adjusting pairing")
        if signals_a.workout_completion_rate < 0.8 and signals_b.workout_completion_rate > 0.95:
            observations.append("Partner A struggling while B completing easily - gap may be widening")
        elif signals_b.workout_completion_rate < 0.8 and signals_a.workout_completion_rate > 0.95:
            observations.append("Partner B struggling while A completing easily - gap may be widening")
        if couple_profile.gap_trend == "widening":
            observations.append("Fitness gap has been widening - recommend more supportive pairing strategies")

        return CoupleInsights(
            pairing_adjustments=self.pairing_adjustments(
                strategy_used, strategy_score, connection_score, signals_a, signals_b, couple_profile
            ),
            connection_score=connection_score,
            strategy_effectiveness=effectiveness,
            gap_observations=observations,
        )

    @staticmethod
    def pairing_adjustments(
        strategy: PairingStrategy,
        strategy_score: float,
        connection_score: float,
        signals_a: ImplicitSignals,
        signals_b: ImplicitSignals,
        couple_profile: CoupleProgressProfile,
    ) -> PairingAdjustments:
        suggested: List[PairingStrategy] = []
        avoid: List[PairingStrategy] = []

        if strategy_score < 3:
            avoid.append(strategy)
            if abs(signals_a.average_rir - signals_b.average_rir) > 2:
                suggested.extend([PairingStrategy.DISTANT_PROGRESSION, PairingStrategy.ASSISTED_PARTNER])
            if connection_score < 3:
                suggested.extend([PairingStrategy.SAME_EXERCISE_DIFFERENT_REPS, PairingStrategy.ADJACENT_PROGRESSION])
        elif strategy_score >= 4:
            suggested.append(strategy)

        completion = (signals_a.workout_completion_rate + signals_b.workout_completion_rate) / 2
        avg_rir = (signals_a.average_rir + signals_b.average_rir) / 2
        intensity = 0.0
        if completion < 0.8 or avg_rir < 1:
            intensity = -INTENSITY_STEP
        elif completion > 0.95 and avg_rir > 3.5:
            intensity = INTENSITY_STEP

        focus: List[str] = []
        if couple_profile.gap_trend == "widening":
            focus.append("gap_reduction")
        if connection_score < 3:
            focus.append("partner_connection")
        if "declining" in (signals_a.form_trend, signals_b.form_trend):
            focus.append("form_quality")

        return PairingAdjustments(
            suggested_strategies=[s for s in _dedupe(suggested) if s not in avoid],
            avoid_strategies=avoid,
            intensity_adjustment=intensity,
            focus_areas=focus,
        )

    # --- Recommendations -------------------------------------------------------
    @staticmethod
    def generate_recommendations(insights: UserInsights, couple: CoupleInsights) -> List[Recommendation]:
        recs: List[Recommendation] = []

        for warning in insights.fatigue_warnings:
            if warning.startswith(PAIN_PREFIX):
                recs.append(
                    Recommendation(
                        priority="high",
                        type="exercise",
                        message=warning,
                        action="Review exercise selection and consider substitution",
                    )
                )

        for concern in insights.form_concerns:
            recs.append(
                Recommendation(
                    priority="medium",
                    type="exercise",
                    message=concern,
                    action="Consider exercise regression or additional form cues",
                )
            )

        adjustments = couple.pairing_adjustments
        if adjustments.intensity_adjustment:
            direction = "increase" if adjustments.intensity_adjustment > 0 else "decrease"
            recs.append(
                Recommendation(
                    priority="medium",
                    type="intensity",
                    message=f"Consider an intensity {direction} based on performance",
                    action=f"Adjust intensity by {abs(adjustments.intensity_adjustment) * 100:.0f}%",
                )
            )

        if adjustments.avoid_strategies:
            alternative = (
                f'"{adjustments.suggested_strategies[0].value}"' if adjustments.suggested_strategies else "a different"
            )
            recs.append(
                Recommendation(
                    priority="medium",
                    type="pairing",
                    message=f'Pairing strategy "{adjustments.avoid_strategies[0].value}" had low effectiveness',
                    action=f"Try {alternative} strategy next time",
                )
            )

        for observation in couple.gap_observations:
            recs.append(Recommendation(priority="low", type="pairing", message=observation))

        if SKIP_WARNING in insights.fatigue_warnings or UNDERPERFORM_WARNING in insights.fatigue_warnings:
            recs.append(
                Recommendation(
                    priority="low",
                    type="recovery",
                    message="Signs of accumulated fatigue detected",
                    action="Consider a lighter workout or rest day",
                )
            )

        return sorted(recs, key=lambda r: PRIORITY_ORDER[r.priority])
