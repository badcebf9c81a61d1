"""Per-exercise progression and regression decisions from recent exercise logs."""

from dataclasses import dataclass, field
from statistics import mean
from typing import Dict, Iterable, List, Optional, Sequence

from pairfit.config import settings
from pairfit.core.catalog import ExerciseCatalog
from pairfit.core.models import (
    ChangeType,
    ExerciseDefinition,
    ExerciseLog,
    ExerciseMastery,
    ExerciseProgressionRecommendation,
    UserProgressProfile,
)
from pairfit.infra import log_utils

LOADABLE_EQUIPMENT = ("dumbbell", "kettlebell", "band")
FALLBACK_REPS = 10
MIN_REPS = 5


@dataclass(frozen=True)
class ProgressionCriteria:
    min_times_performed: int = field(default_factory=lambda: settings.PROGRESSION_MIN_TIMES_PERFORMED)
    min_form_quality: float = field(default_factory=lambda: settings.PROGRESSION_MIN_FORM_QUALITY)
    rir_too_easy: float = field(default_factory=lambda: settings.PROGRESSION_RIR_TOO_EASY)
    consecutive_successes: int = field(default_factory=lambda: settings.PROGRESSION_CONSECUTIVE_SUCCESSES)
    pain_free_sessions: int = field(default_factory=lambda: settings.PROGRESSION_PAIN_FREE_SESSIONS)
    min_completion_rate: float = field(default_factory=lambda: settings.PROGRESSION_MIN_COMPLETION_RATE)
    too_easy_reports: int = 2


@dataclass(frozen=True)
class RegressionCriteria:
    failures_to_complete: int = field(default_factory=lambda: settings.REGRESSION_FAILURES)
    too_hard_reports: int = field(default_factory=lambda: settings.REGRESSION_TOO_HARD_REPORTS)
    poor_form_sessions: int = field(default_factory=lambda: settings.REGRESSION_POOR_FORM_SESSIONS)
    pain_triggers_regression: bool = True
    rir_too_hard: float = field(default_factory=lambda: settings.REGRESSION_RIR_TOO_HARD)
    min_logs_for_rir: int = 3


@dataclass(frozen=True)
class _Signal:
    reason: str
    confidence: float


def _average_rir(logs: Sequence[ExerciseLog]) -> float:
    return mean(log.actual_rir for log in logs) if logs else 2.0


def _average_form(logs: Sequence[ExerciseLog]) -> float:
    return mean(log.form_score for log in logs) if logs else 2.0


def _trailing_easy_sessions(logs: Sequence[ExerciseLog], threshold: float) -> int:
    count = 0
    for log in reversed(logs):
        if log.actual_rir > threshold and log.completed:
            count += 1
        else:
            break
    return count


def _regression_signal(logs: Sequence[ExerciseLog], criteria: RegressionCriteria) -> Optional[_Signal]:
    if criteria.pain_triggers_regression and any(log.felt_pain for log in logs):
        return _Signal("Pain was reported during exercise", 1.0)

    failures = sum(1 for log in logs if not log.completed)
    if failures >= criteria.failures_to_complete:
        return _Signal(f"Failed to complete prescribed reps {failures} times", 0.9)

    too_hard = sum(1 for log in logs if log.felt_too_hard)
    if too_hard >= criteria.too_hard_reports:
        return _Signal(f'Marked as "too hard" {too_hard} times', 0.85)

    poor_form = sum(1 for log in logs if log.form_quality == "poor")
    if poor_form >= criteria.poor_form_sessions:
        return _Signal(f"Form breakdown in {poor_form} sessions", 0.8)

    avg_rir = _average_rir(logs)
    if avg_rir <= criteria.rir_too_hard and len(logs) >= criteria.min_logs_for_rir:
        return _Signal(f"Consistently reaching failure (avg RIR: {avg_rir:.1f})", 0.75)

    return None


def _progression_signal(
    mastery: ExerciseMastery, logs: Sequence[ExerciseLog], criteria: ProgressionCriteria
) -> Optional[_Signal]:
    if mastery.times_performed < criteria.min_times_performed:
        return None
    if len(logs) < criteria.consecutive_successes:
        return None
    if _average_form(logs) < criteria.min_form_quality:
        return None
    if sum(1 for log in logs if log.completed) / len(logs) < criteria.min_completion_rate:
        return None
    if any(log.felt_pain for log in logs[-criteria.pain_free_sessions:]):
        return None

    avg_rir = _average_rir(logs)
    if avg_rir > criteria.rir_too_easy:
        streak = _trailing_easy_sessions(logs, criteria.rir_too_easy)
        if streak >= criteria.consecutive_successes:
            return _Signal(
                f"Consistently completing with {avg_rir:.1f} RIR (too easy)",
                min(0.95, 0.7 + streak * 0.1),
            )

    too_easy = sum(1 for log in logs if log.felt_too_easy)
    if too_easy >= criteria.too_easy_reports:
        return _Signal(f'User marked as "too easy" {too_easy} times', 0.85)

    return None


def _variation_exists(variation_id: Optional[str], catalog: Optional[ExerciseCatalog]) -> bool:
    if variation_id is None:
        return False
    return catalog is None or variation_id in catalog


def _regression_recommendation(
    exercise: ExerciseDefinition, signal: _Signal, catalog: Optional[ExerciseCatalog]
) -> ExerciseProgressionRecommendation:
    if _variation_exists(exercise.easier_variation_id, catalog):
        return ExerciseProgressionRecommendation(
            exercise_id=exercise.id,
            change=ChangeType.REGRESS_VARIATION,
            new_exercise_id=exercise.easier_variation_id,
            reason=signal.reason,
            confidence=signal.confidence,
        )
    return ExerciseProgressionRecommendation(
        exercise_id=exercise.id,
        change=ChangeType.REDUCE_REPS,
        new_reps=max(MIN_REPS, (exercise.default_reps or FALLBACK_REPS) - 3),
        reason=f"{signal.reason}. No easier variation available, reducing reps.",
        confidence=signal.confidence,
    )


def _progression_recommendation(
    exercise: ExerciseDefinition,
    mastery: ExerciseMastery,
    signal: _Signal,
    catalog: Optional[ExerciseCatalog],
) -> ExerciseProgressionRecommendation:
    base_reps = exercise.default_reps or FALLBACK_REPS

    if mastery.form_ready_for_progression and _variation_exists(exercise.harder_variation_id, catalog):
        return ExerciseProgressionRecommendation(
            exercise_id=exercise.id,
            change=ChangeType.PROGRESS_VARIATION,
            new_exercise_id=exercise.harder_variation_id,
            reason=signal.reason,
            confidence=signal.confidence,
        )

    if not mastery.form_ready_for_progression:
        return ExerciseProgressionRecommendation(
            exercise_id=exercise.id,
            change=ChangeType.ADD_REPS,
            new_reps=base_reps + 2,
            reason=f"{signal.reason}. Form not yet ready for harder variation, adding reps.",
            confidence=signal.confidence * 0.9,
        )

    if any(item in LOADABLE_EQUIPMENT for item in exercise.equipment_required):
        return ExerciseProgressionRecommendation(
            exercise_id=exercise.id,
            change=ChangeType.ADD_WEIGHT,
            reason=f"{signal.reason}. At hardest variation, increasing weight.",
            confidence=signal.confidence,
        )

    return ExerciseProgressionRecommendation(
        exercise_id=exercise.id,
        change=ChangeType.ADD_REPS,
        new_reps=base_reps + 3,
        reason=f"{signal.reason}. Adding reps for progressive overload.",
        confidence=signal.confidence,
    )


def analyze_exercise_progression(
    mastery: ExerciseMastery,
    recent_logs: Sequence[ExerciseLog],
    exercise: ExerciseDefinition,
    catalog: Optional[ExerciseCatalog] = None,
    progression_criteria: Optional[ProgressionCriteria] = None,
    regression_criteria: Optional[RegressionCriteria] = None,
) -> ExerciseProgressionRecommendation:
    """
    Decide whether to regress, progress or maintain one exercise for one person.

    Only the most recent `settings.ANALYSIS_WINDOW` logs are considered.
    Regression signals are checked first, so any reported pain always wins.
    """
    progression_criteria = progression_criteria or ProgressionCriteria()
    regression_criteria = regression_criteria or RegressionCriteria()
    window = list(recent_logs)[-settings.ANALYSIS_WINDOW:]

    signal = _regression_signal(window, regression_criteria)
    if signal is not None:
        return _regression_recommendation(exercise, signal, catalog)

    signal = _progression_signal(mastery, window, progression_criteria)
    if signal is not None:
        return _progression_recommendation(exercise, mastery, signal, catalog)

    return ExerciseProgressionRecommendation(
        exercise_id=exercise.id,
        change=ChangeType.MAINTAIN,
        reason="Performance is appropriate for current level",
        confidence=0.8,
    )


def analyze_all_progressions(
    profile: UserProgressProfile,
    recent_workout_logs: Iterable[Sequence[ExerciseLog]],
    catalog: ExerciseCatalog,
) -> List[ExerciseProgressionRecommendation]:
    """Non-maintain recommendations for every mastered exercise that has recent logs."""
    by_exercise: Dict[str, List[ExerciseLog]] = {}
    for workout_logs in recent_workout_logs:
        for log in workout_logs:
            by_exercise.setdefault(log.exercise_id, []).append(log)

    recommendations: List[ExerciseProgressionRecommendation] = []
    for exercise_id, mastery in profile.exercise_mastery.items():
        exercise = catalog.get(exercise_id)
        if exercise is None:
            log_utils.log_message(f"[progression] {profile.user_id}: unknown exercise {exercise_id} skipped", "WARN")
            continue
        logs = by_exercise.get(exercise_id)
        if not logs:
            continue
        rec = analyze_exercise_progression(mastery, logs, exercise, catalog)
        if rec.change != ChangeType.MAINTAIN:
            recommendations.append(rec)
    return recommendations
