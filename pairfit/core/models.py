"""
Shared data model for the pairing engine.

Every entity is a pydantic model. Engines never mutate what they receive:
they take a snapshot, call `model_copy(deep=True)` and return the new copy,
leaving persistence to the caller (or to an injected storage adapter).
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from pairfit.core.errors import WorkoutMembershipError


# --- Enumerations ------------------------------------------------------------

class PairingStrategy(str, Enum):
    # Same exercise
    IDENTICAL = "identical"
    SAME_EXERCISE_DIFFERENT_REPS = "same_exercise_different_reps"
    # Progression chain
    ADJACENT_PROGRESSION = "adjacent_progression"
    DISTANT_PROGRESSION = "distant_progression"
    # Same target
    SAME_MUSCLE_DIFFERENT_EXERCISE = "same_muscle_different_exercise"
    # Partner-specific
    COOPERATIVE_PARTNER = "cooperative_partner"
    ASSISTED_PARTNER = "assisted_partner"
    MIRROR_FACING = "mirror_facing"
    COMPETITIVE_SAME = "competitive_same"
    COMPETITIVE_ADJUSTED = "competitive_adjusted"
    # Physiological
    HR_ZONE_MATCHED = "hr_zone_matched"


PARTNER_STRATEGIES = (
    PairingStrategy.COOPERATIVE_PARTNER,
    PairingStrategy.ASSISTED_PARTNER,
    PairingStrategy.MIRROR_FACING,
)
COMPETITIVE_STRATEGIES = (
    PairingStrategy.COMPETITIVE_SAME,
    PairingStrategy.COMPETITIVE_ADJUSTED,
)


class InteractionType(str, Enum):
    COOPERATIVE = "cooperative"
    ASSISTED = "assisted"
    MIRROR = "mirror"
    COMPETITIVE = "competitive"
    INDEPENDENT = "independent"


class WorkoutType(str, Enum):
    STRENGTH = "strength"
    HIIT = "hiit"
    CARDIO = "cardio"
    FLEXIBILITY = "flexibility"
    RECOVERY = "recovery"
    MIXED = "mixed"


class TrainingPhase(str, Enum):
    ADAPTATION = "adaptation"
    BUILDING = "building"
    PEAK = "peak"
    DELOAD = "deload"


class FatigueLevel(str, Enum):
    FRESH = "fresh"
    MODERATE = "moderate"
    FATIGUED = "fatigued"
    EXHAUSTED = "exhausted"


class ProgressionRate(str, Enum):
    DECLINING = "declining"
    PLATEAU = "plateau"
    IMPROVING = "improving"


class ChangeType(str, Enum):
    PROGRESS_VARIATION = "progress_variation"
    REGRESS_VARIATION = "regress_variation"
    ADD_REPS = "add_reps"
    REDUCE_REPS = "reduce_reps"
    ADD_WEIGHT = "add_weight"
    REDUCE_WEIGHT = "reduce_weight"
    ADD_SETS = "add_sets"
    REDUCE_SETS = "reduce_sets"
    ADJUST_TEMPO = "adjust_tempo"
    MAINTAIN = "maintain"


FormQuality = Literal["poor", "okay", "good", "perfect"]
FORM_QUALITY_SCORES: Dict[str, int] = {"poor": 1, "okay": 2, "good": 3, "perfect": 4}

IntensityLevel = Literal["low", "moderate", "high", "very_high"]
INTENSITY_RANK: Dict[str, int] = {"low": 1, "moderate": 2, "high": 3, "very_high": 4}

SpaceRequired = Literal["minimal", "small", "medium", "large"]
SPACE_RANK: Dict[str, int] = {"minimal": 1, "small": 2, "medium": 3, "large": 4}

DifficultyLabel = Literal["beginner", "easy", "moderate", "hard", "advanced"]
FitnessLevel = Literal["beginner", "intermediate", "advanced"]
GapTrend = Literal["widening", "stable", "closing"]
IntensityPreference = Literal["light", "moderate", "intense"]
IntensityDirection = Literal["lower", "same", "higher"]

MUSCLE_GROUPS: Tuple[str, ...] = (
    "chest",
    "back",
    "shoulders",
    "biceps",
    "triceps",
    "core",
    "quadriceps",
    "hamstrings",
    "glutes",
    "calves",
    "hip_flexors",
    "forearms",
)


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


# --- Exercise reference data ---------------------------------------------------

class ExerciseDefinition(BaseModel):
    """Immutable catalog entry. Variation links are catalog ids."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    muscle_group: str
    primary_muscles: Tuple[str, ...] = ()
    secondary_muscles: Tuple[str, ...] = ()
    category: str = "strength"
    movement_type: str = "strength"
    difficulty: float = Field(3, ge=1, le=5)
    intensity_level: IntensityLevel = "moderate"
    equipment_required: Tuple[str, ...] = ("none",)
    equipment_alternatives: Tuple[Tuple[str, ...], ...] = ()
    space_required: SpaceRequired = "small"
    contraindicated_injuries: Tuple[str, ...] = ()
    harder_variation_id: Optional[str] = None
    easier_variation_id: Optional[str] = None
    default_reps: Optional[int] = None
    default_duration_seconds: Optional[int] = None
    is_partner_exercise: bool = False
    requires_contact: bool = False
    requires_pushup_ability: bool = False
    requires_plank_ability: bool = False
    requires_squat_ability: bool = False


# --- Individual progress -------------------------------------------------------

class EstimatedAbilities(BaseModel):
    push_up_max: float = 0
    plank_max_seconds: float = 0
    squat_max: float = 0
    pull_up_max: float = 0
    cardio_capacity_minutes: float = 0
    strength: Dict[str, float] = Field(default_factory=dict)
    flexibility: Dict[str, float] = Field(default_factory=dict)
    cardio_endurance: float = 50
    balance: float = 50

    def strength_for(self, muscle: str, default: float = 50) -> float:
        return self.strength.get(muscle, default)


class PersonalBest(BaseModel):
    reps: int
    weight: Optional[float] = None
    date: datetime


class ExerciseMastery(BaseModel):
    exercise_id: str
    times_performed: int = 0
    average_rir: float = 2.0
    average_form_quality: float = 2.5
    last_performed: Optional[datetime] = None
    personal_best: Optional[PersonalBest] = None
    form_ready_for_progression: bool = False
    progression_unlocked_date: Optional[datetime] = None
    consistently_too_easy: bool = False
    consistently_too_hard: bool = False


class ConsistencyMetrics(BaseModel):
    current_streak: int = 0
    longest_streak: int = 0
    workouts_this_week: int = 0
    workouts_this_month: int = 0
    average_workouts_per_week: float = 0.0
    last_workout_date: Optional[datetime] = None


class RecoveryStatus(BaseModel):
    fatigue_by_muscle: Dict[str, float] = Field(default_factory=dict)
    overall_fatigue: FatigueLevel = FatigueLevel.FRESH
    recommended_rest_days: int = 1
    last_recovery_update: datetime = Field(default_factory=datetime.now)


class LearnedPreferences(BaseModel):
    preferred_exercises: List[str] = Field(default_factory=list)
    disliked_exercises: List[str] = Field(default_factory=list)
    preferred_intensity: IntensityPreference = "moderate"
    preferred_workout_duration: int = 30


class ProgressionRateProfile(BaseModel):
    overall: ProgressionRate = ProgressionRate.IMPROVING
    by_muscle_group: Dict[str, ProgressionRate] = Field(default_factory=dict)


class UserProgressProfile(BaseModel):
    user_id: str
    last_updated: datetime = Field(default_factory=datetime.now)
    estimated_abilities: EstimatedAbilities = Field(default_factory=EstimatedAbilities)
    progression_rate: ProgressionRateProfile = Field(default_factory=ProgressionRateProfile)
    exercise_mastery: Dict[str, ExerciseMastery] = Field(default_factory=dict)
    consistency: ConsistencyMetrics = Field(default_factory=ConsistencyMetrics)
    recovery_status: RecoveryStatus = Field(default_factory=RecoveryStatus)
    learned_preferences: LearnedPreferences = Field(default_factory=LearnedPreferences)
    current_injuries: List[str] = Field(default_factory=list)
    past_injuries: List[str] = Field(default_factory=list)
    goals: List[str] = Field(default_factory=list)


# --- Couple progress -----------------------------------------------------------

class FitnessGapSnapshot(BaseModel):
    date: datetime
    overall_gap: int
    gap_by_area: Dict[str, float] = Field(default_factory=dict)


class SharedMilestone(BaseModel):
    milestone_id: str
    name: str
    description: str
    category: str
    achieved_date: datetime


class PairingHistoryEntry(BaseModel):
    date: datetime
    workout_id: str
    strategy_used: PairingStrategy
    satisfaction_score: float
    both_completed: bool


class ComfortPoint(BaseModel):
    date: datetime
    level: float


class PartnerExerciseComfort(BaseModel):
    person_a_comfort: float = 2.0
    person_b_comfort: float = 2.0
    mutual_comfort: float = 2.0
    progression_history: List[ComfortPoint] = Field(default_factory=list)


class CompetitiveResult(BaseModel):
    date: datetime
    workout_id: str
    person_a_score: float
    person_b_score: float


class CompetitionPreference(BaseModel):
    # 1-5 scale, same as the enjoyment ratings they are learned from
    person_a_competitiveness: float = 3.0
    person_b_competitiveness: float = 3.0
    mutual_competition_score: float = 3.0
    competitive_workout_results: List[CompetitiveResult] = Field(default_factory=list)


class CoupleProgressProfile(BaseModel):
    couple_id: str
    person_a_id: str
    person_b_id: str
    created_at: datetime = Field(default_factory=datetime.now)
    last_workout_together: Optional[datetime] = None
    fitness_gap_history: List[FitnessGapSnapshot] = Field(default_factory=list)
    gap_trend: GapTrend = "stable"
    shared_milestones: List[SharedMilestone] = Field(default_factory=list)
    total_workouts_together: int = 0
    pairing_history: List[PairingHistoryEntry] = Field(default_factory=list)
    preferred_strategies: List[PairingStrategy] = Field(default_factory=list)
    avoid_strategies: List[PairingStrategy] = Field(default_factory=list)
    partner_exercise_comfort: PartnerExerciseComfort = Field(default_factory=PartnerExerciseComfort)
    competition_preference: CompetitionPreference = Field(default_factory=CompetitionPreference)

    @property
    def current_gap(self) -> Optional[FitnessGapSnapshot]:
        return self.fitness_gap_history[-1] if self.fitness_gap_history else None


# --- Workout logging -----------------------------------------------------------

class ExerciseLog(BaseModel):
    exercise_id: str

    prescribed_reps: Optional[int] = None
    prescribed_duration: Optional[int] = None
    prescribed_sets: int = 3
    prescribed_rir: int = 2
    prescribed_weight: Optional[float] = None

    actual_reps: Optional[int] = None
    actual_duration: Optional[int] = None
    actual_sets: int = 3
    actual_rir: float = 2
    actual_weight: Optional[float] = None

    form_quality: FormQuality = "good"
    completed: bool = True
    skipped: bool = False
    skip_reason: Optional[str] = None

    felt_too_easy: bool = False
    felt_too_hard: bool = False
    felt_pain: bool = False
    pain_location: Optional[str] = None
    enjoyed: bool = True
    notes: Optional[str] = None

    heart_rate_avg: Optional[int] = None
    heart_rate_max: Optional[int] = None
    timestamp: Optional[datetime] = None

    @property
    def form_score(self) -> int:
        return FORM_QUALITY_SCORES[self.form_quality]


class PostWorkoutFeedback(BaseModel):
    overall_difficulty: int = Field(3, ge=1, le=5)  # 1 = too easy, 5 = too hard
    enjoyment_rating: int = Field(3, ge=1, le=5)
    partner_connection_rating: int = Field(3, ge=1, le=5)
    exercise_feedback: Dict[str, Literal["too_easy", "just_right", "too_hard"]] = Field(default_factory=dict)
    favorite_exercise: Optional[str] = None
    least_favorite_exercise: Optional[str] = None
    would_repeat: bool = True
    energy_level_after: Optional[Literal["depleted", "tired", "good", "energized"]] = None
    soreness_areas: List[str] = Field(default_factory=list)
    comments: Optional[str] = None


class WorkoutLog(BaseModel):
    """A couple's session. Each partner's entries form that person's log."""

    id: str
    couple_id: str
    person_a_id: str
    person_b_id: str
    generated_workout_id: Optional[str] = None
    workout_type: WorkoutType = WorkoutType.MIXED
    strategy_used: Optional[PairingStrategy] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    person_a_logs: List[ExerciseLog] = Field(default_factory=list)
    person_b_logs: List[ExerciseLog] = Field(default_factory=list)
    person_a_feedback: Optional[PostWorkoutFeedback] = None
    person_b_feedback: Optional[PostWorkoutFeedback] = None

    @property
    def is_complete(self) -> bool:
        return self.end_time is not None

    def side_of(self, person_id: str) -> str:
        if person_id == self.person_a_id:
            return "a"
        if person_id == self.person_b_id:
            return "b"
        raise WorkoutMembershipError(f"Person {person_id} not part of workout {self.id}")

    def logs_for(self, person_id: str) -> List[ExerciseLog]:
        return self.person_a_logs if self.side_of(person_id) == "a" else self.person_b_logs

    def feedback_for(self, person_id: str) -> Optional[PostWorkoutFeedback]:
        return self.person_a_feedback if self.side_of(person_id) == "a" else self.person_b_feedback


# --- Pairing output ------------------------------------------------------------

class Prescription(BaseModel):
    sets: int = 3
    reps: Optional[int] = None
    duration: Optional[int] = None
    target_rir: int = 2
    weight: Optional[float] = None
    tempo: str = "2-1-2"  # down-pause-up


class PairingScore(BaseModel):
    safety_score: float = 1.0
    ability_match_score: float
    hr_zone_match_score: float
    rir_match_score: float
    time_sync_score: float
    goal_alignment_score: float
    enjoyment_score: float
    variety_score: float
    connection_score: float
    total_score: float


class ExercisePair(BaseModel):
    id: str
    exercise_a: ExerciseDefinition
    exercise_b: ExerciseDefinition
    pairing_strategy: PairingStrategy
    prescription_a: Prescription
    prescription_b: Prescription
    target_hr_zone: int = 3
    target_rir: int = 2
    target_duration_seconds: int = 30
    is_partner_exercise: bool = False
    interaction_type: InteractionType = InteractionType.INDEPENDENT
    score: PairingScore
    is_fallback: bool = False


class SessionContext(BaseModel):
    """`duration` and `intensity_preference` are informational; the assembler does not read them."""

    duration: int = 30  # minutes
    equipment: List[str] = Field(default_factory=list)
    space: SpaceRequired = "medium"
    workout_type: WorkoutType = WorkoutType.STRENGTH
    focus: Optional[List[str]] = None  # None = full body
    intensity_preference: Optional[IntensityLevel] = None


class PairingInput(BaseModel):
    person_a: UserProgressProfile
    person_b: UserProgressProfile
    couple_profile: CoupleProgressProfile
    session_context: SessionContext = Field(default_factory=SessionContext)
    recent_exercise_ids: List[str] = Field(default_factory=list)


class GeneratedWorkout(BaseModel):
    id: str
    created_at: datetime
    couple_id: str
    warmup: List[ExercisePair] = Field(default_factory=list)
    main_workout: List[ExercisePair] = Field(default_factory=list)
    cooldown: List[ExercisePair] = Field(default_factory=list)
    estimated_duration: int = 0
    workout_type: WorkoutType = WorkoutType.STRENGTH
    focus_areas: List[str] = Field(default_factory=list)
    difficulty: DifficultyLabel = "moderate"
    total_exercises: int = 0
    partner_exercise_count: int = 0
    competitive_element_count: int = 0
    fitness_gap: int = 0
    warnings: List[str] = Field(default_factory=list)

    @property
    def all_pairs(self) -> List[ExercisePair]:
        return [*self.warmup, *self.main_workout, *self.cooldown]


# --- Progression ---------------------------------------------------------------

class ExerciseProgressionRecommendation(BaseModel):
    exercise_id: str
    change: ChangeType
    new_exercise_id: Optional[str] = None
    new_reps: Optional[int] = None
    new_weight: Optional[float] = None
    new_sets: Optional[int] = None
    reason: str
    confidence: float = Field(ge=0, le=1)


# --- Periodization -------------------------------------------------------------

class PhaseConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: TrainingPhase
    duration_weeks: int
    intensity_range: Tuple[float, float]
    volume_multiplier: float
    progression_speed: Literal["none", "slow", "normal", "fast"]
    focus_areas: Tuple[str, ...] = ()
    description: str = ""


class PhaseHistoryEntry(BaseModel):
    phase: TrainingPhase
    start_date: datetime
    end_date: Optional[datetime] = None
    reason: str


class PlanAdjustment(BaseModel):
    date: datetime
    type: str
    description: str


class PeriodizationPlan(BaseModel):
    id: str
    user_id: str
    couple_id: Optional[str] = None
    start_date: datetime
    current_phase: TrainingPhase
    current_phase_start_date: datetime
    current_phase_week: int = 1
    total_weeks_completed: int = 0
    weeks_since_last_deload: int = 0
    weeks_since_plateau_start: Optional[int] = None
    next_planned_deload: Optional[date] = None
    phase_history: List[PhaseHistoryEntry] = Field(default_factory=list)
    adjustments: List[PlanAdjustment] = Field(default_factory=list)


# --- Feedback ------------------------------------------------------------------

class ImplicitSignals(BaseModel):
    workout_completion_rate: float = 0.0
    exercise_skip_rate: float = 0.0
    performance_vs_prescription: Literal["exceeded", "met", "underperformed"] = "met"
    average_rir: float = 2.0
    form_trend: Literal["improving", "stable", "declining"] = "stable"


class PreferenceUpdates(BaseModel):
    liked_exercises: List[str] = Field(default_factory=list)
    disliked_exercises: List[str] = Field(default_factory=list)
    preferred_intensity: IntensityDirection = "same"


class UserInsights(BaseModel):
    exercise_adjustments: List[ExerciseProgressionRecommendation] = Field(default_factory=list)
    preference_updates: PreferenceUpdates = Field(default_factory=PreferenceUpdates)
    fatigue_warnings: List[str] = Field(default_factory=list)
    form_concerns: List[str] = Field(default_factory=list)


class PairingAdjustments(BaseModel):
    suggested_strategies: List[PairingStrategy] = Field(default_factory=list)
    avoid_strategies: List[PairingStrategy] = Field(default_factory=list)
    intensity_adjustment: float = Field(0.0, ge=-0.1, le=0.1)
    focus_areas: List[str] = Field(default_factory=list)


class StrategyEffectiveness(BaseModel):
    strategy: PairingStrategy
    score: float


class CoupleInsights(BaseModel):
    pairing_adjustments: PairingAdjustments = Field(default_factory=PairingAdjustments)
    connection_score: float = 3.0
    strategy_effectiveness: List[StrategyEffectiveness] = Field(default_factory=list)
    gap_observations: List[str] = Field(default_factory=list)


class Recommendation(BaseModel):
    priority: Literal["high", "medium", "low"]
    type: Literal["exercise", "intensity", "recovery", "pairing"]
    message: str
    action: Optional[str] = None


class ProcessedFeedback(BaseModel):
    person_a_insights: UserInsights
    person_b_insights: UserInsights
    user_insights: UserInsights
    couple_insights: CoupleInsights
    recommendations: List[Recommendation] = Field(default_factory=list)
