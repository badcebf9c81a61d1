"""Chooses how two exercises are assigned to two partners for one workout slot."""

from typing import Optional, Tuple

from pairfit.core.models import CoupleProgressProfile, PairingStrategy

# |gap| upper bounds of bands 0..2; anything above is band 3
BAND_THRESHOLDS: Tuple[int, ...] = (15, 35, 60)

# Each band's two admissible strategies. Couple preferences only choose between these.
BAND_STRATEGIES = {
    0: (PairingStrategy.SAME_EXERCISE_DIFFERENT_REPS, PairingStrategy.COMPETITIVE_SAME),
    1: (PairingStrategy.ADJACENT_PROGRESSION, PairingStrategy.MIRROR_FACING),
    2: (PairingStrategy.DISTANT_PROGRESSION, PairingStrategy.SAME_MUSCLE_DIFFERENT_EXERCISE),
    3: (PairingStrategy.SAME_MUSCLE_DIFFERENT_EXERCISE, PairingStrategy.DISTANT_PROGRESSION),
}

COMPETITION_THRESHOLD = 3.5
CONTACT_COMFORT_THRESHOLD = 3.0


def strategy_band(gap: float) -> int:
    """Ordinal band for a fitness gap; non-decreasing in |gap|."""
    abs_gap = abs(gap)
    for band, upper in enumerate(BAND_THRESHOLDS):
        if abs_gap < upper:
            return band
    return len(BAND_THRESHOLDS)


def _band_choice(band: int, couple_profile: CoupleProgressProfile) -> PairingStrategy:
    if band == 0:
        if couple_profile.competition_preference.mutual_competition_score > COMPETITION_THRESHOLD:
            return PairingStrategy.COMPETITIVE_SAME
        return PairingStrategy.SAME_EXERCISE_DIFFERENT_REPS
    if band == 1:
        if couple_profile.partner_exercise_comfort.mutual_comfort >= CONTACT_COMFORT_THRESHOLD:
            return PairingStrategy.MIRROR_FACING
        return PairingStrategy.ADJACENT_PROGRESSION
    if band == 2:
        return PairingStrategy.DISTANT_PROGRESSION
    return PairingStrategy.SAME_MUSCLE_DIFFERENT_EXERCISE


def select_pairing_strategy(
    gap: float,
    couple_profile: CoupleProgressProfile,
    muscle_group: Optional[str] = None,
) -> PairingStrategy:
    """
    Pick a strategy from the gap band, then let the couple's history swap it
    for the band's other strategy: when the band choice is avoided, or when
    only the alternative is preferred. The band itself never changes.
    """
    band = strategy_band(gap)
    choice = _band_choice(band, couple_profile)
    first, second = BAND_STRATEGIES[band]
    alternative = second if choice == first else first

    avoid = couple_profile.avoid_strategies
    preferred = couple_profile.preferred_strategies
    if alternative in avoid:
        return choice
    if choice in avoid:
        return alternative
    if alternative in preferred and choice not in preferred:
        return alternative
    return choice
