from pairfit.core.models import PairingStrategy
from pairfit.core.strategy import BAND_STRATEGIES, select_pairing_strategy, strategy_band


def test_bands_are_monotonic_in_absolute_gap():
    assert [strategy_band(g) for g in (0, 14, 15, 34, 35, 59, 60, 100)] == [0, 0, 1, 1, 2, 2, 3, 3]
    assert strategy_band(-40) == strategy_band(40)


def test_default_choices_per_band(couple):
    assert select_pairing_strategy(5, couple) == PairingStrategy.SAME_EXERCISE_DIFFERENT_REPS
    assert select_pairing_strategy(20, couple) == PairingStrategy.ADJACENT_PROGRESSION
    assert select_pairing_strategy(40, couple) == PairingStrategy.DISTANT_PROGRESSION
    assert select_pairing_strategy(-80, couple) == PairingStrategy.SAME_MUSCLE_DIFFERENT_EXERCISE


def test_competitive_and_comfortable_couples(couple):
    couple.competition_preference.mutual_competition_score = 4.0
    couple.partner_exercise_comfort.mutual_comfort = 3.0
    assert select_pairing_strategy(5, couple) == PairingStrategy.COMPETITIVE_SAME
    assert select_pairing_strategy(20, couple) == PairingStrategy.MIRROR_FACING


def test_history_only_swaps_within_band(couple):
    couple.avoid_strategies = [PairingStrategy.SAME_EXERCISE_DIFFERENT_REPS]
    assert select_pairing_strategy(5, couple) == PairingStrategy.COMPETITIVE_SAME

    couple.avoid_strategies = []
    couple.preferred_strategies = [PairingStrategy.MIRROR_FACING, PairingStrategy.IDENTICAL]
    assert select_pairing_strategy(20, couple) == PairingStrategy.MIRROR_FACING
    assert select_pairing_strategy(5, couple) == PairingStrategy.SAME_EXERCISE_DIFFERENT_REPS


def test_every_result_belongs_to_its_band(couple):
    couple.preferred_strategies = list(PairingStrategy)
    for gap in range(-100, 101, 5):
        assert select_pairing_strategy(gap, couple) in BAND_STRATEGIES[strategy_band(gap)]
