from pairfit.core.heart_rate import max_heart_rate, target_zone_for_pair, zone_for_heart_rate, zone_ranges
from pairfit.core.models import PairingStrategy
from pairfit.core.scoring import (
    SCORE_WEIGHTS,
    ability_match,
    calculate_pair_score,
    estimate_target_difficulty,
    hr_zone_match,
    time_sync,
)


def test_target_difficulty_maps_strength_onto_scale(make_profile):
    profile = make_profile(fitness_level="advanced")
    assert estimate_target_difficulty("chest", profile) == 1 + 0.8 * 4
    assert estimate_target_difficulty("full_body", profile) == 3


def test_ability_match_steps(catalog, make_profile):
    beginner = make_profile()  # target difficulty 2.2
    assert ability_match(catalog.require("knee-push-up"), beginner) == 1.0
    assert ability_match(catalog.require("push-up"), beginner) == 0.85
    assert ability_match(catalog.require("decline-push-up"), beginner) == 0.5


def test_pair_factors(catalog):
    plank = catalog.require("plank")
    burpee = catalog.require("burpee")
    assert hr_zone_match(plank, plank) == 1.0
    assert hr_zone_match(plank, burpee) == 0.5
    assert time_sync(plank, catalog.require("wall-sit")) == 30 / 45


def test_total_is_weighted_sum(catalog, make_profile):
    a = make_profile("alex")
    b = make_profile("sam", goals=["build_muscle"])
    push_up = catalog.require("push-up")
    score = calculate_pair_score(push_up, push_up, a, b, PairingStrategy.IDENTICAL, recent_exercise_ids=["push-up"])
    assert score.safety_score == 1.0
    assert score.variety_score == 0.4
    assert score.connection_score == 0.4
    expected = sum(getattr(score, name) * weight for name, weight in SCORE_WEIGHTS.items())
    assert score.total_score == expected


def test_partner_exercises_score_full_connection(catalog, make_profile):
    plank = catalog.require("facing-plank")
    score = calculate_pair_score(
        plank, plank, make_profile("alex"), make_profile("sam"), PairingStrategy.MIRROR_FACING, is_partner_exercise=True
    )
    assert score.connection_score == 1.0


def test_heart_rate_zones():
    assert max_heart_rate(30) == 190
    ranges = zone_ranges(30)
    assert (ranges[0].min_bpm, ranges[-1].max_bpm) == (95, 190)
    assert zone_for_heart_rate(80, 30) is None
    assert zone_for_heart_rate(140, 30) == 3
    assert zone_for_heart_rate(200, 30) == 5


def test_pair_zone_follows_harder_side(catalog):
    assert target_zone_for_pair(catalog.require("plank"), catalog.require("burpee")) == 5
    assert target_zone_for_pair(catalog.require("arm-circles"), catalog.require("arm-circles")) == 2
