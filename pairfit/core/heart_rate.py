"""Heart-rate zone reference table and per-person zone ranges."""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from pairfit.core.models import ExerciseDefinition


@dataclass(frozen=True)
class HeartRateZone:
    zone: int
    name: str
    percentage_of_max: Tuple[int, int]
    description: str


@dataclass(frozen=True)
class ZoneRange:
    zone: int
    min_bpm: int
    max_bpm: int


HEART_RATE_ZONES: List[HeartRateZone] = [
    HeartRateZone(1, "Recovery / Very Light", (50, 60), "Very easy effort, conversational pace"),
    HeartRateZone(2, "Fat Burn / Light", (60, 70), "Light aerobic zone, sustainable for long periods"),
    HeartRateZone(3, "Aerobic / Moderate", (70, 80), "Moderate intensity, improving cardiovascular fitness"),
    HeartRateZone(4, "Threshold / Hard", (80, 90), "Hard effort at anaerobic threshold"),
    HeartRateZone(5, "Maximum / All-Out", (90, 100), "Maximum effort, only sustainable briefly"),
]

# Zone a working set of each intensity level is expected to reach
INTENSITY_ZONES = {"low": 2, "moderate": 3, "high": 4, "very_high": 5}


def max_heart_rate(age: int) -> int:
    return 220 - age


def zone_ranges(age: int) -> List[ZoneRange]:
    hr_max = max_heart_rate(age)
    return [
        ZoneRange(
            zone=z.zone,
            min_bpm=round(hr_max * z.percentage_of_max[0] / 100),
            max_bpm=round(hr_max * z.percentage_of_max[1] / 100),
        )
        for z in HEART_RATE_ZONES
    ]


def zone_for_heart_rate(bpm: int, age: int) -> Optional[int]:
    """Zone a measured heart rate falls into, or None below zone 1."""
    ranges = zone_ranges(age)
    if bpm < ranges[0].min_bpm:
        return None
    for r in ranges:
        if bpm < r.max_bpm:
            return r.zone
    return ranges[-1].zone


def target_zone_for_pair(exercise_a: ExerciseDefinition, exercise_b: ExerciseDefinition) -> int:
    """Shared target zone for a main-workout pair: the zone of the harder-working side."""
    return max(INTENSITY_ZONES[exercise_a.intensity_level], INTENSITY_ZONES[exercise_b.intensity_level])
