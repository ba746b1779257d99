"""Deterministic hourly cycling score.

Start at 100 and subtract one penalty per category (temperature, wind,
precipitation, condition). Within a category only the single matching tier
applies. The explanatory message is the first triggered penalty in that
evaluation order, or a positive message when nothing triggered.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

from bikecast.domain import BikingScore, ConditionCategory, WeatherCondition

PERFECT_MESSAGE = "Perfect for biking!"

MS_TO_KMH = 3.6

# (predicate threshold, penalty, message); first match wins within a category
_COLD_TIERS: Sequence[Tuple[float, int, str]] = (
    (5.0, 25, "Too cold"),
    (10.0, 15, "Bit chilly"),
)
_HEAT_TIERS: Sequence[Tuple[float, int, str]] = (
    (35.0, 25, "Too hot"),
    (30.0, 15, "Quite warm"),
)
_WIND_TIERS_KMH: Sequence[Tuple[float, int, str]] = (
    (40.0, 30, "Very windy"),
    (30.0, 20, "Windy"),
    (20.0, 10, "Breezy"),
)
_PRECIP_TIERS_MM: Sequence[Tuple[float, int, str]] = (
    (10.0, 60, "Heavy rain"),
    (5.0, 45, "Moderate rain"),
    (2.0, 30, "Light rain"),
    (0.0, 15, "Slight chance of rain"),
)
CONDITION_PENALTIES: dict[ConditionCategory, Tuple[int, str]] = {
    ConditionCategory.THUNDERSTORM: (60, "Thunderstorm"),
    ConditionCategory.HAIL: (90, "Hail"),
    ConditionCategory.ICE: (90, "Icy conditions"),
    ConditionCategory.SNOW: (45, "Snowing"),
    ConditionCategory.SLEET: (45, "Sleet"),
    ConditionCategory.RAIN: (40, "Rainy"),
    ConditionCategory.DRIZZLE: (25, "Drizzling"),
    ConditionCategory.FOG: (10, "Poor visibility"),
    ConditionCategory.MIST: (10, "Poor visibility"),
    ConditionCategory.HAZE: (10, "Poor visibility"),
    ConditionCategory.CLEAR: (0, ""),
    ConditionCategory.CLOUDS: (0, ""),
    ConditionCategory.OTHER: (0, ""),
}


def ms_to_kmh(speed_ms: float) -> float:
    """Convert a provider wind speed in m/s to km/h."""
    return speed_ms * MS_TO_KMH


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (20.5 -> 21, -0.5 -> 0)."""
    return math.floor(value + 0.5)


def clamp_score(score: float) -> int:
    """Clamp a score to the 0-100 range."""
    return max(0, min(100, round_half_up(score)))


def _temperature_penalty(temperature_c: float) -> Tuple[int, str]:
    for threshold, penalty, message in _COLD_TIERS:
        if temperature_c < threshold:
            return penalty, message
    for threshold, penalty, message in _HEAT_TIERS:
        if temperature_c > threshold:
            return penalty, message
    return 0, ""


def _above_tier(value: float, tiers: Sequence[Tuple[float, int, str]]) -> Tuple[int, str]:
    for threshold, penalty, message in tiers:
        if value > threshold:
            return penalty, message
    return 0, ""


def _condition_penalty(condition: ConditionCategory | WeatherCondition | str | None) -> Tuple[int, str]:
    if isinstance(condition, WeatherCondition):
        category = condition.category
    elif isinstance(condition, ConditionCategory):
        category = condition
    else:
        category = ConditionCategory.from_main(condition)
    return CONDITION_PENALTIES.get(category, (0, ""))


def calculate_biking_score(
    temperature_c: float,
    wind_speed_kmh: float,
    precipitation_mm: float,
    condition: ConditionCategory | WeatherCondition | str | None,
) -> BikingScore:
    """Pure function: score one hour's conditions on a 0-100 scale."""
    score = 100
    reasons: list[str] = []

    penalties = (
        _temperature_penalty(temperature_c),
        _above_tier(wind_speed_kmh, _WIND_TIERS_KMH),
        _above_tier(precipitation_mm, _PRECIP_TIERS_MM),
        _condition_penalty(condition),
    )
    for penalty, message in penalties:
        if penalty:
            score -= penalty
            reasons.append(message)

    return BikingScore(
        score=clamp_score(score),
        message=reasons[0] if reasons else PERFECT_MESSAGE,
        reasons=reasons,
    )


def biking_message(score: float) -> str:
    """Qualitative label for an aggregate (e.g. averaged) score."""
    if score >= 80:
        return "Perfect for cycling!"
    if score >= 60:
        return "Good conditions"
    if score >= 40:
        return "Moderate conditions"
    if score >= 20:
        return "Poor conditions"
    return "Not recommended"
