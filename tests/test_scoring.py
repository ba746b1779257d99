import pytest

from bikecast.domain import ConditionCategory, WeatherCondition
from bikecast.scoring import (
    PERFECT_MESSAGE,
    biking_message,
    calculate_biking_score,
    clamp_score,
    ms_to_kmh,
    round_half_up,
)


def test_perfect_conditions_score_100():
    result = calculate_biking_score(20.0, 10.0, 0.0, "Clear")
    assert result.score == 100
    assert result.message == PERFECT_MESSAGE
    assert result.reasons == []


def test_thunderstorm_penalty_and_message():
    result = calculate_biking_score(20.0, 10.0, 0.0, "Thunderstorm")
    assert result.score == 40
    assert result.message == "Thunderstorm"


def test_condition_match_is_case_insensitive():
    assert calculate_biking_score(20.0, 10.0, 0.0, "THUNDERSTORM").score == 40
    assert calculate_biking_score(20.0, 10.0, 0.0, "drizzle").message == "Drizzling"


def test_accepts_condition_model_and_category():
    cond = WeatherCondition(main="Snow", description="light snow", icon="13d")
    assert calculate_biking_score(20.0, 10.0, 0.0, cond).score == 55
    assert calculate_biking_score(20.0, 10.0, 0.0, ConditionCategory.MIST).message == "Poor visibility"


def test_unknown_condition_falls_back_without_penalty():
    result = calculate_biking_score(20.0, 10.0, 0.0, "Volcanic plume")
    assert result.score == 100
    assert result.message == PERFECT_MESSAGE


def test_first_triggered_message_wins_in_evaluation_order():
    result = calculate_biking_score(0.0, 45.0, 0.0, "Rain")
    assert result.score == 100 - 25 - 30 - 40
    assert result.message == "Too cold"
    assert result.reasons == ["Too cold", "Very windy", "Rainy"]


def test_wind_message_when_temperature_is_fine():
    result = calculate_biking_score(20.0, 35.0, 3.0, "Clouds")
    assert result.score == 100 - 20 - 30
    assert result.message == "Windy"
    assert result.reasons == ["Windy", "Light rain"]


@pytest.mark.parametrize(
    "temp,expected,message",
    [
        (4.9, 75, "Too cold"),
        (5.0, 85, "Bit chilly"),
        (9.9, 85, "Bit chilly"),
        (10.0, 100, PERFECT_MESSAGE),
        (30.0, 100, PERFECT_MESSAGE),
        (30.5, 85, "Quite warm"),
        (35.5, 75, "Too hot"),
    ],
)
def test_temperature_tiers_are_exclusive(temp, expected, message):
    result = calculate_biking_score(temp, 0.0, 0.0, "Clear")
    assert result.score == expected
    assert result.message == message


@pytest.mark.parametrize(
    "precip,expected",
    [(0.0, 100), (0.1, 85), (2.5, 70), (6.0, 55), (10.5, 40)],
)
def test_precipitation_tiers(precip, expected):
    assert calculate_biking_score(20.0, 0.0, precip, "Clear").score == expected


def test_wind_tier_edges():
    assert calculate_biking_score(20.0, 20.0, 0.0, "Clear").score == 100
    assert calculate_biking_score(20.0, 20.5, 0.0, "Clear").score == 90
    assert calculate_biking_score(20.0, 40.5, 0.0, "Clear").score == 70


def test_score_is_clamped_at_zero():
    result = calculate_biking_score(-5.0, 60.0, 15.0, "Hail")
    assert result.score == 0
    assert result.message == "Too cold"


@pytest.mark.parametrize("main", ["Clear", "Rain", "Snow", "Thunderstorm", "Ice", "Fog", "Other"])
@pytest.mark.parametrize("temp", [-20.0, 12.0, 45.0])
def test_score_bounds(main, temp):
    result = calculate_biking_score(temp, 55.0, 20.0, main)
    assert 0 <= result.score <= 100


def test_biking_message_tiers():
    assert biking_message(95) == "Perfect for cycling!"
    assert biking_message(80) == "Perfect for cycling!"
    assert biking_message(60) == "Good conditions"
    assert biking_message(45) == "Moderate conditions"
    assert biking_message(20) == "Poor conditions"
    assert biking_message(5) == "Not recommended"


def test_ms_to_kmh():
    assert ms_to_kmh(10.0) == pytest.approx(36.0)


@pytest.mark.parametrize(
    "value,expected",
    [(20.5, 21), (21.5, 22), (20.49, 20), (-0.5, 0), (-1.5, -1), (-2.6, -3), (0.0, 0)],
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_clamp_score_rounds_halves_up():
    assert clamp_score(84.5) == 85
    assert clamp_score(100.4) == 100
    assert clamp_score(-3.0) == 0
