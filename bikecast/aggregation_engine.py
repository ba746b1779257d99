"""Deterministic multi-day aggregation of hourly samples into daily forecasts.

Pipeline: bucket samples by local calendar day, drop today when the sun has
already set, restrict each day to its riding window, score every windowed
hour, summarize the day and pick its best hours (ranked by score, returned in
time order). Pure and synchronous: every call builds its own buckets and
returns freshly built models.
"""

from __future__ import annotations

import datetime as dt
from collections import Counter
from statistics import mean
from typing import Iterable, Sequence

from bikecast.domain import (
    BestHour,
    BikingScore,
    ConditionCategory,
    DailyForecast,
    DailyScorePolicy,
    ForecastOptions,
    HourlySample,
    HourlyScore,
    InvalidInputData,
    SummaryPolicy,
    SunTimes,
    WeatherCondition,
    WindowPolicy,
)
from bikecast.scoring import biking_message, calculate_biking_score, ms_to_kmh, round_half_up
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="aggregation_engine")

_DIMMED_CATEGORIES = frozenset(
    {
        ConditionCategory.CLOUDS,
        ConditionCategory.FOG,
        ConditionCategory.MIST,
        ConditionCategory.HAZE,
    }
)


def format_time_label(value: dt.datetime) -> str:
    """12-hour clock label, e.g. '9:00 AM'."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def format_date_label(value: dt.date) -> str:
    """Short day label, e.g. 'Mon, Oct 19'."""
    return f"{value:%a}, {value:%b} {value.day}"


def _is_aware(value: dt.datetime | None) -> bool:
    return value is not None and value.tzinfo is not None and value.utcoffset() is not None


def validate_inputs(
    samples: Sequence[HourlySample] | None,
    sun: SunTimes | None,
    now: dt.datetime | None,
) -> None:
    """Raise InvalidInputData unless samples, sun times and now are usable."""
    if not samples:
        raise InvalidInputData("No hourly samples supplied")
    if sun is None or sun.sunrise is None or sun.sunset is None:
        raise InvalidInputData("Reference sunrise/sunset missing")
    if not (_is_aware(sun.sunrise) and _is_aware(sun.sunset)):
        raise InvalidInputData("Sunrise/sunset must be timezone-aware")
    if sun.sunrise > sun.sunset:
        raise InvalidInputData("Sunrise is after sunset")
    if not _is_aware(now):
        raise InvalidInputData("'now' must be a timezone-aware datetime")
    for idx, sample in enumerate(samples):
        if sample is None:
            raise InvalidInputData(f"Sample {idx} is missing")
        if not _is_aware(sample.time):
            raise InvalidInputData(f"Sample {idx} has a naive timestamp")


def bucket_by_day(samples: Iterable[HourlySample], tz: dt.tzinfo) -> dict[dt.date, list[HourlySample]]:
    """Group samples by local calendar date, keeping input order within each day."""
    buckets: dict[dt.date, list[HourlySample]] = {}
    for sample in samples:
        day = sample.time.astimezone(tz).date()
        buckets.setdefault(day, []).append(sample)
    return buckets


def shifted_sun_times(sun: SunTimes, days_since_today: int) -> SunTimes:
    """
    Approximate a later day's sun times as the reference pair moved by
    `days_since_today` x 24h.

    The shift is done on UTC instants so a DST change in between does not
    turn it into 23h or 25h; results keep the reference timezone.
    """
    offset = dt.timedelta(days=days_since_today)

    def _shift(value: dt.datetime) -> dt.datetime:
        return (value.astimezone(dt.timezone.utc) + offset).astimezone(value.tzinfo)

    return SunTimes(sunrise=_shift(sun.sunrise), sunset=_shift(sun.sunset))


def should_skip_day(day: dt.date, day_sun: SunTimes, now: dt.datetime, tz: dt.tzinfo) -> bool:
    """True when `day` is today and its sunset has already passed."""
    return day == now.astimezone(tz).date() and now > day_sun.sunset


def window_samples(
    samples: Sequence[HourlySample],
    day_sun: SunTimes,
    tz: dt.tzinfo,
    options: ForecastOptions,
) -> list[HourlySample]:
    """Restrict a day's samples to its riding window, preserving order."""
    if options.window_policy == WindowPolicy.FIXED:
        return [
            s for s in samples
            if options.window_start <= s.time.astimezone(tz).time() <= options.window_end
        ]
    return [s for s in samples if day_sun.sunrise <= s.time <= day_sun.sunset]


def _precipitation_percent(sample: HourlySample) -> int:
    """Per-hour rain/snow flag expressed as 0 or 100 percent."""
    return 100 if sample.precipitation_mm > 0 or sample.condition.category.is_precipitating else 0


def score_sample(sample: HourlySample, tz: dt.tzinfo) -> HourlyScore:
    """Score one windowed sample."""
    wind_kmh = ms_to_kmh(sample.wind_speed)
    result = calculate_biking_score(sample.temperature, wind_kmh, sample.precipitation_mm, sample.condition)
    local_time = sample.time.astimezone(tz)
    return HourlyScore(
        time=local_time,
        time_label=format_time_label(local_time),
        score=result.score,
        message=result.message,
        temperature=round_half_up(sample.temperature),
        wind_speed_kmh=round_half_up(wind_kmh),
        precipitation_percent=_precipitation_percent(sample),
        description=sample.condition.description,
    )


def select_best_hours(hourly_scores: Sequence[HourlyScore], k: int = 3) -> list[BestHour]:
    """
    Return the top-k hours by score, in chronological order.

    Ties keep the earlier hour (stable sort over the original index). The
    selection is re-sorted by index so callers always see time order.
    """
    if k <= 0 or not hourly_scores:
        return []
    ranked = sorted(enumerate(hourly_scores), key=lambda pair: (-pair[1].score, pair[0]))
    chosen = sorted(ranked[:k], key=lambda pair: pair[0])
    return [
        BestHour(time=h.time, time_label=h.time_label, score=h.score, temperature=h.temperature)
        for _, h in chosen
    ]


def dominant_condition(samples: Sequence[HourlySample]) -> WeatherCondition:
    """Most frequent condition category; ties go to the category seen first."""
    counts = Counter(s.condition.category for s in samples)
    # Counter preserves insertion order, and max() keeps the first maximal key
    top = max(counts, key=lambda category: counts[category])
    first = next(s for s in samples if s.condition.category == top)
    return first.condition.model_copy()


def estimate_uv_index(sample: HourlySample, tz: dt.tzinfo) -> int:
    """
    Rough UV estimate when the provider gives none.

    Peaks at local noon, zero outside 06:00-18:00, scaled down by temperature,
    cloud cover and precipitating/dim conditions. Clamped to 0-11.
    """
    hour = sample.time.astimezone(tz).hour
    if not 6 <= hour <= 18:
        return 0
    base = 10 * (1 - abs(12 - hour) / 6)
    temp_factor = max(0.0, min(1.0, (sample.temperature + 10) / 40))
    cloud_factor = 1 - sample.cloud_cover / 100
    category = sample.condition.category
    if category.is_precipitating:
        condition_factor = 0.5
    elif category in _DIMMED_CATEGORIES:
        condition_factor = 0.7
    else:
        condition_factor = 1.0
    uvi = base * temp_factor * cloud_factor * condition_factor
    return max(0, min(11, round_half_up(uvi)))


def _uv_for_sample(sample: HourlySample, tz: dt.tzinfo) -> int:
    if sample.uv_index is not None:
        return max(0, min(11, round_half_up(sample.uv_index)))
    return estimate_uv_index(sample, tz)


def daily_biking_score(
    windowed: Sequence[HourlySample],
    hourly_scores: Sequence[HourlyScore],
    policy: DailyScorePolicy,
) -> BikingScore | None:
    """Collapse hourly scores to a day score; None when nothing was scored."""
    if not hourly_scores:
        return None

    if policy == DailyScorePolicy.AVERAGE:
        average = round_half_up(mean(h.score for h in hourly_scores))
        return BikingScore(score=average, message=biking_message(average))

    best_idx = max(range(len(hourly_scores)), key=lambda i: (hourly_scores[i].score, -i))
    best = windowed[best_idx]
    rescored = calculate_biking_score(
        best.temperature, ms_to_kmh(best.wind_speed), best.precipitation_mm, best.condition
    )
    return BikingScore(score=hourly_scores[best_idx].score, message=rescored.message, reasons=rescored.reasons)


def summarize_day(
    day: dt.date,
    bucket: Sequence[HourlySample],
    windowed: Sequence[HourlySample],
    day_sun: SunTimes,
    tz: dt.tzinfo,
    options: ForecastOptions,
) -> DailyForecast:
    """Build the DailyForecast for one day bucket."""
    hourly_scores = [score_sample(s, tz) for s in windowed]
    # an empty window still gets a weather card, but no score
    basis = list(windowed) if windowed else list(bucket)

    if options.summary_policy == SummaryPolicy.MEAN:
        temp_day = mean(s.temperature for s in basis)
        wind_ms = mean(s.wind_speed for s in basis)
    else:
        temp_day = basis[0].temperature
        wind_ms = basis[0].wind_speed

    precip = 100 if any(_precipitation_percent(s) for s in basis) else 0

    return DailyForecast(
        date=day,
        date_label=format_date_label(day),
        temp_day=round_half_up(temp_day),
        temp_min=round_half_up(min(s.temp_min for s in basis)),
        temp_max=round_half_up(max(s.temp_max for s in basis)),
        wind_speed_kmh=round_half_up(ms_to_kmh(wind_ms)),
        uv_index=max(_uv_for_sample(s, tz) for s in basis),
        precipitation_percent=precip,
        dominant_condition=dominant_condition(basis),
        biking_score=daily_biking_score(windowed, hourly_scores, options.daily_score_policy),
        sunrise=format_time_label(day_sun.sunrise.astimezone(tz)),
        sunset=format_time_label(day_sun.sunset.astimezone(tz)),
        hourly_scores=hourly_scores,
        best_hours=select_best_hours(hourly_scores, options.best_hours_count),
    )


def build_daily_forecasts(
    samples: Sequence[HourlySample] | None,
    sun: SunTimes | None,
    *,
    now: dt.datetime,
    tz: dt.tzinfo,
    options: ForecastOptions | None = None,
) -> list[DailyForecast]:
    """
    Pure function: turn hourly samples into at most `day_horizon` daily forecasts.

    Raises InvalidInputData for missing/empty samples, missing sun times or
    naive timestamps. Days whose riding window is empty are kept with empty
    hourly/best-hour lists and `biking_score=None`.
    """
    validate_inputs(samples, sun, now)
    options = options or ForecastOptions()
    today = now.astimezone(tz).date()

    buckets = bucket_by_day(samples, tz)
    forecasts: list[DailyForecast] = []

    for position, (day, bucket) in enumerate(buckets.items()):
        if len(forecasts) >= options.day_horizon:
            break

        days_since_today = (day - today).days
        day_sun = shifted_sun_times(sun, days_since_today)

        if position == 0 and should_skip_day(day, day_sun, now, tz):
            logger.debug("Skipping %s: already past sunset", day.isoformat())
            continue

        windowed = window_samples(bucket, day_sun, tz, options)
        logger.debug(
            "Summarizing %s: %d samples, %d in window",
            day.isoformat(),
            len(bucket),
            len(windowed),
        )
        forecasts.append(summarize_day(day, bucket, windowed, day_sun, tz, options))

    logger.info(
        "Built daily forecasts",
        extra={"days": len(forecasts), "samples": len(samples)},
    )
    return forecasts
