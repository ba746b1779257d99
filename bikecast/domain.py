"""Domain vocabulary and strict schemas for the cycling forecast.

This module defines the contract between the weather data sources, the
aggregation engine and the HTTP layer: condition categories, policy enums,
input samples and the structured daily output. No scoring logic lives here.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, model_validator


class InvalidInputData(ValueError):
    """Raised when the engine is handed samples or sun times it cannot use."""


class InvalidTimezone(ValueError):
    """Raised for a caller-supplied timezone name that cannot be loaded."""


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling."""

    model_config = ConfigDict(extra="forbid")


class ConditionCategory(str, Enum):
    """Closed set of weather categories the scoring penalties are keyed on."""
    CLEAR = "clear"
    CLOUDS = "clouds"
    DRIZZLE = "drizzle"
    RAIN = "rain"
    SNOW = "snow"
    SLEET = "sleet"
    THUNDERSTORM = "thunderstorm"
    HAIL = "hail"
    ICE = "ice"
    FOG = "fog"
    MIST = "mist"
    HAZE = "haze"
    OTHER = "other"

    @classmethod
    def from_main(cls, main: str | None) -> "ConditionCategory":
        """Map a provider `main` string (any case) to a category; unknown -> OTHER."""
        if not main:
            return cls.OTHER
        key = main.strip().lower()
        try:
            return cls(key)
        except ValueError:
            return _CONDITION_ALIASES.get(key, cls.OTHER)

    @property
    def is_precipitating(self) -> bool:
        return self in _PRECIPITATING


# Provider spellings that are not literal category values.
_CONDITION_ALIASES = {
    "storm": ConditionCategory.THUNDERSTORM,
    "squall": ConditionCategory.THUNDERSTORM,
    "tornado": ConditionCategory.THUNDERSTORM,
    "showers": ConditionCategory.RAIN,
    "freezing rain": ConditionCategory.ICE,
    "smoke": ConditionCategory.HAZE,
    "dust": ConditionCategory.HAZE,
    "sand": ConditionCategory.HAZE,
    "ash": ConditionCategory.HAZE,
    "cloudy": ConditionCategory.CLOUDS,
    "overcast": ConditionCategory.CLOUDS,
}

_PRECIPITATING = frozenset(
    {
        ConditionCategory.DRIZZLE,
        ConditionCategory.RAIN,
        ConditionCategory.SNOW,
        ConditionCategory.SLEET,
        ConditionCategory.THUNDERSTORM,
        ConditionCategory.HAIL,
    }
)


class WindowPolicy(str, Enum):
    """Which hours of a day are considered rideable."""
    DAYLIGHT = "daylight"
    FIXED = "fixed"


class SummaryPolicy(str, Enum):
    """How a day's headline temperature and wind are derived."""
    FIRST_SAMPLE = "first_sample"
    MEAN = "mean"


class DailyScorePolicy(str, Enum):
    """How a day's biking score is derived from its hourly scores."""
    BEST_HOUR = "best_hour"
    AVERAGE = "average"


class WeatherCondition(_StrictBaseModel):
    """Provider condition triple plus the derived category."""
    main: str
    description: str = ""
    icon: str = ""

    @property
    def category(self) -> ConditionCategory:
        return ConditionCategory.from_main(self.main)


class HourlySample(_StrictBaseModel):
    """One hourly (or 3-hourly) weather point. Temperatures in °C, wind in m/s."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    time: dt.datetime
    temperature: float
    temp_min: float | None = None
    temp_max: float | None = None
    wind_speed: float = 0.0
    precipitation_mm: float = Field(default=0.0, ge=0.0)
    precipitation_probability: float | None = Field(default=None, ge=0.0, le=100.0)
    cloud_cover: float = Field(default=0.0, ge=0.0, le=100.0)
    uv_index: float | None = None
    condition: WeatherCondition

    @model_validator(mode="before")
    @classmethod
    def _default_min_max(cls, data: Any) -> Any:
        """Sources without separate min/max fall back to the point temperature."""
        if isinstance(data, dict):
            data = dict(data)
            for key in ("temp_min", "temp_max"):
                if data.get(key) is None:
                    data[key] = data.get("temperature")
        return data


class SunTimes(_StrictBaseModel):
    """Observed sunrise/sunset for the reference (current) day."""
    sunrise: dt.datetime
    sunset: dt.datetime


class CurrentWeather(_StrictBaseModel):
    """Current-conditions lookup: where we are and when the sun is up."""
    location_name: str | None = None
    timezone: str | None = None
    utc_offset_seconds: int | None = None
    sun: SunTimes | None = None
    sample: HourlySample | None = None


class BikingScore(_StrictBaseModel):
    """0-100 suitability rating with its explanation."""
    score: int = Field(ge=0, le=100)
    message: str
    reasons: List[str] = Field(default_factory=list)


class HourlyScore(_StrictBaseModel):
    """Score for one windowed sample."""
    time: dt.datetime
    time_label: str
    score: int = Field(ge=0, le=100)
    message: str
    temperature: int
    wind_speed_kmh: int
    precipitation_percent: int
    description: str


class BestHour(_StrictBaseModel):
    """One of a day's top-k hours, presented in time order."""
    time: dt.datetime
    time_label: str
    score: int = Field(ge=0, le=100)
    temperature: int


class DailyForecast(_StrictBaseModel):
    """Per-day summary handed to the presentation layer.

    `biking_score` is None when no sample fell inside the day's riding window.
    """
    date: dt.date
    date_label: str
    temp_day: int
    temp_min: int
    temp_max: int
    wind_speed_kmh: int
    uv_index: int = Field(ge=0, le=11)
    precipitation_percent: int
    dominant_condition: WeatherCondition
    biking_score: BikingScore | None = None
    sunrise: str
    sunset: str
    hourly_scores: List[HourlyScore] = Field(default_factory=list)
    best_hours: List[BestHour] = Field(default_factory=list)


class ForecastReport(_StrictBaseModel):
    """Full output: location label, generation time and the daily list."""
    location: str
    generated_at: dt.datetime
    generated_at_label: str
    forecasts: List[DailyForecast] = Field(default_factory=list)


class ForecastOptions(_StrictBaseModel):
    """Knobs for one engine run; held fixed for every day of that run."""
    day_horizon: int = Field(default=3, ge=1)
    best_hours_count: int = Field(default=3, ge=1)
    window_policy: WindowPolicy = WindowPolicy.DAYLIGHT
    window_start: dt.time = dt.time(8, 0)
    window_end: dt.time = dt.time(18, 0)
    summary_policy: SummaryPolicy = SummaryPolicy.FIRST_SAMPLE
    daily_score_policy: DailyScorePolicy = DailyScorePolicy.BEST_HOUR

    @model_validator(mode="after")
    def _check_window(self) -> "ForecastOptions":
        if self.window_start > self.window_end:
            raise ValueError("window_start must not be after window_end")
        return self
