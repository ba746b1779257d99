"""OpenWeatherMap client: current weather (sun times, city) and the 5 day / 3 hour forecast."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Any, List, Mapping

import requests
from pydantic import ValidationError

from bikecast.data_sources.http import default_session
from bikecast.domain import CurrentWeather, HourlySample, InvalidInputData, SunTimes, WeatherCondition
from utils.logging_utils import get_tagged_logger, mask_url_secrets

logger = get_tagged_logger(__name__, tag="openweather_client")

OPENWEATHER_BASE_URL = "https://api.openweathermap.org/data/2.5"

# the free forecast endpoint returns 8 points per day, at most 40
SAMPLES_PER_DAY = 8
MAX_FORECAST_SAMPLES = 40

_MALFORMED_ERRORS = (KeyError, IndexError, TypeError, ValueError, ValidationError)


def _from_unix(ts: int | float, tz: dt.tzinfo) -> dt.datetime:
    return dt.datetime.fromtimestamp(ts, tz=tz)


def _fixed_offset(offset_seconds: int | None) -> dt.tzinfo:
    return dt.timezone(dt.timedelta(seconds=int(offset_seconds or 0)))


def _precipitation_mm(item: Mapping[str, Any]) -> float:
    """Rain plus snow volume for the interval; 3h buckets on the forecast, 1h on current."""
    total = 0.0
    for key in ("rain", "snow"):
        block = item.get(key) or {}
        total += float(block.get("3h") or block.get("1h") or 0.0)
    return total


def _condition(item: Mapping[str, Any]) -> WeatherCondition:
    weather = item.get("weather") or []
    if not weather:
        return WeatherCondition(main="Unknown", description="unknown", icon="")
    first = weather[0]
    return WeatherCondition(
        main=first.get("main") or "Unknown",
        description=first.get("description") or "",
        icon=first.get("icon") or "",
    )


def parse_sample(item: Mapping[str, Any], tz: dt.tzinfo) -> HourlySample:
    """Convert one OpenWeatherMap list/current item into an HourlySample."""
    try:
        main = item["main"]
        pop = item.get("pop")
        return HourlySample(
            time=_from_unix(item["dt"], tz),
            temperature=main["temp"],
            temp_min=main.get("temp_min"),
            temp_max=main.get("temp_max"),
            wind_speed=(item.get("wind") or {}).get("speed") or 0.0,
            precipitation_mm=_precipitation_mm(item),
            precipitation_probability=None if pop is None else round(float(pop) * 100, 1),
            cloud_cover=(item.get("clouds") or {}).get("all") or 0.0,
            uv_index=item.get("uvi"),
            condition=_condition(item),
        )
    except _MALFORMED_ERRORS as exc:
        raise InvalidInputData(f"Malformed OpenWeatherMap item: {exc}") from exc


@dataclass
class OpenWeatherClient:
    """
    OpenWeatherMap client with an explicitly supplied API key.

    Units are metric: °C and m/s.
    """

    api_key: str
    timeout: float = 10.0
    session: requests.Session | None = field(default=None, repr=False)
    base_url: str = OPENWEATHER_BASE_URL

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ValueError("OpenWeatherClient requires an api_key")

    def _get(self, path: str, latitude: float, longitude: float, **extra) -> dict:
        params = {
            "lat": latitude,
            "lon": longitude,
            "appid": self.api_key,
            "units": "metric",
            **extra,
        }
        session = self.session or default_session()
        resp = session.get(f"{self.base_url}/{path}", params=params, timeout=self.timeout)
        if getattr(resp, "url", None):
            logger.debug("OpenWeatherMap request", extra={"url": mask_url_secrets(resp.url)})
        resp.raise_for_status()
        return resp.json()

    def fetch_current(self, latitude: float, longitude: float) -> CurrentWeather:
        """Fetch city name, UTC offset and today's sunrise/sunset."""
        data = self._get("weather", latitude, longitude)
        sys_block = data.get("sys") or {}
        if sys_block.get("sunrise") is None or sys_block.get("sunset") is None:
            raise InvalidInputData("OpenWeatherMap response is missing sunrise/sunset")

        offset = data.get("timezone")
        tz = _fixed_offset(offset)
        sample = parse_sample(data, tz) if data.get("main") and data.get("dt") is not None else None
        try:
            sun = SunTimes(
                sunrise=_from_unix(sys_block["sunrise"], tz),
                sunset=_from_unix(sys_block["sunset"], tz),
            )
        except _MALFORMED_ERRORS as exc:
            raise InvalidInputData(f"Malformed OpenWeatherMap sunrise/sunset: {exc}") from exc
        return CurrentWeather(
            location_name=data.get("name") or None,
            timezone=None,
            utc_offset_seconds=offset,
            sun=sun,
            sample=sample,
        )

    def fetch_hourly(
        self,
        latitude: float,
        longitude: float,
        *,
        forecast_days: int = 4,
    ) -> List[HourlySample]:
        """Fetch the 3-hourly forecast, trimmed to roughly `forecast_days`."""
        cnt = min(MAX_FORECAST_SAMPLES, max(1, forecast_days) * SAMPLES_PER_DAY)
        data = self._get("forecast", latitude, longitude, cnt=cnt)
        items = data.get("list")
        if not items:
            raise InvalidInputData("Invalid weather data received: forecast list missing")

        tz = _fixed_offset((data.get("city") or {}).get("timezone"))
        samples = [parse_sample(item, tz) for item in items]
        logger.info("Fetched OpenWeatherMap forecast samples", extra={"count": len(samples)})
        return samples
