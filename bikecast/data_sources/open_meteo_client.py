"""Fetch hourly weather and sun times from the Open-Meteo forecast API."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import requests
from pydantic import ValidationError

from bikecast.data_sources.http import default_session
from bikecast.domain import CurrentWeather, HourlySample, InvalidInputData, SunTimes, WeatherCondition
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="open_meteo_client")

OPEN_METEO_WEATHER_URL = "https://api.open-meteo.com/v1/forecast"

HOURLY_VARS = [
    "temperature_2m",
    "precipitation",
    "precipitation_probability",
    "cloud_cover",
    "wind_speed_10m",
    "weather_code",
    "uv_index",
    "is_day",
]

CURRENT_VARS = [
    "temperature_2m",
    "precipitation",
    "cloud_cover",
    "wind_speed_10m",
    "weather_code",
    "is_day",
]

EXPECTED_UNITS = {
    "temperature_2m": "°C",
    "precipitation": "mm",
    "precipitation_probability": "%",
    "cloud_cover": "%",
    "wind_speed_10m": "m/s",
}

# Acceptable alternative spellings that should not trigger warnings.
ALLOWED_UNIT_SYNONYMS = {
    "precipitation_probability": {"%", "percent"},
    "cloud_cover": {"%", "percent"},
    "wind_speed_10m": {"m/s", "ms"},
}

# WMO weather interpretation code -> (main, description, icon stem)
WMO_CONDITIONS: dict[int, Tuple[str, str, str]] = {
    0: ("Clear", "clear sky", "01"),
    1: ("Clouds", "mainly clear", "02"),
    2: ("Clouds", "partly cloudy", "03"),
    3: ("Clouds", "overcast", "04"),
    45: ("Fog", "fog", "50"),
    48: ("Fog", "depositing rime fog", "50"),
    51: ("Drizzle", "light drizzle", "09"),
    53: ("Drizzle", "moderate drizzle", "09"),
    55: ("Drizzle", "dense drizzle", "09"),
    56: ("Ice", "light freezing drizzle", "13"),
    57: ("Ice", "dense freezing drizzle", "13"),
    61: ("Rain", "slight rain", "10"),
    63: ("Rain", "moderate rain", "10"),
    65: ("Rain", "heavy rain", "10"),
    66: ("Ice", "light freezing rain", "13"),
    67: ("Ice", "heavy freezing rain", "13"),
    71: ("Snow", "slight snow fall", "13"),
    73: ("Snow", "moderate snow fall", "13"),
    75: ("Snow", "heavy snow fall", "13"),
    77: ("Snow", "snow grains", "13"),
    80: ("Rain", "slight rain showers", "09"),
    81: ("Rain", "moderate rain showers", "09"),
    82: ("Rain", "violent rain showers", "09"),
    85: ("Snow", "slight snow showers", "13"),
    86: ("Snow", "heavy snow showers", "13"),
    95: ("Thunderstorm", "thunderstorm", "11"),
    96: ("Hail", "thunderstorm with slight hail", "11"),
    99: ("Hail", "thunderstorm with heavy hail", "11"),
}


def condition_from_wmo(code: Optional[int], is_day: Optional[object] = True) -> WeatherCondition:
    """Translate a WMO weather code into a provider-neutral condition."""
    if code is None or int(code) not in WMO_CONDITIONS:
        logger.debug("Unrecognized WMO weather code", extra={"weather_code": code})
        return WeatherCondition(main="Unknown", description="unknown", icon="")
    main, description, stem = WMO_CONDITIONS[int(code)]
    suffix = "n" if is_day in (0, False, "0") else "d"
    return WeatherCondition(main=main, description=description, icon=f"{stem}{suffix}")


def _iso_to_dt_with_tz(s: str, tz: dt.tzinfo) -> dt.datetime:
    """Interpret an Open-Meteo local time string as being in `tz`."""
    naive = dt.datetime.fromisoformat(s)
    return naive.replace(tzinfo=tz)


def _resolve_tz(data: Mapping) -> Tuple[dt.tzinfo, Optional[str]]:
    """Timezone the response's local times are expressed in."""
    name = data.get("timezone")
    if name:
        try:
            return ZoneInfo(name), name
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown Open-Meteo timezone; using utc_offset_seconds", extra={"tz_name": name})
    offset = int(data.get("utc_offset_seconds") or 0)
    return dt.timezone(dt.timedelta(seconds=offset)), None


def _warn_on_unexpected_units(units: Mapping | None, *, context: str) -> None:
    """Log a warning if Open-Meteo returns units we did not request."""
    if not units:
        return
    for name, expected in EXPECTED_UNITS.items():
        actual = units.get(name)
        if actual and actual != expected and actual not in ALLOWED_UNIT_SYNONYMS.get(name, set()):
            logger.warning(
                "Unexpected Open-Meteo unit",
                extra={"context": context, "field": name, "unit": actual, "expected": expected},
            )


def _column(block: Mapping, name: str, length: int) -> list:
    values = block.get(name)
    if values is None:
        return [None] * length
    return list(values)


# what a partial or mistyped payload raises while being turned into models
_MALFORMED_ERRORS = (KeyError, IndexError, TypeError, ValueError, ValidationError)


def _parse_current_sample(current: Mapping, tz: dt.tzinfo) -> HourlySample:
    try:
        return HourlySample(
            time=_iso_to_dt_with_tz(current["time"], tz),
            temperature=current["temperature_2m"],
            wind_speed=current.get("wind_speed_10m") or 0.0,
            precipitation_mm=current.get("precipitation") or 0.0,
            cloud_cover=current.get("cloud_cover") or 0.0,
            condition=condition_from_wmo(current.get("weather_code"), current.get("is_day")),
        )
    except _MALFORMED_ERRORS as exc:
        raise InvalidInputData(f"Malformed Open-Meteo current block: {exc}") from exc


@dataclass
class OpenMeteoClient:
    """Open-Meteo forecast client. Needs no API key."""

    timezone: str = "auto"
    timeout: float = 10.0
    session: requests.Session | None = field(default=None, repr=False)
    base_url: str = OPEN_METEO_WEATHER_URL

    def _get(self, params: dict) -> dict:
        session = self.session or default_session()
        resp = session.get(self.base_url, params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def _base_params(self, latitude: float, longitude: float) -> dict:
        return {
            "latitude": latitude,
            "longitude": longitude,
            "timezone": self.timezone,
            "temperature_unit": "celsius",
            "wind_speed_unit": "ms",
            "precipitation_unit": "mm",
        }

    def fetch_current(self, latitude: float, longitude: float) -> CurrentWeather:
        """Fetch current conditions plus today's sunrise/sunset."""
        params = self._base_params(latitude, longitude)
        params.update({"current": ",".join(CURRENT_VARS), "daily": "sunrise,sunset", "forecast_days": 1})
        data = self._get(params)

        tz, tz_name = _resolve_tz(data)
        daily = data.get("daily") or {}
        sunrises = daily.get("sunrise") or []
        sunsets = daily.get("sunset") or []
        if not sunrises or not sunsets:
            raise InvalidInputData("Open-Meteo response is missing sunrise/sunset")
        try:
            sun = SunTimes(
                sunrise=_iso_to_dt_with_tz(sunrises[0], tz),
                sunset=_iso_to_dt_with_tz(sunsets[0], tz),
            )
        except _MALFORMED_ERRORS as exc:
            raise InvalidInputData(f"Malformed Open-Meteo sunrise/sunset: {exc}") from exc

        current = data.get("current")
        sample = None
        if current:
            _warn_on_unexpected_units(data.get("current_units"), context="current")
            sample = _parse_current_sample(current, tz)

        return CurrentWeather(
            location_name=None,
            timezone=tz_name,
            utc_offset_seconds=data.get("utc_offset_seconds"),
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
        """Fetch `forecast_days` of hourly samples as structured objects."""
        params = self._base_params(latitude, longitude)
        params.update({"hourly": ",".join(HOURLY_VARS), "forecast_days": forecast_days})
        data = self._get(params)

        hourly = data.get("hourly")
        if not hourly or not hourly.get("time"):
            raise InvalidInputData("Open-Meteo response has no hourly data")
        _warn_on_unexpected_units(data.get("hourly_units"), context="hourly")

        tz, _ = _resolve_tz(data)
        times = hourly["time"]
        n = len(times)
        temp = _column(hourly, "temperature_2m", n)
        precip = _column(hourly, "precipitation", n)
        precip_prob = _column(hourly, "precipitation_probability", n)
        cloud = _column(hourly, "cloud_cover", n)
        wind = _column(hourly, "wind_speed_10m", n)
        code = _column(hourly, "weather_code", n)
        uv = _column(hourly, "uv_index", n)
        is_day = _column(hourly, "is_day", n)

        out: List[HourlySample] = []
        for i, t in enumerate(times):
            if temp[i] is None:
                logger.debug("Skipping hour without temperature", extra={"time": t})
                continue
            try:
                sample = HourlySample(
                    time=_iso_to_dt_with_tz(t, tz),
                    temperature=temp[i],
                    wind_speed=wind[i] or 0.0,
                    precipitation_mm=precip[i] or 0.0,
                    precipitation_probability=precip_prob[i],
                    cloud_cover=cloud[i] or 0.0,
                    uv_index=uv[i],
                    condition=condition_from_wmo(code[i], is_day[i]),
                )
            except _MALFORMED_ERRORS as exc:
                raise InvalidInputData(f"Malformed Open-Meteo hour {t}: {exc}") from exc
            out.append(sample)
        logger.info("Fetched Open-Meteo hourly samples", extra={"count": len(out)})
        return out
