"""Wire a weather data source to the aggregation engine and build the forecast report."""
from __future__ import annotations

import datetime as dt
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from bikecast.aggregation_engine import build_daily_forecasts, format_time_label
from bikecast.data_sources import ForecastDataSource
from bikecast.domain import CurrentWeather, ForecastOptions, ForecastReport, InvalidInputData, InvalidTimezone
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="forecast_service")


def _load_zone(name: str) -> dt.tzinfo:
    # ZoneInfo raises ValueError rather than ZoneInfoNotFoundError for path-like keys
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidTimezone(f"Invalid timezone: {name}") from exc


def resolve_timezone(current: CurrentWeather, override: str | None = None) -> dt.tzinfo:
    """
    Pick the single timezone used for bucketing and labels.

    An explicit IANA name wins, then the provider's zone name, then its fixed
    UTC offset; UTC as a last resort. A bad explicit name raises
    InvalidTimezone; a bad provider name falls through to the offset.
    """
    if override:
        return _load_zone(override)
    if current.timezone:
        try:
            return _load_zone(current.timezone)
        except InvalidTimezone:
            logger.warning("Provider timezone not recognized; trying offset", extra={"tz_name": current.timezone})
    if current.utc_offset_seconds is not None:
        return dt.timezone(dt.timedelta(seconds=current.utc_offset_seconds))
    return dt.timezone.utc


def location_label(current: CurrentWeather, latitude: float, longitude: float, fallback: str | None = None) -> str:
    """Provider city name, else the configured label, else the coordinates."""
    return current.location_name or fallback or f"{latitude:.2f}, {longitude:.2f}"


def get_cycling_forecast(
    latitude: float,
    longitude: float,
    *,
    data_source: ForecastDataSource,
    options: ForecastOptions | None = None,
    timezone: str | None = None,
    label: str | None = None,
    now: dt.datetime | None = None,
) -> ForecastReport:
    """
    Fetch current weather + hourly samples and run the engine over them.

    `now` defaults to the current instant; pass it explicitly to get a
    reproducible report.
    """
    options = options or ForecastOptions()
    now = now or dt.datetime.now(dt.timezone.utc)

    logger.info(
        "Fetching cycling forecast",
        extra={"latitude": latitude, "longitude": longitude, "days": options.day_horizon},
    )
    current = data_source.fetch_current(latitude, longitude)
    if current is None or current.sun is None:
        raise InvalidInputData("Current weather is missing sunrise/sunset")

    # one extra day covers a skipped "today"
    samples = data_source.fetch_hourly(latitude, longitude, forecast_days=options.day_horizon + 1)
    logger.debug("Fetched hourly samples", extra={"count": len(samples or [])})

    tz = resolve_timezone(current, timezone)
    forecasts = build_daily_forecasts(samples, current.sun, now=now, tz=tz, options=options)

    local_now = now.astimezone(tz)
    report = ForecastReport(
        location=location_label(current, latitude, longitude, label),
        generated_at=local_now,
        generated_at_label=format_time_label(local_now),
        forecasts=forecasts,
    )
    logger.info("Computed cycling forecast", extra={"days": len(report.forecasts)})
    return report


def main():
    """Manual helper: print a forecast for the configured default location."""
    from bikecast.config import settings
    from bikecast.data_sources import build_data_source

    report = get_cycling_forecast(
        settings.default_latitude,
        settings.default_longitude,
        data_source=build_data_source(settings),
        options=settings.forecast_options(),
        timezone=settings.timezone,
        label=settings.location_label,
    )
    print(f"{report.location} (generated {report.generated_at_label})")
    for day in report.forecasts:
        score = day.biking_score.score if day.biking_score else "n/a"
        best = ", ".join(f"{h.time_label} ({h.score})" for h in day.best_hours) or "none"
        print(f"  {day.date_label}: {day.temp_min}-{day.temp_max}°C, score {score}, best hours: {best}")


if __name__ == "__main__":
    main()
