"""Factory helpers for choosing a forecast data source at startup."""

from __future__ import annotations

from bikecast import config
from bikecast.data_sources.base import ForecastDataSource
from bikecast.data_sources.http import build_session
from bikecast.data_sources.open_meteo_client import OpenMeteoClient
from bikecast.data_sources.openweather_client import OpenWeatherClient
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_SOURCE_NAME = "open_meteo"


def build_data_source(settings: config.Settings | None = None, *, session=None) -> ForecastDataSource:
    """Instantiate the configured forecast data source."""
    settings = settings or config.settings
    source = (settings.forecast_source or DEFAULT_SOURCE_NAME).lower()
    timeout = getattr(settings, "http_timeout_seconds", 10.0)

    def _session():
        if session is not None:
            return session
        return build_session(
            expire_after=getattr(settings, "http_cache_seconds", 3600),
            retries=getattr(settings, "http_retries", 5),
        )

    if source == "open_meteo":
        logger.info("Using Open-Meteo data source")
        return OpenMeteoClient(timezone=settings.timezone or "auto", timeout=timeout, session=_session())

    if source == "openweather":
        api_key = settings.openweather_api_key
        if not api_key:
            raise ValueError("openweather_api_key must be set for the OpenWeatherMap data source")
        logger.info("Using OpenWeatherMap data source")
        return OpenWeatherClient(api_key=api_key, timeout=timeout, session=_session())

    raise ValueError(f"Unknown forecast source '{source}'")
