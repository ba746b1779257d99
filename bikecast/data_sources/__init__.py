"""Data source factories for plugging different weather backends."""

from .base import CallableForecastDataSource, ForecastDataSource
from .factory import build_data_source
from .open_meteo_client import OpenMeteoClient, condition_from_wmo
from .openweather_client import OpenWeatherClient

__all__ = [
    "build_data_source",
    "ForecastDataSource",
    "CallableForecastDataSource",
    "OpenMeteoClient",
    "OpenWeatherClient",
    "condition_from_wmo",
]
