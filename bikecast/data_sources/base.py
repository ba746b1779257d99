"""Interfaces and helpers for forecast data sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Protocol

from bikecast.domain import CurrentWeather, HourlySample


class ForecastDataSource(Protocol):
    """Interface for anything that can provide current weather and hourly samples."""

    def fetch_current(self, latitude: float, longitude: float) -> CurrentWeather:
        """Return location name, timezone and today's sunrise/sunset."""
        ...

    def fetch_hourly(
        self,
        latitude: float,
        longitude: float,
        *,
        forecast_days: int = 4,
    ) -> List[HourlySample]:
        """Return hourly (or 3-hourly) samples in chronological order."""
        ...


@dataclass
class CallableForecastDataSource(ForecastDataSource):
    """Wrap two callables so they can be swapped for different backends or fakes."""

    current: Callable[..., CurrentWeather]
    hourly: Callable[..., List[HourlySample]]

    def fetch_current(self, *args, **kwargs) -> CurrentWeather:
        """Delegate to the configured current-weather callable."""
        return self.current(*args, **kwargs)

    def fetch_hourly(self, *args, **kwargs) -> List[HourlySample]:
        """Delegate to the configured hourly-forecast callable."""
        return self.hourly(*args, **kwargs)
