"""Application configuration pulled from environment variables via pydantic."""
import datetime as dt

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bikecast.domain import DailyScorePolicy, ForecastOptions, SummaryPolicy, WindowPolicy
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="config")


class Settings(BaseSettings):
    """Environment-driven configuration for the bikecast service."""
    model_config = SettingsConfigDict(env_prefix="BIKECAST_", extra="ignore")

    forecast_source: str = "open_meteo"  # options: open_meteo, openweather
    openweather_api_key: str | None = None
    api_key: str | None = None
    log_level: str = "INFO"

    # used when a request omits coordinates
    default_latitude: float = 40.7128
    default_longitude: float = -74.0060
    location_label: str | None = None
    timezone: str | None = None  # IANA name; provider timezone when unset

    forecast_days: int = 3
    best_hours_count: int = 3
    window_policy: WindowPolicy = WindowPolicy.DAYLIGHT
    window_start: dt.time = dt.time(8, 0)
    window_end: dt.time = dt.time(18, 0)
    summary_policy: SummaryPolicy = SummaryPolicy.FIRST_SAMPLE
    daily_score_policy: DailyScorePolicy = DailyScorePolicy.BEST_HOUR

    http_timeout_seconds: float = 10.0
    http_cache_seconds: int = 3600
    http_retries: int = 5

    @field_validator("forecast_source", mode="after")
    @classmethod
    def normalize_source(cls, v: str) -> str:
        """Source names are matched case-insensitively."""
        return v.strip().lower()

    def forecast_options(self, *, day_horizon: int | None = None) -> ForecastOptions:
        """Engine options for one run, optionally overriding the day horizon."""
        return ForecastOptions(
            day_horizon=day_horizon or self.forecast_days,
            best_hours_count=self.best_hours_count,
            window_policy=self.window_policy,
            window_start=self.window_start,
            window_end=self.window_end,
            summary_policy=self.summary_policy,
            daily_score_policy=self.daily_score_policy,
        )


settings = Settings()


if __name__ == "__main__":
    logger.logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4, exclude={'openweather_api_key', 'api_key'})}")
