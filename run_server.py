import os

import uvicorn

from bikecast.config import settings
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def check_data_source_config() -> None:
    """
    Fail fast on a data source that cannot work. Controlled by:
    - BIKECAST_FORECAST_SOURCE (open_meteo or openweather)
    - BIKECAST_OPENWEATHER_API_KEY, required for openweather.
    """
    if settings.forecast_source == "openweather" and not settings.openweather_api_key:
        logger.error("BIKECAST_OPENWEATHER_API_KEY is not set; use BIKECAST_FORECAST_SOURCE=open_meteo to run keyless.")
        raise SystemExit(1)
    logger.info(f"Using forecast source '{settings.forecast_source}'")


if __name__ == "__main__":
    setup_logging(level=settings.log_level, job_name="bikecast")
    check_data_source_config()

    uvicorn.run(
        "bikecast.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
