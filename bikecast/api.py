"""HTTP API for the cycling forecast."""

import hmac
from typing import Optional

import requests
from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel

from .config import settings
from .data_sources import ForecastDataSource, build_data_source
from .domain import ForecastReport, InvalidInputData, InvalidTimezone
from .forecast_service import get_cycling_forecast
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="bikecast/api")

MAX_FORECAST_DAYS = 5

_data_source: ForecastDataSource | None = None


def require_api_key(x_api_key: str | None = Header(default=None)):
    """Validate the X-API-Key header against the configured static key, if any."""
    if not settings.api_key:
        logger.debug("No API key configured; allowing all requests")
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


def get_data_source() -> ForecastDataSource:
    """Build the configured data source on first use and reuse it afterwards."""
    global _data_source
    if _data_source is None:
        try:
            _data_source = build_data_source(settings)
        except ValueError as exc:
            logger.error("Data source misconfigured", extra={"error": str(exc)})
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return _data_source


router = APIRouter(dependencies=[Depends(require_api_key)])


class HealthResponse(BaseModel):
    """Liveness payload."""
    status: str


@router.get("/health", response_model=HealthResponse)
def health():
    """Report that the service is up."""
    return HealthResponse(status="ok")


@router.get("/forecast", response_model=ForecastReport)
def forecast(
    latitude: Optional[float] = Query(default=None, ge=-90, le=90),
    longitude: Optional[float] = Query(default=None, ge=-180, le=180),
    days: Optional[int] = Query(default=None, ge=1, le=MAX_FORECAST_DAYS),
    timezone: Optional[str] = Query(default=None),
    data_source: ForecastDataSource = Depends(get_data_source),
):
    """Return the multi-day cycling forecast for a location (defaults from settings)."""
    lat = settings.default_latitude if latitude is None else latitude
    lon = settings.default_longitude if longitude is None else longitude
    using_default = latitude is None and longitude is None

    try:
        report = get_cycling_forecast(
            lat,
            lon,
            data_source=data_source,
            options=settings.forecast_options(day_horizon=days),
            timezone=timezone or settings.timezone,
            label=settings.location_label if using_default else None,
        )
    except InvalidTimezone as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except InvalidInputData as exc:
        logger.warning("Weather data rejected by engine", extra={"error": str(exc)})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Invalid weather data received")
    except requests.RequestException as exc:
        logger.error("Weather provider request failed", extra={"error": str(exc)})
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch weather data")

    logger.info(f"Served forecast for {report.location} ({len(report.forecasts)} days)")
    return report
