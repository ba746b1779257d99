"""Shared HTTP session for the weather clients: on-disk response cache plus retries."""
from __future__ import annotations

import requests
import requests_cache
from retry_requests import retry

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/http")

DEFAULT_CACHE_NAME = ".cache"

_default_session: requests.Session | None = None


def build_session(
    *,
    cache_name: str = DEFAULT_CACHE_NAME,
    expire_after: int = 3600,
    retries: int = 5,
    backoff_factor: float = 0.2,
) -> requests.Session:
    """Return a cached session wrapped with retry/backoff on transient failures."""
    cache_session = requests_cache.CachedSession(cache_name, expire_after=expire_after)
    logger.debug(
        "Built cached HTTP session",
        extra={"cache_name": cache_name, "expire_after": expire_after, "retries": retries},
    )
    return retry(cache_session, retries=retries, backoff_factor=backoff_factor)


def default_session() -> requests.Session:
    """Process-wide session, created on first use."""
    global _default_session
    if _default_session is None:
        _default_session = build_session()
    return _default_session
