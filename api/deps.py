"""
FastAPI dependency providers.

Provides process-wide singletons for the catalog client, its circuit
breaker and the generation config so they are created once and reused
across requests. Tests swap them out through ``app.dependency_overrides``.

Environment variables (policy knobs, all optional)
--------------------------------------------------
``TRIVIA_MEDIUM_MIN`` / ``TRIVIA_HARD_MIN``
    Similarity cut-offs of the medium and hard bands (default 30 / 70).
``TRIVIA_MIN_POOL_SIZE``
    Pool size below which the chart fallback runs (default 30).
``TRIVIA_SEARCH_LIMIT`` / ``TRIVIA_CHART_LIMIT``
    Result caps for expansion searches and the chart pull (default 50 / 100).
``TRIVIA_SEARCH_WORKERS``
    Concurrent catalog searches per request (default 8).
"""

import os

from dotenv import load_dotenv

from catalog.apple_music import AppleMusicClient, is_transient_error
from core.config import BandThresholds, GenerationConfig, PoolConfig
from infrastructure.circuit_breaker import CircuitBreaker


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_generation_config() -> GenerationConfig:
    """Build a ``GenerationConfig`` from the environment (no caching)."""
    load_dotenv()
    defaults = PoolConfig()
    band_defaults = BandThresholds()
    return GenerationConfig(
        thresholds=BandThresholds(
            medium_min=_env_int("TRIVIA_MEDIUM_MIN", band_defaults.medium_min),
            hard_min=_env_int("TRIVIA_HARD_MIN", band_defaults.hard_min),
        ),
        pool=PoolConfig(
            min_pool_size=_env_int("TRIVIA_MIN_POOL_SIZE", defaults.min_pool_size),
            search_limit=_env_int("TRIVIA_SEARCH_LIMIT", defaults.search_limit),
            chart_limit=_env_int("TRIVIA_CHART_LIMIT", defaults.chart_limit),
            max_workers=_env_int("TRIVIA_SEARCH_WORKERS", defaults.max_workers),
        ),
    )


_generation_config: GenerationConfig | None = None


def get_generation_config() -> GenerationConfig:
    """Return the cached ``GenerationConfig``, read from the environment once."""
    global _generation_config  # noqa: PLW0603
    if _generation_config is None:
        _generation_config = load_generation_config()
    return _generation_config


# Catalog breaker: trips after 5 consecutive transient failures (each already
# retried) and allows one trial call after 30s. Client errors are not counted.
# Shared by every request so failures accumulate across the server process.
_catalog_breaker: CircuitBreaker | None = None


def get_catalog_breaker() -> CircuitBreaker:
    """Return the catalog circuit breaker singleton."""
    global _catalog_breaker  # noqa: PLW0603
    if _catalog_breaker is None:
        _catalog_breaker = CircuitBreaker(
            name="apple_music",
            failure_threshold=5,
            reset_timeout_seconds=30.0,
            should_count=is_transient_error,
        )
    return _catalog_breaker


_catalog_client: AppleMusicClient | None = None


def get_catalog_client() -> AppleMusicClient:
    """
    Return a cached ``AppleMusicClient`` singleton.

    Created on first call; reads ``APPLE_MUSIC_*`` settings from the
    environment and shares the catalog breaker.
    """
    global _catalog_client  # noqa: PLW0603
    if _catalog_client is None:
        _catalog_client = AppleMusicClient(breaker=get_catalog_breaker())
    return _catalog_client
