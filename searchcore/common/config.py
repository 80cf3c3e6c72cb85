"""Configuration management for the search engine.

This module centralizes environment-driven configuration for the engine. It
builds on ``pydantic_settings.BaseSettings`` so configuration can be provided
via environment variables, ``.env`` files, or defaults.

Highlights
- Strongly-typed settings with sensible defaults
- One place to discover the ``SEARCH_*`` environment variables
- Settings are passed explicitly into the service; nothing here is mutated
  at runtime

Usage
- ``settings = get_settings()``
- ``service = create_search_service(registry, provider, settings=settings)``
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Engine configuration.

    Parameters are read from the process environment using the upper-cased
    field name (e.g. ``SEARCH_MAX_LIMIT``). Defaults keep local development
    convenient while still being explicit.

    Notes
    - Match weights here are the base scores per match type; a field's weight
      (1-100) scales them.
    - ``search_federated_max_concurrency`` of ``None`` means unbounded.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    search_env: str = Field(default="local", description="Deployment environment name")

    # Logging
    search_log_level: str = Field(default="INFO")
    search_log_format: str = Field(default="json")

    # Base scores per match type
    search_weight_exact: float = Field(default=20.0, ge=0)
    search_weight_starts_with: float = Field(default=15.0, ge=0)
    search_weight_word_boundary: float = Field(default=10.0, ge=0)
    search_weight_contains: float = Field(default=5.0, ge=0)
    search_weight_fuzzy: float = Field(default=3.0, ge=0)

    # Matching
    search_min_fuzzy_length: int = Field(default=3, ge=1)
    search_fuzzy_min_factor: float = Field(default=0.1, gt=0, le=1)
    search_recency_decay_days: float = Field(default=30.0, gt=0)

    # Request limits
    search_max_query_length: int = Field(default=1000, ge=1)
    search_max_limit: int = Field(default=100, ge=1)
    search_default_limit: int = Field(default=20, ge=1)

    # Performance
    search_parallel_scoring_threshold: int = Field(default=500, ge=1)
    search_scoring_workers: int = Field(default=4, ge=1)
    search_federated_max_concurrency: Optional[int] = Field(default=None, ge=1)
    search_fetch_timeout_seconds: Optional[float] = Field(default=None, gt=0)


def get_settings(**overrides) -> EngineSettings:
    """Build engine settings.

    Keyword overrides win over environment variables, which is handy for
    tests and for embedding the engine in another service's config.
    """
    return EngineSettings(**overrides)
