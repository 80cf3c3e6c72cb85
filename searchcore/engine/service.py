"""Search service: the entry point outer layers (HTTP, CLI) call.

Exposes ``search_one`` for a single model and ``search_all`` for federated
search. Construct it with ``create_search_service`` so settings, weights and
metrics are wired consistently.
"""

from datetime import datetime
from typing import Any, Callable, Optional, Sequence

import structlog

from searchcore.common.config import EngineSettings, get_settings
from searchcore.common.logging import configure_logging_from_settings
from searchcore.common.metrics import MetricsCollector, get_metrics_collector
from searchcore.providers.base import ConfigRegistry, DataFetchProvider
from .boosting import utc_now
from .federation import FederatedCoordinator
from .orchestrator import SearchOrchestrator
from .types import FederatedResponse, MatchWeights, SearchOptions, SearchResponse

logger = structlog.get_logger("search_engine.service")


class SearchService:
    """Unified search over every registered model.

    Per-model engines are built on first use and cached, so repeated
    searches do not rebuild matchers or boosters.
    """

    def __init__(
        self,
        registry: ConfigRegistry,
        provider: DataFetchProvider,
        settings: Optional[EngineSettings] = None,
        weights: Optional[MatchWeights] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings or get_settings()
        self.metrics = metrics
        self.orchestrator = SearchOrchestrator(
            registry,
            provider,
            self.settings,
            weights=weights,
            metrics=metrics,
            clock=clock,
        )
        self.coordinator = FederatedCoordinator(
            self.orchestrator,
            max_concurrency=self.settings.search_federated_max_concurrency,
            metrics=metrics,
        )

    def close(self) -> None:
        """Release the scoring thread pool."""
        self.orchestrator.close()

    def default_options(self) -> SearchOptions:
        return SearchOptions(limit=self.settings.search_default_limit)

    def _options(self, options: Optional[SearchOptions], overrides: dict) -> SearchOptions:
        return (options or self.default_options()).with_overrides(**overrides)

    async def search_one(
        self,
        model: str,
        query: str,
        options: Optional[SearchOptions] = None,
        **overrides: Any,
    ) -> SearchResponse:
        """Search a single model.

        Keyword overrides (``limit``, ``skip``, ``sort``...) are applied on
        top of ``options``.
        """
        return await self.orchestrator.search(model, query, self._options(options, overrides))

    async def search_all(
        self,
        query: str,
        models: Optional[Sequence[str]] = None,
        options: Optional[SearchOptions] = None,
        **overrides: Any,
    ) -> FederatedResponse:
        """Search several models concurrently and merge the results."""
        return await self.coordinator.search_all(query, models, self._options(options, overrides))


def create_search_service(
    registry: ConfigRegistry,
    provider: DataFetchProvider,
    settings: Optional[EngineSettings] = None,
    metrics: Optional[MetricsCollector] = None,
    configure_logs: bool = True,
) -> SearchService:
    """Create a search service.

    Match weights come from settings; metrics default to the process-wide
    collector. Unless ``configure_logs`` is false, structlog is configured
    from the settings' log level, log format and environment.
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_logging_from_settings(settings)
    service = SearchService(
        registry,
        provider,
        settings=settings,
        weights=MatchWeights.from_settings(settings),
        metrics=metrics or get_metrics_collector(),
    )
    logger.info(
        "Search service created",
        models=registry.models(),
        max_concurrency=settings.search_federated_max_concurrency,
    )
    return service
