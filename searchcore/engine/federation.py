"""Federated search across several models.

Each model runs the single-model pipeline as its own asyncio task. A model
that fails is dropped from the results and reported as a warning; the other
models are unaffected. Every task writes only to its own outcome slot and
the slots are merged after all tasks finish.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import structlog

from searchcore.common.logging import log_performance
from searchcore.common.metrics import MetricsCollector
from .errors import InvalidArgumentError, SearchError
from .orchestrator import SearchOrchestrator
from .types import (
    FederatedPagination,
    FederatedResponse,
    ModelResults,
    ModelWarning,
    SearchOptions,
    SearchResponse,
    dedupe,
)

logger = structlog.get_logger("search_engine.federation")


@dataclass
class ModelOutcome:
    """Result slot for one model: a response or an error, never both."""
    model: str
    response: Optional[SearchResponse] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.response is not None


class FederatedCoordinator:
    """Fans a query out to several models and merges the responses.

    Parameters
    - orchestrator: runs each single-model search
    - max_concurrency: cap on simultaneously running model searches
      (``None`` means unbounded)
    - metrics: Prometheus collector
    """

    def __init__(
        self,
        orchestrator: SearchOrchestrator,
        max_concurrency: Optional[int] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.orchestrator = orchestrator
        self.max_concurrency = max_concurrency
        self.metrics = metrics

    async def search_all(
        self,
        query: str,
        models: Optional[Sequence[str]],
        options: SearchOptions,
    ) -> FederatedResponse:
        """Search ``models`` (default: every registered model) concurrently.

        Invalid options raise ``InvalidArgumentError`` before any model runs;
        after that, per-model failures only produce warnings.
        """
        start_time = time.perf_counter()
        if not isinstance(query, str):
            raise InvalidArgumentError("Query must be a string")
        self.orchestrator.validate_options(options)

        targets = dedupe(models or self.orchestrator.registry.models())
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        tasks = [
            asyncio.create_task(self._run_model(model, query, options, semaphore))
            for model in targets
        ]
        outcomes: List[ModelOutcome] = await asyncio.gather(*tasks)

        response = self._merge(query, outcomes)

        status = "ok"
        if response.warnings:
            status = "partial" if response.models_searched else "failed"
        if self.metrics:
            self.metrics.record_federated_search(status)

        log_performance(
            "federated_search",
            (time.perf_counter() - start_time) * 1000,
            models_requested=len(targets),
            models_searched=response.pagination.models_searched,
            total=response.pagination.total,
            status=status,
        )
        return response

    async def _run_model(
        self,
        model: str,
        query: Any,
        options: SearchOptions,
        semaphore: Optional[asyncio.Semaphore],
    ) -> ModelOutcome:
        try:
            if semaphore is None:
                response = await self.orchestrator.search(model, query, options)
            else:
                async with semaphore:
                    response = await self.orchestrator.search(model, query, options)
            return ModelOutcome(model=model, response=response)

        except SearchError as e:
            return ModelOutcome(model=model, error=e)

        except Exception as e:
            logger.exception("Unexpected error searching model", model=model)
            return ModelOutcome(model=model, error=e)

    def _merge(self, query: str, outcomes: List[ModelOutcome]) -> FederatedResponse:
        results = []
        warnings = []
        total = 0

        for outcome in outcomes:
            if outcome.ok:
                results.append(ModelResults(model=outcome.model, results=outcome.response.results))
                total += outcome.response.pagination.total
                continue

            kind = getattr(outcome.error, "kind", "internal_error")
            warnings.append(ModelWarning(model=outcome.model, kind=kind, message=str(outcome.error)))
            if self.metrics:
                self.metrics.record_model_failure(outcome.model, kind)
            logger.warning(
                "Model dropped from federated search",
                model=outcome.model,
                kind=kind,
                error=str(outcome.error),
            )

        searched = [r.model for r in results]
        return FederatedResponse(
            results=results,
            pagination=FederatedPagination(total=total, models_searched=len(searched)),
            query=query,
            models_searched=searched,
            warnings=warnings,
        )
