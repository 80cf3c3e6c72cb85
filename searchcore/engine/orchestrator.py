"""Single-model search pipeline.

preprocess -> fetch candidates -> score -> filter by min score -> sort ->
paginate. A call either returns a complete response or raises; there are no
partial results.

Note that ``pagination.total`` counts the candidates that survived filtering
out of at most ``fetch_limit`` fetched records. It is not a full-corpus match
count.
"""

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from searchcore.common.config import EngineSettings
from searchcore.common.logging import log_performance, search_context
from searchcore.common.metrics import MetricsCollector
from searchcore.providers.base import ConfigRegistry, DataFetchProvider
from .boosting import RankingBooster, parse_number, parse_timestamp, read_field, utc_now
from .errors import DataSourceError, SearchError, SearchTimeoutError
from .matching import MatchDetector
from .preprocessing import QueryPreprocessor
from .scoring import FieldScorer, RecordScorer
from .types import (
    MatchWeights,
    PaginationMeta,
    RecordScore,
    SearchConfig,
    SearchOptions,
    SearchResponse,
    SearchResult,
    SortOrder,
)

logger = structlog.get_logger("search_engine.orchestrator")

Scored = Tuple[Any, RecordScore]

CHUNKS_PER_WORKER = 4


class ModelEngine:
    """Preprocessor and scorer for one model, built once and reused."""

    def __init__(
        self,
        model: str,
        config: SearchConfig,
        weights: MatchWeights,
        settings: EngineSettings,
        clock: Callable[[], datetime] = utc_now,
        on_scorer_failure: Optional[Callable[[str], None]] = None,
    ):
        self.model = model
        self.config = config
        self.preprocessor = QueryPreprocessor(config.preprocessor, settings.search_max_query_length)
        detector = MatchDetector(
            weights,
            min_fuzzy_length=settings.search_min_fuzzy_length,
            fuzzy_min_factor=settings.search_fuzzy_min_factor,
        )
        booster = RankingBooster(
            config.ranking,
            model=model,
            decay_days=settings.search_recency_decay_days,
            clock=clock,
            on_scorer_failure=on_scorer_failure,
        )
        self.scorer = RecordScorer(model, config, FieldScorer(detector), booster)


class SearchOrchestrator:
    """Runs the search pipeline for one model at a time.

    Parameters
    - registry: resolves model names to ``SearchConfig``
    - provider: fetches candidate records
    - settings: engine limits and tuning knobs
    - weights: base score per match type (defaults from settings)
    - metrics: Prometheus collector
    - clock: "now" for recency boosts; injectable for tests
    """

    def __init__(
        self,
        registry: ConfigRegistry,
        provider: DataFetchProvider,
        settings: EngineSettings,
        weights: Optional[MatchWeights] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.registry = registry
        self.provider = provider
        self.settings = settings
        self.weights = weights or MatchWeights.from_settings(settings)
        self.metrics = metrics
        self.clock = clock
        self._engines: Dict[str, ModelEngine] = {}
        # Worker threads start lazily on first parallel batch
        self._executor = ThreadPoolExecutor(
            max_workers=settings.search_scoring_workers,
            thread_name_prefix="search-score",
        )

    def close(self) -> None:
        """Release the scoring pool without waiting for running chunks.

        Chunks that have not started yet are dropped.
        """
        self._executor.shutdown(wait=False, cancel_futures=True)

    def engine_for(self, model: str) -> ModelEngine:
        """Get or create the cached engine for a model.

        Raises ``NotFoundError`` for unknown models.
        """
        engine = self._engines.get(model)
        if engine is None:
            config = self.registry.get_config(model)
            engine = ModelEngine(
                model,
                config,
                self.weights,
                self.settings,
                clock=self.clock,
                on_scorer_failure=self._record_scorer_failure,
            )
            # Racing builders produce equivalent engines; last write wins
            self._engines[model] = engine
        return engine

    def validate_options(self, options: SearchOptions) -> None:
        options.validate(self.settings.search_max_limit)

    async def search(self, model: str, query: Any, options: SearchOptions) -> SearchResponse:
        """Search one model.

        Raises ``NotFoundError``, ``InvalidArgumentError``,
        ``DataSourceError`` or ``SearchTimeoutError``.
        """
        with search_context(model=model):
            return await self._search(model, query, options)

    async def _search(self, model: str, query: Any, options: SearchOptions) -> SearchResponse:
        start_time = time.perf_counter()
        status = "error"
        try:
            engine = self.engine_for(model)
            self.validate_options(options)
            timeout = options.timeout or self.settings.search_fetch_timeout_seconds

            if timeout is None:
                response = await self._run(engine, query, options)
            else:
                try:
                    response = await asyncio.wait_for(self._run(engine, query, options), timeout)
                except asyncio.TimeoutError:
                    raise SearchTimeoutError(
                        f"Search of model '{model}' timed out after {timeout}s"
                    ) from None

            status = "ok"
            duration = time.perf_counter() - start_time
            log_performance(
                "search",
                duration * 1000,
                sort=options.sort.value,
                total=response.pagination.total,
                count=response.pagination.count,
            )
            return response

        except SearchError as e:
            status = e.kind
            logger.warning("Search failed", kind=e.kind, error=str(e))
            raise

        except asyncio.CancelledError:
            status = "cancelled"
            logger.info("Search cancelled")
            raise

        finally:
            if self.metrics:
                self.metrics.record_search(
                    model=model,
                    sort=options.sort.value,
                    status=status,
                    duration=time.perf_counter() - start_time,
                )

    async def _run(self, engine: ModelEngine, query: Any, options: SearchOptions) -> SearchResponse:
        normalized = engine.preprocessor.preprocess(query)
        if not normalized:
            return self._build_response(engine.model, query, [], 0, options)

        fetch_limit = options.resolve_fetch_limit(engine.config)
        candidates = await self._fetch(engine.model, fetch_limit)

        scores = await self._score(engine, candidates, normalized, query)
        if self.metrics:
            self.metrics.record_candidates(engine.model, len(candidates))

        filtered = [
            (record, scored)
            for record, scored in zip(candidates, scores)
            if scored.score > 0 and scored.score >= options.min_score
        ]
        ranked = self._sort(filtered, options.sort, engine.config, engine.model)

        page = ranked[options.skip:options.skip + options.limit]
        return self._build_response(engine.model, query, page, len(ranked), options)

    async def _fetch(self, model: str, fetch_limit: int) -> List[Any]:
        try:
            records = await self.provider.fetch(model, fetch_limit)
        except SearchError:
            raise
        except Exception as e:
            raise DataSourceError(f"Failed to fetch records for model '{model}': {e}") from e
        return list(records or [])[:fetch_limit]

    async def _score(
        self,
        engine: ModelEngine,
        candidates: List[Any],
        query: str,
        original_query: str,
    ) -> List[RecordScore]:
        """Score candidates, on the shared thread pool for large batches.

        Cancelling the awaiting task cancels the chunks still queued; chunks
        already running finish in the background and their results are
        discarded.
        """
        threshold = self.settings.search_parallel_scoring_threshold
        if len(candidates) < threshold:
            return engine.scorer.score_all(candidates, query, original_query)

        workers = self.settings.search_scoring_workers
        # More chunks than workers so a cancelled search leaves work queued to drop
        chunk_count = workers * CHUNKS_PER_WORKER
        chunk_size = max(1, -(-len(candidates) // chunk_count))
        chunks = [candidates[i:i + chunk_size] for i in range(0, len(candidates), chunk_size)]

        loop = asyncio.get_running_loop()
        futures = [
            loop.run_in_executor(self._executor, engine.scorer.score_all, chunk, query, original_query)
            for chunk in chunks
        ]
        chunk_scores = await asyncio.gather(*futures)

        logger.debug(
            "Scored candidates in parallel",
            model=engine.model,
            candidates=len(candidates),
            chunks=len(chunks),
        )
        return [scored for chunk in chunk_scores for scored in chunk]

    def _sort(
        self,
        scored: List[Scored],
        sort: SortOrder,
        config: SearchConfig,
        model: str,
    ) -> List[Scored]:
        """Order results; Python's sort is stable so ties keep fetch order."""

        def relevance(item: Scored) -> float:
            return -max(item[1].score, 0.0)

        if sort == SortOrder.RECENT:
            field = config.recency_field
            if field is None:
                logger.warning(
                    "Sort by 'recent' requested but boost_recent not configured, falling back to relevance",
                    model=model,
                )
            else:
                def recent(item: Scored):
                    ts = parse_timestamp(read_field(item[0], field))
                    # Missing timestamps sort last
                    return (ts is None, -(ts.timestamp() if ts else 0.0), relevance(item))
                return sorted(scored, key=recent)

        elif sort == SortOrder.POPULAR:
            field = config.popularity_field
            if field is None:
                logger.warning(
                    "Sort by 'popular' requested but boost_popular not configured, falling back to relevance",
                    model=model,
                )
            else:
                def popular(item: Scored):
                    value = parse_number(read_field(item[0], field))
                    return (value is None, -(value or 0.0), relevance(item))
                return sorted(scored, key=popular)

        return sorted(scored, key=relevance)

    @staticmethod
    def _build_response(
        model: str,
        query: str,
        page: List[Scored],
        total: int,
        options: SearchOptions,
    ) -> SearchResponse:
        results = [
            SearchResult(data=record, score=scored.score, matches=scored.matches)
            for record, scored in page
        ]
        return SearchResponse(
            results=results,
            pagination=PaginationMeta.build(
                total=total,
                count=len(results),
                skip=options.skip,
                limit=options.limit,
            ),
            query=query,
            model=model,
        )

    def _record_scorer_failure(self, model: str) -> None:
        if self.metrics:
            self.metrics.record_scorer_failure(model)
