"""In-memory collaborators.

``StaticConfigRegistry`` holds configs built at startup.
``InMemoryDataProvider`` serves records held in memory, and
``CallableDataProvider`` adapts an existing fetch function (sync or async)
such as a repository query.
"""

import asyncio
import inspect
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Sequence

import structlog

from searchcore.engine.errors import NotFoundError
from searchcore.engine.types import SearchConfig
from .base import ConfigRegistry, DataFetchProvider

logger = structlog.get_logger("search_engine.providers")


class StaticConfigRegistry(ConfigRegistry):
    """Immutable registry of search configs keyed by model name."""

    def __init__(self, configs: Mapping[str, SearchConfig]):
        self._configs = MappingProxyType(dict(configs))

    def get_config(self, model: str) -> SearchConfig:
        try:
            return self._configs[model]
        except KeyError:
            raise NotFoundError(f"No search config for model: {model}") from None

    def models(self) -> List[str]:
        return list(self._configs)


class InMemoryDataProvider(DataFetchProvider):
    """Serves records from per-model sequences.

    Returns the first ``fetch_limit`` records of the model; an unknown model
    yields no records.
    """

    def __init__(self, records: Mapping[str, Iterable[Any]]):
        self._records: Dict[str, Sequence[Any]] = {
            model: tuple(items) for model, items in records.items()
        }

    async def fetch(self, model: str, fetch_limit: int) -> List[Any]:
        records = self._records.get(model, ())
        return list(records[:fetch_limit])


class CallableDataProvider(DataFetchProvider):
    """Wraps ``fetch_fn(model, fetch_limit)``.

    Coroutine functions are awaited. Plain functions run in the default
    executor so a blocking database call does not stall the event loop.
    """

    def __init__(self, fetch_fn: Callable[[str, int], Any]):
        self.fetch_fn = fetch_fn

    async def fetch(self, model: str, fetch_limit: int) -> List[Any]:
        if inspect.iscoroutinefunction(self.fetch_fn):
            records = await self.fetch_fn(model, fetch_limit)
        else:
            loop = asyncio.get_running_loop()
            records = await loop.run_in_executor(None, self.fetch_fn, model, fetch_limit)
            if inspect.isawaitable(records):
                records = await records

        records = list(records or [])
        if len(records) > fetch_limit:
            logger.debug(
                "Provider returned more records than requested, truncating",
                model=model,
                returned=len(records),
                fetch_limit=fetch_limit,
            )
            records = records[:fetch_limit]
        return records
