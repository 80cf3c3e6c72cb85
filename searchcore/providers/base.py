"""Collaborator contracts consumed by the search engine.

Defines the abstract interfaces the engine depends on, independent of how
records are stored or how search configuration is authored.

Fetching is asynchronous so providers can block on I/O without holding up
other models in a federated search.
"""

from abc import ABC, abstractmethod
from typing import Any, List

from searchcore.engine.types import SearchConfig


class DataFetchProvider(ABC):
    """Supplies candidate records for a model.

    Implementations return at most ``fetch_limit`` records. The engine does
    not rely on any ordering. Any exception raised is reported to callers as
    a ``DataSourceError``.
    """

    @abstractmethod
    async def fetch(self, model: str, fetch_limit: int) -> List[Any]:
        """Fetch up to ``fetch_limit`` candidate records of ``model``."""
        pass


class ConfigRegistry(ABC):
    """Read-only lookup of per-model ``SearchConfig``."""

    @abstractmethod
    def get_config(self, model: str) -> SearchConfig:
        """Return the config for ``model``.

        Raises ``NotFoundError`` when the model is not registered.
        """
        pass

    @abstractmethod
    def models(self) -> List[str]:
        """Registered model names, in registration order."""
        pass
