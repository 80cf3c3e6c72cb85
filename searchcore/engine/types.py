"""Data model for the search engine.

Configuration types are frozen dataclasses built once at startup and shared
read-only by every concurrent search. Response types are pydantic models
whose ``to_wire()`` renders the camelCase JSON contract consumed by the HTTP
layer.
"""

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, FrozenSet, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .errors import InvalidArgumentError, PartialFailureError


class MatchType(str, Enum):
    """How a query matched a field value. Values are the wire strings."""
    EXACT = "exact"
    STARTS_WITH = "startsWith"
    WORD_BOUNDARY = "wordBoundary"
    CONTAINS = "contains"
    FUZZY = "fuzzy"


# Highest to lowest; only the first applicable type is reported per field.
MATCH_PRECEDENCE: Tuple[MatchType, ...] = (
    MatchType.EXACT,
    MatchType.STARTS_WITH,
    MatchType.WORD_BOUNDARY,
    MatchType.CONTAINS,
    MatchType.FUZZY,
)


class SortOrder(str, Enum):
    """Result ordering."""
    RELEVANCE = "relevance"
    RECENT = "recent"
    POPULAR = "popular"

    @classmethod
    def parse(cls, value: Any) -> "SortOrder":
        """Parse a sort name, raising ``InvalidArgumentError`` when unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise InvalidArgumentError(f"Unknown sort '{value}' (expected one of: {allowed})")


@dataclass(frozen=True)
class MatchWeights:
    """Base score per match type, before field weighting."""
    exact: float = 20.0
    starts_with: float = 15.0
    word_boundary: float = 10.0
    contains: float = 5.0
    fuzzy: float = 3.0

    def base(self, match_type: MatchType) -> float:
        return {
            MatchType.EXACT: self.exact,
            MatchType.STARTS_WITH: self.starts_with,
            MatchType.WORD_BOUNDARY: self.word_boundary,
            MatchType.CONTAINS: self.contains,
            MatchType.FUZZY: self.fuzzy,
        }[match_type]

    @classmethod
    def from_settings(cls, settings) -> "MatchWeights":
        """Build weights from ``EngineSettings``."""
        return cls(
            exact=settings.search_weight_exact,
            starts_with=settings.search_weight_starts_with,
            word_boundary=settings.search_weight_word_boundary,
            contains=settings.search_weight_contains,
            fuzzy=settings.search_weight_fuzzy,
        )


DEFAULT_MATCH_TYPES: FrozenSet[MatchType] = frozenset(
    {MatchType.EXACT, MatchType.STARTS_WITH, MatchType.CONTAINS}
)


@dataclass(frozen=True)
class FieldConfig:
    """How one record field takes part in scoring.

    ``weight`` is clamped into [1, 100]; ``match_types`` accepts enum members
    or their wire strings and must not be empty. ``value_of`` derives the
    compared value from the whole record (composite or computed fields).
    """
    name: str
    weight: int = 100
    match_types: FrozenSet[MatchType] = DEFAULT_MATCH_TYPES
    value_of: Optional[Callable[[Any], Any]] = None

    def __post_init__(self):
        if not self.name:
            raise InvalidArgumentError("Field name must not be empty")
        try:
            match_types = frozenset(MatchType(t) for t in self.match_types)
        except ValueError as e:
            raise InvalidArgumentError(f"Field '{self.name}': {e}") from e
        if not match_types:
            raise InvalidArgumentError(f"Field '{self.name}' needs at least one match type")
        object.__setattr__(self, "match_types", match_types)
        object.__setattr__(self, "weight", min(100, max(1, int(self.weight))))


@dataclass(frozen=True)
class BoostConfig:
    """A record field feeding a ranking boost, and the boost's weight."""
    field: str
    weight: float


@dataclass(frozen=True)
class RankingConfig:
    """Optional additive boosts. Absent entries contribute nothing."""
    boost_recent: Optional[BoostConfig] = None
    boost_popular: Optional[BoostConfig] = None
    custom_scorer: Optional[Callable[[Any, str], float]] = None


@dataclass(frozen=True)
class SearchConfig:
    """Per-model search configuration, immutable once loaded."""
    fields: Tuple[FieldConfig, ...]
    ranking: Optional[RankingConfig] = None
    preprocessor: Optional[Callable[[str], str]] = None
    fetch_limit_default: Optional[int] = None

    def __post_init__(self):
        fields = tuple(self.fields)
        if not fields:
            raise InvalidArgumentError("SearchConfig needs at least one field")
        if self.fetch_limit_default is not None and self.fetch_limit_default <= 0:
            raise InvalidArgumentError("fetch_limit_default must be > 0")
        object.__setattr__(self, "fields", fields)

    @property
    def recency_field(self) -> Optional[str]:
        if self.ranking and self.ranking.boost_recent:
            return self.ranking.boost_recent.field
        return None

    @property
    def popularity_field(self) -> Optional[str]:
        if self.ranking and self.ranking.boost_popular:
            return self.ranking.boost_popular.field
        return None


@dataclass(frozen=True)
class SearchOptions:
    """Per-request options.

    ``fetch_limit`` of ``None`` falls back to the model's
    ``fetch_limit_default`` and then to ``max(limit * 10, skip + limit)``.
    ``timeout`` is in seconds.
    """
    limit: int = 20
    skip: int = 0
    fetch_limit: Optional[int] = None
    min_score: float = 0.0
    sort: SortOrder = SortOrder.RELEVANCE
    timeout: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "sort", SortOrder.parse(self.sort))

    def validate(self, max_limit: int) -> None:
        """Raise ``InvalidArgumentError`` for out-of-range values."""
        if self.limit <= 0 or self.limit > max_limit:
            raise InvalidArgumentError(f"Limit must be between 1 and {max_limit}")
        if self.skip < 0:
            raise InvalidArgumentError("Skip must be >= 0")
        if self.fetch_limit is not None and self.fetch_limit <= 0:
            raise InvalidArgumentError("fetch_limit must be > 0")
        if self.min_score < 0:
            raise InvalidArgumentError("min_score must be >= 0")
        if self.timeout is not None and self.timeout <= 0:
            raise InvalidArgumentError("timeout must be > 0")

    def resolve_fetch_limit(self, config: SearchConfig) -> int:
        if self.fetch_limit is not None:
            return self.fetch_limit
        if config.fetch_limit_default is not None:
            return config.fetch_limit_default
        return max(self.limit * 10, self.skip + self.limit)

    def with_overrides(self, **overrides: Any) -> "SearchOptions":
        """Copy with ``overrides`` applied.

        ``None`` clears the optional ``fetch_limit`` and ``timeout`` and is
        ignored for the other options. Unknown names raise
        ``InvalidArgumentError``.
        """
        changes = {
            key: value
            for key, value in overrides.items()
            if value is not None or key in _NULLABLE_OPTIONS
        }
        try:
            return replace(self, **changes)
        except TypeError as e:
            raise InvalidArgumentError(f"Invalid search option: {e}") from e


_NULLABLE_OPTIONS = frozenset({"fetch_limit", "timeout"})


@dataclass
class RecordScore:
    """Scoring outcome for one candidate, before it becomes a result."""
    score: float
    matches: List["SearchMatch"] = field(default_factory=list)


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """Render the camelCase JSON contract."""
        return self.model_dump(by_alias=True)


class SearchMatch(_WireModel):
    """Which field matched and how. Reporting only, not a scoring input."""
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    field: str
    type: MatchType


class SearchResult(_WireModel):
    """A scored record. ``score`` is the raw total, boosts included."""
    data: Any
    score: float
    matches: List[SearchMatch] = Field(default_factory=list)


class PaginationMeta(_WireModel):
    total: int
    count: int
    skip: int
    limit: int
    page: int
    total_pages: int
    has_more: bool
    has_previous: bool

    @classmethod
    def build(cls, total: int, count: int, skip: int, limit: int) -> "PaginationMeta":
        return cls(
            total=total,
            count=count,
            skip=skip,
            limit=limit,
            page=skip // limit + 1,
            total_pages=math.ceil(total / limit),
            has_more=skip + limit < total,
            has_previous=skip > 0,
        )


class SearchResponse(_WireModel):
    """Single-model response.

    ``pagination.total`` counts the fetched-and-filtered candidates, which is
    bounded by the fetch limit; it is not a full-corpus match count.
    """
    results: List[SearchResult]
    pagination: PaginationMeta
    query: str
    model: str


class ModelResults(_WireModel):
    model: str
    results: List[SearchResult]


class FederatedPagination(_WireModel):
    total: int
    models_searched: int


class ModelWarning(_WireModel):
    """A model dropped from a federated search, and why."""
    model: str
    kind: str
    message: str


class FederatedResponse(_WireModel):
    """Merged multi-model response; failed models appear only in ``warnings``."""
    results: List[ModelResults]
    pagination: FederatedPagination
    query: str
    models_searched: List[str]
    warnings: List[ModelWarning] = Field(default_factory=list)

    @property
    def partial_failure(self) -> bool:
        return bool(self.warnings)

    def raise_for_partial_failure(self) -> None:
        """Raise ``PartialFailureError`` if any model failed."""
        if self.warnings:
            failed = [w.model for w in self.warnings]
            raise PartialFailureError(
                f"{len(failed)} model(s) failed: {', '.join(failed)}",
                failed_models=failed,
            )


def dedupe(models: Iterable[str]) -> List[str]:
    """Drop repeated model names, keeping first-seen order."""
    seen = set()
    ordered = []
    for model in models:
        if model not in seen:
            seen.add(model)
            ordered.append(model)
    return ordered
