"""Query and field value normalization."""

from typing import Any, Callable, Optional

from .errors import InvalidArgumentError


def default_preprocessor(query: str) -> str:
    """Trim and lowercase."""
    return query.strip().lower()


class QueryPreprocessor:
    """Normalizes raw queries for one model.

    Uses the model's own preprocessor when configured, otherwise
    ``default_preprocessor``. Queries that are not strings or that exceed
    ``max_query_length`` are rejected; an empty result is returned as ``""``
    so the caller can short-circuit.
    """

    def __init__(
        self,
        preprocessor: Optional[Callable[[str], str]] = None,
        max_query_length: int = 1000,
    ):
        self.preprocessor = preprocessor or default_preprocessor
        self.max_query_length = max_query_length

    def preprocess(self, query: Any) -> str:
        if not isinstance(query, str):
            raise InvalidArgumentError("Query must be a string")
        if len(query) > self.max_query_length:
            raise InvalidArgumentError(f"Query too long (max {self.max_query_length} characters)")
        return self.preprocessor(query) or ""


def normalize_value(value: Any) -> str:
    """Normalize a field value for comparison.

    ``None`` becomes ``""`` (never matches); lists and tuples are joined with
    spaces so tag-like fields can be searched.
    """
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        value = " ".join(str(v) for v in value if v is not None)
    return str(value).strip().lower()
