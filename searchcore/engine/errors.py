"""Search engine exceptions.

Every exception carries a stable ``kind`` string so federated search can
report failures without leaking exception classes over the wire.
"""


class SearchError(Exception):
    """Base exception for search operations."""
    kind = "search_error"


class InvalidArgumentError(SearchError):
    """Bad limit, skip, fetch limit, min score, sort or query."""
    kind = "invalid_argument"


class NotFoundError(SearchError):
    """Unknown model name."""
    kind = "not_found"


class DataSourceError(SearchError):
    """The data fetch provider failed."""
    kind = "data_source_failure"


class ScorerError(SearchError):
    """A custom scorer raised or returned a non-number.

    Never escapes the scoring of a single candidate; it is logged and the
    custom contribution counts as 0.
    """
    kind = "scorer_failure"


class PartialFailureError(SearchError):
    """At least one model failed in a federated search while others succeeded."""
    kind = "partial_failure"

    def __init__(self, message: str, failed_models=None):
        super().__init__(message)
        self.failed_models = list(failed_models or [])


class SearchCancelledError(SearchError):
    """The search was cancelled before it completed; no partial results."""
    kind = "cancelled"


class SearchTimeoutError(SearchCancelledError):
    """The search did not finish within its timeout."""
    kind = "timeout"
