"""Ranking boosts added on top of field scores.

- Recency: ``weight * exp(-age_days / decay_days)``
- Popularity: ``weight * ln(value + 1)``
- Custom: whatever the model's ``custom_scorer`` returns, unclamped

Missing or unparseable inputs contribute 0. A failing custom scorer is
logged and contributes 0; it never fails the candidate.
"""

import math
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

import structlog

from .errors import ScorerError
from .types import RankingConfig

logger = structlog.get_logger("search_engine.boosting")

MS_PER_DAY = 86_400_000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def read_field(record: Any, name: str) -> Any:
    """Read ``name`` from a mapping or as an attribute."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Coerce a timestamp into an aware UTC datetime.

    Accepts ``datetime``, ``date``, ISO-8601 strings (a trailing ``Z`` is
    allowed) and epoch milliseconds. Returns ``None`` for anything else.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_number(value: Any) -> Optional[float]:
    """Coerce a popularity value into a finite float, or ``None``."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class RankingBooster:
    """Computes additive boosts for one model's ranking config.

    Parameters
    - ranking: the model's ``RankingConfig`` (``None`` disables all boosts)
    - decay_days: recency half-life style constant (``ageDays / decay_days``)
    - clock: returns "now"; injectable for tests
    - on_scorer_failure: called with the model name when the custom scorer
      fails, used to feed metrics
    """

    def __init__(
        self,
        ranking: Optional[RankingConfig],
        model: str = "",
        decay_days: float = 30.0,
        clock: Callable[[], datetime] = utc_now,
        on_scorer_failure: Optional[Callable[[str], None]] = None,
    ):
        self.ranking = ranking
        self.model = model
        self.decay_days = decay_days
        self.clock = clock
        self.on_scorer_failure = on_scorer_failure

    def recency_boost(self, record: Any) -> float:
        if not self.ranking or not self.ranking.boost_recent:
            return 0.0
        boost = self.ranking.boost_recent
        timestamp = parse_timestamp(read_field(record, boost.field))
        if timestamp is None:
            return 0.0
        age_ms = (self.clock() - timestamp).total_seconds() * 1000
        age_days = max(0.0, age_ms / MS_PER_DAY)
        return boost.weight * math.exp(-age_days / self.decay_days)

    def popularity_boost(self, record: Any) -> float:
        if not self.ranking or not self.ranking.boost_popular:
            return 0.0
        boost = self.ranking.boost_popular
        popularity = parse_number(read_field(record, boost.field))
        if popularity is None or popularity < 0:
            return 0.0
        return boost.weight * math.log1p(popularity)

    def custom_boost(self, record: Any, query: str) -> float:
        if not self.ranking or not self.ranking.custom_scorer:
            return 0.0
        try:
            value = self.ranking.custom_scorer(record, query)
            score = parse_number(value)
            if score is None:
                raise ScorerError(f"Custom scorer returned {value!r}")
            return score
        except Exception as e:
            logger.warning(
                "Custom scorer failed, contribution set to 0",
                model=self.model,
                error=str(e),
                error_type=type(e).__name__,
            )
            if self.on_scorer_failure:
                self.on_scorer_failure(self.model)
            return 0.0

    def total_boost(self, record: Any, query: str) -> float:
        """Sum of recency, popularity and custom boosts."""
        if not self.ranking:
            return 0.0
        return (
            self.recency_boost(record)
            + self.popularity_boost(record)
            + self.custom_boost(record, query)
        )
