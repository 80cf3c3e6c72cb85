"""Field and record scoring.

``field_score = raw_score(match_type) * weight / 100``; a record's score is
the sum of its field scores plus ranking boosts. Boosts are only added when
at least one field matched, so non-matching records score exactly 0.
"""

from typing import Any, List, Optional, Sequence, Tuple

from .boosting import RankingBooster, read_field
from .matching import MatchDetector
from .preprocessing import normalize_value
from .types import FieldConfig, RecordScore, SearchConfig, SearchMatch


class FieldScorer:
    """Turns a field's match into a weighted contribution."""

    def __init__(self, detector: MatchDetector):
        self.detector = detector

    @staticmethod
    def field_value(field: FieldConfig, record: Any) -> str:
        # value_of is invoked exactly once per record and field
        raw = field.value_of(record) if field.value_of else read_field(record, field.name)
        return normalize_value(raw)

    def score(self, field: FieldConfig, record: Any, query: str) -> Optional[Tuple[SearchMatch, float]]:
        match = self.detector.detect(self.field_value(field, record), query, field.match_types)
        if match is None:
            return None
        match_type, raw_score = match
        return SearchMatch(field=field.name, type=match_type), raw_score * (field.weight / 100)


class RecordScorer:
    """Scores candidate records for one model.

    Pure with respect to its inputs: reads only the frozen ``SearchConfig``
    and the record, so it can run on several threads at once.
    """

    def __init__(
        self,
        model: str,
        config: SearchConfig,
        field_scorer: FieldScorer,
        booster: RankingBooster,
    ):
        self.model = model
        self.config = config
        self.field_scorer = field_scorer
        self.booster = booster

    def score(self, record: Any, query: str, original_query: str) -> RecordScore:
        """Score one record.

        ``query`` is the normalized query used for matching;
        ``original_query`` is what the caller typed and is handed to the
        custom scorer.
        """
        total = 0.0
        matches: List[SearchMatch] = []

        for field in self.config.fields:
            scored = self.field_scorer.score(field, record, query)
            if scored is None:
                continue
            match, field_score = scored
            total += field_score
            matches.append(match)

        if matches:
            total += self.booster.total_boost(record, original_query)

        return RecordScore(score=total, matches=matches)

    def score_all(self, records: Sequence[Any], query: str, original_query: str) -> List[RecordScore]:
        return [self.score(record, query, original_query) for record in records]
