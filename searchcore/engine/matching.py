"""Per-field match detection.

A field reports at most one match type: the enabled types are tried in
precedence order (exact, startsWith, wordBoundary, contains, fuzzy) and the
first that applies wins, so a field is never counted twice.
"""

import re
from typing import FrozenSet, List, Optional, Tuple

from .types import MATCH_PRECEDENCE, MatchType, MatchWeights

_TOKEN_RE = re.compile(r"[^\W_]+")


def tokenize(value: str) -> List[str]:
    """Split on whitespace and any non-alphanumeric character."""
    return _TOKEN_RE.findall(value)


def edit_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein distance between two strings."""

    if len(s1) > len(s2):
        s1, s2 = s2, s1

    distances = range(len(s1) + 1)

    for i2, c2 in enumerate(s2):
        new_distances = [i2 + 1]
        for i1, c1 in enumerate(s1):
            if c1 == c2:
                new_distances.append(distances[i1])
            else:
                new_distances.append(1 + min(distances[i1], distances[i1 + 1], new_distances[-1]))
        distances = new_distances

    return distances[-1]


def fuzzy_threshold(query: str) -> int:
    """Maximum edit distance tolerated for a query."""
    return max(1, len(query) // 4)


class MatchDetector:
    """Detects the best match type between a query and a field value.

    Parameters
    - weights: base score per match type
    - min_fuzzy_length: queries shorter than this never fuzzy-match
    - fuzzy_min_factor: lower bound of the fuzzy distance penalty, as a
      fraction of the fuzzy base score
    """

    def __init__(
        self,
        weights: Optional[MatchWeights] = None,
        min_fuzzy_length: int = 3,
        fuzzy_min_factor: float = 0.1,
    ):
        self.weights = weights or MatchWeights()
        self.min_fuzzy_length = min_fuzzy_length
        self.fuzzy_min_factor = fuzzy_min_factor

    def detect(
        self,
        value: str,
        query: str,
        match_types: FrozenSet[MatchType],
    ) -> Optional[Tuple[MatchType, float]]:
        """Return ``(match_type, raw_score)`` or ``None``.

        Both ``value`` and ``query`` are expected to be normalized already.
        """
        if not value or not query:
            return None

        for match_type in MATCH_PRECEDENCE:
            if match_type not in match_types:
                continue
            if match_type == MatchType.FUZZY:
                score = self._fuzzy_score(value, query)
                if score is not None:
                    return match_type, score
            elif self._applies(match_type, value, query):
                return match_type, self.weights.base(match_type)

        return None

    def _applies(self, match_type: MatchType, value: str, query: str) -> bool:
        if match_type == MatchType.EXACT:
            return value == query
        if match_type == MatchType.STARTS_WITH:
            return value.startswith(query)
        if match_type == MatchType.WORD_BOUNDARY:
            return any(value.startswith(query, m.start()) for m in _TOKEN_RE.finditer(value))
        if match_type == MatchType.CONTAINS:
            return query in value
        return False

    def _fuzzy_score(self, value: str, query: str) -> Optional[float]:
        if len(query) < self.min_fuzzy_length:
            return None

        threshold = fuzzy_threshold(query)
        distance = self._best_distance(value, query, threshold)
        if distance > threshold:
            return None

        factor = max(1 - distance / (threshold + 1), self.fuzzy_min_factor)
        return self.weights.fuzzy * factor

    def _best_distance(self, value: str, query: str, threshold: int) -> int:
        candidates = [value] + tokenize(value)
        best = threshold + 1
        for candidate in candidates:
            # Length difference is a lower bound on edit distance
            if abs(len(candidate) - len(query)) >= best:
                continue
            best = min(best, edit_distance(query, candidate))
            if best == 0:
                break
        return best
