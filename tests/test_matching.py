"""Tests for match detection and field scoring."""

import pytest

from searchcore.engine.errors import InvalidArgumentError
from searchcore.engine.matching import MatchDetector, edit_distance, fuzzy_threshold, tokenize
from searchcore.engine.preprocessing import QueryPreprocessor, normalize_value
from searchcore.engine.scoring import FieldScorer
from searchcore.engine.types import FieldConfig, MatchType, MatchWeights

ALL_TYPES = frozenset(MatchType)


@pytest.fixture
def detector():
    return MatchDetector(MatchWeights())


@pytest.fixture
def field_scorer(detector):
    return FieldScorer(detector)


def test_edit_distance():
    """Test Levenshtein distance."""
    assert edit_distance("laptop", "laptop") == 0
    assert edit_distance("labtop", "laptop") == 1
    assert edit_distance("laptpo", "laptop") == 2
    assert edit_distance("", "abc") == 3
    assert edit_distance("kitten", "sitting") == 3


def test_tokenize_splits_on_non_alphanumeric():
    """Test tokenization."""
    assert tokenize("macbook-pro 14, (2023)") == ["macbook", "pro", "14", "2023"]
    assert tokenize("snake_case value") == ["snake", "case", "value"]


def test_fuzzy_threshold():
    """Test threshold is max(1, len // 4)."""
    assert fuzzy_threshold("abc") == 1
    assert fuzzy_threshold("laptop") == 1
    assert fuzzy_threshold("keyboard") == 2
    assert fuzzy_threshold("a" * 13) == 3


def test_exact_match_scenario(field_scorer):
    """Exact match on a full-weight field scores 20."""
    field = FieldConfig(
        name="name",
        weight=100,
        match_types=[MatchType.EXACT, MatchType.STARTS_WITH, MatchType.CONTAINS],
    )
    query = QueryPreprocessor().preprocess("Gaming Laptop")

    match, score = field_scorer.score(field, {"name": "Gaming Laptop"}, query)

    assert match.field == "name"
    assert match.type == MatchType.EXACT
    assert score == pytest.approx(20.0)


def test_starts_with_scenario(field_scorer):
    """Prefix match on a full-weight field scores 15."""
    field = FieldConfig(
        name="name",
        weight=100,
        match_types=[MatchType.EXACT, MatchType.STARTS_WITH, MatchType.CONTAINS],
    )

    match, score = field_scorer.score(field, {"name": "Laptop Stand"}, "lap")

    assert match.type == MatchType.STARTS_WITH
    assert score == pytest.approx(15.0)


def test_contains_scenario(field_scorer):
    """Substring match on a 60-weight field scores 5 * 0.6."""
    field = FieldConfig(name="title", weight=60, match_types=["contains", "fuzzy"])

    match, score = field_scorer.score(field, {"title": "Best games"}, "game")

    assert match.type == MatchType.CONTAINS
    assert score == pytest.approx(3.0)


def test_word_boundary_match(detector):
    """Query matching the start of a later token is a word boundary match."""
    types = frozenset({MatchType.WORD_BOUNDARY, MatchType.CONTAINS})
    assert detector.detect("gaming laptop", "lap", types) == (MatchType.WORD_BOUNDARY, 10.0)
    assert detector.detect("macbook-pro", "pro", types) == (MatchType.WORD_BOUNDARY, 10.0)
    assert detector.detect("gaming laptop", "top", types) == (MatchType.CONTAINS, 5.0)


def test_take_max_reports_single_type(detector):
    """Only the highest-precedence applicable type is reported."""
    assert detector.detect("laptop", "laptop", ALL_TYPES) == (MatchType.EXACT, 20.0)
    assert detector.detect("laptop stand", "laptop", ALL_TYPES) == (MatchType.STARTS_WITH, 15.0)


def test_disabled_types_are_skipped(detector):
    """A type not enabled for the field never applies."""
    types = frozenset({MatchType.STARTS_WITH, MatchType.CONTAINS})
    assert detector.detect("laptop", "laptop", types) == (MatchType.STARTS_WITH, 15.0)
    assert detector.detect("laptop", "ptop", frozenset({MatchType.EXACT})) is None


def test_score_order_by_match_type(detector):
    """Exact >= startsWith >= wordBoundary >= contains >= fuzzy for equal weight."""
    scores = [
        detector.detect("laptop", "laptop", ALL_TYPES)[1],
        detector.detect("laptop stand", "laptop", ALL_TYPES)[1],
        detector.detect("big laptop", "laptop", ALL_TYPES)[1],
        detector.detect("biglaptop", "laptop", ALL_TYPES)[1],
        detector.detect("labtop", "laptop", ALL_TYPES)[1],
    ]
    assert scores == sorted(scores, reverse=True)


def test_fuzzy_match_scales_with_distance(detector):
    """Fuzzy score is base * (1 - distance / (threshold + 1))."""
    fuzzy = frozenset({MatchType.FUZZY})

    assert detector.detect("laptop", "labtop", fuzzy) == (MatchType.FUZZY, pytest.approx(1.5))
    assert detector.detect("keyboard", "keybaord", fuzzy) == (MatchType.FUZZY, pytest.approx(1.0))
    # Matches against a single token of a longer value
    assert detector.detect("best gaming chair", "gamng", fuzzy) == (MatchType.FUZZY, pytest.approx(1.5))


def test_fuzzy_never_exceeds_threshold(detector):
    """Distances above the threshold never match."""
    fuzzy = frozenset({MatchType.FUZZY})
    assert detector.detect("laptop", "laptpo", fuzzy) is None
    assert detector.detect("wxyz", "abcd", fuzzy) is None


def test_fuzzy_skips_short_queries(detector):
    """Queries shorter than the minimum fuzzy length never fuzzy-match."""
    assert detector.detect("ac", "ab", frozenset({MatchType.FUZZY})) is None


def test_field_weight_scales_score(field_scorer):
    """Field score is monotonic in weight."""
    scores = []
    for weight in (1, 25, 50, 75, 100):
        field = FieldConfig(name="name", weight=weight, match_types=[MatchType.EXACT])
        _, score = field_scorer.score(field, {"name": "laptop"}, "laptop")
        scores.append(score)
        assert score == pytest.approx(20.0 * weight / 100)
    assert scores == sorted(scores)


def test_field_config_validation():
    """Weights are clamped and empty match types rejected."""
    assert FieldConfig(name="a", weight=500).weight == 100
    assert FieldConfig(name="a", weight=0).weight == 1
    with pytest.raises(InvalidArgumentError):
        FieldConfig(name="a", match_types=[])
    with pytest.raises(InvalidArgumentError):
        FieldConfig(name="a", match_types=["regex"])


def test_value_of_called_once(field_scorer):
    """Derived field values are computed once per record."""
    calls = []

    def full_name(record):
        calls.append(record)
        return f"{record['first']} {record['last']}"

    field = FieldConfig(name="fullName", match_types=[MatchType.EXACT, MatchType.CONTAINS], value_of=full_name)
    match, score = field_scorer.score(field, {"first": "Ada", "last": "Lovelace"}, "ada lovelace")

    assert match.type == MatchType.EXACT
    assert score == pytest.approx(20.0)
    assert len(calls) == 1


def test_missing_field_does_not_match(field_scorer):
    """Absent or None values contribute nothing."""
    field = FieldConfig(name="name", match_types=[MatchType.CONTAINS])
    assert field_scorer.score(field, {}, "laptop") is None
    assert field_scorer.score(field, {"name": None}, "laptop") is None


def test_normalize_value():
    """Values are trimmed, lowercased, and lists are joined."""
    assert normalize_value("  Gaming LAPTOP ") == "gaming laptop"
    assert normalize_value(["Red", None, "Blue"]) == "red blue"
    assert normalize_value(42) == "42"
    assert normalize_value(None) == ""


def test_query_preprocessor():
    """Default preprocessing trims and lowercases; custom hooks replace it."""
    assert QueryPreprocessor().preprocess("  LapTop ") == "laptop"
    assert QueryPreprocessor().preprocess("   ") == ""
    assert QueryPreprocessor(lambda q: q.replace("-", " ").lower()).preprocess("USB-C") == "usb c"

    with pytest.raises(InvalidArgumentError):
        QueryPreprocessor(max_query_length=5).preprocess("too long query")
    with pytest.raises(InvalidArgumentError):
        QueryPreprocessor().preprocess(None)
