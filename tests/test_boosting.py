"""Tests for ranking boosts."""

import math
from datetime import date, datetime, timedelta, timezone

import pytest

from searchcore.engine.boosting import RankingBooster, parse_timestamp
from searchcore.engine.types import BoostConfig, RankingConfig

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def make_booster(**ranking):
    failures = []
    booster = RankingBooster(
        RankingConfig(**ranking),
        model="products",
        clock=lambda: NOW,
        on_scorer_failure=failures.append,
    )
    return booster, failures


def test_recency_boost_at_age_zero_is_weight():
    """A record created now gets the full weight."""
    booster, _ = make_booster(boost_recent=BoostConfig("created_at", 10))
    assert booster.recency_boost({"created_at": NOW}) == pytest.approx(10.0)


def test_recency_boost_decays_exponentially():
    """Boost is weight * exp(-age_days / 30) and strictly decreasing."""
    booster, _ = make_booster(boost_recent=BoostConfig("created_at", 10))

    boosts = [
        booster.recency_boost({"created_at": NOW - timedelta(days=days)})
        for days in (0, 1, 7, 30, 365)
    ]

    assert boosts[3] == pytest.approx(10 * math.exp(-1))
    assert all(a > b for a, b in zip(boosts, boosts[1:]))
    assert booster.recency_boost({"created_at": NOW - timedelta(days=10_000)}) < 1e-100


def test_recency_boost_accepts_common_timestamp_formats():
    """ISO strings, epoch milliseconds, dates and naive datetimes are accepted."""
    booster, _ = make_booster(boost_recent=BoostConfig("created_at", 10))
    expected = 10 * math.exp(-1)

    assert booster.recency_boost({"created_at": "2024-05-02T00:00:00Z"}) == pytest.approx(expected)
    assert booster.recency_boost({"created_at": "2024-05-02T00:00:00.000+00:00"}) == pytest.approx(expected)
    assert booster.recency_boost({"created_at": datetime(2024, 5, 2)}) == pytest.approx(expected)
    assert booster.recency_boost({"created_at": date(2024, 5, 2)}) == pytest.approx(expected)
    epoch_ms = int(datetime(2024, 5, 2, tzinfo=timezone.utc).timestamp() * 1000)
    assert booster.recency_boost({"created_at": epoch_ms}) == pytest.approx(expected)


def test_recency_boost_future_timestamp_is_clamped():
    """Future timestamps count as age zero."""
    booster, _ = make_booster(boost_recent=BoostConfig("created_at", 10))
    assert booster.recency_boost({"created_at": NOW + timedelta(days=3)}) == pytest.approx(10.0)


@pytest.mark.parametrize("value", [None, "not a date", True, float("nan"), object()])
def test_recency_boost_invalid_timestamp_is_zero(value):
    """Missing or invalid timestamps contribute 0."""
    booster, _ = make_booster(boost_recent=BoostConfig("created_at", 10))
    assert booster.recency_boost({"created_at": value}) == 0.0
    assert booster.recency_boost({}) == 0.0


def test_parse_timestamp_returns_aware_utc():
    """Parsed timestamps are timezone-aware."""
    parsed = parse_timestamp("2024-05-02T10:30:00")
    assert parsed.tzinfo is not None
    assert parsed == datetime(2024, 5, 2, 10, 30, tzinfo=timezone.utc)


def test_popularity_boost_is_logarithmic():
    """Boost is weight * ln(value + 1), zero at zero, strictly increasing."""
    booster, _ = make_booster(boost_popular=BoostConfig("views", 2))

    assert booster.popularity_boost({"views": 0}) == 0.0
    assert booster.popularity_boost({"views": math.e - 1}) == pytest.approx(2.0)
    assert booster.popularity_boost({"views": 9}) == pytest.approx(2 * math.log(10))

    boosts = [booster.popularity_boost({"views": v}) for v in (0, 1, 10, 100, 1000)]
    assert all(a < b for a, b in zip(boosts, boosts[1:]))


@pytest.mark.parametrize("value", [None, -5, "many", True])
def test_popularity_boost_invalid_value_is_zero(value):
    """Missing, negative or non-numeric popularity contributes 0."""
    booster, _ = make_booster(boost_popular=BoostConfig("views", 2))
    assert booster.popularity_boost({"views": value}) == 0.0


def test_popularity_boost_reads_attributes():
    """Records may be plain objects instead of mappings."""

    class Article:
        views = 9

    booster, _ = make_booster(boost_popular=BoostConfig("views", 1))
    assert booster.popularity_boost(Article()) == pytest.approx(math.log(10))


def test_custom_scorer_added_unclamped():
    """Custom scores, negative ones included, pass through."""
    booster, _ = make_booster(custom_scorer=lambda record, query: record["bonus"])
    assert booster.custom_boost({"bonus": 4.5}, "q") == 4.5
    assert booster.custom_boost({"bonus": -3}, "q") == -3.0


def test_custom_scorer_receives_original_query():
    """The custom scorer sees the query as the caller typed it."""
    seen = []
    booster, _ = make_booster(custom_scorer=lambda record, query: seen.append(query) or 0)
    booster.custom_boost({}, "Gaming Laptop")
    assert seen == ["Gaming Laptop"]


def test_custom_scorer_failure_is_zero_and_reported():
    """A raising scorer contributes 0 and is reported, not propagated."""

    def broken(record, query):
        raise RuntimeError("boom")

    booster, failures = make_booster(custom_scorer=broken)
    assert booster.custom_boost({}, "q") == 0.0
    assert failures == ["products"]


def test_custom_scorer_non_number_is_zero():
    """NaN or non-numeric returns are treated as failures."""
    booster, failures = make_booster(custom_scorer=lambda record, query: float("nan"))
    assert booster.custom_boost({}, "q") == 0.0

    booster_obj, failures_obj = make_booster(custom_scorer=lambda record, query: object())
    assert booster_obj.custom_boost({}, "q") == 0.0

    assert failures == ["products"]
    assert failures_obj == ["products"]


def test_total_boost_sums_components():
    """Total boost adds recency, popularity and custom contributions."""
    booster, _ = make_booster(
        boost_recent=BoostConfig("created_at", 10),
        boost_popular=BoostConfig("views", 2),
        custom_scorer=lambda record, query: 1.5,
    )
    record = {"created_at": NOW, "views": 9}
    assert booster.total_boost(record, "q") == pytest.approx(10 + 2 * math.log(10) + 1.5)


def test_no_ranking_config_means_no_boost():
    """Absent ranking config contributes nothing."""
    booster = RankingBooster(None, clock=lambda: NOW)
    assert booster.total_boost({"created_at": NOW, "views": 100}, "q") == 0.0
