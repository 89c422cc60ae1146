"""Unit tests for reporting.aggregator."""

from __future__ import annotations

import datetime

import pytest

from peerpulse.records import Sentiment
from peerpulse.reporting import aggregator as ag
from peerpulse.reporting.models import AggregatedTeamHealth, SentimentDistribution

UTC = datetime.timezone.utc


def test_aggregate_health_empty_is_all_zero():
    health = ag.aggregate_health([])

    assert health == AggregatedTeamHealth()
    assert health.to_dict() == {
        "team_id": None,
        "motivation": 0,
        "collaboration": 0,
        "communication": 0,
        "workload": 0,
        "sample_count": 0,
    }


def test_single_perfect_record_scores_100(make_health):
    health = ag.aggregate_health([make_health(10, 10, 10, 10, 10)], team_id="T1")

    assert health.scores() == {
        "motivation": 100.0,
        "collaboration": 100.0,
        "communication": 100.0,
        "workload": 100.0,
    }
    assert health.sample_count == 1
    assert health.team_id == "T1"


def test_means_are_scaled_and_rounded(make_health):
    records = [
        make_health(7, 6, 9, 5, satisfaction=1),
        make_health(8, 9, 9, 6, satisfaction=10),
        make_health(8, 9, 9, 6, satisfaction=10),
    ]
    health = ag.aggregate_health(records)

    assert health.motivation == 76.7
    assert health.collaboration == 80.0
    assert health.communication == 90.0
    assert health.workload == 56.7
    assert health.sample_count == 3
    # Satisfaction is collected but not part of the aggregate view.
    assert "satisfaction" not in health.to_dict()


def test_scores_stay_within_range(make_health):
    low = ag.aggregate_health([make_health(1, 1, 1, 1, 1)])
    assert all(value == 10.0 for value in low.scores().values())

    mixed = ag.aggregate_health([make_health(1, 10, 3, 7), make_health(10, 1, 8, 2)])
    assert all(0 <= value <= 100 for value in mixed.scores().values())


def test_aggregate_health_accepts_generators(make_health):
    health = ag.aggregate_health(make_health(6, 6, 6, 6) for _ in range(2))
    assert health.motivation == 60.0
    assert health.sample_count == 2


def test_aggregate_sentiment_uses_explicit_tags_only(make_feedback):
    records = [
        make_feedback(sentiment=Sentiment.POSITIVE),
        # Tag wins even when the wording would classify differently.
        make_feedback(content="Terrible and late", sentiment=Sentiment.POSITIVE),
        make_feedback(sentiment=Sentiment.CONSTRUCTIVE),
        make_feedback(sentiment=Sentiment.NEUTRAL),
        make_feedback(content="Great!", sentiment=None),
    ]
    dist = ag.aggregate_sentiment(records)

    assert dist == SentimentDistribution(positive=2, neutral=1, constructive=1)
    assert sum(dist.to_dict().values()) <= len(records)


def test_aggregate_sentiment_empty():
    assert ag.aggregate_sentiment([]).to_dict() == {
        "positive": 0,
        "neutral": 0,
        "constructive": 0,
    }


def test_average_rating(make_feedback):
    assert ag.average_rating([make_feedback(5), make_feedback(4), make_feedback(3)]) == 4.0
    assert ag.average_rating([]) is None


@pytest.mark.parametrize(
    "dist, expected",
    [
        (SentimentDistribution(2, 1, 1), 50.0),
        (SentimentDistribution(1, 1, 1), 33.3),
        (SentimentDistribution(), 0.0),
    ],
)
def test_positive_share(dist, expected):
    assert ag.positive_share(dist) == expected


def test_overall_score():
    health = AggregatedTeamHealth(
        motivation=80.0, collaboration=70.0, communication=90.0, workload=60.0, sample_count=2
    )
    assert ag.overall_score(health) == 75.0
    assert ag.overall_score(AggregatedTeamHealth()) == 0.0


@pytest.mark.parametrize(
    "score, band",
    [
        (100.0, "Excellent"),
        (90.0, "Excellent"),
        (89.9, "Good"),
        (70.0, "Good"),
        (50.0, "Average"),
        (49.9, "Needs Attention"),
        (0.0, "Needs Attention"),
    ],
)
def test_score_band(score, band):
    assert ag.score_band(score) == band


def test_health_trend_buckets_by_iso_week(make_health):
    records = [
        make_health(10, 10, 10, 10, created_at=datetime.datetime(2024, 6, 3, tzinfo=UTC)),
        make_health(6, 6, 6, 6, created_at=datetime.datetime(2024, 6, 5, tzinfo=UTC)),
        make_health(5, 5, 5, 5, created_at=datetime.datetime(2024, 6, 10, tzinfo=UTC)),
        make_health(1, 1, 1, 1, created_at=datetime.datetime(2024, 5, 27, tzinfo=UTC)),
        make_health(9, 9, 9, 9),  # no timestamp, skipped
    ]

    trend = ag.health_trend(records, weeks=2)

    assert [p.week for p in trend] == ["2024-W23", "2024-W24"]
    assert trend[0].motivation == 80.0
    assert trend[0].overall == 80.0
    assert trend[0].sample_count == 2
    assert trend[1].overall == 50.0

    assert [p.week for p in ag.health_trend(records, weeks=10)] == [
        "2024-W22",
        "2024-W23",
        "2024-W24",
    ]
    assert ag.health_trend(records, weeks=0) == []
    assert ag.health_trend([]) == []


def test_week_over_week_change(make_health):
    records = [
        make_health(7, 7, 7, 7, created_at=datetime.datetime(2024, 6, 3, tzinfo=UTC)),
        make_health(5, 6, 5, 5, created_at=datetime.datetime(2024, 6, 10, tzinfo=UTC)),
    ]
    trend = ag.health_trend(records)

    assert ag.week_over_week_change(trend) == -17.5
    assert ag.week_over_week_change(trend[:1]) is None
    assert ag.week_over_week_change([]) is None


def test_participation_rate(make_health):
    records = [
        make_health(user_id="U1"),
        make_health(user_id="U1"),
        make_health(user_id="U2"),
        make_health(user_id="U9"),  # not a member
    ]
    assert ag.participation_rate(records, ["U1", "U2", "U3", "U4"]) == 50.0
    assert ag.participation_rate(records, []) == 0.0


@pytest.mark.parametrize("bad", [None, "records", {"id": "H1"}, 42])
def test_non_collection_input_fails_fast(bad):
    with pytest.raises(TypeError):
        ag.aggregate_health(bad)


def test_wrong_record_type_fails_fast(make_feedback):
    with pytest.raises(TypeError):
        ag.aggregate_health([make_feedback()])
