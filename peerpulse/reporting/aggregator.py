"""Fold raw feedback and health-check rows into dashboard metrics.

Every function here is read-only: it never mutates the records it is given
and returns a fresh derived object. Empty input is a normal situation (a new
team, a quiet week) and produces zero/``None`` results rather than errors.
Input that is not a collection of records at all is a caller bug and raises
``TypeError`` straight away.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from collections.abc import Mapping
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar

from peerpulse.records import FeedbackRecord, HealthCheckRecord, Sentiment
from peerpulse.reporting import config
from peerpulse.reporting.models import (
    AggregatedTeamHealth,
    HealthTrendPoint,
    SentimentDistribution,
)

logger = logging.getLogger(__name__)

# Categories shown on the radar chart; satisfaction is collected but not shown.
DISPLAYED_CATEGORIES = ("motivation", "collaboration", "communication", "workload")

SCORE_BANDS = (
    (90.0, "Excellent"),
    (70.0, "Good"),
    (50.0, "Average"),
    (0.0, "Needs Attention"),
)

_R = TypeVar("_R")


def ensure_records(records: Iterable[_R], record_type: Type[_R], name: str) -> List[_R]:
    """Return *records* as a list, rejecting anything that is not a collection.

    Raises
    ------
    TypeError
        If *records* is ``None``, a string, a mapping, not iterable, or holds
        an item that is not a *record_type*.
    """
    if records is None or isinstance(records, (str, bytes, Mapping)):
        raise TypeError(
            f"{name} must be a collection of {record_type.__name__}, "
            f"got {type(records).__name__}"
        )
    try:
        items = list(records)
    except TypeError as exc:
        raise TypeError(
            f"{name} must be a collection of {record_type.__name__}"
        ) from exc
    for item in items:
        if not isinstance(item, record_type):
            raise TypeError(
                f"{name} contains {type(item).__name__}, expected {record_type.__name__}"
            )
    return items


def _scaled_mean(values: Sequence[int]) -> float:
    return round(sum(values) / len(values) * config.HEALTH_SCALE, 1)


def aggregate_health(
    records: Iterable[HealthCheckRecord], team_id: Optional[str] = None
) -> AggregatedTeamHealth:
    """Average each displayed category and scale it onto 0-100.

    An empty collection returns all-zero metrics with ``sample_count == 0``.
    """
    items = ensure_records(records, HealthCheckRecord, "health records")
    if not items:
        return AggregatedTeamHealth(team_id=team_id)

    scores = {
        category: _scaled_mean([record.score(category) for record in items])
        for category in DISPLAYED_CATEGORIES
    }
    return AggregatedTeamHealth(team_id=team_id, sample_count=len(items), **scores)


def aggregate_sentiment(records: Iterable[FeedbackRecord]) -> SentimentDistribution:
    """Tally the explicit sentiment tags of *records*.

    Untagged feedback is left out of the distribution; the classifier is not
    consulted here.
    """
    items = ensure_records(records, FeedbackRecord, "feedback records")
    counts: Counter[Sentiment] = Counter(
        record.sentiment for record in items if record.sentiment is not None
    )
    untagged = len(items) - sum(counts.values())
    if untagged:
        logger.debug("Skipping %d untagged feedback record(s)", untagged)
    return SentimentDistribution(
        positive=counts[Sentiment.POSITIVE],
        neutral=counts[Sentiment.NEUTRAL],
        constructive=counts[Sentiment.CONSTRUCTIVE],
    )


def average_rating(records: Iterable[FeedbackRecord]) -> Optional[float]:
    """Return the mean rating, or ``None`` when there is no feedback."""
    items = ensure_records(records, FeedbackRecord, "feedback records")
    if not items:
        return None
    return sum(record.rating for record in items) / len(items)


def positive_share(distribution: SentimentDistribution) -> float:
    """Percentage of tagged feedback that is positive (0.0 when none)."""
    if not distribution.total:
        return 0.0
    return round(distribution.positive / distribution.total * 100, 1)


def overall_score(health: AggregatedTeamHealth) -> float:
    """Mean of the displayed categories, already on the 0-100 scale."""
    if not health.sample_count:
        return 0.0
    values = list(health.scores().values())
    return round(sum(values) / len(values), 1)


def score_band(score: float) -> str:
    """Map a 0-100 score onto the label used by the health badges."""
    for threshold, label in SCORE_BANDS:
        if score >= threshold:
            return label
    return SCORE_BANDS[-1][1]


def _week_key(record: HealthCheckRecord) -> Tuple[int, int]:
    iso = record.created_at.isocalendar()  # type: ignore[union-attr]
    return iso[0], iso[1]


def health_trend(
    records: Iterable[HealthCheckRecord], weeks: int = config.TREND_WEEKS
) -> List[HealthTrendPoint]:
    """Aggregate *records* per ISO week and return the latest *weeks*, oldest first.

    Records without ``created_at`` cannot be placed in a week and are skipped.
    """
    items = ensure_records(records, HealthCheckRecord, "health records")
    if weeks <= 0:
        return []

    buckets: Dict[Tuple[int, int], List[HealthCheckRecord]] = defaultdict(list)
    for record in items:
        if record.created_at is None:
            continue
        buckets[_week_key(record)].append(record)

    points: List[HealthTrendPoint] = []
    for year, week in sorted(buckets)[-weeks:]:
        health = aggregate_health(buckets[(year, week)])
        points.append(
            HealthTrendPoint(
                week=f"{year}-W{week:02d}",
                motivation=health.motivation,
                collaboration=health.collaboration,
                communication=health.communication,
                workload=health.workload,
                overall=overall_score(health),
                sample_count=health.sample_count,
            )
        )
    return points


def week_over_week_change(trend: Sequence[HealthTrendPoint]) -> Optional[float]:
    """Overall-score change between the last two trend points, or None."""
    if len(trend) < 2:
        return None
    return round(trend[-1].overall - trend[-2].overall, 1)


def participation_rate(
    records: Iterable[HealthCheckRecord], member_ids: Iterable[str]
) -> float:
    """Percentage of *member_ids* who submitted at least one health check."""
    items = ensure_records(records, HealthCheckRecord, "health records")
    members = set(member_ids)
    if not members:
        return 0.0
    submitted = {record.user_id for record in items} & members
    return round(len(submitted) / len(members) * 100, 1)
