"""Compose classifier, theme and aggregate outputs into a :class:`DashboardReport`."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from peerpulse.analysis.themes import extract_themes
from peerpulse.records import FeedbackRecord, HealthCheckRecord
from peerpulse.reporting import config
from peerpulse.reporting.aggregator import (
    aggregate_health,
    aggregate_sentiment,
    average_rating,
    ensure_records,
    overall_score,
    positive_share,
    score_band,
)
from peerpulse.reporting.models import DashboardReport

logger = logging.getLogger(__name__)

NO_DATA_BAND = "No Data"


def build_dashboard_report(
    team_id: str,
    feedback_records: Iterable[FeedbackRecord],
    health_records: Iterable[HealthCheckRecord],
    *,
    top_n: int = config.MAX_THEMES,
    team_name: Optional[str] = None,
) -> DashboardReport:
    """Build the dashboard view-model for *team_id*.

    The function is *pure*: it performs no I/O, does not look at the clock and
    does not mutate its inputs, so identical inputs give equal reports.
    Missing data degrades to zero/``None`` values; input that is not a
    collection of records raises ``TypeError``.
    """
    feedback = ensure_records(feedback_records, FeedbackRecord, "feedback records")
    health_checks = ensure_records(health_records, HealthCheckRecord, "health records")

    distribution = aggregate_sentiment(feedback)
    health = aggregate_health(health_checks, team_id=team_id)
    overall = overall_score(health)
    themes = extract_themes((record.content for record in feedback), top_n=top_n)

    logger.debug(
        "Built dashboard report for team=%s feedback=%d health_checks=%d",
        team_id,
        len(feedback),
        len(health_checks),
    )

    return DashboardReport(
        team_id=team_id,
        team_name=team_name,
        feedback_count=len(feedback),
        average_rating=average_rating(feedback),
        sentiment_distribution=distribution,
        positive_share=positive_share(distribution),
        aggregated_health=health,
        overall_health=overall,
        health_band=score_band(overall) if health.sample_count else NO_DATA_BAND,
        top_themes=themes,
    )
