"""Context dataclass for rendering team digests.

This module defines `DigestContext`, a typed container that holds all values
expected by the Jinja2 template `peerpulse/reporting/templates/digest.md.j2`.

A :class:`~peerpulse.reporting.models.DashboardReport` stays a pure function
of the records; everything that depends on the outside world (today's date,
the optional OpenAI note, display formatting) is added here instead.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime as _dt
from datetime import timezone as _tz
from typing import Any, Dict, Iterable, List, Optional

from peerpulse.analysis.summary import generate_team_summary
from peerpulse.reporting import config
from peerpulse.reporting.aggregator import score_band, week_over_week_change
from peerpulse.reporting.models import DashboardReport, HealthTrendPoint

__all__ = [
    "DigestStats",
    "DigestContext",
    "build_digest_context",
]

logger = logging.getLogger(__name__)

CATEGORY_LABELS = {
    "motivation": "Motivation",
    "collaboration": "Collaboration",
    "communication": "Communication",
    "workload": "Workload",
}


@dataclass(slots=True)
class DigestStats:
    """Summary cards shown at the top of the digest."""

    feedback_count: int
    average_rating: str  # "4.2" or "N/A"
    positive_share: float
    overall_health: float
    health_band: str
    sample_count: int
    participation: Optional[float] = None  # % of members who checked in

    def to_dict(self) -> Dict[str, Any]:  # noqa: D401 – simple helper
        """Return a *plain* ``dict`` representation suitable for Jinja."""
        return asdict(self)


@dataclass(slots=True)
class DigestContext:
    """Container with all fields used by the digest template."""

    # Header & meta
    team_id: str
    team_label: str
    date: str  # ISO-8601 date string (UTC)

    # Cards & sentiment
    stats: DigestStats
    emoji_bar: str
    sentiment_counts: Dict[str, int]

    # Health & themes
    health_rows: List[Dict[str, Any]] = field(default_factory=list)
    trend: List[Dict[str, Any]] = field(default_factory=list)
    trend_change: Optional[float] = None  # overall points vs the previous week
    themes: List[Dict[str, Any]] = field(default_factory=list)

    # Optional narrative paragraph
    summary: str = ""

    def to_dict(self) -> Dict[str, Any]:  # noqa: D401 – simple helper
        """Return a *plain* ``dict`` (recursively) for Jinja rendering."""
        return asdict(self)

    # Alias for convenience (e.g. template kwargs)
    __call__ = to_dict


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------
def _emoji_bar(counts: Dict[str, int], max_emoji: int = 20) -> str:
    """Return a string bar of emojis based on *counts*.

    Positive → 😊, Neutral → 😐, Constructive → 🛠️.  Limit total length to
    roughly *max_emoji*; every non-zero bucket shows at least one emoji.
    """

    pos = counts.get("positive", 0)
    neu = counts.get("neutral", 0)
    con = counts.get("constructive", 0)
    total = pos + neu + con
    if not total:
        return ""

    scale = max_emoji / total
    pos_e = "😊" * max(1 if pos else 0, round(pos * scale))
    neu_e = "😐" * max(1 if neu else 0, round(neu * scale))
    con_e = "🛠" * max(1 if con else 0, round(con * scale))
    return pos_e + neu_e + con_e


def _health_bar(score: float, width: int = 10) -> str:
    """Return a fixed-width block bar for a 0-100 *score*."""
    filled = max(0, min(width, round(score / 100 * width)))
    return "█" * filled + "░" * (width - filled)


def _format_rating(rating: Optional[float]) -> str:
    return "N/A" if rating is None else f"{rating:.1f}"


def _trend_rows(trend: Iterable[HealthTrendPoint]) -> List[Dict[str, Any]]:
    rows = []
    for point in trend:
        row = point.to_dict()
        row["band"] = score_band(point.overall)
        rows.append(row)
    return rows


# ---------------------------------------------------------------------------
# Conversion helper
# ---------------------------------------------------------------------------
def build_digest_context(
    report: DashboardReport,
    *,
    trend: Iterable[HealthTrendPoint] = (),
    participation: Optional[float] = None,
    date: Optional[str] = None,
) -> DigestContext:
    """Convert a ``DashboardReport`` into a :class:`DigestContext`.

    A failing OpenAI summary is logged and left empty so that rendering
    always succeeds.
    """

    health = report.aggregated_health
    health_rows = [
        {
            "category": category,
            "label": CATEGORY_LABELS[category],
            "score": score,
            "band": score_band(score),
            "bar": _health_bar(score, config.HEALTH_BAR_WIDTH),
        }
        for category, score in health.scores().items()
    ]

    points = list(trend)
    summary = ""
    if config.SUMMARY_ENABLED:
        try:
            summary = generate_team_summary(
                report, trend=points, participation=participation
            )
        except Exception as exc:  # noqa: BLE001 – summary is optional
            logger.warning("Summary failed for team %s: %s", report.team_id, exc)

    counts = report.sentiment_distribution.to_dict()
    stats = DigestStats(
        feedback_count=report.feedback_count,
        average_rating=_format_rating(report.average_rating),
        positive_share=report.positive_share,
        overall_health=report.overall_health,
        health_band=report.health_band,
        sample_count=health.sample_count,
        participation=participation,
    )

    return DigestContext(
        team_id=report.team_id,
        team_label=report.display_name,
        date=date or _dt.now(tz=_tz.utc).strftime("%Y-%m-%d"),
        stats=stats,
        emoji_bar=_emoji_bar(counts, config.MAX_EMOJI_BAR),
        sentiment_counts=counts,
        health_rows=health_rows if health.sample_count else [],
        trend=_trend_rows(points),
        trend_change=week_over_week_change(points),
        themes=[t.to_dict() for t in report.top_themes],
        summary=summary,
    )
