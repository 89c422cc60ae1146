"""Narrative "coach's note" for a team dashboard, written by OpenAI.

Only computed metrics are sent: the sentiment distribution, health scores
with their bands, the weekly trend, participation and the most frequent
words. Feedback comments themselves are never sent, so the note cannot quote
anyone.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from peerpulse.openai_client import chat_completion
from peerpulse.reporting.aggregator import score_band, week_over_week_change
from peerpulse.reporting.models import DashboardReport, HealthTrendPoint

_logger = logging.getLogger(__name__)

_ATTEMPTS = 2

_SYSTEM_PROMPT = (
    "You coach student project teams. You receive the metrics from a team's "
    "weekly pulse dashboard (peer feedback sentiment and 0-100 health scores). "
    "Write at most 100 words in a warm, direct tone: name the strongest area, "
    "the area that needs attention and one concrete thing to try this week. "
    "Do not repeat the numbers back."
)


def _metric_lines(
    report: DashboardReport,
    trend: List[HealthTrendPoint],
    participation: Optional[float],
) -> List[str]:
    dist = report.sentiment_distribution
    lines = [
        f"Feedback received: {report.feedback_count}",
        f"Tagged sentiment: {dist.positive} positive, {dist.neutral} neutral, "
        f"{dist.constructive} constructive ({report.positive_share}% positive)",
    ]
    if report.average_rating is not None:
        lines.append(f"Average peer rating: {report.average_rating:.1f} / 5")

    health = report.aggregated_health
    if health.sample_count:
        lines.append(
            f"Overall health: {report.overall_health} ({report.health_band}, "
            f"{health.sample_count} check-ins)"
        )
        lines.extend(
            f"- {category}: {score} ({score_band(score)})"
            for category, score in health.scores().items()
        )
    if participation is not None:
        lines.append(f"Participation: {participation}% of members")

    if trend:
        lines.append(
            "Weekly overall: "
            + ", ".join(f"{p.week} {p.overall}" for p in trend)
        )
        change = week_over_week_change(trend)
        if change is not None:
            lines.append(f"Change vs last week: {change:+.1f} points")

    if report.top_themes:
        lines.append(
            "Frequent words: " + ", ".join(t.word for t in report.top_themes[:5])
        )
    return lines


def generate_team_summary(
    report: DashboardReport,
    *,
    trend: Iterable[HealthTrendPoint] = (),
    participation: Optional[float] = None,
    max_tokens: int = 200,
    temperature: float = 0.4,
    max_length_chars: int = 700,
) -> str:
    """Return a short coaching note for *report*.

    An empty string is returned when the team has neither feedback nor health
    checks, since there is nothing to comment on. Raises RuntimeError once
    every attempt has failed.
    """

    if not report.feedback_count and not report.aggregated_health.sample_count:
        return ""

    body = "\n".join(_metric_lines(report, list(trend), participation))
    messages = [
        {"role": "system", "content": _SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f"Team: {report.display_name}\n{body}\n\nWrite the note.",
        },
    ]

    last_exc: Optional[Exception] = None
    for attempt in range(1, _ATTEMPTS + 1):
        try:
            resp = chat_completion(
                messages, temperature=temperature, max_tokens=max_tokens
            )
        except Exception as exc:  # noqa: BLE001
            _logger.warning(
                "Summary for team %s, attempt %d failed: %s",
                report.team_id,
                attempt,
                exc,
            )
            last_exc = exc
            continue

        note = (resp["choices"][0]["message"]["content"] or "").strip()
        if len(note) > max_length_chars:
            note = note[:max_length_chars].rstrip() + "…"
        return note

    raise RuntimeError("OpenAI summary generation failed") from last_exc
