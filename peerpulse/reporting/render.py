"""Render team digests using Jinja2 templates and deliver them to Slack."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from jinja2 import Environment, FileSystemLoader

from peerpulse.reporting import config
from peerpulse.reporting.context import build_digest_context
from peerpulse.reporting.models import DashboardReport, HealthTrendPoint

logger = logging.getLogger(__name__)

_TEMPLATE_DIR = Path(__file__).parent / "templates"

# Slack mrkdwn doesn’t need HTML escaping – it breaks apostrophes etc.
_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_digest(
    report: DashboardReport,
    *,
    trend: Iterable[HealthTrendPoint] = (),
    participation: Optional[float] = None,
    date: Optional[str] = None,
) -> str:
    """Render a Slack-friendly markdown digest from a ``DashboardReport``."""

    context = build_digest_context(
        report, trend=trend, participation=participation, date=date
    )
    template = _env.get_template("digest.md.j2")
    return template.render(**context.to_dict())


def post_digest_to_slack(
    *,
    report: DashboardReport,
    client,
    channel: str,
    trend: Iterable[HealthTrendPoint] = (),
    participation: Optional[float] = None,
) -> None:
    """Send the digest for *report* to Slack *channel* using *client* (WebClient)."""

    # ------------------------------------------------------------------
    # 1. Post parent message
    # ------------------------------------------------------------------
    parent_resp = client.chat_postMessage(
        channel=channel,
        text=f"*Team Pulse for {report.display_name}*",
    )
    parent_ts = parent_resp["ts"]

    digest_text = render_digest(
        report, trend=trend, participation=participation
    )
    digest_len = len(digest_text)
    logger.debug(
        "Digest generated for team=%s channel=%s len=%d",
        report.team_id,
        channel,
        digest_len,
    )

    # ------------------------------------------------------------------
    # 2. Post threaded digest (message or file)
    # ------------------------------------------------------------------
    if digest_len < config.SLACK_MESSAGE_LIMIT:
        client.chat_postMessage(
            channel=channel,
            text=digest_text,
            thread_ts=parent_ts,
        )
    else:
        logger.debug(
            "Uploading digest as file (len=%d >= %d)", digest_len, config.SLACK_MESSAGE_LIMIT
        )
        client.files_upload_v2(
            channel=channel,
            title=f"Team Pulse {report.display_name}",
            content=digest_text,
            filename=f"team_pulse_{report.team_id}.md",
            thread_ts=parent_ts,
        )
