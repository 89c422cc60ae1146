"""Configuration constants for the reporting pipeline."""
from __future__ import annotations

import os

# Maximum number of themes listed on the dashboard and in the digest
MAX_THEMES: int = int(os.getenv("REPORT_MAX_THEMES", "10"))

# Number of ISO weeks shown in the health trend
TREND_WEEKS: int = int(os.getenv("REPORT_TREND_WEEKS", "4"))

# Maximum number of emojis displayed in the sentiment bar
MAX_EMOJI_BAR: int = int(os.getenv("REPORT_MAX_EMOJI_BAR", "20"))

# Width (in blocks) of the per-category health bars in the digest
HEALTH_BAR_WIDTH: int = int(os.getenv("REPORT_HEALTH_BAR_WIDTH", "10"))

# Digests at or above this length are uploaded as a file instead of a message
SLACK_MESSAGE_LIMIT: int = int(os.getenv("REPORT_SLACK_MESSAGE_LIMIT", "2800"))

# Ask OpenAI for a short coaching note built from the dashboard metrics
SUMMARY_ENABLED: bool = os.getenv("DIGEST_SUMMARY_ENABLED", "false").lower() == "true"

# Raw survey scores (1-10) are multiplied by this to land on 0-100
HEALTH_SCALE: int = 10
