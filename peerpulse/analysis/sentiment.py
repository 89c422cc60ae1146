"""Keyword-based sentiment classification for feedback text.

The classifier is deliberately simple: every whitespace token that *contains*
a lexicon entry moves the score by one, so "greatly" counts as "great".
Negation ("not good") and intensity are not handled, and mixed feedback such
as "late but great" nets out to neutral.

``classify`` is what dashboards and tests use. ``suggest_tag`` is the
author-assist helper that proposes a stored :class:`~peerpulse.records.Sentiment`
tag when feedback is written; stored tags are never re-labelled at read time.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from peerpulse.records import Sentiment

_logger = logging.getLogger(__name__)

POSITIVE_WORDS = (
    "great",
    "excellent",
    "amazing",
    "wonderful",
    "helpful",
    "strong",
    "good",
    "best",
    "outstanding",
    "fantastic",
)

NEGATIVE_WORDS = (
    "bad",
    "poor",
    "terrible",
    "awful",
    "weak",
    "late",
    "slow",
    "difficult",
)


class SentimentLabel(str, Enum):
    """Enumeration of supported sentiment classes."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class SentimentResult:
    """Structured sentiment analysis output."""

    label: SentimentLabel
    score: int  # net keyword hits, positive minus negative

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label.value, "score": self.score}


def _keyword_score(text: str) -> int:
    score = 0
    for token in text.lower().split():
        if any(word in token for word in POSITIVE_WORDS):
            score += 1
        if any(word in token for word in NEGATIVE_WORDS):
            score -= 1
    return score


def analyze_sentiment(text: Optional[str]) -> SentimentResult:
    """Classify *text* and return the label together with its keyword score.

    ``None`` is treated as an empty string and classified as neutral.
    """
    if text is None:
        text = ""
    elif not isinstance(text, str):
        raise TypeError(f"Expected text or None, got {type(text).__name__}")

    score = _keyword_score(text)
    if score > 0:
        label = SentimentLabel.POSITIVE
    elif score < 0:
        label = SentimentLabel.NEGATIVE
    else:
        label = SentimentLabel.NEUTRAL
    return SentimentResult(label=label, score=score)


def classify(text: Optional[str]) -> SentimentLabel:
    """Return ``positive``, ``neutral`` or ``negative`` for *text*."""
    return analyze_sentiment(text).label


_TAG_FOR_LABEL = {
    SentimentLabel.POSITIVE: Sentiment.POSITIVE,
    SentimentLabel.NEUTRAL: Sentiment.NEUTRAL,
    SentimentLabel.NEGATIVE: Sentiment.CONSTRUCTIVE,
}


def suggest_tag(text: Optional[str]) -> Sentiment:
    """Propose the stored sentiment tag for a feedback draft."""
    result = analyze_sentiment(text)
    _logger.debug("Suggested tag %s (score=%d)", result.label.value, result.score)
    return _TAG_FOR_LABEL[result.label]
