"""Raw rows as they come back from the record store.

``FeedbackRecord`` and ``HealthCheckRecord`` are read-only inputs for the
analytics core. ``from_row`` accepts the plain dicts a hosted database client
returns (ISO-8601 timestamps, string sentiment tags) so callers do not have to
convert anything by hand.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

__all__ = [
    "Sentiment",
    "FeedbackRecord",
    "HealthCheckRecord",
    "HEALTH_CATEGORIES",
    "as_utc",
]

# Survey questions, in the order the pulse form asks them.
HEALTH_CATEGORIES = (
    "motivation",
    "collaboration",
    "communication",
    "workload",
    "satisfaction",
)


class Sentiment(str, Enum):
    """Sentiment tag chosen by the feedback author."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    CONSTRUCTIVE = "constructive"

    @classmethod
    def _missing_(cls, value: object) -> Optional["Sentiment"]:
        # Older rows were tagged "negative" before the label was softened.
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered == "negative":
                return cls.CONSTRUCTIVE
            for member in cls:
                if member.value == lowered:
                    return member
        return None


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """Return *value* in UTC; naive timestamps are taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def _parse_timestamp(raw: Any) -> Optional[datetime.datetime]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime.datetime):
        return as_utc(raw)
    text = str(raw)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.datetime.fromisoformat(text))


def _parse_sentiment(raw: Any) -> Optional[Sentiment]:
    if raw is None or raw == "":
        return None
    try:
        return Sentiment(raw)
    except ValueError:
        # Unknown tags are treated like untagged feedback.
        return None


@dataclass(frozen=True)
class FeedbackRecord:
    """One piece of peer feedback."""

    id: str
    team_id: str
    from_user_id: str
    to_user_id: str
    rating: int
    content: Optional[str] = None
    sentiment: Optional[Sentiment] = None
    created_at: Optional[datetime.datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "FeedbackRecord":
        """Build a record from a store row, tolerating missing optional keys."""
        return cls(
            id=str(row["id"]),
            team_id=str(row["team_id"]),
            from_user_id=str(row.get("from_user_id", "")),
            to_user_id=str(row.get("to_user_id", "")),
            rating=int(row["rating"]),
            content=row.get("content"),
            sentiment=_parse_sentiment(row.get("sentiment")),
            created_at=_parse_timestamp(row.get("created_at")),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "team_id": self.team_id,
            "from_user_id": self.from_user_id,
            "to_user_id": self.to_user_id,
            "rating": self.rating,
            "content": self.content,
            "sentiment": self.sentiment.value if self.sentiment else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class HealthCheckRecord:
    """One submission of the weekly team health survey (scores 1-10)."""

    id: str
    team_id: str
    user_id: str
    motivation: int
    collaboration: int
    communication: int
    workload: int
    satisfaction: int
    created_at: Optional[datetime.datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "HealthCheckRecord":
        scores = {name: int(row[name]) for name in HEALTH_CATEGORIES}
        return cls(
            id=str(row["id"]),
            team_id=str(row["team_id"]),
            user_id=str(row.get("user_id", "")),
            created_at=_parse_timestamp(row.get("created_at")),
            **scores,
        )

    def to_row(self) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            "id": self.id,
            "team_id": self.team_id,
            "user_id": self.user_id,
        }
        for name in HEALTH_CATEGORIES:
            row[name] = getattr(self, name)
        row["created_at"] = self.created_at.isoformat() if self.created_at else None
        return row

    def score(self, category: str) -> int:
        """Return the score for *category* (one of ``HEALTH_CATEGORIES``)."""
        if category not in HEALTH_CATEGORIES:
            raise KeyError(f"Unknown health category: {category}")
        return getattr(self, category)
