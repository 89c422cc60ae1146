"""Data structures for the reporting pipeline.

Everything here is derived on demand from raw records and never written back
to the store.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ThemeEntry:
    """A frequent word and how often it appeared."""

    word: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SentimentDistribution:
    """Counts of tagged feedback per sentiment."""

    positive: int = 0
    neutral: int = 0
    constructive: int = 0

    @property
    def total(self) -> int:
        return self.positive + self.neutral + self.constructive

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class AggregatedTeamHealth:
    """Average health-check scores scaled to 0-100."""

    team_id: Optional[str] = None
    motivation: float = 0.0
    collaboration: float = 0.0
    communication: float = 0.0
    workload: float = 0.0
    sample_count: int = 0

    def scores(self) -> Dict[str, float]:
        """Return the displayed categories in radar-chart order."""
        return {
            "motivation": self.motivation,
            "collaboration": self.collaboration,
            "communication": self.communication,
            "workload": self.workload,
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class HealthTrendPoint:
    """Aggregated health for a single ISO week."""

    week: str  # e.g. "2024-W23"
    motivation: float
    collaboration: float
    communication: float
    workload: float
    overall: float
    sample_count: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DashboardReport:
    """Everything the team dashboard widgets display."""

    team_id: str
    feedback_count: int
    average_rating: Optional[float]  # None when there is no feedback
    sentiment_distribution: SentimentDistribution
    positive_share: float
    aggregated_health: AggregatedTeamHealth
    overall_health: float
    health_band: str
    top_themes: List[ThemeEntry] = field(default_factory=list)
    team_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.team_name or self.team_id

    def to_dict(self) -> Dict[str, Any]:
        """Return a *plain* ``dict`` (recursively) for templates and JSON."""
        return asdict(self)
