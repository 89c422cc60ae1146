import datetime
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from peerpulse.exceptions import InvalidRecordError, TeamNotFoundError
from peerpulse.records import (
    HEALTH_CATEGORIES,
    FeedbackRecord,
    HealthCheckRecord,
    as_utc,
)
from peerpulse.reporting import config
from peerpulse.reporting.assembler import build_dashboard_report
from peerpulse.reporting.models import DashboardReport

RATING_RANGE = (1, 5)
HEALTH_SCORE_RANGE = (1, 10)


def _check_rating(record: FeedbackRecord) -> None:
    low, high = RATING_RANGE
    if not low <= record.rating <= high:
        raise InvalidRecordError(
            f"Feedback {record.id} rating {record.rating} is outside {low}-{high}."
        )


def _check_scores(record: HealthCheckRecord) -> None:
    low, high = HEALTH_SCORE_RANGE
    for category in HEALTH_CATEGORIES:
        value = record.score(category)
        if not low <= value <= high:
            raise InvalidRecordError(
                f"Health check {record.id} {category}={value} is outside {low}-{high}."
            )


@dataclass
class Team:
    """A team and the user ids of its members."""

    team_id: str
    name: str
    member_ids: Tuple[str, ...] = field(default_factory=tuple)


class ThreadSafeRecordStore:
    """A thread-safe in-memory store for teams, feedback and health checks.

    The store enforces the invariants the analytics core relies on (ratings
    1-5, survey scores 1-10, known teams) so the core itself never has to
    validate rows.
    """

    def __init__(self) -> None:
        self._teams: Dict[str, Team] = {}
        self._feedback: Dict[str, FeedbackRecord] = {}
        self._health_checks: Dict[str, HealthCheckRecord] = {}
        self._lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def add_team(
        self, team_id: str, name: str, member_ids: Iterable[str] = ()
    ) -> Team:
        """Register a team. Raises ValueError if *team_id* is already taken."""
        team = Team(team_id=team_id, name=name, member_ids=tuple(member_ids))
        with self._lock:
            if team_id in self._teams:
                raise ValueError(f"Team with ID {team_id} already exists.")
            self._teams[team_id] = team
        self._logger.info("team_added", extra={"team_id": team_id})
        return team

    def get_team(self, team_id: str) -> Optional[Team]:
        """Retrieves a team by its ID. Returns None if not found."""
        with self._lock:
            return self._teams.get(team_id)

    def find_team(self, key: str) -> Team:
        """Look a team up by id first, then by case-insensitive name.

        Raises
        ------
        TeamNotFoundError
            If neither the id nor any team name matches *key*.
        """
        wanted = key.strip()
        with self._lock:
            team = self._teams.get(wanted)
            if team is not None:
                return team
            for candidate in self._teams.values():
                if candidate.name.lower() == wanted.lower():
                    return candidate
        raise TeamNotFoundError(f"No team matches '{key}'.")

    def list_teams(self) -> List[Team]:
        with self._lock:
            return list(self._teams.values())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_feedback(self, record: FeedbackRecord) -> None:
        """Store *record* after checking its rating and team.

        Raises
        ------
        InvalidRecordError
            If the rating is outside 1-5, the team is unknown or the id is
            already used.
        """
        _check_rating(record)
        with self._lock:
            self._check_team(record.team_id, record.id)
            if record.id in self._feedback:
                raise InvalidRecordError(f"Feedback with ID {record.id} already exists.")
            self._feedback[record.id] = record
        self._logger.info(
            "feedback_received",
            extra={"team_id": record.team_id, "feedback_id": record.id},
        )

    def add_health_check(self, record: HealthCheckRecord) -> None:
        """Store a health-check submission after checking every score is 1-10."""
        _check_scores(record)
        with self._lock:
            self._check_team(record.team_id, record.id)
            if record.id in self._health_checks:
                raise InvalidRecordError(
                    f"Health check with ID {record.id} already exists."
                )
            self._health_checks[record.id] = record
        self._logger.info(
            "health_check_received",
            extra={"team_id": record.team_id, "user_id": record.user_id},
        )

    def _check_team(self, team_id: str, record_id: str) -> None:
        # Caller must hold the lock.
        if team_id not in self._teams:
            raise InvalidRecordError(
                f"Record {record_id} references unknown team {team_id}."
            )

    def load_rows(self, payload: Mapping[str, Any]) -> Dict[str, int]:
        """Bulk-load an export of ``teams``, ``feedback`` and ``health_checks`` rows.

        Every row is parsed and validated before anything is stored, so a bad
        row leaves the store untouched. Returns the number of rows loaded per
        section.

        Raises
        ------
        InvalidRecordError
            If a record fails validation or references an unknown team.
        ValueError, KeyError, TypeError
            If a row cannot be parsed at all.
        """
        if not isinstance(payload, Mapping):
            raise TypeError(
                f"Expected a mapping of row lists, got {type(payload).__name__}."
            )
        teams = [
            Team(
                team_id=str(row["id"]),
                name=row.get("name") or str(row["id"]),
                member_ids=tuple(row.get("member_ids", [])),
            )
            for row in payload.get("teams", [])
        ]
        feedback = [FeedbackRecord.from_row(row) for row in payload.get("feedback", [])]
        health_checks = [
            HealthCheckRecord.from_row(row) for row in payload.get("health_checks", [])
        ]
        for record in feedback:
            _check_rating(record)
        for record in health_checks:
            _check_scores(record)

        with self._lock:
            team_ids = set(self._teams)
            for team in teams:
                if team.team_id in team_ids:
                    raise ValueError(f"Team with ID {team.team_id} already exists.")
                team_ids.add(team.team_id)
            for records, existing in (
                (feedback, self._feedback),
                (health_checks, self._health_checks),
            ):
                seen = set(existing)
                for record in records:
                    if record.team_id not in team_ids:
                        raise InvalidRecordError(
                            f"Record {record.id} references unknown team {record.team_id}."
                        )
                    if record.id in seen:
                        raise InvalidRecordError(
                            f"Record with ID {record.id} already exists."
                        )
                    seen.add(record.id)

            for team in teams:
                self._teams[team.team_id] = team
            self._feedback.update((r.id, r) for r in feedback)
            self._health_checks.update((r.id, r) for r in health_checks)

        loaded = {
            "teams": len(teams),
            "feedback": len(feedback),
            "health_checks": len(health_checks),
        }
        self._logger.info("Loaded rows into record store: %s", loaded)
        return loaded

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_feedback(self, team_id: str) -> List[FeedbackRecord]:
        """Return the team's feedback in insertion order."""
        with self._lock:
            return [r for r in self._feedback.values() if r.team_id == team_id]

    def list_health_checks(
        self, team_id: str, since: Optional[datetime.datetime] = None
    ) -> List[HealthCheckRecord]:
        """Return the team's health checks, optionally only those at/after *since*.

        Records without a timestamp are dropped when *since* is given. Naive
        timestamps on either side are compared as UTC.
        """
        with self._lock:
            records = [r for r in self._health_checks.values() if r.team_id == team_id]
        if since is not None:
            cutoff = as_utc(since)
            records = [
                r
                for r in records
                if r.created_at is not None and as_utc(r.created_at) >= cutoff
            ]
        return records

    def count(self) -> Dict[str, int]:
        with self._lock:
            return {
                "teams": len(self._teams),
                "feedback": len(self._feedback),
                "health_checks": len(self._health_checks),
            }

    # ------------------------------------------------------------------
    # Reporting helper
    # ------------------------------------------------------------------

    def build_report(
        self, team_id: str, *, top_n: int = config.MAX_THEMES
    ) -> DashboardReport:
        """Return the dashboard report for *team_id* using the reporting pipeline.

        Raises
        ------
        TeamNotFoundError
            If the team does not exist.
        """
        team = self.get_team(team_id)
        if team is None:
            raise TeamNotFoundError(f"Team {team_id} not found for reporting.")
        return build_dashboard_report(
            team.team_id,
            self.list_feedback(team.team_id),
            self.list_health_checks(team.team_id),
            top_n=top_n,
            team_name=team.name,
        )
