import atexit
import datetime
import json
import logging
import os
import re
import uuid  # For generating record ids
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from slack_bolt import Ack, App, Respond
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from peerpulse.analysis.sentiment import suggest_tag
from peerpulse.exceptions import InvalidRecordError, TeamNotFoundError
from peerpulse.records import (
    HEALTH_CATEGORIES,
    FeedbackRecord,
    HealthCheckRecord,
    Sentiment,
)
from peerpulse.reporting.aggregator import health_trend, participation_rate
from peerpulse.reporting.render import post_digest_to_slack
from peerpulse.store import ThreadSafeRecordStore

# Load environment variables from .env file
load_dotenv()

TEAM_PULSE_COMMAND = os.getenv("TEAM_PULSE_COMMAND", "/team-pulse")
PULSE_CHECK_COMMAND = os.getenv("PULSE_CHECK_COMMAND", "/pulse-check")
GIVE_FEEDBACK_COMMAND = os.getenv("GIVE_FEEDBACK_COMMAND", "/give-feedback")

# Set up logging
logging_level = os.environ.get("PEERPULSE_LOG_LEVEL", "INFO")
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=logging_level
)
logger = logging.getLogger(__name__)

# Token verification can be switched off for CI/test runs
_token_verification_enabled = (
    os.getenv("SLACK_BOLT_TOKEN_VERIFICATION_ENABLED", "true").lower() != "false"
)

app = App(
    token=os.environ.get("SLACK_BOT_TOKEN"),
    process_before_response=True,
    token_verification_enabled=_token_verification_enabled,
)


def _load_seed_file(store: ThreadSafeRecordStore) -> None:
    """Populate *store* from the JSON export named by ``PEERPULSE_SEED_FILE``."""
    path = os.getenv("PEERPULSE_SEED_FILE")
    if not path:
        return
    try:
        with open(path, encoding="utf-8") as fh:
            payload = json.load(fh)
        store.load_rows(payload)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.error("Could not load seed file %s: %s", path, exc, exc_info=True)


record_store = ThreadSafeRecordStore()
_load_seed_file(record_store)

# Initialize a single thread pool for the application
executor = ThreadPoolExecutor(max_workers=int(os.getenv("PEERPULSE_WORKERS", "4")))


def shutdown_executor():
    """Gracefully shut down the thread pool executor."""
    logger.info("Shutting down thread pool executor...")
    executor.shutdown(wait=True)
    logger.info("Thread pool executor shut down gracefully.")


# Register the shutdown function to be called on exit
atexit.register(shutdown_executor)


# Log all incoming messages to help with debugging
@app.middleware
def log_request(logger, body, next):
    logger.debug(f"Received event: {body}")
    return next()


def _help_text() -> str:
    """Return a help message describing bot purpose and usage."""

    scores = " ".join(f"{name}=<1-10>" for name in HEALTH_CATEGORIES)
    return (
        "*PeerPulse – Team Feedback & Health Dashboards*\n\n"
        "Weekly pulse surveys and peer feedback, summarised per team.\n\n"
        "*Commands*\n"
        "• `@peerpulse help` — show this message.\n"
        f"• `{TEAM_PULSE_COMMAND} <team>` — post the team's dashboard digest in this channel.\n"
        f"• `{PULSE_CHECK_COMMAND} <team> {scores}` — submit your weekly health check.\n"
        f"• `{GIVE_FEEDBACK_COMMAND} <team> @teammate rating=<1-5> [sentiment=...] <text>` — send peer feedback.\n\n"
        "*Example*\n"
        f"• `{PULSE_CHECK_COMMAND} Falcons motivation=7 collaboration=8 communication=9 workload=6 satisfaction=7`\n"
        f"• `{GIVE_FEEDBACK_COMMAND} Falcons @sam rating=4 Great demo, clear slides`\n"
    )


@app.event("app_mention")
def handle_app_mention(event, say, logger: logging.Logger):
    """Respond to `@peerpulse help`; other mentions are ignored."""
    text = event.get("text", "").lower()
    if "help" in text:
        say(_help_text())
    else:
        logger.debug("Ignoring mention without help: %s", text)


# ------------------------------------------------------------------
# /team-pulse
# ------------------------------------------------------------------


def process_team_pulse_request(
    command: Dict[str, Any],
    client: WebClient,
    logger: logging.Logger,
    respond: Respond,
):
    """Build the dashboard report for the requested team and post the digest."""
    try:
        team_key = command.get("text", "").strip()
        if not team_key:
            respond(f"Usage: `{TEAM_PULSE_COMMAND} <team name or id>`")
            return

        try:
            team = record_store.find_team(team_key)
        except TeamNotFoundError:
            respond(f"I couldn't find a team called '{team_key}'.")
            return

        report = record_store.build_report(team.team_id)
        health_checks = record_store.list_health_checks(team.team_id)
        trend = health_trend(health_checks)
        participation = (
            participation_rate(health_checks, team.member_ids) if team.member_ids else None
        )

        channel_id = command.get("channel_id") or command["user_id"]
        try:
            post_digest_to_slack(
                report=report,
                client=client,
                channel=channel_id,
                trend=trend,
                participation=participation,
            )
        except SlackApiError as exc:
            logger.error(
                "Failed to post digest for team %s to %s: %s",
                team.team_id,
                channel_id,
                exc.response.get("error", str(exc)),
                exc_info=True,
            )
            respond("Sorry, I couldn't post the team digest in this channel.")
            return

        logger.info(
            "Posted digest for team '%s' (%d feedback, %d health checks) to %s",
            team.team_id,
            report.feedback_count,
            report.aggregated_health.sample_count,
            channel_id,
        )

    except Exception as e:
        logger.error(
            f"Error processing {TEAM_PULSE_COMMAND} request for user '{command.get('user_id', 'unknown')}': {e}",
            exc_info=True,
        )
        respond(
            "Sorry, an unexpected error occurred while processing your request. Please try again."
        )


# ------------------------------------------------------------------
# Thread helper utilities
# ------------------------------------------------------------------


def _log_future_exception(fut: Future) -> None:  # noqa: WPS430 – small util
    """Logs any exception raised by a completed *Future*."""
    exc = fut.exception()
    if exc is not None:
        logger.exception("Background task raised an exception: %s", exc, exc_info=exc)


def submit_background(func, /, *args, **kwargs) -> Future:  # noqa: WPS110
    """Submit *func* to the shared thread pool with automatic error logging."""

    fut = executor.submit(func, *args, **kwargs)
    fut.add_done_callback(_log_future_exception)
    return fut


@app.command(TEAM_PULSE_COMMAND)
def handle_team_pulse_command(
    ack: Ack,
    command: Dict[str, Any],
    client: WebClient,
    logger: logging.Logger,
    respond: Respond,
):
    """Acknowledge the slash command and build the digest in the background."""
    ack()
    try:
        submit_background(
            process_team_pulse_request,
            command=command,
            client=client,
            logger=logger,
            respond=respond,
        )
        logger.info(
            f"Submitted {TEAM_PULSE_COMMAND} request for user '{command['user_id']}' to thread pool."
        )
    except Exception as e:
        logger.error(
            f"Error submitting {TEAM_PULSE_COMMAND} for user '{command['user_id']}' to thread pool: {e}",
            exc_info=True,
        )
        respond("Sorry, there was an issue submitting your request. Please try again.")


# ------------------------------------------------------------------
# /pulse-check
# ------------------------------------------------------------------

_SCORE_RE = re.compile(r"\b([a-z]+)\s*=\s*(\S+)", re.IGNORECASE)


def parse_pulse_check(text: str) -> tuple[str, Dict[str, int]]:
    """Split ``"<team> motivation=7 ..."`` into the team key and its scores.

    Raises
    ------
    ValueError
        If the team is missing, a value is not a whole number, or a category is
        missing, unknown or repeated.
    """
    first = _SCORE_RE.search(text)
    team_key = (text[: first.start()] if first else text).strip()
    if not team_key:
        raise ValueError("Please name the team first.")

    scores: Dict[str, int] = {}
    for key, value in _SCORE_RE.findall(text):
        name = key.lower()
        if name not in HEALTH_CATEGORIES:
            raise ValueError(f"Unknown question '{key}'.")
        if name in scores:
            raise ValueError(f"'{name}' was given more than once.")
        try:
            scores[name] = int(value)
        except ValueError:
            raise ValueError(f"'{name}' must be a whole number, not '{value}'.") from None

    missing = [name for name in HEALTH_CATEGORIES if name not in scores]
    if missing:
        raise ValueError(f"Missing score(s) for: {', '.join(missing)}.")
    return team_key, scores


def process_pulse_check(
    command: Dict[str, Any], respond: Respond, now: Optional[datetime.datetime] = None
) -> Optional[HealthCheckRecord]:
    """Record a health check for the invoking user and confirm privately."""
    user_id = command["user_id"]
    try:
        team_key, scores = parse_pulse_check(command.get("text", ""))
        team = record_store.find_team(team_key)
    except TeamNotFoundError:
        respond(f"I couldn't find a team called '{team_key}'.")
        return None
    except ValueError as exc:
        respond(f"{exc} Usage: `{PULSE_CHECK_COMMAND} <team> motivation=N ...`")
        return None

    if team.member_ids and user_id not in team.member_ids:
        respond(f"You are not a member of {team.name}.")
        return None

    record = HealthCheckRecord(
        id=str(uuid.uuid4()),
        team_id=team.team_id,
        user_id=user_id,
        created_at=now or datetime.datetime.now(datetime.timezone.utc),
        **scores,
    )
    try:
        record_store.add_health_check(record)
    except InvalidRecordError as exc:
        logger.warning("Rejected health check from %s: %s", user_id, exc)
        respond("Scores must be whole numbers between 1 and 10.")
        return None

    respond(
        f"Thanks! Your health check for *{team.name}* has been recorded. The digest"
        " only shows team averages."
    )
    return record


@app.command(PULSE_CHECK_COMMAND)
def handle_pulse_check_command(ack: Ack, command: Dict[str, Any], respond: Respond):
    """Record a weekly health check submitted via slash command."""
    ack()
    process_pulse_check(command, respond)


# ------------------------------------------------------------------
# /give-feedback
# ------------------------------------------------------------------

# "<team> <@U123|name> rest..." as sent with user escaping enabled
_FEEDBACK_RE = re.compile(
    r"^(?P<team>.+?)\s+<@(?P<user>[A-Z0-9]+)(?:\|[^>]*)?>\s*(?P<rest>.*)$", re.DOTALL
)
_OPTION_RE = re.compile(r"^(rating|sentiment)\s*=\s*(\S+)\s*", re.IGNORECASE)

_FEEDBACK_USAGE = (
    f"Usage: `{GIVE_FEEDBACK_COMMAND} <team> @teammate rating=<1-5> "
    "[sentiment=positive|neutral|constructive] <your feedback>`"
)


@dataclass(frozen=True)
class FeedbackSubmission:
    """A parsed ``/give-feedback`` command."""

    team_key: str
    to_user_id: str
    rating: int
    sentiment: Optional[Sentiment]
    content: str


def parse_give_feedback(text: str) -> FeedbackSubmission:
    """Parse ``"<team> <@U2> rating=4 [sentiment=...] <text>"``.

    Raises
    ------
    ValueError
        If the teammate mention, the rating or the text is missing, or an
        option is malformed or repeated.
    """
    match = _FEEDBACK_RE.match(text.strip())
    if not match:
        raise ValueError("Please name the team and @mention the teammate.")

    rest = match.group("rest")
    options: Dict[str, str] = {}
    while True:
        option = _OPTION_RE.match(rest)
        if not option:
            break
        key = option.group(1).lower()
        if key in options:
            raise ValueError(f"'{key}' was given more than once.")
        options[key] = option.group(2)
        rest = rest[option.end():]

    if "rating" not in options:
        raise ValueError("Missing rating=<1-5>.")
    try:
        rating = int(options["rating"])
    except ValueError:
        raise ValueError(
            f"Rating must be a whole number, not '{options['rating']}'."
        ) from None

    sentiment = None
    if "sentiment" in options:
        try:
            sentiment = Sentiment(options["sentiment"])
        except ValueError:
            raise ValueError(
                "Sentiment must be positive, neutral or constructive."
            ) from None

    content = rest.strip()
    if not content:
        raise ValueError("Please add some feedback text.")
    return FeedbackSubmission(
        team_key=match.group("team").strip(),
        to_user_id=match.group("user"),
        rating=rating,
        sentiment=sentiment,
        content=content,
    )


def process_give_feedback(
    command: Dict[str, Any], respond: Respond, now: Optional[datetime.datetime] = None
) -> Optional[FeedbackRecord]:
    """Store peer feedback from the invoking user and confirm privately.

    Without an explicit ``sentiment=`` the tag is suggested from the text.
    """
    user_id = command["user_id"]
    try:
        submission = parse_give_feedback(command.get("text", ""))
        team = record_store.find_team(submission.team_key)
    except TeamNotFoundError:
        respond(f"I couldn't find a team called '{submission.team_key}'.")
        return None
    except ValueError as exc:
        respond(f"{exc} {_FEEDBACK_USAGE}")
        return None

    if team.member_ids:
        if user_id not in team.member_ids:
            respond(f"You are not a member of {team.name}.")
            return None
        if submission.to_user_id not in team.member_ids:
            respond(f"<@{submission.to_user_id}> is not a member of {team.name}.")
            return None

    sentiment = submission.sentiment or suggest_tag(submission.content)
    record = FeedbackRecord(
        id=str(uuid.uuid4()),
        team_id=team.team_id,
        from_user_id=user_id,
        to_user_id=submission.to_user_id,
        rating=submission.rating,
        content=submission.content,
        sentiment=sentiment,
        created_at=now or datetime.datetime.now(datetime.timezone.utc),
    )
    try:
        record_store.add_feedback(record)
    except InvalidRecordError as exc:
        logger.warning("Rejected feedback from %s: %s", user_id, exc)
        respond("Ratings must be whole numbers between 1 and 5.")
        return None

    how = "your tag" if submission.sentiment else "suggested from your text"
    respond(
        f"Thanks! Your feedback for <@{submission.to_user_id}> on *{team.name}* has been"
        f" recorded as *{sentiment.value}* ({how})."
    )
    return record


@app.command(GIVE_FEEDBACK_COMMAND)
def handle_give_feedback_command(ack: Ack, command: Dict[str, Any], respond: Respond):
    """Record peer feedback submitted via slash command."""
    ack()
    process_give_feedback(command, respond)


# Error handler
@app.error
def custom_error_handler(error, body, logger):
    logger.exception(f"Error handling request: {error}")
    logger.debug(f"Request body: {body}")


# NOTE: Runtime startup lives in peerpulse/main.py to keep this module import-safe and testable.
