"""Tests for the team coaching note generated from dashboard metrics."""
from __future__ import annotations

import datetime

import pytest

import peerpulse.analysis.summary as sm
from peerpulse.records import Sentiment
from peerpulse.reporting.aggregator import health_trend
from peerpulse.reporting.assembler import build_dashboard_report

UTC = datetime.timezone.utc


@pytest.fixture()
def report(make_feedback, make_health):
    return build_dashboard_report(
        "T1",
        [
            make_feedback(5, "Great teamwork, secret plans", Sentiment.POSITIVE),
            make_feedback(2, "Often late", Sentiment.CONSTRUCTIVE),
        ],
        [make_health(9, 8, 6, 4)],
        team_name="Falcons",
    )


@pytest.fixture()
def chat_calls(monkeypatch):
    calls = []

    def _fake_chat(messages, **kwargs):
        calls.append({"messages": messages, **kwargs})
        return {"choices": [{"message": {"content": " Collaboration is strong. "}}]}

    monkeypatch.setattr(sm, "chat_completion", _fake_chat)
    return calls


def test_prompt_is_built_from_metrics(report, chat_calls, make_health):
    trend = health_trend(
        [
            make_health(6, 6, 6, 6, created_at=datetime.datetime(2024, 6, 3, tzinfo=UTC)),
            make_health(8, 8, 8, 8, created_at=datetime.datetime(2024, 6, 10, tzinfo=UTC)),
        ]
    )

    note = sm.generate_team_summary(report, trend=trend, participation=50.0)

    assert note == "Collaboration is strong."
    prompt = chat_calls[0]["messages"][1]["content"]
    assert "Team: Falcons" in prompt
    assert "1 positive, 0 neutral, 1 constructive (50.0% positive)" in prompt
    assert "- motivation: 90.0 (Excellent)" in prompt
    assert "- workload: 40.0 (Needs Attention)" in prompt
    assert "Participation: 50.0% of members" in prompt
    assert "Change vs last week: +20.0 points" in prompt


def test_feedback_text_is_never_sent(report, chat_calls):
    sm.generate_team_summary(report)

    sent = " ".join(m["content"] for m in chat_calls[0]["messages"])
    assert "secret plans" not in sent
    assert "Often late" not in sent


def test_empty_team_skips_openai(chat_calls):
    assert sm.generate_team_summary(build_dashboard_report("T2", [], [])) == ""
    assert chat_calls == []


def test_truncation(report, monkeypatch):
    def _fake_long(*_, **__):
        return {"choices": [{"message": {"content": "a" * 1000}}]}

    monkeypatch.setattr(sm, "chat_completion", _fake_long)
    truncated = sm.generate_team_summary(report)
    assert truncated.endswith("…")
    assert len(truncated) <= 701


def test_retries_then_raises(report, monkeypatch):
    calls = []

    def _broken(*_, **__):
        calls.append(1)
        raise ConnectionError("network down")

    monkeypatch.setattr(sm, "chat_completion", _broken)
    with pytest.raises(RuntimeError) as excinfo:
        sm.generate_team_summary(report)
    assert len(calls) == 2
    assert isinstance(excinfo.value.__cause__, ConnectionError)


def test_second_attempt_succeeds(report, monkeypatch):
    responses = [ConnectionError("blip"), {"choices": [{"message": {"content": "ok"}}]}]

    def _flaky(*_, **__):
        item = responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    monkeypatch.setattr(sm, "chat_completion", _flaky)
    assert sm.generate_team_summary(report) == "ok"
