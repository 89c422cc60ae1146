"""Unit tests for extract_themes utility."""
from typing import List

from peerpulse.analysis import themes as th
from peerpulse.reporting.models import ThemeEntry


def test_ties_keep_first_seen_order():
    themes: List[ThemeEntry] = th.extract_themes(
        ["Great communication skills.", "Great teamwork and communication."], 2
    )
    assert themes == [
        ThemeEntry(word="great", count=2),
        ThemeEntry(word="communication", count=2),
    ]


def test_higher_counts_rank_first():
    themes = th.extract_themes(["zeta alpha", "alpha zeta beta", "beta beta"])
    assert [(t.word, t.count) for t in themes] == [("beta", 3), ("zeta", 2), ("alpha", 2)]


def test_short_words_and_punctuation_are_dropped():
    themes = th.extract_themes(["The team was well-organized, and fun!"])
    assert [t.word for t in themes] == ["team", "well", "organized"]


def test_none_entries_and_empty_input():
    assert th.extract_themes([]) == []
    assert th.extract_themes([None, ""]) == []
    assert th.extract_themes([None, "Helpful"]) == [ThemeEntry("helpful", 1)]


def test_top_n_limits():
    words = " ".join(f"word{chr(97 + i)}" for i in range(12))
    assert len(th.extract_themes([words])) == 10
    assert th.extract_themes([words], top_n=0) == []
    assert len(th.extract_themes([words], top_n=3)) == 3


def test_recomputed_each_call():
    texts = ["Strong leadership", "strong ideas"]
    assert th.extract_themes(texts) == th.extract_themes(texts)
    assert th.extract_themes(texts) is not th.extract_themes(texts)
