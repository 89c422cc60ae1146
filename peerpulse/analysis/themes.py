"""Word-frequency theme extraction over a feedback corpus."""
from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, List, Optional

from peerpulse.reporting.models import ThemeEntry

# Words of this length or shorter ("and", "the", "was") never count as themes.
MIN_IGNORED_LENGTH = 3

_SPLIT_RE = re.compile(r"\W+")


def extract_themes(
    texts: Iterable[Optional[str]], top_n: int = 10
) -> List[ThemeEntry]:
    """Return the *top_n* most frequent words across *texts*.

    Ties keep the order in which the words were first seen, so the result is
    fully determined by the input sequence.
    """
    if top_n <= 0:
        return []

    corpus = " ".join(text for text in texts if text).lower()
    counts: Counter[str] = Counter(
        token for token in _SPLIT_RE.split(corpus) if len(token) > MIN_IGNORED_LENGTH
    )

    # Counter keeps insertion order and sorted() is stable.
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [ThemeEntry(word=word, count=count) for word, count in ranked[:top_n]]
