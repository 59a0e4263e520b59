"""Fuzzy ranking of catalog entries against a free-text query."""

from __future__ import annotations

import re
from collections import Counter
from typing import Callable, Iterable

from ..models import CatalogEntry, RankedEntry

Scorer = Callable[[str, str], float]

RESULT_LIMIT = 10
_WHITESPACE_RE = re.compile(r"\s+")


def compare_two_strings(first: str, second: str) -> float:
    """Return the Dice coefficient of the character bigrams of both strings.

    Whitespace is ignored. Identical strings score 1.0; strings too short to
    form a bigram score 0.0 unless identical.
    """

    first = _WHITESPACE_RE.sub("", first)
    second = _WHITESPACE_RE.sub("", second)

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    first_bigrams = Counter(first[index : index + 2] for index in range(len(first) - 1))
    intersection = 0
    for index in range(len(second) - 1):
        bigram = second[index : index + 2]
        if first_bigrams[bigram] > 0:
            first_bigrams[bigram] -= 1
            intersection += 1

    return (2.0 * intersection) / (len(first) + len(second) - 2)


def rank(
    query: str,
    entries: Iterable[CatalogEntry],
    *,
    limit: int = RESULT_LIMIT,
    scorer: Scorer = compare_two_strings,
) -> list[RankedEntry]:
    """Score ``entries`` against ``query`` and return the best ``limit`` matches."""

    normalized_query = (query or "").lower()
    scored = [
        RankedEntry(
            title=entry.title,
            link=entry.link,
            similarity=scorer(entry.title.lower(), normalized_query),
        )
        for entry in entries
    ]
    # sorted() is stable, so equal scores keep catalog order.
    scored = sorted(scored, key=lambda item: item.similarity, reverse=True)
    return scored[:limit]
