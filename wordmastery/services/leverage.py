"""Leverage-based word prioritisation.

A word that appears in many books unlocks more reading per unit of
learning effort than one that is merely frequent inside a single book:

    leverage_score = book_count * ln(1 + total_occurrences) * 1000

rounded to an integer.  The log term rewards repetition without letting
one outlier book dominate the ranking.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Mapping

from wordmastery.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WordStat:
    """Snapshot of the global per-word aggregate (read-only)."""

    word: str
    book_count: int
    total_occurrences: int

    @property
    def leverage_score(self) -> int:
        return leverage_score(self.book_count, self.total_occurrences)


@dataclass(frozen=True)
class PrioritizedWord:
    word: str
    leverage_score: int
    book_count: int
    total_occurrences: int


def leverage_score(
    book_count: int, total_occurrences: int, scale: int = settings.leverage_scale
) -> int:
    return round(book_count * math.log1p(total_occurrences) * scale)


def _clean(words: Iterable[str]) -> list[str]:
    """Lower-case, trim, drop blanks and duplicates (first occurrence wins)."""
    return list(dict.fromkeys(w.lower().strip() for w in words if w and w.strip()))


def prioritize_detailed(
    book_words: Iterable[str],
    mastered_words: Iterable[str],
    stats: Mapping[str, WordStat],
) -> list[PrioritizedWord]:
    """Rank a book's unmastered words by leverage, highest first.

    Ties fall back to alphabetical order so identical inputs always give
    identical output regardless of set or mapping iteration order.
    Words with no stats yet score 0 (reported as seen once, in one book).
    """
    mastered = set(_clean(mastered_words))
    candidates = [w for w in _clean(book_words) if w not in mastered]

    ranked = []
    for word in candidates:
        stat = stats.get(word)
        if stat is None:
            ranked.append(PrioritizedWord(word, 0, 1, 1))
        else:
            ranked.append(
                PrioritizedWord(
                    word,
                    leverage_score(stat.book_count, stat.total_occurrences),
                    stat.book_count,
                    stat.total_occurrences,
                )
            )

    ranked.sort(key=lambda p: (-p.leverage_score, p.word))
    logger.debug(
        "Prioritised %d words (%d mastered skipped, %d without stats)",
        len(ranked),
        len(mastered),
        sum(1 for w in candidates if w not in stats),
    )
    return ranked


def prioritize(
    book_words: Iterable[str],
    mastered_words: Iterable[str],
    stats: Mapping[str, WordStat],
) -> list[str]:
    return [p.word for p in prioritize_detailed(book_words, mastered_words, stats)]
