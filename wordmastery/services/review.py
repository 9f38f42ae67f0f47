"""History review: pick a deck of known words and summarise the outcome."""

from __future__ import annotations

import datetime as dt
import enum
import logging
import random
from dataclasses import dataclass
from typing import Iterable, Optional

from wordmastery.services.scheduler import AnswerResult

logger = logging.getLogger(__name__)


class ReviewOrder(str, enum.Enum):
    OLDEST = "oldest"
    RANDOM = "random"
    FREQUENT = "frequent"


class ReviewSource(str, enum.Enum):
    MASTERED = "mastered"
    LEARNING = "learning"
    BOTH = "both"


@dataclass(frozen=True)
class ReviewCandidate:
    word_id: str
    status: str  # new | learning | mastered
    total_occurrences: int = 0
    last_tested: Optional[dt.datetime] = None


@dataclass(frozen=True)
class ReviewSummary:
    correct: int
    missed: int
    demoted: list[str]

    @property
    def total(self) -> int:
        return self.correct + self.missed


def select_review_deck(
    candidates: Iterable[ReviewCandidate],
    size: int,
    order: ReviewOrder = ReviewOrder.OLDEST,
    include: ReviewSource = ReviewSource.MASTERED,
    rng: Optional[random.Random] = None,
) -> list[str]:
    """Choose up to *size* word ids for a history review.

    ``oldest`` puts never-tested words first, then the longest untested;
    ``frequent`` favours words seen most often across books.
    """
    include = ReviewSource(include)
    order = ReviewOrder(order)
    if include is ReviewSource.BOTH:
        allowed = {"mastered", "learning"}
    else:
        allowed = {include.value}
    eligible = [c for c in candidates if c.status in allowed]

    if order is ReviewOrder.OLDEST:
        never = dt.datetime.min
        eligible.sort(key=lambda c: (c.last_tested or never, c.word_id))
    elif order is ReviewOrder.FREQUENT:
        eligible.sort(key=lambda c: (-c.total_occurrences, c.word_id))
    else:
        (rng or random.Random()).shuffle(eligible)

    deck = [c.word_id for c in eligible[: max(size, 0)]]
    logger.info(
        "Review deck: %d of %d eligible words (order=%s, include=%s)",
        len(deck),
        len(eligible),
        order.value,
        include.value,
    )
    return deck


def summarize_review(
    results: Iterable[AnswerResult],
    previously_mastered: Iterable[str] = (),
    demote_on_miss: bool = False,
) -> ReviewSummary:
    """Count the answers and, if enabled, list mastered words to demote."""
    results = list(results)
    mastered = set(previously_mastered)
    correct = sum(1 for r in results if r.is_correct)

    demoted: list[str] = []
    if demote_on_miss:
        for r in results:
            if not r.is_correct and r.word_id in mastered and r.word_id not in demoted:
                demoted.append(r.word_id)
        if demoted:
            logger.info("Demoting %d missed words back to learning", len(demoted))

    return ReviewSummary(correct=correct, missed=len(results) - correct, demoted=demoted)
