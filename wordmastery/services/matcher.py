"""Decide whether a recognised utterance counts as reading a target word.

Tuned for young readers: we would rather give a child credit for a
close-enough attempt than mark them wrong because the recogniser
picked the wrong spelling or misheard a letter.  Checks run in a fixed
order and the first one that succeeds wins:

  1. exact match after normalisation
  2. homophone of the whole transcript
  3. target appears as a whole word in the transcript
  4. any transcript word is a homophone of the target
  5. edit distance of the whole transcript within tolerance
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass

from wordmastery.config import settings
from wordmastery.services.homophones import HomophoneIndex, default_index

logger = logging.getLogger(__name__)

_NOISE_CHARS = re.compile(r"[.,!?'\"]")


@dataclass(frozen=True)
class MatchVerdict:
    transcript: str
    confidence: float
    is_match: bool


def normalise(text: str) -> str:
    """Strip punctuation noise, trim and lower-case."""
    return _NOISE_CHARS.sub("", text).strip().lower()


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance with unit costs (no transpositions)."""
    if len(a) < len(b):
        return edit_distance(b, a)
    if len(b) == 0:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a):
        curr = [i + 1]
        for j, cb in enumerate(b):
            cost = 0 if ca == cb else 1
            curr.append(min(curr[j] + 1, prev[j + 1] + 1, prev[j] + cost))
        prev = curr
    return prev[len(b)]


class FuzzyMatcher:
    def __init__(
        self,
        index: HomophoneIndex = default_index,
        tolerance_ratio: float = settings.fuzzy_tolerance_ratio,
        min_tolerance: int = settings.min_edit_tolerance,
    ):
        self.index = index
        self.tolerance_ratio = tolerance_ratio
        self.min_tolerance = min_tolerance

    def tolerance_for(self, target: str) -> int:
        """Maximum edit distance accepted for a normalised *target*."""
        return max(self.min_tolerance, math.floor(len(target) * self.tolerance_ratio))

    def is_match(self, transcript: str, target: str) -> bool:
        return self.match_normalised(normalise(transcript), normalise(target))

    def match_normalised(self, spoken: str, target: str) -> bool:
        """Run the matching cascade on strings that are already normalised.

        Callers scanning many targets against one utterance normalise the
        transcript once and call this directly.
        """
        # Silence and blank targets never count as a reading.
        if not target or not spoken:
            return False

        if spoken == target:
            return True

        if self.index.are_homophones(spoken, target):
            return True

        tokens = spoken.split()
        if target in tokens:
            return True

        for token in tokens:
            if self.index.are_homophones(token, target):
                return True

        distance = edit_distance(spoken, target)
        if distance <= self.tolerance_for(target):
            logger.debug("Fuzzy match %r ~ %r (distance %d)", spoken, target, distance)
            return True

        return False

    def verdict(self, transcript: str, target: str, confidence: float = 1.0) -> MatchVerdict:
        return MatchVerdict(
            transcript=transcript,
            confidence=confidence,
            is_match=self.is_match(transcript, target),
        )


default_matcher = FuzzyMatcher()


def is_match(transcript: str, target: str) -> bool:
    """Module-level shortcut using the default homophone table."""
    return default_matcher.is_match(transcript, target)
